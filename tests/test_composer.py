"""Tests for header composition."""

from datetime import datetime, timezone

import pytest

from mail_dispatch.addressing import encode_word
from mail_dispatch.composer import compose
from mail_dispatch.errors import EncodingError
from mail_dispatch.models import Attachment, Message, SendOptions

OPTIONS = SendOptions(from_email="shop@example.com", from_name="Shop")


def test_header_order():
    message = Message(
        to=["a@example.com"],
        cc=["b@example.com"],
        subject="Hello",
        body="<p>Hi</p>",
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )
    options = OPTIONS.model_copy(update={"reply_to": "help@example.com"})

    composed = compose(message, options)

    assert list(composed.headers) == [
        "Date", "From", "To", "Cc", "Reply-To", "Subject", "X-Mailer", "MIME-Version", "Content-Type",
    ]
    assert composed.headers["From"] == f"{encode_word('Shop')} <shop@example.com>"
    assert composed.headers["To"] == "a@example.com"
    assert composed.headers["Content-Type"] == "text/html; charset=UTF-8"


def test_optional_headers_are_omitted():
    composed = compose(Message(to=["a@example.com"]), OPTIONS.model_copy(update={"x_mailer": None}))

    for name in ("Cc", "Reply-To", "X-Mailer", "Bcc"):
        assert name not in composed.headers


def test_bcc_is_envelope_only():
    composed = compose(Message(to=["a@example.com"], bcc=["hidden@example.com"]), OPTIONS)

    assert composed.recipients == ["a@example.com", "hidden@example.com"]
    assert "hidden@example.com" not in composed.as_string()


def test_custom_headers_follow_in_insertion_order():
    message = Message(to=["a@example.com"], headers={"X-Order": "42", "x-mailer": "custom", "X-Campaign": "spring"})
    options = OPTIONS.model_copy(update={"headers": {"X-Tenant": "acme"}})

    composed = compose(message, options)

    names = list(composed.headers)
    assert names[-3:] == ["X-Tenant", "X-Order", "X-Campaign"]
    assert composed.headers["X-Mailer"] == "custom"


def test_reserved_headers_cannot_be_overridden():
    message = Message(to=["a@example.com"], headers={"Content-Type": "text/evil", "Bcc": "x@example.com"})

    composed = compose(message, OPTIONS)

    assert composed.headers["Content-Type"] == "text/html; charset=UTF-8"
    assert "Bcc" not in composed.headers


def test_non_ascii_subject_is_encoded():
    composed = compose(Message(to=["a@example.com"], subject="Già spedito"), OPTIONS)

    assert composed.headers["Subject"] == encode_word("Già spedito")


def test_as_string_separates_headers_and_body():
    composed = compose(Message(to=["a@example.com"], body="Body text"), OPTIONS)

    head, _, body = composed.as_string().partition("\r\n\r\n")
    assert head.startswith("Date: ")
    assert body == "Body text"


def test_attachments_switch_to_multipart():
    attachment = Attachment(name="a.txt", content=b"a", mime_type="text/plain")

    composed = compose(Message(to=["a@example.com"], attachments=[attachment]), OPTIONS)

    assert composed.headers["Content-Type"].startswith('multipart/mixed; boundary="=_')


def test_payload_bytes_match_text():
    composed = compose(Message(to=["a@example.com"], subject="Già", body="<p>città</p>"), OPTIONS)

    assert composed.as_bytes() == composed.as_string().encode("utf-8")


@pytest.mark.parametrize(
    "kwargs",
    [{"body": "bad \ud800"}, {"subject": "bad \ud800"}, {"bcc": ["x\ud800@example.com"]}],
)
def test_unencodable_text_raises_encoding_error(kwargs):
    with pytest.raises(EncodingError):
        compose(Message(to=["a@example.com"], **kwargs), OPTIONS)
