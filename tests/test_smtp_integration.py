"""Tests against a real SMTP server using aiosmtpd."""

import email
import socket
from email import policy
from typing import Any

import pytest
from aiosmtpd.controller import Controller

from mail_dispatch.config_loader import MailerConfig
from mail_dispatch.mailer import Mailer
from mail_dispatch.models import Attachment


def get_free_port() -> int:
    """Find a free port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        port = s.getsockname()[1]
    return port


class CapturingHandler:
    """SMTP handler that captures received messages."""

    def __init__(self):
        self.messages: list[dict[str, Any]] = []
        self.reject_rcpt: set[str] = set()

    async def handle_RCPT(self, server, session, envelope, address, rcpt_options):
        if address in self.reject_rcpt:
            return "550 Mailbox not found"
        envelope.rcpt_tos.append(address)
        return "250 OK"

    async def handle_DATA(self, server, session, envelope):
        self.messages.append({
            "from": envelope.mail_from,
            "to": list(envelope.rcpt_tos),
            "data": envelope.content,
        })
        return "250 Message accepted for delivery"


@pytest.fixture
def smtp_server():
    handler = CapturingHandler()
    port = get_free_port()
    controller = Controller(handler, hostname="127.0.0.1", port=port)
    controller.start()
    try:
        yield handler, port
    finally:
        controller.stop()


@pytest.fixture
def mailer(smtp_server):
    _, port = smtp_server
    config = MailerConfig(
        environment="live",
        from_email="shop@example.com",
        from_name="Example Shop",
        smtp_host="127.0.0.1",
        smtp_port=port,
        smtp_encryption="none",
        smtp_auth=False,
        timeout=5,
        local_hostname="client.test",
    )
    return Mailer(config)


def test_message_is_delivered(smtp_server, mailer):
    handler, _ = smtp_server

    assert mailer.send(["customer@example.com"], "Hello", "<p>Hi</p>", cc=["boss@example.com"]) is True

    assert len(handler.messages) == 1
    received = handler.messages[0]
    assert received["from"] == "shop@example.com"
    assert received["to"] == ["customer@example.com", "boss@example.com"]
    parsed = email.message_from_bytes(received["data"], policy=policy.default)
    assert parsed["Subject"] == "Hello"
    assert parsed["To"] == "customer@example.com"
    assert parsed["From"].addresses[0].display_name == "Example Shop"
    assert parsed.get_content().strip() == "<p>Hi</p>"


def test_leading_dots_survive_transfer(smtp_server, mailer):
    handler, _ = smtp_server
    body = "first line\r\n.second line\r\n..third line"

    options = mailer.default_options(content_type="text/plain")

    assert mailer.send(["customer@example.com"], "Dots", body, options=options)

    parsed = email.message_from_bytes(handler.messages[0]["data"], policy=policy.default)
    assert parsed.get_content().splitlines() == ["first line", ".second line", "..third line"]


def test_attachments_arrive_intact(smtp_server, mailer):
    handler, _ = smtp_server
    attachments = [
        Attachment(name="report.pdf", content=b"%PDF-1.4" + bytes(range(256)), mime_type="application/pdf"),
        Attachment(name="notes.txt", content=b"line one\nline two\n", mime_type="text/plain"),
    ]

    assert mailer.send(["customer@example.com"], "Files", "<p>See attached</p>", attachments=attachments)

    parsed = email.message_from_bytes(handler.messages[0]["data"], policy=policy.default)
    parts = list(parsed.iter_parts())[1:]
    received = [(p.get_filename(), p.get_content_type(), p.get_payload(decode=True)) for p in parts]
    assert received == [(a.name, a.mime_type, a.content) for a in attachments]


def test_bcc_is_delivered_but_hidden(smtp_server, mailer):
    handler, _ = smtp_server

    mailer.send(["customer@example.com"], "Hello", "body", bcc=["audit@example.com"])

    received = handler.messages[0]
    assert received["to"] == ["customer@example.com", "audit@example.com"]
    assert b"audit@example.com" not in received["data"]


def test_rejected_recipient_fails_the_message(smtp_server, mailer):
    handler, _ = smtp_server
    handler.reject_rcpt.add("ghost@example.com")

    result = mailer.deliver(mailer.build_message(["ghost@example.com"], "Hello", "body"))

    assert result.status == "failed"
    assert result.smtp_code == 550
    assert handler.messages == []


def test_check_connection(mailer):
    assert mailer.check_connection() is True
