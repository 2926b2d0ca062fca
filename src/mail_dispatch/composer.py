# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Turn a :class:`Message` plus :class:`SendOptions` into wire-ready text."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from email.utils import format_datetime

from .addressing import encode_header_value, format_address, format_address_list
from .errors import EncodingError
from .mime import CRLF, EncodedBody, encode_body
from .models import Message, SendOptions

# Headers computed from the message itself; caller headers cannot replace them.
RESERVED_HEADERS = {"content-type", "mime-version", "bcc", "content-transfer-encoding"}


@dataclass
class ComposedEmail:
    """A message with its headers and body fully serialized."""

    message: Message
    options: SendOptions
    sender: str
    recipients: list[str]
    headers: dict[str, str]
    body: str
    data: bytes
    composed_at: datetime = field(default_factory=datetime.now)

    def header_block(self) -> str:
        return "".join(f"{name}: {value}{CRLF}" for name, value in self.headers.items())

    def as_string(self) -> str:
        """Headers, blank line, body: the payload streamed after ``DATA``."""
        return f"{self.header_block()}{CRLF}{self.body}"

    def as_bytes(self) -> bytes:
        """The UTF-8 payload, already validated by :func:`compose`."""
        return self.data


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    for existing in headers:
        if existing.lower() == name.lower():
            headers[existing] = value
            return
    headers[name] = value


def build_headers(message: Message, options: SendOptions, encoded: EncodedBody) -> dict[str, str]:
    """Return the header block of ``message`` in serialization order."""
    headers: dict[str, str] = {
        "Date": format_datetime(message.created_at.astimezone()),
        "From": format_address(options.from_email, options.from_name),
        "To": format_address_list(message.to),
    }
    if message.cc:
        headers["Cc"] = format_address_list(message.cc)
    if options.reply_to:
        headers["Reply-To"] = format_address(options.reply_to, options.reply_to_name)
    headers["Subject"] = encode_header_value(message.subject)
    if options.x_mailer:
        headers["X-Mailer"] = options.x_mailer
    headers["MIME-Version"] = "1.0"
    headers["Content-Type"] = encoded.content_type

    for extra in (options.headers, message.headers):
        for name, value in extra.items():
            if value is None or name.lower() in RESERVED_HEADERS:
                continue
            _set_header(headers, name, str(value))
    return headers


def compose(message: Message, options: SendOptions) -> ComposedEmail:
    """Serialize ``message`` down to the bytes written after ``DATA``.

    Raises:
        EncodingError: Some text cannot be encoded. Raised before any I/O.
    """
    try:
        encoded = encode_body(message.body, message.attachments, options.content_type)
        headers = build_headers(message, options, encoded)
        header_block = "".join(f"{name}: {value}{CRLF}" for name, value in headers.items())
        data = f"{header_block}{CRLF}{encoded.body}".encode("utf-8")
        for address in (options.from_email, *message.recipients()):
            address.encode("utf-8")
    except UnicodeError as exc:
        raise EncodingError(f"Cannot encode message as UTF-8: {exc}") from exc
    return ComposedEmail(
        message=message,
        options=options,
        sender=options.from_email,
        recipients=message.recipients(),
        headers=headers,
        body=encoded.body,
        data=data,
    )
