# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""MIME serialization of message bodies.

Without attachments the body is emitted untouched and the declared content
type is used as-is. With attachments the body becomes a ``multipart/mixed``
envelope: the text part first, then one part per attachment, all
base64-encoded in fixed-width CRLF lines.

Example:
    Building the wire body for a message with one attachment::

        encoded = encode_body("<p>Hi</p>", [report], "text/html")
        headers["Content-Type"] = encoded.content_type
        payload = encoded.body
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import time
from dataclasses import dataclass
from typing import Sequence

from .errors import AttachmentError, EncodingError
from .models import Attachment

CRLF = "\r\n"
LINE_WIDTH = 76


@dataclass(frozen=True)
class EncodedBody:
    """Serialized body plus the ``Content-Type`` header that describes it."""

    content_type: str
    body: str
    boundary: str | None = None

    @property
    def is_multipart(self) -> bool:
        return self.boundary is not None


def make_boundary() -> str:
    """Return a boundary token seeded from the clock plus random bytes."""
    seed = f"{time.time_ns()}-{secrets.token_hex(8)}"
    return "=_" + hashlib.md5(seed.encode("ascii")).hexdigest()


def chunk_base64(data: bytes, width: int = LINE_WIDTH) -> str:
    """Base64-encode ``data`` split in CRLF-terminated lines of ``width``."""
    encoded = base64.b64encode(data).decode("ascii")
    return "".join(encoded[i:i + width] + CRLF for i in range(0, len(encoded), width))


def _quote_param(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _attachment_part(attachment: Attachment) -> str:
    content = attachment.content
    if not isinstance(content, (bytes, bytearray)):
        raise AttachmentError(f"Attachment {attachment.name!r} has no readable content")
    name = _quote_param(attachment.name)
    return (
        f'Content-Type: {attachment.mime_type}; name="{name}"{CRLF}'
        f"Content-Transfer-Encoding: base64{CRLF}"
        f'Content-Disposition: attachment; filename="{name}"{CRLF}'
        f"{CRLF}"
        f"{chunk_base64(bytes(content))}"
    )


def encode_body(
    body: str,
    attachments: Sequence[Attachment] = (),
    content_type: str = "text/html",
    charset: str = "UTF-8",
) -> EncodedBody:
    """Serialize ``body`` and ``attachments`` into a wire body.

    Args:
        body: Primary content.
        attachments: Attachments in the order they must appear.
        content_type: Type of ``body``, ``text/html`` or ``text/plain``.
        charset: Charset announced for the text part.

    Returns:
        The wire body and its ``Content-Type`` header value.

    Raises:
        EncodingError: The body cannot be encoded in ``charset``.
        AttachmentError: An attachment has no readable content.

    The whole body is built in memory before it is returned, so a failure
    here always happens before the caller starts any SMTP exchange.
    """
    text_type = f"{content_type}; charset={charset}"
    if not attachments:
        return EncodedBody(content_type=text_type, body=body)

    try:
        body_bytes = body.encode(charset)
    except (UnicodeEncodeError, LookupError) as exc:
        raise EncodingError(f"Cannot encode body as {charset}: {exc}") from exc

    boundary = make_boundary()
    parts = [
        f"Content-Type: {text_type}{CRLF}"
        f"Content-Transfer-Encoding: base64{CRLF}"
        f"{CRLF}"
        f"{chunk_base64(body_bytes)}"
    ]
    parts.extend(_attachment_part(att) for att in attachments)

    delimiter = f"--{boundary}{CRLF}"
    wire = delimiter + f"{CRLF}{delimiter}".join(parts) + f"{CRLF}--{boundary}--{CRLF}"
    return EncodedBody(
        content_type=f'multipart/mixed; boundary="{boundary}"',
        body=wire,
        boundary=boundary,
    )
