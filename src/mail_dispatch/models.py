# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for outbound messages.

This module defines the data handed between the composer, the encoder and
the transports.

Models:
    - Attachment: a named payload already loaded into memory
    - Message: one outbound email, immutable once built
    - SendOptions: per-call sender/header configuration
    - QueueEntry: a message waiting in the delivery queue
    - ValidationResult: outcome of the pre-flight checks
    - DeliveryResult: outcome of one delivery attempt
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import MessageValidationError

DEFAULT_MIME_TYPE = "application/octet-stream"

ContentType = Literal["text/html", "text/plain"]
DeliveryStatus = Literal["sent", "captured", "queued", "invalid", "failed"]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Attachment(BaseModel):
    """A file attached to a message.

    Attributes:
        name: Filename announced in the MIME part.
        content: Raw bytes of the file.
        mime_type: Declared MIME type of the content.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(min_length=1, description="Filename used in the MIME part")]
    content: Annotated[bytes, Field(description="Raw attachment payload")]
    mime_type: Annotated[str, Field(default=DEFAULT_MIME_TYPE, description="MIME type of the payload")]

    @field_validator("mime_type", mode="before")
    @classmethod
    def default_mime_type(cls, v: Any) -> str:
        """Fall back to a generic binary type when none is known."""
        return v or DEFAULT_MIME_TYPE


class Message(BaseModel):
    """One outbound email.

    Recipients are kept as plain addresses: display names belong to headers,
    not to the SMTP envelope.

    Attributes:
        to: Primary recipients, in order.
        cc: Carbon-copy recipients.
        bcc: Blind carbon-copy recipients (envelope only, never in headers).
        subject: Subject line.
        body: Primary content, HTML unless the send options say otherwise.
        alt_body: Optional plain-text fallback.
        headers: Extra headers, serialized in insertion order.
        attachments: Attachments, serialized in order.
        created_at: Creation timestamp.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    to: Annotated[tuple[str, ...], Field(default=())]
    cc: Annotated[tuple[str, ...], Field(default=())]
    bcc: Annotated[tuple[str, ...], Field(default=())]
    subject: Annotated[str, Field(default="")]
    body: Annotated[str, Field(default="")]
    alt_body: Annotated[str | None, Field(default=None)]
    headers: Annotated[dict[str, str], Field(default_factory=dict)]
    attachments: Annotated[tuple[Attachment, ...], Field(default=())]
    created_at: Annotated[datetime, Field(default_factory=_utc_now)]

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def coerce_recipients(cls, v: Any) -> Any:
        """Accept a single address or a comma separated string."""
        if v is None:
            return ()
        if isinstance(v, str):
            return tuple(part.strip() for part in v.split(",") if part.strip())
        return v

    def recipients(self) -> list[str]:
        """Return the envelope recipients: to, cc and bcc flattened."""
        return [*self.to, *self.cc, *self.bcc]

    def with_recipients(
        self,
        to: list[str] | tuple[str, ...],
        cc: list[str] | tuple[str, ...] = (),
        bcc: list[str] | tuple[str, ...] = (),
    ) -> "Message":
        """Return a copy addressed to a different set of recipients."""
        return self.model_copy(update={"to": tuple(to), "cc": tuple(cc), "bcc": tuple(bcc)})


class SendOptions(BaseModel):
    """Per-call sender configuration.

    Replaces shared default headers on a long-lived composer: every send
    receives the options it uses.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    from_email: Annotated[str, Field(min_length=1)]
    from_name: Annotated[str | None, Field(default=None)]
    reply_to: Annotated[str | None, Field(default=None)]
    reply_to_name: Annotated[str | None, Field(default=None)]
    content_type: Annotated[ContentType, Field(default="text/html")]
    x_mailer: Annotated[str | None, Field(default="mail-dispatch")]
    headers: Annotated[dict[str, str], Field(default_factory=dict)]

    @field_validator("from_email", "from_name", "reply_to", "reply_to_name", "x_mailer")
    @classmethod
    def single_line(cls, v: str | None) -> str | None:
        """Line breaks here would end the header, or the SMTP command, early."""
        if v is not None and _has_line_break(v):
            raise ValueError("must be a single line")
        return v

    @field_validator("from_email", "reply_to")
    @classmethod
    def bare_address(cls, v: str | None) -> str | None:
        if v is not None and _is_malformed_address(v):
            raise ValueError(f"malformed address: {v!r}")
        return v

    @field_validator("headers")
    @classmethod
    def header_lines(cls, v: dict[str, str]) -> dict[str, str]:
        errors = _header_errors(v)
        if errors:
            raise ValueError("; ".join(errors))
        return v


@dataclass
class ValidationResult:
    """Outcome of :func:`validate_message`."""

    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.ok

    def raise_for_errors(self) -> None:
        """Raise :class:`MessageValidationError` when any check failed."""
        if self.errors:
            raise MessageValidationError(self.errors)


def _has_line_break(value: str) -> bool:
    return "\r" in value or "\n" in value


def _is_malformed_address(address: str) -> bool:
    stripped = address.strip()
    return _has_line_break(address) or any(ch in stripped for ch in " <>")


def _header_errors(headers: dict[str, str]) -> list[str]:
    errors = []
    for name, value in headers.items():
        if not name or ":" in name or _has_line_break(name):
            errors.append(f"invalid header name: {name!r}")
        elif _has_line_break(str(value)):
            errors.append(f"header {name} must be a single line")
    return errors


def validate_message(message: Message) -> ValidationResult:
    """Check a message before it reaches any transport.

    Catches what would otherwise be discovered half-way through the SMTP
    dialogue: missing recipients, blank addresses and header values that
    would break the header block.
    """
    result = ValidationResult()
    if not message.to:
        result.errors.append("at least one 'to' recipient is required")
    for address in message.recipients():
        if not address.strip():
            result.errors.append("blank recipient address")
        elif _is_malformed_address(address):
            result.errors.append(f"malformed recipient address: {address!r}")
    if _has_line_break(message.subject):
        result.errors.append("subject must be a single line")
    result.errors.extend(_header_errors(message.headers))
    return result


@dataclass
class QueueEntry:
    """A message waiting in the delivery queue.

    Attachments and headers are resolved when the entry is created, so later
    changes on the caller side never leak into a queued message.
    """

    message: Message
    options: SendOptions | None = None
    enqueued_at: datetime = field(default_factory=_utc_now)

    @property
    def attachments(self) -> tuple[Attachment, ...]:
        return self.message.attachments

    @property
    def headers(self) -> dict[str, str]:
        return dict(self.message.headers)


@dataclass
class DeliveryResult:
    """Outcome of a single delivery attempt.

    ``error_kind`` tells "fix your message" (``validation``, ``encoding``)
    apart from "the relay is unavailable" (``connection``, ``protocol``).
    """

    status: DeliveryStatus
    recipients: list[str] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None
    smtp_code: int | None = None
    timestamp: datetime = field(default_factory=_utc_now)

    @property
    def ok(self) -> bool:
        return self.status in ("sent", "captured", "queued")
