# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Environment routing: real delivery in live deployments, capture elsewhere.

The transport is chosen once, by :func:`select_transport`, when the mailer is
built. Development and test deployments get a :class:`CaptureTransport` that
never opens a socket: messages land in an in-memory :class:`Mailbox`,
optionally readdressed to a fixed list of development recipients.

The mailbox is an unsynchronized append-only list meant for tests and local
development only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable

from .base import Transport
from .composer import ComposedEmail
from .logger import get_logger
from .models import Attachment, DeliveryResult, Message
from .smtp.transport import LiveTransport

if TYPE_CHECKING:
    from .config_loader import MailerConfig

logger = get_logger("mail_dispatch.router")


@dataclass
class CapturedMessage:
    """What a live send would have handed to the relay."""

    to: list[str]
    cc: list[str]
    bcc: list[str]
    subject: str
    body: str
    alt_body: str | None
    headers: dict[str, str]
    attachments: list[Attachment]
    options: dict[str, Any]
    wire: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Mailbox:
    """In-memory list of captured messages."""

    def __init__(self) -> None:
        self._messages: list[CapturedMessage] = []

    def append(self, message: CapturedMessage) -> None:
        self._messages.append(message)

    @property
    def messages(self) -> list[CapturedMessage]:
        return list(self._messages)

    @property
    def last_message(self) -> CapturedMessage | None:
        return self._messages[-1] if self._messages else None

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(list(self._messages))


class CaptureTransport(Transport):
    """Store messages in a mailbox instead of dialing the network."""

    name = "capture"

    def __init__(self, development_recipients: Iterable[str] | None = None, mailbox: Mailbox | None = None):
        self.development_recipients = [addr for addr in (development_recipients or []) if addr]
        self.mailbox = mailbox if mailbox is not None else Mailbox()

    def route(self, message: Message) -> Message:
        """Readdress the message to the development recipients, if any."""
        if not self.development_recipients:
            return message
        logger.debug(
            "Redirecting message for %s to development recipients %s",
            ", ".join(message.recipients()),
            ", ".join(self.development_recipients),
        )
        return message.with_recipients(self.development_recipients)

    def send(self, email: ComposedEmail) -> DeliveryResult:
        message = email.message
        self.mailbox.append(
            CapturedMessage(
                to=list(message.to),
                cc=list(message.cc),
                bcc=list(message.bcc),
                subject=message.subject,
                body=message.body,
                alt_body=message.alt_body,
                headers=dict(email.headers),
                attachments=list(message.attachments),
                options=email.options.model_dump(),
                wire=email.as_string(),
            )
        )
        logger.info("Development email captured for %s", ", ".join(email.recipients))
        return DeliveryResult(status="captured", recipients=list(email.recipients))


def select_transport(config: "MailerConfig", mailbox: Mailbox | None = None) -> Transport:
    """Pick the transport matching ``config.environment``.

    Raises:
        ConfigurationError: Live environment with an incomplete SMTP setup.
    """
    if config.is_live:
        return LiveTransport.from_config(config)
    return CaptureTransport(config.development_recipients, mailbox=mailbox)
