# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Mailer: the entry point used by the rest of the application.

The mailer validates a message, lets the environment transport readdress
it, serializes it and hands it to the transport. ``send`` reports a plain
``True``/``False`` and never raises for delivery problems; ``deliver``
returns a :class:`DeliveryResult` that tells message problems apart from
relay problems.

Example:
    Sending a message with an attachment::

        config = load_config("config.ini")
        mailer = Mailer(config)
        mailer.send(
            ["customer@example.com"],
            "Your invoice",
            "<p>Invoice attached.</p>",
            attachments=[load_attachment("invoice.pdf")],
        )

    Batch sending::

        mailer = Mailer(config.model_copy(update={"use_queue": True}))
        for order in orders:
            mailer.send([order.email], "Order shipped", render(order))
        sent, failed = mailer.process_queue(batch_size=50)
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Sequence

from pydantic import ValidationError

from .attachments import AttachmentLoader
from .base import Transport
from .composer import compose
from .config_loader import MailerConfig
from .errors import (
    ConfigurationError,
    EncodingError,
    MailDispatchError,
    MessageValidationError,
    SmtpConnectionError,
    SmtpError,
    SmtpProtocolError,
    TemplateError,
)
from .logger import get_logger
from .models import Attachment, DeliveryResult, Message, QueueEntry, SendOptions, validate_message
from .prometheus import MailMetrics
from .queue import DeliveryQueue
from .router import CaptureTransport, Mailbox, select_transport

TemplateRenderer = Callable[[str, Mapping[str, Any]], str]


def _as_list(value: str | Iterable[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return list(value)


class Mailer:
    """Compose and deliver email according to a :class:`MailerConfig`."""

    def __init__(
        self,
        config: MailerConfig | None = None,
        *,
        renderer: TemplateRenderer | None = None,
        transport: Transport | None = None,
        metrics: MailMetrics | None = None,
        logger=None,
    ):
        self.config = config or MailerConfig()
        self.renderer = renderer
        self.metrics = metrics or MailMetrics()
        self.logger = logger or get_logger("mail_dispatch.mailer")
        self.attachments = AttachmentLoader(self.config.attachments_dir)
        self.configuration_error: ConfigurationError | None = None
        self.transport: Transport | None = transport
        if self.transport is None:
            try:
                self.transport = select_transport(self.config)
            except ConfigurationError as exc:
                self.configuration_error = exc
                self.logger.error("Mail transport disabled: %s", exc)
        self.queue = DeliveryQueue(self._deliver_entry, metrics=self.metrics)

    # ------------------------------------------------------------------ state
    @property
    def enabled(self) -> bool:
        return self.transport is not None

    @property
    def mailbox(self) -> Mailbox | None:
        """Captured messages, when running outside the live environment."""
        if isinstance(self.transport, CaptureTransport):
            return self.transport.mailbox
        return None

    def default_options(self, **changes: Any) -> SendOptions:
        """Options built from the configuration, updated with ``changes``."""
        values: dict[str, Any] = {
            "from_email": self.config.from_email,
            "from_name": self.config.from_name,
            "content_type": self.config.content_type,
            "x_mailer": self.config.x_mailer,
        }
        values.update({k: v for k, v in changes.items() if v is not None})
        return SendOptions(**values)

    # -------------------------------------------------------------- composing
    def build_message(
        self,
        to: str | Iterable[str],
        subject: str,
        body: str,
        *,
        cc: str | Iterable[str] | None = None,
        bcc: str | Iterable[str] | None = None,
        alt_body: str | None = None,
        headers: Mapping[str, str] | None = None,
        attachments: Sequence[Attachment] = (),
    ) -> Message:
        return Message(
            to=_as_list(to),
            cc=_as_list(cc),
            bcc=_as_list(bcc),
            subject=subject,
            body=body,
            alt_body=alt_body,
            headers=dict(headers or {}),
            attachments=tuple(attachments),
        )

    def attach(self, path: str, name: str | None = None, mime_type: str | None = None) -> Attachment:
        """Read a file (relative to ``attachments_dir``) into an attachment."""
        return self.attachments.load(path, name=name, mime_type=mime_type)

    def attach_bytes(self, content: bytes | str, name: str, mime_type: str | None = None) -> Attachment:
        return self.attachments.from_bytes(content, name, mime_type)

    def render(self, template: str, data: Mapping[str, Any] | None = None) -> str:
        """Render ``template`` with the configured renderer."""
        if self.renderer is None:
            raise TemplateError("No template renderer configured")
        try:
            return self.renderer(template, dict(data or {}))
        except MailDispatchError:
            raise
        except Exception as exc:
            raise TemplateError(f"Cannot render template {template!r}: {exc}") from exc

    # ---------------------------------------------------------------- sending
    def send(
        self,
        to: str | Iterable[str],
        subject: str,
        body: str,
        *,
        cc: str | Iterable[str] | None = None,
        bcc: str | Iterable[str] | None = None,
        alt_body: str | None = None,
        headers: Mapping[str, str] | None = None,
        attachments: Sequence[Attachment] = (),
        options: SendOptions | None = None,
    ) -> bool:
        """Send (or queue, in queue mode) one email.

        Returns:
            ``True`` when the message was delivered, captured or queued.
        """
        try:
            message = self.build_message(
                to, subject, body, cc=cc, bcc=bcc, alt_body=alt_body, headers=headers, attachments=attachments
            )
        except ValidationError as exc:
            self.logger.error("Email to %s rejected: %s", ", ".join(map(str, _as_list(to))), exc)
            self.metrics.inc_error("validation")
            return False
        if self.config.use_queue:
            return self.enqueue(message, options).ok
        return self.deliver(message, options).ok

    def send_template(
        self,
        to: str | Iterable[str],
        subject: str,
        template: str,
        data: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> bool:
        """Render ``template`` with ``data`` and send the result as the body."""
        try:
            body = self.render(template, data)
        except TemplateError as exc:
            self.logger.error("Template email to %s not sent: %s", ", ".join(map(str, _as_list(to))), exc)
            self.metrics.inc_error(exc.kind)
            return False
        return self.send(to, subject, body, **kwargs)

    def enqueue(self, message: Message, options: SendOptions | None = None) -> DeliveryResult:
        """Validate and queue ``message`` for :meth:`process_queue`."""
        if self.transport is None:
            return self._disabled(message)
        try:
            validate_message(message).raise_for_errors()
        except MessageValidationError as exc:
            return self._invalid(message, str(exc), exc.kind)
        self.queue.enqueue(message, options)
        return DeliveryResult(status="queued", recipients=message.recipients())

    def process_queue(self, batch_size: int = 0) -> tuple[int, int]:
        """Deliver queued messages, returning ``(successes, failures)``."""
        return self.queue.process(batch_size)

    def _deliver_entry(self, entry: QueueEntry) -> DeliveryResult:
        return self.deliver(entry.message, entry.options)

    def _disabled(self, message: Message) -> DeliveryResult:
        error = self.configuration_error or ConfigurationError()
        self.logger.error("Email to %s not sent, transport disabled: %s", ", ".join(message.recipients()), error)
        self.metrics.inc_error(error.kind)
        return DeliveryResult(
            status="failed", recipients=message.recipients(), error=str(error), error_kind=error.kind
        )

    def _invalid(self, message: Message, error: str, kind: str) -> DeliveryResult:
        self.logger.error("Email to %s rejected: %s", ", ".join(message.recipients()) or "<none>", error)
        self.metrics.inc_error(kind)
        return DeliveryResult(status="invalid", recipients=message.recipients(), error=error, error_kind=kind)

    def _failed(self, recipients: list[str], exc: MailDispatchError) -> DeliveryResult:
        smtp_code = None
        if isinstance(exc, SmtpProtocolError):
            smtp_code = exc.smtp_code
            self.logger.error("SMTP error sending to %s via %s: %s", ", ".join(recipients), self.transport, exc.raw_text.strip() or exc)
        elif isinstance(exc, SmtpConnectionError):
            self.logger.error("SMTP connection failed (%s:%s): %s", exc.host, exc.port, exc)
        else:
            self.logger.error("Failed to send email to %s: %s", ", ".join(recipients), exc)
        self.metrics.inc_error(exc.kind)
        return DeliveryResult(
            status="failed", recipients=recipients, error=str(exc), error_kind=exc.kind, smtp_code=smtp_code
        )

    def deliver(self, message: Message, options: SendOptions | None = None) -> DeliveryResult:
        """Deliver ``message`` now, bypassing the queue.

        Validation and encoding happen before the transport is touched, so a
        bad message never reaches the relay half-sent.
        """
        if self.transport is None:
            return self._disabled(message)

        try:
            validate_message(message).raise_for_errors()
        except MessageValidationError as exc:
            return self._invalid(message, str(exc), exc.kind)

        if options is None:
            try:
                options = self.default_options()
            except ValidationError as exc:
                return self._invalid(message, f"invalid sender options: {exc}", "configuration")

        routed = self.transport.route(message)
        try:
            composed = compose(routed, options)
        except EncodingError as exc:
            return self._invalid(routed, str(exc), exc.kind)

        try:
            result = self.transport.send(composed)
        except SmtpError as exc:
            return self._failed(composed.recipients, exc)

        if result.status == "captured":
            self.metrics.inc_captured()
        else:
            self.metrics.inc_sent(self.transport.name)
            self.logger.info("Production email sent to: %s", ", ".join(composed.recipients))
        return result

    def check_connection(self) -> bool:
        """Return ``True`` when the transport can reach its relay."""
        if self.transport is None:
            self.logger.error("SMTP connection test skipped: %s", self.configuration_error)
            return False
        try:
            self.transport.check_connection()
        except SmtpError as exc:
            self.logger.error("SMTP connection test failed: %s", exc)
            return False
        self.logger.info("SMTP connection test successful")
        return True
