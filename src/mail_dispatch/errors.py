# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exception hierarchy for the mail dispatcher.

Errors fall in two families:

- problems with the message or the setup (``MessageValidationError``,
  ``EncodingError``, ``AttachmentError``, ``ConfigurationError``,
  ``TemplateError``), raised
  before any socket is opened;
- problems with the network or the remote server (``SmtpConnectionError``,
  ``SmtpProtocolError``), raised while the SMTP dialogue is running.

Every exception carries a short ``code`` so callers can classify failures
without string matching.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .smtp.response import SmtpResponse


class MailDispatchError(Exception):
    """Base class for all dispatcher errors."""

    code = "mail_dispatch_error"
    kind = "internal"


class MessageValidationError(MailDispatchError):
    """Raised when a message cannot be handed to a transport."""

    code = "invalid_message"
    kind = "validation"

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors) or "Invalid message")
        self.errors = list(errors)


class EncodingError(MailDispatchError):
    """Raised when the message body cannot be serialized."""

    code = "encoding_error"
    kind = "encoding"


class AttachmentError(EncodingError):
    """Raised when attachment bytes cannot be read or encoded."""

    code = "attachment_error"


class ConfigurationError(MailDispatchError):
    """Raised when the transport configuration is incomplete."""

    code = "missing_configuration"
    kind = "configuration"

    def __init__(self, message: str = "Missing SMTP configuration"):
        super().__init__(message)


class TemplateError(MailDispatchError):
    """Raised when a template body cannot be rendered."""

    code = "template_error"
    kind = "validation"


class SmtpError(MailDispatchError):
    """Base class for failures during the SMTP dialogue."""

    code = "smtp_error"
    kind = "network"


class SmtpConnectionError(SmtpError):
    """DNS, TCP, TLS or timeout failure talking to the relay."""

    code = "connection_failed"
    kind = "connection"

    def __init__(self, message: str, host: str | None = None, port: int | None = None):
        super().__init__(message)
        self.host = host
        self.port = port


class SmtpProtocolError(SmtpError):
    """The relay answered with an error reply or an unparsable one."""

    code = "protocol_error"
    kind = "protocol"

    def __init__(self, message: str, response: "SmtpResponse | None" = None):
        super().__init__(message)
        self.response = response

    @property
    def smtp_code(self) -> int | None:
        return self.response.status_code if self.response else None

    @property
    def raw_text(self) -> str:
        return self.response.raw_text if self.response else ""
