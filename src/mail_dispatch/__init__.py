# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Synchronous email dispatcher speaking SMTP over a raw socket.

This package composes outbound email and hands it to one upstream relay per
call:

- Header-safe address formatting and MIME multipart encoding
- A sequential SMTP client with STARTTLS/implicit TLS and AUTH LOGIN
- A FIFO delivery queue for batch sending
- Capture of messages in an in-memory mailbox outside the live environment

Example:
    Basic usage::

        from mail_dispatch import Mailer, load_config

        mailer = Mailer(load_config("config.ini"))
        mailer.send(["customer@example.com"], "Welcome", "<p>Hello!</p>")
"""

from .addressing import format_address, format_address_list
from .attachments import AttachmentLoader, attachment_from_bytes, load_attachment
from .config_loader import Environment, MailerConfig, load_config
from .errors import (
    AttachmentError,
    ConfigurationError,
    EncodingError,
    MailDispatchError,
    MessageValidationError,
    SmtpConnectionError,
    SmtpError,
    SmtpProtocolError,
    TemplateError,
)
from .mailer import Mailer
from .mime import EncodedBody, encode_body
from .models import Attachment, DeliveryResult, Message, QueueEntry, SendOptions, ValidationResult, validate_message
from .queue import DeliveryQueue
from .router import CapturedMessage, CaptureTransport, Mailbox, select_transport
from .smtp import LiveTransport, SmtpResponse, read_response

__all__ = [
    "Attachment",
    "AttachmentError",
    "AttachmentLoader",
    "CaptureTransport",
    "CapturedMessage",
    "ConfigurationError",
    "DeliveryQueue",
    "DeliveryResult",
    "EncodedBody",
    "EncodingError",
    "Environment",
    "LiveTransport",
    "MailDispatchError",
    "Mailbox",
    "Mailer",
    "MailerConfig",
    "Message",
    "MessageValidationError",
    "QueueEntry",
    "SendOptions",
    "SmtpConnectionError",
    "SmtpError",
    "SmtpProtocolError",
    "SmtpResponse",
    "TemplateError",
    "ValidationResult",
    "attachment_from_bytes",
    "encode_body",
    "format_address",
    "format_address_list",
    "load_attachment",
    "load_config",
    "read_response",
    "select_transport",
    "validate_message",
]
