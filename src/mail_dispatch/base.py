# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Base class for delivery transports."""

from __future__ import annotations

from .composer import ComposedEmail
from .models import DeliveryResult, Message


class Transport:
    """Interface implemented by :class:`LiveTransport` and :class:`CaptureTransport`."""

    name = "base"

    def route(self, message: Message) -> Message:
        """Return the message as it must be delivered (recipients included)."""
        return message

    def send(self, email: ComposedEmail) -> DeliveryResult:
        """Deliver a composed email, raising a ``MailDispatchError`` on failure."""
        raise NotImplementedError

    def check_connection(self) -> None:
        """Raise when the transport cannot reach its destination."""
        return None
