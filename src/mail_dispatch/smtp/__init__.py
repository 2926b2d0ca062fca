# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP client subsystem.

- read_response / SmtpResponse: multi-line reply parsing
- LiveTransport: the sequential SMTP dialogue over a raw socket
"""

from .response import SmtpResponse, read_response
from .transport import LiveTransport, SmtpConnection, dot_stuff

__all__ = [
    "LiveTransport",
    "SmtpConnection",
    "SmtpResponse",
    "dot_stuff",
    "read_response",
]
