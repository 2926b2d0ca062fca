# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Blocking SMTP client speaking the protocol over a raw socket.

One call to :meth:`LiveTransport.send` runs one complete dialogue on its
own socket::

    connect -> greeting -> EHLO -> [STARTTLS -> EHLO] -> [AUTH LOGIN]
            -> MAIL FROM -> RCPT TO (each) -> DATA -> body + "." -> QUIT

Every step must succeed before the next is issued. The first error reply
aborts the dialogue: the socket is closed and no further command, ``QUIT``
included, is sent. Nothing is retried.
"""

from __future__ import annotations

import base64
import re
import socket
import ssl
from typing import TYPE_CHECKING, Literal

from ..base import Transport
from ..composer import ComposedEmail
from ..errors import ConfigurationError, SmtpConnectionError, SmtpError, SmtpProtocolError
from ..logger import get_logger
from ..models import DeliveryResult
from .response import SmtpResponse, read_response

if TYPE_CHECKING:
    from ..config_loader import MailerConfig

Encryption = Literal["tls", "ssl", "none"]

DEFAULT_TIMEOUT = 30.0
CHECK_TIMEOUT = 10.0
ENCRYPTION_MODES = ("tls", "ssl", "none")

_LINE_BREAK = re.compile(rb"\r\n|\r|\n")

logger = get_logger("mail_dispatch.smtp")


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def dot_stuff(payload: bytes) -> bytes:
    """Normalize line endings to CRLF, escape leading dots, append ``.`` line."""
    lines = _LINE_BREAK.split(payload)
    stuffed = b"\r\n".join(b"." + line if line.startswith(b".") else line for line in lines)
    if not stuffed.endswith(b"\r\n"):
        stuffed += b"\r\n"
    return stuffed + b".\r\n"


class SmtpConnection:
    """A socket plus a line reader, upgradable to TLS in place."""

    def __init__(self, sock: socket.socket, host: str, port: int):
        self.sock = sock
        self.host = host
        self.port = port
        self.reader = sock.makefile("rb")

    def _write(self, data: bytes) -> None:
        try:
            self.sock.sendall(data)
        except OSError as exc:
            raise SmtpConnectionError(f"Error writing to {self.host}:{self.port}: {exc}", self.host, self.port) from exc

    def read_reply(self) -> SmtpResponse:
        try:
            return read_response(self.reader)
        except SmtpConnectionError as exc:
            exc.host, exc.port = self.host, self.port
            raise

    def command(self, line: str, *, log_as: str | None = None) -> SmtpResponse:
        """Send one command line and return its (successful) reply."""
        logger.debug("C: %s", log_as or line)
        self._write(line.encode("utf-8") + b"\r\n")
        reply = self.read_reply()
        logger.debug("S: %s", reply.raw_text.rstrip())
        return reply

    def send_data(self, payload: bytes) -> SmtpResponse:
        self._write(dot_stuff(payload))
        return self.read_reply()

    def starttls(self, context: ssl.SSLContext) -> None:
        """Replace the plain socket with a TLS one on the same connection."""
        self.reader.close()
        try:
            self.sock = context.wrap_socket(self.sock, server_hostname=self.host)
        except OSError as exc:
            raise SmtpConnectionError(f"TLS handshake with {self.host}:{self.port} failed: {exc}", self.host, self.port) from exc
        self.reader = self.sock.makefile("rb")

    def quit(self) -> None:
        """Send ``QUIT`` without caring about the outcome."""
        try:
            self.command("QUIT")
        except SmtpError as exc:
            logger.debug("QUIT to %s:%s not acknowledged: %s", self.host, self.port, exc)

    def close(self) -> None:
        for resource in (self.reader, self.sock):
            try:
                resource.close()
            except OSError:
                logger.debug("Error closing connection to %s:%s", self.host, self.port)


class LiveTransport(Transport):
    """Deliver messages to a real relay.

    Configuration is checked once, here: a missing host or missing
    credentials with ``auth`` enabled raise :class:`ConfigurationError`
    before any message is accepted.
    """

    name = "live"

    def __init__(
        self,
        host: str | None,
        port: int = 587,
        *,
        username: str | None = None,
        password: str | None = None,
        encryption: Encryption = "tls",
        auth: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        local_hostname: str | None = None,
        verify_tls: bool = True,
        ssl_context: ssl.SSLContext | None = None,
    ):
        if not host:
            raise ConfigurationError("SMTP host is not configured")
        if not 0 < int(port) < 65536:
            raise ConfigurationError(f"Invalid SMTP port: {port}")
        if encryption not in ENCRYPTION_MODES:
            raise ConfigurationError(f"Invalid SMTP encryption {encryption!r}, expected one of {ENCRYPTION_MODES}")
        if auth and not (username and password):
            raise ConfigurationError("SMTP authentication is enabled but username or password is missing")
        if timeout is None or timeout <= 0:
            raise ConfigurationError("SMTP timeout must be a positive number of seconds")

        self.host = host
        self.port = int(port)
        self.username = username
        self.password = password
        self.encryption = encryption
        self.auth = bool(auth)
        self.timeout = float(timeout)
        self.local_hostname = local_hostname or socket.getfqdn()
        self.verify_tls = verify_tls
        self._ssl_context = ssl_context

    @classmethod
    def from_config(cls, config: "MailerConfig") -> "LiveTransport":
        return cls(
            config.smtp_host,
            config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            encryption=config.smtp_encryption,
            auth=config.smtp_auth,
            timeout=config.timeout,
            local_hostname=config.local_hostname,
            verify_tls=config.verify_tls,
        )

    def __repr__(self) -> str:
        return f"LiveTransport(host={self.host!r}, port={self.port}, encryption={self.encryption!r})"

    def ssl_context(self) -> ssl.SSLContext:
        if self._ssl_context is None:
            context = ssl.create_default_context()
            if not self.verify_tls:
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE
            self._ssl_context = context
        return self._ssl_context

    def connect(self, timeout: float | None = None) -> SmtpConnection:
        """Open the socket, wrapped in TLS right away for ``ssl``."""
        timeout = timeout or self.timeout
        try:
            sock = socket.create_connection((self.host, self.port), timeout=timeout)
        except OSError as exc:
            raise SmtpConnectionError(
                f"SMTP connection to {self.host}:{self.port} failed: {exc}", self.host, self.port
            ) from exc
        if self.encryption == "ssl":
            try:
                sock = self.ssl_context().wrap_socket(sock, server_hostname=self.host)
            except OSError as exc:
                sock.close()
                raise SmtpConnectionError(
                    f"TLS handshake with {self.host}:{self.port} failed: {exc}", self.host, self.port
                ) from exc
        return SmtpConnection(sock, self.host, self.port)

    def _greet(self, conn: SmtpConnection) -> None:
        conn.read_reply()
        conn.command(f"EHLO {self.local_hostname}")
        if self.encryption == "tls":
            conn.command("STARTTLS")
            conn.starttls(self.ssl_context())
            conn.command(f"EHLO {self.local_hostname}")

    def _authenticate(self, conn: SmtpConnection) -> None:
        reply = conn.command("AUTH LOGIN")
        self._expect_challenge(reply, "AUTH LOGIN")
        reply = conn.command(_b64(self.username or ""), log_as="<username>")
        self._expect_challenge(reply, "username")
        conn.command(_b64(self.password or ""), log_as="<password>")

    @staticmethod
    def _expect_challenge(reply: SmtpResponse, step: str) -> None:
        if not reply.is_intermediate:
            raise SmtpProtocolError(f"Unexpected reply to {step}: {reply.raw_text.strip()}", reply)

    def send(self, email: ComposedEmail) -> DeliveryResult:
        """Run one SMTP dialogue for ``email``.

        Raises:
            SmtpConnectionError: Connect, TLS, read or write failure.
            SmtpProtocolError: The relay answered with an error.
        """
        conn = self.connect()
        try:
            self._greet(conn)
            if self.auth:
                self._authenticate(conn)
            conn.command(f"MAIL FROM:<{email.sender}>")
            for recipient in email.recipients:
                conn.command(f"RCPT TO:<{recipient}>")
            reply = conn.command("DATA")
            if not reply.is_intermediate:
                raise SmtpProtocolError(f"Server not ready for message data: {reply.raw_text.strip()}", reply)
            final = conn.send_data(email.as_bytes())
            conn.quit()
        finally:
            conn.close()

        logger.debug("Relay %s:%s accepted message for %s", self.host, self.port, ", ".join(email.recipients))
        return DeliveryResult(status="sent", recipients=list(email.recipients), smtp_code=final.status_code)

    def check_connection(self) -> None:
        """Open a session, read the greeting and quit."""
        conn = self.connect(timeout=min(self.timeout, CHECK_TIMEOUT))
        try:
            conn.read_reply()
            conn.quit()
        finally:
            conn.close()
