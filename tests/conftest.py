"""Shared fakes for transport tests."""

from typing import List

import pytest

from mail_dispatch.config_loader import MailerConfig


class DummyReader:
    """File-like reader over the scripted server replies."""

    def __init__(self, sock: "DummySocket"):
        self.sock = sock

    def readline(self, size: int = -1) -> bytes:
        if self.sock.read_error is not None and not self.sock.replies:
            raise self.sock.read_error
        if not self.sock.replies:
            return b""
        return self.sock.replies.pop(0)

    def close(self):
        return None


class DummySocket:
    """Socket double: records writes, replays one server line per readline."""

    def __init__(self, replies: List[str]):
        self.replies: List[bytes] = []
        for reply in replies:
            self.replies.extend(
                (line + "\r\n").encode() for line in reply.split("\r\n") if line
            )
        self.sent: List[bytes] = []
        self.closed = False
        self.wrapped = False
        self.read_error: Exception | None = None

    def makefile(self, mode="rb"):
        return DummyReader(self)

    def sendall(self, data: bytes):
        self.sent.append(data)

    def close(self):
        self.closed = True

    @property
    def commands(self) -> List[str]:
        """Command lines sent before the message body."""
        lines = []
        for chunk in self.sent:
            text = chunk.decode("utf-8")
            if text.endswith("\r\n.\r\n"):
                lines.append("<DATA>")
            else:
                lines.append(text.rstrip("\r\n"))
        return lines

    @property
    def data(self) -> str:
        for chunk in self.sent:
            text = chunk.decode("utf-8")
            if text.endswith("\r\n.\r\n"):
                return text
        return ""


class DummySSLContext:
    def __init__(self):
        self.wrapped: List[tuple] = []

    def wrap_socket(self, sock, server_hostname=None):
        self.wrapped.append((sock, server_hostname))
        sock.wrapped = True
        return sock


HAPPY_REPLIES = [
    "220 relay.test ESMTP ready",
    "250-relay.test\r\n250-AUTH LOGIN\r\n250 OK",
    "250 2.1.0 Sender OK",
    "250 2.1.5 Recipient OK",
    "354 Start mail input; end with <CRLF>.<CRLF>",
    "250 2.0.0 Queued",
    "221 Bye",
]


@pytest.fixture
def fake_network(monkeypatch):
    """Route ``socket.create_connection`` to scripted dummy sockets."""

    class Network:
        def __init__(self):
            self.scripts: List[List[str]] = []
            self.sockets: List[DummySocket] = []
            self.calls: List[tuple] = []
            self.error: Exception | None = None
            self.read_error: Exception | None = None

        def script(self, *replies: str) -> None:
            self.scripts.append(list(replies))

        def create_connection(self, address, timeout=None):
            self.calls.append((address, timeout))
            if self.error is not None:
                raise self.error
            replies = self.scripts.pop(0) if self.scripts else list(HAPPY_REPLIES)
            sock = DummySocket(replies)
            sock.read_error = self.read_error
            self.sockets.append(sock)
            return sock

    network = Network()
    monkeypatch.setattr("mail_dispatch.smtp.transport.socket.create_connection", network.create_connection)
    return network


@pytest.fixture
def live_config() -> MailerConfig:
    return MailerConfig(
        environment="live",
        from_email="shop@example.com",
        from_name="Example Shop",
        smtp_host="relay.test",
        smtp_port=25,
        smtp_encryption="none",
        smtp_auth=False,
        local_hostname="client.test",
    )


@pytest.fixture
def dev_config() -> MailerConfig:
    return MailerConfig(
        environment="development",
        from_email="shop@example.com",
        development_recipients=["dev@test.local"],
    )
