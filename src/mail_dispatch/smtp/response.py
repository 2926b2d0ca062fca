# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Parsing of SMTP replies.

A reply may span several lines. Every line but the last has a hyphen right
after the three-digit code (``250-SIZE``); the last one has a space or
nothing (``250 OK``). The code of the final line is the status of the
whole reply.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from typing import Protocol

from ..errors import SmtpConnectionError, SmtpProtocolError

MAX_LINE = 8192


class LineReader(Protocol):
    def readline(self, size: int = -1, /) -> bytes: ...


@dataclass(frozen=True)
class SmtpResponse:
    """One complete SMTP reply."""

    status_code: int
    raw_text: str
    lines: list[str] = field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    @property
    def is_intermediate(self) -> bool:
        return 300 <= self.status_code < 400

    @property
    def message(self) -> str:
        return "\n".join(self.lines)


def _status_code(line: str) -> int:
    code = line[:3]
    if len(code) != 3 or not code.isdigit():
        raise SmtpProtocolError(f"Malformed SMTP reply line: {line.rstrip()!r}")
    return int(code)


def read_response(reader: LineReader) -> SmtpResponse:
    """Read one logical reply from ``reader``.

    Raises:
        SmtpConnectionError: The connection closed or timed out mid-reply.
        SmtpProtocolError: The reply is malformed or its code is >= 400.
    """
    raw_lines: list[str] = []
    texts: list[str] = []
    code = 0
    while True:
        try:
            data = reader.readline(MAX_LINE + 1)
        except socket.timeout as exc:
            raise SmtpConnectionError("Timed out waiting for SMTP reply") from exc
        except OSError as exc:
            raise SmtpConnectionError(f"Error reading SMTP reply: {exc}") from exc
        if not data:
            raise SmtpConnectionError("Connection closed by server")
        if len(data) > MAX_LINE:
            raise SmtpProtocolError("SMTP reply line too long")

        line = data.decode("utf-8", errors="replace")
        raw_lines.append(line)
        code = _status_code(line)
        texts.append(line[4:].rstrip("\r\n"))
        if line[3:4] != "-":
            break

    response = SmtpResponse(status_code=code, raw_text="".join(raw_lines), lines=texts)
    if response.is_error:
        raise SmtpProtocolError(f"SMTP error {code}: {response.raw_text.strip()}", response)
    return response
