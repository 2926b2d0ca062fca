# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Header-safe rendering of addresses and header text."""

from __future__ import annotations

import base64
from typing import Iterable


def encode_word(text: str, charset: str = "UTF-8") -> str:
    """Wrap ``text`` in a base64 encoded word (``=?UTF-8?B?...?=``)."""
    payload = base64.b64encode(text.encode(charset)).decode("ascii")
    return f"=?{charset}?B?{payload}?="


def encode_header_value(text: str) -> str:
    """Return ``text`` unchanged when ASCII, otherwise as an encoded word."""
    if text.isascii():
        return text
    return encode_word(text)


def format_address(email: str, name: str | None = None) -> str:
    """Render an address for a ``From``/``To``/``Cc``/``Reply-To`` header.

    The display name is always base64-encoded so quotes, commas or non-ASCII
    characters cannot break header parsing. The address itself is not
    validated here.

    >>> format_address("bob@example.com")
    'bob@example.com'
    >>> format_address("bob@example.com", "Bob")
    '=?UTF-8?B?Qm9i?= <bob@example.com>'
    """
    if not name:
        return email
    return f"{encode_word(name)} <{email}>"


def format_address_list(addresses: Iterable[str | tuple[str, str | None]]) -> str:
    """Join addresses (or ``(email, name)`` pairs) into one header value."""
    rendered = []
    for item in addresses:
        if isinstance(item, tuple):
            rendered.append(format_address(*item))
        else:
            rendered.append(format_address(item))
    return ", ".join(rendered)
