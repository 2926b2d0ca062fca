# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Attachment loading from the filesystem or in-memory buffers.

Bytes are read once, when the attachment is created. A message therefore
never holds a lazy file handle and encoding cannot fail on a missing file
in the middle of an SMTP transaction.

Relative paths are resolved against ``base_dir`` when one is configured;
paths escaping ``base_dir`` are rejected.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

from .errors import AttachmentError
from .models import DEFAULT_MIME_TYPE, Attachment


def guess_mime(filename: str) -> str:
    """Guess the MIME type for ``filename``, defaulting to binary."""
    mt, _ = mimetypes.guess_type(filename)
    return mt or DEFAULT_MIME_TYPE


class AttachmentLoader:
    """Build :class:`Attachment` objects from paths or raw bytes."""

    def __init__(self, base_dir: str | Path | None = None):
        self._base_dir: Path | None = None
        if base_dir:
            self._base_dir = Path(base_dir).resolve()

    @property
    def base_dir(self) -> Path | None:
        return self._base_dir

    def _resolve_and_validate(self, path: str | Path) -> Path:
        path_obj = Path(path)

        if path_obj.is_absolute() or not self._base_dir:
            resolved = path_obj.resolve()
        else:
            resolved = (self._base_dir / path_obj).resolve()

        if self._base_dir:
            try:
                resolved.relative_to(self._base_dir)
            except ValueError:
                raise AttachmentError(
                    f"Path traversal detected: '{path}' resolves outside base directory"
                ) from None

        if not resolved.exists():
            raise AttachmentError(f"File not found: {resolved}")
        if not resolved.is_file():
            raise AttachmentError(f"Not a regular file: {resolved}")
        return resolved

    def load(self, path: str | Path, name: str | None = None, mime_type: str | None = None) -> Attachment:
        """Read the file at ``path`` into an attachment.

        Args:
            path: File to attach.
            name: Filename announced to the recipient. Defaults to the
                file's own name.
            mime_type: Declared type. Guessed from the name when omitted.

        Raises:
            AttachmentError: The file is missing or cannot be read.
        """
        resolved = self._resolve_and_validate(path)
        try:
            content = resolved.read_bytes()
        except OSError as exc:
            raise AttachmentError(f"Cannot read attachment {resolved}: {exc}") from exc
        filename = name or resolved.name
        return Attachment(name=filename, content=content, mime_type=mime_type or guess_mime(filename))

    @staticmethod
    def from_bytes(content: bytes | bytearray | str, name: str, mime_type: str | None = None) -> Attachment:
        """Wrap an in-memory payload; ``str`` content is UTF-8 encoded."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        elif not isinstance(content, (bytes, bytearray)):
            raise AttachmentError(f"Attachment {name!r} content must be bytes, got {type(content).__name__}")
        if not name:
            raise AttachmentError("Attachment name is required")
        return Attachment(name=name, content=bytes(content), mime_type=mime_type or guess_mime(name))


def load_attachment(path: str | Path, name: str | None = None, mime_type: str | None = None) -> Attachment:
    """Convenience wrapper around :meth:`AttachmentLoader.load`."""
    return AttachmentLoader().load(path, name=name, mime_type=mime_type)


def attachment_from_bytes(content: bytes | bytearray | str, name: str, mime_type: str | None = None) -> Attachment:
    """Convenience wrapper around :meth:`AttachmentLoader.from_bytes`."""
    return AttachmentLoader.from_bytes(content, name, mime_type)
