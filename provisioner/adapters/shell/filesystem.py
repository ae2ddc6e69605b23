"""
Filesystem adapter — the read/write/append/mkdir primitives.

Thin wrapper over ``pathlib`` so that config patching and file steps
go through one seam that tests can point at a temporary directory.
Unlike the command runner, these methods raise ``OSError``; callers
convert it into their own result types.

Text is UTF-8 with ``surrogateescape``: a profile holding stray
Latin-1 bytes reads without error, and appending to it leaves those
bytes untouched.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_ERRORS = "surrogateescape"


class LocalFileSystem:
    """File and directory operations on the local disk."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def read_text(self, path: Path) -> str:
        """Read a file; a missing file reads as empty."""
        if not path.exists():
            return ""
        return path.read_text(encoding="utf-8", errors=_ERRORS)

    def append_text(self, path: Path, content: str) -> None:
        """Append to a file, creating it (and its parents) if needed."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8", errors=_ERRORS) as fh:
            fh.write(content)
        logger.debug("Appended %d bytes to %s", len(content), path)

    def write_text(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8", errors=_ERRORS)
        logger.debug("Written %d bytes to %s", len(content), path)

    def mkdir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def chmod(self, path: Path, mode: int) -> None:
        path.chmod(mode)
