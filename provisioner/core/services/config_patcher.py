"""
Config patcher — marker-keyed block insertion into text config files.

A shell profile is edited by many unrelated steps. Each step owns one
block identified by a unique marker string; patching is "insert if the
marker is absent, else leave the file alone". The file is only ever
read or appended to: existing lines are never rewritten or reordered.

Single process, single run: there is no file locking. Two patchers
writing the same file at the same time can lose an update; the
sequential engine never does that.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from provisioner.adapters.shell.filesystem import LocalFileSystem

logger = logging.getLogger(__name__)


class PatchResult(BaseModel):
    """Outcome of ``ensure_block``."""

    status: Literal["inserted", "already_present", "io_failed"]
    path: str
    marker: str
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status != "io_failed"


class ConfigPatcher:
    """Idempotent block insertion keyed by a marker string."""

    def __init__(self, filesystem: LocalFileSystem | None = None):
        self._fs = filesystem or LocalFileSystem()

    def has_block(self, path: Path, marker: str) -> bool:
        """Read-only check: does ``path`` already contain ``marker``?

        Raises:
            OSError: The file exists but cannot be read.
        """
        return marker in self._fs.read_text(path)

    def ensure_block(self, path: Path, marker: str, content: str) -> PatchResult:
        """Append ``content`` to ``path`` unless ``marker`` is already there.

        The marker must appear in the written text: when ``content`` does
        not contain it, it is written on its own line above the content.
        A missing file (and missing parent directories) are created.

        Returns:
            PatchResult with status ``inserted``, ``already_present``,
            or ``io_failed``. Never raises.
        """
        if not marker:
            return PatchResult(status="io_failed", path=str(path), marker=marker,
                               reason="empty marker")
        try:
            existing = self._fs.read_text(path)
            if marker in existing:
                logger.debug("Marker %r already present in %s", marker, path)
                return PatchResult(status="already_present", path=str(path), marker=marker)

            block = _render_block(marker, content)
            if existing and not existing.endswith("\n"):
                block = "\n" + block
            self._fs.append_text(path, block)
        except (OSError, UnicodeError) as e:
            logger.error("Cannot patch %s: %s", path, e)
            return PatchResult(status="io_failed", path=str(path), marker=marker, reason=str(e))

        logger.info("Inserted block %r into %s", marker, path)
        return PatchResult(status="inserted", path=str(path), marker=marker)


def _render_block(marker: str, content: str) -> str:
    body = content if content.endswith("\n") else content + "\n"
    if marker in content:
        return body
    return f"{marker}\n{body}"


def shell_config_line(
    shell_type: str,
    *,
    path_entry: str | None = None,
    env_var: tuple[str, str] | None = None,
) -> str:
    """Generate a shell-specific PATH or env export line.

    Args:
        shell_type: ``"bash"`` | ``"zsh"`` | ``"fish"`` | etc.
        path_entry: Directory to add to PATH, e.g. ``"$HOME/bin"``.
        env_var: Tuple of ``(name, value)`` e.g. ``("NVM_DIR", "$HOME/.nvm")``.

    Returns:
        Shell-specific export line.
    """
    if shell_type == "fish":
        if path_entry:
            return f"set -gx PATH {path_entry} $PATH"
        if env_var:
            return f"set -gx {env_var[0]} {env_var[1]}"
    else:
        # POSIX (bash, zsh, sh, dash, ash)
        if path_entry:
            return f'export PATH="{path_entry}:$PATH"'
        if env_var:
            return f'export {env_var[0]}="{env_var[1]}"'
    return ""
