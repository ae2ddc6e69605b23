"""
Homebrew adapters — formulae and casks.

``brew list <name>`` exits 0 when the package is present and non-zero
when it is not, which makes it a clean read-only probe. Casks use the
same commands with ``--cask``.
"""

from __future__ import annotations

import logging

from provisioner.adapters.base import PackageManager
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.models.step import ProbeResult

logger = logging.getLogger(__name__)


class HomebrewAdapter(PackageManager):
    """Homebrew formulae (``brew install <formula>``)."""

    already_installed_markers = ("already installed", "is already installed")

    def __init__(self, runner: CommandRunner | None = None, cask: bool = False):
        super().__init__(runner)
        self._cask = cask

    @property
    def name(self) -> str:
        return "cask" if self._cask else "brew"

    @property
    def binary(self) -> str:
        return "brew"

    def _flags(self) -> list[str]:
        return ["--cask"] if self._cask else []

    def is_installed(self, package: str) -> ProbeResult:
        if not self.is_available():
            return self._unavailable()
        result = self._runner.run(["brew", "list", *self._flags(), package])
        if result.timed_out or result.not_found:
            return ProbeResult.failure(result.error)
        logger.debug("brew list %s → %d", package, result.exit_code)
        return ProbeResult.from_bool(result.ok)

    def install_argv(self, package: str) -> list[str]:
        return ["brew", "install", *self._flags(), package]
