"""
VS Code extensions adapter.

Extension ids are case-insensitive (``ms-python.python`` and
``MS-Python.Python`` are the same extension), so the probe compares
lowercased ids from ``code --list-extensions``.
"""

from __future__ import annotations

from provisioner.adapters.base import PackageManager
from provisioner.core.models.step import ProbeResult


class VSCodeExtensionsAdapter(PackageManager):
    """Install editor extensions through the ``code`` CLI."""

    @property
    def name(self) -> str:
        return "vscode"

    @property
    def binary(self) -> str:
        return "code"

    def installed_extensions(self) -> set[str] | None:
        """Lowercased ids of installed extensions, or None if listing failed."""
        result = self._runner.run(["code", "--list-extensions"])
        if not result.ok:
            return None
        return {line.strip().lower() for line in result.stdout.splitlines() if line.strip()}

    def is_installed(self, package: str) -> ProbeResult:
        if not self.is_available():
            return self._unavailable()
        installed = self.installed_extensions()
        if installed is None:
            return ProbeResult.failure("code --list-extensions failed")
        return ProbeResult.from_bool(package.lower() in installed)

    def install_argv(self, package: str) -> list[str]:
        # --force makes reinstalling an existing extension exit 0
        return ["code", "--install-extension", package, "--force"]
