"""
Adapter base — the contract between steps and package managers.

Every package manager (Homebrew formulae, Homebrew casks, IDE
extension registries, ...) exposes the same two capabilities to the
step catalog: "is this package present?" and "install it". Steps only
talk to package managers through this protocol.

Adapters NEVER raise. Probe problems come back as a failed
``ProbeResult``; install problems as a failed ``ApplyResult``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from provisioner.adapters.shell.command import CommandResult, CommandRunner
from provisioner.core.models.step import ApplyResult, ProbeResult


class PackageManager(ABC):
    """Abstract base class for all package managers.

    To add a package manager:
        1. Subclass PackageManager
        2. Implement name, binary, is_installed, install_argv
        3. Register it in the AdapterRegistry
    """

    # Output fragments meaning "nothing to do" on a non-zero exit.
    already_installed_markers: tuple[str, ...] = ("already installed",)

    def __init__(self, runner: CommandRunner | None = None):
        self._runner = runner or CommandRunner()

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'brew', 'cask', 'vscode')."""

    @property
    @abstractmethod
    def binary(self) -> str:
        """The CLI this adapter drives."""

    @abstractmethod
    def is_installed(self, package: str) -> ProbeResult:
        """Check whether ``package`` is present. Read-only."""

    @abstractmethod
    def install_argv(self, package: str) -> list[str]:
        """Command line that installs ``package``."""

    def is_available(self) -> bool:
        """Whether the underlying CLI is on PATH. Fast, never raises."""
        return self._runner.which(self.binary) is not None

    def install(self, package: str, timeout: float | None = None) -> ApplyResult:
        """Install ``package``; an "already installed" answer counts as success."""
        result = self._runner.run(self.install_argv(package), timeout=timeout)
        if result.ok:
            return ApplyResult.applied(f"installed {package}")
        if self.is_already_installed(result):
            return ApplyResult.applied(f"{package} already installed")
        return ApplyResult.failure(result.error, output=result.output[-2000:])

    def is_already_installed(self, result: CommandResult) -> bool:
        text = result.output.lower()
        return any(marker in text for marker in self.already_installed_markers)

    def _unavailable(self) -> ProbeResult:
        return ProbeResult.failure(f"{self.binary} not found on PATH")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
