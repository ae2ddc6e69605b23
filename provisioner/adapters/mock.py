"""
Mock adapters — test doubles for package managers and commands.

Used to exercise steps and the engine without touching a real
package manager or shelling out. Both doubles keep a call log.
"""

from __future__ import annotations

from collections.abc import Sequence

from provisioner.adapters.base import PackageManager
from provisioner.adapters.shell.command import EXIT_NOT_FOUND, CommandResult, CommandRunner
from provisioner.core.models.step import ApplyResult, ProbeResult


class MockPackageManager(PackageManager):
    """In-memory package manager.

    Installed packages live in a set. ``install`` adds to it unless a
    failure was configured for that package.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        installed: set[str] | None = None,
    ):
        super().__init__(runner=None)
        self._name = adapter_name
        self._available = available
        self.installed: set[str] = set(installed or ())
        self._failures: dict[str, str] = {}
        self._call_log: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def binary(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[tuple[str, str]]:
        """``(operation, package)`` pairs in call order."""
        return self._call_log

    def calls(self, operation: str) -> list[str]:
        return [pkg for op, pkg in self._call_log if op == operation]

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, package: str, error: str = "Mock failure") -> None:
        """Configure installs of ``package`` to fail."""
        self._failures[package] = error

    def is_installed(self, package: str) -> ProbeResult:
        self._call_log.append(("probe", package))
        if not self._available:
            return self._unavailable()
        return ProbeResult.from_bool(package in self.installed)

    def install_argv(self, package: str) -> list[str]:
        return [self._name, "install", package]

    def install(self, package: str, timeout: float | None = None) -> ApplyResult:
        self._call_log.append(("install", package))
        if package in self._failures:
            return ApplyResult.failure(self._failures[package])
        if package in self.installed:
            return ApplyResult.applied(f"{package} already installed")
        self.installed.add(package)
        return ApplyResult.applied(f"installed {package}")

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._failures.clear()


class MockCommandRunner(CommandRunner):
    """Command runner with scripted responses.

    Responses are matched on the longest registered argv prefix.
    Unmatched commands succeed with empty output.
    """

    def __init__(self, available: Sequence[str] | None = None):
        super().__init__()
        self._responses: dict[tuple[str, ...], CommandResult] = {}
        self._available = set(available) if available is not None else None
        self.calls: list[list[str]] = []

    def set_response(
        self,
        argv: Sequence[str],
        exit_code: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self._responses[tuple(argv)] = CommandResult(
            argv=list(argv), exit_code=exit_code, stdout=stdout, stderr=stderr,
        )

    def which(self, binary: str) -> str | None:
        if self._available is None or binary in self._available:
            return f"/usr/bin/{binary}"
        return None

    def run(
        self,
        argv: Sequence[str] | str,
        *,
        timeout: float | None = None,
        cwd: str | None = None,
        shell: bool = False,
    ) -> CommandResult:
        args = [argv] if isinstance(argv, str) else list(argv)
        self.calls.append(args)

        if not shell and self.which(args[0]) is None:
            return CommandResult(argv=args, exit_code=EXIT_NOT_FOUND, not_found=True)

        for size in range(len(args), 0, -1):
            scripted = self._responses.get(tuple(args[:size]))
            if scripted is not None:
                return CommandResult(
                    argv=args,
                    exit_code=scripted.exit_code,
                    stdout=scripted.stdout,
                    stderr=scripted.stderr,
                    not_found=shell and scripted.exit_code == EXIT_NOT_FOUND,
                )
        return CommandResult(argv=args)
