"""
Shell command adapter — run external commands and capture output.

This is the SINGLE PLACE where ``subprocess.run`` is called. Package
managers, SSH key generation, git config, and free-form command steps
all shell out through ``CommandRunner.run``. It never raises: missing
binaries, timeouts, and OS errors come back as a ``CommandResult``.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Conventional shell exit codes
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


@dataclass
class CommandResult:
    """Outcome of one external command."""

    argv: list[str] = field(default_factory=list)
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    not_found: bool = False
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def error(self) -> str:
        """Best one-line description of a failure."""
        if self.timed_out:
            return "timeout"
        if self.not_found:
            return f"command not found: {self.argv[0] if self.argv else '?'}"
        tail = (self.stderr or self.stdout).strip().splitlines()
        detail = tail[-1] if tail else ""
        return f"exit {self.exit_code}: {detail}" if detail else f"exit {self.exit_code}"

    @property
    def output(self) -> str:
        return f"{self.stdout}\n{self.stderr}".strip()


class CommandRunner:
    """Run commands given as argv lists or shell strings.

    Args:
        default_timeout: Seconds before a command is killed (None = no limit).
        env_overrides: Extra environment variables for every command.
    """

    def __init__(
        self,
        default_timeout: float | None = None,
        env_overrides: dict[str, str] | None = None,
    ):
        self._default_timeout = default_timeout
        self._env_overrides = dict(env_overrides or {})

    def which(self, binary: str) -> str | None:
        """Resolve a binary on PATH."""
        return shutil.which(binary)

    def run(
        self,
        argv: Sequence[str] | str,
        *,
        timeout: float | None = None,
        cwd: str | None = None,
        shell: bool = False,
    ) -> CommandResult:
        """Execute a command and capture its output.

        Args:
            argv: Command list, or a string when ``shell`` is True.
            timeout: Override the default timeout for this call.
            cwd: Working directory.
            shell: Run through ``/bin/sh -c``.
        """
        if shell:
            command: Sequence[str] | str = argv if isinstance(argv, str) else " ".join(argv)
            display = [str(command)]
        else:
            command = [argv] if isinstance(argv, str) else list(argv)
            display = list(command)

        limit = timeout if timeout is not None else self._default_timeout
        env = os.environ.copy()
        for key, value in self._env_overrides.items():
            env[key] = os.path.expandvars(value)

        logger.debug("Executing: %s (timeout=%s)", display, limit)
        start = time.monotonic()
        try:
            result = subprocess.run(
                command,
                shell=shell,
                capture_output=True,
                text=True,
                timeout=limit,
                cwd=cwd,
                env=env,
            )
        except FileNotFoundError:
            return CommandResult(argv=display, exit_code=EXIT_NOT_FOUND, not_found=True)
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %ss: %s", limit, display)
            return CommandResult(argv=display, exit_code=EXIT_TIMEOUT, timed_out=True)
        except OSError as e:
            return CommandResult(argv=display, exit_code=1, stderr=str(e))

        elapsed_ms = int((time.monotonic() - start) * 1000)
        return CommandResult(
            argv=display,
            exit_code=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            duration_ms=elapsed_ms,
            not_found=shell and result.returncode == EXIT_NOT_FOUND,
        )
