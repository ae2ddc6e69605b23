"""
Logging configuration — one call at CLI start wires the whole process.

Every module logs through ``logging.getLogger(__name__)``. The engine
additionally reports each step outcome (``✓``/``⊘``/``✗``) on the
dedicated ``provisioner.steps`` logger, which the console renders as a
bare progress line instead of a module-tagged diagnostic.

Console level, in precedence order:
    --debug  >  --verbose  >  --quiet  >  PROVISIONER_LOG_LEVEL  >  WARNING

An optional log file (PROVISIONER_LOG_FILE) always gets full detail,
at PROVISIONER_LOG_FILE_LEVEL or the console level.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

ENV_LOG_LEVEL = "PROVISIONER_LOG_LEVEL"
ENV_LOG_FILE = "PROVISIONER_LOG_FILE"
ENV_LOG_FILE_LEVEL = "PROVISIONER_LOG_FILE_LEVEL"

# Step outcome lines from the engine
STEP_LOGGER = "provisioner.steps"

_DETAIL_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"


class ConsoleFormatter(logging.Formatter):
    """Picks a console layout from the handler level.

    WARNING and above print the bare message; INFO adds a timestamp and
    the module; DEBUG adds level and line number. Step outcome lines
    stay bare (timestamped under DEBUG) at every level.
    """

    def __init__(self, level: int):
        if level <= logging.DEBUG:
            fmt = _DETAIL_FORMAT
        elif level <= logging.INFO:
            fmt = "%(asctime)s [%(name)s] %(message)s"
        else:
            fmt = "%(message)s"
        super().__init__(fmt, datefmt="%H:%M:%S")
        self._step_formatter = logging.Formatter(
            "%(asctime)s   %(message)s" if level <= logging.DEBUG else "   %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        if record.name == STEP_LOGGER:
            return self._step_formatter.format(record)
        return super().format(record)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root handlers with a stderr console and optional file.

    Args:
        level: Console level name.
        log_file: Optional path of a log file.
        log_file_level: File level name; defaults to ``level``.
    """
    console_level = _parse_level(level)
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(ConsoleFormatter(console_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level or level)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_DETAIL_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(file_handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)
    logging.raiseExceptions = False


def resolve_level(debug: bool, verbose: bool, quiet: bool, env_level: str | None) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def configure_from_cli(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Configure logging from the CLI flags and PROVISIONER_* variables.

    Returns:
        The console level name that was applied.
    """
    env = os.environ if environ is None else environ
    level = resolve_level(debug, verbose, quiet, env.get(ENV_LOG_LEVEL))
    setup_logging(
        level=level,
        log_file=env.get(ENV_LOG_FILE),
        log_file_level=env.get(ENV_LOG_FILE_LEVEL),
    )
    return level


def _parse_level(level: str | None) -> int:
    """Level name (or number) to its numeric value; unknown → WARNING."""
    if not level:
        return logging.WARNING
    if level.isdigit():
        return int(level)
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
