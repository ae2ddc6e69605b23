"""
Template rendering for plan file values.

Substitutes ``{var}`` placeholders in step parameters. Simple string
replacement: no Jinja, no escaping. Unknown placeholders are left as
they are so literal braces in shell snippets survive.
"""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Any

_ARCH_MAP = {"x86_64": "amd64", "aarch64": "arm64", "armv7l": "armhf"}


def builtin_vars() -> dict[str, str]:
    """Environment-sourced variables available to every plan.

    - ``{user}`` — current username
    - ``{home}`` — home directory
    - ``{arch}`` — machine architecture (``amd64``, ``arm64``)
    - ``{os}`` — ``darwin``, ``linux``, ...
    - ``{brew_prefix}`` — ``/opt/homebrew`` on Apple Silicon, else ``/usr/local``
    """
    machine = platform.machine().lower()
    system = platform.system().lower()
    return {
        "user": os.getenv("USER", os.getenv("LOGNAME", "unknown")),
        "home": str(Path.home()),
        "arch": _ARCH_MAP.get(machine, machine),
        "os": system,
        "brew_prefix": "/opt/homebrew" if (system == "darwin" and machine == "arm64") else "/usr/local",
    }


def render_template(template: str, variables: dict[str, str]) -> str:
    """Substitute ``{key}`` tokens with values from ``variables``."""
    result = template
    for key, value in variables.items():
        result = result.replace(f"{{{key}}}", str(value))
    return result


def render_value(value: Any, variables: dict[str, str]) -> Any:
    """Render strings inside nested lists/dicts; other values pass through."""
    if isinstance(value, str):
        return render_template(value, variables)
    if isinstance(value, list):
        return [render_value(v, variables) for v in value]
    if isinstance(value, dict):
        return {k: render_value(v, variables) for k, v in value.items()}
    return value


def expand_path(raw: str) -> Path:
    """Expand ``~`` and ``$VAR`` in a path string."""
    return Path(os.path.expandvars(os.path.expanduser(raw)))
