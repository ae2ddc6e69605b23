"""
Configuration loader — reads provision.yml into domain models.

This is the primary entry point for loading a provisioning plan file.
It reads YAML, validates against pydantic schemas, renders ``{var}``
placeholders, and returns a typed ``PlanFile``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from provisioner.core.config.templating import builtin_vars, render_value
from provisioner.core.models.plan_file import PlanFile, StepSpec

logger = logging.getLogger(__name__)

# Default plan filename
PLAN_FILE = "provision.yml"


class ConfigError(Exception):
    """Raised when the plan file is invalid or missing."""


def find_plan_file(start_dir: Path | None = None) -> Path | None:
    """Search for provision.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to provision.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / PLAN_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_plan_file(path: Path | None = None) -> PlanFile:
    """Load, validate, and render a plan file.

    Args:
        path: Explicit path to provision.yml. If None, searches upward.

    Returns:
        Validated PlanFile with step parameters rendered.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_plan_file()

    if path is None:
        raise ConfigError(f"No {PLAN_FILE} found. Specify one with --config.")

    if not path.is_file():
        raise ConfigError(f"Plan file not found: {path}")

    logger.debug("Loading plan file from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        plan_file = PlanFile.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid plan file {path}: {e}") from e

    plan_file = render_plan_file(plan_file)
    logger.info("Loaded plan '%s' with %d steps", plan_file.name, len(plan_file.steps))
    return plan_file


def render_plan_file(plan_file: PlanFile) -> PlanFile:
    """Substitute ``{var}`` placeholders in profile, vars, and step params.

    Plan ``vars`` override built-ins and may themselves use built-ins.
    """
    variables = builtin_vars()
    for key, value in plan_file.vars.items():
        variables[key] = render_value(value, variables)

    steps = []
    for spec in plan_file.steps:
        data = spec.model_dump()
        data.update(render_value(spec.params, variables))
        data["description"] = render_value(spec.description, variables)
        steps.append(StepSpec.model_validate(data))

    return plan_file.model_copy(update={
        "profile": render_value(plan_file.profile, variables),
        "vars": variables,
        "steps": steps,
    })
