"""
Check use case — validate provision.yml without touching the machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.config.loader import ConfigError, find_plan_file, load_plan_file
from provisioner.core.engine.plan import PlanError, ProvisioningPlan
from provisioner.core.models.plan_file import PlanFile
from provisioner.core.use_cases.run import build_plan


@dataclass
class PlanCheckResult:
    """Result of plan file validation."""

    valid: bool = False
    plan_file: PlanFile | None = None
    plan: ProvisioningPlan | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "plan_name": self.plan_file.name if self.plan_file else None,
            "step_count": len(self.plan) if self.plan else 0,
            "order": [
                {
                    "id": step.id,
                    "kind": step.kind,
                    "description": step.description,
                    "depends_on": sorted(step.depends_on),
                    "after": sorted(step.after),
                }
                for step in (self.plan or [])
            ],
        }


def check_plan(
    config_path: Path | None = None,
    registry: AdapterRegistry | None = None,
) -> PlanCheckResult:
    """Validate a plan file and report issues.

    Args:
        config_path: Optional explicit path to provision.yml.
        registry: Optional package manager registry (default: built-ins).

    Returns:
        PlanCheckResult with validation status, ordered steps, and issues.
    """
    result = PlanCheckResult()

    if config_path is None:
        config_path = find_plan_file()
    if config_path is None:
        result.errors.append("No provision.yml found.")
        return result
    result.config_path = config_path

    try:
        result.plan_file = load_plan_file(config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    registry = registry or AdapterRegistry.with_defaults(CommandRunner())
    try:
        result.plan = build_plan(result.plan_file, registry=registry)
    except (ConfigError, PlanError) as e:
        result.errors.append(str(e))
        return result

    # Semantic checks
    if not result.plan_file.steps:
        result.warnings.append("No steps defined. The plan has nothing to do.")

    managers_used: dict[str, list[str]] = {}
    for spec in result.plan_file.steps:
        if spec.kind == "package":
            manager = "cask" if spec.params.get("cask") else spec.params.get("manager", "brew")
            managers_used.setdefault(manager, []).append(spec.id)
        elif spec.kind == "vscode_extension":
            managers_used.setdefault("vscode", []).append(spec.id)

    status = registry.adapter_status()
    for manager, step_ids in managers_used.items():
        if not status.get(manager, {}).get("available", False):
            result.warnings.append(
                f"Package manager '{manager}' is not available; "
                f"its probes will fail for: {', '.join(step_ids)}"
            )

    result.valid = not result.errors
    return result
