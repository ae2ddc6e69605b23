"""
Run use case — provision the workstation from a plan file.

This is the top-level orchestrator: it loads provision.yml, builds
steps from the catalog, validates them into a plan, and executes the
plan. The full vertical slice from plan file to run report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.command import CommandRunner
from provisioner.adapters.shell.filesystem import LocalFileSystem
from provisioner.core.config.loader import ConfigError, find_plan_file, load_plan_file
from provisioner.core.engine.executor import ProvisioningEngine, RunReport
from provisioner.core.engine.plan import PlanError, ProvisioningPlan
from provisioner.core.models.plan_file import PlanFile
from provisioner.core.services.step_catalog import StepFactory

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of a provisioning run."""

    report: RunReport | None = None
    plan: ProvisioningPlan | None = None
    plan_file: PlanFile | None = None
    config_path: Path | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["plan_name"] = self.plan_file.name if self.plan_file else ""
        result["config_path"] = str(self.config_path)
        result["steps_planned"] = len(self.plan) if self.plan else 0

        if self.report:
            result["report"] = self.report.to_dict()

        return result


def build_plan(
    plan_file: PlanFile,
    registry: AdapterRegistry | None = None,
    runner: CommandRunner | None = None,
    filesystem: LocalFileSystem | None = None,
) -> ProvisioningPlan:
    """Turn a loaded plan file into a validated plan.

    Raises:
        ConfigError: A step spec cannot be built.
        PlanError: The dependency graph is malformed.
    """
    runner = runner or CommandRunner()
    factory = StepFactory(
        registry=registry or AdapterRegistry.with_defaults(runner),
        runner=runner,
        filesystem=filesystem,
        profile=plan_file.profile,
        shell=plan_file.shell,
    )
    steps = factory.build_all(plan_file.steps)
    return ProvisioningPlan.build(steps, name=plan_file.name)


def run_provisioning(
    config_path: Path | None = None,
    only: list[str] | None = None,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
    runner: CommandRunner | None = None,
    filesystem: LocalFileSystem | None = None,
) -> RunResult:
    """Load, validate, and execute a provisioning plan.

    Args:
        config_path: Optional explicit path to provision.yml.
        only: Optional step ids to run (plus their dependencies). None = all.
        dry_run: If True, probe but never apply.
        registry: Optional pre-configured package manager registry.
        runner: Optional command runner (shared with the registry default).
        filesystem: Optional filesystem adapter.

    Returns:
        RunResult with the run report, or an error if the plan is malformed.
    """
    result = RunResult()

    # ── Load plan file ───────────────────────────────────────────
    try:
        if config_path is None:
            config_path = find_plan_file()
        if config_path is None:
            result.error = "No provision.yml found."
            return result

        result.config_path = config_path
        result.plan_file = load_plan_file(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    # ── Build plan (fails before any step runs) ──────────────────
    try:
        plan = build_plan(result.plan_file, registry, runner, filesystem)
        if only:
            plan = plan.subset(only)
    except (ConfigError, PlanError) as e:
        result.error = str(e)
        return result
    result.plan = plan

    # ── Execute ──────────────────────────────────────────────────
    engine = ProvisioningEngine(dry_run=dry_run)
    result.report = engine.run(plan)
    logger.info(
        "Run %s finished: %s (%d applied, %d skipped, %d failed)",
        result.report.run_id,
        result.report.status,
        result.report.applied,
        result.report.skipped,
        result.report.failed + result.report.dependency_failed,
    )
    return result
