"""
Engine executor — the central provisioning loop.

The engine walks a plan in order and, for each step, decides whether
to skip it (probe satisfied), apply it, or refuse to touch it because
a hard dependency failed. It never stops on a failed step: provisioning
is best-effort, and one missing tool must not block unrelated steps.

Flow per step:
    dependency gate → probe → (apply) → record

Execution is single-threaded and synchronous. Steps share mutable
machine state (one shell profile, one package database, one SSH key)
with no isolation, so running them concurrently would need locking
every shared resource. Concurrent writers to the same config file are
not supported.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from provisioner.core.engine.plan import ProvisioningPlan
from provisioner.core.models.report import StepRecord, StepState
from provisioner.core.models.step import ApplyResult, ProbeResult, Step
from provisioner.core.observability.logging_config import STEP_LOGGER

logger = logging.getLogger(__name__)
step_logger = logging.getLogger(STEP_LOGGER)

_STATE_MARKERS = {
    "applied": "✓",
    "skipped": "⊘",
    "failed": "✗",
    "dependency_failed": "✗",
}


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


@dataclass
class RunReport:
    """Result of executing a plan: one record per step attempted."""

    run_id: str = ""
    plan_name: str = ""
    dry_run: bool = False
    interrupted: bool = False
    started_at: str = field(default_factory=_now_iso)
    ended_at: str = ""
    duration_ms: int = 0
    records: list[StepRecord] = field(default_factory=list)

    def _count(self, state: StepState) -> int:
        return sum(1 for r in self.records if r.state == state)

    @property
    def total(self) -> int:
        return len(self.records)

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def applied(self) -> int:
        return self._count("applied")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def dependency_failed(self) -> int:
        return self._count("dependency_failed")

    @property
    def all_ok(self) -> bool:
        return self.failed == 0 and self.dependency_failed == 0

    @property
    def status(self) -> str:
        if self.all_ok:
            return "ok"
        if self.skipped + self.applied > 0:
            return "partial"
        return "failed"

    def get(self, step_id: str) -> StepRecord | None:
        """Look up the record for a step id."""
        for record in self.records:
            if record.step_id == step_id:
                return record
        return None

    def states(self) -> dict[str, StepState]:
        """Map of step id → terminal state, in execution order."""
        return {r.step_id: r.state for r in self.records}

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "plan_name": self.plan_name,
            "status": self.status,
            "dry_run": self.dry_run,
            "interrupted": self.interrupted,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration_ms": self.duration_ms,
            "total": self.total,
            "skipped": self.skipped,
            "applied": self.applied,
            "failed": self.failed,
            "dependency_failed": self.dependency_failed,
            "records": [r.model_dump(mode="json") for r in self.records],
        }


class ProvisioningEngine:
    """Executes a plan against current machine state.

    Example:
        plan = ProvisioningPlan.build(steps)
        report = ProvisioningEngine().run(plan)
        print(report.status, report.applied, report.failed)
    """

    def __init__(self, dry_run: bool = False) -> None:
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def run(self, plan: ProvisioningPlan) -> RunReport:
        """Execute every step of the plan in order.

        Per-step errors are captured into the report, never raised.
        A ``KeyboardInterrupt`` stops the loop and returns the partial
        report with ``interrupted=True``; side effects of steps that
        already ran are kept.
        """
        report = RunReport(
            run_id=generate_run_id(),
            plan_name=plan.name,
            dry_run=self._dry_run,
        )
        start = time.monotonic()
        logger.info("Run %s: %d steps%s", report.run_id, len(plan),
                    " (dry-run)" if self._dry_run else "")

        try:
            for step in plan.ordered_steps():
                record = self._run_step(step, report)
                report.records.append(record)
                step_logger.info(
                    "%s %s → %s%s",
                    _STATE_MARKERS[record.state],
                    step.id,
                    record.state,
                    f" ({record.detail})" if record.detail else "",
                )
        except KeyboardInterrupt:
            report.interrupted = True
            logger.warning(
                "Run %s interrupted after %d/%d steps; applied changes are kept",
                report.run_id, report.total, len(plan),
            )

        report.ended_at = _now_iso()
        report.duration_ms = int((time.monotonic() - start) * 1000)
        return report

    # ------------------------------------------------------------------
    # Per-step state machine
    # ------------------------------------------------------------------

    def _run_step(self, step: Step, report: RunReport) -> StepRecord:
        started_at = _now_iso()
        start = time.monotonic()

        def finish(state: StepState, probe: ProbeResult | None = None,
                   apply: ApplyResult | None = None, detail: str = "") -> StepRecord:
            return StepRecord(
                step_id=step.id,
                description=step.description,
                state=state,
                probe=probe,
                apply=apply,
                started_at=started_at,
                ended_at=_now_iso(),
                duration_ms=int((time.monotonic() - start) * 1000),
                detail=detail,
            )

        # ── Dependency gate ──────────────────────────────────────
        blocked_by = sorted(
            dep for dep in step.depends_on
            if (rec := report.get(dep)) is not None and rec.failed
        )
        if blocked_by:
            return finish(
                "dependency_failed",
                detail=f"dependency failed: {', '.join(blocked_by)}",
            )

        # ── Probe ────────────────────────────────────────────────
        probe = _safe_probe(step)
        if probe.is_satisfied:
            return finish("skipped", probe=probe, detail=probe.reason)
        if probe.failed:
            logger.debug("Probe for %s failed: %s", step.id, probe.reason)
            if step.on_probe_failure == "fail":
                return finish("failed", probe=probe, detail=f"probe failed: {probe.reason}")

        if self._dry_run:
            return finish("skipped", probe=probe, detail="[dry-run] would apply")

        # ── Apply ────────────────────────────────────────────────
        result = _safe_apply(step)
        if result.ok:
            return finish("applied", probe=probe, apply=result, detail=result.output)
        return finish("failed", probe=probe, apply=result, detail=result.reason)


def _safe_probe(step: Step) -> ProbeResult:
    """Run a probe, turning exceptions into a failed result."""
    try:
        return step.probe()
    except Exception as e:
        logger.error("Probe for %s raised: %s", step.id, e)
        return ProbeResult.failure(f"probe raised: {e}")


def _safe_apply(step: Step) -> ApplyResult:
    """Run an apply, honouring the step timeout; never raises."""
    if step.timeout is None:
        try:
            return step.apply()
        except Exception as e:
            logger.error("Apply for %s raised: %s", step.id, e)
            return ApplyResult.failure(f"apply raised: {e}")

    outcome: list[ApplyResult] = []

    def _target() -> None:
        try:
            outcome.append(step.apply())
        except Exception as e:
            logger.error("Apply for %s raised: %s", step.id, e)
            outcome.append(ApplyResult.failure(f"apply raised: {e}"))

    worker = threading.Thread(target=_target, name=f"apply-{step.id}", daemon=True)
    worker.start()
    worker.join(step.timeout)
    if worker.is_alive() or not outcome:
        logger.warning("Apply for %s exceeded %ss", step.id, step.timeout)
        return ApplyResult.failure("timeout")
    return outcome[0]


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"
