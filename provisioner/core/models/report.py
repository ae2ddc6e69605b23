"""
Step records — the per-step entries of a run report.

One record per step attempted. Records are built by the engine and
serialised with ``model_dump(mode="json")`` for ``--json`` output.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from provisioner.core.models.step import ApplyResult, ProbeResult

StepState = Literal["skipped", "applied", "failed", "dependency_failed"]


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepRecord(BaseModel):
    """Terminal outcome of one step in one run."""

    step_id: str
    description: str = ""
    state: StepState

    probe: ProbeResult | None = None
    apply: ApplyResult | None = None

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    detail: str = ""

    @property
    def ok(self) -> bool:
        """Whether the step ended in a non-fatal state."""
        return self.state in ("skipped", "applied")

    @property
    def failed(self) -> bool:
        return self.state in ("failed", "dependency_failed")
