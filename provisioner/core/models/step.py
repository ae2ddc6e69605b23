"""
Step model — the unit of provisioning work.

A Step pairs a read-only probe ("is this already done?") with an
apply action ("make it done"). Both return result objects, never
exceptions: the engine reads the result, records it, and moves on.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel

ProbePolicy = Literal["attempt", "fail"]


class ProbeResult(BaseModel):
    """Outcome of a probe: satisfied, not satisfied, or failed."""

    status: Literal["satisfied", "not_satisfied", "failed"]
    reason: str = ""

    @property
    def is_satisfied(self) -> bool:
        return self.status == "satisfied"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def satisfied(cls, reason: str = "") -> ProbeResult:
        return cls(status="satisfied", reason=reason)

    @classmethod
    def not_satisfied(cls, reason: str = "") -> ProbeResult:
        return cls(status="not_satisfied", reason=reason)

    @classmethod
    def failure(cls, reason: str) -> ProbeResult:
        return cls(status="failed", reason=reason)

    @classmethod
    def from_bool(cls, present: bool) -> ProbeResult:
        return cls.satisfied() if present else cls.not_satisfied()


class ApplyResult(BaseModel):
    """Outcome of an apply action."""

    status: Literal["applied", "failed"]
    output: str = ""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "applied"

    @classmethod
    def applied(cls, output: str = "") -> ApplyResult:
        return cls(status="applied", output=output)

    @classmethod
    def failure(cls, reason: str, output: str = "") -> ApplyResult:
        return cls(status="failed", reason=reason, output=output)


@dataclass
class Step:
    """A declarative unit of provisioning work.

    ``apply`` must be idempotent by construction: calling it when the
    goal state already holds is a harmless no-op, even though the
    engine normally skips that call after a satisfied probe.

    Attributes:
        id: Stable unique identifier.
        description: Human-readable label.
        probe: Read-only check of the goal state.
        apply: Action that establishes the goal state.
        depends_on: Steps that must end skipped/applied before this one runs.
        after: Ordering-only predecessors (no gating on failure).
        on_probe_failure: ``"attempt"`` runs apply when the probe itself
            fails; ``"fail"`` records the step failed instead.
        timeout: Optional apply timeout in seconds.
    """

    id: str
    probe: Callable[[], ProbeResult]
    apply: Callable[[], ApplyResult]
    description: str = ""
    depends_on: frozenset[str] = field(default_factory=frozenset)
    after: frozenset[str] = field(default_factory=frozenset)
    on_probe_failure: ProbePolicy = "attempt"
    timeout: float | None = None
    kind: str = "custom"

    def __post_init__(self) -> None:
        self.depends_on = frozenset(self.depends_on)
        self.after = frozenset(self.after)

    @property
    def predecessors(self) -> frozenset[str]:
        """All ids this step must be ordered after."""
        return self.depends_on | self.after

    @property
    def label(self) -> str:
        return self.description or self.id
