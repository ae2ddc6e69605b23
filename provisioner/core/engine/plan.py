"""
Provisioning plan — validated, ordered set of steps.

A plan is built once from the declared step list. Construction fails
fast on malformed dependency declarations; a plan that exists is
always executable in the order returned by ``ordered_steps()``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from provisioner.core.engine.dag import (
    find_cycle,
    find_duplicate_ids,
    find_unknown_refs,
    stable_topological_order,
    transitive_predecessors,
)
from provisioner.core.models.step import Step

logger = logging.getLogger(__name__)


class PlanError(Exception):
    """Raised when a step list cannot be turned into a plan. Always fatal."""


class DuplicateStepError(PlanError):
    """Raised when two steps share an id."""

    def __init__(self, ids: list[str]):
        self.ids = ids
        super().__init__(f"Duplicate step id(s): {', '.join(ids)}")


class UnknownDependencyError(PlanError):
    """Raised when a step references an id that is not in the plan."""

    def __init__(self, missing: list[tuple[str, str]]):
        self.missing = missing
        detail = "; ".join(f"'{sid}' depends on unknown step '{dep}'" for sid, dep in missing)
        super().__init__(f"Unknown dependencies: {detail}")


class CycleError(PlanError):
    """Raised when the dependency graph has a cycle."""

    def __init__(self, cycle: list[str], blocked: list[str]):
        self.cycle = cycle
        self.blocked = blocked
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


class ProvisioningPlan:
    """An ordered, dependency-respecting sequence of steps.

    Build with ``ProvisioningPlan.build(steps)``; the constructor
    assumes its input has already been validated and ordered.
    """

    def __init__(self, steps: list[Step], name: str = ""):
        self._steps = steps
        self._by_id = {s.id: s for s in steps}
        self.name = name

    @classmethod
    def build(cls, steps: Iterable[Step], name: str = "") -> ProvisioningPlan:
        """Validate a step list and order it.

        Args:
            steps: Steps in declaration order.
            name: Optional plan name for reporting.

        Returns:
            A plan whose ``ordered_steps()`` is a stable topological order.

        Raises:
            DuplicateStepError: Two steps share an id.
            UnknownDependencyError: ``depends_on``/``after`` names an unknown id.
            CycleError: The dependency graph is not acyclic.
        """
        declared = list(steps)

        dupes = find_duplicate_ids(s.id for s in declared)
        if dupes:
            raise DuplicateStepError(dupes)

        graph = {s.id: s.predecessors for s in declared}

        missing = find_unknown_refs(graph)
        if missing:
            raise UnknownDependencyError(missing)

        order, blocked = stable_topological_order(graph)
        if blocked:
            raise CycleError(find_cycle(graph, blocked), blocked)

        by_id = {s.id: s for s in declared}
        plan = cls([by_id[sid] for sid in order], name=name)
        logger.debug("Built plan '%s' with %d steps", name, len(plan))
        return plan

    def ordered_steps(self) -> list[Step]:
        """Steps in execution order."""
        return list(self._steps)

    @property
    def step_ids(self) -> list[str]:
        return [s.id for s in self._steps]

    def get(self, step_id: str) -> Step | None:
        """Look up a step by id."""
        return self._by_id.get(step_id)

    def subset(self, step_ids: Iterable[str]) -> ProvisioningPlan:
        """Restrict the plan to ``step_ids`` plus everything they depend on.

        Only hard ``depends_on`` edges are followed; ``after`` edges
        between kept steps still order them, and dropped ``after``
        predecessors are ignored.

        Raises:
            UnknownDependencyError: A requested id is not in the plan.
        """
        wanted = list(step_ids)
        unknown = [sid for sid in wanted if sid not in self._by_id]
        if unknown:
            raise UnknownDependencyError([("--only", sid) for sid in unknown])

        graph = {s.id: s.depends_on for s in self._steps}
        keep = transitive_predecessors(graph, wanted)
        return ProvisioningPlan([s for s in self._steps if s.id in keep], name=self.name)

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps)

    def __repr__(self) -> str:
        return f"<ProvisioningPlan name={self.name!r} steps={len(self._steps)}>"
