"""
Plan file model — the declarative provisioning plan.

Loaded from provision.yml. Each step entry carries the common
fields below plus kind-specific parameters, which pydantic keeps as
extras and the step catalog validates against the kind's builder.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class StepSpec(BaseModel):
    """One declared step, before it is turned into a runnable Step."""

    model_config = ConfigDict(extra="allow")

    id: str
    kind: str
    description: str = ""
    depends_on: list[str] = Field(default_factory=list)
    after: list[str] = Field(default_factory=list)
    on_probe_failure: Literal["attempt", "fail"] | None = None
    timeout: float | None = None

    @property
    def params(self) -> dict[str, Any]:
        """Kind-specific parameters (everything not a common field)."""
        return dict(self.model_extra or {})


class PlanFile(BaseModel):
    """Root of provision.yml."""

    version: int = 1

    name: str = "workstation"
    description: str = ""

    profile: str = "~/.zshrc"   # shell profile patched by path/env steps
    shell: str = "zsh"

    vars: dict[str, str] = Field(default_factory=dict)
    steps: list[StepSpec] = Field(default_factory=list)

    def get_step(self, step_id: str) -> StepSpec | None:
        """Look up a declared step by id."""
        for spec in self.steps:
            if spec.id == step_id:
                return spec
        return None
