"""
Domain models — step, report, and plan-file types.

All models are re-exported here for convenient access:

    from provisioner.core.models import Step, ProbeResult, ApplyResult, StepRecord
"""

from provisioner.core.models.plan_file import PlanFile, StepSpec
from provisioner.core.models.report import StepRecord, StepState
from provisioner.core.models.step import ApplyResult, ProbePolicy, ProbeResult, Step

__all__ = [
    # step.py
    "ApplyResult",
    "ProbePolicy",
    "ProbeResult",
    "Step",
    # report.py
    "StepRecord",
    "StepState",
    # plan_file.py
    "PlanFile",
    "StepSpec",
]
