"""Wizard workflow: steps, project aggregate and transition engine.

The orchestration layer lives in ``devforge.workflow.controller`` and is not
re-exported here, since it depends on the integrations package.
"""

from __future__ import annotations

from devforge.workflow.models import AppSettings, Project, StepState
from devforge.workflow.state_machine import (
    InvalidTransitionError,
    StepPreconditionError,
    WorkflowError,
)
from devforge.workflow.steps import STEP_ORDER, Step, StepStatus

__all__ = [
    # Steps
    "STEP_ORDER",
    "Step",
    "StepStatus",
    # Models
    "AppSettings",
    "Project",
    "StepState",
    # Errors
    "InvalidTransitionError",
    "StepPreconditionError",
    "WorkflowError",
]
