"""Step vocabulary and status transition table for the project wizard.

The wizard walks a project through five fixed steps. Each step carries one
status at a time, and the table below is the authoritative list of status
edges the transition engine will accept.
"""

from __future__ import annotations

import enum


class Step(str, enum.Enum):
    """Workflow phases, declared in their only legal forward order."""

    idea = "idea"
    plan = "plan"
    repo = "repo"
    docs = "docs"
    deploy = "deploy"


class StepStatus(str, enum.Enum):
    """Lifecycle status of a single step.

    States:
        locked: Step is not reachable yet.
        active: Step is being worked on and awaits user approval.
        approved: User approved the step; transient until the workflow moves on.
        completed: Step is finished. Terminal.
        error: The last collaborator call for this step failed; retryable.
    """

    locked = "locked"
    active = "active"
    approved = "approved"
    completed = "completed"
    error = "error"


STEP_ORDER: tuple[Step, ...] = tuple(Step)

# Authoritative status edge table
VALID_TRANSITIONS: dict[StepStatus, set[StepStatus]] = {
    StepStatus.locked: {StepStatus.active},
    StepStatus.active: {StepStatus.approved, StepStatus.error},
    StepStatus.approved: {StepStatus.completed, StepStatus.error},
    StepStatus.completed: set(),  # Terminal state
    StepStatus.error: {StepStatus.active},
}


def can_transition(current: StepStatus, target: StepStatus) -> bool:
    """Return True if an edge from current to target exists in VALID_TRANSITIONS."""
    return target in VALID_TRANSITIONS.get(current, set())


def step_index(step: Step) -> int:
    """Position of a step in STEP_ORDER."""
    return STEP_ORDER.index(step)


def next_step(step: Step) -> Step | None:
    """Return the step following ``step``, or None for the last step."""
    idx = step_index(step)
    if idx >= len(STEP_ORDER) - 1:
        return None
    return STEP_ORDER[idx + 1]


def previous_step(step: Step) -> Step | None:
    """Return the step preceding ``step``, or None for the first step."""
    idx = step_index(step)
    if idx == 0:
        return None
    return STEP_ORDER[idx - 1]
