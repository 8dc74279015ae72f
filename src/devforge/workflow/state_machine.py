"""Transition engine for the project wizard.

Pure functions that validate and apply step status changes. Every function
takes a ``Project`` and returns a new one; the input is never mutated, and
nothing in this module performs I/O beyond logging.

The engine enforces:
- Only edges listed in VALID_TRANSITIONS are taken.
- ``completed`` is only reached through ``approved``.
- Steps after ``current_step`` stay ``locked`` until the workflow advances.
- ``updated_at`` is refreshed on every change, ``created_at`` never.
"""

from __future__ import annotations

from typing import Any

import structlog

from devforge.workflow.models import (
    PAYLOAD_OWNERS,
    AppSettings,
    PayloadSlot,
    Project,
    StepState,
    utcnow,
)
from devforge.workflow.steps import (
    STEP_ORDER,
    Step,
    StepStatus,
    can_transition,
    next_step,
    previous_step,
)

logger = structlog.get_logger(__name__)


class WorkflowError(Exception):
    """Base class for rejected workflow operations. The aggregate is left unchanged."""


class InvalidTransitionError(WorkflowError):
    """Raised when a status change is not permitted by the transition table.

    Attributes:
        step: The step that failed to transition.
        current: The step's current status.
        target: The attempted target status.
    """

    def __init__(self, step: Step, current: StepStatus, target: StepStatus):
        self.step = step
        self.current = current
        self.target = target
        super().__init__(
            f'Cannot move step "{step.value}" from "{current.value}" to "{target.value}"'
        )


class StepPreconditionError(WorkflowError):
    """Raised when an action needs data its step does not have yet.

    Attributes:
        step: The step the action was attempted on.
        reason: Human-readable description of what is missing.
    """

    def __init__(self, step: Step, reason: str):
        self.step = step
        self.reason = reason
        super().__init__(f'Step "{step.value}": {reason}')


def create_initial(settings: AppSettings | None = None) -> Project:
    """Create a fresh aggregate with ``idea`` active and every later step locked."""
    now = utcnow()
    steps = {
        step: StepState(
            id=step,
            status=StepStatus.active if step == Step.idea else StepStatus.locked,
        )
        for step in STEP_ORDER
    }
    project = Project(
        created_at=now,
        updated_at=now,
        current_step=Step.idea,
        steps=steps,
        settings=settings.model_copy(deep=True) if settings is not None else AppSettings(),
    )
    logger.info("project_created", project_id=project.id)
    return project


def _mutable_copy(project: Project) -> Project:
    updated = project.model_copy(deep=True)
    updated.updated_at = utcnow()
    return updated


def _require_edge(project: Project, step: Step, target: StepStatus) -> StepState:
    state = project.steps[step]
    if not can_transition(state.status, target):
        raise InvalidTransitionError(step, state.status, target)
    return state


def approve(project: Project, step: Step) -> Project:
    """Mark an active step as approved.

    Raises:
        InvalidTransitionError: If the step is not currently ``active``.
    """
    _require_edge(project, step, StepStatus.approved)

    updated = _mutable_copy(project)
    state = updated.steps[step]
    state.status = StepStatus.approved
    state.approved_at = updated.updated_at

    logger.info("step_approved", project_id=project.id, step=step.value)
    return updated


def complete(project: Project, step: Step) -> Project:
    """Mark an approved step as completed without moving ``current_step``.

    Used for the final step, where ``advance`` has nowhere to go.

    Raises:
        InvalidTransitionError: If the step is not currently ``approved``.
    """
    _require_edge(project, step, StepStatus.completed)

    updated = _mutable_copy(project)
    state = updated.steps[step]
    state.status = StepStatus.completed
    state.completed_at = updated.updated_at

    logger.info("step_completed", project_id=project.id, step=step.value)
    return updated


def advance(project: Project) -> Project:
    """Move ``current_step`` forward by one.

    The outgoing step becomes ``completed`` and the incoming one ``active``.
    Returns the input unchanged when already at the last step.

    Raises:
        InvalidTransitionError: If the outgoing step has not been approved.
    """
    outgoing = project.current_step
    incoming = next_step(outgoing)
    if incoming is None:
        return project

    _require_edge(project, outgoing, StepStatus.completed)
    _require_edge(project, incoming, StepStatus.active)

    updated = _mutable_copy(project)
    out_state = updated.steps[outgoing]
    out_state.status = StepStatus.completed
    out_state.completed_at = updated.updated_at
    updated.steps[incoming].status = StepStatus.active
    updated.current_step = incoming

    logger.info(
        "workflow_advanced",
        project_id=project.id,
        from_step=outgoing.value,
        to_step=incoming.value,
    )
    return updated


def approve_and_advance(project: Project, step: Step) -> Project:
    """Approve ``step`` and move the workflow past it in one operation.

    Callers never observe the intermediate ``approved`` state. For the final
    step the approval is followed by ``complete`` instead of ``advance``.

    Raises:
        InvalidTransitionError: If ``step`` is not the active current step.
    """
    if step != project.current_step:
        raise InvalidTransitionError(step, project.status_of(step), StepStatus.approved)

    approved = approve(project, step)
    if next_step(step) is None:
        return complete(approved, step)
    return advance(approved)


def fail(project: Project, step: Step, detail: str) -> Project:
    """Record a failure on ``step`` and keep ``current_step`` where it is.

    Raises:
        InvalidTransitionError: If the step is neither ``active`` nor ``approved``.
    """
    _require_edge(project, step, StepStatus.error)

    updated = _mutable_copy(project)
    state = updated.steps[step]
    state.status = StepStatus.error
    state.error = detail
    state.failed_at = updated.updated_at

    logger.warning("step_failed", project_id=project.id, step=step.value, error=detail)
    return updated


def retry(project: Project, step: Step) -> Project:
    """Return an errored step to ``active`` so its collaborator can run again.

    Payload slots populated before the failure are preserved.

    Raises:
        InvalidTransitionError: If the step is not in ``error``.
    """
    state = project.steps[step]
    if state.status != StepStatus.error:
        raise InvalidTransitionError(step, state.status, StepStatus.active)

    updated = _mutable_copy(project)
    updated.steps[step].status = StepStatus.active
    updated.steps[step].error = None

    logger.info("step_retried", project_id=project.id, step=step.value)
    return updated


def go_back(project: Project) -> Project:
    """Reopen the previous step.

    The current step returns to ``locked`` and the previous step to
    ``active``. This bypasses the transition table on purpose and leaves
    every payload slot untouched. No-op on the first step.
    """
    current = project.current_step
    target = previous_step(current)
    if target is None:
        return project

    updated = _mutable_copy(project)
    current_state = updated.steps[current]
    current_state.status = StepStatus.locked
    current_state.error = None
    updated.steps[target].status = StepStatus.active
    updated.current_step = target

    logger.info(
        "step_reopened",
        project_id=project.id,
        from_step=current.value,
        to_step=target.value,
    )
    return updated


def set_payload(project: Project, slot: PayloadSlot, value: Any) -> Project:
    """Write a payload slot while its owning step is being worked.

    Raises:
        StepPreconditionError: If the owning step is not ``active`` or ``approved``.
    """
    owner = PAYLOAD_OWNERS[slot]
    status = project.status_of(owner)
    if status not in (StepStatus.active, StepStatus.approved):
        raise StepPreconditionError(
            owner, f"cannot write '{slot}' while step is {status.value}"
        )

    updated = _mutable_copy(project)
    setattr(updated, slot, value.model_copy(deep=True) if hasattr(value, "model_copy") else value)
    return updated


def read_payload(project: Project, slot: PayloadSlot) -> Any:
    """Return a payload slot produced by a completed step.

    Raises:
        StepPreconditionError: If the owning step is not completed or the slot is empty.
    """
    owner = PAYLOAD_OWNERS[slot]
    if project.status_of(owner) != StepStatus.completed:
        raise StepPreconditionError(
            owner, f"'{slot}' is not available until the step is completed"
        )
    value = getattr(project, slot)
    if value is None:
        raise StepPreconditionError(owner, f"'{slot}' was never produced")
    return value
