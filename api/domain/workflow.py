# SPDX-License-Identifier: Apache-2.0

"""
Procedure workflow logic.

This module contains pure functions for step transition validation and the
workflows that change a procedure: step updates with cascading, cancellation,
rejection, soft deletion and creation from an approved appointment. Every
workflow returns a new procedure and leaves its input untouched.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from models.base import utcnow
from models.entities import (
    Procedure, Step, Appointment, classify_value,
    APPOINTMENT_COMPLETED, ADMIN_OPINION_FAVORABLE
)
from models.enums import (
    StepName, StepStatus, ProcedureStatus, STEP_ORDER,
    BLOCKING_STEP_STATUSES, FINAL_PROCEDURE_STATUSES
)
from models.requests import REASON_MIN_LENGTH, REASON_MAX_LENGTH
from domain.progress import can_cancel_procedure

USER_CANCELLATION_REASON = "Annulée par l'utilisateur"
ADMIN_DELETION_REASON = "Annulée par l'administrateur"

# Steps whose blocking outcome propagates to the listed later steps
CASCADE_TARGETS = {
    StepName.ADMISSION_REQUEST: (StepName.VISA_REQUEST, StepName.TRAVEL_PREPARATION),
    StepName.VISA_REQUEST: (StepName.TRAVEL_PREPARATION,),
}

# Step that must be completed before the key step may progress
PREREQUISITES = {
    StepName.VISA_REQUEST: StepName.ADMISSION_REQUEST,
    StepName.TRAVEL_PREPARATION: StepName.VISA_REQUEST,
}


@dataclass
class ValidationResult:
    """Result of procedure validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str] = None

    def __post_init__(self):
        if self.warnings is None:
            self.warnings = []


@dataclass
class WorkflowResult:
    """Result of procedure workflow operation."""
    success: bool
    procedure: Optional[Procedure] = None
    error_message: Optional[str] = None
    validation_errors: List[str] = None

    def __post_init__(self):
        if self.validation_errors is None:
            self.validation_errors = []


def initial_steps(now: Optional[datetime] = None) -> List[Step]:
    """
    Build the step list of a new procedure.

    The admission request starts in progress, later phases wait.
    """
    now = now or utcnow()
    return [
        Step(
            name=name,
            status=StepStatus.IN_PROGRESS if index == 0 else StepStatus.PENDING,
            created_at=now,
            updated_at=now
        )
        for index, name in enumerate(STEP_ORDER)
    ]


def validate_reason(reason: Optional[str], required: bool = False) -> List[str]:
    """Validate a rejection or cancellation reason."""
    errors = []
    text = (reason or "").strip()

    if not text:
        if required:
            errors.append("A reason is required")
        return errors

    if len(text) < REASON_MIN_LENGTH:
        errors.append(f"Reason must be at least {REASON_MIN_LENGTH} characters")
    elif len(text) > REASON_MAX_LENGTH:
        errors.append(f"Reason cannot exceed {REASON_MAX_LENGTH} characters")

    return errors


def validate_step_transition(
    procedure: Procedure,
    step_name: StepName,
    new_status: StepStatus,
    reason: Optional[str] = None
) -> ValidationResult:
    """
    Validate a step status change against the phase ordering rules.

    Args:
        procedure: Procedure owning the step
        step_name: Step to change
        new_status: Requested step status
        reason: Rejection reason, required when rejecting

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []
    warnings = []

    step = procedure.get_step(step_name)
    if step is None:
        return ValidationResult(is_valid=False, errors=[f"Step not found in procedure: {step_name.value}"])

    if procedure.is_deleted:
        errors.append("Deleted procedures cannot be modified")

    if procedure.status in (ProcedureStatus.CANCELLED, ProcedureStatus.REJECTED):
        errors.append(f"Cannot modify steps of a procedure with status '{procedure.status.value}'")

    if step.is_terminal() and step.status != new_status:
        errors.append(f"Cannot modify a step with status '{step.status.value}'")

    # An earlier blocking outcome locks every later step to that outcome
    for upstream, targets in CASCADE_TARGETS.items():
        if step_name not in targets:
            continue
        upstream_step = procedure.get_step(upstream)
        if upstream_step is not None and upstream_step.is_blocking() and new_status != upstream_step.status:
            errors.append(
                f"Cannot modify step '{step_name.value}' because step '{upstream.value}' "
                f"is '{upstream_step.status.value}'"
            )

    prerequisite = PREREQUISITES.get(step_name)
    if prerequisite is not None and new_status in (StepStatus.IN_PROGRESS, StepStatus.COMPLETED):
        prerequisite_step = procedure.get_step(prerequisite)
        if prerequisite_step is None or prerequisite_step.status != StepStatus.COMPLETED:
            errors.append(
                f"Step '{prerequisite.value}' must be completed before '{step_name.value}' can progress"
            )

    if new_status == StepStatus.REJECTED:
        errors.extend(validate_reason(reason, required=True))
    elif reason:
        errors.extend(validate_reason(reason))

    if step.status == new_status:
        warnings.append("Step already has the requested status")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors, warnings=warnings)


def _mark_step(step: Step, status: StepStatus, now: datetime, reason: Optional[str] = None) -> None:
    """Apply a status to a step in place, keeping completion timestamps consistent."""
    if step.status == status:
        return

    step.status = status
    step.updated_at = now
    step.completed_at = now if status == StepStatus.COMPLETED else None
    if reason:
        step.rejection_reason = reason


def _cascade(procedure: Procedure, step_name: StepName, status: StepStatus, now: datetime,
             reason: Optional[str]) -> None:
    for target in CASCADE_TARGETS.get(step_name, ()):
        target_step = procedure.get_step(target)
        if target_step is not None and target_step.status not in BLOCKING_STEP_STATUSES:
            _mark_step(target_step, status, now, target_step.rejection_reason or reason)


def _activate_next_step(procedure: Procedure, step_name: StepName, now: datetime) -> None:
    index = procedure.step_index(step_name)
    if 0 <= index < len(procedure.steps) - 1:
        next_step = procedure.steps[index + 1]
        if next_step.status == StepStatus.PENDING:
            _mark_step(next_step, StepStatus.IN_PROGRESS, now)


def _recompute_aggregate(procedure: Procedure, changed_status: StepStatus, now: datetime,
                         reason: Optional[str]) -> None:
    """Derive the stored aggregate status after a step change."""
    if procedure.all_steps_completed():
        procedure.status = ProcedureStatus.COMPLETED
        procedure.completed_at = procedure.completed_at or now
    elif changed_status == StepStatus.REJECTED:
        procedure.status = ProcedureStatus.REJECTED
        procedure.rejection_reason = reason
    elif changed_status == StepStatus.CANCELLED:
        procedure.status = ProcedureStatus.CANCELLED
        if reason:
            procedure.rejection_reason = reason
    else:
        procedure.status = ProcedureStatus.IN_PROGRESS
        procedure.completed_at = None


def update_step(
    procedure: Procedure,
    step_name: StepName,
    new_status: StepStatus,
    reason: Optional[str] = None,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """
    Change a step status and propagate the consequences.

    Rejecting or cancelling the admission request closes the visa and travel
    steps the same way; rejecting or cancelling the visa closes the travel step.
    Completing a step opens the next pending one.

    Args:
        procedure: Procedure to update
        step_name: Step to change
        new_status: Requested step status
        reason: Rejection or cancellation reason
        now: Timestamp to record (defaults to current UTC time)

    Returns:
        WorkflowResult with the updated procedure or errors
    """
    validation = validate_step_transition(procedure, step_name, new_status, reason)
    if not validation.is_valid:
        return WorkflowResult(
            success=False,
            error_message="Step update validation failed",
            validation_errors=validation.errors
        )

    now = now or utcnow()
    reason = reason.strip() if reason and reason.strip() else None
    updated = procedure.model_copy(deep=True)
    step = updated.get_step(step_name)

    if step.status == new_status:
        return WorkflowResult(success=True, procedure=updated)

    _mark_step(step, new_status, now, reason)

    if new_status in BLOCKING_STEP_STATUSES:
        _cascade(updated, step_name, new_status, now, reason)
    elif new_status == StepStatus.COMPLETED:
        _activate_next_step(updated, step_name, now)

    _recompute_aggregate(updated, new_status, now, reason)
    updated.touch(now)

    return WorkflowResult(success=True, procedure=updated)


def cancel_procedure(
    procedure: Procedure,
    reason: Optional[str] = None,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """
    Cancel a procedure on behalf of its applicant.

    Pending and in-progress steps become cancelled; completed steps keep
    their outcome.

    Args:
        procedure: Procedure to cancel
        reason: Optional cancellation reason
        now: Timestamp to record (defaults to current UTC time)

    Returns:
        WorkflowResult with the cancelled procedure or errors
    """
    if not can_cancel_procedure(procedure):
        return WorkflowResult(
            success=False,
            error_message="Procedure cannot be cancelled",
            validation_errors=[
                f"Procedure with status '{procedure.status.value}' is not eligible for cancellation"
            ]
        )

    errors = validate_reason(reason)
    if errors:
        return WorkflowResult(success=False, error_message="Invalid cancellation reason", validation_errors=errors)

    now = now or utcnow()
    reason = (reason or "").strip() or USER_CANCELLATION_REASON

    updated = procedure.model_copy(deep=True)
    _close_active_steps(updated, StepStatus.CANCELLED, now, reason)
    updated.status = ProcedureStatus.CANCELLED
    updated.rejection_reason = reason
    updated.touch(now)

    return WorkflowResult(success=True, procedure=updated)


def _close_active_steps(procedure: Procedure, status: StepStatus, now: datetime, reason: str) -> None:
    for step in procedure.steps:
        if step.status in (StepStatus.PENDING, StepStatus.IN_PROGRESS):
            _mark_step(step, status, now, reason)


def reject_procedure(
    procedure: Procedure,
    reason: str,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """
    Reject a whole procedure with a mandatory reason.

    Args:
        procedure: Procedure to reject
        reason: Rejection reason (5 to 500 characters)
        now: Timestamp to record (defaults to current UTC time)

    Returns:
        WorkflowResult with the rejected procedure or errors
    """
    errors = validate_reason(reason, required=True)

    if procedure.is_deleted:
        errors.append("Deleted procedures cannot be modified")
    if procedure.status in FINAL_PROCEDURE_STATUSES:
        errors.append(f"Procedure with status '{procedure.status.value}' cannot be rejected")

    if errors:
        return WorkflowResult(success=False, error_message="Procedure rejection failed", validation_errors=errors)

    now = now or utcnow()
    reason = reason.strip()

    updated = procedure.model_copy(deep=True)
    _close_active_steps(updated, StepStatus.REJECTED, now, reason)
    updated.status = ProcedureStatus.REJECTED
    updated.rejection_reason = reason
    updated.touch(now)

    return WorkflowResult(success=True, procedure=updated)


def soft_delete_procedure(
    procedure: Procedure,
    reason: Optional[str] = None,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """
    Soft delete a procedure.

    A procedure still running is cancelled first so deleted records never
    appear as in progress.
    """
    if procedure.is_deleted:
        return WorkflowResult(
            success=False,
            error_message="Procedure is already deleted",
            validation_errors=["Procedure is already deleted"]
        )

    errors = validate_reason(reason)
    if errors:
        return WorkflowResult(success=False, error_message="Invalid deletion reason", validation_errors=errors)

    now = now or utcnow()
    reason = (reason or "").strip() or None

    updated = procedure.model_copy(deep=True)
    if updated.status == ProcedureStatus.IN_PROGRESS:
        _close_active_steps(updated, StepStatus.CANCELLED, now, reason or ADMIN_DELETION_REASON)
        updated.status = ProcedureStatus.CANCELLED
        updated.rejection_reason = reason or ADMIN_DELETION_REASON

    updated.is_deleted = True
    updated.deleted_at = now
    updated.deletion_reason = reason
    updated.touch(now)

    return WorkflowResult(success=True, procedure=updated)


def validate_appointment(appointment: Appointment) -> ValidationResult:
    """Check that an appointment can open a procedure."""
    errors = []

    if appointment.status != APPOINTMENT_COMPLETED:
        errors.append(f"Appointment must have status '{APPOINTMENT_COMPLETED}' to open a procedure")

    if appointment.admin_opinion != ADMIN_OPINION_FAVORABLE:
        errors.append(f"Appointment must have a '{ADMIN_OPINION_FAVORABLE}' administrative opinion")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors)


def create_procedure_from_appointment(
    appointment: Appointment,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """
    Open a procedure from a completed appointment with a favorable opinion.

    Args:
        appointment: Source appointment
        now: Timestamp to record (defaults to current UTC time)

    Returns:
        WorkflowResult with the new procedure or errors
    """
    validation = validate_appointment(appointment)
    if not validation.is_valid:
        return WorkflowResult(
            success=False,
            error_message="Appointment is not eligible",
            validation_errors=validation.errors
        )

    now = now or utcnow()

    try:
        procedure = Procedure(
            appointment_id=appointment.id,
            first_name=appointment.first_name,
            last_name=appointment.last_name,
            email=appointment.email,
            phone=appointment.phone,
            destination=classify_value(appointment.destination, appointment.destination_other),
            field_of_study=classify_value(appointment.field_of_study, appointment.field_of_study_other),
            education_level=appointment.education_level,
            status=ProcedureStatus.IN_PROGRESS,
            steps=initial_steps(now),
            linked_appointment=appointment.summary(),
            created_at=now,
            updated_at=now
        )
    except ValueError as e:
        return WorkflowResult(
            success=False,
            error_message=f"Failed to create procedure: {str(e)}"
        )

    return WorkflowResult(success=True, procedure=procedure)
