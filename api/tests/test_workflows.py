# SPDX-License-Identifier: Apache-2.0

"""
Tests for procedure workflows: step transitions, cancellation, rejection,
soft deletion and creation from appointments.
"""

import pytest
from datetime import timedelta

from domain.workflow import (
    validate_step_transition, update_step, cancel_procedure, reject_procedure,
    soft_delete_procedure, create_procedure_from_appointment, initial_steps,
    USER_CANCELLATION_REASON, ADMIN_DELETION_REASON
)
from domain.progress import calculate_progress
from models.entities import Appointment, OtherValue
from models.enums import StepName, StepStatus, ProcedureStatus, ProgressStatus, STEP_ORDER

from conftest import make_procedure, FIXED_NOW

C = StepStatus.COMPLETED
P = StepStatus.PENDING
I = StepStatus.IN_PROGRESS
R = StepStatus.REJECTED
X = StepStatus.CANCELLED

LATER = FIXED_NOW + timedelta(hours=2)


def statuses(procedure):
    return [step.status for step in procedure.steps]


class TestInitialSteps:
    """Test the step list of a new procedure."""

    def test_admission_starts_in_progress(self):
        steps = initial_steps(FIXED_NOW)

        assert [step.name for step in steps] == list(STEP_ORDER)
        assert [step.status for step in steps] == [I, P, P]
        assert all(step.created_at == FIXED_NOW for step in steps)


class TestValidateStepTransition:
    """Test step transition rules."""

    def test_complete_current_step(self):
        result = validate_step_transition(make_procedure(I, P, P), StepName.ADMISSION_REQUEST, C)

        assert result.is_valid
        assert result.errors == []

    def test_visa_requires_completed_admission(self):
        result = validate_step_transition(make_procedure(I, P, P), StepName.VISA_REQUEST, I)

        assert not result.is_valid
        assert any("must be completed" in error for error in result.errors)

    def test_travel_requires_completed_visa(self):
        result = validate_step_transition(make_procedure(C, I, P), StepName.TRAVEL_PREPARATION, C)

        assert not result.is_valid

    def test_terminal_step_cannot_change(self):
        result = validate_step_transition(make_procedure(C, I, P), StepName.ADMISSION_REQUEST, I)

        assert not result.is_valid
        assert any("Terminé" in error for error in result.errors)

    def test_same_terminal_status_is_allowed_with_warning(self):
        result = validate_step_transition(make_procedure(C, I, P), StepName.ADMISSION_REQUEST, C)

        assert result.is_valid
        assert result.warnings

    def test_rejected_admission_locks_later_steps(self):
        procedure = make_procedure(R, R, R, status=ProcedureStatus.IN_PROGRESS)

        result = validate_step_transition(procedure, StepName.VISA_REQUEST, I)

        assert not result.is_valid

    def test_rejection_requires_reason(self):
        result = validate_step_transition(make_procedure(I, P, P), StepName.ADMISSION_REQUEST, R)

        assert not result.is_valid
        assert "A reason is required" in result.errors

    def test_rejection_reason_too_short(self):
        result = validate_step_transition(make_procedure(I, P, P), StepName.ADMISSION_REQUEST, R, "non")

        assert not result.is_valid

    def test_missing_step(self):
        result = validate_step_transition(make_procedure(steps=[]), StepName.VISA_REQUEST, I)

        assert not result.is_valid
        assert "Step not found" in result.errors[0]

    def test_closed_procedure(self):
        procedure = make_procedure(I, P, P, status=ProcedureStatus.CANCELLED)

        result = validate_step_transition(procedure, StepName.ADMISSION_REQUEST, C)

        assert not result.is_valid

    def test_deleted_procedure(self):
        result = validate_step_transition(make_procedure(I, P, P, is_deleted=True), StepName.ADMISSION_REQUEST, C)

        assert not result.is_valid


class TestUpdateStep:
    """Test step update workflow."""

    def test_completion_activates_next_step(self):
        """Test that completing admission opens the visa request."""
        procedure = make_procedure(I, P, P)

        result = update_step(procedure, StepName.ADMISSION_REQUEST, C, now=LATER)

        assert result.success
        updated = result.procedure
        assert statuses(updated) == [C, I, P]
        assert updated.steps[0].completed_at == LATER
        assert updated.steps[1].updated_at == LATER
        assert updated.updated_at == LATER
        assert updated.status == ProcedureStatus.IN_PROGRESS

    def test_input_not_modified(self):
        procedure = make_procedure(I, P, P)

        update_step(procedure, StepName.ADMISSION_REQUEST, C, now=LATER)

        assert statuses(procedure) == [I, P, P]
        assert procedure.updated_at == FIXED_NOW

    def test_last_step_completes_procedure(self):
        result = update_step(make_procedure(C, C, I), StepName.TRAVEL_PREPARATION, C, now=LATER)

        assert result.success
        assert result.procedure.status == ProcedureStatus.COMPLETED
        assert result.procedure.completed_at == LATER
        assert calculate_progress(result.procedure.steps).aggregate_status == ProgressStatus.COMPLETED

    def test_admission_rejection_cascades(self):
        """Test that rejecting the admission closes visa and travel."""
        result = update_step(
            make_procedure(I, P, P), StepName.ADMISSION_REQUEST, R, "Dossier incomplet", now=LATER
        )

        assert result.success
        updated = result.procedure
        assert statuses(updated) == [R, R, R]
        assert all(step.rejection_reason == "Dossier incomplet" for step in updated.steps)
        assert updated.status == ProcedureStatus.REJECTED
        assert updated.rejection_reason == "Dossier incomplet"

    def test_visa_cancellation_cascades_to_travel_only(self):
        result = update_step(make_procedure(C, I, P), StepName.VISA_REQUEST, X, now=LATER)

        assert result.success
        assert statuses(result.procedure) == [C, X, X]
        assert result.procedure.status == ProcedureStatus.CANCELLED
        assert result.procedure.steps[0].completed_at is not None

    def test_invalid_transition_returns_errors(self):
        result = update_step(make_procedure(I, P, P), StepName.TRAVEL_PREPARATION, C)

        assert not result.success
        assert result.procedure is None
        assert result.error_message == "Step update validation failed"
        assert result.validation_errors

    def test_same_status_is_noop(self):
        procedure = make_procedure(C, I, P)

        result = update_step(procedure, StepName.VISA_REQUEST, I, now=LATER)

        assert result.success
        assert result.procedure.updated_at == FIXED_NOW
        assert statuses(result.procedure) == [C, I, P]

    def test_step_back_to_pending(self):
        result = update_step(make_procedure(C, I, P), StepName.VISA_REQUEST, P, now=LATER)

        assert result.success
        assert statuses(result.procedure) == [C, P, P]
        assert result.procedure.status == ProcedureStatus.IN_PROGRESS


class TestCancelProcedure:
    """Test cancellation workflow."""

    def test_cancel_keeps_completed_steps(self):
        result = cancel_procedure(make_procedure(C, I, P), now=LATER)

        assert result.success
        updated = result.procedure
        assert updated.status == ProcedureStatus.CANCELLED
        assert updated.rejection_reason == USER_CANCELLATION_REASON
        assert statuses(updated) == [C, X, X]
        assert updated.steps[1].rejection_reason == USER_CANCELLATION_REASON
        assert updated.updated_at == LATER

    def test_cancel_with_reason(self):
        result = cancel_procedure(make_procedure(I, P, P), "  Projet abandonné ")

        assert result.success
        assert result.procedure.rejection_reason == "Projet abandonné"

    @pytest.mark.parametrize("overrides", [
        {"status": ProcedureStatus.CANCELLED},
        {"status": ProcedureStatus.REJECTED},
        {"is_deleted": True},
    ])
    def test_ineligible_procedure(self, overrides):
        result = cancel_procedure(make_procedure(I, P, P, **overrides))

        assert not result.success
        assert result.error_message == "Procedure cannot be cancelled"

    def test_finished_procedure(self):
        result = cancel_procedure(make_procedure(C, C, C, status=ProcedureStatus.COMPLETED))

        assert not result.success

    def test_reason_too_long(self):
        result = cancel_procedure(make_procedure(I, P, P), "x" * 501)

        assert not result.success
        assert result.validation_errors


class TestRejectProcedure:
    """Test procedure rejection workflow."""

    def test_reject(self):
        result = reject_procedure(make_procedure(C, I, P), "Visa refusé par le consulat", now=LATER)

        assert result.success
        updated = result.procedure
        assert updated.status == ProcedureStatus.REJECTED
        assert updated.rejection_reason == "Visa refusé par le consulat"
        assert statuses(updated) == [C, R, R]

    @pytest.mark.parametrize("reason", [None, "", "   ", "abcd", "x" * 501])
    def test_invalid_reason(self, reason):
        result = reject_procedure(make_procedure(I, P, P), reason)

        assert not result.success

    def test_reason_bounds(self):
        assert reject_procedure(make_procedure(I, P, P), "abcde").success
        assert reject_procedure(make_procedure(I, P, P), "x" * 500).success

    def test_already_final(self):
        result = reject_procedure(
            make_procedure(I, P, P, status=ProcedureStatus.CANCELLED), "Dossier incomplet"
        )

        assert not result.success


class TestSoftDeleteProcedure:
    """Test soft delete workflow."""

    def test_delete_running_procedure_cancels_it(self):
        result = soft_delete_procedure(make_procedure(C, I, P), now=LATER)

        assert result.success
        updated = result.procedure
        assert updated.is_deleted is True
        assert updated.deleted_at == LATER
        assert updated.deletion_reason is None
        assert updated.status == ProcedureStatus.CANCELLED
        assert updated.rejection_reason == ADMIN_DELETION_REASON
        assert statuses(updated) == [C, X, X]

    def test_delete_finished_procedure_keeps_status(self):
        procedure = make_procedure(C, C, C, status=ProcedureStatus.COMPLETED)

        result = soft_delete_procedure(procedure, "Doublon du dossier")

        assert result.success
        assert result.procedure.status == ProcedureStatus.COMPLETED
        assert result.procedure.deletion_reason == "Doublon du dossier"

    def test_already_deleted(self):
        result = soft_delete_procedure(make_procedure(is_deleted=True))

        assert not result.success
        assert result.error_message == "Procedure is already deleted"


class TestCreateFromAppointment:
    """Test procedure creation from an appointment."""

    def test_create(self, appointment_data):
        appointment = Appointment.model_validate(appointment_data)

        result = create_procedure_from_appointment(appointment, now=FIXED_NOW)

        assert result.success
        procedure = result.procedure
        assert procedure.appointment_id == appointment.id
        assert procedure.first_name == "Fatou"
        assert procedure.destination.display == "France"
        assert isinstance(procedure.field_of_study, OtherValue)
        assert procedure.field_of_study.display == "Architecture navale"
        assert procedure.status == ProcedureStatus.IN_PROGRESS
        assert statuses(procedure) == [I, P, P]
        assert procedure.linked_appointment.id == appointment.id
        assert procedure.created_at == FIXED_NOW

    def test_appointment_not_completed(self, appointment_data):
        appointment_data["status"] = "Confirmé"

        result = create_procedure_from_appointment(Appointment.model_validate(appointment_data))

        assert not result.success
        assert len(result.validation_errors) == 1

    def test_unfavorable_opinion(self, appointment_data):
        appointment_data["avisAdmin"] = "Défavorable"

        result = create_procedure_from_appointment(Appointment.model_validate(appointment_data))

        assert not result.success

    def test_other_destination_without_text(self, appointment_data):
        appointment_data["destination"] = "Autre"
        appointment_data["destinationAutre"] = ""

        result = create_procedure_from_appointment(Appointment.model_validate(appointment_data))

        assert not result.success
        assert "Failed to create procedure" in result.error_message
