# SPDX-License-Identifier: Apache-2.0

"""
Tests for status display mapping.
"""

import pytest

from domain import display
from domain.display import (
    StatusColor, NEUTRAL_COLOR, procedure_status_color, step_status_color,
    display_name, display_description, procedure_status_label, step_status_label
)
from models.enums import StepName, StepStatus, ProcedureStatus


class TestStatusColors:
    """Test colour lookups."""

    @pytest.mark.parametrize("status", list(ProcedureStatus))
    def test_every_procedure_status_has_color(self, status):
        color = procedure_status_color(status)

        assert isinstance(color, StatusColor)
        assert color != NEUTRAL_COLOR

    @pytest.mark.parametrize("status", list(StepStatus))
    def test_every_step_status_has_color(self, status):
        assert step_status_color(status) != NEUTRAL_COLOR

    def test_in_progress_is_blue(self):
        color = procedure_status_color(ProcedureStatus.IN_PROGRESS)

        assert color.text == "text-blue-700"
        assert color.border == "border-blue-200"
        assert color.background.startswith("bg-blue")
        assert color.light_background.startswith("bg-blue")

    def test_raw_value_lookup(self):
        """Test that stored string values resolve like enum members."""
        assert step_status_color("Terminé") == step_status_color(StepStatus.COMPLETED)
        assert procedure_status_color("Refusée") == procedure_status_color(ProcedureStatus.REJECTED)

    @pytest.mark.parametrize("value", [None, "", "Suspendu", "completed"])
    def test_unknown_values_fall_back_to_neutral(self, value):
        assert procedure_status_color(value) == NEUTRAL_COLOR
        assert step_status_color(value) == NEUTRAL_COLOR

    def test_cancelled_step_and_procedure_differ_in_text(self):
        assert step_status_color(StepStatus.CANCELLED).text == "text-gray-600"
        assert procedure_status_color(ProcedureStatus.CANCELLED).text == "text-gray-700"


class TestLabels:
    """Test human-readable labels."""

    def test_step_display_names(self):
        assert display_name(StepName.ADMISSION_REQUEST) == "Demande d'admission"
        assert display_name(StepName.VISA_REQUEST) == "Demande de visa"
        assert display_name(StepName.TRAVEL_PREPARATION) == "Préparatifs de voyage"

    def test_display_name_from_stored_value(self):
        assert display_name("DEMANDE VISA") == "Demande de visa"

    def test_unknown_step_name_echoed(self):
        assert display_name("INSCRIPTION") == "INSCRIPTION"
        assert display_name(None) == ""

    @pytest.mark.parametrize("step_name", list(StepName))
    def test_every_step_has_description(self, step_name):
        assert display_description(step_name)

    def test_unknown_step_description_empty(self):
        assert display_description("INSCRIPTION") == ""

    def test_status_labels(self):
        assert procedure_status_label(ProcedureStatus.COMPLETED) == "Terminée"
        assert step_status_label(StepStatus.COMPLETED) == "Terminé"
        assert step_status_label("Inconnu") == "Inconnu"
        assert procedure_status_label(None) == ""


class TestTableExhaustiveness:
    """Test the import-time completeness check."""

    def test_missing_entry_detected(self):
        partial = {StepStatus.PENDING: NEUTRAL_COLOR}

        with pytest.raises(RuntimeError) as exc_info:
            display._assert_exhaustive(partial, StepStatus, "partial")

        assert "COMPLETED" in str(exc_info.value)

    def test_complete_table_passes(self):
        display._assert_exhaustive(display.STEP_STATUS_COLORS, StepStatus, "STEP_STATUS_COLORS")
