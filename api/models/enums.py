# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the procedure tracking platform.

Wire values are the labels stored by the agency back office.
"""

from enum import Enum


class StepName(str, Enum):
    """Fixed phases of a study-abroad procedure."""
    ADMISSION_REQUEST = "DEMANDE ADMISSION"
    VISA_REQUEST = "DEMANDE VISA"
    TRAVEL_PREPARATION = "PREPARATIF VOYAGE"


# Phase order of every procedure
STEP_ORDER = (
    StepName.ADMISSION_REQUEST,
    StepName.VISA_REQUEST,
    StepName.TRAVEL_PREPARATION,
)


class StepStatus(str, Enum):
    """Per-step workflow status."""
    PENDING = "En attente"
    IN_PROGRESS = "En cours"
    COMPLETED = "Terminé"
    REJECTED = "Rejeté"
    CANCELLED = "Annulé"


TERMINAL_STEP_STATUSES = (
    StepStatus.COMPLETED,
    StepStatus.REJECTED,
    StepStatus.CANCELLED,
)

BLOCKING_STEP_STATUSES = (StepStatus.REJECTED, StepStatus.CANCELLED)


class ProcedureStatus(str, Enum):
    """Procedure-level (aggregate) status."""
    IN_PROGRESS = "En cours"
    COMPLETED = "Terminée"
    REJECTED = "Refusée"
    CANCELLED = "Annulée"


FINAL_PROCEDURE_STATUSES = (
    ProcedureStatus.COMPLETED,
    ProcedureStatus.CANCELLED,
    ProcedureStatus.REJECTED,
)


class ProgressStatus(str, Enum):
    """Progress label derived from the step sequence."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class ProcedureSortKey(str, Enum):
    """Supported sort keys for procedure listings."""
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    STATUS = "status"
    DESTINATION = "destination"


class SortDirection(str, Enum):
    """Sort direction."""
    ASC = "asc"
    DESC = "desc"
