# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the procedure tracking platform.
"""

# Base models
from .base import BaseEntity, generate_object_id, utcnow, ensure_aware

# Enumerations
from .enums import (
    StepName,
    StepStatus,
    ProcedureStatus,
    ProgressStatus,
    ProcedureSortKey,
    SortDirection,
    STEP_ORDER
)

# Core entities
from .entities import (
    Step,
    Procedure,
    Appointment,
    AppointmentSummary,
    PrimaryValue,
    OtherValue,
    ClassifiedValue,
    classify_value,
    OTHER_SENTINEL
)

# Request models
from .requests import (
    CancelProcedureRequest,
    DeleteProcedureRequest,
    RejectProcedureRequest,
    UpdateStepRequest,
    PaginationParams,
    ProcedureListParams,
    ProcedurePath,
    StepPath
)

# Response models
from .responses import (
    HalLink,
    StepProgressResponse,
    ProgressResponse,
    OverviewResponse,
    ErrorResponse
)

__all__ = [
    # Base models
    "BaseEntity",
    "generate_object_id",
    "utcnow",
    "ensure_aware",

    # Enumerations
    "StepName",
    "StepStatus",
    "ProcedureStatus",
    "ProgressStatus",
    "ProcedureSortKey",
    "SortDirection",
    "STEP_ORDER",

    # Core entities
    "Step",
    "Procedure",
    "Appointment",
    "AppointmentSummary",
    "PrimaryValue",
    "OtherValue",
    "ClassifiedValue",
    "classify_value",
    "OTHER_SENTINEL",

    # Request models
    "CancelProcedureRequest",
    "DeleteProcedureRequest",
    "RejectProcedureRequest",
    "UpdateStepRequest",
    "PaginationParams",
    "ProcedureListParams",
    "ProcedurePath",
    "StepPath",

    # Response models
    "HalLink",
    "StepProgressResponse",
    "ProgressResponse",
    "OverviewResponse",
    "ErrorResponse"
]
