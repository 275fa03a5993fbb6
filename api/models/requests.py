# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from .enums import StepStatus, ProcedureStatus, ProcedureSortKey, SortDirection

REASON_MIN_LENGTH = 5
REASON_MAX_LENGTH = 500


def _clean_reason(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        return None
    if len(v) < REASON_MIN_LENGTH:
        raise ValueError(f'Reason must be at least {REASON_MIN_LENGTH} characters')
    if len(v) > REASON_MAX_LENGTH:
        raise ValueError(f'Reason cannot exceed {REASON_MAX_LENGTH} characters')
    return v


class CancelProcedureRequest(BaseModel):
    """Request model for cancelling a procedure."""

    reason: Optional[str] = Field(None, description="Cancellation reason")

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v):
        return _clean_reason(v)


class DeleteProcedureRequest(BaseModel):
    """Request model for soft deleting a procedure."""

    reason: Optional[str] = Field(None, description="Deletion reason")

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v):
        return _clean_reason(v)


class RejectProcedureRequest(BaseModel):
    """Request model for rejecting a procedure."""

    reason: str = Field(..., description="Rejection reason")

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v):
        cleaned = _clean_reason(v)
        if cleaned is None:
            raise ValueError('Rejection reason is required')
        return cleaned


class UpdateStepRequest(BaseModel):
    """Request model for changing the status of a procedure step."""

    model_config = ConfigDict(populate_by_name=True)

    status: StepStatus = Field(..., alias="statut", description="New step status")
    reason: Optional[str] = Field(None, alias="raisonRefus", description="Rejection reason")

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v):
        return _clean_reason(v)

    @model_validator(mode='after')
    def require_rejection_reason(self):
        if self.status == StepStatus.REJECTED and not self.reason:
            raise ValueError('A reason is required when rejecting a step')
        return self


class ProcedurePath(BaseModel):
    """Path parameters identifying a procedure."""

    procedure_id: str = Field(..., description="Procedure ID")


class StepPath(ProcedurePath):
    """Path parameters identifying a procedure step."""

    step_name: str = Field(..., description="Step name, stored value or enum name")


class PaginationParams(BaseModel):
    """Pagination parameters."""

    page: int = Field(default=1, ge=1, description="Page number")
    page_size: int = Field(default=20, ge=1, le=100, description="Items per page")


class ProcedureListParams(PaginationParams):
    """Query parameters for procedure listings."""

    search: Optional[str] = Field(None, description="Free-text search")
    status: Optional[ProcedureStatus] = Field(None, description="Aggregate status filter")
    destination: Optional[str] = Field(None, description="Destination filter")
    date_from: Optional[datetime] = Field(None, description="Created on or after")
    date_to: Optional[datetime] = Field(None, description="Created on or before")
    email: Optional[str] = Field(None, description="Applicant email filter")
    sort_by: ProcedureSortKey = Field(default=ProcedureSortKey.CREATED_AT, description="Sort key")
    sort_order: SortDirection = Field(default=SortDirection.DESC, description="Sort direction")
    include_deleted: bool = Field(default=True, description="Include soft-deleted procedures")

    @field_validator('search', 'destination', 'email')
    @classmethod
    def blank_to_none(cls, v):
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator('date_to', mode='before')
    @classmethod
    def date_only_covers_whole_day(cls, v):
        """A date without a time bounds the listing at the end of that day."""
        if isinstance(v, str) and len(v.strip()) == 10:
            v = date.fromisoformat(v.strip())
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.max)
        return v
