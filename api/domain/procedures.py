# SPDX-License-Identifier: Apache-2.0

"""
Procedure listing logic.

This module contains pure functions for procedure filtering, sorting,
statistics and transformation into API representations.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Any, Optional, Sequence, Union

from models.base import ensure_aware
from models.entities import Procedure, Step
from models.enums import ProcedureStatus, ProcedureSortKey, SortDirection
from models.responses import StepProgressResponse, ProgressResponse, OverviewResponse
from domain.progress import ProcedureProgress, calculate_progress, can_cancel_procedure, cancellation_impact
from domain.display import (
    display_name, display_description, procedure_status_color, step_status_color,
    procedure_status_label, step_status_label
)

# Listing order when sorting by status
STATUS_PRIORITY: Dict[ProcedureStatus, int] = {
    ProcedureStatus.IN_PROGRESS: 1,
    ProcedureStatus.COMPLETED: 2,
    ProcedureStatus.REJECTED: 3,
    ProcedureStatus.CANCELLED: 4,
}
UNKNOWN_STATUS_PRIORITY = 5


@dataclass
class ProcedureFilters:
    """Filters for procedure queries."""
    search_term: Optional[str] = None
    status: Optional[ProcedureStatus] = None
    destination: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    email: Optional[str] = None
    include_deleted: bool = True


@dataclass
class ProcedureOverview:
    """Aggregate statistics over a set of procedures."""
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_destination: Dict[str, int] = field(default_factory=dict)


def matches_search(procedure: Procedure, search_term: str) -> bool:
    """Case-insensitive match on applicant, destination and field of study."""
    needle = search_term.strip().casefold()
    if not needle:
        return True

    haystack = [
        procedure.first_name,
        procedure.last_name,
        procedure.full_name,
        procedure.email,
        procedure.destination.display,
    ]
    if procedure.field_of_study is not None:
        haystack.append(procedure.field_of_study.display)

    return any(needle in value.casefold() for value in haystack if value)


def filter_procedures(procedures: Sequence[Procedure], filters: ProcedureFilters) -> List[Procedure]:
    """
    Apply filters to a procedure list.

    Args:
        procedures: Procedures to filter
        filters: Filter criteria, unset criteria match everything

    Returns:
        Matching procedures in their original order
    """
    filtered = list(procedures)

    if not filters.include_deleted:
        filtered = [p for p in filtered if not p.is_deleted]

    if filters.status:
        filtered = [p for p in filtered if p.status == filters.status]

    if filters.destination:
        destination = filters.destination.strip().casefold()
        filtered = [p for p in filtered if p.destination.display.casefold() == destination]

    if filters.email:
        email = filters.email.strip().lower()
        filtered = [p for p in filtered if p.email == email]

    if filters.date_from:
        date_from = ensure_aware(filters.date_from)
        filtered = [p for p in filtered if p.created_at >= date_from]

    if filters.date_to:
        date_to = ensure_aware(filters.date_to)
        filtered = [p for p in filtered if p.created_at <= date_to]

    if filters.search_term:
        filtered = [p for p in filtered if matches_search(p, filters.search_term)]

    return filtered


def _status_rank(status: Union[ProcedureStatus, str, None]) -> int:
    if not isinstance(status, ProcedureStatus):
        try:
            status = ProcedureStatus(status)
        except ValueError:
            return UNKNOWN_STATUS_PRIORITY
    return STATUS_PRIORITY.get(status, UNKNOWN_STATUS_PRIORITY)


_SORT_KEYS = {
    ProcedureSortKey.CREATED_AT: lambda p: p.created_at,
    ProcedureSortKey.UPDATED_AT: lambda p: p.updated_at,
    ProcedureSortKey.STATUS: lambda p: _status_rank(p.status),
    ProcedureSortKey.DESTINATION: lambda p: p.destination.display.casefold(),
}


def sort_procedures(
    procedures: Sequence[Procedure],
    key: ProcedureSortKey = ProcedureSortKey.CREATED_AT,
    direction: SortDirection = SortDirection.DESC
) -> List[Procedure]:
    """
    Sort procedures by the given key.

    The sort is stable in both directions: procedures with equal keys keep
    their relative order.
    """
    return sorted(
        procedures,
        key=_SORT_KEYS[ProcedureSortKey(key)],
        reverse=SortDirection(direction) == SortDirection.DESC
    )


def summarize_procedures(procedures: Sequence[Procedure]) -> ProcedureOverview:
    """Count procedures per aggregate status and per destination."""
    status_counts = Counter(p.status for p in procedures)
    destination_counts = Counter(p.destination.display for p in procedures)

    by_status = {
        status.value: status_counts.get(status, 0)
        for status in sorted(ProcedureStatus, key=_status_rank)
    }

    return ProcedureOverview(
        total=len(procedures),
        by_status=by_status,
        by_destination=dict(destination_counts.most_common())
    )


def mask_email(email: Optional[str]) -> str:
    """Mask an email address for logging."""
    if not email or "@" not in email:
        return "***"
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        return f"{local}***@{domain}"
    return f"{local[:2]}{'*' * (len(local) - 2)}@{domain}"


def mask_id(value: Optional[str]) -> str:
    """Mask an identifier for logging."""
    if not value or len(value) <= 8:
        return "***"
    return f"{value[:4]}***{value[-4:]}"


def _step_reference(step: Optional[Step]) -> Optional[StepProgressResponse]:
    if step is None:
        return None
    return StepProgressResponse(
        name=step.name.value,
        label=display_name(step.name),
        status=step.status.value
    )


def progress_to_dict(progress: ProcedureProgress) -> Dict[str, Any]:
    """Transform derived progress to its API representation."""
    return ProgressResponse(
        completed_count=progress.completed_count,
        total_steps=progress.total_steps,
        percentage=progress.percentage,
        current_step=_step_reference(progress.current_step),
        next_step=_step_reference(progress.next_step),
        aggregate_status=progress.aggregate_status.value
    ).model_dump()


def step_to_dict(step: Step) -> Dict[str, Any]:
    """Transform a step to its API representation with display data."""
    data = step.model_dump(mode="json")
    data["display"] = {
        "label": display_name(step.name),
        "description": display_description(step.name),
        "status_label": step_status_label(step.status),
        "color": step_status_color(step.status)._asdict(),
    }
    return data


def procedure_to_dict(procedure: Procedure, include_steps: bool = True) -> Dict[str, Any]:
    """
    Transform a procedure to its API representation.

    Derived fields (progress, cancellation eligibility, display tokens) are
    computed here and never stored.
    """
    data = procedure.model_dump(mode="json", exclude={"steps", "destination", "field_of_study"})
    data["destination"] = procedure.destination.display
    data["destination_kind"] = procedure.destination.kind
    data["field_of_study"] = procedure.field_of_study.display if procedure.field_of_study else None
    data["full_name"] = procedure.full_name
    data["progress"] = progress_to_dict(calculate_progress(procedure.steps))
    data["can_cancel"] = can_cancel_procedure(procedure)
    data["display"] = {
        "status_label": procedure_status_label(procedure.status),
        "color": procedure_status_color(procedure.status)._asdict(),
    }
    # steps a cancellation would close, shown in the confirmation dialog
    data["display"]["cancellation_impact"] = [
        _step_reference(step).model_dump() for step in cancellation_impact(procedure)
    ] if data["can_cancel"] else []

    if include_steps:
        data["steps"] = [step_to_dict(step) for step in procedure.steps]

    return data


def overview_to_dict(overview: ProcedureOverview) -> Dict[str, Any]:
    return OverviewResponse(
        total=overview.total,
        by_status=overview.by_status,
        by_destination=overview.by_destination
    ).model_dump()
