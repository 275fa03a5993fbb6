# SPDX-License-Identifier: Apache-2.0

"""
Procedure progress derivation.

Pure functions computing completion, current/next step and cancellation
eligibility from a procedure and its ordered steps.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from models.entities import Procedure, Step
from models.enums import (
    StepStatus, ProgressStatus, FINAL_PROCEDURE_STATUSES, BLOCKING_STEP_STATUSES
)


@dataclass(frozen=True)
class ProcedureProgress:
    """Progress derived from a procedure's steps."""
    completed_count: int
    total_steps: int
    percentage: int
    current_step: Optional[Step] = None
    next_step: Optional[Step] = None
    aggregate_status: ProgressStatus = ProgressStatus.NOT_STARTED


def _round_percentage(completed: int, total: int) -> int:
    # Half-up rounding, 1/8 -> 13 rather than banker's 12
    return int(math.floor(completed * 100 / total + 0.5))


def calculate_progress(steps: Optional[Sequence[Step]]) -> ProcedureProgress:
    """
    Derive progress from an ordered step sequence.

    Args:
        steps: Steps in phase order (None or empty is allowed)

    Returns:
        ProcedureProgress with percentage, current/next step and aggregate status
    """
    steps = list(steps or [])
    total = len(steps)

    if total == 0:
        return ProcedureProgress(completed_count=0, total_steps=0, percentage=0)

    completed = sum(1 for step in steps if step.status == StepStatus.COMPLETED)

    current_index = next(
        (index for index, step in enumerate(steps) if step.status == StepStatus.IN_PROGRESS),
        None
    )
    current_step = steps[current_index] if current_index is not None else None
    next_step = None
    if current_index is not None and current_index + 1 < total:
        next_step = steps[current_index + 1]

    if completed == total:
        aggregate = ProgressStatus.COMPLETED
    elif any(step.status in BLOCKING_STEP_STATUSES for step in steps):
        aggregate = ProgressStatus.BLOCKED
    elif completed == 0:
        aggregate = ProgressStatus.NOT_STARTED
    else:
        aggregate = ProgressStatus.IN_PROGRESS

    return ProcedureProgress(
        completed_count=completed,
        total_steps=total,
        percentage=_round_percentage(completed, total),
        current_step=current_step,
        next_step=next_step,
        aggregate_status=aggregate
    )


def can_cancel_procedure(procedure: Procedure) -> bool:
    """
    Check whether the cancel action should be offered for a procedure.

    Advisory only; the cancel workflow re-checks it before any write.
    """
    if procedure.status in FINAL_PROCEDURE_STATUSES:
        return False

    if procedure.is_deleted:
        return False

    # Fully finished even if the aggregate status lags behind
    if procedure.all_steps_completed():
        return False

    return True


def cancellation_impact(procedure: Procedure) -> List[Step]:
    """Steps that a cancellation would mark as cancelled."""
    return [
        step for step in procedure.steps
        if step.status in (StepStatus.PENDING, StepStatus.IN_PROGRESS)
    ]
