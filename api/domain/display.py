# SPDX-License-Identifier: Apache-2.0

"""
Display mapping for procedure and step statuses.

Lookup tables translating status and step enums to labels and colour tokens
used by the agency front office.
"""

from enum import Enum
from typing import Dict, NamedTuple, Optional, Type, TypeVar, Union

from models.enums import StepName, StepStatus, ProcedureStatus

E = TypeVar('E', bound=Enum)


class StatusColor(NamedTuple):
    """Colour tokens for a status badge."""
    background: str
    text: str
    border: str
    light_background: str


NEUTRAL_COLOR = StatusColor("bg-gray-100", "text-gray-700", "border-gray-200", "bg-gray-50")

PROCEDURE_STATUS_COLORS: Dict[ProcedureStatus, StatusColor] = {
    ProcedureStatus.IN_PROGRESS: StatusColor("bg-blue-100", "text-blue-700", "border-blue-200", "bg-blue-50"),
    ProcedureStatus.COMPLETED: StatusColor("bg-green-100", "text-green-700", "border-green-200", "bg-green-50"),
    ProcedureStatus.REJECTED: StatusColor("bg-orange-100", "text-orange-700", "border-orange-200", "bg-orange-50"),
    ProcedureStatus.CANCELLED: StatusColor("bg-gray-200", "text-gray-700", "border-gray-300", "bg-gray-100"),
}

STEP_STATUS_COLORS: Dict[StepStatus, StatusColor] = {
    StepStatus.PENDING: StatusColor("bg-yellow-100", "text-yellow-700", "border-yellow-200", "bg-yellow-50"),
    StepStatus.IN_PROGRESS: StatusColor("bg-blue-100", "text-blue-700", "border-blue-200", "bg-blue-50"),
    StepStatus.COMPLETED: StatusColor("bg-green-100", "text-green-700", "border-green-200", "bg-green-50"),
    StepStatus.REJECTED: StatusColor("bg-orange-100", "text-orange-700", "border-orange-200", "bg-orange-50"),
    StepStatus.CANCELLED: StatusColor("bg-gray-200", "text-gray-600", "border-gray-300", "bg-gray-100"),
}

STEP_DISPLAY_NAMES: Dict[StepName, str] = {
    StepName.ADMISSION_REQUEST: "Demande d'admission",
    StepName.VISA_REQUEST: "Demande de visa",
    StepName.TRAVEL_PREPARATION: "Préparatifs de voyage",
}

STEP_DESCRIPTIONS: Dict[StepName, str] = {
    StepName.ADMISSION_REQUEST: (
        "Constitution du dossier de candidature et dépôt auprès des "
        "établissements d'enseignement supérieur choisis."
    ),
    StepName.VISA_REQUEST: (
        "Préparation des justificatifs et dépôt de la demande de visa "
        "étudiant auprès du consulat."
    ),
    StepName.TRAVEL_PREPARATION: (
        "Organisation du départ : billet d'avion, logement, assurance "
        "et formalités d'arrivée."
    ),
}

PROCEDURE_STATUS_LABELS: Dict[ProcedureStatus, str] = {
    status: status.value for status in ProcedureStatus
}

STEP_STATUS_LABELS: Dict[StepStatus, str] = {
    status: status.value for status in StepStatus
}


def _assert_exhaustive(table: Dict, enum_cls: Type[Enum], table_name: str) -> None:
    missing = [member.name for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(f"{table_name} is missing entries for: {', '.join(missing)}")


_assert_exhaustive(PROCEDURE_STATUS_COLORS, ProcedureStatus, "PROCEDURE_STATUS_COLORS")
_assert_exhaustive(STEP_STATUS_COLORS, StepStatus, "STEP_STATUS_COLORS")
_assert_exhaustive(STEP_DISPLAY_NAMES, StepName, "STEP_DISPLAY_NAMES")
_assert_exhaustive(STEP_DESCRIPTIONS, StepName, "STEP_DESCRIPTIONS")


def _coerce(enum_cls: Type[E], value: Union[E, str, None]) -> Optional[E]:
    """Convert a raw value to an enum member, None when unknown."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def procedure_status_color(status: Union[ProcedureStatus, str, None]) -> StatusColor:
    """Colour tokens for a procedure status, neutral gray when unknown."""
    member = _coerce(ProcedureStatus, status)
    return PROCEDURE_STATUS_COLORS.get(member, NEUTRAL_COLOR)


def step_status_color(status: Union[StepStatus, str, None]) -> StatusColor:
    """Colour tokens for a step status, neutral gray when unknown."""
    member = _coerce(StepStatus, status)
    return STEP_STATUS_COLORS.get(member, NEUTRAL_COLOR)


def display_name(step_name: Union[StepName, str, None]) -> str:
    """Human-readable step name."""
    member = _coerce(StepName, step_name)
    if member is None:
        return "" if step_name is None else str(step_name)
    return STEP_DISPLAY_NAMES[member]


def display_description(step_name: Union[StepName, str, None]) -> str:
    """Human-readable step description."""
    member = _coerce(StepName, step_name)
    if member is None:
        return ""
    return STEP_DESCRIPTIONS[member]


def procedure_status_label(status: Union[ProcedureStatus, str, None]) -> str:
    member = _coerce(ProcedureStatus, status)
    if member is None:
        return "" if status is None else str(status)
    return PROCEDURE_STATUS_LABELS[member]


def step_status_label(status: Union[StepStatus, str, None]) -> str:
    member = _coerce(StepStatus, status)
    if member is None:
        return "" if status is None else str(status)
    return STEP_STATUS_LABELS[member]
