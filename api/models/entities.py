# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the procedure tracking platform.

Field aliases match the stored document keys so MongoDB documents and API
payloads validate directly into these models.
"""

import re
from datetime import datetime
from typing import List, Optional, Dict, Any, Tuple, Union, Literal, Annotated
from pydantic import BaseModel, Field, ConfigDict, field_validator, field_serializer, model_validator
from bson import ObjectId
from .base import BaseEntity, utcnow, ensure_aware
from .enums import (
    StepName,
    StepStatus,
    ProcedureStatus,
    STEP_ORDER,
    TERMINAL_STEP_STATUSES,
    BLOCKING_STEP_STATUSES,
)

# Select-box value meaning "see the free-text override"
OTHER_SENTINEL = "Autre"

APPOINTMENT_COMPLETED = "Terminé"
ADMIN_OPINION_FAVORABLE = "Favorable"

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


class PrimaryValue(BaseModel):
    """Classification picked from the predefined list."""

    kind: Literal["primary"] = "primary"
    value: str = Field(..., description="Selected value")

    @property
    def display(self) -> str:
        return self.value

    def to_fields(self) -> Tuple[str, Optional[str]]:
        return self.value, None


class OtherValue(BaseModel):
    """Classification typed by the applicant after choosing 'Autre'."""

    kind: Literal["other"] = "other"
    text: str = Field(..., min_length=1, description="Free-text value")

    @property
    def display(self) -> str:
        return self.text

    def to_fields(self) -> Tuple[str, Optional[str]]:
        return OTHER_SENTINEL, self.text


ClassifiedValue = Annotated[Union[PrimaryValue, OtherValue], Field(discriminator="kind")]


def classify_value(primary: Optional[str], other: Optional[str] = None) -> Union[PrimaryValue, OtherValue]:
    """
    Build a classified value from a select value and its optional override.

    Raises:
        ValueError: if 'Autre' is selected without an override text
    """
    primary = (primary or "").strip()
    other = (other or "").strip()

    if primary == OTHER_SENTINEL:
        if not other:
            raise ValueError("A specific value is required when 'Autre' is selected")
        return OtherValue(text=other)

    return PrimaryValue(value=primary)


def _fold_classified(data: Dict[str, Any], name: str, alias: str, override_keys: Tuple[str, ...]) -> None:
    """Replace a (primary, override) key pair in raw input by a classified value."""
    key = name if name in data else alias if alias in data else None
    override = None
    for override_key in override_keys:
        if override_key in data:
            override = data.pop(override_key)

    if key is None:
        return

    raw = data[key]
    if isinstance(raw, (PrimaryValue, OtherValue)):
        data[key] = raw.model_dump()
        return
    if raw is None or isinstance(raw, dict):
        return

    data[key] = classify_value(str(raw), override).model_dump()


class Step(BaseModel):
    """A single phase of a procedure."""

    model_config = ConfigDict(populate_by_name=True)

    name: StepName = Field(..., alias="nom", description="Phase name")
    status: StepStatus = Field(default=StepStatus.PENDING, alias="statut", description="Step status")
    rejection_reason: Optional[str] = Field(None, alias="raisonRefus", description="Reason for rejection")
    created_at: datetime = Field(default_factory=utcnow, alias="dateCreation", description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utcnow, alias="dateMaj", description="Last update timestamp")
    completed_at: Optional[datetime] = Field(None, alias="dateCompletion", description="Completion timestamp")

    @field_validator('created_at', 'updated_at', 'completed_at')
    @classmethod
    def normalize_timestamps(cls, v):
        """Normalize timestamps to UTC."""
        return ensure_aware(v)

    @model_validator(mode='after')
    def normalize_completion(self):
        """Keep completed_at present exactly when the step is completed."""
        if self.status != StepStatus.COMPLETED:
            self.completed_at = None
        elif self.completed_at is None:
            self.completed_at = self.updated_at
        return self

    @field_serializer('name', 'status')
    def serialize_enum(self, v):
        return v.value

    def is_terminal(self) -> bool:
        """Check if the step reached a final status."""
        return self.status in TERMINAL_STEP_STATUSES

    def is_blocking(self) -> bool:
        """Check if the step was rejected or cancelled."""
        return self.status in BLOCKING_STEP_STATUSES


class AppointmentSummary(BaseModel):
    """Embedded summary of the appointment a procedure originates from."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", description="Appointment ID")
    first_name: Optional[str] = Field(None, alias="firstName", description="Applicant first name")
    last_name: Optional[str] = Field(None, alias="lastName", description="Applicant last name")
    date: Optional[str] = Field(None, description="Appointment date (YYYY-MM-DD)")
    time: Optional[str] = Field(None, description="Appointment time slot")
    status: Optional[str] = Field(None, description="Appointment status")
    admin_opinion: Optional[str] = Field(None, alias="avisAdmin", description="Administrative opinion")

    @field_validator('id', mode='before')
    @classmethod
    def coerce_object_id(cls, v):
        if isinstance(v, ObjectId):
            return str(v)
        return v


class Appointment(BaseModel):
    """Approved appointment used as the source of a new procedure."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", description="Appointment ID")
    first_name: str = Field(..., alias="firstName", max_length=50)
    last_name: str = Field(..., alias="lastName", max_length=50)
    email: str = Field(..., description="Applicant email")
    phone: str = Field(..., alias="telephone", description="Applicant phone number")
    destination: str = Field(..., max_length=100)
    destination_other: Optional[str] = Field(None, alias="destinationAutre", max_length=100)
    field_of_study: str = Field(..., alias="filiere", max_length=100)
    field_of_study_other: Optional[str] = Field(None, alias="filiereAutre", max_length=100)
    education_level: str = Field(..., alias="niveauEtude")
    date: Optional[str] = Field(None)
    time: Optional[str] = Field(None)
    status: str = Field(..., description="Appointment status")
    admin_opinion: Optional[str] = Field(None, alias="avisAdmin")

    @field_validator('id', mode='before')
    @classmethod
    def coerce_object_id(cls, v):
        if isinstance(v, ObjectId):
            return str(v)
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if not re.match(EMAIL_PATTERN, v.strip().lower()):
            raise ValueError('Invalid email format')
        return v.strip().lower()

    def summary(self) -> AppointmentSummary:
        return AppointmentSummary(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            date=self.date,
            time=self.time,
            status=self.status,
            admin_opinion=self.admin_opinion
        )


class Procedure(BaseEntity):
    """Tracked study-abroad application made of ordered steps."""

    appointment_id: Optional[str] = Field(None, alias="rendezVousId", description="Originating appointment ID")
    first_name: str = Field(..., alias="prenom", min_length=1, max_length=50, description="Applicant first name")
    last_name: str = Field(..., alias="nom", min_length=1, max_length=50, description="Applicant last name")
    email: str = Field(..., description="Applicant email")
    phone: Optional[str] = Field(None, alias="telephone", description="Applicant phone number")
    destination: ClassifiedValue = Field(..., description="Study destination")
    field_of_study: Optional[ClassifiedValue] = Field(None, alias="filiere", description="Field of study")
    education_level: Optional[str] = Field(None, alias="niveauEtude", description="Education level")
    status: ProcedureStatus = Field(default=ProcedureStatus.IN_PROGRESS, alias="statut", description="Aggregate status")
    steps: List[Step] = Field(default_factory=list, description="Ordered procedure steps")
    rejection_reason: Optional[str] = Field(None, alias="raisonRejet", description="Procedure-level rejection reason")
    completed_at: Optional[datetime] = Field(None, alias="dateCompletion", description="Completion timestamp")
    is_deleted: bool = Field(default=False, alias="isDeleted", description="Soft delete flag")
    deleted_at: Optional[datetime] = Field(None, alias="deletedAt", description="Soft delete timestamp")
    deletion_reason: Optional[str] = Field(None, alias="deletionReason", description="Soft delete reason")
    linked_appointment: Optional[AppointmentSummary] = Field(
        None, alias="rendezVous", description="Originating appointment summary"
    )

    @model_validator(mode='before')
    @classmethod
    def normalize_document(cls, data):
        """Fold 'Autre' overrides and embedded appointment references."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        if "_id" in data and "id" not in data:
            data["id"] = data.pop("_id")

        _fold_classified(data, "destination", "destination", ("destinationAutre", "destination_other"))
        _fold_classified(data, "field_of_study", "filiere", ("filiereAutre", "field_of_study_other"))

        # A populated appointment reference carries the summary itself
        for key in ("rendezVousId", "appointment_id"):
            ref = data.get(key)
            if isinstance(ref, dict):
                data.setdefault("rendezVous", ref)
                data[key] = ref.get("_id") or ref.get("id")
            if isinstance(data.get(key), ObjectId):
                data[key] = str(data[key])

        return data

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if not re.match(EMAIL_PATTERN, v.strip().lower()):
            raise ValueError('Invalid email format')
        return v.strip().lower()

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()

    @field_validator('completed_at', 'deleted_at')
    @classmethod
    def normalize_optional_timestamps(cls, v):
        return ensure_aware(v)

    @field_validator('steps')
    @classmethod
    def validate_step_order(cls, v):
        """Steps follow the fixed phase order, one per phase."""
        names = [step.name for step in v]
        if len(set(names)) != len(names):
            raise ValueError('Each step can only appear once in a procedure')
        if names != list(STEP_ORDER[:len(names)]):
            raise ValueError(
                f"Steps must follow the phase order {[name.value for name in STEP_ORDER]}"
            )
        return v

    @field_serializer('status')
    def serialize_status(self, v):
        return v.value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def get_step(self, name: StepName) -> Optional[Step]:
        """Find a step by phase name."""
        for step in self.steps:
            if step.name == name:
                return step
        return None

    def step_index(self, name: StepName) -> int:
        for index, step in enumerate(self.steps):
            if step.name == name:
                return index
        return -1

    def all_steps_completed(self) -> bool:
        """Check if the procedure has steps and all of them are completed."""
        return bool(self.steps) and all(step.status == StepStatus.COMPLETED for step in self.steps)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the stored document shape."""
        document = self.model_dump(
            by_alias=True,
            exclude={"id", "destination", "field_of_study", "linked_appointment"}
        )
        document["_id"] = ObjectId(self.id) if ObjectId.is_valid(self.id) else self.id
        document["destination"], document["destinationAutre"] = self.destination.to_fields()
        if self.field_of_study is not None:
            document["filiere"], document["filiereAutre"] = self.field_of_study.to_fields()
        if self.appointment_id and ObjectId.is_valid(self.appointment_id):
            document["rendezVousId"] = ObjectId(self.appointment_id)
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Procedure":
        """Build a procedure from a stored document."""
        return cls.model_validate(document)
