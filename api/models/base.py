# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and validation.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so stored and incoming values compare."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class BaseEntity(BaseModel):
    """Base entity with common fields for all domain objects."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        arbitrary_types_allowed=True
    )

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(
        default_factory=utcnow, alias="createdAt", description="Creation timestamp"
    )
    updated_at: datetime = Field(
        default_factory=utcnow, alias="updatedAt", description="Last update timestamp"
    )
    schema_version: int = Field(default=1, alias="schemaVersion", description="Schema version for migrations")

    @field_validator('id', mode='before')
    @classmethod
    def coerce_object_id(cls, v):
        """Accept raw ObjectId values coming from MongoDB."""
        if isinstance(v, ObjectId):
            return str(v)
        return v

    @field_validator('created_at', 'updated_at')
    @classmethod
    def normalize_timestamps(cls, v):
        """Normalize timestamps to UTC."""
        return ensure_aware(v)

    def touch(self, when: Optional[datetime] = None) -> None:
        """Update the last modification timestamp."""
        self.updated_at = when or utcnow()
