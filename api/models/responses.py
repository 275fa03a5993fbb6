# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class StepProgressResponse(BaseModel):
    """Compact step reference inside a progress block."""

    name: str = Field(..., description="Step name")
    label: str = Field(..., description="Display name")
    status: str = Field(..., description="Step status")


class ProgressResponse(BaseModel):
    """Derived progress of a procedure."""

    completed_count: int = Field(..., description="Number of completed steps")
    total_steps: int = Field(..., description="Number of steps")
    percentage: int = Field(..., description="Completion percentage")
    current_step: Optional[StepProgressResponse] = Field(None, description="Step in progress")
    next_step: Optional[StepProgressResponse] = Field(None, description="Step after the current one")
    aggregate_status: str = Field(..., description="Derived progress label")


class OverviewResponse(BaseModel):
    """Procedure statistics."""

    total: int = Field(..., description="Number of procedures")
    by_status: Dict[str, int] = Field(default_factory=dict, description="Count per aggregate status")
    by_destination: Dict[str, int] = Field(default_factory=dict, description="Count per destination")


class ErrorResponse(BaseModel):
    """RFC 7807 error response."""

    type: str = Field(..., description="Problem type URI")
    title: str = Field(..., description="Short summary")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Human-readable explanation")
    instance: str = Field(..., description="Request path")
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Validation errors")
