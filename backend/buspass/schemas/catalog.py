"""
Bus Pass Backend — Pass Catalog Schemas
=======================================

What:  Request/response models for pass types.
Who:   Admin catalog routes (create, update, list) and passenger pass-type list.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PassTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    duration_days: int = Field(ge=0, le=3650, description="Validity length in days")
    per_day_limit: int = Field(default=2, ge=1, le=100, description="Scans allowed per calendar day")
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class PassTypeUpdate(BaseModel):
    """Partial update: only the fields that are sent are changed."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    duration_days: Optional[int] = Field(default=None, ge=0, le=3650)
    per_day_limit: Optional[int] = Field(default=None, ge=1, le=100)
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class PassTypeResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    duration_days: int
    per_day_limit: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
