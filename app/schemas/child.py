"""
Schemas para Niños.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ChildCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    birth_date: date
    guardian_name: str | None = Field(None, max_length=200)
    guardian_phone: str | None = Field(None, max_length=20)


class ChildResponse(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    birth_date: date
    guardian_name: str | None = None
    guardian_phone: str | None = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
