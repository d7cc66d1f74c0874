"""
Schemas para Vacunación — Catálogo, esquema oficial, registro de dosis y estado del niño.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.schemas.eligibility import Diagnostic, Obligation, SchemeStatus


# ── Vaccine ────────────────────────────────────────────

class VaccineCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., max_length=200)
    description: str | None = None


class VaccineResponse(BaseModel):
    id: UUID
    code: str
    name: str
    description: str | None = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# ── ScheduleEntry ──────────────────────────────────────

class ScheduleEntryCreate(BaseModel):
    vaccine_id: UUID
    dose_number: int = Field(..., ge=1, le=10)
    target_age_days: int = Field(..., ge=0, description="Edad ideal en días")
    min_age_days: int | None = Field(None, ge=0)
    max_age_days: int | None = Field(None, ge=0)
    min_interval_days: int | None = Field(
        None, ge=0, description="Días mínimos desde la dosis anterior"
    )
    is_booster: bool = False
    age_description: str | None = Field(None, max_length=50)


class ScheduleEntryUpdate(BaseModel):
    target_age_days: int | None = Field(None, ge=0)
    min_age_days: int | None = Field(None, ge=0)
    max_age_days: int | None = Field(None, ge=0)
    min_interval_days: int | None = Field(None, ge=0)
    is_booster: bool | None = None
    age_description: str | None = Field(None, max_length=50)
    is_active: bool | None = None

    @field_validator("target_age_days", "is_booster", "is_active")
    @classmethod
    def reject_null(cls, v):
        """Omitir el campo lo deja igual; enviar null no es válido."""
        if v is None:
            raise ValueError("No puede ser nulo")
        return v


class ScheduleEntryResponse(BaseModel):
    id: UUID
    vaccine_id: UUID
    dose_number: int
    target_age_days: int
    min_age_days: int | None = None
    max_age_days: int | None = None
    min_interval_days: int | None = None
    is_booster: bool
    age_description: str | None = None
    catalog_version: str
    is_active: bool

    # Enriquecidos
    vaccine_code: str | None = None
    vaccine_name: str | None = None

    model_config = {"from_attributes": True}


# ── AdministeredDose ───────────────────────────────────

class DoseCreate(BaseModel):
    child_id: UUID
    vaccine_id: UUID
    dose_number: int = Field(..., ge=1)
    application_date: date
    lot_number: str | None = Field(None, max_length=50)
    health_center: str | None = Field(None, max_length=200)
    notes: str | None = None


class DoseResponse(BaseModel):
    id: UUID
    child_id: UUID
    vaccine_id: UUID
    dose_number: int
    application_date: date
    lot_number: str | None = None
    health_center: str | None = None
    notes: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DoseRegistrationResponse(BaseModel):
    """Dosis registrada + advertencias informativas de oportunidad."""
    dose: DoseResponse
    warnings: list[str] = Field(default=[], description="Dosis temprana, tardía o con intervalo corto")


# ── Estado del niño ────────────────────────────────────

class ChildVaccinationStatus(BaseModel):
    child_id: UUID
    evaluated_on: date
    age_days: int
    age_description: str
    completeness: Decimal
    status: SchemeStatus
    obligations: list[Obligation]
    diagnostics: list[Diagnostic] = Field(default=[])
