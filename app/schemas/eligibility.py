"""
Tipos del motor de elegibilidad — entradas y salidas inmutables.

CatalogEntry: una dosis del esquema oficial.
DoseRecord: una dosis ya aplicada a un niño.
Obligation: clasificación de una CatalogEntry para un niño en una fecha dada.
"""

import enum
from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


# ── Entradas ───────────────────────────────────────────

class CatalogEntry(BaseModel):
    vaccine_id: UUID
    dose_number: int = Field(..., ge=1)
    target_age_days: int = Field(..., ge=0)
    min_age_days: int | None = Field(None, ge=0)
    max_age_days: int | None = Field(None, ge=0)
    min_interval_days: int | None = Field(
        None, ge=0, description="Días mínimos desde la dosis anterior de la serie"
    )
    is_booster: bool = False

    # Descriptivos (no intervienen en el cálculo)
    vaccine_code: str | None = None
    vaccine_name: str | None = None
    age_description: str | None = None

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[UUID, int]:
        return (self.vaccine_id, self.dose_number)

    @property
    def label(self) -> str:
        return self.vaccine_name or self.vaccine_code or str(self.vaccine_id)


class DoseRecord(BaseModel):
    vaccine_id: UUID
    dose_number: int = Field(..., ge=1)
    application_date: date

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[UUID, int]:
        return (self.vaccine_id, self.dose_number)


# ── Salidas ────────────────────────────────────────────

class ObligationState(str, enum.Enum):
    SATISFIED = "satisfied"
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    SCHEDULED = "scheduled"


class Obligation(BaseModel):
    vaccine_id: UUID
    dose_number: int
    state: ObligationState
    target_date: date
    earliest_date: date = Field(
        ..., description="Fecha mínima permitida (edad mínima e intervalo)"
    )
    max_date: date | None = None
    days_from_target: int | None = Field(
        None, description="Negativo = antes de la fecha objetivo; None si está cumplida"
    )
    application_date: date | None = None
    is_booster: bool = False
    blocked_by_previous_dose: bool = False

    vaccine_code: str | None = None
    vaccine_name: str | None = None
    age_description: str | None = None

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[UUID, int]:
        return (self.vaccine_id, self.dose_number)

    @property
    def label(self) -> str:
        return self.vaccine_name or self.vaccine_code or str(self.vaccine_id)


class DiagnosticKind(str, enum.Enum):
    CATALOG_INCONSISTENCY = "catalog_inconsistency"
    DUPLICATE_CATALOG_ENTRY = "duplicate_catalog_entry"
    INVALID_DOSE_RECORD = "invalid_dose_record"
    DUPLICATE_DOSE_RECORD = "duplicate_dose_record"


class Diagnostic(BaseModel):
    """Problema de calidad de datos detectado durante la evaluación."""
    kind: DiagnosticKind
    vaccine_id: UUID
    dose_number: int
    detail: str

    model_config = {"frozen": True}


class EvaluationResult(BaseModel):
    obligations: list[Obligation] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    def by_state(self, state: ObligationState) -> list[Obligation]:
        return [o for o in self.obligations if o.state == state]


# ── Completitud ────────────────────────────────────────

class SchemeStatus(str, enum.Enum):
    """Estado general del esquema del niño."""
    COMPLETO = "completo"
    EN_PROGRESO = "en_progreso"
    INCOMPLETO = "incompleto"
    ATRASADO = "atrasado"


class CertificateSummary(BaseModel):
    """Datos que consume el generador de certificados (sin formato)."""
    child_id: UUID
    issued_on: date
    valid_until: date
    completeness: Decimal
    status: SchemeStatus
    applied: list[Obligation]
    overdue: list[Obligation]
