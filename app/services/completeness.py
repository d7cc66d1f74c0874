"""
Completitud del esquema — porcentaje de dosis exigibles ya aplicadas.
"""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from dateutil.relativedelta import relativedelta

from app.schemas.eligibility import (
    CatalogEntry,
    CertificateSummary,
    DoseRecord,
    EvaluationResult,
    Obligation,
    ObligationState,
    SchemeStatus,
)
from app.services.eligibility import filter_history
from app.services.schedule_catalog import split_catalog

_HUNDRED = Decimal("100")
_TWO_PLACES = Decimal("0.01")

COMPLETE_THRESHOLD = Decimal("95")
IN_PROGRESS_THRESHOLD = Decimal("80")


def completeness(
    history: Iterable[DoseRecord],
    catalog: Iterable[CatalogEntry],
    birth_date: date,
    today: date,
) -> Decimal:
    """
    Porcentaje (0–100, dos decimales) de dosis exigibles ya aplicadas.

    Una dosis es exigible cuando el niño alcanzó su edad mínima (o la edad
    objetivo si no tiene mínima). Sin dosis exigibles el esquema está
    completo por vacuidad: 100.00.
    """
    entries, _ = split_catalog(catalog)
    applied, _ = filter_history(birth_date, today, history)

    applicable = [
        entry for entry in entries
        if birth_date + timedelta(days=_min_age(entry)) <= today
    ]
    if not applicable:
        return _HUNDRED.quantize(_TWO_PLACES)

    satisfied = sum(1 for entry in applicable if entry.key in applied)
    percentage = (_HUNDRED * satisfied / len(applicable)).quantize(
        _TWO_PLACES, rounding=ROUND_HALF_UP
    )
    return min(max(percentage, Decimal("0.00")), _HUNDRED.quantize(_TWO_PLACES))


def _min_age(entry: CatalogEntry) -> int:
    return entry.min_age_days if entry.min_age_days is not None else entry.target_age_days


def scheme_status(obligations: Iterable[Obligation], percentage: Decimal) -> SchemeStatus:
    """Estado general: cualquier dosis vencida manda sobre el porcentaje."""
    if any(o.state == ObligationState.OVERDUE for o in obligations):
        return SchemeStatus.ATRASADO
    if percentage >= COMPLETE_THRESHOLD:
        return SchemeStatus.COMPLETO
    if percentage >= IN_PROGRESS_THRESHOLD:
        return SchemeStatus.EN_PROGRESO
    return SchemeStatus.INCOMPLETO


def build_certificate_summary(
    child_id: UUID,
    evaluation: EvaluationResult,
    percentage: Decimal,
    today: date,
    validity_months: int = 12,
) -> CertificateSummary:
    applied = sorted(
        evaluation.by_state(ObligationState.SATISFIED),
        key=lambda o: (o.application_date, o.dose_number),
    )
    overdue = sorted(
        evaluation.by_state(ObligationState.OVERDUE),
        key=lambda o: -(o.days_from_target or 0),
    )
    return CertificateSummary(
        child_id=child_id,
        issued_on=today,
        valid_until=today + relativedelta(months=validity_months),
        completeness=percentage,
        status=scheme_status(evaluation.obligations, percentage),
        applied=applied,
        overdue=overdue,
    )
