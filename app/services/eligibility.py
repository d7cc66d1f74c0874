"""
Motor de elegibilidad — qué dosis están cumplidas, vencidas, próximas o programadas.

Función pura: recibe fecha de nacimiento, fecha de evaluación, catálogo e
historial; no consulta la base de datos ni el reloj del sistema.
"""

import logging
from datetime import date, timedelta
from typing import Iterable
from uuid import UUID

from dateutil.relativedelta import relativedelta

from app.schemas.eligibility import (
    CatalogEntry,
    Diagnostic,
    DiagnosticKind,
    DoseRecord,
    EvaluationResult,
    Obligation,
    ObligationState,
)
from app.services.schedule_catalog import group_by_vaccine, split_catalog

logger = logging.getLogger(__name__)

DUE_SOON_WINDOW_DAYS = 30
OVERDUE_GRACE_DAYS = 30

_URGENCY_ORDER = {
    ObligationState.OVERDUE: 0,
    ObligationState.DUE_SOON: 1,
    ObligationState.SCHEDULED: 2,
    ObligationState.SATISFIED: 3,
}


# ── Historial ─────────────────────────────────────────

def filter_history(
    birth_date: date,
    today: date,
    history: Iterable[DoseRecord],
) -> tuple[dict[tuple[UUID, int], DoseRecord], list[Diagnostic]]:
    """
    Indexa el historial por (vacuna, dosis) descartando registros inválidos.

    Un registro fuera de [birth_date, today] se trata como inexistente. Si hay
    registros repetidos para la misma dosis se conserva el más antiguo.
    """
    valid: dict[tuple[UUID, int], DoseRecord] = {}
    diagnostics: list[Diagnostic] = []

    for record in history:
        if record.application_date < birth_date or record.application_date > today:
            diagnostics.append(Diagnostic(
                kind=DiagnosticKind.INVALID_DOSE_RECORD,
                vaccine_id=record.vaccine_id,
                dose_number=record.dose_number,
                detail=(
                    f"fecha de aplicación {record.application_date.isoformat()} fuera "
                    f"del rango {birth_date.isoformat()} a {today.isoformat()}"
                ),
            ))
            continue

        current = valid.get(record.key)
        if current is not None:
            diagnostics.append(Diagnostic(
                kind=DiagnosticKind.DUPLICATE_DOSE_RECORD,
                vaccine_id=record.vaccine_id,
                dose_number=record.dose_number,
                detail="dosis registrada más de una vez, se usa la fecha más antigua",
            ))
            if record.application_date >= current.application_date:
                continue
        valid[record.key] = record

    return valid, diagnostics


# ── Clasificación ─────────────────────────────────────

def classify(
    today: date,
    earliest_date: date,
    target_date: date,
    max_date: date | None,
    due_soon_days: int = DUE_SOON_WINDOW_DAYS,
    grace_days: int = OVERDUE_GRACE_DAYS,
) -> ObligationState:
    """Clasifica una dosis no aplicada y alcanzable."""
    if today < earliest_date:
        return ObligationState.SCHEDULED
    if max_date is not None and today > max_date:
        return ObligationState.OVERDUE
    if today >= target_date:
        if (today - target_date).days > grace_days:
            return ObligationState.OVERDUE
        return ObligationState.DUE_SOON
    if (target_date - today).days <= due_soon_days:
        return ObligationState.DUE_SOON
    return ObligationState.SCHEDULED


def _pending_obligation(
    entry: CatalogEntry,
    birth_date: date,
    today: date,
    previous: DoseRecord | None,
    blocked: bool,
    due_soon_days: int,
    grace_days: int,
) -> Obligation:
    target_date = birth_date + timedelta(days=entry.target_age_days)
    min_age = entry.min_age_days if entry.min_age_days is not None else entry.target_age_days
    earliest_date = birth_date + timedelta(days=min_age)
    if previous is not None and entry.min_interval_days is not None:
        by_interval = previous.application_date + timedelta(days=entry.min_interval_days)
        earliest_date = max(earliest_date, by_interval)
    max_date = None
    if entry.max_age_days is not None:
        max_date = birth_date + timedelta(days=entry.max_age_days)

    if blocked:
        # La serie no admite saltos: sin la dosis anterior no hay urgencia
        state = ObligationState.SCHEDULED
    else:
        state = classify(
            today, earliest_date, target_date, max_date,
            due_soon_days=due_soon_days, grace_days=grace_days,
        )

    return Obligation(
        vaccine_id=entry.vaccine_id,
        dose_number=entry.dose_number,
        state=state,
        target_date=target_date,
        earliest_date=earliest_date,
        max_date=max_date,
        days_from_target=(today - target_date).days,
        is_booster=entry.is_booster,
        blocked_by_previous_dose=blocked,
        vaccine_code=entry.vaccine_code,
        vaccine_name=entry.vaccine_name,
        age_description=entry.age_description,
    )


def _satisfied_obligation(
    entry: CatalogEntry,
    birth_date: date,
    record: DoseRecord,
) -> Obligation:
    min_age = entry.min_age_days if entry.min_age_days is not None else entry.target_age_days
    return Obligation(
        vaccine_id=entry.vaccine_id,
        dose_number=entry.dose_number,
        state=ObligationState.SATISFIED,
        target_date=birth_date + timedelta(days=entry.target_age_days),
        earliest_date=birth_date + timedelta(days=min_age),
        max_date=(
            birth_date + timedelta(days=entry.max_age_days)
            if entry.max_age_days is not None else None
        ),
        days_from_target=None,
        application_date=record.application_date,
        is_booster=entry.is_booster,
        vaccine_code=entry.vaccine_code,
        vaccine_name=entry.vaccine_name,
        age_description=entry.age_description,
    )


def evaluate(
    birth_date: date,
    today: date,
    catalog: Iterable[CatalogEntry],
    history: Iterable[DoseRecord],
    *,
    due_soon_days: int = DUE_SOON_WINDOW_DAYS,
    grace_days: int = OVERDUE_GRACE_DAYS,
) -> EvaluationResult:
    """
    Evalúa el esquema de un niño en la fecha `today`.

    Cada serie se recorre por número de dosis. Una dosis aplicada queda
    SATISFIED sin importar si fue temprana o tardía. Una dosis cuya anterior no
    está cumplida queda SCHEDULED y marcada como bloqueada, aunque su fecha
    objetivo ya haya pasado.

    Niños con fecha de nacimiento futura o catálogos vacíos producen una lista
    vacía; las entradas inconsistentes y los registros inválidos se reportan en
    `diagnostics` en lugar de abortar la evaluación.
    """
    if birth_date > today:
        return EvaluationResult()

    entries, diagnostics = split_catalog(catalog)
    applied, history_diagnostics = filter_history(birth_date, today, history)
    diagnostics.extend(history_diagnostics)

    obligations: list[Obligation] = []
    for series in group_by_vaccine(entries).values():
        previous: DoseRecord | None = None
        blocked = False
        for entry in series:
            record = applied.get(entry.key)
            if record is not None:
                obligations.append(_satisfied_obligation(entry, birth_date, record))
            else:
                obligations.append(_pending_obligation(
                    entry, birth_date, today, previous, blocked,
                    due_soon_days, grace_days,
                ))
                blocked = True
            previous = record

    if diagnostics:
        logger.warning(
            f"Evaluación con {len(diagnostics)} diagnósticos de calidad de datos"
        )

    return EvaluationResult(obligations=obligations, diagnostics=diagnostics)


# ── Utilidades ────────────────────────────────────────

def sort_by_urgency(obligations: Iterable[Obligation]) -> list[Obligation]:
    """Vencidas primero (las más atrasadas arriba), luego próximas y programadas."""
    return sorted(
        obligations,
        key=lambda o: (
            _URGENCY_ORDER[o.state],
            -(o.days_from_target or 0),
            o.target_date,
        ),
    )


def age_in_days(birth_date: date, today: date) -> int:
    return (today - birth_date).days


def describe_age(birth_date: date, today: date) -> str:
    """Edad legible: "1 año 3 meses", "2 meses 5 días", "recién nacido"."""
    if today < birth_date:
        return "sin nacer"
    delta = relativedelta(today, birth_date)
    parts = []
    if delta.years:
        parts.append(f"{delta.years} año" + ("s" if delta.years != 1 else ""))
    if delta.months:
        parts.append(f"{delta.months} mes" + ("es" if delta.months != 1 else ""))
    if delta.days and not delta.years:
        parts.append(f"{delta.days} día" + ("s" if delta.days != 1 else ""))
    return " ".join(parts) or "recién nacido"
