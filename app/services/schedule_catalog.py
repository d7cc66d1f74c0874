"""
Catálogo del esquema oficial de vacunación.

Validación de entradas del catálogo y definición del esquema nacional infantil
que se carga con `scripts/seed_schedule.py`.
"""

import logging
from collections import defaultdict
from typing import Iterable, NamedTuple
from uuid import UUID

from app.schemas.eligibility import CatalogEntry, Diagnostic, DiagnosticKind

logger = logging.getLogger(__name__)

# ── Edades frecuentes (días desde el nacimiento) ──────
AGE_AT_BIRTH = 0
AGE_2_MONTHS = 60
AGE_4_MONTHS = 120
AGE_6_MONTHS = 180
AGE_7_MONTHS = 210
AGE_12_MONTHS = 365
AGE_15_MONTHS = 450
AGE_18_MONTHS = 540

# ── Intervalos entre dosis ────────────────────────────
MIN_INTERVAL_DAYS = 28
STANDARD_INTERVAL_DAYS = 60


class VaccineDefinition(NamedTuple):
    code: str
    name: str
    description: str


class ScheduleRow(NamedTuple):
    vaccine_code: str
    dose_number: int
    target_age_days: int
    min_age_days: int | None
    max_age_days: int | None
    min_interval_days: int | None
    is_booster: bool
    age_description: str


NATIONAL_VACCINES: list[VaccineDefinition] = [
    VaccineDefinition("BCG", "BCG", "Tuberculosis (formas graves)"),
    VaccineDefinition("HB0", "Hepatitis B pediátrica", "Hepatitis B del recién nacido"),
    VaccineDefinition("ROTA", "Rotavirus", "Diarrea por rotavirus"),
    VaccineDefinition("IPV", "Polio inactivada (IPV)", "Poliomielitis"),
    VaccineDefinition("bOPV", "Polio oral bivalente (bOPV)", "Poliomielitis"),
    VaccineDefinition("PENTA", "Pentavalente", "Difteria, tos ferina, tétanos, Hib, hepatitis B"),
    VaccineDefinition("NEUMO", "Neumococo conjugada", "Neumonía y meningitis neumocócica"),
    VaccineDefinition("INFLUENZA", "Influenza pediátrica", "Influenza estacional"),
    VaccineDefinition("SRP", "SRP", "Sarampión, rubéola, parotiditis"),
    VaccineDefinition("FA", "Fiebre amarilla", "Fiebre amarilla"),
    VaccineDefinition("VARICELA", "Varicela", "Varicela"),
    VaccineDefinition("DPT", "DPT", "Difteria, tos ferina, tétanos (refuerzo)"),
]

NATIONAL_SCHEDULE: list[ScheduleRow] = [
    ScheduleRow("BCG", 1, AGE_AT_BIRTH, 0, 364, None, False, "Al nacer"),
    ScheduleRow("HB0", 1, AGE_AT_BIRTH, 0, 7, None, False, "Al nacer (primeras 24 horas)"),
    ScheduleRow("ROTA", 1, AGE_2_MONTHS, 42, 104, None, False, "2 meses"),
    ScheduleRow("ROTA", 2, AGE_4_MONTHS, 70, 240, MIN_INTERVAL_DAYS, False, "4 meses"),
    ScheduleRow("IPV", 1, AGE_2_MONTHS, 42, None, None, False, "2 meses"),
    ScheduleRow("IPV", 2, AGE_4_MONTHS, 70, None, MIN_INTERVAL_DAYS, False, "4 meses"),
    ScheduleRow("bOPV", 1, AGE_6_MONTHS, 98, None, MIN_INTERVAL_DAYS, False, "6 meses"),
    ScheduleRow("bOPV", 2, AGE_18_MONTHS, AGE_15_MONTHS, None, 180, True, "18 meses"),
    ScheduleRow("PENTA", 1, AGE_2_MONTHS, 42, None, None, False, "2 meses"),
    ScheduleRow("PENTA", 2, AGE_4_MONTHS, 70, None, MIN_INTERVAL_DAYS, False, "4 meses"),
    ScheduleRow("PENTA", 3, AGE_6_MONTHS, 98, None, MIN_INTERVAL_DAYS, False, "6 meses"),
    ScheduleRow("NEUMO", 1, AGE_2_MONTHS, 42, None, None, False, "2 meses"),
    ScheduleRow("NEUMO", 2, AGE_4_MONTHS, 70, None, MIN_INTERVAL_DAYS, False, "4 meses"),
    ScheduleRow("NEUMO", 3, AGE_6_MONTHS, 98, None, MIN_INTERVAL_DAYS, False, "6 meses"),
    ScheduleRow("INFLUENZA", 1, AGE_6_MONTHS, AGE_6_MONTHS, None, None, False, "6 meses"),
    ScheduleRow("INFLUENZA", 2, AGE_7_MONTHS, AGE_7_MONTHS, None, MIN_INTERVAL_DAYS, False, "7 meses"),
    ScheduleRow("SRP", 1, AGE_12_MONTHS, AGE_12_MONTHS, None, None, False, "12 meses"),
    ScheduleRow("SRP", 2, AGE_18_MONTHS, AGE_15_MONTHS, None, MIN_INTERVAL_DAYS, False, "18 meses"),
    ScheduleRow("FA", 1, AGE_12_MONTHS, AGE_12_MONTHS, None, None, False, "12 meses"),
    ScheduleRow("VARICELA", 1, AGE_15_MONTHS, AGE_12_MONTHS, None, None, False, "15 meses"),
    ScheduleRow("DPT", 1, AGE_18_MONTHS, AGE_15_MONTHS, None, None, True, "18 meses"),
]


def national_schedule_entries(vaccine_ids: dict[str, UUID]) -> list[CatalogEntry]:
    """Construye el esquema nacional con los IDs de vacuna ya persistidos."""
    names = {v.code: v.name for v in NATIONAL_VACCINES}
    entries = []
    for row in NATIONAL_SCHEDULE:
        entries.append(CatalogEntry(
            vaccine_id=vaccine_ids[row.vaccine_code],
            dose_number=row.dose_number,
            target_age_days=row.target_age_days,
            min_age_days=row.min_age_days,
            max_age_days=row.max_age_days,
            min_interval_days=row.min_interval_days,
            is_booster=row.is_booster,
            vaccine_code=row.vaccine_code,
            vaccine_name=names.get(row.vaccine_code),
            age_description=row.age_description,
        ))
    return entries


# ── Validación ────────────────────────────────────────

def validate_entry(entry: CatalogEntry) -> str | None:
    """Retorna el motivo si la entrada viola min <= objetivo <= max, o None."""
    if entry.min_age_days is not None and entry.min_age_days > entry.target_age_days:
        return (
            f"edad mínima ({entry.min_age_days}) mayor que la edad objetivo "
            f"({entry.target_age_days})"
        )
    if entry.max_age_days is not None and entry.target_age_days > entry.max_age_days:
        return (
            f"edad objetivo ({entry.target_age_days}) mayor que la edad máxima "
            f"({entry.max_age_days})"
        )
    return None


def split_catalog(
    catalog: Iterable[CatalogEntry],
) -> tuple[list[CatalogEntry], list[Diagnostic]]:
    """
    Separa las entradas utilizables de las inconsistentes.

    Las entradas que violan el orden de edades o repiten (vacuna, dosis) se
    descartan y se reportan como diagnóstico; nunca se corrigen.
    """
    valid: list[CatalogEntry] = []
    diagnostics: list[Diagnostic] = []
    seen: set[tuple[UUID, int]] = set()

    for entry in catalog:
        reason = validate_entry(entry)
        if reason:
            diagnostics.append(Diagnostic(
                kind=DiagnosticKind.CATALOG_INCONSISTENCY,
                vaccine_id=entry.vaccine_id,
                dose_number=entry.dose_number,
                detail=reason,
            ))
            continue
        if entry.key in seen:
            diagnostics.append(Diagnostic(
                kind=DiagnosticKind.DUPLICATE_CATALOG_ENTRY,
                vaccine_id=entry.vaccine_id,
                dose_number=entry.dose_number,
                detail="dosis repetida en el catálogo, se usa la primera",
            ))
            continue
        seen.add(entry.key)
        valid.append(entry)

    if diagnostics:
        logger.warning(f"Catálogo con {len(diagnostics)} entradas descartadas")

    return valid, diagnostics


def group_by_vaccine(entries: Iterable[CatalogEntry]) -> dict[UUID, list[CatalogEntry]]:
    """Agrupa por vacuna, cada serie ordenada por número de dosis."""
    series: dict[UUID, list[CatalogEntry]] = defaultdict(list)
    for entry in entries:
        series[entry.vaccine_id].append(entry)
    return {
        vaccine_id: sorted(doses, key=lambda e: e.dose_number)
        for vaccine_id, doses in series.items()
    }
