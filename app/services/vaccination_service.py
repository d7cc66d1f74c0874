"""
Servicio de Vacunación — catálogo, esquema oficial, registro de dosis y estado del niño.

Es el Record Store del motor de elegibilidad: carga el catálogo y el historial
como valores inmutables y delega el cálculo en `eligibility` y `completeness`.
"""

import logging
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.core.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
)
from app.models.vaccination import AdministeredDose, ScheduleEntry, Vaccine
from app.schemas.eligibility import CatalogEntry, CertificateSummary, DoseRecord
from app.schemas.vaccination import (
    ChildVaccinationStatus,
    DoseCreate,
    ScheduleEntryCreate,
    ScheduleEntryResponse,
    ScheduleEntryUpdate,
    VaccineCreate,
)
from app.services import child_service
from app.services.completeness import (
    build_certificate_summary,
    completeness,
    scheme_status,
)
from app.services.eligibility import (
    age_in_days,
    describe_age,
    evaluate,
    sort_by_urgency,
)
from app.services.schedule_catalog import validate_entry

logger = logging.getLogger(__name__)
settings = get_settings()


# ── Helpers ──────────────────────────────────────────

def _entry_to_catalog(entry: ScheduleEntry) -> CatalogEntry:
    return CatalogEntry(
        vaccine_id=entry.vaccine_id,
        dose_number=entry.dose_number,
        target_age_days=entry.target_age_days,
        min_age_days=entry.min_age_days,
        max_age_days=entry.max_age_days,
        min_interval_days=entry.min_interval_days,
        is_booster=entry.is_booster,
        vaccine_code=entry.vaccine.code if entry.vaccine else None,
        vaccine_name=entry.vaccine.name if entry.vaccine else None,
        age_description=entry.age_description,
    )


def _entry_to_response(entry: ScheduleEntry) -> ScheduleEntryResponse:
    return ScheduleEntryResponse(
        id=entry.id,
        vaccine_id=entry.vaccine_id,
        dose_number=entry.dose_number,
        target_age_days=entry.target_age_days,
        min_age_days=entry.min_age_days,
        max_age_days=entry.max_age_days,
        min_interval_days=entry.min_interval_days,
        is_booster=entry.is_booster,
        age_description=entry.age_description,
        catalog_version=entry.catalog_version,
        is_active=entry.is_active,
        vaccine_code=entry.vaccine.code if entry.vaccine else None,
        vaccine_name=entry.vaccine.name if entry.vaccine else None,
    )


async def _get_entry(db: AsyncSession, entry_id: UUID) -> ScheduleEntry:
    result = await db.execute(
        select(ScheduleEntry)
        .options(selectinload(ScheduleEntry.vaccine))
        .where(ScheduleEntry.id == entry_id)
        .execution_options(populate_existing=True)
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise NotFoundException("Dosis del esquema")
    return entry


# ── Vaccine CRUD ─────────────────────────────────────

async def create_vaccine(db: AsyncSession, data: VaccineCreate) -> Vaccine:
    """Crea una vacuna del catálogo."""
    existing = await db.scalar(select(Vaccine).where(Vaccine.code == data.code))
    if existing:
        raise ConflictException(f"Ya existe una vacuna con código {data.code}")

    vaccine = Vaccine(**data.model_dump())
    db.add(vaccine)
    await db.commit()
    await db.refresh(vaccine)
    return vaccine


async def list_vaccines(db: AsyncSession, active_only: bool = True) -> list[Vaccine]:
    query = select(Vaccine).order_by(Vaccine.code)
    if active_only:
        query = query.where(Vaccine.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


# ── ScheduleEntry CRUD ───────────────────────────────

async def create_schedule_entry(
    db: AsyncSession, data: ScheduleEntryCreate
) -> ScheduleEntryResponse:
    """Agrega una dosis al esquema vigente."""
    vaccine = await db.scalar(select(Vaccine).where(Vaccine.id == data.vaccine_id))
    if not vaccine:
        raise NotFoundException("Vacuna")

    reason = validate_entry(CatalogEntry(**data.model_dump()))
    if reason:
        raise ValidationException(f"Esquema inconsistente: {reason}")

    duplicate = await db.scalar(
        select(ScheduleEntry).where(
            ScheduleEntry.vaccine_id == data.vaccine_id,
            ScheduleEntry.dose_number == data.dose_number,
            ScheduleEntry.catalog_version == settings.CATALOG_VERSION,
        )
    )
    if duplicate:
        raise ConflictException(
            f"La dosis {data.dose_number} de {vaccine.name} ya está en el esquema"
        )

    entry = ScheduleEntry(**data.model_dump(), catalog_version=settings.CATALOG_VERSION)
    db.add(entry)
    await db.commit()
    return _entry_to_response(await _get_entry(db, entry.id))


async def list_schedule_entries(
    db: AsyncSession, active_only: bool = True
) -> list[ScheduleEntryResponse]:
    query = (
        select(ScheduleEntry)
        .options(selectinload(ScheduleEntry.vaccine))
        .where(ScheduleEntry.catalog_version == settings.CATALOG_VERSION)
        .order_by(ScheduleEntry.target_age_days, ScheduleEntry.dose_number)
    )
    if active_only:
        query = query.where(ScheduleEntry.is_active.is_(True))
    result = await db.execute(query)
    return [_entry_to_response(e) for e in result.scalars().all()]


async def update_schedule_entry(
    db: AsyncSession, entry_id: UUID, data: ScheduleEntryUpdate
) -> ScheduleEntryResponse:
    """Actualiza una dosis del esquema validando el orden de edades resultante."""
    entry = await _get_entry(db, entry_id)

    update_data = data.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(entry, key, value)

    reason = validate_entry(_entry_to_catalog(entry))
    if reason:
        await db.rollback()
        raise ValidationException(f"Esquema inconsistente: {reason}")

    await db.commit()
    return _entry_to_response(await _get_entry(db, entry_id))


# ── Record Store del motor ───────────────────────────

async def load_catalog(db: AsyncSession) -> list[CatalogEntry]:
    """Esquema vigente (versión configurada, solo entradas y vacunas activas)."""
    result = await db.execute(
        select(ScheduleEntry)
        .join(ScheduleEntry.vaccine)
        .options(selectinload(ScheduleEntry.vaccine))
        .where(
            ScheduleEntry.catalog_version == settings.CATALOG_VERSION,
            ScheduleEntry.is_active.is_(True),
            Vaccine.is_active.is_(True),
        )
        .order_by(ScheduleEntry.vaccine_id, ScheduleEntry.dose_number)
    )
    return [_entry_to_catalog(e) for e in result.scalars().all()]


async def load_history(db: AsyncSession, child_id: UUID) -> list[DoseRecord]:
    """Dosis aplicadas a un niño."""
    result = await db.execute(
        select(AdministeredDose)
        .where(AdministeredDose.child_id == child_id)
        .order_by(AdministeredDose.application_date)
    )
    return [
        DoseRecord(
            vaccine_id=d.vaccine_id,
            dose_number=d.dose_number,
            application_date=d.application_date,
        )
        for d in result.scalars().all()
    ]


# ── Registro de dosis ────────────────────────────────

async def _find_dose(
    db: AsyncSession, child_id: UUID, vaccine_id: UUID, dose_number: int
) -> AdministeredDose | None:
    return await db.scalar(
        select(AdministeredDose).where(
            AdministeredDose.child_id == child_id,
            AdministeredDose.vaccine_id == vaccine_id,
            AdministeredDose.dose_number == dose_number,
        )
    )


async def register_dose(
    db: AsyncSession, data: DoseCreate, today: date
) -> tuple[AdministeredDose, list[str]]:
    """
    Registra una dosis aplicada.

    Rechaza fechas imposibles y dosis repetidas. Aplicar una dosis antes o
    después de su ventana no es un error: se retorna como advertencia.
    """
    child = await child_service.get_child(db, data.child_id)

    if data.application_date > today:
        raise ValidationException("La fecha de aplicación no puede ser futura")
    if data.application_date < child.birth_date:
        raise ValidationException(
            "La fecha de aplicación no puede ser anterior al nacimiento"
        )

    result = await db.execute(
        select(ScheduleEntry)
        .options(selectinload(ScheduleEntry.vaccine))
        .where(
            ScheduleEntry.vaccine_id == data.vaccine_id,
            ScheduleEntry.dose_number == data.dose_number,
            ScheduleEntry.catalog_version == settings.CATALOG_VERSION,
        )
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise ValidationException(
            f"La dosis {data.dose_number} no existe en el esquema de esta vacuna"
        )

    conflict = f"La dosis {data.dose_number} de {entry.vaccine.name} ya fue registrada"
    if await _find_dose(db, data.child_id, data.vaccine_id, data.dose_number):
        raise ConflictException(conflict)

    previous = None
    if data.dose_number > 1:
        previous = await _find_dose(
            db, data.child_id, data.vaccine_id, data.dose_number - 1
        )

    warnings = _timing_warnings(entry, child.birth_date, data.application_date, previous)

    dose = AdministeredDose(**data.model_dump())
    db.add(dose)
    try:
        await db.commit()
    except IntegrityError:
        # Otro registro de la misma dosis ganó la carrera
        await db.rollback()
        raise ConflictException(conflict)
    await db.refresh(dose)

    logger.info(
        f"Dosis {data.dose_number} de {entry.vaccine.code} registrada para niño {data.child_id}"
    )
    return dose, warnings


def _timing_warnings(
    entry: ScheduleEntry,
    birth_date: date,
    application_date: date,
    previous: AdministeredDose | None,
) -> list[str]:
    warnings = []
    min_age = entry.min_age_days if entry.min_age_days is not None else entry.target_age_days
    if application_date < birth_date + timedelta(days=min_age):
        warnings.append("Dosis aplicada antes de la edad mínima del esquema")
    if entry.max_age_days is not None and application_date > birth_date + timedelta(days=entry.max_age_days):
        warnings.append("Dosis aplicada después de la edad máxima del esquema")
    if entry.dose_number > 1:
        if previous is None:
            warnings.append(f"No hay registro de la dosis {entry.dose_number - 1}")
        elif entry.min_interval_days is not None:
            elapsed = (application_date - previous.application_date).days
            if elapsed < entry.min_interval_days:
                warnings.append(
                    f"Intervalo de {elapsed} días desde la dosis anterior "
                    f"(mínimo {entry.min_interval_days})"
                )
    return warnings


# ── Estado del niño ──────────────────────────────────

async def get_child_status(
    db: AsyncSession, child_id: UUID, today: date
) -> ChildVaccinationStatus:
    """Evalúa el esquema completo de un niño en la fecha indicada."""
    child = await child_service.get_child(db, child_id)
    catalog = await load_catalog(db)
    history = await load_history(db, child_id)

    evaluation = evaluate(
        child.birth_date, today, catalog, history,
        due_soon_days=settings.DUE_SOON_WINDOW_DAYS,
        grace_days=settings.OVERDUE_GRACE_DAYS,
    )
    percentage = completeness(history, catalog, child.birth_date, today)

    return ChildVaccinationStatus(
        child_id=child.id,
        evaluated_on=today,
        age_days=age_in_days(child.birth_date, today),
        age_description=describe_age(child.birth_date, today),
        completeness=percentage,
        status=scheme_status(evaluation.obligations, percentage),
        obligations=sort_by_urgency(evaluation.obligations),
        diagnostics=evaluation.diagnostics,
    )


async def get_certificate_summary(
    db: AsyncSession, child_id: UUID, today: date
) -> CertificateSummary:
    """Datos del certificado de vacunación (el render del documento es externo)."""
    child = await child_service.get_child(db, child_id)
    catalog = await load_catalog(db)
    history = await load_history(db, child_id)

    evaluation = evaluate(
        child.birth_date, today, catalog, history,
        due_soon_days=settings.DUE_SOON_WINDOW_DAYS,
        grace_days=settings.OVERDUE_GRACE_DAYS,
    )
    percentage = completeness(history, catalog, child.birth_date, today)
    return build_certificate_summary(
        child.id, evaluation, percentage, today,
        validity_months=settings.CERTIFICATE_VALIDITY_MONTHS,
    )
