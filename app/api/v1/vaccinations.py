"""
Endpoints para gestión de vacunación.
Catálogo de vacunas, esquema oficial, registro de dosis y estado por niño.
"""

import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import get_today
from app.core.exceptions import ConcurrentNotificationError
from app.database import get_db
from app.schemas.eligibility import CertificateSummary
from app.schemas.vaccination import (
    ChildVaccinationStatus,
    DoseCreate,
    DoseRegistrationResponse,
    DoseResponse,
    ScheduleEntryCreate,
    ScheduleEntryResponse,
    ScheduleEntryUpdate,
    VaccineCreate,
    VaccineResponse,
)
from app.services import notification_service, vaccination_service

router = APIRouter()
logger = logging.getLogger(__name__)


# ── Vacunas ────────────────────────────────────────────

@router.post("/vaccines", response_model=VaccineResponse, status_code=201)
async def create_vaccine(
    data: VaccineCreate,
    db: AsyncSession = Depends(get_db),
):
    return await vaccination_service.create_vaccine(db, data=data)


@router.get("/vaccines", response_model=list[VaccineResponse])
async def list_vaccines(
    active_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    return await vaccination_service.list_vaccines(db, active_only=active_only)


# ── Esquema oficial ────────────────────────────────────

@router.post("/schedule", response_model=ScheduleEntryResponse, status_code=201)
async def create_schedule_entry(
    data: ScheduleEntryCreate,
    db: AsyncSession = Depends(get_db),
):
    """Agrega una dosis al esquema vigente."""
    return await vaccination_service.create_schedule_entry(db, data=data)


@router.get("/schedule", response_model=list[ScheduleEntryResponse])
async def list_schedule_entries(
    active_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """Lista el esquema vigente ordenado por edad."""
    return await vaccination_service.list_schedule_entries(db, active_only=active_only)


@router.patch("/schedule/{entry_id}", response_model=ScheduleEntryResponse)
async def update_schedule_entry(
    entry_id: UUID,
    data: ScheduleEntryUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await vaccination_service.update_schedule_entry(db, entry_id=entry_id, data=data)


# ── Registro de dosis ──────────────────────────────────

@router.post("/doses", response_model=DoseRegistrationResponse, status_code=201)
async def register_dose(
    data: DoseCreate,
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Registra una dosis y actualiza las notificaciones del niño."""
    dose, warnings = await vaccination_service.register_dose(db, data=data, today=today)
    try:
        await notification_service.sync_child_notifications(db, data.child_id, today)
    except ConcurrentNotificationError:
        # La dosis ya está registrada; se reintenta en segundo plano
        logger.warning(f"Notificaciones del niño {data.child_id} no sincronizadas tras registrar dosis")
        from app.tasks.notification_tasks import sync_child_notifications_task

        sync_child_notifications_task.delay(str(data.child_id))
    return DoseRegistrationResponse(
        dose=DoseResponse.model_validate(dose),
        warnings=warnings,
    )


# ── Estado del niño ────────────────────────────────────

@router.get("/children/{child_id}/status", response_model=ChildVaccinationStatus)
async def get_child_status(
    child_id: UUID,
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Obligaciones del esquema con su estado, ordenadas por urgencia."""
    return await vaccination_service.get_child_status(db, child_id=child_id, today=today)


@router.get("/children/{child_id}/certificate-summary", response_model=CertificateSummary)
async def get_certificate_summary(
    child_id: UUID,
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    return await vaccination_service.get_certificate_summary(db, child_id=child_id, today=today)
