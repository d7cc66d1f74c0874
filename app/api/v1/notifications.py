"""
Endpoints para Notificaciones de vacunación.
Sincronización con el esquema, bandeja de envío, lectura y retención.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.clock import get_today
from app.database import get_db
from app.schemas.notification import (
    NotificationPurgeResponse,
    NotificationResponse,
    NotificationStats,
    NotificationSyncResponse,
)
from app.services import child_service, notification_service

router = APIRouter()
settings = get_settings()


@router.post("/children/{child_id}/sync", response_model=NotificationSyncResponse)
async def sync_child_notifications(
    child_id: UUID,
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Reconcilia las notificaciones del niño con su estado de vacunación."""
    result = await notification_service.sync_child_notifications(db, child_id, today)
    notifications = await notification_service.list_child_notifications(db, child_id)
    return NotificationSyncResponse(
        child_id=child_id,
        created=len(result.to_create),
        updated=len(result.to_update),
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
    )


@router.get("/children/{child_id}", response_model=list[NotificationResponse])
async def list_child_notifications(
    child_id: UUID,
    include_applied: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    await child_service.get_child(db, child_id)
    return await notification_service.list_child_notifications(
        db, child_id, include_applied=include_applied
    )


@router.get("/pending", response_model=list[NotificationResponse])
async def list_notifications_to_send(
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Notificaciones pendientes de envío (vencidas o próximas)."""
    return await notification_service.list_notifications_to_send(db, today)


@router.get("/stats", response_model=NotificationStats)
async def notification_stats(
    child_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.notification_stats(db, child_id=child_id)


@router.post("/{notification_id}/sent", response_model=NotificationResponse)
async def mark_notification_sent(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.mark_notification_sent(db, notification_id)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.mark_notification_read(db, notification_id)


@router.delete("/applied", response_model=NotificationPurgeResponse)
async def purge_applied_notifications(
    older_than_days: int | None = Query(None, ge=1),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Elimina notificaciones aplicadas más antiguas que el período indicado."""
    days = settings.NOTIFICATION_RETENTION_DAYS if older_than_days is None else older_than_days
    deleted = await notification_service.purge_applied_notifications(
        db, today, older_than_days=days
    )
    return NotificationPurgeResponse(deleted=deleted, older_than_days=days)
