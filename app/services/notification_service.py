"""
Servicio de Notificaciones — sincronización con el esquema, envío, lectura y limpieza.

La decisión de qué crear o actualizar la toma `notification_lifecycle.reconcile`;
este módulo carga los datos, aplica el delta y resuelve las carreras entre
reconciliaciones concurrentes del mismo niño.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.exceptions import (
    ConcurrentNotificationError,
    NotFoundException,
    ValidationException,
)
from app.models.child import Child
from app.models.notification import Notification, NotificationState, NotificationType
from app.schemas.notification import (
    NotificationSnapshot,
    NotificationStats,
    ReconcileResult,
)
from app.services import vaccination_service
from app.services.eligibility import evaluate
from app.services.notification_lifecycle import (
    NotificationTransitionError,
    advance_state,
    reconcile,
)

logger = logging.getLogger(__name__)
settings = get_settings()


# ── Record Store ─────────────────────────────────────

async def load_notifications(db: AsyncSession, child_id: UUID) -> list[NotificationSnapshot]:
    """Notificaciones del niño en orden de creación."""
    result = await db.execute(
        select(Notification)
        .where(Notification.child_id == child_id)
        .order_by(Notification.created_at, Notification.id)
    )
    return [NotificationSnapshot.model_validate(n) for n in result.scalars().all()]


async def upsert_notifications(db: AsyncSession, result: ReconcileResult) -> None:
    """Aplica el delta de la reconciliación (sin commit)."""
    now = datetime.now(timezone.utc)

    for draft in result.to_create:
        db.add(Notification(**draft.model_dump()))

    if result.to_update:
        ids = [change.id for change in result.to_update]
        rows = await db.execute(select(Notification).where(Notification.id.in_(ids)))
        by_id = {n.id: n for n in rows.scalars().all()}

        for change in result.to_update:
            notification = by_id.get(change.id)
            if notification is None:
                continue
            if change.state is not None:
                notification.state = advance_state(notification.state, change.state)
                if change.state == NotificationState.APLICADA:
                    notification.applied_at = now
            if change.notification_type is not None:
                notification.notification_type = change.notification_type
            if change.scheduled_date is not None:
                notification.scheduled_date = change.scheduled_date
            if change.message is not None:
                notification.message = change.message
            if change.blocked_by_previous_dose is not None:
                notification.blocked_by_previous_dose = change.blocked_by_previous_dose

    await db.flush()


async def _lock_child(db: AsyncSession, child_id: UUID) -> Child:
    """Bloquea la fila del niño para serializar reconciliaciones concurrentes."""
    result = await db.execute(
        select(Child).where(Child.id == child_id).with_for_update()
    )
    child = result.scalar_one_or_none()
    if not child:
        raise NotFoundException("Niño")
    return child


# ── Sincronización ───────────────────────────────────

async def sync_child_notifications(
    db: AsyncSession, child_id: UUID, today: date
) -> ReconcileResult:
    """
    Evalúa el esquema del niño y ajusta sus notificaciones.

    Si otra reconciliación del mismo niño insertó la misma notificación
    primero, el índice único parcial rechaza el insert: se hace rollback y se
    vuelve a reconciliar con los datos frescos.
    """
    for attempt in range(1, settings.NOTIFICATION_SYNC_MAX_RETRIES + 1):
        try:
            child = await _lock_child(db, child_id)
            catalog = await vaccination_service.load_catalog(db)
            history = await vaccination_service.load_history(db, child_id)
            existing = await load_notifications(db, child_id)

            evaluation = evaluate(
                child.birth_date, today, catalog, history,
                due_soon_days=settings.DUE_SOON_WINDOW_DAYS,
                grace_days=settings.OVERDUE_GRACE_DAYS,
            )
            result = reconcile(
                child.id, evaluation.obligations, existing, today,
                reminder_horizon_days=settings.REMINDER_HORIZON_DAYS,
            )
            if not result.is_empty:
                await upsert_notifications(db, result)
            await db.commit()

            logger.info(
                f"Notificaciones del niño {child_id}: "
                f"{len(result.to_create)} creadas, {len(result.to_update)} actualizadas"
            )
            return result

        except IntegrityError:
            await db.rollback()
            logger.warning(
                f"Notificación duplicada concurrente para niño {child_id} "
                f"(intento {attempt}/{settings.NOTIFICATION_SYNC_MAX_RETRIES})"
            )

    logger.error(f"Reintentos agotados sincronizando notificaciones del niño {child_id}")
    raise ConcurrentNotificationError(child_id)


async def sync_all_children(db: AsyncSession, today: date) -> dict[str, int]:
    """Reconcilia todos los niños activos. Un niño con error no detiene al resto."""
    result = await db.execute(select(Child.id).where(Child.is_active.is_(True)))
    child_ids = [row[0] for row in result.all()]

    created = updated = failed = 0
    for child_id in child_ids:
        try:
            delta = await sync_child_notifications(db, child_id, today)
        except ConcurrentNotificationError:
            failed += 1
            continue
        created += len(delta.to_create)
        updated += len(delta.to_update)

    logger.info(
        f"Sincronización diaria: {len(child_ids)} niños, {created} creadas, "
        f"{updated} actualizadas, {failed} con error"
    )
    return {
        "children": len(child_ids),
        "created": created,
        "updated": updated,
        "failed": failed,
    }


# ── Consultas ────────────────────────────────────────

async def list_child_notifications(
    db: AsyncSession, child_id: UUID, include_applied: bool = True
) -> list[Notification]:
    query = (
        select(Notification)
        .where(Notification.child_id == child_id)
        .order_by(Notification.scheduled_date, Notification.dose_number)
    )
    if not include_applied:
        query = query.where(Notification.state != NotificationState.APLICADA)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_notifications_to_send(db: AsyncSession, today: date) -> list[Notification]:
    """
    Pendientes de envío: vencidas o con fecha dentro de la ventana de aviso.

    Las dosis que esperan a la anterior de su serie no se envían.
    """
    limit_date = today + timedelta(days=settings.DUE_SOON_WINDOW_DAYS)
    result = await db.execute(
        select(Notification)
        .where(
            Notification.state == NotificationState.PENDIENTE,
            Notification.blocked_by_previous_dose.is_(False),
            or_(
                Notification.notification_type == NotificationType.VENCIDA,
                Notification.scheduled_date <= limit_date,
            ),
        )
        .order_by(Notification.scheduled_date)
    )
    return list(result.scalars().all())


async def notification_stats(
    db: AsyncSession, child_id: UUID | None = None
) -> NotificationStats:
    """Conteo por estado y por tipo (global o de un niño)."""
    by_state_query = select(Notification.state, func.count()).group_by(Notification.state)
    by_type_query = (
        select(Notification.notification_type, func.count())
        .where(Notification.state != NotificationState.APLICADA)
        .group_by(Notification.notification_type)
    )
    if child_id is not None:
        by_state_query = by_state_query.where(Notification.child_id == child_id)
        by_type_query = by_type_query.where(Notification.child_id == child_id)

    by_state = {s.value: 0 for s in NotificationState}
    for state, count in (await db.execute(by_state_query)).all():
        by_state[state.value] = count

    by_type = {t.value: 0 for t in NotificationType}
    for notification_type, count in (await db.execute(by_type_query)).all():
        by_type[notification_type.value] = count

    return NotificationStats(
        by_state=by_state,
        by_type=by_type,
        total=sum(by_state.values()),
    )


# ── Transiciones manuales ────────────────────────────

async def _get_notification(db: AsyncSession, notification_id: UUID) -> Notification:
    result = await db.execute(
        select(Notification).where(Notification.id == notification_id)
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFoundException("Notificación", detail="Notificación no encontrada")
    return notification


async def _transition(
    db: AsyncSession, notification_id: UUID, target: NotificationState
) -> Notification:
    notification = await _get_notification(db, notification_id)
    try:
        new_state = advance_state(notification.state, target)
    except NotificationTransitionError as e:
        raise ValidationException(str(e))

    if new_state != notification.state:
        now = datetime.now(timezone.utc)
        if new_state == NotificationState.ENVIADA:
            notification.sent_at = now
        elif new_state == NotificationState.LEIDA:
            notification.read_at = now
        notification.state = new_state
        await db.commit()
        await db.refresh(notification)
    return notification


async def mark_notification_sent(db: AsyncSession, notification_id: UUID) -> Notification:
    """Marca como enviada (acción de la capa de entrega)."""
    return await _transition(db, notification_id, NotificationState.ENVIADA)


async def mark_notification_read(db: AsyncSession, notification_id: UUID) -> Notification:
    """Marca como leída por el padre/madre o tutor."""
    return await _transition(db, notification_id, NotificationState.LEIDA)


# ── Retención ────────────────────────────────────────

async def purge_applied_notifications(
    db: AsyncSession, today: date, older_than_days: int | None = None
) -> int:
    """Elimina notificaciones APLICADA más antiguas que el período de retención."""
    days = settings.NOTIFICATION_RETENTION_DAYS if older_than_days is None else older_than_days
    cutoff = datetime.combine(today - timedelta(days=days), time.min, tzinfo=timezone.utc)

    result = await db.execute(
        delete(Notification).where(
            Notification.state == NotificationState.APLICADA,
            func.coalesce(Notification.applied_at, Notification.created_at) < cutoff,
        )
    )
    await db.commit()

    deleted = result.rowcount or 0
    logger.info(f"Eliminadas {deleted} notificaciones aplicadas de más de {days} días")
    return deleted
