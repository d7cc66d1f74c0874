"""
Tareas Celery para notificaciones de vacunación.
Reconciliación por niño, barrido diario y limpieza de notificaciones aplicadas.
"""

import asyncio
import logging

from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    name="notifications.sync_child",
)
def sync_child_notifications_task(self, child_id: str):
    """Reconcilia las notificaciones de un niño (tras registrar una dosis, por ejemplo)."""
    from uuid import UUID

    async def _sync():
        from app.core.clock import get_today
        from app.database import async_session_factory
        from app.services.notification_service import sync_child_notifications

        async with async_session_factory() as db:
            result = await sync_child_notifications(db, UUID(child_id), get_today())
            return {
                "created": len(result.to_create),
                "updated": len(result.to_update),
            }

    try:
        return asyncio.run(_sync())
    except Exception as exc:
        logger.error(f"Error sincronizando notificaciones del niño {child_id}: {exc}")
        raise self.retry(exc=exc)


@celery_app.task(name="notifications.sync_all")
def sync_all_notifications():
    """
    Task periódico (cron): reconcilia las notificaciones de todos los niños activos.
    Programado con Celery Beat una vez al día.
    """
    async def _process():
        from app.core.clock import get_today
        from app.database import async_session_factory
        from app.services.notification_service import sync_all_children

        async with async_session_factory() as db:
            return await sync_all_children(db, get_today())

    return asyncio.run(_process())


@celery_app.task(name="notifications.purge_applied")
def purge_applied_notifications(older_than_days: int | None = None):
    """Task periódico (semanal): elimina notificaciones aplicadas antiguas."""
    async def _purge():
        from app.core.clock import get_today
        from app.database import async_session_factory
        from app.services.notification_service import purge_applied_notifications

        async with async_session_factory() as db:
            return await purge_applied_notifications(
                db, get_today(), older_than_days=older_than_days
            )

    deleted = asyncio.run(_purge())
    return {"deleted": deleted}
