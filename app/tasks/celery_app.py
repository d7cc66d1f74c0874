"""
Configuración de Celery para tareas asíncronas y periódicas.
"""

from celery import Celery
from celery.schedules import crontab

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "vacunas",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    # Cambios de estado por paso del tiempo (PROXIMA -> VENCIDA, etc.)
    "sync-notifications-daily": {
        "task": "notifications.sync_all",
        "schedule": crontab(hour=6, minute=0),
    },
    "purge-applied-notifications-weekly": {
        "task": "notifications.purge_applied",
        "schedule": crontab(hour=3, minute=0, day_of_week="sunday"),
    },
}

# Auto-descubrir tareas en app/tasks/
celery_app.autodiscover_tasks(["app.tasks"])
