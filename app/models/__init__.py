"""
Modelos SQLAlchemy — exportar todos para que Alembic los detecte.
"""

from app.models.child import Child
from app.models.vaccination import Vaccine, ScheduleEntry, AdministeredDose
from app.models.notification import Notification, NotificationState, NotificationType

__all__ = [
    "Child",
    "Vaccine",
    "ScheduleEntry",
    "AdministeredDose",
    "Notification",
    "NotificationState",
    "NotificationType",
]
