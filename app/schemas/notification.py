"""
Schemas para Notificaciones — snapshots para la reconciliación y respuestas de la API.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.notification import NotificationState, NotificationType


# ── Reconciliación ─────────────────────────────────────

class NotificationSnapshot(BaseModel):
    """Estado actual de una notificación persistida, tal como la ve el motor."""
    id: UUID
    child_id: UUID
    vaccine_id: UUID
    dose_number: int
    notification_type: NotificationType
    state: NotificationState
    scheduled_date: date
    message: str
    blocked_by_previous_dose: bool = False
    created_at: datetime | None = None

    model_config = {"from_attributes": True, "frozen": True}


class NotificationDraft(BaseModel):
    """Notificación nueva a crear."""
    child_id: UUID
    vaccine_id: UUID
    dose_number: int
    notification_type: NotificationType
    state: NotificationState = NotificationState.PENDIENTE
    scheduled_date: date
    message: str
    blocked_by_previous_dose: bool = False

    model_config = {"frozen": True}


class NotificationChange(BaseModel):
    """Cambio a aplicar sobre una notificación existente."""
    id: UUID
    notification_type: NotificationType | None = None
    state: NotificationState | None = None
    scheduled_date: date | None = None
    message: str | None = None
    blocked_by_previous_dose: bool | None = None

    model_config = {"frozen": True}


class ReconcileResult(BaseModel):
    to_create: list[NotificationDraft] = Field(default_factory=list)
    to_update: list[NotificationChange] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_create and not self.to_update


# ── API ────────────────────────────────────────────────

class NotificationResponse(BaseModel):
    id: UUID
    child_id: UUID
    vaccine_id: UUID
    dose_number: int
    notification_type: NotificationType
    state: NotificationState
    scheduled_date: date
    message: str
    blocked_by_previous_dose: bool = False
    sent_at: datetime | None = None
    read_at: datetime | None = None
    applied_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationSyncResponse(BaseModel):
    """Resultado de reconciliar las notificaciones de un niño."""
    child_id: UUID
    created: int
    updated: int
    notifications: list[NotificationResponse]


class NotificationStats(BaseModel):
    """Conteo de notificaciones por estado y por tipo."""
    by_state: dict[str, int]
    by_type: dict[str, int]
    total: int


class NotificationPurgeResponse(BaseModel):
    deleted: int
    older_than_days: int
