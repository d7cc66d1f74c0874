"""
Modelo Notification — Recordatorios y alertas de vacunación por niño.

El par (child_id, vaccine_id, dose_number) es la clave natural: a lo sumo una
notificación activa (no APLICADA) por clave, garantizado por un índice único
parcial.
"""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class NotificationType(str, enum.Enum):
    """Urgencia de la notificación, recalculada en cada reconciliación."""
    RECORDATORIO = "recordatorio"
    PROXIMA = "proxima"
    VENCIDA = "vencida"


class NotificationState(str, enum.Enum):
    """Ciclo de vida de la notificación. APLICADA es terminal."""
    PENDIENTE = "pendiente"
    ENVIADA = "enviada"
    LEIDA = "leida"
    APLICADA = "aplicada"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("children.id"), nullable=False
    )
    vaccine_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vaccines.id"), nullable=False
    )
    dose_number: Mapped[int] = mapped_column(Integer, nullable=False)

    notification_type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=NotificationType.RECORDATORIO,
    )
    state: Mapped[NotificationState] = mapped_column(
        Enum(NotificationState, values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=NotificationState.PENDIENTE,
    )
    scheduled_date: Mapped[date] = mapped_column(
        Date, nullable=False, comment="Fecha objetivo de la dosis"
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    blocked_by_previous_dose: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
        comment="La dosis anterior de la serie no está aplicada; no se envía"
    )

    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    applied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # ── Relaciones ───────────────────────────────────
    child: Mapped["Child"] = relationship("Child")  # noqa: F821
    vaccine: Mapped["Vaccine"] = relationship("Vaccine")  # noqa: F821

    __table_args__ = (
        Index(
            "uq_notification_active_dose",
            "child_id", "vaccine_id", "dose_number",
            unique=True,
            postgresql_where=text("state <> 'aplicada'"),
            sqlite_where=text("state <> 'aplicada'"),
        ),
        Index("idx_notification_child", "child_id"),
        Index("idx_notification_state_date", "state", "scheduled_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification child={self.child_id} dose={self.dose_number} "
            f"{self.notification_type.value}/{self.state.value}>"
        )
