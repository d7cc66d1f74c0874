"""
Modelos de Vacunación — Catálogo de vacunas, esquema oficial y dosis aplicadas.

Vaccine: vacuna del catálogo (BCG, SRP, Pentavalente...).
ScheduleEntry: una dosis esperada del esquema oficial (edad objetivo, ventana, intervalo).
AdministeredDose: registra cada dosis aplicada a un niño.
"""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Vaccine(Base):
    __tablename__ = "vaccines"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    code: Mapped[str] = mapped_column(
        String(20), nullable=False, unique=True,
        comment="Código corto de la vacuna (ej: BCG, SRP, PENTA)"
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Vaccine {self.code}>"


class ScheduleEntry(Base):
    __tablename__ = "schedule_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    vaccine_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vaccines.id"), nullable=False
    )
    dose_number: Mapped[int] = mapped_column(
        Integer, nullable=False,
        comment="Número de dosis dentro de la serie (1, 2, 3...)"
    )
    target_age_days: Mapped[int] = mapped_column(
        Integer, nullable=False,
        comment="Edad ideal de aplicación en días desde el nacimiento"
    )
    min_age_days: Mapped[int | None] = mapped_column(
        Integer, comment="Edad mínima de aplicación (días)"
    )
    max_age_days: Mapped[int | None] = mapped_column(
        Integer, comment="Edad máxima de aplicación (días); null = sin límite"
    )
    min_interval_days: Mapped[int | None] = mapped_column(
        Integer, comment="Días mínimos desde la dosis anterior de la misma vacuna"
    )
    is_booster: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    age_description: Mapped[str | None] = mapped_column(
        String(50), comment='Ej: "Al nacer", "2 meses", "12 meses"'
    )
    catalog_version: Mapped[str] = mapped_column(
        String(20), nullable=False, default="2024"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # ── Relaciones ────────────────────────────────────
    vaccine: Mapped["Vaccine"] = relationship("Vaccine")

    __table_args__ = (
        UniqueConstraint(
            "vaccine_id", "dose_number", "catalog_version",
            name="uq_schedule_vaccine_dose_version",
        ),
        Index("idx_schedule_version_active", "catalog_version", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<ScheduleEntry vaccine={self.vaccine_id} dose={self.dose_number}>"


class AdministeredDose(Base):
    __tablename__ = "administered_doses"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("children.id"), nullable=False
    )
    vaccine_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vaccines.id"), nullable=False
    )
    dose_number: Mapped[int] = mapped_column(
        Integer, nullable=False,
        comment="Número de dosis aplicada (1, 2, 3...)"
    )
    application_date: Mapped[date] = mapped_column(
        Date, nullable=False, comment="Fecha de aplicación"
    )
    lot_number: Mapped[str | None] = mapped_column(
        String(50), comment="Número de lote de la vacuna"
    )
    health_center: Mapped[str | None] = mapped_column(
        String(200), comment="Centro de salud donde se aplicó"
    )
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # ── Relaciones ────────────────────────────────────
    child: Mapped["Child"] = relationship("Child")  # noqa: F821
    vaccine: Mapped["Vaccine"] = relationship("Vaccine")

    __table_args__ = (
        UniqueConstraint(
            "child_id", "vaccine_id", "dose_number",
            name="uq_dose_child_vaccine_number",
        ),
        Index("idx_dose_child", "child_id"),
    )

    def __repr__(self) -> str:
        return f"<AdministeredDose child={self.child_id} dose={self.dose_number}>"
