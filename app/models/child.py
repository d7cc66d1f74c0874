"""
Modelo Child — Niños cuyo esquema de vacunación se controla.
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Child(Base):
    __tablename__ = "children"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    birth_date: Mapped[date] = mapped_column(
        Date, nullable=False,
        comment="Fecha de nacimiento, base de todas las edades del esquema"
    )

    # ── Responsable ──────────────────────────────────
    guardian_name: Mapped[str | None] = mapped_column(String(200))
    guardian_phone: Mapped[str | None] = mapped_column(
        String(20), comment="Teléfono del padre/madre o tutor"
    )

    # ── Estado ───────────────────────────────────────
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Child {self.full_name} ({self.birth_date})>"
