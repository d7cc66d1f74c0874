"""
Servicio de Niños — alta y consulta.
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException, ValidationException
from app.models.child import Child
from app.schemas.child import ChildCreate

logger = logging.getLogger(__name__)


async def create_child(db: AsyncSession, data: ChildCreate, today: date) -> Child:
    """Registra un niño. La fecha de nacimiento no puede ser futura."""
    if data.birth_date > today:
        raise ValidationException("La fecha de nacimiento no puede ser futura")

    child = Child(**data.model_dump())
    db.add(child)
    await db.commit()
    await db.refresh(child)
    logger.info(f"Niño registrado: {child.id}")
    return child


async def get_child(db: AsyncSession, child_id: UUID) -> Child:
    result = await db.execute(select(Child).where(Child.id == child_id))
    child = result.scalar_one_or_none()
    if not child:
        raise NotFoundException("Niño")
    return child


async def list_children(db: AsyncSession, active_only: bool = True) -> list[Child]:
    query = select(Child).order_by(Child.last_name, Child.first_name)
    if active_only:
        query = query.where(Child.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())
