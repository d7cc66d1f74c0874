"""
Endpoints para Niños — registro y consulta.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import get_today
from app.database import get_db
from app.schemas.child import ChildCreate, ChildResponse
from app.services import child_service

router = APIRouter()


@router.post("", response_model=ChildResponse, status_code=201)
async def create_child(
    data: ChildCreate,
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Registra un niño."""
    return await child_service.create_child(db, data=data, today=today)


@router.get("", response_model=list[ChildResponse])
async def list_children(
    active_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    return await child_service.list_children(db, active_only=active_only)


@router.get("/{child_id}", response_model=ChildResponse)
async def get_child(
    child_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return await child_service.get_child(db, child_id)
