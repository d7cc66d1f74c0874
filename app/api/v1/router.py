"""
Router principal de la API v1.
Agrupa todos los sub-routers de la versión 1.
"""

from fastapi import APIRouter

from app.api.v1.children import router as children_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.vaccinations import router as vaccinations_router

api_v1_router = APIRouter()

api_v1_router.include_router(
    children_router,
    prefix="/children",
    tags=["Niños"],
)

api_v1_router.include_router(
    vaccinations_router,
    prefix="/vaccinations",
    tags=["Vacunación"],
)

api_v1_router.include_router(
    notifications_router,
    prefix="/notifications",
    tags=["Notificaciones"],
)
