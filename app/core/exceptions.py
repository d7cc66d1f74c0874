"""
Excepciones HTTP personalizadas para la API.
"""

from fastapi import HTTPException, status


class NotFoundException(HTTPException):
    """Recurso no encontrado (404)."""

    def __init__(self, resource: str = "Recurso", detail: str | None = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{resource} no encontrado",
        )


class ConflictException(HTTPException):
    """Conflicto de datos (409) — ej: dosis ya registrada."""

    def __init__(self, detail: str = "El recurso ya existe"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class ConcurrentNotificationError(ConflictException):
    """Reintentos agotados al reconciliar notificaciones en paralelo (409)."""

    def __init__(self, child_id):
        self.child_id = child_id
        super().__init__(
            detail=f"No se pudieron sincronizar las notificaciones del niño {child_id}"
        )


class ValidationException(HTTPException):
    """Error de validación de negocio (422)."""

    def __init__(self, detail: str = "Error de validación"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )
