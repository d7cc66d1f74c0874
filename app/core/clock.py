"""
Reloj de la aplicación.

El motor de elegibilidad nunca lee la fecha global: recibe `today` como
argumento. Este módulo es el único lugar que consulta el reloj del sistema,
expuesto como dependency de FastAPI para que los tests lo reemplacen.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.config import get_settings


def get_today() -> date:
    """Fecha actual en la zona horaria configurada (America/Lima por defecto)."""
    settings = get_settings()
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()
