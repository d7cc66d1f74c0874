"""
Tests del registro de dosis contra la DB de test.
"""

from datetime import date

import pytest

from app.core.exceptions import ConflictException
from app.schemas.vaccination import DoseCreate
from app.services import vaccination_service

TODAY = date(2025, 3, 1)


async def test_duplicate_dose_is_conflict(db_session, test_child, test_catalog):
    data = DoseCreate(
        child_id=test_child.id, vaccine_id=test_catalog["BCG"].id,
        dose_number=1, application_date=date(2024, 10, 2),
    )
    await vaccination_service.register_dose(db_session, data, TODAY)

    with pytest.raises(ConflictException):
        await vaccination_service.register_dose(db_session, data, TODAY)


async def test_concurrent_duplicate_dose_is_conflict(
    db_session, test_child, test_catalog, monkeypatch
):
    data = DoseCreate(
        child_id=test_child.id, vaccine_id=test_catalog["PENTA"].id,
        dose_number=1, application_date=date(2025, 1, 10),
    )

    # Otra petición registró la misma dosis entre la consulta y el insert
    async def not_seen_yet(db, child_id, vaccine_id, dose_number):
        return None

    monkeypatch.setattr(vaccination_service, "_find_dose", not_seen_yet)
    await vaccination_service.register_dose(db_session, data, TODAY)

    with pytest.raises(ConflictException) as exc_info:
        await vaccination_service.register_dose(db_session, data, TODAY)

    assert exc_info.value.status_code == 409
    history = await vaccination_service.load_history(db_session, data.child_id)
    assert len(history) == 1
