"""
Tests end-to-end de la API (httpx + DB de test, reloj fijo en 2025-03-01).
"""

from types import SimpleNamespace

from app.core.exceptions import ConcurrentNotificationError
from app.services import notification_service
from app.tasks import notification_tasks

API = "/api/v1"


async def _setup_catalog(client) -> dict[str, str]:
    bcg = (await client.post(f"{API}/vaccinations/vaccines", json={"code": "BCG", "name": "BCG"})).json()
    penta = (await client.post(
        f"{API}/vaccinations/vaccines", json={"code": "PENTA", "name": "Pentavalente"}
    )).json()

    schedule = [
        {"vaccine_id": bcg["id"], "dose_number": 1, "target_age_days": 0,
         "min_age_days": 0, "max_age_days": 364, "age_description": "Al nacer"},
        {"vaccine_id": penta["id"], "dose_number": 1, "target_age_days": 60,
         "min_age_days": 42, "age_description": "2 meses"},
        {"vaccine_id": penta["id"], "dose_number": 2, "target_age_days": 120,
         "min_age_days": 70, "min_interval_days": 28, "age_description": "4 meses"},
    ]
    for row in schedule:
        response = await client.post(f"{API}/vaccinations/schedule", json=row)
        assert response.status_code == 201

    return {"BCG": bcg["id"], "PENTA": penta["id"]}


async def _create_child(client, birth_date="2024-10-01") -> dict:
    response = await client.post(f"{API}/children", json={
        "first_name": "Valentina",
        "last_name": "Huamán",
        "birth_date": birth_date,
        "guardian_phone": "912345678",
    })
    assert response.status_code == 201
    return response.json()


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_child_registration(client):
    child = await _create_child(client)

    assert (await client.get(f"{API}/children/{child['id']}")).json()["last_name"] == "Huamán"
    assert len((await client.get(f"{API}/children")).json()) == 1

    future = await client.post(f"{API}/children", json={
        "first_name": "X", "last_name": "Y", "birth_date": "2025-06-01",
    })
    assert future.status_code == 422


async def test_unknown_child_is_404(client):
    response = await client.get(f"{API}/children/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404


async def test_schedule_validation(client):
    ids = await _setup_catalog(client)

    duplicate_code = await client.post(
        f"{API}/vaccinations/vaccines", json={"code": "BCG", "name": "Otra"}
    )
    assert duplicate_code.status_code == 409

    inconsistent = await client.post(f"{API}/vaccinations/schedule", json={
        "vaccine_id": ids["PENTA"], "dose_number": 3, "target_age_days": 180, "min_age_days": 200,
    })
    assert inconsistent.status_code == 422

    duplicate = await client.post(f"{API}/vaccinations/schedule", json={
        "vaccine_id": ids["PENTA"], "dose_number": 1, "target_age_days": 60,
    })
    assert duplicate.status_code == 409

    schedule = (await client.get(f"{API}/vaccinations/schedule")).json()
    assert [(e["vaccine_code"], e["dose_number"]) for e in schedule] == [
        ("BCG", 1), ("PENTA", 1), ("PENTA", 2),
    ]

    entry_id = schedule[2]["id"]
    bad_update = await client.patch(
        f"{API}/vaccinations/schedule/{entry_id}", json={"max_age_days": 100}
    )
    assert bad_update.status_code == 422

    # null en un campo obligatorio no borra el valor: se rechaza
    for field in ("is_active", "is_booster", "target_age_days"):
        null_update = await client.patch(
            f"{API}/vaccinations/schedule/{entry_id}", json={field: None}
        )
        assert null_update.status_code == 422

    update = await client.patch(
        f"{API}/vaccinations/schedule/{entry_id}", json={"max_age_days": 240}
    )
    assert update.status_code == 200
    assert update.json()["max_age_days"] == 240


async def test_vaccination_flow(client):
    ids = await _setup_catalog(client)
    child = await _create_child(client)
    child_id = child["id"]

    # Estado inicial: todo pendiente, BCG y PENTA 1 vencidas
    status = (await client.get(f"{API}/vaccinations/children/{child_id}/status")).json()
    states = {(o["vaccine_code"], o["dose_number"]): o["state"] for o in status["obligations"]}
    assert states == {("BCG", 1): "overdue", ("PENTA", 1): "overdue", ("PENTA", 2): "scheduled"}
    assert status["obligations"][0]["state"] == "overdue"
    assert status["completeness"] == "0.00"
    assert status["status"] == "atrasado"
    assert status["age_description"] == "5 meses"

    sync = (await client.post(f"{API}/notifications/children/{child_id}/sync")).json()
    assert sync["created"] == 3
    assert sync["updated"] == 0

    again = (await client.post(f"{API}/notifications/children/{child_id}/sync")).json()
    assert again["created"] == 0
    assert again["updated"] == 0
    assert len(again["notifications"]) == 3

    # Registrar BCG (tardía respecto al objetivo, dentro de la edad máxima)
    dose = await client.post(f"{API}/vaccinations/doses", json={
        "child_id": child_id, "vaccine_id": ids["BCG"], "dose_number": 1,
        "application_date": "2025-02-15", "health_center": "C.S. San Martín",
    })
    assert dose.status_code == 201
    assert dose.json()["warnings"] == []

    notifications = (await client.get(f"{API}/notifications/children/{child_id}")).json()
    bcg = [n for n in notifications if n["vaccine_id"] == ids["BCG"]]
    assert [n["state"] for n in bcg] == ["aplicada"]

    repeated = await client.post(f"{API}/vaccinations/doses", json={
        "child_id": child_id, "vaccine_id": ids["BCG"], "dose_number": 1,
        "application_date": "2025-02-16",
    })
    assert repeated.status_code == 409

    status = (await client.get(f"{API}/vaccinations/children/{child_id}/status")).json()
    assert status["completeness"] == "33.33"

    summary = (await client.get(
        f"{API}/vaccinations/children/{child_id}/certificate-summary"
    )).json()
    assert summary["valid_until"] == "2026-03-01"
    assert len(summary["applied"]) == 1
    assert len(summary["overdue"]) == 1


async def test_dose_rejections_and_warnings(client):
    ids = await _setup_catalog(client)
    child_id = (await _create_child(client))["id"]

    future = await client.post(f"{API}/vaccinations/doses", json={
        "child_id": child_id, "vaccine_id": ids["PENTA"], "dose_number": 1,
        "application_date": "2025-03-02",
    })
    assert future.status_code == 422

    before_birth = await client.post(f"{API}/vaccinations/doses", json={
        "child_id": child_id, "vaccine_id": ids["PENTA"], "dose_number": 1,
        "application_date": "2024-09-30",
    })
    assert before_birth.status_code == 422

    not_in_schedule = await client.post(f"{API}/vaccinations/doses", json={
        "child_id": child_id, "vaccine_id": ids["PENTA"], "dose_number": 5,
        "application_date": "2025-01-01",
    })
    assert not_in_schedule.status_code == 422

    # PENTA 2 sin PENTA 1 y antes de la edad mínima: se registra con advertencias
    early = await client.post(f"{API}/vaccinations/doses", json={
        "child_id": child_id, "vaccine_id": ids["PENTA"], "dose_number": 2,
        "application_date": "2024-11-15",
    })
    assert early.status_code == 201
    assert len(early.json()["warnings"]) == 2


async def test_notification_actions(client):
    await _setup_catalog(client)
    child_id = (await _create_child(client))["id"]
    await client.post(f"{API}/notifications/children/{child_id}/sync")

    pending = (await client.get(f"{API}/notifications/pending")).json()
    # PENTA 2 espera a la dosis 1: no se envía
    assert len(pending) == 2
    assert not any(n["blocked_by_previous_dose"] for n in pending)
    notification_id = pending[0]["id"]

    sent = await client.post(f"{API}/notifications/{notification_id}/sent")
    assert sent.json()["state"] == "enviada"

    read = await client.post(f"{API}/notifications/{notification_id}/read")
    assert read.json()["state"] == "leida"

    back = await client.post(f"{API}/notifications/{notification_id}/sent")
    assert back.status_code == 422

    missing = await client.post(f"{API}/notifications/00000000-0000-0000-0000-000000000000/read")
    assert missing.status_code == 404

    stats = (await client.get(f"{API}/notifications/stats")).json()
    assert stats["total"] == 3
    assert stats["by_state"]["leida"] == 1
    assert stats["by_state"]["pendiente"] == 2

    purge = await client.delete(f"{API}/notifications/applied", params={"older_than_days": 30})
    assert purge.status_code == 200
    assert purge.json() == {"deleted": 0, "older_than_days": 30}


async def test_dose_registered_when_notification_sync_fails(client, monkeypatch):
    ids = await _setup_catalog(client)
    child_id = (await _create_child(client))["id"]

    async def concurrent_sync(db, child_id, today):
        raise ConcurrentNotificationError(child_id)

    queued = []
    monkeypatch.setattr(notification_service, "sync_child_notifications", concurrent_sync)
    monkeypatch.setattr(
        notification_tasks, "sync_child_notifications_task",
        SimpleNamespace(delay=queued.append),
    )

    dose = await client.post(f"{API}/vaccinations/doses", json={
        "child_id": child_id, "vaccine_id": ids["BCG"], "dose_number": 1,
        "application_date": "2025-02-15",
    })

    assert dose.status_code == 201
    # La sincronización queda encolada en Celery
    assert queued == [child_id]
