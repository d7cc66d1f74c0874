"""
Tests de la reconciliación de notificaciones (función pura, sin DB).
"""

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.models.notification import NotificationState, NotificationType
from app.schemas.eligibility import ObligationState
from app.schemas.notification import NotificationSnapshot
from app.services.eligibility import evaluate
from app.services.notification_lifecycle import (
    NotificationTransitionError,
    advance_state,
    build_message,
    reconcile,
)

BIRTH = date(2024, 1, 1)
CHILD_ID = uuid4()


def _apply(result, existing):
    """Simula el Record Store: aplica el delta sobre snapshots en memoria."""
    by_id = {n.id: n for n in existing}
    for change in result.to_update:
        updates = change.model_dump(exclude={"id"}, exclude_none=True)
        by_id[change.id] = by_id[change.id].model_copy(update=updates)
    created = [
        NotificationSnapshot(
            id=uuid4(),
            created_at=datetime.now(timezone.utc),
            **draft.model_dump(),
        )
        for draft in result.to_create
    ]
    return list(by_id.values()) + created


def _snapshot(obligation, state, notification_type=None, scheduled_date=None):
    return NotificationSnapshot(
        id=uuid4(),
        child_id=CHILD_ID,
        vaccine_id=obligation.vaccine_id,
        dose_number=obligation.dose_number,
        notification_type=notification_type or NotificationType.PROXIMA,
        state=state,
        scheduled_date=scheduled_date or obligation.target_date,
        message="mensaje previo",
    )


def test_creates_one_notification_per_unmet_obligation(make_entry, make_dose):
    catalog = [
        make_entry("BCG", 1, 0),
        make_entry("PENTA", 1, 60, min_age_days=42),
        make_entry("SRP", 1, 365),
    ]
    today = BIRTH + timedelta(days=50)
    evaluation = evaluate(BIRTH, today, catalog, [make_dose("BCG", 1, BIRTH)])

    result = reconcile(CHILD_ID, evaluation.obligations, [], today)

    types = {d.vaccine_id: d.notification_type for d in result.to_create}
    assert len(result.to_create) == 2
    assert set(types.values()) == {NotificationType.PROXIMA, NotificationType.RECORDATORIO}
    assert all(d.state == NotificationState.PENDIENTE for d in result.to_create)
    assert result.to_update == []


def test_reconcile_is_idempotent(make_entry):
    catalog = [make_entry("PENTA", 1, 60), make_entry("PENTA", 2, 120)]
    today = BIRTH + timedelta(days=100)
    obligations = evaluate(BIRTH, today, catalog, []).obligations

    first = reconcile(CHILD_ID, obligations, [], today)
    existing = _apply(first, [])
    second = reconcile(CHILD_ID, obligations, existing, today)

    assert len(first.to_create) == 2
    assert second.is_empty


def test_sent_notification_becomes_applied(make_entry, make_dose):
    catalog = [make_entry("PENTA", 1, 60)]
    today = BIRTH + timedelta(days=70)
    pending = evaluate(BIRTH, today, catalog, []).obligations[0]
    existing = [_snapshot(pending, NotificationState.ENVIADA)]

    evaluation = evaluate(BIRTH, today, catalog, [make_dose("PENTA", 1, today)])
    result = reconcile(CHILD_ID, evaluation.obligations, existing, today)

    assert result.to_create == []
    assert len(result.to_update) == 1
    assert result.to_update[0].id == existing[0].id
    assert result.to_update[0].state == NotificationState.APLICADA


def test_applied_notification_is_never_touched(make_entry, make_dose):
    catalog = [make_entry("PENTA", 1, 60)]
    today = BIRTH + timedelta(days=70)
    pending = evaluate(BIRTH, today, catalog, []).obligations[0]
    existing = [_snapshot(pending, NotificationState.APLICADA)]

    evaluation = evaluate(BIRTH, today, catalog, [make_dose("PENTA", 1, today)])

    assert reconcile(CHILD_ID, evaluation.obligations, existing, today).is_empty


def test_type_escalates_with_time(make_entry):
    catalog = [make_entry("PENTA", 1, 60)]
    early = BIRTH + timedelta(days=10)
    first = reconcile(CHILD_ID, evaluate(BIRTH, early, catalog, []).obligations, [], early)
    existing = _apply(first, [])
    assert existing[0].notification_type == NotificationType.RECORDATORIO

    late = BIRTH + timedelta(days=120)
    obligation = evaluate(BIRTH, late, catalog, []).obligations[0]
    assert obligation.state == ObligationState.OVERDUE

    result = reconcile(CHILD_ID, [obligation], existing, late)

    assert result.to_create == []
    change = result.to_update[0]
    assert change.notification_type == NotificationType.VENCIDA
    assert change.state is None
    assert "VENCIDA" in change.message


def test_keeps_delivery_state_on_type_change(make_entry):
    catalog = [make_entry("PENTA", 1, 60)]
    today = BIRTH + timedelta(days=120)
    obligation = evaluate(BIRTH, today, catalog, []).obligations[0]
    existing = [_snapshot(obligation, NotificationState.LEIDA, NotificationType.PROXIMA)]

    result = reconcile(CHILD_ID, [obligation], existing, today)

    merged = _apply(result, existing)[0]
    assert merged.state == NotificationState.LEIDA
    assert merged.notification_type == NotificationType.VENCIDA


def test_new_notification_after_applied_one(make_entry):
    """Si la dosis vuelve a estar pendiente se crea otra; la APLICADA queda igual."""
    catalog = [make_entry("PENTA", 1, 60)]
    today = BIRTH + timedelta(days=70)
    obligation = evaluate(BIRTH, today, catalog, []).obligations[0]
    existing = [_snapshot(obligation, NotificationState.APLICADA)]

    result = reconcile(CHILD_ID, [obligation], existing, today)

    assert len(result.to_create) == 1
    assert result.to_update == []


def test_oldest_active_notification_wins(make_entry):
    catalog = [make_entry("PENTA", 1, 60)]
    today = BIRTH + timedelta(days=120)
    obligation = evaluate(BIRTH, today, catalog, []).obligations[0]
    oldest = _snapshot(obligation, NotificationState.PENDIENTE)
    newest = _snapshot(obligation, NotificationState.PENDIENTE)

    result = reconcile(CHILD_ID, [obligation], [oldest, newest], today)

    assert [c.id for c in result.to_update] == [oldest.id]


def test_unrelated_notifications_left_alone(make_entry, vaccine_ids):
    catalog = [make_entry("PENTA", 1, 60)]
    today = BIRTH + timedelta(days=50)
    obligation = evaluate(BIRTH, today, catalog, []).obligations[0]
    orphan = NotificationSnapshot(
        id=uuid4(), child_id=CHILD_ID, vaccine_id=vaccine_ids["SRP"], dose_number=1,
        notification_type=NotificationType.RECORDATORIO, state=NotificationState.PENDIENTE,
        scheduled_date=BIRTH + timedelta(days=365), message="-",
    )

    result = reconcile(CHILD_ID, [obligation], [orphan], today)

    assert all(c.id != orphan.id for c in result.to_update)


def test_reminder_horizon_skips_far_obligations(make_entry):
    catalog = [make_entry("PENTA", 1, 60), make_entry("SRP", 1, 540)]
    today = BIRTH + timedelta(days=10)
    obligations = evaluate(BIRTH, today, catalog, []).obligations

    result = reconcile(CHILD_ID, obligations, [], today, reminder_horizon_days=365)

    assert [d.dose_number for d in result.to_create] == [1]
    assert result.to_create[0].scheduled_date == BIRTH + timedelta(days=60)


def test_advance_state_rules():
    assert advance_state(NotificationState.PENDIENTE, NotificationState.ENVIADA) == NotificationState.ENVIADA
    assert advance_state(NotificationState.ENVIADA, NotificationState.ENVIADA) == NotificationState.ENVIADA
    assert advance_state(NotificationState.LEIDA, NotificationState.APLICADA) == NotificationState.APLICADA

    with pytest.raises(NotificationTransitionError):
        advance_state(NotificationState.APLICADA, NotificationState.PENDIENTE)
    with pytest.raises(NotificationTransitionError):
        advance_state(NotificationState.LEIDA, NotificationState.ENVIADA)


def test_build_message_formats_date():
    message = build_message(NotificationType.PROXIMA, "Pentavalente", 2, date(2024, 5, 1))

    assert "Pentavalente" in message
    assert "dosis 2" in message
    assert "01/05/2024" in message


def test_blocked_dose_reminder_has_no_past_date(make_entry):
    catalog = [
        make_entry("PENTA", 1, 60, min_age_days=42),
        make_entry("PENTA", 2, 120, min_age_days=70, min_interval_days=28),
    ]
    today = BIRTH + timedelta(days=150)
    obligations = evaluate(BIRTH, today, catalog, []).obligations

    result = reconcile(CHILD_ID, obligations, [], today)

    blocked = next(d for d in result.to_create if d.dose_number == 2)
    assert blocked.blocked_by_previous_dose is True
    assert blocked.notification_type == NotificationType.RECORDATORIO
    assert "pendiente de la dosis 1" in blocked.message
    assert blocked.scheduled_date.strftime("%d/%m/%Y") not in blocked.message
    first = next(d for d in result.to_create if d.dose_number == 1)
    assert first.blocked_by_previous_dose is False


def test_applying_previous_dose_unblocks_reminder(make_entry, make_dose):
    catalog = [
        make_entry("PENTA", 1, 60, min_age_days=42),
        make_entry("PENTA", 2, 120, min_age_days=70, min_interval_days=28),
    ]
    today = BIRTH + timedelta(days=150)
    existing = _apply(
        reconcile(CHILD_ID, evaluate(BIRTH, today, catalog, []).obligations, [], today), []
    )

    evaluation = evaluate(BIRTH, today, catalog, [make_dose("PENTA", 1, today)])
    result = reconcile(CHILD_ID, evaluation.obligations, existing, today)

    penta2 = next(n for n in existing if n.dose_number == 2)
    change = next(c for c in result.to_update if c.id == penta2.id)
    assert change.blocked_by_previous_dose is False
    assert "programada para el" in change.message
    assert change.state is None
