"""
Ciclo de vida de notificaciones — decide qué crear y qué actualizar.

`reconcile` compara las obligaciones recién evaluadas con las notificaciones
existentes de un niño y produce un delta (crear / actualizar). No persiste nada:
el llamador aplica el delta con el Record Store.
"""

from datetime import date
from typing import Iterable
from uuid import UUID

from app.models.notification import NotificationState, NotificationType
from app.schemas.eligibility import Obligation, ObligationState
from app.schemas.notification import (
    NotificationChange,
    NotificationDraft,
    NotificationSnapshot,
    ReconcileResult,
)

_TYPE_BY_STATE = {
    ObligationState.SCHEDULED: NotificationType.RECORDATORIO,
    ObligationState.DUE_SOON: NotificationType.PROXIMA,
    ObligationState.OVERDUE: NotificationType.VENCIDA,
}

_ALLOWED_TRANSITIONS = {
    NotificationState.PENDIENTE: {
        NotificationState.ENVIADA,
        NotificationState.LEIDA,
        NotificationState.APLICADA,
    },
    NotificationState.ENVIADA: {NotificationState.LEIDA, NotificationState.APLICADA},
    NotificationState.LEIDA: {NotificationState.APLICADA},
    NotificationState.APLICADA: set(),
}


class NotificationTransitionError(ValueError):
    """Transición de estado no permitida (p. ej. salir de APLICADA)."""

    def __init__(self, current: NotificationState, target: NotificationState):
        self.current = current
        self.target = target
        super().__init__(
            f"No se puede pasar una notificación de {current.value} a {target.value}"
        )


def type_for_state(state: ObligationState) -> NotificationType:
    """Tipo de notificación que corresponde a una obligación no cumplida."""
    try:
        return _TYPE_BY_STATE[state]
    except KeyError:
        raise ValueError(f"Una obligación {state.value} no genera notificación") from None


def advance_state(
    current: NotificationState, target: NotificationState
) -> NotificationState:
    """Valida una transición manual o automática y retorna el nuevo estado."""
    if current == target:
        return current
    if target not in _ALLOWED_TRANSITIONS[current]:
        raise NotificationTransitionError(current, target)
    return target


def build_message(
    notification_type: NotificationType,
    vaccine_label: str,
    dose_number: int,
    scheduled_date: date,
    blocked_by_previous_dose: bool = False,
) -> str:
    if blocked_by_previous_dose:
        # Sin fecha: depende de cuándo se aplique la dosis anterior
        return (
            f"Recordatorio de vacunación: {vaccine_label} (dosis {dose_number}) "
            f"pendiente de la dosis {dose_number - 1}. Consulte en su centro de salud."
        )
    fecha = scheduled_date.strftime("%d/%m/%Y")
    if notification_type == NotificationType.VENCIDA:
        return (
            f"¡VACUNA VENCIDA! {vaccine_label} (dosis {dose_number}) debió aplicarse "
            f"el {fecha}. Contacte a su centro de salud."
        )
    if notification_type == NotificationType.PROXIMA:
        return (
            f"Próxima vacuna: {vaccine_label} (dosis {dose_number}) programada para "
            f"el {fecha}. Acuda a su centro de salud."
        )
    return (
        f"Recordatorio de vacunación: {vaccine_label} (dosis {dose_number}) "
        f"programada para el {fecha}."
    )


def _is_visible(
    obligation: Obligation, today: date, reminder_horizon_days: int | None
) -> bool:
    if reminder_horizon_days is None or obligation.state != ObligationState.SCHEDULED:
        return True
    return (obligation.target_date - today).days <= reminder_horizon_days


def reconcile(
    child_id: UUID,
    obligations: Iterable[Obligation],
    existing: Iterable[NotificationSnapshot],
    today: date,
    *,
    reminder_horizon_days: int | None = None,
) -> ReconcileResult:
    """
    Calcula el delta de notificaciones para un niño.

    `existing` debe venir en orden de creación: si hubiera más de una
    notificación activa para la misma dosis, se trabaja sobre la más antigua.
    Las notificaciones APLICADA nunca se modifican. Aplicar el resultado y
    volver a reconciliar con las mismas obligaciones produce un delta vacío.
    """
    active: dict[tuple[UUID, int], NotificationSnapshot] = {}
    for notification in existing:
        if notification.state == NotificationState.APLICADA:
            continue
        active.setdefault((notification.vaccine_id, notification.dose_number), notification)

    to_create: list[NotificationDraft] = []
    to_update: list[NotificationChange] = []

    for obligation in obligations:
        current = active.get(obligation.key)

        if obligation.state == ObligationState.SATISFIED:
            if current is not None:
                to_update.append(NotificationChange(
                    id=current.id,
                    state=advance_state(current.state, NotificationState.APLICADA),
                ))
            continue

        notification_type = type_for_state(obligation.state)
        blocked = obligation.blocked_by_previous_dose
        message = build_message(
            notification_type, obligation.label, obligation.dose_number,
            obligation.target_date, blocked_by_previous_dose=blocked,
        )

        if current is None:
            if not _is_visible(obligation, today, reminder_horizon_days):
                continue
            to_create.append(NotificationDraft(
                child_id=child_id,
                vaccine_id=obligation.vaccine_id,
                dose_number=obligation.dose_number,
                notification_type=notification_type,
                scheduled_date=obligation.target_date,
                message=message,
                blocked_by_previous_dose=blocked,
            ))
            continue

        if (
            current.notification_type != notification_type
            or current.scheduled_date != obligation.target_date
            or current.blocked_by_previous_dose != blocked
        ):
            to_update.append(NotificationChange(
                id=current.id,
                notification_type=notification_type,
                scheduled_date=obligation.target_date,
                message=message,
                blocked_by_previous_dose=blocked,
            ))

    return ReconcileResult(to_create=to_create, to_update=to_update)
