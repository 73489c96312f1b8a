"""
Appointment Lifecycle

State machine for appointment status:

	REQUESTED -> CONFIRMED   (confirm)
	REQUESTED -> CANCELLED   (reject)
	REQUESTED -> EXPIRED     (expire, request timeout sweep)
	CONFIRMED -> CANCELLED   (cancel)

CANCELLED and EXPIRED are terminal. CONFIRMED never goes back to REQUESTED.
"""

import logging
from typing import Any, Callable, Dict, Optional

from physiobook.physiobook.exceptions import InvalidTransitionError, NotFoundError
from physiobook.physiobook.models import AppointmentStatus
from physiobook.physiobook.utils import now_ms

logger = logging.getLogger(__name__)

REQUESTED = AppointmentStatus.REQUESTED.value
CONFIRMED = AppointmentStatus.CONFIRMED.value
CANCELLED = AppointmentStatus.CANCELLED.value
EXPIRED = AppointmentStatus.EXPIRED.value

TRANSITIONS = {
	REQUESTED: frozenset({CONFIRMED, CANCELLED, EXPIRED}),
	CONFIRMED: frozenset({CANCELLED}),
	CANCELLED: frozenset(),
	EXPIRED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
	return target in TRANSITIONS.get(current, frozenset())


class AppointmentLifecycle:
	"""
	Status transitions with patient notifications.

	Args:
		store: CalendarStore
		notifier: OutboxNotifier
	"""

	def __init__(self, store, notifier):
		self.store = store
		self.notifier = notifier

	can_transition = staticmethod(can_transition)

	def confirm(self, appointment_id: str) -> Dict[str, Any]:
		"""
		REQUESTED -> CONFIRMED. Idempotente: confirmar un CONFIRMED no hace nada.

		Returns:
			dict: {"ok": True, "status": "CONFIRMED", "changed": bool}
		"""
		return self._transition(
			appointment_id,
			target=CONFIRMED,
			allowed_from=REQUESTED,
			notify=self.notifier.notify_confirmed,
		)

	def reject(self, appointment_id: str) -> Dict[str, Any]:
		"""
		REQUESTED -> CANCELLED. Rechazar un CANCELLED no hace nada; rechazar
		un CONFIRMED es InvalidTransitionError (hay que cancelarlo).
		"""
		return self._transition(
			appointment_id,
			target=CANCELLED,
			allowed_from=REQUESTED,
			notify=self.notifier.notify_rejected,
			confirmed_message="Appointment is already confirmed. Cancel it instead.",
		)

	def cancel(self, appointment_id: str) -> Dict[str, Any]:
		"""CONFIRMED -> CANCELLED. Cancelar un CANCELLED no hace nada."""
		return self._transition(appointment_id, target=CANCELLED, allowed_from=CONFIRMED)

	def expire(self, appointment_id: str) -> Dict[str, Any]:
		"""REQUESTED -> EXPIRED. Solo desde REQUESTED; no es idempotente."""
		return self._transition(
			appointment_id, target=EXPIRED, allowed_from=REQUESTED, idempotent=False
		)

	def _transition(
		self,
		appointment_id: str,
		target: str,
		allowed_from: str,
		notify: Optional[Callable] = None,
		idempotent: bool = True,
		confirmed_message: Optional[str] = None,
	) -> Dict[str, Any]:
		"""
		Algoritmo:
			1. Cargar el appointment dentro de una transacción de escritura
			2. Si ya está en `target` (e idempotente) -> éxito sin cambios
			3. Si no está en `allowed_from` -> InvalidTransitionError
			4. Cambiar status y updated_at, encolar notificación si corresponde
		"""
		with self.store.transaction(serializable=True) as session:
			appointment = self.store.get_appointment(appointment_id, session=session)
			if appointment is None:
				raise NotFoundError("Appointment", appointment_id)

			current = appointment.status

			if idempotent and current == target:
				return {"ok": True, "status": current, "changed": False}

			if current != allowed_from or not can_transition(current, target):
				message = confirmed_message if current == CONFIRMED else None
				raise InvalidTransitionError(current, target, message)

			appointment.status = target
			appointment.updated_at = now_ms()

			if notify is not None:
				notify(session, appointment)

		logger.info(f"Appointment {appointment_id}: {current} -> {target}")
		return {"ok": True, "status": target, "changed": True}
