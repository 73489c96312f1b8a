"""
Booking Transaction

Race-safe public booking path. The conflict check and the insert run in
one serializable write transaction, so of two simultaneous requests for the
same slot exactly one succeeds and the other gets SLOT_TAKEN.
"""

import logging
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from physiobook.physiobook.exceptions import ConflictError, SerializationFailure, ValidationError
from physiobook.physiobook.models import Appointment, AppointmentStatus
from physiobook.physiobook.models.settings import EMAIL_RE
from physiobook.physiobook.utils import MINUTE_MS, ms_to_iso, new_id, now_ms, validate_duration

logger = logging.getLogger(__name__)


class BookingRequest(BaseModel):
	"""Public booking input. Accepts camelCase keys (slotStartMs...) or field names."""

	model_config = ConfigDict(populate_by_name=True, extra="ignore")

	slot_start_ms: int = Field(alias="slotStartMs")
	duration_minutes: int = Field(alias="durationMinutes")
	patient_name: str = Field(alias="patientName")
	contact_email: str = Field(alias="contactEmail")
	contact_phone: Optional[str] = Field(default=None, alias="contactPhone")
	consent_given: bool = Field(default=False, alias="consentGiven")


class BookingService:
	"""
	Public booking of a single slot.

	Args:
		store: CalendarStore
		resolver: ConflictResolver
		notifier: OutboxNotifier
	"""

	def __init__(self, store, resolver, notifier):
		self.store = store
		self.resolver = resolver
		self.notifier = notifier

	def book_slot(self, request: BookingRequest) -> Dict[str, str]:
		"""
		Reserva un slot como REQUESTED.

		Args:
			request: BookingRequest

		Returns:
			dict: {"id": appointment_id}

		Raises:
			ValidationError: input inválido (antes de tocar el store)
			ConflictError: SLOT_TAKEN, por solapamiento o fallo de serialización

		Algoritmo:
			1. Validar duración, inicio futuro, nombre, email y consentimiento
			2. En una transacción serializable (SQLite: BEGIN IMMEDIATE):
				a. Re-verificar conflictos (appointments activos + blockers)
				b. Insertar appointment REQUESTED
				c. Encolar aviso al admin
			3. Un fallo de serialización de la base también es SLOT_TAKEN
			   (no se reintenta)
		"""
		current = now_ms()
		duration = self._validate(request, current)

		start = request.slot_start_ms
		end = start + duration * MINUTE_MS

		appointment = Appointment(
			id=new_id(),
			patient_name=request.patient_name,
			start_time=start,
			duration_minutes=duration,
			status=AppointmentStatus.REQUESTED.value,
			contact_email=request.contact_email.strip(),
			contact_phone=(request.contact_phone or "").strip() or None,
			flagged_notes=False,
			created_at=current,
			updated_at=current,
		)

		try:
			with self.store.transaction(serializable=True) as session:
				if self.resolver.has_conflicts(start, end, session=session):
					raise ConflictError()

				self.store.insert(session, appointment)

				settings = self.store.get_settings(session=session)
				self.notifier.notify_new_request(session, appointment, settings.admin_notify_email)

		except ConflictError:
			logger.info(f"Booking rejected, slot taken: {ms_to_iso(start)} ({duration} min)")
			raise
		except SerializationFailure as e:
			logger.info(f"Booking aborted by concurrent write at {ms_to_iso(start)}: {e.message}")
			raise ConflictError() from e

		logger.info(f"Appointment {appointment.id} requested for {ms_to_iso(start)} ({duration} min)")
		return {"id": appointment.id}

	def _validate(self, request: BookingRequest, current: int) -> int:
		duration = validate_duration(request.duration_minutes, "duration_minutes")

		if request.slot_start_ms <= current:
			raise ValidationError("slot_start_ms", "Appointments can only be booked in the future")

		if not request.patient_name or not request.patient_name.strip():
			raise ValidationError("patient_name", "patient_name is required")

		if not request.contact_email or not EMAIL_RE.match(request.contact_email.strip()):
			raise ValidationError("contact_email", "contact_email is not a valid email address")

		if request.consent_given is not True:
			raise ValidationError("consent_given", "Consent to data processing is required")

		return duration
