"""
Calendar Service

Admin operations on the practice calendar:
- create appointments (single or weekly series), default status CONFIRMED
- update appointments (scope single | future) with conflict re-checks
- delete appointments (scope single | series) and blockers (single | group)
- create blockers (single or recurring group)
- range listing and lookup
"""

import logging
from typing import Any, Dict, List, Optional

from physiobook.physiobook.exceptions import ConflictError, NotFoundError, ValidationError
from physiobook.physiobook.models import ACTIVE_STATUSES, Appointment, AppointmentStatus, Blocker
from physiobook.physiobook.scheduling.overlap import describe
from physiobook.physiobook.utils import ms_to_iso, new_id, now_ms, validate_duration

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "Time conflict: this period is already booked. Please pick another time."

# Campos editables por scope
SINGLE_FIELDS = (
	"start_time",
	"duration_minutes",
	"patient_name",
	"contact_email",
	"contact_phone",
	"notes",
)
FUTURE_FIELDS = ("duration_minutes", "patient_name", "contact_email", "contact_phone")

APPOINTMENT_UPDATE_SCOPES = ("single", "future")
APPOINTMENT_DELETE_SCOPES = ("single", "series")
BLOCKER_DELETE_SCOPES = ("single", "group")


def _check_scope(scope: str, allowed) -> str:
	if scope not in allowed:
		raise ValidationError("scope", f"scope must be one of {', '.join(allowed)}")
	return scope


def _check_range(range_from: int, range_to: int) -> None:
	for field, value in (("from", range_from), ("to", range_to)):
		if isinstance(value, bool) or not isinstance(value, int):
			raise ValidationError(field, f"{field} must be an epoch milliseconds integer")
	if range_to <= range_from:
		raise ValidationError("to", "to must be after from")


class CalendarService:
	"""
	Admin calendar operations.

	Args:
		store: CalendarStore
		resolver: ConflictResolver
		series: SeriesExpander
	"""

	def __init__(self, store, resolver, series):
		self.store = store
		self.resolver = resolver
		self.series = series

	# ===== APPOINTMENTS =====

	def create_appointment(
		self,
		patient_name: str,
		start_time: int,
		duration_minutes: int,
		status: Optional[str] = None,
		contact_email: Optional[str] = None,
		contact_phone: Optional[str] = None,
		notes: Optional[str] = None,
		series: Optional[Dict[str, Any]] = None,
	) -> Dict[str, Any]:
		"""
		Crea un appointment desde la administración.

		Args:
			status: REQUESTED o CONFIRMED (default CONFIRMED)
			series: {"count": n} para una serie semanal (1-52)

		Returns:
			dict: {"id"} o, con series, {"series_id", "created", "skipped"}

		Raises:
			ValidationError: input inválido
			ConflictError: el intervalo se solapa con un compromiso activo
		"""
		status = status or AppointmentStatus.CONFIRMED.value
		if status not in ACTIVE_STATUSES:
			raise ValidationError("status", f"status must be one of {', '.join(ACTIVE_STATUSES)}")

		if series:
			fields = {
				"patient_name": patient_name,
				"duration_minutes": duration_minutes,
				"status": status,
				"contact_email": contact_email,
				"contact_phone": contact_phone,
				"notes": notes,
			}
			return self.series.create_appointment_series(fields, start_time, series.get("count"))

		current = now_ms()
		appointment = Appointment(
			id=new_id(),
			patient_name=patient_name,
			start_time=start_time,
			duration_minutes=duration_minutes,
			status=status,
			contact_email=contact_email,
			contact_phone=contact_phone,
			notes=notes,
			created_at=current,
			updated_at=current,
		)
		appointment.validate()

		# Check-then-act en una transacción normal (no inmediata)
		with self.store.transaction(serializable=False) as session:
			conflicts = self.resolver.find_conflicts(
				appointment.start_time, appointment.end_time, session=session
			)
			if conflicts:
				raise ConflictError(CONFLICT_MESSAGE, [describe(c) for c in conflicts])
			self.store.insert(session, appointment)

		logger.info(
			f"Appointment {appointment.id} created ({status}) for {ms_to_iso(appointment.start_time)}"
		)
		return {"id": appointment.id}

	def update_appointment(self, appointment_id: str, changes: Dict[str, Any], scope: str = "single") -> Dict[str, Any]:
		"""
		Modifica un appointment o los siguientes de su serie.

		Args:
			appointment_id: appointment editado
			changes: subset de start_time, duration_minutes, patient_name,
				contact_email, contact_phone, notes
			scope: "single" o "future"

		Returns:
			dict: {"ok": True, "updated": [ids]}

		El status nunca cambia aquí (ver AppointmentLifecycle).
		"""
		_check_scope(scope, APPOINTMENT_UPDATE_SCOPES)

		if "status" in changes:
			raise ValidationError("status", "status changes go through confirm/reject/cancel")

		allowed = SINGLE_FIELDS if scope == "single" else FUTURE_FIELDS
		unknown = sorted(set(changes) - set(allowed))
		if unknown:
			raise ValidationError(unknown[0], f"{unknown[0]} cannot be changed with scope '{scope}'")

		if "duration_minutes" in changes:
			validate_duration(changes["duration_minutes"], "duration_minutes")

		if scope == "single":
			return self._update_single(appointment_id, changes)
		return self._update_future(appointment_id, changes)

	def _update_single(self, appointment_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
		with self.store.transaction(serializable=False) as session:
			appointment = self.store.get_appointment(appointment_id, session=session)
			if appointment is None:
				raise NotFoundError("Appointment", appointment_id)

			for field, value in changes.items():
				setattr(appointment, field, value)
			appointment.validate()
			appointment.updated_at = now_ms()

			# Re-verificar solo si cambió el horario de un appointment activo
			rescheduled = "start_time" in changes or "duration_minutes" in changes
			if rescheduled and appointment.is_active():
				conflicts = self.resolver.find_conflicts(
					appointment.start_time,
					appointment.end_time,
					exclude_id=appointment.id,
					session=session,
				)
				if conflicts:
					raise ConflictError(CONFLICT_MESSAGE, [describe(c) for c in conflicts])

		logger.info(f"Appointment {appointment_id} updated: {', '.join(sorted(changes))}")
		return {"ok": True, "updated": [appointment_id]}

	def _update_future(self, appointment_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
		"""
		Algoritmo:
			1. Cargar el appointment; debe pertenecer a una serie
			2. Miembros de la serie con start_time >= el editado
			3. Aplicar cambios y validar cada miembro
			4. Si cambió la duración: batch checker sobre el rango, excluyendo
			   los miembros editados; cualquier conflicto aborta todo
		"""
		with self.store.transaction(serializable=False) as session:
			anchor = self.store.get_appointment(appointment_id, session=session)
			if anchor is None:
				raise NotFoundError("Appointment", appointment_id)
			if not anchor.series_id:
				raise ValidationError("scope", "scope 'future' requires an appointment that belongs to a series")

			members = self.store.series_members(
				anchor.series_id, starting_at=anchor.start_time, session=session
			)
			current = now_ms()

			for member in members:
				for field, value in changes.items():
					setattr(member, field, value)
				member.validate()
				member.updated_at = current

			if "duration_minutes" in changes and members:
				checker = self.resolver.create_batch_checker(
					members[0].start_time,
					members[-1].end_time,
					exclude_ids=[m.id for m in members],
					session=session,
				)
				conflicts = []
				for member in members:
					if not member.is_active():
						continue
					if checker(member.start_time, member.end_time):
						conflicts.append({
							"id": member.id,
							"kind": member.kind,
							"startInstant": member.start_time,
							"endInstant": member.end_time,
						})
					checker.reserve(member.start_time, member.end_time)

				if conflicts:
					raise ConflictError(CONFLICT_MESSAGE, conflicts)

			updated = [m.id for m in members]

		logger.info(
			f"Series {anchor.series_id}: {len(updated)} appointments updated from "
			f"{ms_to_iso(anchor.start_time)}"
		)
		return {"ok": True, "updated": updated}

	def delete_appointment(self, appointment_id: str, scope: str = "single") -> Dict[str, Any]:
		"""
		Elimina un appointment o toda su serie.

		Con scope "series" y un appointment sin serie se elimina solo ese.
		"""
		_check_scope(scope, APPOINTMENT_DELETE_SCOPES)

		with self.store.transaction(serializable=False) as session:
			appointment = self.store.get_appointment(appointment_id, session=session)
			if appointment is None:
				raise NotFoundError("Appointment", appointment_id)

			if scope == "series" and appointment.series_id:
				deleted = self.store.delete_series(session, appointment.series_id)
			else:
				deleted = self.store.delete_appointment(session, appointment_id)

		logger.info(f"Deleted {deleted} appointment(s) (id={appointment_id}, scope={scope})")
		return {"ok": True, "deleted": deleted}

	def get_appointment(self, appointment_id: str) -> Appointment:
		appointment = self.store.get_appointment(appointment_id)
		if appointment is None:
			raise NotFoundError("Appointment", appointment_id)
		return appointment

	def list_appointments(self, range_from: int, range_to: int) -> List[Appointment]:
		"""Appointments de cualquier estado que se solapan con [range_from, range_to)."""
		_check_range(range_from, range_to)
		return self.store.find_overlapping_appointments(range_from, range_to, statuses=())

	# ===== BLOCKERS =====

	def create_blocker(
		self,
		title: str,
		start_time: int,
		end_time: int,
		series: Optional[Dict[str, Any]] = None,
	) -> Dict[str, Any]:
		"""
		Crea un blocker, o un grupo con series={"count": n, "interval_days": d}.

		Returns:
			dict: {"id"} o {"blocker_group_id", "created", "skipped"}
		"""
		if series:
			return self.series.create_blocker_series(
				title,
				start_time,
				end_time,
				series.get("count"),
				series.get("interval_days", 1),
			)

		blocker = Blocker(
			id=new_id(),
			title=title,
			start_time=start_time,
			end_time=end_time,
			created_at=now_ms(),
		)
		blocker.validate()

		with self.store.transaction(serializable=False) as session:
			conflicts = self.resolver.find_conflicts(blocker.start_time, blocker.end_time, session=session)
			if conflicts:
				raise ConflictError(CONFLICT_MESSAGE, [describe(c) for c in conflicts])
			self.store.insert(session, blocker)

		logger.info(f"Blocker {blocker.id} created: {blocker.title} at {ms_to_iso(blocker.start_time)}")
		return {"id": blocker.id}

	def delete_blocker(self, blocker_id: str, scope: str = "single") -> Dict[str, Any]:
		_check_scope(scope, BLOCKER_DELETE_SCOPES)

		with self.store.transaction(serializable=False) as session:
			blocker = self.store.get_blocker(blocker_id, session=session)
			if blocker is None:
				raise NotFoundError("Blocker", blocker_id)

			if scope == "group" and blocker.blocker_group_id:
				deleted = self.store.delete_blocker_group(session, blocker.blocker_group_id)
			else:
				deleted = self.store.delete_blocker(session, blocker_id)

		logger.info(f"Deleted {deleted} blocker(s) (id={blocker_id}, scope={scope})")
		return {"ok": True, "deleted": deleted}

	def get_blocker(self, blocker_id: str) -> Blocker:
		blocker = self.store.get_blocker(blocker_id)
		if blocker is None:
			raise NotFoundError("Blocker", blocker_id)
		return blocker

	def list_blockers(self, range_from: int, range_to: int) -> List[Blocker]:
		_check_range(range_from, range_to)
		return self.store.find_overlapping_blockers(range_from, range_to)
