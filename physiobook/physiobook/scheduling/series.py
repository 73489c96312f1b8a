"""
Series Expansion

Recurring appointment series (weekly) and recurring blocker groups
(every N days). Occurrences step in civil time, so the wall-clock time of
the anchor is kept across DST changes. Conflicting occurrences are skipped,
the rest are committed in one transaction under a shared group id.
"""

import logging
from typing import Any, Dict, List

from physiobook.physiobook.exceptions import ValidationError
from physiobook.physiobook.models import ACTIVE_STATUSES, Appointment, AppointmentStatus, Blocker
from physiobook.physiobook.utils import MINUTE_MS, ms_to_iso, new_id, now_ms, validate_duration

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_SERIES = 52
MAX_BLOCKER_SERIES = 365


class IntervalRule:
	"""
	Recurrence every `days` civil days.

	Args:
		days: intervalo en días (7 = semanal)
		normalizer: TimeZoneNormalizer de la consulta
	"""

	def __init__(self, days: int, normalizer):
		if isinstance(days, bool) or not isinstance(days, int) or days < 1:
			raise ValidationError("interval_days", "interval_days must be a positive integer")
		self.days = days
		self.normalizer = normalizer

	def occurrence(self, anchor: int, index: int) -> int:
		"""Instante de la ocurrencia `index` (0 = anchor), misma hora civil."""
		if index == 0:
			return anchor
		civil = self.normalizer.instant_to_civil(anchor)
		date = self.normalizer.add_days(civil.date, index * self.days)
		return self.normalizer.civil_to_instant(date, civil.hour, civil.minute)

	def __repr__(self) -> str:
		return f"<IntervalRule every {self.days} days>"


def validate_count(count: int, max_count: int) -> int:
	if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= max_count:
		raise ValidationError("count", f"count must be between 1 and {max_count}")
	return count


def expand_series(anchor_instant: int, rule: IntervalRule, count: int, max_count: int) -> List[int]:
	"""
	Instantes de inicio candidatos de una serie, en orden cronológico.

	Args:
		anchor_instant: inicio de la primera ocurrencia
		rule: IntervalRule
		count: número de ocurrencias
		max_count: límite (52 series de pacientes, 365 grupos de blockers)

	Raises:
		ValidationError: count fuera de rango
	"""
	validate_count(count, max_count)
	return [rule.occurrence(anchor_instant, i) for i in range(count)]


class SeriesExpander:
	"""
	Creates recurring appointment series and blocker groups.

	Args:
		store: CalendarStore
		resolver: ConflictResolver
		normalizer: TimeZoneNormalizer
	"""

	def __init__(self, store, resolver, normalizer):
		self.store = store
		self.resolver = resolver
		self.normalizer = normalizer

	def create_appointment_series(self, fields: Dict[str, Any], anchor: int, count: int) -> Dict[str, Any]:
		"""
		Crea una serie semanal de appointments.

		Args:
			fields: patient_name, duration_minutes, status (default CONFIRMED),
				contact_email, contact_phone, notes
			anchor: inicio de la primera ocurrencia (epoch ms)
			count: 1-52

		Returns:
			dict: {"series_id", "created": [ids], "skipped": [instants]}

		Algoritmo:
			1. Validar count, duración, estado y campos (antes de tocar el store)
			2. Expandir candidatos semanales en tiempo civil
			3. En una transacción: un batch checker sobre todo el rango;
			   ocurrencias en conflicto se saltan, el resto se inserta y se
			   reserva en el checker
		"""
		validate_count(count, MAX_APPOINTMENT_SERIES)
		duration = validate_duration(fields.get("duration_minutes"), "duration_minutes")
		status = fields.get("status") or AppointmentStatus.CONFIRMED.value
		if status not in ACTIVE_STATUSES:
			raise ValidationError("status", f"status must be one of {', '.join(ACTIVE_STATUSES)}")

		series_id = new_id()
		current = now_ms()

		def build(start: int) -> Appointment:
			appointment = Appointment(
				id=new_id(),
				patient_name=fields.get("patient_name"),
				start_time=start,
				duration_minutes=duration,
				status=status,
				series_id=series_id,
				contact_email=fields.get("contact_email") or None,
				contact_phone=fields.get("contact_phone") or None,
				notes=fields.get("notes") or None,
				created_at=current,
				updated_at=current,
			)
			appointment.validate()
			return appointment

		# Valida nombre y notas una vez antes de abrir la transacción
		build(anchor)

		starts = expand_series(anchor, IntervalRule(7, self.normalizer), count, MAX_APPOINTMENT_SERIES)
		duration_ms = duration * MINUTE_MS

		created: List[str] = []
		skipped: List[int] = []

		with self.store.transaction(serializable=True) as session:
			checker = self.resolver.create_batch_checker(
				starts[0], starts[-1] + duration_ms, session=session
			)
			for start in starts:
				end = start + duration_ms
				if checker(start, end):
					skipped.append(start)
					logger.info(f"Series {series_id}: skipped {ms_to_iso(start)} (conflict)")
					continue

				appointment = build(start)
				self.store.insert(session, appointment)
				checker.reserve(start, end)
				created.append(appointment.id)

		logger.info(
			f"Series {series_id} created: {len(created)} appointments, {len(skipped)} skipped"
		)
		return {"series_id": series_id, "created": created, "skipped": skipped}

	def create_blocker_series(
		self,
		title: str,
		anchor_start: int,
		anchor_end: int,
		count: int,
		interval_days: int = 1,
	) -> Dict[str, Any]:
		"""
		Crea un grupo de blockers repetido cada `interval_days` días.

		La duración de cada blocker es la del anchor (anchor_end - anchor_start).

		Returns:
			dict: {"blocker_group_id", "created": [ids], "skipped": [instants]}
		"""
		validate_count(count, MAX_BLOCKER_SERIES)
		rule = IntervalRule(interval_days, self.normalizer)

		group_id = new_id()
		current = now_ms()

		template = Blocker(id=new_id(), title=title, start_time=anchor_start, end_time=anchor_end, created_at=current)
		template.validate()
		length = anchor_end - anchor_start

		starts = expand_series(anchor_start, rule, count, MAX_BLOCKER_SERIES)

		created: List[str] = []
		skipped: List[int] = []

		with self.store.transaction(serializable=True) as session:
			checker = self.resolver.create_batch_checker(
				starts[0], starts[-1] + length, session=session
			)
			for start in starts:
				end = start + length
				if checker(start, end):
					skipped.append(start)
					logger.info(f"Blocker group {group_id}: skipped {ms_to_iso(start)} (conflict)")
					continue

				blocker = Blocker(
					id=new_id(),
					title=template.title,
					start_time=start,
					end_time=end,
					blocker_group_id=group_id,
					created_at=current,
				)
				self.store.insert(session, blocker)
				checker.reserve(start, end)
				created.append(blocker.id)

		logger.info(
			f"Blocker group {group_id} created: {len(created)} blockers, {len(skipped)} skipped"
		)
		return {"blocker_group_id": group_id, "created": created, "skipped": skipped}
