# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Appointment model

Patient appointment row. `end_time` is always derived from
`start_time + duration_minutes`, never taken from input.
"""

from enum import Enum
from typing import Any, Dict

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Column, Index, Integer, String, Text

from physiobook.physiobook.exceptions import ValidationError
from physiobook.physiobook.models.base import Base
from physiobook.physiobook.models.settings import EMAIL_RE
from physiobook.physiobook.scheduling.notes_filter import filter_notes
from physiobook.physiobook.utils import MINUTE_MS, ms_to_iso, validate_duration


class AppointmentStatus(str, Enum):
	REQUESTED = "REQUESTED"
	CONFIRMED = "CONFIRMED"
	CANCELLED = "CANCELLED"
	EXPIRED = "EXPIRED"


# Solo estos estados ocupan el calendario
ACTIVE_STATUSES = (AppointmentStatus.REQUESTED.value, AppointmentStatus.CONFIRMED.value)

MAX_NAME_LENGTH = 200


class Appointment(Base):
	"""
	Appointment with scheduling validation.

	Flujo:
	1. Paciente solicita -> REQUESTED (ocupa el slot)
	2. Admin confirma -> CONFIRMED, o rechaza -> CANCELLED
	3. Si nadie responde a tiempo -> EXPIRED (sweep periódico)
	"""

	__tablename__ = "appointments"

	kind = "appointment"

	id = Column(String(36), primary_key=True)
	patient_name = Column(String(MAX_NAME_LENGTH), nullable=False)
	start_time = Column(BigInteger, nullable=False)
	end_time = Column(BigInteger, nullable=False)
	duration_minutes = Column(Integer, nullable=False)
	status = Column(String(16), nullable=False, default=AppointmentStatus.REQUESTED.value)
	series_id = Column(String(36), nullable=True)
	contact_email = Column(String(254), nullable=True)
	contact_phone = Column(String(50), nullable=True)
	notes = Column(Text, nullable=True)
	flagged_notes = Column(Boolean, nullable=False, default=False)
	created_at = Column(BigInteger, nullable=False)
	updated_at = Column(BigInteger, nullable=False)

	__table_args__ = (
		CheckConstraint("duration_minutes IN (15, 30, 45, 60)", name="ck_appointments_duration"),
		CheckConstraint(
			"status IN ('REQUESTED', 'CONFIRMED', 'CANCELLED', 'EXPIRED')",
			name="ck_appointments_status"
		),
		CheckConstraint("end_time > start_time", name="ck_appointments_interval"),
		Index("idx_appointments_time", "start_time", "end_time"),
		Index("idx_appointments_status", "status"),
		Index("idx_appointments_series", "series_id"),
	)

	def validate(self) -> None:
		"""
		Validación antes de guardar.

		Ejecuta:
		1. Validar nombre del paciente
		2. Validar duración y derivar end_time
		3. Validar email de contacto si existe
		4. Moderar notas (rechaza términos clínicos, marca los dudosos)
		"""
		self._validate_patient_name()
		self._derive_end_time()
		self._validate_contact()
		self._moderate_notes()

	def is_active(self) -> bool:
		return self.status in ACTIVE_STATUSES

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"kind": self.kind,
			"startInstant": self.start_time,
			"endInstant": self.end_time,
			"patientName": self.patient_name,
			"durationMinutes": self.duration_minutes,
			"status": self.status,
			"seriesId": self.series_id,
			"contactEmail": self.contact_email,
			"contactPhone": self.contact_phone,
			"notes": self.notes,
			"flaggedNotes": bool(self.flagged_notes),
			"createdAt": self.created_at,
			"updatedAt": self.updated_at,
		}

	def __repr__(self) -> str:
		return f"<Appointment {self.id} {self.status} {ms_to_iso(self.start_time)}>"

	# ===== VALIDATION METHODS =====

	def _validate_patient_name(self) -> None:
		name = (self.patient_name or "").strip()
		if not name:
			raise ValidationError("patient_name", "patient_name is required")
		if len(name) > MAX_NAME_LENGTH:
			raise ValidationError(
				"patient_name", f"patient_name must be at most {MAX_NAME_LENGTH} characters"
			)
		self.patient_name = name

	def _derive_end_time(self) -> None:
		"""Calcula end_time = start_time + duration_minutes."""
		if isinstance(self.start_time, bool) or not isinstance(self.start_time, int):
			raise ValidationError("start_time", "start_time must be an epoch milliseconds integer")
		self.duration_minutes = validate_duration(self.duration_minutes)
		self.end_time = self.start_time + self.duration_minutes * MINUTE_MS

	def _validate_contact(self) -> None:
		email = (self.contact_email or "").strip()
		if email and not EMAIL_RE.match(email):
			raise ValidationError("contact_email", "contact_email is not a valid email address")
		self.contact_email = email or None
		self.contact_phone = (self.contact_phone or "").strip() or None

	def _moderate_notes(self) -> None:
		if not self.notes:
			self.notes = None
			self.flagged_notes = False
			return

		verdict = filter_notes(self.notes)
		if not verdict.allowed:
			raise ValidationError("notes", verdict.reason)
		self.notes = self.notes.strip()
		self.flagged_notes = verdict.flagged
