# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Blocker model

Administrative block of calendar time (holidays, training, breaks).
Blockers are always active and always take part in conflict checks.
"""

from typing import Any, Dict

from sqlalchemy import BigInteger, CheckConstraint, Column, Index, String

from physiobook.physiobook.exceptions import ValidationError
from physiobook.physiobook.models.base import Base
from physiobook.physiobook.utils import ms_to_iso

MAX_TITLE_LENGTH = 200


class Blocker(Base):
	"""
	Blocker with validations.

	Validations:
	- title required
	- start_time < end_time (end explícito, no derivado)
	"""

	__tablename__ = "blockers"

	kind = "blocker"

	id = Column(String(36), primary_key=True)
	title = Column(String(MAX_TITLE_LENGTH), nullable=False)
	start_time = Column(BigInteger, nullable=False)
	end_time = Column(BigInteger, nullable=False)
	blocker_group_id = Column(String(36), nullable=True)
	created_at = Column(BigInteger, nullable=False)

	__table_args__ = (
		CheckConstraint("end_time > start_time", name="ck_blockers_interval"),
		Index("idx_blockers_time", "start_time", "end_time"),
		Index("idx_blockers_group", "blocker_group_id"),
	)

	def validate(self) -> None:
		"""Validación antes de guardar."""
		self._validate_title()
		self._validate_times()

	def is_active(self) -> bool:
		return True

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"kind": self.kind,
			"startInstant": self.start_time,
			"endInstant": self.end_time,
			"title": self.title,
			"blockerGroupId": self.blocker_group_id,
			"createdAt": self.created_at,
		}

	def __repr__(self) -> str:
		return f"<Blocker {self.id} {self.title!r} {ms_to_iso(self.start_time)}>"

	def _validate_title(self) -> None:
		title = (self.title or "").strip()
		if not title:
			raise ValidationError("title", "title is required")
		if len(title) > MAX_TITLE_LENGTH:
			raise ValidationError("title", f"title must be at most {MAX_TITLE_LENGTH} characters")
		self.title = title

	def _validate_times(self) -> None:
		"""Valida que start_time < end_time."""
		for field in ("start_time", "end_time"):
			value = getattr(self, field)
			if isinstance(value, bool) or not isinstance(value, int):
				raise ValidationError(field, f"{field} must be an epoch milliseconds integer")

		if self.end_time <= self.start_time:
			raise ValidationError("end_time", "end_time must be after start_time")
