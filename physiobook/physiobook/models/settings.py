# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Practice Settings

Key/value table plus the validated view over it. Opening hours, slot
duration, request timeout and the admin notification address live here.
"""

import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy import Column, String, Text

from physiobook.physiobook.models.base import Base
from physiobook.physiobook.utils import ALLOWED_DURATIONS, parse_hhmm

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_HHMM_RE = re.compile(r"^\d{2}:\d{2}$")


class Setting(Base):
	__tablename__ = "settings"

	key = Column(String(64), primary_key=True)
	value = Column(Text, nullable=False)

	def __repr__(self) -> str:
		return f"<Setting {self.key}={self.value!r}>"


class PracticeSettings(BaseModel):
	"""
	Configuración de la consulta, validada.

	Las claves almacenadas usan camelCase (morningStart, slotDuration...).
	Valores ausentes toman el default; claves desconocidas se ignoran.
	"""

	model_config = ConfigDict(populate_by_name=True, extra="ignore")

	morning_start: str = Field(default="08:00", alias="morningStart")
	morning_end: str = Field(default="13:00", alias="morningEnd")
	afternoon_start: str = Field(default="13:00", alias="afternoonStart")
	afternoon_end: str = Field(default="20:00", alias="afternoonEnd")
	slot_duration: int = Field(default=30, alias="slotDuration")
	request_timeout_hours: int = Field(default=48, alias="requestTimeoutHours")
	admin_notify_email: Optional[str] = Field(default=None, alias="adminNotifyEmail")

	@field_validator("morning_start", "morning_end", "afternoon_start", "afternoon_end")
	@classmethod
	def _check_hhmm(cls, value: str) -> str:
		value = str(value).strip()
		if not _HHMM_RE.match(value):
			raise ValueError("must use the HH:MM format")
		hour, minute = int(value[:2]), int(value[3:])
		if hour > 24 or minute > 59 or (hour == 24 and minute != 0):
			raise ValueError("is not a valid time of day")
		return value

	@field_validator("slot_duration")
	@classmethod
	def _check_slot_duration(cls, value: int) -> int:
		if value not in ALLOWED_DURATIONS:
			raise ValueError(f"must be one of {', '.join(str(d) for d in ALLOWED_DURATIONS)}")
		return value

	@field_validator("request_timeout_hours")
	@classmethod
	def _check_positive(cls, value: int) -> int:
		if value < 1:
			raise ValueError("must be a positive integer")
		return value

	@field_validator("admin_notify_email", mode="before")
	@classmethod
	def _check_email(cls, value: Optional[str]) -> Optional[str]:
		# "" en la tabla significa "sin notificación"
		if value is None or str(value).strip() == "":
			return None
		value = str(value).strip()
		if not EMAIL_RE.match(value):
			raise ValueError("is not a valid email address")
		return value

	@model_validator(mode="after")
	def _check_ranges(self) -> "PracticeSettings":
		for start, end, label in (
			(self.morning_start, self.morning_end, "morning"),
			(self.afternoon_start, self.afternoon_end, "afternoon"),
		):
			if start > end:
				raise ValueError(f"{label} range must not end before it starts")
		return self

	def time_ranges(self) -> List[Tuple[Tuple[int, int], Tuple[int, int]]]:
		"""
		Rangos civiles de apertura, en orden.

		Returns:
			list: [((h, m), (h, m)), ...] mañana y tarde
		"""
		return [
			(parse_hhmm(self.morning_start, "morningStart"), parse_hhmm(self.morning_end, "morningEnd")),
			(parse_hhmm(self.afternoon_start, "afternoonStart"), parse_hhmm(self.afternoon_end, "afternoonEnd")),
		]

	@property
	def request_timeout_ms(self) -> int:
		return self.request_timeout_hours * 60 * 60 * 1000

	def to_mapping(self) -> Dict[str, str]:
		"""Valores como strings, con las claves de la tabla settings."""
		data = self.model_dump(by_alias=True)
		return {
			key: "" if value is None else str(value)
			for key, value in data.items()
		}
