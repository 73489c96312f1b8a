# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Time helpers shared by the scheduling modules.

Instants are integer milliseconds since the Unix epoch (UTC).
"""

import re
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from physiobook.physiobook.exceptions import ValidationError

MINUTE_MS = 60_000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

ALLOWED_DURATIONS = (15, 30, 45, 60)

_HHMM_RE = re.compile(r"^(\d{2}):(\d{2})$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def now_ms() -> int:
	"""Instante actual en milisegundos epoch."""
	return int(time.time() * 1000)


def new_id() -> str:
	return str(uuid.uuid4())


def parse_hhmm(value: Union[str, Tuple[int, int]], field: str = "time") -> Tuple[int, int]:
	"""
	Convierte "HH:MM" a (hour, minute).

	Args:
		value: string "HH:MM" o tupla (hour, minute)
		field: nombre del campo para mensajes de error

	Returns:
		tuple: (hour, minute)
	"""
	if isinstance(value, tuple):
		hour, minute = value
	else:
		match = _HHMM_RE.match(str(value).strip())
		if not match:
			raise ValidationError(field, f"{field} must use the HH:MM format")
		hour, minute = int(match.group(1)), int(match.group(2))

	# 24:00 se acepta como fin de día
	if not (0 <= hour <= 24 and 0 <= minute < 60) or (hour == 24 and minute != 0):
		raise ValidationError(field, f"{field} is not a valid time of day")

	return hour, minute


def parse_date(value: str, field: str = "date") -> Tuple[int, int, int]:
	"""Convierte "YYYY-MM-DD" a (year, month, day), validando que la fecha exista."""
	value = str(value).strip()
	if not _DATE_RE.match(value):
		raise ValidationError(field, f"Invalid {field} format. Use YYYY-MM-DD")

	try:
		parsed = datetime.strptime(value, "%Y-%m-%d")
	except ValueError:
		raise ValidationError(field, f"{field} is not a valid calendar date")

	return parsed.year, parsed.month, parsed.day


def validate_duration(duration_minutes: int, field: str = "duration_minutes") -> int:
	if isinstance(duration_minutes, bool) or duration_minutes not in ALLOWED_DURATIONS:
		raise ValidationError(
			field,
			f"{field} must be one of {', '.join(str(d) for d in ALLOWED_DURATIONS)}"
		)
	return int(duration_minutes)


def ms_to_iso(instant: int) -> str:
	"""Formato ISO 8601 en UTC, solo para logs."""
	return datetime.fromtimestamp(instant / 1000, tz=timezone.utc).isoformat()


def load_model(model_cls, data: Dict[str, Any]):
	"""
	Valida `data` con un modelo pydantic y traduce el primer error a ValidationError.

	Args:
		model_cls: clase pydantic a construir
		data: diccionario de entrada (claves por alias o por nombre)

	Returns:
		instancia de model_cls
	"""
	try:
		return model_cls.model_validate(data)
	except PydanticValidationError as e:
		first = e.errors()[0]
		field = ".".join(str(part) for part in first.get("loc", ())) or "input"
		raise ValidationError(field, f"{field}: {first.get('msg', 'invalid value')}")
