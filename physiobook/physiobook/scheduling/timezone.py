"""
Time Zone Normalizer

Converts civil wall-clock time in a named zone (IANA, via pytz) to epoch
milliseconds and back. All storage and comparisons use instants; civil
time only exists at the edges (opening hours, display, series stepping).
"""

import calendar
from datetime import date as date_cls, datetime, timedelta
from typing import NamedTuple, Optional, Tuple

import pytz

from physiobook.physiobook.exceptions import ValidationError
from physiobook.physiobook.utils import now_ms, parse_date


class CivilTime(NamedTuple):
	date: str
	hour: int
	minute: int


class TimeZoneNormalizer:
	"""
	Civil time <-> instant conversion for one time zone.

	Args:
		tz_name: nombre IANA de la zona (p.ej. "Europe/Berlin")

	Raises:
		ValidationError: zona desconocida (field="timezone")
	"""

	def __init__(self, tz_name: str):
		try:
			self.tz = pytz.timezone(tz_name)
		except pytz.UnknownTimeZoneError:
			raise ValidationError("timezone", f"Unknown time zone: {tz_name}")
		self.tz_name = tz_name

	def __repr__(self) -> str:
		return f"<TimeZoneNormalizer {self.tz_name}>"

	def _localize(self, instant: int) -> datetime:
		utc_dt = datetime(1970, 1, 1, tzinfo=pytz.utc) + timedelta(milliseconds=instant)
		return utc_dt.astimezone(self.tz)

	def offset_ms(self, instant: int) -> int:
		"""Offset UTC de la zona en `instant`, en milisegundos."""
		return int(self._localize(instant).utcoffset().total_seconds() * 1000)

	def civil_to_instant(self, date: str, hour: int, minute: int) -> int:
		"""
		Convierte fecha + hora civil de la zona a epoch ms.

		Args:
			date: "YYYY-MM-DD"
			hour: 0-24 (24:00 = medianoche del día siguiente)
			minute: 0-59

		Returns:
			int: instante en epoch ms

		Algoritmo:
			1. trial = hora civil leída como UTC
			2. off1 = offset en trial; inst1 = trial - off1
			3. off2 = offset en inst1
			4. Si off2 == off1 -> inst1, si no -> trial - off2
			   (la hora civil cae a menos de un offset de una transición)

		Dentro del hueco de primavera se aplica uno de los dos offsets, según la
		zona: 02:00 en Berlín -> 03:00 CEST (01:00 UTC), 02:00 en Nueva York
		-> 01:00 EST (06:00 UTC). En horas ambiguas de otoño el resultado es la
		segunda ocurrencia (hora estándar).
		"""
		year, month, day = parse_date(date)
		trial = calendar.timegm((year, month, day, hour, minute, 0)) * 1000

		first_offset = self.offset_ms(trial)
		candidate = trial - first_offset
		second_offset = self.offset_ms(candidate)

		if second_offset == first_offset:
			return candidate
		return trial - second_offset

	def instant_to_civil(self, instant: int) -> CivilTime:
		local = self._localize(instant)
		return CivilTime(local.strftime("%Y-%m-%d"), local.hour, local.minute)

	def today(self, now: Optional[int] = None) -> str:
		"""Fecha civil actual en la zona, "YYYY-MM-DD"."""
		return self.instant_to_civil(now_ms() if now is None else now).date

	@staticmethod
	def add_days(date: str, days: int) -> str:
		year, month, day = parse_date(date)
		return (date_cls(year, month, day) + timedelta(days=days)).isoformat()

	def day_bounds(self, date: str) -> Tuple[int, int]:
		"""[inicio, fin) del día civil en epoch ms (23 o 25 h en días de cambio de hora)."""
		return (
			self.civil_to_instant(date, 0, 0),
			self.civil_to_instant(self.add_days(date, 1), 0, 0),
		)

	def format(self, instant: int) -> str:
		"""Formato de visualización alemán: "29.03.2026, 10:00"."""
		return self._localize(instant).strftime("%d.%m.%Y, %H:%M")
