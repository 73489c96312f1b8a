"""
Slot Generation Service

Generates discrete time slots for a civil date, considering:
- Opening hours (civil ranges in the practice time zone)
- DST transitions (slots stay strictly increasing and non-overlapping)
- Past slots (filtered out)
- Existing commitments (available-slots variant only)
"""

import logging
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

from physiobook.physiobook.scheduling.overlap import ConflictResolver
from physiobook.physiobook.utils import MINUTE_MS, now_ms as current_ms, parse_hhmm, validate_duration

logger = logging.getLogger(__name__)

TimeOfDay = Union[str, Tuple[int, int]]


class Slot(NamedTuple):
	start_instant: int
	end_instant: int

	def to_dict(self) -> Dict[str, int]:
		return {"startInstant": self.start_instant, "endInstant": self.end_instant}


def generate_slots(
	normalizer,
	date: str,
	time_ranges: Sequence[Tuple[TimeOfDay, TimeOfDay]],
	slot_duration_minutes: int,
	now_ms: Optional[int] = None,
) -> Iterator[Slot]:
	"""
	Genera slots discretos para una fecha civil.

	Args:
		normalizer: TimeZoneNormalizer de la consulta
		date: "YYYY-MM-DD"
		time_ranges: rangos civiles semiabiertos [("08:00", "13:00"), ...]
		slot_duration_minutes: duración de cada slot
		now_ms: instante "ahora" (default: reloj del sistema)

	Returns:
		iterator de Slot(start_instant, end_instant), en orden

	Algoritmo:
		1. Para cada rango, en orden:
			a. Generar candidatos cada slot_duration_minutes (start + dur <= end)
			b. Convertir el inicio civil a instante; end = start + dur
		2. Descartar candidatos que empiezan antes del fin del slot anterior
		   (solo ocurre dentro del hueco de DST)
		3. Descartar slots con start <= now
	"""
	duration = validate_duration(slot_duration_minutes, "slot_duration_minutes")
	duration_ms = duration * MINUTE_MS
	now = current_ms() if now_ms is None else now_ms

	previous_end = None

	for range_start, range_end in time_ranges:
		start_h, start_m = parse_hhmm(range_start, "range_start")
		end_h, end_m = parse_hhmm(range_end, "range_end")

		current = start_h * 60 + start_m
		limit = end_h * 60 + end_m

		while current + duration <= limit:
			slot_start = normalizer.civil_to_instant(date, current // 60, current % 60)
			slot_end = slot_start + duration_ms
			current += duration

			# Hueco de primavera: el candidato cae sobre el slot anterior
			if previous_end is not None and slot_start < previous_end:
				continue
			previous_end = slot_end

			if slot_start <= now:
				continue

			yield Slot(slot_start, slot_end)


def get_available_slots(
	store,
	normalizer,
	date: str,
	now_ms: Optional[int] = None,
) -> List[Dict[str, Any]]:
	"""
	Slots libres de una fecha según los settings de la consulta.

	Lee horarios y duración del store (default 08:00-13:00, 13:00-20:00,
	30 min) y elimina los slots ocupados con un único batch checker.

	Returns:
		list[dict]: [{"startInstant": int, "endInstant": int}, ...]
	"""
	settings = store.get_settings()
	candidates = list(
		generate_slots(
			normalizer,
			date,
			settings.time_ranges(),
			settings.slot_duration,
			now_ms=now_ms,
		)
	)
	if not candidates:
		return []

	checker = ConflictResolver(store).create_batch_checker(
		candidates[0].start_instant, candidates[-1].end_instant
	)
	available = [slot.to_dict() for slot in candidates if not checker(*slot)]

	logger.debug(f"{len(available)}/{len(candidates)} slots available on {date}")
	return available
