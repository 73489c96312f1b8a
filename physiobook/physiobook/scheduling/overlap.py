"""
Overlap Detection Service

Detects scheduling conflicts (overlaps) between a candidate interval and the
active commitments in the calendar:
- Appointments in REQUESTED or CONFIRMED status
- Blockers (always active)

All intervals are half-open [start, end) in epoch milliseconds.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from physiobook.physiobook.models import Appointment, Blocker, Commitment

logger = logging.getLogger(__name__)


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
	"""
	True si [a_start, a_end) y [b_start, b_end) se solapan.

	Intervalos adyacentes (a_end == b_start) no se solapan.
	No valida que start < end.
	"""
	return a_start < b_end and a_end > b_start


def describe(commitment: Commitment) -> Dict[str, Any]:
	"""
	Detalle de un conflicto para devolver al cliente.

	Args:
		commitment: Appointment o Blocker

	Returns:
		dict: {"id", "kind", "startInstant", "endInstant", ...}
	"""
	if isinstance(commitment, Appointment):
		return {
			"id": commitment.id,
			"kind": "appointment",
			"startInstant": commitment.start_time,
			"endInstant": commitment.end_time,
			"status": commitment.status,
		}
	if isinstance(commitment, Blocker):
		return {
			"id": commitment.id,
			"kind": "blocker",
			"startInstant": commitment.start_time,
			"endInstant": commitment.end_time,
			"title": commitment.title,
		}
	raise TypeError(f"Unknown commitment type: {type(commitment).__name__}")


class BatchConflictChecker:
	"""
	Conflict checker over a preloaded range.

	Callable as checker(slot_start, slot_end) -> bool. Intervals committed
	during the same batch are registered with reserve() so later candidates
	are checked against them too.
	"""

	def __init__(self, range_start: int, range_end: int, intervals: Iterable[Tuple[int, int]]):
		self.range_start = range_start
		self.range_end = range_end
		self._intervals: List[Tuple[int, int]] = sorted(intervals)

	def __call__(self, slot_start: int, slot_end: int) -> bool:
		for start, end in self._intervals:
			# Ordenados por inicio: nada más allá de slot_end puede solaparse
			if start >= slot_end:
				break
			if overlaps(slot_start, slot_end, start, end):
				return True
		return False

	def reserve(self, start: int, end: int) -> None:
		self._intervals.append((start, end))
		self._intervals.sort()

	def __len__(self) -> int:
		return len(self._intervals)


class ConflictResolver:
	"""
	Conflict checks against the store.

	Modo simple: una consulta por intervalo (has_conflicts / find_conflicts).
	Modo batch: dos consultas precargan un rango y se verifican N candidatos
	en memoria (create_batch_checker).
	"""

	def __init__(self, store):
		self.store = store

	def has_conflicts(
		self,
		start: int,
		end: int,
		exclude_id: Optional[str] = None,
		session: Optional[Session] = None,
	) -> bool:
		"""
		Algoritmo:
			1. Buscar appointments activos que se solapen (excluyendo exclude_id)
			2. Si hay alguno, retornar True sin consultar blockers
			3. Buscar blockers que se solapen
		"""
		exclude = (exclude_id,) if exclude_id else ()

		if self.store.find_overlapping_appointments(start, end, exclude_ids=exclude, session=session):
			return True

		return bool(self.store.find_overlapping_blockers(start, end, exclude_ids=exclude, session=session))

	def find_conflicts(
		self,
		start: int,
		end: int,
		exclude_id: Optional[str] = None,
		session: Optional[Session] = None,
	) -> List[Commitment]:
		exclude = (exclude_id,) if exclude_id else ()

		conflicts: List[Commitment] = []
		conflicts.extend(
			self.store.find_overlapping_appointments(start, end, exclude_ids=exclude, session=session)
		)
		conflicts.extend(
			self.store.find_overlapping_blockers(start, end, exclude_ids=exclude, session=session)
		)
		conflicts.sort(key=lambda c: c.start_time)
		return conflicts

	def create_batch_checker(
		self,
		range_start: int,
		range_end: int,
		exclude_ids: Iterable[str] = (),
		session: Optional[Session] = None,
	) -> BatchConflictChecker:
		"""
		Precarga los compromisos activos de [range_start, range_end).

		Args:
			range_start: inicio del rango a precargar
			range_end: fin del rango a precargar
			exclude_ids: ids a ignorar (p.ej. miembros de la serie que se edita)
			session: sesión de la transacción en curso, si la hay

		Returns:
			BatchConflictChecker
		"""
		exclude_ids = tuple(exclude_ids)
		appointments = self.store.find_overlapping_appointments(
			range_start, range_end, exclude_ids=exclude_ids, session=session
		)
		blockers = self.store.find_overlapping_blockers(
			range_start, range_end, exclude_ids=exclude_ids, session=session
		)

		intervals = [(a.start_time, a.end_time) for a in appointments]
		intervals.extend((b.start_time, b.end_time) for b in blockers)

		logger.debug(
			f"Batch checker preloaded {len(intervals)} commitments "
			f"for range {range_start}-{range_end}"
		)
		return BatchConflictChecker(range_start, range_end, intervals)


