"""
Scheduled Tasks

Tasks an external scheduler (cron) calls periodically:
- expire_stale_requests: moves unanswered REQUESTED appointments to EXPIRED
"""

import logging
from typing import Optional

from physiobook.physiobook.exceptions import SchedulingError
from physiobook.physiobook.utils import now_ms as current_ms

logger = logging.getLogger(__name__)


def expire_stale_requests(store, lifecycle, now_ms: Optional[int] = None) -> int:
	"""
	Marca como EXPIRED las solicitudes sin respuesta.

	Algoritmo:
		1. Leer requestTimeoutHours de los settings (default 48)
		2. Buscar Appointments con:
			- status = "REQUESTED"
			- created_at < now - timeout
		3. Para cada uno, transición REQUESTED -> EXPIRED vía lifecycle
		   (un fallo en una fila se registra y se continúa)
		4. Log cantidad expirada

	Returns:
		int: Cantidad de solicitudes expiradas
	"""
	now = current_ms() if now_ms is None else now_ms

	settings = store.get_settings()
	cutoff = now - settings.request_timeout_ms

	# 1. Buscar solicitudes vencidas
	stale_ids = store.stale_requests(cutoff)

	expired_count = 0

	# 2. Expirar una a una
	for appointment_id in stale_ids:
		try:
			result = lifecycle.expire(appointment_id)
		except SchedulingError as e:
			# Puede haber sido confirmada o rechazada entre la consulta y ahora
			logger.error(f"Error expiring request {appointment_id}: {e.message}")
			continue

		if result["changed"]:
			expired_count += 1

	# 3. Log cantidad expirada
	if expired_count > 0:
		logger.info(
			f"expire_stale_requests: {expired_count} requests expired "
			f"(timeout {settings.request_timeout_hours}h)"
		)

	return expired_count
