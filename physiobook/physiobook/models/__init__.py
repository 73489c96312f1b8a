"""
Storage models for the scheduling engine.

- Appointment (appointment.py)
- Blocker (blocker.py)
- Setting / PracticeSettings (settings.py)
- OutboxMessage (outbox.py)
"""

from typing import Union

from physiobook.physiobook.models.appointment import ACTIVE_STATUSES, Appointment, AppointmentStatus
from physiobook.physiobook.models.base import Base
from physiobook.physiobook.models.blocker import Blocker
from physiobook.physiobook.models.outbox import OutboxMessage
from physiobook.physiobook.models.settings import PracticeSettings, Setting

# Unión cerrada de compromisos que ocupan el calendario
Commitment = Union[Appointment, Blocker]

__all__ = [
	"ACTIVE_STATUSES",
	"Appointment",
	"AppointmentStatus",
	"Base",
	"Blocker",
	"Commitment",
	"OutboxMessage",
	"PracticeSettings",
	"Setting",
]
