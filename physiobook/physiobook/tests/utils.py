# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Shared fixtures for the scheduling tests.

Each test case gets a fresh in-memory SQLite store with every component
wired the same way build_context() wires them.
"""

import unittest

from sqlalchemy import select

from physiobook.physiobook.models import Appointment, Blocker, OutboxMessage
from physiobook.physiobook.notifications.appointment import OutboxNotifier
from physiobook.physiobook.scheduling.booking import BookingService
from physiobook.physiobook.scheduling.calendar_service import CalendarService
from physiobook.physiobook.scheduling.lifecycle import AppointmentLifecycle
from physiobook.physiobook.scheduling.overlap import ConflictResolver
from physiobook.physiobook.scheduling.series import SeriesExpander
from physiobook.physiobook.scheduling.timezone import TimeZoneNormalizer
from physiobook.physiobook.storage.store import CalendarStore
from physiobook.physiobook.utils import new_id, now_ms

TZ = "Europe/Berlin"

# Lunes lejano en el futuro, para no depender del reloj
FUTURE_DATE = "2030-06-17"


class SchedulingTestCase(unittest.TestCase):
	"""Base class: fresh store and wired components per test."""

	database_url = "sqlite://"

	def setUp(self):
		self.store = CalendarStore(self.database_url, busy_timeout_ms=5000)
		self.store.create_all()
		self.normalizer = TimeZoneNormalizer(TZ)
		self.notifier = OutboxNotifier(self.normalizer)
		self.resolver = ConflictResolver(self.store)
		self.series = SeriesExpander(self.store, self.resolver, self.normalizer)
		self.booking = BookingService(self.store, self.resolver, self.notifier)
		self.lifecycle = AppointmentLifecycle(self.store, self.notifier)
		self.calendar = CalendarService(self.store, self.resolver, self.series)

	def tearDown(self):
		self.store.dispose()

	def at(self, hour: int, minute: int = 0, date: str = FUTURE_DATE) -> int:
		return self.normalizer.civil_to_instant(date, hour, minute)

	def add_appointment(
		self,
		start: int,
		duration: int = 30,
		status: str = "CONFIRMED",
		series_id: str = None,
		contact_email: str = None,
		created_at: int = None,
		patient_name: str = "Erika Mustermann",
	) -> Appointment:
		"""Inserta un appointment directamente, sin conflict check."""
		created = now_ms() if created_at is None else created_at
		appointment = Appointment(
			id=new_id(),
			patient_name=patient_name,
			start_time=start,
			duration_minutes=duration,
			status=status,
			series_id=series_id,
			contact_email=contact_email,
			created_at=created,
			updated_at=created,
		)
		with self.store.transaction(serializable=False) as session:
			self.store.insert(session, appointment)
		return appointment

	def add_blocker(self, start: int, end: int, title: str = "Fortbildung", group_id: str = None) -> Blocker:
		blocker = Blocker(
			id=new_id(),
			title=title,
			start_time=start,
			end_time=end,
			blocker_group_id=group_id,
			created_at=now_ms(),
		)
		with self.store.transaction(serializable=False) as session:
			self.store.insert(session, blocker)
		return blocker

	def outbox(self):
		with self.store.read() as session:
			return list(session.scalars(select(OutboxMessage).order_by(OutboxMessage.created_at)))

	def status_of(self, appointment_id: str) -> str:
		return self.store.get_appointment(appointment_id).status
