"""
Tests for scheduling/tasks.py

Tests the request-expiry sweep.
"""

from unittest import mock

from physiobook.physiobook.exceptions import StorageError
from physiobook.physiobook.scheduling.tasks import expire_stale_requests
from physiobook.physiobook.tests.utils import SchedulingTestCase
from physiobook.physiobook.utils import HOUR_MS

NOW = 1_900_000_000_000


class TestExpireStaleRequests(SchedulingTestCase):
	"""Tests for expire_stale_requests()."""

	def test_returns_zero_on_empty_calendar(self):
		self.assertEqual(expire_stale_requests(self.store, self.lifecycle, now_ms=NOW), 0)

	def test_expires_requests_older_than_default_timeout(self):
		stale = self.add_appointment(self.at(10), status="REQUESTED", created_at=NOW - 49 * HOUR_MS)
		fresh = self.add_appointment(self.at(11), status="REQUESTED", created_at=NOW - 47 * HOUR_MS)

		count = expire_stale_requests(self.store, self.lifecycle, now_ms=NOW)

		self.assertEqual(count, 1)
		self.assertEqual(self.status_of(stale.id), "EXPIRED")
		self.assertEqual(self.status_of(fresh.id), "REQUESTED")

	def test_does_not_touch_other_statuses(self):
		confirmed = self.add_appointment(self.at(10), status="CONFIRMED", created_at=NOW - 100 * HOUR_MS)

		self.assertEqual(expire_stale_requests(self.store, self.lifecycle, now_ms=NOW), 0)
		self.assertEqual(self.status_of(confirmed.id), "CONFIRMED")

	def test_uses_request_timeout_setting(self):
		self.store.update_settings({"requestTimeoutHours": "2"})
		appointment = self.add_appointment(self.at(10), status="REQUESTED", created_at=NOW - 3 * HOUR_MS)

		self.assertEqual(expire_stale_requests(self.store, self.lifecycle, now_ms=NOW), 1)
		self.assertEqual(self.status_of(appointment.id), "EXPIRED")

	def test_expired_request_frees_the_slot(self):
		self.add_appointment(self.at(10), status="REQUESTED", created_at=NOW - 49 * HOUR_MS)

		expire_stale_requests(self.store, self.lifecycle, now_ms=NOW)

		self.assertFalse(self.resolver.has_conflicts(self.at(10), self.at(10, 30)))

	def test_row_failure_is_logged_and_skipped(self):
		first = self.add_appointment(self.at(10), status="REQUESTED", created_at=NOW - 60 * HOUR_MS)
		second = self.add_appointment(self.at(11), status="REQUESTED", created_at=NOW - 50 * HOUR_MS)

		original = self.lifecycle.expire

		def flaky_expire(appointment_id):
			if appointment_id == first.id:
				raise StorageError("disk I/O error")
			return original(appointment_id)

		with mock.patch.object(self.lifecycle, "expire", side_effect=flaky_expire):
			with self.assertLogs("physiobook.physiobook.scheduling.tasks", level="ERROR"):
				count = expire_stale_requests(self.store, self.lifecycle, now_ms=NOW)

		self.assertEqual(count, 1)
		self.assertEqual(self.status_of(first.id), "REQUESTED")
		self.assertEqual(self.status_of(second.id), "EXPIRED")
