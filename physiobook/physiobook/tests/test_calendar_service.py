"""
Tests for scheduling/calendar_service.py

Tests the admin calendar operations: create, update with scope, delete
with scope, blockers and range listing.
"""

from physiobook.physiobook.exceptions import ConflictError, NotFoundError, ValidationError
from physiobook.physiobook.tests.utils import SchedulingTestCase
from physiobook.physiobook.utils import DAY_MS, MINUTE_MS, new_id


class TestCreateAppointment(SchedulingTestCase):

	def test_defaults_to_confirmed(self):
		result = self.calendar.create_appointment("Max Muster", self.at(10), 30)

		appointment = self.calendar.get_appointment(result["id"])
		self.assertEqual(appointment.status, "CONFIRMED")
		self.assertEqual(appointment.end_time, self.at(10, 30))

	def test_accepts_requested_status(self):
		result = self.calendar.create_appointment("Max Muster", self.at(10), 30, status="REQUESTED")
		self.assertEqual(self.status_of(result["id"]), "REQUESTED")

	def test_rejects_terminal_status(self):
		with self.assertRaises(ValidationError) as ctx:
			self.calendar.create_appointment("Max Muster", self.at(10), 30, status="CANCELLED")
		self.assertEqual(ctx.exception.field, "status")

	def test_conflict_reports_details(self):
		existing = self.add_appointment(self.at(10), duration=60)

		with self.assertRaises(ConflictError) as ctx:
			self.calendar.create_appointment("Max Muster", self.at(10, 30), 30)

		self.assertEqual(ctx.exception.http_status, 409)
		self.assertEqual(len(ctx.exception.conflicts), 1)
		self.assertEqual(ctx.exception.conflicts[0]["id"], existing.id)
		self.assertEqual(ctx.exception.conflicts[0]["kind"], "appointment")

	def test_conflict_with_blocker(self):
		self.add_blocker(self.at(9), self.at(12), title="Urlaub")

		with self.assertRaises(ConflictError) as ctx:
			self.calendar.create_appointment("Max Muster", self.at(10), 30)

		self.assertEqual(ctx.exception.conflicts[0]["kind"], "blocker")
		self.assertEqual(ctx.exception.conflicts[0]["title"], "Urlaub")

	def test_touching_intervals_do_not_conflict(self):
		self.add_appointment(self.at(10), duration=30)
		result = self.calendar.create_appointment("Max Muster", self.at(10, 30), 30)
		self.assertIn("id", result)

	def test_cancelled_appointments_do_not_block(self):
		self.add_appointment(self.at(10), status="CANCELLED")
		result = self.calendar.create_appointment("Max Muster", self.at(10), 30)
		self.assertIn("id", result)

	def test_invalid_duration(self):
		with self.assertRaises(ValidationError):
			self.calendar.create_appointment("Max Muster", self.at(10), 25)

	def test_weekly_series(self):
		result = self.calendar.create_appointment("Max Muster", self.at(10), 30, series={"count": 4})

		self.assertEqual(len(result["created"]), 4)
		self.assertEqual(result["skipped"], [])
		members = self.store.series_members(result["series_id"])
		self.assertEqual([m.start_time for m in members][1], self.at(10, date="2030-06-24"))


class TestUpdateAppointment(SchedulingTestCase):

	def test_reschedule_single(self):
		appointment = self.add_appointment(self.at(10))

		result = self.calendar.update_appointment(appointment.id, {"start_time": self.at(14)})

		self.assertEqual(result["updated"], [appointment.id])
		stored = self.calendar.get_appointment(appointment.id)
		self.assertEqual(stored.start_time, self.at(14))
		self.assertEqual(stored.end_time, self.at(14, 30))

	def test_extending_into_own_interval_is_not_a_conflict(self):
		appointment = self.add_appointment(self.at(10), duration=30)

		self.calendar.update_appointment(appointment.id, {"duration_minutes": 60})

		self.assertEqual(self.calendar.get_appointment(appointment.id).end_time, self.at(11))

	def test_reschedule_conflict_leaves_row_unchanged(self):
		appointment = self.add_appointment(self.at(10))
		self.add_appointment(self.at(14))

		with self.assertRaises(ConflictError):
			self.calendar.update_appointment(appointment.id, {"start_time": self.at(14)})

		self.assertEqual(self.calendar.get_appointment(appointment.id).start_time, self.at(10))

	def test_inactive_appointment_can_move_onto_occupied_time(self):
		cancelled = self.add_appointment(self.at(10), status="CANCELLED")
		self.add_appointment(self.at(14))

		self.calendar.update_appointment(cancelled.id, {"start_time": self.at(14)})

		self.assertEqual(self.calendar.get_appointment(cancelled.id).start_time, self.at(14))

	def test_status_cannot_be_changed(self):
		appointment = self.add_appointment(self.at(10))
		with self.assertRaises(ValidationError) as ctx:
			self.calendar.update_appointment(appointment.id, {"status": "CANCELLED"})
		self.assertEqual(ctx.exception.field, "status")

	def test_unknown_scope(self):
		appointment = self.add_appointment(self.at(10))
		with self.assertRaises(ValidationError):
			self.calendar.update_appointment(appointment.id, {"notes": "KG"}, scope="all")

	def test_missing_appointment(self):
		with self.assertRaises(NotFoundError):
			self.calendar.update_appointment(new_id(), {"notes": "KG"})

	def test_blocked_notes_rejected(self):
		appointment = self.add_appointment(self.at(10))
		with self.assertRaises(ValidationError) as ctx:
			self.calendar.update_appointment(appointment.id, {"notes": "Diagnose: Bandscheibe"})
		self.assertEqual(ctx.exception.field, "notes")

	def test_future_scope_updates_following_members(self):
		result = self.calendar.create_appointment("Max Muster", self.at(10), 30, series={"count": 4})
		ids = result["created"]

		update = self.calendar.update_appointment(ids[1], {"duration_minutes": 45}, scope="future")

		self.assertEqual(update["updated"], ids[1:])
		self.assertEqual(self.calendar.get_appointment(ids[0]).duration_minutes, 30)
		for appointment_id in ids[1:]:
			self.assertEqual(self.calendar.get_appointment(appointment_id).duration_minutes, 45)

	def test_future_scope_conflict_aborts_everything(self):
		result = self.calendar.create_appointment("Max Muster", self.at(10), 30, series={"count": 3})
		ids = result["created"]
		# Bloquea 10:30 en la tercera semana
		self.add_appointment(self.at(10, 30, date="2030-07-01"))

		with self.assertRaises(ConflictError) as ctx:
			self.calendar.update_appointment(ids[0], {"duration_minutes": 60}, scope="future")

		self.assertEqual(ctx.exception.conflicts[0]["id"], ids[2])
		for appointment_id in ids:
			self.assertEqual(self.calendar.get_appointment(appointment_id).duration_minutes, 30)

	def test_future_scope_cannot_move_start(self):
		result = self.calendar.create_appointment("Max Muster", self.at(10), 30, series={"count": 2})
		with self.assertRaises(ValidationError) as ctx:
			self.calendar.update_appointment(result["created"][0], {"start_time": self.at(11)}, scope="future")
		self.assertEqual(ctx.exception.field, "start_time")

	def test_future_scope_requires_series(self):
		appointment = self.add_appointment(self.at(10))
		with self.assertRaises(ValidationError) as ctx:
			self.calendar.update_appointment(appointment.id, {"patient_name": "Neu"}, scope="future")
		self.assertEqual(ctx.exception.field, "scope")


class TestDeleteAppointment(SchedulingTestCase):

	def test_delete_single(self):
		appointment = self.add_appointment(self.at(10))

		self.assertEqual(self.calendar.delete_appointment(appointment.id)["deleted"], 1)
		self.assertIsNone(self.store.get_appointment(appointment.id))

	def test_delete_series(self):
		result = self.calendar.create_appointment("Max Muster", self.at(10), 30, series={"count": 3})

		deleted = self.calendar.delete_appointment(result["created"][1], scope="series")

		self.assertEqual(deleted["deleted"], 3)
		self.assertEqual(self.store.series_members(result["series_id"]), [])

	def test_series_scope_without_series_deletes_one(self):
		appointment = self.add_appointment(self.at(10))
		other = self.add_appointment(self.at(11))

		self.assertEqual(self.calendar.delete_appointment(appointment.id, scope="series")["deleted"], 1)
		self.assertIsNotNone(self.store.get_appointment(other.id))

	def test_missing_appointment(self):
		with self.assertRaises(NotFoundError):
			self.calendar.delete_appointment(new_id())


class TestBlockers(SchedulingTestCase):

	def test_create_single_blocker(self):
		result = self.calendar.create_blocker("Fortbildung", self.at(9), self.at(12))
		blocker = self.calendar.get_blocker(result["id"])
		self.assertEqual(blocker.title, "Fortbildung")

	def test_end_must_follow_start(self):
		with self.assertRaises(ValidationError) as ctx:
			self.calendar.create_blocker("Fortbildung", self.at(12), self.at(9))
		self.assertEqual(ctx.exception.field, "end_time")

	def test_blocker_conflicts_with_appointment(self):
		self.add_appointment(self.at(10))
		with self.assertRaises(ConflictError):
			self.calendar.create_blocker("Fortbildung", self.at(9), self.at(12))

	def test_blocker_group_create_and_delete(self):
		result = self.calendar.create_blocker(
			"Urlaub", self.at(8), self.at(18), series={"count": 5, "interval_days": 1}
		)
		self.assertEqual(len(result["created"]), 5)

		deleted = self.calendar.delete_blocker(result["created"][2], scope="group")

		self.assertEqual(deleted["deleted"], 5)
		self.assertEqual(self.calendar.list_blockers(self.at(0), self.at(0) + 7 * DAY_MS), [])

	def test_delete_single_blocker_of_group(self):
		result = self.calendar.create_blocker(
			"Urlaub", self.at(8), self.at(18), series={"count": 3}
		)

		self.calendar.delete_blocker(result["created"][0])

		remaining = self.calendar.list_blockers(self.at(0), self.at(0) + 7 * DAY_MS)
		self.assertEqual(len(remaining), 2)

	def test_missing_blocker(self):
		with self.assertRaises(NotFoundError):
			self.calendar.get_blocker(new_id())
		with self.assertRaises(NotFoundError):
			self.calendar.delete_blocker(new_id())


class TestListing(SchedulingTestCase):

	def test_lists_all_statuses_in_range(self):
		self.add_appointment(self.at(10), status="CONFIRMED")
		self.add_appointment(self.at(11), status="CANCELLED")
		self.add_appointment(self.at(12), status="EXPIRED")
		self.add_appointment(self.at(10, date="2030-06-18"))

		appointments = self.calendar.list_appointments(self.at(0), self.at(0) + DAY_MS)

		self.assertEqual(
			sorted(a.status for a in appointments), ["CANCELLED", "CONFIRMED", "EXPIRED"]
		)

	def test_range_is_half_open(self):
		self.add_appointment(self.at(10))

		self.assertEqual(self.calendar.list_appointments(self.at(10, 30), self.at(11)), [])
		self.assertEqual(len(self.calendar.list_appointments(self.at(10, 29), self.at(11))), 1)
		self.assertEqual(self.calendar.list_appointments(self.at(9), self.at(10)), [])

	def test_blockers_overlapping_range(self):
		self.add_blocker(self.at(9), self.at(12))
		blockers = self.calendar.list_blockers(self.at(11), self.at(11) + 30 * MINUTE_MS)
		self.assertEqual(len(blockers), 1)

	def test_invalid_range(self):
		with self.assertRaises(ValidationError):
			self.calendar.list_appointments(self.at(12), self.at(10))
		with self.assertRaises(ValidationError):
			self.calendar.list_blockers("x", self.at(10))
