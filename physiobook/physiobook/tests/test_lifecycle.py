"""
Tests for scheduling/lifecycle.py

Tests the appointment state machine, idempotent transitions and patient
notifications.
"""

from physiobook.physiobook.exceptions import InvalidTransitionError, NotFoundError
from physiobook.physiobook.scheduling.lifecycle import AppointmentLifecycle, can_transition
from physiobook.physiobook.tests.utils import SchedulingTestCase


class TestTransitionTable(SchedulingTestCase):

	def test_allowed_transitions(self):
		self.assertTrue(can_transition("REQUESTED", "CONFIRMED"))
		self.assertTrue(can_transition("REQUESTED", "CANCELLED"))
		self.assertTrue(can_transition("REQUESTED", "EXPIRED"))
		self.assertTrue(can_transition("CONFIRMED", "CANCELLED"))

	def test_forbidden_transitions(self):
		self.assertFalse(can_transition("CONFIRMED", "REQUESTED"))
		self.assertFalse(can_transition("CONFIRMED", "EXPIRED"))
		for terminal in ("CANCELLED", "EXPIRED"):
			for target in ("REQUESTED", "CONFIRMED", "CANCELLED", "EXPIRED"):
				self.assertFalse(can_transition(terminal, target))

	def test_exposed_on_the_lifecycle(self):
		self.assertTrue(AppointmentLifecycle.can_transition("REQUESTED", "CONFIRMED"))
		self.assertTrue(self.lifecycle.can_transition("CONFIRMED", "CANCELLED"))


class TestConfirm(SchedulingTestCase):

	def test_confirm_requested(self):
		appointment = self.add_appointment(self.at(10), status="REQUESTED", contact_email="max@example.org")

		result = self.lifecycle.confirm(appointment.id)

		self.assertEqual(result, {"ok": True, "status": "CONFIRMED", "changed": True})
		self.assertEqual(self.status_of(appointment.id), "CONFIRMED")

		outbox = self.outbox()
		self.assertEqual(len(outbox), 1)
		self.assertEqual(outbox[0].to_address, "max@example.org")
		self.assertEqual(outbox[0].subject, "Ihr Termin wurde bestätigt")

	def test_confirm_twice_is_idempotent(self):
		appointment = self.add_appointment(self.at(10), status="REQUESTED", contact_email="max@example.org")

		self.lifecycle.confirm(appointment.id)
		result = self.lifecycle.confirm(appointment.id)

		self.assertEqual(result, {"ok": True, "status": "CONFIRMED", "changed": False})
		self.assertEqual(len(self.outbox()), 1)

	def test_confirm_without_contact_email_sends_nothing(self):
		appointment = self.add_appointment(self.at(10), status="REQUESTED")

		self.lifecycle.confirm(appointment.id)

		self.assertEqual(self.outbox(), [])

	def test_confirm_expired_is_invalid(self):
		appointment = self.add_appointment(self.at(10), status="EXPIRED")

		with self.assertRaises(InvalidTransitionError) as ctx:
			self.lifecycle.confirm(appointment.id)

		self.assertEqual(ctx.exception.current, "EXPIRED")
		self.assertEqual(ctx.exception.target, "CONFIRMED")
		self.assertEqual(ctx.exception.http_status, 409)

	def test_unknown_appointment(self):
		with self.assertRaises(NotFoundError):
			self.lifecycle.confirm("00000000-0000-4000-8000-000000000000")


class TestReject(SchedulingTestCase):

	def test_reject_requested(self):
		appointment = self.add_appointment(self.at(10), status="REQUESTED", contact_email="max@example.org")

		result = self.lifecycle.reject(appointment.id)

		self.assertTrue(result["changed"])
		self.assertEqual(self.status_of(appointment.id), "CANCELLED")
		self.assertEqual(
			self.outbox()[0].subject, "Ihre Terminanfrage konnte nicht bestätigt werden"
		)

	def test_reject_twice_is_idempotent(self):
		appointment = self.add_appointment(self.at(10), status="REQUESTED", contact_email="max@example.org")

		self.lifecycle.reject(appointment.id)
		result = self.lifecycle.reject(appointment.id)

		self.assertEqual(result, {"ok": True, "status": "CANCELLED", "changed": False})
		self.assertEqual(len(self.outbox()), 1)

	def test_reject_confirmed_is_invalid(self):
		appointment = self.add_appointment(self.at(10), status="CONFIRMED")

		with self.assertRaises(InvalidTransitionError) as ctx:
			self.lifecycle.reject(appointment.id)

		self.assertEqual(ctx.exception.code, "INVALID_TRANSITION")
		self.assertIn("Cancel it instead", ctx.exception.message)
		self.assertEqual(self.status_of(appointment.id), "CONFIRMED")


class TestCancelAndExpire(SchedulingTestCase):

	def test_cancel_confirmed(self):
		appointment = self.add_appointment(self.at(10), status="CONFIRMED", contact_email="max@example.org")

		result = self.lifecycle.cancel(appointment.id)

		self.assertEqual(result["status"], "CANCELLED")
		self.assertEqual(self.status_of(appointment.id), "CANCELLED")
		self.assertEqual(self.outbox(), [])

	def test_cancel_cancelled_is_noop(self):
		appointment = self.add_appointment(self.at(10), status="CANCELLED")
		self.assertFalse(self.lifecycle.cancel(appointment.id)["changed"])

	def test_cancel_frees_the_slot(self):
		appointment = self.add_appointment(self.at(10), status="CONFIRMED")

		self.lifecycle.cancel(appointment.id)

		self.assertFalse(self.resolver.has_conflicts(self.at(10), self.at(10, 30)))

	def test_expire_requested(self):
		appointment = self.add_appointment(self.at(10), status="REQUESTED")

		result = self.lifecycle.expire(appointment.id)

		self.assertTrue(result["changed"])
		self.assertEqual(self.status_of(appointment.id), "EXPIRED")

	def test_expire_only_from_requested(self):
		for status in ("CONFIRMED", "CANCELLED", "EXPIRED"):
			appointment = self.add_appointment(self.at(10), status=status)
			with self.assertRaises(InvalidTransitionError):
				self.lifecycle.expire(appointment.id)
