"""
Tests for scheduling/overlap.py

Tests the half-open overlap primitive, single-query conflict checks and
the preloaded batch checker.
"""

import unittest

from physiobook.physiobook.scheduling.overlap import BatchConflictChecker, describe, overlaps
from physiobook.physiobook.tests.utils import SchedulingTestCase
from physiobook.physiobook.utils import MINUTE_MS


class TestOverlapPrimitive(unittest.TestCase):
	"""Tests for overlaps()."""

	def test_adjacent_intervals_do_not_overlap(self):
		self.assertFalse(overlaps(0, 100, 100, 200))
		self.assertFalse(overlaps(100, 200, 0, 100))

	def test_one_millisecond_overlap_is_detected(self):
		self.assertTrue(overlaps(0, 101, 100, 200))
		self.assertTrue(overlaps(199, 300, 100, 200))

	def test_containment(self):
		self.assertTrue(overlaps(0, 1000, 100, 200))
		self.assertTrue(overlaps(100, 200, 0, 1000))

	def test_symmetry(self):
		cases = [
			(0, 100, 50, 150),
			(0, 100, 100, 200),
			(0, 100, 200, 300),
			(10, 20, 0, 30),
		]
		for a_start, a_end, b_start, b_end in cases:
			self.assertEqual(
				overlaps(a_start, a_end, b_start, b_end),
				overlaps(b_start, b_end, a_start, a_end),
			)

	def test_disjoint(self):
		self.assertFalse(overlaps(0, 100, 200, 300))


class TestBatchConflictChecker(unittest.TestCase):

	def test_checks_preloaded_intervals(self):
		checker = BatchConflictChecker(0, 1000, [(300, 400), (100, 200)])

		self.assertTrue(checker(150, 250))
		self.assertFalse(checker(200, 300))
		self.assertFalse(checker(400, 500))

	def test_reserve_adds_interval(self):
		checker = BatchConflictChecker(0, 1000, [])
		self.assertFalse(checker(100, 200))

		checker.reserve(100, 200)

		self.assertTrue(checker(150, 250))
		self.assertEqual(len(checker), 1)


class TestConflictResolver(SchedulingTestCase):
	"""Tests for ConflictResolver against the store."""

	def test_no_conflicts_on_empty_calendar(self):
		start = self.at(9)
		self.assertFalse(self.resolver.has_conflicts(start, start + 30 * MINUTE_MS))
		self.assertEqual(self.resolver.find_conflicts(start, start + 30 * MINUTE_MS), [])

	def test_active_appointments_conflict(self):
		for status in ("CONFIRMED", "REQUESTED"):
			appointment = self.add_appointment(self.at(10), status=status)

			self.assertTrue(self.resolver.has_conflicts(self.at(10, 15), self.at(10, 45)))

			with self.store.transaction() as session:
				self.store.delete_appointment(session, appointment.id)

	def test_cancelled_and_expired_do_not_conflict(self):
		self.add_appointment(self.at(10), status="CANCELLED")
		self.add_appointment(self.at(10), status="EXPIRED")

		self.assertFalse(self.resolver.has_conflicts(self.at(10), self.at(10, 30)))

	def test_blockers_conflict(self):
		self.add_blocker(self.at(12), self.at(13))

		self.assertTrue(self.resolver.has_conflicts(self.at(12, 30), self.at(13)))
		self.assertFalse(self.resolver.has_conflicts(self.at(13), self.at(13, 30)))

	def test_exclude_id_ignores_the_edited_appointment(self):
		appointment = self.add_appointment(self.at(10))

		self.assertFalse(
			self.resolver.has_conflicts(self.at(10), self.at(10, 30), exclude_id=appointment.id)
		)

	def test_find_conflicts_returns_both_kinds(self):
		appointment = self.add_appointment(self.at(10))
		blocker = self.add_blocker(self.at(10, 30), self.at(11))

		conflicts = self.resolver.find_conflicts(self.at(10), self.at(11))

		self.assertEqual([c.id for c in conflicts], [appointment.id, blocker.id])
		details = [describe(c) for c in conflicts]
		self.assertEqual(details[0]["kind"], "appointment")
		self.assertEqual(details[1]["kind"], "blocker")
		self.assertEqual(details[1]["title"], "Fortbildung")

	def test_batch_checker_preloads_range(self):
		self.add_appointment(self.at(9))
		self.add_blocker(self.at(11), self.at(12))
		self.add_appointment(self.at(10), status="CANCELLED")

		checker = self.resolver.create_batch_checker(self.at(8), self.at(13))

		self.assertEqual(len(checker), 2)
		self.assertTrue(checker(self.at(9), self.at(9, 30)))
		self.assertFalse(checker(self.at(10), self.at(10, 30)))
		self.assertTrue(checker(self.at(11, 30), self.at(12)))

	def test_describe_rejects_unknown_types(self):
		with self.assertRaises(TypeError):
			describe(object())
