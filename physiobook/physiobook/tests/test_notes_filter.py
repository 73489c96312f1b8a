"""
Tests for scheduling/notes_filter.py

Tests moderation of free-text appointment notes.
"""

import unittest

from physiobook.physiobook.scheduling.notes_filter import (
	BLOCKED_REASON,
	MAX_NOTES_LENGTH,
	TOO_LONG_REASON,
	filter_notes,
)


class TestFilterNotes(unittest.TestCase):
	"""Tests for filter_notes()."""

	def test_empty_notes_allowed(self):
		for notes in (None, "", "   "):
			verdict = filter_notes(notes)
			self.assertTrue(verdict.allowed)
			self.assertFalse(verdict.flagged)

	def test_treatment_abbreviations_allowed(self):
		verdict = filter_notes("KG + MT, Lymph 45")
		self.assertEqual(verdict, (True, False, None))

	def test_medical_terms_blocked(self):
		for notes in ("Diagnose: LWS", "starke Schmerzen", "nach Fraktur", "MRT liegt vor"):
			verdict = filter_notes(notes)
			self.assertFalse(verdict.allowed, notes)
			self.assertEqual(verdict.reason, BLOCKED_REASON)

	def test_blocking_is_case_insensitive(self):
		self.assertFalse(filter_notes("ENTZÜNDUNG").allowed)
		self.assertFalse(filter_notes("entzundung").allowed)

	def test_borderline_terms_flagged(self):
		verdict = filter_notes("Rezept mitbringen")
		self.assertTrue(verdict.allowed)
		self.assertTrue(verdict.flagged)

	def test_too_long(self):
		verdict = filter_notes("KG " * MAX_NOTES_LENGTH)
		self.assertFalse(verdict.allowed)
		self.assertEqual(verdict.reason, TOO_LONG_REASON)

	def test_blocked_wins_over_flagged(self):
		verdict = filter_notes("Arzt: Diagnose folgt")
		self.assertFalse(verdict.allowed)
