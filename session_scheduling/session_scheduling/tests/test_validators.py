"""
Tests for api/shared/validators.py
"""

import unittest

from session_scheduling.api.shared.validators import (
	validate_date_string,
	validate_datetime_string,
	validate_duration,
	validate_flow,
	validate_time_string,
)
from session_scheduling.exceptions import ValidationError


class TestValidators(unittest.TestCase):
	"""Tests for UI input validators."""

	def test_date_string(self):
		"""Test YYYY-MM-DD dates."""
		self.assertEqual(validate_date_string(" 2026-01-19 "), "2026-01-19")
		for value in ("", None, "2026/01/19", "19-01-2026"):
			with self.assertRaises(ValidationError):
				validate_date_string(value)

	def test_datetime_string(self):
		"""Test the accepted datetime formats."""
		for value in (
			"2026-01-19 10:00:00",
			"2026-01-19T10:00",
			"2026-01-19T10:00:00.000Z",
			"2026-01-19T10:00:00-05:00",
		):
			self.assertEqual(validate_datetime_string(value), value)

		for value in ("", "tomorrow", "2026-01-19", "2026-01-19 10"):
			with self.assertRaises(ValidationError):
				validate_datetime_string(value)

	def test_time_string(self):
		"""Test HH:MM and HH:MM:SS times."""
		self.assertEqual(validate_time_string("09:30"), "09:30")
		self.assertEqual(validate_time_string("23:59:59"), "23:59:59")
		for value in ("24:00", "9:30", "09:60", ""):
			with self.assertRaises(ValidationError):
				validate_time_string(value)

	def test_duration(self):
		"""Test positive integer durations up to one day."""
		self.assertEqual(validate_duration(60), 60)
		self.assertEqual(validate_duration("90"), 90)
		for value in (0, -15, 1441, 1.5, "abc", None, True):
			with self.assertRaises(ValidationError):
				validate_duration(value)

	def test_flow(self):
		"""Test the slot flow names."""
		self.assertEqual(validate_flow("Booking"), "booking")
		self.assertEqual(validate_flow("reschedule"), "reschedule")
		for value in ("weekly", "", None):
			with self.assertRaises(ValidationError):
				validate_flow(value)


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
