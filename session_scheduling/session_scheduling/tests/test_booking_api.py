"""
Tests for api/booking_api.py

Tests the service layer end to end against the in-memory store: slot
listing, booking, group joins, rescheduling and session policies.
"""

import unittest
from datetime import datetime
from unittest import mock

import pytz

from session_scheduling.api.booking_api import (
	book_session,
	classify_session_cancellation,
	get_available_slots,
	get_reschedule_options,
	get_session_join_status,
	join_group_session,
	reschedule_session,
)
from session_scheduling.config import SchedulingSettings
from session_scheduling.exceptions import (
	BookingNotFoundError,
	DoubleBookingError,
	RescheduleNotAllowedError,
	SlotUnavailableError,
	ValidationError,
)
from session_scheduling.session_scheduling.scheduling.overlap import SlotReason
from session_scheduling.session_scheduling.scheduling.policy import (
	CancellationType,
	RescheduleState,
)
from session_scheduling.session_scheduling.stores.memory import InMemoryStore

TZ = pytz.timezone("America/New_York")


def at(hour, minute=0, day=19):
	return TZ.localize(datetime(2026, 1, day, hour, minute))


class TestBookingApi(unittest.TestCase):
	"""Tests for the booking service functions."""

	def setUp(self):
		"""Set up test data before each test."""
		self.settings = SchedulingSettings()
		self.store = InMemoryStore(
			availability=[
				{"practitioner_id": "p1", "day_of_week": 1, "start_time": "09:00", "end_time": "18:00"},
			],
			bookings=[
				{
					"id": "b1",
					"practitioner_id": "p1",
					"client_id": "c1",
					"scheduled_at": "2026-01-19T10:00:00-05:00",
					"duration_minutes": 60,
					"max_participants": 1,
					"current_participants": 1,
					"status": "scheduled",
				}
			],
			tz=TZ,
		)

	def _add_group(self, current=2, maximum=3):
		self.store.create_booking({
			"id": "g1",
			"practitioner_id": "p1",
			"scheduled_at": "2026-01-19T14:00:00-05:00",
			"duration_minutes": 60,
			"max_participants": maximum,
			"current_participants": current,
		})

	# ===== SLOTS =====

	def test_booking_flow_slots(self):
		"""Test hourly slots with the booked hour tagged unavailable."""
		slots = get_available_slots(self.store, "p1", "2026-01-19", 60, at(8), settings=self.settings)

		self.assertEqual(len(slots), 9)
		ten = [slot for slot in slots if slot["start"] == "2026-01-19T10:00:00-05:00"][0]
		self.assertFalse(ten["is_available"])
		self.assertEqual(ten["reason"], "already-booked")

	def test_booking_flow_only_available(self):
		"""Test the filtered booking flow."""
		slots = get_available_slots(
			self.store, "p1", "2026-01-19", 60, at(8), only_available=True, settings=self.settings
		)

		self.assertEqual(
			[slot["start"][11:16] for slot in slots],
			["09:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00", "17:00"],
		)

	def test_reschedule_flow_slots(self):
		"""Test 30-minute slots, available only, for the reschedule flow."""
		slots = get_available_slots(
			self.store, "p1", "2026-01-19", 60, at(8), flow="reschedule", settings=self.settings
		)
		starts = [slot["start"][11:16] for slot in slots]

		self.assertEqual(len(slots), 14)
		self.assertTrue(all(slot["is_available"] for slot in slots))
		self.assertNotIn("09:30", starts)
		self.assertNotIn("10:30", starts)
		self.assertEqual(starts[-1], "17:00")

	def test_other_practitioner_has_no_slots(self):
		"""Test that a practitioner without windows gets no slots."""
		self.assertEqual(
			get_available_slots(self.store, "p2", "2026-01-19", 60, at(8), settings=self.settings), []
		)

	def test_invalid_slot_inputs(self):
		"""Test input validation on slot queries."""
		with self.assertRaises(ValidationError):
			get_available_slots(self.store, "p1", "19/01/2026", 60, at(8), settings=self.settings)
		with self.assertRaises(ValidationError):
			get_available_slots(self.store, "p1", "2026-01-19", 0, at(8), settings=self.settings)
		with self.assertRaises(ValidationError):
			get_available_slots(self.store, "p1", "2026-01-19", 60, at(8), flow="weekly", settings=self.settings)

	# ===== RESCHEDULE OPTIONS =====

	def test_reschedule_options_exclude_own_booking(self):
		"""Test that the booking being moved does not block its own times."""
		options = get_reschedule_options(self.store, "b1", "2026-01-19", at(6), settings=self.settings)

		self.assertTrue(options["policy"]["allowed"])
		self.assertEqual(options["policy"]["state"], "eligible")
		self.assertEqual(len(options["slots"]), 17)

	def test_reschedule_options_blocked(self):
		"""Test the policy block two hours before the session."""
		options = get_reschedule_options(self.store, "b1", "2026-01-19", at(8), settings=self.settings)

		self.assertFalse(options["policy"]["allowed"])
		self.assertEqual(options["policy"]["state"], "blocked-standard")
		self.assertIn("grace cancellation for emergencies", options["policy"]["reason"])

	def test_reschedule_options_grace_used(self):
		"""Test the grace-used message once the client consumed it."""
		self.store.set_grace_used("c1")

		options = get_reschedule_options(self.store, "b1", "2026-01-19", at(8), settings=self.settings)

		self.assertEqual(options["policy"]["state"], "blocked-grace-used")

	def test_reschedule_options_admin(self):
		"""Test that admins see an allowed policy with a notice."""
		options = get_reschedule_options(
			self.store, "b1", "2026-01-19", at(8), is_admin=True, settings=self.settings
		)

		self.assertTrue(options["policy"]["allowed"])
		self.assertIsNotNone(options["policy"]["notice"])

	# ===== BOOKING =====

	def test_book_session(self):
		"""Test booking a free hour."""
		record = book_session(
			self.store, "p1", "c2", "2026-01-19T12:00:00-05:00", 60, at(8), settings=self.settings
		)

		self.assertTrue(record["id"])
		self.assertEqual(record["status"], "scheduled")
		self.assertEqual(record["client_id"], "c2")
		self.assertEqual(len(self.store.get_bookings("p1", at(0), at(0, day=20))), 2)

	def test_book_session_naive_string(self):
		"""Test that a naive timestamp is read in the scheduling timezone."""
		record = book_session(self.store, "p1", "c2", "2026-01-19 12:00:00", 60, at(8), settings=self.settings)

		self.assertEqual(record["scheduled_at"], "2026-01-19T12:00:00-05:00")

	def test_book_session_conflict(self):
		"""Test that an overlapping request is rejected."""
		with self.assertRaises(SlotUnavailableError) as ctx:
			book_session(self.store, "p1", "c2", at(10, 30), 60, at(8), settings=self.settings)

		self.assertEqual(ctx.exception.reason, SlotReason.ALREADY_BOOKED)

	def test_book_session_in_past(self):
		"""Test that a start at or before now is rejected."""
		with self.assertRaises(SlotUnavailableError) as ctx:
			book_session(self.store, "p1", "c2", at(9), 60, at(9, 30), settings=self.settings)

		self.assertEqual(ctx.exception.reason, SlotReason.IN_THE_PAST)

	def test_book_session_outside_availability(self):
		"""Test requests outside or running past the window."""
		with self.assertRaises(ValidationError):
			book_session(self.store, "p1", "c2", at(18), 60, at(8), settings=self.settings)
		with self.assertRaises(ValidationError):
			book_session(self.store, "p1", "c2", at(17, 30), 60, at(8), settings=self.settings)

	def test_book_session_off_grid(self):
		"""Test that a start between hourly slots is rejected and keeps both neighbours bookable."""
		with self.assertRaises(ValidationError):
			book_session(self.store, "p1", "c2", "2026-01-19T11:17:00-05:00", 60, at(8), settings=self.settings)

		slots = get_available_slots(
			self.store, "p1", "2026-01-19", 60, at(8), only_available=True, settings=self.settings
		)
		starts = [slot["start"][11:16] for slot in slots]
		self.assertIn("11:00", starts)
		self.assertIn("12:00", starts)

	def test_overnight_booking_blocks_early_slot(self):
		"""Test that a booking from the previous evening blocks the slots it runs into."""
		store = InMemoryStore(
			availability=[
				{"practitioner_id": "p1", "day_of_week": 1, "start_time": "00:00", "end_time": "03:00"},
			],
			bookings=[
				{
					"id": "late",
					"practitioner_id": "p1",
					"scheduled_at": "2026-01-18T23:30:00-05:00",
					"duration_minutes": 90,
				}
			],
			tz=TZ,
		)

		slots = get_available_slots(
			store, "p1", "2026-01-19", 60, at(20, day=18), only_available=True, settings=self.settings
		)

		self.assertEqual([slot["start"][11:16] for slot in slots], ["01:00", "02:00"])

	def test_book_session_stale_snapshot(self):
		"""Test that the store rejects a slot taken after the availability read."""
		with mock.patch.object(self.store, "get_bookings", return_value=[]):
			with self.assertRaises(DoubleBookingError):
				book_session(self.store, "p1", "c2", at(10), 60, at(8), settings=self.settings)

	def test_book_group_session(self):
		"""Test joining a group class until it is full."""
		self._add_group(current=2, maximum=3)

		record = book_session(self.store, "p1", "c2", at(14), 60, at(8), is_group=True, settings=self.settings)
		self.assertEqual(record["id"], "g1")
		self.assertEqual(record["current_participants"], 3)

		with self.assertRaises(SlotUnavailableError) as ctx:
			book_session(self.store, "p1", "c3", at(14), 60, at(8), is_group=True, settings=self.settings)
		self.assertEqual(ctx.exception.reason, SlotReason.GROUP_FULL)

	def test_join_group_session_checks(self):
		"""Test joining a non-group booking or a class already started."""
		self._add_group()

		with self.assertRaises(ValidationError):
			join_group_session(self.store, "b1", at(8), settings=self.settings)
		with self.assertRaises(SlotUnavailableError):
			join_group_session(self.store, "g1", at(14, 30), settings=self.settings)

	# ===== RESCHEDULE =====

	def test_reschedule_session(self):
		"""Test moving a booking into its own old time range."""
		record = reschedule_session(self.store, "b1", "2026-01-19T10:30:00-05:00", at(6), settings=self.settings)

		self.assertEqual(record["scheduled_at"], "2026-01-19T10:30:00-05:00")
		self.assertEqual(
			self.store.get_booking("b1")["scheduled_at"], "2026-01-19T10:30:00-05:00"
		)

	def test_reschedule_session_conflict(self):
		"""Test that another booking blocks the new time."""
		book_session(self.store, "p1", "c2", at(12), 60, at(6), settings=self.settings)

		with self.assertRaises(SlotUnavailableError):
			reschedule_session(self.store, "b1", at(12, 30), at(6), settings=self.settings)

	def test_reschedule_session_blocked(self):
		"""Test that the cutoff is enforced again when persisting."""
		with self.assertRaises(RescheduleNotAllowedError) as ctx:
			reschedule_session(self.store, "b1", at(15), at(8), settings=self.settings)

		self.assertEqual(ctx.exception.decision.state, RescheduleState.BLOCKED_STANDARD)
		self.assertEqual(self.store.get_booking("b1")["scheduled_at"], "2026-01-19T10:00:00-05:00")

	def test_reschedule_session_off_grid(self):
		"""Test that a reschedule must land on the 30-minute grid."""
		with self.assertRaises(ValidationError):
			reschedule_session(self.store, "b1", at(15, 10), at(6), settings=self.settings)

		record = reschedule_session(self.store, "b1", at(15, 30), at(6), settings=self.settings)
		self.assertEqual(record["scheduled_at"], "2026-01-19T15:30:00-05:00")

	def test_naive_now_everywhere(self):
		"""Test that a naive now is read in the scheduling timezone by every service function."""
		now = datetime(2026, 1, 19, 8, 0)

		slots = get_available_slots(self.store, "p1", "2026-01-19", 60, now, settings=self.settings)
		options = get_reschedule_options(self.store, "b1", "2026-01-19", now, settings=self.settings)
		cancellation = classify_session_cancellation(self.store, "b1", now, settings=self.settings)
		join = get_session_join_status(self.store, "b1", now, settings=self.settings)

		self.assertEqual(len(slots), 9)
		self.assertEqual(options["policy"]["state"], "blocked-standard")
		self.assertAlmostEqual(options["policy"]["hours_until"], 2.0)
		self.assertEqual(cancellation.cancellation_type, CancellationType.LAST_MINUTE)
		self.assertFalse(join.can_join)

		with self.assertRaises(RescheduleNotAllowedError):
			reschedule_session(self.store, "b1", at(15), now, settings=self.settings)

	def test_reschedule_session_admin(self):
		"""Test that admins may reschedule inside the cutoff and outside the windows."""
		record = reschedule_session(self.store, "b1", at(19), at(8), is_admin=True, settings=self.settings)

		self.assertEqual(record["scheduled_at"], "2026-01-19T19:00:00-05:00")

	def test_reschedule_unknown_booking(self):
		"""Test that a missing booking is reported."""
		with self.assertRaises(BookingNotFoundError):
			reschedule_session(self.store, "nope", at(15), at(6), settings=self.settings)

	# ===== CANCELLATION / JOIN =====

	def test_classify_session_cancellation(self):
		"""Test cancellation tiers through the store."""
		standard = classify_session_cancellation(self.store, "b1", at(20, day=18), settings=self.settings)
		last_minute = classify_session_cancellation(self.store, "b1", at(8), settings=self.settings)
		grace = classify_session_cancellation(self.store, "b1", at(8), use_grace=True, settings=self.settings)

		self.assertEqual(standard.cancellation_type, CancellationType.STANDARD)
		self.assertEqual(last_minute.cancellation_type, CancellationType.LAST_MINUTE)
		self.assertEqual(grace.cancellation_type, CancellationType.GRACE)

		self.store.set_grace_used("c1")
		used = classify_session_cancellation(self.store, "b1", at(8), use_grace=True, settings=self.settings)
		self.assertEqual(used.cancellation_type, CancellationType.LAST_MINUTE)

	def test_session_join_status(self):
		"""Test the join button state around the session."""
		early = get_session_join_status(self.store, "b1", at(9), settings=self.settings)
		open_ = get_session_join_status(self.store, "b1", at(9, 45), settings=self.settings)

		self.assertFalse(early.can_join)
		self.assertEqual(early.minutes_until_join, 45)
		self.assertEqual(early.time_until_join, "00:45:00 Min")
		self.assertTrue(open_.can_join)


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
