"""
In-Memory Scheduling Store

Thread-safe store backed by plain dicts. Every write takes the same lock
for its check-and-write, so two clients racing for one slot (or for the
last spot of a group class) cannot both succeed.
"""

import threading
import uuid
from copy import deepcopy
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import pytz

from session_scheduling.exceptions import (
	BookingNotFoundError,
	DoubleBookingError,
	GroupFullError,
	InvalidBookingRecord,
)
from session_scheduling.logger import get_logger
from session_scheduling.session_scheduling.doctype.session_booking.session_booking import (
	Booking,
	BookingStatus,
)
from session_scheduling.session_scheduling.scheduling.overlap import intervals_overlap
from session_scheduling.session_scheduling.stores.base import SchedulingStore

logger = get_logger(__name__)


class InMemoryStore(SchedulingStore):
	"""Store en memoria para tests y desarrollo local."""

	def __init__(
		self,
		availability: Optional[Iterable[Dict[str, Any]]] = None,
		bookings: Optional[Iterable[Dict[str, Any]]] = None,
		grace_records: Optional[Dict[str, List[Dict[str, Any]]]] = None,
		tz: pytz.BaseTzInfo = pytz.UTC,
	):
		self._lock = threading.Lock()
		self._tz = tz
		self._availability = [dict(w) for w in availability or []]
		self._bookings: Dict[str, Dict[str, Any]] = {}
		self._grace_records = {k: list(v) for k, v in (grace_records or {}).items()}

		for record in bookings or []:
			record = dict(record)
			record.setdefault("id", str(uuid.uuid4()))
			self._bookings[str(record["id"])] = record

	def get_availability_windows(self, practitioner_id: str) -> List[Dict[str, Any]]:
		return [
			dict(w) for w in self._availability
			if w.get("practitioner_id") == practitioner_id
		]

	def get_bookings(self, practitioner_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
		result = []

		with self._lock:
			for record in self._bookings.values():
				if record.get("practitioner_id") != practitioner_id:
					continue
				if record.get("status") == BookingStatus.CANCELLED.value:
					continue

				# Un registro ilegible se devuelve igual; el core lo descarta
				booking = self._parse_booking(record)
				if booking is not None and not intervals_overlap(booking.scheduled_at, booking.end, start, end):
					continue

				result.append(deepcopy(record))

		return result

	def get_booking(self, booking_id: str) -> Dict[str, Any]:
		with self._lock:
			return deepcopy(self._get(booking_id))

	def get_grace_records(self, client_id: str) -> List[Dict[str, Any]]:
		return [dict(r) for r in self._grace_records.get(client_id, [])]

	def set_grace_used(self, client_id: str, used: bool = True) -> None:
		self._grace_records.setdefault(client_id, []).append({"grace_cancellation_used": used})

	def create_booking(self, record: Dict[str, Any]) -> Dict[str, Any]:
		record = dict(record)
		record.setdefault("id", str(uuid.uuid4()))
		record.setdefault("status", BookingStatus.SCHEDULED.value)
		new_booking = Booking.from_record(record, self._tz)

		with self._lock:
			conflict = self._find_conflict(new_booking)
			if conflict is not None:
				raise DoubleBookingError(
					f"Slot {new_booking.scheduled_at.isoformat()} already taken by booking {conflict.id}"
				)
			self._bookings[str(record["id"])] = record
			return deepcopy(record)

	def add_participant(self, booking_id: str) -> Dict[str, Any]:
		with self._lock:
			record = self._get(booking_id)
			booking = Booking.from_record(record, self._tz)

			if not booking.is_active:
				raise BookingNotFoundError(f"Booking {booking_id} is cancelled")
			if not booking.has_capacity:
				raise GroupFullError(
					f"Group session {booking_id} is full "
					f"({booking.current_participants}/{booking.max_participants})"
				)

			record["current_participants"] = booking.current_participants + 1
			return deepcopy(record)

	def update_scheduled_at(self, booking_id: str, scheduled_at: datetime) -> Dict[str, Any]:
		with self._lock:
			record = self._get(booking_id)
			moved = dict(record, scheduled_at=scheduled_at.isoformat())
			moved_booking = Booking.from_record(moved, self._tz)

			conflict = self._find_conflict(moved_booking)
			if conflict is not None:
				raise DoubleBookingError(
					f"Slot {moved_booking.scheduled_at.isoformat()} already taken by booking {conflict.id}"
				)

			record["scheduled_at"] = moved["scheduled_at"]
			return deepcopy(record)

	def _get(self, booking_id: str) -> Dict[str, Any]:
		try:
			return self._bookings[str(booking_id)]
		except KeyError:
			raise BookingNotFoundError(f"Booking {booking_id} not found") from None

	def _find_conflict(self, candidate: Booking) -> Optional[Booking]:
		# Se llama con el lock tomado
		for record in self._bookings.values():
			if str(record.get("id")) == str(candidate.id):
				continue
			if record.get("practitioner_id") != candidate.practitioner_id:
				continue
			try:
				existing = Booking.from_record(record, self._tz)
			except InvalidBookingRecord:
				continue
			if not existing.is_active:
				continue
			if intervals_overlap(candidate.scheduled_at, candidate.end, existing.scheduled_at, existing.end):
				return existing
		return None

	def _parse_booking(self, record: Dict[str, Any]) -> Optional[Booking]:
		try:
			return Booking.from_record(record, self._tz)
		except InvalidBookingRecord:
			logger.warning("Booking %s is malformed", record.get("id"))
			return None
