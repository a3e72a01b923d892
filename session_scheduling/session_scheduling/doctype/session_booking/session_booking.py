# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Session Booking

Sesión agendada que ocupa tiempo del practitioner.

Los registros llegan del booking store con el layout persistido:
scheduled_at (ISO-8601), duration_minutes, max_participants,
current_participants y status. La conversión a Booking valida todo una sola
vez; los registros que no se pueden interpretar se rechazan aquí y nunca
llegan a la detección de conflictos.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple

import pytz

from session_scheduling.exceptions import InvalidBookingRecord, ValidationError
from session_scheduling.logger import get_logger
from session_scheduling.utils.dates import add_minutes, get_datetime

logger = get_logger(__name__)


class BookingStatus(str, Enum):
	SCHEDULED = "scheduled"
	IN_PROGRESS = "in_progress"
	COMPLETED = "completed"
	CANCELLED = "cancelled"


@dataclass(frozen=True)
class Booking:
	"""
	Booking activo o histórico de un practitioner.

	max_participants > 1 indica sesión grupal.
	"""

	scheduled_at: datetime
	duration_minutes: int
	max_participants: int = 1
	current_participants: int = 0
	status: BookingStatus = BookingStatus.SCHEDULED
	id: Optional[str] = None
	practitioner_id: Optional[str] = None
	client_id: Optional[str] = None

	@property
	def end(self) -> datetime:
		return add_minutes(self.scheduled_at, self.duration_minutes)

	@property
	def is_group(self) -> bool:
		return self.max_participants > 1

	@property
	def is_active(self) -> bool:
		return self.status != BookingStatus.CANCELLED

	@property
	def spots_left(self) -> int:
		return max(0, self.max_participants - self.current_participants)

	@property
	def has_capacity(self) -> bool:
		return self.current_participants < self.max_participants

	@classmethod
	def from_record(cls, record: Mapping[str, Any], tz: pytz.BaseTzInfo = pytz.UTC) -> "Booking":
		"""
		Convierte un registro persistido a Booking.

		Args:
			record: {"scheduled_at": "2026-01-15T10:00:00+00:00", "duration_minutes": 60, ...}
			tz: timezone de scheduling; los timestamps naive se interpretan en ella

		Returns:
			Booking con scheduled_at aware en tz

		Raises:
			InvalidBookingRecord: scheduled_at ilegible, duración <= 0, status desconocido
		"""
		try:
			scheduled_at = get_datetime(record.get("scheduled_at"), tz)
		except ValidationError as e:
			raise InvalidBookingRecord(
				f"Booking {record.get('id')}: scheduled_at inválido ({record.get('scheduled_at')!r})",
				record,
			) from e

		duration = _to_int(record.get("duration_minutes"), None)
		if duration is None or duration <= 0:
			raise InvalidBookingRecord(
				f"Booking {record.get('id')}: duration_minutes debe ser > 0 "
				f"({record.get('duration_minutes')!r})",
				record,
			)

		raw_status = record.get("status") or BookingStatus.SCHEDULED.value
		try:
			status = BookingStatus(raw_status)
		except ValueError as e:
			raise InvalidBookingRecord(
				f"Booking {record.get('id')}: status desconocido ({raw_status!r})", record
			) from e

		# max_participants || 1, current_participants || 0
		max_participants = _to_int(record.get("max_participants"), None) or 1
		current_participants = _to_int(record.get("current_participants"), None) or 0

		return cls(
			scheduled_at=scheduled_at,
			duration_minutes=duration,
			max_participants=max(1, max_participants),
			current_participants=max(0, current_participants),
			status=status,
			id=_to_str(record.get("id")),
			practitioner_id=_to_str(record.get("practitioner_id")),
			client_id=_to_str(record.get("client_id")),
		)


@dataclass
class BookingParseResult:
	bookings: List[Booking] = field(default_factory=list)
	rejected: List[Tuple[Mapping[str, Any], InvalidBookingRecord]] = field(default_factory=list)


def parse_bookings(
	records: Optional[Iterable[Mapping[str, Any]]],
	tz: pytz.BaseTzInfo = pytz.UTC,
) -> BookingParseResult:
	"""
	Convierte registros persistidos a Bookings, saltando los inválidos.

	Un registro malo no debe dejar todo el día sin slots: se registra un
	warning y se continúa con los demás.

	Returns:
		BookingParseResult(bookings, rejected)
	"""
	result = BookingParseResult()

	for record in records or []:
		if not record:
			continue
		try:
			result.bookings.append(Booking.from_record(record, tz))
		except InvalidBookingRecord as e:
			logger.warning("Skipping malformed booking record: %s", e)
			result.rejected.append((record, e))

	return result


def _to_int(value: Any, default: Optional[int]) -> Optional[int]:
	if value is None or isinstance(value, bool):
		return default
	try:
		return int(value)
	except (TypeError, ValueError):
		return default


def _to_str(value: Any) -> Optional[str]:
	return None if value is None else str(value)
