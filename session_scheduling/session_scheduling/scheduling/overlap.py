"""
Overlap Detection Service

Detects scheduling conflicts between a candidate start time and the
existing sessions of a practitioner, considering:
- Booking status (cancelled bookings never block)
- Group sessions (joining an existing class at its exact start time)
- The session being rescheduled (excluded from its own conflicts)
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Union

import pytz

from session_scheduling.exceptions import InvalidBookingRecord, ValidationError
from session_scheduling.logger import get_logger
from session_scheduling.session_scheduling.doctype.session_booking.session_booking import Booking
from session_scheduling.utils.dates import add_minutes, localize

logger = get_logger(__name__)

BookingInput = Union[Booking, Mapping[str, Any]]


class SlotReason(str, Enum):
	NONE = "none"
	ALREADY_BOOKED = "already-booked"
	IN_THE_PAST = "in-the-past"
	GROUP_FULL = "group-full"


@dataclass
class ConflictResult:
	available: bool
	reason: SlotReason = SlotReason.NONE
	overlapping: List[Optional[str]] = field(default_factory=list)
	joinable_group: Optional[Booking] = None


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
	"""
	Overlap de intervalos semiabiertos [start1, end1) y [start2, end2).

	Intervalos que solo se tocan en el borde (end1 == start2) no se solapan.
	"""
	return start1 < end2 and start2 < end1


def check_conflict(
	candidate_start: datetime,
	duration_minutes: int,
	bookings: Iterable[BookingInput],
	is_group_request: bool = False,
	exclude_booking: Optional[str] = None,
	tz: pytz.BaseTzInfo = pytz.UTC,
) -> ConflictResult:
	"""
	Decide si se puede reservar una sesión de duration_minutes en candidate_start.

	Args:
		candidate_start: inicio propuesto
		duration_minutes: duración pedida
		bookings: sesiones del practitioner para ese día
		is_group_request: True si el cliente busca unirse a una clase grupal
		exclude_booking: id del booking a excluir (el que se reagenda)
		tz: timezone para valores naive

	Returns:
		ConflictResult

	Algoritmo:
		1. Descartar bookings cancelados, el excluido y los ilegibles
		2. Si es grupal y hay una clase en el mismo inicio con cupo -> disponible
		3. Cualquier booking solapado (grupal o no) -> no disponible
		4. Sin solapamientos -> disponible

	Raises:
		ValidationError: si duration_minutes <= 0
	"""
	if duration_minutes is None or duration_minutes <= 0:
		raise ValidationError(f"duration_minutes debe ser > 0, recibido {duration_minutes!r}")

	candidate_start = localize(candidate_start, tz)
	candidate_end = add_minutes(candidate_start, duration_minutes)

	active = _active_bookings(bookings, exclude_booking, tz)

	# Unirse a una clase grupal existente no crea un intervalo nuevo
	if is_group_request:
		group = find_joinable_group(candidate_start, active)
		if group is not None:
			return ConflictResult(available=True, joinable_group=group)

	overlapping = [
		booking for booking in active
		if intervals_overlap(candidate_start, candidate_end, booking.scheduled_at, booking.end)
	]

	if not overlapping:
		return ConflictResult(available=True)

	reason = SlotReason.ALREADY_BOOKED
	if is_group_request and any(
		booking.is_group and _same_minute(booking.scheduled_at, candidate_start)
		for booking in overlapping
	):
		reason = SlotReason.GROUP_FULL

	return ConflictResult(
		available=False,
		reason=reason,
		overlapping=[booking.id for booking in overlapping],
	)


def check_requested_slot(
	candidate_start: datetime,
	duration_minutes: int,
	bookings: Iterable[BookingInput],
	now: datetime,
	is_group_request: bool = False,
	exclude_booking: Optional[str] = None,
	tz: pytz.BaseTzInfo = pytz.UTC,
) -> ConflictResult:
	"""
	Igual que check_conflict pero además rechaza horarios pasados.

	Se usa para validar un horario puntual pedido por el cliente antes de
	escribirlo. Un horario <= now nunca es reservable.
	"""
	candidate_start = localize(candidate_start, tz)
	if candidate_start <= localize(now, tz):
		return ConflictResult(available=False, reason=SlotReason.IN_THE_PAST)

	return check_conflict(
		candidate_start,
		duration_minutes,
		bookings,
		is_group_request=is_group_request,
		exclude_booking=exclude_booking,
		tz=tz,
	)


def find_joinable_group(candidate_start: datetime, bookings: Iterable[Booking]) -> Optional[Booking]:
	"""
	Busca una clase grupal activa que empiece exactamente en candidate_start
	y que todavía tenga cupo (current_participants < max_participants).
	"""
	for booking in bookings:
		if not booking.is_active or not booking.is_group:
			continue
		if _same_minute(booking.scheduled_at, candidate_start) and booking.has_capacity:
			return booking
	return None


def _active_bookings(
	bookings: Iterable[BookingInput],
	exclude_booking: Optional[str],
	tz: pytz.BaseTzInfo,
) -> List[Booking]:
	active = []

	for booking in bookings or []:
		if not booking:
			continue
		if not isinstance(booking, Booking):
			try:
				booking = Booking.from_record(booking, tz)
			except InvalidBookingRecord as e:
				logger.warning("Skipping malformed booking record: %s", e)
				continue

		if not isinstance(booking.scheduled_at, datetime):
			continue
		if booking.scheduled_at.tzinfo is None:
			booking = replace(booking, scheduled_at=localize(booking.scheduled_at, tz))
		if not booking.is_active:
			continue
		if exclude_booking is not None and booking.id == exclude_booking:
			continue

		active.append(booking)

	return active


def _same_minute(first: datetime, second: datetime) -> bool:
	# Comparación a precisión de minuto (HH:mm), en UTC
	first = first.astimezone(pytz.UTC).replace(second=0, microsecond=0)
	second = second.astimezone(pytz.UTC).replace(second=0, microsecond=0)
	return first == second
