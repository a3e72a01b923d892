"""
Slot Generation Service

Generates discrete candidate start times for UI display, considering:
- Effective availability of the practitioner for the day
- Step size of the flow (1 hour for new bookings, 30 minutes for reschedule)
- Past-time exclusion
- Existing bookings and group classes
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import pytz

from session_scheduling.exceptions import ValidationError
from session_scheduling.session_scheduling.doctype.session_booking.session_booking import (
	Booking,
	parse_bookings,
)
from session_scheduling.session_scheduling.scheduling.availability import (
	WindowInput,
	get_availability_for_day,
)
from session_scheduling.session_scheduling.scheduling.overlap import (
	BookingInput,
	SlotReason,
	check_conflict,
)
from session_scheduling.utils.dates import add_minutes, format_datetime, localize


@dataclass(frozen=True)
class CandidateSlot:
	start: datetime
	end: datetime
	available: bool
	reason: SlotReason = SlotReason.NONE

	def to_dict(self) -> Dict[str, Any]:
		return {
			"start": format_datetime(self.start),
			"end": format_datetime(self.end),
			"is_available": self.available,
			"reason": self.reason.value,
		}


def generate_candidate_times(
	interval: Dict[str, datetime],
	step_minutes: int,
	now: datetime,
	duration_minutes: Optional[int] = None,
	must_fit: bool = True,
) -> Iterator[datetime]:
	"""
	Enumera inicios candidatos dentro de un intervalo abierto.

	Args:
		interval: {"start": datetime, "end": datetime}
		step_minutes: separación entre candidatos
		now: instante actual; candidatos <= now se descartan
		duration_minutes: duración pedida (default: step_minutes)
		must_fit: True exige candidate + duration <= end;
			False usa candidate < end y permite pasarse del cierre

	Yields:
		datetime en orden ascendente
	"""
	if step_minutes is None or step_minutes <= 0:
		raise ValidationError(f"step_minutes debe ser > 0, recibido {step_minutes!r}")

	duration_minutes = duration_minutes or step_minutes
	interval_start = interval["start"]
	interval_end = interval["end"]

	current = interval_start

	while current < interval_end:
		if must_fit and add_minutes(current, duration_minutes) > interval_end:
			break

		if current > now:
			yield current

		current = add_minutes(current, step_minutes)


def generate_slots(
	windows: Iterable[WindowInput],
	bookings: Iterable[BookingInput],
	target_date: Union[date, str],
	duration_minutes: int,
	now: datetime,
	step_minutes: int,
	tz: pytz.BaseTzInfo = pytz.UTC,
	is_group_request: bool = False,
	exclude_booking: Optional[str] = None,
	only_available: bool = False,
	must_fit: bool = True,
) -> List[CandidateSlot]:
	"""
	Genera los slots de un día para UI.

	Args:
		windows: Availability Windows del practitioner
		bookings: sesiones existentes del practitioner en ese día
		target_date: fecha a consultar
		duration_minutes: duración de la sesión pedida
		now: instante actual (explícito para que el resultado sea determinista)
		step_minutes: 60 para reserva nueva, 30 para reagendar
		tz: timezone del practitioner
		is_group_request: True si el cliente quiere unirse a una clase grupal
		exclude_booking: id del booking que se está reagendando
		only_available: True devuelve solo slots libres (flujo de reagendamiento)
		must_fit: ver generate_candidate_times

	Returns:
		list[CandidateSlot] ordenada por start

	Algoritmo:
		1. Obtener intervalos abiertos del día
		2. Para cada intervalo generar candidatos cada step_minutes (> now)
		3. Para cada candidato verificar conflictos
		4. Retornar lista ordenada
	"""
	if duration_minutes is None or duration_minutes <= 0:
		raise ValidationError(f"duration_minutes debe ser > 0, recibido {duration_minutes!r}")

	now = localize(now, tz)
	bookings = _normalize_bookings(bookings, tz)
	slots = []

	for interval in get_availability_for_day(windows, target_date, tz):
		for candidate in generate_candidate_times(
			interval, step_minutes, now, duration_minutes=duration_minutes, must_fit=must_fit
		):
			result = check_conflict(
				candidate,
				duration_minutes,
				bookings,
				is_group_request=is_group_request,
				exclude_booking=exclude_booking,
				tz=tz,
			)

			if only_available and not result.available:
				continue

			slots.append(
				CandidateSlot(
					start=candidate,
					end=add_minutes(candidate, duration_minutes),
					available=result.available,
					reason=result.reason,
				)
			)

	# Ya están ordenados por construcción (intervalos merged y ordenados)
	return slots


def _normalize_bookings(bookings: Iterable[BookingInput], tz: pytz.BaseTzInfo) -> List[Booking]:
	# Los registros se interpretan una sola vez; los ilegibles se saltan
	bookings = list(bookings or [])
	parsed = [booking for booking in bookings if isinstance(booking, Booking)]
	records = [booking for booking in bookings if booking and not isinstance(booking, Booking)]
	return parsed + parse_bookings(records, tz).bookings
