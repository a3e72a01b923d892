# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Availability Window

Franja semanal recurrente de disponibilidad de un practitioner.
Un window por día de semana es lo habitual; varios por día están permitidos
siempre que no se solapen.
"""

from dataclasses import dataclass
from datetime import time
from typing import Any, Dict, Iterable, List, Mapping, Optional

from session_scheduling.exceptions import ValidationError
from session_scheduling.utils.dates import WEEKDAY_NAMES, get_time


@dataclass(frozen=True)
class AvailabilityWindow:
	"""
	Availability Window with validation.

	Validations:
	- day_of_week in 0..6 (Sunday=0)
	- start_time < end_time
	"""

	day_of_week: int
	start_time: time
	end_time: time
	id: Optional[str] = None
	practitioner_id: Optional[str] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "AvailabilityWindow":
		"""
		Construye el window desde un registro persistido.

		Args:
			record: {"day_of_week": 1, "start_time": "09:00", "end_time": "17:00", ...}

		Raises:
			ValidationError: campos faltantes o inválidos
		"""
		for field_name in ("day_of_week", "start_time", "end_time"):
			if record.get(field_name) is None:
				raise ValidationError(f"{field_name} es requerido")

		try:
			day = int(record["day_of_week"])
		except (TypeError, ValueError) as e:
			raise ValidationError(f"day_of_week inválido: {record['day_of_week']!r}") from e

		window = cls(
			day_of_week=day,
			start_time=get_time(record["start_time"]),
			end_time=get_time(record["end_time"]),
			id=record.get("id"),
			practitioner_id=record.get("practitioner_id"),
		)
		window.validate()
		return window

	def validate(self) -> None:
		"""Validación de rango de día y de horas."""
		self._validate_day_of_week()
		self._validate_times()

	def _validate_day_of_week(self) -> None:
		if not 0 <= self.day_of_week <= 6:
			raise ValidationError(
				f"day_of_week debe estar entre 0 (Sunday) y 6 (Saturday), recibido {self.day_of_week}"
			)

	def _validate_times(self) -> None:
		if self.start_time >= self.end_time:
			raise ValidationError(
				f"{self.weekday_name}: Start Time ({self.start_time.strftime('%H:%M')}) "
				f"debe ser menor que End Time ({self.end_time.strftime('%H:%M')})"
			)

	@property
	def weekday_name(self) -> str:
		if 0 <= self.day_of_week <= 6:
			return WEEKDAY_NAMES[self.day_of_week]
		return str(self.day_of_week)


def validate_windows(windows: Iterable[AvailabilityWindow]) -> List[AvailabilityWindow]:
	"""
	Valida que no haya windows solapados en el mismo día.

	Dos windows se solapan si:
	- Son del mismo day_of_week
	- window1.start < window2.end AND window1.end > window2.start

	Windows adyacentes (end == start) están permitidos.

	Returns:
		la lista de windows validada

	Raises:
		ValidationError: si cada window no es válido o hay solapamiento
	"""
	windows = list(windows)
	by_day: Dict[int, List[AvailabilityWindow]] = {}

	for window in windows:
		window.validate()
		by_day.setdefault(window.day_of_week, []).append(window)

	for day, day_windows in by_day.items():
		day_windows = sorted(day_windows, key=lambda w: w.start_time)

		for current, next_window in zip(day_windows, day_windows[1:]):
			if current.end_time > next_window.start_time:
				raise ValidationError(
					f"{WEEKDAY_NAMES[day]}: windows solapados "
					f"({current.start_time.strftime('%H:%M')}-{current.end_time.strftime('%H:%M')}) y "
					f"({next_window.start_time.strftime('%H:%M')}-{next_window.end_time.strftime('%H:%M')})"
				)

	return windows
