"""
Availability Service

Provides functions to calculate the open intervals of a practitioner,
considering:
- Weekly recurring Availability Windows (day_of_week, start_time, end_time)
- Timezones
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Union

import pytz

from session_scheduling.exceptions import ValidationError
from session_scheduling.logger import log_error
from session_scheduling.session_scheduling.doctype.availability_window.availability_window import (
	AvailabilityWindow,
)
from session_scheduling.utils.dates import DATE_FORMAT, day_of_week, getdate

WindowInput = Union[AvailabilityWindow, Mapping[str, Any]]


def load_windows(windows: Iterable[WindowInput]) -> List[AvailabilityWindow]:
	"""
	Normaliza windows que pueden venir como registros (dict) o AvailabilityWindow.

	Los registros inválidos se registran con log_error y se ignoran, igual que
	un día sin disponibilidad.
	"""
	result = []

	for window in windows or []:
		if isinstance(window, AvailabilityWindow):
			result.append(window)
			continue
		try:
			result.append(AvailabilityWindow.from_record(window))
		except ValidationError as e:
			log_error(f"Availability window ignorado {dict(window)!r}: {e}", "Load Availability Windows")

	return result


def get_availability_for_day(
	windows: Iterable[WindowInput],
	target_date: Union[date, str],
	tz: pytz.BaseTzInfo = pytz.UTC,
) -> List[Dict[str, datetime]]:
	"""
	Obtiene los intervalos abiertos de un día específico.

	Args:
		windows: Availability Windows del practitioner
		target_date: fecha (date object o string YYYY-MM-DD)
		tz: timezone del practitioner

	Returns:
		list[dict]: [
			{"start": datetime, "end": datetime},
			...
		]

	Algoritmo:
		1. Obtener day_of_week del date (Sunday=0)
		2. Filtrar windows de ese día
		3. Convertir time a datetime con timezone
		4. Merge intervalos adyacentes/overlapping
		5. Retornar lista ordenada (vacía si no hay windows)
	"""
	target_date = getdate(target_date)
	weekday = day_of_week(target_date)

	base_intervals = []

	for window in load_windows(windows):
		if window.day_of_week != weekday:
			continue

		start_dt = tz.localize(datetime.combine(target_date, window.start_time))
		end_dt = tz.localize(datetime.combine(target_date, window.end_time))

		base_intervals.append({"start": start_dt, "end": end_dt})

	# Si no hay windows para este día, retornar vacío
	if not base_intervals:
		return []

	return _merge_intervals(base_intervals)


def get_effective_availability(
	windows: Iterable[WindowInput],
	start_date: Union[date, str],
	end_date: Union[date, str],
	tz: pytz.BaseTzInfo = pytz.UTC,
) -> Dict[str, List[Dict[str, datetime]]]:
	"""
	Obtiene disponibilidad efectiva para un rango de fechas (inclusive).

	Returns:
		dict: {
			"2026-01-19": [{"start": datetime, "end": datetime}, ...],
			...
		}
		Solo incluye días con disponibilidad.
	"""
	start_date = getdate(start_date)
	end_date = getdate(end_date)
	windows = load_windows(windows)

	result = {}
	current_date = start_date

	while current_date <= end_date:
		intervals = get_availability_for_day(windows, current_date, tz)
		if intervals:
			result[current_date.strftime(DATE_FORMAT)] = intervals
		current_date += timedelta(days=1)

	return result


def _merge_intervals(intervals: List[Dict[str, datetime]]) -> List[Dict[str, datetime]]:
	"""
	Une intervalos adyacentes o overlapping.

	Args:
		intervals: lista de intervalos {"start": datetime, "end": datetime}

	Returns:
		list: intervalos merged, ordenados por start
	"""
	if not intervals:
		return []

	ordered = sorted(intervals, key=lambda x: x["start"])

	merged = [dict(ordered[0])]

	for current in ordered[1:]:
		last_merged = merged[-1]

		if current["start"] <= last_merged["end"]:
			if current["end"] > last_merged["end"]:
				last_merged["end"] = current["end"]
		else:
			merged.append(dict(current))

	return merged
