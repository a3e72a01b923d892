"""
Date and time helpers.

Parsing of persisted timestamps (ISO-8601 strings from the booking store),
calendar dates and times of day, plus pytz localization. Naive values are
always interpreted in the scheduling timezone.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Union

import pytz
from dateutil import parser

from session_scheduling.exceptions import ValidationError
from session_scheduling.logger import log_error

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Sunday=0 ... Saturday=6
WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def get_timezone(tz_name: Optional[str]) -> pytz.BaseTzInfo:
	"""
	Resuelve un nombre de timezone a un objeto pytz.

	Un nombre inválido se registra con log_error y se usa UTC.
	"""
	if not tz_name:
		return pytz.UTC

	try:
		return pytz.timezone(tz_name)
	except pytz.UnknownTimeZoneError:
		log_error(f"Invalid timezone '{tz_name}', usando UTC", "Get Timezone")
		return pytz.UTC


def localize(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
	"""
	Devuelve el datetime expresado en tz.

	Naive -> se localiza en tz. Aware -> se convierte a tz.
	"""
	if value.tzinfo is None:
		return tz.localize(value)
	return value.astimezone(tz)


def add_minutes(value: datetime, minutes: Union[int, float]) -> datetime:
	"""Suma minutos respetando cambios de horario (DST) en timezones pytz."""
	result = value + timedelta(minutes=minutes)
	tzinfo = result.tzinfo
	if tzinfo is not None and hasattr(tzinfo, "normalize"):
		result = tzinfo.normalize(result)
	return result


def get_datetime(value: Union[datetime, date, str], tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
	"""
	Convierte un valor a datetime (aware si se pasa tz).

	Args:
		value: datetime, date o string (ISO-8601 o "YYYY-MM-DD HH:MM:SS")
		tz: timezone para localizar/convertir el resultado

	Returns:
		datetime

	Raises:
		ValidationError: si el valor no se puede interpretar
	"""
	if isinstance(value, datetime):
		result = value
	elif isinstance(value, date):
		result = datetime.combine(value, time.min)
	elif isinstance(value, str) and value.strip():
		text = value.strip()
		try:
			result = parser.isoparse(text)
		except (ValueError, OverflowError):
			# Solo ISO-8601 o DATETIME_FORMAT, sin completar partes faltantes
			try:
				result = datetime.strptime(text, DATETIME_FORMAT)
			except ValueError as e:
				raise ValidationError(f"Invalid datetime: {value!r}") from e
	else:
		raise ValidationError(f"Invalid datetime: {value!r}")

	if tz is not None:
		result = localize(result, tz)
	return result


def getdate(value: Union[datetime, date, str]) -> date:
	"""
	Convierte un valor a date (solo día calendario).

	Raises:
		ValidationError: si el valor no se puede interpretar
	"""
	if isinstance(value, datetime):
		return value.date()
	if isinstance(value, date):
		return value
	if isinstance(value, str) and value.strip():
		try:
			return datetime.strptime(value.strip(), DATE_FORMAT).date()
		except ValueError as e:
			raise ValidationError(f"Invalid date: {value!r}. Use YYYY-MM-DD") from e
	raise ValidationError(f"Invalid date: {value!r}")


def get_time(time_value: Union[time, timedelta, str]) -> time:
	"""
	Convierte diferentes formatos de tiempo a datetime.time.

	Args:
		time_value: puede ser time, timedelta (desde medianoche), o string "HH:MM[:SS]"

	Returns:
		datetime.time object

	Raises:
		ValidationError: si el valor no es un tiempo válido
	"""
	if isinstance(time_value, time):
		return time_value
	elif isinstance(time_value, timedelta):
		# timedelta representa tiempo desde medianoche
		if time_value < timedelta(0) or time_value >= timedelta(days=1):
			raise ValidationError(f"Invalid time: {time_value!r}")
		return (datetime.min + time_value).time()
	elif isinstance(time_value, str):
		parts = time_value.strip().split(":")
		if len(parts) not in (2, 3):
			raise ValidationError(f"Invalid time: {time_value!r}. Use HH:MM")
		try:
			numbers = [int(float(p)) if i == 2 else int(p) for i, p in enumerate(parts)]
			return time(*numbers)
		except ValueError as e:
			raise ValidationError(f"Invalid time: {time_value!r}. Use HH:MM") from e
	else:
		raise ValidationError(f"Cannot convert {type(time_value)} to time")


def day_of_week(target_date: date) -> int:
	"""Día de la semana con Sunday=0 ... Saturday=6."""
	return (target_date.weekday() + 1) % 7


def format_datetime(value: datetime) -> str:
	"""Formato ISO-8601 usado en las respuestas del API."""
	return value.isoformat()
