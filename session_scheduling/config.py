"""
Scheduling Settings

Configuration for slot generation and session policies. Values come from
SESSION_SCHEDULING_* environment variables (optionally loaded from a .env
file) and fall back to the platform defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional

import pytz
from dotenv import load_dotenv

from session_scheduling.exceptions import ConfigurationError
from session_scheduling.logger import log_error

ENV_PREFIX = "SESSION_SCHEDULING_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class SchedulingSettings:
	timezone: str = "America/New_York"

	# Granularidad de slots: reservas nuevas cada hora, reagendamiento cada 30 min
	booking_step_minutes: int = 60
	reschedule_step_minutes: int = 30

	reschedule_cutoff_hours: float = 3.0
	join_lead_minutes: int = 15

	# False permite que el último slot termine después del window (candidate < end)
	slots_must_fit_window: bool = True

	standard_cancellation_hours: float = 12.0
	late_cancellation_hours: float = 5.0
	grace_cancellations_allowed: int = 1

	def step_minutes_for(self, flow: str) -> int:
		"""Tamaño de slot según el flujo ("booking" o "reschedule")."""
		if flow == "booking":
			return self.booking_step_minutes
		if flow == "reschedule":
			return self.reschedule_step_minutes
		raise ConfigurationError(f"Unknown slot flow: {flow!r}")

	def tzinfo(self) -> pytz.BaseTzInfo:
		return pytz.timezone(self.timezone)

	def validate(self) -> "SchedulingSettings":
		if self.booking_step_minutes <= 0 or self.reschedule_step_minutes <= 0:
			raise ConfigurationError("Slot step minutes must be greater than 0")
		if self.reschedule_cutoff_hours < 0:
			raise ConfigurationError("Reschedule cutoff hours cannot be negative")
		if self.join_lead_minutes < 0:
			raise ConfigurationError("Join lead minutes cannot be negative")
		if self.late_cancellation_hours > self.standard_cancellation_hours:
			raise ConfigurationError(
				"Late cancellation hours must not exceed standard cancellation hours"
			)
		if self.grace_cancellations_allowed < 0:
			raise ConfigurationError("Grace cancellations allowed cannot be negative")
		return self


def _parse_bool(raw: str, key: str) -> bool:
	value = raw.strip().lower()
	if value in _TRUE_VALUES:
		return True
	if value in _FALSE_VALUES:
		return False
	raise ConfigurationError(f"Invalid {key} value: {raw!r}. Expected true/false.")


def _parse_number(cast: Callable[[str], Any]) -> Callable[[str, str], Any]:
	def parse(raw: str, key: str) -> Any:
		try:
			return cast(raw.strip())
		except ValueError as e:
			raise ConfigurationError(f"Invalid {key} value: {raw!r}") from e
	return parse


_FIELD_PARSERS = {
	"booking_step_minutes": _parse_number(int),
	"reschedule_step_minutes": _parse_number(int),
	"reschedule_cutoff_hours": _parse_number(float),
	"join_lead_minutes": _parse_number(int),
	"slots_must_fit_window": _parse_bool,
	"standard_cancellation_hours": _parse_number(float),
	"late_cancellation_hours": _parse_number(float),
	"grace_cancellations_allowed": _parse_number(int),
}


def load_settings(
	environ: Optional[Mapping[str, str]] = None,
	dotenv: bool = True,
) -> SchedulingSettings:
	"""
	Construye SchedulingSettings desde variables de entorno.

	Args:
		environ: mapping a leer (default: os.environ)
		dotenv: si True y environ es None, carga .env antes de leer

	Returns:
		SchedulingSettings validado

	Raises:
		ConfigurationError: valor numérico/booleano mal formado o fuera de rango
	"""
	if environ is None:
		if dotenv:
			load_dotenv()
		environ = os.environ

	overrides = {}

	tz_name = environ.get(f"{ENV_PREFIX}TIMEZONE")
	if tz_name:
		tz_name = tz_name.strip()
		if tz_name in pytz.all_timezones_set:
			overrides["timezone"] = tz_name
		else:
			log_error(f"Invalid timezone '{tz_name}', usando UTC", "Load Settings")
			overrides["timezone"] = "UTC"

	for field_name, parse in _FIELD_PARSERS.items():
		key = f"{ENV_PREFIX}{field_name.upper()}"
		raw = environ.get(key)
		if raw is None or not raw.strip():
			continue
		overrides[field_name] = parse(raw, key)

	return replace(SchedulingSettings(), **overrides).validate()
