"""
Session Policies

Rule evaluators that run against a single session and an explicit "now":
- Reschedule eligibility (cutoff window + one-time grace cancellation)
- Cancellation tier classification (grace / standard / late / last minute)
- Join window (15 minutes before start until the session ends)
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from session_scheduling.utils.dates import add_minutes

DEFAULT_CUTOFF_HOURS = 3.0


class RescheduleState(str, Enum):
	ELIGIBLE = "eligible"
	BLOCKED_STANDARD = "blocked-standard"
	BLOCKED_GRACE_USED = "blocked-grace-used"


@dataclass(frozen=True)
class ReschedulePolicyDecision:
	allowed: bool
	hours_until: float
	state: RescheduleState
	reason: Optional[str] = None
	notice: Optional[str] = None

	def to_dict(self) -> dict:
		return {
			"allowed": self.allowed,
			"hours_until": self.hours_until,
			"state": self.state.value,
			"reason": self.reason,
			"notice": self.notice,
		}


def hours_between(now: datetime, scheduled_at: datetime) -> float:
	"""Horas (con decimales) desde now hasta scheduled_at; negativo si ya pasó."""
	return (scheduled_at - now).total_seconds() / 3600


def evaluate_reschedule(
	scheduled_at: datetime,
	now: datetime,
	grace_used: Optional[bool] = False,
	is_admin: bool = False,
	cutoff_hours: float = DEFAULT_CUTOFF_HOURS,
) -> ReschedulePolicyDecision:
	"""
	Decide si el cliente puede reagendar la sesión en este momento.

	Args:
		scheduled_at: inicio de la sesión
		now: instante actual
		grace_used: si el cliente ya usó su cancelación de gracia (None = no)
		is_admin: admin ignora la política pero recibe un aviso informativo
		cutoff_hours: ventana de corte (default 3 horas, inclusiva en >=)

	Returns:
		ReschedulePolicyDecision
	"""
	hours_until = hours_between(now, scheduled_at)
	inside_cutoff = hours_until < cutoff_hours

	if is_admin:
		notice = None
		if inside_cutoff:
			notice = (
				f"Admin override: Rescheduling allowed despite being within "
				f"{cutoff_hours:g}-hour window."
			)
		return ReschedulePolicyDecision(
			allowed=True,
			hours_until=hours_until,
			state=RescheduleState.ELIGIBLE,
			notice=notice,
		)

	if not inside_cutoff:
		return ReschedulePolicyDecision(
			allowed=True,
			hours_until=hours_until,
			state=RescheduleState.ELIGIBLE,
		)

	if grace_used:
		return ReschedulePolicyDecision(
			allowed=False,
			hours_until=hours_until,
			state=RescheduleState.BLOCKED_GRACE_USED,
			reason=(
				f"You have already used your one-time grace cancellation. Rescheduling is "
				f"not allowed within {cutoff_hours:g} hours of the session."
			),
		)

	return ReschedulePolicyDecision(
		allowed=False,
		hours_until=hours_until,
		state=RescheduleState.BLOCKED_STANDARD,
		reason=(
			f"Rescheduling is only allowed up to {cutoff_hours:g} hours before the session. "
			f"You can use your one-time grace cancellation for emergencies."
		),
	)


def has_used_grace_cancellation(records: Optional[Iterable[Mapping[str, Any]]]) -> bool:
	"""
	True si algún registro (crédito o sesión del cliente) tiene
	grace_cancellation_used activo. Sin datos -> False.
	"""
	for record in records or []:
		if record and record.get("grace_cancellation_used") is True:
			return True
	return False


# ===== CANCELLATION TIERS =====


class CancellationType(str, Enum):
	GRACE = "grace"
	STANDARD = "standard"
	LATE = "late"
	LAST_MINUTE = "last_minute"


@dataclass(frozen=True)
class CancellationPolicy:
	standard_cancellation_hours: float = 12.0
	late_cancellation_hours: float = 5.0
	grace_cancellations_allowed: int = 1


@dataclass(frozen=True)
class CancellationDecision:
	cancellation_type: CancellationType
	hours_before: float

	@property
	def uses_grace(self) -> bool:
		return self.cancellation_type == CancellationType.GRACE


def classify_cancellation(
	scheduled_at: datetime,
	now: datetime,
	policy: Optional[CancellationPolicy] = None,
	grace_used: Optional[bool] = False,
	use_grace: bool = False,
) -> CancellationDecision:
	"""
	Clasifica una cancelación según la anticipación.

	Orden:
		1. grace: pedida, no usada antes y permitida por la política
		2. standard: hours_before >= standard_cancellation_hours
		3. late: hours_before >= late_cancellation_hours
		4. last_minute: el resto
	"""
	policy = policy or CancellationPolicy()
	hours_before = hours_between(now, scheduled_at)

	has_grace_available = not grace_used and policy.grace_cancellations_allowed > 0

	if use_grace and has_grace_available:
		cancellation_type = CancellationType.GRACE
	elif hours_before >= policy.standard_cancellation_hours:
		cancellation_type = CancellationType.STANDARD
	elif hours_before >= policy.late_cancellation_hours:
		cancellation_type = CancellationType.LATE
	else:
		cancellation_type = CancellationType.LAST_MINUTE

	return CancellationDecision(cancellation_type=cancellation_type, hours_before=hours_before)


# ===== JOIN WINDOW =====


@dataclass(frozen=True)
class JoinStatus:
	can_join: bool
	minutes_until_join: Optional[int] = None
	time_until_join: Optional[str] = None


def format_time_remaining(remaining: timedelta) -> str:
	"""
	Countdown HH:MM:SS con sufijo según magnitud.

	>>> format_time_remaining(timedelta(hours=1, minutes=2, seconds=3))
	'01:02:03 Hr'
	"""
	total_seconds = max(0, int(remaining.total_seconds()))
	hours, rest = divmod(total_seconds, 3600)
	minutes, seconds = divmod(rest, 60)

	if hours > 0:
		return f"{hours:02d}:{minutes:02d}:{seconds:02d} Hr"
	if minutes > 0:
		return f"00:{minutes:02d}:{seconds:02d} Min"
	return f"00:00:{seconds:02d} Sec"


def get_join_status(
	scheduled_at: datetime,
	duration_minutes: int,
	now: datetime,
	lead_minutes: int = 15,
) -> JoinStatus:
	"""
	Ventana para entrar a la sesión: desde lead_minutes antes hasta el final.
	"""
	opens_at = add_minutes(scheduled_at, -lead_minutes)
	ends_at = add_minutes(scheduled_at, duration_minutes)

	if opens_at <= now <= ends_at:
		return JoinStatus(can_join=True)

	if now < opens_at:
		remaining = opens_at - now
		return JoinStatus(
			can_join=False,
			minutes_until_join=math.ceil(remaining.total_seconds() / 60),
			time_until_join=format_time_remaining(remaining),
		)

	# Sesión terminada
	return JoinStatus(can_join=False)
