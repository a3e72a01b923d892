"""
Booking API

Service functions used by the booking and reschedule UI. Each one:
- validates caller input
- reads windows / bookings / grace flags through a SchedulingStore
- runs the scheduling core with an explicit "now"
- for writes, re-validates the slot and the reschedule policy right before
  persisting (the store then enforces exclusion atomically)
"""

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

import pytz

from session_scheduling.api.shared.validators import (
    validate_date_string,
    validate_datetime_string,
    validate_duration,
    validate_flow,
)
from session_scheduling.config import SchedulingSettings, load_settings
from session_scheduling.exceptions import (
    RescheduleNotAllowedError,
    SlotUnavailableError,
    ValidationError,
)
from session_scheduling.logger import get_logger
from session_scheduling.session_scheduling.doctype.session_booking.session_booking import (
    Booking,
    BookingStatus,
    parse_bookings,
)
from session_scheduling.session_scheduling.scheduling.availability import get_availability_for_day
from session_scheduling.session_scheduling.scheduling.overlap import SlotReason, check_requested_slot
from session_scheduling.session_scheduling.scheduling.policy import (
    CancellationDecision,
    CancellationPolicy,
    JoinStatus,
    ReschedulePolicyDecision,
    classify_cancellation,
    evaluate_reschedule,
    get_join_status,
    has_used_grace_cancellation,
)
from session_scheduling.session_scheduling.scheduling.slots import generate_slots
from session_scheduling.session_scheduling.stores.base import SchedulingStore
from session_scheduling.utils.dates import add_minutes, get_datetime, getdate

logger = get_logger(__name__)

_settings: Optional[SchedulingSettings] = None


def get_settings() -> SchedulingSettings:
    """Settings cargados una vez desde el entorno."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_available_slots(
    store: SchedulingStore,
    practitioner_id: str,
    target_date: Union[date, str],
    duration_minutes: int,
    now: datetime,
    flow: str = "booking",
    is_group: bool = False,
    exclude_booking: Optional[str] = None,
    only_available: Optional[bool] = None,
    settings: Optional[SchedulingSettings] = None,
) -> List[Dict[str, Any]]:
    """
    Obtiene slots para un practitioner en una fecha.

    Args:
        store: store de disponibilidad y bookings
        practitioner_id: practitioner a consultar
        target_date: fecha (YYYY-MM-DD)
        duration_minutes: duración de la sesión pedida
        now: instante actual
        flow: "booking" (slots de 1 hora) o "reschedule" (slots de 30 minutos)
        is_group: True para unirse a una clase grupal existente
        exclude_booking: booking a ignorar (el que se reagenda)
        only_available: default True en reschedule, False en booking
        settings: default desde el entorno

    Returns:
        list[dict]: [
            {
                "start": "2026-01-19T09:00:00-05:00",
                "end": "2026-01-19T10:00:00-05:00",
                "is_available": True,
                "reason": "none"
            },
            ...
        ]
    """
    settings = settings or get_settings()
    flow = validate_flow(flow)
    duration_minutes = validate_duration(duration_minutes)
    target_date = _validate_date(target_date)
    tz = settings.tzinfo()

    if only_available is None:
        only_available = flow == "reschedule"

    windows = store.get_availability_windows(practitioner_id)
    bookings = _get_day_bookings(store, practitioner_id, target_date, tz)

    slots = generate_slots(
        windows,
        bookings,
        target_date,
        duration_minutes,
        now,
        settings.step_minutes_for(flow),
        tz=tz,
        is_group_request=is_group,
        exclude_booking=exclude_booking,
        only_available=only_available,
        must_fit=settings.slots_must_fit_window,
    )

    return [slot.to_dict() for slot in slots]


def check_reschedule_policy(
    store: SchedulingStore,
    booking: Booking,
    now: datetime,
    client_id: Optional[str] = None,
    is_admin: bool = False,
    settings: Optional[SchedulingSettings] = None,
) -> ReschedulePolicyDecision:
    """Evalúa la política de reagendamiento para un booking ya cargado."""
    settings = settings or get_settings()

    grace_used = False
    if not is_admin:
        grace_used = has_used_grace_cancellation(
            store.get_grace_records(client_id or booking.client_id)
        )

    return evaluate_reschedule(
        booking.scheduled_at,
        get_datetime(now, settings.tzinfo()),
        grace_used=grace_used,
        is_admin=is_admin,
        cutoff_hours=settings.reschedule_cutoff_hours,
    )


def get_reschedule_options(
    store: SchedulingStore,
    booking_id: str,
    target_date: Union[date, str],
    now: datetime,
    client_id: Optional[str] = None,
    is_admin: bool = False,
    settings: Optional[SchedulingSettings] = None,
) -> Dict[str, Any]:
    """
    Datos para el diálogo de reagendamiento.

    Returns:
        dict: {
            "policy": {"allowed": bool, "hours_until": float, "state": str,
                       "reason": str | None, "notice": str | None},
            "slots": [slot dicts, solo disponibles, cada 30 minutos]
        }
    """
    settings = settings or get_settings()
    booking = _load_booking(store, booking_id, settings)

    decision = check_reschedule_policy(
        store, booking, now, client_id=client_id, is_admin=is_admin, settings=settings
    )

    slots = get_available_slots(
        store,
        booking.practitioner_id,
        target_date,
        booking.duration_minutes,
        now,
        flow="reschedule",
        exclude_booking=booking.id,
        settings=settings,
    )

    return {"policy": decision.to_dict(), "slots": slots}


def book_session(
    store: SchedulingStore,
    practitioner_id: str,
    client_id: str,
    scheduled_at: Union[datetime, str],
    duration_minutes: int,
    now: datetime,
    is_group: bool = False,
    settings: Optional[SchedulingSettings] = None,
) -> Dict[str, Any]:
    """
    Reserva un horario para un cliente.

    Para pedidos grupales con una clase existente en ese inicio, el cliente
    se une a la clase (incremento atómico de cupo). En otro caso se crea un
    booking 1:1.

    Raises:
        ValidationError: input inválido, fuera de la disponibilidad o del grid de slots
        SlotUnavailableError: horario pasado, ocupado o clase llena
        DoubleBookingError: otro cliente tomó el horario al mismo tiempo
        GroupFullError: la clase se llenó al mismo tiempo
    """
    settings = settings or get_settings()
    tz = settings.tzinfo()
    duration_minutes = validate_duration(duration_minutes)
    start = _validate_datetime(scheduled_at, tz)

    bookings = _get_day_bookings(store, practitioner_id, start.date(), tz)

    result = check_requested_slot(
        start, duration_minutes, bookings, now, is_group_request=is_group, tz=tz
    )
    if not result.available:
        raise SlotUnavailableError(_unavailable_message(start, result.reason), result.reason)

    if result.joinable_group is not None:
        return join_group_session(store, result.joinable_group.id, now, settings=settings)

    _ensure_within_availability(store, practitioner_id, start, duration_minutes, tz, settings)

    record = store.create_booking({
        "practitioner_id": practitioner_id,
        "client_id": client_id,
        "scheduled_at": start.isoformat(),
        "duration_minutes": duration_minutes,
        "max_participants": 1,
        "current_participants": 1,
        "status": BookingStatus.SCHEDULED.value,
    })

    logger.info(
        "Session booked: %s (practitioner %s, client %s, %s, %s min)",
        record.get("id"), practitioner_id, client_id, start.isoformat(), duration_minutes,
    )
    return record


def join_group_session(
    store: SchedulingStore,
    booking_id: str,
    now: datetime,
    settings: Optional[SchedulingSettings] = None,
) -> Dict[str, Any]:
    """
    Une un cliente a una clase grupal existente.

    Raises:
        ValidationError: el booking no es grupal
        SlotUnavailableError: la clase ya empezó
        GroupFullError: sin cupo (chequeo atómico en el store)
    """
    settings = settings or get_settings()
    tz = settings.tzinfo()
    booking = _load_booking(store, booking_id, settings)

    if not booking.is_group:
        raise ValidationError(f"Booking {booking_id} is not a group session")

    if booking.scheduled_at <= get_datetime(now, tz):
        raise SlotUnavailableError(
            _unavailable_message(booking.scheduled_at, SlotReason.IN_THE_PAST),
            SlotReason.IN_THE_PAST,
        )

    record = store.add_participant(booking.id)

    logger.info(
        "Joined group session %s (%s/%s participants)",
        booking.id, record.get("current_participants"), record.get("max_participants"),
    )
    return record


def reschedule_session(
    store: SchedulingStore,
    booking_id: str,
    new_scheduled_at: Union[datetime, str],
    now: datetime,
    client_id: Optional[str] = None,
    is_admin: bool = False,
    settings: Optional[SchedulingSettings] = None,
) -> Dict[str, Any]:
    """
    Mueve un booking a un nuevo horario.

    La política y el horario se validan otra vez aquí aunque el diálogo ya lo
    haya hecho: la decisión del diálogo es solo informativa.

    Raises:
        RescheduleNotAllowedError: dentro de la ventana de corte
        SlotUnavailableError: horario pasado u ocupado
        ValidationError: fuera de la disponibilidad del practitioner
        DoubleBookingError: otro cliente tomó el horario al mismo tiempo
    """
    settings = settings or get_settings()
    tz = settings.tzinfo()
    booking = _load_booking(store, booking_id, settings)
    start = _validate_datetime(new_scheduled_at, tz)

    decision = check_reschedule_policy(
        store, booking, now, client_id=client_id, is_admin=is_admin, settings=settings
    )
    if not decision.allowed:
        raise RescheduleNotAllowedError(decision.reason, decision)

    bookings = _get_day_bookings(store, booking.practitioner_id, start.date(), tz)
    result = check_requested_slot(
        start, booking.duration_minutes, bookings, now, exclude_booking=booking.id, tz=tz
    )
    if not result.available:
        raise SlotUnavailableError(_unavailable_message(start, result.reason), result.reason)

    if not is_admin:
        _ensure_within_availability(
            store, booking.practitioner_id, start, booking.duration_minutes, tz, settings,
            flow="reschedule",
        )

    record = store.update_scheduled_at(booking.id, start)

    logger.info(
        "Session %s rescheduled from %s to %s%s",
        booking.id, booking.scheduled_at.isoformat(), start.isoformat(),
        " (admin override)" if decision.notice else "",
    )
    return record


def classify_session_cancellation(
    store: SchedulingStore,
    booking_id: str,
    now: datetime,
    client_id: Optional[str] = None,
    use_grace: bool = False,
    settings: Optional[SchedulingSettings] = None,
) -> CancellationDecision:
    """Clasifica la cancelación de un booking según la política vigente."""
    settings = settings or get_settings()
    booking = _load_booking(store, booking_id, settings)

    policy = CancellationPolicy(
        standard_cancellation_hours=settings.standard_cancellation_hours,
        late_cancellation_hours=settings.late_cancellation_hours,
        grace_cancellations_allowed=settings.grace_cancellations_allowed,
    )
    grace_used = has_used_grace_cancellation(
        store.get_grace_records(client_id or booking.client_id)
    )

    return classify_cancellation(
        booking.scheduled_at,
        get_datetime(now, settings.tzinfo()),
        policy,
        grace_used=grace_used,
        use_grace=use_grace,
    )


def get_session_join_status(
    store: SchedulingStore,
    booking_id: str,
    now: datetime,
    settings: Optional[SchedulingSettings] = None,
) -> JoinStatus:
    """Estado del botón "Join" para una sesión."""
    settings = settings or get_settings()
    booking = _load_booking(store, booking_id, settings)
    return get_join_status(
        booking.scheduled_at,
        booking.duration_minutes,
        get_datetime(now, settings.tzinfo()),
        lead_minutes=settings.join_lead_minutes,
    )


# ===== HELPERS =====


def _validate_date(value: Union[date, str]) -> date:
    if isinstance(value, str):
        value = validate_date_string(value, "target_date")
    return getdate(value)


def _validate_datetime(value: Union[datetime, str], tz: pytz.BaseTzInfo) -> datetime:
    if isinstance(value, str):
        value = validate_datetime_string(value, "scheduled_at")
    return get_datetime(value, tz)


def _day_bounds(target_date: date, tz: pytz.BaseTzInfo) -> Tuple[datetime, datetime]:
    start = tz.localize(datetime.combine(target_date, time.min))
    end = tz.localize(datetime.combine(target_date + timedelta(days=1), time.min))
    return start, end


def _get_day_bookings(
    store: SchedulingStore,
    practitioner_id: str,
    target_date: date,
    tz: pytz.BaseTzInfo,
) -> List[Booking]:
    start, end = _day_bounds(target_date, tz)
    records = store.get_bookings(practitioner_id, start, end)
    return parse_bookings(records, tz).bookings


def _load_booking(store: SchedulingStore, booking_id: str, settings: SchedulingSettings) -> Booking:
    return Booking.from_record(store.get_booking(booking_id), settings.tzinfo())


def _ensure_within_availability(
    store: SchedulingStore,
    practitioner_id: str,
    start: datetime,
    duration_minutes: int,
    tz: pytz.BaseTzInfo,
    settings: SchedulingSettings,
    flow: str = "booking",
) -> None:
    end = add_minutes(start, duration_minutes)
    step = timedelta(minutes=settings.step_minutes_for(flow))
    intervals = get_availability_for_day(
        store.get_availability_windows(practitioner_id), start.date(), tz
    )

    for interval in intervals:
        if not interval["start"] <= start < interval["end"]:
            continue
        if settings.slots_must_fit_window and end > interval["end"]:
            continue
        # Mismo grid que generate_slots: pasos desde el inicio del intervalo
        if (start - interval["start"]) % step:
            continue
        return

    raise ValidationError(
        f"{start.strftime('%Y-%m-%d %H:%M')} is outside the practitioner's availability "
        f"or not on the {settings.step_minutes_for(flow)}-minute slot grid"
    )


def _unavailable_message(start: datetime, reason: SlotReason) -> str:
    when = start.strftime("%Y-%m-%d %H:%M")
    if reason == SlotReason.IN_THE_PAST:
        return f"{when} is in the past"
    if reason == SlotReason.GROUP_FULL:
        return f"The group session at {when} is full"
    return f"{when} is already booked. Please pick another time."
