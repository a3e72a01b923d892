"""
Scheduling Exceptions

Error taxonomy for the scheduling package. The pure core (availability,
slots, overlap, policy) never raises for malformed booking data; these
errors surface at the boundaries: caller input, configuration and the
store at write time.
"""


class SchedulingError(Exception):
	"""Excepción base del paquete."""
	pass


class ValidationError(SchedulingError):
	"""Input inválido del caller (fecha mal formada, duración <= 0, etc.)."""
	pass


class InvalidBookingRecord(ValidationError):
	"""Registro de booking persistido que no se puede interpretar."""

	def __init__(self, message: str, record=None):
		super().__init__(message)
		self.record = record


class ConfigurationError(SchedulingError):
	"""Settings inválidos."""
	pass


class SlotUnavailableError(SchedulingError):
	"""
	El horario pedido no se puede reservar.

	Attributes:
		reason: SlotReason que explica el rechazo
	"""

	def __init__(self, message: str, reason=None):
		super().__init__(message)
		self.reason = reason


class RescheduleNotAllowedError(SchedulingError):
	"""Reagendamiento intentado dentro de la ventana bloqueada."""

	def __init__(self, message: str, decision=None):
		super().__init__(message)
		self.decision = decision


class StoreError(SchedulingError):
	"""Error del store de persistencia."""
	pass


class BookingNotFoundError(StoreError):
	pass


class DoubleBookingError(StoreError):
	"""Otro cliente tomó el horario entre la lectura y la escritura."""
	pass


class GroupFullError(StoreError):
	"""La clase grupal alcanzó max_participants."""
	pass
