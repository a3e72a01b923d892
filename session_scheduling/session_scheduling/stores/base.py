"""
Base Scheduling Store

Defines the interface every persistence backend must implement. The
scheduling core only reads through it; writes come from the service layer
after a slot has been chosen.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List


class SchedulingStore(ABC):
	"""
	Interfaz base para stores de disponibilidad y bookings.

	Los registros viajan con el layout persistido:
	- availability: {"day_of_week", "start_time", "end_time", "practitioner_id"}
	- booking: {"id", "practitioner_id", "client_id", "scheduled_at" (ISO-8601),
	  "duration_minutes", "max_participants", "current_participants", "status"}

	Las escrituras deben ser atómicas: el chequeo de conflicto y la
	inserción (o el incremento de cupo) ocurren en la misma operación.
	"""

	@abstractmethod
	def get_availability_windows(self, practitioner_id: str) -> List[Dict[str, Any]]:
		"""Windows semanales del practitioner."""
		pass

	@abstractmethod
	def get_bookings(self, practitioner_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
		"""
		Bookings no cancelados del practitioner que se solapan con [start, end),
		incluidos los que empiezan antes de start.
		"""
		pass

	@abstractmethod
	def get_booking(self, booking_id: str) -> Dict[str, Any]:
		"""
		Raises:
			BookingNotFoundError: si no existe
		"""
		pass

	@abstractmethod
	def get_grace_records(self, client_id: str) -> List[Dict[str, Any]]:
		"""Registros del cliente que pueden llevar grace_cancellation_used."""
		pass

	@abstractmethod
	def create_booking(self, record: Dict[str, Any]) -> Dict[str, Any]:
		"""
		Inserta un booking nuevo.

		Raises:
			DoubleBookingError: si otro booking activo ya ocupa el intervalo
		"""
		pass

	@abstractmethod
	def add_participant(self, booking_id: str) -> Dict[str, Any]:
		"""
		Incrementa current_participants de una clase grupal.

		Raises:
			GroupFullError: si current_participants ya alcanzó max_participants
		"""
		pass

	@abstractmethod
	def update_scheduled_at(self, booking_id: str, scheduled_at: datetime) -> Dict[str, Any]:
		"""
		Mueve un booking a un nuevo horario.

		Raises:
			DoubleBookingError: si el nuevo intervalo choca con otro booking activo
		"""
		pass
