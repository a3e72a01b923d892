"""
Scheduling Store Factory

Factory pattern to get the correct store based on backend name.
"""

from .base import SchedulingStore


def get_store(backend: str, **kwargs) -> SchedulingStore:
	"""
	Factory para obtener el store correcto según backend.

	Args:
		backend: "memory"
		**kwargs: argumentos del constructor del store

	Returns:
		SchedulingStore: instancia del store

	Raises:
		ValueError: si backend no es soportado
	"""
	if backend == "memory":
		from .memory import InMemoryStore
		return InMemoryStore(**kwargs)
	else:
		raise ValueError(f"Unsupported store backend: {backend}")
