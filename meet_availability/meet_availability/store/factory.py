"""
Availability Store Factory

Factory pattern to build the store a caller injects into PlanService.
"""

from .base import AvailabilityStore

DEFAULT_BACKEND = "frappe"


def get_store(backend: str = DEFAULT_BACKEND) -> AvailabilityStore:
	"""
	Factory para obtener el store según backend.

	Args:
		backend: "frappe" (base de datos del site) o "memory" (proceso local)

	Returns:
		AvailabilityStore: instancia nueva; el ciclo de vida lo maneja el caller

	Raises:
		ValueError: si backend no es soportado
	"""
	if backend == "frappe":
		from .frappe_store import FrappeStore
		return FrappeStore()
	elif backend == "memory":
		from .memory import InMemoryStore
		return InMemoryStore()
	else:
		raise ValueError(f"Unsupported store backend: {backend}")
