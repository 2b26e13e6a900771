"""
Scheduling Errors

Exception taxonomy raised by the scheduling core. The API layer maps
each class onto the matching Frappe exception.
"""

from typing import Iterable, Optional


class SchedulingError(Exception):
	"""Base de todos los errores del core de scheduling."""
	pass


class InvalidSpecificationError(SchedulingError):
	"""Un campo de la recurrencia falta o es inválido."""

	def __init__(self, field: str, message: str):
		super().__init__(message)
		self.field = field
		self.message = message


class RunawaySpecificationError(SchedulingError):
	"""La recurrencia genera más slots que el techo permitido."""

	def __init__(self, slot_count: int, ceiling: int):
		self.slot_count = slot_count
		self.ceiling = ceiling
		super().__init__(
			f"Plan generates too many slots (max {ceiling:,}). "
			"Reduce the date range or increase slot granularity."
		)


class OversizedBatchError(SchedulingError):
	"""Un upsert de disponibilidad excede el máximo por request."""

	def __init__(self, size: int, ceiling: int):
		self.size = size
		self.ceiling = ceiling
		super().__init__(f"Too many slots in a single request (max {ceiling:,})")


class ForeignSlotKeyError(SchedulingError):
	"""El batch referencia slot keys que el plan no genera."""

	def __init__(self, keys: Iterable[str], sample_size: int = 3):
		self.keys = list(keys)
		sample = ", ".join(self.keys[:sample_size])
		super().__init__(f"Invalid slot keys provided: {sample}")


class InvalidSlotKeyError(SchedulingError, ValueError):
	"""Slot key con formato inválido."""
	pass


class PlanNotFoundError(SchedulingError):
	def __init__(self, plan_id: str):
		self.plan_id = plan_id
		super().__init__("Plan not found")


class AuthenticationRequiredError(SchedulingError):
	def __init__(self, message: Optional[str] = None):
		super().__init__(message or "Missing authorization token")


class AccessDeniedError(SchedulingError):
	def __init__(self, message: Optional[str] = None):
		super().__init__(message or "Invalid token")


class ParticipantLimitError(SchedulingError):
	def __init__(self, limit: int):
		self.limit = limit
		super().__init__("This plan has reached its participant limit")
