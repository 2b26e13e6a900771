"""
Plan Validation

Guards that run before any slot generation or write:
- Plan creation payloads (title, timezone, ranges, granularity, ceiling)
- Recurrence specs edited by the host
- Availability upsert batches (size ceiling, foreign slot keys)

Every check fails fast: the first violation is a terminal rejection.
"""

from typing import Any, Collection, Dict, List, Tuple

from .constants import (
	ALL_WORKING_DAYS,
	ALLOWED_SLOT_MINUTES,
	FOREIGN_KEY_SAMPLE_SIZE,
	MAX_PLAN_SLOTS,
	MAX_UPSERT_BATCH,
)
from .errors import (
	ForeignSlotKeyError,
	InvalidSpecificationError,
	OversizedBatchError,
	RunawaySpecificationError,
)
from .recurrence import RecurrenceSpec, pick
from .slot_keys import get_timezone
from .slots import count_slots


def validate_plan(payload: Dict[str, Any], max_slots: int = MAX_PLAN_SLOTS) -> RecurrenceSpec:
	"""
	Valida un payload de creación de plan y construye su RecurrenceSpec.

	Args:
		payload: dict del request (snake_case o camelCase)
		max_slots: techo de slots generados

	Returns:
		RecurrenceSpec validado

	Raises:
		InvalidSpecificationError: campo faltante o inválido
		RunawaySpecificationError: el plan genera demasiados slots

	Orden:
		1. title
		2. timezone
		3. rango de fechas
		4. ventana horaria
		5. granularidad
		6. working days
		7. cantidad de slots
	"""
	_validate_title(pick(payload, "title"))

	if not pick(payload, "timezone"):
		raise InvalidSpecificationError("timezone", "Timezone is required")

	if not pick(payload, "start_date") or not pick(payload, "end_date"):
		raise InvalidSpecificationError("start_date", "Date range is required")

	if not pick(payload, "day_start_time") or not pick(payload, "day_end_time"):
		raise InvalidSpecificationError("day_start_time", "Day time window is required")

	spec = RecurrenceSpec.from_dict(payload, default_working_days=ALL_WORKING_DAYS)
	validate_spec(spec, max_slots=max_slots)

	return spec


def validate_spec(spec: RecurrenceSpec, max_slots: int = MAX_PLAN_SLOTS) -> RecurrenceSpec:
	"""
	Valida las reglas de negocio de un RecurrenceSpec ya construido.

	Se usa también cuando el host edita un plan existente.
	"""
	get_timezone(spec.timezone)

	if spec.start_date > spec.end_date:
		raise InvalidSpecificationError("end_date", "Start date must be before or equal to end date")

	if spec.day_start_minutes >= spec.day_end_minutes:
		raise InvalidSpecificationError("day_end_time", "Day start time must be before end time")

	if spec.slot_minutes not in ALLOWED_SLOT_MINUTES:
		raise InvalidSpecificationError("slot_minutes", "Slot granularity must be 15, 30, or 60 minutes")

	if not spec.working_days:
		raise InvalidSpecificationError("working_days", "At least one working day is required")

	if any(day not in ALL_WORKING_DAYS for day in spec.working_days):
		raise InvalidSpecificationError("working_days", "Working days must be weekday indices from 0 to 6")

	_validate_slot_count(spec, max_slots)

	return spec


def validate_title(title: Any) -> str:
	"""Valida y normaliza el título de un plan."""
	_validate_title(title)
	return str(title).strip()


def validate_availability_batch(
	entries: Any,
	valid_keys: Collection[str],
	max_batch: int = MAX_UPSERT_BATCH
) -> List[Tuple[str, bool]]:
	"""
	Valida un batch de upsert de disponibilidad contra los slots actuales.

	Args:
		entries: lista de {"slotKey": str, "available": bool}; available es obligatorio
		valid_keys: slot keys que el plan genera actualmente
		max_batch: techo de facts por request

	Returns:
		list[(slot_key, available)]: si un key aparece repetido gana la
		última ocurrencia

	Raises:
		InvalidSpecificationError: batch vacío o entradas mal formadas
		OversizedBatchError: más facts que el techo (antes de cualquier otra validación)
		ForeignSlotKeyError: algún key no pertenece al plan; se rechaza el batch completo
	"""
	if not isinstance(entries, (list, tuple)) or len(entries) == 0:
		raise InvalidSpecificationError("slots", "slots array is required and must not be empty")

	if len(entries) > max_batch:
		raise OversizedBatchError(len(entries), max_batch)

	facts: Dict[str, bool] = {}
	foreign: Dict[str, None] = {}

	for idx, entry in enumerate(entries, 1):
		if not isinstance(entry, dict):
			raise InvalidSpecificationError("slots", f"Entry {idx}: expected an object with slotKey and available")

		slot_key = entry.get("slotKey", entry.get("slot_key"))
		if not isinstance(slot_key, str) or not slot_key:
			raise InvalidSpecificationError("slots", f"Entry {idx}: slotKey is required")

		if slot_key not in valid_keys:
			foreign[slot_key] = None
			continue

		# Reinsertar para que el orden refleje la última escritura
		facts.pop(slot_key, None)
		facts[slot_key] = _parse_available(entry.get("available"), idx)

	if foreign:
		raise ForeignSlotKeyError(foreign, sample_size=FOREIGN_KEY_SAMPLE_SIZE)

	return list(facts.items())


def _parse_available(value: Any, idx: int) -> bool:
	"""Solo booleanos; "true"/"false" se aceptan para form data."""
	if isinstance(value, bool):
		return value
	if isinstance(value, str) and value.strip().lower() in ("true", "false"):
		return value.strip().lower() == "true"
	raise InvalidSpecificationError("slots", f"Entry {idx}: available must be a boolean")


def _validate_title(title: Any) -> None:
	if not title or not str(title).strip():
		raise InvalidSpecificationError("title", "Title is required")


def _validate_slot_count(spec: RecurrenceSpec, max_slots: int) -> None:
	"""Guarda contra planes desmedidos; cuenta como máximo max_slots + 1."""
	try:
		slot_count = count_slots(spec, limit=max_slots)
	except OverflowError:
		raise InvalidSpecificationError("end_date", "Date range is out of bounds")

	if slot_count > max_slots:
		raise RunawaySpecificationError(slot_count, max_slots)
