"""
Recurrence Specification

Strongly-typed value object for the host-defined recurrence rule, plus the
boundary parsers that turn loosely-typed request/DB values (strings, JSON
arrays, stringified booleans) into it. The rest of the core only works with
a built RecurrenceSpec.
"""

import json
import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from .constants import DATE_FORMAT
from .errors import InvalidSpecificationError

TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# snake_case -> camelCase (formato del wire)
FIELD_ALIASES = {
	"title": "title",
	"description": "description",
	"timezone": "timezone",
	"start_date": "startDate",
	"end_date": "endDate",
	"day_start_time": "dayStartTime",
	"day_end_time": "dayEndTime",
	"slot_minutes": "slotMinutes",
	"working_days": "workingDays",
	"max_participants": "maxParticipants",
	"hide_participants": "hideParticipants",
	"created_by_external_id": "createdByExternalId",
}


def pick(data: Dict[str, Any], field: str, default: Any = None) -> Any:
	"""Lee un campo aceptando snake_case o camelCase."""
	if field in data:
		return data[field]
	alias = FIELD_ALIASES.get(field)
	if alias and alias in data:
		return data[alias]
	return default


def has_field(data: Dict[str, Any], field: str) -> bool:
	return field in data or FIELD_ALIASES.get(field, field) in data


def parse_date(value: Any, field: str) -> date:
	"""
	Convierte "YYYY-MM-DD" (o date) a date.

	Raises:
		InvalidSpecificationError: si falta o el formato es inválido
	"""
	if isinstance(value, datetime):
		return value.date()
	if isinstance(value, date):
		return value
	if not value:
		raise InvalidSpecificationError(field, f"{field} is required")

	value = str(value).strip()
	if not DATE_RE.match(value):
		raise InvalidSpecificationError(field, f"Invalid {field} format. Use YYYY-MM-DD")

	try:
		return datetime.strptime(value, DATE_FORMAT).date()
	except ValueError:
		raise InvalidSpecificationError(field, f"Invalid {field}: {value}")


def parse_time(value: Any, field: str) -> str:
	"""
	Normaliza una hora de pared a "HH:MM" (24h).

	Acepta "9:00", "09:00" y "09:00:00" (formato de MariaDB).
	"""
	if not value:
		raise InvalidSpecificationError(field, f"{field} is required")

	match = TIME_RE.match(str(value).strip())
	if not match:
		raise InvalidSpecificationError(field, f"Invalid {field} format. Use HH:MM")

	hours, minutes = int(match.group(1)), int(match.group(2))
	if hours > 23 or minutes > 59:
		raise InvalidSpecificationError(field, f"Invalid {field}: {value}")

	return f"{hours:02d}:{minutes:02d}"


def parse_int(value: Any, field: str) -> int:
	if isinstance(value, bool):
		raise InvalidSpecificationError(field, f"{field} must be an integer")
	try:
		return int(str(value).strip())
	except (TypeError, ValueError):
		raise InvalidSpecificationError(field, f"{field} must be an integer")


def parse_working_days(value: Any) -> Tuple[int, ...]:
	"""
	Convierte working days a una tupla ordenada y sin duplicados.

	Acepta una lista de ints o el JSON string con que se persiste
	("[1,2,3,4,5]").
	"""
	if isinstance(value, str):
		try:
			value = json.loads(value)
		except ValueError:
			raise InvalidSpecificationError("working_days", "Working days must be a JSON array of weekday indices")

	if not isinstance(value, (list, tuple, set, frozenset)):
		raise InvalidSpecificationError("working_days", "Working days must be a list of weekday indices")

	days = set()
	for item in value:
		day = parse_int(item, "working_days")
		if day < 0 or day > 6:
			raise InvalidSpecificationError(
				"working_days", f"Invalid weekday {day}. Use 0 (Sunday) to 6 (Saturday)"
			)
		days.add(day)

	return tuple(sorted(days))


def parse_bool(value: Any) -> bool:
	"""Interpreta booleanos stringificados ("true", "1", "0", ...)."""
	if isinstance(value, str):
		return value.strip().lower() in ("1", "true", "yes", "on")
	return bool(value)


def time_to_minutes(value: str) -> int:
	hours, minutes = value.split(":")
	return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
	return f"{total // 60:02d}:{total % 60:02d}"


@dataclass(frozen=True)
class RecurrenceSpec:
	"""
	Regla de recurrencia de un plan.

	Todos los campos de hora se interpretan en `timezone`.
	"""

	start_date: date
	end_date: date
	timezone: str
	day_start_time: str
	day_end_time: str
	slot_minutes: int
	working_days: Tuple[int, ...]

	@classmethod
	def from_dict(cls, data: Dict[str, Any], default_working_days: Optional[Iterable[int]] = None) -> "RecurrenceSpec":
		"""
		Construye el spec desde un dict de request o una fila de DB.

		Solo valida tipos y formatos; las reglas de negocio (orden de
		fechas, granularidad, techo de slots) viven en validation.py.
		"""
		working_days = pick(data, "working_days")
		if working_days is None and default_working_days is not None:
			working_days = list(default_working_days)

		timezone = pick(data, "timezone")
		if not timezone:
			raise InvalidSpecificationError("timezone", "Timezone is required")

		return cls(
			start_date=parse_date(pick(data, "start_date"), "start_date"),
			end_date=parse_date(pick(data, "end_date"), "end_date"),
			timezone=str(timezone).strip(),
			day_start_time=parse_time(pick(data, "day_start_time"), "day_start_time"),
			day_end_time=parse_time(pick(data, "day_end_time"), "day_end_time"),
			slot_minutes=parse_int(pick(data, "slot_minutes"), "slot_minutes"),
			working_days=parse_working_days(working_days if working_days is not None else []),
		)

	@property
	def day_start_minutes(self) -> int:
		return time_to_minutes(self.day_start_time)

	@property
	def day_end_minutes(self) -> int:
		return time_to_minutes(self.day_end_time)

	def with_changes(self, **changes: Any) -> "RecurrenceSpec":
		return replace(self, **changes)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"startDate": self.start_date.strftime(DATE_FORMAT),
			"endDate": self.end_date.strftime(DATE_FORMAT),
			"timezone": self.timezone,
			"dayStartTime": self.day_start_time,
			"dayEndTime": self.day_end_time,
			"slotMinutes": self.slot_minutes,
			"workingDays": list(self.working_days),
		}
