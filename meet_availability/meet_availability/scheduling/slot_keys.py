"""
Slot Key Codec

Single source of truth for the canonical slot key format:
"YYYY-MM-DDTHH:MM", always UTC, minute precision, no offset suffix.

Both directions live here:
- local (date, time) in a plan timezone -> slot key (used by the generator)
- slot key -> local (date, time, weekday) in any timezone (used for display)

DST policy: a wall-clock time that falls inside a spring-forward gap or a
fall-back overlap is resolved with the UTC offset in effect before the
transition.
"""

import re
from datetime import date, datetime, timedelta
from typing import NamedTuple, Union

import pytz

from .constants import DATE_FORMAT, SLOT_KEY_FORMAT, TIME_FORMAT
from .errors import InvalidSlotKeyError, InvalidSpecificationError

SLOT_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}$")

TimezoneLike = Union[str, pytz.BaseTzInfo]


class LocalSlot(NamedTuple):
	local_date: str
	local_time: str
	day_of_week: int


def get_timezone(timezone: TimezoneLike) -> pytz.BaseTzInfo:
	"""
	Resuelve un identificador IANA a un objeto pytz.

	Args:
		timezone: nombre IANA ("America/Bogota") o tzinfo de pytz

	Returns:
		pytz tzinfo

	Raises:
		InvalidSpecificationError: si el timezone falta o no existe
	"""
	if isinstance(timezone, pytz.BaseTzInfo):
		return timezone

	if not timezone:
		raise InvalidSpecificationError("timezone", "Timezone is required")

	try:
		return pytz.timezone(str(timezone).strip())
	except pytz.exceptions.UnknownTimeZoneError:
		raise InvalidSpecificationError("timezone", f"Unknown timezone '{timezone}'")


def day_of_week(value: date) -> int:
	"""Día de la semana con 0 = Domingo."""
	return value.isoweekday() % 7


def is_slot_key(value) -> bool:
	return isinstance(value, str) and bool(SLOT_KEY_RE.match(value))


def format_slot_key(value: datetime) -> str:
	"""
	Formatea un datetime aware como slot key UTC.

	Los segundos se descartan.
	"""
	if value.tzinfo is None:
		raise InvalidSlotKeyError("Cannot build a slot key from a naive datetime")
	return value.astimezone(pytz.utc).strftime(SLOT_KEY_FORMAT)


def parse_slot_key(slot_key: str) -> datetime:
	"""
	Convierte un slot key a datetime UTC.

	El sufijo "Z" se agrega explícitamente para no depender del
	comportamiento por defecto del parser.
	"""
	if not is_slot_key(slot_key):
		raise InvalidSlotKeyError(f"Invalid slot key '{slot_key}'. Use YYYY-MM-DDTHH:MM")

	try:
		return datetime.strptime(slot_key + "Z", SLOT_KEY_FORMAT + "%z")
	except ValueError:
		raise InvalidSlotKeyError(f"Invalid slot key '{slot_key}'")


def localize(naive: datetime, tz: pytz.BaseTzInfo) -> datetime:
	"""
	Localiza un datetime naive aplicando la política DST.

	Casos:
		- Hora normal: única interpretación posible
		- Overlap (fall-back): se usa la primera ocurrencia, es decir el
		  offset previo a la transición (el mayor de los dos)
		- Gap (spring-forward): se usa el offset previo al salto (el menor)
	"""
	try:
		return tz.localize(naive, is_dst=None)
	except pytz.exceptions.AmbiguousTimeError:
		candidates = [tz.localize(naive, is_dst=flag) for flag in (True, False)]
		return max(candidates, key=lambda dt: dt.utcoffset())
	except pytz.exceptions.NonExistentTimeError:
		candidates = [tz.localize(naive, is_dst=flag) for flag in (True, False)]
		return min(candidates, key=lambda dt: dt.utcoffset())


def local_to_slot_key(
	local_date: Union[date, str],
	local_time: str,
	timezone: TimezoneLike
) -> str:
	"""
	Convierte (fecha local, hora local) en el timezone del plan a slot key.

	Args:
		local_date: fecha local (date o "YYYY-MM-DD")
		local_time: hora local "HH:MM"
		timezone: nombre IANA o tzinfo de pytz

	Returns:
		str: slot key UTC "YYYY-MM-DDTHH:MM"
	"""
	tz = get_timezone(timezone)
	if isinstance(local_date, str):
		local_date = datetime.strptime(local_date, DATE_FORMAT).date()

	hours, minutes = (int(part) for part in local_time.split(":"))
	naive = datetime.combine(local_date, datetime.min.time()) + timedelta(hours=hours, minutes=minutes)

	return format_slot_key(localize(naive, tz))


def slot_key_to_local(slot_key: str, timezone: TimezoneLike) -> LocalSlot:
	"""
	Representa un slot key en el timezone indicado.

	Returns:
		LocalSlot(local_date="YYYY-MM-DD", local_time="HH:MM", day_of_week=0..6)
	"""
	tz = get_timezone(timezone)
	local = parse_slot_key(slot_key).astimezone(tz)

	return LocalSlot(
		local_date=local.strftime(DATE_FORMAT),
		local_time=local.strftime(TIME_FORMAT),
		day_of_week=day_of_week(local.date()),
	)
