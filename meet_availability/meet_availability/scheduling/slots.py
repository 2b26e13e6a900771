"""
Slot Generation Service

Generates the ordered set of canonical slots for a recurrence spec:
- Every calendar day in the plan range
- Only working days (weekday computed in the plan calendar)
- One slot every slot_minutes inside the daily window
- Keys converted to UTC through the slot key codec
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterator, List, Optional

from .recurrence import RecurrenceSpec, minutes_to_time
from .slot_keys import day_of_week, get_timezone, local_to_slot_key, slot_key_to_local


@dataclass(frozen=True)
class Slot:
	slot_key: str
	local_date: str
	local_time: str
	day_of_week: int

	def as_dict(self) -> Dict[str, Any]:
		return {
			"slotKey": self.slot_key,
			"localDate": self.local_date,
			"localTime": self.local_time,
			"dayOfWeek": self.day_of_week,
		}


def iter_working_days(spec: RecurrenceSpec) -> Iterator[date]:
	"""Días del rango [start_date, end_date] cuyo weekday está en working_days."""
	if spec.start_date > spec.end_date:
		return

	working_days = set(spec.working_days)
	current = spec.start_date

	while True:
		if day_of_week(current) in working_days:
			yield current
		# No avanzar más allá de end_date (puede ser date.max)
		if current >= spec.end_date:
			break
		current += timedelta(days=1)


def iter_day_times(spec: RecurrenceSpec) -> Iterator[str]:
	"""
	Horas locales "HH:MM" de un día, desde day_start_time mientras sean
	estrictamente menores que day_end_time.
	"""
	current = spec.day_start_minutes
	end = spec.day_end_minutes

	while current < end:
		yield minutes_to_time(current)
		current += spec.slot_minutes


def iter_slots(spec: RecurrenceSpec) -> Iterator[Slot]:
	"""
	Itera los slots del plan en orden de generación local.

	Algoritmo:
		1. Enumerar días del rango que sean working days
		2. Para cada día, generar horas cada slot_minutes
		3. Convertir (fecha local, hora local) a slot key UTC
		4. Etiquetar el slot con la hora local real del key: una hora
		   inexistente (gap de DST) toma la hora de pared del instante
		   al que se resolvió
		5. Omitir un slot cuyo key ya fue emitido: dentro de un gap la
		   hora inexistente cae en el mismo instante que una hora real
		   posterior, y el key debe ser único dentro del plan
	"""
	tz = get_timezone(spec.timezone)
	day_times = list(iter_day_times(spec))
	seen = set()

	for day in iter_working_days(spec):
		for local_time in day_times:
			slot_key = local_to_slot_key(day, local_time, tz)
			if slot_key in seen:
				continue
			seen.add(slot_key)

			local = slot_key_to_local(slot_key, tz)
			yield Slot(
				slot_key=slot_key,
				local_date=local.local_date,
				local_time=local.local_time,
				day_of_week=local.day_of_week,
			)


def generate_slots(spec: RecurrenceSpec) -> List[Slot]:
	"""
	Genera todos los slots válidos de un plan.

	Args:
		spec: RecurrenceSpec ya validado

	Returns:
		list[Slot]: ordenados por día local y luego por hora local
		(no se reordenan por slot_key)
	"""
	return list(iter_slots(spec))


def count_slots(spec: RecurrenceSpec, limit: Optional[int] = None) -> int:
	"""
	Cuenta los slots sin materializar la lista.

	Args:
		spec: RecurrenceSpec
		limit: si se indica, deja de contar apenas el conteo supera `limit`
			(el resultado es entonces limit + 1)

	Returns:
		int: cantidad de slots
	"""
	count = 0
	for _ in iter_slots(spec):
		count += 1
		if limit is not None and count > limit:
			break
	return count


def get_slot_keys(spec: RecurrenceSpec) -> List[str]:
	"""Slot keys del plan, en orden de generación."""
	return [slot.slot_key for slot in iter_slots(spec)]
