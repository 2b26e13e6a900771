"""
Aggregation Service

Rolls per-participant availability facts up into per-slot results and the
derived views used by the results page:
- Ranking (top slots)
- Participant filter
- Heatmap intensity
- Grouping by local date
- Privacy-aware participant listing
"""

from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Any, Collection, Dict, Iterable, List, Sequence

from .constants import DEFAULT_TOP_SLOTS
from .slots import Slot


@dataclass(frozen=True)
class SlotResult:
	slot_key: str
	local_date: str
	local_time: str
	available_count: int
	available_participant_ids: tuple

	def as_dict(self) -> Dict[str, Any]:
		return {
			"slotKey": self.slot_key,
			"localDate": self.local_date,
			"localTime": self.local_time,
			"availableCount": self.available_count,
			"availableParticipantIds": list(self.available_participant_ids),
		}


def aggregate(plan_slots: Sequence[Slot], facts: Iterable[Any]) -> List[SlotResult]:
	"""
	Combina los slots del plan con los facts de disponibilidad.

	Args:
		plan_slots: slots generados del plan (orden de generación)
		facts: iterable de objetos con participant_id, slot_key y available

	Returns:
		list[SlotResult]: exactamente un resultado por slot del plan, en el
		mismo orden, incluyendo slots sin respuestas

	Algoritmo:
		1. Mapear slot_key -> participantes con available=True
		   (dict como set ordenado por primera aparición)
		2. Ignorar facts con available=False y facts de keys que el plan
		   ya no genera (quedan huérfanos tras un cambio de granularidad)
		3. Emitir un SlotResult por cada slot del plan
	"""
	valid_keys = {slot.slot_key for slot in plan_slots}
	slot_map: Dict[str, Dict[str, None]] = {}

	for fact in facts:
		if not fact.available or fact.slot_key not in valid_keys:
			continue
		slot_map.setdefault(fact.slot_key, {})[fact.participant_id] = None

	results = []
	for slot in plan_slots:
		participant_ids = tuple(slot_map.get(slot.slot_key, ()))
		results.append(SlotResult(
			slot_key=slot.slot_key,
			local_date=slot.local_date,
			local_time=slot.local_time,
			available_count=len(participant_ids),
			available_participant_ids=participant_ids,
		))

	return results


def get_top_slots(results: Iterable[SlotResult], n: int = DEFAULT_TOP_SLOTS) -> List[SlotResult]:
	"""
	Top N slots por cantidad de disponibles.

	Solo slots con available_count > 0. Desempate: slot_key ascendente
	(el instante UTC más temprano gana).
	"""
	ranked = sorted(
		(result for result in results if result.available_count > 0),
		key=lambda result: (-result.available_count, result.slot_key)
	)
	return ranked[:max(n, 0)]


def filter_slot_results(results: Sequence[SlotResult], selected_ids: Collection[str]) -> List[SlotResult]:
	"""
	Recalcula los resultados contando solo a los participantes seleccionados.

	Una selección vacía significa "sin filtro" (identidad), no "nadie".
	"""
	if not selected_ids:
		return list(results)

	selected = set(selected_ids)
	filtered = []
	for result in results:
		participant_ids = tuple(pid for pid in result.available_participant_ids if pid in selected)
		filtered.append(replace(
			result,
			available_count=len(participant_ids),
			available_participant_ids=participant_ids,
		))

	return filtered


def slot_intensity(result: SlotResult, total_participants: int) -> float:
	"""Intensidad de heatmap (0.0 - 1.0); 0 si no hay participantes."""
	if total_participants <= 0:
		return 0.0
	return result.available_count / total_participants


def group_by_date(results: Iterable[SlotResult]) -> "OrderedDict[str, List[SlotResult]]":
	"""Agrupa por local_date preservando el orden relativo de cada grupo."""
	grouped: "OrderedDict[str, List[SlotResult]]" = OrderedDict()
	for result in results:
		grouped.setdefault(result.local_date, []).append(result)
	return grouped


def find_orphaned_facts(plan_slots: Sequence[Slot], facts: Iterable[Any]) -> List[Any]:
	"""Facts cuyo slot_key ya no pertenece al set generado del plan."""
	valid_keys = {slot.slot_key for slot in plan_slots}
	return [fact for fact in facts if fact.slot_key not in valid_keys]


def mask_participants(participants: Iterable[Any], hide: bool) -> List[Dict[str, Any]]:
	"""
	Listado de participantes para respuestas externas.

	Con privacy mode (`hide`) el display name se reemplaza por "" y el
	external user id por None. Los ids se conservan: son los mismos que
	aparecen en availableParticipantIds.
	"""
	return [
		{
			"id": participant.id,
			"displayName": "" if hide else participant.display_name,
			"externalUserId": None if hide else participant.external_user_id,
		}
		for participant in participants
	]
