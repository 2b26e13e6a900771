"""
Base Availability Store

Defines the interface the scheduling core needs from persistence, plus the
records that cross it. Implementations own uniqueness constraints, per-fact
atomic upserts and cascade deletes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

from meet_availability.meet_availability.scheduling.recurrence import RecurrenceSpec


class AvailabilityFact(NamedTuple):
	participant_id: str
	slot_key: str
	available: bool


@dataclass(frozen=True)
class PlanRecord:
	id: str
	title: str
	spec: RecurrenceSpec
	host_token: str
	created_at: int
	description: Optional[str] = None
	max_participants: Optional[int] = None
	hide_participants: bool = False
	created_by_external_id: Optional[str] = None

	def as_dict(self) -> Dict[str, Any]:
		"""Representación pública; nunca incluye host_token."""
		data = {
			"id": self.id,
			"title": self.title,
			"description": self.description,
			"maxParticipants": self.max_participants,
			"hideParticipants": self.hide_participants,
			"createdAt": self.created_at,
		}
		data.update(self.spec.to_dict())
		return data


@dataclass(frozen=True)
class ParticipantRecord:
	id: str
	plan_id: str
	display_name: str
	token: str
	created_at: int
	external_user_id: Optional[str] = None


class AvailabilityStore(ABC):
	"""
	Interfaz base para stores de planes, participantes y disponibilidad.

	Contrato:
	- upsert_availability es atómico por fact (participant, slot_key);
	  un batch que falla a mitad puede dejar aplicado el subconjunto ya
	  escrito
	- (plan_id, external_user_id) es único entre participantes
	- get_plan_availability resuelve los facts del plan con un join,
	  nunca con listas IN de ids de participantes
	"""

	# Plans

	@abstractmethod
	def create_plan(self, plan: PlanRecord) -> None:
		pass

	@abstractmethod
	def get_plan(self, plan_id: str) -> Optional[PlanRecord]:
		pass

	@abstractmethod
	def update_plan(self, plan: PlanRecord) -> None:
		"""Persiste el estado completo de un plan existente."""
		pass

	@abstractmethod
	def delete_plan(self, plan_id: str) -> None:
		"""Elimina el plan en cascada (participantes y facts)."""
		pass

	# Participants

	@abstractmethod
	def add_participant(self, participant: ParticipantRecord) -> None:
		"""
		Raises:
			DuplicateParticipantError: si (plan_id, external_user_id) ya existe
		"""
		pass

	@abstractmethod
	def find_participant(self, plan_id: str, external_user_id: str) -> Optional[ParticipantRecord]:
		pass

	@abstractmethod
	def get_participant_by_token(self, plan_id: str, token: str) -> Optional[ParticipantRecord]:
		pass

	@abstractmethod
	def list_participants(self, plan_id: str) -> List[ParticipantRecord]:
		pass

	@abstractmethod
	def count_participants(self, plan_id: str) -> int:
		pass

	@abstractmethod
	def delete_participant(self, participant_id: str) -> None:
		"""Elimina el participante y sus facts."""
		pass

	# Availability

	@abstractmethod
	def upsert_availability(self, participant_id: str, facts: Iterable[Tuple[str, bool]]) -> int:
		"""
		Inserta o actualiza el flag available de cada (participant, slot_key).

		Returns:
			int: cantidad de facts escritos
		"""
		pass

	@abstractmethod
	def get_participant_availability(self, participant_id: str) -> List[AvailabilityFact]:
		pass

	@abstractmethod
	def get_plan_availability(self, plan_id: str, only_available: bool = True) -> List[AvailabilityFact]:
		pass


class StoreError(Exception):
	"""Excepción para errores del store."""
	pass


class DuplicateParticipantError(StoreError):
	"""Violación del unique (plan_id, external_user_id)."""
	pass
