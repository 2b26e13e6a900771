"""
In-Memory Availability Store

Process-local implementation of the store contract. Used by tests and by
hosts that run the scheduling core without a Frappe site. A reentrant lock
makes each call atomic.
"""

import threading
from typing import Dict, Iterable, List, Optional, Tuple

from .base import (
	AvailabilityFact,
	AvailabilityStore,
	DuplicateParticipantError,
	ParticipantRecord,
	PlanRecord,
	StoreError,
)


class InMemoryStore(AvailabilityStore):
	"""Store en memoria con las mismas restricciones que el store de Frappe."""

	def __init__(self):
		self._lock = threading.RLock()
		self._plans: Dict[str, PlanRecord] = {}
		self._participants: Dict[str, ParticipantRecord] = {}
		# participant_id -> {slot_key: available}
		self._availability: Dict[str, Dict[str, bool]] = {}

	def create_plan(self, plan: PlanRecord) -> None:
		with self._lock:
			if plan.id in self._plans:
				raise StoreError(f"Plan {plan.id} already exists")
			self._plans[plan.id] = plan

	def get_plan(self, plan_id: str) -> Optional[PlanRecord]:
		with self._lock:
			return self._plans.get(plan_id)

	def update_plan(self, plan: PlanRecord) -> None:
		with self._lock:
			if plan.id not in self._plans:
				raise StoreError(f"Plan {plan.id} does not exist")
			self._plans[plan.id] = plan

	def delete_plan(self, plan_id: str) -> None:
		with self._lock:
			self._plans.pop(plan_id, None)
			for participant in [p for p in self._participants.values() if p.plan_id == plan_id]:
				self._participants.pop(participant.id, None)
				self._availability.pop(participant.id, None)

	def add_participant(self, participant: ParticipantRecord) -> None:
		with self._lock:
			if participant.plan_id not in self._plans:
				raise StoreError(f"Plan {participant.plan_id} does not exist")

			if participant.external_user_id is not None:
				for existing in self._participants.values():
					if (existing.plan_id == participant.plan_id
							and existing.external_user_id == participant.external_user_id):
						raise DuplicateParticipantError(
							f"External user {participant.external_user_id} already joined plan {participant.plan_id}"
						)

			self._participants[participant.id] = participant

	def find_participant(self, plan_id: str, external_user_id: str) -> Optional[ParticipantRecord]:
		with self._lock:
			for participant in self._participants.values():
				if participant.plan_id == plan_id and participant.external_user_id == external_user_id:
					return participant
			return None

	def get_participant_by_token(self, plan_id: str, token: str) -> Optional[ParticipantRecord]:
		with self._lock:
			for participant in self._participants.values():
				if participant.plan_id == plan_id and participant.token == token:
					return participant
			return None

	def list_participants(self, plan_id: str) -> List[ParticipantRecord]:
		with self._lock:
			return sorted(
				(p for p in self._participants.values() if p.plan_id == plan_id),
				key=lambda p: (p.created_at, p.id)
			)

	def count_participants(self, plan_id: str) -> int:
		with self._lock:
			return sum(1 for p in self._participants.values() if p.plan_id == plan_id)

	def delete_participant(self, participant_id: str) -> None:
		with self._lock:
			self._participants.pop(participant_id, None)
			self._availability.pop(participant_id, None)

	def upsert_availability(self, participant_id: str, facts: Iterable[Tuple[str, bool]]) -> int:
		with self._lock:
			if participant_id not in self._participants:
				raise StoreError(f"Participant {participant_id} does not exist")

			rows = self._availability.setdefault(participant_id, {})
			written = 0
			for slot_key, available in facts:
				rows[slot_key] = bool(available)
				written += 1
			return written

	def get_participant_availability(self, participant_id: str) -> List[AvailabilityFact]:
		with self._lock:
			rows = dict(self._availability.get(participant_id, {}))
		return [AvailabilityFact(participant_id, slot_key, available) for slot_key, available in sorted(rows.items())]

	def get_plan_availability(self, plan_id: str, only_available: bool = True) -> List[AvailabilityFact]:
		with self._lock:
			facts = []
			for participant in self.list_participants(plan_id):
				for fact in self.get_participant_availability(participant.id):
					if only_available and not fact.available:
						continue
					facts.append(fact)
			return facts
