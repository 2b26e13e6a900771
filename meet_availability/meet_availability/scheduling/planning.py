"""
Plan Service

Framework-free request core used by the whitelisted endpoints:
- Plan creation, detail and host edits
- Participant join (idempotent per external user)
- Availability upserts and reads (participant token)
- Aggregated results with privacy mode

The store handle is injected; the service holds no global state.
"""

import secrets
import time
from dataclasses import replace
from typing import Any, Callable, Collection, Dict, Optional

from meet_availability.meet_availability.store.base import (
	AvailabilityStore,
	DuplicateParticipantError,
	ParticipantRecord,
	PlanRecord,
)

from .constants import ALLOWED_SLOT_MINUTES, DEFAULT_TOP_SLOTS, MAX_PLAN_SLOTS, MAX_UPSERT_BATCH
from .errors import (
	AccessDeniedError,
	AuthenticationRequiredError,
	InvalidSpecificationError,
	ParticipantLimitError,
	PlanNotFoundError,
)
from .recurrence import has_field, parse_bool, parse_date, parse_int, parse_time, parse_working_days, pick
from .results import aggregate, filter_slot_results, find_orphaned_facts, get_top_slots, mask_participants
from .slots import generate_slots
from .validation import validate_availability_batch, validate_plan, validate_spec, validate_title

GRANULARITY_WARNING = (
	"Slot granularity or working days changed: existing availability responses "
	"may no longer align with the new slots."
)


def generate_token() -> str:
	return secrets.token_urlsafe(16)


def generate_id() -> str:
	return secrets.token_urlsafe(12)


def _clean_text(value: Any) -> Optional[str]:
	if not value:
		return None
	return str(value).strip() or None


class PlanService:
	"""
	Operaciones de planes sobre un store inyectado.

	Args:
		store: implementación de AvailabilityStore
		max_plan_slots: techo de slots por plan
		max_batch_size: techo de facts por upsert
		clock: función que retorna el timestamp unix actual (segundos)
	"""

	def __init__(
		self,
		store: AvailabilityStore,
		max_plan_slots: int = MAX_PLAN_SLOTS,
		max_batch_size: int = MAX_UPSERT_BATCH,
		clock: Optional[Callable[[], int]] = None
	):
		self.store = store
		self.max_plan_slots = max_plan_slots
		self.max_batch_size = max_batch_size
		self.clock = clock or (lambda: int(time.time()))

	# ===================
	# Plans
	# ===================

	def create_plan(self, payload: Dict[str, Any]) -> Dict[str, str]:
		"""
		Valida y crea un plan.

		Returns:
			dict: {"id": str, "hostToken": str}; el host token solo se
			retorna aquí
		"""
		spec = validate_plan(payload, max_slots=self.max_plan_slots)

		max_participants = pick(payload, "max_participants")
		created_by = pick(payload, "created_by_external_id")

		plan = PlanRecord(
			id=generate_id(),
			title=validate_title(pick(payload, "title")),
			description=_clean_text(pick(payload, "description")),
			spec=spec,
			host_token=generate_token(),
			created_at=self.clock(),
			max_participants=self._parse_max_participants(max_participants),
			hide_participants=parse_bool(pick(payload, "hide_participants", False)),
			created_by_external_id=str(created_by) if created_by else None,
		)
		self.store.create_plan(plan)

		return {"id": plan.id, "hostToken": plan.host_token}

	def get_plan(self, plan_id: str) -> Dict[str, Any]:
		"""
		Detalle del plan con sus slots generados.

		Nunca incluye el host token.
		"""
		plan = self._require_plan(plan_id)

		detail = plan.as_dict()
		detail["slots"] = [slot.as_dict() for slot in generate_slots(plan.spec)]
		detail["participantCount"] = self.store.count_participants(plan_id)
		return detail

	def update_plan(self, plan_id: str, host_token: Optional[str], changes: Dict[str, Any]) -> Dict[str, Any]:
		"""
		Edición de un plan por su host.

		Campos permitidos: title, description, endDate, dayStartTime,
		dayEndTime, maxParticipants, hideParticipants, workingDays,
		slotMinutes. El spec resultante se vuelve a validar completo.

		Returns:
			dict: {"updated": True, "warning": str | None, "orphanedFacts": int}
		"""
		plan = self.authenticate_host(plan_id, host_token)
		spec = plan.spec
		spec_changes: Dict[str, Any] = {}
		plan_changes: Dict[str, Any] = {}

		if has_field(changes, "title"):
			plan_changes["title"] = validate_title(pick(changes, "title"))
		if has_field(changes, "description"):
			plan_changes["description"] = _clean_text(pick(changes, "description"))
		if has_field(changes, "max_participants"):
			plan_changes["max_participants"] = self._parse_max_participants(pick(changes, "max_participants"))
		if has_field(changes, "hide_participants"):
			plan_changes["hide_participants"] = parse_bool(pick(changes, "hide_participants"))

		if has_field(changes, "end_date"):
			spec_changes["end_date"] = parse_date(pick(changes, "end_date"), "end_date")
		if has_field(changes, "day_start_time"):
			spec_changes["day_start_time"] = parse_time(pick(changes, "day_start_time"), "day_start_time")
		if has_field(changes, "day_end_time"):
			spec_changes["day_end_time"] = parse_time(pick(changes, "day_end_time"), "day_end_time")
		if has_field(changes, "working_days"):
			spec_changes["working_days"] = parse_working_days(pick(changes, "working_days"))
		if has_field(changes, "slot_minutes"):
			slot_minutes = parse_int(pick(changes, "slot_minutes"), "slot_minutes")
			if slot_minutes not in ALLOWED_SLOT_MINUTES:
				raise InvalidSpecificationError("slot_minutes", "Invalid slot granularity")
			spec_changes["slot_minutes"] = slot_minutes

		if not plan_changes and not spec_changes:
			raise InvalidSpecificationError("changes", "No valid fields to update")

		new_spec = spec.with_changes(**spec_changes) if spec_changes else spec
		if spec_changes:
			validate_spec(new_spec, max_slots=self.max_plan_slots)

		updated = replace(plan, spec=new_spec, **plan_changes)
		self.store.update_plan(updated)

		warning = None
		orphaned = 0
		if spec_changes:
			# Acortar el rango o mover la ventana también deja facts huérfanos
			facts = self.store.get_plan_availability(plan_id, only_available=False)
			orphaned = len(find_orphaned_facts(generate_slots(new_spec), facts))
		if new_spec.slot_minutes != spec.slot_minutes or new_spec.working_days != spec.working_days:
			warning = GRANULARITY_WARNING

		return {"updated": True, "warning": warning, "orphanedFacts": orphaned}

	# ===================
	# Participants
	# ===================

	def join_plan(self, plan_id: str, display_name: Any, external_user_id: Optional[str] = None) -> Dict[str, Any]:
		"""
		Une un participante al plan.

		Idempotente por external_user_id: si ya existe se retorna el mismo
		participante (aunque el plan esté lleno).

		Returns:
			dict: {"participantId", "token", "planId", "created": bool}
		"""
		plan = self._require_plan(plan_id)

		if not display_name or not str(display_name).strip():
			raise InvalidSpecificationError("display_name", "Display name is required")

		external_user_id = str(external_user_id).strip() if external_user_id else None

		if external_user_id:
			existing = self.store.find_participant(plan_id, external_user_id)
			if existing:
				return self._join_response(existing, created=False)

		if plan.max_participants and self.store.count_participants(plan_id) >= plan.max_participants:
			raise ParticipantLimitError(plan.max_participants)

		participant = ParticipantRecord(
			id=generate_id(),
			plan_id=plan_id,
			display_name=str(display_name).strip(),
			token=generate_token(),
			created_at=self.clock(),
			external_user_id=external_user_id,
		)

		try:
			self.store.add_participant(participant)
		except DuplicateParticipantError:
			# Otro request creó el mismo participante en paralelo
			existing = self.store.find_participant(plan_id, external_user_id)
			if not existing:
				raise
			return self._join_response(existing, created=False)

		return self._join_response(participant, created=True)

	# ===================
	# Availability
	# ===================

	def upsert_availability(self, plan_id: str, token: Optional[str], entries: Any) -> Dict[str, int]:
		"""
		Guarda la disponibilidad del participante autenticado.

		Todo el batch se valida contra los slots actuales del plan antes
		de escribir; un solo key ajeno rechaza el batch completo.
		"""
		participant = self.authenticate_participant(plan_id, token)
		plan = self._require_plan(plan_id)

		valid_keys = {slot.slot_key for slot in generate_slots(plan.spec)}
		facts = validate_availability_batch(entries, valid_keys, max_batch=self.max_batch_size)

		written = self.store.upsert_availability(participant.id, facts)
		return {"updated": written}

	def get_participant_availability(self, plan_id: str, token: Optional[str]) -> Dict[str, Any]:
		participant = self.authenticate_participant(plan_id, token)
		facts = self.store.get_participant_availability(participant.id)

		return {
			"participantId": participant.id,
			"slots": [{"slotKey": fact.slot_key, "available": fact.available} for fact in facts],
		}

	# ===================
	# Results
	# ===================

	def get_results(
		self,
		plan_id: str,
		participant_ids: Optional[Collection[str]] = None,
		top: int = DEFAULT_TOP_SLOTS
	) -> Dict[str, Any]:
		"""
		Resultados agregados del plan.

		Args:
			plan_id: id del plan
			participant_ids: filtro opcional; vacío = todos
			top: cantidad de slots en topSlots

		Returns:
			dict: {
				"slots": [SlotResult dict, ...],       # uno por slot generado
				"participants": [{"id", "displayName", "externalUserId"}, ...],
				"totalParticipants": int,
				"topSlots": [SlotResult dict, ...]
			}
		"""
		plan = self._require_plan(plan_id)
		participants = self.store.list_participants(plan_id)
		facts = self.store.get_plan_availability(plan_id)

		results = aggregate(generate_slots(plan.spec), facts)
		if participant_ids:
			results = filter_slot_results(results, participant_ids)

		return {
			"slots": [result.as_dict() for result in results],
			"participants": mask_participants(participants, plan.hide_participants),
			"totalParticipants": len(participants),
			"topSlots": [result.as_dict() for result in get_top_slots(results, top)],
		}

	# ===================
	# Authentication
	# ===================

	def authenticate_participant(self, plan_id: str, token: Optional[str]) -> ParticipantRecord:
		if not token:
			raise AuthenticationRequiredError()

		participant = self.store.get_participant_by_token(plan_id, token)
		if not participant:
			raise AccessDeniedError()
		return participant

	def authenticate_host(self, plan_id: str, host_token: Optional[str]) -> PlanRecord:
		if not host_token:
			raise AuthenticationRequiredError()

		plan = self.store.get_plan(plan_id)
		if not plan or not secrets.compare_digest(plan.host_token, host_token):
			raise AccessDeniedError("Invalid host token")
		return plan

	# ===================
	# Helpers
	# ===================

	def _require_plan(self, plan_id: str) -> PlanRecord:
		plan = self.store.get_plan(plan_id)
		if not plan:
			raise PlanNotFoundError(plan_id)
		return plan

	def _parse_max_participants(self, value: Any) -> Optional[int]:
		if value in (None, "", 0, "0"):
			return None

		limit = parse_int(value, "max_participants")
		if limit < 1:
			raise InvalidSpecificationError("max_participants", "Max participants must be a positive integer")
		return limit

	def _join_response(self, participant: ParticipantRecord, created: bool) -> Dict[str, Any]:
		return {
			"participantId": participant.id,
			"token": participant.token,
			"planId": participant.plan_id,
			"created": created,
		}
