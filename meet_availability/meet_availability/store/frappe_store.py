"""
Frappe Availability Store

Store backed by the site database through frappe.db:
- Meet Plan / Meet Participant documents for plans and participants
- Meet Slot Availability rows written with INSERT ... ON DUPLICATE KEY UPDATE
  against the unique (participant, slot_key) index
- Plan availability read with a JOIN on Meet Participant
"""

import frappe
from frappe.utils import cint, now_datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from meet_availability.meet_availability.scheduling.recurrence import RecurrenceSpec

from .base import (
	AvailabilityFact,
	AvailabilityStore,
	DuplicateParticipantError,
	ParticipantRecord,
	PlanRecord,
	StoreError,
)

PLAN_DOCTYPE = "Meet Plan"
PARTICIPANT_DOCTYPE = "Meet Participant"
AVAILABILITY_DOCTYPE = "Meet Slot Availability"

PLAN_FIELDS = [
	"name",
	"title",
	"description",
	"timezone",
	"start_date",
	"end_date",
	"day_start_time",
	"day_end_time",
	"slot_minutes",
	"working_days",
	"max_participants",
	"hide_participants",
	"created_at",
	"created_by_external_id",
	"host_token",
]

PARTICIPANT_FIELDS = ["name", "plan", "display_name", "external_user_id", "token", "created_at"]

# Filas por sentencia INSERT
UPSERT_CHUNK_SIZE = 500


class FrappeStore(AvailabilityStore):
	"""Store sobre las DocTypes Meet Plan / Meet Participant / Meet Slot Availability."""

	def __init__(self, chunk_size: int = UPSERT_CHUNK_SIZE):
		self.chunk_size = chunk_size

	# Plans

	def create_plan(self, plan: PlanRecord) -> None:
		doc = frappe.get_doc(self._plan_to_doc(plan))
		# El spec ya fue validado por el core; evita recontar slots
		doc.flags.spec_validated = True
		doc.insert(ignore_permissions=True, set_name=plan.id)

	def get_plan(self, plan_id: str) -> Optional[PlanRecord]:
		row = frappe.db.get_value(PLAN_DOCTYPE, plan_id, PLAN_FIELDS, as_dict=True)
		if not row:
			return None
		return self._row_to_plan(row)

	def update_plan(self, plan: PlanRecord) -> None:
		if not frappe.db.exists(PLAN_DOCTYPE, plan.id):
			raise StoreError(f"Plan {plan.id} does not exist")

		doc = frappe.get_doc(PLAN_DOCTYPE, plan.id)
		values = self._plan_to_doc(plan)
		values.pop("doctype")
		doc.update(values)
		doc.flags.spec_validated = True
		doc.save(ignore_permissions=True)

	def delete_plan(self, plan_id: str) -> None:
		frappe.db.sql(f"""
			DELETE sa FROM `tab{AVAILABILITY_DOCTYPE}` sa
			INNER JOIN `tab{PARTICIPANT_DOCTYPE}` p ON p.name = sa.participant
			WHERE p.plan = %s
		""", (plan_id,))
		frappe.db.delete(PARTICIPANT_DOCTYPE, {"plan": plan_id})
		frappe.db.delete(PLAN_DOCTYPE, {"name": plan_id})

	# Participants

	def add_participant(self, participant: ParticipantRecord) -> None:
		doc = frappe.get_doc({
			"doctype": PARTICIPANT_DOCTYPE,
			"plan": participant.plan_id,
			"display_name": participant.display_name,
			"external_user_id": participant.external_user_id,
			"token": participant.token,
			"created_at": participant.created_at,
		})

		try:
			doc.insert(ignore_permissions=True, set_name=participant.id)
		except (frappe.DuplicateEntryError, frappe.UniqueValidationError) as e:
			raise DuplicateParticipantError(
				f"External user {participant.external_user_id} already joined plan {participant.plan_id}"
			) from e

	def find_participant(self, plan_id: str, external_user_id: str) -> Optional[ParticipantRecord]:
		row = frappe.db.get_value(
			PARTICIPANT_DOCTYPE,
			{"plan": plan_id, "external_user_id": external_user_id},
			PARTICIPANT_FIELDS,
			as_dict=True
		)
		return self._row_to_participant(row) if row else None

	def get_participant_by_token(self, plan_id: str, token: str) -> Optional[ParticipantRecord]:
		row = frappe.db.get_value(
			PARTICIPANT_DOCTYPE,
			{"plan": plan_id, "token": token},
			PARTICIPANT_FIELDS,
			as_dict=True
		)
		return self._row_to_participant(row) if row else None

	def list_participants(self, plan_id: str) -> List[ParticipantRecord]:
		rows = frappe.get_all(
			PARTICIPANT_DOCTYPE,
			filters={"plan": plan_id},
			fields=PARTICIPANT_FIELDS,
			order_by="created_at asc, name asc"
		)
		return [self._row_to_participant(row) for row in rows]

	def count_participants(self, plan_id: str) -> int:
		return cint(frappe.db.count(PARTICIPANT_DOCTYPE, {"plan": plan_id}))

	def delete_participant(self, participant_id: str) -> None:
		frappe.db.delete(AVAILABILITY_DOCTYPE, {"participant": participant_id})
		frappe.db.delete(PARTICIPANT_DOCTYPE, {"name": participant_id})

	# Availability

	def upsert_availability(self, participant_id: str, facts: Iterable[Tuple[str, bool]]) -> int:
		"""
		Upsert por chunks.

		Cada fila es atómica por el índice único (participant, slot_key).
		Si un chunk falla, los chunks anteriores ya quedaron escritos.
		"""
		facts = list(facts)
		now = now_datetime()
		user = frappe.session.user
		written = 0

		for start in range(0, len(facts), self.chunk_size):
			chunk = facts[start:start + self.chunk_size]
			placeholders = []
			values: List[Any] = []

			for slot_key, available in chunk:
				placeholders.append("(%s, %s, %s, %s, %s, %s, %s, %s)")
				values.extend([
					frappe.generate_hash(length=12),
					participant_id,
					slot_key,
					1 if available else 0,
					now,
					now,
					user,
					user,
				])

			frappe.db.sql(f"""
				INSERT INTO `tab{AVAILABILITY_DOCTYPE}`
				(name, participant, slot_key, available, creation, modified, owner, modified_by)
				VALUES {", ".join(placeholders)}
				ON DUPLICATE KEY UPDATE
					available = VALUES(available),
					modified = VALUES(modified),
					modified_by = VALUES(modified_by)
			""", tuple(values))

			written += len(chunk)

		return written

	def get_participant_availability(self, participant_id: str) -> List[AvailabilityFact]:
		rows = frappe.get_all(
			AVAILABILITY_DOCTYPE,
			filters={"participant": participant_id},
			fields=["slot_key", "available"],
			order_by="slot_key asc"
		)
		return [AvailabilityFact(participant_id, row.slot_key, bool(row.available)) for row in rows]

	def get_plan_availability(self, plan_id: str, only_available: bool = True) -> List[AvailabilityFact]:
		# JOIN en lugar de IN (...) con todos los participantes del plan
		condition = "AND sa.available = 1" if only_available else ""
		rows = frappe.db.sql(f"""
			SELECT sa.participant, sa.slot_key, sa.available
			FROM `tab{AVAILABILITY_DOCTYPE}` sa
			INNER JOIN `tab{PARTICIPANT_DOCTYPE}` p ON p.name = sa.participant
			WHERE p.plan = %s {condition}
			ORDER BY p.created_at, p.name, sa.slot_key
		""", (plan_id,), as_dict=True)

		return [AvailabilityFact(row.participant, row.slot_key, bool(row.available)) for row in rows]

	# Conversion

	def _plan_to_doc(self, plan: PlanRecord) -> Dict[str, Any]:
		spec = plan.spec
		return {
			"doctype": PLAN_DOCTYPE,
			"title": plan.title,
			"description": plan.description,
			"timezone": spec.timezone,
			"start_date": spec.start_date,
			"end_date": spec.end_date,
			"day_start_time": spec.day_start_time,
			"day_end_time": spec.day_end_time,
			"slot_minutes": spec.slot_minutes,
			"working_days": frappe.as_json(list(spec.working_days), indent=None),
			"max_participants": plan.max_participants or 0,
			"hide_participants": 1 if plan.hide_participants else 0,
			"created_at": plan.created_at,
			"created_by_external_id": plan.created_by_external_id,
			"host_token": plan.host_token,
		}

	def _row_to_plan(self, row: Dict[str, Any]) -> PlanRecord:
		return PlanRecord(
			id=row["name"],
			title=row["title"],
			description=row.get("description"),
			spec=RecurrenceSpec.from_dict(row),
			host_token=row["host_token"],
			created_at=cint(row.get("created_at")),
			max_participants=cint(row.get("max_participants")) or None,
			hide_participants=bool(cint(row.get("hide_participants"))),
			created_by_external_id=row.get("created_by_external_id"),
		)

	def _row_to_participant(self, row: Dict[str, Any]) -> ParticipantRecord:
		return ParticipantRecord(
			id=row["name"],
			plan_id=row["plan"],
			display_name=row["display_name"],
			token=row["token"],
			created_at=cint(row.get("created_at")),
			external_user_id=row.get("external_user_id") or None,
		)
