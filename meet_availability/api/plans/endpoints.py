"""
Plan API Endpoints

Whitelisted functions for frontend/external use.
All endpoints allow guest access with security protections:
- Rate limiting by IP address on writes
- Input sanitization
- Bearer token authentication (host token or participant token)
"""

import frappe
from frappe import _
from frappe.utils import cint
from typing import Dict, Any, Optional

from meet_availability.meet_availability.scheduling.constants import (
	DEFAULT_DAY_END,
	DEFAULT_DAY_START,
	DEFAULT_SLOT_MINUTES,
	DEFAULT_TOP_SLOTS,
	MAX_PLAN_SLOTS,
	MAX_UPSERT_BATCH,
)
from meet_availability.meet_availability.scheduling.errors import (
	AccessDeniedError,
	AuthenticationRequiredError,
	PlanNotFoundError,
	SchedulingError,
)
from meet_availability.meet_availability.scheduling.planning import PlanService
from meet_availability.meet_availability.store.factory import DEFAULT_BACKEND, get_store

from meet_availability.api.shared import (
	check_rate_limit,
	get_bearer_token,
	parse_id_list,
	parse_json_arg,
	sanitize_string,
	validate_docname,
)

# Orden importa: la primera clase que coincide gana
ERROR_MAP = (
	(PlanNotFoundError, frappe.DoesNotExistError),
	(AuthenticationRequiredError, frappe.AuthenticationError),
	(AccessDeniedError, frappe.PermissionError),
	(SchedulingError, frappe.ValidationError),
)

_memory_store = None


def get_plan_service() -> PlanService:
	"""
	Construye el PlanService con el store y los límites del site.

	Config (site_config.json):
		meet_availability_store: "frappe" (default) o "memory"
		meet_availability_max_plan_slots: techo de slots por plan
		meet_availability_max_upsert_batch: techo de facts por upsert
	"""
	global _memory_store

	backend = frappe.conf.get("meet_availability_store") or DEFAULT_BACKEND
	if backend == "memory":
		# El store en memoria debe sobrevivir entre requests del mismo worker
		if _memory_store is None:
			_memory_store = get_store(backend)
		store = _memory_store
	else:
		store = get_store(backend)

	return PlanService(
		store,
		max_plan_slots=cint(frappe.conf.get("meet_availability_max_plan_slots")) or MAX_PLAN_SLOTS,
		max_batch_size=cint(frappe.conf.get("meet_availability_max_upsert_batch")) or MAX_UPSERT_BATCH,
	)


def throw_scheduling_error(error: SchedulingError) -> None:
	"""Traduce un error del core al tipo de excepción de Frappe (y su HTTP status)."""
	for error_class, frappe_exc in ERROR_MAP:
		if isinstance(error, error_class):
			frappe.throw(_(str(error)), frappe_exc)


# ===================
# Plans
# ===================

@frappe.whitelist(allow_guest=True, methods=['POST'])
def create_plan(
	title: str,
	timezone: str,
	start_date: str,
	end_date: str,
	day_start_time: str = DEFAULT_DAY_START,
	day_end_time: str = DEFAULT_DAY_END,
	slot_minutes: int = DEFAULT_SLOT_MINUTES,
	working_days: Any = None,
	description: Optional[str] = None,
	max_participants: Optional[int] = None,
	hide_participants: int = 0,
	created_by_external_id: Optional[str] = None
) -> Dict[str, str]:
	"""
	Crea un plan de disponibilidad.

	Rate limited: 10 requests per minute per IP.

	Args:
		title: título del plan
		timezone: zona IANA (ej. "America/New_York")
		start_date: fecha inicial (YYYY-MM-DD)
		end_date: fecha final inclusiva (YYYY-MM-DD)
		day_start_time: inicio de la ventana diaria (HH:MM)
		day_end_time: fin de la ventana diaria, exclusivo (HH:MM)
		slot_minutes: 15, 30 o 60
		working_days: lista JSON de días (0 = domingo); default todos
		description: descripción opcional
		max_participants: límite opcional de participantes
		hide_participants: 1 para ocultar nombres en resultados
		created_by_external_id: id externo opcional del creador

	Returns:
		dict: {"id": str, "hostToken": str}

	Example:
		```javascript
		frappe.call({
			method: "meet_availability.api.plans.create_plan",
			args: {
				title: "Team sync",
				timezone: "America/New_York",
				start_date: "2025-01-06",
				end_date: "2025-01-10",
				day_start_time: "09:00",
				day_end_time: "12:00",
				slot_minutes: 30,
				working_days: [1, 2, 3, 4, 5]
			}
		});
		```
	"""
	check_rate_limit("create_plan", limit=10, seconds=60)

	payload = {
		"title": sanitize_string(title, 200),
		"description": sanitize_string(description, 2000),
		"timezone": sanitize_string(timezone, 64),
		"startDate": start_date,
		"endDate": end_date,
		"dayStartTime": day_start_time,
		"dayEndTime": day_end_time,
		"slotMinutes": slot_minutes,
		"maxParticipants": max_participants,
		"hideParticipants": hide_participants,
		"createdByExternalId": sanitize_string(created_by_external_id, 140),
	}
	if working_days not in (None, ""):
		payload["workingDays"] = parse_json_arg(working_days, "working_days", list)

	try:
		result = get_plan_service().create_plan(payload)
		frappe.db.commit()

		frappe.logger("meet_availability").info(f"Plan {result['id']} created")
		return result

	except SchedulingError as e:
		throw_scheduling_error(e)
	except Exception as e:
		frappe.log_error(f"Error in create_plan: {str(e)}", "API Error")
		frappe.throw(_("Error creating plan"))


@frappe.whitelist(allow_guest=True, methods=['GET'])
def get_plan(plan_id: str) -> Dict[str, Any]:
	"""
	Obtiene el detalle de un plan con sus slots generados.

	Nunca retorna el host token.

	Returns:
		dict: {
			"id", "title", "description", "timezone", "startDate", "endDate",
			"dayStartTime", "dayEndTime", "slotMinutes", "workingDays",
			"maxParticipants", "hideParticipants", "createdAt",
			"participantCount",
			"slots": [{"slotKey", "localDate", "localTime", "dayOfWeek"}, ...]
		}
	"""
	plan_id = validate_docname(plan_id, "plan_id")

	try:
		return get_plan_service().get_plan(plan_id)

	except SchedulingError as e:
		throw_scheduling_error(e)
	except Exception as e:
		frappe.log_error(f"Error in get_plan: {str(e)}", "API Error")
		frappe.throw(_("Error loading plan"))


@frappe.whitelist(allow_guest=True, methods=['POST', 'PATCH'])
def update_plan(
	plan_id: str,
	title: Optional[str] = None,
	description: Optional[str] = None,
	end_date: Optional[str] = None,
	day_start_time: Optional[str] = None,
	day_end_time: Optional[str] = None,
	slot_minutes: Optional[int] = None,
	working_days: Any = None,
	max_participants: Optional[int] = None,
	hide_participants: Optional[int] = None
) -> Dict[str, Any]:
	"""
	Edita un plan. Requiere el host token en el header Authorization.

	Solo se aplican los campos enviados. Si cambia la recurrencia la
	respuesta incluye la cantidad de respuestas que ya no coinciden con
	ningún slot; si cambia slot_minutes o working_days, también un warning.

	Rate limited: 20 requests per minute per IP.

	Returns:
		dict: {"updated": True, "warning": str | None, "orphanedFacts": int}
	"""
	check_rate_limit("update_plan", limit=20, seconds=60)
	plan_id = validate_docname(plan_id, "plan_id")

	changes = {}
	if title is not None:
		changes["title"] = sanitize_string(title, 200)
	if description is not None:
		changes["description"] = sanitize_string(description, 2000)
	if end_date is not None:
		changes["endDate"] = end_date
	if day_start_time is not None:
		changes["dayStartTime"] = day_start_time
	if day_end_time is not None:
		changes["dayEndTime"] = day_end_time
	if slot_minutes is not None:
		changes["slotMinutes"] = slot_minutes
	if working_days is not None:
		changes["workingDays"] = parse_json_arg(working_days, "working_days", list) or []
	if max_participants is not None:
		changes["maxParticipants"] = max_participants
	if hide_participants is not None:
		changes["hideParticipants"] = hide_participants

	try:
		result = get_plan_service().update_plan(plan_id, get_bearer_token(), changes)
		frappe.db.commit()

		if result.get("orphanedFacts"):
			frappe.logger("meet_availability").warning(
				f"Plan {plan_id} updated with {result['orphanedFacts']} orphaned availability facts"
			)
		return result

	except SchedulingError as e:
		throw_scheduling_error(e)
	except Exception as e:
		frappe.log_error(f"Error in update_plan: {str(e)}", "API Error")
		frappe.throw(_("Error updating plan"))


# ===================
# Participants
# ===================

@frappe.whitelist(allow_guest=True, methods=['POST'])
def join_plan(plan_id: str, display_name: str, external_user_id: Optional[str] = None) -> Dict[str, Any]:
	"""
	Une un participante a un plan.

	Idempotente por external_user_id: si ya se unió, retorna el mismo
	participante y token.

	Rate limited: 10 requests per minute per IP.

	Returns:
		dict: {"participantId", "token", "planId", "created"}
	"""
	check_rate_limit("join_plan", limit=10, seconds=60)
	plan_id = validate_docname(plan_id, "plan_id")

	try:
		result = get_plan_service().join_plan(
			plan_id,
			sanitize_string(display_name, 140),
			sanitize_string(external_user_id, 140),
		)
		frappe.db.commit()

		if result["created"]:
			frappe.logger("meet_availability").info(
				f"Participant {result['participantId']} joined plan {plan_id}"
			)
		return result

	except SchedulingError as e:
		throw_scheduling_error(e)
	except Exception as e:
		frappe.log_error(f"Error in join_plan: {str(e)}", "API Error")
		frappe.throw(_("Error joining plan"))


# ===================
# Availability
# ===================

@frappe.whitelist(allow_guest=True, methods=['POST', 'PUT'])
def upsert_availability(plan_id: str, slots: Any) -> Dict[str, int]:
	"""
	Guarda la disponibilidad del participante autenticado.

	Requiere el token del participante en el header Authorization.
	Rate limited: 60 requests per minute per IP.

	Args:
		plan_id: id del plan
		slots: lista JSON [{"slotKey": "2025-01-06T14:00", "available": true}, ...]

	Returns:
		dict: {"updated": int}
	"""
	check_rate_limit("upsert_availability", limit=60, seconds=60)
	plan_id = validate_docname(plan_id, "plan_id")
	entries = parse_json_arg(slots, "slots", list)

	try:
		result = get_plan_service().upsert_availability(plan_id, get_bearer_token(), entries)
		frappe.db.commit()

		frappe.logger("meet_availability").info(f"Plan {plan_id}: {result['updated']} availability facts upserted")
		return result

	except SchedulingError as e:
		throw_scheduling_error(e)
	except Exception as e:
		frappe.log_error(f"Error in upsert_availability: {str(e)}", "API Error")
		frappe.throw(_("Error saving availability"))


@frappe.whitelist(allow_guest=True, methods=['GET'])
def get_my_availability(plan_id: str) -> Dict[str, Any]:
	"""
	Obtiene la disponibilidad del participante autenticado.

	Returns:
		dict: {"participantId": str, "slots": [{"slotKey", "available"}, ...]}
	"""
	plan_id = validate_docname(plan_id, "plan_id")

	try:
		return get_plan_service().get_participant_availability(plan_id, get_bearer_token())

	except SchedulingError as e:
		throw_scheduling_error(e)
	except Exception as e:
		frappe.log_error(f"Error in get_my_availability: {str(e)}", "API Error")
		frappe.throw(_("Error loading availability"))


# ===================
# Results
# ===================

@frappe.whitelist(allow_guest=True, methods=['GET'])
def get_results(plan_id: str, participant_ids: Any = None, top: int = DEFAULT_TOP_SLOTS) -> Dict[str, Any]:
	"""
	Resultados agregados del plan.

	Args:
		plan_id: id del plan
		participant_ids: filtro opcional (lista JSON o "id1,id2")
		top: cantidad de slots en topSlots

	Returns:
		dict: {"slots", "participants", "totalParticipants", "topSlots"}
	"""
	plan_id = validate_docname(plan_id, "plan_id")
	selected = parse_id_list(participant_ids)

	try:
		return get_plan_service().get_results(plan_id, selected, top=cint(top) or DEFAULT_TOP_SLOTS)

	except SchedulingError as e:
		throw_scheduling_error(e)
	except Exception as e:
		frappe.log_error(f"Error in get_results: {str(e)}", "API Error")
		frappe.throw(_("Error loading results"))
