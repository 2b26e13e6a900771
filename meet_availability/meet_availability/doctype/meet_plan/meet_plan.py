# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Meet Plan DocType

Plan de disponibilidad: regla de recurrencia (rango de fechas, ventana
diaria, granularidad, días laborales) en la zona horaria del plan.
Los slots no se guardan; se regeneran desde la regla.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import cint

from meet_availability.meet_availability.scheduling.constants import MAX_PLAN_SLOTS
from meet_availability.meet_availability.scheduling.errors import SchedulingError
from meet_availability.meet_availability.scheduling.validation import validate_plan


class MeetPlan(Document):
	"""
	Meet Plan with recurrence validation.

	Validations:
	- title, timezone, date range and day window required
	- start_date <= end_date, day_start_time < day_end_time
	- slot_minutes in 15/30/60, working days within 0..6
	- generated slot count under the site ceiling
	"""

	def validate(self) -> None:
		"""
		Validación antes de guardar.

		Los writes del store ya validaron el spec (flags.spec_validated);
		las ediciones desde Desk se validan completas aquí.
		"""
		if self.flags.spec_validated:
			return

		self._validate_spec()
		self._validate_max_participants()

	def on_trash(self) -> None:
		"""Borra participantes y sus respuestas antes de borrar el plan."""
		frappe.db.sql("""
			DELETE sa FROM `tabMeet Slot Availability` sa
			INNER JOIN `tabMeet Participant` p ON p.name = sa.participant
			WHERE p.plan = %s
		""", (self.name,))
		frappe.db.delete("Meet Participant", {"plan": self.name})

	def _validate_spec(self) -> None:
		max_slots = cint(frappe.conf.get("meet_availability_max_plan_slots")) or MAX_PLAN_SLOTS

		data = self.as_dict()
		# Vacío desde Desk = todos los días
		data["working_days"] = self.working_days or None

		try:
			spec = validate_plan(data, max_slots=max_slots)
		except SchedulingError as e:
			frappe.throw(_(str(e)))

		# Normaliza al formato que lee el store
		self.day_start_time = spec.day_start_time
		self.day_end_time = spec.day_end_time
		self.working_days = frappe.as_json(list(spec.working_days), indent=None)

	def _validate_max_participants(self) -> None:
		if cint(self.max_participants) < 0:
			frappe.throw(_("Max participants must be a positive integer"))
