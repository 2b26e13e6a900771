# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Meet Participant DocType

Participante de un plan. Se autentica con su token opaco; un mismo
external_user_id solo puede unirse una vez por plan.
"""

import frappe
from frappe import _
from frappe.model.document import Document


class MeetParticipant(Document):

	def validate(self) -> None:
		if not self.plan:
			frappe.throw(_("Plan is required"))

		if not self.display_name or not self.display_name.strip():
			frappe.throw(_("Display name is required"))

		self.display_name = self.display_name.strip()
		self.external_user_id = (self.external_user_id or "").strip() or None

	def on_trash(self) -> None:
		frappe.db.delete("Meet Slot Availability", {"participant": self.name})


def on_doctype_update():
	# NULL no colisiona en índices únicos: participantes anónimos ilimitados
	frappe.db.add_unique("Meet Participant", ["plan", "external_user_id"], constraint_name="unique_plan_external_user")
	frappe.db.add_index("Meet Participant", ["plan", "token"])
