# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Meet Slot Availability DocType

Respuesta de un participante para un slot (UTC "YYYY-MM-DDTHH:MM").
Única por (participant, slot_key); el API escribe con upsert.
"""

import frappe
from frappe import _
from frappe.model.document import Document

from meet_availability.meet_availability.scheduling.slot_keys import is_slot_key


class MeetSlotAvailability(Document):

	def validate(self) -> None:
		if not is_slot_key(self.slot_key):
			frappe.throw(_(f"Invalid slot key: {self.slot_key}"))


def on_doctype_update():
	frappe.db.add_unique(
		"Meet Slot Availability",
		["participant", "slot_key"],
		constraint_name="unique_participant_slot"
	)
