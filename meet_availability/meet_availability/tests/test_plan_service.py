"""
Tests for scheduling/planning.py

Tests the plan service end to end over the in-memory store:
plan creation and edits, joins, availability upserts and results.
"""

import itertools
import unittest

from meet_availability.meet_availability.scheduling.errors import (
	AccessDeniedError,
	AuthenticationRequiredError,
	ForeignSlotKeyError,
	InvalidSpecificationError,
	OversizedBatchError,
	ParticipantLimitError,
	PlanNotFoundError,
	RunawaySpecificationError,
)
from meet_availability.meet_availability.scheduling.planning import GRANULARITY_WARNING, PlanService
from meet_availability.meet_availability.store.memory import InMemoryStore


PLAN_PAYLOAD = {
	"title": "Team sync",
	"description": "Weekly planning",
	"timezone": "UTC",
	"startDate": "2025-01-06",
	"endDate": "2025-01-06",
	"dayStartTime": "09:00",
	"dayEndTime": "10:00",
	"slotMinutes": 30,
	"workingDays": [1],
}


class PlanServiceTestCase(unittest.TestCase):

	def setUp(self):
		self.store = InMemoryStore()
		self.service = PlanService(self.store, clock=itertools.count(1000).__next__)
		created = self.service.create_plan(dict(PLAN_PAYLOAD))
		self.plan_id = created["id"]
		self.host_token = created["hostToken"]

	def join(self, name, external_user_id=None):
		return self.service.join_plan(self.plan_id, name, external_user_id)


class TestPlans(PlanServiceTestCase):

	def test_create_returns_id_and_host_token(self):
		self.assertTrue(self.plan_id)
		self.assertTrue(self.host_token)
		self.assertNotEqual(self.plan_id, self.host_token)

	def test_get_plan(self):
		plan = self.service.get_plan(self.plan_id)

		self.assertEqual(plan["title"], "Team sync")
		self.assertEqual(plan["description"], "Weekly planning")
		self.assertEqual(plan["timezone"], "UTC")
		self.assertEqual(plan["workingDays"], [1])
		self.assertEqual(plan["participantCount"], 0)
		self.assertEqual([s["slotKey"] for s in plan["slots"]], ["2025-01-06T09:00", "2025-01-06T09:30"])

	def test_host_token_never_exposed(self):
		plan = self.service.get_plan(self.plan_id)

		self.assertNotIn("hostToken", plan)
		self.assertNotIn("host_token", plan)
		self.assertNotIn(self.host_token, plan.values())

	def test_get_missing_plan(self):
		with self.assertRaises(PlanNotFoundError):
			self.service.get_plan("missing")

	def test_create_invalid(self):
		with self.assertRaises(InvalidSpecificationError):
			self.service.create_plan(dict(PLAN_PAYLOAD, slotMinutes=45))

	def test_create_over_ceiling(self):
		service = PlanService(InMemoryStore(), max_plan_slots=1)

		with self.assertRaises(RunawaySpecificationError):
			service.create_plan(dict(PLAN_PAYLOAD))

	def test_invalid_max_participants(self):
		with self.assertRaises(InvalidSpecificationError):
			self.service.create_plan(dict(PLAN_PAYLOAD, maxParticipants=-2))


class TestUpdatePlan(PlanServiceTestCase):

	def test_requires_host_token(self):
		with self.assertRaises(AuthenticationRequiredError):
			self.service.update_plan(self.plan_id, None, {"title": "New"})

		with self.assertRaises(AccessDeniedError):
			self.service.update_plan(self.plan_id, "wrong", {"title": "New"})

	def test_participant_token_is_not_host_token(self):
		participant = self.join("Ana")

		with self.assertRaises(AccessDeniedError):
			self.service.update_plan(self.plan_id, participant["token"], {"title": "New"})

	def test_update_metadata(self):
		result = self.service.update_plan(self.plan_id, self.host_token, {
			"title": "Renamed",
			"hideParticipants": "true",
			"maxParticipants": 5,
		})

		self.assertEqual(result, {"updated": True, "warning": None, "orphanedFacts": 0})
		plan = self.service.get_plan(self.plan_id)
		self.assertEqual(plan["title"], "Renamed")
		self.assertTrue(plan["hideParticipants"])
		self.assertEqual(plan["maxParticipants"], 5)

	def test_extend_window(self):
		self.service.update_plan(self.plan_id, self.host_token, {"dayEndTime": "11:00"})
		self.assertEqual(len(self.service.get_plan(self.plan_id)["slots"]), 4)

	def test_no_valid_fields(self):
		with self.assertRaises(InvalidSpecificationError) as ctx:
			self.service.update_plan(self.plan_id, self.host_token, {"timezone": "Europe/Madrid"})
		self.assertEqual(str(ctx.exception), "No valid fields to update")

	def test_invalid_granularity(self):
		with self.assertRaises(InvalidSpecificationError) as ctx:
			self.service.update_plan(self.plan_id, self.host_token, {"slotMinutes": 10})
		self.assertEqual(str(ctx.exception), "Invalid slot granularity")

	def test_resulting_spec_is_validated(self):
		with self.assertRaises(InvalidSpecificationError):
			self.service.update_plan(self.plan_id, self.host_token, {"endDate": "2025-01-01"})

		# Rejected edits leave the plan unchanged
		self.assertEqual(self.service.get_plan(self.plan_id)["endDate"], "2025-01-06")

	def test_granularity_change_warns(self):
		participant = self.join("Ana")
		self.service.upsert_availability(self.plan_id, participant["token"], [
			{"slotKey": "2025-01-06T09:00", "available": True},
			{"slotKey": "2025-01-06T09:30", "available": False},
		])

		result = self.service.update_plan(self.plan_id, self.host_token, {"slotMinutes": 60})

		self.assertEqual(result["warning"], GRANULARITY_WARNING)
		self.assertEqual(result["orphanedFacts"], 1)

	def test_shrinking_window_counts_orphans(self):
		participant = self.join("Ana")
		self.service.upsert_availability(self.plan_id, participant["token"], [
			{"slotKey": "2025-01-06T09:00", "available": True},
			{"slotKey": "2025-01-06T09:30", "available": True},
		])

		result = self.service.update_plan(self.plan_id, self.host_token, {"dayEndTime": "09:30"})

		self.assertEqual(result, {"updated": True, "warning": None, "orphanedFacts": 1})

	def test_metadata_edit_reports_no_orphans(self):
		participant = self.join("Ana")
		self.service.upsert_availability(self.plan_id, participant["token"], [
			{"slotKey": "2025-01-06T09:00", "available": True},
		])

		result = self.service.update_plan(self.plan_id, self.host_token, {"title": "Renamed"})
		self.assertEqual(result["orphanedFacts"], 0)

	def test_orphaned_facts_excluded_from_results(self):
		participant = self.join("Ana")
		self.service.upsert_availability(self.plan_id, participant["token"], [
			{"slotKey": "2025-01-06T09:30", "available": True},
		])
		self.service.update_plan(self.plan_id, self.host_token, {"slotMinutes": 60})

		results = self.service.get_results(self.plan_id)

		self.assertEqual([s["slotKey"] for s in results["slots"]], ["2025-01-06T09:00"])
		self.assertEqual(results["topSlots"], [])

		with self.assertRaises(ForeignSlotKeyError):
			self.service.upsert_availability(self.plan_id, participant["token"], [
				{"slotKey": "2025-01-06T09:30", "available": True},
			])


class TestJoin(PlanServiceTestCase):

	def test_join(self):
		result = self.join("Ana")

		self.assertTrue(result["created"])
		self.assertEqual(result["planId"], self.plan_id)
		self.assertTrue(result["token"])
		self.assertEqual(self.service.get_plan(self.plan_id)["participantCount"], 1)

	def test_display_name_required(self):
		with self.assertRaises(InvalidSpecificationError) as ctx:
			self.join("   ")
		self.assertEqual(str(ctx.exception), "Display name is required")

	def test_join_missing_plan(self):
		with self.assertRaises(PlanNotFoundError):
			self.service.join_plan("missing", "Ana")

	def test_idempotent_by_external_user(self):
		first = self.join("Ana", external_user_id="tg-1")
		second = self.join("Ana again", external_user_id="tg-1")

		self.assertFalse(second["created"])
		self.assertEqual(second["participantId"], first["participantId"])
		self.assertEqual(second["token"], first["token"])
		self.assertEqual(self.store.count_participants(self.plan_id), 1)

	def test_participant_limit(self):
		self.service.update_plan(self.plan_id, self.host_token, {"maxParticipants": 1})
		first = self.join("Ana", external_user_id="tg-1")

		with self.assertRaises(ParticipantLimitError):
			self.join("Luis")

		# A returning participant is not a new join
		again = self.join("Ana", external_user_id="tg-1")
		self.assertEqual(again["participantId"], first["participantId"])


class TestAvailability(PlanServiceTestCase):

	def test_upsert_and_read(self):
		participant = self.join("Ana")
		result = self.service.upsert_availability(self.plan_id, participant["token"], [
			{"slotKey": "2025-01-06T09:00", "available": True},
			{"slotKey": "2025-01-06T09:30", "available": False},
		])

		self.assertEqual(result, {"updated": 2})
		mine = self.service.get_participant_availability(self.plan_id, participant["token"])
		self.assertEqual(mine["participantId"], participant["participantId"])
		self.assertEqual(mine["slots"], [
			{"slotKey": "2025-01-06T09:00", "available": True},
			{"slotKey": "2025-01-06T09:30", "available": False},
		])

	def test_token_required(self):
		with self.assertRaises(AuthenticationRequiredError):
			self.service.upsert_availability(self.plan_id, "", [{"slotKey": "2025-01-06T09:00"}])

	def test_invalid_token(self):
		with self.assertRaises(AccessDeniedError):
			self.service.get_participant_availability(self.plan_id, "nope")

	def test_token_scoped_to_plan(self):
		other = self.service.create_plan(dict(PLAN_PAYLOAD))
		participant = self.join("Ana")

		with self.assertRaises(AccessDeniedError):
			self.service.get_participant_availability(other["id"], participant["token"])

	def test_foreign_key_writes_nothing(self):
		participant = self.join("Ana")

		with self.assertRaises(ForeignSlotKeyError):
			self.service.upsert_availability(self.plan_id, participant["token"], [
				{"slotKey": "2025-01-06T09:00", "available": True},
				{"slotKey": "2025-01-06T09:15", "available": True},
			])

		mine = self.service.get_participant_availability(self.plan_id, participant["token"])
		self.assertEqual(mine["slots"], [])

	def test_oversized_batch(self):
		service = PlanService(self.store, max_batch_size=1)
		participant = self.join("Ana")

		with self.assertRaises(OversizedBatchError):
			service.upsert_availability(self.plan_id, participant["token"], [
				{"slotKey": "2025-01-06T09:00"},
				{"slotKey": "2025-01-06T09:30"},
			])


class TestResults(PlanServiceTestCase):

	def setUp(self):
		super().setUp()
		self.ana = self.join("Ana", external_user_id="u-ana")
		self.luis = self.join("Luis")
		self.eva = self.join("Eva")

		for participant in (self.ana, self.luis):
			self.service.upsert_availability(self.plan_id, participant["token"], [
				{"slotKey": "2025-01-06T09:00", "available": True},
			])
		self.service.upsert_availability(self.plan_id, self.eva["token"], [
			{"slotKey": "2025-01-06T09:00", "available": False},
			{"slotKey": "2025-01-06T09:30", "available": True},
		])

	def test_results(self):
		results = self.service.get_results(self.plan_id)

		self.assertEqual(results["totalParticipants"], 3)
		self.assertEqual(len(results["slots"]), 2)

		first = results["slots"][0]
		self.assertEqual(first["slotKey"], "2025-01-06T09:00")
		self.assertEqual(first["availableCount"], 2)
		self.assertEqual(
			sorted(first["availableParticipantIds"]),
			sorted([self.ana["participantId"], self.luis["participantId"]])
		)
		self.assertEqual([s["slotKey"] for s in results["topSlots"]], ["2025-01-06T09:00", "2025-01-06T09:30"])

	def test_participants_listed(self):
		results = self.service.get_results(self.plan_id)
		names = {p["id"]: p["displayName"] for p in results["participants"]}

		self.assertEqual(names[self.ana["participantId"]], "Ana")
		self.assertEqual(len(names), 3)

	def test_filter(self):
		results = self.service.get_results(self.plan_id, participant_ids=[self.eva["participantId"]])
		counts = [s["availableCount"] for s in results["slots"]]

		self.assertEqual(counts, [0, 1])
		self.assertEqual(results["totalParticipants"], 3)

	def test_top_limit(self):
		results = self.service.get_results(self.plan_id, top=1)
		self.assertEqual(len(results["topSlots"]), 1)

	def test_privacy_mode(self):
		self.service.update_plan(self.plan_id, self.host_token, {"hideParticipants": True})

		results = self.service.get_results(self.plan_id)

		self.assertTrue(all(p["displayName"] == "" for p in results["participants"]))
		self.assertTrue(all(p["externalUserId"] is None for p in results["participants"]))
		self.assertEqual(results["slots"][0]["availableCount"], 2)

	def test_results_missing_plan(self):
		with self.assertRaises(PlanNotFoundError):
			self.service.get_results("missing")


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
