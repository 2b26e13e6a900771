"""
Tests for scheduling/slots.py

Tests slot generation from a recurrence spec.
"""

import unittest
from datetime import date

from meet_availability.meet_availability.scheduling.recurrence import RecurrenceSpec
from meet_availability.meet_availability.scheduling.slot_keys import slot_key_to_local
from meet_availability.meet_availability.scheduling.slots import (
	count_slots,
	generate_slots,
	get_slot_keys,
	iter_day_times,
	iter_working_days,
)


def make_spec(**overrides):
	values = {
		"start_date": date(2025, 1, 6),
		"end_date": date(2025, 1, 6),
		"timezone": "UTC",
		"day_start_time": "09:00",
		"day_end_time": "10:00",
		"slot_minutes": 30,
		"working_days": (1,),
	}
	values.update(overrides)
	return RecurrenceSpec(**values)


class TestSlots(unittest.TestCase):
	"""Tests for slot generation functions."""

	def test_single_monday(self):
		"""A one-hour Monday window in UTC yields two 30 minute slots."""
		slots = generate_slots(make_spec())

		self.assertEqual([slot.slot_key for slot in slots], ["2025-01-06T09:00", "2025-01-06T09:30"])
		self.assertEqual(slots[0].local_date, "2025-01-06")
		self.assertEqual(slots[0].local_time, "09:00")
		self.assertEqual(slots[0].day_of_week, 1)

	def test_slot_dict_is_camel_case(self):
		slot = generate_slots(make_spec())[0]

		self.assertEqual(slot.as_dict(), {
			"slotKey": "2025-01-06T09:00",
			"localDate": "2025-01-06",
			"localTime": "09:00",
			"dayOfWeek": 1,
		})

	def test_non_working_day_skipped(self):
		spec = make_spec(working_days=(2,))
		self.assertEqual(generate_slots(spec), [])

	def test_end_time_is_exclusive(self):
		spec = make_spec(day_end_time="10:15", slot_minutes=15)
		times = [slot.local_time for slot in generate_slots(spec)]

		self.assertEqual(times, ["09:00", "09:15", "09:30", "09:45", "10:00"])

	def test_window_not_multiple_of_granularity(self):
		"""The last slot starts before the end even if it would run past it."""
		spec = make_spec(day_end_time="10:10", slot_minutes=60)
		self.assertEqual(list(iter_day_times(spec)), ["09:00", "10:00"])

	def test_minutes_roll_into_hours(self):
		"""A window starting off the hour steps across hour boundaries."""
		spec = make_spec(day_start_time="09:50", day_end_time="11:00", slot_minutes=30)
		slots = generate_slots(spec)

		self.assertEqual([slot.local_time for slot in slots], ["09:50", "10:20", "10:50"])
		self.assertEqual(slots[1].slot_key, "2025-01-06T10:20")

	def test_range_ending_on_last_representable_date(self):
		spec = make_spec(
			start_date=date(9999, 12, 30),
			end_date=date.max,
			working_days=(0, 1, 2, 3, 4, 5, 6),
		)

		self.assertEqual([day.isoformat() for day in iter_working_days(spec)], ["9999-12-30", "9999-12-31"])
		self.assertEqual(count_slots(spec), 4)

	def test_working_week(self):
		spec = make_spec(
			start_date=date(2025, 1, 5),
			end_date=date(2025, 1, 11),
			working_days=(1, 2, 3, 4, 5),
		)
		days = list(iter_working_days(spec))

		self.assertEqual(days[0], date(2025, 1, 6))
		self.assertEqual(days[-1], date(2025, 1, 10))
		self.assertEqual(len(generate_slots(spec)), 5 * 2)

	def test_local_generation_order(self):
		spec = make_spec(
			start_date=date(2025, 1, 6),
			end_date=date(2025, 1, 8),
			timezone="America/Bogota",
			day_start_time="18:00",
			day_end_time="21:00",
			slot_minutes=60,
			working_days=(0, 1, 2, 3, 4, 5, 6),
		)
		slots = generate_slots(spec)
		order = [(slot.local_date, slot.local_time) for slot in slots]

		self.assertEqual(order, sorted(order))
		# 19:00 Bogota is 00:00 UTC of the next day
		self.assertEqual(slots[1].slot_key, "2025-01-07T00:00")

	def test_count_matches_generate(self):
		specs = [
			make_spec(),
			make_spec(end_date=date(2025, 3, 31), slot_minutes=15, working_days=(0, 1, 2, 3, 4, 5, 6)),
			make_spec(
				start_date=date(2025, 3, 1),
				end_date=date(2025, 11, 30),
				timezone="America/New_York",
				day_start_time="00:00",
				day_end_time="04:00",
				working_days=(0, 6),
			),
		]
		for spec in specs:
			self.assertEqual(count_slots(spec), len(generate_slots(spec)))

	def test_count_limit_stops_early(self):
		spec = make_spec(
			start_date=date(2025, 1, 1),
			end_date=date(2025, 12, 31),
			working_days=(0, 1, 2, 3, 4, 5, 6),
		)

		self.assertEqual(count_slots(spec, limit=10), 11)
		self.assertEqual(count_slots(spec, limit=10_000), 365 * 2)

	def test_keys_are_unique(self):
		spec = make_spec(
			start_date=date(2025, 1, 1),
			end_date=date(2025, 12, 31),
			timezone="America/New_York",
			day_start_time="00:00",
			day_end_time="23:00",
			slot_minutes=30,
			working_days=(0,),
		)
		keys = get_slot_keys(spec)
		self.assertEqual(len(keys), len(set(keys)))

	def test_round_trip_outside_transitions(self):
		spec = make_spec(
			start_date=date(2025, 6, 2),
			end_date=date(2025, 6, 8),
			timezone="Europe/Madrid",
			day_start_time="08:00",
			day_end_time="20:00",
			working_days=(0, 1, 2, 3, 4, 5, 6),
		)
		for slot in generate_slots(spec):
			local = slot_key_to_local(slot.slot_key, spec.timezone)
			self.assertEqual((local.local_date, local.local_time), (slot.local_date, slot.local_time))


class TestSlotsAcrossDST(unittest.TestCase):
	"""Slot generation on America/New_York transition days (both Sundays)."""

	def test_spring_forward(self):
		"""
		On 2025-03-09 02:00-03:00 does not exist. 02:00 and 02:30 resolve
		with EST and land on the same instants as 03:00 and 03:30 EDT.
		Those slots carry the real wall-clock labels and the later
		duplicates are skipped.
		"""
		spec = make_spec(
			start_date=date(2025, 3, 9),
			end_date=date(2025, 3, 9),
			timezone="America/New_York",
			day_start_time="01:00",
			day_end_time="04:00",
			working_days=(0,),
		)
		slots = generate_slots(spec)

		self.assertEqual(
			[slot.slot_key for slot in slots],
			["2025-03-09T06:00", "2025-03-09T06:30", "2025-03-09T07:00", "2025-03-09T07:30"]
		)
		self.assertEqual([slot.local_time for slot in slots], ["01:00", "01:30", "03:00", "03:30"])
		self.assertEqual(count_slots(spec), 4)

		for slot in slots:
			local = slot_key_to_local(slot.slot_key, spec.timezone)
			self.assertEqual((local.local_date, local.local_time), (slot.local_date, slot.local_time))

	def test_fall_back(self):
		"""On 2025-11-02 01:00-02:00 repeats; only the first occurrence is used."""
		spec = make_spec(
			start_date=date(2025, 11, 2),
			end_date=date(2025, 11, 2),
			timezone="America/New_York",
			day_start_time="00:30",
			day_end_time="02:30",
			working_days=(0,),
		)
		slots = generate_slots(spec)

		self.assertEqual(
			[slot.slot_key for slot in slots],
			["2025-11-02T04:30", "2025-11-02T05:00", "2025-11-02T05:30", "2025-11-02T07:00"]
		)
		self.assertEqual([slot.local_time for slot in slots], ["00:30", "01:00", "01:30", "02:00"])


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
