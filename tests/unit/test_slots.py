"""Unit tests for slot generation."""

import pytest

from carecal.calendar.models import CalendarDate, LocalMoment, TimeOfDay, TimeSlot
from carecal.calendar.slots import SlotPolicy, generate_slots, time_slots
from carecal.config import get_settings

TODAY = CalendarDate(2024, 6, 1)


def _at(hour: int, minute: int) -> LocalMoment:
    return LocalMoment(TODAY, TimeOfDay(hour, minute))


class TestSlotGenerator:
    def test_future_day_has_full_window(self):
        slots = list(generate_slots(CalendarDate(2024, 6, 2), _at(16, 59)))

        assert len(slots) == 16
        assert slots[0] == TimeOfDay(9, 0)
        assert slots[-1] == TimeOfDay(16, 30)
        assert all(
            (b.total_minutes - a.total_minutes) == 30 for a, b in zip(slots, slots[1:])
        )

    @pytest.mark.parametrize(
        "now",
        [_at(0, 0), _at(9, 15), _at(12, 30), _at(23, 59)],
    )
    def test_future_day_ignores_current_time(self, now):
        assert len(list(generate_slots(CalendarDate(2025, 1, 1), now))) == 16

    def test_past_day_is_empty(self):
        assert list(generate_slots(CalendarDate(2024, 5, 31), _at(8, 0))) == []

    def test_today_quarter_past_starts_at_half_hour(self):
        slots = list(generate_slots(TODAY, _at(9, 15)))
        assert slots[0] == TimeOfDay(9, 30)
        assert len(slots) == 15

    def test_today_after_half_hour_starts_next_hour(self):
        slots = list(generate_slots(TODAY, _at(10, 40)))
        assert slots[0] == TimeOfDay(11, 0)

    def test_today_on_boundary_skips_current_slot(self):
        slots = list(generate_slots(TODAY, _at(9, 0)))
        assert slots[0] == TimeOfDay(9, 30)

    def test_today_before_window_has_full_window(self):
        assert len(list(generate_slots(TODAY, _at(7, 45)))) == 16

    def test_today_rounding_past_close_is_empty(self):
        assert list(generate_slots(TODAY, _at(16, 45))) == []
        assert list(generate_slots(TODAY, _at(16, 30))) == []

    def test_today_last_slot_available(self):
        assert list(generate_slots(TODAY, _at(16, 0))) == [TimeOfDay(16, 30)]

    def test_result_is_one_shot(self):
        slots = generate_slots(CalendarDate(2024, 6, 2), _at(9, 0))
        assert len(list(slots)) == 16
        assert list(slots) == []

    def test_fresh_sequence_each_call(self):
        first = list(generate_slots(TODAY, _at(9, 15)))
        later = list(generate_slots(TODAY, _at(13, 5)))
        assert first[0] == TimeOfDay(9, 30)
        assert later[0] == TimeOfDay(13, 30)

    def test_custom_policy(self):
        policy = SlotPolicy(start_hour=8, end_hour=10, interval_minutes=15)
        slots = list(generate_slots(CalendarDate(2024, 6, 2), _at(9, 0), policy))
        assert [s.isoformat() for s in slots] == [
            "08:00", "08:15", "08:30", "08:45", "09:00", "09:15", "09:30", "09:45",
        ]

    def test_policy_from_settings_matches_default(self):
        assert SlotPolicy.from_settings(get_settings()) == SlotPolicy()

    def test_time_slots_carry_date(self):
        target = CalendarDate(2024, 6, 2)
        slots = time_slots(target, _at(9, 0))
        assert slots[0] == TimeSlot(target, TimeOfDay(9, 0))
        assert all(slot.date == target for slot in slots)
