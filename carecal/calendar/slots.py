"""Time slot generation for the scheduling dialog."""

from collections.abc import Iterator
from dataclasses import dataclass

from carecal.calendar.models import CalendarDate, LocalMoment, TimeOfDay, TimeSlot


@dataclass(frozen=True)
class SlotPolicy:
    """Working window and granularity for offerable slots."""

    start_hour: int = 9
    end_hour: int = 17
    interval_minutes: int = 30

    @classmethod
    def from_settings(cls, settings) -> "SlotPolicy":
        return cls(
            start_hour=settings.slot_start_hour,
            end_hour=settings.slot_end_hour,
            interval_minutes=settings.slot_interval_minutes,
        )


DEFAULT_POLICY = SlotPolicy()


def _first_open_minute(now: TimeOfDay, interval: int) -> int:
    # Next boundary strictly after "now"; 09:15 -> 09:30, 09:30 -> 10:00
    return (now.total_minutes // interval + 1) * interval


def generate_slots(
    target: CalendarDate,
    now: LocalMoment,
    policy: SlotPolicy = DEFAULT_POLICY,
) -> Iterator[TimeOfDay]:
    """
    Yield the offerable start times for ``target`` in ascending order.

    Args:
        target: Day being scheduled
        now: Caller's current wall-clock date and time
        policy: Working window and granularity

    Returns:
        A fresh one-shot iterator. Past days yield nothing, future days the
        full window, and the current day only slots after the rounded-up
        current time.
    """
    if target < now.date:
        return

    start = policy.start_hour * 60
    end = policy.end_hour * 60
    if target == now.date:
        start = max(start, _first_open_minute(now.time, policy.interval_minutes))

    for minutes in range(start, end, policy.interval_minutes):
        yield TimeOfDay.from_minutes(minutes)


def time_slots(
    target: CalendarDate,
    now: LocalMoment,
    policy: SlotPolicy = DEFAULT_POLICY,
) -> list[TimeSlot]:
    """Materialize ``generate_slots`` as date-bound ``TimeSlot`` values."""
    return [TimeSlot(target, slot) for slot in generate_slots(target, now, policy)]
