"""Unit tests for appointment list views."""

from carecal.calendar.listing import group_by_month, split_appointments
from carecal.calendar.models import Appointment, AppointmentStatus, CalendarDate, TimeOfDay

TODAY = CalendarDate(2024, 6, 1)


def _appointment(id: str, day: str, hour: int = 9, **extra) -> Appointment:
    return Appointment(
        id=id,
        doctor_name="Smith",
        specialty="Cardiology",
        date=day,
        time=TimeOfDay(hour, 0),
        location="City Clinic",
        **extra,
    )


def test_split_upcoming_and_past() -> None:
    appointments = [
        _appointment("later", "2024-06-20"),
        _appointment("yesterday", "2024-05-31"),
        _appointment("today", "2024-06-01", hour=15),
        _appointment("attended", "2024-06-01", hour=8, status=AppointmentStatus.PAST),
        _appointment("cancelled", "2024-06-10", status=AppointmentStatus.CANCELLED),
        _appointment("older", "2024-04-02"),
    ]

    upcoming, past = split_appointments(appointments, TODAY)

    assert [a.id for a in upcoming] == ["today", "cancelled", "later"]
    assert [a.id for a in past] == ["attended", "yesterday", "older"]


def test_group_by_month() -> None:
    groups = group_by_month(
        [
            _appointment("b", "2024-07-02"),
            _appointment("a", "2024-06-15", hour=11),
            _appointment("c", "2024-06-15", hour=9),
            _appointment("d", "2025-01-03"),
        ]
    )

    assert list(groups) == ["June 2024", "July 2024", "January 2025"]
    assert [a.id for a in groups["June 2024"]] == ["c", "a"]


def test_empty_inputs() -> None:
    assert split_appointments([], TODAY) == ([], [])
    assert group_by_month([]) == {}
