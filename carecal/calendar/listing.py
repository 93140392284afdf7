"""Appointment list views: upcoming/past split and month grouping."""

from collections.abc import Iterable

from carecal.calendar.models import Appointment, AppointmentStatus, CalendarDate
from carecal.calendar.normalizer import format_month_heading


def _chronological(appointment: Appointment) -> tuple[CalendarDate, int]:
    return (appointment.date, appointment.time.total_minutes)


def split_appointments(
    appointments: Iterable[Appointment], today: CalendarDate
) -> tuple[list[Appointment], list[Appointment]]:
    """
    Split appointments into ``(upcoming, past)``.

    Upcoming entries are dated today or later and not marked past; they are
    sorted soonest first. Past entries are dated before today or marked past,
    most recent first. Cancelled appointments land wherever their date puts them.
    """
    upcoming: list[Appointment] = []
    past: list[Appointment] = []

    for appointment in appointments:
        if appointment.date < today or appointment.status == AppointmentStatus.PAST:
            past.append(appointment)
        else:
            upcoming.append(appointment)

    upcoming.sort(key=_chronological)
    past.sort(key=_chronological, reverse=True)
    return upcoming, past


def group_by_month(appointments: Iterable[Appointment]) -> dict[str, list[Appointment]]:
    """Group by ``"June 2024"`` headings, months and entries in chronological order."""
    groups: dict[str, list[Appointment]] = {}
    for appointment in sorted(appointments, key=_chronological):
        heading = format_month_heading(appointment.date.year, appointment.date.month)
        groups.setdefault(heading, []).append(appointment)
    return groups
