"""Read-time derivation of the status shown for an activity.

Absence is never stored: an activity that has ended with attendance enabled
and no record for the participant is reported as absent here and nowhere
else.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from app.api.attendances.schemas import AttendanceDisplay, AttendanceStatus

POINTS = {
    AttendanceStatus.PRESENT: 100,
    AttendanceStatus.LATE: 75,
    AttendanceStatus.EXCUSED: 50,
    AttendanceStatus.SICK: 50,
    AttendanceStatus.ABSENT: 0,
    AttendanceStatus.PENDING_APPROVAL: 0,
}


class ScheduleStatus(str, Enum):
    UPCOMING = 'upcoming'
    ONGOING = 'ongoing'
    INFO_ONLY = 'info_only'


DISPLAY = {
    AttendanceStatus.PRESENT: ('Present', 'green'),
    AttendanceStatus.LATE: ('Late', 'yellow'),
    AttendanceStatus.EXCUSED: ('Excused', 'blue'),
    AttendanceStatus.SICK: ('Sick', 'blue'),
    AttendanceStatus.ABSENT: ('Absent', 'red'),
    AttendanceStatus.PENDING_APPROVAL: ('Pending Approval', 'orange'),
    ScheduleStatus.UPCOMING: ('Upcoming', 'muted'),
    ScheduleStatus.ONGOING: ('Ongoing', 'blue'),
    ScheduleStatus.INFO_ONLY: ('Info Only', 'gray'),
}


def calculate_points(status: str) -> int:
    try:
        return POINTS[AttendanceStatus(status)]
    except ValueError:
        return 0


def _display(status, points: int, derived: bool) -> AttendanceDisplay:
    label, color = DISPLAY[status]
    return AttendanceDisplay(
        status=status.value,
        label=label,
        color_class=color,
        points=points,
        derived=derived,
    )


def reconcile(activity, record, now: datetime) -> AttendanceDisplay:
    if record is not None:
        status = AttendanceStatus(record.status)
        points = record.points
        if points is None:
            points = calculate_points(status)
        return _display(status, points, derived=False)

    if not activity.attendance_enabled:
        return _display(ScheduleStatus.INFO_ONLY, 0, derived=True)

    ends_at: Optional[datetime] = activity.ends_at
    if ends_at and now > ends_at:
        return _display(AttendanceStatus.ABSENT, 0, derived=True)

    starts_at = activity.start_datetime or activity.attendance_open_time
    if starts_at and now >= starts_at:
        return _display(ScheduleStatus.ONGOING, 0, derived=True)

    return _display(ScheduleStatus.UPCOMING, 0, derived=True)
