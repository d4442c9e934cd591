"""Attendance window phases.

Every function here is pure: callers pass ``now`` explicitly. Business rules
must evaluate the phase at call time rather than reuse a value computed by a
UI tick.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from app.core.config import settings
from app.core.utils import seconds_between


class WindowPhase(str, Enum):
    NOT_YET_OPEN = 'NOT_YET_OPEN'
    OPEN = 'OPEN'
    CLOSED = 'CLOSED'


class WindowStatus(BaseModel):
    activity_id: int
    phase: WindowPhase
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None
    seconds_remaining: Optional[int] = None
    tick_seconds: int = settings.WINDOW_TICK_SECONDS


def get_window_phase(
    now: datetime, open_time: datetime, close_time: datetime
) -> WindowPhase:
    """Both ends of the window are inclusive."""
    if now < open_time:
        return WindowPhase.NOT_YET_OPEN
    if now > close_time:
        return WindowPhase.CLOSED
    return WindowPhase.OPEN


def get_activity_phase(activity, now: datetime) -> WindowPhase:
    # Disabled or unconfigured windows never open
    if (
        not activity.attendance_enabled
        or not activity.attendance_open_time
        or not activity.attendance_close_time
    ):
        return WindowPhase.CLOSED
    return get_window_phase(
        now, activity.attendance_open_time, activity.attendance_close_time
    )


def get_window_status(activity, now: datetime) -> WindowStatus:
    phase = get_activity_phase(activity, now)

    seconds_remaining = None
    if phase == WindowPhase.NOT_YET_OPEN:
        seconds_remaining = seconds_between(now, activity.attendance_open_time)
    elif phase == WindowPhase.OPEN:
        seconds_remaining = seconds_between(now, activity.attendance_close_time)

    return WindowStatus(
        activity_id=activity.id,
        phase=phase,
        opens_at=activity.attendance_open_time,
        closes_at=activity.attendance_close_time,
        seconds_remaining=seconds_remaining,
    )
