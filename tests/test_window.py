from datetime import datetime, timedelta
from types import SimpleNamespace

from app.api.activities.window import (
    WindowPhase,
    get_activity_phase,
    get_window_phase,
    get_window_status,
)

OPEN = datetime(2025, 1, 1, 8, 0)
CLOSE = datetime(2025, 1, 1, 8, 30)


def make_activity(**kwargs):
    data = {
        'id': 1,
        'attendance_enabled': True,
        'attendance_open_time': OPEN,
        'attendance_close_time': CLOSE,
    }
    data.update(kwargs)
    return SimpleNamespace(**data)


def test_window_phase_boundaries():
    assert get_window_phase(datetime(2025, 1, 1, 7, 59), OPEN, CLOSE) == WindowPhase.NOT_YET_OPEN
    assert get_window_phase(OPEN, OPEN, CLOSE) == WindowPhase.OPEN
    assert get_window_phase(datetime(2025, 1, 1, 8, 5), OPEN, CLOSE) == WindowPhase.OPEN
    assert get_window_phase(CLOSE, OPEN, CLOSE) == WindowPhase.OPEN
    assert (
        get_window_phase(CLOSE + timedelta(seconds=1), OPEN, CLOSE)
        == WindowPhase.CLOSED
    )


def test_disabled_activity_is_closed():
    activity = make_activity(attendance_enabled=False)
    assert get_activity_phase(activity, datetime(2025, 1, 1, 8, 5)) == WindowPhase.CLOSED


def test_activity_without_window_is_closed():
    activity = make_activity(attendance_open_time=None)
    assert get_activity_phase(activity, datetime(2025, 1, 1, 8, 5)) == WindowPhase.CLOSED


def test_window_status_countdown():
    activity = make_activity()

    status = get_window_status(activity, datetime(2025, 1, 1, 7, 59))
    assert status.phase == WindowPhase.NOT_YET_OPEN
    assert status.seconds_remaining == 60

    status = get_window_status(activity, datetime(2025, 1, 1, 8, 29, 30))
    assert status.phase == WindowPhase.OPEN
    assert status.seconds_remaining == 30

    status = get_window_status(activity, datetime(2025, 1, 1, 9, 0))
    assert status.phase == WindowPhase.CLOSED
    assert status.seconds_remaining is None
    assert status.opens_at == OPEN
    assert status.closes_at == CLOSE
