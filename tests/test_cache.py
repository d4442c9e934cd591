from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from app.core.cache import CachedCredential, ScannerGate, TokenCache
from app.core.exceptions.check_in_exceptions import InvalidCode, ScannerSuspended

NOW = datetime(2025, 1, 1, 8, 5)


def test_token_cache_lazy_expiry():
    cache = TokenCache()
    cache.put(CachedCredential(key='1_1', payload='abc', expires_at=NOW + timedelta(minutes=5)))

    assert cache.get('1_1', NOW + timedelta(minutes=4)).payload == 'abc'
    assert cache.get('1_1', NOW + timedelta(minutes=5)) is None
    assert len(cache) == 0


def test_token_cache_discard():
    cache = TokenCache()
    cache.put(CachedCredential(key='1_1', payload='abc', expires_at=NOW + timedelta(minutes=5)))

    assert cache.discard('1_1') is True
    assert cache.discard('1_1') is False
    assert cache.get('1_1', NOW) is None


def test_scanner_gate_suspends_after_decision():
    gate = ScannerGate()

    assert gate.try_begin('gate-1', NOW) is True
    assert gate.try_begin('gate-1', NOW) is False
    gate.finish('gate-1', timedelta(seconds=10), NOW)

    assert gate.retry_after('gate-1', NOW + timedelta(seconds=4)) == 6
    assert gate.try_begin('gate-1', NOW + timedelta(seconds=9)) is False
    assert gate.try_begin('gate-1', NOW + timedelta(seconds=10)) is True


def test_scanner_gate_hold():
    gate = ScannerGate()
    success = timedelta(seconds=10)
    failure = timedelta(seconds=5)

    with patch('app.core.cache.current_time', return_value=NOW):
        with pytest.raises(InvalidCode):
            with gate.hold('gate-1', on_success=success, on_failure=failure):
                raise InvalidCode()

        with pytest.raises(ScannerSuspended) as exc:
            with gate.hold('gate-1', on_success=success, on_failure=failure):
                pass
        assert exc.value.detail['retry_after_seconds'] == 5

    with patch('app.core.cache.current_time', return_value=NOW + timedelta(seconds=5)):
        with gate.hold('gate-1', on_success=success, on_failure=failure):
            pass
        assert gate.retry_after('gate-1') == 10


def test_scanner_gate_ignores_anonymous_scanners():
    gate = ScannerGate()
    for _ in range(3):
        with gate.hold(None, on_success=timedelta(seconds=10), on_failure=timedelta(seconds=5)):
            pass
