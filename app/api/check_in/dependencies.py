from contextlib import contextmanager
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from app.core.broker import ALL_KEYS, get_settlement_broker
from app.core.cache import ScannerGate, TokenCache
from app.core.config import settings
from app.core.exceptions.check_in_exceptions import CheckInError, ScannerSuspended
from app.core.logger import logger


@lru_cache()
def get_token_cache() -> TokenCache:
    cache = TokenCache()

    def evict_settled(key: str, record: dict) -> None:
        if cache.discard(key):
            logger.info('Evicted cached credential %s after settlement', key)

    get_settlement_broker().subscribe(ALL_KEYS, evict_settled)
    return cache


@lru_cache()
def get_scanner_gate() -> ScannerGate:
    return ScannerGate()


@contextmanager
def scanner_hold(gate: ScannerGate, scanner_id: Optional[str]):
    """Runs one scan decision; rejections tell the scanner when to resume."""
    try:
        with gate.hold(
            scanner_id,
            on_success=timedelta(seconds=settings.SCAN_SUSPEND_SUCCESS_SECONDS),
            on_failure=timedelta(seconds=settings.SCAN_SUSPEND_FAILURE_SECONDS),
        ):
            yield
    except ScannerSuspended:
        raise
    except CheckInError as e:
        e.detail['resume_after_seconds'] = settings.SCAN_SUSPEND_FAILURE_SECONDS
        raise
