from contextlib import contextmanager
from datetime import datetime, timedelta
from threading import Lock
from typing import Dict, Optional, Set

from pydantic import BaseModel

from app.core.exceptions.check_in_exceptions import ScannerSuspended
from app.core.logger import logger
from app.core.utils import current_time, seconds_between


class CachedCredential(BaseModel):
    key: str
    payload: str
    expires_at: datetime


class TokenCache:
    """Ephemeral credential cache keyed by ``{activity_id}_{participant_id}``.

    Entries are evicted lazily on every access once ``expires_at`` is reached,
    and explicitly through ``discard`` when a settlement appears for the key.
    """

    def __init__(self):
        self._cache: Dict[str, CachedCredential] = {}
        self._lock = Lock()

    def get(
        self, key: str, now: Optional[datetime] = None
    ) -> Optional[CachedCredential]:
        with self._lock:
            self._clean_expired(now or current_time())
            return self._cache.get(key)

    def put(self, entry: CachedCredential) -> None:
        with self._lock:
            self._cache[entry.key] = entry

    def discard(self, key: str) -> bool:
        """Drop the entry for key. Returns True if something was removed."""
        with self._lock:
            return self._cache.pop(key, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def _clean_expired(self, now: datetime) -> None:
        """Remove expired credentials - already protected by lock in public methods"""
        expired = [k for k, entry in self._cache.items() if entry.expires_at <= now]
        for key in expired:
            logger.debug('Evicting expired credential %s', key)
            del self._cache[key]


class ScannerGate:
    """Serializes decodes coming from a single scanner device.

    A scanner is busy while a decode is being processed and stays suspended
    for a fixed interval after each decision.
    """

    def __init__(self):
        self._processing: Set[str] = set()
        self._suspended_until: Dict[str, datetime] = {}
        self._lock = Lock()

    def try_begin(self, scanner_id: str, now: Optional[datetime] = None) -> bool:
        now = now or current_time()
        with self._lock:
            if scanner_id in self._processing:
                return False
            until = self._suspended_until.get(scanner_id)
            if until and until > now:
                return False
            self._suspended_until.pop(scanner_id, None)
            self._processing.add(scanner_id)
            return True

    def finish(
        self,
        scanner_id: str,
        suspend: timedelta,
        now: Optional[datetime] = None,
    ) -> None:
        now = now or current_time()
        with self._lock:
            self._processing.discard(scanner_id)
            self._suspended_until[scanner_id] = now + suspend

    def retry_after(self, scanner_id: str, now: Optional[datetime] = None) -> int:
        now = now or current_time()
        with self._lock:
            if scanner_id in self._processing:
                return 1
            until = self._suspended_until.get(scanner_id)
            if not until:
                return 0
            return max(seconds_between(now, until), 1)

    @contextmanager
    def hold(
        self,
        scanner_id: Optional[str],
        *,
        on_success: timedelta,
        on_failure: timedelta,
    ):
        if not scanner_id:
            yield
            return

        if not self.try_begin(scanner_id):
            wait = self.retry_after(scanner_id)
            logger.info('Scanner %s suspended for %s more seconds', scanner_id, wait)
            raise ScannerSuspended(retry_after_seconds=wait)

        succeeded = False
        try:
            yield
            succeeded = True
        finally:
            self.finish(scanner_id, on_success if succeeded else on_failure)
