from functools import lru_cache
from threading import Lock
from typing import Callable, Dict, List, Optional

from app.core.logger import logger

SettlementCallback = Callable[[str, Optional[dict]], None]

# Subscriptions registered under this key receive every settlement
ALL_KEYS = '*'


class Subscription:
    def __init__(
        self, broker: 'SettlementBroker', key: str, callback: SettlementCallback
    ):
        self.key = key
        self.callback = callback
        self._broker = broker
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self._broker._remove(self)
            self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class SettlementBroker:
    """In-process fan-out of committed attendance settlements.

    Publishers call ``publish`` after a record is committed; subscribers get
    ``callback(key, record)`` with the record serialized as a dict.
    """

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._lock = Lock()

    def subscribe(self, key: str, callback: SettlementCallback) -> Subscription:
        subscription = Subscription(self, key, callback)
        with self._lock:
            self._subscriptions.setdefault(key, []).append(subscription)
        logger.debug('Subscribed to settlements for %s', key)
        return subscription

    def publish(self, key: str, record: Optional[dict]) -> int:
        """Deliver record to subscribers of key. Returns the number notified."""
        with self._lock:
            targets = list(self._subscriptions.get(key, []))
            targets += self._subscriptions.get(ALL_KEYS, [])

        logger.info('Publishing settlement for %s to %s subscribers', key, len(targets))
        for subscription in targets:
            try:
                subscription.callback(key, record)
            except Exception as e:
                logger.error('Settlement subscriber for %s failed: %s', key, e)
        return len(targets)

    def subscriber_count(self, key: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(key, []))

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subscriptions = self._subscriptions.get(subscription.key, [])
            if subscription in subscriptions:
                subscriptions.remove(subscription)
            if not subscriptions:
                self._subscriptions.pop(subscription.key, None)
        logger.debug('Unsubscribed from settlements for %s', subscription.key)


@lru_cache()
def get_settlement_broker() -> SettlementBroker:
    return SettlementBroker()
