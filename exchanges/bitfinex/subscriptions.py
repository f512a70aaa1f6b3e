"""
Subscription Registry

Bitfinex assigns an integer channel id to every subscription and only sends
that id on data frames. The registry remembers what each id refers to.

Writes come from the receive loop (subscribe acks) while reads for unsubscribe
come from whichever task or thread calls unsubscribe, so every access goes
through one lock.
"""

import threading
from typing import Dict, List, Optional

from core.schemas import ChannelKind, Subscription


class SubscriptionRegistry:
    """
    Thread-safe mapping of channel id -> Subscription.

    Example:
        >>> registry = SubscriptionRegistry()
        >>> registry.record(5, ChannelKind.TRADES, "tBTCUSD")
        >>> registry.find_by_kind_and_symbol(ChannelKind.TRADES, "tBTCUSD")
        5
    """

    def __init__(self) -> None:
        self._by_id: Dict[int, Subscription] = {}
        self._lock = threading.Lock()

    def record(self, channel_id: int, kind: ChannelKind, symbol: str) -> Subscription:
        """Insert or overwrite the descriptor for a channel id."""
        subscription = Subscription(channel_id=channel_id, kind=kind, symbol=symbol)
        with self._lock:
            self._by_id[channel_id] = subscription
        return subscription

    def resolve(self, channel_id: int) -> Optional[Subscription]:
        with self._lock:
            return self._by_id.get(channel_id)

    def find_by_kind_and_symbol(self, kind: ChannelKind, symbol: str) -> Optional[int]:
        """
        Reverse lookup used by unsubscribe.

        When several channels match (e.g., candles for the same symbol at two
        timeframes) the lowest channel id is returned.
        """
        with self._lock:
            matches = [
                channel_id
                for channel_id, sub in self._by_id.items()
                if sub.kind == kind and sub.symbol == symbol
            ]
        return min(matches) if matches else None

    def remove(self, channel_id: int) -> Optional[Subscription]:
        with self._lock:
            return self._by_id.pop(channel_id, None)

    def clear(self) -> None:
        with self._lock:
            self._by_id.clear()

    def snapshot(self) -> List[Subscription]:
        """Current subscriptions ordered by channel id."""
        with self._lock:
            return [self._by_id[k] for k in sorted(self._by_id)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)
