"""
Bounded in-memory cache with per-entry expiry.

Used for values too cheap to persist but too slow to recompute on every
request (generated match predictions). The owner creates the instance and
decides its size and TTL; there is no module-level instance.
"""

import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional


class PredictionCache:
    """
    LRU cache whose entries expire `ttl` seconds after they were stored.

    Args:
        max_entries: Entries beyond this are evicted, least recently used first
        ttl: Lifetime of an entry in seconds
        clock: Monotonic clock in seconds (tests inject a fake)
    """

    def __init__(
        self,
        max_entries: int,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl = ttl
        self.clock = clock
        self._entries: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the value for `key` if present and fresh, else None."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return value

    def put(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self.clock() + self.ttl, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
