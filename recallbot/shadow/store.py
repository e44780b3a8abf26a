"""Bounded shadow store for recently seen conversation entries."""

from collections import OrderedDict

from loguru import logger

from recallbot.shadow.models import CacheEntry, CacheKey
from recallbot.shadow.snapshot import SnapshotPersistence

DEFAULT_CAPACITY = 500


class ShadowStore:
    """
    Key -> entry store bounded by count, evicting in insertion order.

    Eviction is pure FIFO: the entry inserted earliest among those held goes
    first. Reads never reorder entries, and replacing an existing key keeps
    its original position. There is no time-based expiry.

    Every mutation writes a metadata snapshot when ``persistence`` is set.
    All mutation happens through ``put``/``clear``/``load_snapshot`` on the
    single consumer task, so no locking is required.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        persistence: SnapshotPersistence | None = None,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.persistence = persistence
        self._entries: OrderedDict[CacheKey, CacheEntry] = OrderedDict()

    # ── public API ──────────────────────────────────────────────

    def put(self, key: CacheKey, entry: CacheEntry) -> CacheKey | None:
        """Insert or replace ``entry`` under ``key``.

        Returns:
            The evicted key, or None if nothing was evicted.
        """
        self._entries[key] = entry

        evicted = None
        if len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"AntiDelete: evicted {evicted}")

        self._flush()
        return evicted

    def get(self, key: CacheKey) -> CacheEntry | None:
        """Look up ``key`` without affecting eviction order."""
        return self._entries.get(key)

    def clear(self) -> None:
        """Drop every entry and persist an empty snapshot."""
        self._entries.clear()
        self._flush()

    def size(self) -> int:
        return len(self._entries)

    def keys(self) -> list[CacheKey]:
        """Keys ordered oldest -> newest."""
        return list(self._entries.keys())

    def load_snapshot(self) -> int:
        """Replace the contents with the persisted metadata.

        Restored media entries carry no payload. If the snapshot holds more
        than ``capacity`` entries, the oldest are dropped.

        Returns:
            Number of entries held after loading.
        """
        if self.persistence is None:
            return 0

        loaded = self.persistence.load()
        items = list(loaded.items())
        if len(items) > self.capacity:
            dropped = len(items) - self.capacity
            logger.info(f"AntiDelete: snapshot exceeds capacity, dropping {dropped} oldest entries")
            items = items[dropped:]

        self._entries = OrderedDict(items)
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    # ── internal helpers ────────────────────────────────────────

    def _flush(self) -> None:
        if self.persistence is not None:
            self.persistence.flush(self._entries.items())
