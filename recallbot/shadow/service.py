"""AntiDelete service: owns the shadow store and processes event batches."""

import asyncio
from pathlib import Path

from loguru import logger

from recallbot.bus.events import ConversationEvent
from recallbot.bus.queue import EventBus
from recallbot.channels.base import BaseChannel
from recallbot.config.schema import AntiDeleteConfig
from recallbot.shadow.ingest import IngestClassifier
from recallbot.shadow.outcome import Outcome, OutcomeLog
from recallbot.shadow.revoke import RevokeHandler
from recallbot.shadow.snapshot import SnapshotPersistence
from recallbot.shadow.store import ShadowStore


def build_store(config: AntiDeleteConfig) -> ShadowStore:
    """Create a store with snapshot persistence at the configured path."""
    persistence = SnapshotPersistence(Path(config.snapshot_path).expanduser())
    return ShadowStore(capacity=config.capacity, persistence=persistence)


class AntiDeleteService:
    """
    Caches every inbound conversation event and reports deleted ones.

    The host builds one instance and feeds it batches, either directly via
    ``handle_batch`` or by running ``run`` against an event bus. Batches are
    processed one at a time and events within a batch strictly in order; no
    event, however malformed, stops the ones after it.
    """

    def __init__(
        self,
        config: AntiDeleteConfig,
        channel: BaseChannel,
        store: ShadowStore | None = None,
    ):
        self.config = config
        self.channel = channel
        self.store = store if store is not None else build_store(config)
        self.store.load_snapshot()
        self.ingestor = IngestClassifier(
            self.store,
            acquisition_timeout_s=config.acquisition_timeout_s,
            max_media_bytes=config.max_media_mb * 1024 * 1024,
        )
        self.revokes = RevokeHandler(self.store, channel, config.owner_chat_id)
        self.outcomes = OutcomeLog()
        self._enabled = config.enabled
        self._running = False

        if not config.owner_chat_id:
            logger.warning("AntiDelete: owner_chat_id not configured, recovery reports are disabled")

    # ── public API ──────────────────────────────────────────────

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        logger.info(f"AntiDelete {'enabled' if enabled else 'disabled'}")

    async def handle_batch(self, events: list[ConversationEvent]) -> list[Outcome]:
        """Process a batch in order and return one outcome per event."""
        return [await self.handle_event(event) for event in events]

    async def handle_event(self, event: ConversationEvent) -> Outcome:
        """Route one event to ingest or revoke handling."""
        action = "revoke" if event.is_revoke else "ingest"
        if not self._enabled:
            return self.outcomes.record(Outcome.skipped(action, reason="disabled"))

        try:
            if event.is_revoke:
                outcome = await self.revokes.handle(event)
            else:
                outcome = await self.ingestor.ingest(event)
        except Exception as e:
            logger.exception(f"AntiDelete: unexpected error in {action}")
            outcome = Outcome.failed(action, reason=f"unexpected error: {e}")
        return self.outcomes.record(outcome)

    async def run(self, bus: EventBus) -> None:
        """Consume batches from ``bus`` until ``stop`` is called."""
        self._running = True
        logger.info(
            f"AntiDelete running (capacity {self.store.capacity}, "
            f"{self.store.size()} entries restored)"
        )
        while self._running:
            try:
                batch = await asyncio.wait_for(bus.consume(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            await self.handle_batch(batch)

    def stop(self) -> None:
        self._running = False

    def clear(self) -> None:
        """Drop every cached entry and persist the empty snapshot."""
        self.store.clear()
        logger.info("AntiDelete cache cleared")

    def size(self) -> int:
        return self.store.size()

    def stats(self) -> dict[str, int]:
        """Outcome counts plus the current cache size."""
        return {**self.outcomes.summary(), "cached": self.store.size()}
