"""Single-consumer queue of ordered event batches."""

import asyncio

from recallbot.bus.events import ConversationEvent


class EventBus:
    """
    Ordered queue of inbound event batches.

    Channels publish batches in the order the transport delivered them; a
    single consumer drains them one batch at a time, so every event is
    processed strictly after the ones published before it.
    """

    def __init__(self):
        self._batches: asyncio.Queue[list[ConversationEvent]] = asyncio.Queue()

    async def publish(self, batch: list[ConversationEvent]) -> None:
        """Publish a batch of events. Empty batches are dropped."""
        if batch:
            await self._batches.put(list(batch))

    async def publish_one(self, event: ConversationEvent) -> None:
        """Publish a single event as its own batch."""
        await self.publish([event])

    async def consume(self) -> list[ConversationEvent]:
        """Wait for and return the next batch."""
        return await self._batches.get()

    @property
    def size(self) -> int:
        """Number of batches waiting to be consumed."""
        return self._batches.qsize()
