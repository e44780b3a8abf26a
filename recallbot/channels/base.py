"""Base channel interface for chat transports."""

from abc import ABC, abstractmethod

from recallbot.bus.events import OutboundReport
from recallbot.bus.queue import EventBus


class BaseChannel(ABC):
    """
    Abstract base class for chat transports.

    A channel delivers inbound conversation events (including revoke notices)
    to the event bus in the order the transport produced them, and sends
    recovery reports back out.
    """

    name: str = "base"

    def __init__(self, config, bus: EventBus):
        self.config = config
        self.bus = bus
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """Connect and start publishing events. Runs until stopped."""

    @abstractmethod
    async def stop(self) -> None:
        """Disconnect and release resources."""

    @abstractmethod
    async def send_report(self, report: OutboundReport) -> None:
        """Send a report to ``report.chat_id``.

        Raises on delivery failure; callers decide whether to retry.
        """

    @abstractmethod
    async def resolve_conversation_name(self, conversation_id: str) -> str:
        """Return a display name for a group conversation.

        Raises on lookup failure.
        """

    @property
    def is_running(self) -> bool:
        return self._running
