"""Per-event processing results and their aggregate log."""

from collections import Counter
from dataclasses import dataclass
from enum import Enum

from loguru import logger


class OutcomeStatus(str, Enum):
    ok = "ok"
    skipped = "skipped"
    failed = "failed"


@dataclass(frozen=True)
class Outcome:
    """Result of processing one event.

    ``action`` names the step that produced it (e.g. "ingest", "revoke").
    ``key`` is the canonical cache key when one could be determined.
    """

    status: OutcomeStatus
    action: str
    key: str | None = None
    reason: str = ""

    @classmethod
    def ok(cls, action: str, key: str | None = None, reason: str = "") -> "Outcome":
        return cls(OutcomeStatus.ok, action, key, reason)

    @classmethod
    def skipped(cls, action: str, key: str | None = None, reason: str = "") -> "Outcome":
        return cls(OutcomeStatus.skipped, action, key, reason)

    @classmethod
    def failed(cls, action: str, key: str | None = None, reason: str = "") -> "Outcome":
        return cls(OutcomeStatus.failed, action, key, reason)

    def __str__(self) -> str:
        parts = [f"{self.action} {self.status.value}"]
        if self.key:
            parts.append(self.key)
        if self.reason:
            parts.append(f"({self.reason})")
        return " ".join(parts)


class OutcomeLog:
    """Logs every outcome and keeps running counts per status."""

    def __init__(self):
        self._counts: Counter[OutcomeStatus] = Counter()

    def record(self, outcome: Outcome) -> Outcome:
        self._counts[outcome.status] += 1
        if outcome.status == OutcomeStatus.failed:
            logger.warning(f"AntiDelete: {outcome}")
        elif outcome.status == OutcomeStatus.skipped:
            logger.info(f"AntiDelete: {outcome}")
        else:
            logger.debug(f"AntiDelete: {outcome}")
        return outcome

    def summary(self) -> dict[str, int]:
        return {status.value: self._counts[status] for status in OutcomeStatus}
