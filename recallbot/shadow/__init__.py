"""Deleted-message shadow store."""

from recallbot.shadow.models import (
    MEDIA_KINDS,
    CacheEntry,
    CacheKey,
    EntryKind,
    MediaEntry,
    RawEntry,
    TextEntry,
    entry_from_metadata,
)
from recallbot.shadow.outcome import Outcome, OutcomeLog, OutcomeStatus
from recallbot.shadow.snapshot import SnapshotPersistence
from recallbot.shadow.store import ShadowStore

__all__ = [
    "MEDIA_KINDS",
    "CacheEntry",
    "CacheKey",
    "EntryKind",
    "MediaEntry",
    "Outcome",
    "OutcomeLog",
    "OutcomeStatus",
    "RawEntry",
    "ShadowStore",
    "SnapshotPersistence",
    "TextEntry",
    "entry_from_metadata",
]
