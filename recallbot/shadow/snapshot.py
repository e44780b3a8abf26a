"""Best-effort JSON snapshots of cache metadata.

The snapshot file maps canonical cache keys to entry metadata, oldest entry
first::

    {
      "chat-1:msg-9": {"message_id": "msg-9", "kind": "text", "body": "hi", ...},
      "chat-1:msg-10": {"message_id": "msg-10", "kind": "image", "size_bytes": 5120, ...}
    }

Payload bytes are never written, so media restored from a snapshot can be
reported on but not re-sent. Every failure here is logged and swallowed.
"""

import json
import os
from pathlib import Path
from typing import Iterable

from loguru import logger

from recallbot.shadow.models import CacheEntry, CacheKey, entry_from_metadata


class SnapshotPersistence:
    """Reads and writes the metadata snapshot at a fixed path."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        self.available = True
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.available = False
            logger.error(
                f"AntiDelete: cannot create snapshot directory {self.path.parent}: {e}; "
                "running in memory-only mode"
            )

    def flush(self, entries: Iterable[tuple[CacheKey, CacheEntry]]) -> bool:
        """Overwrite the snapshot with the metadata of ``entries``.

        Returns True if the snapshot was written.
        """
        if not self.available:
            return False

        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            data = {str(key): entry.to_metadata() for key, entry in entries}
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            os.replace(tmp, self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"AntiDelete: snapshot flush to {self.path} failed: {e}")
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            return False

    def load(self) -> dict[CacheKey, CacheEntry]:
        """Load metadata-only entries in snapshot order.

        A missing file is created empty. Unreadable or malformed files yield
        an empty mapping; malformed records are skipped individually.
        """
        if not self.available:
            return {}

        if not self.path.exists():
            try:
                self.path.write_text("{}", encoding="utf-8")
            except OSError as e:
                logger.error(f"AntiDelete: failed to create snapshot {self.path}: {e}")
            return {}

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.warning(f"AntiDelete: snapshot {self.path} unreadable, starting empty: {e}")
            return {}

        if not isinstance(raw, dict):
            logger.warning(f"AntiDelete: snapshot {self.path} is not a JSON object, starting empty")
            return {}

        loaded: dict[CacheKey, CacheEntry] = {}
        for key_str, record in raw.items():
            try:
                if not isinstance(record, dict):
                    raise ValueError("record is not an object")
                key = CacheKey.parse(key_str)
                loaded[key] = entry_from_metadata(record)
            except (TypeError, ValueError) as e:
                logger.warning(f"AntiDelete: skipping snapshot record {key_str!r}: {e}")

        logger.info(f"AntiDelete: loaded {len(loaded)} cached entries from {self.path}")
        return loaded
