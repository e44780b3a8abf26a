"""Tests for metadata-only snapshot persistence."""

import json

import pytest

from recallbot.shadow.models import (
    CacheKey,
    EntryKind,
    MediaEntry,
    RawEntry,
    TextEntry,
    entry_from_metadata,
)
from recallbot.shadow.snapshot import SnapshotPersistence


def _common(message_id: str) -> dict:
    return {
        "message_id": message_id,
        "conversation_id": "g1",
        "sender_id": "u1@s.example",
        "timestamp_ms": 1_700_000_000_000,
    }


def _all_kinds() -> list[tuple[CacheKey, object]]:
    entries = [
        TextEntry(**_common("t1"), body="hello"),
        MediaEntry(**_common("i1"), kind=EntryKind.image, payload=b"img", mime_type="image/jpeg",
                   caption="look", size_bytes=3),
        MediaEntry(**_common("v1"), kind=EntryKind.video, payload=b"vid", mime_type="video/mp4",
                   size_bytes=3),
        MediaEntry(**_common("a1"), kind=EntryKind.audio, payload=b"aud", size_bytes=3),
        MediaEntry(**_common("s1"), kind=EntryKind.sticker, payload=b"stk", mime_type="image/webp",
                   size_bytes=3),
        MediaEntry(**_common("d1"), kind=EntryKind.document, payload=b"doc",
                   file_name="report.pdf", mime_type="application/pdf", size_bytes=3),
        RawEntry(**_common("r1"), raw={"poll": {"question": "lunch?"}}),
        RawEntry(**_common("u1"), kind=EntryKind.unknown, raw={}),
    ]
    return [(entry.key, entry) for entry in entries]


class TestRoundTrip:
    def test_every_kind_round_trips_without_payload(self, tmp_path):
        persistence = SnapshotPersistence(tmp_path / "antidelete.json")
        entries = _all_kinds()

        assert persistence.flush(entries) is True
        loaded = persistence.load()

        assert list(loaded.keys()) == [key for key, _ in entries]
        for key, original in entries:
            restored = loaded[key]
            assert type(restored) is type(original)
            assert restored.to_metadata() == original.to_metadata()
            if isinstance(restored, MediaEntry):
                assert restored.payload is None
                assert restored.size_bytes == 3

    def test_payload_bytes_are_never_written(self, tmp_path):
        path = tmp_path / "antidelete.json"
        persistence = SnapshotPersistence(path)

        persistence.flush(_all_kinds())

        data = json.loads(path.read_text())
        assert all("payload" not in record for record in data.values())
        assert data["g1:i1"]["kind"] == "image"
        assert data["g1:d1"]["file_name"] == "report.pdf"

    def test_no_temp_file_left_behind(self, tmp_path):
        persistence = SnapshotPersistence(tmp_path / "antidelete.json")
        persistence.flush(_all_kinds())
        assert sorted(p.name for p in tmp_path.iterdir()) == ["antidelete.json"]

    def test_non_json_raw_values_are_stringified(self, tmp_path):
        path = tmp_path / "antidelete.json"
        persistence = SnapshotPersistence(path)
        entry = RawEntry(**_common("r2"), raw={"blob": b"\x00\x01"})

        assert persistence.flush([(entry.key, entry)]) is True
        assert isinstance(json.loads(path.read_text())["g1:r2"]["raw"]["blob"], str)


class TestLoad:
    def test_missing_file_is_created_empty(self, tmp_path):
        path = tmp_path / "nested" / "antidelete.json"
        persistence = SnapshotPersistence(path)

        assert persistence.load() == {}
        assert path.exists()
        assert json.loads(path.read_text()) == {}

    def test_corrupt_file_yields_empty(self, tmp_path):
        path = tmp_path / "antidelete.json"
        path.write_text("{not json")

        assert SnapshotPersistence(path).load() == {}

    def test_non_object_root_yields_empty(self, tmp_path):
        path = tmp_path / "antidelete.json"
        path.write_text("[1, 2, 3]")

        assert SnapshotPersistence(path).load() == {}

    def test_malformed_records_are_skipped(self, tmp_path):
        path = tmp_path / "antidelete.json"
        path.write_text(json.dumps({
            "g1:m1": {**_common("m1"), "kind": "text", "body": "kept"},
            "no-colon": {**_common("m2"), "kind": "text", "body": "bad key"},
            "g1:m3": {"message_id": "m3", "kind": "text"},
            "g1:m4": "not a record",
        }))

        loaded = SnapshotPersistence(path).load()

        assert list(loaded.keys()) == [CacheKey("g1", "m1")]
        assert loaded[CacheKey("g1", "m1")].body == "kept"

    def test_unrecognized_kind_loads_as_unknown(self):
        entry = entry_from_metadata({**_common("m1"), "kind": "hologram"})
        assert isinstance(entry, RawEntry)
        assert entry.kind == EntryKind.unknown


class TestUnavailable:
    def test_uncreatable_directory_runs_memory_only(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        persistence = SnapshotPersistence(blocker / "data" / "antidelete.json")

        assert persistence.available is False
        assert persistence.flush(_all_kinds()) is False
        assert persistence.load() == {}

    def test_flush_failure_returns_false(self, tmp_path):
        path = tmp_path / "antidelete.json"
        path.mkdir()  # Replacing a directory with a file fails
        persistence = SnapshotPersistence(path)

        assert persistence.flush(_all_kinds()) is False
        assert not (tmp_path / "antidelete.json.tmp").exists()


class TestCacheKey:
    def test_canonical_form(self):
        assert str(CacheKey("g1", "m1")) == "g1:m1"

    def test_parse_splits_on_last_colon(self):
        assert CacheKey.parse("chat:with:colons:m7") == CacheKey("chat:with:colons", "m7")

    def test_parse_rejects_malformed(self):
        for value in ("", "nocolon", ":m1", "g1:"):
            with pytest.raises(ValueError):
                CacheKey.parse(value)
