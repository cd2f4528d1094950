import json
import os

import pytest

from web2journal.exceptions import StorageError
from web2journal.patterns import PatternStore
from web2journal.storage import PatternStorage, TokenStorage


class TestPatternStorage:
    def test_missing_file_is_empty_set(self, data_path):
        store = PatternStorage(data_path).load()
        assert len(store) == 0

    def test_save_and_load_preserves_order_and_fields(self, data_path):
        storage = PatternStorage(data_path)
        store = PatternStore()
        a = store.create("A", "foo", "prompt a")
        b = store.create("B", r".*\.com", "prompt b", enabled=False)
        storage.save(store)

        loaded = PatternStorage(data_path).load().all()
        assert [p.id for p in loaded] == [a.id, b.id]
        assert loaded[1].enabled is False
        assert loaded[0].created_at == a.created_at

    def test_file_uses_wire_keys(self, data_path):
        storage = PatternStorage(data_path)
        store = PatternStore()
        store.create("A", "foo", "prompt")
        storage.save(store)
        data = json.loads(storage.path.read_text())
        assert set(data[0]) == {"id", "name", "urlPattern", "prompt", "enabled",
                                "createdAt", "updatedAt"}

    def test_reads_browser_timestamps(self, data_path):
        data_path.mkdir(parents=True)
        (data_path / "content-patterns.json").write_text(json.dumps([{
            "id": "pattern-1", "name": "n", "urlPattern": "x", "prompt": "p",
            "enabled": True, "createdAt": "2024-05-01T10:00:00.000Z",
            "updatedAt": "2024-05-02T10:00:00.000Z",
        }]))
        p = PatternStorage(data_path).load().get("pattern-1")
        assert p.created_at.year == 2024
        assert p.updated_at.tzinfo is not None

    def test_corrupt_file_raises(self, data_path):
        data_path.mkdir(parents=True)
        (data_path / "content-patterns.json").write_text("{not json")
        with pytest.raises(StorageError):
            PatternStorage(data_path).load()

    def test_malformed_record_skipped(self, data_path):
        data_path.mkdir(parents=True)
        (data_path / "content-patterns.json").write_text(json.dumps([
            {"name": "missing id"},
            {"id": "pattern-ok", "urlPattern": "x"},
        ]))
        store = PatternStorage(data_path).load()
        assert [p.id for p in store.all()] == ["pattern-ok"]

    def test_refresh_picks_up_external_edit(self, data_path):
        storage = PatternStorage(data_path)
        store = storage.load()
        assert storage.refresh(store) is False

        other = PatternStore()
        other.create("external", "x", "prompt")
        PatternStorage(data_path).save(other)
        st = storage.path.stat()
        os.utime(storage.path, (st.st_atime, st.st_mtime + 5))

        assert storage.refresh(store) is True
        assert [p.name for p in store.all()] == ["external"]
        assert storage.refresh(store) is False


class TestTokenStorage:
    def test_generates_once(self, data_path):
        storage = TokenStorage(data_path)
        first = storage.get_or_create_token()
        assert first
        assert storage.get_or_create_token() == first
        assert TokenStorage(data_path).load_token() == first

    def test_existing_token_is_kept(self, data_path):
        storage = TokenStorage(data_path)
        storage.save_token("preset")
        assert storage.get_or_create_token() == "preset"

    def test_rotate_replaces_token(self, data_path):
        storage = TokenStorage(data_path)
        first = storage.get_or_create_token()
        rotated = storage.rotate_token()
        assert rotated != first
        assert storage.get_or_create_token() == rotated

    def test_unreadable_token_file_regenerates(self, data_path):
        data_path.mkdir(parents=True)
        (data_path / "auth-token.json").write_text("garbage")
        token = TokenStorage(data_path).get_or_create_token()
        assert token
        assert json.loads((data_path / "auth-token.json").read_text())["token"] == token
