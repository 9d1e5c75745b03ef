"""Tests for administrative operations."""

from __future__ import annotations

import pytest

from photofeed.admin import clear_index, get_index_data, set_folder
from photofeed.config import PropertyStore
from photofeed.errors import ConfigurationError, LockUnavailableError
from photofeed.index.lock import IndexLock, lock_path_for
from photofeed.index.store import IndexStore
from photofeed.models import IndexEntry


def _entry(object_id: str) -> IndexEntry:
    return IndexEntry(object_id, "image/png", "t", "u", None, None, "2024-01-01T00:00:00Z")


class TestSetFolder:
    def test_stores_trimmed_value(self, tmp_path) -> None:
        properties = PropertyStore(tmp_path / "settings.json")

        set_folder(properties, "  uploads ")

        assert properties.get_folder() == "uploads"

    @pytest.mark.parametrize("value", ["", "YOUR_FOLDER_ID"])
    def test_rejects_placeholder(self, tmp_path, value) -> None:
        properties = PropertyStore(tmp_path / "settings.json")

        with pytest.raises(ConfigurationError):
            set_folder(properties, value)

        assert properties.get_folder() is None


class TestIndexData:
    def test_get_and_clear(self, tmp_path) -> None:
        store = IndexStore(tmp_path / "index.json")
        store.save([_entry("a"), _entry("b")])

        assert [e.id for e in get_index_data(store)] == ["a", "b"]

        clear_index(store)

        assert not store.exists()
        assert get_index_data(store) == []

    def test_clear_releases_lock(self, tmp_path) -> None:
        store = IndexStore(tmp_path / "index.json")
        store.save([_entry("a")])

        clear_index(store)

        assert not lock_path_for(store.path).exists()

    def test_clear_waits_for_running_pass(self, tmp_path) -> None:
        store = IndexStore(tmp_path / "index.json")
        store.save([_entry("a")])
        running_pass = IndexLock(lock_path_for(store.path))

        with running_pass:
            with pytest.raises(LockUnavailableError):
                clear_index(store, IndexLock(lock_path_for(store.path), timeout=0.05, poll_interval=0.01))
            assert store.exists()

        clear_index(store)
        assert not store.exists()
