"""Tests for persisted client storage."""

import json

from bugboard.storage import LocalStorage


class TestLocalStorage:
    """Test LocalStorage class."""

    def test_missing_file_reads_empty(self, tmp_path):
        storage = LocalStorage(str(tmp_path / "nested" / "storage.json"))
        assert storage.get_item("token") is None

    def test_set_and_get(self, tmp_path):
        path = tmp_path / "nested" / "storage.json"
        storage = LocalStorage(str(path))
        storage.set_item("token", "abc")
        storage.set_item("user", {"name": "Ada"})

        assert storage.get_item("token") == "abc"
        assert storage.get_item("user") == {"name": "Ada"}
        assert json.loads(path.read_text())["token"] == "abc"

    def test_values_shared_between_instances(self, tmp_path):
        path = str(tmp_path / "storage.json")
        writer = LocalStorage(path)
        reader = LocalStorage(path)

        writer.set_item("api_base_url", "http://one")
        assert reader.get_item("api_base_url") == "http://one"

        writer.set_item("api_base_url", "http://two")
        assert reader.get_item("api_base_url") == "http://two"

    def test_remove(self, tmp_path):
        storage = LocalStorage(str(tmp_path / "storage.json"))
        storage.set_item("a", 1)
        storage.set_item("b", 2)

        storage.remove_item("a")
        storage.remove_item("missing")
        assert storage.get_item("a") is None
        assert storage.get_item("b") == 2

    def test_corrupt_file_is_ignored(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{not json")
        storage = LocalStorage(str(path))

        assert storage.get_item("token") is None
        storage.set_item("token", "fresh")
        assert storage.get_item("token") == "fresh"

    def test_default_path_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BUGBOARD_STORAGE", str(tmp_path / "env.json"))
        assert LocalStorage().path == tmp_path / "env.json"
