"""Tests for the rule index store."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from apilint.errors import AlreadyExists, NotFound
from apilint.storage import FileKeyValueStore, MemoryKeyValueStore, RuleRef, Storage

KEY = "apilint.rules"


class TestRuleRef:
    def test_to_dict_omits_missing_fields(self):
        assert RuleRef(name="a", href="rules/a.yaml").to_dict() == {"name": "a", "href": "rules/a.yaml"}
        assert RuleRef(name="b", value="rules: {}").to_dict() == {"name": "b", "value": "rules: {}"}

    def test_from_dict_uses_key_when_name_missing(self):
        assert RuleRef.from_dict({"value": "x"}, key="custom") == RuleRef(name="custom", value="x")

    def test_from_dict_rejects_mismatched_key(self):
        with pytest.raises(ValueError, match="does not match"):
            RuleRef.from_dict({"name": "a", "value": "x"}, key="b")

    def test_from_dict_rejects_non_string_href(self):
        with pytest.raises(ValueError, match="href"):
            RuleRef.from_dict({"name": "a", "href": 3})


class TestAdd:
    def test_add_inserts_new_name(self):
        storage = Storage(KEY)
        storage.add(RuleRef(name="a", value="v1"))
        assert storage.get("a") == RuleRef(name="a", value="v1")

    def test_non_strict_add_keeps_first_writer(self):
        storage = Storage(KEY)
        storage.add(RuleRef(name="a", value="v1"))
        storage.add(RuleRef(name="a", value="v2"))
        assert storage.get("a").value == "v1"
        assert len(storage) == 1

    def test_strict_add_raises_already_exists(self):
        storage = Storage(KEY)
        storage.add(RuleRef(name="a", value="v1"))
        with pytest.raises(AlreadyExists) as exc_info:
            storage.add(RuleRef(name="a", value="v2"), strict=True)
        assert exc_info.value.name == "a"
        assert storage.get("a").value == "v1"

    def test_set_replaces(self):
        storage = Storage(KEY)
        storage.add(RuleRef(name="a", value="v1"))
        storage.set(RuleRef(name="a", value="v2"))
        assert storage.get("a").value == "v2"

    def test_remove(self):
        storage = Storage(KEY, {"a": RuleRef(name="a", value="v")})
        assert storage.remove("a") is True
        assert storage.remove("a") is False
        assert "a" not in storage


class TestLocalStorage:
    def test_missing_key_gives_empty_store(self, memory_store):
        storage = Storage.load_from_local_storage(KEY, memory_store)
        assert len(storage) == 0
        assert storage.index_key == KEY

    def test_invalid_json_gives_empty_store(self, memory_store, caplog):
        memory_store.set_item(KEY, "{not json")
        storage = Storage.load_from_local_storage(KEY, memory_store)
        assert list(storage.iterator()) == []
        assert "corrupt" in caplog.text

    def test_undecodable_file_gives_empty_store(self, tmp_path: Path, caplog):
        store = FileKeyValueStore(tmp_path / "storage")
        store.set_item(KEY, "{}")
        store._path(KEY).write_bytes(b'{"rules": {"\xff\xfe": 1}}')

        storage = Storage.load_from_local_storage(KEY, store)

        assert len(storage) == 0
        assert "corrupt" in caplog.text

    def test_wrong_shape_gives_empty_store(self, memory_store):
        memory_store.set_item(KEY, json.dumps({"rules": ["a", "b"]}))
        assert len(Storage.load_from_local_storage(KEY, memory_store)) == 0

    def test_persist_then_load_keeps_order(self, memory_store):
        storage = Storage(KEY, backend=memory_store)
        for name in ("zeta", "alpha", "mid"):
            storage.add(RuleRef(name=name, value=f"# {name}"))
        storage.persist()

        loaded = Storage.load_from_local_storage(KEY, memory_store)
        assert [ref.name for ref in loaded] == ["zeta", "alpha", "mid"]
        assert loaded.get("alpha").value == "# alpha"

    def test_persist_without_backend_raises(self):
        with pytest.raises(RuntimeError):
            Storage(KEY).persist()

    def test_index_blob_fixture_loads(self, memory_store, index_blob):
        memory_store.set_item(KEY, index_blob({"name": "a", "href": "rules/a.yaml"}, {"name": "b", "value": "x"}))
        storage = Storage.load_from_local_storage(KEY, memory_store)
        assert [ref.name for ref in storage] == ["a", "b"]


class TestFileKeyValueStore:
    def test_round_trip_on_disk(self, tmp_path: Path):
        store = FileKeyValueStore(tmp_path / "storage")
        assert store.get_item(KEY) is None

        store.set_item(KEY, '{"rules": {}}')
        assert store.get_item(KEY) == '{"rules": {}}'
        assert (tmp_path / "storage" / "apilint.rules.json").exists()
        assert not list((tmp_path / "storage").glob("*.tmp"))

    def test_keys_are_quoted(self, tmp_path: Path):
        store = FileKeyValueStore(tmp_path)
        store.set_item("a/b", "x")
        assert (tmp_path / "a%2Fb.json").read_text(encoding="utf-8") == "x"

    def test_from_settings_uses_storage_dir(self, settings):
        store = FileKeyValueStore.from_settings(settings)
        assert store.directory == settings.home / "storage"


class TestServerStorage:
    def test_loads_index_from_server(self, make_client, index_blob):
        client = make_client({"/config/index.json": index_blob({"name": "remote", "href": "rules/remote.yaml"})})

        storage = asyncio.run(Storage.load_from_server("config/index.json", client=client))

        assert storage.index_key == "server"
        assert storage.get("remote") == RuleRef(name="remote", href="rules/remote.yaml")

    def test_non_success_raises_not_found(self, make_client):
        client = make_client({})
        with pytest.raises(NotFound) as exc_info:
            asyncio.run(Storage.load_from_server("config/index.json", client=client))
        assert exc_info.value.path == "config/index.json"
        assert exc_info.value.status_code == 404

    def test_malformed_body_raises(self, make_client):
        client = make_client({"/config/index.json": "[]"})
        with pytest.raises(ValueError):
            asyncio.run(Storage.load_from_server("config/index.json", client=client))

    def test_iteration_yields_every_ref_in_order(self):
        storage = Storage("server", {n: RuleRef(name=n, value="x") for n in ("b", "a", "c")})
        assert [ref.name for ref in storage.iterator()] == ["b", "a", "c"]


def test_memory_store_items_are_isolated():
    seed = {"k": "v"}
    store = MemoryKeyValueStore(seed)
    store.set_item("k", "w")
    assert seed == {"k": "v"}
