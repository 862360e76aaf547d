"""
Configuration store: which named rule sources are active.

The index is a JSON object of the form::

    {"rules": {"<name>": {"name": "<name>", "href": "...", "value": "..."}}}

It is always read and written as one blob. Rule order is the insertion order
of the `rules` mapping; `json` preserves object key order, so a persist/load
round trip keeps it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Protocol
from urllib.parse import quote

import httpx

from .config import Settings
from .errors import AlreadyExists
from .fetch import fetch_response

logger = logging.getLogger(__name__)

SERVER_INDEX_KEY = "server"


@dataclass(frozen=True)
class RuleRef:
    """One named rule source: an inline rule definition or a URL to one."""

    name: str
    href: str | None = None
    value: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {"name": self.name}
        if self.href is not None:
            data["href"] = self.href
        if self.value is not None:
            data["value"] = self.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, key: str | None = None) -> "RuleRef":
        if not isinstance(data, dict):
            raise ValueError(f"Rule reference must be an object, got {type(data).__name__}")

        name = data.get("name", key)
        if not isinstance(name, str) or not name:
            raise ValueError("Rule reference is missing 'name'")
        if key is not None and name != key:
            raise ValueError(f"Rule reference name {name!r} does not match index key {key!r}")

        href = data.get("href")
        value = data.get("value")
        if href is not None and not isinstance(href, str):
            raise ValueError(f"Rule reference {name!r}: 'href' must be a string")
        if value is not None and not isinstance(value, str):
            raise ValueError(f"Rule reference {name!r}: 'value' must be a string")
        return cls(name=name, href=href, value=value)


class KeyValueStore(Protocol):
    """Durable string blobs by key."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """In-process key/value store."""

    def __init__(self, items: dict[str, str] | None = None):
        self.items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value


class FileKeyValueStore:
    """
    One JSON file per key under `directory`.

        <directory>/<url-quoted key>.json

    Writes go to a temp file that is renamed over the target.
    """

    def __init__(self, directory: Path):
        self.directory = directory

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileKeyValueStore":
        return cls(settings.storage_dir)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(".tmp")
        temp_path.write_text(value, encoding="utf-8")
        temp_path.replace(path)


def _rules_from_index(payload: Any) -> dict[str, RuleRef]:
    """Validate an index payload; raises ValueError on any shape problem."""
    if not isinstance(payload, dict):
        raise ValueError("Index must be a JSON object")
    raw_rules = payload.get("rules", {})
    if not isinstance(raw_rules, dict):
        raise ValueError("Index 'rules' must be an object")
    return {key: RuleRef.from_dict(raw, key=key) for key, raw in raw_rules.items()}


class Storage:
    """Owns the rule index and is its only writer."""

    def __init__(
        self,
        index_key: str,
        rules: dict[str, RuleRef] | None = None,
        *,
        backend: KeyValueStore | None = None,
    ):
        self.index_key = index_key
        self.backend = backend
        self._rules: dict[str, RuleRef] = dict(rules or {})

    @classmethod
    def load_from_local_storage(cls, index_key: str, backend: KeyValueStore) -> "Storage":
        """
        Load the index stored under `index_key`.

        A missing, unparseable or malformed blob gives an empty store: first
        run and corruption both mean "no rules configured".
        """
        try:
            raw_index = backend.get_item(index_key)
            if not raw_index:
                return cls(index_key, backend=backend)
            rules = _rules_from_index(json.loads(raw_index))
        except ValueError as e:
            # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
            logger.warning(f"Ignoring corrupt rule index {index_key!r}: {e}")
            return cls(index_key, backend=backend)

        return cls(index_key, rules, backend=backend)

    @classmethod
    async def load_from_server(
        cls,
        index_href: str,
        *,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        backend: KeyValueStore | None = None,
    ) -> "Storage":
        """
        Fetch the index from `index_href`.

        Remote configuration is expected to exist: a non-2xx status raises
        NotFound, a malformed body raises ValueError.
        """
        response = await fetch_response(index_href, client=client, settings=settings)
        rules = _rules_from_index(response.json())
        logger.debug(f"Loaded {len(rules)} rule reference(s) from {index_href}")
        return cls(SERVER_INDEX_KEY, rules, backend=backend)

    def to_index(self) -> dict[str, Any]:
        return {"rules": {name: ref.to_dict() for name, ref in self._rules.items()}}

    def persist(self) -> None:
        """Write the whole index under `index_key`."""
        if self.backend is None:
            raise RuntimeError(f"Storage {self.index_key!r} has no durable backend")
        self.backend.set_item(self.index_key, json.dumps(self.to_index()))

    save_to_local_storage = persist

    def get(self, name: str) -> RuleRef | None:
        return self._rules.get(name)

    def set(self, rule_ref: RuleRef) -> None:
        self._rules[rule_ref.name] = rule_ref

    def add(self, rule_ref: RuleRef, strict: bool = False) -> None:
        """Insert if absent. An existing name is kept (first writer wins) unless strict."""
        if rule_ref.name in self._rules:
            if strict:
                raise AlreadyExists(rule_ref.name)
            return
        self._rules[rule_ref.name] = rule_ref

    def remove(self, name: str) -> bool:
        return self._rules.pop(name, None) is not None

    def iterator(self) -> Iterator[RuleRef]:
        """
        Yield every rule reference in insertion order.

        The store must not be mutated while a returned iterator is live;
        snapshot with list() first if needed.
        """
        for rule_ref in self._rules.values():
            yield rule_ref

    def __iter__(self) -> Iterator[RuleRef]:
        return self.iterator()

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: object) -> bool:
        return name in self._rules
