"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import httpx
import pytest

from apilint.config import Settings
from apilint.linter import Linter
from apilint.storage import MemoryKeyValueStore

TITLE_RULESET = """\
rules:
  title-required:
    given: $
    severity: error
    then:
      field: title
      function: truthy
"""

OPENAPI_YAML = """\
openapi: 3.0.3
info:
  title: Pets
  version: "1.0"
paths:
  /pets:
    get:
      operationId: listPets
      description: List pets.
      tags: [pets]
      responses:
        "200":
          description: ok
"""

ASYNCAPI_YAML = """\
asyncapi: 2.6.0
info:
  title: Events
  version: "1.0"
channels: {}
"""


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary home."""
    return Settings(home=tmp_path / "home", base_url="https://rules.example")


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def index_blob() -> Callable[..., str]:
    """Build a serialised rule index from RuleRef-shaped dicts."""

    def build(*refs: dict[str, str]) -> str:
        return json.dumps({"rules": {ref["name"]: ref for ref in refs}})

    return build


@pytest.fixture
def make_client() -> Callable[[dict[str, str]], httpx.AsyncClient]:
    """
    An AsyncClient answering GETs from a path -> body map.

    Unknown paths get a 404. Requested URLs are recorded on `client.requests`.
    """

    def build(routes: dict[str, str], *, base_url: str = "https://rules.example") -> httpx.AsyncClient:
        requests: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(str(request.url))
            body = routes.get(request.url.path)
            if body is None:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, text=body)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=base_url)
        client.requests = requests
        return client

    return build


@pytest.fixture
def linter() -> Linter:
    """A linter holding only the built-in rulesets."""
    return Linter()


@pytest.fixture
def title_ruleset() -> str:
    """Inline ruleset requiring a truthy top-level `title` (severity error)."""
    return TITLE_RULESET


@pytest.fixture
def openapi_yaml() -> str:
    """OpenAPI 3.0 document with no info.contact or info.description."""
    return OPENAPI_YAML


@pytest.fixture
def asyncapi_yaml() -> str:
    return ASYNCAPI_YAML
