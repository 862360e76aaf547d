"""
Content resolvers used by the ruleset bundler to read rule files.

A resolver has a single operation, `read(path) -> text`, which raises
NotFound for any path it does not serve.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from .config import Settings
from .errors import NotFound
from .fetch import fetch_text

INLINE_RULESET_PATH = ".spectral.yaml"
RULES_PREFIX = "rules"


@runtime_checkable
class ContentResolver(Protocol):
    async def read(self, path: str) -> str: ...


class ConstantResolver:
    """Serves one fixed text under one path."""

    def __init__(self, text: str, path: str = INLINE_RULESET_PATH):
        self.text = text
        self.path = path

    async def read(self, path: str) -> str:
        if path != self.path:
            raise NotFound(path)
        return self.text


class FetchResolver:
    """Fetches paths starting with `prefix` over HTTP; other paths are unsupported."""

    def __init__(
        self,
        prefix: str = RULES_PREFIX,
        *,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        self.prefix = prefix
        self.client = client
        self.settings = settings

    async def read(self, path: str) -> str:
        if not path.startswith(self.prefix):
            raise NotFound(path)
        return await fetch_text(path, client=self.client, settings=self.settings)
