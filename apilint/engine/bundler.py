"""
Assemble a Ruleset from an entry path and everything it extends.

Reads go through a ContentResolver, except absolute http(s) URLs which the
bundler fetches itself. Extended rulesets are loaded one at a time, in
declaration order; relative references resolve against the location of the
file that names them.
"""

from __future__ import annotations

import logging
import posixpath
from urllib.parse import urljoin, urlparse

import httpx

from ..config import Settings
from ..fetch import fetch_text
from ..resolver import ContentResolver
from .load import ExtendsMode, RulesetValidationError, load_ruleset, parse_extends, parse_ruleset_text
from .schema import Ruleset

logger = logging.getLogger(__name__)

BUILTIN_PREFIXES = ("spectral:", "apilint:")


def _is_url(path: str) -> bool:
    return urlparse(path).scheme in ("http", "https")


def _join(base: str, ref: str) -> str:
    if _is_url(ref) or ref.startswith(BUILTIN_PREFIXES):
        return ref
    if _is_url(base):
        return urljoin(base, ref)
    if ref.startswith("/"):
        return posixpath.normpath(ref)
    return posixpath.normpath(posixpath.join(posixpath.dirname(base), ref))


class _Bundler:
    def __init__(self, resolver: ContentResolver, client: httpx.AsyncClient | None, settings: Settings | None):
        self.resolver = resolver
        self.client = client
        self.settings = settings
        self._loading: list[str] = []

    async def read(self, path: str) -> str:
        if _is_url(path):
            return await fetch_text(path, client=self.client, settings=self.settings)
        return await self.resolver.read(path)

    async def load(self, path: str) -> Ruleset:
        if path.startswith(BUILTIN_PREFIXES):
            from ..rulesets import load_builtin_ruleset

            name = path.split(":", 1)[1]
            try:
                return load_builtin_ruleset(name)
            except KeyError:
                raise RulesetValidationError([f"unknown built-in ruleset {path!r}"], self._loading[-1] if self._loading else None) from None

        if path in self._loading:
            cycle = " -> ".join([*self._loading, path])
            raise RulesetValidationError([f"extends cycle: {cycle}"], path)

        self._loading.append(path)
        try:
            logger.debug(f"Bundling ruleset {path}")
            text = await self.read(path)
            definition = parse_ruleset_text(text, source=path)

            extends: list[tuple[Ruleset, ExtendsMode]] = []
            for ref, mode in parse_extends(definition.get("extends"), source=path):
                extends.append((await self.load(_join(path, ref)), mode))

            return load_ruleset(definition, source=path, extends=extends)
        finally:
            self._loading.pop()


async def bundle_and_load_ruleset(
    entry: str,
    resolver: ContentResolver,
    *,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
) -> Ruleset:
    """
    Load the ruleset at `entry`, resolving its `extends` chain.

    Raises RulesetValidationError for invalid definitions and NotFound for
    paths the resolver (or an HTTP fetch) cannot serve.
    """
    return await _Bundler(resolver, client, settings).load(entry)
