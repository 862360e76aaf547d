"""Minimal async GET helpers shared by the store, resolvers and bundler."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from .config import Settings
from .errors import NotFound

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_client(client: httpx.AsyncClient | None = None, settings: Settings | None = None) -> AsyncIterator[httpx.AsyncClient]:
    """Yield `client` unchanged, or a short-lived client built from settings."""
    if client is not None:
        yield client
        return

    settings = settings or Settings.from_env()
    async with httpx.AsyncClient(base_url=settings.base_url, timeout=settings.timeout_s) as owned:
        yield owned


async def fetch_response(url: str, *, client: httpx.AsyncClient | None = None, settings: Settings | None = None) -> httpx.Response:
    """GET `url`; anything but a 2xx status raises NotFound(url)."""
    async with open_client(client, settings) as http:
        logger.debug(f"GET {url}")
        response = await http.get(url)
    if not response.is_success:
        logger.debug(f"GET {url} -> {response.status_code}")
        raise NotFound(url, response.status_code)
    return response


async def fetch_text(url: str, *, client: httpx.AsyncClient | None = None, settings: Settings | None = None) -> str:
    response = await fetch_response(url, client=client, settings=settings)
    return response.text
