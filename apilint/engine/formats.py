"""Document format detection."""

from __future__ import annotations

import re
from typing import Any, Callable

_OAS3_RE = re.compile(r"^3\.\d+(?:\.\d+)?")
_OAS3_0_RE = re.compile(r"^3\.0(?:\.\d+)?$")
_OAS3_1_RE = re.compile(r"^3\.1(?:\.\d+)?$")
_ASYNCAPI2_RE = re.compile(r"^2\.\d+\.\d+$")
_ASYNCAPI3_RE = re.compile(r"^3\.\d+\.\d+$")


def _version(data: Any, key: str) -> str | None:
    if not isinstance(data, dict) or key not in data:
        return None
    value = data[key]
    if isinstance(value, bool) or value is None:
        return None
    return str(value)


def is_oas2(data: Any) -> bool:
    version = _version(data, "swagger")
    return version is not None and re.match(r"^2(?:\.0)?$", version) is not None


def is_oas3(data: Any) -> bool:
    version = _version(data, "openapi")
    return version is not None and _OAS3_RE.match(version) is not None


def is_oas3_0(data: Any) -> bool:
    version = _version(data, "openapi")
    return version is not None and _OAS3_0_RE.match(version) is not None


def is_oas3_1(data: Any) -> bool:
    version = _version(data, "openapi")
    return version is not None and _OAS3_1_RE.match(version) is not None


def is_asyncapi2(data: Any) -> bool:
    version = _version(data, "asyncapi")
    return version is not None and _ASYNCAPI2_RE.match(version) is not None


def is_asyncapi3(data: Any) -> bool:
    version = _version(data, "asyncapi")
    return version is not None and _ASYNCAPI3_RE.match(version) is not None


FORMATS: dict[str, Callable[[Any], bool]] = {
    "oas2": is_oas2,
    "oas3": is_oas3,
    "oas3_0": is_oas3_0,
    "oas3_1": is_oas3_1,
    "asyncapi2": is_asyncapi2,
    "asyncapi3": is_asyncapi3,
}

DISPLAY_NAMES: dict[str, str] = {
    "oas2": "OpenAPI 2.0 (Swagger)",
    "oas3": "OpenAPI 3.x",
    "oas3_0": "OpenAPI 3.0.x",
    "oas3_1": "OpenAPI 3.1.x",
    "asyncapi2": "AsyncAPI 2.x",
    "asyncapi3": "AsyncAPI 3.x",
}


def detect_formats(data: Any) -> frozenset[str]:
    return frozenset(name for name, check in FORMATS.items() if check(data))
