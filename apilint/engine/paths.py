"""
A small JSONPath subset for rule `given` and `field` expressions.

Supported:
    $            root
    .name        child          .*       all children
    ..name       descendant     ..*      all descendants
    [0] [-1]     array index    [*]      all children
    ['a'] ["a"]  quoted child   ['a','b'] / [a,b]  union

Filter expressions (`[?(...)]`) and slices are rejected at compile time.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Iterator

from .schema import JsonPath

# (kind, names); kind is "child" or "descend", names None means wildcard.
Segment = tuple[str, tuple[str | int, ...] | None]


class PathSyntaxError(ValueError):
    pass


def _read_name(expr: str, i: int) -> tuple[str, int]:
    start = i
    while i < len(expr) and expr[i] not in ".[":
        i += 1
    if i == start:
        raise PathSyntaxError(f"Expected a property name at offset {start} in {expr!r}")
    return expr[start:i], i


def _split_union(content: str, expr: str) -> list[str]:
    items: list[str] = []
    buf: list[str] = []
    quote: str | None = None
    for ch in content:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
            buf.append(ch)
        elif ch == ",":
            items.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    if quote:
        raise PathSyntaxError(f"Unterminated quote in {expr!r}")
    items.append("".join(buf).strip())
    if any(not item for item in items):
        raise PathSyntaxError(f"Empty selector in {expr!r}")
    return items


def _parse_bracket(expr: str, i: int) -> tuple[tuple[str | int, ...] | None, int]:
    end = i + 1
    quote: str | None = None
    while end < len(expr):
        ch = expr[end]
        if quote:
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == "]":
            break
        end += 1
    else:
        raise PathSyntaxError(f"Unterminated '[' in {expr!r}")

    content = expr[i + 1 : end].strip()
    if content == "*":
        return None, end + 1
    quoted = content[:1] in ("'", '"')
    if content.startswith(("?", "(")) or (":" in content and not quoted):
        raise PathSyntaxError(f"Filter and slice expressions are not supported: {expr!r}")

    names: list[str | int] = []
    for item in _split_union(content, expr):
        if item[0] in "'\"" and item[-1] == item[0] and len(item) >= 2:
            names.append(item[1:-1])
        elif item.lstrip("-").isdigit():
            names.append(int(item))
        else:
            names.append(item)
    return tuple(names), end + 1


@lru_cache(maxsize=512)
def compile_path(expr: str) -> tuple[Segment, ...]:
    expr = expr.strip()
    if not expr.startswith("$"):
        raise PathSyntaxError(f"Path must start with '$': {expr!r}")

    segments: list[Segment] = []
    i = 1
    while i < len(expr):
        if expr.startswith("..", i):
            i += 2
            if expr[i : i + 1] == "*":
                segments.append(("descend", None))
                i += 1
            elif expr[i : i + 1] == "[":
                names, i = _parse_bracket(expr, i)
                segments.append(("descend", names))
            else:
                name, i = _read_name(expr, i)
                segments.append(("descend", (name,)))
        elif expr[i] == ".":
            i += 1
            if expr[i : i + 1] == "*":
                segments.append(("child", None))
                i += 1
            else:
                name, i = _read_name(expr, i)
                segments.append(("child", (name,)))
        elif expr[i] == "[":
            names, i = _parse_bracket(expr, i)
            segments.append(("child", names))
        else:
            raise PathSyntaxError(f"Unexpected character {expr[i]!r} at offset {i} in {expr!r}")
    return tuple(segments)


def _children(path: JsonPath, value: Any, names: tuple[str | int, ...] | None) -> Iterator[tuple[JsonPath, Any]]:
    if isinstance(value, dict):
        if names is None:
            for key, child in value.items():
                yield path + (key,), child
            return
        for name in names:
            key = str(name)
            if key in value:
                yield path + (key,), value[key]
    elif isinstance(value, list):
        if names is None:
            for index, child in enumerate(value):
                yield path + (index,), child
            return
        for name in names:
            if isinstance(name, int) and -len(value) <= name < len(value):
                index = name % len(value)
                yield path + (index,), value[index]


def _walk(path: JsonPath, value: Any) -> Iterator[tuple[JsonPath, Any]]:
    yield path, value
    if isinstance(value, dict):
        for key, child in value.items():
            yield from _walk(path + (key,), child)
    elif isinstance(value, list):
        for index, child in enumerate(value):
            yield from _walk(path + (index,), child)


def query(expr: str, data: Any, base: JsonPath = ()) -> list[tuple[JsonPath, Any]]:
    """All (path, value) pairs selected by `expr`, with paths prefixed by `base`."""
    nodes: list[tuple[JsonPath, Any]] = [(base, data)]
    for kind, names in compile_path(expr):
        selected: list[tuple[JsonPath, Any]] = []
        for path, value in nodes:
            if kind == "child":
                selected.extend(_children(path, value, names))
            else:
                for sub_path, sub_value in _walk(path, value):
                    selected.extend(_children(sub_path, sub_value, names))
        nodes = selected
    return nodes
