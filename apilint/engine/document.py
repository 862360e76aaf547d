"""
Parsed documents that remember where every value came from.

Both parsers return plain Python data plus a map from JSON path to the
zero-based Range of the value in the original text, so diagnostics can be
reported against the caller's text rather than a re-serialisation.
"""

from __future__ import annotations

import bisect
import json
import re
from dataclasses import dataclass, field
from json.decoder import scanstring
from typing import Any, Iterable, Protocol

import yaml

from .schema import Diagnostic, DiagnosticSeverity, JsonPath, Position, Range

PARSER_CODE = "parser"

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


@dataclass
class ParseResult:
    data: Any
    ranges: dict[JsonPath, Range] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)


class Parser(Protocol):
    name: str

    def parse(self, text: str) -> ParseResult: ...


class LineIndex:
    """Offset -> (line, character) for one text."""

    def __init__(self, text: str):
        self._starts = [0] + [m.end() for m in _LINE_BREAK_RE.finditer(text)]

    def position(self, offset: int) -> Position:
        line = bisect.bisect_right(self._starts, offset) - 1
        return Position(line=line, character=offset - self._starts[line])


def _parser_diagnostic(message: str, rng: Range, path: JsonPath = ()) -> Diagnostic:
    return Diagnostic(
        code=PARSER_CODE,
        message=message,
        path=path,
        severity=DiagnosticSeverity.ERROR,
        range=rng,
    )


def _point(position: Position) -> Range:
    return Range(start=position, end=position)


# JSON

_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][-+]?\d+)?")
_JSON_WS = " \t\n\r"
_JSON_LITERALS: dict[str, Any] = {"true": True, "false": False, "null": None}


class _JsonSyntaxError(Exception):
    def __init__(self, message: str, offset: int):
        super().__init__(message)
        self.message = message
        self.offset = offset


class _JsonScanner:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.lines = LineIndex(text)
        self.ranges: dict[JsonPath, Range] = {}
        self.diagnostics: list[Diagnostic] = []

    def _range(self, start: int, end: int) -> Range:
        return Range(start=self.lines.position(start), end=self.lines.position(end))

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in _JSON_WS:
            self.pos += 1

    def _expect(self, ch: str) -> None:
        if self._peek() != ch:
            raise _JsonSyntaxError(f"Expected '{ch}'", self.pos)
        self.pos += 1

    def parse(self) -> Any:
        self._skip_ws()
        value = self._value(())
        self._skip_ws()
        if self.pos != len(self.text):
            raise _JsonSyntaxError("Unexpected content after end of document", self.pos)
        return value

    def _value(self, path: JsonPath) -> Any:
        if self.pos >= len(self.text):
            raise _JsonSyntaxError("Unexpected end of input", self.pos)

        start = self.pos
        ch = self.text[start]
        if ch == "{":
            value = self._object(path)
        elif ch == "[":
            value = self._array(path)
        elif ch == '"':
            value = self._string()
        else:
            value = self._scalar()

        self.ranges[path] = self._range(start, self.pos)
        return value

    def _scalar(self) -> Any:
        start = self.pos
        match = _NUMBER_RE.match(self.text, start)
        if match:
            raw = match.group()
            self.pos = match.end()
            if any(c in raw for c in ".eE"):
                return float(raw)
            return int(raw)

        for literal, value in _JSON_LITERALS.items():
            if self.text.startswith(literal, start):
                self.pos = start + len(literal)
                return value

        raise _JsonSyntaxError(f"Unexpected character {self.text[start]!r}", start)

    def _string(self) -> str:
        try:
            value, end = scanstring(self.text, self.pos + 1, True)
        except json.JSONDecodeError as e:
            raise _JsonSyntaxError(e.msg, e.pos) from None
        self.pos = end
        return value

    def _object(self, path: JsonPath) -> dict[str, Any]:
        self.pos += 1
        result: dict[str, Any] = {}
        self._skip_ws()
        if self._peek() == "}":
            self.pos += 1
            return result

        while True:
            self._skip_ws()
            if self._peek() != '"':
                raise _JsonSyntaxError("Expected property name", self.pos)
            key_start = self.pos
            key = self._string()
            if key in result:
                self.diagnostics.append(
                    _parser_diagnostic(f"Duplicate key: {key}", self._range(key_start, self.pos), path + (key,))
                )
            self._skip_ws()
            self._expect(":")
            self._skip_ws()
            result[key] = self._value(path + (key,))
            self._skip_ws()

            ch = self._peek()
            if ch == ",":
                self.pos += 1
                continue
            if ch == "}":
                self.pos += 1
                return result
            raise _JsonSyntaxError("Expected ',' or '}'", self.pos)

    def _array(self, path: JsonPath) -> list[Any]:
        self.pos += 1
        result: list[Any] = []
        self._skip_ws()
        if self._peek() == "]":
            self.pos += 1
            return result

        while True:
            self._skip_ws()
            result.append(self._value(path + (len(result),)))
            self._skip_ws()

            ch = self._peek()
            if ch == ",":
                self.pos += 1
                continue
            if ch == "]":
                self.pos += 1
                return result
            raise _JsonSyntaxError("Expected ',' or ']'", self.pos)


class JsonParser:
    name = "json"

    def parse(self, text: str) -> ParseResult:
        scanner = _JsonScanner(text)
        try:
            data = scanner.parse()
        except _JsonSyntaxError as e:
            rng = _point(scanner.lines.position(e.offset))
            return ParseResult(data=None, diagnostics=[_parser_diagnostic(e.message, rng)])
        return ParseResult(data=data, ranges=scanner.ranges, diagnostics=scanner.diagnostics)


# YAML


def _node_range(node: yaml.Node) -> Range:
    return Range(
        start=Position(line=node.start_mark.line, character=node.start_mark.column),
        end=Position(line=node.end_mark.line, character=node.end_mark.column),
    )


class _YamlBuilder:
    def __init__(self, text: str):
        self.loader = yaml.SafeLoader(text)
        self.ranges: dict[JsonPath, Range] = {}
        self.diagnostics: list[Diagnostic] = []
        self._stack: set[int] = set()

    def parse(self) -> Any:
        try:
            node = self.loader.get_single_node()
            if node is None:
                return None
            return self._build(node, ())
        finally:
            self.loader.dispose()

    def _key(self, node: yaml.Node) -> str:
        if isinstance(node, yaml.ScalarNode):
            return str(node.value)
        return str(self.loader.construct_object(node, deep=True))

    def _build(self, node: yaml.Node, path: JsonPath) -> Any:
        if id(node) in self._stack:
            self.diagnostics.append(_parser_diagnostic("Recursive alias is not supported", _node_range(node), path))
            return None

        self._stack.add(id(node))
        try:
            if isinstance(node, yaml.MappingNode):
                self.loader.flatten_mapping(node)
                result: Any = {}
                for key_node, value_node in node.value:
                    key = self._key(key_node)
                    if key in result:
                        self.diagnostics.append(
                            _parser_diagnostic(f"Duplicate key: {key}", _node_range(key_node), path + (key,))
                        )
                    result[key] = self._build(value_node, path + (key,))
            elif isinstance(node, yaml.SequenceNode):
                result = [self._build(item, path + (i,)) for i, item in enumerate(node.value)]
            else:
                result = self.loader.construct_object(node)
        finally:
            self._stack.discard(id(node))

        self.ranges[path] = _node_range(node)
        return result


class YamlParser:
    name = "yaml"

    def parse(self, text: str) -> ParseResult:
        builder = _YamlBuilder(text)
        try:
            data = builder.parse()
        except yaml.MarkedYAMLError as e:
            mark = e.problem_mark or e.context_mark
            position = Position(line=mark.line, character=mark.column) if mark else Position(0, 0)
            message = e.problem or e.context or "Invalid YAML"
            return ParseResult(data=None, diagnostics=[_parser_diagnostic(message, _point(position))])
        except yaml.YAMLError as e:
            return ParseResult(data=None, diagnostics=[_parser_diagnostic(str(e), _point(Position(0, 0)))])
        return ParseResult(data=data, ranges=builder.ranges, diagnostics=builder.diagnostics)


Json = JsonParser()
Yaml = YamlParser()


class Document:
    """Raw text plus its parsed data, parser diagnostics and value ranges."""

    def __init__(self, text: str, parser: Parser, source: str | None = None):
        self.text = text
        self.parser = parser
        self.source = source

        result = parser.parse(text)
        self.data = result.data
        self.diagnostics = list(result.diagnostics)
        self._ranges = result.ranges
        # An empty YAML document is valid and parses to None as well.
        self.parsed = result.data is not None or not result.diagnostics

    def get_range_for_path(self, path: Iterable[str | int], closest: bool = True) -> Range | None:
        """Range of the value at `path`; with `closest`, of its nearest existing ancestor."""
        current = tuple(path)
        while True:
            rng = self._ranges.get(current)
            if rng is not None or not closest or not current:
                return rng
            current = current[:-1]

    @property
    def root_range(self) -> Range:
        return self.get_range_for_path(()) or _point(Position(0, 0))
