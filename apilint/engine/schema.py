from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Mapping


class DiagnosticSeverity(IntEnum):
    ERROR = 0
    WARN = 1
    INFO = 2
    HINT = 3


SEVERITY_OFF = -1

SEVERITY_NAMES: dict[str, int] = {
    "error": DiagnosticSeverity.ERROR,
    "warn": DiagnosticSeverity.WARN,
    "info": DiagnosticSeverity.INFO,
    "hint": DiagnosticSeverity.HINT,
    "off": SEVERITY_OFF,
}

DEFAULT_SEVERITY = DiagnosticSeverity.WARN

JsonPath = tuple[str | int, ...]


@dataclass(frozen=True, order=True)
class Position:
    line: int
    character: int


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position


@dataclass(frozen=True)
class Diagnostic:
    code: str | int
    message: str
    path: JsonPath
    severity: int
    range: Range
    source: str | None = None


@dataclass(frozen=True)
class Then:
    function: str
    field: str | None = None
    function_options: dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclass(frozen=True)
class Rule:
    name: str
    given: tuple[str, ...]
    then: tuple[Then, ...]
    severity: int = DEFAULT_SEVERITY
    message: str | None = None
    description: str | None = None
    formats: frozenset[str] | None = None
    recommended: bool = True
    enabled: bool = True
    documentation_url: str | None = None

    @property
    def active(self) -> bool:
        return self.enabled and self.severity != SEVERITY_OFF


@dataclass(frozen=True)
class Ruleset:
    rules: Mapping[str, Rule]
    source: str | None = None
    description: str | None = None

    @property
    def active_rules(self) -> list[Rule]:
        return [r for r in self.rules.values() if r.active]

    @property
    def formats(self) -> frozenset[str]:
        """Union of the formats declared by the active rules."""
        out: set[str] = set()
        for rule in self.active_rules:
            if rule.formats:
                out.update(rule.formats)
        return frozenset(out)
