"""
Map engine diagnostics to editor annotations.

Annotations are the stable, UI-agnostic output contract: zero-based
line/char ranges, two severity buckets, and an `action` slot reserved for
future auto-fix wiring.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal

from .engine.runner import UNRECOGNIZED_FORMAT
from .engine.schema import Diagnostic, DiagnosticSeverity

AnnotationSeverity = Literal["error", "warning"]


@dataclass(frozen=True)
class AnnotationPosition:
    line: int
    char: int


@dataclass(frozen=True)
class Annotation:
    message: str
    start: AnnotationPosition
    end: AnnotationPosition
    severity: AnnotationSeverity
    code: str | int
    action: Literal["unknown"] = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "start": {"line": self.start.line, "char": self.start.char},
            "end": {"line": self.end.line, "char": self.end.char},
            "severity": self.severity,
            "code": self.code,
            "action": self.action,
        }


def determine_severity(severity: int, code: str | int) -> AnnotationSeverity:
    """Collapse engine severities into the two annotation buckets."""
    if code == UNRECOGNIZED_FORMAT:
        return "error"
    if severity == DiagnosticSeverity.ERROR:
        return "error"
    # TODO: info/hint still collapse into warning until annotations get an info type
    return "warning"


def format_result(diagnostics: Iterable[Diagnostic]) -> list[Annotation]:
    """One annotation per diagnostic, in input order."""
    results: list[Annotation] = []
    for d in diagnostics:
        results.append(
            Annotation(
                message=d.message,
                start=AnnotationPosition(line=d.range.start.line, char=d.range.start.character),
                end=AnnotationPosition(line=d.range.end.line, char=d.range.end.character),
                severity=determine_severity(d.severity, d.code),
                code=d.code,
            )
        )
    return results
