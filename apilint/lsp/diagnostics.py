"""
Convert apilint annotations to LSP diagnostics.
"""

from __future__ import annotations

from typing import Iterable

from lsprotocol import types as lsp

from ..annotations import Annotation

SOURCE = "apilint"

SEVERITY_MAP = {
    "error": lsp.DiagnosticSeverity.Error,
    "warning": lsp.DiagnosticSeverity.Warning,
}


def to_lsp_diagnostic(annotation: Annotation) -> lsp.Diagnostic:
    return lsp.Diagnostic(
        range=lsp.Range(
            start=lsp.Position(line=annotation.start.line, character=annotation.start.char),
            end=lsp.Position(line=annotation.end.line, character=annotation.end.char),
        ),
        message=annotation.message,
        severity=SEVERITY_MAP.get(annotation.severity, lsp.DiagnosticSeverity.Warning),
        source=SOURCE,
        code=annotation.code,
        data={"action": annotation.action},
    )


def to_lsp_diagnostics(annotations: Iterable[Annotation]) -> list[lsp.Diagnostic]:
    return [to_lsp_diagnostic(a) for a in annotations]
