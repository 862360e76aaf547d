"""Tests for engine diagnostic -> annotation mapping."""

from __future__ import annotations

import pytest

from apilint.annotations import Annotation, AnnotationPosition, determine_severity, format_result
from apilint.engine import UNRECOGNIZED_FORMAT, Diagnostic, Position, Range


def diagnostic(code="rule", severity=1, line=0) -> Diagnostic:
    return Diagnostic(
        code=code,
        message=f"{code} message",
        path=(),
        severity=severity,
        range=Range(Position(line, 1), Position(line, 4)),
    )


@pytest.mark.parametrize(
    "severity,code,expected",
    [
        (0, "any-rule", "error"),
        (1, "any-rule", "warning"),
        (2, "any-rule", "warning"),
        (3, "any-rule", "warning"),
        (1, UNRECOGNIZED_FORMAT, "error"),
        (3, UNRECOGNIZED_FORMAT, "error"),
        (0, 42, "error"),
    ],
)
def test_determine_severity(severity, code, expected):
    assert determine_severity(severity, code) == expected


def test_format_result_maps_fields_and_keeps_order():
    results = format_result([diagnostic("b", 1, line=3), diagnostic("a", 0, line=1)])

    assert results == [
        Annotation(
            message="b message",
            start=AnnotationPosition(line=3, char=1),
            end=AnnotationPosition(line=3, char=4),
            severity="warning",
            code="b",
        ),
        Annotation(
            message="a message",
            start=AnnotationPosition(line=1, char=1),
            end=AnnotationPosition(line=1, char=4),
            severity="error",
            code="a",
        ),
    ]
    assert {a.action for a in results} == {"unknown"}


def test_format_result_empty():
    assert format_result([]) == []


def test_to_dict():
    [annotation] = format_result([diagnostic("r", 0)])
    assert annotation.to_dict() == {
        "message": "r message",
        "start": {"line": 0, "char": 1},
        "end": {"line": 0, "char": 4},
        "severity": "error",
        "code": "r",
        "action": "unknown",
    }
