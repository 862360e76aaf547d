from __future__ import annotations

import re
from typing import Any, Iterator

from .document import Document
from .formats import DISPLAY_NAMES, detect_formats
from .functions import FUNCTIONS, UNDEFINED, FunctionContext, FunctionResult, print_value
from .paths import query
from .schema import Diagnostic, DiagnosticSeverity, JsonPath, Rule, Ruleset

UNRECOGNIZED_FORMAT = "unrecognized-format"

_TEMPLATE_RE = re.compile(r"{{\s*(\w+)\s*}}")


def _print_path(path: JsonPath) -> str:
    return ".".join(str(p) for p in path)


def _render_message(rule: Rule, result: FunctionResult, path: JsonPath, target: Any) -> str:
    if rule.message is None:
        return rule.description or result.message

    values = {
        "error": result.message,
        "property": str(path[-1]) if path else "",
        "path": _print_path(path),
        "description": rule.description or "",
        "value": print_value(target),
    }
    return _TEMPLATE_RE.sub(lambda m: values.get(m.group(1), m.group(0)), rule.message)


def _field_targets(field: str | None, path: JsonPath, value: Any) -> list[tuple[JsonPath, Any]]:
    if field is None:
        return [(path, value)]

    if field == "@key":
        if not isinstance(value, dict):
            return []
        return [(path + (key,), key) for key in value]

    if field.startswith("$"):
        return query(field, value, base=path)

    target_path: list[str | int] = []
    current = value
    for part in field.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
            target_path.append(part)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
            target_path.append(int(part))
        else:
            current = UNDEFINED
            target_path.append(part)
    return [(path + tuple(target_path), current)]


def _prepare(results: list[Diagnostic]) -> list[Diagnostic]:
    """Drop repeats, then order by position so identical input gives identical output."""
    seen: set[tuple[Any, ...]] = set()
    unique: list[Diagnostic] = []
    for d in results:
        key = (d.code, d.path, d.message)
        if key in seen:
            continue
        seen.add(key)
        unique.append(d)

    unique.sort(
        key=lambda d: (
            d.range.start.line,
            d.range.start.character,
            str(d.code),
            tuple(str(p) for p in d.path),
            d.message,
        )
    )
    return unique


class Validator:
    """Runs one ruleset against parsed documents."""

    def __init__(self, ruleset: Ruleset | None = None):
        self._ruleset: Ruleset | None = None
        if ruleset is not None:
            self.set_ruleset(ruleset)

    @property
    def ruleset(self) -> Ruleset | None:
        return self._ruleset

    def set_ruleset(self, ruleset: Ruleset) -> None:
        if not isinstance(ruleset, Ruleset):
            raise TypeError(f"Expected a Ruleset, got {type(ruleset).__name__}")
        self._ruleset = ruleset

    def run(self, document: Document) -> list[Diagnostic]:
        if self._ruleset is None:
            raise RuntimeError("No ruleset has been set")
        ruleset = self._ruleset

        results: list[Diagnostic] = list(document.diagnostics)
        if not document.parsed:
            return _prepare(results)

        formats = detect_formats(document.data)
        registered = ruleset.formats
        if registered and not formats & registered:
            names = ", ".join(DISPLAY_NAMES.get(f, f) for f in sorted(registered))
            results.append(
                Diagnostic(
                    code=UNRECOGNIZED_FORMAT,
                    message=f"The provided document does not match any of the registered formats [{names}]",
                    path=(),
                    severity=DiagnosticSeverity.WARN,
                    range=document.root_range,
                    source=document.source,
                )
            )

        for rule in ruleset.active_rules:
            if rule.formats and not rule.formats & formats:
                continue
            results.extend(self._run_rule(rule, document))

        return _prepare(results)

    def _run_rule(self, rule: Rule, document: Document) -> Iterator[Diagnostic]:
        for given in rule.given:
            for given_path, value in query(given, document.data):
                for then in rule.then:
                    fn = FUNCTIONS[then.function]
                    for target_path, target in _field_targets(then.field, given_path, value):
                        ctx = FunctionContext(path=target_path, document=document, rule=rule)
                        for result in fn(target, then.function_options, ctx):
                            path = result.path if result.path is not None else target_path
                            yield Diagnostic(
                                code=rule.name,
                                message=_render_message(rule, result, path, target),
                                path=path,
                                severity=rule.severity,
                                range=document.get_range_for_path(path) or document.root_range,
                                source=document.source,
                            )
