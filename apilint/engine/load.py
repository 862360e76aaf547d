from __future__ import annotations

from dataclasses import replace
from types import MappingProxyType
from typing import Any, Literal, Sequence

import yaml

from .formats import FORMATS
from .functions import check_function_options
from .paths import PathSyntaxError, compile_path
from .schema import DEFAULT_SEVERITY, SEVERITY_NAMES, SEVERITY_OFF, Rule, Ruleset, Then

ExtendsMode = Literal["recommended", "all", "off"]
EXTENDS_MODES: tuple[str, ...] = ("recommended", "all", "off")

_SUPPORTED_KEYS = {"extends", "formats", "aliases", "rules", "description", "documentationUrl"}


class RulesetValidationError(ValueError):
    """A rule definition document is invalid; `errors` lists every problem found."""

    def __init__(self, errors: list[str], source: str | None = None):
        self.errors = errors
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Invalid ruleset{where}: " + "; ".join(errors))


def parse_ruleset_text(text: str, source: str | None = None) -> dict[str, Any]:
    """Parse a YAML or JSON rule definition into a mapping."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RulesetValidationError([f"not valid YAML/JSON: {e}"], source) from e
    if not isinstance(data, dict):
        raise RulesetValidationError(["a ruleset must be an object"], source)
    return data


def parse_extends(value: Any, source: str | None = None) -> list[tuple[str, ExtendsMode]]:
    """
    Normalise `extends` to (reference, mode) pairs.

    Accepts a string, or a list of strings and `[reference, mode]` pairs.
    """
    if value is None:
        return []
    items = [value] if isinstance(value, str) else value
    if not isinstance(items, list):
        raise RulesetValidationError(["extends: must be a string or a list"], source)

    out: list[tuple[str, ExtendsMode]] = []
    for item in items:
        if isinstance(item, str) and item.strip():
            out.append((item.strip(), "recommended"))
        elif (
            isinstance(item, list)
            and len(item) == 2
            and isinstance(item[0], str)
            and item[1] in EXTENDS_MODES
        ):
            out.append((item[0].strip(), item[1]))
        else:
            raise RulesetValidationError([f"extends: invalid entry {item!r}"], source)
    return out


def _parse_severity(value: Any, where: str, errors: list[str]) -> int | None:
    if value is None:
        return DEFAULT_SEVERITY
    if isinstance(value, str) and value in SEVERITY_NAMES:
        return SEVERITY_NAMES[value]
    if isinstance(value, int) and not isinstance(value, bool) and SEVERITY_OFF <= value <= 3:
        return value
    errors.append(f"{where}.severity: expected one of error, warn, info, hint, off or -1..3, got {value!r}")
    return None


def _parse_formats(value: Any, where: str, errors: list[str]) -> frozenset[str] | None:
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(f, str) for f in value):
        errors.append(f"{where}: must be a list of format names")
        return None
    unknown = [f for f in value if f not in FORMATS]
    if unknown:
        errors.append(f"{where}: unknown format(s) {', '.join(unknown)}")
        return None
    return frozenset(value)


def _parse_aliases(value: Any, errors: list[str]) -> dict[str, list[str]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        errors.append("aliases: must be an object")
        return {}

    aliases: dict[str, list[str]] = {}
    for name, target in value.items():
        targets = [target] if isinstance(target, str) else target
        if not isinstance(targets, list) or not all(isinstance(t, str) and t.startswith("$") for t in targets):
            errors.append(f"aliases.{name}: must be a JSONPath or a list of JSONPaths")
            continue
        aliases[str(name)] = targets
    return aliases


def _expand_given(given: str, aliases: dict[str, list[str]], where: str, errors: list[str]) -> list[str]:
    if not given.startswith("#"):
        return [given]

    end = len(given)
    for sep in (".", "["):
        idx = given.find(sep, 1)
        if idx != -1:
            end = min(end, idx)
    alias, suffix = given[1:end], given[end:]
    if alias not in aliases:
        errors.append(f"{where}.given: alias #{alias} is not defined")
        return []
    return [target + suffix for target in aliases[alias]]


def _parse_then(raw: Any, where: str, errors: list[str]) -> list[Then]:
    entries = raw if isinstance(raw, list) else [raw]
    out: list[Then] = []
    for i, entry in enumerate(entries):
        loc = f"{where}.then[{i}]" if isinstance(raw, list) else f"{where}.then"
        if not isinstance(entry, dict):
            errors.append(f"{loc}: must be an object")
            continue

        function = entry.get("function")
        if not isinstance(function, str) or not function:
            errors.append(f"{loc}.function: is required")
            continue

        field = entry.get("field")
        if field is not None:
            if not isinstance(field, str) or not field:
                errors.append(f"{loc}.field: must be a non-empty string")
                continue
            if field.startswith("$"):
                try:
                    compile_path(field)
                except PathSyntaxError as e:
                    errors.append(f"{loc}.field: {e}")
                    continue

        options = entry.get("functionOptions") or {}
        if not isinstance(options, dict):
            errors.append(f"{loc}.functionOptions: must be an object")
            continue

        problem = check_function_options(function, options)
        if problem:
            errors.append(f"{loc}: {problem}")
            continue

        out.append(Then(function=function, field=field, function_options=options))
    return out


def _parse_rule(
    name: str,
    raw: dict[str, Any],
    *,
    default_formats: frozenset[str] | None,
    aliases: dict[str, list[str]],
    errors: list[str],
) -> Rule | None:
    where = f"rules.{name}"
    start = len(errors)

    given_raw = raw.get("given")
    given_list = [given_raw] if isinstance(given_raw, str) else given_raw
    if not isinstance(given_list, list) or not given_list or not all(isinstance(g, str) for g in given_list):
        errors.append(f"{where}.given: must be a JSONPath or a non-empty list of JSONPaths")
        given_list = []

    given: list[str] = []
    for expr in given_list:
        for expanded in _expand_given(expr, aliases, where, errors):
            try:
                compile_path(expanded)
            except PathSyntaxError as e:
                errors.append(f"{where}.given: {e}")
                continue
            given.append(expanded)

    if "then" not in raw:
        errors.append(f"{where}.then: is required")
        then: list[Then] = []
    else:
        then = _parse_then(raw["then"], where, errors)

    severity = _parse_severity(raw.get("severity"), where, errors)

    message = raw.get("message")
    if message is not None and not isinstance(message, str):
        errors.append(f"{where}.message: must be a string")

    description = raw.get("description")
    description_str = description if isinstance(description, str) else None

    recommended = raw.get("recommended", True)
    if not isinstance(recommended, bool):
        errors.append(f"{where}.recommended: must be a boolean")

    formats = _parse_formats(raw.get("formats"), f"{where}.formats", errors)

    doc_url = raw.get("documentationUrl")

    if len(errors) > start or severity is None:
        return None

    return Rule(
        name=name,
        given=tuple(given),
        then=tuple(then),
        severity=severity,
        message=message,
        description=description_str,
        formats=formats if formats is not None else default_formats,
        recommended=recommended,
        enabled=recommended,
        documentation_url=doc_url if isinstance(doc_url, str) else None,
    )


def _apply_mode(rule: Rule, mode: ExtendsMode) -> Rule:
    if mode == "off":
        enabled = False
    elif mode == "all":
        enabled = True
    else:
        enabled = rule.enabled
    return rule if enabled == rule.enabled else replace(rule, enabled=enabled)


def _override(rule: Rule, value: Any, where: str, errors: list[str]) -> Rule | None:
    if isinstance(value, bool):
        return replace(rule, enabled=value)
    severity = _parse_severity(value, where, errors)
    if severity is None:
        return None
    if severity == SEVERITY_OFF:
        return replace(rule, enabled=False, severity=severity)
    return replace(rule, enabled=True, severity=severity)


def load_ruleset(
    definition: dict[str, Any],
    *,
    source: str | None = None,
    extends: Sequence[tuple[Ruleset, ExtendsMode]] = (),
) -> Ruleset:
    """
    Build a Ruleset from a parsed definition.

    `extends` carries the already-loaded rulesets named by the definition's
    `extends` key, in order; later entries and the definition's own rules
    win on name collisions.
    """
    errors: list[str] = []

    unsupported = sorted(set(definition) - _SUPPORTED_KEYS)
    if unsupported:
        errors.append(f"unsupported key(s): {', '.join(unsupported)}")

    default_formats = _parse_formats(definition.get("formats"), "formats", errors)
    aliases = _parse_aliases(definition.get("aliases"), errors)

    rules: dict[str, Rule] = {}
    for base, mode in extends:
        for name, rule in base.rules.items():
            rules[name] = _apply_mode(rule, mode)

    raw_rules = definition.get("rules", {})
    if raw_rules is None:
        raw_rules = {}
    if not isinstance(raw_rules, dict):
        errors.append("rules: must be an object")
        raw_rules = {}

    for raw_name, raw in raw_rules.items():
        name = str(raw_name)
        where = f"rules.{name}"
        if isinstance(raw, dict):
            rule = _parse_rule(name, raw, default_formats=default_formats, aliases=aliases, errors=errors)
        elif isinstance(raw, (str, bool, int)):
            inherited = rules.get(name)
            if inherited is None:
                errors.append(f"{where}: cannot override a rule that no extended ruleset defines")
                continue
            rule = _override(inherited, raw, where, errors)
        else:
            errors.append(f"{where}: must be a rule object or a severity override")
            continue

        if rule is not None:
            rules[name] = rule

    if errors:
        raise RulesetValidationError(errors, source)

    description = definition.get("description")
    return Ruleset(
        rules=MappingProxyType(rules),
        source=source,
        description=description if isinstance(description, str) else None,
    )
