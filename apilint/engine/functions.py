"""Core rule functions (rules as data, functions as code)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

import jsonschema

from .schema import JsonPath

if TYPE_CHECKING:
    from .document import Document
    from .schema import Rule


class _Undefined:
    """Marks a `field` that is absent, as opposed to present with a null value."""

    _instance: "_Undefined | None" = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "undefined"


UNDEFINED = _Undefined()


@dataclass(frozen=True)
class FunctionContext:
    path: JsonPath
    document: "Document"
    rule: "Rule"


@dataclass(frozen=True)
class FunctionResult:
    message: str
    path: JsonPath | None = None


FunctionFn = Callable[[Any, dict[str, Any], FunctionContext], list[FunctionResult]]
OptionsCheck = Callable[[dict[str, Any]], str | None]


def print_property(path: JsonPath) -> str:
    """`"name" ` for the last path segment, empty for the root."""
    if not path:
        return ""
    return f'"{path[-1]}" '


def print_value(value: Any) -> str:
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, str):
        return f'"{value}"'
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return type(value).__name__
    return str(value)


def js_truthy(value: Any) -> bool:
    if value is UNDEFINED or value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0 and value == value
    if isinstance(value, str):
        return value != ""
    return True


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def truthy(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    if js_truthy(target):
        return []
    return [FunctionResult(f"{print_property(ctx.path)}property must be truthy")]


def falsy(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    if not js_truthy(target):
        return []
    return [FunctionResult(f"{print_property(ctx.path)}property must be falsy")]


def defined(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    if target is not UNDEFINED:
        return []
    return [FunctionResult(f"{print_property(ctx.path)}property must be defined")]


def undefined(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    if target is UNDEFINED:
        return []
    return [FunctionResult(f"{print_property(ctx.path)}property must be undefined")]


_REGEX_LITERAL = re.compile(r"^/(.+)/([a-z]*)$", re.DOTALL)
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile `pattern`, accepting the `/regex/flags` literal form."""
    literal = _REGEX_LITERAL.match(pattern)
    if literal is None:
        return re.compile(pattern)
    flags = 0
    for flag in literal.group(2):
        flags |= _REGEX_FLAGS.get(flag, 0)
    return re.compile(literal.group(1), flags)


def pattern(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    if not isinstance(target, str):
        return []

    results: list[FunctionResult] = []
    match = options.get("match")
    if isinstance(match, str) and compile_pattern(match).search(target) is None:
        results.append(FunctionResult(f'{print_value(target)} must match the pattern "{match}"'))

    not_match = options.get("notMatch")
    if isinstance(not_match, str) and compile_pattern(not_match).search(target) is not None:
        results.append(FunctionResult(f'{print_value(target)} must not match the pattern "{not_match}"'))
    return results


def _check_pattern(options: dict[str, Any]) -> str | None:
    present = [k for k in ("match", "notMatch") if k in options]
    if not present:
        return '"pattern" function requires "match" or "notMatch" option'
    for key in present:
        if not isinstance(options[key], str):
            return f'"pattern" function option "{key}" must be a string'
        try:
            compile_pattern(options[key])
        except re.error as e:
            return f'"pattern" function option "{key}" is not a valid regular expression: {e}'
    return None


def _enum_key(value: Any) -> tuple[str, Any]:
    # bool is an int subclass; JSON numbers have a single type
    if isinstance(value, bool):
        return ("boolean", value)
    if isinstance(value, (int, float)):
        return ("number", value)
    return (type(value).__name__, value)


def enumeration(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    if target is UNDEFINED or not _is_primitive(target):
        return []
    values = options["values"]
    if _enum_key(target) in {_enum_key(v) for v in values}:
        return []
    allowed = ", ".join(print_value(v).strip('"') for v in values)
    return [FunctionResult(f"{print_value(target)} must be equal to one of the allowed values: {allowed}")]


def _check_enumeration(options: dict[str, Any]) -> str | None:
    values = options.get("values")
    if not isinstance(values, list) or not all(_is_primitive(v) for v in values):
        return '"enumeration" function requires "values" to be a list of primitives'
    return None


def length(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    if target is UNDEFINED or target is None:
        return []
    if isinstance(target, (int, float)) and not isinstance(target, bool):
        size = target
    elif isinstance(target, (str, list, dict)):
        size = len(target)
    else:
        return []

    prop = print_property(ctx.path)
    results: list[FunctionResult] = []
    if "min" in options and size < options["min"]:
        results.append(FunctionResult(f"{prop}must be longer than {options['min']}"))
    if "max" in options and size > options["max"]:
        results.append(FunctionResult(f"{prop}must be shorter than {options['max']}"))
    return results


def _check_length(options: dict[str, Any]) -> str | None:
    bounds = {k: options[k] for k in ("min", "max") if k in options}
    if not bounds:
        return '"length" function requires "min" or "max" option'
    for key, value in bounds.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return f'"length" function option "{key}" must be a number'
    return None


_CASING_TEMPLATES = {
    "flat": "[a-z][a-z{d}]*",
    "camel": "[a-z][a-z{d}]*(?:[A-Z{d}](?:[a-z{d}]+|$))*",
    "pascal": "[A-Z][a-z{d}]*(?:[A-Z{d}](?:[a-z{d}]+|$))*",
    "kebab": "[a-z][a-z{d}]*(?:-[a-z{d}]+)*",
    "cobol": "[A-Z][A-Z{d}]*(?:-[A-Z{d}]+)*",
    "snake": "[a-z][a-z{d}]*(?:_[a-z{d}]+)*",
    "macro": "[A-Z][A-Z{d}]*(?:_[A-Z{d}]+)*",
}


def casing(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    if not isinstance(target, str) or not target:
        return []
    digits = "" if options.get("disallowDigits") else "0-9"
    regex = _CASING_TEMPLATES[options["type"]].replace("{d}", digits)
    if re.fullmatch(regex, target):
        return []
    return [FunctionResult(f"{print_value(target)} must be {options['type']} case")]


def _check_casing(options: dict[str, Any]) -> str | None:
    if options.get("type") not in _CASING_TEMPLATES:
        return f'"casing" function requires "type" to be one of: {", ".join(_CASING_TEMPLATES)}'
    return None


def _sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


def alphabetical(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    keyed_by = options.get("keyedBy")
    if isinstance(target, dict):
        items: list[tuple[JsonPath, Any]] = [(ctx.path + (k,), k) for k in target]
    elif isinstance(target, list):
        items = []
        for index, item in enumerate(target):
            if keyed_by:
                if not isinstance(item, dict) or keyed_by not in item:
                    continue
                item = item[keyed_by]
            items.append((ctx.path + (index,), item))
    else:
        return []

    for (_, previous), (path, current) in zip(items, items[1:]):
        if _sort_key(previous) > _sort_key(current):
            return [FunctionResult(f"{print_value(previous)} must be placed after {print_value(current)}", path=path)]
    return []


def xor(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    if not isinstance(target, dict):
        return []
    properties = options["properties"]
    present = [p for p in properties if p in target]
    if len(present) == 1:
        return []
    names = " and ".join(f'"{p}"' for p in properties)
    return [FunctionResult(f"{names} must not be both defined or both undefined")]


def _check_xor(options: dict[str, Any]) -> str | None:
    properties = options.get("properties")
    if not isinstance(properties, list) or len(properties) < 2 or not all(isinstance(p, str) for p in properties):
        return '"xor" function requires "properties" to be a list of at least two strings'
    return None


def schema(target: Any, options: dict[str, Any], ctx: FunctionContext) -> list[FunctionResult]:
    if target is UNDEFINED:
        if options.get("allowUndefined"):
            return []
        return [FunctionResult(f"{print_property(ctx.path)}property must exist")]
    schema_def = options["schema"]
    validator_cls = jsonschema.validators.validator_for(schema_def)
    validator = validator_cls(schema_def)
    errors = sorted(validator.iter_errors(target), key=lambda e: [str(p) for p in e.absolute_path])
    return [FunctionResult(error.message, path=ctx.path + tuple(error.absolute_path)) for error in errors]


def _check_schema(options: dict[str, Any]) -> str | None:
    schema_def = options.get("schema")
    if not isinstance(schema_def, (dict, bool)):
        return '"schema" function requires "schema" option'
    try:
        jsonschema.validators.validator_for(schema_def).check_schema(schema_def)
    except jsonschema.SchemaError as e:
        return f'"schema" function option "schema" is invalid: {e.message}'
    return None


FUNCTIONS: dict[str, FunctionFn] = {
    "truthy": truthy,
    "falsy": falsy,
    "defined": defined,
    "undefined": undefined,
    "pattern": pattern,
    "enumeration": enumeration,
    "length": length,
    "casing": casing,
    "alphabetical": alphabetical,
    "xor": xor,
    "schema": schema,
}

OPTION_CHECKS: dict[str, OptionsCheck] = {
    "pattern": _check_pattern,
    "enumeration": _check_enumeration,
    "length": _check_length,
    "casing": _check_casing,
    "xor": _check_xor,
    "schema": _check_schema,
}


def check_function_options(name: str, options: dict[str, Any]) -> str | None:
    """Return a problem description for `name`'s options, or None when valid."""
    if name not in FUNCTIONS:
        return f'Function "{name}" is not defined'
    check = OPTION_CHECKS.get(name)
    return check(options) if check else None
