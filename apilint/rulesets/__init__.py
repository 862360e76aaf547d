"""Rule packs shipped with apilint."""

from __future__ import annotations

import importlib.resources
from functools import cache

from ..engine.load import load_ruleset, parse_ruleset_text
from ..engine.schema import Ruleset

BUILTIN_RULESETS: tuple[str, ...] = ("oas", "asyncapi")


@cache
def load_builtin_ruleset(name: str) -> Ruleset:
    """Load a bundled rule pack by name; unknown names raise KeyError."""
    if name not in BUILTIN_RULESETS:
        raise KeyError(name)
    text = importlib.resources.files(__name__).joinpath(f"{name}.yaml").read_text(encoding="utf-8")
    source = f"apilint:{name}"
    return load_ruleset(parse_ruleset_text(text, source=source), source=source)
