"""Error taxonomy for the ruleset registry and configuration store."""

from __future__ import annotations


class ApilintError(Exception):
    """Base class for errors raised by apilint."""


class InvalidRuleRef(ApilintError, ValueError):
    """A rule reference has neither (or both of) `href` and `value`."""

    def __init__(self, name: str | None):
        self.name = name
        super().__init__(f"Rule reference {name!r} must set exactly one of 'href' or 'value'")


class NotFound(ApilintError, LookupError):
    """A remote index or rule file could not be fetched."""

    def __init__(self, path: str, status_code: int | None = None):
        self.path = path
        self.status_code = status_code
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Rule '{path}' not found{detail}")


class RulesetCompileError(ApilintError):
    """The engine rejected a rule definition; the engine error is the __cause__."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Ruleset {name!r} failed to compile: {reason}")


class UnknownRuleset(ApilintError, LookupError):
    """Lint was requested against a ruleset name that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No ruleset called '{name}' exists.")


class AlreadyExists(ApilintError, ValueError):
    """A strict `Storage.add` collided with an existing rule name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Rule {name!r} already exists")
