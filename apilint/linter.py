"""
Ruleset registry and lint orchestration.

`Linter` owns a mapping of ruleset name -> compiled Ruleset, fills it from
rule references, and lints raw document text against a named entry.
"""

from __future__ import annotations

import logging
from typing import Literal

import httpx

from .annotations import Annotation, format_result
from .config import Settings
from .engine import Document, Json, Ruleset, RulesetValidationError, Validator, Yaml, bundle_and_load_ruleset
from .errors import InvalidRuleRef, RulesetCompileError, UnknownRuleset
from .resolver import RULES_PREFIX, ConstantResolver, ContentResolver, FetchResolver
from .rulesets import BUILTIN_RULESETS, load_builtin_ruleset
from .storage import RuleRef, Storage

logger = logging.getLogger(__name__)

InputType = Literal["json", "yaml"]


def determine_input_type(text: str) -> InputType:
    """
    Guess the serialisation from the first character.

    Only a leading "{" means JSON; malformed JSON is still classified as JSON
    and fails at parse time. Leading whitespace is not skipped.
    """
    if text[:1] == "{":
        return "json"
    return "yaml"


class Linter:
    """Registry of named rulesets plus the lint entry points."""

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        rules_prefix: str = RULES_PREFIX,
    ):
        self.client = client
        self.settings = settings
        self.rules_prefix = rules_prefix
        self._rulesets: dict[str, Ruleset] = {}

        for name in BUILTIN_RULESETS:
            self._set_ruleset(name, load_builtin_ruleset(name))

    @property
    def supported_rulesets(self) -> list[str]:
        return list(self._rulesets)

    def list_supported_rulesets(self) -> list[str]:
        return self.supported_rulesets

    def get_ruleset(self, name: str) -> Ruleset | None:
        return self._rulesets.get(name)

    def _set_ruleset(self, name: str, ruleset: Ruleset) -> None:
        if name in self._rulesets:
            logger.debug(f"Replacing ruleset {name!r}")
        self._rulesets[name] = ruleset

    async def _bundle(self, name: str, entry: str, resolver: ContentResolver) -> Ruleset:
        try:
            return await bundle_and_load_ruleset(entry, resolver, client=self.client, settings=self.settings)
        except RulesetValidationError as e:
            raise RulesetCompileError(name, str(e)) from e

    async def add_ruleset(self, name: str, value: str) -> None:
        """Compile an inline rule definition and register it under `name`."""
        resolver = ConstantResolver(value)
        self._set_ruleset(name, await self._bundle(name, resolver.path, resolver))

    async def add_ruleset_from_url(self, name: str, href: str) -> None:
        """Compile the rule definition at `href` and register it under `name`."""
        resolver = FetchResolver(self.rules_prefix, client=self.client, settings=self.settings)
        self._set_ruleset(name, await self._bundle(name, href, resolver))

    async def setup_from_rule_ref(self, ref: RuleRef) -> None:
        has_href = bool(ref.href)
        has_value = bool(ref.value)
        if has_href == has_value:
            raise InvalidRuleRef(ref.name)
        if has_href:
            await self.add_ruleset_from_url(ref.name, ref.href)
        else:
            await self.add_ruleset(ref.name, ref.value)

    async def setup(self, storage: Storage) -> None:
        """
        Resolve every reference in `storage`, one at a time.

        The first failure propagates and the remaining references are not
        attempted. Callers wanting partial tolerance should loop over
        `setup_from_rule_ref` themselves.
        """
        for rule_ref in storage.iterator():
            await self.setup_from_rule_ref(rule_ref)

    def lint(self, document: Document, ruleset: Ruleset) -> list[Annotation]:
        validator = Validator()
        validator.set_ruleset(ruleset)
        return format_result(validator.run(document))

    def lint_raw(self, text: str, ruleset_name: str) -> list[Annotation]:
        input_type = determine_input_type(text)
        parser = Json if input_type == "json" else Yaml
        document = Document(text, parser, f"openapi.{input_type}")

        ruleset = self._rulesets.get(ruleset_name)
        if ruleset is None:
            raise UnknownRuleset(ruleset_name)
        return self.lint(document, ruleset)
