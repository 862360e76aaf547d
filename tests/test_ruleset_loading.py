"""Tests for ruleset definitions, extends chains and the bundled packs."""

from __future__ import annotations

import asyncio

import pytest

from apilint.engine import RulesetValidationError, Validator, bundle_and_load_ruleset, load_ruleset, parse_ruleset_text
from apilint.engine import Document, Yaml
from apilint.engine.formats import detect_formats
from apilint.engine.load import parse_extends
from apilint.engine.schema import SEVERITY_OFF, DiagnosticSeverity
from apilint.errors import NotFound
from apilint.resolver import ConstantResolver, FetchResolver
from apilint.rulesets import BUILTIN_RULESETS, load_builtin_ruleset


def load(text: str):
    return load_ruleset(parse_ruleset_text(text), source="test")


class TestLoadRuleset:
    def test_collects_every_error(self):
        text = """\
rules:
  a:
    given: nope
    then:
      function: truthy
  b:
    given: $
    severity: loud
    then:
      function: truthy
"""
        with pytest.raises(RulesetValidationError) as exc_info:
            load(text)
        assert len(exc_info.value.errors) == 2
        assert exc_info.value.source == "test"

    def test_unsupported_top_level_key(self):
        with pytest.raises(RulesetValidationError, match="unsupported key"):
            load("overrides: []\nrules: {}\n")

    def test_aliases_expand_into_given(self):
        ruleset = load(
            "aliases:\n  Info: $.info\nrules:\n  r:\n    given: '#Info.contact'\n    then:\n      function: truthy\n"
        )
        assert ruleset.rules["r"].given == ("$.info.contact",)

    def test_undefined_alias(self):
        with pytest.raises(RulesetValidationError, match="alias #Nope"):
            load("rules:\n  r:\n    given: '#Nope'\n    then:\n      function: truthy\n")

    def test_top_level_formats_apply_to_rules(self):
        ruleset = load("formats: [oas3]\nrules:\n  r:\n    given: $\n    then:\n      function: truthy\n")
        assert ruleset.rules["r"].formats == frozenset({"oas3"})
        assert ruleset.formats == frozenset({"oas3"})

    def test_unknown_format(self):
        with pytest.raises(RulesetValidationError, match="unknown format"):
            load("formats: [raml]\nrules: {}\n")

    def test_not_recommended_rules_start_disabled(self):
        ruleset = load("rules:\n  r:\n    given: $\n    recommended: false\n    then:\n      function: truthy\n")
        assert ruleset.active_rules == []

    def test_override_needs_an_inherited_rule(self):
        with pytest.raises(RulesetValidationError, match="cannot override"):
            load("rules:\n  r: error\n")

    def test_parse_extends_forms(self):
        assert parse_extends("spectral:oas") == [("spectral:oas", "recommended")]
        assert parse_extends([["a.yaml", "all"], "b.yaml"]) == [("a.yaml", "all"), ("b.yaml", "recommended")]
        with pytest.raises(RulesetValidationError):
            parse_extends([["a.yaml", "sometimes"]])


class TestBundle:
    def test_extends_builtin_and_overrides(self):
        text = 'extends: [["spectral:oas", all]]\nrules:\n  info-contact: error\n  operation-tags: "off"\n'
        ruleset = asyncio.run(bundle_and_load_ruleset(".spectral.yaml", ConstantResolver(text)))

        assert ruleset.rules["info-contact"].severity == DiagnosticSeverity.ERROR
        assert ruleset.rules["operation-tags"].severity == SEVERITY_OFF
        assert ruleset.rules["info-license"].active
        assert "operation-tags" not in {r.name for r in ruleset.active_rules}

    def test_extends_off_disables_inherited_rules(self):
        text = 'extends: [["apilint:asyncapi", "off"]]\nrules:\n  asyncapi-servers: true\n'
        ruleset = asyncio.run(bundle_and_load_ruleset(".spectral.yaml", ConstantResolver(text)))
        assert [r.name for r in ruleset.active_rules] == ["asyncapi-servers"]

    def test_unknown_builtin(self):
        text = "extends: spectral:raml\n"
        with pytest.raises(RulesetValidationError, match="unknown built-in"):
            asyncio.run(bundle_and_load_ruleset(".spectral.yaml", ConstantResolver(text)))

    def test_constant_resolver_serves_only_its_path(self):
        text = "extends: ./shared.yaml\n"
        with pytest.raises(NotFound) as exc_info:
            asyncio.run(bundle_and_load_ruleset(".spectral.yaml", ConstantResolver(text)))
        assert exc_info.value.path == "shared.yaml"

    def test_extends_cycle(self, make_client):
        client = make_client({"/rules/a.yaml": "extends: b.yaml\n", "/rules/b.yaml": "extends: a.yaml\n"})
        resolver = FetchResolver(client=client)
        with pytest.raises(RulesetValidationError, match="extends cycle"):
            asyncio.run(bundle_and_load_ruleset("rules/a.yaml", resolver, client=client))


class TestBuiltins:
    @pytest.mark.parametrize("name", BUILTIN_RULESETS)
    def test_builtins_load(self, name):
        ruleset = load_builtin_ruleset(name)
        assert ruleset.source == f"apilint:{name}"
        assert ruleset.active_rules

    def test_unknown_builtin_name(self):
        with pytest.raises(KeyError):
            load_builtin_ruleset("raml")

    def test_oas_rules_are_format_scoped(self):
        ruleset = load_builtin_ruleset("oas")
        assert ruleset.formats == frozenset({"oas2", "oas3"})

    def test_validator_flags_trailing_slash_server(self):
        doc = Document(
            "openapi: 3.1.0\ninfo: {title: t, version: '1', contact: {}, description: d}\n"
            "servers:\n  - url: https://api.example.org/\npaths: {}\n",
            Yaml,
        )
        codes = [d.code for d in Validator(load_builtin_ruleset("oas")).run(doc)]
        assert codes == ["oas3-server-trailing-slash"]

    def test_validator_requires_a_ruleset(self):
        with pytest.raises(TypeError):
            Validator().set_ruleset({"rules": {}})


@pytest.mark.parametrize(
    "data,expected",
    [
        ({"swagger": "2.0"}, {"oas2"}),
        ({"swagger": 2.0}, {"oas2"}),
        ({"openapi": "3.0.3"}, {"oas3", "oas3_0"}),
        ({"openapi": "3.1.0"}, {"oas3", "oas3_1"}),
        ({"asyncapi": "2.6.0"}, {"asyncapi2"}),
        ({"asyncapi": "3.0.0"}, {"asyncapi3"}),
        ({"openapi": True}, set()),
        (["openapi"], set()),
    ],
)
def test_detect_formats(data, expected):
    assert detect_formats(data) == frozenset(expected)
