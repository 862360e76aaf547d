"""Document validation engine: rules as data, functions as code."""

from .bundler import bundle_and_load_ruleset
from .document import Document, Json, Yaml
from .load import RulesetValidationError, load_ruleset, parse_ruleset_text
from .runner import UNRECOGNIZED_FORMAT, Validator
from .schema import Diagnostic, DiagnosticSeverity, Position, Range, Rule, Ruleset

__all__ = [
    "Diagnostic",
    "DiagnosticSeverity",
    "Document",
    "Json",
    "Position",
    "Range",
    "Rule",
    "Ruleset",
    "RulesetValidationError",
    "UNRECOGNIZED_FORMAT",
    "Validator",
    "Yaml",
    "bundle_and_load_ruleset",
    "load_ruleset",
    "parse_ruleset_text",
]
