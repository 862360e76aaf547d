"""apilint - ruleset registry and lint orchestration for API description documents."""

__version__ = "0.1.0"

from .annotations import Annotation, AnnotationPosition, determine_severity, format_result
from .errors import (
    AlreadyExists,
    ApilintError,
    InvalidRuleRef,
    NotFound,
    RulesetCompileError,
    UnknownRuleset,
)
from .linter import Linter, determine_input_type
from .storage import FileKeyValueStore, MemoryKeyValueStore, RuleRef, Storage

__all__ = [
    "__version__",
    "AlreadyExists",
    "Annotation",
    "AnnotationPosition",
    "ApilintError",
    "FileKeyValueStore",
    "InvalidRuleRef",
    "Linter",
    "MemoryKeyValueStore",
    "NotFound",
    "RuleRef",
    "RulesetCompileError",
    "Storage",
    "UnknownRuleset",
    "determine_input_type",
    "determine_severity",
    "format_result",
]
