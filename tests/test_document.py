"""Tests for position-aware JSON/YAML parsing."""

from __future__ import annotations

from apilint.engine import Document, Json, Position, Range, Yaml
from apilint.engine.document import PARSER_CODE, LineIndex


class TestLineIndex:
    def test_handles_all_line_breaks(self):
        index = LineIndex("a\r\nb\rc\nd")
        assert index.position(0) == Position(0, 0)
        assert index.position(3) == Position(1, 0)
        assert index.position(5) == Position(2, 0)
        assert index.position(7) == Position(3, 0)


class TestJson:
    def test_ranges_address_original_text(self):
        doc = Document('{\n  "info": {"title": "x"}\n}', Json)
        assert doc.data == {"info": {"title": "x"}}
        assert doc.get_range_for_path(("info", "title")) == Range(Position(1, 20), Position(1, 23))
        assert doc.root_range.start == Position(0, 0)

    def test_closest_falls_back_to_ancestor(self):
        doc = Document('{"info": {}}', Json)
        assert doc.get_range_for_path(("info", "contact")) == doc.get_range_for_path(("info",))
        assert doc.get_range_for_path(("info", "contact"), closest=False) is None

    def test_tabs_are_whitespace(self):
        doc = Document('{\t"a":\t1}', Json)
        assert doc.parsed
        assert doc.data == {"a": 1}

    def test_scalars(self):
        doc = Document('{"n": -1.5e2, "i": 3, "t": true, "f": false, "z": null, "s": "\\u00e9"}', Json)
        assert doc.data == {"n": -150.0, "i": 3, "t": True, "f": False, "z": None, "s": "é"}

    def test_syntax_error_is_a_parser_diagnostic(self):
        doc = Document('{"a": 1,\n  }', Json)
        assert doc.data is None
        assert not doc.parsed
        [diagnostic] = doc.diagnostics
        assert diagnostic.code == PARSER_CODE
        assert diagnostic.range.start == Position(1, 2)

    def test_duplicate_keys_are_reported(self):
        doc = Document('{"a": 1, "a": 2}', Json)
        assert doc.parsed
        assert doc.data == {"a": 2}
        assert [d.message for d in doc.diagnostics] == ["Duplicate key: a"]

    def test_trailing_content_is_an_error(self):
        doc = Document('{"a": 1} x', Json)
        assert not doc.parsed


class TestYaml:
    def test_ranges_follow_nodes(self):
        doc = Document("openapi: 3.0.0\ninfo:\n  title: Pets\n", Yaml)
        assert doc.data == {"openapi": "3.0.0", "info": {"title": "Pets"}}
        assert doc.get_range_for_path(("info", "title")).start == Position(2, 9)

    def test_keys_are_strings(self):
        doc = Document("responses:\n  200:\n    description: ok\n", Yaml)
        assert list(doc.data["responses"]) == ["200"]

    def test_merge_keys(self):
        doc = Document("base: &b\n  a: 1\nchild:\n  <<: *b\n  c: 2\n", Yaml)
        assert doc.data["child"] == {"a": 1, "c": 2}

    def test_empty_document_parses(self):
        doc = Document("", Yaml)
        assert doc.data is None
        assert doc.parsed
        assert doc.diagnostics == []

    def test_syntax_error_is_a_parser_diagnostic(self):
        doc = Document("a: [1, 2\nb: 3\n", Yaml)
        assert not doc.parsed
        assert [d.code for d in doc.diagnostics] == [PARSER_CODE]

    def test_duplicate_keys_are_reported(self):
        doc = Document("a: 1\na: 2\n", Yaml)
        assert doc.data == {"a": 2}
        [diagnostic] = doc.diagnostics
        assert diagnostic.message == "Duplicate key: a"
        assert diagnostic.range.start == Position(1, 0)
