"""Tests for the JSONPath subset used by `given` and `field`."""

from __future__ import annotations

import pytest

from apilint.engine.paths import PathSyntaxError, compile_path, query

DOC = {
    "info": {"title": "Pets", "contact": {"name": "Ops"}},
    "paths": {
        "/pets": {"get": {"description": "list"}, "post": {"description": "create"}, "parameters": []},
    },
    "tags": [{"name": "b"}, {"name": "a"}],
}


def paths_of(expr: str, data=DOC) -> list[tuple]:
    return [path for path, _ in query(expr, data)]


def test_root():
    assert query("$", DOC) == [((), DOC)]


def test_child_and_wildcard():
    assert paths_of("$.info.title") == [("info", "title")]
    assert paths_of("$.info.*") == [("info", "title"), ("info", "contact")]


def test_union_of_methods():
    assert paths_of("$.paths[*][get,put,post]") == [("paths", "/pets", "get"), ("paths", "/pets", "post")]


def test_quoted_member_with_slash():
    assert paths_of("$.paths['/pets'].get") == [("paths", "/pets", "get")]


def test_array_index_and_negative_index():
    assert paths_of("$.tags[0].name") == [("tags", 0, "name")]
    assert paths_of("$.tags[-1]") == [("tags", 1)]


def test_descendant():
    assert paths_of("$..description") == [
        ("paths", "/pets", "get", "description"),
        ("paths", "/pets", "post", "description"),
    ]
    assert paths_of("$..name") == [("info", "contact", "name"), ("tags", 0, "name"), ("tags", 1, "name")]


def test_missing_members_select_nothing():
    assert query("$.servers[*].url", DOC) == []
    assert query("$.info.title.deeper", DOC) == []


def test_base_prefixes_paths():
    assert query("$.name", {"name": "x"}, base=("tags", 0)) == [(("tags", 0, "name"), "x")]


def test_integer_selector_on_mapping_uses_string_key():
    assert paths_of("$.responses[200]", {"responses": {"200": {}}}) == [("responses", "200")]


@pytest.mark.parametrize("expr", ["info", "$.paths[?(@.get)]", "$.tags[0:2]", "$.tags[", "$.", "$x"])
def test_rejected_expressions(expr):
    with pytest.raises(PathSyntaxError):
        compile_path(expr)


def test_quoted_colon_is_a_member_name():
    assert paths_of("$['a:b']", {"a:b": 1}) == [("a:b",)]
