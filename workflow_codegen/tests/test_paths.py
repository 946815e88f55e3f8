from __future__ import annotations

import math
import re
import string

import pytest

from workflow_codegen.codegen.printer import SourcePrinter
from workflow_codegen.codegen.syntax import CONTEXT, Get, Literal
from workflow_codegen.expr.paths import (
    build_input_object,
    is_reference,
    resolve_guard_key,
    resolve_path,
    resolve_path_source,
    sanitize_identifier,
)

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("playerId", "playerId"),
        ("my-var", "my_var"),
        ("hello world!", "hello_world_"),
        ("123abc", "_123abc"),
        ("a__b", "a_b"),
        ("", "_"),
        ("$$$", "_"),
    ],
)
def test_sanitize_identifier(raw: str, expected: str) -> None:
    assert sanitize_identifier(raw) == expected


def test_sanitize_identifier_is_total_and_idempotent_over_printable_ascii() -> None:
    samples = list(string.printable) + [string.printable, "9 lives", "__init__", "x.y.z", "1__2"]
    for raw in samples:
        once = sanitize_identifier(raw)
        assert IDENTIFIER.match(once), raw
        assert sanitize_identifier(once) == once


def test_is_reference() -> None:
    assert is_reference("$.player")
    assert is_reference("$.")
    assert not is_reference("$player")
    assert not is_reference(42)
    assert not is_reference(None)


def test_resolve_path_builds_null_safe_lookups() -> None:
    assert resolve_path("$.player.id") == Get(Get(CONTEXT, "player"), "id")
    assert resolve_path_source("$.player.id") == "_get(_get(context, 'player'), 'id')"


def test_resolve_path_digit_segments_index_sequences() -> None:
    assert resolve_path_source("$.items.0.name") == "_get(_get(_get(context, 'items'), 0), 'name')"


def test_resolve_path_keeps_non_identifier_segments_as_string_keys() -> None:
    assert resolve_path_source("$.user-data.first name") == "_get(_get(context, 'user-data'), 'first name')"


def test_resolve_path_bare_prefix_is_the_context() -> None:
    assert resolve_path("$.") == CONTEXT


@pytest.mark.parametrize(
    "value",
    ["hello", "", 42, -3.5, True, False, None, [1, "two", None], {"a": {"b": [True, 2.0]}}, "$not-a-ref"],
)
def test_resolve_path_literals_evaluate_to_the_input(value: object) -> None:
    assert resolve_path(value) == Literal(value)
    assert eval(resolve_path_source(value)) == value



def test_non_finite_floats_print_as_valid_python() -> None:
    assert resolve_path_source(float("inf")) == "float('inf')"
    assert eval(resolve_path_source(float("-inf"))) == float("-inf")
    assert math.isnan(eval(resolve_path_source(float("nan"))))
    assert eval(resolve_path_source({"caps": [float("-inf"), 1.5], "pair": (1,)})) == {
        "caps": [float("-inf"), 1.5],
        "pair": (1,),
    }


def test_resolve_guard_key_accepts_keys_with_or_without_prefix() -> None:
    assert resolve_guard_key("status") == resolve_guard_key("$.status") == Get(CONTEXT, "status")
    assert resolve_guard_key("") == CONTEXT


def test_build_input_object_sanitizes_keys_and_resolves_values() -> None:
    mapping = build_input_object({"player-id": "$.player.id", "limit": 10})

    assert SourcePrinter().expr(mapping) == "{'player_id': _get(_get(context, 'player'), 'id'), 'limit': 10}"
    assert build_input_object(None).entries == ()
