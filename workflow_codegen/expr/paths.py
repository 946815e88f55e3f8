"""
Identifier sanitizing and `$.a.b` reference resolution.

A reference expression is a string starting with `$.` followed by dot-separated
segments; it points at a field of the runtime `context`. Every other value is a
literal and is emitted as an equivalent Python literal.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Union

from workflow_codegen.codegen.printer import SourcePrinter
from workflow_codegen.codegen.syntax import CONTEXT, DictEntry, DictExpr, Expr, Get, Literal

REFERENCE_PREFIX = "$."

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_]")
_UNDERSCORE_RUN = re.compile(r"_+")
_INDEX = re.compile(r"^[0-9]+$")


def sanitize_identifier(name: str) -> str:
    """
    Turn an arbitrary user supplied name into a legal bare identifier.

    Characters outside `[A-Za-z0-9_]` become `_`, a leading digit gets a `_`
    prefix and runs of `_` collapse to one. The result is idempotent and never
    empty.
    """

    cleaned = _INVALID_CHARS.sub("_", str(name))
    if cleaned[:1].isdigit():
        cleaned = f"_{cleaned}"
    cleaned = _UNDERSCORE_RUN.sub("_", cleaned)
    return cleaned or "_"


def is_reference(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(REFERENCE_PREFIX)


def _segment_key(segment: str) -> Union[str, int]:
    # identifier-safe and bracket-only segments are both string keys; digits index sequences
    if _INDEX.match(segment):
        return int(segment)
    return segment


def resolve_path(value: Any) -> Expr:
    """
    Resolve a reference or literal into an expression node.

    `$.player.id` becomes `_get(_get(context, 'player'), 'id')`; anything else
    is returned as a `Literal`. Never raises.
    """

    if not is_reference(value):
        return Literal(value)

    path = value[len(REFERENCE_PREFIX):]
    node: Expr = CONTEXT
    if not path:
        return node
    for segment in path.split("."):
        node = Get(node, _segment_key(segment))
    return node


def resolve_guard_key(key: str) -> Expr:
    """Guard keys are context paths written with or without the `$.` prefix."""

    key = str(key or "")
    if is_reference(key):
        return resolve_path(key)
    return resolve_path(f"{REFERENCE_PREFIX}{key}")


def build_input_object(mapping: Mapping[str, Any] | None) -> DictExpr:
    """Resolve every entry of an input mapping into a dict literal keyed by sanitized names."""

    entries = tuple(
        DictEntry(Literal(sanitize_identifier(key)), resolve_path(value))
        for key, value in (mapping or {}).items()
    )
    return DictExpr(entries)


def resolve_path_source(value: Any) -> str:
    """Printed form of `resolve_path(value)`."""

    return SourcePrinter().expr(resolve_path(value))
