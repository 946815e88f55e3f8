"""
Stage 4 — Assemble classified steps into one generated Python module.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from workflow_codegen.codegen.partials import PartialRegistry, default_partials
from workflow_codegen.codegen.printer import COMPARE_HELPER, GET_HELPER, SourcePrinter
from workflow_codegen.codegen.syntax import (
    Assign,
    Blank,
    BoolOp,
    Comment,
    Compare,
    FunctionDef,
    If,
    Import,
    ImportFrom,
    Literal,
    Module,
    Name,
    Not,
    Return,
    Stmt,
    Subscript,
    Try,
    call,
    method,
)
from workflow_codegen.compiler.steps import Step
from workflow_codegen.expr.paths import sanitize_identifier
from workflow_codegen.schema.models import CompilerOptions

logger = logging.getLogger(__name__)

_EXTRA_BLANK_LINES = re.compile(r"\n{3,}")

FUNCTION_PREFIX = "execute_workflow_"


def function_name(definition_id: str) -> str:
    return f"{FUNCTION_PREFIX}{sanitize_identifier(definition_id)}"


def _header(definition_id: str, state_count: int, generated_at: str, options: CompilerOptions) -> List[Stmt]:
    return [
        Comment("--- Auto-generated workflow code ---"),
        Comment("Do not edit manually. Re-generate from the workflow editor."),
        Comment(""),
        Comment(f"Workflow: {definition_id}"),
        Comment(f"Generated at: {generated_at}"),
        Comment(f"States: {state_count}"),
        Comment(f"Strategy: {options.strategy_mode.value}"),
        Blank(),
    ]


def _prelude() -> List[Stmt]:
    obj, key = Name("obj"), Name("key")
    lookup = FunctionDef(
        GET_HELPER,
        ("obj", "key"),
        (
            If(Compare(obj, "is", Literal(None)), (Return(Literal(None)),)),
            If(
                call("isinstance", obj, Name("Mapping")),
                (
                    If(Compare(key, "in", obj), (Return(Subscript(obj, key)),)),
                    Return(method(obj, "get", call("str", key))),
                ),
            ),
            If(
                BoolOp(
                    "and",
                    (
                        call("isinstance", key, Name("int")),
                        call("isinstance", obj, Name("Sequence")),
                        Not(call("isinstance", obj, Name("str"))),
                    ),
                ),
                (
                    If(Compare(key, "<", call("len", obj)), (Return(Subscript(obj, key)),)),
                    Return(Literal(None)),
                ),
            ),
            Return(call("getattr", obj, call("str", key), Literal(None))),
        ),
        docstring="Null-propagating lookup used by `$.path` references.",
    )
    return [
        Import("logging"),
        Import("time"),
        ImportFrom("collections.abc", ("Mapping", "Sequence")),
        Blank(),
        Assign("logger", method("logging", "getLogger", Name("__name__"))),
        Blank(),
        lookup,
        Blank(),
        _ordering(),
        Blank(),
    ]


def _ordering() -> FunctionDef:
    left, op, right = Name("left"), Name("op"), Name("right")
    missing = BoolOp("or", (Compare(left, "is", Literal(None)), Compare(right, "is", Literal(None))))
    # `<=` is the fall-through case
    checks = tuple(
        If(Compare(op, "==", Literal(symbol)), (Return(Compare(left, symbol, right)),))
        for symbol in (">", "<", ">=")
    )
    return FunctionDef(
        COMPARE_HELPER,
        ("left", "op", "right"),
        (
            If(missing, (Return(Literal(False)),)),
            Try((*checks, Return(Compare(left, "<=", right))), "TypeError", (Return(Literal(False)),)),
        ),
        docstring="Ordering comparison that is False when a side is missing or unorderable.",
    )


def _entrypoint(definition_id: str, state_count: int, body: Sequence[Stmt]) -> FunctionDef:
    docstring = (
        f"Run workflow {sanitize_identifier(definition_id)} ({state_count} states).\n"
        "\n"
        "`strategy.execute_api_call(descriptor, input)` performs API calls; the\n"
        "descriptor's `route` is empty and resolved by the strategy."
    )
    return FunctionDef(
        function_name(definition_id),
        ("payload", "strategy"),
        (
            Assign("context", call("dict", Name("payload"))),
            Blank(),
            *body,
            Return(Name("context")),
        ),
        docstring=docstring,
    )


def normalize_whitespace(source: str) -> str:
    """At most one consecutive blank line, single trailing newline."""

    return _EXTRA_BLANK_LINES.sub("\n\n", source).strip() + "\n"


def render(
    steps: Sequence[Step],
    definition_id: str,
    state_count: int,
    *,
    options: Optional[CompilerOptions] = None,
    partials: Optional[PartialRegistry] = None,
    generated_at: Optional[str] = None,
) -> str:
    """
    Render the generated module: header, prelude, and one function whose body
    holds one fragment per step followed by `return context`.
    """

    options = options or CompilerOptions()
    partials = partials or default_partials()
    generated_at = generated_at or datetime.now(timezone.utc).isoformat()

    body: List[Stmt] = []
    for step in steps:
        body.extend(partials.render(step, options))
        body.append(Blank())

    module = Module()
    module.extend(_header(definition_id, state_count, generated_at, options))
    module.extend(_prelude())
    module.extend([_entrypoint(definition_id, state_count, body)])

    source = SourcePrinter().print_module(module)
    logger.debug("Rendered %d steps for workflow %s (%d bytes)", len(steps), definition_id, len(source))
    return normalize_whitespace(source)
