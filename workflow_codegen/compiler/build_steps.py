"""
Stage 3 — Classify every state into exactly one step kind.

Dispatch order (first match wins): final, forEach loop, while loop, the
built-in `core.*` invocations, any other invocation as an api call, an
`always` list with at least one guard, and finally a pass-through marker.
Unrecognized shapes degrade to the generic fallback instead of failing.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, List, Mapping, Optional

from workflow_codegen.codegen.printer import COMPARE_HELPER
from workflow_codegen.codegen.syntax import Compare, Expr, ListExpr, Literal, call
from workflow_codegen.compiler.context import CompilerContext
from workflow_codegen.compiler.steps import (
    ApiCallStep,
    BranchArm,
    BranchStep,
    DelayStep,
    EmitEventStep,
    EndStep,
    ForEachStep,
    PassStep,
    SetVariableStep,
    SqlQueryStep,
    Step,
    TransformStep,
    WhileStep,
)
from workflow_codegen.expr.paths import (
    build_input_object,
    is_reference,
    resolve_guard_key,
    resolve_path,
    sanitize_identifier,
)
from workflow_codegen.schema.models import (
    InvokeDefinition,
    LoopDefinition,
    LoopType,
    StateDefinition,
    WorkflowDefinition,
)

logger = logging.getLogger(__name__)

CORE_DELAY = "core.delay"
CORE_SET_VARIABLE = "core.setVariable"
CORE_TRANSFORM = "core.transform"
CORE_EMIT = "core.emit"
CORE_SQL = "core.sql"

DEFAULT_DELAY_MS = 1000
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_TIMEOUT_MS = 50000

EQUALITY_OPERATORS = frozenset({"==", "!="})
ORDERING_OPERATORS = frozenset({">", "<", ">=", "<="})


def build_steps(
    definition: WorkflowDefinition,
    order: Iterable[str],
    context: Optional[CompilerContext] = None,
) -> List[Step]:
    context = context or CompilerContext()
    steps: List[Step] = []
    for state_name in order:
        state = definition.states.get(state_name)
        if state is None:
            continue
        step = build_step(state_name, state, definition, context)
        if step is None:
            logger.debug("Suppressing pass-through trigger state %s", state_name)
            continue
        steps.append(step)
    return steps


def build_step(
    state_name: str,
    state: StateDefinition,
    definition: WorkflowDefinition,
    context: Optional[CompilerContext] = None,
) -> Optional[Step]:
    """
    Build the step record for one state, or None for the initial trigger state
    when it neither invokes anything nor loops.
    """

    context = context or CompilerContext()

    if state_name == definition.initial and state.invoke is None and state.loop is None:
        return None

    if state.is_final:
        return EndStep(state_name)

    if state.loop is not None:
        loop_step = _build_loop(state_name, state.loop)
        if loop_step is not None:
            return loop_step

    if state.invoke is not None:
        return _build_invoke(state_name, state.invoke, context)

    if state.always:
        branch = _build_branch(state_name, state)
        if branch is not None:
            return branch

    return PassStep(state_name)


# -----------------------------
# Conditions
# -----------------------------
def build_condition(params: Optional[Mapping[str, Any]]) -> Expr:
    """
    Boolean expression for a `{key, operator, value}` guard.

    `contains` is a substring test on the text form of the context value and
    `exists` is a not-None test. Ordering operators go through the `_compare`
    helper, which is False for missing or unorderable values.
    """

    params = params or {}
    left = resolve_guard_key(params.get("key") or "")
    operator = str(params.get("operator") or "==")
    value = params.get("value")
    if value is None:
        value = ""

    if operator == "contains":
        needle = value if isinstance(value, str) else str(value)
        return Compare(Literal(needle), "in", call("str", left))
    if operator == "exists":
        return Compare(left, "is not", Literal(None))
    if operator in ORDERING_OPERATORS:
        return call(COMPARE_HELPER, left, Literal(operator), Literal(value))
    if operator not in EQUALITY_OPERATORS:
        logger.warning("Unsupported guard operator %r; comparing with ==", operator)
        operator = "=="
    return Compare(left, operator, Literal(value))


# -----------------------------
# Loops
# -----------------------------
def _cap(state_name: str, field: str, value: Any, default: int) -> int:
    """Non-negative whole number from a loop setting, else `default`."""

    if value is None:
        return default
    number: Any = None
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        number = int(value)
    if number is None or number < 0:
        logger.warning("State %s has unusable %s %r; using %d", state_name, field, value, default)
        return default
    return number


def _build_loop(state_name: str, loop: LoopDefinition) -> Optional[Step]:
    max_iterations = _cap(state_name, "maxIterations", loop.max_iterations, DEFAULT_MAX_ITERATIONS)
    timeout_ms = _cap(state_name, "timeoutMs", loop.timeout_ms, DEFAULT_TIMEOUT_MS)

    if loop.type == LoopType.for_each.value:
        return ForEachStep(
            state_name,
            collection=resolve_path(loop.collection),
            item_variable=loop.item_variable or "item",
            index_variable=loop.index_variable or "index",
            max_iterations=max_iterations,
            timeout_ms=timeout_ms,
            batch_size=_cap(state_name, "parallelBatchSize", loop.parallel_batch_size, 0),
        )

    if loop.type == LoopType.while_.value:
        params = loop.condition.params if loop.condition is not None else {}
        return WhileStep(
            state_name,
            condition=build_condition(params),
            max_iterations=max_iterations,
            timeout_ms=timeout_ms,
        )

    logger.warning("State %s has unknown loop type %r; ignoring loop shape", state_name, loop.type)
    return None


# -----------------------------
# Invocations
# -----------------------------
def _delay_ms(value: Any) -> Expr:
    """Literal delays are clamped to >= 0 here; references are clamped by the partial."""

    if value is None:
        return Literal(DEFAULT_DELAY_MS)
    if is_reference(value):
        return resolve_path(value)
    if isinstance(value, bool):
        ms: float = math.nan
    elif isinstance(value, int):
        ms = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        ms = int(value)
    else:
        try:
            ms = float(value) if isinstance(value, (float, str)) else math.nan
        except ValueError:
            ms = math.nan
    if not math.isfinite(ms):
        logger.warning("Delay of %r is not a number; using %d ms", value, DEFAULT_DELAY_MS)
        return Literal(DEFAULT_DELAY_MS)
    if ms < 0:
        logger.warning("Negative delay of %r; waiting 0 ms", value)
        return Literal(0)
    return Literal(ms)


def _build_invoke(state_name: str, invoke: InvokeDefinition, context: CompilerContext) -> Step:
    src = invoke.src
    inputs = invoke.input

    if src == CORE_DELAY:
        return DelayStep(state_name, ms=_delay_ms(inputs.get("ms")))

    if src == CORE_SET_VARIABLE:
        return SetVariableStep(
            state_name,
            variable_name=sanitize_identifier(str(inputs.get("name") or "")),
            value=resolve_path(inputs.get("value")),
        )

    if src == CORE_TRANSFORM:
        mapping = inputs.get("mapping")
        return TransformStep(
            state_name,
            mapping=build_input_object(mapping if isinstance(mapping, Mapping) else {}),
        )

    if src == CORE_EMIT:
        payload = inputs.get("payload")
        return EmitEventStep(
            state_name,
            event_name=resolve_path(inputs.get("event") or ""),
            payload=build_input_object(payload if isinstance(payload, Mapping) else {}),
        )

    if src == CORE_SQL:
        params = inputs.get("params")
        resolved = tuple(resolve_path(param) for param in params) if isinstance(params, list) else ()
        query = inputs.get("query")
        return SqlQueryStep(
            state_name,
            query=Literal("" if query is None else query),
            params=ListExpr(resolved),
        )

    return _build_api_call(state_name, invoke, context)


def _build_api_call(state_name: str, invoke: InvokeDefinition, context: CompilerContext) -> ApiCallStep:
    src = invoke.src
    module = src.split(".")[0] or "unknown"

    if "." not in src:
        logger.warning(
            "State %s invokes %r, which is not a module.action pair; route resolution is left to the strategy",
            state_name,
            src,
        )
    elif context.engine is not None and src not in set(context.engine.known_sources()):
        logger.warning("State %s invokes %r, which the workflow engine does not know", state_name, src)

    return ApiCallStep(
        state_name,
        var_name=sanitize_identifier(state_name),
        src=src,
        module=module,
        inputs=build_input_object(invoke.input),
        comment=f"API: {src}" if context.options.include_comments else None,
    )


# -----------------------------
# Guarded branches
# -----------------------------
def _build_branch(state_name: str, state: StateDefinition) -> Optional[BranchStep]:
    guarded = [transition for transition in state.always if transition.guard is not None]
    if not guarded:
        return None
    default = next((transition.target for transition in state.always if transition.guard is None), None)
    return BranchStep(
        state_name,
        var_name=sanitize_identifier(state_name),
        arms=tuple(BranchArm(build_condition(t.guard.params), t.target) for t in guarded),
        default_target=default,
    )
