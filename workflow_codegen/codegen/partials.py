"""
Per-step-kind code fragments.

Each partial turns one classified step into statements for the body of the
generated function. Partials never look at neighbouring steps: steps only
communicate through the `context` dict they replace.
"""

from __future__ import annotations

from typing import Callable, Dict, List, MutableMapping, Optional, Sequence

from workflow_codegen.codegen.syntax import (
    CONTEXT,
    Assign,
    AugAssign,
    BinOp,
    BoolOp,
    Break,
    Comment,
    Compare,
    ExprStmt,
    For,
    If,
    Literal,
    Name,
    Not,
    Slice,
    Stmt,
    Subscript,
    While,
    call,
    dict_of,
    merge_into_context,
    method,
)
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
    StepKind,
    TransformStep,
    WhileStep,
)
from workflow_codegen.schema.models import CompilerOptions

Partial = Callable[[Step, CompilerOptions], List[Stmt]]


def _now():
    return method("time", "monotonic")


def _deadline(timeout_ms: int) -> Assign:
    return Assign("_deadline", BinOp(_now(), "+", BinOp(Literal(timeout_ms), "/", Literal(1000))))


def end_partial(step: EndStep, options: CompilerOptions) -> List[Stmt]:
    return [Comment(f"End state: {step.label}"), Comment("Workflow complete")]


def pass_partial(step: PassStep, options: CompilerOptions) -> List[Stmt]:
    return [Comment(f"Step: {step.label} (Pass-through)")]


def delay_partial(step: DelayStep, options: CompilerOptions) -> List[Stmt]:
    ms = step.ms
    if not isinstance(ms, Literal):
        # runtime values may be missing or negative
        ms = call("max", Literal(0), BoolOp("or", (ms, Literal(0))))
    return [
        Comment(f"Step: {step.label} (Delay)"),
        ExprStmt(method("time", "sleep", BinOp(ms, "/", Literal(1000)))),
    ]


def set_variable_partial(step: SetVariableStep, options: CompilerOptions) -> List[Stmt]:
    return [
        Comment(f"Step: {step.label} (Set Variable)"),
        Assign("_var_value", step.value),
        merge_into_context((step.variable_name, Name("_var_value"))),
    ]


def transform_partial(step: TransformStep, options: CompilerOptions) -> List[Stmt]:
    return [
        Comment(f"Step: {step.label} (Transform)"),
        Assign("_transformed", step.mapping),
        Assign("context", dict_of((None, CONTEXT), (None, Name("_transformed")))),
    ]


def emit_event_partial(step: EmitEventStep, options: CompilerOptions) -> List[Stmt]:
    return [
        Comment(f"Step: {step.label} (Emit Event)"),
        Assign("_event_name", step.event_name),
        Assign("_event_payload", step.payload),
        Comment("Delivery belongs to the runtime event bus"),
        ExprStmt(
            method("logger", "info", Literal("[Event] %s %s"), Name("_event_name"), Name("_event_payload"))
        ),
    ]


def sql_query_partial(step: SqlQueryStep, options: CompilerOptions) -> List[Stmt]:
    return [
        Comment(f"Step: {step.label} (SQL Query)"),
        Assign("_query", step.query),
        Assign("_params", step.params),
        Comment("SQL execution requires a database connection"),
        ExprStmt(method("logger", "info", Literal("[SQL] %s %s"), Name("_query"), Name("_params"))),
    ]


def api_call_partial(step: ApiCallStep, options: CompilerOptions) -> List[Stmt]:
    result = f"{step.var_name}_result"
    statements: List[Stmt] = []
    if step.comment:
        statements.append(Comment(step.comment))
    descriptor = dict_of(
        ("route", Literal(step.route)),
        ("method", Literal(step.method)),
        ("module", Literal(step.module)),
        ("src", Literal(step.src)),
    )
    statements.extend(
        [
            Comment(f"Step: {step.label} ({step.src})"),
            Assign("_input", step.inputs),
            Assign(result, method("strategy", "execute_api_call", descriptor, Name("_input"))),
            merge_into_context((None, Name(result)), (f"{step.var_name}_output", Name(result))),
        ]
    )
    return statements


def _route(step: BranchStep, target: Optional[str], passed: bool) -> List[Stmt]:
    verdict = "passed" if passed else "failed"
    return [
        Comment(f"Condition {verdict} -> continue to {target or '(no target)'}"),
        merge_into_context((f"{step.var_name}_route", Literal(target))),
    ]


def _arms(step: BranchStep, arms: Sequence[BranchArm]) -> List[Stmt]:
    if not arms:
        if step.default_target:
            return _route(step, step.default_target, passed=False)
        return []
    head, rest = arms[0], arms[1:]
    return [If(head.condition, tuple(_route(step, head.target, passed=True)), tuple(_arms(step, rest)))]


def branch_partial(step: BranchStep, options: CompilerOptions) -> List[Stmt]:
    return [Comment(f"Step: {step.label} (Condition)"), *_arms(step, step.arms)]


def for_each_partial(step: ForEachStep, options: CompilerOptions) -> List[Stmt]:
    capped = Subscript(Name("_collection"), Slice(upper=Literal(step.max_iterations)))
    out_of_time = If(Compare(_now(), ">=", Name("_deadline")), (Break(),))

    if step.parallel:
        size = Literal(step.batch_size)
        chunk = Subscript(Name("_capped"), Slice(Name("_batch"), BinOp(Name("_batch"), "+", size)))
        iteration = dict_of(
            (None, CONTEXT),
            (step.item_variable, Name("_item")),
            (step.index_variable, BinOp(Name("_batch"), "+", Name("_i"))),
        )
        loop: List[Stmt] = [
            Assign("_capped", capped),
            For(
                "_batch",
                call("range", Literal(0), call("len", Name("_capped")), size),
                (
                    out_of_time,
                    Comment(f"Batch of up to {step.batch_size} items"),
                    For(
                        "_i, _item",
                        call("enumerate", chunk),
                        (
                            Comment("Loop body would execute here"),
                            ExprStmt(method("_results", "append", iteration)),
                        ),
                    ),
                ),
            ),
        ]
    else:
        loop = [
            For(
                "_i, _item",
                call("enumerate", capped),
                (
                    out_of_time,
                    merge_into_context((step.item_variable, Name("_item")), (step.index_variable, Name("_i"))),
                    Comment("Loop body would execute here"),
                    ExprStmt(method("_results", "append", Name("_item"))),
                ),
            )
        ]

    mode = f"parallel batches of {step.batch_size}" if step.parallel else "sequential"
    return [
        Comment(f"Step: {step.label} (ForEach Loop, {mode})"),
        Assign("_collection", step.collection),
        If(
            call("isinstance", Name("_collection"), Name("list")),
            (
                Assign("_results", Literal([])),
                _deadline(step.timeout_ms),
                *loop,
                merge_into_context(
                    ("results", Name("_results")),
                    ("iterationCount", call("len", Name("_results"))),
                ),
            ),
        ),
    ]


def while_partial(step: WhileStep, options: CompilerOptions) -> List[Stmt]:
    return [
        Comment(f"Step: {step.label} (While Loop)"),
        Assign("_iteration_count", Literal(0)),
        _deadline(step.timeout_ms),
        While(
            BoolOp(
                "and",
                (
                    Compare(Name("_iteration_count"), "<", Literal(step.max_iterations)),
                    Compare(_now(), "<", Name("_deadline")),
                ),
            ),
            (
                If(Not(step.condition), (Break(),)),
                Comment("Loop body would execute here"),
                AugAssign("_iteration_count", "+", Literal(1)),
            ),
        ),
        merge_into_context(("iterationCount", Name("_iteration_count"))),
    ]


_BUILTIN_PARTIALS: Dict[StepKind, Partial] = {
    StepKind.end: end_partial,
    StepKind.pass_through: pass_partial,
    StepKind.delay: delay_partial,
    StepKind.set_variable: set_variable_partial,
    StepKind.transform: transform_partial,
    StepKind.emit_event: emit_event_partial,
    StepKind.sql_query: sql_query_partial,
    StepKind.api_call: api_call_partial,
    StepKind.branch: branch_partial,
    StepKind.for_each: for_each_partial,
    StepKind.while_loop: while_partial,
}


class PartialNotFoundError(KeyError):
    """Raised when no partial is registered for a step kind."""


class PartialRegistry:
    """
    Step kind -> fragment builder. Create one per render call so overrides
    registered by one compilation never leak into another.
    """

    def __init__(self, initial: Optional[MutableMapping[StepKind, Partial]] = None) -> None:
        self._partials: Dict[StepKind, Partial] = dict(initial or {})

    def register(self, kind: StepKind, partial: Partial) -> None:
        self._partials[kind] = partial

    def get(self, kind: StepKind) -> Partial:
        try:
            return self._partials[kind]
        except KeyError as exc:
            raise PartialNotFoundError(f"No partial registered for step kind '{kind.value}'") from exc

    def render(self, step: Step, options: CompilerOptions) -> List[Stmt]:
        return self.get(step.kind)(step, options)


def default_partials() -> PartialRegistry:
    return PartialRegistry(_BUILTIN_PARTIALS)
