from __future__ import annotations

import pytest

from workflow_codegen.codegen.partials import PartialNotFoundError, PartialRegistry, default_partials
from workflow_codegen.codegen.printer import SourcePrinter
from workflow_codegen.codegen.render import function_name, normalize_whitespace, render
from workflow_codegen.codegen.syntax import (
    CONTEXT,
    Assign,
    BoolOp,
    Comment,
    Compare,
    FunctionDef,
    Get,
    If,
    Literal,
    Name,
    Not,
    Return,
    Try,
    dict_of,
    merge_into_context,
)
from workflow_codegen.compiler.steps import (
    ApiCallStep,
    BranchArm,
    BranchStep,
    DelayStep,
    EndStep,
    PassStep,
    StepKind,
)
from workflow_codegen.schema.models import CompilerOptions, StrategyMode

TIMESTAMP = "2024-01-01T00:00:00+00:00"


def _print(*statements) -> str:
    return SourcePrinter().print_module(list(statements))


# -----------------------------
# Printer
# -----------------------------
def test_if_elif_else_chain() -> None:
    statement = If(
        Compare(Name("x"), ">", Literal(1)),
        (Assign("y", Literal(1)),),
        (If(Compare(Name("x"), "<", Literal(0)), (Assign("y", Literal(-1)),), (Assign("y", Literal(0)),)),),
    )

    assert _print(statement) == "if x > 1:\n    y = 1\nelif x < 0:\n    y = -1\nelse:\n    y = 0\n"


def test_comment_only_suite_gets_pass() -> None:
    assert _print(If(Name("flag"), (Comment("nothing to do"),))) == "if flag:\n    # nothing to do\n    pass\n"



def test_try_except_block() -> None:
    statement = Try((Return(Name("value")),), "TypeError", (Return(Literal(False)),))

    assert _print(statement) == "try:\n    return value\nexcept TypeError:\n    return False\n"


def test_expression_precedence() -> None:
    printer = SourcePrinter()

    assert printer.expr(Not(Compare(Name("a"), "==", Literal(1)))) == "not (a == 1)"
    assert printer.expr(BoolOp("and", (BoolOp("or", (Name("a"), Name("b"))), Name("c")))) == "(a or b) and c"


def test_long_collections_wrap_with_trailing_commas() -> None:
    printer = SourcePrinter(line_width=40)
    statement = Assign("d", dict_of(("alpha", Literal(1)), ("beta", Literal(2)), ("gamma", Literal(3))))

    assert printer.print_module([statement]) == "d = {\n    'alpha': 1,\n    'beta': 2,\n    'gamma': 3,\n}\n"


def test_merge_into_context_spreads_previous_context() -> None:
    assert _print(merge_into_context(("total", Name("_sum")))) == "context = {**context, 'total': _sum}\n"


def test_function_with_multiline_docstring() -> None:
    function = FunctionDef("run", ("payload",), (Return(Name("payload")),), docstring="Run it.\n\nTwice.")

    assert _print(function) == 'def run(payload):\n    """Run it.\n\n    Twice.\n    """\n    return payload\n'


def test_multiline_comments_stay_comments() -> None:
    assert _print(Comment("Workflow: a\nb")) == "# Workflow: a\n# b\n"


# -----------------------------
# Partials
# -----------------------------
def test_each_render_gets_a_fresh_registry() -> None:
    custom = default_partials()
    custom.register(StepKind.pass_through, lambda step, options: [Comment(f"custom {step.state_name}")])

    assert "custom idle" in render([PassStep("idle")], "demo", 1, partials=custom, generated_at=TIMESTAMP)
    assert "custom idle" not in render([PassStep("idle")], "demo", 1, generated_at=TIMESTAMP)
    assert default_partials().get(StepKind.pass_through) is not custom.get(StepKind.pass_through)


def test_missing_partial_raises() -> None:
    with pytest.raises(PartialNotFoundError):
        PartialRegistry().get(StepKind.end)


def test_api_call_partial_defers_route_to_strategy() -> None:
    step = ApiCallStep(
        "fetch",
        var_name="fetch",
        src="players.get",
        module="players",
        inputs=dict_of(("id", Literal(7))),
        comment="API: players.get",
    )

    source = _print(*default_partials().render(step, CompilerOptions()))

    assert "# API: players.get" in source
    assert "'route': ''" in source
    assert "'module': 'players'" in source
    assert "fetch_result = strategy.execute_api_call(" in source
    assert "context = {**context, **fetch_result, 'fetch_output': fetch_result}" in source


def test_branch_partial_renders_ordered_arms_with_default() -> None:
    step = BranchStep(
        "check",
        var_name="check",
        arms=(
            BranchArm(Compare(Name("a"), "==", Literal(1)), "one"),
            BranchArm(Compare(Name("a"), "==", Literal(2)), "two"),
        ),
        default_target="other",
    )

    source = _print(*default_partials().render(step, CompilerOptions()))

    assert source == (
        "# Step: check (Condition)\n"
        "if a == 1:\n"
        "    # Condition passed -> continue to one\n"
        "    context = {**context, 'check_route': 'one'}\n"
        "elif a == 2:\n"
        "    # Condition passed -> continue to two\n"
        "    context = {**context, 'check_route': 'two'}\n"
        "else:\n"
        "    # Condition failed -> continue to other\n"
        "    context = {**context, 'check_route': 'other'}\n"
    )


def test_delay_partial_sleeps_in_seconds() -> None:
    source = _print(*default_partials().render(DelayStep("wait", ms=Literal(500)), CompilerOptions()))

    assert "time.sleep(500 / 1000)" in source


def test_delay_partial_clamps_runtime_values() -> None:
    source = _print(*default_partials().render(DelayStep("wait", ms=Get(CONTEXT, "wait")), CompilerOptions()))

    assert "time.sleep(max(0, _get(context, 'wait') or 0) / 1000)" in source


# -----------------------------
# Module assembly
# -----------------------------
def test_render_header_and_entrypoint() -> None:
    options = CompilerOptions(strategy_mode=StrategyMode.direct)

    source = render([EndStep("end")], "order-flow", 2, options=options, generated_at=TIMESTAMP)

    assert source.startswith("# --- Auto-generated workflow code ---\n")
    assert "# Workflow: order-flow\n" in source
    assert f"# Generated at: {TIMESTAMP}\n" in source
    assert "# States: 2\n" in source
    assert "# Strategy: direct\n" in source
    assert "def execute_workflow_order_flow(payload, strategy):\n" in source
    assert "    context = dict(payload)\n" in source
    assert "    # End state: end\n" in source
    assert source.endswith("    return context\n")
    assert "\n\n\n" not in source
    compile(source, "<generated>", "exec")


def test_render_without_steps_still_compiles() -> None:
    source = render([], "empty", 0, generated_at=TIMESTAMP)

    compile(source, "<generated>", "exec")
    assert function_name("empty") == "execute_workflow_empty"


def test_normalize_whitespace() -> None:
    assert normalize_whitespace("a\n\n\n\nb\n\n") == "a\n\nb\n"


def test_prelude_ordering_helper() -> None:
    namespace: dict = {}
    exec(render([], "empty", 0, generated_at=TIMESTAMP), namespace)
    compare = namespace["_compare"]

    assert compare(3, ">", 2)
    assert compare(2, "<=", 2)
    assert not compare(None, "<", 1)
    assert not compare(1, ">=", None)
    assert not compare("a", "<", 1)
