"""
Classified step records, one per rendered workflow state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from workflow_codegen.codegen.syntax import DictExpr, Expr, ListExpr


class StepKind(str, Enum):
    end = "end"
    for_each = "forEach"
    while_loop = "whileLoop"
    delay = "delay"
    set_variable = "setVariable"
    transform = "transform"
    emit_event = "eventEmit"
    sql_query = "sqlQuery"
    api_call = "apiCall"
    branch = "condition"
    pass_through = "pass"


@dataclass(frozen=True)
class StepBase:
    state_name: str

    @property
    def label(self) -> str:
        return self.state_name


@dataclass(frozen=True)
class EndStep(StepBase):
    kind = StepKind.end


@dataclass(frozen=True)
class PassStep(StepBase):
    kind = StepKind.pass_through


@dataclass(frozen=True)
class ForEachStep(StepBase):
    collection: Expr
    item_variable: str = "item"
    index_variable: str = "index"
    max_iterations: int = 100
    timeout_ms: int = 50000
    batch_size: int = 0

    kind = StepKind.for_each

    @property
    def parallel(self) -> bool:
        return self.batch_size > 0


@dataclass(frozen=True)
class WhileStep(StepBase):
    condition: Expr
    max_iterations: int = 100
    timeout_ms: int = 50000

    kind = StepKind.while_loop


@dataclass(frozen=True)
class DelayStep(StepBase):
    ms: Expr

    kind = StepKind.delay


@dataclass(frozen=True)
class SetVariableStep(StepBase):
    variable_name: str
    value: Expr

    kind = StepKind.set_variable


@dataclass(frozen=True)
class TransformStep(StepBase):
    mapping: DictExpr

    kind = StepKind.transform


@dataclass(frozen=True)
class EmitEventStep(StepBase):
    event_name: Expr
    payload: DictExpr

    kind = StepKind.emit_event


@dataclass(frozen=True)
class SqlQueryStep(StepBase):
    query: Expr
    params: ListExpr

    kind = StepKind.sql_query


@dataclass(frozen=True)
class ApiCallStep(StepBase):
    var_name: str
    src: str
    module: str
    inputs: DictExpr
    route: str = ""
    method: str = "POST"
    comment: Optional[str] = None

    kind = StepKind.api_call


@dataclass(frozen=True)
class BranchArm:
    condition: Expr
    # None when the editor has not picked a target yet
    target: Optional[str]


@dataclass(frozen=True)
class BranchStep(StepBase):
    """Guarded arms are matched top to bottom; `default_target` runs when none match."""

    var_name: str
    arms: Tuple[BranchArm, ...]
    default_target: Optional[str] = None

    kind = StepKind.branch

    @property
    def true_target(self) -> Optional[str]:
        return self.arms[0].target if self.arms else ""

    @property
    def false_target(self) -> Optional[str]:
        return self.default_target


Step = Union[
    EndStep,
    PassStep,
    ForEachStep,
    WhileStep,
    DelayStep,
    SetVariableStep,
    TransformStep,
    EmitEventStep,
    SqlQueryStep,
    ApiCallStep,
    BranchStep,
]
