"""
A small statement/expression tree for the Python code we emit.

Step fragments build these nodes instead of concatenating strings; the
`SourcePrinter` is the only place that knows how they look as text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Tuple, Union


# -----------------------------
# Expressions
# -----------------------------
@dataclass(frozen=True)
class Name:
    id: str


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Get:
    """Null-propagating lookup: `_get(target, key)`."""

    target: "Expr"
    key: Union[str, int]


@dataclass(frozen=True)
class Attribute:
    target: "Expr"
    name: str


@dataclass(frozen=True)
class Call:
    func: "Expr"
    args: Tuple["Expr", ...] = ()


@dataclass(frozen=True)
class Compare:
    left: "Expr"
    op: str
    right: "Expr"


@dataclass(frozen=True)
class BoolOp:
    op: str  # "and" | "or"
    values: Tuple["Expr", ...]


@dataclass(frozen=True)
class Not:
    operand: "Expr"


@dataclass(frozen=True)
class BinOp:
    left: "Expr"
    op: str
    right: "Expr"


@dataclass(frozen=True)
class DictEntry:
    # key=None spreads `value` into the literal (`**value`)
    key: Optional["Expr"]
    value: "Expr"


@dataclass(frozen=True)
class DictExpr:
    entries: Tuple[DictEntry, ...] = ()


@dataclass(frozen=True)
class ListExpr:
    items: Tuple["Expr", ...] = ()


@dataclass(frozen=True)
class Slice:
    lower: Optional["Expr"] = None
    upper: Optional["Expr"] = None


@dataclass(frozen=True)
class Subscript:
    target: "Expr"
    index: Union["Expr", Slice]


Expr = Union[
    Name, Literal, Get, Attribute, Call, Compare, BoolOp, Not, BinOp, DictExpr, ListExpr, Subscript
]


# -----------------------------
# Statements
# -----------------------------
@dataclass(frozen=True)
class Comment:
    text: str


@dataclass(frozen=True)
class Blank:
    pass


@dataclass(frozen=True)
class Import:
    module: str


@dataclass(frozen=True)
class ImportFrom:
    module: str
    names: Tuple[str, ...]


@dataclass(frozen=True)
class Assign:
    target: str
    value: Expr


@dataclass(frozen=True)
class AugAssign:
    target: str
    op: str
    value: Expr


@dataclass(frozen=True)
class ExprStmt:
    value: Expr


@dataclass(frozen=True)
class If:
    test: Expr
    body: Tuple["Stmt", ...]
    # A single nested If in orelse prints as `elif`.
    orelse: Tuple["Stmt", ...] = ()


@dataclass(frozen=True)
class For:
    target: str
    iter: Expr
    body: Tuple["Stmt", ...]


@dataclass(frozen=True)
class While:
    test: Expr
    body: Tuple["Stmt", ...]


@dataclass(frozen=True)
class Try:
    """`try:` with a single `except <handler>:` clause."""

    body: Tuple["Stmt", ...]
    handler: str
    handler_body: Tuple["Stmt", ...]


@dataclass(frozen=True)
class Break:
    pass


@dataclass(frozen=True)
class Pass:
    pass


@dataclass(frozen=True)
class Return:
    value: Optional[Expr] = None


@dataclass(frozen=True)
class FunctionDef:
    name: str
    params: Tuple[str, ...]
    body: Tuple["Stmt", ...]
    docstring: Optional[str] = None


Stmt = Union[
    Comment,
    Blank,
    Import,
    ImportFrom,
    Assign,
    AugAssign,
    ExprStmt,
    If,
    For,
    While,
    Try,
    Break,
    Pass,
    Return,
    FunctionDef,
]


# -----------------------------
# Builders
# -----------------------------
CONTEXT = Name("context")


def call(func: Union[str, Expr], *args: Expr) -> Call:
    target = Name(func) if isinstance(func, str) else func
    return Call(target, tuple(args))


def method(target: Union[str, Expr], name: str, *args: Expr) -> Call:
    owner = Name(target) if isinstance(target, str) else target
    return Call(Attribute(owner, name), tuple(args))


def dict_of(*pairs: Tuple[Optional[Any], Expr]) -> DictExpr:
    """Build a dict literal; string keys become literals, None keys spread."""

    entries = []
    for key, value in pairs:
        if key is None:
            entries.append(DictEntry(None, value))
        elif isinstance(key, str):
            entries.append(DictEntry(Literal(key), value))
        else:
            entries.append(DictEntry(key, value))
    return DictExpr(tuple(entries))


def merge_into_context(*pairs: Tuple[Optional[Any], Expr]) -> Assign:
    """`context = {**context, ...}`"""

    return Assign("context", dict_of((None, CONTEXT), *pairs))


@dataclass
class Module:
    """Top-level container handed to the printer."""

    body: list = field(default_factory=list)

    def extend(self, statements: Sequence[Stmt]) -> None:
        self.body.extend(statements)
