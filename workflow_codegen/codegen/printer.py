"""
Render the code-builder tree as Python source text.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, List, Sequence

from workflow_codegen.codegen.syntax import (
    Assign,
    Attribute,
    AugAssign,
    BinOp,
    Blank,
    BoolOp,
    Break,
    Call,
    Comment,
    Compare,
    DictExpr,
    Expr,
    ExprStmt,
    For,
    FunctionDef,
    Get,
    If,
    Import,
    ImportFrom,
    ListExpr,
    Literal,
    Module,
    Name,
    Not,
    Pass,
    Return,
    Slice,
    Stmt,
    Subscript,
    Try,
    While,
)

INDENT = "    "
INDENT_WIDTH = len(INDENT)
LINE_WIDTH = 88
GET_HELPER = "_get"
COMPARE_HELPER = "_compare"

_ATOM = 100
_PRECEDENCE = {"or": 1, "and": 2, "not": 3, "compare": 4, "+": 5, "-": 5, "*": 6, "/": 6, "//": 6, "%": 6}


class SourcePrinter:
    """
    Prints statements with four-space indentation.

    Collection literals and calls stay on one line while they fit within
    `LINE_WIDTH`, otherwise they print one element per line with a trailing comma.
    """

    def __init__(self, line_width: int = LINE_WIDTH) -> None:
        self.line_width = line_width

    # -- statements -------------------------------------------------
    def print_module(self, module: Module | Sequence[Stmt]) -> str:
        body = module.body if isinstance(module, Module) else module
        return "\n".join(self.statements(body, 0)) + "\n"

    def statements(self, statements: Iterable[Stmt], depth: int) -> List[str]:
        lines: List[str] = []
        for statement in statements:
            lines.extend(self.statement(statement, depth))
        return lines

    def statement(self, stmt: Stmt, depth: int) -> List[str]:
        pad = INDENT * depth
        if isinstance(stmt, Comment):
            return [f"{pad}# {line}".rstrip() for line in (stmt.text.splitlines() or [""])]
        if isinstance(stmt, Blank):
            return [""]
        if isinstance(stmt, Import):
            return [f"{pad}import {stmt.module}"]
        if isinstance(stmt, ImportFrom):
            return [f"{pad}from {stmt.module} import {', '.join(stmt.names)}"]
        if isinstance(stmt, Assign):
            return self._lines(f"{pad}{stmt.target} = ", stmt.value, depth)
        if isinstance(stmt, AugAssign):
            return self._lines(f"{pad}{stmt.target} {stmt.op}= ", stmt.value, depth)
        if isinstance(stmt, ExprStmt):
            return self._lines(pad, stmt.value, depth)
        if isinstance(stmt, If):
            return self._if(stmt, depth, keyword="if")
        if isinstance(stmt, For):
            head = f"{pad}for {stmt.target} in {self.expr(stmt.iter, depth)}:"
            return [head, *self._suite(stmt.body, depth + 1)]
        if isinstance(stmt, While):
            head = f"{pad}while {self.expr(stmt.test, depth)}:"
            return [head, *self._suite(stmt.body, depth + 1)]
        if isinstance(stmt, Try):
            lines = [f"{pad}try:", *self._suite(stmt.body, depth + 1)]
            lines.append(f"{pad}except {stmt.handler}:")
            return [*lines, *self._suite(stmt.handler_body, depth + 1)]
        if isinstance(stmt, Break):
            return [f"{pad}break"]
        if isinstance(stmt, Pass):
            return [f"{pad}pass"]
        if isinstance(stmt, Return):
            if stmt.value is None:
                return [f"{pad}return"]
            return self._lines(f"{pad}return ", stmt.value, depth)
        if isinstance(stmt, FunctionDef):
            return self._function(stmt, depth)
        raise TypeError(f"Unsupported statement node {type(stmt).__name__}")

    def _lines(self, prefix: str, value: Expr, depth: int) -> List[str]:
        return (prefix + self.expr(value, depth)).split("\n")

    def _suite(self, body: Sequence[Stmt], depth: int) -> List[str]:
        lines = self.statements(body, depth)
        if not any(line.strip() and not line.strip().startswith("#") for line in lines):
            lines.append(f"{INDENT * depth}pass")
        return lines

    def _if(self, stmt: If, depth: int, *, keyword: str) -> List[str]:
        pad = INDENT * depth
        lines = [f"{pad}{keyword} {self.expr(stmt.test, depth)}:", *self._suite(stmt.body, depth + 1)]
        if len(stmt.orelse) == 1 and isinstance(stmt.orelse[0], If):
            lines.extend(self._if(stmt.orelse[0], depth, keyword="elif"))
        elif stmt.orelse:
            lines.append(f"{pad}else:")
            lines.extend(self._suite(stmt.orelse, depth + 1))
        return lines

    def _function(self, stmt: FunctionDef, depth: int) -> List[str]:
        pad = INDENT * depth
        lines = [f"{pad}def {stmt.name}({', '.join(stmt.params)}):"]
        if stmt.docstring:
            inner = INDENT * (depth + 1)
            doc_lines = stmt.docstring.strip().splitlines()
            if len(doc_lines) == 1:
                lines.append(f'{inner}"""{doc_lines[0]}"""')
            else:
                lines.append(f'{inner}"""{doc_lines[0]}')
                lines.extend(f"{inner}{line}".rstrip() for line in doc_lines[1:])
                lines.append(f'{inner}"""')
        lines.extend(self._suite(stmt.body, depth + 1))
        return lines

    # -- expressions ------------------------------------------------
    def expr(self, node: Expr, depth: int = 0) -> str:
        if isinstance(node, Name):
            return node.id
        if isinstance(node, Literal):
            return _literal(node.value)
        if isinstance(node, Get):
            return f"{GET_HELPER}({self.expr(node.target, depth)}, {node.key!r})"
        if isinstance(node, Attribute):
            return f"{self._wrap(node.target, _ATOM, depth)}.{node.name}"
        if isinstance(node, Call):
            head = f"{self._wrap(node.func, _ATOM, depth)}("
            return self._sequence(head, [self.expr(arg, depth + 1) for arg in node.args], ")", depth)
        if isinstance(node, Compare):
            prec = _PRECEDENCE["compare"]
            left = self._wrap(node.left, prec + 1, depth)
            right = self._wrap(node.right, prec + 1, depth)
            return f"{left} {node.op} {right}"
        if isinstance(node, BoolOp):
            prec = _PRECEDENCE[node.op]
            return f" {node.op} ".join(self._wrap(value, prec + 1, depth) for value in node.values)
        if isinstance(node, Not):
            return f"not {self._wrap(node.operand, _ATOM, depth)}"
        if isinstance(node, BinOp):
            prec = _PRECEDENCE.get(node.op, 5)
            left = self._wrap(node.left, prec, depth)
            right = self._wrap(node.right, prec + 1, depth)
            return f"{left} {node.op} {right}"
        if isinstance(node, DictExpr):
            items = []
            for entry in node.entries:
                value = self.expr(entry.value, depth + 1)
                if entry.key is None:
                    items.append(f"**{value}")
                else:
                    items.append(f"{self.expr(entry.key, depth + 1)}: {value}")
            return self._sequence("{", items, "}", depth)
        if isinstance(node, ListExpr):
            return self._sequence("[", [self.expr(item, depth + 1) for item in node.items], "]", depth)
        if isinstance(node, Subscript):
            if isinstance(node.index, Slice):
                lower = "" if node.index.lower is None else self.expr(node.index.lower, depth)
                upper = "" if node.index.upper is None else self.expr(node.index.upper, depth)
                index = f"{lower}:{upper}"
            else:
                index = self.expr(node.index, depth)
            return f"{self._wrap(node.target, _ATOM, depth)}[{index}]"
        raise TypeError(f"Unsupported expression node {type(node).__name__}")

    def _precedence(self, node: Expr) -> int:
        if isinstance(node, BoolOp):
            return _PRECEDENCE[node.op]
        if isinstance(node, Not):
            return _PRECEDENCE["not"]
        if isinstance(node, Compare):
            return _PRECEDENCE["compare"]
        if isinstance(node, BinOp):
            return _PRECEDENCE.get(node.op, 5)
        return _ATOM

    def _wrap(self, node: Expr, minimum: int, depth: int) -> str:
        text = self.expr(node, depth)
        if self._precedence(node) < minimum:
            return f"({text})"
        return text

    def _sequence(self, opener: str, items: List[str], closer: str, depth: int) -> str:
        if not items:
            return opener + closer
        single = opener + ", ".join(items) + closer
        if "\n" not in single and len(single) + INDENT_WIDTH * depth <= self.line_width - 12:
            return single
        inner = INDENT * (depth + 1)
        body = "\n".join(f"{inner}{item}," for item in items)
        return f"{opener}\n{body}\n{INDENT * depth}{closer}"



def _literal(value: Any) -> str:
    """`repr`, except non-finite floats, which have no literal form."""

    if isinstance(value, float) and not math.isfinite(value):
        return f"float('{value}')"
    if isinstance(value, list):
        return "[" + ", ".join(_literal(item) for item in value) + "]"
    if isinstance(value, tuple):
        if len(value) == 1:
            return f"({_literal(value[0])},)"
        return "(" + ", ".join(_literal(item) for item in value) + ")"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{_literal(k)}: {_literal(v)}" for k, v in value.items()) + "}"
    return repr(value)
