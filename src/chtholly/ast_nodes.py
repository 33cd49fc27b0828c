"""AST node definitions for the Chtholly language."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from chtholly.source import Span

# ── Type annotations ─────────────────────────────────────────────


@dataclass(frozen=True)
class SimpleType:
    name: str
    span: Span


@dataclass(frozen=True)
class ArrayType:
    element: TypeAnnotation
    span: Span


TypeAnnotation = Union[SimpleType, ArrayType]


@dataclass(frozen=True)
class Param:
    name: str
    type_annotation: TypeAnnotation | None
    span: Span


# ── Expressions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class IdentifierExpr:
    name: str
    span: Span


@dataclass(frozen=True)
class IntegerLit:
    value: int
    span: Span


@dataclass(frozen=True)
class FloatLit:
    value: float
    span: Span


@dataclass(frozen=True)
class StringLit:
    value: str  # unescaped
    span: Span


@dataclass(frozen=True)
class CharLit:
    value: str
    span: Span


@dataclass(frozen=True)
class BooleanLit:
    value: bool
    span: Span


@dataclass(frozen=True)
class PrefixExpr:
    op: str
    operand: Expr
    span: Span


@dataclass(frozen=True)
class InfixExpr:
    left: Expr
    op: str
    right: Expr
    span: Span


@dataclass(frozen=True)
class AssignExpr:
    target: Expr  # IdentifierExpr or IndexExpr
    op: str
    value: Expr
    span: Span


@dataclass(frozen=True)
class UpdateExpr:
    """``++x`` or ``x--``; ``prefix`` tells the two forms apart."""

    op: str
    target: Expr  # IdentifierExpr or IndexExpr
    prefix: bool
    span: Span


@dataclass(frozen=True)
class IfExpr:
    condition: Expr
    consequence: Block
    alternative: Block | None
    span: Span


@dataclass(frozen=True)
class FunctionLit:
    params: list[Param]
    body: Block
    name: str | None
    return_type: TypeAnnotation | None
    span: Span


@dataclass(frozen=True)
class CallExpr:
    callee: Expr
    args: list[Expr]
    span: Span


@dataclass(frozen=True)
class IndexExpr:
    target: Expr
    index: Expr
    span: Span


@dataclass(frozen=True)
class ArrayLit:
    elements: list[Expr]
    span: Span


Expr = Union[
    IdentifierExpr,
    IntegerLit,
    FloatLit,
    StringLit,
    CharLit,
    BooleanLit,
    PrefixExpr,
    InfixExpr,
    AssignExpr,
    UpdateExpr,
    IfExpr,
    FunctionLit,
    CallExpr,
    IndexExpr,
    ArrayLit,
]


# ── Statements ───────────────────────────────────────────────────


@dataclass(frozen=True)
class LetStmt:
    name: str
    type_annotation: TypeAnnotation | None
    value: Expr
    span: Span


@dataclass(frozen=True)
class MutStmt:
    name: str
    type_annotation: TypeAnnotation | None
    value: Expr
    span: Span


@dataclass(frozen=True)
class ReturnStmt:
    value: Expr
    span: Span


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr
    span: Span


@dataclass(frozen=True)
class Block:
    statements: list[Stmt]
    span: Span


@dataclass(frozen=True)
class WhileStmt:
    condition: Expr
    body: Block
    span: Span


@dataclass(frozen=True)
class ForStmt:
    init: LetStmt | MutStmt | ExprStmt | None
    condition: Expr | None
    increment: Expr | None
    body: Block
    span: Span


@dataclass(frozen=True)
class StructStmt:
    name: str
    fields: list[Param]  # every field carries a type
    span: Span


Stmt = Union[
    LetStmt, MutStmt, ReturnStmt, ExprStmt, Block, WhileStmt, ForStmt, StructStmt,
]

# Bindings introduced by let/mut; the LSP and formatter treat them alike.
BindingStmt = Union[LetStmt, MutStmt]


# ── Program ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Program:
    statements: list[Stmt]
    span: Span
