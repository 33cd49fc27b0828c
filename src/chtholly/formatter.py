"""AST-walking printers for Chtholly source code.

``ChthollyFormatter`` produces canonical, re-parseable .cns source with
the fewest parentheses the precedence table allows. ``to_string`` gives
the fully parenthesised one-line form used to inspect how an expression
was grouped, e.g. ``a + b * c`` -> ``(a + (b * c))``.

Comments are discarded by the lexer and so are not preserved.
"""

from __future__ import annotations

from decimal import Decimal

from chtholly.ast_nodes import (
    ArrayLit,
    ArrayType,
    AssignExpr,
    Block,
    BooleanLit,
    CallExpr,
    CharLit,
    ExprStmt,
    FloatLit,
    ForStmt,
    FunctionLit,
    IdentifierExpr,
    IfExpr,
    IndexExpr,
    InfixExpr,
    IntegerLit,
    LetStmt,
    MutStmt,
    Param,
    PrefixExpr,
    Program,
    ReturnStmt,
    SimpleType,
    StringLit,
    StructStmt,
    UpdateExpr,
    WhileStmt,
)
from chtholly.precedence import OPERATOR_PRECEDENCE, Precedence

_ESCAPES = {
    '\\': '\\\\', '\n': '\\n', '\t': '\\t', '\r': '\\r', '\0': '\\0',
}

# Expressions that end in a block need no trailing semicolon.
_BLOCK_EXPRS = (IfExpr, FunctionLit)

# Line starts that would continue a preceding block expression.
_CONTINUATIONS = ("(", "[", "-", "+")


def _escape(text: str, quote: str) -> str:
    out = []
    for ch in text:
        if ch == quote:
            out.append('\\' + ch)
        else:
            out.append(_ESCAPES.get(ch, ch))
    return ''.join(out)


def _float_text(value: float) -> str:
    """Positional notation that lexes back to the same float."""
    text = format(Decimal(repr(value)), 'f')
    if '.' not in text:
        text += '.0'
    return text


def _literal_text(expr: object) -> str | None:
    if isinstance(expr, IdentifierExpr):
        return expr.name
    if isinstance(expr, IntegerLit):
        return str(expr.value)
    if isinstance(expr, FloatLit):
        return _float_text(expr.value)
    if isinstance(expr, StringLit):
        return f'"{_escape(expr.value, chr(34))}"'
    if isinstance(expr, CharLit):
        return f"'{_escape(expr.value, chr(39))}'"
    if isinstance(expr, BooleanLit):
        return "true" if expr.value else "false"
    return None


def _format_type(te: object) -> str:
    if isinstance(te, SimpleType):
        return te.name
    if isinstance(te, ArrayType):
        return f"{_format_type(te.element)}[]"
    return str(te)


def _format_param(param: Param) -> str:
    if param.type_annotation is None:
        return param.name
    return f"{param.name}: {_format_type(param.type_annotation)}"


def binding_head(stmt: LetStmt | MutStmt) -> str:
    keyword = "mut" if isinstance(stmt, MutStmt) else "let"
    if stmt.type_annotation is None:
        return f"{keyword} {stmt.name}"
    return f"{keyword} {stmt.name}: {_format_type(stmt.type_annotation)}"


def function_head(fn: FunctionLit) -> str:
    params = ", ".join(_format_param(p) for p in fn.params)
    head = f"fn {fn.name}({params})" if fn.name else f"fn({params})"
    if fn.return_type is not None:
        head += f": {_format_type(fn.return_type)}"
    return head


def _for_head(stmt: ForStmt, render) -> str:
    """``for (init; cond; step)`` with each part drawn by ``render``."""
    init = ""
    if isinstance(stmt.init, ExprStmt):
        init = render(stmt.init.expr)
    elif stmt.init is not None:
        init = f"{binding_head(stmt.init)} = {render(stmt.init.value)}"
    cond = f" {render(stmt.condition)}" if stmt.condition is not None else ""
    step = f" {render(stmt.increment)}" if stmt.increment is not None else ""
    return f"for ({init};{cond};{step})"


def _field_text(field: Param) -> str:
    return f"let {_format_param(field)};"


class ChthollyFormatter:
    """Format a parsed Program back to canonical source text."""

    def __init__(self, indent_width: int = 4) -> None:
        self.indent_width = indent_width

    # ── Public API ─────────────────────────────────────────────

    def format(self, program: Program) -> str:
        """Format a program to canonical source text."""
        lines = self._format_stmts(program.statements)
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    # ── Statements ─────────────────────────────────────────────

    def _format_stmts(self, stmts: list) -> list[str]:
        lines = [self._format_stmt(s) for s in stmts]
        for i, stmt in enumerate(stmts[:-1]):
            # The next line would otherwise be read as an operand or call.
            if (
                isinstance(stmt, ExprStmt)
                and isinstance(stmt.expr, _BLOCK_EXPRS)
                and lines[i + 1][:1] in _CONTINUATIONS
            ):
                lines[i] += ";"
        return lines

    def _format_stmt(self, stmt: object) -> str:
        if isinstance(stmt, (LetStmt, MutStmt)):
            return f"{binding_head(stmt)} = {self._format_expr(stmt.value)};"
        if isinstance(stmt, ReturnStmt):
            return f"return {self._format_expr(stmt.value)};"
        if isinstance(stmt, ExprStmt):
            text = self._format_expr(stmt.expr)
            if isinstance(stmt.expr, _BLOCK_EXPRS):
                return text
            return text + ";"
        if isinstance(stmt, Block):
            return self._format_block(stmt)
        if isinstance(stmt, WhileStmt):
            cond = self._format_expr(stmt.condition)
            return f"while ({cond}) {self._format_block(stmt.body)}"
        if isinstance(stmt, ForStmt):
            return f"{_for_head(stmt, self._format_expr)} {self._format_block(stmt.body)}"
        if isinstance(stmt, StructStmt):
            if not stmt.fields:
                return f"struct {stmt.name} {{}}"
            body = "\n".join(_field_text(f) for f in stmt.fields)
            return f"struct {stmt.name} {{\n{self._indent(body)}\n}}"
        return f"/* unknown statement: {type(stmt).__name__} */"

    def _format_block(self, block: Block) -> str:
        if not block.statements:
            return "{}"
        body = "\n".join(self._format_stmts(block.statements))
        return "{\n" + self._indent(body) + "\n}"

    # ── Expressions ────────────────────────────────────────────

    def _format_expr(self, expr: object, parent_prec: int = 0) -> str:
        text = _literal_text(expr)
        if text is not None:
            return text

        if isinstance(expr, InfixExpr):
            return self._format_infix(expr, parent_prec)
        if isinstance(expr, AssignExpr):
            return self._format_assign(expr, parent_prec)
        if isinstance(expr, PrefixExpr):
            return self._format_prefix(expr, parent_prec)
        if isinstance(expr, UpdateExpr):
            return self._format_update(expr, parent_prec)

        if isinstance(expr, CallExpr):
            callee = self._format_expr(expr.callee, Precedence.CALL)
            args = ", ".join(self._format_expr(a) for a in expr.args)
            return f"{callee}({args})"

        if isinstance(expr, IndexExpr):
            target = self._format_expr(expr.target, Precedence.CALL)
            return f"{target}[{self._format_expr(expr.index)}]"

        if isinstance(expr, ArrayLit):
            return "[" + ", ".join(self._format_expr(e) for e in expr.elements) + "]"

        if isinstance(expr, IfExpr):
            return self._format_if(expr)

        if isinstance(expr, FunctionLit):
            return f"{function_head(expr)} {self._format_block(expr.body)}"

        return f"/* unknown expr: {type(expr).__name__} */"

    def _format_infix(self, expr: InfixExpr, parent_prec: int) -> str:
        prec = OPERATOR_PRECEDENCE[expr.op]
        left = self._format_expr(expr.left, prec)
        right = self._format_expr(expr.right, prec + 1)
        result = f"{left} {expr.op} {right}"
        if prec < parent_prec:
            return f"({result})"
        return result

    def _format_assign(self, expr: AssignExpr, parent_prec: int) -> str:
        prec = OPERATOR_PRECEDENCE[expr.op]
        target = self._format_expr(expr.target, prec + 1)
        value = self._format_expr(expr.value, prec)
        result = f"{target} {expr.op} {value}"
        if prec < parent_prec:
            return f"({result})"
        return result

    def _format_prefix(self, expr: PrefixExpr, parent_prec: int) -> str:
        operand = self._format_expr(expr.operand, Precedence.PREFIX)
        # "- -a" must not collapse into the "--" token
        if expr.op == '-' and operand.startswith('-'):
            operand = f"({operand})"
        result = f"{expr.op}{operand}"
        if Precedence.PREFIX < parent_prec:
            return f"({result})"
        return result

    def _format_update(self, expr: UpdateExpr, parent_prec: int) -> str:
        target = self._format_expr(expr.target, Precedence.CALL)
        if not expr.prefix:
            return f"{target}{expr.op}"
        result = f"{expr.op}{target}"
        if Precedence.PREFIX < parent_prec:
            return f"({result})"
        return result

    def _format_if(self, expr: IfExpr) -> str:
        text = (
            f"if ({self._format_expr(expr.condition)}) "
            f"{self._format_block(expr.consequence)}"
        )
        alt = expr.alternative
        if alt is None:
            return text
        # Re-sugar a block holding only an if expression into "else if".
        if (
            len(alt.statements) == 1
            and isinstance(alt.statements[0], ExprStmt)
            and isinstance(alt.statements[0].expr, IfExpr)
        ):
            return f"{text} else {self._format_if(alt.statements[0].expr)}"
        return f"{text} else {self._format_block(alt)}"

    def _indent(self, text: str) -> str:
        prefix = " " * self.indent_width
        return "\n".join(prefix + line if line else line for line in text.splitlines())


# ── String form ────────────────────────────────────────────────


def to_string(node: object) -> str:
    """Render ``node`` on one line with every operation parenthesised."""
    text = _literal_text(node)
    if text is not None:
        return text

    if isinstance(node, Program):
        return " ".join(to_string(s) for s in node.statements)
    if isinstance(node, (LetStmt, MutStmt)):
        return f"{binding_head(node)} = {to_string(node.value)};"
    if isinstance(node, ReturnStmt):
        return f"return {to_string(node.value)};"
    if isinstance(node, ExprStmt):
        return to_string(node.expr)
    if isinstance(node, Block):
        if not node.statements:
            return "{ }"
        return "{ " + " ".join(to_string(s) for s in node.statements) + " }"
    if isinstance(node, WhileStmt):
        return f"while {to_string(node.condition)} {to_string(node.body)}"
    if isinstance(node, ForStmt):
        return f"{_for_head(node, to_string)} {to_string(node.body)}"
    if isinstance(node, StructStmt):
        if not node.fields:
            return f"struct {node.name} {{ }}"
        fields = " ".join(_field_text(f) for f in node.fields)
        return f"struct {node.name} {{ {fields} }}"

    if isinstance(node, PrefixExpr):
        return f"({node.op}{to_string(node.operand)})"
    if isinstance(node, UpdateExpr):
        if node.prefix:
            return f"({node.op}{to_string(node.target)})"
        return f"({to_string(node.target)}{node.op})"
    if isinstance(node, InfixExpr):
        return f"({to_string(node.left)} {node.op} {to_string(node.right)})"
    if isinstance(node, AssignExpr):
        return f"({to_string(node.target)} {node.op} {to_string(node.value)})"
    if isinstance(node, CallExpr):
        args = ", ".join(to_string(a) for a in node.args)
        return f"{to_string(node.callee)}({args})"
    if isinstance(node, IndexExpr):
        return f"({to_string(node.target)}[{to_string(node.index)}])"
    if isinstance(node, ArrayLit):
        return "[" + ", ".join(to_string(e) for e in node.elements) + "]"
    if isinstance(node, IfExpr):
        text = f"if {to_string(node.condition)} {to_string(node.consequence)}"
        if node.alternative is not None:
            text += f" else {to_string(node.alternative)}"
        return text
    if isinstance(node, FunctionLit):
        return f"{function_head(node)} {to_string(node.body)}"
    if isinstance(node, (SimpleType, ArrayType)):
        return _format_type(node)
    if isinstance(node, Param):
        return _format_param(node)

    raise TypeError(f"cannot render {type(node).__name__}")
