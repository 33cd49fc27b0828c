"""Parser for the Chtholly language.

Statements are parsed by recursive descent and expressions by a Pratt
parser driven by ``chtholly.precedence``. The parser pulls tokens from a
``Lexer`` with one token of lookahead (``current`` and ``peek``).

Errors never abort the pass. Each failure is recorded as a
``Diagnostic`` and the offending statement is dropped; ``parse_program``
then skips a single token and carries on, so one run reports as many
independent problems as possible. Nesting past ``MAX_NESTING`` levels
is reported the same way instead of exhausting the Python stack.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from chtholly.ast_nodes import (
    ArrayLit,
    ArrayType,
    AssignExpr,
    Block,
    BooleanLit,
    CallExpr,
    CharLit,
    Expr,
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
    Stmt,
    StringLit,
    StructStmt,
    TypeAnnotation,
    UpdateExpr,
    WhileStmt,
)
from chtholly.errors import CompileError, Diagnostic, DiagnosticLabel, Severity
from chtholly.lexer import Lexer
from chtholly.precedence import (
    ASSIGNMENT_OPERATORS,
    BINARY_OPERATORS,
    UPDATE_OPERATORS,
    Precedence,
    is_right_associative,
    precedence_of,
)
from chtholly.source import Span
from chtholly.tokens import OP_STRINGS, Token, TokenKind

_T = TypeVar("_T")

PrefixRule = Callable[[], "Expr | None"]
InfixRule = Callable[[Expr], "Expr | None"]

# Tokens that cannot start the value of a return statement.
_RETURN_TERMINATORS = frozenset({
    TokenKind.SEMICOLON, TokenKind.RBRACE, TokenKind.EOF,
})

# Statements and expressions nested deeper than this are rejected.
MAX_NESTING = 100


class Parser:
    """Parses the token stream of a ``Lexer`` into a Chtholly AST."""

    def __init__(self, lexer: Lexer) -> None:
        self.lexer = lexer
        self.filename = lexer.filename
        self.diagnostics: list[Diagnostic] = []
        self._lexer_seen = 0
        self._depth = 0
        self._depth_reported = False

        self._prefix_rules: dict[TokenKind, PrefixRule] = {
            TokenKind.IDENTIFIER: self._parse_identifier,
            TokenKind.INT: self._parse_integer,
            TokenKind.FLOAT: self._parse_float,
            TokenKind.STRING: self._parse_string,
            TokenKind.CHAR: self._parse_char,
            TokenKind.TRUE: self._parse_boolean,
            TokenKind.FALSE: self._parse_boolean,
            TokenKind.LPAREN: self._parse_grouped,
            TokenKind.BANG: self._parse_prefix_op,
            TokenKind.MINUS: self._parse_prefix_op,
            TokenKind.INCREMENT: self._parse_prefix_update,
            TokenKind.DECREMENT: self._parse_prefix_update,
            TokenKind.IF: self._parse_if_expression,
            TokenKind.FN: self._parse_function_literal,
            TokenKind.LBRACKET: self._parse_array_literal,
        }
        self._infix_rules: dict[TokenKind, InfixRule] = {
            TokenKind.LPAREN: self._parse_call,
            TokenKind.LBRACKET: self._parse_index,
        }
        for kind in BINARY_OPERATORS:
            self._infix_rules[kind] = self._parse_infix_op
        for kind in ASSIGNMENT_OPERATORS:
            self._infix_rules[kind] = self._parse_assignment
        for kind in UPDATE_OPERATORS:
            self._infix_rules[kind] = self._parse_postfix_update

        self.current: Token = self.lexer.next_token()
        self.peek: Token = self.lexer.next_token()
        self._drain_lexer()

    @property
    def errors(self) -> list[str]:
        """The diagnostic messages, in the order they were recorded."""
        return [d.message for d in self.diagnostics]

    # ── Token access ─────────────────────────────────────────────

    def _advance(self) -> None:
        self.current = self.peek
        self.peek = self.lexer.next_token()
        self._drain_lexer()

    def _drain_lexer(self) -> None:
        fresh = self.lexer.diagnostics[self._lexer_seen:]
        self._lexer_seen += len(fresh)
        self.diagnostics.extend(fresh)

    def _current_is(self, kind: TokenKind) -> bool:
        return self.current.kind == kind

    def _peek_is(self, kind: TokenKind) -> bool:
        return self.peek.kind == kind

    def _expect_peek(self, kind: TokenKind) -> bool:
        """Advance onto ``peek`` if it is ``kind``, else record an error."""
        if self._peek_is(kind):
            self._advance()
            return True
        self._peek_error(kind)
        return False

    def _skip_semicolon(self) -> None:
        if self._peek_is(TokenKind.SEMICOLON):
            self._advance()

    # ── Diagnostics ──────────────────────────────────────────────

    def _error(
        self, code: str, message: str, span: Span, notes: list[str] | None = None,
    ) -> None:
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=code,
                message=message,
                labels=[DiagnosticLabel(span=span, message="")],
                notes=notes or [],
            )
        )

    def _peek_error(self, kind: TokenKind) -> None:
        self._error(
            "E200",
            f"expected next token to be {kind.value}, "
            f"got {self.peek.describe()} instead",
            self.peek.span,
        )

    def _no_prefix_error(self, tok: Token, notes: list[str] | None = None) -> None:
        self._error(
            "E201", f"no prefix parse function for {tok.describe()}",
            tok.span, notes,
        )

    def _invalid_target_error(self, target: Expr) -> None:
        self._error("E203", "invalid assignment target", target.span)

    # ── Nesting ──────────────────────────────────────────────────

    def _enter(self) -> bool:
        """Count one nesting level; False once past ``MAX_NESTING``.

        Only the first overflow of a nest is reported, so the unwinding
        levels and the tokens skipped inside it stay silent.
        """
        self._depth += 1
        if self._depth <= MAX_NESTING:
            return True
        if not self._depth_reported:
            self._depth_reported = True
            self._error(
                "E204", f"nested too deeply: more than {MAX_NESTING} levels",
                self.current.span,
            )
        return False

    def _leave(self) -> None:
        self._depth -= 1
        if self._depth == 0:
            self._depth_reported = False

    def _span(self, start: Span, end: Span) -> Span:
        """Build a Span from a start span to an end span."""
        return Span(
            self.filename,
            start.start_line, start.start_col,
            end.end_line, end.end_col,
        )

    # ── Top-level parsing ────────────────────────────────────────

    def parse_program(self) -> Program:
        """Parse every statement up to Eof. Never raises."""
        statements: list[Stmt] = []
        while not self._current_is(TokenKind.EOF):
            stmt = self.parse_statement()
            if stmt is not None:
                statements.append(stmt)
            self._advance()

        end = self.current.span
        span = Span(self.filename, 1, 1, end.end_line, end.end_col)
        return Program(statements=statements, span=span)

    # ── Statements ───────────────────────────────────────────────

    def parse_statement(self) -> Stmt | None:
        """Parse the statement starting at ``current``.

        On return ``current`` is the last token the statement consumed.
        """
        if not self._enter():
            self._leave()
            return None
        stmt = self._parse_statement_kind()
        self._leave()
        return stmt

    def _parse_statement_kind(self) -> Stmt | None:
        kind = self.current.kind
        if kind in (TokenKind.LET, TokenKind.MUT):
            return self._parse_binding()
        if kind == TokenKind.RETURN:
            return self._parse_return()
        if kind == TokenKind.WHILE:
            return self._parse_while()
        if kind == TokenKind.FOR:
            return self._parse_for()
        if kind == TokenKind.STRUCT:
            return self._parse_struct()
        if kind == TokenKind.LBRACE:
            return self.parse_block()
        return self._parse_expression_statement()

    def _parse_binding(self) -> LetStmt | MutStmt | None:
        start = self.current
        if not self._expect_peek(TokenKind.IDENTIFIER):
            return None
        name = self.current.value

        type_annotation: TypeAnnotation | None = None
        bad_type = False
        if self._peek_is(TokenKind.COLON):
            self._advance()
            type_annotation = self._parse_type()
            if type_annotation is None:
                bad_type = True
                # Step over the token that should have been the type.
                if not self._peek_is(TokenKind.ASSIGN) and not self._peek_is(TokenKind.EOF):
                    self._advance()

        if not self._expect_peek(TokenKind.ASSIGN):
            return None
        self._advance()
        value = self.parse_expression(Precedence.LOWEST)
        if value is None:
            self._skip_semicolon()
            return None
        self._skip_semicolon()
        if bad_type:
            return None

        span = self._span(start.span, self.current.span)
        if start.kind == TokenKind.MUT:
            return MutStmt(name, type_annotation, value, span)
        return LetStmt(name, type_annotation, value, span)

    def _parse_return(self) -> ReturnStmt | None:
        start = self.current
        if self.peek.kind in _RETURN_TERMINATORS:
            self._no_prefix_error(self.peek, ["a return statement needs a value"])
            self._skip_semicolon()
            return None

        self._advance()
        value = self.parse_expression(Precedence.LOWEST)
        if value is None:
            self._skip_semicolon()
            return None
        self._skip_semicolon()
        return ReturnStmt(value, self._span(start.span, self.current.span))

    def _parse_while(self) -> WhileStmt | None:
        start = self.current
        if not self._expect_peek(TokenKind.LPAREN):
            return None
        self._advance()
        condition = self.parse_expression(Precedence.LOWEST)
        if condition is None:
            return None
        if not self._expect_peek(TokenKind.RPAREN):
            return None
        if not self._expect_peek(TokenKind.LBRACE):
            return None
        body = self.parse_block()
        return WhileStmt(condition, body, self._span(start.span, body.span))

    def _parse_for(self) -> ForStmt | None:
        """Parse ``for '(' INIT? ';' EXPR? ';' EXPR? ')' BLOCK``."""
        start = self.current
        if not self._expect_peek(TokenKind.LPAREN):
            return None

        init: LetStmt | MutStmt | ExprStmt | None = None
        self._advance()
        if not self._current_is(TokenKind.SEMICOLON):
            if self.current.kind in (TokenKind.LET, TokenKind.MUT):
                init = self._parse_binding()
            else:
                init = self._parse_expression_statement()
            if init is None:
                return None
            # Both forms consume an optional ';', so it may already be current.
            if not self._current_is(TokenKind.SEMICOLON) and not self._expect_peek(
                TokenKind.SEMICOLON
            ):
                return None

        condition: Expr | None = None
        if not self._peek_is(TokenKind.SEMICOLON):
            self._advance()
            condition = self.parse_expression(Precedence.LOWEST)
            if condition is None:
                return None
        if not self._expect_peek(TokenKind.SEMICOLON):
            return None

        increment: Expr | None = None
        if not self._peek_is(TokenKind.RPAREN):
            self._advance()
            increment = self.parse_expression(Precedence.LOWEST)
            if increment is None:
                return None
        if not self._expect_peek(TokenKind.RPAREN):
            return None
        if not self._expect_peek(TokenKind.LBRACE):
            return None
        body = self.parse_block()
        return ForStmt(
            init, condition, increment, body, self._span(start.span, body.span),
        )

    def _parse_struct(self) -> StructStmt | None:
        """Parse ``struct IDENT '{' ('let' IDENT ':' TYPE ';')* '}'``."""
        start = self.current
        if not self._expect_peek(TokenKind.IDENTIFIER):
            return None
        name = self.current.value
        if not self._expect_peek(TokenKind.LBRACE):
            return None

        fields: list[Param] = []
        while not self._peek_is(TokenKind.RBRACE):
            field = self._parse_struct_field()
            if field is None:
                return None
            fields.append(field)
        self._advance()  # }
        return StructStmt(name, fields, self._span(start.span, self.current.span))

    def _parse_struct_field(self) -> Param | None:
        if not self._expect_peek(TokenKind.LET):
            return None
        if not self._expect_peek(TokenKind.IDENTIFIER):
            return None
        tok = self.current
        if not self._expect_peek(TokenKind.COLON):
            return None
        type_annotation = self._parse_type()
        if type_annotation is None:
            return None
        # The last field may omit its ';'.
        if not self._peek_is(TokenKind.RBRACE) and not self._expect_peek(TokenKind.SEMICOLON):
            return None
        return Param(tok.value, type_annotation, self._span(tok.span, type_annotation.span))

    def _parse_expression_statement(self) -> ExprStmt | None:
        start = self.current
        expr = self.parse_expression(Precedence.LOWEST)
        # Consumed even on failure so the terminator is not reported twice.
        self._skip_semicolon()
        if expr is None:
            return None
        return ExprStmt(expr, self._span(start.span, self.current.span))

    def parse_block(self) -> Block:
        """Parse ``{ statements }`` with ``current`` on the opening brace.

        Leaves ``current`` on the closing brace, or on Eof when the block
        is never closed.
        """
        start = self.current
        self._advance()  # {
        statements: list[Stmt] = []
        while not self._current_is(TokenKind.RBRACE) and not self._current_is(TokenKind.EOF):
            stmt = self.parse_statement()
            if stmt is not None:
                statements.append(stmt)
            self._advance()

        if self._current_is(TokenKind.EOF):
            self._error(
                "E202", "unclosed block: expected RBrace before Eof",
                self.current.span,
            )
        return Block(statements, self._span(start.span, self.current.span))

    # ── Type annotations ─────────────────────────────────────────

    def _parse_type(self) -> TypeAnnotation | None:
        """Parse ``IDENT ('[' ']')*`` starting at ``peek``."""
        if not self._expect_peek(TokenKind.IDENTIFIER):
            return None
        result: TypeAnnotation = SimpleType(self.current.value, self.current.span)
        while self._peek_is(TokenKind.LBRACKET):
            self._advance()
            if not self._expect_peek(TokenKind.RBRACKET):
                return None
            result = ArrayType(result, self._span(result.span, self.current.span))
        return result

    # ── Pratt expression parser ──────────────────────────────────

    def parse_expression(self, precedence: Precedence) -> Expr | None:
        """Parse an expression binding tighter than ``precedence``."""
        if not self._enter():
            self._leave()
            return None
        left = self._parse_pratt(precedence)
        self._leave()
        return left

    def _parse_pratt(self, precedence: Precedence) -> Expr | None:
        prefix = self._prefix_rules.get(self.current.kind)
        if prefix is None:
            self._no_prefix_error(self.current)
            return None
        left = prefix()

        while (
            left is not None
            and not self._peek_is(TokenKind.SEMICOLON)
            and precedence < precedence_of(self.peek.kind)
        ):
            infix = self._infix_rules[self.peek.kind]
            self._advance()
            left = infix(left)

        return left

    def _parse_identifier(self) -> Expr:
        return IdentifierExpr(self.current.value, self.current.span)

    def _parse_integer(self) -> Expr:
        return IntegerLit(self.current.literal, self.current.span)

    def _parse_float(self) -> Expr:
        return FloatLit(self.current.literal, self.current.span)

    def _parse_string(self) -> Expr:
        return StringLit(self.current.literal, self.current.span)

    def _parse_char(self) -> Expr:
        return CharLit(self.current.literal, self.current.span)

    def _parse_boolean(self) -> Expr:
        return BooleanLit(self._current_is(TokenKind.TRUE), self.current.span)

    def _parse_grouped(self) -> Expr | None:
        self._advance()  # (
        expr = self.parse_expression(Precedence.LOWEST)
        if expr is None:
            return None
        # A missing ')' is reported but the inner expression is kept.
        self._expect_peek(TokenKind.RPAREN)
        return expr

    def _parse_prefix_op(self) -> Expr | None:
        op_tok = self.current
        self._advance()
        operand = self.parse_expression(Precedence.PREFIX)
        if operand is None:
            return None
        return PrefixExpr(
            OP_STRINGS[op_tok.kind], operand,
            self._span(op_tok.span, operand.span),
        )

    def _parse_prefix_update(self) -> Expr | None:
        op_tok = self.current
        self._advance()
        target = self.parse_expression(Precedence.PREFIX)
        if target is None:
            return None
        if not isinstance(target, (IdentifierExpr, IndexExpr)):
            self._invalid_target_error(target)
            return None
        return UpdateExpr(
            OP_STRINGS[op_tok.kind], target, True,
            self._span(op_tok.span, target.span),
        )

    def _parse_postfix_update(self, target: Expr) -> Expr | None:
        if not isinstance(target, (IdentifierExpr, IndexExpr)):
            self._invalid_target_error(target)
            return None
        return UpdateExpr(
            OP_STRINGS[self.current.kind], target, False,
            self._span(target.span, self.current.span),
        )

    def _parse_infix_op(self, left: Expr) -> Expr | None:
        op_tok = self.current
        self._advance()
        right = self.parse_expression(precedence_of(op_tok.kind))
        if right is None:
            return None
        return InfixExpr(
            left, OP_STRINGS[op_tok.kind], right,
            self._span(left.span, right.span),
        )

    def _parse_assignment(self, target: Expr) -> Expr | None:
        op_tok = self.current
        valid_target = isinstance(target, (IdentifierExpr, IndexExpr))
        if not valid_target:
            self._invalid_target_error(target)

        precedence = precedence_of(op_tok.kind)
        if is_right_associative(op_tok.kind):
            precedence = Precedence(precedence - 1)
        self._advance()
        value = self.parse_expression(precedence)
        if value is None or not valid_target:
            return None
        return AssignExpr(
            target, OP_STRINGS[op_tok.kind], value,
            self._span(target.span, value.span),
        )

    def _parse_call(self, callee: Expr) -> Expr | None:
        args = self._parse_list(
            TokenKind.RPAREN, lambda: self.parse_expression(Precedence.LOWEST),
        )
        if args is None:
            return None
        return CallExpr(callee, args, self._span(callee.span, self.current.span))

    def _parse_index(self, target: Expr) -> Expr | None:
        self._advance()  # [
        index = self.parse_expression(Precedence.LOWEST)
        if index is None or not self._expect_peek(TokenKind.RBRACKET):
            return None
        return IndexExpr(target, index, self._span(target.span, self.current.span))

    def _parse_array_literal(self) -> Expr | None:
        start = self.current
        elements = self._parse_list(
            TokenKind.RBRACKET, lambda: self.parse_expression(Precedence.LOWEST),
        )
        if elements is None:
            return None
        return ArrayLit(elements, self._span(start.span, self.current.span))

    def _parse_if_expression(self) -> Expr | None:
        start = self.current
        if not self._expect_peek(TokenKind.LPAREN):
            return None
        self._advance()
        condition = self.parse_expression(Precedence.LOWEST)
        if condition is None:
            return None
        if not self._expect_peek(TokenKind.RPAREN):
            return None
        if not self._expect_peek(TokenKind.LBRACE):
            return None
        consequence = self.parse_block()

        alternative: Block | None = None
        if self._peek_is(TokenKind.ELSE):
            self._advance()
            if self._peek_is(TokenKind.IF):
                # else if: wrap the nested if in a one-statement block
                self._advance()
                nested = self._parse_if_expression()
                if nested is None:
                    return None
                alternative = Block([ExprStmt(nested, nested.span)], nested.span)
            elif self._expect_peek(TokenKind.LBRACE):
                alternative = self.parse_block()
            else:
                return None

        end = alternative.span if alternative is not None else consequence.span
        return IfExpr(condition, consequence, alternative, self._span(start.span, end))

    def _parse_function_literal(self) -> Expr | None:
        start = self.current
        name: str | None = None
        if self._peek_is(TokenKind.IDENTIFIER):
            self._advance()
            name = self.current.value

        if not self._expect_peek(TokenKind.LPAREN):
            return None
        params = self._parse_list(TokenKind.RPAREN, self._parse_param)
        if params is None:
            return None

        return_type: TypeAnnotation | None = None
        if self._peek_is(TokenKind.COLON):
            self._advance()
            return_type = self._parse_type()
            if return_type is None:
                return None

        if not self._expect_peek(TokenKind.LBRACE):
            return None
        body = self.parse_block()
        return FunctionLit(params, body, name, return_type, self._span(start.span, body.span))

    def _parse_param(self) -> Param | None:
        tok = self.current
        if tok.kind != TokenKind.IDENTIFIER:
            self._error(
                "E200",
                f"expected parameter to be Identifier, got {tok.describe()} instead",
                tok.span,
            )
            return None
        type_annotation: TypeAnnotation | None = None
        if self._peek_is(TokenKind.COLON):
            self._advance()
            type_annotation = self._parse_type()
            if type_annotation is None:
                return None
        return Param(tok.value, type_annotation, self._span(tok.span, self.current.span))

    def _parse_list(
        self, end: TokenKind, parse_item: Callable[[], _T | None],
    ) -> list[_T] | None:
        """Parse ``item (',' item)* end`` with ``current`` on the opener.

        Shared by call arguments, array elements and parameter lists.
        Leaves ``current`` on ``end``.
        """
        items: list[_T] = []
        if self._peek_is(end):
            self._advance()
            return items

        self._advance()
        item = parse_item()
        if item is None:
            return None
        items.append(item)

        while self._peek_is(TokenKind.COMMA):
            self._advance()
            self._advance()
            item = parse_item()
            if item is None:
                return None
            items.append(item)

        if not self._expect_peek(end):
            return None
        return items


def parse(source: str, filename: str = "<stdin>") -> tuple[Program, list[str]]:
    """Parse ``source`` and return the program with its error messages."""
    parser = Parser(Lexer(source, filename))
    program = parser.parse_program()
    return program, parser.errors


def parse_checked(source: str, filename: str = "<stdin>") -> Program:
    """Parse ``source``, raising ``CompileError`` if anything went wrong."""
    parser = Parser(Lexer(source, filename))
    program = parser.parse_program()
    if parser.diagnostics:
        raise CompileError(parser.diagnostics)
    return program
