"""Shared test helpers for the Chtholly test suite."""

from __future__ import annotations

from chtholly.ast_nodes import ExprStmt, Program
from chtholly.formatter import to_string
from chtholly.parser import parse


def parse_ok(source: str) -> Program:
    """Parse source, asserting there were no errors."""
    program, errors = parse(source, "<test>")
    assert not errors, f"Unexpected errors: {errors}"
    return program


def parse_errors(source: str) -> list[str]:
    """Parse source and return only the error messages."""
    _, errors = parse(source, "<test>")
    return errors


def single_expr(source: str):
    """Parse a one-statement program and return its expression."""
    program = parse_ok(source)
    assert len(program.statements) == 1, program.statements
    stmt = program.statements[0]
    assert isinstance(stmt, ExprStmt), stmt
    return stmt.expr


def grouped(source: str) -> str:
    """Fully parenthesised string form of a parsed program."""
    return to_string(parse_ok(source))
