"""Operator binding powers shared by the parser and the formatter."""

from __future__ import annotations

from enum import IntEnum

from chtholly.tokens import OP_STRINGS, TokenKind


class Precedence(IntEnum):
    LOWEST = 1
    ASSIGN = 2  # = += -= *= /= %=
    LOGICAL_OR = 3  # ||
    LOGICAL_AND = 4  # &&
    EQUALS = 5  # == !=
    LESS_GREATER = 6  # < > <= >=
    SUM = 7  # + -
    PRODUCT = 8  # * / %
    PREFIX = 9  # -x !x ++x --x
    CALL = 10  # f(x) a[i] x++ x--


PRECEDENCES: dict[TokenKind, Precedence] = {
    TokenKind.ASSIGN: Precedence.ASSIGN,
    TokenKind.PLUS_ASSIGN: Precedence.ASSIGN,
    TokenKind.MINUS_ASSIGN: Precedence.ASSIGN,
    TokenKind.ASTERISK_ASSIGN: Precedence.ASSIGN,
    TokenKind.SLASH_ASSIGN: Precedence.ASSIGN,
    TokenKind.PERCENT_ASSIGN: Precedence.ASSIGN,
    TokenKind.OR: Precedence.LOGICAL_OR,
    TokenKind.AND: Precedence.LOGICAL_AND,
    TokenKind.EQUAL: Precedence.EQUALS,
    TokenKind.NOT_EQUAL: Precedence.EQUALS,
    TokenKind.LESS_THAN: Precedence.LESS_GREATER,
    TokenKind.GREATER_THAN: Precedence.LESS_GREATER,
    TokenKind.LESS_EQUAL: Precedence.LESS_GREATER,
    TokenKind.GREATER_EQUAL: Precedence.LESS_GREATER,
    TokenKind.PLUS: Precedence.SUM,
    TokenKind.MINUS: Precedence.SUM,
    TokenKind.ASTERISK: Precedence.PRODUCT,
    TokenKind.SLASH: Precedence.PRODUCT,
    TokenKind.PERCENT: Precedence.PRODUCT,
    TokenKind.LPAREN: Precedence.CALL,
    TokenKind.LBRACKET: Precedence.CALL,
    TokenKind.INCREMENT: Precedence.CALL,
    TokenKind.DECREMENT: Precedence.CALL,
}

ASSIGNMENT_OPERATORS = frozenset({
    TokenKind.ASSIGN,
    TokenKind.PLUS_ASSIGN,
    TokenKind.MINUS_ASSIGN,
    TokenKind.ASTERISK_ASSIGN,
    TokenKind.SLASH_ASSIGN,
    TokenKind.PERCENT_ASSIGN,
})

UPDATE_OPERATORS = frozenset({TokenKind.INCREMENT, TokenKind.DECREMENT})

BINARY_OPERATORS = frozenset(
    kind for kind, prec in PRECEDENCES.items()
    if prec not in (Precedence.ASSIGN, Precedence.CALL)
)

# Spelling -> level, for printers that only see the operator text.
OPERATOR_PRECEDENCE: dict[str, Precedence] = {
    OP_STRINGS[kind]: prec for kind, prec in PRECEDENCES.items()
    if prec != Precedence.CALL
}


def precedence_of(kind: TokenKind) -> Precedence:
    """Binding power of ``kind`` in infix position; LOWEST when it has none."""
    return PRECEDENCES.get(kind, Precedence.LOWEST)


def is_right_associative(kind: TokenKind) -> bool:
    return kind in ASSIGNMENT_OPERATORS
