"""Token kinds and token representation for the Chtholly lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from chtholly.source import Span


class TokenKind(Enum):
    """Token tags. The value is the name shown in diagnostics."""

    # Keywords
    LET = "Let"
    MUT = "Mut"
    IF = "If"
    ELSE = "Else"
    WHILE = "While"
    FOR = "For"
    RETURN = "Return"
    FN = "Fn"
    STRUCT = "Struct"
    TRUE = "True"
    FALSE = "False"

    # Literals
    IDENTIFIER = "Identifier"
    INT = "Int"
    FLOAT = "Float"
    STRING = "String"
    CHAR = "Char"

    # Operators
    PLUS = "Plus"
    MINUS = "Minus"
    ASTERISK = "Asterisk"
    SLASH = "Slash"
    PERCENT = "Percent"
    BANG = "Bang"
    ASSIGN = "Assign"
    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    LESS_THAN = "LessThan"
    GREATER_THAN = "GreaterThan"
    LESS_EQUAL = "LessEqual"
    GREATER_EQUAL = "GreaterEqual"
    AND = "And"
    OR = "Or"
    INCREMENT = "Increment"
    DECREMENT = "Decrement"
    PLUS_ASSIGN = "PlusAssign"
    MINUS_ASSIGN = "MinusAssign"
    ASTERISK_ASSIGN = "AsteriskAssign"
    SLASH_ASSIGN = "SlashAssign"
    PERCENT_ASSIGN = "PercentAssign"

    # Delimiters
    LPAREN = "LParen"
    RPAREN = "RParen"
    LBRACE = "LBrace"
    RBRACE = "RBrace"
    LBRACKET = "LBracket"
    RBRACKET = "RBracket"
    COMMA = "Comma"
    SEMICOLON = "Semicolon"
    COLON = "Colon"

    # Special
    EOF = "Eof"
    ILLEGAL = "Illegal"


Literal = Union[int, float, str, bool, None]


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str  # exact source text
    span: Span
    literal: Literal = None  # decoded payload for literals and identifiers

    def describe(self) -> str:
        if self.kind == TokenKind.ILLEGAL:
            return f"Illegal({self.value!r})"
        return self.kind.value


KEYWORDS: dict[str, TokenKind] = {
    "let": TokenKind.LET,
    "mut": TokenKind.MUT,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "while": TokenKind.WHILE,
    "for": TokenKind.FOR,
    "return": TokenKind.RETURN,
    "fn": TokenKind.FN,
    "struct": TokenKind.STRUCT,
    "true": TokenKind.TRUE,
    "false": TokenKind.FALSE,
}

# Checked before SINGLE_CHAR_TOKENS so compound operators lex as one token.
TWO_CHAR_TOKENS: dict[str, TokenKind] = {
    "==": TokenKind.EQUAL,
    "!=": TokenKind.NOT_EQUAL,
    "<=": TokenKind.LESS_EQUAL,
    ">=": TokenKind.GREATER_EQUAL,
    "&&": TokenKind.AND,
    "||": TokenKind.OR,
    "++": TokenKind.INCREMENT,
    "--": TokenKind.DECREMENT,
    "+=": TokenKind.PLUS_ASSIGN,
    "-=": TokenKind.MINUS_ASSIGN,
    "*=": TokenKind.ASTERISK_ASSIGN,
    "/=": TokenKind.SLASH_ASSIGN,
    "%=": TokenKind.PERCENT_ASSIGN,
}

SINGLE_CHAR_TOKENS: dict[str, TokenKind] = {
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "*": TokenKind.ASTERISK,
    "/": TokenKind.SLASH,
    "%": TokenKind.PERCENT,
    "!": TokenKind.BANG,
    "=": TokenKind.ASSIGN,
    "<": TokenKind.LESS_THAN,
    ">": TokenKind.GREATER_THAN,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    ",": TokenKind.COMMA,
    ";": TokenKind.SEMICOLON,
    ":": TokenKind.COLON,
}

OP_STRINGS: dict[TokenKind, str] = {
    kind: text
    for table in (TWO_CHAR_TOKENS, SINGLE_CHAR_TOKENS)
    for text, kind in table.items()
}
