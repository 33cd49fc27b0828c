"""Lexer for the Chtholly language.

Tokens are produced lazily, one per ``next_token()`` call. Once the
input is exhausted every further call returns ``Eof``. Lexical defects
never raise: unknown characters, malformed char literals and numeric
overflow come back as ``Illegal`` tokens, and unterminated strings or
block comments are recorded on ``diagnostics``.
"""

from __future__ import annotations

import math
from collections.abc import Iterator

from chtholly.errors import Diagnostic, DiagnosticLabel, Severity
from chtholly.source import Span
from chtholly.tokens import (
    KEYWORDS,
    SINGLE_CHAR_TOKENS,
    TWO_CHAR_TOKENS,
    Literal,
    Token,
    TokenKind,
)

_I64_MAX = 2**63 - 1
_I64_DIGITS = len(str(_I64_MAX))

_WHITESPACE = frozenset(" \t\r\n")
_DIGITS = frozenset("0123456789")

_ESCAPES = {
    'n': '\n', 't': '\t', 'r': '\r', '0': '\0',
    '\\': '\\', '"': '"', "'": "'",
}


class Lexer:
    """Tokenizes Chtholly source code."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.reset()

    def reset(self) -> None:
        """Rewind to the start of the input and forget earlier diagnostics."""
        self.pos = 0
        self.line = 1
        self.col = 1
        self.diagnostics: list[Diagnostic] = []

    def __iter__(self) -> Iterator[Token]:
        """Yield tokens from the current position up to and including Eof."""
        while True:
            tok = self.next_token()
            yield tok
            if tok.kind == TokenKind.EOF:
                return

    def lex(self) -> list[Token]:
        """Tokenize the remaining source and return the token list."""
        return list(self)

    def next_token(self) -> Token:
        self._skip_trivia()
        if self.pos >= len(self.source):
            span = Span(self.filename, self.line, self.col, self.line, self.col)
            return Token(TokenKind.EOF, "", span)

        ch = self.source[self.pos]
        if ch.isalpha() or ch == '_':
            return self._lex_identifier()
        if ch in _DIGITS:
            return self._lex_number()
        if ch == '"':
            return self._lex_string()
        if ch == "'":
            return self._lex_char()
        return self._lex_operator_or_punct()

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _token(
        self,
        kind: TokenKind,
        start: int,
        start_line: int,
        start_col: int,
        literal: Literal = None,
    ) -> Token:
        end_col = self.col - 1 if self.col > 1 else 1
        span = Span(self.filename, start_line, start_col, self.line, end_col)
        return Token(kind, self.source[start:self.pos], span, literal)

    def _error(self, code: str, message: str, line: int, col: int) -> None:
        span = Span(self.filename, line, col, line, col)
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=code,
                message=message,
                labels=[DiagnosticLabel(span=span)],
            )
        )

    # ── Whitespace and comments ──────────────────────────────────

    def _skip_trivia(self) -> None:
        while not self._at_end():
            ch = self.source[self.pos]
            if ch in _WHITESPACE:
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                while not self._at_end() and self.source[self.pos] != '\n':
                    self._advance()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_block_comment()
            else:
                return

    def _skip_block_comment(self) -> None:
        start_line = self.line
        start_col = self.col
        self._advance()
        self._advance()
        while not self._at_end():
            if self.source[self.pos] == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                return
            self._advance()
        self._error("E102", "unterminated block comment", start_line, start_col)

    # ── Identifiers and keywords ─────────────────────────────────

    def _lex_identifier(self) -> Token:
        start, start_line, start_col = self.pos, self.line, self.col
        while not self._at_end() and (
            self.source[self.pos].isalnum() or self.source[self.pos] == '_'
        ):
            self._advance()
        word = self.source[start:self.pos]

        kind = KEYWORDS.get(word)
        if kind is None:
            return self._token(TokenKind.IDENTIFIER, start, start_line, start_col, word)
        if kind in (TokenKind.TRUE, TokenKind.FALSE):
            return self._token(kind, start, start_line, start_col, kind == TokenKind.TRUE)
        return self._token(kind, start, start_line, start_col)

    # ── Numbers ──────────────────────────────────────────────────

    def _lex_number(self) -> Token:
        start, start_line, start_col = self.pos, self.line, self.col
        while not self._at_end() and self.source[self.pos] in _DIGITS:
            self._advance()

        if self._peek() == '.' and self._peek(1) in _DIGITS:
            self._advance()  # .
            while not self._at_end() and self.source[self.pos] in _DIGITS:
                self._advance()
            value = float(self.source[start:self.pos])
            if math.isinf(value):
                return self._token(TokenKind.ILLEGAL, start, start_line, start_col)
            return self._token(TokenKind.FLOAT, start, start_line, start_col, value)

        digits = self.source[start:self.pos].lstrip("0") or "0"
        # Checked before int() so huge runs never hit the str-to-int limit.
        if len(digits) > _I64_DIGITS:
            return self._token(TokenKind.ILLEGAL, start, start_line, start_col)
        number = int(digits)
        if number > _I64_MAX:
            return self._token(TokenKind.ILLEGAL, start, start_line, start_col)
        return self._token(TokenKind.INT, start, start_line, start_col, number)

    # ── Strings and chars ────────────────────────────────────────

    def _lex_escape(self) -> str:
        self._advance()  # backslash
        ch = self._advance()
        return _ESCAPES.get(ch, '\\' + ch)

    def _lex_string(self) -> Token:
        start, start_line, start_col = self.pos, self.line, self.col
        self._advance()  # opening "
        text: list[str] = []
        while not self._at_end() and self.source[self.pos] != '"':
            if self.source[self.pos] == '\\' and self.pos + 1 < len(self.source):
                text.append(self._lex_escape())
            else:
                text.append(self._advance())

        if self._at_end():
            self._error("E101", "unterminated string literal", start_line, start_col)
        else:
            self._advance()  # closing "
        return self._token(TokenKind.STRING, start, start_line, start_col, ''.join(text))

    def _lex_char(self) -> Token:
        start, start_line, start_col = self.pos, self.line, self.col
        self._advance()  # opening '
        if self._at_end():
            return self._token(TokenKind.ILLEGAL, start, start_line, start_col)
        if self.source[self.pos] == "'":
            self._advance()
            return self._token(TokenKind.ILLEGAL, start, start_line, start_col)

        if self.source[self.pos] == '\\' and self.pos + 1 < len(self.source):
            ch = self._lex_escape()
        else:
            ch = self._advance()

        if not self._at_end() and self.source[self.pos] == "'":
            self._advance()
            return self._token(TokenKind.CHAR, start, start_line, start_col, ch)
        return self._token(TokenKind.ILLEGAL, start, start_line, start_col)

    # ── Operators and punctuation ────────────────────────────────

    def _lex_operator_or_punct(self) -> Token:
        start, start_line, start_col = self.pos, self.line, self.col

        two = self.source[self.pos:self.pos + 2]
        if two in TWO_CHAR_TOKENS:
            self._advance()
            self._advance()
            return self._token(TWO_CHAR_TOKENS[two], start, start_line, start_col)

        ch = self._advance()
        kind = SINGLE_CHAR_TOKENS.get(ch, TokenKind.ILLEGAL)
        return self._token(kind, start, start_line, start_col)
