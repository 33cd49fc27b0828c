"""Tests for the Chtholly lexer."""

from __future__ import annotations

import pytest

from chtholly.lexer import Lexer
from chtholly.tokens import TokenKind


def lex(source: str) -> list[tuple[TokenKind, str]]:
    """Helper: lex source and return (kind, value) pairs, excluding EOF."""
    tokens = Lexer(source).lex()
    return [(t.kind, t.value) for t in tokens if t.kind != TokenKind.EOF]


def kinds(source: str) -> list[TokenKind]:
    """Helper: lex source and return just the token kinds, excluding EOF."""
    tokens = Lexer(source).lex()
    return [t.kind for t in tokens if t.kind != TokenKind.EOF]


def first(source: str):
    return Lexer(source).next_token()


class TestLexerBasic:
    def test_empty_source(self):
        tokens = Lexer("").lex()
        assert len(tokens) == 1
        assert tokens[0].kind == TokenKind.EOF
        assert tokens[0].value == ""

    def test_whitespace_only(self):
        assert kinds(" \t\r\n  \n") == []

    def test_identifier(self):
        assert lex("hello") == [(TokenKind.IDENTIFIER, "hello")]

    def test_identifier_literal_is_name(self):
        assert first("foobar").literal == "foobar"

    def test_underscore_identifier(self):
        assert lex("_tmp_1") == [(TokenKind.IDENTIFIER, "_tmp_1")]

    def test_unicode_identifier(self):
        assert lex("héllo") == [(TokenKind.IDENTIFIER, "héllo")]

    def test_keywords(self):
        expected = {
            "let": TokenKind.LET, "mut": TokenKind.MUT, "if": TokenKind.IF,
            "else": TokenKind.ELSE, "while": TokenKind.WHILE, "for": TokenKind.FOR,
            "return": TokenKind.RETURN, "fn": TokenKind.FN,
            "struct": TokenKind.STRUCT, "true": TokenKind.TRUE,
            "false": TokenKind.FALSE,
        }
        for word, kind in expected.items():
            assert kinds(word) == [kind], word

    def test_keyword_prefix_is_identifier(self):
        assert lex("letter iffy") == [
            (TokenKind.IDENTIFIER, "letter"),
            (TokenKind.IDENTIFIER, "iffy"),
        ]

    def test_boolean_literals(self):
        assert first("true").literal is True
        assert first("false").literal is False

    def test_let_statement(self):
        assert kinds("let x: int = 5;") == [
            TokenKind.LET, TokenKind.IDENTIFIER, TokenKind.COLON,
            TokenKind.IDENTIFIER, TokenKind.ASSIGN, TokenKind.INT,
            TokenKind.SEMICOLON,
        ]


class TestLexerNumbers:
    def test_integer(self):
        tok = first("42")
        assert tok.kind == TokenKind.INT
        assert tok.value == "42"
        assert tok.literal == 42

    def test_float(self):
        tok = first("5.5")
        assert tok.kind == TokenKind.FLOAT
        assert tok.literal == 5.5

    def test_dot_without_fraction_is_not_float(self):
        assert lex("5.") == [(TokenKind.INT, "5"), (TokenKind.ILLEGAL, ".")]

    def test_dot_before_letter(self):
        assert kinds("5.x") == [TokenKind.INT, TokenKind.ILLEGAL, TokenKind.IDENTIFIER]

    def test_max_int(self):
        tok = first("9223372036854775807")
        assert tok.kind == TokenKind.INT
        assert tok.literal == 2**63 - 1

    def test_int_overflow_is_illegal(self):
        assert lex("9223372036854775808") == [
            (TokenKind.ILLEGAL, "9223372036854775808"),
        ]

    def test_very_long_int_is_illegal(self):
        text = "1" * 5000
        assert lex(text) == [(TokenKind.ILLEGAL, text)]

    def test_leading_zeros_do_not_overflow(self):
        tok = first("0" * 5000 + "7")
        assert tok.kind == TokenKind.INT
        assert tok.literal == 7

    def test_float_overflow_is_illegal(self):
        text = "1" + "0" * 400 + ".0"
        assert lex(text) == [(TokenKind.ILLEGAL, text)]

    def test_negative_is_prefix_minus(self):
        assert kinds("-5") == [TokenKind.MINUS, TokenKind.INT]


class TestLexerStrings:
    def test_simple_string(self):
        tok = first('"hi"')
        assert tok.kind == TokenKind.STRING
        assert tok.value == '"hi"'
        assert tok.literal == "hi"

    def test_empty_string(self):
        assert first('""').literal == ""

    def test_escapes_are_decoded(self):
        tok = first(r'"a\nb\t\"c\"\\\0"')
        assert tok.literal == 'a\nb\t"c"\\\0'

    def test_unknown_escape_kept(self):
        assert first(r'"\q"').literal == "\\q"

    def test_value_is_source_text(self):
        src = r'"a\nb"'
        assert first(src).value == src

    def test_string_spanning_lines(self):
        tokens = Lexer('"a\nb" x').lex()
        assert tokens[0].literal == "a\nb"
        assert tokens[1].span.start_line == 2
        assert tokens[1].span.start_col == 4

    def test_unterminated_string(self):
        lexer = Lexer('"abc')
        tok = lexer.next_token()
        assert tok.kind == TokenKind.STRING
        assert tok.literal == "abc"
        assert lexer.next_token().kind == TokenKind.EOF
        assert [d.code for d in lexer.diagnostics] == ["E101"]
        assert lexer.diagnostics[0].message == "unterminated string literal"


class TestLexerChars:
    def test_char(self):
        tok = first("'a'")
        assert tok.kind == TokenKind.CHAR
        assert tok.literal == "a"

    def test_escaped_char(self):
        assert first(r"'\n'").literal == "\n"
        assert first(r"'\''").literal == "'"

    def test_empty_char_is_illegal(self):
        assert lex("''") == [(TokenKind.ILLEGAL, "''")]

    def test_multi_char_is_illegal(self):
        assert lex("'ab'") == [
            (TokenKind.ILLEGAL, "'a"),
            (TokenKind.IDENTIFIER, "b"),
            (TokenKind.ILLEGAL, "'"),
        ]

    def test_lone_quote_at_eof(self):
        assert lex("'") == [(TokenKind.ILLEGAL, "'")]


class TestLexerOperators:
    def test_two_char_operators(self):
        assert kinds("== != <= >= && || ++ -- += -= *= /= %=") == [
            TokenKind.EQUAL, TokenKind.NOT_EQUAL, TokenKind.LESS_EQUAL,
            TokenKind.GREATER_EQUAL, TokenKind.AND, TokenKind.OR,
            TokenKind.INCREMENT, TokenKind.DECREMENT, TokenKind.PLUS_ASSIGN,
            TokenKind.MINUS_ASSIGN, TokenKind.ASTERISK_ASSIGN,
            TokenKind.SLASH_ASSIGN, TokenKind.PERCENT_ASSIGN,
        ]

    def test_single_char_operators(self):
        assert kinds("+ - * / % ! = < >") == [
            TokenKind.PLUS, TokenKind.MINUS, TokenKind.ASTERISK,
            TokenKind.SLASH, TokenKind.PERCENT, TokenKind.BANG,
            TokenKind.ASSIGN, TokenKind.LESS_THAN, TokenKind.GREATER_THAN,
        ]

    def test_delimiters(self):
        assert kinds("(){}[],;:") == [
            TokenKind.LPAREN, TokenKind.RPAREN, TokenKind.LBRACE,
            TokenKind.RBRACE, TokenKind.LBRACKET, TokenKind.RBRACKET,
            TokenKind.COMMA, TokenKind.SEMICOLON, TokenKind.COLON,
        ]

    def test_compound_without_spaces(self):
        assert kinds("a==b") == [
            TokenKind.IDENTIFIER, TokenKind.EQUAL, TokenKind.IDENTIFIER,
        ]
        assert kinds("x+=1") == [
            TokenKind.IDENTIFIER, TokenKind.PLUS_ASSIGN, TokenKind.INT,
        ]

    def test_longest_match(self):
        assert kinds("===") == [TokenKind.EQUAL, TokenKind.ASSIGN]

    @pytest.mark.parametrize("ch", ["&", "|", "@", "#", "$", "."])
    def test_unknown_char_is_illegal(self, ch):
        assert lex(ch) == [(TokenKind.ILLEGAL, ch)]


class TestLexerComments:
    def test_line_comment(self):
        assert lex("a // comment\nb") == [
            (TokenKind.IDENTIFIER, "a"),
            (TokenKind.IDENTIFIER, "b"),
        ]

    def test_block_comment(self):
        assert kinds("a /* x\ny */ b") == [TokenKind.IDENTIFIER, TokenKind.IDENTIFIER]

    def test_slash_is_still_division(self):
        assert kinds("a / b") == [
            TokenKind.IDENTIFIER, TokenKind.SLASH, TokenKind.IDENTIFIER,
        ]

    def test_unterminated_block_comment(self):
        lexer = Lexer("a /* never closed")
        tokens = lexer.lex()
        assert [t.kind for t in tokens] == [TokenKind.IDENTIFIER, TokenKind.EOF]
        assert [d.code for d in lexer.diagnostics] == ["E102"]


class TestLexerSpans:
    def test_columns(self):
        tokens = Lexer("let x = 10;").lex()
        assert [(t.span.start_col, t.span.end_col) for t in tokens[:4]] == [
            (1, 3), (5, 5), (7, 7), (9, 10),
        ]

    def test_lines(self):
        tokens = Lexer("a\n  b").lex()
        assert tokens[1].span.start_line == 2
        assert tokens[1].span.start_col == 3

    def test_filename(self):
        tok = Lexer("x", "main.cns").next_token()
        assert tok.span.file == "main.cns"
        assert str(tok.span) == "main.cns:1:1"


class TestLexerStream:
    def test_eof_forever(self):
        lexer = Lexer("x")
        assert lexer.next_token().kind == TokenKind.IDENTIFIER
        for _ in range(3):
            assert lexer.next_token().kind == TokenKind.EOF

    def test_iteration_stops_after_eof(self):
        tokens = list(Lexer("a b"))
        assert [t.kind for t in tokens] == [
            TokenKind.IDENTIFIER, TokenKind.IDENTIFIER, TokenKind.EOF,
        ]

    def test_reset_restarts(self):
        lexer = Lexer('let s = "x')
        first_pass = lexer.lex()
        lexer.reset()
        second_pass = lexer.lex()
        assert first_pass == second_pass
        assert len(lexer.diagnostics) == 1


class TestTokenDescribe:
    def test_kind_name(self):
        assert first("x").describe() == "Identifier"
        assert first("=").describe() == "Assign"
        assert Lexer("").next_token().describe() == "Eof"

    def test_illegal_shows_text(self):
        assert first("@").describe() == "Illegal('@')"
