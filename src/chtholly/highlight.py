"""Pygments lexer for the Chtholly language."""

from pygments.lexer import RegexLexer, bygroups, words
from pygments.token import (
    Comment,
    Error,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
)


class ChthollyLexer(RegexLexer):
    """Pygments lexer for the Chtholly language."""

    name = "Chtholly"
    aliases = ["chtholly", "cns"]
    filenames = ["*.cns"]
    mimetypes = ["text/x-chtholly"]

    tokens = {
        "root": [
            # Whitespace
            (r"\s+", Text),
            # Comments
            (r"//.*$", Comment.Single),
            (r"/\*[\s\S]*?(\*/|\Z)", Comment.Multiline),
            # Strings and chars
            (r'"', String, "string"),
            (r"'(\\.|[^'\\])'", String.Char),
            # Numbers
            (r"[0-9]+\.[0-9]+", Number.Float),
            (r"[0-9]+", Number.Integer),
            # Struct names
            (r"\b(struct)(\s+)([A-Za-z_][A-Za-z0-9_]*)",
             bygroups(Keyword.Declaration, Text, Name.Class)),
            # Declarations
            (words(("let", "mut", "fn", "struct"), prefix=r"\b", suffix=r"\b"),
             Keyword.Declaration),
            # Control flow
            (words(("if", "else", "while", "for", "return"), prefix=r"\b", suffix=r"\b"),
             Keyword),
            # Boolean constants
            (r"\b(true|false)\b", Keyword.Constant),
            # Built-in types
            (words(("int", "i32", "i64", "f64", "float", "bool", "char", "string", "void"),
                   prefix=r"\b", suffix=r"\b"),
             Keyword.Type),
            # Operators (multi-char before single-char)
            (r"==|!=|<=|>=|&&|\|\||\+\+|--|[+\-*/%]=", Operator),
            (r"[+\-*/%<>=!]", Operator),
            # Function names at call or definition sites
            (r"[A-Za-z_][A-Za-z0-9_]*(?=\s*\()", Name.Function),
            # Identifiers
            (r"[A-Za-z_][A-Za-z0-9_]*", Name),
            # Punctuation
            (r"[(),;\[\]{}:]", Punctuation),
            # Anything the language lexer would reject
            (r".", Error),
        ],
        # String state, handles escape sequences
        "string": [
            (r'\\[nrt0\\"\']', String.Escape),
            (r'\\.', String),
            (r'[^"\\]+', String),
            (r'"', String, "#pop"),
        ],
    }
