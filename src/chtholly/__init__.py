"""Chtholly language front end: lexer, Pratt parser and tooling."""

__version__ = "0.1.0"
