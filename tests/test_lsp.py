"""Tests for the Chtholly LSP server."""

from __future__ import annotations

from lsprotocol import types as lsp

from chtholly.errors import Severity
from chtholly.lsp import (
    _SEVERITY_MAP,
    _analyze,
    _get_word_at,
    collect_bindings,
    completion,
    document_symbol,
    formatting,
    hover,
    span_to_range,
)
from chtholly.parser import parse_checked
from chtholly.source import Span

URI = "file:///test.cns"

SOURCE = (
    "let limit: int = 10;\n"
    "mut total = 0;\n"
    "fn step(n: int): int { let half = n / 2; return half; }\n"
    "let twice = fn(x) { x * 2 };\n"
    "total + limit\n"
)


def _doc() -> lsp.TextDocumentIdentifier:
    return lsp.TextDocumentIdentifier(uri=URI)


class TestSpanConversion:
    def test_span_to_range_basic(self):
        r = span_to_range(Span("test.cns", 1, 1, 1, 5))
        assert (r.start.line, r.start.character) == (0, 0)
        assert (r.end.line, r.end.character) == (0, 5)

    def test_span_to_range_multiline(self):
        r = span_to_range(Span("test.cns", 5, 3, 7, 10))
        assert (r.start.line, r.start.character) == (4, 2)
        assert (r.end.line, r.end.character) == (6, 10)


class TestSeverityMap:
    def test_error_maps(self):
        assert _SEVERITY_MAP[Severity.ERROR] == lsp.DiagnosticSeverity.Error

    def test_note_maps(self):
        assert _SEVERITY_MAP[Severity.NOTE] == lsp.DiagnosticSeverity.Information


class TestGetWordAt:
    def test_word_middle(self):
        assert _get_word_at("hello world", 0, 2) == "hello"

    def test_word_end(self):
        assert _get_word_at("hello world", 0, 5) == "hello"

    def test_second_word(self):
        assert _get_word_at("hello world", 0, 8) == "world"

    def test_empty(self):
        assert _get_word_at("", 0, 0) == ""

    def test_out_of_range(self):
        assert _get_word_at("abc", 5, 0) == ""


class TestAnalyze:
    def test_clean_document(self):
        ds = _analyze(URI, SOURCE)
        assert ds.diagnostics == []
        assert ds.program is not None
        assert len(ds.program.statements) == 5

    def test_errors_become_lsp_diagnostics(self):
        ds = _analyze(URI, "let = 5;")
        first = ds.diagnostics[0]
        assert first.severity == lsp.DiagnosticSeverity.Error
        assert first.code == "E200"
        assert first.source == "chtholly"
        assert first.message.startswith("[E200] expected next token to be Identifier")
        assert (first.range.start.line, first.range.start.character) == (0, 4)

    def test_notes_are_appended(self):
        ds = _analyze(URI, "return;")
        assert "note: a return statement needs a value" in ds.diagnostics[0].message


class TestBindings:
    def test_collect(self):
        program = parse_checked(SOURCE)
        bindings = collect_bindings(program.statements)
        top = [(b.name, b.kind) for b in bindings if b.top_level]
        assert top == [
            ("limit", lsp.SymbolKind.Constant),
            ("total", lsp.SymbolKind.Variable),
            ("step", lsp.SymbolKind.Function),
            ("twice", lsp.SymbolKind.Function),
        ]
        nested = {b.name for b in bindings if not b.top_level}
        assert nested == {"n", "half", "x"}

    def test_details(self):
        bindings = collect_bindings(parse_checked(SOURCE).statements)
        details = {b.name: b.detail for b in bindings}
        assert details["limit"] == "let limit: int"
        assert details["step"] == "fn step(n: int): int"
        assert details["twice"] == "let twice = fn(x)"


class TestFeatures:
    def test_document_symbols(self):
        _analyze(URI, SOURCE)
        symbols = document_symbol(lsp.DocumentSymbolParams(text_document=_doc()))
        assert [s.name for s in symbols] == ["limit", "total", "step", "twice"]

    def test_document_symbols_unknown_doc(self):
        params = lsp.DocumentSymbolParams(
            text_document=lsp.TextDocumentIdentifier(uri="file:///missing.cns"),
        )
        assert document_symbol(params) == []

    def test_hover_binding(self):
        _analyze(URI, SOURCE)
        result = hover(lsp.HoverParams(
            text_document=_doc(), position=lsp.Position(line=4, character=1),
        ))
        assert result is not None
        assert "mut total" in result.contents.value

    def test_hover_keyword(self):
        _analyze(URI, SOURCE)
        result = hover(lsp.HoverParams(
            text_document=_doc(), position=lsp.Position(line=0, character=1),
        ))
        assert result.contents.value == "keyword `let`"

    def test_hover_nothing(self):
        _analyze(URI, SOURCE)
        result = hover(lsp.HoverParams(
            text_document=_doc(), position=lsp.Position(line=0, character=17),
        ))
        assert result is None

    def test_completion(self):
        _analyze(URI, SOURCE)
        result = completion(lsp.CompletionParams(
            text_document=_doc(), position=lsp.Position(line=0, character=0),
        ))
        labels = [item.label for item in result.items]
        assert "while" in labels
        assert "limit" in labels
        assert "step" in labels
        assert len(labels) == len(set(labels))

    def test_formatting(self):
        _analyze(URI, "let  a=1")
        edits = formatting(lsp.DocumentFormattingParams(
            text_document=_doc(),
            options=lsp.FormattingOptions(tab_size=4, insert_spaces=True),
        ))
        assert edits is not None
        assert edits[0].new_text == "let a = 1;\n"

    def test_formatting_already_clean(self):
        _analyze(URI, "let a = 1;\n")
        edits = formatting(lsp.DocumentFormattingParams(
            text_document=_doc(),
            options=lsp.FormattingOptions(tab_size=4, insert_spaces=True),
        ))
        assert edits is None

    def test_formatting_skips_broken_documents(self):
        _analyze(URI, "let = 1;")
        edits = formatting(lsp.DocumentFormattingParams(
            text_document=_doc(),
            options=lsp.FormattingOptions(tab_size=4, insert_spaces=True),
        ))
        assert edits is None


class TestStructsAndLoops:
    SOURCE = (
        "struct Point { let x: i32; let y: i32; }\n"
        "for (let i = 0; i < 3; i++) { let sq = i * i; }\n"
    )

    def test_struct_is_a_symbol(self):
        _analyze(URI, self.SOURCE)
        symbols = document_symbol(lsp.DocumentSymbolParams(text_document=_doc()))
        assert [(s.name, s.kind) for s in symbols] == [
            ("Point", lsp.SymbolKind.Struct),
        ]

    def test_fields_and_loop_bindings(self):
        bindings = collect_bindings(parse_checked(self.SOURCE).statements)
        nested = {(b.name, b.kind) for b in bindings if not b.top_level}
        assert nested == {
            ("x", lsp.SymbolKind.Field),
            ("y", lsp.SymbolKind.Field),
            ("i", lsp.SymbolKind.Constant),
            ("sq", lsp.SymbolKind.Constant),
        }

    def test_field_detail(self):
        bindings = collect_bindings(parse_checked(self.SOURCE).statements)
        details = {b.name: b.detail for b in bindings}
        assert details["Point"] == "struct Point"
        assert details["x"] == "field x: i32"
