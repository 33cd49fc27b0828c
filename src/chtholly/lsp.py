"""Chtholly Language Server: pygls-based LSP for .cns files.

Provides diagnostics, hover, completion, document symbols and
formatting via stdio transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from chtholly import __version__
from chtholly.ast_nodes import (
    Block,
    ExprStmt,
    ForStmt,
    FunctionLit,
    IfExpr,
    LetStmt,
    MutStmt,
    Program,
    StructStmt,
    WhileStmt,
)
from chtholly.errors import Diagnostic, Severity
from chtholly.formatter import ChthollyFormatter, binding_head, function_head, to_string
from chtholly.lexer import Lexer
from chtholly.parser import Parser
from chtholly.source import Span
from chtholly.tokens import KEYWORDS

# ── Conversion helpers ────────────────────────────────────────────

_SEVERITY_MAP = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
    Severity.NOTE: lsp.DiagnosticSeverity.Information,
}

_KEYWORD_COMPLETIONS = sorted(KEYWORDS.keys())


def span_to_range(span: Span) -> lsp.Range:
    """Convert a 1-indexed Chtholly Span to a 0-indexed LSP Range."""
    return lsp.Range(
        start=lsp.Position(line=span.start_line - 1, character=span.start_col - 1),
        end=lsp.Position(line=span.end_line - 1, character=span.end_col),
    )


def _to_lsp_diag(d: Diagnostic) -> lsp.Diagnostic:
    """Convert a chtholly Diagnostic to an LSP Diagnostic."""
    span_range = lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0))
    if d.span is not None:
        span_range = span_to_range(d.span)
    message = f"[{d.code}] {d.message}"
    if d.notes:
        message += "\n" + "\n".join(f"note: {n}" for n in d.notes)
    return lsp.Diagnostic(
        range=span_range,
        severity=_SEVERITY_MAP.get(d.severity, lsp.DiagnosticSeverity.Error),
        source="chtholly",
        code=d.code,
        message=message,
    )


# ── Bindings ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Binding:
    """A name introduced by let/mut, a named function or a struct."""

    name: str
    kind: lsp.SymbolKind
    detail: str
    span: Span
    top_level: bool


def collect_bindings(statements: list, *, top_level: bool = True) -> list[Binding]:
    """Walk ``statements`` (and nested blocks) in source order."""
    found: list[Binding] = []
    for stmt in statements:
        if isinstance(stmt, (LetStmt, MutStmt)):
            if isinstance(stmt.value, FunctionLit):
                kind = lsp.SymbolKind.Function
                detail = f"{binding_head(stmt)} = {function_head(stmt.value)}"
            elif isinstance(stmt, MutStmt):
                kind = lsp.SymbolKind.Variable
                detail = binding_head(stmt)
            else:
                kind = lsp.SymbolKind.Constant
                detail = binding_head(stmt)
            found.append(Binding(stmt.name, kind, detail, stmt.span, top_level))
            found.extend(_bindings_in_expr(stmt.value))
        elif isinstance(stmt, ExprStmt):
            expr = stmt.expr
            if isinstance(expr, FunctionLit) and expr.name:
                found.append(Binding(
                    expr.name, lsp.SymbolKind.Function, function_head(expr),
                    expr.span, top_level,
                ))
            found.extend(_bindings_in_expr(expr))
        elif isinstance(stmt, Block):
            found.extend(collect_bindings(stmt.statements, top_level=False))
        elif isinstance(stmt, WhileStmt):
            found.extend(collect_bindings(stmt.body.statements, top_level=False))
        elif isinstance(stmt, ForStmt):
            inner = [stmt.init] if stmt.init is not None else []
            found.extend(collect_bindings(inner + stmt.body.statements, top_level=False))
        elif isinstance(stmt, StructStmt):
            found.append(Binding(
                stmt.name, lsp.SymbolKind.Struct, f"struct {stmt.name}",
                stmt.span, top_level,
            ))
            found.extend(
                Binding(f.name, lsp.SymbolKind.Field, f"field {to_string(f)}", f.span, False)
                for f in stmt.fields
            )
    return found


def _bindings_in_expr(expr: object) -> list[Binding]:
    if isinstance(expr, FunctionLit):
        params = [
            Binding(p.name, lsp.SymbolKind.Variable, f"param {p.name}", p.span, False)
            for p in expr.params
        ]
        return params + collect_bindings(expr.body.statements, top_level=False)
    if isinstance(expr, IfExpr):
        found = collect_bindings(expr.consequence.statements, top_level=False)
        if expr.alternative is not None:
            found.extend(collect_bindings(expr.alternative.statements, top_level=False))
        return found
    return []


# ── Per-document state ────────────────────────────────────────────


@dataclass
class DocumentState:
    """Cached analysis results for a single open document."""

    source: str = ""
    program: Program | None = None
    errors: list[Diagnostic] = field(default_factory=list)
    bindings: list[Binding] = field(default_factory=list)
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)


# ── Server ────────────────────────────────────────────────────────

server = LanguageServer(
    "chtholly-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_state: dict[str, DocumentState] = {}


def _analyze(uri: str, source: str) -> DocumentState:
    """Run Lexer -> Parser, cache results, return state."""
    parser = Parser(Lexer(source, uri))
    program = parser.parse_program()
    ds = DocumentState(
        source=source,
        program=program,
        errors=parser.diagnostics,
        bindings=collect_bindings(program.statements),
        diagnostics=[_to_lsp_diag(d) for d in parser.diagnostics],
    )
    _state[uri] = ds
    return ds


def _get_word_at(source: str, line: int, character: int) -> str:
    """Extract the word at the given 0-indexed position."""
    lines = source.splitlines()
    if line < 0 or line >= len(lines):
        return ""
    text = lines[line]
    if character < 0 or character >= len(text):
        # Try character-1 in case cursor is right after the word
        if 0 < character <= len(text):
            character -= 1
        else:
            return ""

    start = character
    while start > 0 and (text[start - 1].isalnum() or text[start - 1] == "_"):
        start -= 1

    end = character
    while end < len(text) and (text[end].isalnum() or text[end] == "_"):
        end += 1

    return text[start:end]


# ── LSP Feature Handlers ─────────────────────────────────────────


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    ds = _analyze(uri, params.text_document.text)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync, take last content change
    source = params.content_changes[-1].text if params.content_changes else ""
    ds = _analyze(uri, source)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    uri = params.text_document.uri
    _state.pop(uri, None)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=[],
    ))


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
def hover(params: lsp.HoverParams) -> lsp.Hover | None:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return None

    word = _get_word_at(ds.source, params.position.line, params.position.character)
    if not word:
        return None

    if word in KEYWORDS:
        return lsp.Hover(contents=lsp.MarkupContent(
            kind=lsp.MarkupKind.Markdown, value=f"keyword `{word}`",
        ))

    for binding in ds.bindings:
        if binding.name == word:
            return lsp.Hover(
                contents=lsp.MarkupContent(
                    kind=lsp.MarkupKind.Markdown,
                    value=f"```chtholly\n{binding.detail}\n```",
                ),
                range=span_to_range(binding.span),
            )
    return None


@server.feature(lsp.TEXT_DOCUMENT_COMPLETION)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList:
    ds = _state.get(params.text_document.uri)
    items: list[lsp.CompletionItem] = []

    for kw in _KEYWORD_COMPLETIONS:
        items.append(lsp.CompletionItem(
            label=kw,
            kind=lsp.CompletionItemKind.Keyword,
        ))

    if ds is not None:
        kind_map = {
            lsp.SymbolKind.Function: lsp.CompletionItemKind.Function,
            lsp.SymbolKind.Constant: lsp.CompletionItemKind.Constant,
            lsp.SymbolKind.Variable: lsp.CompletionItemKind.Variable,
        }
        for binding in ds.bindings:
            items.append(lsp.CompletionItem(
                label=binding.name,
                kind=kind_map.get(binding.kind, lsp.CompletionItemKind.Text),
                detail=binding.detail,
            ))

    # Deduplicate by label
    seen: set[str] = set()
    unique: list[lsp.CompletionItem] = []
    for item in items:
        if item.label not in seen:
            seen.add(item.label)
            unique.append(item)

    return lsp.CompletionList(is_incomplete=False, items=unique)


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return []

    return [
        lsp.DocumentSymbol(
            name=b.name,
            kind=b.kind,
            range=span_to_range(b.span),
            selection_range=span_to_range(b.span),
            detail=b.detail,
        )
        for b in ds.bindings
        if b.top_level
    ]


@server.feature(lsp.TEXT_DOCUMENT_FORMATTING)
def formatting(params: lsp.DocumentFormattingParams) -> list[lsp.TextEdit] | None:
    ds = _state.get(params.text_document.uri)
    # Statements with errors are dropped from the AST; formatting would lose them.
    if ds is None or ds.program is None or ds.errors:
        return None

    indent_width = params.options.tab_size if params.options.insert_spaces else 4
    formatted = ChthollyFormatter(indent_width=indent_width).format(ds.program)
    if formatted == ds.source:
        return None

    # Replace entire document
    lines = ds.source.splitlines()
    end_line = len(lines)
    end_char = len(lines[-1]) if lines else 0

    return [lsp.TextEdit(
        range=lsp.Range(
            start=lsp.Position(0, 0),
            end=lsp.Position(end_line, end_char),
        ),
        new_text=formatted,
    )]


# ── Entry point ──────────────────────────────────────────────────


def main() -> None:
    """Start the Chtholly language server on stdio."""
    server.start_io()
