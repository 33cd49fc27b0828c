"""Chtholly command line interface."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from chtholly import __version__
from chtholly.config import ChthollyConfig, config_for
from chtholly.errors import CompileError, Diagnostic, DiagnosticRenderer
from chtholly.formatter import ChthollyFormatter
from chtholly.lexer import Lexer
from chtholly.parser import Parser, parse_checked


def _source_files(target: Path) -> list[Path]:
    if target.is_dir():
        return sorted(target.rglob("*.cns"))
    return [target]


def _renderer(config: ChthollyConfig, color: bool | None, **kwargs) -> DiagnosticRenderer:
    use_color = config.diagnostics.color if color is None else color
    return DiagnosticRenderer(color=use_color, **kwargs)


def _report(renderer: DiagnosticRenderer, diagnostics: list[Diagnostic]) -> None:
    for diag in diagnostics:
        click.echo(renderer.render(diag), err=True)


_color_option = click.option(
    "--color/--no-color", default=None,
    help="Colorize diagnostics (defaults to the chtholly.toml setting).",
)


@click.group()
@click.version_option(__version__, prog_name="chtholly")
def main() -> None:
    """The Chtholly language front end."""


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@_color_option
def tokens(file: str, color: bool | None) -> None:
    """Print the token stream of a Chtholly source file."""
    path = Path(file)
    lexer = Lexer(path.read_text(), str(path))
    for tok in lexer:
        span = tok.span
        click.echo(f"{span.start_line}:{span.start_col} {tok.kind.value} {tok.value!r}")

    if lexer.diagnostics:
        _report(_renderer(config_for(path), color), lexer.diagnostics)
        raise SystemExit(1)


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
@_color_option
def check(path: str, color: bool | None) -> None:
    """Parse Chtholly sources and report every diagnostic."""
    target = Path(path)
    files = _source_files(target)
    if not files:
        click.echo("warning: no .cns files found", err=True)
        return

    renderer = _renderer(config_for(target), color)
    had_errors = False
    for cns_file in files:
        parser = Parser(Lexer(cns_file.read_text(), str(cns_file)))
        parser.parse_program()
        if parser.diagnostics:
            had_errors = True
            _report(renderer, parser.diagnostics)

    if had_errors:
        raise SystemExit(1)
    click.echo(f"checked {len(files)} file(s): no errors")


@main.command(name="format")
@click.argument("path", default=".", type=click.Path(exists=True))
@click.option("--check", is_flag=True, help="Check formatting without modifying files.")
@click.option("--stdin", "use_stdin", is_flag=True, help="Read from stdin, write to stdout.")
@_color_option
def format_cmd(path: str, check: bool, use_stdin: bool, color: bool | None) -> None:
    """Format Chtholly source files."""
    target = Path(path)
    config = config_for(target)
    formatter = ChthollyFormatter(indent_width=config.format.indent_width)

    if use_stdin:
        source = sys.stdin.read()
        try:
            program = parse_checked(source, "<stdin>")
        except CompileError as e:
            _report(_renderer(config, color, sources={"<stdin>": source}), e.diagnostics)
            raise SystemExit(1)
        formatted = formatter.format(program)
        if check:
            if formatted != source:
                raise SystemExit(1)
        else:
            sys.stdout.write(formatted)
        return

    files = _source_files(target)
    if not files:
        click.echo("no .cns files found", err=True)
        return

    renderer = _renderer(config, color)
    needs_formatting = False
    had_errors = False
    for cns_file in files:
        source = cns_file.read_text()
        filename = str(cns_file)
        try:
            program = parse_checked(source, filename)
        except CompileError as e:
            had_errors = True
            _report(renderer, e.diagnostics)
            continue

        formatted = formatter.format(program)
        if formatted != source:
            if check:
                click.echo(f"would reformat {filename}")
                needs_formatting = True
            else:
                cns_file.write_text(formatted)
                click.echo(f"formatted {filename}")

    if had_errors or (check and needs_formatting):
        raise SystemExit(1)


@main.command()
def lsp() -> None:
    """Start the Chtholly language server."""
    from chtholly.lsp import main as lsp_main

    lsp_main()


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@_color_option
def view(file: str, color: bool | None) -> None:
    """View the AST of a Chtholly source file."""
    path = Path(file)
    try:
        program = parse_checked(path.read_text(), str(path))
    except CompileError as e:
        _report(_renderer(config_for(path), color), e.diagnostics)
        raise SystemExit(1)

    _dump_ast(program, 0)


def _dump_ast(node: object, depth: int) -> None:
    """Print a readable AST dump."""
    indent = "  " * depth
    name = type(node).__name__

    if hasattr(node, "__dataclass_fields__"):
        fields = node.__dataclass_fields__  # type: ignore[union-attr]
        click.echo(f"{indent}{name}")
        for field_name in fields:
            if field_name == "span":
                continue
            value = getattr(node, field_name)
            if isinstance(value, list):
                if value:
                    click.echo(f"{indent}  {field_name}:")
                    for item in value:
                        _dump_ast(item, depth + 2)
                else:
                    click.echo(f"{indent}  {field_name}: []")
            elif hasattr(value, "__dataclass_fields__"):
                click.echo(f"{indent}  {field_name}:")
                _dump_ast(value, depth + 2)
            elif value is not None:
                click.echo(f"{indent}  {field_name}: {value!r}")
    else:
        click.echo(f"{indent}{name}: {node!r}")
