"""Concorde front-end CLI."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from concorde import __version__
from concorde.config import config_for
from concorde.errors import DiagnosticRenderer, ParseError
from concorde.formatter import ConcordeFormatter
from concorde.frontend import parse, parse_many
from concorde.lexer import Lexer
from concorde.project import scaffold

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".cdr"


def _source_files(target: Path) -> list[Path]:
    if target.is_dir():
        return sorted(target.rglob(f"*{SOURCE_SUFFIX}"))
    return [target]


def _report(error: ParseError, renderer: DiagnosticRenderer) -> None:
    for diag in error.diagnostics:
        click.echo(renderer.render(diag), err=True)


@click.group()
@click.version_option(__version__, prog_name="concorde")
@click.option("-v", "--verbose", is_flag=True, help="Log front-end activity to stderr.")
def main(verbose: bool) -> None:
    """The Concorde language front end."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
@click.option("--jobs", "-j", type=int, default=None, help="Parse this many files at once.")
def check(path: str, jobs: int | None) -> None:
    """Parse Concorde sources and report lexical and syntax errors."""
    target = Path(path)
    config = config_for(target)
    files = _source_files(target)
    if not files:
        click.echo(f"warning: no {SOURCE_SUFFIX} files found", err=True)
        return

    sources = {str(f): f.read_text() for f in files}
    logger.debug("checking %d file(s) under %s", len(files), target)
    results = parse_many(sources, max_workers=jobs, max_depth=config.parser.max_depth)

    renderer = DiagnosticRenderer(color=True)
    failed = 0
    for name, result in results.items():
        if result.error is not None:
            failed += 1
            renderer.add_source(name, sources[name])
            _report(result.error, renderer)

    if failed:
        click.echo(f"{failed} of {len(files)} file(s) failed to parse", err=True)
        raise SystemExit(1)
    click.echo(f"checked {len(files)} file(s): no errors")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def tokens(file: str) -> None:
    """Print the token stream of a Concorde source file."""
    source = Path(file).read_text()
    try:
        for tok in Lexer(source, file).tokens():
            span = tok.span
            click.echo(f"{span.start_line}:{span.start_col} {tok.kind.name} {tok.value!r}")
    except ParseError as e:
        renderer = DiagnosticRenderer(color=True)
        renderer.add_source(file, source)
        _report(e, renderer)
        raise SystemExit(1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def view(file: str) -> None:
    """View the AST of a Concorde source file."""
    source = Path(file).read_text()
    config = config_for(Path(file))

    try:
        program = parse(source, file, max_depth=config.parser.max_depth)
    except ParseError as e:
        renderer = DiagnosticRenderer(color=True)
        renderer.add_source(file, source)
        _report(e, renderer)
        raise SystemExit(1)

    _dump_ast(program, 0)


@main.command(name="format")
@click.argument("path", default=".", type=click.Path(exists=True))
@click.option("--check", is_flag=True, help="Check formatting without modifying files.")
@click.option("--stdin", "use_stdin", is_flag=True, help="Read from stdin, write to stdout.")
def format_cmd(path: str, check: bool, use_stdin: bool) -> None:
    """Format Concorde source files."""
    target = Path(path)
    config = config_for(target)
    formatter = ConcordeFormatter(indent=config.format.indent)
    renderer = DiagnosticRenderer(color=True)

    if use_stdin:
        source = sys.stdin.read()
        try:
            program = parse(source, "<stdin>", max_depth=config.parser.max_depth)
        except ParseError as e:
            renderer.add_source("<stdin>", source)
            _report(e, renderer)
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
        click.echo(f"no {SOURCE_SUFFIX} files found", err=True)
        return

    needs_formatting = False
    had_errors = False
    for src_file in files:
        source = src_file.read_text()
        filename = str(src_file)
        try:
            program = parse(source, filename, max_depth=config.parser.max_depth)
        except ParseError as e:
            had_errors = True
            renderer.add_source(filename, source)
            _report(e, renderer)
            continue

        formatted = formatter.format(program)
        if formatted != source:
            if check:
                click.echo(f"would reformat {filename}")
                needs_formatting = True
            else:
                src_file.write_text(formatted)
                click.echo(f"formatted {filename}")

    if had_errors or (check and needs_formatting):
        raise SystemExit(1)


@main.command()
@click.argument("name")
def new(name: str) -> None:
    """Create a new Concorde project."""
    try:
        project_dir = scaffold(name)
        click.echo(f"created project '{name}' at {project_dir}")
    except FileExistsError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)


@main.command()
def lsp() -> None:
    """Start the Concorde language server."""
    from concorde.lsp import main as lsp_main

    lsp_main()


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
                if value and hasattr(value[0], "__dataclass_fields__"):
                    click.echo(f"{indent}  {field_name}:")
                    for item in value:
                        _dump_ast(item, depth + 2)
                else:
                    click.echo(f"{indent}  {field_name}: {value!r}")
            elif hasattr(value, "__dataclass_fields__"):
                click.echo(f"{indent}  {field_name}:")
                _dump_ast(value, depth + 2)
            elif value is not None:
                click.echo(f"{indent}  {field_name}: {value!r}")
    else:
        click.echo(f"{indent}{name}: {node!r}")
