"""luafmt command line interface."""

from __future__ import annotations

import difflib
import logging
import sys
from pathlib import Path

import click
from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import DiffLexer

from luafmt import __version__
from luafmt.config import FormatOptions, find_config, load_config, with_overrides
from luafmt.errors import DiagnosticRenderer, LuaFmtError, MalformedInputError
from luafmt.formatter import format_source, parse_source
from luafmt.literals import STRING_STYLES

logger = logging.getLogger(__name__)


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _report(error: LuaFmtError, source: str, filename: str, color: bool | None) -> None:
    """Print a formatting error for one file to stderr.

    ``color=None`` leaves it to click to strip the ANSI codes when stderr
    is not a terminal.
    """
    if isinstance(error, MalformedInputError):
        renderer = DiagnosticRenderer(color=color is not False)
        renderer.add_source(filename, source)
        for diag in error.diagnostics:
            click.echo(renderer.render(diag), err=True, color=color)
    else:
        click.echo(f"error: {filename}: {error}", err=True)


def _diff(source: str, formatted: str, filename: str, color: bool | None) -> str:
    # a/ and b/ prefixes on relative paths only
    if Path(filename).is_absolute():
        fromfile = tofile = filename
    else:
        fromfile, tofile = f"a/{filename}", f"b/{filename}"
    text = "".join(difflib.unified_diff(
        source.splitlines(keepends=True),
        formatted.splitlines(keepends=True),
        fromfile=fromfile,
        tofile=tofile,
    ))
    if color is not False:
        return highlight(text, DiffLexer(), TerminalFormatter())
    return text


def _lua_files(paths: tuple[str, ...]) -> list[Path]:
    files: list[Path] = []
    for path in paths:
        target = Path(path)
        if target.is_dir():
            files.extend(sorted(target.rglob("*.lua")))
        else:
            files.append(target)
    return files


def _resolve_options(config: str | None, start: Path, overrides: dict) -> FormatOptions:
    """Options from --config, else the nearest luafmt.toml, then CLI flags."""
    if config is not None:
        options = load_config(Path(config))
    else:
        try:
            options = load_config(find_config(start))
        except FileNotFoundError:
            options = FormatOptions()
    return with_overrides(options, **overrides)


@click.group()
@click.version_option(__version__, prog_name="luafmt")
def main() -> None:
    """A canonical source formatter for Lua."""


@main.command(name="format")
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option("--check", is_flag=True, help="Check formatting without modifying files.")
@click.option("--diff", "show_diff", is_flag=True, help="Print a unified diff instead of writing.")
@click.option("--stdin", "use_stdin", is_flag=True, help="Read from stdin, write to stdout.")
@click.option("--config", type=click.Path(exists=True, dir_okay=False),
              help="Use this luafmt.toml instead of searching for one.")
@click.option("--extra-newlines/--no-extra-newlines", default=None,
              help="Blank lines around function declarations.")
@click.option("--inline-blocks/--no-inline-blocks", default=None,
              help="Keep single-statement blocks on one line.")
@click.option("--inline-tables/--no-inline-tables", default=None,
              help="Keep short tables on one line.")
@click.option("--string-style", type=click.Choice(STRING_STYLES), default=None,
              help="Quote style for string literals.")
@click.option("--color/--no-color", default=None,
              help="Colorize diagnostics and diffs (default: when writing to a terminal).")
@click.option("-v", "--verbose", count=True, help="Log progress (-vv for debug output).")
def format_cmd(paths: tuple[str, ...], check: bool, show_diff: bool, use_stdin: bool,
               config: str | None, extra_newlines: bool | None, inline_blocks: bool | None,
               inline_tables: bool | None, string_style: str | None, color: bool | None,
               verbose: int) -> None:
    """Format Lua source files."""
    _setup_logging(verbose)
    overrides = {
        "extra_newlines": extra_newlines,
        "inline_block": inline_blocks,
        "inline_table": inline_tables,
        "string_style": string_style,
    }

    if use_stdin:
        try:
            options = _resolve_options(config, Path.cwd(), overrides)
        except (OSError, ValueError) as e:
            click.echo(f"error: invalid config: {e}", err=True)
            raise SystemExit(1)
        source = sys.stdin.read()
        try:
            formatted = format_source(source, options, "<stdin>") + "\n"
        except LuaFmtError as e:
            _report(e, source, "<stdin>", color)
            raise SystemExit(1)
        if check:
            if formatted != source:
                raise SystemExit(1)
        elif show_diff:
            click.echo(_diff(source, formatted, "<stdin>", color), nl=False, color=color)
        else:
            sys.stdout.write(formatted)
        return

    lua_files = _lua_files(paths or (".",))
    if not lua_files:
        click.echo("no .lua files found", err=True)
        return

    needs_formatting = False
    had_errors = False
    for lua_file in lua_files:
        source = lua_file.read_text()
        filename = str(lua_file)
        try:
            options = _resolve_options(config, lua_file.parent, overrides)
            formatted = format_source(source, options, filename) + "\n"
        except LuaFmtError as e:
            _report(e, source, filename, color)
            had_errors = True
            continue
        except (OSError, ValueError) as e:
            click.echo(f"error: {filename}: invalid config: {e}", err=True)
            had_errors = True
            continue

        if formatted == source:
            logger.info("%s already formatted", filename)
            continue
        if check:
            click.echo(f"would reformat {filename}")
            needs_formatting = True
        elif show_diff:
            click.echo(_diff(source, formatted, filename, color), nl=False, color=color)
        else:
            lua_file.write_text(formatted)
            click.echo(f"formatted {filename}")

    if had_errors or (check and needs_formatting):
        raise SystemExit(1)


@main.command()
def lsp() -> None:
    """Start the luafmt language server."""
    from luafmt.lsp import main as lsp_main

    lsp_main()


@main.command()
@click.argument("file", type=click.Path(exists=True))
def view(file: str) -> None:
    """View the comment-attached AST of a Lua source file."""
    source = Path(file).read_text()
    filename = str(file)

    try:
        chunk = parse_source(source, filename)
    except MalformedInputError as e:
        _report(e, source, filename, color=None)
        raise SystemExit(1)

    _dump_ast(chunk, 0)


def _dump_ast(node: object, depth: int) -> None:
    """Print a readable AST dump."""
    indent = "  " * depth
    name = type(node).__name__

    if hasattr(node, "__dataclass_fields__"):
        click.echo(f"{indent}{name}")
        for field_name in node.__dataclass_fields__:  # type: ignore[union-attr]
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
