"""
chapbook-analyzer command line.

Commands:
- lsp: run the language server
- check: analyze Twee files and report diagnostics
- version: print the version
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from chapbook_analyzer._version import get_version
from chapbook_analyzer.core.config import CONFIG_FILENAME, apply_client_settings, load_options
from chapbook_analyzer.core.diagnostics import generate_diagnostics
from chapbook_analyzer.core.errors import ChapbookError
from chapbook_analyzer.core.index import InMemoryIndex
from chapbook_analyzer.core.positions import TextDocument
from chapbook_analyzer.core.twee import StoryParse, index_story
from chapbook_analyzer.core.types import Diagnostic, DiagnosticSeverity

app = typer.Typer(
    help="Language analysis for Chapbook stories.",
    no_args_is_help=True,
)
console = Console()

TWEE_SUFFIXES = (".twee", ".tw")

_SEVERITY_STYLES = {
    DiagnosticSeverity.ERROR: "[red]error[/red]",
    DiagnosticSeverity.WARNING: "[yellow]warning[/yellow]",
    DiagnosticSeverity.INFORMATION: "[blue]info[/blue]",
    DiagnosticSeverity.HINT: "[dim]hint[/dim]",
}


def _collect_files(paths: list[Path]) -> list[Path]:
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(p for p in sorted(path.rglob("*")) if p.suffix in TWEE_SUFFIXES and p.is_file())
        else:
            files.append(path)
    return files


@app.command()
def lsp(
    tcp: Annotated[bool, typer.Option("--tcp", help="Use TCP transport (for debugging)")] = False,
    port: Annotated[int, typer.Option("--port", help="TCP port (only used with --tcp)")] = 2087,
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    ] = None,
) -> None:
    """
    Start the Chapbook LSP server.

    By default uses stdio transport for editor integration.
    Use --tcp --port for debugging with a TCP connection.
    """
    from chapbook_analyzer.lsp import start_server

    try:
        start_server(tcp=tcp, port=port, log_level=log_level.upper() if log_level else None)
    except ChapbookError as e:
        typer.echo(f"Error starting LSP server: {e}", err=True)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        typer.echo("\nLSP server stopped.")


@app.command()
def check(
    paths: Annotated[list[Path], typer.Argument(help="Twee files or directories to check", exists=True)],
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help=f"Path to {CONFIG_FILENAME}")
    ] = None,
    no_unknown_macro: Annotated[
        bool, typer.Option("--no-unknown-macro", help="Don't warn about unrecognized inserts and modifiers")
    ] = False,
    format_version: Annotated[
        str | None, typer.Option("--format-version", help="Chapbook version to check against")
    ] = None,
) -> None:
    """
    Check Twee stories and print their diagnostics.

    Exits with status 1 if any errors are found.
    """
    try:
        options = load_options(config if config is not None else Path.cwd() / CONFIG_FILENAME)
        settings: dict[str, Any] = {}
        if no_unknown_macro:
            settings["diagnostics"] = {"warnings": {"unknownMacro": False}}
        if format_version:
            settings["storyFormat"] = {"formatVersion": format_version}
        options = apply_client_settings(options, settings)
    except ChapbookError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1)

    logging.basicConfig(level=options.log_level)

    # Index everything first so custom inserts and variables set in one file
    # are known when checking the others
    index = InMemoryIndex()
    stories: list[tuple[Path, TextDocument, StoryParse]] = []
    for path in _collect_files(paths):
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            console.print(f"[red]Can't read {path}:[/red] {e}")
            raise typer.Exit(code=1)
        document = TextDocument(path.resolve().as_uri(), text)
        stories.append((path, document, index_story(document, index, options.pinned_story_format())))

    table = Table(title="Chapbook diagnostics")
    table.add_column("File")
    table.add_column("Line", justify="right")
    table.add_column("Col", justify="right")
    table.add_column("Severity")
    table.add_column("Message")

    found: list[Diagnostic] = []
    for path, document, story in stories:
        format_version = story.story_format.format_version if story.story_format is not None else None
        diagnostics = story.result.diagnostics + generate_diagnostics(
            document, index, options.diagnostics, format_version
        )
        diagnostics.sort(key=lambda d: (d.range.start.line, d.range.start.character))
        for d in diagnostics:
            table.add_row(
                path.name,
                str(d.range.start.line + 1),
                str(d.range.start.character + 1),
                _SEVERITY_STYLES[d.severity],
                d.message,
            )
        found.extend(diagnostics)

    if not found:
        console.print(f"[green]No problems found in {len(stories)} file(s).[/green]")
        return

    console.print(table)
    errors = sum(1 for d in found if d.severity == DiagnosticSeverity.ERROR)
    console.print(f"\n[dim]{errors} error(s), {len(found) - errors} other diagnostic(s)[/dim]")
    if errors:
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Print the chapbook-analyzer version."""
    typer.echo(f"chapbook-analyzer {get_version()}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
