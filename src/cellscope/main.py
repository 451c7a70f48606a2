"""cellscope CLI - variable usage and scope analysis for Julia notebook cells."""
import json
from pathlib import Path
from typing import Dict, Optional

import typer
from rich.markup import escape
from rich.table import Table

from cellscope.analyzer.cells import Cell, analyze_cells, split_cells
from cellscope.analyzer.results import AnalysisResult
from cellscope.analyzer.tree_printer import build_tree, format_tree_lines
from cellscope.config import __version__, get_config
from cellscope.utils.safe_console import SafeConsole

app = typer.Typer(
    name="cellscope",
    help="Classify definitions, usages and locals in Julia notebook cells",
    add_completion=False
)
console = SafeConsole(force_terminal=True)


def _names(occurrences) -> str:
    names = sorted({occurrence.name for occurrence in occurrences})
    return escape(", ".join(names)) if names else "[dim]-[/dim]"


def _cell_table(cell: Cell, result: AnalysisResult, show_locals: bool) -> Table:
    table = Table(title=f"Cell {escape(cell.cell_id)} (line {cell.line})", show_header=True,
                  header_style="bold cyan")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Names", style="green")

    if result.definitions:
        definitions = ", ".join(
            f"{escape(name)} [dim]({definition.kind.value})[/dim]"
            for name, definition in sorted(result.definitions.items())
        )
    else:
        definitions = "[dim]-[/dim]"
    table.add_row("Definitions", definitions)
    table.add_row("Usages", _names(result.usages))
    table.add_row("Free usages", _names(result.free_usages))
    if show_locals:
        table.add_row("Locals", _names(result.locals))
    return table


def _load_config():
    try:
        return get_config()
    except ValueError as e:
        console.error(str(e))
        raise typer.Exit(1)


@app.command()
def analyze(
    path: Optional[str] = typer.Argument(None, help="Julia file or Pluto notebook to analyze"),
    code: Optional[str] = typer.Option(None, "--code", "-c", help="Analyze this source instead of a file"),
    json_output: Optional[bool] = typer.Option(None, "--json/--table", help="Output format (default from CELLSCOPE_OUTPUT_FORMAT)"),
    split: bool = typer.Option(True, "--split/--no-split", help="Split notebook files into cells on the cell marker"),
    show_locals: Optional[bool] = typer.Option(None, "--locals/--no-locals", help="List local bindings (default from CELLSCOPE_SHOW_LOCALS)"),
):
    """Classify every identifier of every cell as definition, usage or local."""
    config = _load_config()

    if code is not None:
        source = code
    elif path is not None:
        file_path = Path(path).resolve()
        if not file_path.is_file():
            console.error(f"File does not exist: {file_path}")
            raise typer.Exit(1)
        try:
            source = file_path.read_text(encoding='utf-8')
        except (UnicodeDecodeError, IOError) as e:
            console.error(f"Could not read {file_path}: {e}")
            raise typer.Exit(1)
    else:
        console.error("Pass a file path or --code")
        raise typer.Exit(1)

    if split:
        cells = split_cells(source, config.cell_delimiter)
    else:
        cells = [Cell(cell_id='cell-1', source=source, line=1)]

    results: Dict[str, AnalysisResult] = analyze_cells(cells)

    use_json = json_output if json_output is not None else config.output_format == 'json'
    if use_json:
        typer.echo(json.dumps({cell_id: result.to_dict() for cell_id, result in results.items()},
                              indent=2, ensure_ascii=False))
        return

    include_locals = show_locals if show_locals is not None else config.show_locals
    for cell in cells:
        console.print(_cell_table(cell, results[cell.cell_id], include_locals))

    console.print(f"\n[bold green]✓ Analyzed {len(cells)} cell(s)[/bold green]")


@app.command()
def tree(
    code: str = typer.Argument(..., help="Julia source to parse"),
    plain: bool = typer.Option(False, "--plain", help="Indented text instead of a rich tree"),
):
    """Print the parse tree of a snippet (node kind, byte range, text)."""
    if plain:
        for line in format_tree_lines(code):
            typer.echo(line)
        return
    console.print(build_tree(code))


def _version_callback(value: bool):
    if value:
        typer.echo(f"cellscope {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """cellscope - scope explorer for Julia notebook cells."""
    pass


if __name__ == "__main__":
    app()
