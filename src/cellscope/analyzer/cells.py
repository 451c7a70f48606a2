"""Cell extraction and one-call analysis helpers.

Pluto notebooks are plain `.jl` files where every cell starts with a marker
line such as:

    # ╔═╡ 3f1d8b2c-6a4e-11ee-2f0b-8d5c1f6b9a01

and a trailing `# ╔═╡ Cell order:` section lists the display order.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

from .document import Document
from .explorer import explore_variable_usage
from .parser import JuliaParser
from .results import AnalysisResult

DEFAULT_CELL_DELIMITER = '# ╔═╡'
CELL_ORDER_MARKER = 'Cell order:'


@dataclass
class Cell:
    """One independently analyzable block of source."""
    cell_id: str
    source: str
    line: int  # 1-based line of the first source line


def split_cells(source: str, delimiter: str = DEFAULT_CELL_DELIMITER) -> List[Cell]:
    """Split notebook source into cells.

    Args:
        source: Full file contents
        delimiter: Prefix of the marker line that opens a cell

    Returns:
        Cells in file order. A source without markers is a single cell
        with id "cell-1"; text before the first marker is dropped.
    """
    lines = source.splitlines(keepends=True)
    if not any(line.startswith(delimiter) for line in lines):
        return [Cell(cell_id='cell-1', source=source, line=1)]

    cells: List[Cell] = []
    current_id: Optional[str] = None
    current_lines: List[str] = []
    start_line = 0

    def flush():
        if current_id is not None:
            cells.append(Cell(cell_id=current_id, source=''.join(current_lines).strip('\n'),
                              line=start_line))

    for number, line in enumerate(lines, start=1):
        if line.startswith(delimiter):
            flush()
            marker = line[len(delimiter):].strip()
            if marker.startswith(CELL_ORDER_MARKER):
                current_id = None
                break
            current_id = marker or f"cell-{len(cells) + 1}"
            current_lines = []
            start_line = number + 1
        elif current_id is not None:
            current_lines.append(line)
    else:
        flush()

    return cells


def analyze_source(source: Union[str, bytes], parser: Optional[JuliaParser] = None) -> AnalysisResult:
    """Parse one cell and run the scope explorer over it."""
    parser = parser or JuliaParser()
    document = Document(source)
    tree = parser.parse_source(document.source)
    return explore_variable_usage(tree.walk(), document)


def analyze_cells(cells: Iterable[Cell], parser: Optional[JuliaParser] = None) -> Dict[str, AnalysisResult]:
    """Analyze every cell independently.

    Returns:
        Mapping of cell id to its AnalysisResult, in cell order
    """
    parser = parser or JuliaParser()
    return {cell.cell_id: analyze_source(cell.source, parser) for cell in cells}
