"""Readable dumps of tree-sitter parse trees.

Used when a scope classification looks wrong: the first question is always
what tree the grammar actually produced for the cell.
"""
from typing import List, Optional

from rich.markup import escape
from rich.tree import Tree as RichTree
from tree_sitter import Node

from .document import Document
from .parser import JuliaParser

MAX_TEXT_LENGTH = 60


def _preview(text: str) -> str:
    text = text.replace('\n', '\\n')
    if len(text) > MAX_TEXT_LENGTH:
        text = text[:MAX_TEXT_LENGTH - 3] + '...'
    return text


def _label(node: Node, document: Document, field_name: Optional[str]) -> str:
    is_error = node.type == 'ERROR' or node.is_missing
    color = 'red' if is_error else 'cyan'
    kind = f"MISSING {node.type}" if node.is_missing else node.type
    prefix = f"[dim]{escape(field_name)}:[/dim] " if field_name else ''
    text = _preview(document.node_text(node))
    return (f"{prefix}[{color}]{escape(kind)}[/{color}]"
            f"[magenta][{node.start_byte},{node.end_byte}][/magenta]: "
            f"[green]\"{escape(text)}\"[/green]")


def _add_children(branch: RichTree, node: Node, document: Document) -> None:
    for index, child in enumerate(node.children):
        if not child.is_named:
            continue
        child_branch = branch.add(_label(child, document, node.field_name_for_child(index)))
        _add_children(child_branch, child, document)


def build_tree(source: str, parser: Optional[JuliaParser] = None) -> RichTree:
    """Render the named nodes of a cell's parse tree as a rich Tree."""
    parser = parser or JuliaParser()
    document = Document(source)
    root = parser.parse_source(document.source).root_node
    tree = RichTree(_label(root, document, None))
    _add_children(tree, root, document)
    return tree


def format_tree_lines(source: str, parser: Optional[JuliaParser] = None) -> List[str]:
    """Plain-text, indented dump: `kind [start,end]: "text"` per line."""
    parser = parser or JuliaParser()
    document = Document(source)
    lines: List[str] = []

    def walk(node: Node, depth: int) -> None:
        marker = 'MISSING ' if node.is_missing else ''
        lines.append(f"{'  ' * depth}{marker}{node.type}[{node.start_byte},{node.end_byte}]: "
                     f"\"{_preview(document.node_text(node))}\"")
        for child in node.named_children:
            walk(child, depth + 1)

    walk(parser.parse_source(document.source).root_node, 0)
    return lines
