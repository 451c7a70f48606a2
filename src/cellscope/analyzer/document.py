"""Byte-addressed view of a cell's source text."""
from typing import Union


class Document:
    """Source text addressed by the byte offsets tree-sitter reports.

    tree-sitter positions are UTF-8 byte offsets, so identifiers such as
    `α` or operators such as `⊻=` span more than one position. Slicing
    happens on the encoded bytes and decodes afterwards.
    """

    def __init__(self, source: Union[str, bytes]):
        if isinstance(source, str):
            source = source.encode('utf-8')
        self._source = source

    @property
    def source(self) -> bytes:
        return self._source

    def __len__(self) -> int:
        return len(self._source)

    def slice_string(self, start: int, end: int) -> str:
        """Return the text of the half-open byte range [start, end).

        Raises:
            ValueError: If the range falls outside the document
        """
        if start < 0 or end > len(self._source) or start > end:
            raise ValueError(
                f"Byte range [{start}, {end}) is outside the document "
                f"(length {len(self._source)})"
            )
        return self._source[start:end].decode('utf-8', errors='replace')

    def node_text(self, node) -> str:
        """Text covered by a tree-sitter node."""
        return self.slice_string(node.start_byte, node.end_byte)
