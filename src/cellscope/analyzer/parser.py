"""Tree-sitter parser for Julia notebook cells."""
from pathlib import Path
from typing import Optional, Union
from tree_sitter import Language, Parser, Tree
import tree_sitter_julia as tsjulia


class JuliaParser:
    """Julia parser using the tree-sitter v0.22+ API."""

    SUPPORTED_LANGUAGES = {
        '.jl': 'julia',
    }

    def __init__(self, language: str = 'julia'):
        """Initialize parser for the given language.

        Args:
            language: Only 'julia' is supported

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.parser = self._create_parser()

    def _create_parser(self) -> Parser:
        """Build a Parser bound to the tree-sitter-julia grammar.

        Returns:
            Configured Parser instance

        Raises:
            ValueError: If language is not supported
        """
        if self.language != 'julia':
            raise ValueError(f"Unsupported language: {self.language}")

        return Parser(Language(tsjulia.language()))

    def parse_source(self, source: Union[str, bytes]) -> Tree:
        """Parse a cell's source text.

        Args:
            source: Julia source as text or UTF-8 bytes

        Returns:
            Parsed Tree (tree-sitter always produces one, with ERROR
            nodes where the source is malformed)
        """
        if isinstance(source, str):
            source = source.encode('utf-8')
        return self.parser.parse(source)

    def parse_file(self, file_path: Union[str, Path]) -> Optional[Tree]:
        """Parse file and return tree-sitter Tree.

        Args:
            file_path: Path to source file to parse

        Returns:
            Parsed Tree object, or None if the file cannot be read
        """
        file_path = Path(file_path)

        if not file_path.exists():
            return None

        try:
            with open(file_path, 'rb') as f:
                source_code = f.read()
            return self.parser.parse(source_code)
        except (UnicodeDecodeError, IOError):
            return None

    @classmethod
    def from_file_extension(cls, file_path: Union[str, Path]) -> Optional['JuliaParser']:
        """Create parser based on file extension.

        Args:
            file_path: Path to determine language from

        Returns:
            JuliaParser instance, or None if extension not supported
        """
        extension = Path(file_path).suffix.lower()

        language = cls.SUPPORTED_LANGUAGES.get(extension)
        if language:
            return cls(language)
        return None
