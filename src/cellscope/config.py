"""Configuration management for cellscope.

Loads environment variables (optionally from a .env file) and provides
centralized config access.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

__version__ = "0.3.0"

OUTPUT_FORMATS = ('table', 'json')
TRUTHY = {'1', 'true', 'yes', 'on'}
FALSY = {'0', 'false', 'no', 'off'}


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_path: Optional[Path] = None):
        """Initialize config by loading a .env file.

        Args:
            env_path: Explicit .env location; defaults to the working directory
        """
        load_dotenv(env_path or Path.cwd() / ".env")

        self._validate()

    def _validate(self):
        """Validate environment values that have a closed set of options.

        Raises:
            ValueError: If CELLSCOPE_OUTPUT_FORMAT or CELLSCOPE_SHOW_LOCALS
                holds an unknown value
        """
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"CELLSCOPE_OUTPUT_FORMAT must be one of {', '.join(OUTPUT_FORMATS)}, "
                f"got '{self.output_format}'"
            )
        raw = os.getenv("CELLSCOPE_SHOW_LOCALS", "true").strip().lower()
        if raw not in TRUTHY | FALSY:
            raise ValueError(f"CELLSCOPE_SHOW_LOCALS must be a boolean, got '{raw}'")

    @property
    def cell_delimiter(self) -> str:
        """Prefix of the marker line that opens a notebook cell.

        Returns:
            Delimiter string, Pluto's `# ╔═╡` by default
        """
        return os.getenv("CELLSCOPE_CELL_DELIMITER", "# ╔═╡")

    @property
    def output_format(self) -> str:
        """Default CLI output format ('table' or 'json')."""
        return os.getenv("CELLSCOPE_OUTPUT_FORMAT", "table").strip().lower()

    @property
    def show_locals(self) -> bool:
        """Whether the CLI lists local bindings by default."""
        return os.getenv("CELLSCOPE_SHOW_LOCALS", "true").strip().lower() in TRUTHY


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Drop the cached Config so the next get_config() re-reads the environment."""
    global _config
    _config = None
