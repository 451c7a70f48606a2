"""Tests for terminal-safe output helpers."""

from cellscope.utils import logger
from cellscope.utils.logger import sanitize_for_terminal


class TestSanitizeForTerminal:
    """ASCII fallbacks for legacy consoles."""

    def test_utf8_terminal_keeps_text(self, monkeypatch):
        monkeypatch.setattr(logger, 'is_utf8_capable', lambda: True)

        assert sanitize_for_terminal("✓ x ⊻= 1") == "✓ x ⊻= 1"

    def test_icons_are_mapped(self):
        assert sanitize_for_terminal("✓ Analyzed 2 cell(s)", force=True) == "[OK] Analyzed 2 cell(s)"
        assert sanitize_for_terminal("# ╔═╡ cell", force=True) == "# +=| cell"

    def test_unmapped_glyphs_are_replaced(self):
        assert sanitize_for_terminal("μ = 1", force=True) == "? = 1"

    def test_legacy_terminal_sanitizes_without_force(self, monkeypatch):
        monkeypatch.setattr(logger, 'is_utf8_capable', lambda: False)

        assert sanitize_for_terminal("a → b") == "a -> b"
