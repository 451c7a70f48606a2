"""Terminal-safe output with ASCII fallbacks for non-UTF-8 consoles.

Julia source is full of Unicode (`⊻=`, `∈`, `α`) and so is our output
(tree guides, status icons, Pluto's `╔═╡` cell markers). Legacy Windows
consoles crash on these, so every user-facing string goes through
sanitize_for_terminal before it is printed.
"""
import sys
import locale


# Unicode to ASCII mapping for terminals without UTF-8
ICON_MAP = {
    # Status icons
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',

    # Arrows
    '→': '->',
    '←': '<-',
    '⇒': '=>',

    # Tree guides and Pluto cell markers
    '│': '|',
    '─': '-',
    '├': '+',
    '└': '+',
    '┃': '|',
    '━': '-',
    '┣': '+',
    '┗': '+',
    '╔': '+',
    '═': '=',
    '╡': '|',
    '╠': '+',

    # Symbols
    '…': '...',
    '•': '*',
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding capability.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding:
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except Exception:
        pass

    return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can handle UTF-8 Unicode characters."""
    return detect_terminal_encoding() in ('utf-8', 'utf8', 'utf_8')


def sanitize_for_terminal(text: str, force: bool = False) -> str:
    """Replace Unicode glyphs with ASCII equivalents on non-UTF-8 terminals.

    Args:
        text: Text potentially containing Unicode glyphs
        force: Sanitize even when the terminal handles UTF-8

    Returns:
        str: Text safe for the current terminal. Glyphs without a mapping
        are replaced with '?' so encoding can never fail.
    """
    if not force and is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)

    return sanitized.encode('ascii', errors='replace').decode('ascii')
