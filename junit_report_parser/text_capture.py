"""
Size-bounded capture of console output (system-out / system-err).

Large logs keep their head and tail; the interior is replaced by a marker
that states how many characters were dropped.
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_LIMIT = 1000
TRUNCATION_MARKER = "...[truncated {omitted} chars]..."


def _first_line_length(text: str) -> int:
    idx = text.find("\n")
    return len(text) if idx < 0 else idx + 1


def _last_line_length(text: str) -> int:
    """Length of the last line, counting the newline that precedes it."""
    end = len(text.rstrip("\r\n"))
    idx = text.rfind("\n", 0, end)
    if idx < 0:
        return len(text)
    return len(text) - idx


def bound(text: Optional[str], limit: int = DEFAULT_LIMIT, keep_long_stdio: bool = False) -> Optional[str]:
    """
    Trim text to roughly ``limit`` characters, keeping its beginning and end.

    Args:
        text: Captured console output, or None
        limit: Number of original characters to retain (head + tail)
        keep_long_stdio: If True, return the text untouched

    Returns:
        The text itself when it fits, otherwise head + marker + tail. The
        first and last lines of the input are always kept whole.
    """
    if text is None or keep_long_stdio or len(text) <= limit:
        return text

    half = max(limit // 2, 0)
    head = max(half, _first_line_length(text))
    tail = max(half, _last_line_length(text))
    if head + tail >= len(text):
        return text

    omitted = len(text) - head - tail
    return text[:head] + TRUNCATION_MARKER.format(omitted=omitted) + text[len(text) - tail:]


@dataclass(frozen=True)
class TextCapturePolicy:
    """Capture settings threaded through one parse call."""
    keep_long_stdio: bool = False
    limit: int = DEFAULT_LIMIT

    def bound(self, text: Optional[str]) -> Optional[str]:
        return bound(text, self.limit, self.keep_long_stdio)
