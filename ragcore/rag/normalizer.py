"""Whitespace normalization and text statistics for extracted text."""
import re
from typing import Dict

# Any whitespace run that contains a newline
_NEWLINE_RUN = re.compile(r"\s*\n\s*")
# Whitespace other than newline
_SPACE_RUN = re.compile(r"[^\S\n]+")


def normalize(text: str) -> str:
    """Collapse whitespace in extracted text.

    Runs of whitespace containing a newline become a single newline, all
    other whitespace runs become a single space, and the result is trimmed.
    Applying it twice gives the same result as applying it once.

    Args:
        text: Raw extracted text

    Returns:
        Normalized text
    """
    if not text:
        return ""
    text = _NEWLINE_RUN.sub("\n", text)
    text = _SPACE_RUN.sub(" ", text)
    return text.strip()


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def text_stats(text: str) -> Dict[str, int]:
    """Word and character counts for a (normalized) text."""
    return {
        "word_count": count_words(text),
        "character_count": len(text),
    }
