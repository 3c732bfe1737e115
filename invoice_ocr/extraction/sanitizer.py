"""Noise removal for raw recognized text.

OCR engines and layout parsers leave table borders, markdown and HTML
markup, and misread glyph clusters in their output. These are removed
before any pattern matching so the field patterns only have to cope
with single spaces.
"""

import re

from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)

# Row and line breaks in HTML tables become newlines before tags are dropped
_LINE_BREAK_TAGS = re.compile(r"</tr\s*>|<br\s*/?>|</p\s*>", re.IGNORECASE)

# Each artifact is replaced by a single space so neighbours do not merge
_NOISE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"[\u200b\u200c\u200d\ufeff]"),
    re.compile(r"<[^<>\n]{1,200}>"),
    re.compile(r"[|｜丨¦‖︱]"),
    re.compile(r"_{2,}"),
    re.compile(r"~{2,}|～{2,}"),
    re.compile(r"={2,}"),
    re.compile(r"\*{2,}"),
    re.compile(r"-{3,}|—{2,}"),
    re.compile(r"^[ \t]*#{1,6}(?=\s|$)", re.MULTILINE),
]

_HORIZONTAL_SPACE = re.compile(r"[ \t\u3000\xa0\f\v]+")
_EXCESS_BLANK_LINES = re.compile(r"\n{4,}")


def _clean_once(text: str) -> str:
    text = _LINE_BREAK_TAGS.sub("\n", text)
    for pattern in _NOISE_PATTERNS:
        text = pattern.sub(" ", text)
    text = _HORIZONTAL_SPACE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    return _EXCESS_BLANK_LINES.sub("\n\n", text).strip()


def sanitize(text: str) -> str:
    """Strip OCR artifacts and normalize whitespace.

    Idempotent: ``sanitize(sanitize(x)) == sanitize(x)``.

    Args:
        text: Raw recognized text, possibly empty.

    Returns:
        Cleaned text with single spaces, trimmed lines and at most one
        blank line between blocks.
    """
    if not text:
        return ""

    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    # Removing one artifact or trimming a line can expose another
    previous = None
    while cleaned != previous:
        previous = cleaned
        cleaned = _clean_once(cleaned)

    logger.debug("Sanitized text: %d -> %d chars", len(text), len(cleaned))
    return cleaned
