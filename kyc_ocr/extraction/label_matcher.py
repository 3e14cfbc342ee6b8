"""Label-driven value lookup over OCR lines.

For a label such as ``"nationality"`` the matcher escalates through
four strategies until one yields a value:

1. exact substring match of the normalized label in a normalized line;
2. word-boundary regex capture after the label;
3. a line starting with the label, value on that line or the next;
4. fuzzy match when more than half of the label's significant words
   (longer than two characters) occur in a line.
"""

import re
from collections.abc import Sequence

from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)

LEADING_PUNCTUATION = re.compile(r"^[:;.,\s]+")


def normalize_text(text: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    text = re.sub(r"[^\w\s]", " ", text)
    return re.sub(r"\s+", " ", text).strip().lower()


def split_lines(text: str) -> list[str]:
    """Split raw text into stripped, non-empty lines."""
    return [line.strip() for line in re.split(r"\r?\n", text) if line.strip()]


def _value_after(line: str, end: int) -> str:
    return LEADING_PUNCTUATION.sub("", line[end:]).strip()


def match_exact(label: str, lines: Sequence[str]) -> str | None:
    """Value after the label where the normalized label occurs in a line."""
    label_norm = normalize_text(label)
    for line in lines:
        if label_norm not in normalize_text(line):
            continue
        idx = line.lower().find(label.lower())
        if idx < 0:
            continue
        value = _value_after(line, idx + len(label))
        if value:
            return value
    return None


def match_word_boundary(label: str, lines: Sequence[str]) -> str | None:
    """Capture word characters following the label as a whole word."""
    pattern = re.compile(
        rf"\b{re.escape(label)}\b[^a-zA-Z0-9]?\s*([\w\s]+)", re.IGNORECASE
    )
    for line in lines:
        match = pattern.search(line)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def match_line_start(label: str, lines: Sequence[str]) -> str | None:
    """Value after a line-leading label, or the next line if none follows."""
    label_norm = normalize_text(label)
    for i, line in enumerate(lines):
        if not normalize_text(line).startswith(label_norm):
            continue
        idx = line.lower().find(label.lower())
        value = _value_after(line, idx + len(label)) if idx >= 0 else ""
        if value:
            return value
        if i + 1 < len(lines):
            return lines[i + 1].strip()
    return None


def match_fuzzy(label: str, lines: Sequence[str]) -> str | None:
    """Accept a line containing most of the label's significant words."""
    words = [w for w in normalize_text(label).split() if len(w) > 2]
    if not words:
        return None

    for line in lines:
        line_norm = normalize_text(line)
        found = [w for w in words if w in line_norm]
        if len(found) <= len(words) / 2:
            continue
        ends: list[int] = []
        for word in found:
            match = re.search(re.escape(word), line, re.IGNORECASE)
            if match:
                ends.append(match.end())
        if not ends:
            continue
        value = _value_after(line, max(ends))
        if value:
            return value
    return None


LABEL_STRATEGIES = [match_exact, match_word_boundary, match_line_start, match_fuzzy]


def find_value_by_label(label: str, lines: Sequence[str]) -> str | None:
    """Find the value written next to ``label`` using escalating strategies.

    Args:
        label: Human-readable field label, e.g. ``"date of birth"``.
        lines: Document lines as produced by :func:`split_lines`.

    Returns:
        The first value found, or ``None``.
    """
    for strategy in LABEL_STRATEGIES:
        value = strategy(label, lines)
        if value:
            logger.debug("Label %r matched via %s", label, strategy.__name__)
            return value
    return None


def find_value_by_labels(labels: Sequence[str], text: str) -> str | None:
    """Try each candidate label in priority order."""
    lines = split_lines(text)
    for label in labels:
        value = find_value_by_label(label, lines)
        if value:
            return value
    return None
