"""Field extraction for property and legal documents.

Each target field has a family of labelled patterns tried in order.
Codes are searched in the whitespace-normalized full text first, which
catches values the OCR split away from their label. Free-text values
(address and owner) are searched line by line first so they never run
into the next line.
"""

import re

from kyc_ocr.records import PropertyExtraction
from kyc_ocr.utils.logger import get_logger

from .label_matcher import split_lines

logger = get_logger(__name__)

_SEP = r"\s*(?:[:#]|\bno\.?|\bnumber)?\s*[:#]?\s*"
_CODE = r"([A-Z0-9](?=[A-Z0-9\-]*\d)[A-Z0-9\-]*)"
_FREE_TEXT = r"([^,\n]{5,}(?:,[^,\n]+)*)"
_NAME = r"([^,\n]{2,})"

DEED_NUMBER_PATTERNS: list[re.Pattern] = [
    re.compile(r"\bdeed" + _SEP + _CODE, re.IGNORECASE),
    re.compile(r"\btitle" + _SEP + _CODE, re.IGNORECASE),
    re.compile(r"\bproperty\s*id\s*[:#]?\s*" + _CODE, re.IGNORECASE),
    re.compile(r"\breference" + _SEP + _CODE, re.IGNORECASE),
    re.compile(r"\brecording" + _SEP + _CODE, re.IGNORECASE),
    re.compile(r"\b(D\d{5,7})\b", re.IGNORECASE),
]

ADDRESS_PATTERNS: list[re.Pattern] = [
    re.compile(r"\bproperty\s*address\s*[:\-]?\s*" + _FREE_TEXT, re.IGNORECASE),
    re.compile(r"\baddress\s*[:\-]?\s*" + _FREE_TEXT, re.IGNORECASE),
    re.compile(r"\bproperty\s*location\s*[:\-]?\s*" + _FREE_TEXT, re.IGNORECASE),
    re.compile(r"\blocation\s*[:\-]?\s*" + _FREE_TEXT, re.IGNORECASE),
]

OWNER_PATTERNS: list[re.Pattern] = [
    re.compile(r"\bowner\s*name\s*[:\-]?\s*" + _NAME, re.IGNORECASE),
    re.compile(r"\blegal\s*owner\s*[:\-]?\s*" + _NAME, re.IGNORECASE),
    re.compile(r"\bowner\s*of\s*record\s*[:\-]?\s*" + _NAME, re.IGNORECASE),
    re.compile(r"\bowner(?:\(s\)|s)?\s*[:\-]\s*" + _NAME, re.IGNORECASE),
]

TAX_ID_PATTERNS: list[re.Pattern] = [
    re.compile(r"\btax\s*(?:id|identification)\s*[:#]?\s*" + _CODE, re.IGNORECASE),
    re.compile(r"\btax\s*(?:parcel|reference)" + _SEP + _CODE, re.IGNORECASE),
    re.compile(r"\bparcel\s*(?:id|number|no\.?)\s*[:#]?\s*" + _CODE, re.IGNORECASE),
    re.compile(r"\btax\s*number\s*[:#]?\s*" + _CODE, re.IGNORECASE),
    re.compile(r"\b(TX[\s:\-]*\d{3,5})\b", re.IGNORECASE),
]

# Labels that end a free-text capture when the OCR flattened several
# fields onto one line.
_NEXT_LABEL = re.compile(
    r"\s+(?:owner|tax\s*id|parcel|deed|title|property\s*id|date|recording)\b.*$",
    re.IGNORECASE,
)
# Any other capitalized ``Word:`` label.
_ANY_LABEL = re.compile(r"\s+[A-Z][A-Za-z]*\s*:.*$")

FREE_TEXT_FIELDS = frozenset({"address", "owner_name"})


def _trim_value(value: str) -> str:
    value = _ANY_LABEL.sub("", _NEXT_LABEL.sub("", value))
    return value.strip(" \t:;,.")


def _search_text(patterns: list[re.Pattern], text: str) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match and _trim_value(match.group(1)):
            return _trim_value(match.group(1))
    return None


def _search_lines(patterns: list[re.Pattern], lines: list[str]) -> str | None:
    for line in lines:
        value = _search_text(patterns, line)
        if value:
            return value
    return None


def extract_with_patterns(
    patterns: list[re.Pattern],
    text: str,
    lines: list[str],
    lines_first: bool = False,
) -> str | None:
    """Return the first non-empty capture from the full text or the lines.

    Args:
        patterns: Ordered label patterns with one capture group.
        text: Whitespace-normalized full text.
        lines: Original document lines.
        lines_first: Search line by line before the full text. Used for
            free-text values, which would otherwise run across line breaks.

    Returns:
        Captured value, or ``None`` if nothing matched.
    """
    if lines_first:
        return _search_lines(patterns, lines) or _search_text(patterns, text)
    return _search_text(patterns, text) or _search_lines(patterns, lines)


class PropertyExtractor:
    """Extracts deed number, address, owner and tax ID from document text."""

    def __init__(self) -> None:
        self.patterns: dict[str, list[re.Pattern]] = {
            "deed_number": DEED_NUMBER_PATTERNS,
            "address": ADDRESS_PATTERNS,
            "owner_name": OWNER_PATTERNS,
            "tax_id": TAX_ID_PATTERNS,
        }

    def extract(self, text: str) -> PropertyExtraction:
        """Extract property fields independently of each other.

        Args:
            text: Raw document text from OCR or a text upload.

        Returns:
            Property record with any fields that were found.
        """
        record = PropertyExtraction()
        if not text or not text.strip():
            return record

        normalized = re.sub(r"\s+", " ", text).strip()
        lines = split_lines(text)

        for field_name, patterns in self.patterns.items():
            value = extract_with_patterns(
                patterns, normalized, lines, lines_first=field_name in FREE_TEXT_FIELDS
            )
            if value:
                setattr(record, field_name, value)
            else:
                logger.debug("No match for property field %s", field_name)

        logger.info(
            "Property extraction found %d/%d fields",
            sum(1 for v in record.to_dict().values() if v),
            len(self.patterns),
        )
        return record
