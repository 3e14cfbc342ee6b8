"""Machine-readable zone (MRZ) location and decoding.

Passport MRZ text read by OCR is noisy: the ``<`` filler is often read
as ``K``, ``L`` or ``C`` and digits are confused with similar letters.
The decoder finds the most likely MRZ line, repairs those misreads and
recovers the holder name, nationality and date of birth. Decoding never
raises; anything it cannot recover is left unset for the heuristic
extractor to fill.
"""

import re
from dataclasses import dataclass
from datetime import date

from kyc_ocr.utils.logger import get_logger

from .dates import compute_age, expand_two_digit_year
from .label_matcher import split_lines

logger = get_logger(__name__)

MIN_CANDIDATE_LENGTH = 20
SEPARATOR_MISREADS = ("P<", "PK", "PL", "PC")
KNOWN_COUNTRY_CODES = ("USA", "MYS", "GBR", "CAN", "AUS", "NZL", "DEU", "FRA")

HEADER_MISREAD = re.compile(r"P[KLC](?=[A-Z]{3})")
HEADER = re.compile(r"P[<KLC]([A-Z]{3})([A-Z0-9<KLC\s]+)")
SWEEP = re.compile(r"P[<KLC][A-Z]{3}[A-Z0-9<KLC]+")
SECOND_LINE = re.compile(
    r"([A-Z0-9<]{9})[0-9<]([A-Z<]{3})(\d{6})\d([MFX<])(\d{6})"
)

DIGIT_CONFUSIONS = str.maketrans(
    {"g": "9", "q": "9", "B": "8", "G": "6", "S": "5", "l": "1", "I": "1", "|": "1"}
)
TRAILING_PADDING = re.compile(r"([KLC])\1{2,}[<KLC\d]*$")
CONFUSABLE_WINDOW = re.compile(r"(?=([0-9gqBGSlI|]{6}))")

MALAYSIAN_MARKERS = {"BIN": "BIN", "BINTI": "BINTI", "B": "BIN", "BT": "BINTI"}


@dataclass
class MRZResult:
    """Fields decoded from a machine-readable zone."""

    line: str
    country_code: str | None = None
    nationality: str | None = None
    full_name: str | None = None
    date_of_birth: str | None = None
    birth_year: int | None = None
    age: int | None = None
    approximate_dob: bool = False
    document_number: str | None = None
    expiry_date: str | None = None


def _normalize_header(line: str) -> str:
    if "P<" in line:
        return line
    return HEADER_MISREAD.sub("P<", line, count=1)


def _has_header(line: str) -> bool:
    return HEADER.search(_normalize_header(line)) is not None


def find_by_markers(lines: list[str]) -> str | None:
    """Longest long line carrying MRZ markers or written fully in uppercase."""
    candidates = [
        line
        for line in lines
        if len(line) > MIN_CANDIDATE_LENGTH
        and (any(m in line for m in SEPARATOR_MISREADS) or line.upper() == line)
        and _has_header(line)
    ]
    if not candidates:
        return None
    return max(candidates, key=len)


def find_by_country_code(lines: list[str]) -> str | None:
    """First line with a known country code right after a separator."""
    for code in KNOWN_COUNTRY_CODES:
        for line in lines:
            if any(f"{marker}{code}" in line for marker in SEPARATOR_MISREADS):
                return line
    return None


def find_by_sweep(text: str) -> str | None:
    """Longest passport-header pattern anywhere in the text."""
    prepared = text
    for misread in SEPARATOR_MISREADS[1:]:
        prepared = prepared.replace(misread, "P<")
    matches = [m.group(0) for m in SWEEP.finditer(prepared)]
    if not matches:
        return None
    return max(matches, key=len)


def locate_mrz_line(text: str) -> str | None:
    """Find the MRZ name line, trying marker, country-code and sweep searches."""
    lines = split_lines(text)
    for finder, source in (
        (find_by_markers, lines),
        (find_by_country_code, lines),
        (find_by_sweep, text),
    ):
        line = finder(source)
        if line:
            logger.debug("MRZ line found via %s: %s", finder.__name__, line)
            return line
    return None


def repair_fillers(name_portion: str) -> str:
    """Turn ``K``/``L``/``C`` misreads back into ``<`` where structure demands it.

    Runs of three or more identical ``K``/``L``/``C`` are never part of a
    name, and misread characters wedged between fillers are fillers too.
    When the trailing padding itself was read as one of those letters and
    the name has no ``<<`` separator, the first pair of that letter
    between two letter groups is the surname and given-name separator.
    The trailing padding is then stripped.
    """
    portion = re.sub(r"\s+", "", name_portion)
    padding = TRAILING_PADDING.search(portion)
    if padding and "<<" not in portion[: padding.start()]:
        letter = padding.group(1)
        pair = f"(?<=[A-Z])(?<!{letter}){letter}{letter}(?!{letter})(?=[A-Z])"
        portion = re.sub(pair, "<<", portion, count=1)
    portion = re.sub(r"K{3,}|L{3,}|C{3,}", lambda m: "<" * len(m.group(0)), portion)
    portion = re.sub(r"(?<=<)[KLC]+(?=<)", lambda m: "<" * len(m.group(0)), portion)
    portion = re.sub(r"<[<KLC]*$", "", portion)
    return portion


def format_name(name_portion: str, country_code: str | None) -> str | None:
    """Convert an MRZ name field to a space-separated name."""
    portion = repair_fillers(name_portion)
    portion = re.split(r"<{3,}", portion)[0]
    parts = [p for p in portion.replace("<", " ").split() if not re.search(r"\d", p)]
    if not parts:
        return None

    if country_code == "MYS":
        for i, part in enumerate(parts):
            if part in MALAYSIAN_MARKERS and 0 < i < len(parts) - 1:
                parts[i] = MALAYSIAN_MARKERS[part]
                break

    return " ".join(parts)


def find_dob_digits(line: str) -> str | None:
    """First six-digit run in the line, tolerating letter/digit confusions."""
    match = re.search(r"\d{6}", line)
    if match:
        return match.group(0)
    for window in CONFUSABLE_WINDOW.finditer(line):
        candidate = window.group(1)
        if sum(ch.isdigit() for ch in candidate) >= 4:
            return candidate.translate(DIGIT_CONFUSIONS)
    return None


class MRZDecoder:
    """Decoder for passport-style machine-readable zones.

    Args:
        country_names: Mapping of ISO 3166 alpha-3 codes to display names.
            Unknown codes are passed through unchanged.
        today: Fixed reference date for age and century decisions.
    """

    def __init__(
        self,
        country_names: dict[str, str] | None = None,
        today: date | None = None,
    ) -> None:
        self.country_names = country_names or {
            "USA": "United States",
            "MYS": "Malaysia",
        }
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def decode(self, text: str) -> MRZResult | None:
        """Locate and decode the MRZ in raw OCR text.

        Args:
            text: Raw OCR output.

        Returns:
            Decoded fields, or ``None`` if no MRZ line was found.
        """
        line = locate_mrz_line(text)
        if not line:
            logger.debug("No MRZ line found")
            return None

        line = _normalize_header(line)
        result = MRZResult(line=line)

        header = HEADER.search(line)
        if header:
            result.country_code = header.group(1)
            result.nationality = self.country_names.get(
                result.country_code, result.country_code
            )
            result.full_name = format_name(header.group(2), result.country_code)

        digits = find_dob_digits(line)
        second = SECOND_LINE.search(text)
        if second:
            result.document_number = second.group(1).replace("<", "") or None
            result.expiry_date = self._decode_expiry(second.group(5))
            if digits is None:
                digits = second.group(3)

        if digits:
            self._apply_dob(result, digits)

        logger.info(
            "Decoded MRZ: country=%s name=%s dob=%s",
            result.country_code,
            result.full_name,
            result.date_of_birth,
        )
        return result

    def _apply_dob(self, result: MRZResult, digits: str) -> None:
        """Parse a ``YYMMDD`` string into DOB, birth year and age."""
        year = expand_two_digit_year(int(digits[:2]), self.today)
        month, day = int(digits[2:4]), int(digits[4:6])
        result.birth_year = year

        try:
            dob = date(year, month, day)
        except ValueError:
            logger.debug("Invalid MRZ date %s, falling back to year only", digits)
            result.date_of_birth = f"{year}-01-01"
            result.approximate_dob = True
            result.age = self.today.year - year
            return

        result.date_of_birth = dob.isoformat()
        result.age = compute_age(dob, self.today)

    def _decode_expiry(self, digits: str) -> str | None:
        try:
            return date(2000 + int(digits[:2]), int(digits[2:4]), int(digits[4:6])).isoformat()
        except ValueError:
            return None
