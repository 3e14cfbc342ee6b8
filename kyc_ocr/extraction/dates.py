"""Date normalization and age calculation.

Parses date-of-birth fragments written in several orders and scripts
(``1985-04-12``, ``12.04.1985``, ``12 Apr 1985``, ``1985年4月12日``),
decodes two-digit MRZ years into a full year and computes
calendar-correct ages.
"""

import re
from datetime import date, datetime

from kyc_ocr.records import is_plausible_age
from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)

CJK_SEPARATORS = re.compile(r"[年月日]")
MONTH_NAME = re.compile(r"[A-Za-z]{3,}")

GENERIC_DATE_FORMATS: list[str] = [
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d/%m/%y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d%b%Y",
    "%d%B%Y",
]


def compute_age(dob: date, today: date | None = None) -> int:
    """Compute age in whole years, adjusting for a birthday not yet reached.

    Args:
        dob: Date of birth.
        today: Reference date. Defaults to the current date.

    Returns:
        Age in years (may be negative or implausibly large; callers
        validate with :func:`is_plausible_age`).
    """
    today = today or date.today()
    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age


def plausible_age_from_dob(dob: date, today: date | None = None) -> int | None:
    """Return the age for ``dob`` or ``None`` if it falls outside (0, 120)."""
    age = compute_age(dob, today)
    return age if is_plausible_age(age) else None


def expand_two_digit_year(yy: int, today: date | None = None) -> int:
    """Pick the century for a two-digit MRZ year.

    Years above ``current_yy + 20`` go to the 1900s, the rest to the
    2000s. A result later than the current year is moved back a
    century, so the decoded year never lies in the future.

    Args:
        yy: Two-digit year (0-99).
        today: Reference date. Defaults to the current date.

    Returns:
        Four-digit year.
    """
    current_year = (today or date.today()).year
    year = 1900 + yy if yy > (current_year % 100) + 20 else 2000 + yy
    if year > current_year:
        year -= 100
    return year


def normalize_date_fragment(fragment: str) -> str:
    """Collapse CJK separators, punctuation and noise to single slashes.

    Month names are kept so the generic parse can still read them.
    """
    cleaned = CJK_SEPARATORS.sub("/", fragment.strip())
    if MONTH_NAME.search(cleaned):
        cleaned = re.sub(r"[^\w]+", " ", cleaned)
        return re.sub(r"\s+", " ", cleaned).strip()
    cleaned = re.sub(r"[^\d/.\-]", "/", cleaned)
    cleaned = re.sub(r"[/.\-]+", "/", cleaned)
    return cleaned.strip("/")


def _parts(cleaned: str) -> list[str] | None:
    parts = cleaned.split("/")
    if len(parts) == 3 and all(p.isdigit() for p in parts):
        return parts
    return None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def guess_year_first(cleaned: str) -> date | None:
    """YYYY/MM/DD"""
    parts = _parts(cleaned)
    if parts and len(parts[0]) == 4:
        return _safe_date(int(parts[0]), int(parts[1]), int(parts[2]))
    return None


def guess_day_first(cleaned: str) -> date | None:
    """DD/MM/YYYY"""
    parts = _parts(cleaned)
    if parts and len(parts[2]) == 4:
        return _safe_date(int(parts[2]), int(parts[1]), int(parts[0]))
    return None


def guess_month_first(cleaned: str) -> date | None:
    """MM/DD/YYYY"""
    parts = _parts(cleaned)
    if parts and len(parts[2]) == 4:
        return _safe_date(int(parts[2]), int(parts[0]), int(parts[1]))
    return None


def guess_generic(cleaned: str) -> date | None:
    """Try the generic format list, including month names."""
    for fmt in GENERIC_DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


FORMAT_GUESSES = [guess_year_first, guess_day_first, guess_month_first, guess_generic]


def parse_birth_date(fragment: str, today: date | None = None) -> date | None:
    """Parse a date-of-birth fragment with ordered format guesses.

    The first guess whose year falls in ``(1900, current_year]`` wins.

    Args:
        fragment: Raw date text matched next to a birth label.
        today: Reference date. Defaults to the current date.

    Returns:
        Parsed date, or ``None`` if no guess is plausible.
    """
    current_year = (today or date.today()).year
    cleaned = normalize_date_fragment(fragment)
    for guess in FORMAT_GUESSES:
        parsed = guess(cleaned)
        if parsed is not None and 1900 < parsed.year <= current_year:
            logger.debug(
                "Parsed %r as %s via %s", fragment, parsed.isoformat(), guess.__name__
            )
            return parsed
    logger.debug("No plausible date in fragment %r", fragment)
    return None


def parse_document_date(value: str) -> date | None:
    """Parse an issuance or expiry date without the birth-year bound."""
    cleaned = normalize_date_fragment(value)
    for guess in FORMAT_GUESSES:
        parsed = guess(cleaned)
        if parsed is not None:
            return parsed
    return None
