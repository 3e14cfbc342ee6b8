"""Identity field extraction from OCR text.

Combines the MRZ decoder with label- and pattern-driven heuristics.
MRZ values are written first; heuristics only fill the fields the MRZ
left empty. Date of birth is recovered through an ordered strategy
chain:

1. a date written next to a birth label (Western, month-name or CJK);
2. a year written next to a birth label ("born in 1985");
3. the most recent bare four-digit year that makes the holder an adult.
"""

import re
from dataclasses import dataclass
from datetime import date

from kyc_ocr.records import AgeSource, IdentityExtraction
from kyc_ocr.utils.config import ExtractionConfig
from kyc_ocr.utils.logger import get_logger

from .dates import compute_age, parse_birth_date, parse_document_date
from .label_matcher import find_value_by_labels
from .mrz import MRZDecoder
from .strategies import first_match

logger = get_logger(__name__)

BIRTH_LABELS = ["birth", "dob", "born", "date of birth", "birth date"]
_SEP = r"[\s:.,\-]+"
_MONTHS = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*"

DATE_SHAPES = [
    r"(\d{4}\s*年\s*\d{1,2}\s*月\s*\d{1,2}\s*日?)",
    r"(\d{1,4}[\s./\-]+\d{1,2}[\s./\-]+\d{1,4})",
    rf"(\d{{1,2}}[\s./\-]*{_MONTHS}[\s./\-]*\d{{4}})",
    rf"({_MONTHS}[\s./\-]*\d{{1,2}},?[\s./\-]*\d{{4}})",
]
DATE_BEFORE_LABEL = re.compile(
    r"(\d{1,4}[\s./\-]+\d{1,2}[\s./\-]+\d{1,4})[\s:.,\-]+(?:date\s+of\s+birth|birth|dob|born)\b",
    re.IGNORECASE,
)
YEAR_AFTER_LABEL = re.compile(
    r"\b(?:year\s+of\s+birth|birth\s+year|birth|born)[\s:.,\-]+(?:in\s+)?(\d{4})\b",
    re.IGNORECASE,
)
YEAR_BEFORE_LABEL = re.compile(
    r"\b(19\d{2}|20\d{2})[\s:.,\-]+(?:year\s+of\s+birth|birth\s+year|birth|born)\b",
    re.IGNORECASE,
)
BARE_YEAR = re.compile(r"\b(19\d{2}|20\d{2})\b")
EXPLICIT_AGE = [
    re.compile(r"\bage[\s:.,\-]+(\d{1,3})\b", re.IGNORECASE),
    re.compile(r"\b(\d{1,3})\s*(?:years?\s+old|yrs\b)", re.IGNORECASE),
]
ANY_DATE = re.compile(
    rf"(\d{{4}}\s*年\s*\d{{1,2}}\s*月\s*\d{{1,2}}\s*日?"
    rf"|\d{{1,4}}[\s./\-]+\d{{1,2}}[\s./\-]+\d{{1,4}}"
    rf"|\d{{1,2}}[\s./\-]*{_MONTHS}[\s./\-]*\d{{2,4}})",
    re.IGNORECASE,
)

NAME_LABELS = ["full name", "name of holder", "holder name", "name"]
SURNAME_LABELS = ["surname", "last name", "family name"]
GIVEN_NAME_LABELS = ["given names", "given name", "first name", "forenames"]
NATIONALITY_LABELS = ["nationality", "citizenship"]
DOCUMENT_NUMBER_LABELS = [
    "passport no",
    "passport number",
    "document no",
    "document number",
    "license no",
    "licence no",
    "dl no",
    "id no",
    "card no",
]
ISSUE_LABELS = ["date of issue", "issue date", "issued on", "issued", "iss"]
EXPIRY_LABELS = ["date of expiry", "expiry date", "expiration date", "expires", "exp"]

NATIONALITY_ALIASES = {
    "US": "United States",
    "USA": "United States",
    "U S A": "United States",
    "UNITED STATES": "United States",
    "UNITED STATES OF AMERICA": "United States",
    "AMERICAN": "United States",
    "MALAYSIA": "Malaysia",
    "MALAYSIAN": "Malaysia",
}


@dataclass
class BirthCandidate:
    """A date of birth found by one strategy."""

    dob: date
    approximate: bool = False


def clean_name(value: str | None) -> str | None:
    """Keep letters, spaces, hyphens and apostrophes of a name value."""
    if not value:
        return None
    value = re.split(r"\s{2,}|\t|/", value.strip())[0]
    cleaned = re.sub(r"[^A-Za-z\s'\-]", " ", value)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if len(cleaned) < 2 or len(cleaned) > 80:
        return None
    return cleaned


def clean_document_number(value: str | None) -> str | None:
    """First token that looks like a document number."""
    if not value:
        return None
    match = re.search(r"\b([A-Z0-9][A-Z0-9\-]{4,})\b", value.upper())
    if match and re.search(r"\d", match.group(1)):
        return match.group(1)
    return None


class IdentityExtractor:
    """Extracts identity fields from noisy OCR text.

    Args:
        config: Extraction configuration (year bounds, country names).
        today: Fixed reference date; defaults to the current date.
    """

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        today: date | None = None,
    ) -> None:
        self.config = config or ExtractionConfig()
        self._today = today
        self.mrz_decoder = MRZDecoder(self.config.country_names, today=today)
        self.birth_strategies = [
            self.dob_from_label,
            self.year_from_label,
            self.year_from_bare_token,
        ]

    @property
    def today(self) -> date:
        return self._today or date.today()

    def extract(self, text: str) -> IdentityExtraction:
        """Build an identity record from raw OCR text.

        Args:
            text: Raw OCR output; may be empty or garbled.

        Returns:
            Best-effort record; unset fields are ``None``.
        """
        record = IdentityExtraction()
        age_candidates: dict[AgeSource, int | None] = {}
        if not text or not text.strip():
            logger.info("Empty OCR text, nothing to extract")
            return record

        mrz = self.mrz_decoder.decode(text)
        if mrz:
            record.fill("full_name", mrz.full_name, "mrz")
            record.fill("nationality", mrz.nationality, "mrz")
            record.fill("document_number", mrz.document_number, "mrz")
            record.fill("expiry_date", mrz.expiry_date, "mrz")
            if record.fill("date_of_birth", mrz.date_of_birth, "mrz"):
                record.fill("birth_year", mrz.birth_year, "mrz")
                tier = AgeSource.BIRTH_YEAR if mrz.approximate_dob else AgeSource.DATE_OF_BIRTH
                age_candidates[tier] = mrz.age

        if record.date_of_birth is None:
            candidate, strategy = first_match(self.birth_strategies, text)
            if candidate is not None:
                record.fill("date_of_birth", candidate.dob.isoformat(), strategy)
                record.fill("birth_year", candidate.dob.year, strategy)
                if candidate.approximate:
                    age_candidates[AgeSource.BIRTH_YEAR] = (
                        self.today.year - candidate.dob.year
                    )
                else:
                    age_candidates[AgeSource.DATE_OF_BIRTH] = compute_age(
                        candidate.dob, self.today
                    )

        age_candidates[AgeSource.EXTRACTED_AGE] = self.explicit_age(text)
        record.resolve_age(age_candidates)

        self._fill_from_labels(record, text)

        logger.info(
            "Identity extraction: name=%s dob=%s age=%s (%s) nationality=%s",
            record.full_name,
            record.date_of_birth,
            record.age,
            record.age_source,
            record.nationality,
        )
        return record

    def _fill_from_labels(self, record: IdentityExtraction, text: str) -> None:
        """Fill name, nationality, document number and dates from labels."""
        if record.full_name is None:
            record.fill("full_name", self.name_from_labels(text), "label")
        if record.nationality is None:
            record.fill("nationality", self.nationality_from_labels(text), "label")
        if record.document_number is None:
            record.fill(
                "document_number",
                clean_document_number(find_value_by_labels(DOCUMENT_NUMBER_LABELS, text)),
                "label",
            )
        if record.issuance_date is None:
            record.fill("issuance_date", self.date_from_labels(ISSUE_LABELS, text), "label")
        if record.expiry_date is None:
            record.fill("expiry_date", self.date_from_labels(EXPIRY_LABELS, text), "label")

    def dob_from_label(self, text: str) -> BirthCandidate | None:
        """Full date written next to a birth label."""
        for label in BIRTH_LABELS:
            label_re = r"\b" + r"\s+".join(label.split()) + r"\b"
            for shape in DATE_SHAPES:
                pattern = re.compile(label_re + _SEP + shape, re.IGNORECASE)
                for match in pattern.finditer(text):
                    parsed = parse_birth_date(match.group(1), self.today)
                    if parsed:
                        return BirthCandidate(parsed)

        for match in DATE_BEFORE_LABEL.finditer(text):
            parsed = parse_birth_date(match.group(1), self.today)
            if parsed:
                return BirthCandidate(parsed)
        return None

    def year_from_label(self, text: str) -> BirthCandidate | None:
        """Year written next to a birth label."""
        for pattern in (YEAR_AFTER_LABEL, YEAR_BEFORE_LABEL):
            for match in pattern.finditer(text):
                year = int(match.group(1))
                if 1900 < year <= self.today.year:
                    return BirthCandidate(date(year, 1, 1), approximate=True)
        return None

    def year_from_bare_token(self, text: str) -> BirthCandidate | None:
        """Most recent bare year that makes the holder at least the minimum age."""
        latest = self.today.year - self.config.minimum_age
        years = [
            int(y)
            for y in BARE_YEAR.findall(text)
            if self.config.min_birth_year <= int(y) <= latest
        ]
        if not years:
            return None
        return BirthCandidate(date(max(years), 1, 1), approximate=True)

    def explicit_age(self, text: str) -> int | None:
        """Age stated explicitly in the text, e.g. ``Age: 34``."""
        for pattern in EXPLICIT_AGE:
            match = pattern.search(text)
            if match:
                return int(match.group(1))
        return None

    def name_from_labels(self, text: str) -> str | None:
        """Holder name from a full-name label or surname plus given names."""
        name = clean_name(find_value_by_labels(NAME_LABELS[:3], text))
        if name:
            return name
        surname = clean_name(find_value_by_labels(SURNAME_LABELS, text))
        given = clean_name(find_value_by_labels(GIVEN_NAME_LABELS, text))
        if surname and given:
            return f"{given} {surname}"
        return clean_name(find_value_by_labels(NAME_LABELS[3:], text))

    def nationality_from_labels(self, text: str) -> str | None:
        """Nationality next to a label, mapped to a display name."""
        value = clean_name(find_value_by_labels(NATIONALITY_LABELS, text))
        if not value:
            return None
        key = re.sub(r"[^A-Z ]", " ", value.upper())
        key = re.sub(r"\s+", " ", key).strip()
        if key in NATIONALITY_ALIASES:
            return NATIONALITY_ALIASES[key]
        if key in self.config.country_names:
            return self.config.country_names[key]
        return value.title() if value.isupper() else value

    def date_from_labels(self, labels: list[str], text: str) -> str | None:
        """Issuance or expiry date next to a label, ISO-formatted when parseable."""
        value = find_value_by_labels(labels, text)
        if not value:
            return None
        match = ANY_DATE.search(value)
        if not match:
            return None
        parsed = parse_document_date(match.group(1))
        return parsed.isoformat() if parsed else match.group(1).strip()
