"""Extraction records produced by the scan pipeline.

``IdentityExtraction`` is filled incrementally by several strategies.
Writes go through :meth:`IdentityExtraction.fill`, which never
overwrites a field that is already set and rejects values that break
the record's range invariants.
"""

from dataclasses import asdict, dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any

from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)

US_NATIONALITIES = frozenset({"United States", "USA", "US"})

MIN_AGE_EXCLUSIVE = 0
MAX_AGE_EXCLUSIVE = 120
MIN_BIRTH_YEAR_EXCLUSIVE = 1900


class DocumentType(StrEnum):
    """Supported document types."""

    PASSPORT = "passport"
    DRIVER_LICENSE = "driver_license"
    ID_CARD = "id_card"
    PROPERTY_DEED = "property_deed"
    AUTO = "auto"


class AgeSource(StrEnum):
    """Where a stored age came from, highest precedence first."""

    DATE_OF_BIRTH = "date_of_birth"
    EXTRACTED_AGE = "extracted_age"
    BIRTH_YEAR = "birth_year"


AGE_PRECEDENCE = [AgeSource.DATE_OF_BIRTH, AgeSource.EXTRACTED_AGE, AgeSource.BIRTH_YEAR]


def is_plausible_age(age: int | None) -> bool:
    """Check the ``0 < age < 120`` invariant."""
    return age is not None and MIN_AGE_EXCLUSIVE < age < MAX_AGE_EXCLUSIVE


def is_plausible_birth_year(year: int | None, today: date | None = None) -> bool:
    """Check the ``1900 < year <= current_year`` invariant."""
    if year is None:
        return False
    current_year = (today or date.today()).year
    return MIN_BIRTH_YEAR_EXCLUSIVE < year <= current_year


@dataclass
class IdentityExtraction:
    """Structured identity fields recovered from a document."""

    full_name: str | None = None
    date_of_birth: str | None = None
    age: int | None = None
    birth_year: int | None = None
    nationality: str | None = None
    document_number: str | None = None
    issuance_date: str | None = None
    expiry_date: str | None = None
    age_source: AgeSource | None = None
    sources: dict[str, str] = field(default_factory=dict)

    @property
    def is_us_citizen(self) -> bool:
        """True only when an extracted nationality names the United States."""
        return self.nationality in US_NATIONALITIES

    def fill(self, field_name: str, value: Any, source: str) -> bool:
        """Set a field unless it is already set or the value is implausible.

        Args:
            field_name: Name of the record attribute.
            value: Candidate value; ``None`` and empty strings are ignored.
            source: Name of the strategy that produced the value.

        Returns:
            True if the value was stored.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return False
        if getattr(self, field_name) is not None:
            logger.debug(
                "Keeping %s from %s, ignoring %s",
                field_name,
                self.sources.get(field_name),
                source,
            )
            return False
        if field_name == "age" and not is_plausible_age(value):
            logger.debug("Discarding implausible age %s from %s", value, source)
            return False
        if field_name == "birth_year" and not is_plausible_birth_year(value):
            logger.debug("Discarding implausible birth year %s from %s", value, source)
            return False

        setattr(self, field_name, value)
        self.sources[field_name] = source
        return True

    def resolve_age(self, candidates: dict[AgeSource, int | None]) -> bool:
        """Store the first plausible age in precedence order.

        Only one age source is ever trusted: the date-of-birth age wins
        over an explicitly extracted age, which wins over an age derived
        from the birth year alone. An age already on the record is kept.

        Args:
            candidates: Candidate ages keyed by their source.

        Returns:
            True if an age was stored.
        """
        if self.age is not None:
            return False
        for age_source in AGE_PRECEDENCE:
            age = candidates.get(age_source)
            if age is None:
                continue
            if not is_plausible_age(age):
                logger.debug("Discarding implausible age %s (%s)", age, age_source)
                continue
            self.age = age
            self.age_source = age_source
            self.sources["age"] = str(age_source)
            return True
        return False

    def to_dict(self) -> dict[str, Any]:
        """Serialize the record, including the derived citizenship flag."""
        data = asdict(self)
        data["age_source"] = str(self.age_source) if self.age_source else None
        data["is_us_citizen"] = self.is_us_citizen
        return data


@dataclass
class PropertyExtraction:
    """Fields recovered from a property or legal document."""

    deed_number: str | None = None
    address: str | None = None
    owner_name: str | None = None
    tax_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize the record to a plain dict."""
        return asdict(self)
