"""Configurable validation rules for finished extraction records.

Checks required fields, ISO dates, age and birth-year ranges and custom
patterns, plus cross-field consistency (age against date of birth,
expiry after issuance). The report flags fields for reviewer attention;
the record itself is never changed.
"""

import re
from dataclasses import asdict, dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from kyc_ocr.extraction.dates import compute_age
from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    """Result of a single field validation check."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str


@dataclass
class ValidationReport:
    """Aggregated validation report for a record."""

    all_valid: bool
    results: list[ValidationResult]
    warnings: list[str] = field(default_factory=list)

    @property
    def failed_fields(self) -> list[str]:
        return sorted({r.field_name for r in self.results if not r.is_valid})

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["failed_fields"] = self.failed_fields
        return data


def _parse_iso(value: Any) -> date | None:
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        return None


class RulesEngine:
    """Configurable validation rules engine.

    Applies field-level and cross-field rules per record kind
    (``identity`` or ``property``), loaded from a YAML file when one
    exists.

    Args:
        rules_path: Path to the validation rules YAML file.
        today: Fixed reference date for age and expiry checks.
    """

    def __init__(
        self,
        rules_path: Path = Path("configs/validation_rules.yaml"),
        today: date | None = None,
    ) -> None:
        self.rules = self._load_rules(rules_path)
        self._today = today
        self._validators: dict[str, Any] = {
            "required": self._validate_required,
            "date_format": self._validate_date,
            "age_range": self._validate_age_range,
            "year_range": self._validate_year_range,
            "regex": self._validate_regex,
        }

    @property
    def today(self) -> date:
        return self._today or date.today()

    def _load_rules(self, path: Path) -> dict:
        """Load validation rules from YAML file.

        Args:
            path: Path to the rules file.

        Returns:
            Dictionary of record-kind-specific rules.
        """
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f)
                if data:
                    logger.info("Loaded validation rules from %s", path)
                    return data
        logger.debug("Using default validation rules")
        return self._default_rules()

    def _default_rules(self) -> dict:
        return {
            "identity": {
                "full_name": [{"type": "required"}],
                "date_of_birth": [{"type": "required"}, {"type": "date_format"}],
                "age": [{"type": "age_range", "min": 1, "max": 119}],
                "birth_year": [{"type": "year_range", "min": 1901}],
                "issuance_date": [{"type": "date_format"}],
                "expiry_date": [{"type": "date_format"}],
            },
            "property": {
                "deed_number": [
                    {"type": "required"},
                    {"type": "regex", "pattern": r"^[A-Z0-9][A-Z0-9\-]*$"},
                ],
                "address": [{"type": "required"}],
                "owner_name": [{"type": "required"}],
                "tax_id": [{"type": "regex", "pattern": r"^[A-Z0-9][A-Z0-9\s:\-]*$"}],
            },
        }

    def validate(self, fields: dict[str, Any], kind: str = "identity") -> ValidationReport:
        """Validate a record's fields against the rules for its kind.

        Args:
            fields: Record serialized with ``to_dict``.
            kind: ``identity`` or ``property``.

        Returns:
            Validation report with one result per check.
        """
        results: list[ValidationResult] = []
        warnings: list[str] = []

        for field_name, rules in self.rules.get(kind, {}).items():
            value = fields.get(field_name)

            for rule in rules:
                rule_type = rule.get("type")
                validator = self._validators.get(rule_type)

                if not validator:
                    warnings.append(f"Unknown rule type: {rule_type}")
                    continue

                results.append(validator(field_name, value, rule))

        if kind == "identity":
            results.extend(self._cross_validate(fields))

        all_valid = all(r.is_valid for r in results)
        logger.info(
            "Validation for %s: %s (%d checks)",
            kind,
            "PASSED" if all_valid else "FAILED",
            len(results),
        )
        return ValidationReport(all_valid=all_valid, results=results, warnings=warnings)

    def _validate_required(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Check if a required field is present and non-empty."""
        if value is not None and str(value).strip():
            return ValidationResult(field_name, True, "Required field present", "required")
        return ValidationResult(
            field_name, False, f"Required field missing: {field_name}", "required"
        )

    def _validate_date(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Check that a date was normalized to ISO ``YYYY-MM-DD``."""
        if value is None:
            return ValidationResult(field_name, True, "No value to validate", "date_format")
        if _parse_iso(value):
            return ValidationResult(field_name, True, "Valid ISO date", "date_format")
        return ValidationResult(
            field_name, False, f"Invalid date format: {value}", "date_format"
        )

    def _validate_age_range(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Check if an age falls within the configured range."""
        if value is None:
            return ValidationResult(field_name, True, "No value to validate", "age_range")

        min_age, max_age = rule.get("min", 1), rule.get("max", 119)
        try:
            age = int(value)
        except (TypeError, ValueError):
            return ValidationResult(field_name, False, f"Invalid age: {value}", "age_range")
        if min_age <= age <= max_age:
            return ValidationResult(field_name, True, "Age in valid range", "age_range")
        return ValidationResult(
            field_name,
            False,
            f"Age {age} outside range [{min_age}, {max_age}]",
            "age_range",
        )

    def _validate_year_range(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Check a year against ``[min, max]``; ``max`` defaults to this year."""
        if value is None:
            return ValidationResult(field_name, True, "No value to validate", "year_range")

        min_year = rule.get("min", 1901)
        max_year = rule.get("max", self.today.year)
        try:
            year = int(value)
        except (TypeError, ValueError):
            return ValidationResult(field_name, False, f"Invalid year: {value}", "year_range")
        if min_year <= year <= max_year:
            return ValidationResult(field_name, True, "Year in valid range", "year_range")
        return ValidationResult(
            field_name,
            False,
            f"Year {year} outside range [{min_year}, {max_year}]",
            "year_range",
        )

    def _validate_regex(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Validate a field value against a custom regex pattern."""
        if value is None:
            return ValidationResult(field_name, True, "No value to validate", "regex")

        pattern = rule.get("pattern", "")
        if re.match(pattern, str(value)):
            return ValidationResult(field_name, True, "Matches pattern", "regex")
        return ValidationResult(
            field_name, False, f"Does not match pattern: {pattern}", "regex"
        )

    def _cross_validate(self, fields: dict[str, Any]) -> list[ValidationResult]:
        """Run cross-field checks on an identity record.

        Checks that the age agrees with the date of birth (exactly when
        the age was computed from it, within a year otherwise) and that
        the expiry date falls after the issuance date.
        """
        results: list[ValidationResult] = []

        dob = _parse_iso(fields.get("date_of_birth")) if fields.get("date_of_birth") else None
        age = fields.get("age")
        if dob and age is not None:
            expected = compute_age(dob, self.today)
            tolerance = 0 if fields.get("age_source") == "date_of_birth" else 1
            if abs(expected - int(age)) <= tolerance:
                results.append(
                    ValidationResult("age", True, "Age matches date of birth", "cross_field")
                )
            else:
                results.append(
                    ValidationResult(
                        "age",
                        False,
                        f"Age {age} doesn't match date of birth ({expected})",
                        "cross_field",
                    )
                )

        issued = _parse_iso(fields.get("issuance_date")) if fields.get("issuance_date") else None
        expires = _parse_iso(fields.get("expiry_date")) if fields.get("expiry_date") else None
        if issued and expires:
            if expires > issued:
                results.append(
                    ValidationResult(
                        "expiry_date", True, "Expiry after issuance", "cross_field"
                    )
                )
            else:
                results.append(
                    ValidationResult(
                        "expiry_date",
                        False,
                        f"Expiry {expires} is not after issuance {issued}",
                        "cross_field",
                    )
                )

        return results
