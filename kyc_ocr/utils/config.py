"""Configuration management for the identity document scanner.

Loads and validates YAML configuration with sensible defaults
for preprocessing, OCR, extraction, fingerprinting and validation.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_WHITELIST = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789<>.:;,/|()[]{}`~!@#$%^&*-_+="
)


class PreprocessingConfig(BaseModel):
    """Configuration for image preprocessing before OCR."""

    contrast_factor: float = 1.5
    binarize_threshold: int = 120
    binarize_document_types: list[str] = Field(default_factory=lambda: ["passport"])
    # Hint used when an identity scan has no document type yet.
    default_identity_type: str = "passport"


class OCRConfig(BaseModel):
    """Configuration for the two Tesseract recognition passes."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3
    osd_psm: int = 1
    char_whitelist: str = DEFAULT_WHITELIST
    pdf_dpi: int = 300
    pass_a_range: tuple[int, int] = (10, 50)
    pass_b_range: tuple[int, int] = (50, 90)


class ExtractionConfig(BaseModel):
    """Configuration for identity field extraction."""

    min_birth_year: int = 1920
    minimum_age: int = 18
    country_names: dict[str, str] = Field(
        default_factory=lambda: {
            "USA": "United States",
            "MYS": "Malaysia",
            "GBR": "United Kingdom",
            "CAN": "Canada",
            "AUS": "Australia",
            "NZL": "New Zealand",
            "DEU": "Germany",
            "FRA": "France",
        }
    )


class FingerprintConfig(BaseModel):
    """Configuration for record fingerprinting."""

    algorithm: str = "sha256"
    salt: str | None = None
    include_timestamp: bool = False


class ValidationConfig(BaseModel):
    """Configuration for the validation rules engine."""

    rules_path: str = "configs/validation_rules.yaml"
    templates_path: str = "configs/templates.yaml"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    fingerprint: FingerprintConfig = Field(default_factory=FingerprintConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
