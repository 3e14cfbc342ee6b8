"""Document type classification by keyword templates.

Scores OCR text against per-type identifier patterns, loaded from YAML
when a templates file exists and built in otherwise, and picks the
best-scoring type above its minimum confidence.
"""

import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from kyc_ocr.records import DocumentType
from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TEMPLATES: dict[str, dict] = {
    "passport": {
        "identifiers": [
            r"\bpassport\b",
            r"P[<KLC][A-Z]{3}",
            r"\bnationality\b",
            r"place\s+of\s+birth",
            r"\bsurname\b",
            r"given\s+names?",
        ],
        "min_confidence": 0.3,
    },
    "driver_license": {
        "identifiers": [
            r"driver'?s?\s+licen[cs]e",
            r"\bDL\b",
            r"\bclass\b",
            r"\bendorsements?\b",
            r"\brestrictions?\b",
            r"\bdob\b",
        ],
        "min_confidence": 0.3,
    },
    "id_card": {
        "identifiers": [
            r"identity\s+card",
            r"\bid\s*(?:card|no)\b",
            r"\bnational\b",
            r"kad\s+pengenalan",
            r"\bmykad\b",
            r"\bcitizen",
        ],
        "min_confidence": 0.3,
    },
    "property_deed": {
        "identifiers": [
            r"\bdeed\b",
            r"\bgrantor\b",
            r"\bgrantee\b",
            r"\bparcel\b",
            r"\btax\s*id\b",
            r"property\s+address",
            r"\brecording\b",
            r"\bowner\b",
        ],
        "min_confidence": 0.25,
    },
}


@dataclass
class ClassificationResult:
    """Best template match for a document."""

    document_type: DocumentType
    confidence: float


class DocumentClassifier:
    """Matches OCR text against document type templates.

    Args:
        templates_path: Optional YAML file overriding the built-in templates.
    """

    def __init__(self, templates_path: Path | None = None) -> None:
        self.templates = self._load_templates(templates_path)

    def _load_templates(self, path: Path | None) -> dict:
        if path is not None and path.exists():
            with open(path) as f:
                data = yaml.safe_load(f)
            if data:
                logger.info("Loaded document templates from %s", path)
                return data
        logger.debug("Using built-in document templates")
        return DEFAULT_TEMPLATES

    def score(self, text: str, template: dict) -> float:
        """Fraction of a template's identifiers found in the text."""
        identifiers = template.get("identifiers", [])
        if not identifiers:
            return 0.0
        matches = sum(
            1 for ident in identifiers if re.search(ident, text, re.IGNORECASE)
        )
        return matches / len(identifiers)

    def match(self, text: str) -> ClassificationResult | None:
        """Find the best matching document type.

        Args:
            text: OCR text from the document.

        Returns:
            Best match, or ``None`` if no template reaches its minimum
            confidence.
        """
        best: ClassificationResult | None = None

        for name, template in self.templates.items():
            try:
                document_type = DocumentType(name)
            except ValueError:
                logger.warning("Ignoring template for unknown document type %s", name)
                continue
            score = self.score(text, template)
            if score >= template.get("min_confidence", 0.5) and (
                best is None or score > best.confidence
            ):
                best = ClassificationResult(document_type, score)

        if best:
            logger.info(
                "Classified document as %s (confidence=%.2f)",
                best.document_type,
                best.confidence,
            )
        return best

    def classify(
        self, text: str, default: DocumentType = DocumentType.ID_CARD
    ) -> DocumentType:
        """Document type for the text, or ``default`` when nothing matches."""
        best = self.match(text)
        return best.document_type if best else default
