"""Tests for document type classification."""

from pathlib import Path

import yaml

from kyc_ocr.extraction.document_classifier import DEFAULT_TEMPLATES, DocumentClassifier
from kyc_ocr.records import DocumentType


class TestDocumentClassifier:
    """Tests for keyword template matching."""

    def setup_method(self) -> None:
        self.classifier = DocumentClassifier()

    def test_passport(self, passport_text: str) -> None:
        assert self.classifier.classify(passport_text) == DocumentType.PASSPORT

    def test_driver_license(self) -> None:
        text = "DRIVER LICENSE\nDL 123456\nClass C\nDOB 04/12/1985\nRestrictions NONE"
        assert self.classifier.classify(text) == DocumentType.DRIVER_LICENSE

    def test_id_card(self) -> None:
        text = "KAD PENGENALAN MALAYSIA\nIDENTITY CARD\nMyKad\nWARGANEGARA"
        assert self.classifier.classify(text) == DocumentType.ID_CARD

    def test_property_deed(self, deed_text: str) -> None:
        assert self.classifier.classify(deed_text) == DocumentType.PROPERTY_DEED

    def test_unrecognized_text_uses_default(self) -> None:
        assert self.classifier.classify("lorem ipsum") == DocumentType.ID_CARD
        assert (
            self.classifier.classify("lorem ipsum", default=DocumentType.PASSPORT)
            == DocumentType.PASSPORT
        )

    def test_match_reports_confidence(self, deed_text: str) -> None:
        result = self.classifier.match(deed_text)
        assert result is not None
        assert 0.25 <= result.confidence <= 1.0

    def test_no_match(self) -> None:
        assert self.classifier.match("") is None

    def test_score(self) -> None:
        template = {"identifiers": [r"\bdeed\b", r"\bparcel\b"]}
        assert self.classifier.score("Warranty Deed", template) == 0.5
        assert self.classifier.score("anything", {"identifiers": []}) == 0.0

    def test_missing_templates_file_uses_defaults(self, tmp_path: Path) -> None:
        classifier = DocumentClassifier(tmp_path / "missing.yaml")
        assert classifier.templates == DEFAULT_TEMPLATES

    def test_templates_from_yaml(self, tmp_path: Path) -> None:
        templates = {
            "passport": {"identifiers": [r"\bpasaporte\b"], "min_confidence": 0.5},
            "boarding_pass": {"identifiers": [r"\bgate\b"], "min_confidence": 0.5},
        }
        path = tmp_path / "templates.yaml"
        path.write_text(yaml.dump(templates))

        classifier = DocumentClassifier(path)
        assert classifier.classify("PASAPORTE") == DocumentType.PASSPORT
        assert classifier.match("Gate 12") is None
