"""Document scan pipeline.

Runs a :class:`ScanSession` through preprocessing, two-pass recognition,
field extraction and fingerprinting. OCR and hashing are injected, so
the pipeline can run against any service implementing their interfaces.
"""

from collections.abc import Callable
from datetime import date
from pathlib import Path

import numpy as np

from kyc_ocr.exceptions import ScanError
from kyc_ocr.extraction.document_classifier import DocumentClassifier
from kyc_ocr.extraction.identity_extractor import IdentityExtractor
from kyc_ocr.extraction.property_extractor import PropertyExtractor
from kyc_ocr.fingerprint import FingerprintStage, HashService
from kyc_ocr.ocr.recognition import PASS_A, PASS_B, RecognitionOrchestrator
from kyc_ocr.ocr.tesseract_engine import OCRService, TesseractEngine
from kyc_ocr.preprocessing.pipeline import PreprocessingPipeline
from kyc_ocr.records import DocumentType, IdentityExtraction, PropertyExtraction
from kyc_ocr.utils.config import AppConfig
from kyc_ocr.utils.logger import get_logger
from kyc_ocr.validation.rules_engine import RulesEngine

from .session import ScanSession, ScanState

logger = get_logger(__name__)

PAGE_SEPARATOR = "\n\n"

PASS_STATES = {
    PASS_A: ScanState.RECOGNIZING_PASS_A,
    PASS_B: ScanState.RECOGNIZING_PASS_B,
}

Extractor = Callable[[str], IdentityExtraction | PropertyExtraction]


def page_progress(percent: int, page_index: int, page_count: int, start: int, end: int) -> int:
    """Squeeze one page's ``[start, end]`` progress into its slice of the range."""
    span = (end - start) / page_count
    offset = start + span * page_index
    return round(offset + (percent - start) * span / (end - start))


class DocumentScanner:
    """Runs scan sessions for identity and property documents.

    Args:
        config: Application configuration.
        ocr_service: OCR backend. Defaults to a Tesseract engine.
        hash_service: Hash backend. Defaults to hashlib with the
            configured algorithm.
        today: Fixed reference date for age computations.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        ocr_service: OCRService | None = None,
        hash_service: HashService | None = None,
        today: date | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.preprocessing = PreprocessingPipeline(self.config.preprocessing)
        self.recognizer = RecognitionOrchestrator(
            ocr_service or TesseractEngine(self.config.ocr.tesseract_cmd),
            self.config.ocr,
        )
        self.identity_extractor = IdentityExtractor(self.config.extraction, today=today)
        self.property_extractor = PropertyExtractor()
        self.fingerprinter = FingerprintStage(hash_service, self.config.fingerprint)
        self.classifier = DocumentClassifier(Path(self.config.validation.templates_path))
        self.rules_engine = RulesEngine(Path(self.config.validation.rules_path), today=today)

    def scan_identity(self, session: ScanSession) -> ScanSession:
        """Extract an identity record from the session's document.

        Args:
            session: Session holding the loaded upload.

        Returns:
            The same session in ``COMPLETE`` state.

        Raises:
            SessionBusyError: If the session is already running.
            ScanCancelledError: If the session was cancelled.
            ServiceUnavailableError: If OCR or hashing is unavailable.
        """
        return self._run(session, self.identity_extractor.extract, "identity")

    def scan_property(self, session: ScanSession) -> ScanSession:
        """Extract a property record from the session's document.

        Raises:
            SessionBusyError: If the session is already running.
            ScanCancelledError: If the session was cancelled.
            ServiceUnavailableError: If OCR or hashing is unavailable.
        """
        session.document_type = DocumentType.PROPERTY_DEED
        return self._run(session, self.property_extractor.extract, "property")

    def _run(self, session: ScanSession, extract: Extractor, kind: str) -> ScanSession:
        session.start()
        logger.info("Starting %s scan of %s", kind, session.document.filename)
        try:
            if session.document.is_text:
                text = session.document.text or ""
            else:
                text = self._recognize(session)
            session.raw_text = text

            if session.document_type == DocumentType.AUTO:
                session.document_type = self.classifier.classify(text)

            session.advance(ScanState.EXTRACTING, output=text)
            session.report_progress(90, str(ScanState.EXTRACTING))
            record = extract(text)
            validation = self.rules_engine.validate(record.to_dict(), kind)

            session.advance(ScanState.FINGERPRINTING, output=record)
            session.report_progress(95, str(ScanState.FINGERPRINTING))
            fingerprint = self.fingerprinter.fingerprint(record.to_dict())

            session.record = record
            session.validation = validation
            session.fingerprint = fingerprint
            session.report_progress(100, str(ScanState.COMPLETE))
            session.advance(ScanState.COMPLETE, output=fingerprint)
        except ScanError as exc:
            session.fail(exc)
            raise
        except Exception as exc:
            session.fail(ScanError(f"Unexpected error: {exc}"))
            raise

        logger.info(
            "Finished %s scan of %s: fingerprint=%s",
            kind,
            session.document.filename,
            session.fingerprint,
        )
        return session

    def _recognize(self, session: ScanSession) -> str:
        """Preprocess and OCR every page of the session's document."""
        session.advance(ScanState.PREPROCESSING)
        session.report_progress(0, str(ScanState.PREPROCESSING))
        hint = session.document_type
        if hint == DocumentType.AUTO:
            hint = self.config.preprocessing.default_identity_type
        bitmaps: list[np.ndarray] = []
        for image in session.document.images:
            processed, _ = self.preprocessing.process(image, hint)
            bitmaps.append(processed)
        session.bitmaps = bitmaps

        start, end = self.config.ocr.pass_a_range[0], self.config.ocr.pass_b_range[1]
        page_count = len(bitmaps)
        texts: list[str] = []

        for index, bitmap in enumerate(bitmaps):

            def on_progress(percent: int, stage: str, index: int = index) -> None:
                session.report_progress(
                    page_progress(percent, index, page_count, start, end), stage
                )

            def before_pass(stage: str) -> None:
                session.advance(PASS_STATES[stage], output=len(texts))

            result = self.recognizer.recognize(
                bitmap, progress=on_progress, before_pass=before_pass
            )
            texts.append(result.text)

        return PAGE_SEPARATOR.join(t.strip() for t in texts if t.strip())
