"""Shared test fixtures for the document scan test suite."""

from collections.abc import Callable
from datetime import date

import numpy as np
import pytest

from kyc_ocr.ocr.document_loader import LoadedDocument
from kyc_ocr.ocr.tesseract_engine import OCRResult, OCRService, RecognitionOptions

PASSPORT_TEXT = (
    "PASSPORT\n"
    "United States of America\n"
    "P<USADOE<<JOHN<<<<<<<<<<<<<<<<<<<<<<<<<<<<<<<\n"
    "1234567897USA8503151M3001012<<<<<<<<<<<<<<04\n"
)

DEED_TEXT = (
    "PROPERTY DEED\n"
    "Deed Number: D1234567\n"
    "Property Address: 123 Main Street, Springfield, IL 62701\n"
    "Owner: John Doe\n"
    "Tax ID: TX1234\n"
)


class StubOCRService(OCRService):
    """OCR service returning canned text per pass."""

    def __init__(self, pass_a_text: str = "", pass_b_text: str = "") -> None:
        self.pass_a_text = pass_a_text
        self.pass_b_text = pass_b_text
        self.calls: list[RecognitionOptions] = []

    def recognize(self, image, options, progress=None) -> OCRResult:
        self.calls.append(options)
        if progress:
            progress(0)
        text = self.pass_b_text if options.char_whitelist else self.pass_a_text
        if progress:
            progress(100)
        return OCRResult(text=text, words=[], language=options.lang, confidence=0.9)


@pytest.fixture
def today() -> date:
    """Fixed reference date for age computations."""
    return date(2024, 3, 15)


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (200, 180, 160)
    return image


@pytest.fixture
def make_ocr_service() -> Callable[..., StubOCRService]:
    """Factory for stub OCR services with canned pass texts."""
    return StubOCRService


@pytest.fixture
def image_document(sample_color_image: np.ndarray) -> LoadedDocument:
    """A loaded single-page image upload."""
    return LoadedDocument(
        filename="scan.png", content_type="image/png", images=[sample_color_image]
    )


@pytest.fixture
def passport_text() -> str:
    return PASSPORT_TEXT


@pytest.fixture
def deed_text() -> str:
    return DEED_TEXT
