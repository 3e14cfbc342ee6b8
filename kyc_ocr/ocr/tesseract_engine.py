"""Tesseract-backed OCR service.

Wraps pytesseract behind the :class:`OCRService` interface so the scan
pipeline can be driven by any recognizer, and translates a missing
Tesseract installation into :class:`ServiceUnavailableError`.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from kyc_ocr.exceptions import ServiceUnavailableError
from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass
class OCRWord:
    """A single recognized word with its confidence."""

    text: str
    confidence: float
    block_num: int
    line_num: int


@dataclass
class OCRResult:
    """Text recognized from one bitmap."""

    text: str
    words: list[OCRWord]
    language: str
    confidence: float


@dataclass
class RecognitionOptions:
    """Engine settings for one recognition pass."""

    lang: str = "eng"
    psm: int = 3
    oem: int | None = None
    char_whitelist: str | None = None
    preserve_interword_spaces: bool = False

    def to_tesseract_config(self) -> str:
        """Render the options as a Tesseract command-line config string."""
        parts = [f"--psm {self.psm}"]
        if self.oem is not None:
            parts.append(f"--oem {self.oem}")
        if self.preserve_interword_spaces:
            parts.append("-c preserve_interword_spaces=1")
        if self.char_whitelist:
            parts.append(f"-c tessedit_char_whitelist={self.char_whitelist}")
        return " ".join(parts)


class OCRService(ABC):
    """Black-box text recognition service."""

    @abstractmethod
    def recognize(
        self,
        image: np.ndarray,
        options: RecognitionOptions,
        progress: ProgressCallback | None = None,
    ) -> OCRResult:
        """Recognize text in a bitmap, reporting progress from 0 to 100.

        Raises:
            ServiceUnavailableError: If the service cannot be used.
        """
        raise NotImplementedError


class TesseractEngine(OCRService):
    """OCR service backed by a local Tesseract installation.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
    """

    def __init__(self, tesseract_cmd: str | None = None) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def is_available(self) -> bool:
        """Check whether the Tesseract binary can be executed."""
        try:
            pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError:
            return False
        return True

    def recognize(
        self,
        image: np.ndarray,
        options: RecognitionOptions,
        progress: ProgressCallback | None = None,
    ) -> OCRResult:
        """Extract text and word confidences from a bitmap.

        Args:
            image: Input image as a numpy array.
            options: Engine settings for this pass.
            progress: Optional callback receiving 0-100 percentages.

        Returns:
            OCRResult containing full text, words, and mean confidence.

        Raises:
            ServiceUnavailableError: If Tesseract is not installed.
        """
        if progress:
            progress(0)

        config = options.to_tesseract_config()
        pil_image = Image.fromarray(image)
        try:
            text = pytesseract.image_to_string(
                pil_image, lang=options.lang, config=config
            )
            data = pytesseract.image_to_data(
                pil_image,
                lang=options.lang,
                config=config,
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractNotFoundError as exc:
            raise ServiceUnavailableError("ocr", str(exc)) from exc

        words: list[OCRWord] = []
        total_conf = 0.0

        for i in range(len(data["text"])):
            conf = float(data["conf"][i])
            word_text = data["text"][i].strip()

            if conf > 0 and word_text:
                words.append(
                    OCRWord(
                        text=word_text,
                        confidence=conf / 100.0,
                        block_num=data["block_num"][i],
                        line_num=data["line_num"][i],
                    )
                )
                total_conf += conf

        avg_conf = (total_conf / len(words) / 100.0) if words else 0.0

        if progress:
            progress(100)

        logger.info(
            "OCR (%s) extracted %d words with average confidence %.2f",
            config,
            len(words),
            avg_conf,
        )
        return OCRResult(
            text=text,
            words=words,
            language=options.lang,
            confidence=avg_conf,
        )
