"""Two-pass text recognition.

Runs the OCR service twice on the same bitmap, once with default page
segmentation and once with orientation detection and an expanded
character whitelist, and keeps whichever pass recognized more text.
"""

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from kyc_ocr.utils.config import OCRConfig
from kyc_ocr.utils.logger import get_logger

from .tesseract_engine import OCRResult, OCRService, RecognitionOptions

logger = get_logger(__name__)

PASS_A = "pass_a"
PASS_B = "pass_b"

StageProgress = Callable[[int, str], None]


@dataclass
class RecognitionResult:
    """Outcome of both recognition passes."""

    text: str
    selected_pass: str
    pass_a: OCRResult
    pass_b: OCRResult


def remap_progress(percent: int, start: int, end: int) -> int:
    """Map a 0-100 service percentage into the ``[start, end]`` sub-range."""
    percent = max(0, min(100, percent))
    return start + round((end - start) * percent / 100)


def select_longer(pass_a: OCRResult, pass_b: OCRResult) -> tuple[OCRResult, str]:
    """Pick the pass with the longer text; ties keep pass A."""
    if len(pass_b.text.strip()) > len(pass_a.text.strip()):
        return pass_b, PASS_B
    return pass_a, PASS_A


class RecognitionOrchestrator:
    """Drives the two recognition passes over an injected OCR service.

    Errors from the service, including ``ServiceUnavailableError``,
    propagate to the caller; passes are never retried.

    Args:
        service: OCR service used for both passes.
        config: OCR settings (language, page segmentation, whitelist,
            progress sub-ranges).
    """

    def __init__(self, service: OCRService, config: OCRConfig | None = None) -> None:
        self.service = service
        self.config = config or OCRConfig()

    @property
    def pass_a_options(self) -> RecognitionOptions:
        return RecognitionOptions(lang=self.config.default_lang, psm=self.config.psm)

    @property
    def pass_b_options(self) -> RecognitionOptions:
        return RecognitionOptions(
            lang=self.config.default_lang,
            psm=self.config.osd_psm,
            char_whitelist=self.config.char_whitelist,
            preserve_interword_spaces=True,
        )

    def run_pass(
        self,
        image: np.ndarray,
        stage: str,
        options: RecognitionOptions,
        progress_range: tuple[int, int],
        progress: StageProgress | None = None,
    ) -> OCRResult:
        """Run one pass, reporting progress within its sub-range.

        Args:
            image: Preprocessed bitmap.
            stage: Stage name passed to the progress callback.
            options: Engine settings for the pass.
            progress_range: ``(start, end)`` overall percentage range.
            progress: Optional ``(percent, stage)`` callback.

        Returns:
            The service's result for this pass.
        """
        start, end = progress_range

        def report(percent: int) -> None:
            if progress:
                progress(remap_progress(percent, start, end), stage)

        result = self.service.recognize(image, options, report)
        logger.debug("%s recognized %d characters", stage, len(result.text))
        return result

    def recognize(
        self,
        image: np.ndarray,
        progress: StageProgress | None = None,
        before_pass: Callable[[str], None] | None = None,
    ) -> RecognitionResult:
        """Run pass A then pass B and select the longer text.

        Args:
            image: Preprocessed bitmap.
            progress: Optional ``(percent, stage)`` callback.
            before_pass: Optional hook called with the stage name before
                each pass; an exception raised here stops recognition.

        Returns:
            Both pass results and the selected text.
        """
        if before_pass:
            before_pass(PASS_A)
        pass_a = self.run_pass(
            image, PASS_A, self.pass_a_options, self.config.pass_a_range, progress
        )
        if before_pass:
            before_pass(PASS_B)
        pass_b = self.run_pass(
            image, PASS_B, self.pass_b_options, self.config.pass_b_range, progress
        )
        selected, name = select_longer(pass_a, pass_b)
        logger.info(
            "Selected %s (%d chars vs %d chars)",
            name,
            len(selected.text),
            len(pass_b.text if name == PASS_A else pass_a.text),
        )
        return RecognitionResult(
            text=selected.text,
            selected_pass=name,
            pass_a=pass_a,
            pass_b=pass_b,
        )
