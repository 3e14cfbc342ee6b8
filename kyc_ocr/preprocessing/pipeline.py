"""Image preprocessing pipeline tuned for identity document OCR.

Runs luminance grayscale conversion, a linear contrast stretch and,
for text-dense document types, a fixed-threshold binarization, while
tracking before/after quality metrics.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from kyc_ocr.records import DocumentType
from kyc_ocr.utils.config import PreprocessingConfig
from kyc_ocr.utils.logger import get_logger

from .binarize import binarize_threshold, to_luminance
from .contrast import stretch_contrast

logger = get_logger(__name__)


@dataclass
class QualityMetrics:
    """Before/after image quality measurements."""

    sharpness_before: float
    sharpness_after: float
    contrast_before: float
    contrast_after: float


def calculate_sharpness(image: np.ndarray) -> float:
    """Calculate image sharpness using Laplacian variance.

    Args:
        image: Input image (RGB, RGBA or grayscale).

    Returns:
        Sharpness score (higher means sharper).
    """
    gray = to_luminance(image)
    return float(cv2.Laplacian(gray, cv2.CV_64F).var())


def calculate_contrast(image: np.ndarray) -> float:
    """Calculate image contrast as the standard deviation of pixel intensities.

    Args:
        image: Input image (RGB, RGBA or grayscale).

    Returns:
        Contrast score (higher means more contrast).
    """
    return float(to_luminance(image).std())


class PreprocessingPipeline:
    """Document bitmap preprocessing for OCR.

    The transform is pure: the input array is never modified and a new
    bitmap with identical width and height is returned.

    Args:
        config: Preprocessing configuration with contrast and threshold values.
    """

    def __init__(self, config: PreprocessingConfig) -> None:
        self.config = config

    def should_binarize(self, document_type: DocumentType | str) -> bool:
        """Whether the given document type gets a binarization step."""
        return str(document_type) in self.config.binarize_document_types

    def process(
        self,
        image: np.ndarray,
        document_type: DocumentType | str = DocumentType.PASSPORT,
    ) -> tuple[np.ndarray, QualityMetrics | None]:
        """Run the preprocessing steps on a bitmap.

        If the bitmap cannot be rendered the input is returned unchanged
        so the scan can still proceed on the raw image.

        Args:
            image: Decoded document bitmap (RGB, RGBA or grayscale).
            document_type: Document type hint controlling binarization.

        Returns:
            Tuple of (processed_image, quality_metrics). Metrics are
            ``None`` when the input was passed through unchanged.
        """
        if image is None or image.size == 0:
            logger.warning("Empty bitmap, skipping preprocessing")
            return image, None

        try:
            gray = to_luminance(image)
            result = stretch_contrast(gray, self.config.contrast_factor)
            if self.should_binarize(document_type):
                result = binarize_threshold(result, self.config.binarize_threshold)
        except (ValueError, cv2.error) as exc:
            logger.warning("Preprocessing unavailable, using raw bitmap: %s", exc)
            return image, None

        metrics = QualityMetrics(
            sharpness_before=calculate_sharpness(gray),
            sharpness_after=calculate_sharpness(result),
            contrast_before=calculate_contrast(gray),
            contrast_after=calculate_contrast(result),
        )

        logger.info(
            "Preprocessed %s bitmap %dx%d: contrast %.1f->%.1f",
            document_type,
            result.shape[1],
            result.shape[0],
            metrics.contrast_before,
            metrics.contrast_after,
        )
        return result, metrics
