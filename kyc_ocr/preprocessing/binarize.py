"""Grayscale conversion and global thresholding for document images.

Grayscale conversion uses the ITU-R BT.601 luminance weights
(0.299 R + 0.587 G + 0.114 B) rather than a plain channel average.
"""

import cv2
import numpy as np

from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)

_COLOR_CONVERSIONS = {
    3: cv2.COLOR_RGB2GRAY,
    4: cv2.COLOR_RGBA2GRAY,
}


def to_luminance(image: np.ndarray) -> np.ndarray:
    """Convert an RGB or RGBA bitmap to single-channel luminance.

    Args:
        image: Input bitmap (grayscale, RGB or RGBA).

    Returns:
        Grayscale image with the same width and height.

    Raises:
        ValueError: If the channel layout is not supported.
    """
    if image.ndim == 2:
        return image.copy()
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0].copy()
    if image.ndim == 3 and image.shape[2] in _COLOR_CONVERSIONS:
        return cv2.cvtColor(image, _COLOR_CONVERSIONS[image.shape[2]])
    raise ValueError(f"Unsupported bitmap shape: {image.shape}")


def binarize_threshold(image: np.ndarray, threshold: int = 120) -> np.ndarray:
    """Binarize a grayscale image with a fixed global threshold.

    Pixels strictly above ``threshold`` become 255, all others 0.

    Args:
        image: Grayscale input image.
        threshold: Cut-off intensity.

    Returns:
        Binary image with pixel values 0 or 255.
    """
    _, binary = cv2.threshold(image, threshold, 255, cv2.THRESH_BINARY)
    logger.debug("Applied fixed binarization (threshold=%d)", threshold)
    return binary
