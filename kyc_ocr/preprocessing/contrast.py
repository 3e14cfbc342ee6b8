"""Linear contrast stretch around the mid-gray point."""

import numpy as np

from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)

MIDPOINT = 128


def stretch_contrast(image: np.ndarray, factor: float = 1.5) -> np.ndarray:
    """Stretch contrast linearly around intensity 128.

    Applies ``p' = p * factor + 128 * (1 - factor)`` and clamps the
    result to the 8-bit range.

    Args:
        image: Grayscale input image.
        factor: Contrast multiplier; values above 1 increase contrast.

    Returns:
        Contrast-adjusted uint8 image.
    """
    intercept = MIDPOINT * (1 - factor)
    stretched = image.astype(np.float32) * factor + intercept
    result = np.clip(np.rint(stretched), 0, 255).astype(np.uint8)
    logger.debug("Applied contrast stretch (factor=%.2f)", factor)
    return result
