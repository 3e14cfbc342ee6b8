"""PDF rasterization for scanned property and identity documents.

Converts PDF uploads to RGB bitmaps so each page can go through the
same preprocessing and recognition as an image upload.
"""

from pathlib import Path

import numpy as np
from pdf2image import convert_from_bytes, convert_from_path
from pdf2image.exceptions import PDFInfoNotInstalledError

from kyc_ocr.exceptions import ServiceUnavailableError, UnsupportedDocumentError
from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class PDFHandler:
    """Handles PDF to bitmap conversion for OCR.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but use more memory.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def pdf_to_images(self, pdf_source: Path | bytes) -> list[np.ndarray]:
        """Convert a PDF to a list of page bitmaps.

        Args:
            pdf_source: Path to a PDF file or raw PDF bytes.

        Returns:
            List of pages as numpy arrays (RGB format).

        Raises:
            FileNotFoundError: If a path is given and the file does not exist.
            ServiceUnavailableError: If poppler is not installed.
            UnsupportedDocumentError: If the PDF cannot be rendered.
        """
        try:
            if isinstance(pdf_source, str | Path):
                path = Path(pdf_source)
                if not path.exists():
                    raise FileNotFoundError(f"PDF file not found: {path}")
                pil_images = convert_from_path(str(path), dpi=self.dpi)
            else:
                pil_images = convert_from_bytes(pdf_source, dpi=self.dpi)
        except FileNotFoundError:
            raise
        except PDFInfoNotInstalledError as exc:
            raise ServiceUnavailableError("pdf", str(exc)) from exc
        except Exception as exc:
            raise UnsupportedDocumentError(f"PDF conversion failed: {exc}") from exc

        images = [np.array(img.convert("RGB")) for img in pil_images]
        logger.info("Converted PDF to %d images at %d DPI", len(images), self.dpi)
        return images
