"""Loading uploaded documents into bitmaps or text.

Branches on the upload's content type (falling back to the file
extension and magic bytes): images are decoded to bitmaps, PDFs are
rasterized page by page and ``text/*`` uploads are decoded as UTF-8 so
they can skip OCR entirely.
"""

import io
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from kyc_ocr.exceptions import UnsupportedDocumentError
from kyc_ocr.utils.logger import get_logger

from .pdf_handler import PDFHandler

logger = get_logger(__name__)

PDF_MAGIC = b"%PDF"


@dataclass
class LoadedDocument:
    """An upload ready for the scan pipeline.

    Exactly one of ``images`` or ``text`` carries the content.
    """

    filename: str
    content_type: str
    images: list[np.ndarray] = field(default_factory=list)
    text: str | None = None

    @property
    def is_text(self) -> bool:
        return self.text is not None


def guess_content_type(filename: str, data: bytes) -> str:
    """Content type from magic bytes, then from the filename extension."""
    if data[:4] == PDF_MAGIC:
        return "application/pdf"
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


class DocumentLoader:
    """Turns raw upload bytes into bitmaps or text.

    Args:
        pdf_dpi: Resolution used when rasterizing PDF pages.
    """

    def __init__(self, pdf_dpi: int = 300) -> None:
        self.pdf_handler = PDFHandler(dpi=pdf_dpi)

    def load(
        self,
        data: bytes,
        filename: str = "document",
        content_type: str | None = None,
    ) -> LoadedDocument:
        """Load an upload.

        Args:
            data: Raw file bytes.
            filename: Original file name, used when no content type is given.
            content_type: MIME type reported by the uploader.

        Returns:
            The loaded document.

        Raises:
            UnsupportedDocumentError: If the content cannot be loaded.
        """
        if not data:
            raise UnsupportedDocumentError(f"Empty upload: {filename}")

        if not content_type or content_type == "application/octet-stream":
            content_type = guess_content_type(filename, data)
        content_type = content_type.split(";")[0].strip().lower()
        logger.info("Loading %s as %s", filename, content_type)

        if content_type.startswith("text/"):
            return LoadedDocument(
                filename=filename,
                content_type=content_type,
                text=data.decode("utf-8", errors="replace"),
            )

        if content_type == "application/pdf" or data[:4] == PDF_MAGIC:
            pages = self.pdf_handler.pdf_to_images(data)
            if not pages:
                raise UnsupportedDocumentError(f"PDF has no pages: {filename}")
            return LoadedDocument(
                filename=filename,
                content_type="application/pdf",
                images=pages,
            )

        if content_type.startswith("image/"):
            return LoadedDocument(
                filename=filename,
                content_type=content_type,
                images=[self._decode_image(data, filename)],
            )

        raise UnsupportedDocumentError(
            f"Unsupported content type {content_type!r} for {filename}"
        )

    def load_path(self, path: Path) -> LoadedDocument:
        """Load a document from disk.

        Raises:
            FileNotFoundError: If the file does not exist.
            UnsupportedDocumentError: If the content cannot be loaded.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Document not found: {path}")
        return self.load(path.read_bytes(), filename=path.name)

    def _decode_image(self, data: bytes, filename: str) -> np.ndarray:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise UnsupportedDocumentError(f"Cannot decode image {filename}: {exc}") from exc

        if img.mode not in ("L", "RGB", "RGBA"):
            img = img.convert("RGB")
        return np.array(img)
