"""Tests for PDF handling and upload loading."""

import io
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError
from PIL import Image

from kyc_ocr.exceptions import ServiceUnavailableError, UnsupportedDocumentError
from kyc_ocr.ocr.document_loader import DocumentLoader, LoadedDocument, guess_content_type
from kyc_ocr.ocr.pdf_handler import PDFHandler


def _mock_pil_image(width: int = 300, height: int = 200, mode: str = "RGB") -> Image.Image:
    """Create a blank PIL image."""
    return Image.new(mode, (width, height))


def _png_bytes(mode: str = "RGB") -> bytes:
    buf = io.BytesIO()
    _mock_pil_image(mode=mode).save(buf, format="PNG")
    return buf.getvalue()


class TestPDFHandler:
    """Tests for the PDFHandler class."""

    def test_init_default_dpi(self) -> None:
        assert PDFHandler().dpi == 300

    @patch("kyc_ocr.ocr.pdf_handler.convert_from_path")
    def test_pdf_to_images_from_path(self, mock_convert: MagicMock) -> None:
        mock_convert.return_value = [_mock_pil_image(), _mock_pil_image()]
        handler = PDFHandler(dpi=200)

        with patch.object(Path, "exists", return_value=True):
            images = handler.pdf_to_images(Path("/fake/doc.pdf"))

        assert len(images) == 2
        assert all(isinstance(img, np.ndarray) for img in images)
        mock_convert.assert_called_once_with("/fake/doc.pdf", dpi=200)

    @patch("kyc_ocr.ocr.pdf_handler.convert_from_bytes")
    def test_pdf_pages_converted_to_rgb(self, mock_convert: MagicMock) -> None:
        mock_convert.return_value = [_mock_pil_image(mode="CMYK")]

        images = PDFHandler().pdf_to_images(b"%PDF-1.4 fake content")

        assert images[0].shape == (200, 300, 3)

    def test_pdf_to_images_file_not_found(self) -> None:
        with pytest.raises(FileNotFoundError):
            PDFHandler().pdf_to_images(Path("/nonexistent/file.pdf"))

    @patch("kyc_ocr.ocr.pdf_handler.convert_from_bytes")
    def test_poppler_missing(self, mock_convert: MagicMock) -> None:
        mock_convert.side_effect = PDFInfoNotInstalledError("pdfinfo not found")
        with pytest.raises(ServiceUnavailableError) as exc_info:
            PDFHandler().pdf_to_images(b"%PDF-1.4")
        assert exc_info.value.service == "pdf"

    @patch("kyc_ocr.ocr.pdf_handler.convert_from_bytes")
    def test_corrupt_pdf(self, mock_convert: MagicMock) -> None:
        mock_convert.side_effect = PDFPageCountError("Unable to get page count")
        with pytest.raises(UnsupportedDocumentError):
            PDFHandler().pdf_to_images(b"%PDF-broken")


class TestGuessContentType:
    """Tests for content type detection."""

    def test_pdf_magic_wins(self) -> None:
        assert guess_content_type("scan.png", b"%PDF-1.7") == "application/pdf"

    def test_extension(self) -> None:
        assert guess_content_type("id.png", b"\x89PNG") == "image/png"
        assert guess_content_type("notes.txt", b"hello") == "text/plain"

    def test_unknown(self) -> None:
        assert guess_content_type("blob", b"\x00\x01") == "application/octet-stream"


class TestDocumentLoader:
    """Tests for turning uploads into bitmaps or text."""

    def setup_method(self) -> None:
        self.loader = DocumentLoader()

    def test_image_upload(self) -> None:
        doc = self.loader.load(_png_bytes(), "id.png", "image/png")
        assert isinstance(doc, LoadedDocument)
        assert doc.is_text is False
        assert len(doc.images) == 1
        assert doc.images[0].shape == (200, 300, 3)

    def test_palette_image_converted(self) -> None:
        doc = self.loader.load(_png_bytes(mode="P"), "id.png", "image/png")
        assert doc.images[0].shape == (200, 300, 3)

    def test_grayscale_image_kept(self) -> None:
        doc = self.loader.load(_png_bytes(mode="L"), "id.png", "image/png")
        assert doc.images[0].shape == (200, 300)

    def test_text_upload_skips_bitmaps(self) -> None:
        doc = self.loader.load(
            b"Deed Number: D1234567", "deed.txt", "text/plain; charset=utf-8"
        )
        assert doc.is_text is True
        assert doc.text == "Deed Number: D1234567"
        assert doc.images == []
        assert doc.content_type == "text/plain"

    def test_invalid_utf8_replaced(self) -> None:
        doc = self.loader.load(b"Owner: \xff Doe", "deed.txt", "text/plain")
        assert doc.text == "Owner: \ufffd Doe"

    def test_content_type_guessed_from_name(self) -> None:
        doc = self.loader.load(b"Tax ID: TX1234", "deed.txt")
        assert doc.is_text is True

    @patch("kyc_ocr.ocr.pdf_handler.convert_from_bytes")
    def test_pdf_upload(self, mock_convert: MagicMock) -> None:
        mock_convert.return_value = [_mock_pil_image(), _mock_pil_image()]
        doc = self.loader.load(b"%PDF-1.4 content", "deed.pdf", "application/octet-stream")
        assert doc.content_type == "application/pdf"
        assert len(doc.images) == 2

    @patch("kyc_ocr.ocr.pdf_handler.convert_from_bytes")
    def test_pdf_without_pages(self, mock_convert: MagicMock) -> None:
        mock_convert.return_value = []
        with pytest.raises(UnsupportedDocumentError):
            self.loader.load(b"%PDF-1.4", "empty.pdf", "application/pdf")

    def test_empty_upload(self) -> None:
        with pytest.raises(UnsupportedDocumentError):
            self.loader.load(b"", "id.png", "image/png")

    def test_undecodable_image(self) -> None:
        with pytest.raises(UnsupportedDocumentError):
            self.loader.load(b"not really a png", "id.png", "image/png")

    def test_unsupported_content_type(self) -> None:
        with pytest.raises(UnsupportedDocumentError):
            self.loader.load(b"PK\x03\x04", "bundle.zip", "application/zip")

    def test_load_path(self, tmp_path: Path) -> None:
        path = tmp_path / "deed.txt"
        path.write_text("Owner: John Doe")
        doc = self.loader.load_path(path)
        assert doc.filename == "deed.txt"
        assert doc.text == "Owner: John Doe"

    def test_load_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            self.loader.load_path(tmp_path / "missing.png")
