"""Tests for the FastAPI REST endpoints."""

import io
from datetime import date
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from kyc_ocr.api.app import app
from kyc_ocr.exceptions import ScanCancelledError, ServiceUnavailableError
from kyc_ocr.ocr.document_loader import DocumentLoader
from kyc_ocr.pipeline.scanner import DocumentScanner


@pytest.fixture
def client() -> TestClient:
    """Create a FastAPI test client."""
    return TestClient(app)


def _make_test_image_bytes() -> bytes:
    """Create a minimal PNG image as bytes."""
    img = Image.fromarray(np.zeros((100, 200, 3), dtype=np.uint8))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _components(scanner: DocumentScanner) -> tuple[DocumentLoader, DocumentScanner]:
    return DocumentLoader(), scanner


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert isinstance(data["tesseract_available"], bool)


class TestDocumentTypesEndpoint:
    """Tests for the /document-types endpoint."""

    def test_list_document_types(self, client: TestClient) -> None:
        response = client.get("/document-types")
        assert response.status_code == 200
        types = {t["name"]: t for t in response.json()["document_types"]}
        assert set(types) == {"passport", "driver_license", "id_card", "property_deed"}
        assert "is_us_citizen" in types["passport"]["supported_fields"]
        assert types["property_deed"]["supported_fields"] == [
            "deed_number",
            "address",
            "owner_name",
            "tax_id",
        ]


class TestIdentityScanEndpoint:
    """Tests for the /scan/identity endpoint."""

    @patch("kyc_ocr.api.app._get_components")
    def test_scan_image(
        self,
        mock_components: MagicMock,
        client: TestClient,
        make_ocr_service,
        passport_text: str,
        today: date,
    ) -> None:
        scanner = DocumentScanner(
            ocr_service=make_ocr_service("PASSPORT", passport_text), today=today
        )
        mock_components.return_value = _components(scanner)

        response = client.post(
            "/scan/identity",
            files={"file": ("passport.png", _make_test_image_bytes(), "image/png")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["document_type"] == "passport"
        assert data["record"]["full_name"] == "DOE JOHN"
        assert data["record"]["age"] == 39
        assert data["record"]["is_us_citizen"] is True
        assert data["record"]["age_source"] == "date_of_birth"
        assert len(data["fingerprint"]) == 64
        assert data["page_count"] == 1
        assert "document_id" in data
        assert data["processing_time_ms"] >= 0

    @patch("kyc_ocr.api.app._get_components")
    def test_scan_text_upload_with_type(
        self, mock_components: MagicMock, client: TestClient, today: date
    ) -> None:
        service = MagicMock()
        mock_components.return_value = _components(
            DocumentScanner(ocr_service=service, today=today)
        )

        response = client.post(
            "/scan/identity?document_type=driver_license",
            files={"file": ("dl.txt", b"Name: Jane Smith\nDOB: 2000-03-15\n", "text/plain")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["document_type"] == "driver_license"
        assert data["record"]["age"] == 24
        assert data["record"]["is_us_citizen"] is False
        assert data["raw_text"] == "Name: Jane Smith\nDOB: 2000-03-15\n"
        assert data["validation_passed"] is True
        service.recognize.assert_not_called()

    def test_property_type_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/scan/identity?document_type=property_deed",
            files={"file": ("deed.txt", b"Deed", "text/plain")},
        )
        assert response.status_code == 400

    def test_invalid_document_type(self, client: TestClient) -> None:
        response = client.post(
            "/scan/identity?document_type=boarding_pass",
            files={"file": ("id.txt", b"Name", "text/plain")},
        )
        assert response.status_code == 422

    @patch("kyc_ocr.api.app._get_components")
    def test_unsupported_upload(
        self, mock_components: MagicMock, client: TestClient
    ) -> None:
        mock_components.return_value = _components(MagicMock())
        response = client.post(
            "/scan/identity",
            files={"file": ("bundle.zip", b"PK\x03\x04", "application/zip")},
        )
        assert response.status_code == 400
        assert "Unsupported content type" in response.json()["detail"]

    @patch("kyc_ocr.api.app._get_components")
    def test_ocr_unavailable(self, mock_components: MagicMock, client: TestClient) -> None:
        scanner = MagicMock()
        scanner.scan_identity.side_effect = ServiceUnavailableError("ocr", "not installed")
        mock_components.return_value = _components(scanner)

        response = client.post(
            "/scan/identity",
            files={"file": ("id.png", _make_test_image_bytes(), "image/png")},
        )

        assert response.status_code == 503
        assert "ocr service unavailable" in response.json()["detail"]

    @patch("kyc_ocr.api.app._get_components")
    def test_cancelled_scan(self, mock_components: MagicMock, client: TestClient) -> None:
        scanner = MagicMock()
        scanner.scan_identity.side_effect = ScanCancelledError("Scan was cancelled")
        mock_components.return_value = _components(scanner)

        response = client.post(
            "/scan/identity",
            files={"file": ("id.png", _make_test_image_bytes(), "image/png")},
        )
        assert response.status_code == 409

    @patch("kyc_ocr.api.app._get_components")
    def test_unexpected_error(self, mock_components: MagicMock, client: TestClient) -> None:
        scanner = MagicMock()
        scanner.scan_identity.side_effect = RuntimeError("boom")
        mock_components.return_value = _components(scanner)

        response = client.post(
            "/scan/identity",
            files={"file": ("id.png", _make_test_image_bytes(), "image/png")},
        )
        assert response.status_code == 500


class TestPropertyScanEndpoint:
    """Tests for the /scan/property endpoint."""

    @patch("kyc_ocr.api.app._get_components")
    def test_scan_text_deed(
        self, mock_components: MagicMock, client: TestClient, deed_text: str
    ) -> None:
        mock_components.return_value = _components(DocumentScanner(ocr_service=MagicMock()))

        response = client.post(
            "/scan/property",
            files={"file": ("deed.txt", deed_text.encode(), "text/plain")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["document_type"] == "property_deed"
        assert data["record"] == {
            "deed_number": "D1234567",
            "address": "123 Main Street, Springfield, IL 62701",
            "owner_name": "John Doe",
            "tax_id": "TX1234",
        }
        assert data["validation_passed"] is True

    @patch("kyc_ocr.api.app._get_components")
    def test_scan_pdf_deed(
        self, mock_components: MagicMock, client: TestClient, make_ocr_service
    ) -> None:
        scanner = DocumentScanner(ocr_service=make_ocr_service("", "Tax ID: TX1234"))
        mock_components.return_value = _components(scanner)
        pages = [Image.new("RGB", (60, 40)) for _ in range(2)]

        with patch("kyc_ocr.ocr.pdf_handler.convert_from_bytes", return_value=pages):
            response = client.post(
                "/scan/property",
                files={"file": ("deed.pdf", b"%PDF-1.4 content", "application/pdf")},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["page_count"] == 2
        assert data["record"]["tax_id"] == "TX1234"
        assert data["validation_passed"] is False

    def test_scan_missing_file(self, client: TestClient) -> None:
        response = client.post("/scan/property")
        assert response.status_code == 422
