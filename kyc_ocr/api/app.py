"""FastAPI application for the identity and property scan API.

Provides REST endpoints for identity and property document scans,
document type listing, and health checks.
"""

import shutil
import time
import uuid
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from kyc_ocr.exceptions import (
    ScanCancelledError,
    ScanError,
    ServiceUnavailableError,
    UnsupportedDocumentError,
)
from kyc_ocr.ocr.document_loader import DocumentLoader
from kyc_ocr.pipeline.scanner import DocumentScanner
from kyc_ocr.pipeline.session import ScanSession
from kyc_ocr.records import DocumentType
from kyc_ocr.utils.config import load_config
from kyc_ocr.utils.logger import get_logger

from .schemas import (
    DocumentTypeInfo,
    DocumentTypesResponse,
    HealthResponse,
    IdentityRecordResponse,
    IdentityScanResponse,
    PropertyRecordResponse,
    PropertyScanResponse,
    ValidationResultResponse,
)

logger = get_logger(__name__)

API_VERSION = "1.0.0"

app = FastAPI(
    title="KYC Document OCR API",
    description="Extract identity and property records from document scans",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_IDENTITY_FIELDS = [
    "full_name",
    "date_of_birth",
    "age",
    "birth_year",
    "nationality",
    "is_us_citizen",
    "document_number",
    "issuance_date",
    "expiry_date",
]
_PROPERTY_FIELDS = ["deed_number", "address", "owner_name", "tax_id"]


def _get_components() -> tuple[DocumentLoader, DocumentScanner]:
    """Initialize and return the shared loader and scanner.

    Returns:
        Tuple of (document_loader, document_scanner).
    """
    config = load_config()
    return DocumentLoader(config.ocr.pdf_dpi), DocumentScanner(config)


async def _run_scan(
    file: UploadFile, kind: str, document_type: DocumentType
) -> tuple[ScanSession, float]:
    """Load an upload and run the scan pipeline, mapping errors to HTTP codes."""
    start_time = time.time()
    try:
        loader, scanner = _get_components()
        content = await file.read()
        document = loader.load(content, file.filename or "document", file.content_type)
        session = ScanSession(document=document, document_type=document_type)
        if kind == "property":
            scanner.scan_property(session)
        else:
            scanner.scan_identity(session)
    except UnsupportedDocumentError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ServiceUnavailableError as exc:
        logger.error("Scan unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ScanCancelledError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ScanError as exc:
        logger.error("Scan failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except Exception as exc:
        logger.error("Scan failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return session, (time.time() - start_time) * 1000


def _common_fields(session: ScanSession, processing_time: float) -> dict[str, object]:
    validation = session.validation
    return {
        "success": True,
        "document_id": str(uuid.uuid4()),
        "document_type": str(session.document_type),
        "fingerprint": session.fingerprint,
        "raw_text": session.raw_text or "",
        "validation": [
            ValidationResultResponse(
                field_name=r.field_name,
                is_valid=r.is_valid,
                message=r.message,
                rule_name=r.rule_name,
            )
            for r in validation.results
        ],
        "validation_passed": validation.all_valid,
        "processing_time_ms": processing_time,
        "page_count": max(1, len(session.document.images)),
    }


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.post("/scan/identity", response_model=IdentityScanResponse)
async def scan_identity(
    file: Annotated[UploadFile, File(...)],
    document_type: Annotated[DocumentType, Query()] = DocumentType.AUTO,
) -> IdentityScanResponse:
    """Extract an identity record from an uploaded document.

    Args:
        file: Uploaded passport, driver's license or ID card
            (image, PDF or plain text).
        document_type: Document type hint; ``auto`` classifies from text.

    Returns:
        Identity record, fingerprint and validation report.
    """
    if document_type == DocumentType.PROPERTY_DEED:
        raise HTTPException(
            status_code=400, detail="Use /scan/property for property documents"
        )
    session, processing_time = await _run_scan(file, "identity", document_type)
    return IdentityScanResponse(
        record=IdentityRecordResponse(**session.record.to_dict()),
        **_common_fields(session, processing_time),
    )


@app.post("/scan/property", response_model=PropertyScanResponse)
async def scan_property(
    file: Annotated[UploadFile, File(...)],
) -> PropertyScanResponse:
    """Extract a property record from an uploaded deed or legal document.

    Args:
        file: Uploaded document (image, PDF or plain text).

    Returns:
        Property record, fingerprint and validation report.
    """
    session, processing_time = await _run_scan(
        file, "property", DocumentType.PROPERTY_DEED
    )
    return PropertyScanResponse(
        record=PropertyRecordResponse(**session.record.to_dict()),
        **_common_fields(session, processing_time),
    )


@app.get("/document-types", response_model=DocumentTypesResponse)
async def list_document_types() -> DocumentTypesResponse:
    """List supported document types."""
    return DocumentTypesResponse(
        document_types=[
            DocumentTypeInfo(
                name=DocumentType.PASSPORT.value,
                description="Passport with machine-readable zone",
                supported_fields=_IDENTITY_FIELDS,
            ),
            DocumentTypeInfo(
                name=DocumentType.DRIVER_LICENSE.value,
                description="Driver's license",
                supported_fields=_IDENTITY_FIELDS,
            ),
            DocumentTypeInfo(
                name=DocumentType.ID_CARD.value,
                description="National identity card",
                supported_fields=_IDENTITY_FIELDS,
            ),
            DocumentTypeInfo(
                name=DocumentType.PROPERTY_DEED.value,
                description="Property deed or legal document",
                supported_fields=_PROPERTY_FIELDS,
            ),
        ]
    )
