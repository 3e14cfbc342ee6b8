"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel


class IdentityRecordResponse(BaseModel):
    """Response schema for an extracted identity record."""

    full_name: str | None = None
    date_of_birth: str | None = None
    age: int | None = None
    birth_year: int | None = None
    nationality: str | None = None
    is_us_citizen: bool = False
    document_number: str | None = None
    issuance_date: str | None = None
    expiry_date: str | None = None
    age_source: str | None = None
    sources: dict[str, str] = {}


class PropertyRecordResponse(BaseModel):
    """Response schema for an extracted property record."""

    deed_number: str | None = None
    address: str | None = None
    owner_name: str | None = None
    tax_id: str | None = None


class ValidationResultResponse(BaseModel):
    """Response schema for a validation check result."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str


class ScanResponse(BaseModel):
    """Fields shared by identity and property scan responses."""

    success: bool
    document_id: str
    document_type: str
    fingerprint: str | None
    raw_text: str
    validation: list[ValidationResultResponse]
    validation_passed: bool
    processing_time_ms: float
    page_count: int = 1


class IdentityScanResponse(ScanResponse):
    """Response schema for an identity document scan."""

    record: IdentityRecordResponse


class PropertyScanResponse(ScanResponse):
    """Response schema for a property document scan."""

    record: PropertyRecordResponse


class DocumentTypeInfo(BaseModel):
    """Information about a supported document type."""

    name: str
    description: str
    supported_fields: list[str]


class DocumentTypesResponse(BaseModel):
    """Response schema listing supported document types."""

    document_types: list[DocumentTypeInfo]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
