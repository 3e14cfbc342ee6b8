class ScanError(Exception):
    """Base exception for all scan pipeline errors."""


class ServiceUnavailableError(ScanError):
    """Raised when the OCR or hashing service is not ready."""

    def __init__(self, service: str, reason: str = "") -> None:
        self.service = service
        message = f"{service} service unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ScanCancelledError(ScanError):
    """Raised at a stage boundary when the session was cancelled."""


class SessionBusyError(ScanError):
    """Raised when a second pipeline is started on a running session."""


class UnsupportedDocumentError(ScanError):
    """Raised when an uploaded document cannot be loaded."""
