"""Scan session state machine.

A :class:`ScanSession` ties one uploaded document to everything the
pipeline produces for it. States advance in a fixed order::

    IDLE -> PREPROCESSING -> RECOGNIZING_PASS_A -> RECOGNIZING_PASS_B
         -> EXTRACTING -> FINGERPRINTING -> COMPLETE | FAILED

Text uploads go straight from ``IDLE`` to ``EXTRACTING``. Multi-page
documents re-enter ``RECOGNIZING_PASS_A`` once per page. Every
transition checks the session's :class:`CancellationToken`.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

import numpy as np

from kyc_ocr.exceptions import ScanCancelledError, ScanError, SessionBusyError
from kyc_ocr.ocr.document_loader import LoadedDocument
from kyc_ocr.records import DocumentType, IdentityExtraction, PropertyExtraction
from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, str], None]


class ScanState(StrEnum):
    """Pipeline states of a scan session."""

    IDLE = "idle"
    PREPROCESSING = "preprocessing"
    RECOGNIZING_PASS_A = "recognizing_pass_a"
    RECOGNIZING_PASS_B = "recognizing_pass_b"
    EXTRACTING = "extracting"
    FINGERPRINTING = "fingerprinting"
    COMPLETE = "complete"
    FAILED = "failed"


TERMINAL_STATES = frozenset({ScanState.COMPLETE, ScanState.FAILED})
STARTABLE_STATES = frozenset({ScanState.IDLE}) | TERMINAL_STATES

ALLOWED_TRANSITIONS: dict[ScanState, frozenset[ScanState]] = {
    ScanState.IDLE: frozenset({ScanState.PREPROCESSING, ScanState.EXTRACTING}),
    ScanState.PREPROCESSING: frozenset({ScanState.RECOGNIZING_PASS_A}),
    ScanState.RECOGNIZING_PASS_A: frozenset({ScanState.RECOGNIZING_PASS_B}),
    ScanState.RECOGNIZING_PASS_B: frozenset(
        {ScanState.RECOGNIZING_PASS_A, ScanState.EXTRACTING}
    ),
    ScanState.EXTRACTING: frozenset({ScanState.FINGERPRINTING}),
    ScanState.FINGERPRINTING: frozenset({ScanState.COMPLETE}),
    ScanState.COMPLETE: frozenset(),
    ScanState.FAILED: frozenset(),
}


class CancellationToken:
    """Thread-safe flag a caller sets to stop a running scan."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`ScanCancelledError` if the token was cancelled."""
        if self.cancelled:
            raise ScanCancelledError("Scan was cancelled")


@dataclass
class StateTransition:
    """One recorded state change and the output of the stage it ended."""

    state: ScanState
    at: datetime
    output: Any = None


@dataclass
class ScanSession:
    """State and outputs of one document scan.

    A session is mutated only by the pipeline run that owns it and is
    never persisted.
    """

    document: LoadedDocument
    document_type: DocumentType = DocumentType.AUTO
    on_progress: ProgressCallback | None = None
    token: CancellationToken = field(default_factory=CancellationToken)
    state: ScanState = ScanState.IDLE
    bitmaps: list[np.ndarray] = field(default_factory=list)
    raw_text: str | None = None
    record: IdentityExtraction | PropertyExtraction | None = None
    fingerprint: str | None = None
    validation: Any = None
    progress: int = 0
    error: ScanError | None = None
    transitions: list[StateTransition] = field(default_factory=list)

    @property
    def is_running(self) -> bool:
        return self.state not in STARTABLE_STATES

    def start(self) -> None:
        """Reset outputs for a new pipeline run.

        Raises:
            SessionBusyError: If a pipeline is already running on the session.
        """
        if self.is_running:
            raise SessionBusyError(
                f"Session for {self.document.filename} is already {self.state}"
            )
        self.state = ScanState.IDLE
        self.bitmaps = []
        self.raw_text = None
        self.record = None
        self.fingerprint = None
        self.validation = None
        self.progress = 0
        self.error = None
        self.transitions = []

    def advance(self, state: ScanState, output: Any = None) -> None:
        """Move to the next state, checking for cancellation first.

        Args:
            state: Target state.
            output: Output of the stage that just finished, kept on the
                transition record.

        Raises:
            ScanCancelledError: If the session's token was cancelled.
            ScanError: If the transition is not allowed.
        """
        self.token.raise_if_cancelled()
        if state not in ALLOWED_TRANSITIONS[self.state]:
            raise ScanError(f"Illegal transition {self.state} -> {state}")
        logger.debug("Session %s: %s -> %s", self.document.filename, self.state, state)
        self.state = state
        self.transitions.append(
            StateTransition(state=state, at=datetime.now(timezone.utc), output=output)
        )

    def fail(self, error: ScanError) -> None:
        """Move to ``FAILED`` from any state, keeping the error.

        A failed session never exposes a partial record.
        """
        self.record = None
        self.validation = None
        self.fingerprint = None
        self.error = error
        self.state = ScanState.FAILED
        self.transitions.append(
            StateTransition(
                state=ScanState.FAILED, at=datetime.now(timezone.utc), output=str(error)
            )
        )
        logger.warning("Scan of %s failed: %s", self.document.filename, error)

    def report_progress(self, percent: int, stage: str) -> None:
        """Record progress and forward it to the callback.

        Reports that arrive after cancellation or after the session has
        finished are dropped, as are reports that would move progress
        backwards.
        """
        if self.token.cancelled or self.state in TERMINAL_STATES:
            return
        percent = max(0, min(100, int(percent)))
        if percent < self.progress:
            return
        self.progress = percent
        if self.on_progress:
            self.on_progress(percent, stage)

    def result(self) -> dict[str, Any]:
        """Summary for downstream consumers."""
        return {
            "filename": self.document.filename,
            "document_type": str(self.document_type),
            "state": str(self.state),
            "record": self.record.to_dict() if self.record else None,
            "fingerprint": self.fingerprint,
            "validation": self.validation.to_dict() if self.validation else None,
            "error": str(self.error) if self.error else None,
        }
