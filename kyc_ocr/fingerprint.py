"""Record fingerprinting.

A finished extraction record is serialized to a canonical JSON string
(sorted keys, compact separators) and hashed, so the same record always
yields the same fingerprint unless a salt or a scan timestamp is
configured.
"""

import hashlib
import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from kyc_ocr.exceptions import ServiceUnavailableError
from kyc_ocr.utils.config import FingerprintConfig
from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class HashService(ABC):
    """Black-box hashing service."""

    @abstractmethod
    def hash(self, canonical: str) -> str:
        """Return the hex digest of a canonical string.

        Raises:
            ServiceUnavailableError: If the service cannot be used.
        """
        raise NotImplementedError


class HashlibService(HashService):
    """Hash service backed by :mod:`hashlib`.

    Args:
        algorithm: Any algorithm name accepted by ``hashlib.new``.

    Raises:
        ServiceUnavailableError: If the algorithm is not available.
    """

    def __init__(self, algorithm: str = "sha256") -> None:
        if algorithm not in hashlib.algorithms_available:
            raise ServiceUnavailableError("hash", f"unknown algorithm {algorithm!r}")
        self.algorithm = algorithm

    def hash(self, canonical: str) -> str:
        digest = hashlib.new(self.algorithm)
        digest.update(canonical.encode("utf-8"))
        return digest.hexdigest()


class Sha256HashService(HashlibService):
    """SHA-256 hash service."""

    def __init__(self) -> None:
        super().__init__("sha256")


def canonicalize(record: dict[str, Any], scan_timestamp: str | None = None) -> str:
    """Serialize a record dict to its canonical JSON form.

    Args:
        record: Plain dict produced by the record's ``to_dict``.
        scan_timestamp: Optional ISO timestamp added as ``scan_timestamp``.

    Returns:
        JSON string with sorted keys and no insignificant whitespace.
    """
    payload = dict(record)
    if scan_timestamp is not None:
        payload["scan_timestamp"] = scan_timestamp
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


class FingerprintStage:
    """Produces the fingerprint of a finished record.

    Args:
        hash_service: Service computing the digest. Defaults to a
            hashlib service for the configured algorithm.
        config: Salt and timestamp settings.
    """

    def __init__(
        self,
        hash_service: HashService | None = None,
        config: FingerprintConfig | None = None,
    ) -> None:
        self.config = config or FingerprintConfig()
        self.hash_service = hash_service or HashlibService(self.config.algorithm)

    def fingerprint(self, record: dict[str, Any], scan_time: datetime | None = None) -> str:
        """Hash a record dict.

        Args:
            record: Record serialized with ``to_dict``.
            scan_time: Scan time, only used when ``include_timestamp`` is set.
                Defaults to now (UTC).

        Returns:
            Hex digest of the (optionally salted) canonical string.
        """
        timestamp = None
        if self.config.include_timestamp:
            timestamp = (scan_time or datetime.now(timezone.utc)).isoformat()

        canonical = canonicalize(record, timestamp)
        if self.config.salt:
            canonical = self.config.salt + canonical

        digest = self.hash_service.hash(canonical)
        logger.debug("Fingerprinted record (%d chars) -> %s", len(canonical), digest)
        return digest
