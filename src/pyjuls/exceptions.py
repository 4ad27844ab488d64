"""Custom exception hierarchy for pyjuls."""

from __future__ import annotations

from enum import StrEnum


class JulsError(Exception):
    """Base exception for all pyjuls errors."""


class JulsConfigError(JulsError):
    """Invalid or missing configuration."""


class JulsTransportError(JulsError):
    """Network-level failure (socket, refused connection, timeout, bad status).

    On the polling side this is the ``ConnectionError`` outcome.  A server
    fault on the query path arrives here with ``status_code=500``.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class RejectionReason(StrEnum):
    MALFORMED_PAYLOAD = "malformed_payload"
    MISSING_FIELD = "missing_field"
    OUT_OF_RANGE = "out_of_range"


class ReportRejectedError(JulsError):
    """A datagram could not be turned into a location report.

    Ingestion treats every subclass as "drop and continue".
    """

    reason: RejectionReason = RejectionReason.MALFORMED_PAYLOAD

    def __init__(self, message: str, *, fields: tuple[str, ...] = ()) -> None:
        self.fields = fields
        super().__init__(message)


class MalformedPayloadError(ReportRejectedError):
    """Payload is not UTF-8, not a JSON object, or carries a wrongly typed field."""

    reason = RejectionReason.MALFORMED_PAYLOAD


class MissingFieldError(ReportRejectedError):
    """A required field (latitude, longitude, timestamp_value) is absent or null."""

    reason = RejectionReason.MISSING_FIELD


class OutOfRangeError(ReportRejectedError):
    """A field is present but outside its allowed range."""

    reason = RejectionReason.OUT_OF_RANGE
