"""Datagram validation.

Turns raw UDP payload bytes into a :class:`LocationReport` or a typed
:class:`ReportRejectedError`. Nothing here touches the store or the
socket; the listener decides what to do with a rejection.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from pyjuls.exceptions import (
    MalformedPayloadError,
    MissingFieldError,
    OutOfRangeError,
    ReportRejectedError,
)
from pyjuls.models.location import LocationReport

_RANGE_ERROR_TYPES = frozenset(
    {
        "greater_than",
        "greater_than_equal",
        "less_than",
        "less_than_equal",
        "finite_number",
    }
)


def _error_field(error: Any) -> str:
    loc = error.get("loc") or ()
    return ".".join(str(part) for part in loc) or "<root>"


def _rejection_from_validation(exc: ValidationError) -> ReportRejectedError:
    """Map pydantic errors to a single rejection.

    Missing fields win over range errors, which win over type errors.
    """
    missing: list[str] = []
    out_of_range: list[str] = []
    malformed: list[str] = []
    for error in exc.errors():
        error_type = error.get("type", "")
        field = _error_field(error)
        if error_type == "missing":
            missing.append(field)
        elif error_type in _RANGE_ERROR_TYPES:
            out_of_range.append(field)
        else:
            malformed.append(field)

    if missing:
        return MissingFieldError(f"missing required field(s): {', '.join(missing)}", fields=tuple(missing))
    if out_of_range:
        return OutOfRangeError(f"field(s) out of range: {', '.join(out_of_range)}", fields=tuple(out_of_range))
    return MalformedPayloadError(f"invalid field(s): {', '.join(malformed)}", fields=tuple(malformed))


def decode_payload(payload: bytes) -> dict[str, Any]:
    """Decode UTF-8 JSON bytes into a dict, or raise :class:`MalformedPayloadError`."""
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedPayloadError(f"payload is not valid UTF-8: {exc.reason}") from exc

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedPayloadError(f"payload is not valid JSON: {exc.msg}") from exc

    if not isinstance(parsed, dict):
        raise MalformedPayloadError(f"payload must be a JSON object, got {type(parsed).__name__}")
    return parsed


def parse_report(payload: bytes) -> LocationReport:
    """Parse one datagram into a validated report.

    Raises
    ------
    MalformedPayloadError
        Not UTF-8, not a JSON object, or a field has the wrong type.
    MissingFieldError
        ``latitude``, ``longitude`` or ``timestamp_value`` is absent or null.
    OutOfRangeError
        A field is outside its allowed range or not finite.
    """
    data = decode_payload(payload)
    try:
        return LocationReport.model_validate(data)
    except ValidationError as exc:
        raise _rejection_from_validation(exc) from exc


def validate_datagram(payload: bytes) -> LocationReport | ReportRejectedError:
    """Non-raising form of :func:`parse_report`."""
    try:
        return parse_report(payload)
    except ReportRejectedError as exc:
        return exc
