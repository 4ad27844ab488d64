"""Tests for LocationReport parsing and datagram validation."""

from __future__ import annotations

import json
from typing import Any

import pytest

from pyjuls.exceptions import (
    MalformedPayloadError,
    MissingFieldError,
    OutOfRangeError,
    RejectionReason,
    ReportRejectedError,
)
from pyjuls.ingestion.validate import parse_report, validate_datagram
from pyjuls.models.location import Coordinate, LocationReport


def _datagram(**fields: Any) -> bytes:
    return json.dumps(fields).encode("utf-8")


_FULL: dict[str, Any] = {
    "latitude": -12.0463731,
    "longitude": -77.042754,
    "timestamp_value": 1_700_000_000_000,
    "accuracy": 10.5,
    "altitude": 154.3,
    "speed": 5.2,
    "provider": "gps",
}

# ------------------------------------------------------------------
# Accepted payloads
# ------------------------------------------------------------------


class TestAccepted:
    def test_full_payload(self) -> None:
        report = parse_report(_datagram(**_FULL))
        assert report.latitude == -12.0463731
        assert report.longitude == -77.042754
        assert report.timestamp_value == 1_700_000_000_000
        assert report.accuracy == 10.5
        assert report.altitude == 154.3
        assert report.speed == 5.2
        assert report.provider == "gps"

    def test_optional_fields_stay_none(self) -> None:
        report = parse_report(_datagram(latitude=1.0, longitude=2.0, timestamp_value=5))
        assert report.accuracy is None
        assert report.altitude is None
        assert report.speed is None
        assert report.provider is None

    def test_null_optional_fields_are_absent(self) -> None:
        report = parse_report(_datagram(latitude=1.0, longitude=2.0, timestamp_value=5, accuracy=None, provider=None))
        assert report.accuracy is None
        assert report.provider is None

    def test_zero_metadata_is_kept_as_reading(self) -> None:
        report = parse_report(_datagram(latitude=0, longitude=0, timestamp_value=5, speed=0))
        assert report.speed == 0.0
        assert report.latitude == 0.0

    def test_range_bounds_inclusive(self) -> None:
        report = parse_report(_datagram(latitude=90, longitude=-180, timestamp_value=1))
        assert report.latitude == 90.0
        assert report.longitude == -180.0

    def test_numeric_strings_are_coerced(self) -> None:
        report = parse_report(_datagram(latitude="-12.5", longitude="10", timestamp_value="1700000000000"))
        assert report.latitude == -12.5
        assert report.timestamp_value == 1_700_000_000_000

    def test_unknown_keys_ignored(self) -> None:
        report = parse_report(_datagram(latitude=1.0, longitude=2.0, timestamp_value=5, battery=88))
        assert "battery" not in report.to_payload()

    def test_coordinate_property(self) -> None:
        report = parse_report(_datagram(**_FULL))
        assert report.coordinate == Coordinate(-12.0463731, -77.042754)

    def test_report_is_frozen(self) -> None:
        report = parse_report(_datagram(**_FULL))
        with pytest.raises(Exception):  # noqa: B017
            report.latitude = 0.0  # type: ignore[misc]

    def test_to_payload_keeps_absent_fields_as_null(self) -> None:
        report = parse_report(_datagram(latitude=1.0, longitude=2.0, timestamp_value=5))
        payload = report.to_payload()
        assert payload == {
            "latitude": 1.0,
            "longitude": 2.0,
            "timestamp_value": 5,
            "accuracy": None,
            "altitude": None,
            "speed": None,
            "provider": None,
        }


# ------------------------------------------------------------------
# Rejected payloads
# ------------------------------------------------------------------


class TestRejected:
    def test_missing_latitude(self) -> None:
        with pytest.raises(MissingFieldError) as info:
            parse_report(_datagram(longitude=2.0, timestamp_value=5))
        assert info.value.reason == RejectionReason.MISSING_FIELD
        assert info.value.fields == ("latitude",)

    def test_null_latitude_counts_as_missing(self) -> None:
        with pytest.raises(MissingFieldError):
            parse_report(_datagram(latitude=None, longitude=2.0, timestamp_value=5))

    def test_latitude_out_of_range(self) -> None:
        with pytest.raises(OutOfRangeError) as info:
            parse_report(_datagram(latitude=95, longitude=2.0, timestamp_value=5))
        assert info.value.reason == RejectionReason.OUT_OF_RANGE
        assert info.value.fields == ("latitude",)

    def test_longitude_out_of_range(self) -> None:
        with pytest.raises(OutOfRangeError):
            parse_report(_datagram(latitude=1.0, longitude=180.5, timestamp_value=5))

    @pytest.mark.parametrize("timestamp", [0, -1])
    def test_non_positive_timestamp(self, timestamp: int) -> None:
        with pytest.raises(OutOfRangeError):
            parse_report(_datagram(latitude=1.0, longitude=2.0, timestamp_value=timestamp))

    def test_nan_is_out_of_range(self) -> None:
        with pytest.raises(OutOfRangeError):
            parse_report(b'{"latitude": NaN, "longitude": 2.0, "timestamp_value": 5}')

    def test_infinite_metadata_is_out_of_range(self) -> None:
        with pytest.raises(OutOfRangeError):
            parse_report(b'{"latitude": 1.0, "longitude": 2.0, "timestamp_value": 5, "speed": Infinity}')

    @pytest.mark.parametrize(
        "payload",
        [
            b"\xff\xfe\x00",
            b"not json",
            b"",
            b"[1, 2, 3]",
            b'"just a string"',
        ],
    )
    def test_malformed_payloads(self, payload: bytes) -> None:
        with pytest.raises(MalformedPayloadError) as info:
            parse_report(payload)
        assert info.value.reason == RejectionReason.MALFORMED_PAYLOAD

    def test_wrongly_typed_field_is_malformed(self) -> None:
        with pytest.raises(MalformedPayloadError):
            parse_report(_datagram(latitude="north", longitude=2.0, timestamp_value=5))

    def test_boolean_is_not_a_number(self) -> None:
        with pytest.raises(MalformedPayloadError):
            parse_report(_datagram(latitude=True, longitude=2.0, timestamp_value=5))

    def test_fractional_timestamp_is_malformed(self) -> None:
        with pytest.raises(MalformedPayloadError):
            parse_report(_datagram(latitude=1.0, longitude=2.0, timestamp_value=1.5))

    def test_non_string_provider_is_malformed(self) -> None:
        with pytest.raises(MalformedPayloadError):
            parse_report(_datagram(latitude=1.0, longitude=2.0, timestamp_value=5, provider=7))

    def test_missing_wins_over_out_of_range(self) -> None:
        with pytest.raises(MissingFieldError) as info:
            parse_report(_datagram(latitude=95, timestamp_value=5))
        assert info.value.fields == ("longitude",)

    def test_out_of_range_wins_over_wrong_type(self) -> None:
        with pytest.raises(OutOfRangeError):
            parse_report(_datagram(latitude=95, longitude=2.0, timestamp_value=5, provider=[]))


class TestValidateDatagram:
    def test_returns_report(self) -> None:
        result = validate_datagram(_datagram(**_FULL))
        assert isinstance(result, LocationReport)

    def test_returns_rejection_instead_of_raising(self) -> None:
        result = validate_datagram(b"{}")
        assert isinstance(result, ReportRejectedError)
        assert result.reason == RejectionReason.MISSING_FIELD
        assert set(result.fields) == {"latitude", "longitude", "timestamp_value"}
