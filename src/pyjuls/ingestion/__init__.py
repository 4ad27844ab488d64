"""Ingestion helpers.

Everything between raw datagram bytes and a validated report lives here.
"""

from pyjuls.ingestion.validate import decode_payload, parse_report, validate_datagram

__all__ = [
    "decode_payload",
    "parse_report",
    "validate_datagram",
]
