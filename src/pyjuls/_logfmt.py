"""Helpers for safe debug logging.

Datagrams arrive from the network unauthenticated and may be arbitrarily
large or binary. These helpers bound what ends up in DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


def payload_preview(data: bytes, *, max_bytes: int = 128) -> str:
    """Return a printable, length-bounded rendering of a raw datagram."""
    head = data[:max_bytes]
    text = head.decode("utf-8", errors="replace")
    text = "".join(ch if ch.isprintable() else "?" for ch in text)
    if len(data) > max_bytes:
        return f"{text}…<{len(data)}b total>"
    return text


def truncate_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a copy of *value* with long strings and deep nesting cut short."""
    if _depth > 10:
        return "<max-depth>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        return {
            str(k): truncate_for_log(v, max_string=max_string, _depth=_depth + 1) for k, v in value.items()
        }

    if isinstance(value, Sequence):
        return [truncate_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)
