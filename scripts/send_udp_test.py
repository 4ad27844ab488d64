#!/usr/bin/env python3
"""Send one test location datagram to a running pyjuls backend.

The position is jittered by up to 0.01 degrees around Lima, Peru, and
carries sample accuracy/altitude/speed/provider metadata.

Usage
-----
::

    python scripts/send_udp_test.py                # localhost:6001
    python scripts/send_udp_test.py 192.168.1.20   # another host
    python scripts/send_udp_test.py --port 7000 --count 5 --delay 1.0

Options::

    --port PORT       Destination UDP port (default: 6001)
    --count N         Number of datagrams to send (default: 1)
    --delay SECONDS   Pause between datagrams (default: 1.0)
    --bare            Omit the optional metadata fields
"""

from __future__ import annotations

import argparse
import json
import random
import socket
import sys
import time
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyjuls._constants import REFERENCE_LATITUDE, REFERENCE_LONGITUDE  # noqa: E402
from pyjuls.config import DEFAULT_UDP_PORT  # noqa: E402


def build_test_report(*, bare: bool = False) -> dict[str, Any]:
    report: dict[str, Any] = {
        "latitude": REFERENCE_LATITUDE + random.random() * 0.01,  # noqa: S311
        "longitude": REFERENCE_LONGITUDE + random.random() * 0.01,  # noqa: S311
        "timestamp_value": int(time.time() * 1000),
    }
    if not bare:
        report.update({"accuracy": 10.5, "altitude": 154.3, "speed": 5.2, "provider": "gps"})
    return report


def main() -> int:
    parser = argparse.ArgumentParser(description="Send test location datagrams")
    parser.add_argument("host", nargs="?", default="localhost", help="Backend host (default: localhost)")
    parser.add_argument("--port", type=int, default=DEFAULT_UDP_PORT)
    parser.add_argument("--count", type=int, default=1)
    parser.add_argument("--delay", type=float, default=1.0)
    parser.add_argument("--bare", action="store_true")
    args = parser.parse_args()

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        for index in range(args.count):
            report = build_test_report(bare=args.bare)
            try:
                sock.sendto(json.dumps(report).encode("utf-8"), (args.host, args.port))
            except OSError as exc:
                print(f"Error sending datagram: {exc}", file=sys.stderr)
                return 1
            print(f"Sent to {args.host}:{args.port}: {json.dumps(report)}")
            if index + 1 < args.count:
                time.sleep(args.delay)
    return 0


if __name__ == "__main__":
    sys.exit(main())
