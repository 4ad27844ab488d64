"""Command-line entry point.

Usage
-----
Run the backend (UDP ingestion + HTTP query service)::

    python -m pyjuls serve --udp-port 6001 --http-port 3001

Follow the device from a terminal::

    export JULS_API_URL="http://localhost:3001"
    python -m pyjuls watch

Print the latest location once and exit::

    python -m pyjuls watch --once
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import sys
from typing import Any

from pyjuls.client import JulsClient, PollSnapshot, PollState
from pyjuls.config import ClientConfig, ServerConfig
from pyjuls.exceptions import JulsError
from pyjuls.models.location import Coordinate
from pyjuls.reconcile import FlyTo
from pyjuls.server import JulsServer


class _ConsoleRenderer:
    """Viewport renderer that writes camera and marker moves to stdout."""

    def set_view(self, center: Coordinate) -> None:
        print(f"  view    -> {center.latitude:.7f}, {center.longitude:.7f}")

    def fly_to(self, transition: FlyTo) -> None:
        target = transition.target
        print(f"  fly to  -> {target.latitude:.7f}, {target.longitude:.7f} over {transition.duration_s:.1f}s")

    def move_marker(self, position: Coordinate) -> None:
        print(f"  marker  -> {position.latitude:.7f}, {position.longitude:.7f}")


def _print_snapshot(snapshot: PollSnapshot) -> None:
    if snapshot.state == PollState.HAS_DATA and snapshot.report is not None:
        report = snapshot.report
        print(f"[{snapshot.state}] lat={report.latitude} lon={report.longitude} ts={report.timestamp_value}")
    elif snapshot.state == PollState.CONNECTION_ERROR:
        print(f"[{snapshot.state}] {snapshot.error}")
    else:
        print(f"[{snapshot.state}]")


async def _serve(config: ServerConfig) -> None:
    async with JulsServer(config) as server:
        udp = server.udp_address
        http = server.http_address
        print(f"UDP ingestion on {udp[0]}:{udp[1]}" if udp else "UDP ingestion not bound")
        print(f"HTTP query service on {http[0]}:{http[1]}" if http else "HTTP service not bound")
        await server.serve_forever()


async def _watch(config: ClientConfig, *, once: bool) -> int:
    async with JulsClient(config) as client:
        if once:
            report = await client.get_latest_location()
            if report is None:
                print("No location data available yet")
                return 1
            print(json.dumps(report.to_payload(), indent=2))
            return 0

        poller = client.poller(renderer=_ConsoleRenderer(), on_update=_print_snapshot)
        poller.start()
        await asyncio.Event().wait()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="pyjuls", description="Just UDP Location Service")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run UDP ingestion and the HTTP query service")
    serve.add_argument("--udp-host", help="UDP bind address (default: JULS_UDP_HOST or 0.0.0.0)")
    serve.add_argument("--udp-port", type=int, help="UDP port (default: JULS_UDP_PORT or 6001)")
    serve.add_argument("--http-host", help="HTTP bind address (default: JULS_HTTP_HOST or 0.0.0.0)")
    serve.add_argument("--http-port", type=int, help="HTTP port (default: JULS_HTTP_PORT or 3001)")

    watch = sub.add_parser("watch", help="Poll the latest location and print viewport decisions")
    watch.add_argument("--api-url", help="Query service base URL (default: JULS_API_URL)")
    watch.add_argument("--interval", type=int, help="Polling interval in ms (default: JULS_POLLING_INTERVAL)")
    watch.add_argument("--once", action="store_true", help="Fetch once, print JSON, and exit")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    overrides: dict[str, Any]
    try:
        if args.command == "serve":
            overrides = {
                key: value
                for key, value in {
                    "udp_host": args.udp_host,
                    "udp_port": args.udp_port,
                    "http_host": args.http_host,
                    "http_port": args.http_port,
                }.items()
                if value is not None
            }
            with contextlib.suppress(KeyboardInterrupt):
                asyncio.run(_serve(ServerConfig.from_env(**overrides)))
            return 0

        overrides = {}
        if args.api_url is not None:
            overrides["api_url"] = args.api_url.rstrip("/")
        if args.interval is not None:
            overrides["polling_interval_ms"] = args.interval
        try:
            return asyncio.run(_watch(ClientConfig.from_env(**overrides), once=args.once))
        except KeyboardInterrupt:
            return 0
    except JulsError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
