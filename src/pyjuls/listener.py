"""Threaded UDP listener feeding the location store."""

from __future__ import annotations

import logging
import socket
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace

from pyjuls._logfmt import payload_preview
from pyjuls.config import ServerConfig
from pyjuls.exceptions import JulsTransportError, ReportRejectedError
from pyjuls.ingestion.validate import parse_report
from pyjuls.models.location import LocationReport
from pyjuls.store import LocationStore


@dataclass(frozen=True)
class ListenerStats:
    """Datagram counters since the listener was created."""

    received: int = 0
    accepted: int = 0
    rejected: int = 0
    errors: int = 0


class UdpListener:
    """Blocking ``recvfrom`` loop on a daemon thread.

    Every datagram is validated on its own; a rejected or broken datagram
    is logged and dropped, and the loop goes on to the next one. The
    socket timeout only exists so :meth:`stop` is noticed promptly.
    """

    def __init__(
        self,
        store: LocationStore,
        *,
        host: str = "0.0.0.0",  # noqa: S104
        port: int = 6001,
        max_datagram_size: int = 65535,
        recv_timeout: float = 1.0,
        on_report: Callable[[LocationReport], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._host = host
        self._port = port
        self._max_datagram_size = max_datagram_size
        self._recv_timeout = recv_timeout
        self._on_report = on_report
        self._logger = logger or logging.getLogger(__name__)
        self._sock: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()
        self._address: tuple[str, int] | None = None
        self._stats_lock = threading.Lock()
        self._stats = ListenerStats()

    @classmethod
    def from_config(
        cls,
        store: LocationStore,
        config: ServerConfig,
        *,
        on_report: Callable[[LocationReport], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> UdpListener:
        return cls(
            store,
            host=config.udp_host,
            port=config.udp_port,
            max_datagram_size=config.max_datagram_size,
            recv_timeout=config.recv_timeout,
            on_report=on_report,
            logger=logger,
        )

    @property
    def is_running(self) -> bool:
        """Whether the receive thread is alive."""
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def address(self) -> tuple[str, int] | None:
        """The bound ``(host, port)``, resolved after :meth:`start`."""
        return self._address

    @property
    def stats(self) -> ListenerStats:
        """A consistent snapshot of the datagram counters."""
        with self._stats_lock:
            return self._stats

    def _count(self, **increments: int) -> None:
        # Counters are written on the receive thread and read from the event loop.
        with self._stats_lock:
            current = self._stats
            self._stats = replace(
                current, **{name: getattr(current, name) + step for name, step in increments.items()}
            )

    def start(self) -> None:
        """Bind the socket and start the receive thread."""
        self.stop()

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self._host, self._port))
            sock.settimeout(self._recv_timeout)
        except OSError as exc:
            sock.close()
            raise JulsTransportError(
                f"Could not bind UDP listener on {self._host}:{self._port}: {exc}",
                endpoint=f"udp://{self._host}:{self._port}",
            ) from exc

        self._sock = sock
        self._address = sock.getsockname()[:2]
        self._stopping.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(sock,),
            name=f"juls-udp-{self._address[1]}",
            daemon=True,
        )
        self._thread.start()
        self._logger.info("UDP listener bound to %s:%s", *self._address)

    def stop(self) -> None:
        """Stop the receive thread and close the socket."""
        thread = self._thread
        sock = self._sock
        self._thread = None
        self._sock = None
        if thread is None and sock is None:
            return

        self._stopping.set()
        try:
            if thread is not None:
                thread.join(timeout=self._recv_timeout * 2 + 1.0)
                if thread.is_alive():
                    self._logger.warning("UDP listener thread did not exit in time")
        finally:
            if sock is not None:
                sock.close()
            self._logger.info("UDP listener stopped")

    def _run(self, sock: socket.socket) -> None:
        while not self._stopping.is_set():
            try:
                data, addr = sock.recvfrom(self._max_datagram_size)
            except TimeoutError:
                continue
            except OSError:
                if self._stopping.is_set():
                    break
                self._count(errors=1)
                self._logger.debug("UDP receive failed", exc_info=True)
                continue

            try:
                self.handle_datagram(data, addr)
            except Exception:
                self._count(errors=1)
                self._logger.warning("Unexpected failure handling datagram from %s", addr, exc_info=True)

    def handle_datagram(self, data: bytes, addr: object = None) -> LocationReport | None:
        """Validate one datagram and store it. Returns the report, or ``None`` if dropped."""
        try:
            report = parse_report(data)
        except ReportRejectedError as exc:
            self._count(received=1, rejected=1)
            self._logger.debug(
                "Dropped datagram from %s reason=%s detail=%s payload=%s",
                addr,
                exc.reason,
                exc,
                payload_preview(data),
            )
            return None

        self._store.set(report)
        self._count(received=1, accepted=1)
        self._logger.debug(
            "Accepted location from %s lat=%s lon=%s ts=%s",
            addr,
            report.latitude,
            report.longitude,
            report.timestamp_value,
        )

        if self._on_report is not None:
            try:
                self._on_report(report)
            except Exception:
                self._logger.debug("on_report callback failed", exc_info=True)
        return report
