"""High-level async client: latest-location reads and the polling loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

import aiohttp

from pyjuls._transport import HttpTransport, Transport
from pyjuls.config import ClientConfig
from pyjuls.exceptions import JulsError, JulsTransportError
from pyjuls.models.location import LocationReport
from pyjuls.reconcile import MapReconciler, ViewportRenderer, ViewportUpdate

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PollState(StrEnum):
    LOADING = "loading"
    HAS_DATA = "has_data"
    NO_DATA = "no_data"
    CONNECTION_ERROR = "connection_error"


@dataclass(frozen=True)
class PollSnapshot:
    """Poller state as seen by a UI.

    ``report`` is kept through a ``CONNECTION_ERROR`` so the last known
    position can still be shown as stale; it is cleared on ``NO_DATA``.
    """

    state: PollState
    report: LocationReport | None = None
    last_update: datetime | None = None
    error: JulsTransportError | None = None
    viewport: ViewportUpdate | None = None


class LocationPoller:
    """Fixed-interval poller with at most one fetch in flight.

    A tick that fires while the previous fetch is still outstanding is
    skipped. :meth:`stop` cancels the timer and the in-flight fetch, and
    any response that still lands afterwards is discarded.

    Usage::

        async with LocationPoller(transport, interval=5.0, reconciler=reconciler) as poller:
            ...
    """

    def __init__(
        self,
        transport: Transport,
        *,
        interval: float = 5.0,
        reconciler: MapReconciler | None = None,
        on_update: Callable[[PollSnapshot], None] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._transport = transport
        self._interval = interval
        self._reconciler = reconciler
        self._on_update = on_update
        self._clock = clock
        self._snapshot = PollSnapshot(state=PollState.LOADING)
        self._timer: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[None] | None = None
        self._closed = False
        self._fetches = 0
        self._skipped_ticks = 0

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LocationPoller:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> PollSnapshot:
        return self._snapshot

    @property
    def state(self) -> PollState:
        return self._snapshot.state

    @property
    def is_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def is_fetching(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def fetch_count(self) -> int:
        """Number of fetches started so far."""
        return self._fetches

    @property
    def skipped_ticks(self) -> int:
        """Timer ticks that found a fetch in flight. Manual refreshes are not counted."""
        return self._skipped_ticks

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Enter ``LOADING``, fetch immediately, then once per interval."""
        if self._closed:
            raise JulsError("Poller was stopped; create a new one")
        if self._timer is not None:
            return
        self._publish(PollSnapshot(state=PollState.LOADING))
        self._timer = asyncio.create_task(self._run(), name="juls-poller-timer")

    async def stop(self) -> None:
        """Cancel the timer and any in-flight fetch. Idempotent."""
        self._closed = True
        tasks = [task for task in (self._timer, self._inflight) if task is not None and not task.done()]
        self._timer = None
        self._inflight = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            _logger.debug("Poller stopped; cancelled %d task(s)", len(tasks))

    async def refresh(self) -> PollSnapshot:
        """Manual retry: fetch now unless a fetch is already in flight, then wait for it."""
        if self._closed:
            raise JulsError("Poller was stopped; create a new one")
        task = self._start_fetch()
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
        return self._snapshot

    async def _run(self) -> None:
        while True:
            if self.is_fetching:
                self._skipped_ticks += 1
                _logger.debug("Previous fetch still in flight; skipping tick")
            else:
                self._start_fetch()
            await asyncio.sleep(self._interval)

    def _start_fetch(self) -> asyncio.Task[None]:
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            return inflight
        self._fetches += 1
        task = asyncio.create_task(self._fetch_once(), name=f"juls-poller-fetch-{self._fetches}")
        self._inflight = task
        return task

    # ------------------------------------------------------------------
    # Fetch outcome handling
    # ------------------------------------------------------------------

    async def _fetch_once(self) -> None:
        error: JulsTransportError | None = None
        report: LocationReport | None = None
        try:
            report = await self._transport.fetch_latest()
        except JulsTransportError as exc:
            error = exc
        except Exception as exc:
            _logger.warning("Unexpected failure fetching latest location", exc_info=True)
            error = JulsTransportError(f"Unexpected failure: {exc}")

        if self._closed:
            _logger.debug("Discarding fetch result that arrived after stop")
            return

        if error is not None:
            _logger.warning("Location fetch failed: %s", error)
            self._publish(
                PollSnapshot(
                    state=PollState.CONNECTION_ERROR,
                    report=self._snapshot.report,
                    last_update=self._snapshot.last_update,
                    error=error,
                )
            )
            return

        if report is None:
            self._publish(PollSnapshot(state=PollState.NO_DATA, last_update=self._snapshot.last_update))
            return

        viewport: ViewportUpdate | None = None
        if self._reconciler is not None:
            try:
                viewport = self._reconciler.apply(report)
            except Exception:
                _logger.warning("Viewport reconciliation failed", exc_info=True)

        self._publish(
            PollSnapshot(
                state=PollState.HAS_DATA,
                report=report,
                last_update=self._clock(),
                viewport=viewport,
            )
        )

    def _publish(self, snapshot: PollSnapshot) -> None:
        previous = self._snapshot.state
        self._snapshot = snapshot
        if previous != snapshot.state:
            _logger.debug("Poller state %s -> %s", previous, snapshot.state)
        if self._on_update is not None:
            try:
                self._on_update(snapshot)
            except Exception:
                _logger.debug("on_update callback failed", exc_info=True)


class JulsClient:
    """Async client for the location query service.

    Usage::

        async with JulsClient(ClientConfig.from_env()) as client:
            report = await client.get_latest_location()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport: HttpTransport | None = None
        self._pollers: list[LocationPoller] = []

    @property
    def config(self) -> ClientConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> JulsClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(
            self._config.api_url,
            self._http_session,
            timeout=self._config.request_timeout,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        pollers = self._pollers
        self._pollers = []
        for poller in pollers:
            await poller.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    def _require_transport(self) -> HttpTransport:
        if self._transport is None:
            raise JulsError("Client not initialized. Use 'async with JulsClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_latest_location(self) -> LocationReport | None:
        """Fetch the latest report once. ``None`` means no data yet."""
        return await self._require_transport().fetch_latest()

    def poller(
        self,
        *,
        renderer: ViewportRenderer | None = None,
        reconciler: MapReconciler | None = None,
        on_update: Callable[[PollSnapshot], None] | None = None,
    ) -> LocationPoller:
        """Create a poller bound to this client. It is stopped when the client closes."""
        if reconciler is None:
            reconciler = MapReconciler.from_config(self._config, renderer)
        poller = LocationPoller(
            self._require_transport(),
            interval=self._config.polling_interval,
            reconciler=reconciler,
            on_update=on_update,
        )
        self._pollers.append(poller)
        return poller
