"""HTTP transport for reading the latest location."""

from __future__ import annotations

import json
import logging
from typing import Protocol

import aiohttp
from pydantic import ValidationError

from pyjuls._constants import LATEST_LOCATION_PATH, USER_AGENT
from pyjuls._logfmt import truncate_for_log
from pyjuls.exceptions import JulsTransportError
from pyjuls.models.location import LocationReport

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the poller.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def fetch_latest(self) -> LocationReport | None:
        """Return the latest report, ``None`` on 404, or raise :class:`JulsTransportError`."""
        ...


class HttpTransport:
    """aiohttp-backed transport talking to the query service."""

    def __init__(
        self,
        base_url: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def url(self) -> str:
        return f"{self._base_url}{LATEST_LOCATION_PATH}"

    async def fetch_latest(self) -> LocationReport | None:
        """GET the latest location.

        200 yields a report, 404 yields ``None``. Anything else, including
        a 500 server fault or an unparseable body, raises
        :class:`JulsTransportError`.
        """
        url = self.url
        headers = {"accept": "application/json", "user-agent": USER_AGENT}

        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=headers, timeout=self._timeout) as resp:
                if resp.status == 404:
                    return None
                body = await resp.read()
                if resp.status != 200:
                    preview = body[:200].decode("utf-8", errors="replace")
                    raise JulsTransportError(
                        f"HTTP {resp.status} from {LATEST_LOCATION_PATH}: {preview}",
                        status_code=resp.status,
                        endpoint=LATEST_LOCATION_PATH,
                    )
        except JulsTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise JulsTransportError(
                f"HTTP request to {LATEST_LOCATION_PATH} failed: {exc}",
                endpoint=LATEST_LOCATION_PATH,
            ) from exc
        except TimeoutError as exc:
            raise JulsTransportError(
                f"HTTP request to {LATEST_LOCATION_PATH} timed out",
                endpoint=LATEST_LOCATION_PATH,
            ) from exc

        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            preview = body[:200].decode("utf-8", errors="replace")
            raise JulsTransportError(
                f"Invalid JSON from {LATEST_LOCATION_PATH}: {preview}",
                status_code=200,
                endpoint=LATEST_LOCATION_PATH,
            ) from exc

        _logger.debug("Response %s: %s", LATEST_LOCATION_PATH, truncate_for_log(data))

        try:
            return LocationReport.model_validate(data)
        except ValidationError as exc:
            raise JulsTransportError(
                f"Unexpected location shape from {LATEST_LOCATION_PATH}: {exc.error_count()} error(s)",
                status_code=200,
                endpoint=LATEST_LOCATION_PATH,
            ) from exc
