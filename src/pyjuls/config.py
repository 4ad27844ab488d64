"""Server and client configuration for pyjuls."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from typing import Any

from pyjuls.exceptions import JulsConfigError

DEFAULT_UDP_PORT = 6001
DEFAULT_HTTP_PORT = 3001
DEFAULT_API_URL = f"http://localhost:{DEFAULT_HTTP_PORT}"
DEFAULT_POLLING_INTERVAL_MS = 5000


def _env_origins(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    origins = tuple(part.strip() for part in value.split(",") if part.strip())
    return origins or default


def _read_env(
    mapping: dict[str, tuple[str, Callable[[str], Any]]],
    overrides: dict[str, Any],
) -> dict[str, Any]:
    """Collect ``{field: parsed value}`` for env vars not shadowed by overrides."""
    env = os.environ
    values: dict[str, Any] = {}
    for env_key, (field_name, parse) in mapping.items():
        raw = env.get(env_key)
        if raw is None or field_name in overrides:
            continue
        try:
            values[field_name] = parse(raw)
        except ValueError as exc:
            raise JulsConfigError(f"{env_key}={raw!r} is not valid: {exc}") from exc
    return values


def _check_port(name: str, value: int) -> None:
    if not 0 <= value <= 65535:
        raise JulsConfigError(f"{name} must be between 0 and 65535, got {value}")


@dataclasses.dataclass(frozen=True)
class ServerConfig:
    """Backend configuration.

    Parameters
    ----------
    udp_host : str
        Interface the UDP listener binds to.
    udp_port : int
        UDP port receiving location datagrams. ``0`` picks a free port.
    http_host : str
        Interface the HTTP query service binds to.
    http_port : int
        HTTP port. ``0`` picks a free port.
    max_datagram_size : int
        Receive buffer size; longer datagrams are truncated by the OS and
        will fail validation.
    recv_timeout : float
        Socket timeout in seconds. Bounds how long ``stop()`` waits for
        the listener thread.
    cors_origins : tuple[str, ...]
        Origins allowed to read the HTTP API from a browser. ``"*"``
        allows any origin.
    """

    udp_host: str = "0.0.0.0"  # noqa: S104
    udp_port: int = DEFAULT_UDP_PORT
    http_host: str = "0.0.0.0"  # noqa: S104
    http_port: int = DEFAULT_HTTP_PORT
    max_datagram_size: int = 65535
    recv_timeout: float = 1.0
    cors_origins: tuple[str, ...] = ("*",)

    def __post_init__(self) -> None:
        _check_port("udp_port", self.udp_port)
        _check_port("http_port", self.http_port)
        if self.max_datagram_size <= 0:
            raise JulsConfigError("max_datagram_size must be positive")
        if self.recv_timeout <= 0:
            raise JulsConfigError("recv_timeout must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> ServerConfig:
        """Create configuration from ``JULS_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        _ENV_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "JULS_UDP_HOST": ("udp_host", str),
            "JULS_UDP_PORT": ("udp_port", int),
            "JULS_HTTP_HOST": ("http_host", str),
            "JULS_HTTP_PORT": ("http_port", int),
            "JULS_MAX_DATAGRAM_SIZE": ("max_datagram_size", int),
            "JULS_RECV_TIMEOUT": ("recv_timeout", float),
        }
        config_kwargs = _read_env(_ENV_MAP, overrides)

        if "cors_origins" not in overrides:
            config_kwargs["cors_origins"] = _env_origins(os.environ.get("JULS_CORS_ORIGINS"), ("*",))

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


@dataclasses.dataclass(frozen=True)
class ClientConfig:
    """Polling client configuration.

    Parameters
    ----------
    api_url : str
        Base URL of the HTTP query service.
    polling_interval_ms : int
        Milliseconds between polls.
    request_timeout : float
        Total timeout for one fetch, in seconds.
    recenter_threshold_m : float
        Minimum move, in meters, before the map camera follows the device.
    recenter_duration_s : float
        Duration of the camera animation, in seconds.
    """

    api_url: str = DEFAULT_API_URL
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS
    request_timeout: float = 10.0
    recenter_threshold_m: float = 100.0
    recenter_duration_s: float = 1.5

    def __post_init__(self) -> None:
        if not self.api_url.startswith(("http://", "https://")):
            raise JulsConfigError(f"api_url must be an http(s) URL, got {self.api_url!r}")
        if self.polling_interval_ms <= 0:
            raise JulsConfigError("polling_interval_ms must be positive")
        if self.request_timeout <= 0:
            raise JulsConfigError("request_timeout must be positive")
        if self.recenter_threshold_m < 0:
            raise JulsConfigError("recenter_threshold_m must not be negative")
        if self.recenter_duration_s < 0:
            raise JulsConfigError("recenter_duration_s must not be negative")

    @property
    def polling_interval(self) -> float:
        """Polling interval in seconds."""
        return self.polling_interval_ms / 1000.0

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """Create configuration from ``JULS_*`` environment variables.

        Reads ``JULS_API_URL`` and ``JULS_POLLING_INTERVAL`` (milliseconds)
        plus the optional tuning variables below. Explicit keyword
        arguments override environment values.
        """
        _ENV_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "JULS_API_URL": ("api_url", lambda v: v.strip().rstrip("/")),
            "JULS_POLLING_INTERVAL": ("polling_interval_ms", int),
            "JULS_REQUEST_TIMEOUT": ("request_timeout", float),
            "JULS_RECENTER_THRESHOLD_M": ("recenter_threshold_m", float),
            "JULS_RECENTER_DURATION_S": ("recenter_duration_s", float),
        }
        config_kwargs = _read_env(_ENV_MAP, overrides)
        config_kwargs.update(overrides)

        return cls(**config_kwargs)
