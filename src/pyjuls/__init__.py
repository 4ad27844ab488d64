"""pyjuls - Just UDP Location Service: ingest, store, serve and follow one device's position."""

from pyjuls._constants import PACKAGE_VERSION as __version__
from pyjuls.client import JulsClient, LocationPoller, PollSnapshot, PollState
from pyjuls.config import ClientConfig, ServerConfig
from pyjuls.exceptions import (
    JulsConfigError,
    JulsError,
    JulsTransportError,
    MalformedPayloadError,
    MissingFieldError,
    OutOfRangeError,
    RejectionReason,
    ReportRejectedError,
)
from pyjuls.ingestion import parse_report, validate_datagram
from pyjuls.listener import ListenerStats, UdpListener
from pyjuls.models import Coordinate, LocationReport
from pyjuls.reconcile import (
    FlyTo,
    MapReconciler,
    ViewportRenderer,
    ViewportUpdate,
    distance_m,
    should_recenter,
)
from pyjuls.server import JulsServer, create_app
from pyjuls.store import LocationStore

__all__ = [
    "__version__",
    "ClientConfig",
    "Coordinate",
    "FlyTo",
    "JulsClient",
    "JulsConfigError",
    "JulsError",
    "JulsServer",
    "JulsTransportError",
    "ListenerStats",
    "LocationPoller",
    "LocationReport",
    "LocationStore",
    "MalformedPayloadError",
    "MapReconciler",
    "MissingFieldError",
    "OutOfRangeError",
    "PollSnapshot",
    "PollState",
    "RejectionReason",
    "ReportRejectedError",
    "ServerConfig",
    "UdpListener",
    "ViewportRenderer",
    "ViewportUpdate",
    "create_app",
    "distance_m",
    "parse_report",
    "should_recenter",
    "validate_datagram",
]
