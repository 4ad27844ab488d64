"""Map viewport reconciliation.

Consecutive GPS fixes from a stationary device differ by a few meters of
noise. Following every one of them with the camera makes the map jitter on
each poll, so the camera only moves when the new position is farther than
a threshold from the current center. The marker always follows the fix.

The decision itself is the pure :func:`should_recenter`; :class:`MapReconciler`
holds the viewport state and drives a :class:`ViewportRenderer`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Protocol

from pyjuls.config import ClientConfig
from pyjuls.models.location import Coordinate, LocationReport

_logger = logging.getLogger(__name__)

#: Mean Earth radius (IUGG) in meters.
EARTH_RADIUS_M = 6_371_008.8

DEFAULT_RECENTER_THRESHOLD_M = 100.0
DEFAULT_RECENTER_DURATION_S = 1.5


def distance_m(a: Coordinate, b: Coordinate) -> float:
    """Great-circle (haversine) distance between two coordinates, in meters."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def should_recenter(
    current: Coordinate,
    new: Coordinate,
    threshold_m: float = DEFAULT_RECENTER_THRESHOLD_M,
) -> bool:
    """Return ``True`` when *new* is strictly farther than *threshold_m* from *current*."""
    return distance_m(current, new) > threshold_m


def ease_in_out_cubic(t: float) -> float:
    t = min(1.0, max(0.0, t))
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


def _wrap_longitude(value: float) -> float:
    return ((value + 180.0) % 360.0) - 180.0


@dataclass(frozen=True)
class FlyTo:
    """An eased camera transition from *origin* to *target*."""

    origin: Coordinate
    target: Coordinate
    duration_s: float

    def progress(self, elapsed_s: float) -> float:
        """Eased completion in [0, 1] after *elapsed_s* seconds."""
        if self.duration_s <= 0:
            return 1.0
        return ease_in_out_cubic(elapsed_s / self.duration_s)

    def position_at(self, elapsed_s: float) -> Coordinate:
        """Camera center after *elapsed_s* seconds.

        Longitude takes the short way round the antimeridian.
        """
        p = self.progress(elapsed_s)
        if p <= 0.0:
            return self.origin
        if p >= 1.0:
            return self.target
        dlat = self.target.latitude - self.origin.latitude
        dlon = _wrap_longitude(self.target.longitude - self.origin.longitude)
        return Coordinate(
            self.origin.latitude + dlat * p,
            _wrap_longitude(self.origin.longitude + dlon * p),
        )


class ViewportRenderer(Protocol):
    """What the reconciler needs from a map widget."""

    def set_view(self, center: Coordinate) -> None:
        """Center the camera immediately, without animation."""
        ...

    def fly_to(self, transition: FlyTo) -> None:
        """Animate the camera along *transition*."""
        ...

    def move_marker(self, position: Coordinate) -> None:
        """Redraw the device marker at *position*."""
        ...


@dataclass(frozen=True)
class ViewportUpdate:
    """What :meth:`MapReconciler.apply` did for one report."""

    report: LocationReport
    marker: Coordinate
    center: Coordinate
    transition: FlyTo | None = None
    initial: bool = False
    moved_m: float | None = None

    @property
    def animated(self) -> bool:
        return self.transition is not None


class MapReconciler:
    """Owns the viewport state for one map session."""

    def __init__(
        self,
        renderer: ViewportRenderer | None = None,
        *,
        threshold_m: float = DEFAULT_RECENTER_THRESHOLD_M,
        duration_s: float = DEFAULT_RECENTER_DURATION_S,
    ) -> None:
        if threshold_m < 0:
            raise ValueError(f"threshold_m must not be negative, got {threshold_m}")
        if duration_s < 0:
            raise ValueError(f"duration_s must not be negative, got {duration_s}")
        self._renderer = renderer
        self._threshold_m = threshold_m
        self._duration_s = duration_s
        self._center: Coordinate | None = None
        self._marker: Coordinate | None = None
        self._last_timestamp_value: int | None = None

    @classmethod
    def from_config(cls, config: ClientConfig, renderer: ViewportRenderer | None = None) -> MapReconciler:
        return cls(
            renderer,
            threshold_m=config.recenter_threshold_m,
            duration_s=config.recenter_duration_s,
        )

    @property
    def center(self) -> Coordinate | None:
        return self._center

    @property
    def marker(self) -> Coordinate | None:
        return self._marker

    @property
    def last_timestamp_value(self) -> int | None:
        return self._last_timestamp_value

    def reset(self) -> None:
        """Forget the viewport; the next report is placed without animation."""
        self._center = None
        self._marker = None
        self._last_timestamp_value = None

    def _commit(self, report: LocationReport, *, center: Coordinate) -> None:
        self._marker = report.coordinate
        self._last_timestamp_value = report.timestamp_value
        self._center = center

    def apply(self, report: LocationReport) -> ViewportUpdate | None:
        """Reconcile the viewport with *report*.

        Returns ``None`` for an exact repeat of the last applied report
        (same ``timestamp_value`` and coordinates), which is not redrawn.
        State is committed only after the renderer accepted every call, so
        a renderer failure leaves the report eligible for the next apply.
        """
        position = report.coordinate

        if (
            self._last_timestamp_value == report.timestamp_value
            and self._marker == position
        ):
            return None

        if self._renderer is not None:
            self._renderer.move_marker(position)

        if self._center is None:
            if self._renderer is not None:
                self._renderer.set_view(position)
            self._commit(report, center=position)
            return ViewportUpdate(report=report, marker=position, center=position, initial=True)

        moved = distance_m(self._center, position)
        if moved <= self._threshold_m:
            self._commit(report, center=self._center)
            return ViewportUpdate(report=report, marker=position, center=self._center, moved_m=moved)

        transition = FlyTo(origin=self._center, target=position, duration_s=self._duration_s)
        _logger.debug("Recentering viewport: moved %.1f m (threshold %.1f m)", moved, self._threshold_m)
        if self._renderer is not None:
            self._renderer.fly_to(transition)
        self._commit(report, center=position)
        return ViewportUpdate(
            report=report,
            marker=position,
            center=position,
            transition=transition,
            moved_m=moved,
        )
