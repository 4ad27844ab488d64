"""Typed models for pyjuls."""

from pyjuls.models.location import Coordinate, LocationReport

__all__ = [
    "Coordinate",
    "LocationReport",
]
