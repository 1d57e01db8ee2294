"""Planar distance and zone membership.

Altitude is ignored: the zone is a circle on the feed's x/y plane.
Distances are the Euclidean distance in native feed units divided by
:data:`~ndzwatch._constants.UNITS_PER_DISTANCE`, and the radius is
compared in that converted unit. The two constants must stay in step;
changing either one changes which drones count as violators.
"""

from __future__ import annotations

import dataclasses
import math

from ndzwatch._constants import NDZ_CENTER_X, NDZ_CENTER_Y, NDZ_RADIUS, UNITS_PER_DISTANCE
from ndzwatch.models.drone import DroneSnapshot

NDZ_CENTER: tuple[float, float] = (NDZ_CENTER_X, NDZ_CENTER_Y)


def distance_from_center(
    x: float,
    y: float,
    *,
    center: tuple[float, float] = NDZ_CENTER,
) -> float:
    """Distance of ``(x, y)`` from *center* in converted units."""
    return math.hypot(x - center[0], y - center[1]) / UNITS_PER_DISTANCE


def is_violating(
    x: float,
    y: float,
    *,
    center: tuple[float, float] = NDZ_CENTER,
    radius: float = NDZ_RADIUS,
) -> bool:
    """Whether ``(x, y)`` lies strictly inside the zone."""
    return distance_from_center(x, y, center=center) < radius


@dataclasses.dataclass(frozen=True)
class NdzZone:
    """A configured no-drone zone."""

    center: tuple[float, float] = NDZ_CENTER
    radius: float = NDZ_RADIUS

    def distance(self, drone: DroneSnapshot) -> float:
        return distance_from_center(drone.position_x, drone.position_y, center=self.center)

    def contains(self, drone: DroneSnapshot) -> bool:
        return is_violating(drone.position_x, drone.position_y, center=self.center, radius=self.radius)
