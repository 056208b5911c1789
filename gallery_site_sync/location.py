"""Geographic helpers for folders that carry no coordinates of their own."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional

from gallery_site_sync.models import Location


def get_center_from_degrees(locations: Iterable[Location]) -> Optional[Location]:
    """Return the spherical mean of the given points.

    Each point is projected onto the unit sphere, the cartesian vectors are
    averaged and the mean vector is projected back to latitude/longitude. A
    single point is returned as-is and an empty input yields ``None``.
    """
    points: List[Location] = list(locations)
    if not points:
        return None
    if len(points) == 1:
        return points[0]

    x_total = 0.0
    y_total = 0.0
    z_total = 0.0
    for point in points:
        lat_rad = math.radians(point.latitude)
        lng_rad = math.radians(point.longitude)
        x_total += math.cos(lat_rad) * math.cos(lng_rad)
        y_total += math.cos(lat_rad) * math.sin(lng_rad)
        z_total += math.sin(lat_rad)

    count = len(points)
    x_mean = x_total / count
    y_mean = y_total / count
    z_mean = z_total / count

    longitude = math.atan2(y_mean, x_mean)
    hypotenuse = math.sqrt(x_mean * x_mean + y_mean * y_mean)
    latitude = math.atan2(z_mean, hypotenuse)
    return Location(latitude=math.degrees(latitude), longitude=math.degrees(longitude))


__all__ = ["get_center_from_degrees"]
