"""Distance and ETA helpers.

Plain haversine on a spherical Earth; accurate enough for "how far is the
pickup" and keeps the bot free of GIS dependencies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from foodshare_bot.errors import InvalidCoordinate, InvalidSpeed

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    def as_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


def validate_point(lat: Any, lng: Any) -> GeoPoint:
    """Build a :class:`GeoPoint`, rejecting non-finite or out-of-range values."""
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        raise InvalidCoordinate(lat, lng) from None
    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        raise InvalidCoordinate(lat, lng)
    if not -90.0 <= lat_f <= 90.0 or not -180.0 <= lng_f <= 180.0:
        raise InvalidCoordinate(lat, lng)
    return GeoPoint(lat_f, lng_f)


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between *a* and *b* in kilometres."""
    a = validate_point(a.lat, a.lng)
    b = validate_point(b.lat, b.lng)

    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    # rounding can push h a hair above 1 for antipodal points
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(h, 1.0)))


def eta_minutes(distance: float, speed_kmh: float) -> int:
    """Minutes needed to cover *distance* km at *speed_kmh*; 0 means arrived."""
    if not isinstance(speed_kmh, (int, float)) or not math.isfinite(speed_kmh) or speed_kmh <= 0:
        raise InvalidSpeed(speed_kmh)
    if distance == 0:
        return 0
    return round(distance / speed_kmh * 60)
