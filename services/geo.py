from math import asin, cos, radians, sin, sqrt
from typing import Iterable, List, Optional, Tuple

from models import FoodListing

EARTH_RADIUS_KM = 6371.0
DEFAULT_MAX_KM = 50.0


def haversine_km(lat1, lng1, lat2, lng2) -> float:
    dlat = radians(lat2 - lat1)
    dlng = radians(lng2 - lng1)
    a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlng / 2) ** 2
    c = 2 * asin(sqrt(a))
    return EARTH_RADIUS_KM * c


def nearest_first(
    listings: Iterable[FoodListing],
    lat: float,
    lng: float,
    max_km: Optional[float] = None,
) -> List[FoodListing]:
    """
    Listings within `max_km` of (lat, lng), closest first. Listings without
    coordinates are dropped.
    """
    limit = DEFAULT_MAX_KM if max_km is None else max_km
    scored: List[Tuple[float, FoodListing]] = []
    for listing in listings:
        if listing.latitude is None or listing.longitude is None:
            continue
        distance = haversine_km(lat, lng, listing.latitude, listing.longitude)
        if distance <= limit:
            scored.append((distance, listing))
    scored.sort(key=lambda pair: pair[0])
    return [listing for _, listing in scored]
