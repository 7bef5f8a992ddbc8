"""Great-circle distance, the post-fetch geo transform and location providers."""

import math
from typing import List, Protocol, Sequence

from archsearch.core.enums import SortMode
from archsearch.schemas.filters import FilterState, Location
from archsearch.schemas.search_response import BuildingHit

EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in kilometres between two coordinates."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def format_distance(km: float) -> str:
    if km < 1:
        return f"{round(km * 1000)} m"
    if km < 10:
        return f"{km:.1f} km"
    return f"{round(km)} km"


def annotate_distances(items: Sequence[BuildingHit], origin: Location) -> List[BuildingHit]:
    """Copies of ``items`` carrying their distance from ``origin``; items without coordinates are dropped."""
    return [
        item.model_copy(update={
            "distance_km": distance_km(origin.latitude, origin.longitude, item.latitude, item.longitude)
        })
        for item in items
        if item.latitude is not None and item.longitude is not None
    ]


def apply_geo_filter(items: Sequence[BuildingHit], filters: FilterState) -> List[BuildingHit]:
    """
    Annotate, filter and optionally re-sort a fetched page by distance.

    Layered on top of the data store's ordering: items keep their fetched
    order unless ``sort_by`` is ``distance``. Without an active position the
    page is returned as is.
    """
    if not filters.geo_active:
        return list(items)

    within = [
        item for item in annotate_distances(items, filters.user_location)
        if item.distance_km <= filters.max_distance_km
    ]
    if filters.sort_by == SortMode.distance:
        within.sort(key=lambda item: item.distance_km)
    return within


class LocationProvider(Protocol):
    """One-shot source of the user's position.

    Implementations raise ``GeolocationError`` with a specific reason.
    """

    async def locate(self) -> Location: ...


class FixedLocationProvider:
    """Supplies a configured position, e.g. from a profile or a URL."""

    def __init__(self, latitude: float, longitude: float):
        self.location = Location(latitude=latitude, longitude=longitude)

    async def locate(self) -> Location:
        return self.location
