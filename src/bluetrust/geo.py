"""
Geospatial Evidence Model

Pure functions for great-circle distance, nearest reference-site lookup and
restoration-site suitability.
"""

import math
from typing import Sequence

from bluetrust.enums import Suitability
from bluetrust.errors import InvalidInput
from bluetrust.types import CoastalRegion, ReferenceSite, SiteSuitability


EARTH_RADIUS_KM = 6371.0


def validate_coordinates(latitude: float, longitude: float) -> None:
    """
    Check that a coordinate pair is on the globe.

    Raises:
        InvalidInput: latitude outside [-90, 90] or longitude outside [-180, 180]
    """
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        raise InvalidInput("Coordinates must be numbers", latitude=latitude, longitude=longitude)
    if math.isnan(latitude) or not -90 <= latitude <= 90:
        raise InvalidInput("Latitude must be within [-90, 90]", latitude=latitude)
    if math.isnan(longitude) or not -180 <= longitude <= 180:
        raise InvalidInput("Longitude must be within [-180, 180]", longitude=longitude)


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points.

    Returns:
        Distance in kilometres
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def nearest_site(
    latitude: float,
    longitude: float,
    sites: Sequence[ReferenceSite],
    max_distance_km: float | None = None,
) -> tuple[ReferenceSite, float] | None:
    """
    Find the reference site closest to a location.

    Args:
        latitude: Location latitude
        longitude: Location longitude
        sites: Candidate sites (earlier sites win ties)
        max_distance_km: Ignore the match when it is farther than this

    Returns:
        (site, distance_km) or None when no site qualifies
    """
    best: tuple[ReferenceSite, float] | None = None
    for site in sites:
        distance = haversine_km(latitude, longitude, site.latitude, site.longitude)
        if best is None or distance < best[1]:
            best = (site, distance)

    if best is None:
        return None
    if max_distance_km is not None and best[1] > max_distance_km:
        return None
    return best


def is_coastal(latitude: float, longitude: float, regions: Sequence[CoastalRegion]) -> bool:
    return any(
        region.lat_min <= latitude <= region.lat_max and region.lng_min <= longitude <= region.lng_max
        for region in regions
    )


def assess_site_suitability(
    latitude: float,
    longitude: float,
    sites: Sequence[ReferenceSite],
    regions: Sequence[CoastalRegion],
) -> SiteSuitability:
    """
    Check a location against known restoration sites and coastal regions.

    A location inside a known site's radius is highly suitable; any other
    coastal location is moderately suitable; everything else is not.
    """
    validate_coordinates(latitude, longitude)

    for site in sites:
        distance = haversine_km(latitude, longitude, site.latitude, site.longitude)
        if distance <= site.radius_km:
            return SiteSuitability(
                valid=True,
                site=site.name,
                distance_km=round(distance, 2),
                suitability=Suitability.HIGH,
            )

    if is_coastal(latitude, longitude, regions):
        return SiteSuitability(
            valid=True,
            site="Coastal Area",
            suitability=Suitability.MEDIUM,
            note="Located in coastal region suitable for mangrove restoration",
        )

    return SiteSuitability(
        valid=False,
        site="Coastal Area",
        suitability=Suitability.LOW,
        note="Location may not be suitable for mangrove restoration",
    )
