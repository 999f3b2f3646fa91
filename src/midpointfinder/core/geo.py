"""
Geospatial primitives on a spherical earth.

We keep a tiny geometry layer here so the combination engine, reflection and grid
helpers share one set of formulas:
- scalar functions (`haversine_distance`, `geodesic_midpoint`) for single pairs,
- numpy counterparts (`*_np`) that apply the exact same formulas element-wise
  so the cross-product sweep can run vectorised.

There is no datum correction: the earth is a sphere of radius `EARTH_RADIUS_KM`.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import asin, atan2, cos, pi, sin, sqrt

import numpy as np

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def to_radians(degrees: float) -> float:
    """Convert degrees to radians (no range checks)."""
    return degrees * pi / 180.0


def to_degrees(radians: float) -> float:
    return radians * 180.0 / pi


def haversine_distance(
    lat1: float, lon1: float, lat2: float, lon2: float, *, radius_km: float = EARTH_RADIUS_KM
) -> float:
    """Compute great-circle distance in kilometers between two points.

    The asin argument is clamped into [0, 1]; rounding can push it slightly above 1
    for (near) antipodal points, which would otherwise raise a domain error.
    """
    lat1_rad = to_radians(lat1)
    lat2_rad = to_radians(lat2)
    dlat = to_radians(lat2 - lat1)
    dlon = to_radians(lon2 - lon1)

    h = sin(dlat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(dlon / 2) ** 2
    h = min(1.0, max(0.0, h))
    return 2 * radius_km * asin(sqrt(h))


def geodesic_midpoint(lat1: float, lon1: float, lat2: float, lon2: float) -> tuple[float, float]:
    """Return the great-circle midpoint `(lat, lon)` in degrees.

    Longitude of the result is relative to `lon1` and is not normalised, so it can
    fall outside [-180, 180] when the inputs straddle the antimeridian.
    """
    lat1_rad = to_radians(lat1)
    lon1_rad = to_radians(lon1)
    lat2_rad = to_radians(lat2)
    dlon = to_radians(lon2) - lon1_rad

    bx = cos(lat2_rad) * cos(dlon)
    by = cos(lat2_rad) * sin(dlon)

    lat_mid = atan2(sin(lat1_rad) + sin(lat2_rad), sqrt((cos(lat1_rad) + bx) ** 2 + by**2))
    lon_mid = lon1_rad + atan2(by, cos(lat1_rad) + bx)
    return to_degrees(lat_mid), to_degrees(lon_mid)


def haversine_distance_np(
    lat1: np.ndarray,
    lon1: np.ndarray,
    lat2: np.ndarray | float,
    lon2: np.ndarray | float,
    *,
    radius_km: float = EARTH_RADIUS_KM,
) -> np.ndarray:
    """Vectorised great-circle distance in kilometres (lat/lon degrees)."""
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    dphi = np.radians(np.subtract(lat2, lat1))
    dl = np.radians(np.subtract(lon2, lon1))
    h = np.sin(dphi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dl / 2) ** 2
    return 2 * radius_km * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0)))


def geodesic_midpoint_np(
    lat1: np.ndarray, lon1: np.ndarray, lat2: np.ndarray, lon2: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Vectorised `geodesic_midpoint`; inputs broadcast against each other."""
    phi1 = np.radians(lat1)
    lam1 = np.radians(lon1)
    phi2 = np.radians(lat2)
    dl = np.radians(lon2) - lam1

    bx = np.cos(phi2) * np.cos(dl)
    by = np.cos(phi2) * np.sin(dl)

    lat_mid = np.arctan2(np.sin(phi1) + np.sin(phi2), np.sqrt((np.cos(phi1) + bx) ** 2 + by**2))
    lon_mid = lam1 + np.arctan2(by, np.cos(phi1) + bx)
    return np.degrees(lat_mid), np.degrees(lon_mid)


def format_distance(km: float) -> str:
    """Render a distance for humans (metres below 1 km, coarser as it grows)."""
    if km < 1:
        return f"{round(km * 1000)} m"
    if km < 10:
        return f"{km:.2f} km"
    if km < 100:
        return f"{km:.1f} km"
    return f"{round(km):,} km"


def google_maps_url(lat: float, lon: float) -> str:
    return f"https://www.google.com/maps?q={lat},{lon}"
