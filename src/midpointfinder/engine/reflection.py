"""
Reflection points.

For a source point S and a target T, the reflection R is the point reached by travelling
twice the S->T distance from S along the same great circle, so that T is the geodesic
midpoint of S and R. A player standing inside R's circle can pair with S and land the
midpoint on the target.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from midpointfinder.core.geo import EARTH_RADIUS_KM, GeoPoint, geodesic_midpoint, haversine_distance

MAX_DISTANCE_KM = 20_000.0
ANTIPODAL_THRESHOLD_KM = 10_000.0


@dataclass(frozen=True)
class Reflection:
    lat: float
    lon: float
    source_index: int
    distance_km: float
    radius_km: float
    is_antipodal: bool


@dataclass(frozen=True)
class ReflectionMatch:
    """The reflection whose source gives the best midpoint for a clicked point."""

    reflection: Reflection
    index: int
    distance_to_center_km: float
    distance_to_edge_km: float
    is_inside: bool
    score_km: float


def initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial great-circle bearing from point 1 to point 2 (degrees, 0..360)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dl = math.radians(lon2 - lon1)
    y = math.sin(dl) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dl)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def destination_point(
    lat: float, lon: float, distance_km: float, bearing_deg: float, *, radius_km: float = EARTH_RADIUS_KM
) -> GeoPoint:
    """Point reached from (lat, lon) after `distance_km` along `bearing_deg`.

    Longitude is normalised to [-180, 180).
    """
    delta = distance_km / radius_km
    theta = math.radians(bearing_deg)
    phi1 = math.radians(lat)
    lam1 = math.radians(lon)

    sin_phi2 = math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    phi2 = math.asin(max(-1.0, min(1.0, sin_phi2)))
    lam2 = lam1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * sin_phi2,
    )
    lon2 = (math.degrees(lam2) + 540.0) % 360.0 - 180.0
    return GeoPoint(lat=math.degrees(phi2), lon=lon2)


def reflect_point(
    source: GeoPoint, target: GeoPoint, *, max_distance_km: float = MAX_DISTANCE_KM
) -> tuple[GeoPoint, float] | None:
    """Return `(reflection, source_to_target_km)`, or None past `max_distance_km`."""
    distance_km = haversine_distance(source.lat, source.lon, target.lat, target.lon)
    if distance_km > max_distance_km:
        return None
    bearing = initial_bearing(source.lat, source.lon, target.lat, target.lon)
    return destination_point(source.lat, source.lon, distance_km * 2, bearing), distance_km


def reflect_all(
    sources: Sequence[GeoPoint],
    target: GeoPoint,
    *,
    radii_km: Sequence[float] | None = None,
    max_distance_km: float = MAX_DISTANCE_KM,
    antipodal_threshold_km: float = ANTIPODAL_THRESHOLD_KM,
) -> list[Reflection]:
    """Reflect every source through `target`; sources too far away are skipped.

    Each reflection keeps its source's radius.
    """
    out: list[Reflection] = []
    for index, source in enumerate(sources):
        reflected = reflect_point(source, target, max_distance_km=max_distance_km)
        if reflected is None:
            continue
        point, distance_km = reflected
        out.append(
            Reflection(
                lat=point.lat,
                lon=point.lon,
                source_index=index,
                distance_km=distance_km,
                radius_km=float(radii_km[index]) if radii_km is not None else 0.0,
                is_antipodal=distance_km > antipodal_threshold_km,
            )
        )
    return out


def nearest_reflection(
    click: GeoPoint,
    reflections: Sequence[Reflection],
    sources: Sequence[GeoPoint],
    target: GeoPoint,
) -> ReflectionMatch | None:
    """Pick the reflection whose source, paired with `click`, has the midpoint closest to `target`.

    Ranking by the actual midpoint score (rather than distance to the reflection centre)
    stays correct for near-antipodal reflections, where the centre is a poor proxy.
    """
    best: ReflectionMatch | None = None
    for index, reflection in enumerate(reflections):
        source = sources[reflection.source_index]
        mid_lat, mid_lon = geodesic_midpoint(click.lat, click.lon, source.lat, source.lon)
        score = haversine_distance(mid_lat, mid_lon, target.lat, target.lon)
        if best is not None and score >= best.score_km:
            continue
        to_center = haversine_distance(click.lat, click.lon, reflection.lat, reflection.lon)
        best = ReflectionMatch(
            reflection=reflection,
            index=index,
            distance_to_center_km=to_center,
            distance_to_edge_km=max(0.0, to_center - reflection.radius_km),
            is_inside=to_center <= reflection.radius_km,
            score_km=score,
        )
    return best
