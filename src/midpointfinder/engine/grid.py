"""
Fixed global lat/lon grids for midpoints.

Two uses:
- `build_midpoint_grid`: precompute the midpoint of every unordered pair within one point
  set and bucket it by cell, so a lookup near a target only loads nearby cells.
- `bucket_midpoints`: count midpoints per square-in-degrees tile for a coverage heatmap.

Cells are anchored at (-90, -180) so keys are stable across datasets. Longitude buckets
wrap at the antimeridian: bucket `-1` is the last bucket and vice versa.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np

from midpointfinder.core.geo import GeoPoint, geodesic_midpoint_np, haversine_distance_np

KM_PER_DEGREE = 111.0

# Lookups widen through these radii until they have enough candidates.
SEARCH_RADII_KM = (500.0, 1000.0, 2000.0, 5000.0, 10000.0, 20000.0)

# [index_i, index_j, mid_lat, mid_lon, distance_km]
GridEntry = list[float]


def lon_bucket_count(cell_deg: float) -> int:
    return math.ceil(360.0 / cell_deg)


def grid_key(lat: float, lon: float, cell_deg: float) -> str:
    lat_bucket = math.floor((lat + 90) / cell_deg)
    lon_bucket = math.floor((lon + 180) / cell_deg)
    return f"{lat_bucket}_{lon_bucket}"


def grid_cell_center(key: str, cell_deg: float) -> GeoPoint:
    lat_bucket, lon_bucket = (int(p) for p in key.split("_"))
    return GeoPoint(lat=-90 + (lat_bucket + 0.5) * cell_deg, lon=-180 + (lon_bucket + 0.5) * cell_deg)


def build_midpoint_grid(points: Sequence[GeoPoint], cell_deg: float) -> dict[str, list[GridEntry]]:
    """Bucket the midpoint of every pair (i < j) in `points` by grid cell.

    Midpoint longitudes are wrapped into [-180, 180) and rounded to 4 decimals;
    pair distances are rounded to whole kilometres.
    """
    grid: dict[str, list[GridEntry]] = {}
    n = len(points)
    if n < 2:
        return grid

    lat = np.array([p.lat for p in points], dtype=np.float64)
    lon = np.array([p.lon for p in points], dtype=np.float64)
    ii, jj = np.triu_indices(n, k=1)
    mid_lat, mid_lon = geodesic_midpoint_np(lat[ii], lon[ii], lat[jj], lon[jj])
    mid_lon = (mid_lon + 180.0) % 360.0 - 180.0
    dist = haversine_distance_np(lat[ii], lon[ii], lat[jj], lon[jj])

    for i, j, m_lat, m_lon, d in zip(ii.tolist(), jj.tolist(), mid_lat.tolist(), mid_lon.tolist(), dist.tolist()):
        grid.setdefault(grid_key(m_lat, m_lon, cell_deg), []).append(
            [i, j, round(m_lat, 4), round(m_lon, 4), round(d)]
        )
    return grid


def grid_index(grid: dict[str, list[GridEntry]]) -> dict[str, int]:
    return {key: len(entries) for key, entries in grid.items()}


def nearby_keys(target: GeoPoint, cell_deg: float, radius_km: float) -> list[str]:
    """Cell keys overlapping a box of `radius_km` around `target`, wrapping in longitude.

    The box is `radius_km / 111` degrees tall and widened by `1 / cos(lat)`; once it
    spans the whole circle every longitude bucket is returned.
    """
    lat_delta = radius_km / KM_PER_DEGREE
    lon_delta = radius_km / (KM_PER_DEGREE * max(math.cos(math.radians(target.lat)), 1e-9))

    max_lat_bucket = math.floor(180.0 / cell_deg)
    lat_lo = max(0, math.floor((target.lat - lat_delta + 90) / cell_deg))
    lat_hi = min(max_lat_bucket, math.floor((target.lat + lat_delta + 90) / cell_deg))

    num_lon = lon_bucket_count(cell_deg)
    lon_lo = math.floor((target.lon - lon_delta + 180) / cell_deg)
    lon_hi = math.floor((target.lon + lon_delta + 180) / cell_deg)
    if lon_hi - lon_lo + 1 >= num_lon:
        lon_buckets = list(range(num_lon))
    else:
        lon_buckets = [b % num_lon for b in range(lon_lo, lon_hi + 1)]

    return [f"{lat_b}_{lon_b}" for lat_b in range(lat_lo, lat_hi + 1) for lon_b in lon_buckets]


def bucket_midpoints(midpoints: Iterable[tuple[float, float]] | np.ndarray, tile_km: float) -> dict[str, int]:
    """Count midpoints per heatmap tile; tiles are `tile_km / 111` degrees square."""
    step = tile_km / KM_PER_DEGREE
    counts: dict[str, int] = {}
    for lat, lon in midpoints:
        key = grid_key(float(lat), float(lon), step)
        counts[key] = counts.get(key, 0) + 1
    return counts


def rank_grid_entries(
    grid: dict[str, list[GridEntry]],
    target: GeoPoint,
    cell_deg: float,
    top_n: int,
    *,
    radii_km: Sequence[float] = SEARCH_RADII_KM,
) -> list[tuple[float, GridEntry]]:
    """Score entries in the cells around `target` and return the best `(score_km, entry)` pairs.

    The search box grows through `radii_km` and stops at the first radius that yields at
    least `top_n` candidates; the last radius is used as-is even when it yields fewer.
    """
    if top_n <= 0:
        return []
    entries: list[GridEntry] = []
    for radius_km in radii_km:
        entries = [e for key in nearby_keys(target, cell_deg, radius_km) for e in grid.get(key, [])]
        if len(entries) >= top_n:
            break
    if not entries:
        return []
    mids = np.array([[e[2], e[3]] for e in entries], dtype=np.float64)
    scores = haversine_distance_np(mids[:, 0], mids[:, 1], target.lat, target.lon)
    order = sorted(range(len(entries)), key=lambda k: (scores[k], entries[k][0], entries[k][1]))
    return [(float(scores[k]), entries[k]) for k in order[:top_n]]
