from __future__ import annotations

# This module is the orchestrator between typed requests and the flat-array engine.
# It wires together:
# - domain input (CombinationQuery / MidpointsQuery / ReflectionQuery)
# - settings (defaults + per-request overrides)
# - the numeric engine (combinations, reflection, grid)
# - enriched, JSON-friendly output models

import logging
import time
from typing import Sequence

from midpointfinder.catalog.loader import flatten_points
from midpointfinder.config.overrides import apply_settings_overrides
from midpointfinder.config.settings import Settings, get_settings
from midpointfinder.core.geo import GeoPoint as CoreGeoPoint, haversine_distance
from midpointfinder.domain.models import (
    Combination,
    CombinationQuery,
    CombinationSearch,
    FlatCombinationQuery,
    FlatMidpointsQuery,
    FlatResult,
    GeoPoint,
    MidpointsQuery,
    MidpointsResult,
    ReflectionItem,
    ReflectionMatchItem,
    ReflectionQuery,
    ReflectionResult,
)
from midpointfinder.engine.combinations import (
    RESULT_WIDTH,
    CombinationResult,
    all_midpoints,
    calculate_all_midpoints,
    find_best_combinations,
    get_combination_count,
    rank_combinations,
)
from midpointfinder.engine.grid import bucket_midpoints
from midpointfinder.engine.reflection import nearest_reflection, reflect_all

logger = logging.getLogger(__name__)


def _effective_top_n(query: CombinationQuery, settings: Settings) -> int:
    # Prefer an explicit request value, otherwise fall back to the configured default.
    top_n = settings.engine.default_top_n if query.top_n is None else int(query.top_n)
    if top_n > settings.engine.max_top_n:
        raise ValueError(f"top_n={top_n} exceeds the maximum of {settings.engine.max_top_n}")
    return top_n


def describe_combination(
    result: CombinationResult,
    point_a: GeoPoint,
    point_b: GeoPoint,
    target: GeoPoint,
    *,
    rank: int,
    radius_km: float,
) -> Combination:
    """Attach the per-pair distances that callers display next to a ranked result."""
    return Combination(
        rank=rank,
        index_a=result.index_a,
        index_b=result.index_b,
        score_km=result.score,
        midpoint_lat=result.midpoint_lat,
        midpoint_lon=result.midpoint_lon,
        dist_a_to_target_km=haversine_distance(point_a.lat, point_a.lon, target.lat, target.lon, radius_km=radius_km),
        dist_b_to_target_km=haversine_distance(point_b.lat, point_b.lon, target.lat, target.lon, radius_km=radius_km),
        dist_a_to_b_km=haversine_distance(point_a.lat, point_a.lon, point_b.lat, point_b.lon, radius_km=radius_km),
    )


def find_combinations(query: CombinationQuery, *, settings: Settings | None = None) -> CombinationSearch:
    """Rank A x B pairings by midpoint distance to `query.target`."""
    settings = apply_settings_overrides(settings or get_settings(), query.settings_overrides)
    engine = settings.engine
    top_n = _effective_top_n(query, settings)

    started = time.perf_counter()
    ranked = rank_combinations(
        flatten_points(query.points_a),
        flatten_points(query.points_b),
        query.target.lat,
        query.target.lon,
        top_n,
        radius_km=engine.earth_radius_km,
        max_combinations=engine.max_combinations,
    )
    results = [
        describe_combination(
            r,
            query.points_a[r.index_a],
            query.points_b[r.index_b],
            query.target,
            rank=rank,
            radius_km=engine.earth_radius_km,
        )
        for rank, r in enumerate(ranked, start=1)
    ]
    elapsed_ms = int((time.perf_counter() - started) * 1000)

    total = get_combination_count(len(query.points_a), len(query.points_b))
    logger.info("Ranked %d combinations, returning %d (%d ms)", total, len(results), elapsed_ms)
    return CombinationSearch(
        target=query.target,
        results=results,
        meta={
            "total_combinations": total,
            "top_n": top_n,
            "returned": len(results),
            "elapsed_ms": elapsed_ms,
        },
    )


def compute_midpoints(query: MidpointsQuery, *, settings: Settings | None = None) -> MidpointsResult:
    """Midpoint of every A x B pairing (A-major), optionally bucketed into heatmap tiles."""
    settings = apply_settings_overrides(settings or get_settings(), query.settings_overrides)

    started = time.perf_counter()
    mids = all_midpoints(
        flatten_points(query.points_a),
        flatten_points(query.points_b),
        max_combinations=settings.engine.max_combinations,
    )
    tiles = bucket_midpoints(mids, settings.grid.heatmap_tile_km) if query.heatmap else None
    elapsed_ms = int((time.perf_counter() - started) * 1000)

    return MidpointsResult(
        midpoints=mids.tolist(),
        tiles=tiles,
        meta={
            "total_combinations": len(mids),
            "tile_count": len(tiles) if tiles is not None else None,
            "elapsed_ms": elapsed_ms,
        },
    )


def compute_reflections(query: ReflectionQuery, *, settings: Settings | None = None) -> ReflectionResult:
    """Reflect every source through the target; optionally match a clicked point."""
    settings = apply_settings_overrides(settings or get_settings(), query.settings_overrides)
    cfg = settings.reflection

    sources: Sequence[CoreGeoPoint] = [CoreGeoPoint(lat=s.lat, lon=s.lon) for s in query.sources]
    target = CoreGeoPoint(lat=query.target.lat, lon=query.target.lon)
    reflections = reflect_all(
        sources,
        target,
        radii_km=[s.radius_km for s in query.sources],
        max_distance_km=cfg.max_distance_km,
        antipodal_threshold_km=cfg.antipodal_threshold_km,
    )

    nearest: ReflectionMatchItem | None = None
    if query.click is not None:
        match = nearest_reflection(CoreGeoPoint(lat=query.click.lat, lon=query.click.lon), reflections, sources, target)
        if match is not None:
            nearest = ReflectionMatchItem(
                index=match.index,
                source_index=match.reflection.source_index,
                distance_to_center_km=match.distance_to_center_km,
                distance_to_edge_km=match.distance_to_edge_km,
                is_inside=match.is_inside,
                score_km=match.score_km,
            )

    return ReflectionResult(
        reflections=[
            ReflectionItem(
                lat=r.lat,
                lon=r.lon,
                source_index=r.source_index,
                distance_km=r.distance_km,
                radius_km=r.radius_km,
                is_antipodal=r.is_antipodal,
            )
            for r in reflections
        ],
        nearest=nearest,
        meta={"sources": len(query.sources), "skipped": len(query.sources) - len(reflections)},
    )


def find_combinations_flat(query: FlatCombinationQuery, *, settings: Settings | None = None) -> FlatResult:
    """Flat-buffer ranking: 5 floats per result, ascending by score."""
    settings = settings or get_settings()
    engine = settings.engine
    if query.top_n > engine.max_top_n:
        raise ValueError(f"top_n={query.top_n} exceeds the maximum of {engine.max_top_n}")
    values = find_best_combinations(
        query.points_a,
        query.points_b,
        query.target_lat,
        query.target_lon,
        query.top_n,
        radius_km=engine.earth_radius_km,
        odd_length=engine.odd_length_policy,
        max_combinations=engine.max_combinations,
    )
    return FlatResult(values=values, width=RESULT_WIDTH, count=len(values) // RESULT_WIDTH)


def compute_midpoints_flat(query: FlatMidpointsQuery, *, settings: Settings | None = None) -> FlatResult:
    settings = settings or get_settings()
    values = calculate_all_midpoints(
        query.points_a,
        query.points_b,
        odd_length=settings.engine.odd_length_policy,
        max_combinations=settings.engine.max_combinations,
    )
    return FlatResult(values=values, width=2, count=len(values) // 2)
