"""
API routes.

Endpoints:
- POST `/api/combinations`: rank A x B pairings by midpoint distance to a target.
- POST `/api/midpoints`: every pairing's midpoint (optionally heatmap tiles).
- GET  `/api/combinations/count`: size of the cross product.
- POST `/api/flat/combinations`, `/api/flat/midpoints`: same engine over flat float buffers.
- POST `/api/reflections`: reflect sources through a target.
- GET  `/api/settings`: public settings for map frontends.
- GET  `/api/health`: liveness probe.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from fastapi import APIRouter, HTTPException, Query

from midpointfinder import __version__
from midpointfinder.config.settings import get_settings
from midpointfinder.domain.models import (
    CombinationQuery,
    CombinationSearch,
    FlatCombinationQuery,
    FlatMidpointsQuery,
    FlatResult,
    MidpointsQuery,
    MidpointsResult,
    ReflectionQuery,
    ReflectionResult,
)
from midpointfinder.engine.combinations import get_combination_count
from midpointfinder.finder.service import (
    compute_midpoints,
    compute_midpoints_flat,
    compute_reflections,
    find_combinations,
    find_combinations_flat,
)

router = APIRouter()

T = TypeVar("T")


def _run(fn: Callable[[], T]) -> T:
    try:
        return fn()
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(e)},
        ) from e
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail={"code": "INTERNAL_ERROR", "message": str(e)},
        ) from e


@router.post("/api/combinations", response_model=CombinationSearch)
def post_combinations(query: CombinationQuery) -> CombinationSearch:
    """Return the Top-N pairings whose midpoint lies closest to the target."""
    return _run(lambda: find_combinations(query, settings=get_settings()))


@router.post("/api/midpoints", response_model=MidpointsResult)
def post_midpoints(query: MidpointsQuery) -> MidpointsResult:
    return _run(lambda: compute_midpoints(query, settings=get_settings()))


@router.get("/api/combinations/count")
def get_count(num_a: int = Query(..., ge=0), num_b: int = Query(..., ge=0)) -> dict:
    return {"num_a": num_a, "num_b": num_b, "count": get_combination_count(num_a, num_b)}


@router.post("/api/flat/combinations", response_model=FlatResult)
def post_flat_combinations(query: FlatCombinationQuery) -> FlatResult:
    """`values` is `[index_a, index_b, score, mid_lat, mid_lon, ...]` ascending by score."""
    return _run(lambda: find_combinations_flat(query, settings=get_settings()))


@router.post("/api/flat/midpoints", response_model=FlatResult)
def post_flat_midpoints(query: FlatMidpointsQuery) -> FlatResult:
    return _run(lambda: compute_midpoints_flat(query, settings=get_settings()))


@router.post("/api/reflections", response_model=ReflectionResult)
def post_reflections(query: ReflectionQuery) -> ReflectionResult:
    return _run(lambda: compute_reflections(query, settings=get_settings()))


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return tuning knobs a frontend needs (limits, defaults, grid sizes)."""
    settings = get_settings()
    return {
        "engine": {
            "default_top_n": settings.engine.default_top_n,
            "max_top_n": settings.engine.max_top_n,
            "max_combinations": settings.engine.max_combinations,
        },
        "reflection": settings.reflection.model_dump(),
        "grid": settings.grid.model_dump(),
        "points": settings.points.model_dump(),
    }


@router.get("/api/health")
def get_health() -> dict:
    return {"status": "ok", "version": __version__}
