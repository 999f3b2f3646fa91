"""
Domain models (Pydantic).

These types are the stable "contract" between the service layer and its callers
(CLI, API, scripts):
- inputs (`NamedPoint`, `CombinationQuery`, `MidpointsQuery`, `ReflectionQuery`)
- ranked output (`Combination`, `CombinationSearch`)

The engine itself works on flat arrays and dataclass records; conversion happens in
`midpointfinder.finder.service`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class NamedPoint(GeoPoint):
    """A point loaded from a CSV list, with an optional title and circle radius."""

    title: str | None = None
    radius_km: float = Field(10.0, ge=0)
    extra: list[Any] = Field(default_factory=list)


class CombinationQuery(BaseModel):
    points_a: list[GeoPoint]
    points_b: list[GeoPoint]
    target: GeoPoint
    top_n: int | None = Field(default=None, ge=0)
    settings_overrides: dict[str, Any] | None = None


class Combination(BaseModel):
    """One ranked pairing, enriched with the distances shown next to it."""

    rank: int
    index_a: int
    index_b: int
    score_km: float
    midpoint_lat: float
    midpoint_lon: float
    dist_a_to_target_km: float
    dist_b_to_target_km: float
    dist_a_to_b_km: float


class CombinationSearch(BaseModel):
    target: GeoPoint
    results: list[Combination]
    meta: dict[str, Any] = Field(default_factory=dict)


class MidpointsQuery(BaseModel):
    points_a: list[GeoPoint]
    points_b: list[GeoPoint]
    heatmap: bool = False
    settings_overrides: dict[str, Any] | None = None


class MidpointsResult(BaseModel):
    midpoints: list[list[float]]
    tiles: dict[str, int] | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class ReflectionQuery(BaseModel):
    sources: list[NamedPoint]
    target: GeoPoint
    click: GeoPoint | None = None
    settings_overrides: dict[str, Any] | None = None


class ReflectionItem(BaseModel):
    lat: float
    lon: float
    source_index: int
    distance_km: float
    radius_km: float
    is_antipodal: bool


class ReflectionMatchItem(BaseModel):
    index: int
    source_index: int
    distance_to_center_km: float
    distance_to_edge_km: float
    is_inside: bool
    score_km: float


class ReflectionResult(BaseModel):
    reflections: list[ReflectionItem]
    nearest: ReflectionMatchItem | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class FlatCombinationQuery(BaseModel):
    """Flat-buffer form: `points_*` are `[lat0, lon0, lat1, lon1, ...]`."""

    points_a: list[float]
    points_b: list[float]
    target_lat: float
    target_lon: float
    top_n: int = Field(..., ge=0)


class FlatMidpointsQuery(BaseModel):
    points_a: list[float]
    points_b: list[float]


class FlatResult(BaseModel):
    """`values` packs `width` floats per record."""

    values: list[float]
    width: int
    count: int
