"""
Combination engine: score every (A, B) pairing by how close its midpoint is to a target.

Inputs and outputs at the public boundary are flat float sequences:
- points: `[lat0, lon0, lat1, lon1, ...]`
- ranked results: `[index_a, index_b, score, mid_lat, mid_lon, ...]`
- midpoints: `[lat0, lon0, lat1, lon1, ...]` in A-major / B-minor order

Internally the sweep is vectorised with numpy over an `(|A|, |B|)` grid and the
results are carried as `CombinationResult` records.

Top-N selection is `numpy.argpartition` (introselect, O(M)) followed by sorting
only the retained prefix (O(n log n)), instead of an O(M log M) sort of all M
pairs. Equal scores are ordered by `(index_a, index_b)`, including ties that
straddle the n-th position.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Sequence

import numpy as np

from midpointfinder.core.geo import EARTH_RADIUS_KM, geodesic_midpoint_np, haversine_distance_np

logger = logging.getLogger(__name__)

RESULT_WIDTH = 5

OddLengthPolicy = Literal["reject", "truncate"]


class PointBufferError(ValueError):
    """A flat coordinate buffer could not be read as (lat, lon) pairs."""


class CombinationLimitError(ValueError):
    """The cross product is larger than the configured cap."""


@dataclass(frozen=True)
class CombinationResult:
    """One scored pairing of point `index_a` from set A with point `index_b` from set B."""

    index_a: int
    index_b: int
    score: float
    midpoint_lat: float
    midpoint_lon: float

    def as_row(self) -> tuple[float, float, float, float, float]:
        return (
            float(self.index_a),
            float(self.index_b),
            self.score,
            self.midpoint_lat,
            self.midpoint_lon,
        )


def unpack_points(flat: Sequence[float] | np.ndarray, *, odd_length: OddLengthPolicy = "reject") -> np.ndarray:
    """Convert a flat `[lat, lon, ...]` buffer into an `(N, 2)` float array.

    An odd-length buffer has an unpaired trailing coordinate. With `odd_length="reject"`
    it raises `PointBufferError`; with `"truncate"` the trailing value is dropped.
    """
    arr = np.asarray(flat, dtype=np.float64).reshape(-1)
    if arr.size % 2:
        if odd_length == "reject":
            raise PointBufferError(
                f"coordinate buffer has odd length {arr.size}; expected [lat, lon] pairs"
            )
        logger.warning("Dropping unpaired trailing coordinate (buffer length %d)", arr.size)
        arr = arr[:-1]
    return arr.reshape(-1, 2)


def get_combination_count(num_a: int, num_b: int) -> int:
    """Return the number of pairings between sets of `num_a` and `num_b` points.

    Python integers are unbounded, so the product is exact for any input size.
    """
    if num_a < 0 or num_b < 0:
        raise ValueError("point counts must be non-negative")
    return int(num_a) * int(num_b)


def _check_limit(total: int, max_combinations: int | None) -> None:
    if max_combinations is not None and total > max_combinations:
        raise CombinationLimitError(
            f"{total} combinations exceeds the limit of {max_combinations}"
        )


def _pair_midpoints(a: np.ndarray, b: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Midpoints for every pair, flattened A-major / B-minor."""
    mid_lat, mid_lon = geodesic_midpoint_np(a[:, 0:1], a[:, 1:2], b[None, :, 0], b[None, :, 1])
    return mid_lat.reshape(-1), mid_lon.reshape(-1)


def _score(
    mid_lat: np.ndarray, mid_lon: np.ndarray, target_lat: float, target_lon: float, *, radius_km: float
) -> np.ndarray:
    scores = haversine_distance_np(mid_lat, mid_lon, target_lat, target_lon, radius_km=radius_km)
    # Non-finite coordinates can still produce NaN; rank those last.
    return np.where(np.isnan(scores), np.inf, scores)


def select_top_n(scores: np.ndarray, n: int) -> np.ndarray:
    """Return flat indices of the `n` lowest scores, ordered by (score, index)."""
    total = scores.size
    if n <= 0 or total == 0:
        return np.empty(0, dtype=np.intp)
    if n >= total:
        return np.lexsort((np.arange(total), scores))

    candidates = np.argpartition(scores, n - 1)[:n]
    kth = scores[candidates].max()
    below = np.flatnonzero(scores < kth)
    # flatnonzero yields ascending flat indices, i.e. ascending (index_a, index_b).
    at_kth = np.flatnonzero(scores == kth)[: n - below.size]
    keep = np.concatenate((below, at_kth))
    return keep[np.lexsort((keep, scores[keep]))]


def rank_combinations(
    points_a: Sequence[float] | np.ndarray,
    points_b: Sequence[float] | np.ndarray,
    target_lat: float,
    target_lon: float,
    top_n: int,
    *,
    radius_km: float = EARTH_RADIUS_KM,
    odd_length: OddLengthPolicy = "reject",
    max_combinations: int | None = None,
) -> list[CombinationResult]:
    """Score every pairing of A with B and return the best `top_n` as records."""
    a = unpack_points(points_a, odd_length=odd_length)
    b = unpack_points(points_b, odd_length=odd_length)
    total = get_combination_count(len(a), len(b))
    n = min(max(int(top_n), 0), total)
    if n == 0:
        return []
    _check_limit(total, max_combinations)

    started = time.perf_counter()
    mid_lat, mid_lon = _pair_midpoints(a, b)
    scores = _score(mid_lat, mid_lon, target_lat, target_lon, radius_km=radius_km)
    order = select_top_n(scores, n)
    num_b = len(b)
    out = [
        CombinationResult(
            index_a=int(k // num_b),
            index_b=int(k % num_b),
            score=float(scores[k]),
            midpoint_lat=float(mid_lat[k]),
            midpoint_lon=float(mid_lon[k]),
        )
        for k in order
    ]
    logger.debug(
        "Ranked %d combinations (%dx%d), kept %d in %.1f ms",
        total,
        len(a),
        num_b,
        n,
        (time.perf_counter() - started) * 1000,
    )
    return out


def all_midpoints(
    points_a: Sequence[float] | np.ndarray,
    points_b: Sequence[float] | np.ndarray,
    *,
    odd_length: OddLengthPolicy = "reject",
    max_combinations: int | None = None,
) -> np.ndarray:
    """Midpoint of every pairing as an `(|A| * |B|, 2)` array, A-major / B-minor."""
    a = unpack_points(points_a, odd_length=odd_length)
    b = unpack_points(points_b, odd_length=odd_length)
    total = get_combination_count(len(a), len(b))
    if total == 0:
        return np.empty((0, 2), dtype=np.float64)
    _check_limit(total, max_combinations)

    mid_lat, mid_lon = _pair_midpoints(a, b)
    return np.column_stack((mid_lat, mid_lon))


def flatten_results(results: Iterable[CombinationResult]) -> list[float]:
    out: list[float] = []
    for r in results:
        out.extend(r.as_row())
    return out


def unflatten_results(flat: Sequence[float]) -> list[CombinationResult]:
    """Inverse of `flatten_results` (indices are rounded back to ints)."""
    if len(flat) % RESULT_WIDTH:
        raise ValueError(f"result buffer length must be a multiple of {RESULT_WIDTH}")
    return [
        CombinationResult(
            index_a=int(round(flat[i])),
            index_b=int(round(flat[i + 1])),
            score=float(flat[i + 2]),
            midpoint_lat=float(flat[i + 3]),
            midpoint_lon=float(flat[i + 4]),
        )
        for i in range(0, len(flat), RESULT_WIDTH)
    ]


def find_best_combinations(
    points_a: Sequence[float],
    points_b: Sequence[float],
    target_lat: float,
    target_lon: float,
    top_n: int,
    **options: Any,
) -> list[float]:
    """Flat-buffer entrypoint: `[index_a, index_b, score, mid_lat, mid_lon, ...]` ascending by score.

    `options` are passed through to `rank_combinations`.
    """
    return flatten_results(rank_combinations(points_a, points_b, target_lat, target_lon, top_n, **options))


def calculate_all_midpoints(points_a: Sequence[float], points_b: Sequence[float], **options: Any) -> list[float]:
    """Flat-buffer entrypoint: `[lat, lon, ...]` for every pairing, A-major / B-minor."""
    return all_midpoints(points_a, points_b, **options).reshape(-1).tolist()
