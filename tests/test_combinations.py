import math
import random

import numpy as np
import pytest

from midpointfinder.core.geo import geodesic_midpoint, haversine_distance
from midpointfinder.engine.combinations import (
    CombinationLimitError,
    CombinationResult,
    PointBufferError,
    all_midpoints,
    calculate_all_midpoints,
    find_best_combinations,
    flatten_results,
    get_combination_count,
    rank_combinations,
    select_top_n,
    unflatten_results,
    unpack_points,
)


def _random_flat(rng: random.Random, n: int) -> list[float]:
    flat: list[float] = []
    for _ in range(n):
        flat.extend((rng.uniform(-80, 80), rng.uniform(-180, 180)))
    return flat


def _brute_force(points_a, points_b, target_lat, target_lon):
    """Reference ranking: score every pair with the scalar primitives and fully sort."""
    rows = []
    for i in range(len(points_a) // 2):
        for j in range(len(points_b) // 2):
            m_lat, m_lon = geodesic_midpoint(points_a[2 * i], points_a[2 * i + 1], points_b[2 * j], points_b[2 * j + 1])
            rows.append((haversine_distance(m_lat, m_lon, target_lat, target_lon), i, j))
    rows.sort()
    return rows


def test_get_combination_count():
    assert get_combination_count(3, 4) == 12
    assert get_combination_count(0, 50) == 0
    assert get_combination_count(7, 0) == 0
    # No fixed-width overflow.
    assert get_combination_count(2**40, 2**40) == 2**80


def test_get_combination_count_rejects_negative():
    with pytest.raises(ValueError):
        get_combination_count(-1, 3)


def test_equator_example_midpoint_hits_target():
    out = find_best_combinations([0.0, 0.0], [0.0, 90.0], 0.0, 45.0, 1)
    assert len(out) == 5
    index_a, index_b, score, m_lat, m_lon = out
    assert (index_a, index_b) == (0.0, 0.0)
    assert score == pytest.approx(0.0, abs=1e-6)
    assert m_lat == pytest.approx(0.0, abs=1e-9)
    assert m_lon == pytest.approx(45.0)


def test_top_n_zero_returns_empty():
    assert find_best_combinations([0.0, 0.0, 1.0, 1.0], [2.0, 2.0], 0.0, 0.0, 0) == []


@pytest.mark.parametrize("a,b", [([], [1.0, 2.0]), ([1.0, 2.0], []), ([], [])])
def test_empty_sets_yield_empty_results(a, b):
    assert find_best_combinations(a, b, 10.0, 10.0, 5) == []
    assert calculate_all_midpoints(a, b) == []
    assert get_combination_count(len(a) // 2, len(b) // 2) == 0


def test_output_length_is_capped_by_total_combinations():
    rng = random.Random(1)
    a = _random_flat(rng, 3)
    b = _random_flat(rng, 4)
    assert len(find_best_combinations(a, b, 0.0, 0.0, 5)) == 5 * 5
    assert len(find_best_combinations(a, b, 0.0, 0.0, 12)) == 5 * 12
    assert len(find_best_combinations(a, b, 0.0, 0.0, 1000)) == 5 * 12


def test_scores_are_non_decreasing():
    rng = random.Random(2)
    out = find_best_combinations(_random_flat(rng, 40), _random_flat(rng, 30), 12.0, -40.0, 50)
    scores = out[2::5]
    assert all(s1 <= s2 for s1, s2 in zip(scores, scores[1:]))


@pytest.mark.parametrize("top_n", [1, 7, 25, 150])
def test_top_n_matches_brute_force_reference(top_n):
    rng = random.Random(top_n)
    a = _random_flat(rng, 15)
    b = _random_flat(rng, 10)
    target = (rng.uniform(-60, 60), rng.uniform(-180, 180))

    got = rank_combinations(a, b, target[0], target[1], top_n)
    expected = _brute_force(a, b, *target)[:top_n]

    assert {(r.index_a, r.index_b) for r in got} == {(i, j) for _, i, j in expected}
    for r, (score, _, _) in zip(got, expected):
        assert r.score == pytest.approx(score, rel=1e-9, abs=1e-6)


def test_results_carry_midpoint_of_their_pair():
    rng = random.Random(3)
    a = _random_flat(rng, 5)
    b = _random_flat(rng, 6)
    for r in rank_combinations(a, b, 0.0, 0.0, 30):
        m_lat, m_lon = geodesic_midpoint(a[2 * r.index_a], a[2 * r.index_a + 1], b[2 * r.index_b], b[2 * r.index_b + 1])
        assert r.midpoint_lat == pytest.approx(m_lat, abs=1e-9)
        assert r.midpoint_lon == pytest.approx(m_lon, abs=1e-9)


def test_ties_are_ordered_by_index_a_then_index_b():
    # Every pair has the same midpoint, so every score ties.
    a = [10.0, 20.0, 10.0, 20.0]
    b = [10.0, 20.0, 10.0, 20.0, 10.0, 20.0]
    got = rank_combinations(a, b, 0.0, 0.0, 4)
    assert [(r.index_a, r.index_b) for r in got] == [(0, 0), (0, 1), (0, 2), (1, 0)]


def test_select_top_n_breaks_boundary_ties_by_index():
    scores = np.array([5.0, 1.0, 3.0, 3.0, 0.5, 3.0])
    assert select_top_n(scores, 3).tolist() == [4, 1, 2]
    assert select_top_n(scores, 4).tolist() == [4, 1, 2, 3]
    assert select_top_n(scores, 6).tolist() == [4, 1, 2, 3, 5, 0]
    assert select_top_n(scores, 0).tolist() == []


def test_nan_scores_rank_last():
    # A NaN coordinate makes that pair's score undefined; it must not displace real results.
    a = [0.0, 0.0, math.nan, 0.0]
    b = [0.0, 10.0]
    got = rank_combinations(a, b, 0.0, 5.0, 2)
    assert got[0].index_a == 0
    assert got[0].score == pytest.approx(0.0, abs=1e-6)
    assert math.isinf(got[1].score)


def test_calculate_all_midpoints_enumerates_a_major():
    a = [0.0, 0.0, 10.0, 10.0, -20.0, 30.0]
    b = [0.0, 90.0, 45.0, 45.0, 5.0, -5.0, -60.0, 120.0]
    out = calculate_all_midpoints(a, b)
    num_b = len(b) // 2
    assert len(out) == 24
    for i in range(len(a) // 2):
        for j in range(num_b):
            k = i * num_b + j
            m_lat, m_lon = geodesic_midpoint(a[2 * i], a[2 * i + 1], b[2 * j], b[2 * j + 1])
            assert out[2 * k] == pytest.approx(m_lat, abs=1e-9)
            assert out[2 * k + 1] == pytest.approx(m_lon, abs=1e-9)


def test_all_midpoints_returns_pairs_array():
    mids = all_midpoints([0.0, 0.0], [0.0, 90.0, 0.0, -90.0])
    assert mids.shape == (2, 2)
    assert mids[0].tolist() == pytest.approx([0.0, 45.0])
    assert mids[1].tolist() == pytest.approx([0.0, -45.0])


def test_odd_length_buffer_is_rejected_by_default():
    with pytest.raises(PointBufferError, match="odd length 3"):
        find_best_combinations([1.0, 2.0, 3.0], [0.0, 0.0], 0.0, 0.0, 1)
    with pytest.raises(ValueError):
        calculate_all_midpoints([0.0, 0.0], [1.0])


def test_odd_length_buffer_can_be_truncated():
    arr = unpack_points([1.0, 2.0, 3.0], odd_length="truncate")
    assert arr.tolist() == [[1.0, 2.0]]
    out = find_best_combinations([0.0, 0.0, 7.0], [0.0, 90.0], 0.0, 45.0, 10, odd_length="truncate")
    assert len(out) == 5


def test_combination_limit():
    with pytest.raises(CombinationLimitError, match="exceeds the limit of 5"):
        rank_combinations([0.0] * 6, [0.0] * 4, 0.0, 0.0, 1, max_combinations=5)
    # Nothing is computed (and nothing is limited) when the request is trivially empty.
    assert rank_combinations([0.0] * 6, [0.0] * 4, 0.0, 0.0, 0, max_combinations=5) == []


def test_flatten_and_unflatten_results():
    results = [CombinationResult(2, 7, 1.5, 10.0, 20.0), CombinationResult(0, 1, 3.0, -1.0, -2.0)]
    flat = flatten_results(results)
    assert flat == [2.0, 7.0, 1.5, 10.0, 20.0, 0.0, 1.0, 3.0, -1.0, -2.0]
    assert unflatten_results(flat) == results
    with pytest.raises(ValueError):
        unflatten_results(flat[:-1])
