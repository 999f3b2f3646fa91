"""
MidpointFinder CLI entrypoint.

This CLI is intended for quick local runs over point list files without the API.
It delegates all ranking logic to `midpointfinder.finder.service`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from midpointfinder.catalog.loader import load_points, parse_coordinates
from midpointfinder.config.settings import get_settings
from midpointfinder.core.geo import format_distance, google_maps_url, haversine_distance
from midpointfinder.core.logging import configure_logging
from midpointfinder.domain.models import (
    CombinationQuery,
    GeoPoint,
    MidpointsQuery,
    ReflectionQuery,
)
from midpointfinder.engine.combinations import get_combination_count
from midpointfinder.finder.service import compute_midpoints, compute_reflections, find_combinations


def _coords(value: str) -> GeoPoint:
    """argparse type for `"lat,lng"` arguments."""
    point = parse_coordinates(value)
    if point is None:
        raise argparse.ArgumentTypeError(f"Invalid coordinates '{value}', expected LAT,LNG")
    return point


def _label(points: list, index: int) -> str:
    title = getattr(points[index], "title", None)
    return title or f"#{index}"


def _cmd_find(args: argparse.Namespace) -> int:
    """Handle the `find` subcommand."""
    settings = get_settings()
    radius = settings.points.default_radius_km
    points_a = load_points(args.points_a, default_radius_km=radius)
    points_b = load_points(args.points_b, default_radius_km=radius)

    query = CombinationQuery(points_a=points_a, points_b=points_b, target=args.target, top_n=args.top_n)
    result = find_combinations(query, settings=settings)

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    meta = result.meta
    print(f"Combinations: {meta['total_combinations']:,}  ({meta['elapsed_ms']} ms)")
    for item in result.results:
        print(
            f"{item.rank:>3}. {_label(points_a, item.index_a)} + {_label(points_b, item.index_b)}"
            f"  score={format_distance(item.score_km)}"
            f"  midpoint={item.midpoint_lat:.4f}, {item.midpoint_lon:.4f}"
        )
        print(
            f"     A->target {format_distance(item.dist_a_to_target_km)}"
            f" | B->target {format_distance(item.dist_b_to_target_km)}"
            f" | A->B {format_distance(item.dist_a_to_b_km)}"
        )
    return 0


def _cmd_midpoints(args: argparse.Namespace) -> int:
    points_a = load_points(args.points_a)
    points_b = load_points(args.points_b)
    result = compute_midpoints(MidpointsQuery(points_a=points_a, points_b=points_b, heatmap=args.heatmap))
    print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
    return 0


def _cmd_count(args: argparse.Namespace) -> int:
    print(get_combination_count(args.num_a, args.num_b))
    return 0


def _cmd_reflect(args: argparse.Namespace) -> int:
    sources = load_points(args.sources, default_radius_km=get_settings().points.default_radius_km)
    result = compute_reflections(ReflectionQuery(sources=sources, target=args.target, click=args.click))

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    for r in result.reflections:
        flag = "  (antipodal)" if r.is_antipodal else ""
        print(
            f"{_label(sources, r.source_index)}: {r.lat:.4f}, {r.lon:.4f}"
            f"  source->target {format_distance(r.distance_km)}{flag}"
        )
    if result.nearest is not None:
        n = result.nearest
        where = "inside" if n.is_inside else f"{format_distance(n.distance_to_edge_km)} outside"
        print(f"Best for click: {_label(sources, n.source_index)}  score={format_distance(n.score_km)}  {where}")
    return 0


def _cmd_distance(args: argparse.Namespace) -> int:
    km = haversine_distance(args.a.lat, args.a.lon, args.b.lat, args.b.lon)
    print(f"{format_distance(km)}  {google_maps_url(args.b.lat, args.b.lon)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the MidpointFinder CLI."""
    parser = argparse.ArgumentParser(prog="midpointfinder")
    sub = parser.add_subparsers(dest="command", required=True)

    find = sub.add_parser("find", help="Rank A x B pairings by how close their midpoint is to a target.")
    find.add_argument("--points-a", required=True, help="Point list file for set A")
    find.add_argument("--points-b", required=True, help="Point list file for set B")
    find.add_argument("--target", required=True, type=_coords, help="LAT,LNG")
    find.add_argument("--top-n", type=int, default=None)
    find.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    find.set_defaults(func=_cmd_find)

    mids = sub.add_parser("midpoints", help="Midpoint of every A x B pairing (JSON).")
    mids.add_argument("--points-a", required=True)
    mids.add_argument("--points-b", required=True)
    mids.add_argument("--heatmap", action="store_true", help="Also bucket midpoints into coverage tiles")
    mids.set_defaults(func=_cmd_midpoints)

    count = sub.add_parser("count", help="Number of pairings for two set sizes.")
    count.add_argument("num_a", type=int)
    count.add_argument("num_b", type=int)
    count.set_defaults(func=_cmd_count)

    ref = sub.add_parser("reflect", help="Reflect source points through a target.")
    ref.add_argument("--sources", required=True, help="Point list file")
    ref.add_argument("--target", required=True, type=_coords)
    ref.add_argument("--click", type=_coords, default=None, help="LAT,LNG to match against reflections")
    ref.add_argument("--json", action="store_true")
    ref.set_defaults(func=_cmd_reflect)

    dist = sub.add_parser("distance", help="Great-circle distance between two points.")
    dist.add_argument("a", type=_coords)
    dist.add_argument("b", type=_coords)
    dist.set_defaults(func=_cmd_distance)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m midpointfinder.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
