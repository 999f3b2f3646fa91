from __future__ import annotations

"""
Precompute midpoints of every pair in one point list and write them as grid files.

Output directory layout:
- `cities.json`: `[{"n": title, "lat": .., "lng": ..}, ...]` in input order
- `grid_<latBucket>_<lonBucket>.json`: `[[i, j, mid_lat, mid_lon, distance_km], ...]`
- `index.json`: `{cell_key: entry_count}`

Examples:
  python scripts/build_midpoint_grid.py --input data/cities.csv --output data/midpoint-grid
  python scripts/build_midpoint_grid.py --output data/midpoint-grid --lookup 48.85,2.35
"""

import argparse
import json
import logging
import shutil
from pathlib import Path
from typing import Any

from midpointfinder.catalog.loader import load_points, parse_coordinates
from midpointfinder.config.settings import get_settings
from midpointfinder.core.env import resolve_project_path
from midpointfinder.core.geo import GeoPoint, format_distance
from midpointfinder.core.logging import configure_logging
from midpointfinder.engine.grid import build_midpoint_grid, grid_index, rank_grid_entries

logger = logging.getLogger("midpointfinder.scripts.build_midpoint_grid")


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, separators=(",", ":")), encoding="utf-8")


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def build(input_path: str, output_dir: Path, *, cell_deg: float) -> dict[str, Any]:
    points = load_points(input_path)
    if output_dir.exists():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True)

    _write_json(output_dir / "cities.json", [{"n": p.title, "lat": p.lat, "lng": p.lon} for p in points])

    logger.info("Computing %d pair midpoints", len(points) * (len(points) - 1) // 2)
    grid = build_midpoint_grid([GeoPoint(lat=p.lat, lon=p.lon) for p in points], cell_deg)
    for key, entries in grid.items():
        _write_json(output_dir / f"grid_{key}.json", entries)
    _write_json(output_dir / "index.json", grid_index(grid))

    size_bytes = sum(f.stat().st_size for f in output_dir.iterdir())
    return {
        "points": len(points),
        "pairs": sum(len(e) for e in grid.values()),
        "grid_cells": len(grid),
        "size_mb": round(size_bytes / 1024 / 1024, 2),
    }


def lookup(output_dir: Path, target: GeoPoint, *, cell_deg: float, top_n: int) -> list[str]:
    """Rank precomputed pairs near `target`, reading only the cells that exist."""
    index = _read_json(output_dir / "index.json")
    cities = _read_json(output_dir / "cities.json")
    grid = {key: _read_json(output_dir / f"grid_{key}.json") for key in index}
    lines = []
    for score, (i, j, m_lat, m_lon, dist) in rank_grid_entries(grid, target, cell_deg, top_n):
        lines.append(
            f"{cities[i]['n']} + {cities[j]['n']}: score={format_distance(score)}"
            f" midpoint={m_lat}, {m_lon} apart={format_distance(dist)}"
        )
    return lines


def main() -> int:
    configure_logging()
    settings = get_settings()

    ap = argparse.ArgumentParser(description="Build (or query) a midpoint grid for one point list.")
    ap.add_argument("--input", default=None, help="Point list file (CSV lines: lat,lng[,radius][,\"title\"])")
    ap.add_argument("--output", required=True, help="Output directory for grid files")
    ap.add_argument("--cell-deg", type=float, default=settings.grid.cell_deg)
    ap.add_argument("--lookup", default=None, help="LAT,LNG: rank precomputed pairs near this target")
    ap.add_argument("--top-n", type=int, default=10)
    args = ap.parse_args()

    output_dir = resolve_project_path(args.output)

    if args.lookup:
        target = parse_coordinates(args.lookup)
        if target is None:
            ap.error(f"invalid --lookup '{args.lookup}'")
        for line in lookup(output_dir, GeoPoint(lat=target.lat, lon=target.lon), cell_deg=args.cell_deg, top_n=args.top_n):
            print(line)
        return 0

    if not args.input:
        ap.error("--input is required when building")
    stats = build(args.input, output_dir, cell_deg=args.cell_deg)
    print(json.dumps(stats, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
