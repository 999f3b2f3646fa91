"""
Point list loader.

Point sets are plain CSV-ish text files, one point per line. Supported shapes:
- `lat,lng`
- `lat,lng,description`
- `lat,lng,radius_km`
- `lat,lng,radius_km,description`
- `lat,lng,"quoted description",other,fields`
- `# comment` and blank lines (ignored)

The first quoted string (or first non-numeric field) becomes the title; the first number
after lat/lng becomes the radius. Invalid lines are skipped with a warning so one bad row
does not reject a whole file.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from midpointfinder.core.env import resolve_project_path
from midpointfinder.domain.models import GeoPoint, NamedPoint

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 10.0

_QUOTED = re.compile(r'"([^"]+)"')
_PLACEHOLDER = re.compile(r"^__QUOTED_(\d+)__$")


def is_valid_coordinate(lat: float, lon: float) -> bool:
    return lat == lat and lon == lon and -90 <= lat <= 90 and -180 <= lon <= 180


def _to_float(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def parse_coordinates(text: str | None) -> GeoPoint | None:
    """Parse `"lat, lng"` into a GeoPoint; None for anything malformed or out of range."""
    if not text or not isinstance(text, str):
        return None
    parts = [p.strip() for p in text.strip().split(",")]
    if len(parts) != 2:
        return None
    lat = _to_float(parts[0])
    lon = _to_float(parts[1])
    if lat is None or lon is None or not is_valid_coordinate(lat, lon):
        return None
    return GeoPoint(lat=lat, lon=lon)


def parse_point_line(
    line: str, index: int = 0, *, default_radius_km: float = DEFAULT_RADIUS_KM
) -> NamedPoint | None:
    """Parse one CSV line; returns None for comments, blanks and invalid rows."""
    trimmed = line.strip()
    if not trimmed or trimmed.startswith("#"):
        return None

    quoted: list[str] = []

    def _stash(match: re.Match[str]) -> str:
        quoted.append(match.group(1))
        return f"__QUOTED_{len(quoted) - 1}__"

    parts = [p.strip() for p in _QUOTED.sub(_stash, trimmed).split(",") if p.strip()]
    if len(parts) < 2:
        logger.warning("Line %d needs at least lat,lng: %s", index + 1, line)
        return None

    lat = _to_float(parts[0])
    lon = _to_float(parts[1])
    if lat is None or lon is None:
        logger.warning("Invalid lat/lng on line %d: %s", index + 1, line)
        return None
    if not is_valid_coordinate(lat, lon):
        logger.warning("Coordinates out of range on line %d: %s", index + 1, line)
        return None

    title: str | None = None
    radius_km: float | None = None
    extra: list[str | float] = []
    for part in parts[2:]:
        placeholder = _PLACEHOLDER.match(part)
        if placeholder:
            value = quoted[int(placeholder.group(1))]
            if title is None:
                title = value
            else:
                extra.append(value)
            continue

        num = _to_float(part)
        if num is not None:
            if radius_km is None:
                radius_km = num
            else:
                extra.append(num)
        elif title is None:
            title = part
        else:
            extra.append(part)

    if radius_km is not None and not radius_km >= 0:
        logger.warning("Invalid radius on line %d: %s", index + 1, line)
        return None

    return NamedPoint(
        lat=lat,
        lon=lon,
        title=title,
        radius_km=radius_km if radius_km is not None else default_radius_km,
        extra=extra,
    )


def parse_points_csv(
    text: str, *, default_title: bool = False, default_radius_km: float = DEFAULT_RADIUS_KM
) -> list[NamedPoint]:
    points: list[NamedPoint] = []
    for index, line in enumerate(text.splitlines()):
        point = parse_point_line(line, index, default_radius_km=default_radius_km)
        if point is None:
            continue
        if default_title and not point.title:
            point = point.model_copy(update={"title": f"Point {len(points) + 1}"})
        points.append(point)
    return points


def load_points(
    path: str | Path, *, default_title: bool = True, default_radius_km: float = DEFAULT_RADIUS_KM
) -> list[NamedPoint]:
    """Load a point list file (relative paths resolve against the project root)."""
    resolved = resolve_project_path(path)
    points = parse_points_csv(
        resolved.read_text(encoding="utf-8"),
        default_title=default_title,
        default_radius_km=default_radius_km,
    )
    logger.info("Loaded %d points from %s", len(points), resolved)
    return points


def points_to_csv(points: list[NamedPoint]) -> str:
    """Serialise points back to `lat,lng,radius_km[,"title"]` lines.

    The line format has no escape for `"`, so titles containing one are rejected.
    """
    lines = []
    for p in points:
        if p.title and '"' in p.title:
            raise ValueError(f"title {p.title!r} contains a double quote and cannot be written")
        title = f',"{p.title}"' if p.title else ""
        lines.append(f"{p.lat},{p.lon},{p.radius_km}{title}")
    return "\n".join(lines) + "\n"


def flatten_points(points: list[GeoPoint]) -> list[float]:
    """Pack points into the engine's flat `[lat0, lon0, lat1, lon1, ...]` layout."""
    flat: list[float] = []
    for p in points:
        flat.extend((p.lat, p.lon))
    return flat
