import pytest

from midpointfinder.catalog.loader import (
    flatten_points,
    is_valid_coordinate,
    load_points,
    parse_coordinates,
    parse_point_line,
    parse_points_csv,
    points_to_csv,
)
from midpointfinder.domain.models import GeoPoint, NamedPoint


def test_parse_coordinates():
    p = parse_coordinates(" 40.7128, -74.0060 ")
    assert p is not None
    assert (p.lat, p.lon) == (40.7128, -74.006)
    assert parse_coordinates("91, 0") is None
    assert parse_coordinates("10") is None
    assert parse_coordinates("a, b") is None
    assert parse_coordinates("") is None
    assert parse_coordinates(None) is None


def test_is_valid_coordinate():
    assert is_valid_coordinate(-90, 180)
    assert not is_valid_coordinate(0, 180.5)
    assert not is_valid_coordinate(float("nan"), 0)


def test_parse_point_line_shapes():
    p = parse_point_line("48.85,2.35")
    assert p is not None and p.title is None and p.radius_km == 10.0

    p = parse_point_line("48.85,2.35,Paris")
    assert p is not None and p.title == "Paris"

    p = parse_point_line("48.85,2.35,25")
    assert p is not None and p.radius_km == 25.0 and p.title is None

    p = parse_point_line('48.85, 2.35, 25, "Paris, France", 7, note')
    assert p is not None
    assert p.title == "Paris, France"
    assert p.radius_km == 25.0
    assert p.extra == [7.0, "note"]


@pytest.mark.parametrize("line", ["", "   ", "# comment", "48.85", "abc,2.35", "95,0", "48.85,2.35,-5", "48.85,2.35,nan,\"X\""])
def test_parse_point_line_skips_invalid(line):
    assert parse_point_line(line) is None


def test_parse_points_csv_default_titles_and_radius():
    text = "# header\n1,2\n3,4,\"Named\"\nbad line\n5,6\n"
    points = parse_points_csv(text, default_title=True, default_radius_km=3.0)
    assert [p.title for p in points] == ["Point 1", "Named", "Point 3"]
    assert {p.radius_km for p in points} == {3.0}


def test_load_points_and_roundtrip_csv(tmp_path):
    path = tmp_path / "points.csv"
    path.write_text('10,20,5,"Alpha"\n-10,-20\n', encoding="utf-8")

    points = load_points(path)
    assert [(p.lat, p.lon) for p in points] == [(10.0, 20.0), (-10.0, -20.0)]
    assert [p.title for p in points] == ["Alpha", "Point 2"]

    text = points_to_csv(points)
    assert text == '10.0,20.0,5.0,"Alpha"\n-10.0,-20.0,10.0,"Point 2"\n'


def test_flatten_points():
    assert flatten_points([GeoPoint(lat=1, lon=2), GeoPoint(lat=3, lon=4)]) == [1.0, 2.0, 3.0, 4.0]


def test_parse_points_csv_skips_negative_radius_rows():
    points = parse_points_csv('1,2\n3,4,-5,"bad"\n5,6\n')
    assert [(p.lat, p.lon) for p in points] == [(1.0, 2.0), (5.0, 6.0)]


def test_points_to_csv_rejects_titles_with_quotes():
    with pytest.raises(ValueError, match="double quote"):
        points_to_csv([NamedPoint(lat=1, lon=2, title='Say "hi"')])
