"""
Tests for polygon geometry, price pivoting and cell subdivision.
"""
import math

import pytest

from hostfinder.config import FinderConfig
from hostfinder.grid import GridPlanner, cell_bbox, point_grid, price_bands
from hostfinder.models import Polygon, PriceBand, SearchCell


def square(lat0, lon0, size):
    """GeoJSON polygon of a size x size degree square, [lon, lat] order."""
    ring = [[lon0, lat0], [lon0 + size, lat0], [lon0 + size, lat0 + size], [lon0, lat0 + size], [lon0, lat0]]
    return {"type": "Polygon", "coordinates": [ring]}


@pytest.mark.parametrize("ceiling,buckets", [(1_000_000, 10), (1000, 3), (999.5, 7), (10, 1)])
def test_price_bands_cover_range(ceiling, buckets):
    bands = price_bands(ceiling, buckets)
    assert len(bands) == buckets
    assert bands[0].min == 0
    assert bands[-1].max == ceiling
    for prev, nxt in zip(bands, bands[1:]):
        assert prev.max == nxt.min
    assert all(b.max <= ceiling and b.min < b.max for b in bands)


def test_default_price_pivoting():
    bands = price_bands(1_000_000, 10)
    assert bands[0] == PriceBand(0, 100_000)
    assert bands[-1] == PriceBand(900_000, 1_000_000)


def test_band_split_halves():
    low, high = PriceBand(0, 100).split()
    assert low == PriceBand(0, 50)
    assert high == PriceBand(50, 100)


def test_polygon_from_geojson_swaps_axes():
    poly = Polygon.from_geojson(square(54.0, 18.0, 0.5))
    assert poly.bbox() == (54.0, 18.0, 54.5, 18.5)
    assert poly.contains(54.25, 18.25)
    assert not poly.contains(18.25, 54.25)


def test_polygon_hole_and_multipolygon():
    outer = square(0, 0, 1)["coordinates"][0]
    hole = square(0.4, 0.4, 0.2)["coordinates"][0]
    far = square(10, 10, 1)["coordinates"]
    poly = Polygon.from_geojson({"type": "MultiPolygon", "coordinates": [[outer, hole], far]})
    assert poly.contains(0.1, 0.1)
    assert not poly.contains(0.5, 0.5)
    assert poly.contains(10.5, 10.5)
    assert not poly.contains(5, 5)


def test_grid_points_inside_polygon():
    # Triangle so part of the bbox lies outside the mask
    ring = [[18.0, 54.0], [18.6, 54.0], [18.0, 54.4], [18.0, 54.0]]
    poly = Polygon.from_geojson({"type": "Polygon", "coordinates": [ring]})
    points = point_grid(poly, 5)
    assert points
    assert all(poly.contains(lat, lon) for lat, lon in points)

    south, west, north, east = poly.bbox()
    lat_step = 5 / 111
    lon_step = 5 / (111 * math.cos(math.radians((south + north) / 2)))
    full = (int((north - south) // lat_step) + 1) * (int((east - west) // lon_step) + 1)
    assert len(points) < full


def test_zero_area_polygon_has_no_cells():
    ring = [[18.0, 54.0], [18.5, 54.5], [18.0, 54.0]]
    poly = Polygon.from_geojson({"type": "Polygon", "coordinates": [ring]})
    assert point_grid(poly, 5) == []
    assert GridPlanner(FinderConfig()).plan(poly) == []


def test_plan_emits_cell_band_pairs():
    config = FinderConfig(price_buckets=4)
    tasks = GridPlanner(config).plan(Polygon.from_geojson(square(0, 0, 0.1)))
    cells = {t.cell for t in tasks}
    # 11 km square at 5 km spacing -> 3 x 3 points
    assert len(cells) == 9
    assert len(tasks) == 9 * 4
    assert all(c.radius_km == 5 and c.depth == 0 for c in cells)


def test_cell_bbox_corrects_longitude_for_latitude():
    ne_lat, ne_lng, sw_lat, sw_lng = cell_bbox(SearchCell(60.0, 10.0, 11.1))
    assert ne_lat - 60.0 == pytest.approx(0.1)
    assert 60.0 - sw_lat == pytest.approx(0.1)
    assert ne_lng - 10.0 == pytest.approx(0.2)
    assert 10.0 - sw_lng == pytest.approx(0.2)


def test_subdivide_children():
    planner = GridPlanner(FinderConfig())
    parent = SearchCell(54.0, 18.0, 5.0, 0)
    children = planner.subdivide(parent)
    assert len(children) == 4
    assert all(c.radius_km == 2.5 and c.depth == 1 for c in children)
    assert {c.lat > parent.lat for c in children} == {True, False}
    assert {c.lon > parent.lon for c in children} == {True, False}
    assert len(set(children)) == 4


def test_subdivide_stops_at_max_depth_and_min_radius():
    planner = GridPlanner(FinderConfig(max_depth=2, min_radius_km=2))
    assert planner.subdivide(SearchCell(0, 0, 40.0, 2)) == []
    assert planner.subdivide(SearchCell(0, 0, 2.0, 0)) == []

    # Repeated subdivision always bottoms out
    frontier = [SearchCell(0, 0, 100.0, 0)]
    levels = 0
    while frontier:
        frontier = [c for cell in frontier for c in planner.subdivide(cell)]
        levels += 1
    assert levels == 3
