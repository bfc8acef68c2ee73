# tests/test_geometry.py
"""
Deterministic tests for the geometry adapter: entity -> shapely conversion,
arc tessellation, hatch round trip, local frame and label footprints.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from labelplacer.core.geometry import (
    LocalFrame,
    build_obstacles,
    entity_to_geometries,
    footprint_polygon,
    footprint_polygons,
    tessellate_arc,
)
from labelplacer.core.types import (
    ArcEntity,
    CircleEntity,
    CompositeEntity,
    HatchEntity,
    LabelTask,
    LineEntity,
    PolylineEntity,
    TextEntity,
)


def test_tessellate_arc_endpoints_and_count() -> None:
    pts = tessellate_arc((0.0, 0.0), 2.0, 0.0, 90.0, segments=32)
    assert len(pts) == 33
    assert pts[0] == pytest.approx((2.0, 0.0))
    assert pts[-1][0] == pytest.approx(0.0, abs=1e-12)
    assert pts[-1][1] == pytest.approx(2.0)


def test_tessellate_arc_wraps_when_end_before_start() -> None:
    pts = tessellate_arc((0.0, 0.0), 1.0, 270.0, 90.0, segments=4)
    # 270 -> 450 passes through 0 degrees at the midpoint
    assert pts[2] == pytest.approx((1.0, 0.0))


def test_text_becomes_bounding_rectangle() -> None:
    text = TextEntity(id="t", text="AB", bounds=(1.0, 2.0, 5.0, 4.0), height=2.0)
    geoms = list(entity_to_geometries(text))
    assert len(geoms) == 1
    assert geoms[0].geom_type == "Polygon"
    assert geoms[0].bounds == pytest.approx((1.0, 2.0, 5.0, 4.0))
    assert geoms[0].area == pytest.approx(8.0)


def test_line_arc_circle_shapes() -> None:
    line = list(entity_to_geometries(LineEntity(id="l", start=(0, 0), end=(3, 4))))
    assert line[0].geom_type == "LineString"
    assert line[0].length == pytest.approx(5.0)

    arc = list(entity_to_geometries(ArcEntity(id="a", center=(0, 0), radius=1.0, start_angle=0, end_angle=180)))
    assert arc[0].geom_type == "LineString"
    assert len(arc[0].coords) == 33

    circle = list(entity_to_geometries(CircleEntity(id="c", center=(0, 0), radius=1.0)))
    assert circle[0].geom_type == "Polygon"
    assert circle[0].is_valid
    assert circle[0].area == pytest.approx(math.pi, rel=0.01)


def test_polyline_and_composite_are_flattened() -> None:
    poly = PolylineEntity(id="p", points=[(0, 0), (10, 0), (10, 10)], closed=True)
    geoms = list(entity_to_geometries(poly))
    assert len(geoms) == 3
    assert all(g.geom_type == "LineString" for g in geoms)

    block = CompositeEntity(
        id="blk",
        children=[
            LineEntity(id="c1", start=(0, 0), end=(1, 0)),
            CompositeEntity(id="inner", children=[CircleEntity(id="c2", center=(5, 5), radius=1)]),
        ],
    )
    geoms = list(entity_to_geometries(block))
    assert [g.geom_type for g in geoms] == ["LineString", "Polygon"]


def test_invalid_and_unknown_entities_yield_nothing() -> None:
    bowtie = HatchEntity.from_vertices("h", [(0, 0), (10, 10), (10, 0), (0, 10)])
    assert list(entity_to_geometries(bowtie)) == []
    assert list(entity_to_geometries(object())) == []


def test_hatch_round_trip_reproduces_vertices() -> None:
    vertices = [(0.0, 0.0), (4.0, 0.0), (4.0, 3.0), (0.0, 3.0)]
    hatch = HatchEntity.from_vertices("h", vertices)
    (geom,) = list(entity_to_geometries(hatch))
    coords = list(geom.exterior.coords)
    assert coords[0] == coords[-1]
    for got, want in zip(coords[:-1], vertices):
        assert got == pytest.approx(want)


def test_adapter_is_idempotent() -> None:
    hatch = HatchEntity.from_vertices("h", [(0.0, 0.0), (4.0, 0.0), (4.0, 3.0), (0.0, 3.0)])
    first = list(entity_to_geometries(hatch))
    second = list(entity_to_geometries(hatch))
    assert len(first) == len(second) == 1
    assert first[0].equals_exact(second[0], 0.0)


def test_hatch_with_arc_edge_is_closed_polygon() -> None:
    loop = [
        LineEntity(id="h", start=(-1.0, 0.0), end=(1.0, 0.0)),
        ArcEntity(id="h", center=(0.0, 0.0), radius=1.0, start_angle=0.0, end_angle=180.0),
    ]
    (geom,) = list(entity_to_geometries(HatchEntity(id="h", loops=[loop])))
    assert geom.is_valid
    assert geom.area == pytest.approx(math.pi / 2, rel=0.01)
    coords = list(geom.exterior.coords)
    assert any(c == pytest.approx((1.0, 0.0)) for c in coords)
    assert any(c == pytest.approx((-1.0, 0.0)) for c in coords)
    assert geom.bounds == pytest.approx((-1.0, 0.0, 1.0, 1.0))


def test_build_obstacles_tags_top_level_id() -> None:
    block = CompositeEntity(
        id="blk",
        children=[LineEntity(id="c1", start=(0, 0), end=(1, 0)), LineEntity(id="c2", start=(0, 1), end=(1, 1))],
    )
    obstacles = build_obstacles([block, LineEntity(id="solo", start=(0, 0), end=(0, 1))])
    assert [o.source_id for o in obstacles] == ["blk", "blk", "solo"]


def test_local_frame_round_trip() -> None:
    frame = LocalFrame((3.0, -2.0), 30.0)
    x, y = frame.to_world(4.0, 1.5)
    u, v = frame.to_local(x, y)
    assert (u, v) == pytest.approx((4.0, 1.5))
    arr = frame.to_world_array(np.array([[4.0, 1.5]]))
    assert tuple(arr[0]) == pytest.approx((x, y))


def test_footprint_polygon_rotated_about_reference_corner() -> None:
    task = LabelTask(id="t", text="X", bounds=(0.0, 0.0, 4.0, 1.0), height=1.0, rotation=90.0)
    poly = footprint_polygon(task, (10.0, 10.0))
    minx, miny, maxx, maxy = poly.bounds
    assert (minx, miny, maxx, maxy) == pytest.approx((9.0, 10.0, 10.0, 14.0))


def test_footprint_polygons_match_scalar_version() -> None:
    task = LabelTask(id="t", text="X", bounds=(0.0, 0.0, 4.0, 1.0), height=1.0, rotation=25.0)
    positions = np.array([[0.0, 0.0], [3.0, 7.0]])
    polys = footprint_polygons(task, positions)
    for poly, pos in zip(polys, positions):
        assert poly.equals_exact(footprint_polygon(task, (pos[0], pos[1])), 1e-9)


def test_rotated_text_becomes_axis_aligned_box() -> None:
    text = TextEntity(id="t", text="AB", bounds=(0.0, 0.0, 4.0, 2.0), height=2.0, rotation=90.0)
    (geom,) = list(entity_to_geometries(text))
    assert geom.bounds == pytest.approx((-2.0, 0.0, 0.0, 4.0))
    assert geom.area == pytest.approx(8.0)


def test_text_inside_dimension_becomes_obstacle() -> None:
    dimension = CompositeEntity(
        id="dim",
        children=[
            LineEntity(id="dim:0", start=(0.0, 0.0), end=(30.0, 0.0)),
            TextEntity(id="dim:1", text="30", bounds=(12.0, 1.0, 16.0, 3.5), height=2.5),
        ],
        source_kind="DIMENSION",
    )
    obstacles = build_obstacles([dimension])
    assert [o.source_id for o in obstacles] == ["dim", "dim"]
    assert obstacles[1].geometry.geom_type == "Polygon"
    assert obstacles[1].geometry.bounds == pytest.approx((12.0, 1.0, 16.0, 3.5))
