# labelplacer/core/geometry.py
"""
Geometry adapter: drawing entities -> shapely Polygon / LineString for
intersection testing. Also the rotation-aligned local frame used by the
candidate search and label footprint polygons.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Iterator

import numpy as np
import shapely
from shapely.geometry import LineString, Polygon, box
from shapely.geometry.base import BaseGeometry

from labelplacer.core.config import ARC_SEGMENTS, MIN_RING_COORDS, POINT_TOLERANCE
from labelplacer.core.types import (
    ArcEntity,
    CircleEntity,
    CompositeEntity,
    DrawingEntity,
    HatchEntity,
    LabelTask,
    LineEntity,
    Obstacle,
    Point2D,
    PolylineEntity,
    TextEntity,
)

logger = logging.getLogger(__name__)


def tessellate_arc(
    center: Point2D,
    radius: float,
    start_deg: float,
    end_deg: float,
    segments: int = ARC_SEGMENTS,
) -> list[Point2D]:
    """segments + 1 points counter-clockwise from start_deg to end_deg."""
    start = math.radians(start_deg)
    end = math.radians(end_deg)
    if end <= start:
        end += 2 * math.pi
    cx, cy = center
    return [
        (
            cx + radius * math.cos(start + (end - start) * i / segments),
            cy + radius * math.sin(start + (end - start) * i / segments),
        )
        for i in range(segments + 1)
    ]


def _same_point(a: Point2D, b: Point2D) -> bool:
    return abs(a[0] - b[0]) <= POINT_TOLERANCE and abs(a[1] - b[1]) <= POINT_TOLERANCE


def _loop_coords(loop: list) -> list[Point2D]:
    """Ring through every edge in order; vertices shared by consecutive edges appear once."""
    coords: list[Point2D] = []
    for edge in loop:
        if isinstance(edge, LineEntity):
            pts = [edge.start, edge.end]
        elif isinstance(edge, ArcEntity):
            pts = tessellate_arc(edge.center, edge.radius, edge.start_angle, edge.end_angle)
        else:
            continue
        for p in pts:
            if not coords or not _same_point(coords[-1], p):
                coords.append(p)
    if len(coords) > 1 and _same_point(coords[0], coords[-1]):
        coords.pop()
    if coords:
        coords.append(coords[0])
    return coords


def _raw_geometries(entity: DrawingEntity) -> Iterator[BaseGeometry]:
    if isinstance(entity, TextEntity):
        yield box(*entity.extents())
    elif isinstance(entity, HatchEntity):
        for loop in entity.loops:
            coords = _loop_coords(loop)
            if len(coords) >= MIN_RING_COORDS:
                yield Polygon(coords)
    elif isinstance(entity, PolylineEntity):
        for segment in entity.segments():
            yield from _raw_geometries(segment)
    elif isinstance(entity, CompositeEntity):
        for child in entity.children:
            yield from _raw_geometries(child)
    elif isinstance(entity, LineEntity):
        yield LineString([entity.start, entity.end])
    elif isinstance(entity, ArcEntity):
        yield LineString(tessellate_arc(entity.center, entity.radius, entity.start_angle, entity.end_angle))
    elif isinstance(entity, CircleEntity):
        pts = tessellate_arc(entity.center, entity.radius, 0.0, 360.0)
        pts[-1] = pts[0]
        yield Polygon(pts)


def entity_to_geometries(entity: DrawingEntity) -> Iterator[BaseGeometry]:
    """
    Yield zero or more valid geometries for an entity. Composite entities are
    exploded and flattened; invalid or self-intersecting shapes are dropped;
    unknown entity types yield nothing.
    """
    for geom in _raw_geometries(entity):
        if geom.is_empty or not geom.is_valid:
            logger.debug("Dropping invalid geometry from entity %s", getattr(entity, "id", "?"))
            continue
        yield geom


def build_obstacles(entities: Iterable[DrawingEntity]) -> list[Obstacle]:
    """Flatten entities into obstacles tagged with the top-level entity id."""
    out: list[Obstacle] = []
    for entity in entities:
        for geom in entity_to_geometries(entity):
            out.append(Obstacle(geometry=geom, source_id=entity.id))
    return out


class LocalFrame:
    """
    Frame rotated by angle_deg about origin. Local u runs along the text
    baseline, v along the text's up direction.
    """

    def __init__(self, origin: Point2D, angle_deg: float = 0.0) -> None:
        self.origin = origin
        rad = math.radians(angle_deg)
        self.cos_a = math.cos(rad)
        self.sin_a = math.sin(rad)

    def to_world(self, u: float, v: float) -> Point2D:
        ox, oy = self.origin
        return (ox + u * self.cos_a - v * self.sin_a, oy + u * self.sin_a + v * self.cos_a)

    def to_local(self, x: float, y: float) -> Point2D:
        dx = x - self.origin[0]
        dy = y - self.origin[1]
        return (dx * self.cos_a + dy * self.sin_a, -dx * self.sin_a + dy * self.cos_a)

    def to_world_array(self, uv: np.ndarray) -> np.ndarray:
        """(N, 2) local -> (N, 2) world."""
        rot = np.array([[self.cos_a, -self.sin_a], [self.sin_a, self.cos_a]])
        return uv @ rot.T + np.asarray(self.origin)


def task_frame(task: LabelTask) -> LocalFrame:
    """Frame pivoting at the task's reference corner, aligned with its rotation."""
    return LocalFrame(task.reference_corner, task.rotation)


def footprint_local_corners(task: LabelTask) -> np.ndarray:
    """(4, 2) corners of the label footprint relative to its reference corner."""
    w, h = task.footprint_size()
    # Obliqued text leans right by h * tan(oblique).
    w = w + h * abs(math.tan(math.radians(task.oblique)))
    return np.array([(0.0, 0.0), (w, 0.0), (w, h), (0.0, h)])


def footprint_polygon(task: LabelTask, position: Point2D) -> Polygon:
    """Label footprint with its reference corner at `position` (world)."""
    frame = LocalFrame(position, task.rotation)
    return Polygon(frame.to_world_array(footprint_local_corners(task)))


def footprint_polygons(task: LabelTask, positions: np.ndarray) -> np.ndarray:
    """Vectorized footprint_polygon for (N, 2) world positions."""
    if len(positions) == 0:
        return np.empty(0, dtype=object)
    frame = LocalFrame((0.0, 0.0), task.rotation)
    rel = frame.to_world_array(footprint_local_corners(task))
    rings = positions[:, None, :] + rel[None, :, :]
    return shapely.polygons(rings)
