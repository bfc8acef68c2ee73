# labelplacer/core/spatial.py
"""
Obstacle index: shapely STRtree over static obstacles (bulk loaded once) plus a
small, linearly scanned list of dynamic obstacles added during a round.
"""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np
import shapely
from shapely.geometry import Point, box
from shapely.geometry.base import BaseGeometry
from shapely.strtree import STRtree

from labelplacer.core.config import TOUCH_TOLERANCE
from labelplacer.core.types import Obstacle, Point2D


class ObstacleIndex:
    """
    Static obstacles are immutable for the life of the index. Dynamic
    obstacles belong to one round: call clear_dynamic() between rounds.
    """

    def __init__(self, static_obstacles: Iterable[Obstacle]) -> None:
        self.static: list[Obstacle] = list(static_obstacles)
        self._tree = STRtree([o.geometry for o in self.static])
        self._centroids = np.array(
            [(o.geometry.centroid.x, o.geometry.centroid.y) for o in self.static]
        ).reshape(-1, 2)
        self.dynamic: list[Obstacle] = []

    def __len__(self) -> int:
        return len(self.static) + len(self.dynamic)

    # ----- dynamic obstacles -----

    def add_dynamic(self, obstacle: Obstacle) -> None:
        self.dynamic.append(obstacle)

    def clear_dynamic(self) -> None:
        self.dynamic = []

    def with_dynamic(self, dynamic: Iterable[Obstacle]) -> "ObstacleIndex":
        """Shallow view sharing the static tree with its own dynamic list."""
        view = ObstacleIndex.__new__(ObstacleIndex)
        view.static = self.static
        view._tree = self._tree
        view._centroids = self._centroids
        view.dynamic = list(dynamic)
        return view

    # ----- collision queries -----

    def first_collision(self, geom: BaseGeometry) -> Obstacle | None:
        """First static (index order) then dynamic obstacle exactly intersecting geom."""
        hits = self._tree.query(geom, predicate="intersects")
        if len(hits):
            return self.static[int(np.min(hits))]
        for obstacle in self.dynamic:
            if not _envelopes_overlap(geom, obstacle.geometry):
                continue
            if geom.intersects(obstacle.geometry):
                return obstacle
        return None

    def first_collisions(self, geoms: np.ndarray) -> list[Obstacle | None]:
        """Batch first_collision over an array of geometries, same answer per element."""
        n = len(geoms)
        first = np.full(n, -1, dtype=np.int64)
        if n and self.static:
            pairs = self._tree.query(geoms, predicate="intersects")
            for i, j in zip(pairs[0], pairs[1]):
                if first[i] < 0 or j < first[i]:
                    first[i] = j
        out: list[Obstacle | None] = [
            self.static[int(j)] if j >= 0 else None for j in first
        ]
        pending = np.array([o is None for o in out], dtype=bool)
        for obstacle in self.dynamic:
            if not pending.any():
                break
            idx = np.nonzero(pending)[0]
            hit = shapely.intersects(geoms[idx], obstacle.geometry)
            for i in idx[hit]:
                out[int(i)] = obstacle
            pending[idx[hit]] = False
        return out

    # ----- neighbour queries -----

    def touching(self, point: Point2D, tolerance: float = TOUCH_TOLERANCE) -> list[Obstacle]:
        """Obstacles crossing a tiny square window around point."""
        x, y = point
        window = box(x - tolerance, y - tolerance, x + tolerance, y + tolerance)
        hits = sorted(int(i) for i in self._tree.query(window, predicate="intersects"))
        out = [self.static[i] for i in hits]
        out.extend(o for o in self.dynamic if o.geometry.intersects(window))
        return out

    def within_radius(self, point: Point2D, radius: float) -> list[tuple[Obstacle, Point2D, float]]:
        """(obstacle, centroid, distance) for obstacles whose centroid lies within radius."""
        x, y = point
        out: list[tuple[Obstacle, Point2D, float]] = []
        if self.static:
            window = box(x - radius, y - radius, x + radius, y + radius)
            for i in sorted(int(i) for i in self._tree.query(window)):
                cx, cy = self._centroids[i]
                d = math.hypot(cx - x, cy - y)
                if d < radius:
                    out.append((self.static[i], (float(cx), float(cy)), d))
        for obstacle in self.dynamic:
            c = obstacle.geometry.centroid
            d = Point(x, y).distance(c)
            if d < radius:
                out.append((obstacle, (c.x, c.y), d))
        return out


def _envelopes_overlap(a: BaseGeometry, b: BaseGeometry) -> bool:
    ax0, ay0, ax1, ay1 = a.bounds
    bx0, by0, bx1, by1 = b.bounds
    return ax0 <= bx1 and bx0 <= ax1 and ay0 <= by1 and by0 <= ay1
