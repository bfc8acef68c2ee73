# labelplacer/core/types.py
"""
Dataclasses for drawing entities, label tasks, obstacles and placement results.
Drawing entities are the host-neutral stand-ins for CAD primitives; every entity
has an id, a kind tag and extents().
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

from shapely.geometry.base import BaseGeometry

from labelplacer.core.config import DEFAULT_SEARCH_RANGE_FACTOR, NEAR_AXIS_RATIO

Point2D = tuple[float, float]
Bounds = tuple[float, float, float, float]  # (minx, miny, maxx, maxy)


def _extents_of(points: list[Point2D]) -> Bounds:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return (min(xs), min(ys), max(xs), max(ys))


def union_bounds(boxes: list[Bounds]) -> Bounds:
    """Smallest box covering every box in boxes."""
    return (
        min(b[0] for b in boxes),
        min(b[1] for b in boxes),
        max(b[2] for b in boxes),
        max(b[3] for b in boxes),
    )


def rotated_corners(bounds: Bounds, rotation: float) -> list[Point2D]:
    """Four corners of an un-rotated box turned by rotation degrees about its min corner."""
    minx, miny, maxx, maxy = bounds
    rad = math.radians(rotation)
    cos_a, sin_a = math.cos(rad), math.sin(rad)
    out = []
    for x, y in ((minx, miny), (maxx, miny), (maxx, maxy), (minx, maxy)):
        dx, dy = x - minx, y - miny
        out.append((minx + dx * cos_a - dy * sin_a, miny + dx * sin_a + dy * cos_a))
    return out


# ----- Drawing entities -----


@dataclass
class TextEntity:
    """Single- or multi-line text. bounds is the un-rotated box; its min corner is the insertion point."""
    id: str
    text: str
    bounds: Bounds
    height: float
    rotation: float = 0.0  # degrees, counter-clockwise about the insertion point
    width_factor: float = 1.0
    oblique: float = 0.0  # degrees
    kind: ClassVar[str] = "TEXT"

    def corners(self) -> list[Point2D]:
        return rotated_corners(self.bounds, self.rotation)

    def extents(self) -> Bounds:
        return _extents_of(self.corners())


@dataclass
class LineEntity:
    id: str
    start: Point2D
    end: Point2D
    kind: ClassVar[str] = "LINE"

    @property
    def delta(self) -> Point2D:
        return (self.end[0] - self.start[0], self.end[1] - self.start[1])

    @property
    def length(self) -> float:
        return math.hypot(*self.delta)

    def is_near_horizontal(self, ratio: float = NEAR_AXIS_RATIO) -> bool:
        return abs(self.delta[1]) < self.length * ratio

    def is_diagonal(self, ratio: float = NEAR_AXIS_RATIO) -> bool:
        """Neither near-horizontal nor near-vertical."""
        dx, dy = self.delta
        return abs(dy) > self.length * ratio and abs(dx) > self.length * ratio

    def extents(self) -> Bounds:
        return _extents_of([self.start, self.end])


@dataclass
class ArcEntity:
    """Circular arc, counter-clockwise from start_angle to end_angle (degrees)."""
    id: str
    center: Point2D
    radius: float
    start_angle: float
    end_angle: float
    kind: ClassVar[str] = "ARC"

    def extents(self) -> Bounds:
        # Conservative: full circle box.
        cx, cy = self.center
        r = self.radius
        return (cx - r, cy - r, cx + r, cy + r)


@dataclass
class CircleEntity:
    id: str
    center: Point2D
    radius: float
    kind: ClassVar[str] = "CIRCLE"

    def extents(self) -> Bounds:
        cx, cy = self.center
        r = self.radius
        return (cx - r, cy - r, cx + r, cy + r)


@dataclass
class PolylineEntity:
    """Straight-segment polyline; constant_width > 0 marks a thick (title bar) line."""
    id: str
    points: list[Point2D]
    closed: bool = False
    constant_width: float = 0.0
    kind: ClassVar[str] = "POLYLINE"

    @property
    def start(self) -> Point2D:
        return self.points[0]

    @property
    def end(self) -> Point2D:
        return self.points[-1]

    def segments(self) -> list[LineEntity]:
        """Explode into line segments carrying the polyline id."""
        pts = list(self.points)
        if self.closed and len(pts) > 2 and pts[0] != pts[-1]:
            pts.append(pts[0])
        return [LineEntity(id=self.id, start=a, end=b) for a, b in zip(pts, pts[1:])]

    @property
    def length(self) -> float:
        return sum(s.length for s in self.segments())

    def is_near_horizontal(self, ratio: float = NEAR_AXIS_RATIO) -> bool:
        return abs(self.end[1] - self.start[1]) < self.length * ratio

    def extents(self) -> Bounds:
        return _extents_of(self.points)


HatchEdge = Union[LineEntity, ArcEntity]


@dataclass
class HatchEntity:
    """Filled region; each loop is an ordered list of line/arc edges."""
    id: str
    loops: list[list[HatchEdge]]
    kind: ClassVar[str] = "HATCH"

    @classmethod
    def from_vertices(cls, id: str, vertices: list[Point2D]) -> "HatchEntity":
        """One loop of straight edges through vertices."""
        n = len(vertices)
        edges: list[HatchEdge] = [
            LineEntity(id=id, start=vertices[i], end=vertices[(i + 1) % n]) for i in range(n)
        ]
        return cls(id=id, loops=[edges])

    def extents(self) -> Bounds:
        boxes = [edge.extents() for loop in self.loops for edge in loop]
        return union_bounds(boxes) if boxes else (0.0, 0.0, 0.0, 0.0)


@dataclass
class CompositeEntity:
    """Block reference or dimension, already exploded into child entities."""
    id: str
    children: list["DrawingEntity"]
    source_kind: str = "INSERT"
    kind: ClassVar[str] = "COMPOSITE"

    def extents(self) -> Bounds:
        boxes = [c.extents() for c in self.children]
        return union_bounds(boxes) if boxes else (0.0, 0.0, 0.0, 0.0)


DrawingEntity = Union[
    TextEntity, LineEntity, ArcEntity, CircleEntity, PolylineEntity, HatchEntity, CompositeEntity
]


# ----- Label tasks -----


class SemanticType(str, Enum):
    INDEPENDENT = "Independent"
    TITLE = "Title"
    INDEX_ABOVE = "IndexAbove"
    INDEX_BELOW = "IndexBelow"


class TaskState(str, Enum):
    UNATTEMPTED = "Unattempted"
    PLACED = "Placed"
    FAILED = "Failed"
    MANUALLY_OVERRIDDEN = "ManuallyOverridden"


@dataclass(eq=False)
class LabelTask:
    """
    One label needing a final position. bounds is the source text box in its
    un-rotated frame; positions refer to its min (reference) corner.
    """
    id: str
    text: str
    bounds: Bounds
    height: float
    rotation: float = 0.0
    width_factor: float = 1.0
    oblique: float = 0.0
    source_text: str | None = None
    source_ids: list[str] = field(default_factory=list)
    semantic_type: SemanticType = SemanticType.INDEPENDENT
    associated_leader: LineEntity | None = None
    search_range_factor: float = DEFAULT_SEARCH_RANGE_FACTOR

    # results
    algorithm_position: Point2D | None = None
    user_position: Point2D | None = None
    is_manually_moved: bool = False
    failure_reason: str | None = None
    collision_details: dict[Point2D, str] = field(default_factory=dict)
    attempted: bool = False
    _measured: tuple | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.source_text is None:
            self.source_text = self.text
        if not self.source_ids:
            self.source_ids = [self.id]

    @classmethod
    def from_text_entity(cls, entity: TextEntity, text: str | None = None) -> "LabelTask":
        """Task for a text entity; text replaces the displayed string (e.g. a translation)."""
        return cls(
            id=entity.id,
            text=entity.text if text is None else text,
            source_text=entity.text,
            bounds=entity.bounds,
            height=entity.height,
            rotation=entity.rotation,
            width_factor=entity.width_factor or 1.0,
            oblique=entity.oblique,
        )

    @property
    def width(self) -> float:
        return self.bounds[2] - self.bounds[0]

    @property
    def box_height(self) -> float:
        return self.bounds[3] - self.bounds[1]

    def extents(self) -> Bounds:
        """World box of the original (rotated) text."""
        return _extents_of(rotated_corners(self.bounds, self.rotation))

    @property
    def reference_corner(self) -> Point2D:
        return (self.bounds[0], self.bounds[1])

    @property
    def step_height(self) -> float:
        """Text height, or the box height when the text height is unknown."""
        return self.height if self.height > 0 else self.box_height

    def footprint_size(self) -> tuple[float, float]:
        """
        (width, height) of the label to place. Replaced text is measured once
        and cached until the text, height or width factor changes.
        """
        if self.text == self.source_text:
            return (self.width, self.box_height)
        key = (self.text, self.step_height, self.width_factor, self.box_height)
        if self._measured is None or self._measured[0] != key:
            from labelplacer.core.text_metrics import measure_text_units

            w, h = measure_text_units(self.text, self.step_height, self.width_factor)
            self._measured = (key, (w, max(h, self.box_height)))
        return self._measured[1]

    @property
    def current_position(self) -> Point2D | None:
        """Position downstream consumers should use: a manual override wins."""
        if self.is_manually_moved and self.user_position is not None:
            return self.user_position
        return self.algorithm_position

    @property
    def state(self) -> TaskState:
        if self.is_manually_moved and self.user_position is not None:
            return TaskState.MANUALLY_OVERRIDDEN
        if self.algorithm_position is not None:
            return TaskState.PLACED
        if self.attempted:
            return TaskState.FAILED
        return TaskState.UNATTEMPTED

    def move_to(self, position: Point2D) -> None:
        self.user_position = (float(position[0]), float(position[1]))
        self.is_manually_moved = True

    def reset_position(self) -> None:
        self.user_position = self.algorithm_position
        self.is_manually_moved = False


# ----- Obstacles and results -----


@dataclass(frozen=True)
class Obstacle:
    """Geometry a label must not overlap, tagged with the id of its source entity or task."""
    geometry: BaseGeometry
    source_id: str


@dataclass
class CandidateSolution:
    position: Point2D
    cost: float


@dataclass(frozen=True)
class PlacementResult:
    """Outcome for one task in the winning round."""
    task_id: str
    position: Point2D | None
    failure_reason: str | None = None
    collision_log: dict[Point2D, str] = field(default_factory=dict)
    bbox: list[Point2D] | None = None  # 4 corners of the placed footprint
    cost: float | None = None


@dataclass
class RoundResult:
    """One independent full assignment, indexed like the caller's task list."""
    positions: list[Point2D | None]
    failure_reasons: list[str | None]
    collision_logs: list[dict[Point2D, str]]
    order: list[int]
    score: float = 0.0
    costs: list[float | None] = field(default_factory=list)


@dataclass
class LayoutSummary:
    rounds: int
    placed_count: int
    failed_count: int
    best_score: float
    worst_score: float
    results: list[PlacementResult] = field(default_factory=list)
