# labelplacer/core/semantic.py
"""
Semantic grouping of raw text fragments into label tasks.
Recognizes, in this order:
1. Drawing titles: a text sitting on a pair of parallel title-bar lines, plus
   the description text below the pair
2. Index labels: texts above / below a horizontal leader that has one free end
   and one end joined to a single diagonal line
Everything left over stays an Independent task.
"""

from __future__ import annotations

import logging
import re
import statistics
from dataclasses import replace
from enum import Enum
from typing import Iterable

from labelplacer.core.config import (
    CJK_PATTERN,
    DEFAULT_TEXT_HEIGHT,
    LEADER_BAND_FACTOR,
    LEADER_MAX_TEXT_WIDTH_RATIO,
    LEADER_MIN_LENGTH,
    MERGE_SEPARATOR,
    NEAR_AXIS_RATIO,
    SCALE_PATTERN,
    TITLE_ALIGN_TOLERANCE,
    TITLE_DESCRIPTION_FACTOR,
    TITLE_GAP_FACTOR,
    TITLE_LENGTH_TOLERANCE,
    TITLE_LINE_MIN_LENGTH,
    TITLE_SCALE_ZONE_MARGIN,
    TITLE_SCALE_ZONE_WIDTH,
    TITLE_SEARCH_FACTOR,
    TITLE_TALL_TEXT_HEIGHT,
    TOUCH_TOLERANCE,
)
from labelplacer.core.geometry import LocalFrame, build_obstacles
from labelplacer.core.spatial import ObstacleIndex
from labelplacer.core.types import (
    Bounds,
    DrawingEntity,
    LabelTask,
    LineEntity,
    Point2D,
    PolylineEntity,
    SemanticType,
    rotated_corners,
)
from labelplacer.core.validate import filter_placeable_tasks

logger = logging.getLogger(__name__)

_SCALE_RE = re.compile(SCALE_PATTERN)
_CJK_RE = re.compile(CJK_PATTERN)

TitleLine = LineEntity | PolylineEntity


class EndpointType(str, Enum):
    FREE = "Free"
    DIAGONAL = "DiagonalConnection"
    COMPLEX = "ComplexConnection"


def is_scale_text(text: str) -> bool:
    """Scale annotation such as "1:100"; texts containing Chinese never count."""
    return bool(_SCALE_RE.search(text)) and not _CJK_RE.search(text)


def _merged_bounds(tasks: list[LabelTask], template: LabelTask) -> Bounds:
    """
    Un-rotated box, in the template's rotation, covering every member's
    rotated box. Its min corner is the new pivot.
    """
    frame = LocalFrame(template.reference_corner, template.rotation)
    local = [frame.to_local(x, y) for t in tasks for x, y in rotated_corners(t.bounds, t.rotation)]
    umin = min(u for u, _ in local)
    vmin = min(v for _, v in local)
    umax = max(u for u, _ in local)
    vmax = max(v for _, v in local)
    qx, qy = frame.to_world(umin, vmin)
    return (qx, qy, qx + (umax - umin), qy + (vmax - vmin))


def merge_tasks(
    tasks: list[LabelTask],
    semantic_type: SemanticType,
    leader: LineEntity | None = None,
) -> LabelTask:
    """
    One task for several fragments: members ordered top-to-bottom then
    left-to-right, trimmed texts joined by MERGE_SEPARATOR, boxes unioned.
    The first member is the template for id, height, rotation and style.
    """
    ordered = sorted(tasks, key=lambda t: (-t.extents()[1], t.extents()[0]))
    template = ordered[0]
    return LabelTask(
        id=template.id,
        text=MERGE_SEPARATOR.join(t.text.strip() for t in ordered),
        source_text=MERGE_SEPARATOR.join((t.source_text or t.text).strip() for t in ordered),
        source_ids=[sid for t in ordered for sid in t.source_ids],
        bounds=_merged_bounds(ordered, template),
        height=template.height,
        rotation=template.rotation,
        width_factor=template.width_factor,
        oblique=template.oblique,
        semantic_type=semantic_type,
        associated_leader=leader,
        search_range_factor=template.search_range_factor,
    )


def _center(b: Bounds) -> Point2D:
    return ((b[0] + b[2]) / 2.0, (b[1] + b[3]) / 2.0)


def _in_box(p: Point2D, zone: Bounds) -> bool:
    return zone[0] <= p[0] <= zone[2] and zone[1] <= p[1] <= zone[3]


class SemanticGrouper:
    """
    Groups tasks using the line work in entities. The input task list is not
    modified; analyze_and_group() returns a new list.
    """

    def __init__(self, tasks: list[LabelTask], entities: Iterable[DrawingEntity]) -> None:
        self.tasks = filter_placeable_tasks(list(tasks))
        self.entities = list(entities)
        self._by_id = {e.id: e for e in self.entities}
        self._index = ObstacleIndex(build_obstacles(self.entities))
        heights = [t.height for t in self.tasks if t.height > 0]
        self.dominant_height = float(statistics.median(heights)) if heights else DEFAULT_TEXT_HEIGHT

    def analyze_and_group(self) -> list[LabelTask]:
        remaining = list(self.tasks)
        grouped: list[LabelTask] = []
        self._group_titles(remaining, grouped)
        self._group_leaders(remaining, grouped)
        out = grouped + remaining
        logger.info(
            "Grouped %d text fragment(s) into %d task(s) (%d semantic)",
            len(self.tasks),
            len(out),
            len(grouped),
        )
        return sorted(out, key=lambda t: (-t.extents()[1], t.extents()[0]))

    # ----- zone queries -----

    @staticmethod
    def texts_in_zone(zone: Bounds, tasks: list[LabelTask]) -> list[LabelTask]:
        """Tasks whose box center lies inside zone."""
        return [t for t in tasks if _in_box(_center(t.extents()), zone)]

    @staticmethod
    def texts_in_band(ref: Bounds, height: float, above: bool, tasks: list[LabelTask]) -> list[LabelTask]:
        """
        Tasks horizontally overlapping ref whose center lies in the band of
        the given height directly above (or below) ref.
        """
        out = []
        for t in tasks:
            b = t.extents()
            if not (b[0] < ref[2] and b[2] > ref[0]):
                continue
            cy = (b[1] + b[3]) / 2.0
            if above and ref[3] <= cy < ref[3] + height:
                out.append(t)
            elif not above and ref[1] - height < cy <= ref[1]:
                out.append(t)
        return out

    # ----- leaders -----

    def classify_endpoint(self, point: Point2D, self_id: str) -> EndpointType:
        """What touches a leader endpoint besides the leader itself."""
        others: list[str] = []
        for obstacle in self._index.touching(point, TOUCH_TOLERANCE):
            if obstacle.source_id != self_id and obstacle.source_id not in others:
                others.append(obstacle.source_id)
        if not others:
            return EndpointType.FREE
        if len(others) > 1:
            return EndpointType.COMPLEX
        other = self._by_id.get(others[0])
        if isinstance(other, LineEntity) and other.is_diagonal():
            return EndpointType.DIAGONAL
        return EndpointType.COMPLEX

    def is_index_leader(self, line: LineEntity) -> bool:
        ends = {
            self.classify_endpoint(line.start, line.id),
            self.classify_endpoint(line.end, line.id),
        }
        return ends == {EndpointType.FREE, EndpointType.DIAGONAL}

    def potential_leaders(self) -> list[LineEntity]:
        return [
            e
            for e in self.entities
            if isinstance(e, LineEntity) and e.length > LEADER_MIN_LENGTH and e.is_near_horizontal()
        ]

    def _group_leaders(self, remaining: list[LabelTask], grouped: list[LabelTask]) -> None:
        band = self.dominant_height * LEADER_BAND_FACTOR
        for leader in self.potential_leaders():
            if not self.is_index_leader(leader):
                continue
            box = leader.extents()
            max_width = (box[2] - box[0]) * LEADER_MAX_TEXT_WIDTH_RATIO
            for above, kind in ((True, SemanticType.INDEX_ABOVE), (False, SemanticType.INDEX_BELOW)):
                members = [
                    t for t in self.texts_in_band(box, band, above, remaining)
                    if t.extents()[2] - t.extents()[0] <= max_width
                ]
                if not members:
                    continue
                grouped.append(merge_tasks(members, kind, leader))
                for t in members:
                    remaining.remove(t)
                logger.debug("Leader %s: %d text(s) as %s", leader.id, len(members), kind.value)

    # ----- titles -----

    def title_lines(self) -> list[TitleLine]:
        """Near-horizontal lines and polylines long enough to bound a title bar."""
        out: list[TitleLine] = []
        for e in self.entities:
            if isinstance(e, PolylineEntity) and len(e.points) < 2:
                continue
            if not isinstance(e, (LineEntity, PolylineEntity)):
                continue
            if e.length > TITLE_LINE_MIN_LENGTH and e.is_near_horizontal(NEAR_AXIS_RATIO):
                out.append(e)
        return out

    def _is_title_pair(self, top: TitleLine, bottom: TitleLine) -> bool:
        tb, bb = top.extents(), bottom.extents()
        gap = tb[1] - bb[3]
        width = getattr(top, "constant_width", 0.0)
        if not (gap > 0 and gap < width + self.dominant_height * TITLE_GAP_FACTOR):
            return False
        if abs(_center(tb)[0] - _center(bb)[0]) >= TITLE_ALIGN_TOLERANCE:
            return False
        longest = max(top.length, bottom.length)
        return abs(top.length - bottom.length) < longest * TITLE_LENGTH_TOLERANCE

    def find_title_pairs(self) -> list[tuple[TitleLine, TitleLine]]:
        """(top, bottom) pairs; each top takes the first matching bottom in drawing order."""
        lines = self.title_lines()
        pairs = []
        for top in lines:
            for bottom in lines:
                if bottom is not top and self._is_title_pair(top, bottom):
                    pairs.append((top, bottom))
                    break
        return pairs

    def _group_titles(self, remaining: list[LabelTask], grouped: list[LabelTask]) -> None:
        for top, bottom in self.find_title_pairs():
            tb, bb = top.extents(), bottom.extents()
            search_h = getattr(top, "constant_width", 0.0) + self.dominant_height * TITLE_SEARCH_FACTOR
            # From the bottom line up to a narrow band above the top line.
            title_zone = (min(tb[0], bb[0]), bb[3], max(tb[2], bb[2]), tb[3] + search_h)
            found = self.texts_in_zone(title_zone, remaining)
            if not found:
                continue
            title = min(found, key=lambda t: abs(t.extents()[1] - tb[3]))

            right = max(tb[2], bb[2])
            scale_zone = (
                right,
                bb[1] - TITLE_SCALE_ZONE_MARGIN,
                right + TITLE_SCALE_ZONE_WIDTH,
                tb[3] + TITLE_SCALE_ZONE_MARGIN,
            )
            has_scale = any(is_scale_text(t.source_text or t.text) for t in self.texts_in_zone(scale_zone, self.tasks))
            if not (has_scale or title.height >= TITLE_TALL_TEXT_HEIGHT):
                continue

            grouped.append(replace(title, semantic_type=SemanticType.TITLE, source_ids=list(title.source_ids)))
            remaining.remove(title)
            description = self.texts_in_band(
                bb, self.dominant_height * TITLE_DESCRIPTION_FACTOR, False, remaining
            )
            if description:
                grouped.append(merge_tasks(description, SemanticType.TITLE))
                for t in description:
                    remaining.remove(t)
            logger.debug("Title %r on lines %s/%s", title.text, top.id, bottom.id)


def group_tasks(tasks: list[LabelTask], entities: Iterable[DrawingEntity]) -> list[LabelTask]:
    """Convenience wrapper around SemanticGrouper."""
    return SemanticGrouper(tasks, entities).analyze_and_group()
