# labelplacer/core/scoring.py
"""
Composite per-candidate cost and full-layout score. Lower is better.
cost = distance * WEIGHT_DISTANCE - semantic - avoidance - alignment
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from labelplacer.core.candidates import IsolationProfile, isolation_profile
from labelplacer.core.config import (
    ALIGNMENT_BONUS,
    AVOID_HORIZONTAL_BONUS,
    AVOID_VERTICAL_BONUS,
    DIAGONAL_SLANT_BONUS,
    DIAGONAL_STRAIGHT_BONUS,
    DISPERSION_WEIGHT,
    FAILURE_PENALTY,
    INDEX_SIDE_BONUS,
    INDEX_WRONG_SIDE_PENALTY,
    SIDE_EPSILON,
    TITLE_CENTER_BONUS,
    TITLE_NOT_BELOW_BONUS,
    VERTICAL_ALIGN_TOLERANCE,
    WEIGHT_DISTANCE,
)
from labelplacer.core.geometry import (
    LocalFrame,
    footprint_local_corners,
    footprint_polygon,
    task_frame,
)
from labelplacer.core.spatial import ObstacleIndex
from labelplacer.core.types import LabelTask, Obstacle, Point2D, SemanticType

_INDEX_TYPES = (SemanticType.INDEX_ABOVE, SemanticType.INDEX_BELOW)


@dataclass(frozen=True)
class ScoringContext:
    """Immutable per-task inputs shared by every candidate of that task."""
    task: LabelTask
    frame: LocalFrame
    profile: IsolationProfile
    footprint_w: float
    footprint_h: float
    corner_offsets: np.ndarray  # (4, 2) world offsets of footprint corners
    has_partner: bool = False


def make_context(
    task: LabelTask,
    index: ObstacleIndex,
    has_partner: bool = False,
) -> ScoringContext:
    corners = footprint_local_corners(task)
    offsets = LocalFrame((0.0, 0.0), task.rotation).to_world_array(corners)
    return ScoringContext(
        task=task,
        frame=task_frame(task),
        profile=isolation_profile(task, index),
        footprint_w=float(corners[1, 0]),
        footprint_h=float(corners[2, 1]),
        corner_offsets=offsets,
        has_partner=has_partner,
    )


def leader_partners(tasks: list[LabelTask]) -> list[bool]:
    """For each task: True if an opposite-side index task shares its leader."""
    sides: dict[str, set[SemanticType]] = {}
    for t in tasks:
        if t.semantic_type in _INDEX_TYPES and t.associated_leader is not None:
            sides.setdefault(t.associated_leader.id, set()).add(t.semantic_type)
    out = []
    for t in tasks:
        if t.semantic_type in _INDEX_TYPES and t.associated_leader is not None:
            out.append(len(sides[t.associated_leader.id]) > 1)
        else:
            out.append(False)
    return out


def _sign(value: float) -> int:
    if value > SIDE_EPSILON:
        return 1
    if value < -SIDE_EPSILON:
        return -1
    return 0


def semantic_score(ctx: ScoringContext, position: Point2D, du: float, dv: float) -> float:
    """Bonus (or penalty, when negative) for respecting the task's semantic role."""
    task = ctx.task
    if task.semantic_type in _INDEX_TYPES and task.associated_leader is not None:
        leader = task.associated_leader
        leader_y = (leader.start[1] + leader.end[1]) / 2.0
        ys = position[1] + ctx.corner_offsets[:, 1]
        if task.semantic_type == SemanticType.INDEX_ABOVE:
            on_own_side = float(ys.min()) >= leader_y - SIDE_EPSILON
        else:
            on_own_side = float(ys.max()) <= leader_y + SIDE_EPSILON
        if ctx.has_partner:
            return 0.0 if on_own_side else -INDEX_WRONG_SIDE_PENALTY
        return INDEX_SIDE_BONUS if on_own_side else 0.0
    if task.semantic_type == SemanticType.TITLE:
        score = TITLE_NOT_BELOW_BONUS if dv >= -SIDE_EPSILON else 0.0
        w = task.width
        if w > 0:
            off_u = abs(du + ctx.footprint_w / 2.0 - w / 2.0)
            score += TITLE_CENTER_BONUS * max(0.0, 1.0 - off_u / (0.5 * w))
        return score
    return 0.0


def avoidance_score(ctx: ScoringContext, du: float, dv: float) -> float:
    """Reward moving toward the more open sides of the isolation profile."""
    task = ctx.task
    w = task.width if task.width > 0 else ctx.footprint_w
    off_u = du + ctx.footprint_w / 2.0 - task.width / 2.0
    off_v = dv + ctx.footprint_h / 2.0 - task.box_height / 2.0
    move_h, move_v = _sign(off_u), _sign(off_v)
    vo, ho = ctx.profile.vertical_open, ctx.profile.horizontal_open
    score = 0.0
    if vo != 0 and move_v == vo:
        score += AVOID_VERTICAL_BONUS
    if ho != 0 and move_h == ho:
        score += AVOID_HORIZONTAL_BONUS
    if ctx.profile.is_diagonal and move_v == vo:
        if abs(off_u) <= VERTICAL_ALIGN_TOLERANCE * w:
            score += DIAGONAL_STRAIGHT_BONUS
        elif move_h == ho:
            score += DIAGONAL_SLANT_BONUS
    return score


def alignment_score(ctx: ScoringContext, du: float) -> float:
    """Keep the edge on the closing side flush with the original edge."""
    task = ctx.task
    w = task.width
    if w <= 0:
        return 0.0
    ho = ctx.profile.horizontal_open
    if ho > 0:
        offset = abs(du)
    elif ho < 0:
        offset = abs(du + ctx.footprint_w - w)
    else:
        return 0.0
    return ALIGNMENT_BONUS * max(0.0, 1.0 - offset / w)


def candidate_cost(ctx: ScoringContext, position: Point2D) -> float:
    """Composite cost of placing the task's reference corner at position."""
    du, dv = ctx.frame.to_local(position[0], position[1])
    distance = math.hypot(du, dv)
    return (
        distance * WEIGHT_DISTANCE
        - semantic_score(ctx, position, du, dv)
        - avoidance_score(ctx, du, dv)
        - alignment_score(ctx, du)
    )


def score_candidates(ctx: ScoringContext, positions: np.ndarray) -> np.ndarray:
    """Costs for an (N, 2) block of positions, evaluated one candidate at a time."""
    return np.array([candidate_cost(ctx, (float(x), float(y))) for x, y in positions])


def placed_bounds_area(footprints: list) -> float:
    """Area of the bounding box of all placed footprints."""
    if not footprints:
        return 0.0
    boxes = np.array([f.bounds for f in footprints])
    min_x, min_y = boxes[:, 0].min(), boxes[:, 1].min()
    max_x, max_y = boxes[:, 2].max(), boxes[:, 3].max()
    return float((max_x - min_x) * (max_y - min_y))


def score_full_layout(
    tasks: list[LabelTask],
    positions: list[Point2D | None],
    index: ObstacleIndex,
    partners: list[bool] | None = None,
) -> tuple[float, list[float | None]]:
    """
    Sum of each placed task's cost (isolation recomputed against the final
    placed set), FAILURE_PENALTY per unplaced task, and DISPERSION_WEIGHT times
    the bounding area of all placed labels. Returns (score, per-task costs).
    """
    if partners is None:
        partners = leader_partners(tasks)
    footprints = {
        i: footprint_polygon(t, p) for i, (t, p) in enumerate(zip(tasks, positions)) if p is not None
    }
    total = 0.0
    costs: list[float | None] = []
    for i, task in enumerate(tasks):
        pos = positions[i]
        if pos is None:
            total += FAILURE_PENALTY
            costs.append(None)
            continue
        others = [Obstacle(geometry=g, source_id=tasks[j].id) for j, g in footprints.items() if j != i]
        ctx = make_context(task, index.with_dynamic(others), has_partner=partners[i])
        cost = candidate_cost(ctx, pos)
        costs.append(cost)
        total += cost
    total += DISPERSION_WEIGHT * placed_bounds_area(list(footprints.values()))
    return total, costs
