# labelplacer/core/placement.py
"""
Per-task placement search: enumerate grid candidates, prune collisions against
static + dynamic obstacles, score the safe ones and pick at random from the
elite (top-K lowest cost) set. Never raises for an unplaceable task.
"""

from __future__ import annotations

from concurrent.futures import Executor
from dataclasses import dataclass, field
from functools import partial

import numpy as np

from labelplacer.core.candidates import generate_candidate_points
from labelplacer.core.config import ELITE_SIZE, PARALLEL_MIN_CANDIDATES
from labelplacer.core.error_codes import (
    ALL_CANDIDATES_COLLIDE,
    NO_CANDIDATES_IN_WINDOW,
    user_message,
)
from labelplacer.core.geometry import footprint_polygon, footprint_polygons
from labelplacer.core.scoring import ScoringContext, make_context, score_candidates
from labelplacer.core.spatial import ObstacleIndex
from labelplacer.core.types import CandidateSolution, LabelTask, Obstacle, Point2D


@dataclass
class TaskOutcome:
    """Result of one task's search within one round."""
    position: Point2D | None
    failure_key: str | None = None
    failure_reason: str | None = None
    collision_log: dict[Point2D, str] = field(default_factory=dict)
    elite: list[CandidateSolution] = field(default_factory=list)

    @property
    def placed(self) -> bool:
        return self.position is not None


def check_position(task: LabelTask, position: Point2D, index: ObstacleIndex) -> Obstacle | None:
    """
    Collision test for the task footprint at position: the same check the
    optimizer uses, for live feedback while a user drags a label.
    """
    return index.first_collision(footprint_polygon(task, position))


def _score_safe_candidates(
    ctx: ScoringContext,
    safe: np.ndarray,
    executor: Executor | None,
    workers: int,
) -> np.ndarray:
    if executor is None or workers <= 1 or len(safe) < PARALLEL_MIN_CANDIDATES:
        return score_candidates(ctx, safe)
    chunks = np.array_split(safe, workers)
    parts = list(executor.map(partial(score_candidates, ctx), chunks))
    return np.concatenate(parts)


def select_elite(costs: np.ndarray, k: int = ELITE_SIZE) -> np.ndarray:
    """Indices of the k lowest costs; ties keep candidate order."""
    return np.argsort(costs, kind="stable")[:k]


def find_best_position(
    task: LabelTask,
    index: ObstacleIndex,
    rng: np.random.Generator,
    has_partner: bool = False,
    search_range_factor: float | None = None,
    executor: Executor | None = None,
    workers: int = 1,
) -> TaskOutcome:
    """
    Search the task's window for a non-colliding position. rng is consumed
    only for the final elite pick, and only when at least one safe candidate
    exists.
    """
    candidates = generate_candidate_points(task, search_range_factor)
    if len(candidates) == 0:
        return TaskOutcome(
            position=None,
            failure_key=NO_CANDIDATES_IN_WINDOW,
            failure_reason=user_message(NO_CANDIDATES_IN_WINDOW),
        )

    polys = footprint_polygons(task, candidates)
    hits = index.first_collisions(polys)
    collision_log: dict[Point2D, str] = {}
    safe_mask = np.ones(len(candidates), dtype=bool)
    for i, hit in enumerate(hits):
        if hit is not None:
            x, y = candidates[i]
            collision_log[(float(x), float(y))] = hit.source_id
            safe_mask[i] = False
    safe = candidates[safe_mask]

    if len(safe) == 0:
        return TaskOutcome(
            position=None,
            failure_key=ALL_CANDIDATES_COLLIDE,
            failure_reason=user_message(ALL_CANDIDATES_COLLIDE, count=len(candidates)),
            collision_log=collision_log,
        )

    ctx = make_context(task, index, has_partner=has_partner)
    costs = _score_safe_candidates(ctx, safe, executor, workers)
    elite_idx = select_elite(costs)
    elite = [
        CandidateSolution(position=(float(safe[i][0]), float(safe[i][1])), cost=float(costs[i]))
        for i in elite_idx
    ]
    pick = elite[int(rng.integers(len(elite)))]
    return TaskOutcome(position=pick.position, collision_log=collision_log, elite=elite)
