# labelplacer/core/layout.py
"""
Multi-round layout search. Each round places every task in a fresh random
order against the static index plus the labels placed earlier in that round;
the lowest-scoring round wins and is written back onto the caller's tasks.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Iterable

import numpy as np

from labelplacer.core.config import DEFAULT_ROUNDS, DEFAULT_SEARCH_RANGE_FACTOR, SEED
from labelplacer.core.geometry import build_obstacles, footprint_polygon
from labelplacer.core.placement import find_best_position
from labelplacer.core.scoring import leader_partners, score_full_layout
from labelplacer.core.spatial import ObstacleIndex
from labelplacer.core.types import (
    DrawingEntity,
    LabelTask,
    LayoutSummary,
    Obstacle,
    PlacementResult,
    RoundResult,
)
from labelplacer.core.validate import validate_run_config

logger = logging.getLogger(__name__)


def default_workers() -> int:
    """Available cores minus one, at least one."""
    return max(1, (os.cpu_count() or 2) - 1)


def run_single_round(
    tasks: list[LabelTask],
    index: ObstacleIndex,
    rng: np.random.Generator,
    partners: list[bool],
    executor: Executor | None = None,
    workers: int = 1,
) -> RoundResult:
    """One independent attempt; dynamic obstacles live only inside this call."""
    n = len(tasks)
    order = [int(i) for i in rng.permutation(n)]
    round_index = index.with_dynamic([])
    positions: list = [None] * n
    failures: list[str | None] = [None] * n
    logs: list[dict] = [{} for _ in range(n)]
    for i in order:
        task = tasks[i]
        outcome = find_best_position(
            task,
            round_index,
            rng,
            has_partner=partners[i],
            executor=executor,
            workers=workers,
        )
        logs[i] = outcome.collision_log
        if outcome.position is None:
            failures[i] = outcome.failure_reason
            continue
        positions[i] = outcome.position
        round_index.add_dynamic(Obstacle(geometry=footprint_polygon(task, outcome.position), source_id=task.id))
    return RoundResult(positions=positions, failure_reasons=failures, collision_logs=logs, order=order)


def run_rounds(
    tasks: list[LabelTask],
    index: ObstacleIndex,
    rounds: int = DEFAULT_ROUNDS,
    seed: int | None = SEED,
    max_workers: int | None = None,
) -> tuple[RoundResult, float, float]:
    """Run rounds sequentially; return (best round, best score, worst score)."""
    rng = np.random.default_rng(seed)
    partners = leader_partners(tasks)
    workers = default_workers() if max_workers is None else max(1, max_workers)
    best: RoundResult | None = None
    worst_score = float("-inf")
    executor = ThreadPoolExecutor(max_workers=workers) if workers > 1 else None
    try:
        for r in range(rounds):
            result = run_single_round(tasks, index, rng, partners, executor=executor, workers=workers)
            result.score, result.costs = score_full_layout(tasks, result.positions, index, partners)
            worst_score = max(worst_score, result.score)
            if best is None or result.score < best.score:
                best = result
            logger.debug("Round %d/%d score %.2f", r + 1, rounds, result.score)
    finally:
        if executor is not None:
            executor.shutdown(wait=True)
    if best is None:
        raise ValueError(f"rounds must be a positive integer, got {rounds!r}")
    return best, best.score, worst_score


def _apply_round(tasks: list[LabelTask], best: RoundResult) -> list[PlacementResult]:
    results: list[PlacementResult] = []
    for i, task in enumerate(tasks):
        pos = best.positions[i]
        task.attempted = True
        task.algorithm_position = pos
        task.failure_reason = best.failure_reasons[i]
        task.collision_details = dict(best.collision_logs[i])
        if not task.is_manually_moved:
            task.user_position = pos
        bbox = None
        if pos is not None:
            bbox = [(float(x), float(y)) for x, y in list(footprint_polygon(task, pos).exterior.coords)[:4]]
        results.append(
            PlacementResult(
                task_id=task.id,
                position=pos,
                failure_reason=best.failure_reasons[i],
                collision_log=dict(best.collision_logs[i]),
                bbox=bbox,
                cost=best.costs[i] if best.costs else None,
            )
        )
    return results


def run_layout(
    tasks: list[LabelTask],
    static_obstacle_entities: Iterable[DrawingEntity],
    rounds: int = DEFAULT_ROUNDS,
    search_range_factor: float | None = DEFAULT_SEARCH_RANGE_FACTOR,
    seed: int | None = SEED,
    max_workers: int | None = None,
) -> LayoutSummary:
    """
    Place every task. search_range_factor overrides each task's own factor
    (None keeps the per-task values). Task fields algorithm_position,
    failure_reason and collision_details are filled in place; the same data is
    returned as explicit PlacementResults.
    """
    validate_run_config(tasks, rounds, search_range_factor)
    index = ObstacleIndex(build_obstacles(static_obstacle_entities))
    return run_layout_on_index(tasks, index, rounds, search_range_factor, seed, max_workers)


def run_layout_on_index(
    tasks: list[LabelTask],
    index: ObstacleIndex,
    rounds: int = DEFAULT_ROUNDS,
    search_range_factor: float | None = DEFAULT_SEARCH_RANGE_FACTOR,
    seed: int | None = SEED,
    max_workers: int | None = None,
) -> LayoutSummary:
    """run_layout for callers that already built the obstacle index."""
    validate_run_config(tasks, rounds, search_range_factor)
    if search_range_factor is not None:
        for task in tasks:
            task.search_range_factor = search_range_factor
    if not tasks:
        return LayoutSummary(rounds=0, placed_count=0, failed_count=0, best_score=0.0, worst_score=0.0)

    logger.info("Placing %d label(s) against %d obstacle geometries, %d rounds", len(tasks), len(index), rounds)
    best, best_score, worst_score = run_rounds(tasks, index, rounds, seed, max_workers)
    results = _apply_round(tasks, best)
    placed = sum(1 for r in results if r.position is not None)
    logger.info("Best score %.2f, worst %.2f, placed %d/%d", best_score, worst_score, placed, len(tasks))
    return LayoutSummary(
        rounds=rounds,
        placed_count=placed,
        failed_count=len(tasks) - placed,
        best_score=best_score,
        worst_score=worst_score,
        results=results,
    )
