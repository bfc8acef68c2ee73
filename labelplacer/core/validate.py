# labelplacer/core/validate.py
"""
Input validation for placement runs and post-hoc layout checks.
Configuration problems raise ValueError before any round executes.
"""

from __future__ import annotations

import logging
import numbers

from labelplacer.core.geometry import footprint_polygon
from labelplacer.core.spatial import ObstacleIndex
from labelplacer.core.types import LabelTask

logger = logging.getLogger(__name__)


def validate_run_config(
    tasks: list[LabelTask] | None,
    rounds: int,
    search_range_factor: float | None,
) -> None:
    """Fail fast on programmer-error inputs."""
    if tasks is None:
        raise ValueError("tasks must be a list, got None")
    if isinstance(rounds, bool) or not isinstance(rounds, numbers.Integral) or rounds <= 0:
        raise ValueError(f"rounds must be a positive integer, got {rounds!r}")
    if search_range_factor is not None and search_range_factor < 0:
        raise ValueError(f"search_range_factor must be >= 0, got {search_range_factor!r}")


def is_placeable(task: LabelTask) -> bool:
    """Non-empty text with a box of positive area."""
    return bool(task.text and task.text.strip()) and task.width > 0 and task.box_height > 0


def filter_placeable_tasks(tasks: list[LabelTask]) -> list[LabelTask]:
    """Drop empty or zero-size tasks; they must never reach the optimizer."""
    kept = [t for t in tasks if is_placeable(t)]
    if len(kept) != len(tasks):
        logger.info("Skipping %d empty or zero-size text(s)", len(tasks) - len(kept))
    return kept


def find_layout_collisions(
    tasks: list[LabelTask],
    index: ObstacleIndex,
) -> list[tuple[str, str]]:
    """
    (task id, obstacle id) for every placed task whose footprint intersects a
    static obstacle or another placed task. Empty for a valid layout.
    """
    placed = [(t, footprint_polygon(t, t.algorithm_position)) for t in tasks if t.algorithm_position is not None]
    out: list[tuple[str, str]] = []
    for i, (task, poly) in enumerate(placed):
        hit = index.with_dynamic([]).first_collision(poly)
        if hit is not None:
            out.append((task.id, hit.source_id))
        for other, other_poly in placed[i + 1:]:
            if poly.intersects(other_poly):
                out.append((task.id, other.id))
    return out
