# labelplacer/core/candidates.py
"""
Candidate generation for one label task: a regular grid of reference-corner
positions inside a rotation-aligned search window, plus the isolation profile
summarizing open space around the task.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from labelplacer.core.config import (
    GRID_STEP_FACTOR,
    ISOLATION_RADIUS_FACTOR,
    SEARCH_HALF_WIDTH_FACTOR,
)
from labelplacer.core.geometry import LocalFrame, task_frame
from labelplacer.core.spatial import ObstacleIndex
from labelplacer.core.types import LabelTask


@dataclass(frozen=True)
class IsolationProfile:
    """Open space per side in the task's frame; larger means more open (max 1.0)."""
    up: float
    down: float
    left: float
    right: float

    @property
    def vertical_open(self) -> int:
        """+1 if up is more open, -1 if down is, 0 if tied."""
        return int(np.sign(self.up - self.down))

    @property
    def horizontal_open(self) -> int:
        """+1 if right is more open, -1 if left is, 0 if tied."""
        return int(np.sign(self.right - self.left))

    @property
    def is_diagonal(self) -> bool:
        return self.vertical_open != 0 and self.horizontal_open != 0


def search_window_local(task: LabelTask, search_range_factor: float | None = None) -> tuple[float, float, float, float]:
    """(umin, vmin, umax, vmax) of the search window in the task's local frame."""
    factor = task.search_range_factor if search_range_factor is None else search_range_factor
    w, h = task.width, task.box_height
    cu, cv = w / 2.0, h / 2.0
    half_w = SEARCH_HALF_WIDTH_FACTOR * w
    half_h = factor * h / 2.0
    return (cu - half_w, cv - half_h, cu + half_w, cv + half_h)


def generate_candidate_points(
    task: LabelTask,
    search_range_factor: float | None = None,
) -> np.ndarray:
    """
    (N, 2) world positions for the reference corner, on a grid with step
    GRID_STEP_FACTOR * text height. Points inside the task's own original box
    are skipped.
    """
    step = task.step_height * GRID_STEP_FACTOR
    if step <= 1e-6:
        return np.zeros((0, 2))
    umin, vmin, umax, vmax = search_window_local(task, search_range_factor)
    us = np.arange(umin, umax + step * 1e-9, step)
    vs = np.arange(vmin, vmax + step * 1e-9, step)
    uu, vv = np.meshgrid(us, vs)
    uv = np.column_stack([uu.ravel(), vv.ravel()])
    w, h = task.width, task.box_height
    inside = (uv[:, 0] >= 0) & (uv[:, 0] <= w) & (uv[:, 1] >= 0) & (uv[:, 1] <= h)
    uv = uv[~inside]
    return task_frame(task).to_world_array(uv)


def task_center(task: LabelTask) -> tuple[float, float]:
    """World center of the original (rotated) box."""
    return task_frame(task).to_world(task.width / 2.0, task.box_height / 2.0)


def isolation_profile(task: LabelTask, index: ObstacleIndex) -> IsolationProfile:
    """
    Sum (radius - distance) for every obstacle centroid within
    ISOLATION_RADIUS_FACTOR * text height of the task center, split into the
    four half-planes of the task frame, then invert each as 1 / (1 + sum).
    """
    center = task_center(task)
    radius = ISOLATION_RADIUS_FACTOR * task.step_height
    frame = LocalFrame(center, task.rotation)
    up = down = left = right = 0.0
    for _, (cx, cy), dist in index.within_radius(center, radius):
        du, dv = frame.to_local(cx, cy)
        weight = radius - dist
        if dv > 0:
            up += weight
        elif dv < 0:
            down += weight
        if du > 0:
            right += weight
        elif du < 0:
            left += weight
    return IsolationProfile(
        up=1.0 / (1.0 + up),
        down=1.0 / (1.0 + down),
        left=1.0 / (1.0 + left),
        right=1.0 / (1.0 + right),
    )
