# labelplacer/core/render.py
"""
Matplotlib PNG rendering: before.png (drawing + original text boxes) and
after.png (drawing + placed label footprints, failed labels highlighted).
"""

from __future__ import annotations

import warnings
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

from labelplacer.core.config import RENDER_HEIGHT_PX, RENDER_WIDTH_PX
from labelplacer.core.geometry import footprint_polygon
from labelplacer.core.types import Bounds, LabelTask, Obstacle, rotated_corners, union_bounds


def set_axes_to_bounds(ax: plt.Axes, bounds: Bounds, pad_frac: float = 0.05) -> None:
    """Set xlim/ylim from bounds with margin; equal aspect; hide axes."""
    minx, miny, maxx, maxy = bounds
    dx = max(1.0, (maxx - minx) * pad_frac)
    dy = max(1.0, (maxy - miny) * pad_frac)
    ax.set_xlim(minx - dx, maxx + dx)
    ax.set_ylim(miny - dy, maxy + dy)
    ax.set_aspect("equal", adjustable="box")
    ax.axis("off")


def _new_fig(width_px: int, height_px: int) -> tuple[plt.Figure, plt.Axes]:
    fig = plt.figure(
        figsize=(width_px / 100.0, height_px / 100.0),
        dpi=100,
        constrained_layout=False,
    )
    ax = fig.add_axes([0, 0, 1, 1])
    ax.axis("off")
    return fig, ax


def _draw_geometry(ax: plt.Axes, geom: BaseGeometry, color: str = "dimgray", linewidth: float = 0.6) -> None:
    if geom is None or geom.is_empty:
        return
    if geom.geom_type == "Polygon":
        xy = np.array(geom.exterior.coords)
        ax.plot(xy[:, 0], xy[:, 1], color=color, linewidth=linewidth)
    elif geom.geom_type == "LineString":
        xy = np.array(geom.coords)
        ax.plot(xy[:, 0], xy[:, 1], color=color, linewidth=linewidth)
    else:
        for g in getattr(geom, "geoms", []):
            _draw_geometry(ax, g, color, linewidth)


def _fill_polygon(ax: plt.Axes, geom: BaseGeometry, facecolor: str, edgecolor: str, alpha: float) -> None:
    xy = np.array(geom.exterior.coords)
    ax.fill(xy[:, 0], xy[:, 1], facecolor=facecolor, edgecolor=edgecolor, linewidth=0.8, alpha=alpha, zorder=3)


def _original_box(task: LabelTask) -> Polygon:
    return Polygon(rotated_corners(task.bounds, task.rotation))


def _scene_bounds(obstacles: list[Obstacle], tasks: list[LabelTask]) -> Bounds:
    boxes = [o.geometry.bounds for o in obstacles if not o.geometry.is_empty]
    boxes.extend(t.extents() for t in tasks)
    for t in tasks:
        if t.current_position is not None:
            boxes.append(footprint_polygon(t, t.current_position).bounds)
    return union_bounds(boxes) if boxes else (0.0, 0.0, 1.0, 1.0)


def _save(fig: plt.Figure, output_path: str | Path) -> None:
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", message=".*constrained_layout.*", category=UserWarning)
        fig.savefig(output_path, dpi=100, facecolor="white")
    plt.close(fig)


def render_before(
    obstacles: list[Obstacle],
    tasks: list[LabelTask],
    output_path: str | Path,
    width_px: int = RENDER_WIDTH_PX,
    height_px: int = RENDER_HEIGHT_PX,
) -> None:
    """Render drawing geometry and the original text boxes."""
    fig, ax = _new_fig(width_px, height_px)
    for obstacle in obstacles:
        _draw_geometry(ax, obstacle.geometry)
    for task in tasks:
        _fill_polygon(ax, _original_box(task), "khaki", "darkgoldenrod", 0.6)
    set_axes_to_bounds(ax, _scene_bounds(obstacles, tasks))
    _save(fig, output_path)


def render_after(
    obstacles: list[Obstacle],
    tasks: list[LabelTask],
    output_path: str | Path,
    width_px: int = RENDER_WIDTH_PX,
    height_px: int = RENDER_HEIGHT_PX,
) -> None:
    """
    Render drawing geometry with placed label footprints. Failed tasks keep
    their original box in red; index labels get a line to their leader.
    """
    fig, ax = _new_fig(width_px, height_px)
    for obstacle in obstacles:
        _draw_geometry(ax, obstacle.geometry)
    for task in tasks:
        pos = task.current_position
        if pos is None:
            _fill_polygon(ax, _original_box(task), "salmon", "red", 0.7)
            continue
        footprint = footprint_polygon(task, pos)
        _fill_polygon(ax, footprint, "lightgreen", "darkgreen", 0.7)
        leader = task.associated_leader
        if leader is not None:
            c = footprint.centroid
            mx = (leader.start[0] + leader.end[0]) / 2.0
            my = (leader.start[1] + leader.end[1]) / 2.0
            ax.plot([c.x, mx], [c.y, my], color="steelblue", linewidth=0.5, linestyle="--", zorder=4)
    set_axes_to_bounds(ax, _scene_bounds(obstacles, tasks))
    _save(fig, output_path)
