# labelplacer/core/reporting.py
"""
Create reports/<run_name>/ and write layout.json and run_metadata.json.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from labelplacer.core.config import (
    DEFAULT_ROUNDS,
    DEFAULT_SEARCH_RANGE_FACTOR,
    DISPERSION_WEIGHT,
    ELITE_SIZE,
    FAILURE_PENALTY,
    GRID_STEP_FACTOR,
    ISOLATION_RADIUS_FACTOR,
    REPORTS_DIR,
    SEARCH_HALF_WIDTH_FACTOR,
    SEED,
    WEIGHT_DISTANCE,
)
from labelplacer.core.types import LabelTask, LayoutSummary, PlacementResult

LAYOUT_SCHEMA_VERSION = 1


def _point(p) -> dict | None:
    if p is None:
        return None
    return {"x": float(p[0]), "y": float(p[1])}


def result_to_dict(result: PlacementResult, task: LabelTask | None = None) -> dict:
    """One record of layout.json. The collision log is reduced to a count plus the first hit."""
    first_hit = None
    if result.collision_log:
        point, obstacle_id = next(iter(result.collision_log.items()))
        first_hit = {"point": _point(point), "obstacle_id": obstacle_id}
    out = {
        "task_id": result.task_id,
        "result": {
            "position": _point(result.position),
            "bbox": [_point(p) for p in result.bbox] if result.bbox else None,
            "cost": result.cost,
            "failure_reason": result.failure_reason,
        },
        "diagnostics": {
            "collision_count": len(result.collision_log),
            "first_collision": first_hit,
        },
    }
    if task is not None:
        out["label"] = {
            "text": task.text,
            "source_text": task.source_text,
            "source_ids": list(task.source_ids),
            "semantic_type": task.semantic_type.value,
            "associated_leader": task.associated_leader.id if task.associated_leader is not None else None,
            "original_bounds": list(task.bounds),
            "height": task.height,
            "rotation": task.rotation,
        }
    return out


def summary_to_dict(summary: LayoutSummary) -> dict:
    return {
        "rounds": summary.rounds,
        "placed_count": summary.placed_count,
        "failed_count": summary.failed_count,
        "best_score": summary.best_score,
        "worst_score": summary.worst_score,
    }


def run_metadata_dict(
    run_name: str,
    drawing_path: str,
    translations_path: str | None,
    rounds: int,
    search_range_factor: float | None,
    seed: int | None,
    grouping: bool,
) -> dict:
    """Timestamp and config snapshot for run_metadata.json."""
    return {
        "run_name": run_name,
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "drawing_path": drawing_path,
        "translations_path": translations_path,
        "rounds": rounds,
        "search_range_factor": search_range_factor,
        "seed": seed,
        "semantic_grouping": grouping,
        "config": {
            "DEFAULT_ROUNDS": DEFAULT_ROUNDS,
            "DEFAULT_SEARCH_RANGE_FACTOR": DEFAULT_SEARCH_RANGE_FACTOR,
            "SEARCH_HALF_WIDTH_FACTOR": SEARCH_HALF_WIDTH_FACTOR,
            "GRID_STEP_FACTOR": GRID_STEP_FACTOR,
            "ELITE_SIZE": ELITE_SIZE,
            "ISOLATION_RADIUS_FACTOR": ISOLATION_RADIUS_FACTOR,
            "WEIGHT_DISTANCE": WEIGHT_DISTANCE,
            "FAILURE_PENALTY": FAILURE_PENALTY,
            "DISPERSION_WEIGHT": DISPERSION_WEIGHT,
            "SEED": SEED,
        },
    }


def ensure_report_dir(
    repo_root: Path,
    run_name: str,
    output_dir: str | None = None,
) -> Path:
    """Create output_dir/<run_name>/ under repo_root; return path. Default output_dir from config."""
    base = output_dir if output_dir is not None else REPORTS_DIR
    out = (repo_root / base).resolve() / run_name
    out.mkdir(parents=True, exist_ok=True)
    return out


def write_layout_json(report_dir: Path, summary: LayoutSummary, tasks: list[LabelTask]) -> Path:
    """Write layout.json: schema version, summary and one record per task."""
    by_id = {t.id: t for t in tasks}
    data = {
        "schema_version": LAYOUT_SCHEMA_VERSION,
        "summary": summary_to_dict(summary),
        "results": [result_to_dict(r, by_id.get(r.task_id)) for r in summary.results],
    }
    path = report_dir / "layout.json"
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def write_run_metadata_json(
    report_dir: Path,
    run_name: str,
    drawing_path: str,
    translations_path: str | None,
    rounds: int,
    search_range_factor: float | None,
    seed: int | None,
    grouping: bool = True,
) -> Path:
    """Write run_metadata.json to report_dir."""
    path = report_dir / "run_metadata.json"
    data = run_metadata_dict(
        run_name, drawing_path, translations_path, rounds, search_range_factor, seed, grouping
    )
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path
