# labelplacer/core/runner.py
"""
CLI entrypoint: load a DXF drawing, substitute translations, group texts,
run the multi-round placement, write reports and renders.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from labelplacer.core.config import DEFAULT_ROUNDS, DEFAULT_SEARCH_RANGE_FACTOR, REPORTS_DIR, SEED
from labelplacer.core.error_codes import RUN_FAILED, user_message
from labelplacer.core.geometry import build_obstacles
from labelplacer.core.io import load_drawing, load_translations, tasks_from_texts
from labelplacer.core.layout import run_layout
from labelplacer.core.reporting import (
    ensure_report_dir,
    write_layout_json,
    write_run_metadata_json,
)
from labelplacer.core.semantic import SemanticGrouper
from labelplacer.core.types import LayoutSummary
from labelplacer.core.validate import filter_placeable_tasks

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Obstacle-aware label placement for DXF drawings.")
    p.add_argument("drawing", type=str, help="DXF drawing path (repo-relative or absolute)")
    p.add_argument("--translations", type=str, default=None, help="JSON map of source text to translation")
    p.add_argument("--rounds", type=int, default=DEFAULT_ROUNDS, help="Randomized layout rounds")
    p.add_argument(
        "--search-range-factor",
        type=float,
        default=DEFAULT_SEARCH_RANGE_FACTOR,
        dest="search_range_factor",
        help="Vertical search extent as a multiple of the text height",
    )
    p.add_argument("--seed", type=int, default=SEED, help="Random seed")
    p.add_argument("--no-grouping", action="store_true", dest="no_grouping", help="Skip title/leader grouping")
    p.add_argument("--run-name", type=str, default="run", dest="run_name", help="Reports subdir name")
    p.add_argument("--output-dir", type=str, default=REPORTS_DIR, dest="output_dir", help="Output directory (repo-relative)")
    p.add_argument("--repo-root", type=str, default=None, dest="repo_root", help="Repo root (default: cwd)")
    p.add_argument("--no-render", action="store_true", dest="no_render", help="Skip before/after PNGs")
    return p.parse_args(argv)


def _configure_logging() -> None:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO))


def summary_line(summary: LayoutSummary) -> str:
    total = summary.placed_count + summary.failed_count
    return (
        f"Rounds: {summary.rounds}  best: {summary.best_score:.2f}  "
        f"worst: {summary.worst_score:.2f}  placed: {summary.placed_count}/{total}"
    )


def run(args: argparse.Namespace) -> list[Path]:
    """Execute one CLI run; return the written file paths."""
    repo_root = Path(args.repo_root).resolve() if args.repo_root else Path.cwd().resolve()
    texts, entities = load_drawing(args.drawing, repo_root=repo_root)
    translations = load_translations(args.translations, repo_root=repo_root) if args.translations else None
    tasks = tasks_from_texts(texts, translations)
    if args.no_grouping:
        tasks = filter_placeable_tasks(tasks)
    else:
        tasks = SemanticGrouper(tasks, entities).analyze_and_group()

    summary = run_layout(
        tasks,
        entities,
        rounds=args.rounds,
        search_range_factor=args.search_range_factor,
        seed=args.seed,
    )

    report_dir = ensure_report_dir(repo_root, args.run_name, output_dir=args.output_dir)
    written = [
        write_layout_json(report_dir, summary, tasks),
        write_run_metadata_json(
            report_dir,
            args.run_name,
            args.drawing,
            args.translations,
            args.rounds,
            args.search_range_factor,
            args.seed,
            grouping=not args.no_grouping,
        ),
    ]
    if not args.no_render:
        from labelplacer.core.render import render_after, render_before

        obstacles = build_obstacles(entities)
        before_path = report_dir / "before.png"
        after_path = report_dir / "after.png"
        render_before(obstacles, tasks, before_path)
        render_after(obstacles, tasks, after_path)
        written.extend([before_path, after_path])
    print(summary_line(summary))
    return written


def main(argv: list[str] | None = None) -> None:
    _configure_logging()
    args = _parse_args(argv)
    try:
        paths = run(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error("%s %s", user_message(RUN_FAILED), e)
        raise SystemExit(1) from e
    for p in paths:
        print(p)


if __name__ == "__main__":
    main()
