# labelplacer/core/config.py
"""
Central configuration for drawing label placement.
All tunable values live here; no magic numbers in other modules.
Units are drawing units unless a name says otherwise.
"""

from __future__ import annotations

# ----- Paths (repo-relative) -----
REPORTS_DIR: str = "reports"

# ----- Run defaults -----
DEFAULT_ROUNDS: int = 100
"""Independent randomized rounds; the lowest-scoring layout wins."""

DEFAULT_SEARCH_RANGE_FACTOR: float = 8.0
"""Vertical search half-height as a multiple of the original half-height."""

SEED: int | None = 42
"""Seed for the round-loop random source; None for non-deterministic."""

# ----- Geometry adapter -----
ARC_SEGMENTS: int = 32
"""Segments used to tessellate arcs and circles."""

MIN_RING_COORDS: int = 4
"""Minimum coordinates (closing point included) for a hatch loop polygon."""

POINT_TOLERANCE: float = 1e-9
"""Hatch loop vertices closer than this on both axes are merged."""

# ----- Spatial index -----
TOUCH_TOLERANCE: float = 1e-6
"""Half-size of the crossing window used to probe line endpoints."""

# ----- Candidate search -----
SEARCH_HALF_WIDTH_FACTOR: float = 2.5
"""Search window half-width as a multiple of the original width."""

GRID_STEP_FACTOR: float = 0.5
"""Candidate grid step as a multiple of the text height."""

ELITE_SIZE: int = 5
"""Top-K lowest-cost candidates kept for the random final pick."""

ISOLATION_RADIUS_FACTOR: float = 5.0
"""Isolation search radius as a multiple of the text height."""

SIDE_EPSILON: float = 1e-9
"""Offsets smaller than this count as no movement along an axis."""

# ----- Candidate scoring. Lower cost is better -----
WEIGHT_DISTANCE: float = 500.0

INDEX_WRONG_SIDE_PENALTY: float = 15000.0
"""Index label crossing its leader while a partner occupies the other side."""

INDEX_SIDE_BONUS: float = 10000.0
"""Index label without a partner kept on its conventional side of the leader."""

TITLE_NOT_BELOW_BONUS: float = 8000.0
TITLE_CENTER_BONUS: float = 7000.0
"""Full reward at zero horizontal offset, zero at half the original width."""

AVOID_VERTICAL_BONUS: float = 8000.0
AVOID_HORIZONTAL_BONUS: float = 5000.0
DIAGONAL_STRAIGHT_BONUS: float = 12000.0
"""Open side is diagonal and the move is a clean vertical offset."""

DIAGONAL_SLANT_BONUS: float = 5000.0
"""Open side is diagonal and the move heads into the diagonal."""

ALIGNMENT_BONUS: float = 5000.0

VERTICAL_ALIGN_TOLERANCE: float = 0.5
"""Horizontal center offset (fraction of width) still counted as vertically aligned."""

# ----- Full-layout score -----
FAILURE_PENALTY: float = 100000.0
DISPERSION_WEIGHT: float = 0.1
"""Weight of the bounding area of all placed labels."""

# ----- Parallel scoring -----
PARALLEL_MIN_CANDIDATES: int = 256
"""Below this many safe candidates, scoring runs inline."""

# ----- Semantic grouping -----
DEFAULT_TEXT_HEIGHT: float = 2.5
"""Dominant text height used when no tasks are available."""

NEAR_AXIS_RATIO: float = 0.1
"""A line is near-horizontal when |dy| < ratio * length (near-vertical likewise)."""

LEADER_MIN_LENGTH: float = 5.0
LEADER_BAND_FACTOR: float = 3.0
"""Band above/below a leader, as a multiple of the dominant text height."""

LEADER_MAX_TEXT_WIDTH_RATIO: float = 1.5
"""Texts wider than this multiple of the leader width are not absorbed."""

TITLE_LINE_MIN_LENGTH: float = 10.0
TITLE_GAP_FACTOR: float = 5.0
"""Max gap between title bar lines: top line width + factor * text height."""

TITLE_ALIGN_TOLERANCE: float = 5.0
"""Absolute x-center tolerance between the two title bar lines."""

TITLE_LENGTH_TOLERANCE: float = 0.1
TITLE_SEARCH_FACTOR: float = 1.5
"""Title text band above the top line: top line width + factor * text height."""

TITLE_DESCRIPTION_FACTOR: float = 5.0
"""Description band below the bottom line, as a multiple of text height."""

TITLE_SCALE_ZONE_WIDTH: float = 100.0
TITLE_SCALE_ZONE_MARGIN: float = 20.0
TITLE_TALL_TEXT_HEIGHT: float = 400.0
"""Title candidates at least this tall need no scale annotation nearby."""

SCALE_PATTERN: str = r"\d+:\d+"
CJK_PATTERN: str = r"[\u4e00-\u9fa5]"
MERGE_SEPARATOR: str = " "

# ----- Text metrics -----
DEFAULT_FONT_FAMILY: str = "DejaVu Sans"
MEASURE_FONT_SIZE_PX: int = 100
"""Pixel size used when measuring text; results are scaled to the text height."""

LINE_SPACING_FACTOR: float = 1.5
"""Line pitch for multi-line text, as a multiple of the text height."""

# ----- Rendering -----
RENDER_WIDTH_PX: int = 1000
RENDER_HEIGHT_PX: int = 800

# ----- Drawing import -----
MAX_INSERT_DEPTH: int = 4
"""Nested block references deeper than this are not exploded."""

HATCH_FLATTEN_DISTANCE: float = 0.01
"""Max deviation when flattening curved hatch boundaries, in drawing units."""
