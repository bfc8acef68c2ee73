# labelplacer/core/io.py
"""
Load a drawing from DXF (ezdxf) into entity dataclasses, and translation maps
from JSON. Model space only; block references and dimensions are exploded
into CompositeEntity children.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Iterable

import ezdxf
from ezdxf import path as dxf_path
from ezdxf.math import bulge_to_arc

from labelplacer.core.config import ARC_SEGMENTS, HATCH_FLATTEN_DISTANCE, MAX_INSERT_DEPTH
from labelplacer.core.geometry import tessellate_arc
from labelplacer.core.text_metrics import measure_text_units
from labelplacer.core.types import (
    ArcEntity,
    CircleEntity,
    CompositeEntity,
    DrawingEntity,
    HatchEntity,
    LabelTask,
    LineEntity,
    Point2D,
    PolylineEntity,
    TextEntity,
)

logger = logging.getLogger(__name__)


def _resolve_path(path: str | Path, repo_root: Path | None) -> Path:
    """Resolve path; if relative, against repo_root (or cwd if repo_root is None)."""
    p = Path(path)
    if not p.is_absolute() and repo_root is not None:
        p = repo_root / p
    return p.resolve()


def _xy(v) -> Point2D:
    return (float(v[0]), float(v[1]))


def _entity_id(entity, fallback: str) -> str:
    handle = entity.dxf.get("handle")
    return str(handle) if handle else fallback


# ----- text -----


def text_from_dxf(entity, entity_id: str) -> TextEntity | None:
    """TEXT or MTEXT -> TextEntity with a measured box; None for empty text."""
    kind = entity.dxftype()
    if kind == "TEXT":
        content = entity.plain_text()
        height = float(entity.dxf.get("height", 2.5))
        rotation = float(entity.dxf.get("rotation", 0.0))
        width_factor = float(entity.dxf.get("width", 1.0)) or 1.0
        oblique = float(entity.dxf.get("oblique", 0.0))
        corner = _xy(entity.dxf.insert)
    elif kind == "MTEXT":
        content = entity.plain_text()
        height = float(entity.dxf.get("char_height", 2.5))
        rotation = float(entity.get_rotation())
        width_factor = 1.0
        oblique = 0.0
    else:
        return None
    if not content or not content.strip():
        return None
    w, h = measure_text_units(content, height, width_factor)
    if kind == "MTEXT":
        # Insertion point is the top-left corner; the box pivots on its min corner.
        ix, iy = _xy(entity.dxf.insert)
        rad = math.radians(rotation)
        corner = (ix + h * math.sin(rad), iy - h * math.cos(rad))
    x, y = corner
    return TextEntity(
        id=entity_id,
        text=content,
        bounds=(x, y, x + w, y + h),
        height=height,
        rotation=rotation,
        width_factor=width_factor,
        oblique=oblique,
    )


# ----- curves -----


def _bulge_points(vertices: list[tuple[float, float, float]], closed: bool) -> list[Point2D]:
    """Vertex list with bulged segments replaced by tessellated arcs."""
    if not vertices:
        return []
    pts: list[Point2D] = [(vertices[0][0], vertices[0][1])]
    n = len(vertices)
    seg_count = n if closed else n - 1
    for i in range(seg_count):
        x0, y0, b = vertices[i]
        x1, y1, _ = vertices[(i + 1) % n]
        if abs(b) < 1e-9:
            pts.append((x1, y1))
            continue
        center, a0, a1, radius = bulge_to_arc((x0, y0), (x1, y1), b)
        arc = tessellate_arc(_xy(center), float(radius), math.degrees(a0), math.degrees(a1), ARC_SEGMENTS)
        if b < 0:
            arc.reverse()
        pts.extend(arc[1:-1])
        pts.append((x1, y1))
    if closed and len(pts) > 1 and pts[-1] == pts[0]:
        pts.pop()
    return pts


def polyline_from_dxf(entity, entity_id: str) -> PolylineEntity | None:
    kind = entity.dxftype()
    if kind == "LWPOLYLINE":
        vertices = [(float(x), float(y), float(b)) for x, y, b in entity.get_points("xyb")]
        closed = bool(entity.closed)
        width = float(entity.dxf.get("const_width", 0.0))
    elif kind == "POLYLINE" and entity.is_2d_polyline:
        vertices = [
            (float(v.dxf.location[0]), float(v.dxf.location[1]), float(v.dxf.get("bulge", 0.0)))
            for v in entity.vertices
        ]
        closed = bool(entity.is_closed)
        width = float(entity.dxf.get("default_start_width", 0.0))
    else:
        return None
    points = _bulge_points(vertices, closed)
    if len(points) < 2:
        return None
    return PolylineEntity(id=entity_id, points=points, closed=closed, constant_width=width)


def hatch_from_dxf(entity, entity_id: str) -> HatchEntity | None:
    """Each boundary path flattened into one loop of straight edges."""
    loops = []
    for boundary in dxf_path.from_hatch(entity):
        vertices = [_xy(v) for v in boundary.flattening(HATCH_FLATTEN_DISTANCE)]
        if len(vertices) > 1 and vertices[0] == vertices[-1]:
            vertices.pop()
        if len(vertices) >= 3:
            loops.extend(HatchEntity.from_vertices(entity_id, vertices).loops)
    if not loops:
        return None
    return HatchEntity(id=entity_id, loops=loops)


# ----- dispatch -----


def entity_from_dxf(entity, entity_id: str, depth: int = 0) -> DrawingEntity | None:
    """Convert one ezdxf entity; unsupported types return None."""
    kind = entity.dxftype()
    if kind in ("TEXT", "MTEXT"):
        return text_from_dxf(entity, entity_id)
    if kind == "LINE":
        return LineEntity(id=entity_id, start=_xy(entity.dxf.start), end=_xy(entity.dxf.end))
    if kind == "ARC":
        return ArcEntity(
            id=entity_id,
            center=_xy(entity.dxf.center),
            radius=float(entity.dxf.radius),
            start_angle=float(entity.dxf.start_angle),
            end_angle=float(entity.dxf.end_angle),
        )
    if kind == "CIRCLE":
        return CircleEntity(id=entity_id, center=_xy(entity.dxf.center), radius=float(entity.dxf.radius))
    if kind in ("LWPOLYLINE", "POLYLINE"):
        return polyline_from_dxf(entity, entity_id)
    if kind == "HATCH":
        return hatch_from_dxf(entity, entity_id)
    if kind in ("INSERT", "DIMENSION"):
        if depth >= MAX_INSERT_DEPTH:
            return None
        children = []
        for i, child in enumerate(entity.virtual_entities()):
            converted = entity_from_dxf(child, f"{entity_id}:{i}", depth + 1)
            if converted is not None:
                children.append(converted)
        if not children:
            return None
        return CompositeEntity(id=entity_id, children=children, source_kind=kind)
    return None


def convert_entities(entities: Iterable) -> tuple[list[TextEntity], list[DrawingEntity]]:
    """Split converted entities into (texts, obstacles)."""
    texts: list[TextEntity] = []
    obstacles: list[DrawingEntity] = []
    skipped = 0
    for i, entity in enumerate(entities):
        converted = entity_from_dxf(entity, _entity_id(entity, f"e{i}"))
        if converted is None:
            skipped += 1
        elif isinstance(converted, TextEntity):
            texts.append(converted)
        else:
            obstacles.append(converted)
    if skipped:
        logger.debug("Skipped %d unsupported or empty entities", skipped)
    return texts, obstacles


def load_drawing(
    path: str | Path,
    repo_root: Path | None = None,
) -> tuple[list[TextEntity], list[DrawingEntity]]:
    """
    Read a DXF file and return (texts, obstacles) from model space.
    Texts are label sources; obstacles are all other supported geometry.
    """
    resolved = _resolve_path(path, repo_root)
    if not resolved.exists():
        raise FileNotFoundError(f"Drawing file not found: {resolved}")
    doc = ezdxf.readfile(str(resolved))
    texts, obstacles = convert_entities(doc.modelspace())
    logger.info("Loaded %s: %d text(s), %d obstacle entities", resolved.name, len(texts), len(obstacles))
    return texts, obstacles


# ----- translations -----


def load_translations(path: str | Path, repo_root: Path | None = None) -> dict[str, str]:
    """Read a {source text: translation} JSON object."""
    resolved = _resolve_path(path, repo_root)
    if not resolved.exists():
        raise FileNotFoundError(f"Translations file not found: {resolved}")
    data = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in data.items()):
        raise ValueError(f"Translations must be a JSON object of strings: {resolved}")
    return data


def tasks_from_texts(
    texts: Iterable[TextEntity],
    translations: dict[str, str] | None = None,
) -> list[LabelTask]:
    """One task per text; a translation for the trimmed source text replaces the displayed string."""
    translations = translations or {}
    tasks = []
    for text in texts:
        tasks.append(LabelTask.from_text_entity(text, translations.get(text.text.strip())))
    return tasks
