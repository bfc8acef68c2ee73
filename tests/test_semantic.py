# tests/test_semantic.py
"""
SemanticGrouper: leader index labels, title blocks, merging and ordering.
"""

from __future__ import annotations

import math

import pytest

from labelplacer.core.semantic import (
    EndpointType,
    SemanticGrouper,
    group_tasks,
    is_scale_text,
    merge_tasks,
)
from labelplacer.core.geometry import footprint_polygon
from labelplacer.core.types import (
    CompositeEntity,
    LabelTask,
    LineEntity,
    PolylineEntity,
    SemanticType,
    TextEntity,
)

LEADER = LineEntity(id="leader", start=(0.0, 0.0), end=(40.0, 0.0))
DIAGONAL = LineEntity(
    id="diag",
    start=(40.0, 0.0),
    end=(40.0 + 10.0 * math.cos(math.radians(30)), 10.0 * math.sin(math.radians(30))),
)


def _text(id: str, text: str, bounds, height: float = 2.5) -> LabelTask:
    return LabelTask(id=id, text=text, bounds=bounds, height=height)


# ----- leaders -----


def test_leader_endpoint_classification() -> None:
    grouper = SemanticGrouper([], [LEADER, DIAGONAL])
    assert grouper.classify_endpoint(LEADER.start, LEADER.id) == EndpointType.FREE
    assert grouper.classify_endpoint(LEADER.end, LEADER.id) == EndpointType.DIAGONAL
    assert grouper.is_index_leader(LEADER)


def test_text_above_leader_becomes_index_above() -> None:
    one = _text("t1", "1", (10.0, 1.0, 12.0, 3.5))
    out = SemanticGrouper([one], [LEADER, DIAGONAL]).analyze_and_group()
    assert len(out) == 1
    task = out[0]
    assert task.semantic_type == SemanticType.INDEX_ABOVE
    assert task.text == "1"
    assert task.associated_leader is LEADER
    assert task is not one
    assert task.source_ids == ["t1"]


def test_texts_above_and_below_split_into_two_tasks() -> None:
    above = _text("a", "DETAIL", (5.0, 1.0, 20.0, 3.5))
    below = _text("b", "A-101", (5.0, -3.5, 15.0, -1.0))
    out = group_tasks([above, below], [LEADER, DIAGONAL])
    kinds = {t.text: t.semantic_type for t in out}
    assert kinds == {"DETAIL": SemanticType.INDEX_ABOVE, "A-101": SemanticType.INDEX_BELOW}
    assert all(t.associated_leader is LEADER for t in out)


def test_fragments_above_merge_top_to_bottom() -> None:
    lower = _text("lo", "SECOND", (2.0, 1.0, 14.0, 3.5))
    upper = _text("up", "FIRST", (20.0, 4.0, 30.0, 6.5))
    out = group_tasks([lower, upper], [LEADER, DIAGONAL])
    assert len(out) == 1
    merged = out[0]
    assert merged.text == "FIRST SECOND"
    assert merged.source_ids == ["up", "lo"]
    assert merged.bounds == (2.0, 1.0, 30.0, 6.5)
    assert merged.id == "up"


def test_wide_text_is_not_absorbed() -> None:
    wide = _text("w", "A VERY LONG NOTE THAT SPANS FAR", (0.0, 1.0, 70.0, 3.5))
    out = group_tasks([wide], [LEADER, DIAGONAL])
    assert out[0].semantic_type == SemanticType.INDEPENDENT


def test_complex_endpoint_disqualifies_leader() -> None:
    post = LineEntity(id="post", start=(0.0, 0.0), end=(0.0, 10.0))
    one = _text("t1", "1", (10.0, 1.0, 12.0, 3.5))
    grouper = SemanticGrouper([one], [LEADER, DIAGONAL, post])
    assert grouper.classify_endpoint(LEADER.start, LEADER.id) == EndpointType.COMPLEX
    out = grouper.analyze_and_group()
    assert out[0].semantic_type == SemanticType.INDEPENDENT


def test_two_free_ends_is_not_a_leader() -> None:
    one = _text("t1", "1", (10.0, 1.0, 12.0, 3.5))
    out = group_tasks([one], [LEADER])
    assert out[0].semantic_type == SemanticType.INDEPENDENT
    assert out[0] is one


# ----- titles -----


def test_tall_title_between_lines_is_title() -> None:
    top = LineEntity(id="top", start=(0.0, 50.0), end=(3000.0, 50.0))
    bottom = LineEntity(id="bottom", start=(0.0, 0.0), end=(3000.0, 0.0))
    title = _text("fp", "FLOOR PLAN", (500.0, -225.0, 2500.0, 275.0), height=500.0)
    out = group_tasks([title], [top, bottom])
    assert len(out) == 1
    assert out[0].semantic_type == SemanticType.TITLE
    assert out[0].text == "FLOOR PLAN"
    assert title.semantic_type == SemanticType.INDEPENDENT


def _title_lines() -> list:
    return [
        PolylineEntity(id="top", points=[(0.0, 10.0), (100.0, 10.0)], constant_width=0.5),
        LineEntity(id="bottom", start=(0.0, 0.0), end=(100.0, 0.0)),
    ]


def test_small_title_needs_scale_hint() -> None:
    plan = _text("p", "PLAN", (40.0, 11.0, 60.0, 13.5))
    other = _text("o", "NOTE", (300.0, 0.0, 320.0, 2.5))
    out = group_tasks([plan, other], _title_lines())
    assert all(t.semantic_type == SemanticType.INDEPENDENT for t in out)


def test_scale_hint_accepts_title_and_description() -> None:
    plan = _text("p", "PLAN", (40.0, 11.0, 60.0, 13.5))
    scale = _text("s", "1:100", (110.0, 4.0, 120.0, 6.5))
    desc = _text("d", "GROUND FLOOR", (30.0, -5.0, 70.0, -2.5))
    out = group_tasks([plan, scale, desc], _title_lines())
    by_text = {t.text: t.semantic_type for t in out}
    assert by_text == {
        "PLAN": SemanticType.TITLE,
        "1:100": SemanticType.INDEPENDENT,
        "GROUND FLOOR": SemanticType.TITLE,
    }


def test_title_pair_requires_similar_length_and_alignment() -> None:
    lines = [
        LineEntity(id="top", start=(0.0, 10.0), end=(100.0, 10.0)),
        LineEntity(id="bottom", start=(0.0, 0.0), end=(60.0, 0.0)),
    ]
    assert SemanticGrouper([], lines).find_title_pairs() == []
    lines = _title_lines()
    pairs = SemanticGrouper([], lines).find_title_pairs()
    assert [(a.id, b.id) for a, b in pairs] == [("top", "bottom")]


def test_is_scale_text() -> None:
    assert is_scale_text("1:100")
    assert is_scale_text("SCALE 1:50")
    assert not is_scale_text("比例 1:100")
    assert not is_scale_text("PLAN")


# ----- general -----


def test_empty_and_zero_size_fragments_are_dropped() -> None:
    tasks = [
        _text("e", "   ", (0.0, 0.0, 5.0, 2.5)),
        _text("z", "Z", (0.0, 0.0, 0.0, 2.5)),
        _text("ok", "OK", (0.0, 0.0, 5.0, 2.5)),
    ]
    out = group_tasks(tasks, [])
    assert [t.id for t in out] == ["ok"]


def test_output_sorted_top_to_bottom_then_left_to_right() -> None:
    tasks = [
        _text("low", "LOW", (0.0, 0.0, 5.0, 2.5)),
        _text("right", "R", (50.0, 20.0, 55.0, 22.5)),
        _text("left", "L", (10.0, 20.0, 15.0, 22.5)),
    ]
    out = group_tasks(tasks, [])
    assert [t.id for t in out] == ["left", "right", "low"]


def test_merge_tasks_keeps_template_style() -> None:
    a = LabelTask(id="a", text=" ONE ", bounds=(0.0, 5.0, 4.0, 7.0), height=2.0, rotation=0.0, width_factor=0.8)
    b = LabelTask(id="b", text="TWO", bounds=(1.0, 0.0, 6.0, 2.0), height=3.0)
    merged = merge_tasks([b, a], SemanticType.TITLE)
    assert merged.text == "ONE TWO"
    assert merged.height == pytest.approx(2.0)
    assert merged.width_factor == pytest.approx(0.8)
    assert merged.bounds == (0.0, 0.0, 6.0, 7.0)
    assert merged.associated_leader is None


def test_merged_box_covers_rotated_members() -> None:
    a = LabelTask(id="a", text="A", bounds=(0.0, 0.0, 10.0, 2.0), height=2.0, rotation=90.0)
    b = LabelTask(id="b", text="B", bounds=(5.0, 0.0, 15.0, 2.0), height=2.0, rotation=90.0)
    merged = merge_tasks([a, b], SemanticType.INDEX_ABOVE)
    assert merged.rotation == pytest.approx(90.0)
    assert merged.extents() == pytest.approx((-2.0, 0.0, 5.0, 10.0))
    covering = footprint_polygon(merged, merged.reference_corner).buffer(1e-9)
    for member in (a, b):
        assert covering.contains(footprint_polygon(member, member.reference_corner))


def test_grouping_with_text_inside_dimension() -> None:
    dimension = CompositeEntity(
        id="dim",
        children=[
            LineEntity(id="dim:0", start=(100.0, 0.0), end=(130.0, 0.0)),
            TextEntity(id="dim:1", text="30", bounds=(112.0, 1.0, 116.0, 3.5), height=2.5),
        ],
        source_kind="DIMENSION",
    )
    one = _text("t1", "1", (10.0, 1.0, 12.0, 3.5))
    out = group_tasks([one], [LEADER, DIAGONAL, dimension])
    assert [t.semantic_type for t in out] == [SemanticType.INDEX_ABOVE]
