# tests/test_runner.py
"""
CLI smoke test: a small DXF through load, grouping, layout and reports.
Rendering is skipped so the test stays fast.
"""

from __future__ import annotations

import json
from pathlib import Path

import ezdxf
import pytest

from labelplacer.core.runner import main


def _write_drawing(path: Path) -> None:
    doc = ezdxf.new()
    msp = doc.modelspace()
    msp.add_line((0.0, 0.0), (40.0, 0.0))
    msp.add_line((40.0, 0.0), (48.66, 5.0))
    msp.add_text("1", dxfattribs={"height": 2.5, "insert": (10.0, 1.0)})
    msp.add_text("NOTE", dxfattribs={"height": 2.5, "insert": (100.0, 50.0)})
    doc.saveas(path)


def test_main_writes_reports(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write_drawing(tmp_path / "plan.dxf")
    (tmp_path / "tr.json").write_text(json.dumps({"NOTE": "REMARQUE"}), encoding="utf-8")
    main(
        [
            "plan.dxf",
            "--translations", "tr.json",
            "--rounds", "3",
            "--seed", "1",
            "--run-name", "smoke",
            "--repo-root", str(tmp_path),
            "--no-render",
        ]
    )
    report_dir = tmp_path / "reports" / "smoke"
    layout = json.loads((report_dir / "layout.json").read_text(encoding="utf-8"))
    metadata = json.loads((report_dir / "run_metadata.json").read_text(encoding="utf-8"))
    assert layout["summary"]["rounds"] == 3
    assert len(layout["results"]) == 2
    labels = {r["label"]["text"]: r["label"] for r in layout["results"]}
    assert labels["1"]["semantic_type"] == "IndexAbove"
    assert labels["REMARQUE"]["source_text"] == "NOTE"
    assert metadata["translations_path"] == "tr.json"
    assert not (report_dir / "after.png").exists()
    out = capsys.readouterr().out
    assert "Rounds: 3" in out
    assert "layout.json" in out


def test_main_without_grouping(tmp_path: Path) -> None:
    _write_drawing(tmp_path / "plan.dxf")
    main(["plan.dxf", "--rounds", "1", "--no-grouping", "--repo-root", str(tmp_path), "--no-render"])
    layout = json.loads((tmp_path / "reports" / "run" / "layout.json").read_text(encoding="utf-8"))
    assert {r["label"]["semantic_type"] for r in layout["results"]} == {"Independent"}


def test_missing_drawing_exits_nonzero(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["missing.dxf", "--repo-root", str(tmp_path), "--no-render"])
    assert exc.value.code == 1


def test_invalid_rounds_exits_nonzero(tmp_path: Path) -> None:
    _write_drawing(tmp_path / "plan.dxf")
    with pytest.raises(SystemExit) as exc:
        main(["plan.dxf", "--rounds", "0", "--repo-root", str(tmp_path), "--no-render"])
    assert exc.value.code == 1
