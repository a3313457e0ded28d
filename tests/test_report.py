from __future__ import annotations

import json
from pathlib import Path

from pixelsqueeze.report import build_report, format_size, render_results, save_report_json
from pixelsqueeze.results import STATUS_COMPRESSED, STATUS_ENLARGED, FileOutcome, RunStatistics


def _stats() -> RunStatistics:
    stats = RunStatistics(files_found=3)
    stats.record_outcome(
        FileOutcome(
            filename="a_really_long_file_name_for_the_table.jpg",
            src_path=Path("in/a.jpg"),
            out_path=Path("out/a.jpg"),
            original_size=2_000_000,
            final_size=500_000,
            status=STATUS_COMPRESSED,
            savings_percent=75.0,
        )
    )
    stats.record_outcome(
        FileOutcome(
            filename="b.png",
            src_path=Path("in/b.png"),
            out_path=Path("out/b.webp"),
            original_size=1000,
            final_size=1100,
            status=STATUS_ENLARGED,
            savings_percent=-10.0,
        )
    )
    stats.record_error("c.gif", "cannot identify image file")
    return stats.finalize()


def test_format_size():
    assert format_size(0) == "0 B"
    assert format_size(999) == "999 B"
    assert format_size(1500) == "1.50 kB"
    assert format_size(2_500_000) == "2.50 MB"
    assert format_size(3_000_000_000) == "3.00 GB"


def test_render_no_images():
    text = render_results(RunStatistics().finalize())
    assert "No image files found" in text
    assert "--recursive" in text


def test_render_results_table_and_summary():
    text = render_results(_stats())

    assert "a_really_long_file_name_f..." in text
    assert "Compressed (75.0%)" in text
    assert "Enlarged (10.0%)" in text
    assert "Files processed:          2" in text
    assert "1 error encountered" in text
    assert "c.gif: cannot identify image file" in text
    assert "Successfully compressed 2 files" in text


def test_render_all_failed_differs_from_nothing_found():
    stats = RunStatistics(files_found=2)
    stats.record_error("x.png", "broken")
    stats.record_error("y.png", "broken")
    text = render_results(stats.finalize())

    assert "No image files found" not in text
    assert "All 2 files failed to process" in text


def test_json_report(tmp_path: Path):
    report = build_report(_stats())
    path = tmp_path / "reports" / "run.json"
    save_report_json(report, path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["created_utc"].endswith("Z")
    assert data["summary"]["files_processed"] == 2
    assert data["summary"]["files_errored"] == 1
    assert data["summary"]["original_size"] == 2_001_000
    assert [f["status"] for f in data["files"]] == ["Compressed", "Enlarged"]
    assert data["errors"] == [{"filename": "c.gif", "message": "cannot identify image file"}]
