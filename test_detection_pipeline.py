"""End-to-end tests: synthetic sheets through detection, scoring and the CLI."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Set, Tuple

import numpy as np
import pytest

from bubble_grid import DetectionConfig, PixelBuffer, detect_bubbles, duplicate_cells, grid_shape, score
from bubble_grid.batch import process_batch, process_image
from bubble_grid.cli import main
from bubble_grid.models import GroundTruthEntry
from bubble_grid.samples import DEFAULT_FILLED, create_sample_images, render_bubble_sheet


@dataclass
class SheetData:
    image: np.ndarray
    truth: List[GroundTruthEntry]
    expected_filled: Set[Tuple[int, int]]


def make_sheet(noise: bool = False, seed: int = 1234, **layout) -> SheetData:
    filled = layout.pop("filled", DEFAULT_FILLED)
    image, truth = render_bubble_sheet(filled=filled, noise=noise, seed=seed, **layout)
    return SheetData(image=image, truth=truth, expected_filled=set(filled))


def run_detection(sheet: SheetData, config: DetectionConfig = None):
    return detect_bubbles(PixelBuffer.from_array(sheet.image), config)


def test_clean_sheet_detects_every_bubble():
    sheet = make_sheet()
    result = run_detection(sheet)

    assert result.image_width == 400
    assert result.image_height == 300
    assert result.total_bubbles == 20
    assert result.filled_bubbles == 5
    assert result.empty_bubbles == 15
    assert set(result.filled_cells()) == sheet.expected_filled


def test_clean_sheet_scores_perfectly():
    sheet = make_sheet()
    result = run_detection(sheet)

    report = score(result.bubbles, sheet.truth)

    assert report.accuracy == 1.0
    assert report.false_positives == 0
    assert report.false_negatives == 0
    assert report.correct == 20


def test_clean_sheet_grid_is_dense_rectangle():
    result = run_detection(make_sheet())

    cells = [mark.cell for mark in result.bubbles]
    assert sorted(cells) == [(row, col) for row in range(5) for col in range(4)]
    assert duplicate_cells(result.bubbles) == []
    assert grid_shape(result.bubbles) == (5, 4)


def test_wider_grid_is_dense_rectangle():
    sheet = make_sheet(width=500, height=250, rows=3, cols=6, spacing=60, radius=12, filled=((1, 4),))
    result = run_detection(sheet)

    cells = sorted(mark.cell for mark in result.bubbles)
    assert cells == [(row, col) for row in range(3) for col in range(6)]
    assert result.filled_bubbles == 1


@pytest.mark.parametrize("seed", [1, 7, 42, 1234, 2024])
def test_noisy_sheet_speckles_are_not_filled_bubbles(seed: int):
    sheet = make_sheet(noise=True, seed=seed)
    result = run_detection(sheet)

    assert result.filled_bubbles == 5
    assert result.total_bubbles == 20
    assert set(result.filled_cells()) == sheet.expected_filled

    report = score(result.bubbles, sheet.truth)
    assert report.accuracy == 1.0
    assert report.false_positives == 0
    assert report.false_negatives == 0


def test_filled_bubbles_have_high_fill_ratio():
    result = run_detection(make_sheet())

    for mark in result.bubbles:
        if mark.is_filled:
            assert mark.fill_ratio > 0.9
        else:
            assert mark.fill_ratio < 0.1


def test_rerunning_is_deterministic():
    sheet = make_sheet(noise=True)

    first = run_detection(sheet)
    second = run_detection(sheet)

    assert first.bubbles == second.bubbles


def test_zero_sized_buffer_gives_empty_result():
    result = detect_bubbles(PixelBuffer(width=0, height=0, data=b""))

    assert result.total_bubbles == 0
    assert result.filled_bubbles == 0
    assert result.bubbles == ()


def test_blank_page_gives_empty_result():
    blank = np.full((300, 400), 255, dtype=np.uint8)

    result = detect_bubbles(PixelBuffer.from_array(blank))

    assert result.total_bubbles == 0
    assert result.image_width == 400


def test_higher_fill_threshold_reclassifies_marks():
    sheet = make_sheet()
    strict = DetectionConfig(fill_threshold=1.0, dark_intensity=0)

    result = run_detection(sheet, strict)

    assert result.total_bubbles == 20
    assert result.filled_bubbles == 0


def test_process_image_scores_against_sidecar(tmp_path: Path):
    clean, noisy = create_sample_images(tmp_path / "samples")

    summary = process_image(clean, debug_dir=tmp_path / "debug")

    assert summary["result"]["totalBubbles"] == 20
    assert summary["accuracy"]["accuracy"] == 1.0
    assert summary["accuracy"]["meetsTarget"] is True
    assert (tmp_path / "debug" / "sample-clean_annotated.png").exists()


def test_process_image_without_sidecar_has_no_accuracy(tmp_path: Path):
    clean, _ = create_sample_images(tmp_path)
    clean.with_suffix(".json").unlink()

    summary = process_image(clean)

    assert summary["accuracy"] is None


def test_batch_records_errors_and_keeps_order(tmp_path: Path):
    clean, noisy = create_sample_images(tmp_path)
    missing = tmp_path / "missing.png"

    summaries = process_batch([missing, clean, noisy])

    assert [s["image"] for s in summaries] == [str(missing), str(clean), str(noisy)]
    assert "error" in summaries[0]
    assert summaries[1]["result"]["filledBubbles"] == 5
    assert summaries[2]["result"]["filledBubbles"] == 5


def test_parallel_batch_matches_serial(tmp_path: Path):
    paths = create_sample_images(tmp_path)

    serial = process_batch(paths, max_workers=1)
    parallel = process_batch(paths, max_workers=2)

    for one, other in zip(serial, parallel):
        assert one["image"] == other["image"]
        assert one["result"]["bubbles"] == other["result"]["bubbles"]


def test_cli_samples_then_detect(tmp_path: Path, capsys):
    assert main(["samples", str(tmp_path), "--pdf"]) == 0
    assert (tmp_path / "sample-clean.png").exists()
    assert (tmp_path / "sample-noisy.json").exists()
    assert (tmp_path / "bubble-sheet.pdf").exists()

    output_json = tmp_path / "out" / "summary.json"
    assert main(["detect", str(tmp_path), "--output-json", str(output_json)]) == 0

    printed = capsys.readouterr().out
    assert "Total bubbles detected: 20" in printed
    assert "Accuracy: 100.0%" in printed

    payload = json.loads(output_json.read_text(encoding="utf-8"))
    assert payload["parameters"]["fill_threshold"] == pytest.approx(0.4)
    assert len(payload["images"]) == 2


def test_cli_detect_reports_failure_for_unreadable_image(tmp_path: Path):
    bogus = tmp_path / "broken.png"
    bogus.write_bytes(b"not an image")

    assert main(["detect", str(bogus)]) == 1
