import logging

import pytest

from bubble_grid import BubbleMark, GroundTruthEntry, score


def at(row: int, col: int, filled: bool) -> BubbleMark:
    return BubbleMark(x=col * 50, y=row * 50, radius=15, is_filled=filled, fill_ratio=0.0, row=row, col=col)


def truth_of(*cells):
    return [GroundTruthEntry(row=r, col=c, is_filled=f) for r, c, f in cells]


TRUTH = truth_of((0, 0, True), (0, 1, False), (1, 0, False), (1, 1, True))


def test_exact_match_is_fully_accurate():
    detected = [at(0, 0, True), at(0, 1, False), at(1, 0, False), at(1, 1, True)]

    report = score(detected, TRUTH)

    assert report.accuracy == 1.0
    assert (report.false_positives, report.false_negatives) == (0, 0)
    assert (report.correct, report.compared) == (4, 4)


def test_empty_cell_read_as_filled_is_false_positive():
    detected = [at(0, 0, True), at(0, 1, True), at(1, 0, False), at(1, 1, True)]

    report = score(detected, TRUTH)

    assert report.false_positives == 1
    assert report.false_negatives == 0
    assert report.accuracy == pytest.approx(0.75)


def test_filled_cell_read_as_empty_is_false_negative():
    detected = [at(0, 0, False), at(0, 1, False), at(1, 0, False), at(1, 1, True)]

    report = score(detected, TRUTH)

    assert report.false_negatives == 1
    assert report.false_positives == 0
    assert report.accuracy == pytest.approx(0.75)


def test_missing_filled_cell_is_false_negative():
    detected = [at(0, 1, False), at(1, 0, False), at(1, 1, True)]

    report = score(detected, TRUTH)

    assert report.false_negatives == 1
    assert report.correct == 3


def test_missing_empty_cell_is_neither_correct_nor_error():
    detected = [at(0, 0, True), at(1, 0, False), at(1, 1, True)]

    report = score(detected, TRUTH)

    assert (report.false_positives, report.false_negatives) == (0, 0)
    assert report.correct == 3
    assert report.accuracy == pytest.approx(0.75)


def test_extra_detections_outside_truth_are_ignored():
    detected = [at(0, 0, True), at(0, 1, False), at(1, 0, False), at(1, 1, True), at(4, 4, True)]

    report = score(detected, TRUTH)

    assert report.accuracy == 1.0
    assert report.false_positives == 0


def test_empty_truth_scores_zero():
    report = score([at(0, 0, True)], [])

    assert report.accuracy == 0.0
    assert report.compared == 0


def test_nothing_detected_counts_every_filled_cell_missed():
    report = score([], TRUTH)

    assert report.false_negatives == 2
    assert report.correct == 0
    assert report.accuracy == 0.0


def test_first_mark_wins_a_shared_cell(caplog):
    detected = [at(0, 0, True), at(0, 0, False)]
    truth = truth_of((0, 0, True))

    with caplog.at_level(logging.WARNING, logger="bubble_grid.scoring"):
        report = score(detected, truth)

    assert report.accuracy == 1.0
    assert report.false_negatives == 0
    assert "more than one detected mark" in caplog.text


def test_report_serialises_with_camel_case_counts():
    report = score([at(0, 0, False)], truth_of((0, 0, True)))

    assert report.to_dict() == {
        "accuracy": 0.0,
        "falsePositives": 0,
        "falseNegatives": 1,
        "correct": 0,
        "compared": 1,
    }
