"""
Tests for IoU and class-aware non-maximum suppression.
"""

import numpy as np
import pytest

from nudenet.detection import Detection, DetectionLabel
from nudenet.nms import iou, suppress

BREAST = DetectionLabel.FEMALE_BREAST_EXPOSED
FACE = DetectionLabel.FACE_FEMALE


def _det(box, score, label=BREAST):
    return Detection(box=tuple(box), score=score, label=label)


def test_iou_identical_boxes():
    assert iou((10, 20, 50, 80), (10, 20, 50, 80)) == pytest.approx(1.0)


def test_iou_disjoint_boxes():
    assert iou((0, 0, 10, 10), (20, 20, 30, 30)) == 0.0


def test_iou_touching_edges():
    assert iou((0, 0, 10, 10), (10, 0, 20, 10)) == 0.0


def test_iou_zero_union():
    """Two degenerate boxes give 0.0 rather than a division error."""
    assert iou((5, 5, 5, 5), (5, 5, 5, 5)) == 0.0


def test_iou_half_overlap():
    assert iou((0, 0, 30, 10), (10, 0, 40, 10)) == pytest.approx(0.5)


def test_suppress_removes_overlap_above_threshold():
    """IoU 0.5 against threshold 0.45 drops the weaker box."""
    strong = _det((0, 0, 30, 10), 0.9)
    weak = _det((10, 0, 40, 10), 0.6)

    assert suppress([weak, strong], iou_threshold=0.45) == [strong]


def test_suppress_keeps_overlap_below_threshold():
    strong = _det((0, 0, 30, 10), 0.9)
    weak = _det((10, 0, 40, 10), 0.6)

    assert suppress([weak, strong], iou_threshold=0.6) == [strong, weak]


def test_suppress_requires_strictly_greater_iou():
    strong = _det((0, 0, 30, 10), 0.9)
    weak = _det((10, 0, 40, 10), 0.6)

    assert suppress([strong, weak], iou_threshold=0.5) == [strong, weak]


def test_suppress_is_class_scoped():
    """Fully overlapping boxes with different labels both survive."""
    a = _det((0, 0, 10, 10), 0.9, BREAST)
    b = _det((0, 0, 10, 10), 0.8, FACE)

    assert suppress([a, b]) == [a, b]


def test_suppress_orders_by_score_descending():
    dets = [
        _det((0, 0, 10, 10), 0.3),
        _det((100, 100, 110, 110), 0.9),
        _det((200, 200, 210, 210), 0.6),
    ]

    kept = suppress(dets)

    assert [d.score for d in kept] == [0.9, 0.6, 0.3]


def test_suppress_equal_scores_keep_input_order():
    first = _det((0, 0, 10, 10), 0.5)
    second = _det((0, 0, 10, 10), 0.5)
    third = _det((100, 100, 110, 110), 0.5, FACE)

    kept = suppress([first, third, second])

    assert kept == [first, third]
    assert kept[0] is first


def test_suppress_only_against_kept_boxes():
    """A box removed by the best one cannot itself suppress anything."""
    a = _det((0, 0, 30, 10), 0.9)
    b = _det((10, 0, 40, 10), 0.8)   # overlaps a (0.5) → removed
    c = _det((20, 0, 50, 10), 0.7)   # overlaps b (0.5), a only 0.2

    assert suppress([a, b, c]) == [a, c]


def test_suppress_empty():
    assert suppress([]) == []


def test_suppress_properties_on_random_boxes():
    """Output is a subset, same-label survivors never overlap past the threshold,
    and the best box of each label is always kept."""
    rng = np.random.default_rng(7)
    labels = [BREAST, FACE, DetectionLabel.BELLY_EXPOSED]
    dets = []
    for _ in range(200):
        x1, y1 = rng.integers(0, 200, size=2)
        w, h = rng.integers(5, 60, size=2)
        dets.append(_det(
            (int(x1), int(y1), int(x1 + w), int(y1 + h)),
            float(rng.random()),
            labels[int(rng.integers(0, 3))],
        ))

    kept = suppress(dets, iou_threshold=0.45)

    assert all(any(k is d for d in dets) for k in kept)
    for i, a in enumerate(kept):
        for b in kept[i + 1:]:
            if a.label == b.label:
                assert iou(a.box, b.box) <= 0.45
    for label in labels:
        best = max((d for d in dets if d.label == label), key=lambda d: d.score)
        assert any(k is best for k in kept)
