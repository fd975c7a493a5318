"""
Class-aware greedy Non-Maximum Suppression.

Candidates are visited in descending score order (stable, so equal scores
keep their decoding order). Each visited box is kept and removes every
remaining box with the same label whose IoU with it is strictly greater
than the threshold. Boxes with different labels never suppress each other.
"""

from typing import List, Sequence

from nudenet.detection import Detection

DEFAULT_IOU_THRESHOLD = 0.45


def iou(box_a: Sequence[float], box_b: Sequence[float]) -> float:
    """Intersection over union of two (x1, y1, x2, y2) boxes.

    Returns 0.0 when the union area is zero.
    """
    ix1 = max(box_a[0], box_b[0])
    iy1 = max(box_a[1], box_b[1])
    ix2 = min(box_a[2], box_b[2])
    iy2 = min(box_a[3], box_b[3])

    inter = max(0, ix2 - ix1) * max(0, iy2 - iy1)

    area_a = (box_a[2] - box_a[0]) * (box_a[3] - box_a[1])
    area_b = (box_b[2] - box_b[0]) * (box_b[3] - box_b[1])
    union = area_a + area_b - inter

    if union == 0:
        return 0.0

    return inter / union


def suppress(
    detections: Sequence[Detection],
    iou_threshold: float = DEFAULT_IOU_THRESHOLD,
) -> List[Detection]:
    """Filter overlapping same-label detections.

    Returns:
        The kept detections in the order they were selected (score descending).
    """
    remaining = sorted(detections, key=lambda d: d.score, reverse=True)
    keep: List[Detection] = []

    while remaining:
        best = remaining.pop(0)
        keep.append(best)

        remaining = [
            det
            for det in remaining
            if det.label != best.label or iou(best.box, det.box) <= iou_threshold
        ]

    return keep
