"""
Decoding of the raw multi-anchor detection tensor.

Responsibility:
    Turn the model output of shape (1, 4 + C, N) into one Detection per
    anchor whose best class score reaches min_prob, with boxes mapped back
    to original image coordinates.

Non-goals:
    - No suppression of overlapping boxes (see nms.py).
    - No clamping to image bounds.

Hard-coded:
    - Per anchor the features are [x_center, y_center, width, height,
      score_0, ..., score_{C-1}], boxes in resized-image pixels.
"""

from typing import List, Sequence, Union

import numpy as np

from nudenet.detection import Detection, DetectionLabel

DEFAULT_MIN_PROB = 0.25


def _round_half_away(values: np.ndarray) -> np.ndarray:
    """Round to the nearest integer, halves away from zero."""
    return np.copysign(np.floor(np.abs(values) + 0.5), values)


def decode(
    output: np.ndarray,
    classes: Sequence[Union[str, DetectionLabel]],
    scale: float,
    min_prob: float = DEFAULT_MIN_PROB,
) -> List[Detection]:
    """Extract candidate detections from a raw output tensor.

    Args:
        output: Model output of shape (1, 4 + C, N).
        classes: Labels in output channel order.
        scale: Factor the original image was resized by.
        min_prob: Anchors whose best class score is below this are dropped.

    Returns:
        Detections in anchor order, before non-maximum suppression. Anchors
        whose best class index has no label in `classes` are dropped.

    Raises:
        ValueError: If output does not have shape (1, 4 + C, N) with C >= 1.
    """
    p = np.asarray(output)
    if p.ndim != 3 or p.shape[0] != 1:
        raise ValueError(
            f"Expected output of shape (1, 4 + C, N), got {p.shape}. "
            f"Pass one image at a time."
        )
    if p.shape[1] < 5:
        raise ValueError(
            f"Output has {p.shape[1]} features per anchor; need 4 box values "
            f"plus at least one class score."
        )

    labels = [DetectionLabel(c) for c in classes]

    # Anchor-major view: (N, 4 + C)
    rows = p[0].T
    if rows.shape[0] == 0:
        return []

    class_scores = rows[:, 4:]
    # argmax picks the lowest channel index on ties
    class_ids = np.argmax(class_scores, axis=1)
    max_scores = class_scores[np.arange(rows.shape[0]), class_ids]

    keep = (max_scores >= min_prob) & (class_ids < len(labels))
    if not np.any(keep):
        return []

    cx, cy, w, h = rows[keep, :4].astype(np.float64).T
    corners = np.stack(
        [cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2],
        axis=1,
    )
    boxes = _round_half_away(corners / scale).astype(np.int64)

    return [
        Detection(
            box=(int(x1), int(y1), int(x2), int(y2)),
            score=float(score),
            label=labels[int(cls_id)],
        )
        for (x1, y1, x2, y2), score, cls_id in zip(
            boxes, max_scores[keep], class_ids[keep]
        )
    ]
