"""
Visualization for the detection pipeline.

Responsibility:
    Draw bounding boxes and label/score captions onto an image. This is a
    pure rendering module: it produces an annotated copy of the image and
    performs no I/O.

Non-goals:
    - No file writing, window management, or display logic.
    - No detection or model logic.
"""

from typing import List

import cv2
import numpy as np

from nudenet.config import VisualizationConfig
from nudenet.detection import Detection

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LABEL_PADDING = 4


def draw_detections(
    image: np.ndarray,
    detections: List[Detection],
    config: VisualizationConfig,
) -> np.ndarray:
    """Draw bounding boxes and captions onto an image.

    Args:
        image: Input BGR image (not modified; a copy is returned).
        detections: List of Detection objects to render. Boxes outside the
                    image are drawn clipped by OpenCV.
        config: Visualization parameters (color, thickness, scores).

    Returns:
        A new BGR numpy array with detections drawn.
    """
    annotated = image.copy()
    h = annotated.shape[0]

    for det in detections:
        cv2.rectangle(
            annotated,
            (det.x1, det.y1),
            (det.x2, det.y2),
            color=config.box_color,
            thickness=config.thickness,
        )

        label = det.label.value
        if config.show_confidence:
            label = f"{label} {det.score:.2f}"

        (text_w, text_h), _ = cv2.getTextSize(
            label, _FONT, _FONT_SCALE, _FONT_THICKNESS
        )

        # Caption above the box, or inside it if too close to the top
        label_x = max(det.x1, 0)
        label_y = det.y1 - _LABEL_PADDING
        if label_y - text_h - _LABEL_PADDING < 0:
            label_y = max(det.y1, 0) + text_h + _LABEL_PADDING
        label_y = min(label_y, h - 1)

        cv2.rectangle(
            annotated,
            (label_x, label_y - text_h - _LABEL_PADDING),
            (label_x + text_w + _LABEL_PADDING, label_y + _LABEL_PADDING),
            color=config.box_color,
            thickness=cv2.FILLED,
        )

        cv2.putText(
            annotated,
            label,
            (label_x + _LABEL_PADDING // 2, label_y),
            _FONT,
            _FONT_SCALE,
            (255, 255, 255),  # White text on colored background
            _FONT_THICKNESS,
            cv2.LINE_AA,
        )

    return annotated
