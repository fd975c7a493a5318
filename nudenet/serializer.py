"""
Serialization for the detection pipeline.

Responsibility:
    Export detection results to structured file formats (JSON, CSV)
    for downstream consumption or offline analysis.

Non-goals:
    - No rendering, display, or detection logic.
    - No streaming output; writes complete files on finalize.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List

from nudenet.detection import Detection

logger = logging.getLogger(__name__)


def save_json(
    detections_by_image: Dict[str, List[Detection]],
    output_path: str,
) -> None:
    """Export all detections to a JSON file.

    Output schema:
        {
            "images": [
                {
                    "source": "photos/a.jpg",
                    "detections": [
                        {"box": [x1, y1, x2, y2], "score": ..., "label": "..."}
                    ]
                }
            ],
            "total_images": N,
            "total_detections": M
        }

    Args:
        detections_by_image: Mapping of image source → list of Detection objects.
        output_path: Path to the output JSON file.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    images = []
    total_detections = 0

    for source in sorted(detections_by_image.keys()):
        dets = detections_by_image[source]
        total_detections += len(dets)
        images.append({
            "source": source,
            "detections": [d.to_dict() for d in dets],
        })

    payload = {
        "images": images,
        "total_images": len(images),
        "total_detections": total_detections,
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info(
        "JSON output saved: %s (%d images, %d detections)",
        output_path, len(images), total_detections,
    )


def save_csv(
    detections_by_image: Dict[str, List[Detection]],
    output_path: str,
) -> None:
    """Export all detections to a CSV file.

    Columns: source, label, score, x1, y1, x2, y2

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    fieldnames = ["source", "label", "score", "x1", "y1", "x2", "y2"]

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        total = 0
        for source in sorted(detections_by_image.keys()):
            for det in detections_by_image[source]:
                x1, y1, x2, y2 = det.box
                writer.writerow({
                    "source": source,
                    "label": det.label.value,
                    "score": det.score,
                    "x1": x1,
                    "y1": y1,
                    "x2": x2,
                    "y2": y2,
                })
                total += 1

    logger.info("CSV output saved: %s (%d rows)", output_path, total)


def _ensure_parent_dir(path: str) -> None:
    """Create parent directories if they don't exist."""
    parent = Path(path).parent
    parent.mkdir(parents=True, exist_ok=True)
