"""
Output handling for the batch CLI.

Responsibility:
    Route detection results to configured output sinks: stdout, annotated
    images, JSON, or CSV. Supports multiple orthogonal outputs simultaneously.

Non-goals:
    - No detection logic.
    - No input enumeration.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Set, TextIO

import cv2

from nudenet.config import AppConfig, resolve_path
from nudenet.detection import Detection
from nudenet.serializer import save_csv, save_json
from nudenet.visualizer import draw_detections

logger = logging.getLogger(__name__)


class OutputHandler:
    """Routes detection results to configured output sinks.

    Supports orthogonal outputs - multiple modes can be active simultaneously:
        - 'print': Write one JSON line per image to stdout.
        - 'save_image': Write an annotated copy of each image.
        - 'save_json': Accumulate detections, write JSON on finalize.
        - 'save_csv': Accumulate detections, write CSV on finalize.

    Usage:
        handler = OutputHandler(config)
        handler.process_image(image_id, path, detections)
        ...
        handler.finalize()  # Flush any buffered output
    """

    def __init__(self, config: AppConfig, stream: TextIO = sys.stdout) -> None:
        """Initialize the output handler.

        Args:
            config: Application configuration (output mode, paths, vis params).
            stream: Destination for 'print' mode.
        """
        self._config = config
        self._stream = stream

        # Parse output modes (comma-separated for multiple outputs)
        self._modes: Set[str] = set(m.strip() for m in config.output.mode.split(","))

        # Buffer for serialization modes
        self._detections_buffer: Dict[str, List[Detection]] = {}

        self._save_path = resolve_path(config.output.save_path)

        # Create output directory if saving files
        if self._modes & {"save_image", "save_json", "save_csv"}:
            self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info("OutputHandler initialized: modes=%s, save_path=%s",
                    self._modes, self._save_path)

    def process_image(
        self,
        image_id: int,
        path: Path,
        detections: List[Detection],
    ) -> None:
        """Process a single image's detections through the output pipeline."""
        if "print" in self._modes:
            record = {
                "source": str(path),
                "detections": [d.to_dict() for d in detections],
            }
            self._stream.write(json.dumps(record) + "\n")

        if "save_image" in self._modes:
            self._handle_save_image(image_id, path, detections)

        if "save_json" in self._modes or "save_csv" in self._modes:
            self._detections_buffer[str(path)] = detections

    def _handle_save_image(
        self,
        image_id: int,
        path: Path,
        detections: List[Detection],
    ) -> None:
        """Save an annotated copy of the source image."""
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if image is None:
            logger.warning("Cannot re-read %s for annotation, skipping.", path)
            return

        annotated = draw_detections(image, detections, self._config.visualization)
        output_file = self._save_path / f"{image_id:06d}_{path.stem}.jpg"
        cv2.imwrite(str(output_file), annotated)
        logger.debug("Saved annotated image %d to %s", image_id, output_file)

    def finalize(self) -> None:
        """Flush buffered output.

        Must be called after all images have been processed.
        """
        if "save_json" in self._modes and self._detections_buffer:
            save_json(self._detections_buffer, str(self._save_path / "detections.json"))

        if "save_csv" in self._modes and self._detections_buffer:
            save_csv(self._detections_buffer, str(self._save_path / "detections.csv"))

        self._stream.flush()
        self._detections_buffer.clear()
        logger.info("OutputHandler finalized.")
