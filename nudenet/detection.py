"""
Detection data transfer object and the closed enumerations around it.

This module defines the Detection dataclass, the single output type
returned by Detector.detect(), together with the fixed label set and the
size-policy mode. It is intentionally minimal: frozen, serializable
containers with no behavior beyond data access.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No coordinate transformation (that belongs in the decoder).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


class DetectionLabel(str, Enum):
    """Fixed set of class labels. Values are the wire format."""

    FEMALE_GENITALIA_EXPOSED = "FEMALE_GENITALIA_EXPOSED"
    FEMALE_GENITALIA_COVERED = "FEMALE_GENITALIA_COVERED"
    FEMALE_BREAST_EXPOSED = "FEMALE_BREAST_EXPOSED"
    FEMALE_BREAST_COVERED = "FEMALE_BREAST_COVERED"
    MALE_GENITALIA_EXPOSED = "MALE_GENITALIA_EXPOSED"
    MALE_BREAST_EXPOSED = "MALE_BREAST_EXPOSED"
    ANUS_EXPOSED = "ANUS_EXPOSED"
    ANUS_COVERED = "ANUS_COVERED"
    BUTTOCKS_EXPOSED = "BUTTOCKS_EXPOSED"
    BUTTOCKS_COVERED = "BUTTOCKS_COVERED"
    BELLY_EXPOSED = "BELLY_EXPOSED"
    BELLY_COVERED = "BELLY_COVERED"
    FEET_EXPOSED = "FEET_EXPOSED"
    FEET_COVERED = "FEET_COVERED"
    ARMPITS_EXPOSED = "ARMPITS_EXPOSED"
    ARMPITS_COVERED = "ARMPITS_COVERED"
    FACE_FEMALE = "FACE_FEMALE"
    FACE_MALE = "FACE_MALE"


class Mode(str, Enum):
    """Size policy used when resizing the input image.

    fast:     shorter side 320, longer side capped at 320.
    accurate: shorter side 800, longer side capped at 1333.
    """

    FAST = "fast"
    ACCURATE = "accurate"

    @classmethod
    def parse(cls, value: Union["Mode", str]) -> "Mode":
        """Return the Mode for a Mode instance or its string value.

        Raises:
            ValueError: If value does not name a known mode.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(
            f"Invalid mode: {value!r}. "
            f"Must be one of {[m.value for m in cls]}."
        )


@dataclass(frozen=True, slots=True)
class Detection:
    """A single labeled region with bounding box and confidence score.

    Attributes:
        box: (x1, y1, x2, y2) in absolute pixels of the ORIGINAL image.
             Not clamped: coordinates may be negative or exceed the image
             bounds when the model predicts outside the frame.
        score: Confidence score in [0.0, 1.0].
        label: Class label from the fixed label set.
    """

    box: Tuple[int, int, int, int]
    score: float
    label: DetectionLabel

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "box": list(self.box),
            "score": self.score,
            "label": self.label.value,
        }

    def __str__(self) -> str:
        return (
            f"<Detection box={list(self.box)} score={self.score:.3f} "
            f"label={self.label.value!r}>"
        )

    @property
    def x1(self) -> int:
        return self.box[0]

    @property
    def y1(self) -> int:
        return self.box[1]

    @property
    def x2(self) -> int:
        return self.box[2]

    @property
    def y2(self) -> int:
        return self.box[3]

    @property
    def width(self) -> int:
        """Bounding box width in pixels."""
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        """Bounding box height in pixels."""
        return self.y2 - self.y1

    @property
    def area(self) -> int:
        """Bounding box area in pixels."""
        return self.width * self.height
