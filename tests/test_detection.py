"""
Tests for the Detection data transfer object and enumerations.
"""

import dataclasses
import json

import pytest

from nudenet.detection import Detection, DetectionLabel, Mode


@pytest.fixture
def detection():
    return Detection(
        box=(100, 200, 300, 400),
        score=0.8523,
        label=DetectionLabel.FEMALE_BREAST_EXPOSED,
    )


def test_to_dict(detection):
    assert detection.to_dict() == {
        "box": [100, 200, 300, 400],
        "score": 0.8523,
        "label": "FEMALE_BREAST_EXPOSED",
    }
    json.dumps(detection.to_dict())


def test_str(detection):
    text = str(detection)
    assert "Detection" in text
    assert "0.852" in text
    assert "FEMALE_BREAST_EXPOSED" in text


def test_is_immutable(detection):
    with pytest.raises(dataclasses.FrozenInstanceError):
        detection.score = 0.1


def test_geometry(detection):
    assert (detection.x1, detection.y1, detection.x2, detection.y2) == (100, 200, 300, 400)
    assert detection.width == 200
    assert detection.height == 200
    assert detection.area == 40000


def test_label_set_is_closed():
    assert len(DetectionLabel) == 18
    assert DetectionLabel("FACE_MALE") is DetectionLabel.FACE_MALE
    with pytest.raises(ValueError):
        DetectionLabel("HAT")


def test_mode_parse():
    assert Mode.parse("fast") is Mode.FAST
    assert Mode.parse(" ACCURATE ") is Mode.ACCURATE
    assert Mode.parse(Mode.FAST) is Mode.FAST
    for bad in ("slow", "", None, 3):
        with pytest.raises(ValueError):
            Mode.parse(bad)
