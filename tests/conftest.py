"""
Shared fixtures: synthetic model outputs and a fake inference session,
so the pipeline can be tested without a model file.
"""

from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pytest

from nudenet.class_registry import ClassRegistry, load_class_names
from nudenet.config import DEFAULT_CLASSES_PATH

Anchor = Tuple[Sequence[float], Dict[int, float]]


class FakeSession:
    """Stands in for onnxruntime.InferenceSession."""

    def __init__(self, output=None, error: Exception = None) -> None:
        self.output = output
        self.error = error
        self.calls: List[tuple] = []

    def run(self, output_names, feed):
        self.calls.append((output_names, feed))
        if self.error is not None:
            raise self.error
        return [self.output]


def _make_output(anchors: Sequence[Anchor], num_classes: int = 18) -> np.ndarray:
    """Build a (1, 4 + C, N) output from (box_cxcywh, {class_index: score}) pairs."""
    out = np.zeros((1, 4 + num_classes, len(anchors)), dtype=np.float32)
    for i, (box, scores) in enumerate(anchors):
        out[0, :4, i] = box
        for cls, score in scores.items():
            out[0, 4 + cls, i] = score
    return out


@pytest.fixture
def make_output():
    return _make_output


@pytest.fixture
def fake_session_cls():
    return FakeSession


@pytest.fixture(scope="session")
def classes_path():
    return Path(DEFAULT_CLASSES_PATH)


@pytest.fixture(scope="session")
def classes(classes_path):
    return load_class_names(classes_path)


@pytest.fixture
def registry(classes_path):
    return ClassRegistry(classes_path)
