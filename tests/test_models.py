"""
Smoke tests for typed models and adapters.
"""

import dataclasses

import numpy as np
import pytest

from inference.errors import AllBackendsFailed, InferenceError, NotInitialized
from models.detection import BoundingBox, boxes_to_numpy
from models.labels import DEFAULT_EXCLUDED_CLASS_IDS, WHOLEBODY_LABELS, label_for


class TestBoundingBox:
    def test_properties(self):
        bbox = BoundingBox(x1=100, y1=100, x2=200, y2=150, confidence=0.8, class_id=0, label="Body")
        assert bbox.width == 100
        assert bbox.height == 50
        assert bbox.center == (150, 125)
        assert bbox.area == 5000

    def test_as_int_tuple(self):
        bbox = BoundingBox(x1=10.7, y1=20.2, x2=30.9, y2=40.1, confidence=0.8, class_id=0, label="Body")
        assert bbox.as_int_tuple() == (10, 20, 30, 40)

    def test_frozen(self):
        bbox = BoundingBox(x1=0, y1=0, x2=1, y2=1, confidence=0.5, class_id=7, label="Head")
        with pytest.raises(dataclasses.FrozenInstanceError):
            bbox.x1 = 5

    def test_to_dict(self):
        bbox = BoundingBox(x1=1, y1=2, x2=3, y2=4, confidence=0.9, class_id=16, label="Face")
        assert bbox.to_dict() == {
            "x1": 1, "y1": 2, "x2": 3, "y2": 4,
            "confidence": 0.9, "class_id": 16, "label": "Face",
        }


class TestBoxesToNumpy:
    def test_empty(self):
        arr = boxes_to_numpy([])
        assert arr.shape == (0, 6)

    def test_values(self):
        boxes = [
            BoundingBox(x1=1, y1=2, x2=3, y2=4, confidence=0.5, class_id=0, label="Body"),
            BoundingBox(x1=5, y1=6, x2=7, y2=8, confidence=0.75, class_id=7, label="Head"),
        ]
        arr = boxes_to_numpy(boxes)
        assert arr.shape == (2, 6)
        assert np.allclose(arr[1], [5, 6, 7, 8, 0.75, 7])


class TestLabels:
    def test_table(self):
        assert len(WHOLEBODY_LABELS) == 25
        assert WHOLEBODY_LABELS[0] == "Body"
        assert WHOLEBODY_LABELS[7] == "Head"
        assert WHOLEBODY_LABELS[16] == "Face"
        assert WHOLEBODY_LABELS[24] == "Foot"

    def test_excluded_ids_are_attributes_and_orientations(self):
        kept = [WHOLEBODY_LABELS[i] for i in range(25) if i not in DEFAULT_EXCLUDED_CLASS_IDS]
        assert kept == [
            "Body", "Body_with_Wheelchair", "Body_with_Crutches", "Head",
            "Face", "Eye", "Nose", "Mouth", "Ear", "Hand", "Foot",
        ]

    def test_label_for_unknown(self):
        assert label_for(3) == "Male"
        assert label_for(25) == "class_25"
        assert label_for(-1) == "class_-1"


class TestErrors:
    def test_hierarchy(self):
        assert issubclass(NotInitialized, InferenceError)
        assert issubclass(InferenceError, RuntimeError)

    def test_all_backends_failed_carries_attempts(self):
        cause = RuntimeError("no device")
        error = AllBackendsFailed("nothing loaded", last_error=cause, attempts=[("cpu", cause)])
        assert error.last_error is cause
        assert error.attempts == [("cpu", cause)]
