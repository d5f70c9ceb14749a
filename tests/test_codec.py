"""
Tests for frame preprocessing and raw output decoding.
"""

import logging

import numpy as np
import pytest

from algorithms.suppression import suppress
from codec import Letterbox, compute_letterbox, decode_detections, decode_mask, preprocess
from models.labels import DEFAULT_EXCLUDED_CLASS_IDS
from fakes import set_box, transposed_output


class TestLetterbox:
    def test_640x480_on_640_canvas(self):
        box = compute_letterbox(640, 480, 640, 640)
        assert box == Letterbox(scale=1.0, pad_x=0, pad_y=80, width=640, height=480)

    def test_odd_difference_truncates(self):
        box = compute_letterbox(640, 479, 640, 640)
        assert box.pad_y == 80

    def test_oversized_frame_is_downscaled(self):
        box = compute_letterbox(1280, 960, 640, 640)
        assert box.scale == 0.5
        assert (box.width, box.height) == (640, 480)
        assert box.pad_x == 0
        assert box.pad_y == 80

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            compute_letterbox(0, 480, 640, 640)


class TestPreprocess:
    def test_shape_and_padding(self):
        frame = np.zeros((480, 640, 4), dtype=np.uint8)
        frame[..., 0] = 255  # red
        frame[..., 3] = 255

        tensor, box = preprocess(frame, (1, 3, 640, 640))

        assert tensor.shape == (1, 3, 640, 640)
        assert tensor.dtype == np.float32
        assert box.pad_y == 80
        # Padding rows are black
        assert np.all(tensor[0, :, :80, :] == 0)
        assert np.all(tensor[0, :, 560:, :] == 0)
        # Planar layout: red plane is 1.0, others 0
        assert np.allclose(tensor[0, 0, 80:560, :], 1.0)
        assert np.all(tensor[0, 1, 80:560, :] == 0)
        assert np.all(tensor[0, 2, 80:560, :] == 0)

    def test_alpha_is_dropped(self):
        frame = np.zeros((480, 640, 4), dtype=np.uint8)
        frame[..., 3] = 255
        tensor, _ = preprocess(frame, (1, 3, 640, 640))
        assert tensor.max() == 0

    def test_rgb_input_accepted(self):
        frame = np.full((480, 640, 3), 51, dtype=np.uint8)
        tensor, _ = preprocess(frame, (1, 3, 640, 640))
        assert np.allclose(tensor[0, :, 80:560, :], 0.2)

    def test_normalization_profile(self):
        frame = np.full((480, 640, 4), 255, dtype=np.uint8)
        mean = (0.485, 0.456, 0.406)
        std = (0.229, 0.224, 0.225)

        tensor, _ = preprocess(frame, (1, 3, 640, 640), mean=mean, std=std)

        for c in range(3):
            expected = (1.0 - mean[c]) / std[c]
            assert tensor[0, c, 300, 300] == pytest.approx(expected, rel=1e-5)
            # Padding is normalized from zero
            assert tensor[0, c, 0, 0] == pytest.approx(-mean[c] / std[c], rel=1e-5)

    def test_rejects_bad_frame(self):
        with pytest.raises(ValueError):
            preprocess(np.zeros((480, 640), dtype=np.uint8), (1, 3, 640, 640))


class TestDecodeDetections:
    def test_transposed_single_body(self):
        """[1, 29, 100] output, class 0 at 0.9, padY=80 on a 640x480 frame."""
        raw = transposed_output()
        set_box(raw, 0, cx=320, cy=320, w=100, h=200, class_id=0, score=0.9)
        letterbox = compute_letterbox(640, 480, 640, 640)

        boxes = decode_detections(raw, 640, 480, 0.5, DEFAULT_EXCLUDED_CLASS_IDS, letterbox)
        boxes = suppress(boxes, 0.45)

        assert len(boxes) == 1
        box = boxes[0]
        assert box.label == "Body"
        assert box.class_id == 0
        assert box.confidence == pytest.approx(0.9)
        assert box.x1 == pytest.approx(270)
        assert box.x2 == pytest.approx(370)
        assert box.y1 == pytest.approx(220 - 80)
        assert box.y2 == pytest.approx(420 - 80)

    def test_y_clamped_inside_frame(self):
        raw = transposed_output()
        set_box(raw, 0, cx=320, cy=60, w=100, h=100, class_id=0, score=0.9)
        set_box(raw, 1, cx=320, cy=600, w=100, h=100, class_id=7, score=0.8)
        letterbox = compute_letterbox(640, 480, 640, 640)

        boxes = decode_detections(raw, 640, 480, 0.5, DEFAULT_EXCLUDED_CLASS_IDS, letterbox)

        top, bottom = sorted(boxes, key=lambda b: b.y1)
        assert top.y1 == 0
        assert top.y2 == pytest.approx(30)
        assert bottom.y1 == pytest.approx(470)
        assert bottom.y2 == 480

    def test_box_major_layout(self):
        raw = np.zeros((1, 100, 29), dtype=np.float32)
        raw[0, 3, 0:4] = [100, 200, 40, 40]
        raw[0, 3, 4 + 16] = 0.7  # Face

        boxes = decode_detections(raw, 640, 640, 0.5)

        assert len(boxes) == 1
        assert boxes[0].label == "Face"
        assert boxes[0].as_tuple() == pytest.approx((80, 180, 120, 220))

    def test_threshold_is_strict(self):
        raw = transposed_output()
        set_box(raw, 0, 320, 320, 50, 50, class_id=0, score=0.5)
        assert decode_detections(raw, 640, 640, 0.5) == []

    def test_excluded_class_dropped_even_at_full_confidence(self):
        raw = transposed_output()
        set_box(raw, 0, 320, 320, 50, 50, class_id=1, score=1.0)  # Adult

        assert decode_detections(raw, 640, 640, 0.3, DEFAULT_EXCLUDED_CLASS_IDS) == []
        assert len(decode_detections(raw, 640, 640, 0.3, frozenset())) == 1

    def test_tie_picks_first_class(self):
        raw = transposed_output()
        set_box(raw, 0, 320, 320, 50, 50, class_id=7, score=0.8)
        raw[0, 4 + 16, 0] = 0.8

        boxes = decode_detections(raw, 640, 640, 0.5)
        assert boxes[0].class_id == 7

    def test_unknown_class_label(self):
        raw = np.zeros((1, 4 + 30, 50), dtype=np.float32)
        raw[0, 0:4, 0] = [10, 10, 4, 4]
        raw[0, 4 + 27, 0] = 0.9

        boxes = decode_detections(raw, 640, 640, 0.5)
        assert boxes[0].label == "class_27"

    def test_scaled_letterbox_is_reversed(self):
        raw = transposed_output()
        set_box(raw, 0, cx=320, cy=320, w=100, h=100, class_id=0, score=0.9)
        letterbox = compute_letterbox(1280, 960, 640, 640)

        boxes = decode_detections(raw, 1280, 960, 0.5, frozenset(), letterbox)

        assert boxes[0].as_tuple() == pytest.approx((540, 380, 740, 580))

    def test_unexpected_rank_returns_empty(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert decode_detections(np.zeros((29, 100)), 640, 480, 0.5) == []
        assert "Unexpected output shape" in caplog.text

    def test_vector_too_short_returns_empty(self):
        assert decode_detections(np.zeros((1, 4, 2)), 640, 480, 0.5) == []

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_random_output_invariants(self, seed):
        rng = np.random.default_rng(seed)
        raw = np.zeros((1, 29, 200), dtype=np.float32)
        raw[0, 0] = rng.uniform(-100, 740, 200)
        raw[0, 1] = rng.uniform(-100, 740, 200)
        raw[0, 2:4] = rng.uniform(0, 400, (2, 200))
        raw[0, 4:] = rng.uniform(0, 1, (25, 200))
        letterbox = compute_letterbox(640, 480, 640, 640)
        threshold = 0.6

        boxes = decode_detections(raw, 640, 480, threshold, DEFAULT_EXCLUDED_CLASS_IDS, letterbox)

        assert boxes
        for box in boxes:
            assert box.confidence > threshold
            assert box.class_id not in DEFAULT_EXCLUDED_CLASS_IDS
            assert 0 <= box.x1 <= box.x2 <= 640
            assert 0 <= box.y1 <= box.y2 <= 480


class TestDecodeMask:
    def test_threshold_and_crop(self):
        activation = np.full((1, 1, 640, 640), 0.1, dtype=np.float32)
        activation[0, 0, 80:560, :100] = 0.9
        activation[0, 0, :80, :] = 0.9  # padding, must be cropped away
        letterbox = compute_letterbox(640, 480, 640, 640)

        mask = decode_mask(activation, 640, 480, 0.5, letterbox)

        assert mask.shape == (480, 640)
        assert mask.dtype == np.uint8
        assert np.all(mask[:, :100] == 255)
        assert np.all(mask[:, 100:] == 0)
        assert set(np.unique(mask)) <= {0, 255}

    def test_threshold_is_inclusive(self):
        activation = np.full((640, 640), 0.5, dtype=np.float32)
        mask = decode_mask(activation, 640, 480, 0.5, compute_letterbox(640, 480, 640, 640))
        assert np.all(mask == 255)

    def test_low_resolution_output_is_resized_to_canvas(self):
        activation = np.zeros((1, 1, 320, 320), dtype=np.float32)
        activation[0, 0, 40:280, :160] = 1.0
        letterbox = compute_letterbox(640, 480, 640, 640)

        mask = decode_mask(activation, 640, 480, 0.5, letterbox, canvas_size=(640, 640))

        assert mask.shape == (480, 640)
        assert mask[240, 100] == 255
        assert mask[240, 500] == 0

    def test_downscaled_frame_mask_is_upsampled(self):
        activation = np.ones((1, 1, 640, 640), dtype=np.float32)
        letterbox = compute_letterbox(1280, 960, 640, 640)

        mask = decode_mask(activation, 1280, 960, 0.5, letterbox)

        assert mask.shape == (960, 1280)
        assert np.all(mask == 255)
