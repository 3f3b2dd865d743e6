import unittest

import numpy as np

from ssd_kit.errors import TensorShapeError, UnknownClassError
from ssd_kit.labels import LabelMap
from ssd_kit.postprocess import (
    POSTPROCESS_OP_LAYOUT,
    OutputLayout,
    RawDetections,
    SsdPostConfig,
    SsdPostprocessor,
)
from ssd_kit.types import Detection


LABELS = LabelMap(["???", "person", "bicycle", "car", "dog"])


def _raw(count: float, *, capacity: int = 10, seed: int = 0) -> RawDetections:
    rng = np.random.default_rng(seed)
    boxes = rng.random((capacity, 4), dtype=np.float32)
    scores = rng.random(capacity, dtype=np.float32)
    classes = rng.integers(0, len(LABELS), size=capacity).astype(np.float32)
    return RawDetections(boxes=boxes, scores=scores, classes=classes, count=count)


class TestSsdPostprocessDecode(unittest.TestCase):
    def test_count_bounds_iteration(self) -> None:
        raw = _raw(3.0)
        # Unused slots hold values that would fail a label lookup.
        raw.classes[3:] = 99
        post = SsdPostprocessor(SsdPostConfig(), LABELS)
        batch = post.decode(raw)
        self.assertEqual(len(batch), 3)
        self.assertEqual(batch.count, 3)
        self.assertEqual(batch.capacity, 10)

    def test_count_is_truncated(self) -> None:
        post = SsdPostprocessor(SsdPostConfig(), LABELS)
        self.assertEqual(len(post.decode(_raw(4.9))), 4)

    def test_boxes_scaled_with_floor(self) -> None:
        raw = _raw(10.0, seed=1)
        post = SsdPostprocessor(SsdPostConfig(resolution=320), LABELS)
        batch = post.decode(raw)
        expected = np.floor(raw.boxes.astype(np.float64) * 320).astype(np.int64)
        for det, (top, left, bottom, right) in zip(batch, expected):
            self.assertEqual((det.top, det.left, det.bottom, det.right), (top, left, bottom, right))

    def test_negative_coordinates_floor_not_truncate(self) -> None:
        raw = _raw(1.0)
        raw.boxes[0] = [-0.001, 0.5, 0.75, 1.0]
        det = SsdPostprocessor(SsdPostConfig(), LABELS).decode(raw)[0]
        self.assertEqual(det.top, -1)
        self.assertEqual(det.left, 160)
        self.assertEqual(det.bottom, 240)
        self.assertEqual(det.right, 320)

    def test_class_ids_truncated_and_labelled(self) -> None:
        raw = _raw(2.0)
        raw.classes[:2] = [1.0, 3.9]
        batch = SsdPostprocessor(SsdPostConfig(), LABELS).decode(raw)
        self.assertEqual([d.class_id for d in batch], [1, 3])
        self.assertEqual([d.label for d in batch], ["person", "car"])

    def test_unknown_class_raises_in_strict_mode(self) -> None:
        raw = _raw(1.0)
        raw.classes[0] = float(len(LABELS))
        post = SsdPostprocessor(SsdPostConfig(strict_labels=True), LABELS)
        with self.assertRaises(UnknownClassError):
            post.decode(raw)

    def test_negative_class_does_not_wrap(self) -> None:
        raw = _raw(1.0)
        raw.classes[0] = -1.0
        with self.assertRaises(UnknownClassError):
            SsdPostprocessor(SsdPostConfig(), LABELS).decode(raw)

    def test_unknown_class_marked_in_lenient_mode(self) -> None:
        raw = _raw(1.0)
        raw.classes[0] = 7.0
        post = SsdPostprocessor(SsdPostConfig(strict_labels=False), LABELS)
        with self.assertLogs("ssd_kit.postprocess", level="WARNING"):
            det = post.decode(raw)[0]
        self.assertIsNone(det.label)
        self.assertFalse(det.is_known)
        self.assertEqual(det.display_name, "class 7")

    def test_count_above_capacity_rejected(self) -> None:
        post = SsdPostprocessor(SsdPostConfig(), LABELS)
        with self.assertRaises(TensorShapeError):
            post.decode(_raw(11.0))
        with self.assertRaises(TensorShapeError):
            post.decode(_raw(-1.0))
        with self.assertRaises(TensorShapeError):
            post.decode(_raw(float("nan")))

    def test_non_finite_boxes_rejected(self) -> None:
        post = SsdPostprocessor(SsdPostConfig(), LABELS)
        for bad in (float("nan"), float("inf"), -float("inf")):
            raw = _raw(1.0)
            raw.boxes[0] = [bad, 0.1, 0.5, 0.5]
            with self.assertRaises(TensorShapeError):
                post.decode(raw)

    def test_non_finite_scores_rejected(self) -> None:
        raw = _raw(2.0)
        raw.scores[1] = np.nan
        with self.assertRaises(TensorShapeError):
            SsdPostprocessor(SsdPostConfig(), LABELS).decode(raw)

    def test_non_finite_classes_rejected(self) -> None:
        raw = _raw(2.0)
        raw.classes[0] = np.inf
        with self.assertRaises(TensorShapeError):
            SsdPostprocessor(SsdPostConfig(strict_labels=False), LABELS).decode(raw)

    def test_non_finite_values_past_count_ignored(self) -> None:
        raw = _raw(2.0)
        raw.boxes[5] = np.nan
        raw.scores[5] = np.inf
        batch = SsdPostprocessor(SsdPostConfig(), LABELS).decode(raw)
        self.assertEqual(len(batch), 2)

    def test_slot_count_must_match_capacity(self) -> None:
        post = SsdPostprocessor(SsdPostConfig(capacity=10), LABELS)
        with self.assertRaises(TensorShapeError):
            post.decode(_raw(3.0, capacity=20))

    def test_from_outputs_default_layout(self) -> None:
        raw = _raw(2.0)
        outputs = [
            raw.scores[None, :],
            raw.boxes[None, :, :],
            np.array([2.0], dtype=np.float32),
            raw.classes[None, :],
        ]
        batch = SsdPostprocessor(SsdPostConfig(), LABELS).decode(outputs)
        self.assertEqual(len(batch), 2)
        self.assertAlmostEqual(batch[0].score, float(raw.scores[0]), places=6)

    def test_postprocess_op_layout(self) -> None:
        raw = _raw(5.0, seed=3)
        cfg = SsdPostConfig(layout=POSTPROCESS_OP_LAYOUT)
        outputs = raw.to_outputs(POSTPROCESS_OP_LAYOUT)
        self.assertEqual(outputs[0].shape, (1, 10, 4))
        self.assertEqual(outputs[3].shape, (1,))
        batch = SsdPostprocessor(cfg, LABELS).decode(outputs)
        self.assertEqual(len(batch), 5)

    def test_bad_output_shapes_rejected(self) -> None:
        raw = _raw(2.0)
        with self.assertRaises(TensorShapeError):
            RawDetections.from_outputs([raw.scores, raw.boxes[:, :3], np.array([2.0]), raw.classes])
        with self.assertRaises(TensorShapeError):
            RawDetections.from_outputs([raw.scores[:5], raw.boxes, np.array([2.0]), raw.classes])
        with self.assertRaises(TensorShapeError):
            RawDetections.from_outputs([raw.scores, raw.boxes, np.array([2.0, 1.0]), raw.classes])
        with self.assertRaises(TensorShapeError):
            RawDetections.from_outputs([raw.scores, raw.boxes, np.array([2.0])])

    def test_layout_from_names(self) -> None:
        layout = OutputLayout.from_names(["boxes", "classes", "scores", "count"])
        self.assertEqual(layout, POSTPROCESS_OP_LAYOUT)
        self.assertEqual(layout.as_names(), ("boxes", "classes", "scores", "count"))
        with self.assertRaises(ValueError):
            OutputLayout.from_names(["boxes", "boxes", "scores", "count"])
        with self.assertRaises(ValueError):
            OutputLayout(scores=0, boxes=0, count=2, classes=3)

    def test_encode_then_decode_round_trip(self) -> None:
        detections = [
            Detection(top=0, left=0, bottom=319, right=319, score=0.5, class_id=1, label="person"),
            Detection(top=17, left=203, bottom=64, right=255, score=0.25, class_id=4, label="dog"),
            Detection(top=100, left=1, bottom=101, right=2, score=0.75, class_id=2, label="bicycle"),
        ]
        post = SsdPostprocessor(SsdPostConfig(), LABELS)
        batch = post.decode(post.encode(detections).to_outputs())
        self.assertEqual([d.as_xyxy() for d in batch], [d.as_xyxy() for d in detections])
        self.assertEqual([(d.class_id, d.label) for d in batch], [(d.class_id, d.label) for d in detections])

    def test_encode_rejects_overflow(self) -> None:
        det = Detection(top=1, left=1, bottom=2, right=2, score=0.5, class_id=1)
        post = SsdPostprocessor(SsdPostConfig(capacity=2), LABELS)
        with self.assertRaises(TensorShapeError):
            post.encode([det, det, det])


if __name__ == "__main__":
    unittest.main()
