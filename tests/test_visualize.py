import unittest

import cv2
import numpy as np

from ssd_kit.types import Detection
from ssd_kit.visualize import RED_BGR, draw_detections, encode_jpeg, format_label, select_detections


def _det(score: float, label: str = "cat") -> Detection:
    return Detection(top=50, left=60, bottom=150, right=200, score=score, class_id=17, label=label)


class TestDrawDetections(unittest.TestCase):
    def setUp(self) -> None:
        self.image = np.zeros((320, 320, 3), dtype=np.uint8)

    def test_score_above_threshold_draws_rectangle(self) -> None:
        out = draw_detections(self.image, [_det(0.0601)], threshold=0.06)
        # Left and right edges, mid-height, away from the caption.
        self.assertEqual(tuple(out[120, 60]), RED_BGR)
        self.assertEqual(tuple(out[120, 200]), RED_BGR)
        # Bottom edge.
        self.assertEqual(tuple(out[150, 130]), RED_BGR)
        # Interior stays untouched.
        self.assertEqual(tuple(out[120, 130]), (0, 0, 0))

    def test_score_at_or_below_threshold_never_draws(self) -> None:
        out = draw_detections(self.image, [_det(0.06), _det(0.01), _det(0.0)], threshold=0.06)
        self.assertEqual(int(np.count_nonzero(out)), 0)

    def test_copy_leaves_input_untouched(self) -> None:
        draw_detections(self.image, [_det(0.9)])
        self.assertEqual(int(np.count_nonzero(self.image)), 0)

    def test_in_place_draw(self) -> None:
        out = draw_detections(self.image, [_det(0.9)], copy=False)
        self.assertIs(out, self.image)
        self.assertGreater(int(np.count_nonzero(self.image)), 0)

    def test_caption_drawn_inside_top_left(self) -> None:
        out = draw_detections(self.image, [_det(0.9)], thickness=1)
        caption_area = out[52:70, 62:150]
        self.assertGreater(int(np.count_nonzero(caption_area)), 0)

    def test_select_and_label(self) -> None:
        dets = [_det(0.5), _det(0.06), _det(0.07)]
        self.assertEqual([d.score for d in select_detections(dets, 0.06)], [0.5, 0.07])
        self.assertEqual(format_label(_det(0.5)), "cat 0.5")
        unknown = Detection(top=0, left=0, bottom=1, right=1, score=0.25, class_id=99)
        self.assertEqual(format_label(unknown), "class 99 0.25")

    def test_rejects_non_color_image(self) -> None:
        with self.assertRaises(ValueError):
            draw_detections(np.zeros((10, 10), dtype=np.uint8), [])


class TestEncodeJpeg(unittest.TestCase):
    def test_encode_returns_jpeg_bytes(self) -> None:
        image = np.full((320, 320, 3), 128, dtype=np.uint8)
        data = encode_jpeg(image)
        self.assertIsInstance(data, bytes)
        self.assertTrue(data.startswith(b"\xff\xd8"))
        self.assertTrue(data.endswith(b"\xff\xd9"))
        decoded = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        self.assertEqual(decoded.shape, (320, 320, 3))

    def test_quality_validated(self) -> None:
        with self.assertRaises(ValueError):
            encode_jpeg(np.zeros((4, 4, 3), dtype=np.uint8), quality=0)


if __name__ == "__main__":
    unittest.main()
