from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

import numpy as np

from .errors import ImageEncodeError
from .types import Detection


logger = logging.getLogger(__name__)

# OpenCV expects BGR.
RED_BGR: Tuple[int, int, int] = (0, 0, 255)


def _cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for annotation. Install with `pip install opencv-python`.") from e
    return cv2


def select_detections(detections: Iterable[Detection], threshold: float = 0.06) -> List[Detection]:
    """
    Keep detections scoring strictly above `threshold`.
    """

    return [det for det in detections if det.score > threshold]


def format_label(det: Detection) -> str:
    return f"{det.display_name} {det.score}"


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    threshold: float = 0.06,
    color: Tuple[int, int, int] = RED_BGR,
    thickness: int = 3,
    font_scale: float = 0.5,
    font_thickness: int = 1,
    copy: bool = True,
) -> np.ndarray:
    """
    Draw a rectangle and a "<label> <score>" caption for every detection above
    `threshold`.

    Box coordinates are pixels of `image_bgr` (the resized model input). With
    `copy=False` the buffer is annotated in place.
    """

    cv2 = _cv2()

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy() if copy else image_bgr
    kept = select_detections(detections, threshold)
    logger.info("Outlining %d objects", len(kept))

    for det in kept:
        cv2.rectangle(out, (det.left, det.top), (det.right, det.bottom), color, thickness=thickness)

        label = format_label(det)
        (_, th), _ = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # putText anchors at the baseline; shift down so the text's top-left sits at (left+1, top+1).
        cv2.putText(
            out,
            label,
            (det.left + 1, det.top + 1 + th),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            color,
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out


def encode_jpeg(image_bgr: np.ndarray, quality: int = 95) -> bytes:
    cv2 = _cv2()
    if not 1 <= quality <= 100:
        raise ValueError("quality must be within [1, 100]")
    ok, buf = cv2.imencode(".jpg", image_bgr, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise ImageEncodeError("Failed to encode annotated image as JPEG")
    return buf.tobytes()
