from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import TensorShapeError
from .labels import LabelMap
from .types import Detection, DetectionBatch


logger = logging.getLogger(__name__)

OUTPUT_NAMES = ("scores", "boxes", "count", "classes")


@dataclass(frozen=True)
class OutputLayout:
    """
    Output tensor index of each SSD output.

    The default matches the bundled model (scores, boxes, count, classes).
    Exports that end in the stock `TFLite_Detection_PostProcess` op emit
    (boxes, classes, scores, count), see `POSTPROCESS_OP_LAYOUT`.
    """

    scores: int = 0
    boxes: int = 1
    count: int = 2
    classes: int = 3

    def __post_init__(self) -> None:
        indices = sorted((self.scores, self.boxes, self.count, self.classes))
        if indices != [0, 1, 2, 3]:
            raise ValueError(f"Output layout indices must be a permutation of 0..3, got {self.as_names()}")

    @classmethod
    def from_names(cls, names: Sequence[str]) -> "OutputLayout":
        cleaned = [str(n).strip().lower() for n in names]
        if sorted(cleaned) != sorted(OUTPUT_NAMES):
            raise ValueError(f"output layout must name each of {list(OUTPUT_NAMES)} exactly once, got {list(names)}")
        return cls(**{name: idx for idx, name in enumerate(cleaned)})

    def as_names(self) -> Tuple[str, ...]:
        by_index = {self.scores: "scores", self.boxes: "boxes", self.count: "count", self.classes: "classes"}
        return tuple(by_index.get(i, "?") for i in range(4))


POSTPROCESS_OP_LAYOUT = OutputLayout(boxes=0, classes=1, scores=2, count=3)


@dataclass(frozen=True)
class RawDetections:
    """
    The four SSD output tensors with the batch axis removed.

    boxes: (N, 4) normalized [top, left, bottom, right]
    scores: (N,)
    classes: (N,) class indices stored as floats
    count: number of valid leading slots, stored as a float
    """

    boxes: np.ndarray
    scores: np.ndarray
    classes: np.ndarray
    count: float

    @property
    def capacity(self) -> int:
        return int(self.scores.shape[0])

    @classmethod
    def from_outputs(cls, outputs: Sequence[np.ndarray], layout: OutputLayout = OutputLayout()) -> "RawDetections":
        if len(outputs) != 4:
            raise TensorShapeError(f"Expected 4 SSD output tensors, got {len(outputs)}")

        boxes = _strip_batch(np.asarray(outputs[layout.boxes]), 2, "boxes")
        scores = _strip_batch(np.asarray(outputs[layout.scores]), 1, "scores")
        classes = _strip_batch(np.asarray(outputs[layout.classes]), 1, "classes")
        count = np.asarray(outputs[layout.count]).reshape(-1)

        if boxes.shape[1] != 4:
            raise TensorShapeError(f"boxes must have 4 coordinates per slot, got shape {boxes.shape}")
        n = scores.shape[0]
        if boxes.shape[0] != n or classes.shape[0] != n:
            raise TensorShapeError(
                f"Output slot counts disagree: boxes={boxes.shape[0]} scores={n} classes={classes.shape[0]}"
            )
        if count.size != 1:
            raise TensorShapeError(f"count must be a scalar, got shape {np.asarray(outputs[layout.count]).shape}")
        return cls(boxes=boxes, scores=scores, classes=classes, count=float(count[0]))

    def to_outputs(self, layout: OutputLayout = OutputLayout()) -> List[np.ndarray]:
        """
        Re-add the batch axis and order tensors the way the interpreter returns them.
        """

        by_name = {
            "boxes": self.boxes[None, ...].astype(np.float32),
            "scores": self.scores[None, ...].astype(np.float32),
            "classes": self.classes[None, ...].astype(np.float32),
            "count": np.array([self.count], dtype=np.float32),
        }
        return [by_name[name] for name in layout.as_names()]


def _strip_batch(arr: np.ndarray, ndim: int, name: str) -> np.ndarray:
    if arr.ndim == ndim + 1:
        if arr.shape[0] != 1:
            raise TensorShapeError(f"Batch > 1 is not supported ({name} shape {arr.shape}).")
        arr = arr[0]
    if arr.ndim != ndim:
        raise TensorShapeError(f"Unexpected {name} shape {arr.shape}")
    return arr


def _require_finite(arr: np.ndarray, name: str) -> None:
    bad = ~np.isfinite(np.asarray(arr, dtype=np.float64))
    if bad.any():
        slots = sorted({int(i) for i in np.argwhere(bad)[:, 0]})
        raise TensorShapeError(f"{name} hold non-finite values in detection slots {slots}")


@dataclass(frozen=True)
class SsdPostConfig:
    """
    Configuration for SSD output decoding.

    - resolution: input resolution used to scale normalized boxes to pixels
    - capacity: number of detection slots the model emits
    - score_threshold: detections must score strictly above this to be drawn
    - strict_labels: raise on class ids outside the label map; otherwise keep
      the detection with `label=None`
    """

    resolution: int = 320
    capacity: int = 10
    score_threshold: float = 0.06
    strict_labels: bool = True
    layout: OutputLayout = field(default_factory=OutputLayout)

    def __post_init__(self) -> None:
        if self.resolution <= 0:
            raise ValueError("resolution must be > 0")
        if self.capacity <= 0:
            raise ValueError("capacity must be > 0")
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError("score_threshold must be within [0, 1]")


class SsdPostprocessor:
    """
    Decode the fixed-shape SSD outputs into pixel-space detections.

    Coordinates are scaled with floor(normalized * resolution); class ids and
    the detection count are truncated toward zero. Only the first `count`
    slots are read.
    """

    def __init__(self, cfg: SsdPostConfig = SsdPostConfig(), labels: Optional[LabelMap] = None):
        self.cfg = cfg
        self.labels = labels if labels is not None else LabelMap([])

    def decode(self, outputs: Union[RawDetections, Sequence[np.ndarray]]) -> DetectionBatch:
        raw = outputs if isinstance(outputs, RawDetections) else RawDetections.from_outputs(outputs, self.cfg.layout)
        count = self._checked_count(raw)
        _require_finite(raw.boxes[:count], "boxes")
        _require_finite(raw.scores[:count], "scores")
        _require_finite(raw.classes[:count], "classes")

        res = self.cfg.resolution
        pixels = np.floor(raw.boxes[:count].astype(np.float64) * res).astype(np.int64)
        class_ids = np.trunc(raw.classes[:count].astype(np.float64)).astype(np.int64)
        scores = raw.scores[:count]

        detections: List[Detection] = []
        for (top, left, bottom, right), score, cls_id in zip(pixels, scores, class_ids):
            detections.append(
                Detection(
                    top=int(top),
                    left=int(left),
                    bottom=int(bottom),
                    right=int(right),
                    score=float(score),
                    class_id=int(cls_id),
                    label=self._label_for(int(cls_id)),
                )
            )
        logger.debug("Decoded %d detections", len(detections))
        return DetectionBatch(detections, capacity=self.cfg.capacity)

    def encode(self, detections: Sequence[Detection]) -> RawDetections:
        """
        Build the raw outputs a model would emit for `detections`.

        Pixel coordinates are stored at the pixel centre so `decode` maps them
        back to the same integers.
        """

        capacity = self.cfg.capacity
        if len(detections) > capacity:
            raise TensorShapeError(f"Cannot encode {len(detections)} detections into {capacity} slots")

        res = float(self.cfg.resolution)
        boxes = np.zeros((capacity, 4), dtype=np.float32)
        scores = np.zeros((capacity,), dtype=np.float32)
        classes = np.zeros((capacity,), dtype=np.float32)
        for i, det in enumerate(detections):
            boxes[i] = [(v + 0.5) / res for v in (det.top, det.left, det.bottom, det.right)]
            scores[i] = det.score
            classes[i] = det.class_id
        return RawDetections(boxes=boxes, scores=scores, classes=classes, count=float(len(detections)))

    # ------------------------------------------------------------------ #
    # Helper internal
    # ------------------------------------------------------------------ #
    def _checked_count(self, raw: RawDetections) -> int:
        if raw.capacity != self.cfg.capacity:
            raise TensorShapeError(f"Model emits {raw.capacity} detection slots, expected {self.cfg.capacity}")
        if not np.isfinite(raw.count):
            raise TensorShapeError(f"Detection count is not finite: {raw.count}")
        count = int(raw.count)
        if count < 0 or count > self.cfg.capacity:
            raise TensorShapeError(f"Detection count {count} outside [0, {self.cfg.capacity}]")
        return count

    def _label_for(self, class_id: int) -> Optional[str]:
        if self.cfg.strict_labels:
            return self.labels[class_id]
        label = self.labels.lookup(class_id)
        if label is None:
            logger.warning("Class index %d has no label (label map size %d)", class_id, len(self.labels))
        return label


