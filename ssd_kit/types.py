from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

from .errors import TensorShapeError


@dataclass(frozen=True)
class Detection:
    """
    Single SSD detection in pixel coordinates of the model input image.

    Box slots follow the SSD output order: top, left, bottom, right.
    """

    top: int
    left: int
    bottom: int
    right: int
    score: float
    class_id: int
    label: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return self.label is not None

    @property
    def display_name(self) -> str:
        if self.label is None:
            return f"class {self.class_id}"
        return self.label

    def as_xyxy(self) -> Tuple[int, int, int, int]:
        return self.left, self.top, self.right, self.bottom


class DetectionBatch(Sequence[Detection]):
    """
    Bounded-capacity set of detections decoded from one inference call.

    `count` is checked against `capacity` on construction; iteration and
    indexing only ever reach the first `count` slots.
    """

    def __init__(self, detections: Sequence[Detection], capacity: int):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        if len(detections) > capacity:
            raise TensorShapeError(f"Detection count {len(detections)} exceeds capacity {capacity}")
        self._detections = tuple(detections)
        self.capacity = capacity

    @property
    def count(self) -> int:
        return len(self._detections)

    def __len__(self) -> int:
        return len(self._detections)

    def __getitem__(self, index):  # type: ignore[override]
        return self._detections[index]

    def __iter__(self) -> Iterator[Detection]:
        return iter(self._detections)

    def __repr__(self) -> str:
        return f"DetectionBatch(count={self.count}, capacity={self.capacity})"

    def above(self, threshold: float) -> Tuple[Detection, ...]:
        return tuple(d for d in self._detections if d.score > threshold)
