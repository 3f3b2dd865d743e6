from __future__ import annotations

import logging
import numbers
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

from .errors import AssetNotFoundError, UnknownClassError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class LabelMap:
    """
    Ordered, index-addressed class names.

    Indexing is checked: a class id outside the map raises `UnknownClassError`
    instead of wrapping around (negative ids) or returning an empty name.
    """

    def __init__(self, names: Sequence[str]):
        self._names: List[str] = list(names)

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __getitem__(self, class_id: int) -> str:
        if class_id < 0 or class_id >= len(self._names):
            raise UnknownClassError(class_id, len(self._names))
        return self._names[int(class_id)]

    def __contains__(self, class_id: object) -> bool:
        return isinstance(class_id, numbers.Integral) and 0 <= class_id < len(self._names)

    def lookup(self, class_id: int) -> Optional[str]:
        if class_id not in self:
            return None
        return self._names[int(class_id)]

    @property
    def names(self) -> List[str]:
        return list(self._names)


def parse_labels(text: str) -> LabelMap:
    """
    Parse a newline-delimited label list.

    Placeholder entries (e.g. `???` in the COCO SSD map) are kept so indices
    stay aligned with the model's class ids. A trailing newline does not add
    an empty label.
    """

    return LabelMap([line.strip() for line in text.splitlines()])


def load_labels(path: PathLike) -> LabelMap:
    p = Path(path)
    if not p.is_file():
        raise AssetNotFoundError(p)
    logger.info("Loading labels from %s", p)
    labels = parse_labels(p.read_text(encoding="utf-8"))
    if len(labels) == 0:
        raise AssetNotFoundError(p, reason="contains no labels")
    return labels
