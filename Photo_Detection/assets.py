from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ssd_kit.errors import AssetNotFoundError
from ssd_kit.labels import LabelMap, load_labels
from ssd_kit.runtime import resolve_path

from .config import DetectorProfile


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_model_bytes(path: PathLike) -> bytes:
    p = Path(path)
    if not p.is_file():
        raise AssetNotFoundError(p)
    logger.info("Loading model from %s", p)
    data = p.read_bytes()
    if not data:
        raise AssetNotFoundError(p, reason="is empty")
    return data


@dataclass(frozen=True)
class AssetBundle:
    """
    Model bytes and label map, loaded once and shared read-only.
    """

    model: bytes
    labels: LabelMap
    model_path: Path
    label_path: Path

    @classmethod
    def load(cls, profile: DetectorProfile, root: Optional[PathLike] = "auto") -> "AssetBundle":
        model_path = resolve_path(profile.model_path, root=root)
        label_path = resolve_path(profile.label_path, root=root)
        return cls(
            model=load_model_bytes(model_path),
            labels=load_labels(label_path),
            model_path=model_path,
            label_path=label_path,
        )
