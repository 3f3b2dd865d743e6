from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ssd_kit.backends.delegates import DELEGATE_CHOICES
from ssd_kit.postprocess import OUTPUT_NAMES, OutputLayout, SsdPostConfig


MODEL_PATH = "assets/models/detect.tflite"
LABEL_PATH = "assets/models/labelmap.txt"


@dataclass(frozen=True)
class DetectorProfile:
    schema_version: int = 1
    model_path: str = MODEL_PATH
    label_path: str = LABEL_PATH
    input_size: int = 320
    score_threshold: float = 0.06
    max_detections: int = 10
    output_layout: Tuple[str, ...] = OUTPUT_NAMES
    delegate: str = "auto"
    delegate_fallback: bool = False
    num_threads: Optional[int] = None
    strict_labels: bool = True
    jpeg_quality: int = 95
    box_thickness: int = 3

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("detector profile schema_version must be 1")
        if not self.model_path:
            raise ValueError("model_path must be a non-empty string")
        if not self.label_path:
            raise ValueError("label_path must be a non-empty string")
        if self.input_size <= 0:
            raise ValueError("input_size must be > 0")
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError("score_threshold must be within [0, 1]")
        if self.max_detections <= 0:
            raise ValueError("max_detections must be > 0")
        if self.delegate not in DELEGATE_CHOICES:
            raise ValueError(f"delegate must be one of {list(DELEGATE_CHOICES)}")
        if self.num_threads is not None and self.num_threads < 1:
            raise ValueError("num_threads must be >= 1")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be within [1, 100]")
        if self.box_thickness < 1:
            raise ValueError("box_thickness must be >= 1")
        # Raises ValueError on an invalid layout.
        OutputLayout.from_names(self.output_layout)

    def post_config(self) -> SsdPostConfig:
        return SsdPostConfig(
            resolution=self.input_size,
            capacity=self.max_detections,
            score_threshold=self.score_threshold,
            strict_labels=self.strict_labels,
            layout=OutputLayout.from_names(self.output_layout),
        )


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _require_str(payload: Dict[str, Any], key: str) -> str:
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value.strip()


def _require_bool(payload: Dict[str, Any], key: str) -> bool:
    value = payload[key]
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def load_detector_profile(path: Path) -> DetectorProfile:
    if not path.exists():
        raise FileNotFoundError(f"Detector profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector profile must be a JSON object")

    allowed = set(DetectorProfile.__dataclass_fields__.keys())
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector profile keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in ("schema_version", "input_size", "max_detections", "jpeg_quality", "box_thickness"):
        if key in payload:
            kwargs[key] = _require_int(payload, key)
    for key in ("model_path", "label_path", "delegate"):
        if key in payload:
            kwargs[key] = _require_str(payload, key)
    for key in ("delegate_fallback", "strict_labels"):
        if key in payload:
            kwargs[key] = _require_bool(payload, key)
    if "score_threshold" in payload:
        kwargs["score_threshold"] = _require_number(payload, "score_threshold")
    if payload.get("num_threads") is not None:
        kwargs["num_threads"] = _require_int(payload, "num_threads")

    if "output_layout" in payload:
        layout = payload["output_layout"]
        if not isinstance(layout, list) or not all(isinstance(item, str) for item in layout):
            raise ValueError("output_layout must be a list of strings")
        kwargs["output_layout"] = tuple(item.strip().lower() for item in layout)

    return DetectorProfile(**kwargs)
