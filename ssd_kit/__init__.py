"""
Lightweight glue around a quantized SSD MobileNet detector.

Designed to be runtime-agnostic: the tensor codec and annotator work on NumPy
arrays and OpenCV images; the TFLite interpreter is only imported when a
backend is built.
"""

from .errors import (
    AssetNotFoundError,
    DelegateError,
    DetectionError,
    ImageDecodeError,
    ImageEncodeError,
    ImageNotFoundError,
    TensorShapeError,
    UnknownClassError,
)
from .types import Detection, DetectionBatch
from .labels import LabelMap, load_labels, parse_labels
from .preprocess import InputConfig, decode_image, encode_image, read_image
from .postprocess import OutputLayout, POSTPROCESS_OP_LAYOUT, RawDetections, SsdPostConfig, SsdPostprocessor
from .runtime import AnnotatedImage, SsdPipeline, load_pipeline, find_project_root, resolve_path
from .visualize import draw_detections, encode_jpeg, select_detections

__all__ = [
    "AssetNotFoundError",
    "DelegateError",
    "DetectionError",
    "ImageDecodeError",
    "ImageEncodeError",
    "ImageNotFoundError",
    "TensorShapeError",
    "UnknownClassError",
    "Detection",
    "DetectionBatch",
    "LabelMap",
    "load_labels",
    "parse_labels",
    "InputConfig",
    "decode_image",
    "encode_image",
    "read_image",
    "OutputLayout",
    "POSTPROCESS_OP_LAYOUT",
    "RawDetections",
    "SsdPostConfig",
    "SsdPostprocessor",
    "AnnotatedImage",
    "SsdPipeline",
    "load_pipeline",
    "find_project_root",
    "resolve_path",
    "draw_detections",
    "encode_jpeg",
    "select_detections",
]
