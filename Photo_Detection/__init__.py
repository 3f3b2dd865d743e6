"""
Photo annotation layer built on top of `ssd_kit`.

Package ini menjaga runtime deteksi tetap berada di dalam `ssd_kit` dan
berfokus pada:
- detector profile (config)
- bundled assets (model + label map)
- `ObjectDetection`: image path in, annotated JPEG bytes out
"""

from __future__ import annotations

from .assets import AssetBundle, load_model_bytes
from .config import LABEL_PATH, MODEL_PATH, DetectorProfile, load_detector_profile
from .detector import ObjectDetection

__all__ = [
    "AssetBundle",
    "load_model_bytes",
    "LABEL_PATH",
    "MODEL_PATH",
    "DetectorProfile",
    "load_detector_profile",
    "ObjectDetection",
]
