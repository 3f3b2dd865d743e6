from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from .errors import ImageDecodeError, ImageNotFoundError, TensorShapeError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class InputConfig:
    """
    Model input settings.

    - size: square input resolution expected by the model
    - dtype: "uint8" for quantized models, "float32" or "int8" otherwise
    - mean/std: normalization for float32 inputs
    - quantization: (scale, zero_point) for int8 inputs
    """

    size: int = 320
    dtype: str = "uint8"
    mean: float = 127.5
    std: float = 127.5
    quantization: Tuple[float, int] = (0.0, 0)

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError("size must be > 0")
        if self.dtype not in ("uint8", "float32", "int8"):
            raise ValueError(f"Unsupported input dtype: {self.dtype!r}")
        if self.std == 0:
            raise ValueError("std must be non-zero")


@dataclass(frozen=True)
class PreprocessResult:
    tensor: np.ndarray
    resized_bgr: np.ndarray
    orig_size: Tuple[int, int]


def _cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for image decoding. Install with `pip install opencv-python`.") from e
    return cv2


def decode_image(data: bytes, source: Optional[object] = None) -> np.ndarray:
    """
    Decode compressed image bytes into a BGR (H, W, 3) uint8 array.
    """

    cv2 = _cv2()
    label = source if source is not None else "<bytes>"
    if not data:
        raise ImageDecodeError(label, "empty image data")
    buf = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageDecodeError(label)
    return image


def read_image(path: PathLike) -> np.ndarray:
    p = Path(path)
    if not p.is_file():
        raise ImageNotFoundError(p)
    return decode_image(p.read_bytes(), source=p)


def resize_square(image_bgr: np.ndarray, size: int) -> np.ndarray:
    cv2 = _cv2()
    h, w = image_bgr.shape[:2]
    if (w, h) == (size, size):
        return image_bgr.copy()
    return cv2.resize(image_bgr, (size, size), interpolation=cv2.INTER_LINEAR)


def to_input_tensor(image_rgb: np.ndarray, cfg: InputConfig) -> np.ndarray:
    """
    Convert an (S, S, 3) RGB image to the model's (1, S, S, 3) input tensor.
    """

    if cfg.dtype == "uint8":
        data = image_rgb.astype(np.uint8, copy=False)
    elif cfg.dtype == "float32":
        data = (image_rgb.astype(np.float32) - cfg.mean) / cfg.std
    else:
        scale, zero_point = cfg.quantization
        if scale <= 0:
            raise TensorShapeError("int8 input requires a positive quantization scale")
        q = np.round(image_rgb.astype(np.float32) / scale) + zero_point
        data = np.clip(q, -128, 127).astype(np.int8)
    return np.ascontiguousarray(data[None, ...])


def encode_image(image_bgr: np.ndarray, cfg: InputConfig = InputConfig()) -> PreprocessResult:
    """
    Resize to the fixed square input resolution and build the input tensor.

    The tensor is row-major (height, then width) RGB triples with a leading
    batch axis. The resized BGR buffer is kept for annotation.
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise TensorShapeError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")
    if image_bgr.dtype != np.uint8:
        raise TensorShapeError(f"Expected uint8 image, got {image_bgr.dtype}")

    orig_h, orig_w = image_bgr.shape[:2]
    resized = resize_square(image_bgr, cfg.size)
    tensor = to_input_tensor(resized[:, :, ::-1], cfg)
    logger.debug("Encoded %dx%d image to tensor %s", orig_w, orig_h, tensor.shape)
    return PreprocessResult(tensor=tensor, resized_bgr=resized, orig_size=(orig_w, orig_h))
