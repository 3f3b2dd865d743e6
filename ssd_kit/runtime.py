from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, Tuple, Union

import numpy as np

from .backends.delegates import DelegateProvider
from .errors import TensorShapeError
from .labels import LabelMap, load_labels
from .postprocess import SsdPostConfig, SsdPostprocessor
from .preprocess import InputConfig, PreprocessResult, encode_image
from .types import DetectionBatch
from .visualize import draw_detections


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
InferFn = Callable[[np.ndarray], Sequence[np.ndarray]]

PACKAGE_DIR = Path(__file__).resolve().parent
ROOT_MARKERS = ("pyproject.toml", "setup.py", ".git")


def find_project_root(start: Optional[PathLike] = None, markers: Sequence[str] = ROOT_MARKERS) -> Path:
    """
    Locate the checkout that holds `assets/models`.

    The search walks upward from `start`, or from this package's own directory
    when `start` is omitted, so the result does not depend on the working
    directory. Without a marker the package's parent directory is used.
    """

    here = PACKAGE_DIR if start is None else Path(start).resolve()
    if here.is_file():
        here = here.parent

    for candidate in (here, *here.parents):
        if any((candidate / marker).exists() for marker in markers):
            return candidate
    return PACKAGE_DIR.parent if start is None else here


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Absolute path for `path`. Relative paths are joined to `root`; "auto" (or
    None) means the checkout this package is installed from.
    """

    p = Path(path)
    if p.is_absolute():
        return p
    base = find_project_root() if root is None or root == "auto" else Path(root).resolve()
    return (base / p).resolve()


@dataclass(frozen=True)
class AnnotatedImage:
    image: np.ndarray
    detections: DetectionBatch
    orig_size: Tuple[int, int]


class SsdPipeline:
    """
    Plug-and-play pipeline: encode tensor -> inference -> decode -> annotate.

    The pipeline expects BGR images (OpenCV-style) as `np.ndarray`. Detections
    are in pixel coordinates of the resized model input.
    """

    def __init__(
        self,
        infer_fn: InferFn,
        *,
        labels: LabelMap,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        input_cfg: InputConfig = InputConfig(),
        post_cfg: SsdPostConfig = SsdPostConfig(),
        box_thickness: int = 3,
    ):
        if input_cfg.size != post_cfg.resolution:
            raise ValueError(
                f"Input size {input_cfg.size} and decode resolution {post_cfg.resolution} must match."
            )
        self._infer_fn = infer_fn
        self.backend = backend
        self.backend_name = backend_name
        self.labels = labels
        self.input_cfg = input_cfg
        self.post = SsdPostprocessor(post_cfg, labels)
        self.box_thickness = box_thickness

    @property
    def score_threshold(self) -> float:
        return self.post.cfg.score_threshold

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        return encode_image(image_bgr, self.input_cfg)

    def _run(self, prep: PreprocessResult) -> DetectionBatch:
        logger.info("Running inference")
        outputs = self._infer_fn(prep.tensor)
        logger.info("Processing outputs")
        return self.post.decode(outputs)

    def __call__(self, image_bgr: np.ndarray) -> DetectionBatch:
        return self._run(self.preprocess(image_bgr))

    def annotate(self, image_bgr: np.ndarray) -> AnnotatedImage:
        """
        Run detection and draw the kept detections onto the resized input buffer.
        """

        prep = self.preprocess(image_bgr)
        detections = self._run(prep)
        image = draw_detections(
            prep.resized_bgr,
            detections,
            threshold=self.score_threshold,
            thickness=self.box_thickness,
            copy=False,
        )
        return AnnotatedImage(image=image, detections=detections, orig_size=prep.orig_size)


def input_config_for(backend: Any, size: int, mean: float = 127.5, std: float = 127.5) -> InputConfig:
    """
    Derive the input config from a backend's input tensor, checking it is (1, size, size, 3).
    """

    shape = tuple(backend.input_shape)
    if len(shape) != 4 or shape[0] != 1 or shape[3] != 3 or shape[1] != shape[2]:
        raise TensorShapeError(f"Expected model input (1, S, S, 3), got {shape}")
    if shape[1] != size:
        raise TensorShapeError(f"Model input resolution {shape[1]} does not match configured input size {size}")

    dtype = np.dtype(backend.input_dtype).name
    if dtype not in ("uint8", "float32", "int8"):
        raise TensorShapeError(f"Unsupported model input dtype: {dtype}")
    quantization = tuple(getattr(backend, "input_quantization", (0.0, 0)))
    return InputConfig(size=size, dtype=dtype, mean=mean, std=std, quantization=quantization)


def load_pipeline(
    model_path: Union[PathLike, bytes],
    labels: Union[PathLike, LabelMap],
    *,
    backend: str = "tflite",
    root: Optional[PathLike] = "auto",
    post_cfg: SsdPostConfig = SsdPostConfig(),
    delegate: Optional[DelegateProvider] = None,
    delegate_fallback: bool = False,
    num_threads: Optional[int] = None,
    runtime: Optional[object] = None,
    box_thickness: int = 3,
) -> SsdPipeline:
    """
    Create a plug-and-play pipeline for a model on disk (or already in memory).

    Typical usage:
        pipe = load_pipeline("assets/models/detect.tflite", "assets/models/labelmap.txt")

    Args:
        model_path: model file or raw model bytes; relative paths resolve against project root by default
        labels: label map or path to a newline-delimited label file
        delegate: acceleration delegate strategy; None runs on the plain CPU interpreter
    """

    chosen = backend.lower()
    if chosen != "tflite":
        raise ValueError(f"Unsupported backend: {backend!r}")

    from .backends.tflite_backend import TfliteBackend, TfliteBackendConfig

    model = model_path if isinstance(model_path, (bytes, bytearray)) else resolve_path(model_path, root=root)
    label_map = labels if isinstance(labels, LabelMap) else load_labels(resolve_path(labels, root=root))

    tfl_backend = TfliteBackend(
        model,
        TfliteBackendConfig(num_threads=num_threads, delegate_fallback=delegate_fallback),
        delegate=delegate,
        runtime=runtime,  # type: ignore[arg-type]
    )
    input_cfg = input_config_for(tfl_backend, post_cfg.resolution)

    return SsdPipeline(
        tfl_backend.infer,
        labels=label_map,
        backend=tfl_backend,
        backend_name="tflite",
        input_cfg=input_cfg,
        post_cfg=post_cfg,
        box_thickness=box_thickness,
    )
