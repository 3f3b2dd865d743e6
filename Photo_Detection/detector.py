from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from ssd_kit.backends.delegates import DelegateProvider, resolve_delegate
from ssd_kit.backends.tflite_backend import TfliteRuntime
from ssd_kit.labels import LabelMap
from ssd_kit.preprocess import decode_image, read_image
from ssd_kit.runtime import AnnotatedImage, SsdPipeline, load_pipeline
from ssd_kit.types import DetectionBatch
from ssd_kit.visualize import encode_jpeg

from .assets import AssetBundle
from .config import DetectorProfile


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ObjectDetection:
    """
    Annotate photos with SSD MobileNet detections.

    Assets and the interpreter are loaded in the constructor, so an instance
    is ready to use as soon as it exists. Asset or delegate failures surface
    here rather than on the first call.
    """

    def __init__(
        self,
        profile: DetectorProfile = DetectorProfile(),
        *,
        assets_root: Optional[PathLike] = "auto",
        delegate: Optional[DelegateProvider] = None,
        runtime: Optional[TfliteRuntime] = None,
    ):
        self.profile = profile
        self.assets = AssetBundle.load(profile, root=assets_root)
        provider = delegate if delegate is not None else resolve_delegate(profile.delegate)

        self.pipeline: SsdPipeline = load_pipeline(
            self.assets.model,
            self.assets.labels,
            post_cfg=profile.post_config(),
            delegate=provider,
            delegate_fallback=profile.delegate_fallback,
            num_threads=profile.num_threads,
            runtime=runtime,
            box_thickness=profile.box_thickness,
        )
        logger.info("Done.")

    @property
    def labels(self) -> LabelMap:
        return self.assets.labels

    def detect(self, image_path: PathLike) -> DetectionBatch:
        return self.pipeline(read_image(image_path))

    def annotate(self, image_path: PathLike) -> AnnotatedImage:
        logger.info("Analysing image %s", image_path)
        return self.pipeline.annotate(read_image(image_path))

    def analyse_image(self, image_path: PathLike) -> bytes:
        """
        Detect objects in the image at `image_path` and return the annotated
        model-resolution image as JPEG bytes.
        """

        return encode_jpeg(self.annotate(image_path).image, quality=self.profile.jpeg_quality)

    def analyse_bytes(self, data: bytes) -> bytes:
        result = self.pipeline.annotate(decode_image(data))
        return encode_jpeg(result.image, quality=self.profile.jpeg_quality)
