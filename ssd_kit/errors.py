"""
Error taxonomy for the detection pipeline.

Every error derives from `DetectionError` and from the builtin it refines, so
callers can catch either the domain base class or e.g. `FileNotFoundError`.
"""


class DetectionError(Exception):
    """Base exception for detection pipeline errors."""


class AssetNotFoundError(DetectionError, FileNotFoundError):
    """Raised when a bundled model or label asset cannot be loaded."""

    def __init__(self, path: object, reason: str = "not found"):
        self.path = path
        self.reason = reason
        super().__init__(f"Asset '{path}' {reason}")


class ImageNotFoundError(DetectionError, FileNotFoundError):
    """Raised when the input image path does not exist."""

    def __init__(self, path: object):
        self.path = path
        super().__init__(f"Image not found: {path}")


class ImageDecodeError(DetectionError, ValueError):
    """Raised when image bytes are not a decodable raster format."""

    def __init__(self, source: object, reason: str = "unsupported or corrupt image data"):
        self.source = source
        self.reason = reason
        super().__init__(f"Could not decode image '{source}': {reason}")


class ImageEncodeError(DetectionError, RuntimeError):
    """Raised when the annotated image cannot be re-encoded."""


class TensorShapeError(DetectionError, ValueError):
    """Raised when an input or output tensor does not match the expected layout."""


class UnknownClassError(DetectionError, LookupError):
    """Raised when a detected class index has no entry in the label map."""

    def __init__(self, class_id: int, num_labels: int):
        self.class_id = class_id
        self.num_labels = num_labels
        super().__init__(f"Class index {class_id} out of range for label map of size {num_labels}")


class DelegateError(DetectionError, RuntimeError):
    """Raised when a hardware delegate cannot be attached to the interpreter."""

    def __init__(self, delegate_name: str, reason: str):
        self.delegate_name = delegate_name
        self.reason = reason
        super().__init__(f"Failed to attach delegate '{delegate_name}': {reason}")
