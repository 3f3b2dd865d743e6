from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import AssetNotFoundError, DelegateError, TensorShapeError
from .delegates import DelegateProvider, NoDelegate, attach_delegates


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class TfliteRuntime:
    """
    The two entry points the backend needs from a TFLite-compatible runtime.
    """

    interpreter_cls: Callable[..., Any]
    load_delegate: Callable[..., Any]
    name: str = "tflite"


def import_tflite_runtime() -> TfliteRuntime:
    """
    Locate an installed TFLite interpreter: LiteRT, tflite-runtime, then TensorFlow.
    """

    try:
        from ai_edge_litert.interpreter import Interpreter, load_delegate  # type: ignore

        return TfliteRuntime(Interpreter, load_delegate, "ai_edge_litert")
    except ImportError:
        pass

    try:
        from tflite_runtime.interpreter import Interpreter, load_delegate  # type: ignore

        return TfliteRuntime(Interpreter, load_delegate, "tflite_runtime")
    except ImportError:
        pass

    try:
        import tensorflow as tf  # type: ignore
    except ImportError as e:  # pragma: no cover
        raise ImportError(
            "A TFLite runtime is required for the TFLite backend. Install it with `pip install ai-edge-litert` "
            "(or `tflite-runtime` / `tensorflow`)."
        ) from e
    return TfliteRuntime(tf.lite.Interpreter, tf.lite.experimental.load_delegate, "tensorflow")


@dataclass(frozen=True)
class TfliteBackendConfig:
    """
    Configuration for TFLite inference.

    - num_threads: CPU threads for the interpreter (None keeps the runtime default)
    - delegate_fallback: build a plain CPU interpreter if the delegate fails to attach
    """

    num_threads: Optional[int] = None
    delegate_fallback: bool = False

    def __post_init__(self) -> None:
        if self.num_threads is not None and self.num_threads < 1:
            raise ValueError("num_threads must be >= 1")


class TfliteBackend:
    """
    Minimal TFLite backend.

    Expects the model's single NHWC input, typically (1, 320, 320, 3) uint8.
    Returns every output tensor, in output-detail order, as NumPy arrays.
    The interpreter is not re-entrant, so `infer` runs one call at a time.
    """

    def __init__(
        self,
        model: Union[PathLike, bytes],
        cfg: TfliteBackendConfig = TfliteBackendConfig(),
        *,
        delegate: Optional[DelegateProvider] = None,
        runtime: Optional[TfliteRuntime] = None,
    ):
        self.runtime = runtime if runtime is not None else import_tflite_runtime()
        self.cfg = cfg

        source: Dict[str, Any]
        if isinstance(model, (bytes, bytearray)):
            if not model:
                raise AssetNotFoundError("<model bytes>", reason="is empty")
            self.model_path: Optional[Path] = None
            source = {"model_content": bytes(model)}
        else:
            self.model_path = Path(model)
            if not self.model_path.is_file():
                raise AssetNotFoundError(self.model_path)
            source = {"model_path": str(self.model_path)}

        provider = delegate if delegate is not None else NoDelegate()
        delegates = attach_delegates(provider, self.runtime.load_delegate, fallback_to_cpu=cfg.delegate_fallback)

        logger.info("Loading interpreter (runtime=%s, delegate=%s)", self.runtime.name, provider.name if delegates else "none")
        self.interpreter = self._build_interpreter(source, delegates, provider)
        self.delegate_name = provider.name if self._delegates_attached else "none"
        self.interpreter.allocate_tensors()

        input_details = self.interpreter.get_input_details()
        if len(input_details) != 1:
            raise TensorShapeError(f"Expected a single model input, got {len(input_details)}")
        self._input = input_details[0]
        self._outputs = list(self.interpreter.get_output_details())
        self._lock = threading.Lock()

    def _build_interpreter(self, source: Dict[str, Any], delegates: List[Any], provider: DelegateProvider) -> Any:
        cls = self.runtime.interpreter_cls
        self._delegates_attached = bool(delegates)
        if not delegates:
            return cls(**source, num_threads=self.cfg.num_threads)
        try:
            return cls(**source, experimental_delegates=delegates, num_threads=self.cfg.num_threads)
        except (ValueError, RuntimeError) as e:
            if not self.cfg.delegate_fallback:
                raise DelegateError(provider.name, str(e)) from e
            logger.warning("Delegate %s rejected by interpreter (%s); using CPU interpreter", provider.name, e)
            self._delegates_attached = False
            return cls(**source, num_threads=self.cfg.num_threads)

    @property
    def input_shape(self) -> Tuple[int, ...]:
        return tuple(int(d) for d in self._input["shape"])

    @property
    def input_dtype(self) -> np.dtype:
        return np.dtype(self._input["dtype"])

    @property
    def input_quantization(self) -> Tuple[float, int]:
        scale, zero_point = self._input.get("quantization", (0.0, 0))
        return float(scale), int(zero_point)

    @property
    def output_count(self) -> int:
        return len(self._outputs)

    @property
    def output_names(self) -> Sequence[str]:
        return tuple(str(d.get("name", i)) for i, d in enumerate(self._outputs))

    def infer(self, tensor: np.ndarray) -> List[np.ndarray]:
        if tuple(tensor.shape) != self.input_shape:
            raise TensorShapeError(f"Input tensor shape {tuple(tensor.shape)} does not match model input {self.input_shape}")
        if tensor.dtype != self.input_dtype:
            raise TensorShapeError(f"Input tensor dtype {tensor.dtype} does not match model input {self.input_dtype}")

        with self._lock:
            logger.debug("Running inference")
            self.interpreter.set_tensor(self._input["index"], tensor)
            self.interpreter.invoke()
            # get_tensor returns views into interpreter memory that the next invoke overwrites.
            return [np.array(self.interpreter.get_tensor(d["index"])) for d in self._outputs]
