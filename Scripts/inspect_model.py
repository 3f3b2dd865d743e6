"""
Print a TFLite model's input/output tensors.

Useful to pick `output_layout` in a detector profile: SSD exports differ in
the order they emit scores, boxes, count and classes.
"""

import argparse
from pathlib import Path

from ssd_kit.backends.delegates import DELEGATE_CHOICES, resolve_delegate
from ssd_kit.backends.tflite_backend import TfliteBackend, TfliteBackendConfig
from ssd_kit.runtime import resolve_path


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect a TFLite detection model.")
    parser.add_argument("--model", default="assets/models/detect.tflite", help="Path to a .tflite model.")
    parser.add_argument("--delegate", choices=DELEGATE_CHOICES, default="none", help="Delegate to attach.")
    return parser


def main() -> int:
    args = build_arg_parser().parse_args()

    # Paths given on the command line win over the bundled asset location.
    model = Path(args.model)
    if not model.is_file():
        model = resolve_path(args.model)

    backend = TfliteBackend(
        model,
        TfliteBackendConfig(delegate_fallback=True),
        delegate=resolve_delegate(args.delegate),
    )

    print(f"runtime: {backend.runtime.name}  delegate: {backend.delegate_name}")
    print(f"input: shape={backend.input_shape} dtype={backend.input_dtype} quantization={backend.input_quantization}")
    for i, detail in enumerate(backend.interpreter.get_output_details()):
        print(f"output[{i}]: name={detail.get('name')} shape={tuple(detail['shape'])} dtype={detail['dtype']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
