import argparse
import dataclasses
import logging
from pathlib import Path

from Photo_Detection import DetectorProfile, ObjectDetection, load_detector_profile
from ssd_kit.backends.delegates import DELEGATE_CHOICES
from ssd_kit.visualize import encode_jpeg


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run SSD MobileNet detection on a photo and save the annotated JPEG.")
    parser.add_argument("--image", required=True, help="Path to an input image.")
    parser.add_argument("--out", default=None, help="Output JPEG path (default: <image>_detections.jpg).")
    parser.add_argument("--config", default=None, help="Detector profile JSON.")
    parser.add_argument("--assets-root", default="auto", help='Directory holding assets/models (default: "auto").')
    parser.add_argument("--model", default=None, help="Override model path (relative to assets root).")
    parser.add_argument("--labels", default=None, help="Override label map path (relative to assets root).")
    parser.add_argument("--threshold", type=float, default=None, help="Score threshold (strictly greater is drawn).")
    parser.add_argument("--delegate", choices=DELEGATE_CHOICES, default=None, help="Hardware delegate.")
    parser.add_argument("--delegate-fallback", action="store_true", help="Use the CPU interpreter if the delegate fails.")
    parser.add_argument("--num-threads", type=int, default=None, help="Interpreter CPU threads.")
    parser.add_argument("--show", action="store_true", help="Show a window with the annotated image.")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def check_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.threshold is not None and not 0.0 <= args.threshold <= 1.0:
        parser.error("--threshold must be within [0, 1]")
    if args.num_threads is not None and args.num_threads < 1:
        parser.error("--num-threads must be >= 1")


def build_profile(args: argparse.Namespace) -> DetectorProfile:
    profile = load_detector_profile(Path(args.config)) if args.config else DetectorProfile()
    overrides = {
        "model_path": args.model,
        "label_path": args.labels,
        "score_threshold": args.threshold,
        "delegate": args.delegate,
        "num_threads": args.num_threads,
    }
    changes = {k: v for k, v in overrides.items() if v is not None}
    if args.delegate_fallback:
        changes["delegate_fallback"] = True
    return dataclasses.replace(profile, **changes) if changes else profile


def main() -> int:
    parser = build_arg_parser()
    args = parser.parse_args()
    check_args(parser, args)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    profile = build_profile(args)
    detector = ObjectDetection(profile, assets_root=args.assets_root)

    result = detector.annotate(args.image)

    data = encode_jpeg(result.image, quality=profile.jpeg_quality)
    out = Path(args.out) if args.out else Path(args.image).with_name(f"{Path(args.image).stem}_detections.jpg")
    out.write_bytes(data)

    for det in result.detections.above(profile.score_threshold):
        print(det.display_name, det.score, det.as_xyxy())
    print(f"Saved {out} ({len(data)} bytes)")

    if args.show:
        import cv2

        cv2.imshow("detections", result.image)
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
