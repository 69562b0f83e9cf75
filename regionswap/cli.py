"""
Command Line Interface

generate     Render variants at a fixed size
replace      Replace the region throughout a video
img-replace  Replace the region in a single image
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import settings
from .core.frames import VideoFrameSource, read_image
from .errors import DetectionNotFound, RegionSwapError
from .models import DetectorKind, GeneratorKind, RunMode, TrackingMode
from .pipeline import (
    ReplacementPipeline,
    load_payloads,
    open_image_sinks,
    open_video_sinks,
    resolve_output_paths,
)
from .visual.detector import QRCodeRegionDetector, TemplateMatchDetector
from .visual.generator import ImageAssetGenerator, TextCardGenerator


def parse_size(value: str) -> tuple[int, int]:
    """Parse "WIDTHxHEIGHT"."""
    try:
        width, height = (int(v) for v in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Size must look like 320x240, got {value!r}")
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"Size must be positive, got {value!r}")
    return width, height


def configure_logging(level: str):
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def build_detector(args):
    kind = DetectorKind(args.detector or settings.detector)
    if kind == DetectorKind.QR:
        return QRCodeRegionDetector()

    template = args.template or settings.template_path
    if template is None:
        raise RegionSwapError("Template detector needs --template (or REGIONSWAP_TEMPLATE)")
    threshold = args.threshold if args.threshold is not None else settings.match_threshold
    return TemplateMatchDetector.from_file(template, threshold)


def build_generator(args):
    if GeneratorKind(args.generator) == GeneratorKind.IMAGE:
        return ImageAssetGenerator()
    return TextCardGenerator()


def build_pipeline(args, detector=None) -> ReplacementPipeline:
    return ReplacementPipeline(
        detector=detector,
        generator=build_generator(args),
        padding=getattr(args, "padding", None),
        tracking_mode=TrackingMode.STICKY if getattr(args, "sticky", False) else TrackingMode.FOLLOW,
    )


def cmd_generate(args):
    """Render every variant at a fixed size."""
    payloads = load_payloads(args.payloads)
    paths = resolve_output_paths(args.output, [p.name for p in payloads])
    pipeline = build_pipeline(args)
    pipeline.generate(payloads, args.size, paths)
    for name, path in paths.items():
        print(f"{name}: {path}")


def cmd_replace(args):
    """Replace the region in a video, one output video per variant."""
    payloads = load_payloads(args.payloads)
    paths = resolve_output_paths(args.output, [p.name for p in payloads])
    pipeline = build_pipeline(args, build_detector(args))

    with VideoFrameSource(args.video) as source:
        sinks = open_video_sinks(paths, source.width, source.height, source.fps)
        if RunMode(args.mode) == RunMode.INTERVAL:
            report = pipeline.run_interval(source, payloads, sinks)
        else:
            report = pipeline.run_streaming(source, payloads, sinks)

    for name, path in report.outputs.items():
        print(f"{name}: {path}")


def cmd_img_replace(args):
    """Replace the region in one image, one output image per variant."""
    payloads = load_payloads(args.payloads)
    paths = resolve_output_paths(args.output, [p.name for p in payloads])
    pipeline = build_pipeline(args, build_detector(args))

    image = read_image(args.image)
    report = pipeline.run_single_image(image, payloads, open_image_sinks(paths))

    for name, path in report.outputs.items():
        print(f"{name}: {path}")


def _add_detection_args(p):
    p.add_argument("--padding", type=int, default=None, help="Pixels added around the detected region")
    p.add_argument("--detector", choices=[k.value for k in DetectorKind], default=None)
    p.add_argument("--template", type=Path, default=None, help="Reference image of the region")
    p.add_argument("--threshold", type=float, default=None, help="Template match score (0-1)")


def _add_common_args(p):
    p.add_argument("--output", "-o", required=True, help=f"Output pattern, e.g. out/{settings.output_placeholder}.mp4")
    p.add_argument("--generator", choices=[k.value for k in GeneratorKind], default=GeneratorKind.TEXT.value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="regionswap",
        description="Replace a tracked region with generated variants",
    )
    parser.add_argument("--log-level", default=None, help="Loguru level (default from settings)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # generate command
    p = subparsers.add_parser("generate", help="Render variants at a fixed size")
    p.add_argument("payloads", help="Payload list file or a single payload")
    p.add_argument("--size", type=parse_size, required=True, help="WIDTHxHEIGHT")
    _add_common_args(p)
    p.set_defaults(func=cmd_generate)

    # replace command
    p = subparsers.add_parser("replace", help="Replace the region throughout a video")
    p.add_argument("video", type=Path, help="Input video")
    p.add_argument("payloads", help="Payload list file or a single payload")
    p.add_argument("--mode", choices=[m.value for m in RunMode], default=RunMode.STREAM.value)
    p.add_argument("--sticky", action="store_true", help="Lock onto the first detected rectangle")
    _add_detection_args(p)
    _add_common_args(p)
    p.set_defaults(func=cmd_replace)

    # img-replace command
    p = subparsers.add_parser("img-replace", help="Replace the region in a single image")
    p.add_argument("image", type=Path, help="Input image")
    p.add_argument("payloads", help="Payload list file or a single payload")
    _add_detection_args(p)
    _add_common_args(p)
    p.set_defaults(func=cmd_img_replace)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or settings.log_level)

    if not args.command:
        parser.print_help()
        return 0

    try:
        args.func(args)
    except DetectionNotFound as e:
        logger.error(f"{e}; no output written")
        return 1
    except (RegionSwapError, ValueError) as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
