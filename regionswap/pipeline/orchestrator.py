"""
Replacement Pipeline

Coordinates detection, generation and compositing for a whole run:

1. Decide the rectangle for each frame (tracker or interval sweep)
2. Generate variants sized to that rectangle (memoised per size)
3. Composite one frame per variant
4. Write every variant's frame before moving to the next frame

Step 4 is what keeps independently opened outputs frame-aligned: each
sink receives exactly one frame per input frame, in order.
"""

from collections import OrderedDict
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

import numpy as np
from loguru import logger

from ..config import settings
from ..core.frames import FrameSink, FrameSource, ImageFileSink
from ..errors import DetectionNotFound
from ..models import PayloadRecord, Rectangle, RunReport, TrackingMode, Variant
from ..visual.compositor import MultiVariantCompositor
from ..visual.detector import RegionDetector
from ..visual.generator import VariantGenerator
from ..visual.tracker import IntervalLocator, RegionTracker

StopCheck = Callable[[], bool]

_MAX_CACHED_SIZES = 32


class ReplacementPipeline:
    """
    Region replacement over videos and images.

    Usage:
        pipeline = ReplacementPipeline(
            detector=TemplateMatchDetector.from_file("target.png"),
            generator=TextCardGenerator(),
            padding=4,
        )

        with VideoFrameSource("input.mp4") as source:
            sinks = {p.name: FfmpegVideoSink(...) for p in payloads}
            report = pipeline.run_streaming(source, payloads, sinks)
    """

    def __init__(
        self,
        detector: RegionDetector,
        generator: VariantGenerator,
        padding: Optional[int] = None,
        tracking_mode: TrackingMode = TrackingMode.FOLLOW,
        compositor: Optional[MultiVariantCompositor] = None,
    ):
        self.detector = detector
        self.generator = generator
        self.padding = padding if padding is not None else settings.padding
        self.tracking_mode = TrackingMode(tracking_mode)
        self.compositor = compositor or MultiVariantCompositor()

    def run_streaming(
        self,
        source: FrameSource,
        payloads: Sequence[PayloadRecord],
        sinks: Mapping[str, FrameSink],
        stop: Optional[StopCheck] = None,
        max_miss: Optional[int] = None,
    ) -> RunReport:
        """Track the region frame by frame, bridging short detection gaps."""
        tracker = RegionTracker(
            source,
            self.detector,
            padding=self.padding,
            mode=self.tracking_mode,
            max_miss=max_miss,
        )
        logger.info(
            f"Streaming replacement: {len(source)} frames, {len(payloads)} variants, "
            f"lookahead {tracker.max_miss} frames ({self.tracking_mode.value})"
        )
        return self._pump(source, payloads, sinks, tracker.next, stop)

    def run_interval(
        self,
        source: FrameSource,
        payloads: Sequence[PayloadRecord],
        sinks: Mapping[str, FrameSink],
        stop: Optional[StopCheck] = None,
        margin: Optional[int] = None,
    ) -> RunReport:
        """Replace with one fixed rectangle inside the visible interval."""
        try:
            located = IntervalLocator(self.detector, padding=self.padding, margin=margin).locate(source)
        except BaseException:
            self._close(sinks, reraise=False)
            raise

        def rectangle_for(index: int) -> Optional[Rectangle]:
            if located.interval is not None and located.interval.contains(index):
                return located.rectangle
            return None

        report = self._pump(source, payloads, sinks, rectangle_for, stop)
        report.interval = located.interval
        return report

    def run_single_image(
        self,
        image: np.ndarray,
        payloads: Sequence[PayloadRecord],
        sinks: Mapping[str, FrameSink],
    ) -> RunReport:
        """
        Detect once and write one image per variant.

        Raises DetectionNotFound before anything is written when the
        region is not in the image.
        """
        try:
            self._check_sinks(payloads, sinks)
            rectangle = self.detector.detect(image, self.padding)
            if rectangle is None or not self._usable(rectangle):
                raise DetectionNotFound("Region not found in image")

            logger.info(f"Region found at {rectangle}")
            variants = self.generator.generate(payloads, rectangle.size)
            report = RunReport(frames_processed=1, frames_replaced=1)
            for name, frame in self.compositor.replace(image, rectangle, variants):
                sinks[name].write(frame)
        except BaseException:
            self._close(sinks, reraise=False)
            raise
        self._close(sinks)

        report.outputs = self._output_paths(sinks)
        return report

    def generate(
        self,
        payloads: Sequence[PayloadRecord],
        size: tuple[int, int],
        output_paths: Mapping[str, Path],
    ) -> list[Variant]:
        """Generate variants at `size` and save each one as an image."""
        variants = self.generator.generate(payloads, size)
        for variant in variants:
            sink = ImageFileSink(output_paths[variant.name])
            sink.write(variant.content)
            sink.close()
        return variants

    def _pump(
        self,
        source: FrameSource,
        payloads: Sequence[PayloadRecord],
        sinks: Mapping[str, FrameSink],
        rectangle_for: Callable[[int], Optional[Rectangle]],
        stop: Optional[StopCheck],
    ) -> RunReport:
        names = [p.name for p in payloads]
        variant_cache: OrderedDict[tuple[int, int], list[Variant]] = OrderedDict()
        report = RunReport()
        log_every = max(1, int(source.fps * 10))

        try:
            self._check_sinks(payloads, sinks)
            for index in range(len(source)):
                if stop is not None and stop():
                    logger.warning(f"Run stopped after {index} frames")
                    report.aborted = True
                    break

                rectangle = rectangle_for(index)
                frame = source[index]

                if rectangle is None or not self._usable(rectangle):
                    outputs = self.compositor.passthrough(frame, names)
                else:
                    variants = self._variants_for(rectangle.size, payloads, variant_cache)
                    outputs = self.compositor.replace(frame, rectangle, variants)
                    report.frames_replaced += 1

                for name, out in outputs:
                    sinks[name].write(out)
                report.frames_processed += 1

                if report.frames_processed % log_every == 0:
                    logger.debug(f"Processed {report.frames_processed}/{len(source)} frames")
        except BaseException:
            self._close(sinks, reraise=False)
            raise
        self._close(sinks)

        logger.info(
            f"Run complete: {report.frames_processed} frames, "
            f"{report.frames_replaced} replaced"
        )
        report.outputs = self._output_paths(sinks)
        return report

    def _variants_for(
        self,
        size: tuple[int, int],
        payloads: Sequence[PayloadRecord],
        cache: OrderedDict,
    ) -> list[Variant]:
        if size in cache:
            cache.move_to_end(size)
            return cache[size]
        variants = self.generator.generate(payloads, size)
        cache[size] = variants
        if len(cache) > _MAX_CACHED_SIZES:
            cache.popitem(last=False)
        return variants

    @staticmethod
    def _usable(rectangle: Rectangle) -> bool:
        return rectangle.width > 0 and rectangle.height > 0

    @staticmethod
    def _check_sinks(payloads: Sequence[PayloadRecord], sinks: Mapping[str, FrameSink]):
        missing = [p.name for p in payloads if p.name not in sinks]
        if missing:
            raise ValueError(f"No output sink for variants: {', '.join(missing)}")

    @staticmethod
    def _close(sinks: Mapping[str, FrameSink], reraise: bool = True):
        """Close every sink. With reraise=False close errors are only logged."""
        first_error = None
        for name, sink in sinks.items():
            try:
                sink.close()
            except Exception as e:
                logger.error(f"Closing output for {name} failed: {e}")
                first_error = first_error or e
        if first_error is not None and reraise:
            raise first_error

    @staticmethod
    def _output_paths(sinks: Mapping[str, FrameSink]) -> dict[str, Path]:
        return {
            name: sink.path
            for name, sink in sinks.items()
            if getattr(sink, "path", None) is not None
        }
