import argparse
import shutil
from pathlib import Path

import cv2
import numpy as np
import pytest

from regionswap import cli
from regionswap.core.frames import FfmpegVideoSink
from regionswap.core.video_info import get_video_info

needs_ffmpeg = pytest.mark.skipif(
    shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
    reason="ffmpeg not installed",
)


@pytest.fixture
def scene(tmp_path: Path) -> tuple[Path, Path]:
    rng = np.random.default_rng(3)
    image = rng.integers(0, 256, size=(96, 128, 3), dtype=np.uint8)
    image_path = tmp_path / "scene.png"
    template_path = tmp_path / "target.png"
    cv2.imwrite(str(image_path), image)
    cv2.imwrite(str(template_path), image[20:50, 40:90])
    return image_path, template_path


@pytest.fixture
def variants_csv(tmp_path: Path) -> Path:
    path = tmp_path / "variants.csv"
    path.write_text("spring,SPRING SALE\nwinter,WINTER SALE\n", encoding="utf-8")
    return path


def test_generate_writes_one_image_per_variant(tmp_path: Path, variants_csv: Path) -> None:
    pattern = str(tmp_path / "out" / "{name}.png")

    code = cli.main(["generate", str(variants_csv), "--size", "80x30", "--output", pattern])

    assert code == 0
    for name in ("spring", "winter"):
        image = cv2.imread(str(tmp_path / "out" / f"{name}.png"))
        assert image.shape == (30, 80, 3)


def test_img_replace_writes_variants(tmp_path: Path, scene, variants_csv: Path) -> None:
    image_path, template_path = scene
    pattern = str(tmp_path / "{name}_out.png")

    code = cli.main([
        "img-replace", str(image_path), str(variants_csv),
        "--template", str(template_path),
        "--padding", "2",
        "--output", pattern,
    ])

    assert code == 0
    original = cv2.imread(str(image_path))
    for name in ("spring", "winter"):
        out = cv2.imread(str(tmp_path / f"{name}_out.png"))
        assert out.shape == original.shape
        # Outside the padded box (38..92, 18..52) nothing changed
        np.testing.assert_array_equal(out[:18], original[:18])
        np.testing.assert_array_equal(out[:, :38], original[:, :38])
        assert not np.array_equal(out[20:50, 40:90], original[20:50, 40:90])


def test_img_replace_without_detection_exits_nonzero(tmp_path: Path, scene) -> None:
    image_path, _ = scene
    other = np.random.default_rng(99).integers(0, 256, size=(30, 50, 3), dtype=np.uint8)
    template_path = tmp_path / "other.png"
    cv2.imwrite(str(template_path), other)
    output = tmp_path / "result.png"

    code = cli.main([
        "img-replace", str(image_path), "HELLO",
        "--template", str(template_path),
        "--threshold", "0.95",
        "--output", str(output),
    ])

    assert code == 1
    assert not output.exists()


def test_malformed_payload_list_exits_nonzero(tmp_path: Path, scene) -> None:
    image_path, template_path = scene
    bad = tmp_path / "bad.csv"
    bad.write_text("spring,SPRING\nno-payload-here\n", encoding="utf-8")

    code = cli.main([
        "img-replace", str(image_path), str(bad),
        "--template", str(template_path),
        "--output", str(tmp_path / "{name}.png"),
    ])

    assert code == 1
    assert not (tmp_path / "spring.png").exists()


def test_template_detector_requires_template(tmp_path: Path, scene, monkeypatch) -> None:
    image_path, _ = scene
    monkeypatch.setattr(cli.settings, "template_path", None)

    code = cli.main(["img-replace", str(image_path), "HELLO", "--output", str(tmp_path / "o.png")])

    assert code == 1


@pytest.fixture
def clip(tmp_path: Path) -> tuple[Path, Path, int]:
    """A 12 frame clip with a checkerboard target drifting right by 1px per frame."""
    cells = (np.indices((32, 48)) // 8).sum(axis=0) % 2
    target = np.repeat((20 + cells * 215).astype(np.uint8)[:, :, None], 3, axis=2)
    template_path = tmp_path / "target.png"
    cv2.imwrite(str(template_path), target)

    frame_count = 12
    video_path = tmp_path / "input.mp4"
    sink = FfmpegVideoSink(video_path, 128, 96, 10.0)
    for index in range(frame_count):
        frame = np.full((96, 128, 3), 90, dtype=np.uint8)
        frame[20:52, 30 + index:78 + index] = target
        sink.write(frame)
    sink.close()
    return video_path, template_path, frame_count


@needs_ffmpeg
@pytest.mark.parametrize("mode", ["stream", "interval"])
def test_replace_writes_one_aligned_video_per_variant(
    tmp_path: Path, clip, variants_csv: Path, mode: str
) -> None:
    video_path, template_path, frame_count = clip

    code = cli.main([
        "replace", str(video_path), str(variants_csv),
        "--mode", mode,
        "--template", str(template_path),
        "--threshold", "0.7",
        "--output", str(tmp_path / "out" / "{name}.mp4"),
    ])

    assert code == 0
    for name in ("spring", "winter"):
        info = get_video_info(tmp_path / "out" / f"{name}.mp4")
        assert (info.width, info.height) == (128, 96)
        assert info.frame_count == frame_count


@pytest.mark.parametrize(("value", "expected"), [("320x240", (320, 240)), ("64X48", (64, 48))])
def test_parse_size(value: str, expected: tuple[int, int]) -> None:
    assert cli.parse_size(value) == expected


@pytest.mark.parametrize("value", ["320", "0x10", "axb"])
def test_parse_size_rejects_garbage(value: str) -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_size(value)


def test_no_command_prints_help(capsys) -> None:
    assert cli.main([]) == 0
    assert "generate" in capsys.readouterr().out
