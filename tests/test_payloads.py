from pathlib import Path

import pytest

from regionswap.errors import MalformedPayloadRecord, MediaIOError
from regionswap.pipeline.outputs import resolve_output_paths
from regionswap.pipeline.payloads import load_payloads, parse_payload_lines


def test_records_split_on_first_comma() -> None:
    records = parse_payload_lines([
        "en,https://example.com/?a=1,b=2",
        "",
        "   ",
        " de , https://example.de ",
    ])

    assert [(r.name, r.payload) for r in records] == [
        ("en", "https://example.com/?a=1,b=2"),
        ("de", "https://example.de"),
    ]


def test_record_without_payload_field_is_reported() -> None:
    with pytest.raises(MalformedPayloadRecord) as excinfo:
        parse_payload_lines(["en,https://example.com", "broken-line"])

    assert excinfo.value.line_number == 2
    assert excinfo.value.line == "broken-line"


def test_record_with_empty_name_is_reported() -> None:
    with pytest.raises(MalformedPayloadRecord):
        parse_payload_lines([",https://example.com"])


def test_duplicate_names_are_reported() -> None:
    with pytest.raises(MalformedPayloadRecord) as excinfo:
        parse_payload_lines(["a,1", "a,2"])
    assert excinfo.value.line_number == 2


@pytest.mark.parametrize("name", ["../escape", "sub/dir", "win\\dir", "..", "."])
def test_names_that_are_not_file_names_are_reported(name: str) -> None:
    with pytest.raises(MalformedPayloadRecord) as excinfo:
        parse_payload_lines(["ok,1", f"{name},payload"])

    assert excinfo.value.line_number == 2


def test_payload_list_file(tmp_path: Path) -> None:
    path = tmp_path / "variants.csv"
    path.write_text("red,RED\n\nblue,BLUE\n", encoding="utf-8")

    records = load_payloads(str(path))

    assert [r.name for r in records] == ["red", "blue"]


def test_empty_payload_list_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "empty.csv"
    path.write_text("\n\n", encoding="utf-8")

    with pytest.raises(MalformedPayloadRecord):
        load_payloads(str(path))


def test_missing_list_file_is_io_failure(tmp_path: Path) -> None:
    with pytest.raises(MediaIOError):
        load_payloads(str(tmp_path / "variants.csv"))


def test_single_payload_shorthand() -> None:
    [record] = load_payloads("https://example.com/landing", default_name="only")

    assert record.name == "only"
    assert record.payload == "https://example.com/landing"


def test_output_paths_per_variant() -> None:
    paths = resolve_output_paths("out/{name}.mp4", ["a", "b"])

    assert paths == {"a": Path("out/a.mp4"), "b": Path("out/b.mp4")}


def test_custom_placeholder() -> None:
    assert resolve_output_paths("out/%%.png", ["x"], placeholder="%%") == {"x": Path("out/x.png")}


def test_pattern_without_placeholder_single_variant() -> None:
    assert resolve_output_paths("out.mp4", ["a"]) == {"a": Path("out.mp4")}


def test_pattern_without_placeholder_many_variants() -> None:
    with pytest.raises(ValueError):
        resolve_output_paths("out.mp4", ["a", "b"])
