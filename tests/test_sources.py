from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from photo_picker.sources import (
    ImageDecodeError,
    ImageOrigin,
    SourceRef,
    SourceUnavailableError,
    decode_image_bytes,
    decode_source,
    decode_sources,
    load_image_file,
)


def _write_image(path: Path, color, *, mode: str = "RGB", fmt: str = "PNG") -> Path:
    Image.new(mode, (8, 6), color=color).save(path, format=fmt)
    return path


def _png_bytes(color=(10, 20, 30)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color=color).save(buffer, format="PNG")
    return buffer.getvalue()


def test_decode_image_bytes_reports_metadata() -> None:
    decoded = decode_image_bytes(_png_bytes(), name="sample.png")
    assert decoded.image.size == (4, 4)
    assert decoded.origin == ImageOrigin.LIBRARY
    assert decoded.metadata["format"] == "PNG"
    assert decoded.metadata["resolution"] == "4×4"
    assert decoded.name == "sample.png"


@pytest.mark.parametrize("payload", [b"", b"definitely not an image", _png_bytes()[:40]])
def test_decode_image_bytes_rejects_invalid_payloads(payload: bytes) -> None:
    with pytest.raises(ImageDecodeError):
        decode_image_bytes(payload, name="broken")


def test_decode_normalises_to_displayable_mode(tmp_path) -> None:
    cmyk = _write_image(tmp_path / "cmyk.jpg", (0, 0, 0, 0), mode="CMYK", fmt="JPEG")
    decoded = decode_source(SourceRef(cmyk))
    assert decoded.image.mode == "RGB"

    palette = Image.new("P", (4, 4), color=1)
    palette_path = tmp_path / "palette.png"
    palette.save(palette_path, transparency=0)
    decoded = decode_source(SourceRef(palette_path))
    assert decoded.image.mode == "RGBA"


def test_source_ref_missing_file_is_unavailable(tmp_path) -> None:
    with pytest.raises(SourceUnavailableError):
        SourceRef(tmp_path / "missing.png").load_bytes()


def test_load_image_file_marks_file_origin(tmp_path) -> None:
    path = _write_image(tmp_path / "file.png", (255, 0, 0))
    decoded = load_image_file(path)
    assert decoded.origin == ImageOrigin.FILE
    assert decoded.path == path
    assert decoded.image.getpixel((0, 0)) == (255, 0, 0)


def test_load_image_file_undecodable(tmp_path) -> None:
    path = tmp_path / "notes.png"
    path.write_text("plain text", encoding="utf-8")
    with pytest.raises(ImageDecodeError):
        load_image_file(path)


def test_decode_sources_skips_failures_and_keeps_order(tmp_path) -> None:
    red = _write_image(tmp_path / "red.png", (255, 0, 0))
    green = _write_image(tmp_path / "green.png", (0, 255, 0))
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"\x89PNG nope")
    missing = tmp_path / "missing.png"

    sources = [SourceRef(p) for p in (green, broken, red, missing, green)]
    images = decode_sources(sources)

    assert [image.image.getpixel((0, 0)) for image in images] == [
        (0, 255, 0),
        (255, 0, 0),
        (0, 255, 0),
    ]


def test_decode_sources_stops_when_interrupted(tmp_path) -> None:
    paths = [_write_image(tmp_path / f"{index}.png", (index, index, index)) for index in range(4)]
    calls = []

    def _should_continue() -> bool:
        calls.append(1)
        return len(calls) <= 2

    images = decode_sources([SourceRef(p) for p in paths], should_continue=_should_continue)
    assert len(images) == 2
