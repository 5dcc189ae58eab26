"""Source references and image decoding for picked media."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO
from pathlib import Path
import logging
from typing import Callable, Dict, Iterable, List, Optional

from PIL import Image, UnidentifiedImageError


logger = logging.getLogger(__name__)

DISPLAYABLE_MODES = {"L", "RGB", "RGBA"}


class PickerError(Exception):
    """Base class for errors raised while turning picks into images."""


class SourceUnavailableError(PickerError):
    """The bytes behind a source reference could not be retrieved."""


class ImageDecodeError(PickerError):
    """Bytes were retrieved but do not form a decodable image."""


class ImageOrigin(str, Enum):
    """Where a decoded image entered the application."""

    LIBRARY = "library"
    FILE = "file"


@dataclass(frozen=True)
class SourceRef:
    """Reference to a picked item; its bytes are only read on demand."""

    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    def load_bytes(self) -> bytes:
        try:
            return self.path.read_bytes()
        except OSError as exc:
            raise SourceUnavailableError(f"Cannot read {self.path}: {exc}") from exc


@dataclass()
class DecodedImage:
    """A displayable image together with where it came from."""

    image: Image.Image
    origin: ImageOrigin
    path: Optional[Path] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str:
        if self.path is not None:
            return self.path.name
        return self.metadata.get("name", "")


def _to_displayable(image: Image.Image) -> Image.Image:
    if image.mode in DISPLAYABLE_MODES:
        return image
    if "transparency" in image.info or image.mode in {"LA", "PA", "RGBa", "La"}:
        return image.convert("RGBA")
    return image.convert("RGB")


def decode_image_bytes(
    data: bytes,
    *,
    name: str = "",
    origin: ImageOrigin = ImageOrigin.LIBRARY,
    path: Optional[Path] = None,
) -> DecodedImage:
    """Decode ``data`` into a :class:`DecodedImage`.

    Pillow opens images lazily, so the pixel data is forced with ``load()``
    here to surface truncated or corrupt payloads as :class:`ImageDecodeError`
    instead of failing later during rendering.
    """

    if not data:
        raise ImageDecodeError(f"{name or 'source'} is empty")
    try:
        with Image.open(BytesIO(data)) as handle:
            handle.load()
            source_format = handle.format or "unknown"
            image = _to_displayable(handle)
            if image is handle:
                image = handle.copy()
    except (
        UnidentifiedImageError,
        OSError,
        SyntaxError,
        ValueError,
        Image.DecompressionBombError,
    ) as exc:
        raise ImageDecodeError(f"Cannot decode {name or 'source'}: {exc}") from exc

    metadata = {
        "name": name,
        "format": source_format,
        "resolution": f"{image.width}×{image.height}",
    }
    return DecodedImage(image=image, origin=origin, path=path, metadata=metadata)


def decode_source(source: SourceRef) -> DecodedImage:
    """Retrieve and decode a library pick."""

    data = source.load_bytes()
    return decode_image_bytes(data, name=source.name, origin=ImageOrigin.LIBRARY, path=source.path)


def load_image_file(path: Path | str) -> DecodedImage:
    """Load an image chosen through the file browser."""

    path = Path(path)
    data = SourceRef(path).load_bytes()
    return decode_image_bytes(data, name=path.name, origin=ImageOrigin.FILE, path=path)


def decode_sources(
    sources: Iterable[SourceRef],
    *,
    should_continue: Optional[Callable[[], bool]] = None,
) -> List[DecodedImage]:
    """Decode ``sources`` in order, dropping entries that cannot be decoded.

    ``should_continue`` is polled before each entry; once it returns ``False``
    the images decoded so far are returned.
    """

    images: List[DecodedImage] = []
    for source in sources:
        if should_continue is not None and not should_continue():
            logger.debug("Decode interrupted before %s", source.path)
            break
        try:
            images.append(decode_source(source))
        except SourceUnavailableError as exc:
            logger.debug("Skipping unavailable source: %s", exc)
        except ImageDecodeError as exc:
            logger.debug("Skipping undecodable source: %s", exc)
    return images
