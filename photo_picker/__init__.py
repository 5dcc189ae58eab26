"""PyQt6-based image picker with a removable pick history."""

from .layout import HistoryLayout, PresentationSpace, history_layout_for
from .sources import (
    DecodedImage,
    ImageDecodeError,
    ImageOrigin,
    PickerError,
    SourceRef,
    SourceUnavailableError,
    decode_image_bytes,
    load_image_file,
)

__all__ = [
    "DecodedImage",
    "HistoryLayout",
    "ImageDecodeError",
    "ImageOrigin",
    "PickerError",
    "PresentationSpace",
    "SourceRef",
    "SourceUnavailableError",
    "decode_image_bytes",
    "history_layout_for",
    "load_image_file",
]
