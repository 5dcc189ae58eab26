"""Configuration for the photo picker window."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Tuple


IMAGE_SUFFIXES: Tuple[str, ...] = (
    ".png",
    ".jpg",
    ".jpeg",
    ".jpe",
    ".gif",
    ".bmp",
    ".tif",
    ".tiff",
    ".webp",
)

SETTINGS_ORGANIZATION = "PhotoPicker"
SETTINGS_APPLICATION = "PhotoPicker"


@dataclass
class PickerConfig:
    """Sizing and filtering knobs shared by the picker screen and history sheet."""

    preview_height_fraction: float = 0.6
    history_compact_threshold: float = 0.4
    history_detents: Sequence[float] = field(default_factory=lambda: (0.3, 1.0))
    history_initial_fraction: float = 0.6
    thumbnail_edge: int = 160
    image_suffixes: Sequence[str] = field(default_factory=lambda: IMAGE_SUFFIXES)

    @property
    def controls_height_fraction(self) -> float:
        return 1.0 - self.preview_height_fraction

    def is_image_path(self, name: str) -> bool:
        lowered = name.lower()
        return any(lowered.endswith(suffix) for suffix in self.image_suffixes)
