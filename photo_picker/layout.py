"""Layout policy for the history sheet."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class HistoryLayout(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class PresentationSpace:
    """Height the history sheet may use, relative to a reference screen height."""

    available_height: int
    screen_height: int

    def fraction(self) -> float:
        if self.screen_height <= 0:
            return 1.0
        return self.available_height / self.screen_height

    def with_available_height(self, height: int) -> "PresentationSpace":
        return PresentationSpace(available_height=height, screen_height=self.screen_height)


def history_layout_for(space: PresentationSpace, *, compact_threshold: float = 0.4) -> HistoryLayout:
    """Return the strip layout for short sheets and the list layout otherwise."""

    if space.available_height <= space.screen_height * compact_threshold:
        return HistoryLayout.HORIZONTAL
    return HistoryLayout.VERTICAL
