"""Dialog-backed services that produce picks for the selection state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from PyQt6.QtWidgets import QFileDialog, QWidget

from .config import IMAGE_SUFFIXES
from .sources import SourceRef


logger = logging.getLogger(__name__)


def _name_filter(suffixes: Sequence[str]) -> str:
    patterns = " ".join(f"*{suffix}" for suffix in suffixes)
    return f"Images ({patterns});;All files (*)"


@dataclass(frozen=True)
class LibraryPickerConfig:
    """Options for the photo library picker."""

    images_only: bool = True
    ordered: bool = True
    multi_select: bool = True
    continuous: bool = True
    suffixes: Tuple[str, ...] = IMAGE_SUFFIXES


@dataclass(frozen=True)
class FileBrowserConfig:
    """Options for the document browser."""

    allowed_types: Tuple[str, ...] = ("image",)
    suffixes: Tuple[str, ...] = IMAGE_SUFFIXES


class BrowseStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FileBrowserResult:
    status: BrowseStatus
    path: Optional[Path] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is BrowseStatus.SUCCESS


class LibraryPicker:
    """Multi-select image picker returning references in pick order.

    With ``continuous`` enabled the picker starts from the directory of the
    previous pick so repeated picks continue where the user left off.
    """

    def __init__(self, config: Optional[LibraryPickerConfig] = None) -> None:
        self.config = config or LibraryPickerConfig()
        self._last_directory: Optional[Path] = None

    def last_directory(self) -> Optional[Path]:
        return self._last_directory

    def pick(self, parent: Optional[QWidget], start_dir: Optional[Path] = None) -> List[SourceRef]:
        directory = start_dir
        if self.config.continuous and self._last_directory is not None:
            directory = self._last_directory
        name_filter = _name_filter(self.config.suffixes) if self.config.images_only else "All files (*)"

        if self.config.multi_select:
            paths, _ = QFileDialog.getOpenFileNames(
                parent,
                "Get Photo",
                str(directory or Path.home()),
                name_filter,
            )
        else:
            path, _ = QFileDialog.getOpenFileName(
                parent,
                "Get Photo",
                str(directory or Path.home()),
                name_filter,
            )
            paths = [path] if path else []

        if not paths:
            return []

        selection = [SourceRef(Path(entry)) for entry in paths]
        if not self.config.ordered:
            selection.sort(key=lambda ref: ref.name.lower())
        self._last_directory = selection[-1].path.parent
        logger.debug("Library picker returned %d item(s)", len(selection))
        return selection


class FileBrowser:
    """Single-file browser restricted to image documents."""

    def __init__(self, config: Optional[FileBrowserConfig] = None) -> None:
        self.config = config or FileBrowserConfig()

    def browse(self, parent: Optional[QWidget], start_dir: Optional[Path] = None) -> FileBrowserResult:
        name_filter = _name_filter(self.config.suffixes) if "image" in self.config.allowed_types else "All files (*)"
        path, _ = QFileDialog.getOpenFileName(
            parent,
            "Get File",
            str(start_dir or Path.home()),
            name_filter,
        )
        if not path:
            return FileBrowserResult(BrowseStatus.CANCELLED)

        candidate = Path(path)
        if not candidate.exists():
            return FileBrowserResult(BrowseStatus.FAILURE, candidate, f"{candidate} does not exist")
        if not candidate.is_file():
            return FileBrowserResult(BrowseStatus.FAILURE, candidate, f"{candidate} is not a file")
        return FileBrowserResult(BrowseStatus.SUCCESS, candidate)
