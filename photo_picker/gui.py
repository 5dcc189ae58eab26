"""PyQt GUI for picking images and reviewing the pick history."""

from __future__ import annotations

import argparse
import logging
import sys
from functools import partial
from pathlib import Path
from typing import List, Optional, Sequence

from PIL import Image
from PIL.ImageQt import ImageQt
from PyQt6.QtCore import QByteArray, QMimeData, QSettings, QSize, Qt, QUrl
from PyQt6.QtGui import (
    QAction,
    QDragEnterEvent,
    QDragMoveEvent,
    QDropEvent,
    QImage,
    QPixmap,
    QResizeEvent,
)
from PyQt6.QtWidgets import (
    QApplication,
    QDialog,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QProgressBar,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QStatusBar,
    QStyle,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from .config import SETTINGS_APPLICATION, SETTINGS_ORGANIZATION, PickerConfig
from .layout import HistoryLayout, PresentationSpace, history_layout_for
from .pickers import (
    BrowseStatus,
    FileBrowser,
    FileBrowserConfig,
    LibraryPicker,
    LibraryPickerConfig,
)
from .sources import DecodedImage
from .state import SelectionState


logger = logging.getLogger(__name__)

_FALLBACK_SCREEN_HEIGHT = 800


def _pil_to_qpixmap(image: Image.Image) -> QPixmap:
    """Convert a :class:`PIL.Image.Image` into a :class:`QPixmap`."""

    if image.mode not in {"RGB", "RGBA"}:
        pil_image = image.convert("RGBA")
    else:
        pil_image = image.copy()

    qimage = ImageQt(pil_image)
    if not isinstance(qimage, QImage):
        qimage = QImage(qimage)

    return QPixmap.fromImage(qimage.copy())


class ImagePreview(QWidget):
    """Shows a single image scaled to fit, or a placeholder when empty."""

    def __init__(self, placeholder: str) -> None:
        super().__init__()
        self._placeholder = placeholder
        self._pixmap: Optional[QPixmap] = None

        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self._label = QLabel(placeholder)
        self._label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._label.setMinimumSize(120, 120)
        self._label.setSizePolicy(QSizePolicy.Policy.Ignored, QSizePolicy.Policy.Ignored)
        layout.addWidget(self._label)

    def set_image(self, image: Image.Image | DecodedImage) -> None:
        if isinstance(image, DecodedImage):
            image = image.image
        self._pixmap = _pil_to_qpixmap(image)
        self._label.setText("")
        self._update_view()

    def clear(self) -> None:
        self._pixmap = None
        self._label.setPixmap(QPixmap())
        self._label.setText(self._placeholder)

    def current_pixmap(self) -> Optional[QPixmap]:
        pixmap = self._label.pixmap()
        if pixmap is None or pixmap.isNull():
            return None
        return QPixmap(pixmap)

    def resizeEvent(self, event: QResizeEvent) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self._update_view()

    def _update_view(self) -> None:
        if not self._pixmap:
            return
        target = self._label.size()
        if target.width() < 1 or target.height() < 1:
            target = self._label.minimumSize()
        scaled = self._pixmap.scaled(
            target,
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        )
        self._label.setPixmap(scaled)


class HistoryItem(QFrame):
    """Thumbnail with a remove control overlaid on top."""

    def __init__(self, image: DecodedImage, edge: int) -> None:
        super().__init__()
        self.setFrameShape(QFrame.Shape.StyledPanel)

        layout = QGridLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)

        self.thumbnail = QLabel()
        self.thumbnail.setAlignment(Qt.AlignmentFlag.AlignCenter)
        pixmap = _pil_to_qpixmap(image.image).scaled(
            QSize(edge, edge),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        )
        self.thumbnail.setPixmap(pixmap)
        self.thumbnail.setToolTip(image.name or image.metadata.get("resolution", ""))
        layout.addWidget(self.thumbnail, 0, 0)

        self.remove_button = QToolButton()
        self.remove_button.setObjectName("removeButton")
        self.remove_button.setToolTip("Remove from history")
        self.remove_button.setIcon(self.style().standardIcon(QStyle.StandardPixmap.SP_TrashIcon))
        self.remove_button.setIconSize(QSize(edge // 3, edge // 3))
        self.remove_button.setAutoRaise(True)
        layout.addWidget(self.remove_button, 0, 0, Qt.AlignmentFlag.AlignCenter)


class HistorySheet(QDialog):
    """Review and remove previously picked images.

    The sheet renders a horizontal strip while it is short and a vertical list
    otherwise; which one is decided from the :class:`PresentationSpace` it is
    given. It closes itself once the last image has been removed.
    """

    def __init__(
        self,
        state: SelectionState,
        space: PresentationSpace,
        *,
        config: Optional[PickerConfig] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Images History")
        self._state = state
        self._config = config or PickerConfig()
        self._space = space
        self._layout_mode = history_layout_for(space, compact_threshold=self._config.history_compact_threshold)
        self._items: List[HistoryItem] = []

        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)

        header = QHBoxLayout()
        self.count_label = QLabel()
        header.addWidget(self.count_label)
        header.addStretch(1)
        self.detent_button = QPushButton()
        self.detent_button.clicked.connect(self._toggle_detent)
        header.addWidget(self.detent_button)
        layout.addLayout(header)

        self._scroll = QScrollArea()
        self._scroll.setWidgetResizable(True)
        self._scroll.setFrameShape(QFrame.Shape.NoFrame)
        layout.addWidget(self._scroll, 1)

        self._state.imagesChanged.connect(self._on_images_changed)
        self._rebuild()

    # ------------------------------------------------------------- geometry
    def presentation_space(self) -> PresentationSpace:
        return self._space

    def current_layout(self) -> HistoryLayout:
        return self._layout_mode

    def set_presentation_space(self, space: PresentationSpace) -> None:
        self._space = space
        mode = history_layout_for(space, compact_threshold=self._config.history_compact_threshold)
        if mode is not self._layout_mode:
            logger.debug("History layout switched to %s", mode.value)
            self._layout_mode = mode
            self._rebuild()
        else:
            self._update_detent_button()

    def set_detent(self, fraction: float) -> None:
        height = max(1, int(self._space.screen_height * fraction))
        self.set_presentation_space(self._space.with_available_height(height))
        self.resize(self.width(), height)

    def current_detent(self) -> float:
        detents = list(self._config.history_detents)
        fraction = self._space.fraction()
        return min(detents, key=lambda detent: abs(detent - fraction))

    def _toggle_detent(self) -> None:
        detents = sorted(self._config.history_detents)
        current = self.current_detent()
        index = detents.index(current)
        self.set_detent(detents[(index + 1) % len(detents)])

    def _update_detent_button(self) -> None:
        compact = min(self._config.history_detents)
        self.detent_button.setText("Expand" if self.current_detent() == compact else "Compact")

    def resizeEvent(self, event: QResizeEvent) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        height = event.size().height()
        if height > 0 and height != self._space.available_height:
            self.set_presentation_space(self._space.with_available_height(height))

    # -------------------------------------------------------------- content
    def remove_buttons(self) -> List[QToolButton]:
        return [item.remove_button for item in self._items]

    def item_count(self) -> int:
        return len(self._items)

    def _on_images_changed(self) -> None:
        if self._state.image_count() == 0:
            logger.debug("History emptied; closing sheet")
            self._clear_items()
            self.close()
            return
        self._rebuild()

    def _clear_items(self) -> None:
        self._items = []
        old = self._scroll.takeWidget()
        if old is not None:
            old.deleteLater()

    def _rebuild(self) -> None:
        self._clear_items()
        container = QWidget()
        if self._layout_mode is HistoryLayout.HORIZONTAL:
            box = QHBoxLayout(container)
            self._scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
            self._scroll.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        else:
            box = QVBoxLayout(container)
            self._scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
            self._scroll.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        box.setSpacing(10)

        for index, image in enumerate(self._state.images()):
            item = HistoryItem(image, self._config.thumbnail_edge)
            item.remove_button.clicked.connect(partial(self._remove_at, index))
            box.addWidget(item)
            self._items.append(item)
        box.addStretch(1)

        self._scroll.setWidget(container)
        count = len(self._items)
        self.count_label.setText(f"{count} image{'s' if count != 1 else ''}")
        self._update_detent_button()

    def _remove_at(self, index: int, *_args) -> None:
        if index >= self._state.image_count():
            return
        self._state.remove_image(index)


class PickerScreen(QWidget):
    """Latest-image preview with the library, file and history triggers."""

    def __init__(
        self,
        state: SelectionState,
        *,
        settings: Optional[QSettings] = None,
        config: Optional[PickerConfig] = None,
        library_picker: Optional[LibraryPicker] = None,
        file_browser: Optional[FileBrowser] = None,
        screen_height: Optional[int] = None,
    ) -> None:
        super().__init__()
        self.state = state
        self._settings = settings
        self._config = config or PickerConfig()
        suffixes = tuple(self._config.image_suffixes)
        self.library_picker = library_picker or LibraryPicker(LibraryPickerConfig(suffixes=suffixes))
        self.file_browser = file_browser or FileBrowser(FileBrowserConfig(suffixes=suffixes))
        self._screen_height = screen_height
        self._history_sheet: Optional[HistorySheet] = None

        self._build_ui()
        self.state.imagesChanged.connect(self._refresh)
        self._refresh()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(10)

        preview_area = QWidget()
        preview_layout = QGridLayout(preview_area)
        preview_layout.setContentsMargins(0, 0, 0, 0)
        self.preview = ImagePreview("Pick a photo or a file…")
        preview_layout.addWidget(self.preview, 0, 0)

        self.history_button = QPushButton("Images History")
        self.history_button.setStyleSheet("background-color: #1e63d6; color: white; padding: 8px;")
        self.history_button.clicked.connect(self.toggle_history)
        preview_layout.addWidget(
            self.history_button,
            0,
            0,
            Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignRight,
        )

        controls = QWidget()
        controls_layout = QHBoxLayout(controls)
        controls_layout.setContentsMargins(0, 0, 0, 0)
        controls_layout.setSpacing(10)

        self.photo_button = QPushButton("Get Photo")
        self.photo_button.setStyleSheet("background-color: #e53935;")
        self.photo_button.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.photo_button.clicked.connect(self.get_photo)
        controls_layout.addWidget(self.photo_button)

        self.file_button = QPushButton("Get File")
        self.file_button.setStyleSheet("background-color: #fdd835;")
        self.file_button.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.file_button.clicked.connect(self.get_file)
        controls_layout.addWidget(self.file_button)

        layout.addWidget(preview_area, max(1, round(self._config.preview_height_fraction * 100)))
        layout.addWidget(controls, max(1, round(self._config.controls_height_fraction * 100)))

    # -------------------------------------------------------------- triggers
    def get_photo(self) -> None:
        selection = self.library_picker.pick(self, self._start_directory())
        if not selection:
            return
        self._remember_directory(selection[-1].path.parent)
        self.state.set_source_selection(selection)

    def get_file(self) -> None:
        result = self.file_browser.browse(self, self._start_directory())
        if result.status is BrowseStatus.CANCELLED:
            return
        if result.status is BrowseStatus.FAILURE or result.path is None:
            logger.warning("File browser failed: %s", result.message)
            return
        self._remember_directory(result.path.parent)
        self.state.import_file(result.path)

    def toggle_history(self) -> None:
        sheet = self._history_sheet
        if sheet is not None and sheet.isVisible():
            sheet.close()
            return
        self.show_history()

    def show_history(self) -> Optional[HistorySheet]:
        if not self.state.can_show_history():
            return None
        screen_height = self.reference_screen_height()
        initial = max(1, int(screen_height * self._config.history_initial_fraction))
        space = PresentationSpace(available_height=initial, screen_height=screen_height)
        if self._history_sheet is None:
            self._history_sheet = HistorySheet(self.state, space, config=self._config, parent=self)
        else:
            self._history_sheet.set_presentation_space(space)
        self._history_sheet.resize(max(self.width(), 320), initial)
        self._history_sheet.show()
        return self._history_sheet

    def history_sheet(self) -> Optional[HistorySheet]:
        return self._history_sheet

    # ------------------------------------------------------------- rendering
    def reference_screen_height(self) -> int:
        if self._screen_height:
            return self._screen_height
        screen = self.screen() or QApplication.primaryScreen()
        if screen is None:
            return _FALLBACK_SCREEN_HEIGHT
        return screen.availableGeometry().height() or _FALLBACK_SCREEN_HEIGHT

    def _refresh(self) -> None:
        latest = self.state.latest_image()
        if latest is None:
            self.preview.clear()
        else:
            self.preview.set_image(latest)
        self.history_button.setVisible(self.state.can_show_history())

    # -------------------------------------------------------------- settings
    def _start_directory(self) -> Optional[Path]:
        if self._settings is None:
            return None
        value = self._settings.value("session/lastImageDirectory", "")
        if isinstance(value, str) and value:
            return Path(value)
        return None

    def _remember_directory(self, directory: Path) -> None:
        if self._settings is not None:
            self._settings.setValue("session/lastImageDirectory", str(directory))


class MainWindow(QMainWindow):
    """Main application window hosting the picker screen."""

    def __init__(
        self,
        *,
        settings: Optional[QSettings] = None,
        config: Optional[PickerConfig] = None,
        enable_async_decode: bool = True,
        screen_height: Optional[int] = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle("Photo Picker")
        self.resize(480, 800)
        self._settings = settings or QSettings(SETTINGS_ORGANIZATION, SETTINGS_APPLICATION)
        self._config = config or PickerConfig()

        self.state = SelectionState(async_enabled=enable_async_decode, parent=self)
        self.screen_widget = PickerScreen(
            self.state,
            settings=self._settings,
            config=self._config,
            screen_height=screen_height,
        )
        self.setCentralWidget(self.screen_widget)
        self.setAcceptDrops(True)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self._create_progress_widget()

        self._create_actions()
        self._build_menus()

        self.state.decodeStarted.connect(self._on_decode_started)
        self.state.decodeFinished.connect(self._on_decode_finished)
        self.state.imagesChanged.connect(self._sync_actions)
        self._sync_actions()

        self._restore_session()

    def _create_actions(self) -> None:
        self.get_photo_action = QAction("Get Photo…", self)
        self.get_photo_action.triggered.connect(self.screen_widget.get_photo)

        self.get_file_action = QAction("Get File…", self)
        self.get_file_action.triggered.connect(self.screen_widget.get_file)

        self.history_action = QAction("Images History", self)
        self.history_action.triggered.connect(self.screen_widget.toggle_history)

        self.exit_action = QAction("Exit", self)
        self.exit_action.triggered.connect(self.close)

    def _build_menus(self) -> None:
        file_menu = self.menuBar().addMenu("File")
        file_menu.addAction(self.get_photo_action)
        file_menu.addAction(self.get_file_action)
        file_menu.addSeparator()
        file_menu.addAction(self.exit_action)

        view_menu = self.menuBar().addMenu("View")
        view_menu.addAction(self.history_action)

    def _create_progress_widget(self) -> None:
        self._progress_bar = QProgressBar()
        self._progress_bar.setRange(0, 0)
        self._progress_bar.setMaximumWidth(160)
        self._progress_bar.hide()
        self.status_bar.addPermanentWidget(self._progress_bar)

    def decode_indicator_visible(self) -> bool:
        return not self._progress_bar.isHidden()

    def _on_decode_started(self, _generation: int) -> None:
        self._progress_bar.show()

    def _on_decode_finished(self, _generation: int) -> None:
        if not self.state.decode_in_progress():
            self._progress_bar.hide()

    def _sync_actions(self) -> None:
        self.history_action.setEnabled(self.state.can_show_history())

    # ------------------------------------------------------------ file intake
    def import_paths(self, paths: Sequence[Path]) -> int:
        imported = 0
        for path in paths:
            if self.state.import_file(path) is not None:
                imported += 1
        return imported

    def _paths_from_mime(self, mime_data: QMimeData | None) -> List[Path]:
        images: List[Path] = []
        if mime_data is None or not mime_data.hasUrls():
            return images
        for url in mime_data.urls():
            if not isinstance(url, QUrl) or not url.isLocalFile():
                continue
            candidate = Path(url.toLocalFile())
            if not candidate.is_file():
                continue
            if self._config.is_image_path(candidate.name):
                images.append(candidate)
        return images

    def dragEnterEvent(self, event: QDragEnterEvent) -> None:  # type: ignore[override]
        if self._paths_from_mime(event.mimeData()):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event: QDragMoveEvent) -> None:  # type: ignore[override]
        if self._paths_from_mime(event.mimeData()):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event: QDropEvent) -> None:  # type: ignore[override]
        paths = self._paths_from_mime(event.mimeData())
        if not paths:
            event.ignore()
            return
        self.import_paths(paths)
        event.acceptProposedAction()

    # ---------------------------------------------------------------- session
    def _restore_session(self) -> None:
        geometry_value = self._settings.value("session/windowGeometry", "")
        if isinstance(geometry_value, (bytes, bytearray)):
            try:
                geometry_value = geometry_value.decode("ascii")
            except UnicodeDecodeError:
                geometry_value = ""
        if isinstance(geometry_value, str) and geometry_value:
            geometry = QByteArray.fromBase64(geometry_value.encode("ascii"))
            if not geometry.isEmpty() and not self.restoreGeometry(geometry):
                logger.debug("Failed to restore window geometry")

    def _save_session_state(self) -> None:
        geometry = self.saveGeometry().toBase64().data().decode("ascii")
        self._settings.setValue("session/windowGeometry", geometry)
        self._settings.sync()

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._save_session_state()
        sheet = self.screen_widget.history_sheet()
        if sheet is not None:
            sheet.close()
        self.state.shutdown()
        super().closeEvent(event)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photo-picker",
        description="Pick images from a library or the file system and review the pick history.",
    )
    parser.add_argument("images", type=Path, nargs="*", help="Image files to import at start-up.")
    parser.add_argument(
        "--sync-decode",
        action="store_true",
        help="Decode library picks on the GUI thread instead of a worker thread.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging verbosity (default: WARNING).",
    )
    return parser


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication.instance() or QApplication(sys.argv[:1])
    window = MainWindow(enable_async_decode=not args.sync_decode)
    if args.images:
        imported = window.import_paths(args.images)
        logger.info("Imported %d of %d start-up image(s)", imported, len(args.images))
    window.show()
    return app.exec()
