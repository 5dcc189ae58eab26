import os
from pathlib import Path

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication, QFileDialog

from photo_picker.layout import HistoryLayout, PresentationSpace, history_layout_for
from photo_picker.pickers import (
    BrowseStatus,
    FileBrowser,
    LibraryPicker,
    LibraryPickerConfig,
)


def test_library_picker_keeps_pick_order_and_duplicates(tmp_path, monkeypatch) -> None:
    app = QApplication.instance() or QApplication([])
    picked = [str(tmp_path / "b.png"), str(tmp_path / "a.png"), str(tmp_path / "b.png")]
    captured = {}

    def _fake_dialog(parent, caption, directory, name_filter):
        captured["directory"] = directory
        captured["filter"] = name_filter
        return picked, "Images"

    monkeypatch.setattr(QFileDialog, "getOpenFileNames", _fake_dialog)
    try:
        picker = LibraryPicker()
        selection = picker.pick(None, tmp_path)

        assert [ref.name for ref in selection] == ["b.png", "a.png", "b.png"]
        assert captured["directory"] == str(tmp_path)
        assert "*.png" in captured["filter"] and "*.jpg" in captured["filter"]
        assert picker.last_directory() == tmp_path
    finally:
        if QApplication.instance() is app:
            app.quit()


def test_library_picker_continues_from_last_directory(tmp_path, monkeypatch) -> None:
    app = QApplication.instance() or QApplication([])
    nested = tmp_path / "album"
    directories = []

    def _fake_dialog(parent, caption, directory, name_filter):
        directories.append(directory)
        return [str(nested / "one.png")], "Images"

    monkeypatch.setattr(QFileDialog, "getOpenFileNames", _fake_dialog)
    try:
        picker = LibraryPicker(LibraryPickerConfig(continuous=True))
        picker.pick(None, tmp_path)
        picker.pick(None, tmp_path)
        assert directories == [str(tmp_path), str(nested)]
    finally:
        if QApplication.instance() is app:
            app.quit()


def test_library_picker_cancel_returns_empty(monkeypatch) -> None:
    app = QApplication.instance() or QApplication([])
    monkeypatch.setattr(QFileDialog, "getOpenFileNames", lambda *_, **__: ([], ""))
    try:
        assert LibraryPicker().pick(None) == []
    finally:
        if QApplication.instance() is app:
            app.quit()


def test_file_browser_outcomes(tmp_path, monkeypatch) -> None:
    app = QApplication.instance() or QApplication([])
    existing = tmp_path / "photo.png"
    existing.write_bytes(b"")
    browser = FileBrowser()
    try:
        monkeypatch.setattr(QFileDialog, "getOpenFileName", lambda *_, **__: ("", ""))
        assert browser.browse(None).status is BrowseStatus.CANCELLED

        monkeypatch.setattr(QFileDialog, "getOpenFileName", lambda *_, **__: (str(existing), ""))
        result = browser.browse(None)
        assert result.ok and result.path == existing

        missing = tmp_path / "gone.png"
        monkeypatch.setattr(QFileDialog, "getOpenFileName", lambda *_, **__: (str(missing), ""))
        result = browser.browse(None)
        assert result.status is BrowseStatus.FAILURE
        assert "does not exist" in result.message

        monkeypatch.setattr(QFileDialog, "getOpenFileName", lambda *_, **__: (str(tmp_path), ""))
        result = browser.browse(None)
        assert result.status is BrowseStatus.FAILURE
        assert "not a file" in result.message
    finally:
        if QApplication.instance() is app:
            app.quit()


def test_history_layout_threshold() -> None:
    assert history_layout_for(PresentationSpace(400, 1000)) is HistoryLayout.HORIZONTAL
    assert history_layout_for(PresentationSpace(300, 1000)) is HistoryLayout.HORIZONTAL
    assert history_layout_for(PresentationSpace(401, 1000)) is HistoryLayout.VERTICAL
    assert history_layout_for(PresentationSpace(600, 1000)) is HistoryLayout.VERTICAL
    assert (
        history_layout_for(PresentationSpace(600, 1000), compact_threshold=0.7)
        is HistoryLayout.HORIZONTAL
    )


def test_presentation_space_fraction() -> None:
    space = PresentationSpace(available_height=300, screen_height=1000)
    assert space.fraction() == 0.3
    assert space.with_available_height(500).fraction() == 0.5
    assert PresentationSpace(10, 0).fraction() == 1.0
