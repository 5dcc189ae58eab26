"""Selection state shared by the picker screen and the history sheet."""

from __future__ import annotations

import logging
import threading
from functools import partial
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot

from .sources import (
    DecodedImage,
    ImageDecodeError,
    SourceRef,
    SourceUnavailableError,
    decode_sources,
    load_image_file,
)


logger = logging.getLogger(__name__)


class DecodeWorker(QObject):
    """Background worker that decodes one selection pass."""

    finished = pyqtSignal(int, object)
    failed = pyqtSignal(int, str)

    def __init__(self, generation: int, sources: Sequence[SourceRef]) -> None:
        super().__init__()
        self._generation = generation
        self._sources = list(sources)
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        self._cancel_event.set()

    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @pyqtSlot()
    def run(self) -> None:
        try:
            images = decode_sources(self._sources, should_continue=lambda: not self.is_cancelled())
        except Exception as exc:  # pragma: no cover - defensive guard
            self.failed.emit(self._generation, str(exc))
            return

        self.finished.emit(self._generation, images)


class SelectionState(QObject):
    """Owns the current source selection and the published decoded images.

    All mutations of the published list happen on the thread that owns this
    object. Decode passes run on worker threads and hand their results back
    through queued signals; only the pass with the current generation is
    applied.
    """

    imagesChanged = pyqtSignal()
    selectionChanged = pyqtSignal()
    decodeStarted = pyqtSignal(int)
    decodeFinished = pyqtSignal(int)

    def __init__(self, *, async_enabled: bool = True, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._async_enabled = async_enabled
        self._selection: List[SourceRef] = []
        self._images: List[DecodedImage] = []
        self._generation = 0
        self._active_generation: Optional[int] = None
        self._workers: Dict[int, Tuple[DecodeWorker, QThread]] = {}

    # ------------------------------------------------------------- accessors
    def images(self) -> List[DecodedImage]:
        return list(self._images)

    def image_count(self) -> int:
        return len(self._images)

    def latest_image(self) -> Optional[DecodedImage]:
        if not self._images:
            return None
        return self._images[-1]

    def source_selection(self) -> List[SourceRef]:
        return list(self._selection)

    def can_show_history(self) -> bool:
        return len(self._images) >= 2

    def generation(self) -> int:
        return self._generation

    def decode_in_progress(self) -> bool:
        return self._active_generation is not None

    # -------------------------------------------------------------- mutators
    def set_source_selection(self, selection: Sequence[SourceRef]) -> int:
        """Replace the selection and decode it; returns the pass generation."""

        self._selection = list(selection)
        self.selectionChanged.emit()

        self._generation += 1
        generation = self._generation
        self._cancel_workers()
        self._active_generation = generation
        self.decodeStarted.emit(generation)

        if not self._async_enabled:
            self._apply_decoded(generation, decode_sources(self._selection))
            return generation

        self._start_async_decode(generation, self._selection)
        return generation

    def append_image(self, image: DecodedImage) -> None:
        self._images.append(image)
        self.imagesChanged.emit()

    def remove_image(self, index: int) -> DecodedImage:
        if not 0 <= index < len(self._images):
            raise IndexError(f"Image index {index} out of range for {len(self._images)} images")
        removed = self._images.pop(index)
        self.imagesChanged.emit()
        return removed

    def import_file(self, path: Path | str) -> Optional[DecodedImage]:
        """Decode ``path`` synchronously and append it; failures are a no-op."""

        try:
            image = load_image_file(path)
        except (SourceUnavailableError, ImageDecodeError) as exc:
            logger.warning("Ignoring file %s: %s", path, exc, exc_info=True)
            return None
        self.append_image(image)
        return image

    def shutdown(self) -> None:
        """Cancel in-flight passes and wait for their threads to exit."""

        # Results still queued from cancelled workers must not be applied.
        self._generation += 1
        self._active_generation = None
        for worker, thread in list(self._workers.values()):
            worker.cancel()
            thread.quit()
            thread.wait()
        self._workers.clear()

    # -------------------------------------------------------------- internals
    def _cancel_workers(self) -> None:
        for generation, (worker, _thread) in self._workers.items():
            if not worker.is_cancelled():
                logger.debug("Cancelling decode pass %s", generation)
                worker.cancel()

    def _start_async_decode(self, generation: int, sources: Sequence[SourceRef]) -> None:
        worker = DecodeWorker(generation, sources)
        thread = QThread(self)
        worker.moveToThread(thread)
        worker.finished.connect(self._handle_worker_finished)
        worker.failed.connect(self._handle_worker_failed)
        worker.finished.connect(thread.quit)
        worker.failed.connect(thread.quit)
        thread.finished.connect(partial(self._release_worker, generation))
        thread.finished.connect(thread.deleteLater)
        thread.started.connect(worker.run)
        self._workers[generation] = (worker, thread)
        thread.start()

    @pyqtSlot(int, object)
    def _handle_worker_finished(self, generation: int, images: object) -> None:
        if generation != self._generation:
            logger.debug("Discarding stale decode pass %s", generation)
            return
        self._apply_decoded(generation, list(images))  # type: ignore[arg-type]

    @pyqtSlot(int, str)
    def _handle_worker_failed(self, generation: int, message: str) -> None:
        if generation != self._generation:
            logger.debug("Ignoring failure from stale decode pass %s: %s", generation, message)
            return
        logger.error("Decode pass %s failed: %s", generation, message)
        self._active_generation = None
        self.decodeFinished.emit(generation)

    def _release_worker(self, generation: int) -> None:
        self._workers.pop(generation, None)

    def _apply_decoded(self, generation: int, images: List[DecodedImage]) -> None:
        skipped = len(self._selection) - len(images)
        logger.info(
            "Decode pass %s produced %d image%s (%d skipped)",
            generation,
            len(images),
            "" if len(images) == 1 else "s",
            skipped,
        )
        self._images = list(images)
        self._active_generation = None
        self.imagesChanged.emit()
        self.decodeFinished.emit(generation)
