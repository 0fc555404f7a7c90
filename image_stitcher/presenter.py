"""
StitchPresenter: coordinates the grid model, decoder, exporter and batch
processor, and turns caught errors into operator notifications.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from PySide6.QtGui import QImage

from . import config
from .batch import BatchAlreadyRunningError, BatchOptions, BatchProcessor, BatchResult, FileRef, ProgressCallback
from .compositor import render_full
from .decoder import DecodeError, ImageDecoder, ImageSource
from .encoding import OutputFormat
from .exporter import Exporter
from .grid import GridChange, GridModel
from .logging_config import configure_logging


@dataclass(frozen=True, slots=True)
class Notification:
    level: str  # "info", "warning" or "error"
    title: str
    message: str


Notifier = Callable[[Notification], None]


class StitchPresenter:
    def __init__(
        self,
        model: Optional[GridModel] = None,
        decoder: Optional[ImageDecoder] = None,
        exporter: Optional[Exporter] = None,
        batch: Optional[BatchProcessor] = None,
        notify: Optional[Notifier] = None,
    ):
        configure_logging()
        self.logger = logging.getLogger("image_stitcher.presenter")
        self.model = model or GridModel()
        self.decoder = decoder or ImageDecoder()
        self.exporter = exporter or Exporter()
        self.batch = batch or BatchProcessor(self.decoder)
        self._notify = notify or self._log_notification
        self.preview: QImage = render_full(self.model)
        self.model.on(self._on_model_changed)

    def _log_notification(self, note: Notification) -> None:
        level = {"info": logging.INFO, "warning": logging.WARNING}.get(note.level, logging.ERROR)
        self.logger.log(level, "%s: %s", note.title, note.message)

    def _on_model_changed(self, change: GridChange) -> None:
        self.preview = render_full(self.model)

    def notify(self, level: str, title: str, message: str) -> None:
        self._notify(Notification(level, title, message))

    # ------------------------------------------------------------------
    # Grid
    # ------------------------------------------------------------------
    def load_image_to_cell(self, source: ImageSource, index: int) -> bool:
        """Decode *source* and place it into cell *index*."""
        try:
            image = self.decoder.load_image(source).result()
        except DecodeError as exc:
            self.notify("error", "Load failed", str(exc))
            return False
        return self.model.set_cell(index, image)

    def load_images(self, sources: Sequence[ImageSource], start_index: int = 0) -> int:
        """Fill consecutive cells from *start_index*; failed sources are skipped.

        Returns the number of cells populated.
        """
        capacity = max(self.model.cell_count - start_index, 0)
        index = start_index
        loaded = 0
        for result in self.decoder.load_many(list(sources)[:capacity]):
            if not result.ok:
                self.notify("error", "Load failed", str(result.error))
                continue
            if self.model.set_cell(index, result.image):
                loaded += 1
            index += 1
        return loaded

    def apply_preset(self, name: str) -> bool:
        try:
            self.model.apply_preset(name)
        except ValueError as exc:
            self.notify("warning", "Invalid layout", str(exc))
            return False
        return True

    def set_cell_size(self, width: int, height: int) -> None:
        """Set a fixed cell size, clamped to the supported range."""
        self.model.set_config(
            cell_width=max(config.MIN_CELL_SIZE, min(config.MAX_CELL_SIZE, int(width))),
            cell_height=max(config.MIN_CELL_SIZE, min(config.MAX_CELL_SIZE, int(height))),
        )

    def clear_all(self) -> None:
        self.model.clear_all()

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def export_image(
        self,
        output_dir: Union[str, Path],
        fmt: "str | OutputFormat" = OutputFormat.PNG,
        quality: int = config.QUALITY_DEFAULT,
    ) -> Optional[Path]:
        try:
            path = self.exporter.export(self.model, output_dir, fmt, quality)
        except Exception as exc:  # noqa: BLE001 - surfaced to the operator
            self.logger.error("Export failed: %s", exc)
            self.notify("error", "Export failed", str(exc))
            return None
        self.notify("info", "Saved", f"Saved: {path}")
        return path

    def process_batch(
        self,
        files: Sequence[FileRef],
        options: BatchOptions,
        progress: Optional[ProgressCallback] = None,
    ) -> Optional[List[BatchResult]]:
        if not files:
            self.notify("warning", "Batch", "No files selected")
            return None
        try:
            results = self.batch.process(files, options, progress)
        except BatchAlreadyRunningError as exc:
            self.notify("error", "Batch rejected", str(exc))
            return None
        except Exception as exc:  # noqa: BLE001 - surfaced to the operator
            self.logger.error("Batch failed: %s", exc)
            self.notify("error", "Batch failed", str(exc))
            return None

        for result in results:
            if not result.success:
                self.notify("error", "Batch item failed", f"{result.name}: {result.error}")
        ok = sum(1 for r in results if r.success)
        self.notify("info", "Batch", f"Merged {ok} of {len(results)} pairs")
        return results


__all__ = ["Notification", "Notifier", "StitchPresenter"]
