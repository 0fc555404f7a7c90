"""Grid image stitching and batch pair merging."""

from .batch import (
    BatchAlreadyRunningError,
    BatchMatch,
    BatchOptions,
    BatchProcessor,
    BatchResult,
    MergeMode,
    find_matches,
)
from .compositor import compute_placement, render_cell, render_full
from .decoder import DecodedImage, DecodeError, ImageDecoder
from .encoding import EncodeError, OutputFormat, encode_image
from .exporter import Exporter, export_filename
from .grid import CellGeometry, FitMode, GridConfig, GridModel, SizeMode
from .presenter import Notification, StitchPresenter

__version__ = "1.0.0"

__all__ = [
    "BatchAlreadyRunningError",
    "BatchMatch",
    "BatchOptions",
    "BatchProcessor",
    "BatchResult",
    "CellGeometry",
    "DecodeError",
    "DecodedImage",
    "EncodeError",
    "Exporter",
    "FitMode",
    "GridConfig",
    "GridModel",
    "ImageDecoder",
    "MergeMode",
    "Notification",
    "OutputFormat",
    "SizeMode",
    "StitchPresenter",
    "compute_placement",
    "encode_image",
    "export_filename",
    "find_matches",
    "render_cell",
    "render_full",
]
