"""Compositing of decoded images onto grid surfaces.

The placement math (:func:`compute_placement`, :func:`tile_positions`) is
pure and returns plain rectangles so it can be tested without painting.
The drawing helpers take a ``QPainter`` that is already active on the
destination surface.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from PySide6.QtCore import QPointF, QRect, QRectF, Qt
from PySide6.QtGui import QColor, QImage, QPainter, QPen

from . import config
from .decoder import DecodedImage
from .grid import CellGeometry, FitMode, GridModel


@dataclass(frozen=True, slots=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    def to_qrectf(self) -> QRectF:
        return QRectF(self.x, self.y, self.width, self.height)


@dataclass(frozen=True, slots=True)
class Placement:
    """Source sub-rectangle of the image and where it lands on the surface."""

    source: Rect
    dest: Rect


def compute_placement(
    image_width: int, image_height: int, geometry: CellGeometry, fit_mode: FitMode
) -> Placement:
    """
    Compute the source and destination rectangles for one fit mode.

    Args:
        image_width: Source image width in pixels
        image_height: Source image height in pixels
        geometry: Destination cell rectangle
        fit_mode: ``contain``, ``cover`` or ``stretch``

    Returns:
        Placement: Rectangles to pass to a single draw call

    Raises:
        ValueError: For ``tile`` (see :func:`tile_positions`) or empty images
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError("Image dimensions must be positive")
    fit_mode = FitMode(fit_mode)
    x, y, width, height = geometry.x, geometry.y, geometry.width, geometry.height
    source = Rect(0.0, 0.0, float(image_width), float(image_height))

    if fit_mode is FitMode.CONTAIN:
        scale = min(width / image_width, height / image_height)
        drawn_w = image_width * scale
        drawn_h = image_height * scale
        dest = Rect(x + (width - drawn_w) / 2, y + (height - drawn_h) / 2, drawn_w, drawn_h)
        return Placement(source, dest)

    if fit_mode is FitMode.COVER:
        scale = max(width / image_width, height / image_height)
        src_x, src_y = 0.0, 0.0
        src_w, src_h = float(image_width), float(image_height)
        # Crop whichever axis overflows the cell once scaled.
        if image_width * scale > width:
            src_w = width / scale
            src_x = (image_width - src_w) / 2
        if image_height * scale > height:
            src_h = height / scale
            src_y = (image_height - src_h) / 2
        return Placement(Rect(src_x, src_y, src_w, src_h), Rect(x, y, width, height))

    if fit_mode is FitMode.STRETCH:
        return Placement(source, Rect(x, y, width, height))

    raise ValueError("Tile mode has no single placement; use tile_positions()")


def tile_positions(image_width: int, image_height: int, geometry: CellGeometry) -> List[Tuple[int, int]]:
    """Return the top-left corners of native-size tiles covering *geometry*.

    Tiles run left-to-right, top-to-bottom from the cell origin; the last
    column and row may extend past the cell and are clipped when drawn.
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError("Image dimensions must be positive")
    tiles_x = math.ceil(geometry.width / image_width)
    tiles_y = math.ceil(geometry.height / image_height)
    return [
        (geometry.x + tx * image_width, geometry.y + ty * image_height)
        for ty in range(tiles_y)
        for tx in range(tiles_x)
    ]


def _geometry_qrect(geometry: CellGeometry) -> QRect:
    return QRect(geometry.x, geometry.y, geometry.width, geometry.height)


def render_cell(
    painter: QPainter,
    image: Optional[DecodedImage],
    geometry: CellGeometry,
    fit_mode: FitMode,
) -> None:
    """Draw *image* into *geometry* on the painter's surface."""
    if image is None:
        return
    fit_mode = FitMode(fit_mode)

    if fit_mode is FitMode.TILE:
        painter.save()
        try:
            painter.setClipRect(_geometry_qrect(geometry))
            for tile_x, tile_y in tile_positions(image.width, image.height, geometry):
                painter.drawImage(QPointF(tile_x, tile_y), image.surface)
        finally:
            painter.restore()
        return

    placement = compute_placement(image.width, image.height, geometry, fit_mode)
    painter.drawImage(placement.dest.to_qrectf(), image.surface, placement.source.to_qrectf())


def render_grid_line(painter: QPainter, geometry: CellGeometry) -> None:
    """Outline *geometry* along its border pixels."""
    painter.save()
    try:
        painter.setRenderHint(QPainter.Antialiasing, False)
        pen = QPen(QColor(config.GRID_LINE_COLOR))
        pen.setWidth(config.GRID_LINE_WIDTH)
        painter.setPen(pen)
        painter.setBrush(Qt.NoBrush)
        painter.drawRect(QRect(geometry.x, geometry.y, geometry.width - 1, geometry.height - 1))
    finally:
        painter.restore()


def render(painter: QPainter, model: GridModel) -> None:
    """Draw every cell of *model* in index order onto the painter's surface.

    No background is painted; callers fill the surface first.
    """
    grid_config = model.config
    painter.setRenderHint(QPainter.SmoothPixmapTransform, True)
    for index, image in enumerate(model.cells):
        geometry = model.get_cell_geometry(index)
        render_cell(painter, image, geometry, grid_config.fit_mode)
        if grid_config.show_grid:
            render_grid_line(painter, geometry)


def new_surface(width: int, height: int) -> QImage:
    """Return an opaque surface filled with the background colour."""
    if width <= 0 or height <= 0:
        raise ValueError("Surface dimensions must be positive")
    surface = QImage(width, height, QImage.Format_RGB32)
    surface.fill(QColor(config.BACKGROUND_COLOR))
    return surface


def render_full(model: GridModel) -> QImage:
    """Render *model* onto a new surface sized to ``get_total_size()``."""
    width, height = model.get_total_size()
    surface = new_surface(width, height)
    painter = QPainter(surface)
    try:
        render(painter, model)
    finally:
        painter.end()
    return surface


def compose_pair(
    images: Sequence[DecodedImage], width: int, height: int, horizontal: bool = True
) -> QImage:
    """Place two images side by side, each stretched to ``width`` x ``height``.

    The surface is ``2*width`` x ``height`` when *horizontal*, otherwise
    ``width`` x ``2*height``.
    """
    if len(images) != 2:
        raise ValueError("compose_pair needs exactly two images")
    surface = new_surface(width * 2 if horizontal else width, height if horizontal else height * 2)
    painter = QPainter(surface)
    try:
        painter.setRenderHint(QPainter.SmoothPixmapTransform, True)
        for i, image in enumerate(images):
            x = i * width if horizontal else 0
            y = 0 if horizontal else i * height
            painter.drawImage(QRectF(x, y, width, height), image.surface)
    finally:
        painter.end()
    return surface


__all__ = [
    "Placement",
    "Rect",
    "compose_pair",
    "compute_placement",
    "new_surface",
    "render",
    "render_cell",
    "render_full",
    "render_grid_line",
    "tile_positions",
]
