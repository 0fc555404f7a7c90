"""Grid model for image stitching.

This module provides a pure-Python representation of the stitching grid:
its configuration, the row-major list of cell contents and the geometry
derived from both.  The class is UI agnostic so it can be unit tested
without a Qt environment; decoded images are only ever read for their
``width`` and ``height``.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from . import config
from .events import EventBus

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .decoder import DecodedImage


class FitMode(str, Enum):
    """How a source image is mapped onto a cell rectangle."""

    CONTAIN = "contain"
    COVER = "cover"
    STRETCH = "stretch"
    TILE = "tile"


class SizeMode(str, Enum):
    """Whether cell dimensions are fixed or derived from loaded images."""

    FIXED = "fixed"
    AUTO = "auto"


class GridEvent(Enum):
    CHANGED = "change"


@dataclass(frozen=True, slots=True)
class GridChange:
    """Payload delivered with :attr:`GridEvent.CHANGED`."""

    reason: str  # "config", "reshape", "cell", "clear" or "clear_all"
    index: Optional[int] = None


@dataclass(frozen=True, slots=True)
class GridConfig:
    """Grid configuration.  Instances are immutable; use ``replace``."""

    rows: int = config.DEFAULT_ROWS
    cols: int = config.DEFAULT_COLUMNS
    cell_width: int = config.DEFAULT_CELL_SIZE
    cell_height: int = config.DEFAULT_CELL_SIZE
    gap: int = config.DEFAULT_GAP
    show_grid: bool = False
    fit_mode: FitMode = FitMode(config.DEFAULT_FIT_MODE)
    size_mode: SizeMode = SizeMode(config.DEFAULT_SIZE_MODE)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "fit_mode", FitMode(self.fit_mode))
            object.__setattr__(self, "size_mode", SizeMode(self.size_mode))
        except ValueError as exc:
            raise ValueError(f"Invalid grid setting: {exc}") from exc
        object.__setattr__(self, "show_grid", bool(self.show_grid))
        self._validate()

    def _validate(self) -> None:
        """
        Validate field values.

        Raises:
            ValueError: If any dimension is not an integer or is out of bounds
        """
        for name in ("rows", "cols", "cell_width", "cell_height", "gap"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if self.rows < 1 or self.cols < 1:
            raise ValueError("Grid must have positive dimensions")
        if self.cell_width <= 0 or self.cell_height <= 0:
            raise ValueError("Cell size must be positive")
        if self.gap < 0:
            raise ValueError("Gap must not be negative")

    @property
    def cell_count(self) -> int:
        return self.rows * self.cols


_CONFIG_FIELDS = frozenset(f.name for f in fields(GridConfig))


def _check_fields(changes: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(changes) - _CONFIG_FIELDS
    if unknown:
        raise ValueError(f"Unknown grid settings: {', '.join(sorted(unknown))}")
    return changes


@dataclass(frozen=True, slots=True)
class CellGeometry:
    """Position and size of a cell in output pixels."""

    x: int
    y: int
    width: int
    height: int

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height


def parse_preset(name: str) -> Tuple[int, int]:
    """Return ``(rows, cols)`` for a preset name such as ``"2x3"``."""
    parts = name.strip().lower().split("x")
    if len(parts) != 2:
        raise ValueError(f"Invalid layout preset: {name!r}")
    try:
        rows, cols = int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise ValueError(f"Invalid layout preset: {name!r}") from exc
    if rows < 1 or cols < 1:
        raise ValueError(f"Invalid layout preset: {name!r}")
    return rows, cols


class GridModel:
    """Maintain grid configuration and cell contents."""

    def __init__(self, grid_config: Optional[GridConfig] = None, *, events: Optional[EventBus] = None):
        self._config = grid_config or GridConfig()
        self._cells: List[Optional["DecodedImage"]] = [None] * self._config.cell_count
        self.events = events or EventBus()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _emit(self, reason: str, index: Optional[int] = None) -> None:
        self.events.emit(GridEvent.CHANGED, GridChange(reason, index))

    def _in_range(self, index: int) -> bool:
        return 0 <= index < len(self._cells)

    def _update_auto_size(self) -> None:
        max_width = config.AUTO_SIZE_MIN_DIMENSION
        max_height = config.AUTO_SIZE_MIN_DIMENSION
        for image in self._cells:
            if image is not None:
                max_width = max(max_width, image.width)
                max_height = max(max_height, image.height)
        self._config = replace(self._config, cell_width=max_width, cell_height=max_height)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def config(self) -> GridConfig:
        return self._config

    @property
    def cells(self) -> List[Optional["DecodedImage"]]:
        return list(self._cells)

    @property
    def cell_count(self) -> int:
        return len(self._cells)

    def on(self, handler: Callable[[GridChange], None]) -> Callable[[], None]:
        """Subscribe *handler* to change notifications."""
        return self.events.subscribe(GridEvent.CHANGED, handler)

    def set_config(self, **changes: Any) -> GridConfig:
        """Merge *changes* into the configuration.

        A change of ``rows`` or ``cols`` reallocates the cell list with every
        slot empty; any other change leaves cell contents alone.  Invalid
        values raise ``ValueError`` before anything is modified.
        """
        previous = self._config
        updated = replace(previous, **_check_fields(changes))
        self._config = updated
        if updated.rows != previous.rows or updated.cols != previous.cols:
            self._cells = [None] * updated.cell_count
            self._emit("reshape")
        else:
            self._emit("config")
        return updated

    def apply_preset(self, name: str) -> GridConfig:
        rows, cols = parse_preset(name)
        return self.set_config(rows=rows, cols=cols)

    def get_cell(self, index: int) -> Optional["DecodedImage"]:
        if not self._in_range(index):
            return None
        return self._cells[index]

    def set_cell(self, index: int, image: Optional["DecodedImage"]) -> bool:
        """Place *image* into cell *index*.

        Out-of-range indices are ignored and ``False`` is returned.  In auto
        size mode the cell size grows to the largest populated image.
        """
        if not self._in_range(index):
            return False
        self._cells[index] = image
        if self._config.size_mode is SizeMode.AUTO:
            self._update_auto_size()
        self._emit("cell", index)
        return True

    def clear_cell(self, index: int) -> bool:
        if not self._in_range(index):
            return False
        self._cells[index] = None
        self._emit("clear", index)
        return True

    def clear_all(self) -> None:
        self._cells = [None] * len(self._cells)
        self._emit("clear_all")

    def populated_indices(self) -> List[int]:
        return [i for i, image in enumerate(self._cells) if image is not None]

    def get_total_size(self) -> Tuple[int, int]:
        """Return ``(width, height)`` of the composited output."""
        c = self._config
        width = c.cols * c.cell_width + (c.cols - 1) * c.gap
        height = c.rows * c.cell_height + (c.rows - 1) * c.gap
        return width, height

    def get_cell_geometry(self, index: int) -> CellGeometry:
        c = self._config
        row, col = divmod(index, c.cols)
        return CellGeometry(
            x=col * (c.cell_width + c.gap),
            y=row * (c.cell_height + c.gap),
            width=c.cell_width,
            height=c.cell_height,
        )

    def cell_at(self, x: float, y: float) -> Optional[int]:
        """Return the index of the cell containing ``(x, y)``.

        Points inside a gap or outside the canvas yield ``None``.
        """
        c = self._config
        if x < 0 or y < 0:
            return None
        col = int(x // (c.cell_width + c.gap))
        row = int(y // (c.cell_height + c.gap))
        if col >= c.cols or row >= c.rows:
            return None
        index = row * c.cols + col
        if not self.get_cell_geometry(index).contains(x, y):
            return None
        return index


__all__ = [
    "CellGeometry",
    "FitMode",
    "GridChange",
    "GridConfig",
    "GridEvent",
    "GridModel",
    "SizeMode",
    "parse_preset",
]
