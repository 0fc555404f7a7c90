import os
from pathlib import Path
from typing import Callable, Tuple

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PIL import Image  # noqa: E402
from PySide6.QtGui import QColor, QGuiApplication, QImage  # noqa: E402

from image_stitcher.decoder import DecodedImage  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def qt_app() -> QGuiApplication:
    app = QGuiApplication.instance()
    if app is None:
        app = QGuiApplication([])
    return app


def solid_decoded(width: int, height: int, color: str = "red", source: str = "memory") -> DecodedImage:
    """Build a DecodedImage filled with a single colour."""
    surface = QImage(width, height, QImage.Format_RGB32)
    surface.fill(QColor(color))
    return DecodedImage(width=width, height=height, surface=surface, source=source)


def split_decoded(width: int, height: int, left: str, right: str) -> DecodedImage:
    """Build a DecodedImage whose left and right halves differ in colour."""
    surface = QImage(width, height, QImage.Format_RGB32)
    surface.fill(QColor(right))
    left_color = QColor(left)
    for x in range(width // 2):
        for y in range(height):
            surface.setPixelColor(x, y, left_color)
    return DecodedImage(width=width, height=height, surface=surface, source="split")


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[..., Path]:
    """Write a solid-colour image file with Pillow and return its path."""

    def _make(name: str, size: Tuple[int, int] = (10, 10), color: str = "red") -> Path:
        path = tmp_path / name
        Image.new("RGB", size, color=color).save(path)
        return path

    return _make


@pytest.fixture
def corrupt_image(tmp_path: Path) -> Callable[[str], Path]:
    def _make(name: str) -> Path:
        path = tmp_path / name
        path.write_bytes(b"definitely not an image")
        return path

    return _make


@pytest.fixture
def solid_image() -> Callable[..., DecodedImage]:
    return solid_decoded


@pytest.fixture
def split_image() -> Callable[..., DecodedImage]:
    return split_decoded
