"""Output formats and surface encoding."""

from __future__ import annotations

from enum import Enum

from PySide6.QtCore import QBuffer, QByteArray, QIODevice
from PySide6.QtGui import QImage

from . import config


class EncodeError(IOError):
    """Raised when Qt fails to encode a surface."""


class OutputFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @classmethod
    def parse(cls, value: "str | OutputFormat") -> "OutputFormat":
        """Return the format for *value*, accepting ``jpg`` and a leading dot."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().lstrip(".")
        if key == "jpg":
            key = "jpeg"
        try:
            return cls(key)
        except ValueError as exc:
            raise ValueError(f"Unsupported output format: {value!r}") from exc

    @property
    def extension(self) -> str:
        return "jpg" if self is OutputFormat.JPEG else self.value

    @property
    def qt_name(self) -> str:
        return self.value.upper()

    @property
    def lossy(self) -> bool:
        return self is not OutputFormat.PNG


def validate_quality(quality: int) -> int:
    if not config.QUALITY_MIN <= quality <= config.QUALITY_MAX:
        raise ValueError(
            f"Quality must be between {config.QUALITY_MIN} and {config.QUALITY_MAX}, got {quality}"
        )
    return int(quality)


def encode_image(
    image: QImage,
    fmt: "str | OutputFormat" = OutputFormat.PNG,
    quality: int = config.QUALITY_DEFAULT,
) -> bytes:
    """Encode *image* and return the file bytes.

    ``quality`` (0-100) applies to lossy formats only; PNG is always written
    with Qt's default compression.
    """
    fmt = OutputFormat.parse(fmt)
    quality = validate_quality(quality)
    if fmt is OutputFormat.JPEG and image.hasAlphaChannel():
        image = image.convertToFormat(QImage.Format_RGB32)

    buffer = QBuffer()
    buffer.open(QIODevice.WriteOnly)
    try:
        ok = image.save(buffer, fmt.qt_name, quality if fmt.lossy else -1)
        data: QByteArray = buffer.data()
    finally:
        buffer.close()
    if not ok or data.isEmpty():
        raise EncodeError(f"Failed to encode image as {fmt.qt_name}")
    return bytes(data.data())


__all__ = ["EncodeError", "OutputFormat", "encode_image", "validate_quality"]
