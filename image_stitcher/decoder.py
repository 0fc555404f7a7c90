"""Concurrency-limited image decoding.

:class:`ImageDecoder` keeps a FIFO queue of pending requests and admits at
most ``max_concurrent`` of them to a worker pool at a time.  Each request is
represented by a :class:`concurrent.futures.Future` that resolves exactly
once, either with a :class:`DecodedImage` or with a :class:`DecodeError`.
A failed decode never affects other queued requests and is not retried.
"""

from __future__ import annotations

import logging
import os
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Deque, Iterable, List, Optional, Union

from PySide6.QtCore import QBuffer, QByteArray, QIODevice
from PySide6.QtGui import QImage, QImageReader

from utils.validation import validate_image_path

from . import config

LOGGER = logging.getLogger(__name__)

ImageSource = Union[str, os.PathLike, bytes]


class DecodeError(RuntimeError):
    """Raised when a source cannot be decoded into an image."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"Failed to load image {source}: {message}")
        self.source = source
        self.message = message


@dataclass(frozen=True, slots=True, eq=False)
class DecodedImage:
    """Decoded image ready for compositing.

    Attributes:
        width (int): Pixel width
        height (int): Pixel height
        surface (QImage): Drawable pixel data
        source (str): Identity of the originating source
    """
    width: int
    height: int
    surface: QImage
    source: str


@dataclass(frozen=True, slots=True)
class DecodeResult:
    """Outcome of one source in :meth:`ImageDecoder.load_many`."""

    source: str
    image: Optional[DecodedImage] = None
    error: Optional[DecodeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def describe_source(source: ImageSource) -> str:
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    return os.fspath(source)


def decode_source(source: ImageSource) -> DecodedImage:
    """Decode *source* synchronously with ``QImageReader``.

    Paths are validated first; raw bytes are read through an in-memory
    buffer.  EXIF orientation is applied.
    """
    identity = describe_source(source)
    buffer: Optional[QBuffer] = None
    if isinstance(source, (bytes, bytearray)):
        buffer = QBuffer()
        buffer.setData(QByteArray(bytes(source)))
        buffer.open(QIODevice.ReadOnly)
        reader = QImageReader(buffer)
    else:
        allowed = {f".{ext}" for ext in config.SUPPORTED_IMAGE_FORMATS}
        try:
            path = validate_image_path(source, allowed)
        except ValueError as exc:
            raise DecodeError(identity, str(exc)) from exc
        reader = QImageReader(str(path))

    try:
        reader.setAutoTransform(True)
        image = reader.read()
        if image.isNull():
            raise DecodeError(identity, reader.errorString() or "unsupported or corrupt image")
    finally:
        if buffer is not None:
            buffer.close()

    return DecodedImage(width=image.width(), height=image.height(), surface=image, source=identity)


@dataclass(slots=True)
class _DecodeRequest:
    source: ImageSource
    future: Future


class ImageDecoder:
    """Decode images off the caller's thread with bounded concurrency."""

    def __init__(
        self,
        max_concurrent: int = config.MAX_CONCURRENT_DECODES,
        decode: Optional[Callable[[ImageSource], DecodedImage]] = None,
    ):
        if max_concurrent <= 0:
            raise ValueError("max_concurrent must be greater than zero")
        self.max_concurrent = max_concurrent
        self._decode = decode or decode_source
        self._pending: Deque[_DecodeRequest] = deque()
        self._in_flight = 0
        self._closed = False
        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrent, thread_name_prefix="image-decoder"
        )

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------
    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def _admit(self) -> None:
        with self._lock:
            while self._in_flight < self.max_concurrent and self._pending:
                request = self._pending.popleft()
                if not request.future.set_running_or_notify_cancel():
                    continue
                self._in_flight += 1
                self._executor.submit(self._run, request)

    def _release(self) -> None:
        with self._lock:
            self._in_flight -= 1
            self._admit()
            if not self._in_flight and not self._pending:
                self._idle.notify_all()

    def _run(self, request: _DecodeRequest) -> None:
        image: Optional[DecodedImage] = None
        error: Optional[DecodeError] = None
        try:
            image = self._decode(request.source)
        except DecodeError as exc:
            error = exc
        except Exception as exc:  # noqa: BLE001 - reported through the future
            error = DecodeError(describe_source(request.source), str(exc))
            error.__cause__ = exc
        # Free the slot before resolving so waiters observe the next admission.
        self._release()
        if error is not None:
            LOGGER.warning("%s", error)
            request.future.set_exception(error)
        else:
            request.future.set_result(image)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def load_image(self, source: ImageSource) -> Future:
        """Queue *source* for decoding and return its future."""
        future: Future = Future()
        with self._lock:
            if self._closed:
                raise RuntimeError("Decoder has been shut down")
            self._pending.append(_DecodeRequest(source, future))
            self._admit()
        return future

    def submit_many(self, sources: Iterable[ImageSource]) -> List[Future]:
        return [self.load_image(source) for source in sources]

    def load_many(self, sources: Iterable[ImageSource]) -> List[DecodeResult]:
        """
        Decode several sources, waiting for each individually.

        Args:
            sources: Paths or raw bytes to decode

        Returns:
            List[DecodeResult]: One result per source, in input order
        """
        sources = list(sources)
        futures = self.submit_many(sources)
        results: List[DecodeResult] = []
        for source, future in zip(sources, futures):
            identity = describe_source(source)
            try:
                results.append(DecodeResult(identity, image=future.result()))
            except DecodeError as exc:
                results.append(DecodeResult(identity, error=exc))
        return results

    def wait_for_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no request is pending or in flight."""
        with self._idle:
            return self._idle.wait_for(
                lambda: not self._in_flight and not self._pending, timeout
            )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting requests.

        With ``wait`` the queue is drained first; otherwise requests still
        pending fail with :class:`DecodeError`.
        """
        with self._lock:
            self._closed = True
            abandoned: List[_DecodeRequest] = []
            if not wait:
                abandoned = list(self._pending)
                self._pending.clear()
        for request in abandoned:
            if request.future.set_running_or_notify_cancel():
                request.future.set_exception(
                    DecodeError(describe_source(request.source), "decoder shut down")
                )
        if wait:
            self.wait_for_idle()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ImageDecoder":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()


__all__ = [
    "DecodeError",
    "DecodeResult",
    "DecodedImage",
    "ImageDecoder",
    "ImageSource",
    "decode_source",
    "describe_source",
]
