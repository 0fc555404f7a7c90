import threading
import time
from concurrent.futures import wait

import pytest
from PySide6.QtCore import QBuffer, QIODevice
from PySide6.QtGui import QColor, QImage

from image_stitcher.decoder import DecodedImage, DecodeError, ImageDecoder, decode_source

TIMEOUT = 5


def _png_bytes(width=6, height=4, color="blue") -> bytes:
    image = QImage(width, height, QImage.Format_RGB32)
    image.fill(QColor(color))
    buffer = QBuffer()
    buffer.open(QIODevice.WriteOnly)
    image.save(buffer, "PNG")
    data = bytes(buffer.data())
    buffer.close()
    return data


class BlockingDecode:
    """Stub decode that parks every call until released and tracks concurrency."""

    def __init__(self):
        self.release = threading.Event()
        self.lock = threading.Lock()
        self.active = 0
        self.peak = 0
        self.started = []

    def __call__(self, source):
        with self.lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
            self.started.append(source)
        try:
            self.release.wait(TIMEOUT)
            if str(source).startswith("bad"):
                raise OSError(f"cannot read {source}")
            return DecodedImage(width=1, height=1, surface=QImage(), source=str(source))
        finally:
            with self.lock:
                self.active -= 1


def _wait_until(predicate, timeout=TIMEOUT):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_decode_source_reads_file(make_image):
    path = make_image("photo.png", size=(12, 7), color="green")
    image = decode_source(path)
    assert (image.width, image.height) == (12, 7)
    assert image.surface.pixelColor(3, 3) == QColor("green")
    assert image.source == str(path)


def test_decode_source_reads_bytes():
    image = decode_source(_png_bytes(6, 4))
    assert (image.width, image.height) == (6, 4)
    assert image.source == "<{} bytes>".format(len(_png_bytes(6, 4)))


@pytest.mark.parametrize("kind", ["corrupt", "missing", "wrong_ext"])
def test_decode_source_failures(kind, tmp_path, corrupt_image):
    if kind == "corrupt":
        source = corrupt_image("broken.png")
    elif kind == "missing":
        source = tmp_path / "nope.png"
    else:
        source = tmp_path / "notes.txt"
        source.write_text("hello")
    with pytest.raises(DecodeError) as info:
        decode_source(source)
    assert str(source) in str(info.value)


def test_decode_source_rejects_garbage_bytes():
    with pytest.raises(DecodeError):
        decode_source(b"\x00\x01garbage")


def test_decoder_resolves_real_files(make_image):
    with ImageDecoder() as decoder:
        future = decoder.load_image(make_image("a.png", size=(3, 5)))
        image = future.result(TIMEOUT)
    assert (image.width, image.height) == (3, 5)


def test_at_most_three_decodes_run_at_once():
    stub = BlockingDecode()
    decoder = ImageDecoder(decode=stub)
    try:
        futures = decoder.submit_many(f"img{i}" for i in range(10))
        assert _wait_until(lambda: len(stub.started) == 3)
        assert decoder.in_flight == 3
        assert decoder.pending == 7
        assert not any(f.done() for f in futures)

        stub.release.set()
        done, not_done = wait(futures, timeout=TIMEOUT)
        assert not not_done
        assert stub.peak <= 3
        assert [f.result().source for f in futures] == [f"img{i}" for i in range(10)]
        assert decoder.wait_for_idle(TIMEOUT)
        assert decoder.in_flight == 0 and decoder.pending == 0
    finally:
        stub.release.set()
        decoder.shutdown()


def test_requests_are_admitted_in_fifo_order():
    order = []

    def record(source):
        order.append(source)
        return DecodedImage(width=1, height=1, surface=QImage(), source=source)

    with ImageDecoder(max_concurrent=1, decode=record) as decoder:
        futures = decoder.submit_many(["first", "second", "third", "fourth"])
        wait(futures, timeout=TIMEOUT)
    assert order == ["first", "second", "third", "fourth"]


def test_failures_are_isolated_and_wrapped():
    stub = BlockingDecode()
    stub.release.set()
    with ImageDecoder(decode=stub) as decoder:
        futures = decoder.submit_many(["ok1", "bad1", "ok2", "bad2", "ok3"])
        wait(futures, timeout=TIMEOUT)

    assert futures[0].result().source == "ok1"
    assert futures[2].result().source == "ok2"
    error = futures[1].exception()
    assert isinstance(error, DecodeError)
    assert error.source == "bad1"
    assert isinstance(error.__cause__, OSError)
    assert "Failed to load image bad1" in str(error)


def test_each_future_completes_exactly_once():
    stub = BlockingDecode()
    stub.release.set()
    calls = []
    with ImageDecoder(decode=stub) as decoder:
        futures = decoder.submit_many(["a", "bad", "b", "c"])
        for f in futures:
            f.add_done_callback(calls.append)
        wait(futures, timeout=TIMEOUT)
    assert _wait_until(lambda: len(calls) == 4)
    assert sorted(map(id, calls)) == sorted(map(id, futures))


def test_load_many_keeps_input_order(make_image, corrupt_image):
    good = make_image("good.png", size=(4, 4))
    bad = corrupt_image("bad.png")
    other = make_image("other.png", size=(2, 9))

    with ImageDecoder() as decoder:
        results = decoder.load_many([good, bad, other])

    assert [r.ok for r in results] == [True, False, True]
    assert results[0].image.width == 4
    assert results[2].image.height == 9
    assert isinstance(results[1].error, DecodeError)
    assert results[1].source == str(bad)


def test_cancelled_request_is_skipped():
    stub = BlockingDecode()
    decoder = ImageDecoder(max_concurrent=1, decode=stub)
    try:
        first = decoder.load_image("first")
        second = decoder.load_image("second")
        third = decoder.load_image("third")
        assert second.cancel()
        stub.release.set()
        assert first.result(TIMEOUT).source == "first"
        assert third.result(TIMEOUT).source == "third"
        assert "second" not in stub.started
    finally:
        stub.release.set()
        decoder.shutdown()


def test_shutdown_rejects_new_requests():
    decoder = ImageDecoder(decode=BlockingDecode())
    decoder.shutdown()
    with pytest.raises(RuntimeError):
        decoder.load_image("late")


def test_shutdown_without_wait_fails_pending_requests():
    stub = BlockingDecode()
    decoder = ImageDecoder(max_concurrent=1, decode=stub)
    running = decoder.load_image("running")
    queued = decoder.load_image("queued")
    assert _wait_until(lambda: stub.started == ["running"])

    decoder.shutdown(wait=False)
    assert isinstance(queued.exception(TIMEOUT), DecodeError)

    stub.release.set()
    assert running.result(TIMEOUT).source == "running"


def test_max_concurrent_must_be_positive():
    with pytest.raises(ValueError):
        ImageDecoder(max_concurrent=0)
