import pytest

from utils.validation import (
    has_allowed_extension,
    validate_image_path,
    validate_output_dir,
    validate_output_path,
)
from image_stitcher import config
from image_stitcher.decoder import DecodeError, decode_source


def test_validate_image_path_rejects_urls(tmp_path):
    with pytest.raises(ValueError):
        validate_image_path("http://example.com/a.png", config.SUPPORTED_IMAGE_FORMATS)


def test_validate_image_path_rejects_bad_extension(tmp_path):
    f = tmp_path / "evil.txt"
    f.write_text("not an image")
    with pytest.raises(ValueError):
        validate_image_path(f, config.SUPPORTED_IMAGE_FORMATS)


def test_validate_image_path_rejects_directories(tmp_path):
    folder = tmp_path / "album.png"
    folder.mkdir()
    with pytest.raises(ValueError):
        validate_image_path(folder, config.SUPPORTED_IMAGE_FORMATS)


def test_validate_image_path_accepts_existing_image(make_image):
    path = make_image("ok.PNG")
    assert validate_image_path(path, {"png"}) == path.resolve()


def test_has_allowed_extension_accepts_either_spelling():
    assert has_allowed_extension("a.JPG", {".jpg"})
    assert has_allowed_extension("a.jpg", ["jpg"])
    assert not has_allowed_extension("a.jpg.txt", ["jpg"])


def test_validate_output_path_checks_directory(tmp_path):
    bad_dir = tmp_path / "missing" / "out.png"
    with pytest.raises(ValueError):
        validate_output_path(bad_dir, {".png"})


def test_validate_output_dir_creates_only_when_asked(tmp_path):
    target = tmp_path / "a" / "b"
    with pytest.raises(ValueError):
        validate_output_dir(target)
    assert validate_output_dir(target, create=True) == target.resolve()
    assert target.is_dir()


def test_validate_output_dir_rejects_urls():
    with pytest.raises(ValueError):
        validate_output_dir("ftp://example.com/out", create=True)


def test_decode_invalid_input(tmp_path):
    f = tmp_path / "bad.txt"
    f.write_text("data")
    with pytest.raises(DecodeError):
        decode_source(f)


def test_supported_formats_cover_common_types():
    assert {"png", "jpg", "jpeg", "webp"} <= {fmt.lower() for fmt in config.SUPPORTED_IMAGE_FORMATS}
