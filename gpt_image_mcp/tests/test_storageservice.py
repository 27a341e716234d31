"""Tests for :mod:`gpt_image_mcp.storageservice.storageservice`."""

from __future__ import annotations

import base64
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from gpt_image_mcp.storageservice import storageservice as storage_module
from gpt_image_mcp.storageservice.storageservice import (
    ImageSaveError,
    ImageStorageService,
    get_image_storage_service,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDRfake-image-body"
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.fixture
def storage(tmp_path) -> ImageStorageService:
    return ImageStorageService(tmp_path / "images")


def test_save_creates_directory_and_writes_decoded_bytes(storage: ImageStorageService, tmp_path) -> None:
    assert not (tmp_path / "images").exists()

    path = storage.save_base64_image(PNG_B64, "fox.png")

    assert Path(path) == tmp_path / "images" / "fox.png"
    assert Path(path).read_bytes() == PNG_BYTES


def test_saving_same_payload_twice_yields_two_identical_files(storage: ImageStorageService) -> None:
    first = storage.save_base64_image(PNG_B64, "fox_1.png")
    second = storage.save_base64_image(PNG_B64, "fox_2.png")

    assert first != second
    assert Path(first).read_bytes() == Path(second).read_bytes() == PNG_BYTES


def test_existing_directory_is_reused(storage: ImageStorageService, tmp_path) -> None:
    (tmp_path / "images").mkdir()
    (tmp_path / "images" / "keep.txt").write_text("untouched")

    storage.save_base64_image(PNG_B64, "fox.png")

    assert (tmp_path / "images" / "keep.txt").read_text() == "untouched"


def test_relative_directory_resolves_against_working_directory(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    storage = ImageStorageService("images")

    path = storage.save_base64_image(PNG_B64, "fox.png")

    assert Path(path) == tmp_path / "images" / "fox.png"
    assert storage.images_dir_name == "images"


def test_invalid_base64_raises_save_error(storage: ImageStorageService) -> None:
    with pytest.raises(ImageSaveError, match="^Failed to save image: "):
        storage.save_base64_image("this is not base64!!", "broken.png")


def test_existing_file_is_not_overwritten(storage: ImageStorageService, tmp_path) -> None:
    storage.save_base64_image(PNG_B64, "fox.png")

    with pytest.raises(ImageSaveError):
        storage.save_base64_image(base64.b64encode(b"other").decode(), "fox.png")

    assert (tmp_path / "images" / "fox.png").read_bytes() == PNG_BYTES


def test_directory_creation_failure_raises_save_error(tmp_path) -> None:
    blocker = tmp_path / "images"
    blocker.write_text("a file where the directory should be")
    storage = ImageStorageService(blocker)

    with pytest.raises(ImageSaveError, match="Failed to save image"):
        storage.save_base64_image(PNG_B64, "fox.png")


def test_get_image_storage_service_returns_singleton(monkeypatch) -> None:
    monkeypatch.setattr(storage_module, "_SERVICE", None)

    first = get_image_storage_service("images")
    second = get_image_storage_service("elsewhere")

    assert first is second
    assert first.images_dir_name == "images"


def test_line_wrapped_base64_is_decoded(storage: ImageStorageService) -> None:
    wrapped = base64.encodebytes(PNG_BYTES * 20).decode("ascii")
    assert "\n" in wrapped

    path = storage.save_base64_image(wrapped, "wrapped.png")

    assert Path(path).read_bytes() == PNG_BYTES * 20


def test_invalid_base64_does_not_create_directory(storage: ImageStorageService, tmp_path) -> None:
    with pytest.raises(ImageSaveError):
        storage.save_base64_image("%%% not base64 %%%", "broken.png")

    assert not (tmp_path / "images").exists()


def test_non_text_payload_raises_save_error(storage: ImageStorageService) -> None:
    with pytest.raises(ImageSaveError, match="expected base64 text"):
        storage.save_base64_image(None, "none.png")  # type: ignore[arg-type]


class _FailingWriter:
    """File handle that writes a few bytes and then reports a full disk."""

    def __init__(self, fh) -> None:
        self._fh = fh

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._fh.close()
        return False

    def write(self, data: bytes) -> int:
        self._fh.write(data[:10])
        self._fh.flush()
        raise OSError(28, "No space left on device")


def test_failed_write_leaves_no_partial_file(storage: ImageStorageService, tmp_path, monkeypatch) -> None:
    real_open = open
    monkeypatch.setattr(
        storage_module,
        "open",
        lambda path, mode: _FailingWriter(real_open(path, mode)),
        raising=False,
    )

    with pytest.raises(ImageSaveError, match="No space left on device"):
        storage.save_base64_image(PNG_B64, "fox.png")

    assert list((tmp_path / "images").iterdir()) == []
