from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from scan_ocr_automation.domain.errors import LocalWriteError, StorageWriteError
from scan_ocr_automation.storage.local import LocalImageStore


def test_save_writes_jpeg_with_unique_names(tmp_path: Path) -> None:
    store = LocalImageStore(str(tmp_path / "cache"))
    img = Image.new("RGB", (20, 10), "red")

    first = store.save(img)
    second = store.save(img)

    assert first != second
    assert first.parent == tmp_path / "cache"
    assert first.name.startswith("image") and first.suffix == ".jpg"
    with Image.open(first) as reopened:
        assert reopened.format == "JPEG"
        assert reopened.size == (20, 10)


def test_save_converts_alpha_images(tmp_path: Path) -> None:
    store = LocalImageStore(str(tmp_path))
    path = store.save(Image.new("RGBA", (8, 8), (0, 0, 255, 128)))
    with Image.open(path) as reopened:
        assert reopened.mode == "RGB"


def test_save_accepts_image_path(tmp_path: Path) -> None:
    source = tmp_path / "scan.png"
    Image.new("L", (12, 12), 200).save(source)
    path = LocalImageStore(str(tmp_path / "cache")).save(source)
    assert path.suffix == ".jpg"


def test_unreadable_capture_raises_and_leaves_no_file(tmp_path: Path) -> None:
    bogus = tmp_path / "not-an-image.png"
    bogus.write_text("definitely not pixels", encoding="utf-8")
    cache = tmp_path / "cache"
    store = LocalImageStore(str(cache))

    with pytest.raises(LocalWriteError):
        store.save(bogus)
    assert list(cache.iterdir()) == []


def test_storage_write_error_is_the_same_type() -> None:
    assert StorageWriteError is LocalWriteError


def test_decompression_bomb_maps_to_local_write_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = tmp_path / "huge.png"
    Image.new("RGB", (100, 100), "white").save(source)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    cache = tmp_path / "cache"

    with pytest.raises(LocalWriteError):
        LocalImageStore(str(cache)).save(source)
    assert list(cache.iterdir()) == []
