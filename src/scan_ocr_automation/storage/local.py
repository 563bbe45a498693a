"""Persist captured images as JPEG files in the app-private cache."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..domain.errors import LocalWriteError
from ..domain.models import CapturedImage
from ..logging import get_logger
from ..paths import ensure_dir

LOG = get_logger("local-image-store")

JPEG_QUALITY = 100


class LocalImageStore:
    def __init__(self, cache_dir: str, *, prefix: str = "image") -> None:
        self.cache_dir = ensure_dir(cache_dir)
        self.prefix = prefix

    def _new_path(self) -> Path:
        fd, name = tempfile.mkstemp(prefix=self.prefix, suffix=".jpg", dir=self.cache_dir)
        os.close(fd)
        return Path(name)

    def save(self, image: CapturedImage) -> Path:
        """Write ``image`` as a maximum-quality JPEG and return its path.

        Any decode or I/O failure surfaces as LocalWriteError; a partially
        written file is removed.
        """
        try:
            target = self._new_path()
        except OSError as exc:
            raise LocalWriteError(f"Could not create capture file in {self.cache_dir}: {exc}") from exc

        try:
            if isinstance(image, Image.Image):
                self._write_jpeg(image, target)
            else:
                with Image.open(image) as opened:
                    self._write_jpeg(opened, target)
        except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as exc:
            target.unlink(missing_ok=True)
            raise LocalWriteError(f"Failed to save capture as JPEG: {exc}") from exc

        LOG.info(f"Saved capture to {target} ({target.stat().st_size} bytes)")
        return target

    @staticmethod
    def _write_jpeg(image: Image.Image, target: Path) -> None:
        # JPEG has no alpha or palette.
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.save(target, format="JPEG", quality=JPEG_QUALITY)
