"""Object storage clients: one bucket, objects addressed by filename key."""

from __future__ import annotations

import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from google.api_core import exceptions as gcs_exceptions
from google.cloud import storage

from ..domain.errors import DeleteError, DownloadError, UploadError
from ..logging import get_logger
from ..paths import ensure_dir

LOG = get_logger("object-storage")


class ObjectStorageClient(ABC):
    """Upload, download and delete objects in a single bucket."""

    bucket_name: str

    @abstractmethod
    def upload(self, local_path: Path) -> str:
        """Store the file under its base name and return that key."""

    @abstractmethod
    def download(self, key: str, destination: Path) -> Path:
        """Write the object to ``destination`` and return it."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete the object. False if it did not exist."""


class GCSObjectStorage(ObjectStorageClient):
    """Google Cloud Storage bucket.

    A client can be injected; otherwise one is created lazily and reused.
    """

    def __init__(
        self,
        bucket_name: str,
        *,
        project_id: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.project_id = project_id or os.environ.get("GCP_PROJECT_ID")
        self._client = client
        LOG.info(f"GCS storage ready for bucket: {bucket_name}, project: {self.project_id}")

    def _bucket(self) -> Any:
        if self._client is None:
            self._client = storage.Client(project=self.project_id)
        return self._client.bucket(self.bucket_name)

    def _uri(self, key: str) -> str:
        return f"gs://{self.bucket_name}/{key}"

    def upload(self, local_path: Path) -> str:
        key = Path(local_path).name
        try:
            blob = self._bucket().blob(key)
            blob.upload_from_filename(str(local_path))
        except Exception as exc:
            LOG.error(f"Upload of {local_path} failed: {type(exc).__name__}: {exc}")
            raise UploadError(f"Upload failed for {key}: {exc}", key=key) from exc
        LOG.info(f"File uploaded: {self._uri(key)}")
        return key

    def download(self, key: str, destination: Path) -> Path:
        destination = Path(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            blob = self._bucket().blob(key)
            blob.download_to_filename(str(destination))
        except Exception as exc:
            if destination.is_file():
                destination.unlink()
            LOG.error(f"Download of {self._uri(key)} failed: {type(exc).__name__}: {exc}")
            raise DownloadError(f"Download failed for {key}: {exc}", key=key) from exc
        LOG.info(f"File downloaded: {self._uri(key)} -> {destination}")
        return destination

    def delete(self, key: str) -> bool:
        try:
            self._bucket().blob(key).delete()
        except gcs_exceptions.NotFound:
            LOG.warning(f"Object not found for deletion: {self._uri(key)}")
            return False
        except Exception as exc:
            raise DeleteError(f"Delete failed for {key}: {exc}", key=key) from exc
        LOG.info(f"Object deleted: {self._uri(key)}")
        return True


class LocalObjectStorage(ObjectStorageClient):
    """Directory-backed bucket for development and tests."""

    def __init__(self, base_path: str, *, bucket_name: str = "local") -> None:
        self.bucket_name = bucket_name
        self.base_path = Path(ensure_dir(base_path))
        LOG.info(f"Local storage ready at: {self.base_path}")

    def _object_path(self, key: str) -> Path:
        # Keys are filenames; anything with a directory part is refused.
        if not key or Path(key).name != key:
            raise ValueError(f"Invalid object key: {key!r}")
        return self.base_path / key

    def upload(self, local_path: Path) -> str:
        key = Path(local_path).name
        try:
            shutil.copyfile(local_path, self._object_path(key))
        except (OSError, ValueError) as exc:
            raise UploadError(f"Upload failed for {key}: {exc}", key=key) from exc
        LOG.info(f"File uploaded: {self._object_path(key)}")
        return key

    def download(self, key: str, destination: Path) -> Path:
        destination = Path(destination)
        try:
            source = self._object_path(key)
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except (OSError, ValueError) as exc:
            raise DownloadError(f"Download failed for {key}: {exc}", key=key) from exc
        LOG.info(f"File downloaded: {key} -> {destination}")
        return destination

    def delete(self, key: str) -> bool:
        try:
            self._object_path(key).unlink()
        except FileNotFoundError:
            LOG.warning(f"Object not found for deletion: {key}")
            return False
        except (OSError, ValueError) as exc:
            raise DeleteError(f"Delete failed for {key}: {exc}", key=key) from exc
        LOG.info(f"Object deleted: {key}")
        return True

    def exists(self, key: str) -> bool:
        try:
            return self._object_path(key).is_file()
        except ValueError:
            return False
