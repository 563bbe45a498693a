"""Error taxonomy for a scan → OCR job."""

from __future__ import annotations

from typing import Optional


class ScanOcrError(Exception):
    """Base class; ``key`` is the remote object involved, if any."""

    def __init__(self, message: str, *, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class CaptureCancelled(ScanOcrError):
    """The user aborted the scan. A normal exit, not a failure."""


class LocalWriteError(ScanOcrError):
    pass


# Older name used by callers that talk about "storage writes".
StorageWriteError = LocalWriteError


class StorageError(ScanOcrError):
    pass


class UploadError(StorageError):
    pass


class DownloadError(StorageError):
    pass


class DeleteError(StorageError):
    pass


class ProcessingError(ScanOcrError):
    """OCR endpoint answered non-2xx, timed out, or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, key=key)
        self.status_code = status_code


class JobRejected(ScanOcrError):
    """A capture arrived while another job was still working."""


class ConfigError(ScanOcrError):
    pass
