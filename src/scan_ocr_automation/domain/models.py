from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image

# What the scanner hands back: a decoded image, a path to one, or None on cancel.
CapturedImage = Union[Image.Image, str, Path]


class UiState(enum.Enum):
    IDLE = "idle"
    WORKING = "working"


class JobStage(enum.Enum):
    SAVING = "saving"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    DOWNLOADING = "downloading"
    OPENING = "opening"
    CLEANING = "cleaning"


class JobStatus(enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


@dataclass
class CleanupResult:
    key: str
    deleted: bool
    error: Optional[str] = None


@dataclass
class JobOutcome:
    status: JobStatus
    capture_path: Optional[Path] = None
    uploaded_key: Optional[str] = None
    result_key: Optional[str] = None
    result_path: Optional[Path] = None
    failed_stage: Optional[JobStage] = None
    error: Optional[Exception] = None
    cleanup: List[CleanupResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is JobStatus.SUCCEEDED

    def summary(self) -> str:
        """One-line description used in logs and CLI output."""
        if self.status is JobStatus.SUCCEEDED:
            return f"{self.uploaded_key} -> {self.result_key} at {self.result_path}"
        if self.status is JobStatus.FAILED:
            stage = self.failed_stage.value if self.failed_stage else "unknown"
            return f"failed while {stage}: {self.error}"
        return self.status.value
