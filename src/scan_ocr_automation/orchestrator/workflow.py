"""One scan job: save → upload → process → download → open → clean up."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

from ..domain.errors import CaptureCancelled, DeleteError, JobRejected, ScanOcrError
from ..domain.models import (
    CapturedImage,
    CleanupResult,
    JobOutcome,
    JobStage,
    JobStatus,
    UiState,
)
from ..logging import get_logger
from ..processing.invoker import ProcessingInvoker
from ..storage.local import LocalImageStore
from ..storage.objects import ObjectStorageClient
from ..viewer import DocumentViewer
from .view import ProgressView

LOG = get_logger("orchestrator-workflow")


class ScanWorkflow:
    """Runs at most one job at a time.

    State changes and view calls happen on the event loop; disk and storage
    work is pushed to worker threads. Every exit path goes through a single
    finalizer that deletes the remote objects this job created, removes the
    local capture and returns the view to idle.
    """

    def __init__(
        self,
        *,
        store: LocalImageStore,
        storage: ObjectStorageClient,
        invoker: ProcessingInvoker,
        viewer: DocumentViewer,
        view: Optional[ProgressView] = None,
        cache_dir: str,
        keep_capture: bool = False,
    ) -> None:
        self.store = store
        self.storage = storage
        self.invoker = invoker
        self.viewer = viewer
        self.view = view or ProgressView()
        self.cache_dir = Path(cache_dir)
        self.keep_capture = keep_capture
        self.state = UiState.IDLE

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _set_state(self, state: UiState) -> None:
        if state is self.state:
            return
        self.state = state
        if state is UiState.WORKING:
            self.view.show_progress()
        else:
            self.view.hide_progress()

    async def _delete(self, key: str) -> CleanupResult:
        try:
            deleted = await asyncio.to_thread(self.storage.delete, key)
        except DeleteError as exc:
            LOG.warning(f"Remote cleanup failed for {key!r}: {exc}")
            return CleanupResult(key=key, deleted=False, error=str(exc))
        except Exception as exc:
            # Best effort.
            LOG.warning(f"Remote cleanup failed for {key!r}: {type(exc).__name__}: {exc}")
            return CleanupResult(key=key, deleted=False, error=str(exc))
        return CleanupResult(key=key, deleted=deleted)

    def _schedule_delete(
        self,
        key: str,
        pending: List[str],
        cleanups: List["asyncio.Task[CleanupResult]"],
    ) -> None:
        if key not in pending:
            return
        pending.remove(key)
        LOG.debug(f"Scheduling remote delete of {key!r}")
        cleanups.append(asyncio.create_task(self._delete(key)))

    def _discard_capture(self, path: Optional[Path]) -> None:
        if self.keep_capture or path is None:
            return
        try:
            path.unlink(missing_ok=True)
            LOG.debug(f"Removed local capture: {path}")
        except OSError as exc:
            LOG.warning(f"Failed to remove local capture {path}: {exc}")

    # ------------------------------------------------------------------
    # Job
    # ------------------------------------------------------------------
    async def handle_capture(self, capture: Optional[CapturedImage]) -> JobOutcome:
        if capture is None:
            LOG.info("Capture cancelled; nothing to do")
            return JobOutcome(status=JobStatus.CANCELLED, error=CaptureCancelled("Scan cancelled by user"))
        if self.state is UiState.WORKING:
            LOG.warning("A scan job is already in flight; rejecting new capture")
            return JobOutcome(
                status=JobStatus.REJECTED,
                error=JobRejected("A scan job is already in flight"),
            )

        self._set_state(UiState.WORKING)
        outcome = JobOutcome(status=JobStatus.FAILED)
        stage = JobStage.SAVING
        # Remote keys this job created whose delete is not scheduled yet.
        pending: List[str] = []
        cleanups: List["asyncio.Task[CleanupResult]"] = []

        try:
            LOG.info("=== Saving capture")
            outcome.capture_path = await asyncio.to_thread(self.store.save, capture)

            stage = JobStage.UPLOADING
            LOG.info(f"=== Uploading {outcome.capture_path.name}")
            key = await asyncio.to_thread(self.storage.upload, outcome.capture_path)
            outcome.uploaded_key = key
            pending.append(key)

            stage = JobStage.PROCESSING
            LOG.info(f"=== Processing {key}")
            result_key = await self.invoker.invoke(key)
            outcome.result_key = result_key
            if result_key != key:
                pending.append(result_key)
                # Runs alongside the download.
                self._schedule_delete(key, pending, cleanups)

            stage = JobStage.DOWNLOADING
            LOG.info(f"=== Downloading {result_key}")
            outcome.result_path = await asyncio.to_thread(
                self.storage.download, result_key, self.cache_dir / Path(result_key).name
            )

            stage = JobStage.OPENING
            self._set_state(UiState.IDLE)
            self.viewer.open(outcome.result_path, cache_path=str(self.cache_dir))
            self._schedule_delete(result_key, pending, cleanups)
            outcome.status = JobStatus.SUCCEEDED
        except ScanOcrError as exc:
            outcome.failed_stage = stage
            outcome.error = exc
            LOG.error(f"Scan job failed while {stage.value}: {exc}")
        except Exception as exc:
            outcome.failed_stage = stage
            outcome.error = exc
            LOG.exception(f"Unexpected error while {stage.value}: {type(exc).__name__}: {exc}")
        finally:
            LOG.info("=== Cleaning up")
            for key in list(pending):
                self._schedule_delete(key, pending, cleanups)
            if cleanups:
                outcome.cleanup = list(await asyncio.gather(*cleanups))
            if outcome.capture_path != outcome.result_path:
                self._discard_capture(outcome.capture_path)
            self._set_state(UiState.IDLE)

        if outcome.ok:
            LOG.info(f"Scan job finished: {outcome.summary()}")
        else:
            self.view.notify_failure(outcome.summary())
        return outcome
