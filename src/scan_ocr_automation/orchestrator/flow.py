"""Wiring and run modes for the scan → OCR workflow."""

from __future__ import annotations

import asyncio
import os
import sys
from typing import List, Optional

from ..config import WorkflowConfig
from ..domain.models import JobOutcome
from ..logging import get_logger
from ..paths import ensure_dir, expand_abs
from ..processing.invoker import ProcessingInvoker
from ..storage.local import LocalImageStore
from ..storage.objects import GCSObjectStorage, LocalObjectStorage, ObjectStorageClient
from ..viewer import DocumentViewer
from .view import ConsoleProgressView, ProgressView
from .watch import ScanEventListener
from .workflow import ScanWorkflow

LOG = get_logger("orchestrator-flow")


def build_storage(config: WorkflowConfig) -> ObjectStorageClient:
    if config.storage_backend == "local":
        return LocalObjectStorage(config.local_storage_dir or "", bucket_name=config.bucket)
    return GCSObjectStorage(config.bucket, project_id=config.gcp_project)


def build_workflow(
    config: WorkflowConfig,
    *,
    view: Optional[ProgressView] = None,
    storage: Optional[ObjectStorageClient] = None,
    invoker: Optional[ProcessingInvoker] = None,
    viewer: Optional[DocumentViewer] = None,
) -> ScanWorkflow:
    """Create a ScanWorkflow from config; any component may be swapped in."""
    cache_dir = ensure_dir(config.cache_dir)
    return ScanWorkflow(
        store=LocalImageStore(cache_dir),
        storage=storage or build_storage(config),
        invoker=invoker or ProcessingInvoker(config.function_url, timeout=config.http_timeout),
        viewer=viewer or DocumentViewer(launch=config.open_viewer),
        view=view or ConsoleProgressView(),
        cache_dir=cache_dir,
        keep_capture=config.keep_capture,
    )


class ScanFlow:
    """Feeds captures from the CLI or a watched directory into the workflow.

    With ``consume_captures`` the scanner's file is deleted once its job
    succeeded; failed captures stay in the watch directory.
    """

    def __init__(self, workflow: ScanWorkflow, *, consume_captures: bool = False) -> None:
        self.workflow = workflow
        self.consume_captures = consume_captures
        LOG.info("ScanFlow orchestrator ready")

    def _consume(self, path: str) -> None:
        try:
            os.remove(path)
            LOG.info(f"Consumed scanner capture: {path}")
        except FileNotFoundError:
            pass
        except OSError as exc:
            LOG.warning(f"Failed to remove scanner capture {path}: {exc}")

    async def _wait_for_stable_file(self, path: str, *, attempts: int = 5, sleep_seconds: float = 0.5) -> bool:
        """True once the file size stops changing; the scanner may still be writing."""
        last_size: Optional[int] = None
        for i in range(attempts):
            try:
                size = os.path.getsize(path)
            except OSError as exc:
                LOG.warning(f"File not ready (attempt {i+1}/{attempts}) for {path}: {exc}")
                await asyncio.sleep(sleep_seconds)
                continue
            if last_size is not None and size == last_size and size > 0:
                return True
            last_size = size
            await asyncio.sleep(sleep_seconds)
        LOG.error(f"File never became stable after {attempts} attempts: {path}")
        return False

    def run_single(self, image: Optional[str]) -> JobOutcome:
        if image:
            image = expand_abs(image)
            LOG.info(f"Running single capture for {image}")
        return asyncio.run(self.workflow.handle_capture(image))

    async def watch(
        self,
        listener: ScanEventListener,
        *,
        max_jobs: Optional[int] = None,
        stable_sleep: float = 0.5,
    ) -> List[JobOutcome]:
        """Process new captures one after another until ``max_jobs`` ran."""
        outcomes: List[JobOutcome] = []
        while max_jobs is None or len(outcomes) < max_jobs:
            for path in listener.scan_once():
                if not await self._wait_for_stable_file(path, sleep_seconds=stable_sleep):
                    # Still being written; pick it up on a later poll.
                    listener.forget(path)
                    continue
                outcome = await self.workflow.handle_capture(path)
                outcomes.append(outcome)
                if self.consume_captures and outcome.ok:
                    self._consume(path)
                if max_jobs is not None and len(outcomes) >= max_jobs:
                    break
            else:
                await asyncio.sleep(listener.poll_interval_sec)
        return outcomes

    def run_watch(self, watch_dir: Optional[str] = None, *, poll_interval_sec: float = 1.0) -> None:
        listener = ScanEventListener(watch_dir, poll_interval_sec=poll_interval_sec)
        LOG.info("Starting watch loop; press Ctrl+C to exit")
        try:
            asyncio.run(self.watch(listener))
        except KeyboardInterrupt:
            LOG.info("Interrupted by user; exiting watch mode")


def log_environment_banner() -> None:
    """Print environment information relevant for debugging runs."""

    LOG.info("Starting scan-ocr orchestrator")
    LOG.info(f"Working directory: {os.getcwd()}")
    LOG.info(f"Python executable: {sys.executable}")
