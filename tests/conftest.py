from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, List, Optional

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_ROOT))

from scan_ocr_automation.domain.errors import DeleteError, DownloadError, UploadError  # noqa: E402
from scan_ocr_automation.orchestrator import ProgressView, ScanWorkflow  # noqa: E402
from scan_ocr_automation.processing.invoker import ProcessingInvoker  # noqa: E402
from scan_ocr_automation.storage.local import LocalImageStore  # noqa: E402
from scan_ocr_automation.storage.objects import LocalObjectStorage  # noqa: E402


class RecordingStore(LocalImageStore):
    """Saves under a fixed name so keys are predictable."""

    def __init__(self, cache_dir: str, events: List[str], name: str = "image123.jpg") -> None:
        super().__init__(cache_dir)
        self.events = events
        self.name = name

    def _new_path(self) -> Path:
        return Path(self.cache_dir) / self.name

    def save(self, image):
        path = super().save(image)
        self.events.append("save")
        return path


class RecordingStorage(LocalObjectStorage):
    def __init__(self, base_path: str, events: List[str]) -> None:
        super().__init__(base_path, bucket_name="test-bucket")
        self.events = events
        self.fail_upload = False
        self.fail_download = False
        self.fail_delete = False

    def upload(self, local_path):
        if self.fail_upload:
            self.events.append("upload-failed")
            raise UploadError("network unreachable", key=Path(local_path).name)
        key = super().upload(local_path)
        self.events.append("upload")
        return key

    def download(self, key, destination):
        if self.fail_download:
            self.events.append("download-failed")
            raise DownloadError("connection reset", key=key)
        path = super().download(key, destination)
        self.events.append("download")
        return path

    def delete(self, key):
        self.events.append(f"delete:{key}")
        if self.fail_delete:
            raise DeleteError("permission denied", key=key)
        return super().delete(key)


class RecordingViewer:
    def __init__(self, events: List[str]) -> None:
        self.events = events
        self.opened: List[tuple] = []

    def open(self, path, *, cache_path=None):
        self.events.append("open")
        self.opened.append((Path(path), cache_path))


class RecordingView(ProgressView):
    def __init__(self) -> None:
        self.calls: List[str] = []
        self.failures: List[str] = []

    def show_progress(self) -> None:
        self.calls.append("show")

    def hide_progress(self) -> None:
        self.calls.append("hide")

    def notify_failure(self, message: str) -> None:
        self.failures.append(message)


def make_ocr_handler(storage: LocalObjectStorage, events: List[str], *, status: int = 200) -> Callable:
    """Fake OCR function: reads ``file``, writes ``<stem>_ocr.pdf`` next to it."""

    def handler(request: httpx.Request) -> httpx.Response:
        events.append("invoke")
        key = request.url.params["file"]
        if status != 200:
            return httpx.Response(status, text="internal error")
        source = storage.base_path / key
        result_key = f"{Path(key).stem}_ocr.pdf"
        (storage.base_path / result_key).write_bytes(b"%PDF-ocr:" + source.read_bytes()[:16])
        return httpx.Response(200, text=f'"{result_key}"')

    return handler


class Harness:
    def __init__(self, tmp_path: Path) -> None:
        self.events: List[str] = []
        self.cache_dir = tmp_path / "cache"
        self.store = RecordingStore(str(self.cache_dir), self.events)
        self.storage = RecordingStorage(str(tmp_path / "bucket"), self.events)
        self.viewer = RecordingViewer(self.events)
        self.view = RecordingView()

    def workflow(self, handler: Optional[Callable] = None, *, keep_capture: bool = False) -> ScanWorkflow:
        handler = handler or make_ocr_handler(self.storage, self.events)
        invoker = ProcessingInvoker(
            "https://ocr.example.test/process",
            timeout=5,
            transport=httpx.MockTransport(handler),
        )
        return ScanWorkflow(
            store=self.store,
            storage=self.storage,
            invoker=invoker,
            viewer=self.viewer,
            view=self.view,
            cache_dir=str(self.cache_dir),
            keep_capture=keep_capture,
        )


@pytest.fixture
def ocr_handler():
    return make_ocr_handler


@pytest.fixture
def harness(tmp_path: Path) -> Harness:
    return Harness(tmp_path)


@pytest.fixture
def capture():
    from PIL import Image

    return Image.new("RGB", (64, 48), "white")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SCAN_OCR_BUCKET",
        "SCAN_OCR_FUNCTION_URL",
        "SCAN_OCR_CACHE_DIR",
        "SCAN_OCR_HTTP_TIMEOUT",
        "SCAN_OCR_STORAGE_BACKEND",
        "SCAN_OCR_LOCAL_STORAGE_DIR",
        "SCAN_OCR_KEEP_CAPTURE",
        "SCAN_OCR_OPEN_VIEWER",
        "SCAN_OCR_WATCH_DIR",
        "SCAN_OCR_CONSUME_CAPTURES",
        "GCP_PROJECT_ID",
    ):
        monkeypatch.delenv(name, raising=False)
