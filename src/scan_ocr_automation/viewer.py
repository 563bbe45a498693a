"""Open processed documents for the user."""

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import fitz  # PyMuPDF

from .logging import get_logger

LOG = get_logger("viewer")


@dataclass
class DocumentSummary:
    path: Path
    page_count: int
    text_chars: int
    sample: str


def inspect_pdf(path: Path, *, max_chars: int = 200) -> DocumentSummary:
    """Count pages and extractable characters (the OCR text layer)."""
    text_chars = 0
    sample = ""
    with fitz.open(str(path)) as doc:
        page_count = doc.page_count
        for page in doc:
            text = page.get_text("text") or ""
            text_chars += len(text.strip())
            if not sample and text.strip():
                sample = text[:max_chars].replace("\n", "\\n")
    return DocumentSummary(path=Path(path), page_count=page_count, text_chars=text_chars, sample=sample)


def _opener_command(path: Path) -> Optional[List[str]]:
    if sys.platform == "darwin":
        return ["open", str(path)]
    if os.name == "nt":
        return None
    return ["xdg-open", str(path)]


class DocumentViewer:
    """Hand a local file to the platform's default document viewer.

    Fire-and-forget: failures are logged, never raised.
    """

    def __init__(self, *, launch: bool = True) -> None:
        self.launch = launch
        self.last_summary: Optional[DocumentSummary] = None
        self._children: List[subprocess.Popen] = []

    def open(self, path: Path, *, cache_path: Optional[str] = None) -> None:
        path = Path(path)
        LOG.info(f"Opening document: {path}")
        if cache_path:
            LOG.debug(f"Viewer cache path: {cache_path}")

        self.last_summary = None
        if path.suffix.lower() == ".pdf":
            try:
                summary = inspect_pdf(path)
            except Exception as exc:
                LOG.warning(f"Could not inspect {path}: {exc}")
            else:
                self.last_summary = summary
                LOG.info(f"Pages: {summary.page_count}; extractable text length: {summary.text_chars}")
                if summary.text_chars == 0:
                    LOG.warning("Document has no extractable text layer")
                else:
                    LOG.debug(f"Text sample: {summary.sample!r}")

        if not self.launch:
            return
        self._launch(path, cache_path)

    def _reap(self) -> None:
        self._children = [p for p in self._children if p.poll() is None]

    def _launch(self, path: Path, cache_path: Optional[str]) -> None:
        self._reap()
        env = dict(os.environ)
        if cache_path:
            # Lets viewers that honour TMPDIR keep their cache beside ours.
            env["TMPDIR"] = cache_path
        try:
            cmd = _opener_command(path)
            if cmd is None:
                os.startfile(str(path))  # type: ignore[attr-defined]
            else:
                child = subprocess.Popen(
                    cmd,
                    env=env,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    start_new_session=True,
                )
                self._children.append(child)
        except OSError as exc:
            LOG.warning(f"Failed to launch viewer for {path}: {exc}")
