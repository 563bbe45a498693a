"""Presentation side of a job: progress toggle and failure notice."""

from __future__ import annotations

import sys
from typing import TextIO

from ..logging import get_logger

LOG = get_logger("progress-view")


class ProgressView:
    """Do-nothing view; subclasses render the idle/working toggle."""

    def show_progress(self) -> None:
        pass

    def hide_progress(self) -> None:
        pass

    def notify_failure(self, message: str) -> None:
        pass


class ConsoleProgressView(ProgressView):
    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream

    def show_progress(self) -> None:
        LOG.info("Working... (scan trigger hidden)")

    def hide_progress(self) -> None:
        LOG.info("Idle (scan trigger available)")

    def notify_failure(self, message: str) -> None:
        print(f"Scan failed: {message}", file=self.stream or sys.stderr, flush=True)
