"""High-level orchestration for the scan → OCR pipeline."""

from .view import ProgressView, ConsoleProgressView
from .workflow import ScanWorkflow
from .watch import ScanEventListener
from .flow import ScanFlow, build_storage, build_workflow, log_environment_banner

__all__ = [
    "ProgressView",
    "ConsoleProgressView",
    "ScanWorkflow",
    "ScanEventListener",
    "ScanFlow",
    "build_storage",
    "build_workflow",
    "log_environment_banner",
]
