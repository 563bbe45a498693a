"""
Scan OCR Automation – capture, upload, OCR, download and view.

The package wires a captured document image through cloud object storage
and a remote OCR function, then opens the processed result locally.
"""

__all__ = [
    "config",
    "logging",
    "paths",
]
