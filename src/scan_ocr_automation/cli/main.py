from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Sequence

from ..config import load_workflow_config, log_config
from ..domain.errors import ConfigError
from ..domain.models import JobStatus
from ..logging import get_logger
from ..orchestrator import ScanFlow, build_workflow, log_environment_banner
from ..viewer import inspect_pdf

LOG = get_logger("cli-main")


def _add_workflow_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--bucket", help="Storage bucket name (defaults to env/.env)")
    p.add_argument("--function-url", help="OCR function URL (defaults to env/.env)")
    p.add_argument("--cache-dir", help="App-private cache directory (default: var/cache at repo root)")
    p.add_argument("--timeout", type=float, help="HTTP timeout in seconds for the OCR call (default 60)")
    p.add_argument("--storage-backend", choices=["gcs", "local"], help="Object storage backend")
    p.add_argument("--local-storage-dir", help="Directory used as the bucket with --storage-backend=local")
    p.add_argument("--gcp-project", help="GCP project for the storage client")
    p.add_argument("--no-viewer", action="store_true", help="Do not launch a viewer for the result")
    p.add_argument("--keep-capture", action="store_true", help="Keep the local JPEG after the job")


def _load_config(ns: argparse.Namespace):
    # Read .env from the current working directory upward
    return load_workflow_config(
        os.getcwd(),
        bucket=ns.bucket,
        function_url=ns.function_url,
        cache_dir=ns.cache_dir,
        http_timeout=ns.timeout,
        storage_backend=ns.storage_backend,
        local_storage_dir=ns.local_storage_dir,
        gcp_project=ns.gcp_project,
        open_viewer=False if ns.no_viewer else None,
        keep_capture=True if ns.keep_capture else None,
        consume_captures=True if getattr(ns, "consume_captures", False) else None,
    )


def _build_flow(ns: argparse.Namespace) -> ScanFlow:
    log_environment_banner()
    config = _load_config(ns)
    log_config(config)
    return ScanFlow(build_workflow(config), consume_captures=config.consume_captures)


def _handle_single(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    outcome = flow.run_single(ns.image)
    print(json.dumps({
        "status": outcome.status.value,
        "uploaded_key": outcome.uploaded_key,
        "result_key": outcome.result_key,
        "result_path": str(outcome.result_path) if outcome.result_path else None,
    }))
    return 1 if outcome.status is JobStatus.FAILED else 0


def _handle_watch(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    flow.run_watch(ns.watch_dir, poll_interval_sec=ns.poll_interval)
    return 0


def _handle_inspect(ns: argparse.Namespace) -> int:
    if not os.path.isfile(ns.pdf):
        LOG.error(f"File not found: {ns.pdf}")
        return 2
    summary = inspect_pdf(ns.pdf)
    print(json.dumps({
        "path": str(summary.path),
        "pages": summary.page_count,
        "text_chars": summary.text_chars,
        "sample": summary.sample,
    }, ensure_ascii=False))
    return 0 if summary.text_chars else 1


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.info(f"CLI invoked with arguments: {provided}")

    parser = argparse.ArgumentParser(
        prog="scan-ocr",
        description="Upload scanned documents for OCR and open the processed result.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    single = subparsers.add_parser("single", help="Run one job for a captured image and exit.")
    single.add_argument("--image", help="Captured image; omit to simulate a cancelled scan")
    _add_workflow_args(single)
    single.set_defaults(handler=_handle_single)

    watch = subparsers.add_parser("watch", help="Run a job for every new capture in a directory.")
    watch.add_argument("--watch-dir", help="Scanner output directory (defaults to SCAN_OCR_WATCH_DIR)")
    watch.add_argument("--poll-interval", type=float, default=1.0, help="Seconds between directory scans")
    watch.add_argument(
        "--consume-captures",
        action="store_true",
        help="Delete a scanner capture from the watch directory once its job succeeded",
    )
    _add_workflow_args(watch)
    watch.set_defaults(handler=_handle_watch)

    inspect_cmd = subparsers.add_parser("inspect", help="Report pages and OCR text length of a PDF.")
    inspect_cmd.add_argument("--pdf", required=True)
    inspect_cmd.set_defaults(handler=_handle_inspect)

    args = parser.parse_args(provided)
    try:
        code = args.handler(args)
    except ConfigError as exc:
        LOG.error(str(exc))
        return 2
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
