import os
from typing import Iterable, List, Optional, Set

from ..domain.errors import ConfigError
from ..logging import get_logger
from ..paths import expand_abs

LOG = get_logger("scan-event-listener")

WATCH_EXTS: Set[str] = {".jpg", ".jpeg", ".png"}


def _normalize_exts(exts: Iterable[str]) -> Set[str]:
    out: Set[str] = set()
    for e in exts:
        if not e:
            continue
        ee = e.lower()
        if not ee.startswith('.'):
            ee = '.' + ee
        out.add(ee)
    return out


def list_basenames_in_dir_by_ext(directory: str, exts: Iterable[str]) -> Set[str]:
    watch_exts = _normalize_exts(exts)
    try:
        entries = os.listdir(directory)
    except OSError as e:
        LOG.error(f"Failed to list directory '{directory}': {e}")
        return set()

    files: Set[str] = set()
    for name in entries:
        full = os.path.join(directory, name)
        if os.path.isfile(full):
            _, ext = os.path.splitext(name)
            if ext.lower() in watch_exts:
                files.add(name)
    return files


def resolve_watch_dir(override: Optional[str] = None) -> str:
    raw = override or os.environ.get("SCAN_OCR_WATCH_DIR")
    if not raw:
        raise ConfigError("No watch directory. Provide --watch-dir or set SCAN_OCR_WATCH_DIR.")
    resolved = expand_abs(raw)
    if not os.path.isdir(resolved):
        raise ConfigError(f"Watch directory does not exist or is not a directory: {resolved!r}")
    return resolved


class ScanEventListener:
    """Polls the scanner's output directory for newly dropped captures.

    Files present at start-up form the baseline and are ignored unless
    ``include_existing`` is set.
    """

    def __init__(
        self,
        watch_dir: Optional[str],
        *,
        poll_interval_sec: float = 1.0,
        exts: Optional[Iterable[str]] = None,
        include_existing: bool = False,
    ) -> None:
        self.watch_dir = resolve_watch_dir(watch_dir)
        self.exts: Set[str] = _normalize_exts(exts or WATCH_EXTS)
        self.poll_interval_sec = float(poll_interval_sec)
        self.baseline: Set[str] = (
            set() if include_existing else list_basenames_in_dir_by_ext(self.watch_dir, self.exts)
        )
        LOG.info(f"Watching {self.watch_dir!r} for {sorted(self.exts)}")
        LOG.info(f"Initial baseline: {len(self.baseline)} file(s)")

    def scan_once(self) -> List[str]:
        current = list_basenames_in_dir_by_ext(self.watch_dir, self.exts)
        new_files = sorted(current - self.baseline)
        if new_files:
            LOG.info(f"Detected {len(new_files)} new capture(s): {new_files}")
        self.baseline |= set(new_files)
        # Deleted files may reappear under the same name later.
        self.baseline &= current
        return [os.path.join(self.watch_dir, name) for name in new_files]

    def forget(self, path: str) -> None:
        """Report ``path`` again on the next scan if it is still there."""
        self.baseline.discard(os.path.basename(path))
