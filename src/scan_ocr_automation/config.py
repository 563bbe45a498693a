import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import dotenv_values

from .domain.errors import ConfigError
from .logging import get_logger
from .paths import expand_abs, find_project_root, var_dir

log = get_logger("config")

DEFAULT_HTTP_TIMEOUT = 60.0
STORAGE_BACKENDS = ("gcs", "local")

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass
class WorkflowConfig:
    bucket: str
    function_url: str
    cache_dir: str
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    storage_backend: str = "gcs"
    local_storage_dir: Optional[str] = None
    gcp_project: Optional[str] = None
    keep_capture: bool = False
    open_viewer: bool = True
    consume_captures: bool = False


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    Lets the CLI find a repository-level `.env` when started from a
    subdirectory.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Return key/value pairs of the nearest .env; never mutates os.environ."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    values = {k: v for k, v in dotenv_values(path).items() if v is not None}
    log.debug(f"Loaded {len(values)} key(s) from .env at {path}")
    return values


def _lookup(env: Dict[str, str], name: str) -> Optional[str]:
    v = os.environ.get(name)
    if v is None:
        v = env.get(name)
    if v is None:
        return None
    v = v.strip()
    return v or None


def _parse_bool(name: str, raw: Any, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    s = str(raw).strip().lower()
    if s in _TRUTHY:
        return True
    if s in _FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _parse_timeout(raw: Any) -> float:
    if raw is None:
        return DEFAULT_HTTP_TIMEOUT
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"SCAN_OCR_HTTP_TIMEOUT must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"SCAN_OCR_HTTP_TIMEOUT must be positive, got {value}")
    return value


def load_workflow_config(dotenv_dir: str, **overrides: Any) -> WorkflowConfig:
    """Resolve the workflow configuration.

    Precedence per setting: explicit override (CLI flag) > environment >
    `.env` > default. Overrides that are None are ignored.
    """
    env = _read_dotenv(dotenv_dir)

    def pick(key: str, env_name: str) -> Any:
        v = overrides.get(key)
        if v is not None:
            return v
        return _lookup(env, env_name)

    bucket = pick("bucket", "SCAN_OCR_BUCKET")
    if not bucket:
        raise ConfigError("SCAN_OCR_BUCKET missing. Provide --bucket or set it in env/.env.")
    function_url = pick("function_url", "SCAN_OCR_FUNCTION_URL")
    if not function_url:
        raise ConfigError("SCAN_OCR_FUNCTION_URL missing. Provide --function-url or set it in env/.env.")

    backend = str(pick("storage_backend", "SCAN_OCR_STORAGE_BACKEND") or "gcs").lower()
    if backend not in STORAGE_BACKENDS:
        raise ConfigError(f"Unknown storage backend {backend!r}; expected one of {STORAGE_BACKENDS}")

    repo_root = find_project_root(dotenv_dir)
    cache_dir = pick("cache_dir", "SCAN_OCR_CACHE_DIR")
    cache_dir = expand_abs(cache_dir) if cache_dir else os.path.join(var_dir(repo_root), "cache")

    local_storage_dir = pick("local_storage_dir", "SCAN_OCR_LOCAL_STORAGE_DIR")
    if local_storage_dir:
        local_storage_dir = expand_abs(local_storage_dir)
    elif backend == "local":
        local_storage_dir = os.path.join(var_dir(repo_root), "bucket", bucket)

    return WorkflowConfig(
        bucket=bucket,
        function_url=function_url,
        cache_dir=cache_dir,
        http_timeout=_parse_timeout(pick("http_timeout", "SCAN_OCR_HTTP_TIMEOUT")),
        storage_backend=backend,
        local_storage_dir=local_storage_dir,
        gcp_project=pick("gcp_project", "GCP_PROJECT_ID"),
        keep_capture=_parse_bool("SCAN_OCR_KEEP_CAPTURE", pick("keep_capture", "SCAN_OCR_KEEP_CAPTURE"), False),
        open_viewer=_parse_bool("SCAN_OCR_OPEN_VIEWER", pick("open_viewer", "SCAN_OCR_OPEN_VIEWER"), True),
        consume_captures=_parse_bool(
            "SCAN_OCR_CONSUME_CAPTURES", pick("consume_captures", "SCAN_OCR_CONSUME_CAPTURES"), False
        ),
    )


def log_config(config: WorkflowConfig) -> None:
    log.info("Workflow configuration prepared")
    log.info(f"Bucket             : {config.bucket}")
    log.info(f"Function URL       : {config.function_url}")
    log.info(f"Cache directory    : {config.cache_dir}")
    log.info(f"HTTP timeout       : {config.http_timeout}s")
    log.info(f"Storage backend    : {config.storage_backend}")
    if config.local_storage_dir:
        log.info(f"Local storage dir  : {config.local_storage_dir}")
    log.info(f"Keep local capture : {config.keep_capture}")
    log.info(f"Launch viewer      : {config.open_viewer}")
    log.info(f"Consume captures   : {config.consume_captures}")
