"""Shared logging utilities."""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit
from uuid import uuid4

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "proxy.log"

SENSITIVE_HEADER_MARKERS = ("key", "authorization", "cookie", "token")


def write_incoming_log(
    method: str,
    path: str,
    headers: dict[str, str],
    body: Any,
    *,
    log_root: Path = LOG_ROOT,
) -> Path:
    """Write a single incoming request log entry."""
    payload = {
        "timestamp": _utc_now(),
        "method": method,
        "path": path,
        "headers": _redact_headers(headers),
        "body": body,
    }
    return _write_json(log_root / "incoming", payload)


def write_outbound_log(
    method: str,
    url: str,
    headers: dict[str, str | bytes],
    body: dict[str, Any],
    *,
    log_root: Path = LOG_ROOT,
) -> Path:
    """Write a single outbound request log entry, grouped by target host."""
    payload = {
        "timestamp": _utc_now(),
        "method": method,
        "url": url,
        "headers": _redact_headers(headers),
        "body": body,
    }
    host = urlsplit(url).hostname or "unknown"
    return _write_json(log_root / "outbound" / host, payload)


def write_cli_log(
    level: str,
    message: str,
    *,
    log_file: Path = CLI_LOG_FILE,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with log_file.open("a") as f:
        f.write(line)


def clear_logs(log_root: Path = LOG_ROOT) -> int:
    """Remove request log files left by a previous run."""
    deleted = 0
    for folder in (log_root / "incoming", log_root / "outbound"):
        if not folder.exists():
            continue
        for old_file in folder.rglob("*.json"):
            try:
                old_file.unlink()
                deleted += 1
            except OSError:
                pass
    return deleted


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _redact_headers(headers: dict[str, str | bytes]) -> dict[str, str]:
    """Redact sensitive headers."""
    redacted = {}
    for key, value in headers.items():
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        if any(marker in key.lower() for marker in SENSITIVE_HEADER_MARKERS):
            redacted[key] = _mask(value)
        else:
            redacted[key] = value
    return redacted


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()
