"""Transaction logging: an append-only JSON-lines audit trail.

Every side-effecting step the executor takes (mirror, snapshot, bundle,
delete, archive) is recorded here in addition to the manifest, so that the
history of a backup root survives even if the manifest is later rewritten.
"""

import json
import logging
import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_transaction_log_path: Path | None = None
_lock = threading.Lock()


def set_transaction_log(path: Path | str | None) -> None:
    """Set (or disable with None) the transaction log file."""
    global _transaction_log_path

    if path is None:
        _transaction_log_path = None
        return

    _transaction_log_path = Path(path).expanduser()
    _transaction_log_path.parent.mkdir(parents=True, exist_ok=True)


def get_transaction_log() -> Path | None:
    return _transaction_log_path


def log_transaction(
    action: str,
    status: str,
    repo: str | None = None,
    source: str | None = None,
    destination: str | None = None,
    plan_fingerprint: str | None = None,
    size_bytes: int | None = None,
    duration_seconds: float | None = None,
    error: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Append one record to the transaction log.

    None values are omitted. Write errors are logged, never raised.
    """
    path = _transaction_log_path
    if path is None:
        return

    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pid": os.getpid(),
        "action": action,
        "status": status,
    }
    optional = {
        "repo": repo,
        "source": source,
        "destination": destination,
        "plan_fingerprint": plan_fingerprint,
        "size_bytes": size_bytes,
        "duration_seconds": (
            round(duration_seconds, 3) if duration_seconds is not None else None
        ),
        "error": error,
        "details": details,
    }
    record.update({k: v for k, v in optional.items() if v is not None})

    line = json.dumps(record, sort_keys=False) + "\n"
    with _lock:
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.warning("Could not write transaction log %s: %s", path, e)


class TransactionContext:
    """Log a started record on entry and completed/failed on exit.

    Exceptions are never suppressed.
    """

    def __init__(self, action: str, **fields: Any) -> None:
        self.action = action
        self.fields = fields
        self.details: dict[str, Any] = {}
        self._start = 0.0

    def __enter__(self) -> "TransactionContext":
        self._start = time.monotonic()
        log_transaction(action=self.action, status="started", **self.fields)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        duration = time.monotonic() - self._start
        if exc is not None:
            status = "failed"
            error = str(exc)
        else:
            status = "completed"
            error = None
        log_transaction(
            action=self.action,
            status=status,
            duration_seconds=duration,
            error=error,
            details=self.details or None,
            **self.fields,
        )
        return False

    def add_detail(self, key: str, value: Any) -> None:
        self.details[key] = value


def read_transaction_log(
    path: Path | str | None = None,
    limit: int | None = None,
    action_filter: str | None = None,
    status_filter: str | None = None,
) -> list[dict[str, Any]]:
    """Read transaction records, most recent first.

    Invalid and empty lines are skipped. A missing file yields no records.
    """
    log_path = Path(path) if path is not None else _transaction_log_path
    if log_path is None or not log_path.exists():
        return []

    records = []
    with open(log_path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue
            if action_filter and record.get("action") != action_filter:
                continue
            if status_filter and record.get("status") != status_filter:
                continue
            records.append(record)

    records.reverse()
    if limit is not None:
        records = records[:limit]
    return records


def get_transaction_stats(path: Path | str | None = None) -> dict[str, Any]:
    """Summarize completed/failed counts per action."""
    records = read_transaction_log(path)
    stats: dict[str, Any] = {"total_records": len(records)}
    for action in ("mirror", "snapshot", "bundle", "delete", "archive"):
        stats[action] = {"completed": 0, "failed": 0, "skipped": 0}

    for record in records:
        bucket = stats.get(record.get("action"))
        if not isinstance(bucket, dict):
            continue
        status = record.get("status")
        if status in bucket:
            bucket[status] += 1

    return stats
