"""JSONL event log for memories, regions and notifications."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    owner_id: str | None = None
    memory_id: str | None = None
    region_ids: list[str] | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {}}


class JSONLLogger:
    """Logger that writes structured events in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "events.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".echoes" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self._current_owner_id: str | None = None

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def set_owner_id(self, owner_id: str | None) -> None:
        """Set the owner attached to all subsequent entries."""
        self._current_owner_id = owner_id

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        self._rotate_if_needed()

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict()) + "\n")

    def log(
        self,
        event: str,
        *,
        owner_id: str | None = None,
        memory_id: str | None = None,
        region_ids: list[str] | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            owner_id=owner_id or self._current_owner_id,
            memory_id=memory_id,
            region_ids=region_ids,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_memory_saved(self, memory_id: str, *, owner_id: str | None = None) -> None:
        """Log a persisted memory."""
        self.log("memory_saved", owner_id=owner_id, memory_id=memory_id)

    def log_memory_deleted(self, memory_id: str, *, owner_id: str | None = None) -> None:
        """Log a deleted memory."""
        self.log("memory_deleted", owner_id=owner_id, memory_id=memory_id)

    def log_regions_synced(self, region_ids: list[str], skipped: int = 0) -> None:
        """Log the outcome of a region sync pass."""
        self.log("regions_synced", region_ids=region_ids, count=len(region_ids), skipped=skipped)

    def log_region_entered(self, region_id: str) -> None:
        self.log("region_entered", memory_id=region_id)

    def log_notification(
        self,
        identifier: str,
        delivered: bool,
        *,
        channel: str,
        error: str | None = None,
    ) -> None:
        """Log a notification delivery attempt."""
        self.log(
            "notification_sent",
            error=error if not delivered else None,
            identifier=identifier,
            delivered=delivered,
            channel=channel,
        )

    def log_auth(self, action: str, success: bool, *, owner_id: str | None = None) -> None:
        self.log("auth", owner_id=owner_id, action=action, success=success)


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger
