"""
In-memory command history.

Appends and queries never suspend, so on the event loop each one is
atomic with respect to concurrent requests. A deque with maxlen performs
append and eviction of the oldest entry in one step.
"""

from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

DEFAULT_QUERY_LIMIT = 10


@dataclass(frozen=True)
class HistoryEntry:
    """
    One executed command.

    Attributes:
        command: Command text as submitted
        output: Output text recorded for the command
        timestamp: ISO-8601 UTC time of completion
        exit_code: Exit code, -1 when the process had none
        connection_id: SSH connection id for remote commands
    """

    command: str
    output: str
    timestamp: str
    exit_code: int
    connection_id: Optional[str] = None

    @classmethod
    def create(
        cls,
        command: str,
        output: str,
        exit_code: int,
        connection_id: Optional[str] = None,
    ) -> "HistoryEntry":
        """Create an entry stamped with the current time."""
        timestamp = (
            datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        )
        return cls(
            command=command,
            output=output,
            timestamp=timestamp,
            exit_code=exit_code,
            connection_id=connection_id,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = {
            "command": self.command,
            "output": self.output,
            "timestamp": self.timestamp,
            "exitCode": self.exit_code,
        }
        if self.connection_id is not None:
            data["connectionId"] = self.connection_id
        return data


class CommandHistory:
    """
    Size-bounded, append-only command ledger.

    Entries are kept in execution order; once max_size is reached each
    append evicts the oldest entry.
    """

    def __init__(self, enabled: bool = True, max_size: int = 1000, output_limit: int = 1000):
        """
        Initialize the ledger.

        Args:
            enabled: When False, append is a no-op
            max_size: Maximum number of entries retained
            output_limit: Characters of output returned per entry by query
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.enabled = enabled
        self.max_size = max_size
        self.output_limit = output_limit
        self._entries: deque[HistoryEntry] = deque(maxlen=max_size)

    def append(self, entry: HistoryEntry) -> None:
        """Record an entry, evicting the oldest if the ledger is full."""
        if not self.enabled:
            return
        self._entries.append(entry)

    def query(self, limit: Optional[int] = None) -> list[HistoryEntry]:
        """
        Most recent entries, oldest first.

        Args:
            limit: Number of entries, clamped to [1, max_size]; default 10

        Returns:
            Copies of the entries with output truncated to output_limit
        """
        if limit is None:
            limit = DEFAULT_QUERY_LIMIT
        limit = max(1, min(limit, self.max_size))

        recent = list(self._entries)[-limit:]
        return [
            replace(entry, output=entry.output[: self.output_limit])
            if len(entry.output) > self.output_limit
            else entry
            for entry in recent
        ]

    def clear(self) -> None:
        """Drop all entries."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
