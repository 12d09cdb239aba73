"""Log handlers for carledger."""

import sys
import threading
from typing import Any, Dict, List

from .core import LogEntry, LogHandler, LogLevel


class ConsoleHandler(LogHandler):
    """Console log handler.

    Without an explicit stream, entries go to whatever ``sys.stderr`` is at
    emit time.
    """

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream
        self._closed = False

    def emit(self, entry: LogEntry) -> None:
        """Emit log entry to console."""
        with self._lock:
            if self._closed:
                return
            if self.formatter:
                formatted = self.formatter.format(entry)
            else:
                formatted = f"{entry.timestamp} [{entry.level.value.upper()}] {entry.logger_name}: {entry.message}"

            stream = self.stream if self.stream is not None else sys.stderr
            stream.write(formatted + "\n")
            stream.flush()

    def close(self) -> None:
        """Stop emitting; standard streams are left open."""
        with self._lock:
            if self.stream not in (None, sys.stdout, sys.stderr):
                self.stream.close()
            self._closed = True


class MemoryHandler(LogHandler):
    """Keeps the most recent entries in memory."""

    def __init__(self, max_size: int = 1000):
        super().__init__()
        self.max_size = max_size
        self.buffer: List[LogEntry] = []
        self._lock = threading.RLock()

    def emit(self, entry: LogEntry) -> None:
        """Emit log entry to memory."""
        with self._lock:
            self.buffer.append(entry)

            if len(self.buffer) > self.max_size:
                self.buffer.pop(0)

    def get_logs(self) -> List[Dict[str, Any]]:
        """Get all logs from memory."""
        with self._lock:
            return [entry.to_dict() for entry in self.buffer]

    def find(self, level: LogLevel = None, operation: str = None) -> List[LogEntry]:
        """Return buffered entries matching level and/or operation."""
        with self._lock:
            return [
                entry
                for entry in self.buffer
                if (level is None or entry.level == level)
                and (operation is None or entry.context.operation == operation)
            ]

    def clear_logs(self) -> None:
        """Clear all logs from memory."""
        with self._lock:
            self.buffer.clear()

    def close(self) -> None:
        """Close handler."""
        self.clear_logs()
