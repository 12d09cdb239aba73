"""Log formatters for carledger."""

import json
import time
import traceback
from typing import Any, Dict, Optional

from .core import LogEntry, LogFormatter


class JSONFormatter(LogFormatter):
    """JSON log formatter."""

    def __init__(
        self,
        include_context: bool = True,
        include_extra: bool = True,
        include_thread: bool = False,
        timestamp_format: str = "iso",
        indent: Optional[int] = None,
    ):
        self.include_context = include_context
        self.include_extra = include_extra
        self.include_thread = include_thread
        self.timestamp_format = timestamp_format
        self.indent = indent

    def format(self, entry: LogEntry) -> str:
        """Format log entry as JSON."""
        data: Dict[str, Any] = {
            "timestamp": self._format_timestamp(entry.timestamp),
            "level": entry.level.value,
            "logger": entry.logger_name,
            "message": entry.message,
        }

        if self.include_context:
            context = {k: v for k, v in entry.context.to_dict().items() if v}
            if context:
                data["context"] = context

        if entry.exception is not None:
            data["exception"] = {
                "type": type(entry.exception).__name__,
                "message": str(entry.exception),
                "traceback": "".join(
                    traceback.format_exception(
                        type(entry.exception),
                        entry.exception,
                        entry.exception.__traceback__,
                    )
                ),
            }

        if self.include_extra and entry.extra:
            data["extra"] = entry.extra

        if self.include_thread:
            data["thread_id"] = entry.thread_id
            data["process_id"] = entry.process_id

        return json.dumps(data, indent=self.indent, default=str)

    def _format_timestamp(self, timestamp: float) -> Any:
        if self.timestamp_format == "unix":
            return timestamp
        return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(timestamp)) + (
            ".%03dZ" % int((timestamp % 1) * 1000)
        )


class TextFormatter(LogFormatter):
    """Human-readable single-line formatter."""

    def __init__(self, format_string: str = None):
        self.format_string = format_string or (
            "{timestamp} [{level}] {logger}: {message}{context}"
        )

    def format(self, entry: LogEntry) -> str:
        """Format log entry as text."""
        context_parts = []
        if entry.context.operation:
            context_parts.append(f"op={entry.context.operation}")
        if entry.context.transaction_id:
            context_parts.append(f"tx={entry.context.transaction_id}")
        if entry.context.asset_id:
            context_parts.append(f"asset={entry.context.asset_id}")

        text = self.format_string.format(
            timestamp=time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(entry.timestamp)),
            level=entry.level.value.upper(),
            logger=entry.logger_name,
            message=entry.message,
            context=f" ({', '.join(context_parts)})" if context_parts else "",
        )

        if entry.exception is not None:
            text += f"\n  {type(entry.exception).__name__}: {entry.exception}"

        return text
