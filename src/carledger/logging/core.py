"""Structured logging for carledger.

Contract operations emit ``LogEntry`` records tagged with a ``LogContext``
(operation, transaction and asset). A single ``LogManager`` fans each entry
out to its handlers; handlers own their formatter and minimum level.
"""

import os
import sys
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum
from functools import partialmethod
from typing import Any, Dict, List, Optional


class LogLevel(Enum):
    """Log levels, in increasing severity."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_SEVERITY = {level: rank for rank, level in enumerate(LogLevel)}


def at_least(level: LogLevel, threshold: LogLevel) -> bool:
    """True if ``level`` is as severe as ``threshold`` or more."""
    return _SEVERITY[level] >= _SEVERITY[threshold]


@dataclass
class LogContext:
    """Who and what an entry is about."""

    component: Optional[str] = None
    operation: Optional[str] = None
    transaction_id: Optional[str] = None
    asset_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def merged_with(self, other: Optional["LogContext"]) -> "LogContext":
        """Return a context where fields set on ``other`` take precedence."""
        if other is None:
            return self
        return LogContext(
            component=other.component or self.component,
            operation=other.operation or self.operation,
            transaction_id=other.transaction_id or self.transaction_id,
            asset_id=other.asset_id or self.asset_id,
            metadata={**self.metadata, **other.metadata},
        )


@dataclass
class LogEntry:
    timestamp: float
    level: LogLevel
    message: str
    logger_name: str
    context: LogContext
    exception: Optional[BaseException] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    thread_id: int = field(default_factory=threading.get_ident)
    process_id: int = field(default_factory=os.getpid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "message": self.message,
            "logger_name": self.logger_name,
            "context": self.context.to_dict(),
            "exception": str(self.exception) if self.exception else None,
            "extra": self.extra,
            "thread_id": self.thread_id,
            "process_id": self.process_id,
        }


@dataclass
class LogConfig:
    """Logging configuration.

    ``handlers`` names the built-in handlers to install; only ``"console"``
    is installed automatically, others are added with
    ``LogManager.add_handler``.
    """

    name: str = "carledger"
    level: LogLevel = LogLevel.INFO
    format_type: str = "json"  # json or text
    handlers: List[str] = field(default_factory=lambda: ["console"])


class LogFormatter(ABC):
    @abstractmethod
    def format(self, entry: LogEntry) -> str:
        """Render an entry as one string."""


class LogHandler(ABC):
    """Destination for entries at or above ``level``."""

    def __init__(self, name: str = None):
        self.name = name or type(self).__name__
        self.formatter: Optional[LogFormatter] = None
        self.level = LogLevel.DEBUG
        self._lock = threading.RLock()

    def set_formatter(self, formatter: LogFormatter) -> None:
        self.formatter = formatter

    def set_level(self, level: LogLevel) -> None:
        self.level = level

    def handle(self, entry: LogEntry) -> None:
        if at_least(entry.level, self.level):
            self.emit(entry)

    @abstractmethod
    def emit(self, entry: LogEntry) -> None:
        """Write an entry that passed the level check."""

    def close(self) -> None:
        pass


class LogManager:
    """Owns the handlers and the named loggers bound to them."""

    def __init__(self, config: LogConfig = None):
        self.config = config or LogConfig()
        self.loggers: Dict[str, "LedgerLogger"] = {}
        self.handlers: Dict[str, LogHandler] = {}
        self._context = LogContext()
        self._lock = threading.RLock()

        if "console" in self.config.handlers:
            self.add_handler("console", self._console_handler())

    def _console_handler(self) -> LogHandler:
        from .formatters import JSONFormatter, TextFormatter
        from .handlers import ConsoleHandler

        console = ConsoleHandler()
        console.set_formatter(
            TextFormatter() if self.config.format_type == "text" else JSONFormatter()
        )
        return console

    def get_logger(self, name: str) -> "LedgerLogger":
        with self._lock:
            if name not in self.loggers:
                self.loggers[name] = LedgerLogger(name, self, self.config.level)
            return self.loggers[name]

    def add_handler(self, name: str, handler: LogHandler) -> None:
        with self._lock:
            self.handlers[name] = handler

    def remove_handler(self, name: str) -> None:
        """Detach and close a handler; unknown names are ignored."""
        with self._lock:
            handler = self.handlers.pop(name, None)
        if handler is not None:
            handler.close()

    def set_context(self, context: LogContext) -> None:
        """Set the context merged into every entry."""
        self._context = context

    def get_context(self) -> LogContext:
        return self._context

    def dispatch(self, entry: LogEntry) -> None:
        with self._lock:
            handlers = list(self.handlers.values())
        for handler in handlers:
            handler.handle(entry)

    def shutdown(self) -> None:
        with self._lock:
            handlers = list(self.handlers.values())
            self.handlers.clear()
            self.loggers.clear()
        for handler in handlers:
            handler.close()


class LedgerLogger:
    """Named logger; drops entries below its level before building them."""

    def __init__(self, name: str, manager: LogManager, level: LogLevel = LogLevel.INFO):
        self.name = name
        self.manager = manager
        self.level = level

    def set_level(self, level: LogLevel) -> None:
        self.level = level

    def is_enabled_for(self, level: LogLevel) -> bool:
        return at_least(level, self.level)

    def log(
        self,
        level: LogLevel,
        message: str,
        context: LogContext = None,
        exception: BaseException = None,
        extra: Dict[str, Any] = None,
    ) -> None:
        if not self.is_enabled_for(level):
            return
        self.manager.dispatch(
            LogEntry(
                timestamp=time.time(),
                level=level,
                message=message,
                logger_name=self.name,
                context=self.manager.get_context().merged_with(context),
                exception=exception,
                extra=extra or {},
            )
        )

    debug = partialmethod(log, LogLevel.DEBUG)
    info = partialmethod(log, LogLevel.INFO)
    warning = partialmethod(log, LogLevel.WARNING)
    error = partialmethod(log, LogLevel.ERROR)
    critical = partialmethod(log, LogLevel.CRITICAL)

    def exception(self, message: str, **kwargs) -> None:
        """Log at ERROR, attaching the exception being handled."""
        kwargs.setdefault("exception", sys.exc_info()[1])
        self.log(LogLevel.ERROR, message, **kwargs)


# Modules bind ``logger = get_logger(__name__)`` at import time; the proxy
# looks the logger up in whichever manager is current when it is called.
_manager: Optional[LogManager] = None
_manager_lock = threading.Lock()


def get_log_manager() -> LogManager:
    """Return the current manager, creating a default one on first use."""
    global _manager
    with _manager_lock:
        if _manager is None:
            _manager = LogManager()
        return _manager


class _LoggerProxy:
    def __init__(self, name: str):
        self._name = name

    def __getattr__(self, attr: str) -> Any:
        return getattr(get_log_manager().get_logger(self._name), attr)


def get_logger(name: str = "carledger") -> LedgerLogger:
    return _LoggerProxy(name)  # type: ignore[return-value]


def setup_logging(config: LogConfig) -> LogManager:
    """Replace the current manager with one built from ``config``."""
    global _manager
    with _manager_lock:
        if _manager is not None:
            _manager.shutdown()
        _manager = LogManager(config)
        return _manager


def shutdown_logging() -> None:
    global _manager
    with _manager_lock:
        if _manager is not None:
            _manager.shutdown()
            _manager = None
