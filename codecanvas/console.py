"""
Append-only console log shown next to each result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable


logger = logging.getLogger("codecanvas.console")


class LogLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    DEBUG = "debug"


_LOGGING_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.DEBUG: logging.DEBUG,
}


@dataclass(frozen=True, slots=True)
class ConsoleLogEntry:
    message: str
    level: LogLevel = LogLevel.INFO
    timestamp: datetime = field(default_factory=datetime.now)

    def format(self) -> str:
        return f"[{self.timestamp.strftime('%H:%M:%S')}] {self.message}"


class ConsoleLog:
    """
    Ordered, append-only log of pipeline events.

    Entries are mirrored to the ``codecanvas.console`` logger and, when a
    listener is set, streamed to the host as they are appended.
    """

    def __init__(self, listener: Callable[[ConsoleLogEntry], None] | None = None) -> None:
        self._entries: list[ConsoleLogEntry] = []
        self.listener = listener

    @property
    def entries(self) -> tuple[ConsoleLogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def log(self, message: str, level: LogLevel = LogLevel.INFO) -> ConsoleLogEntry:
        entry = ConsoleLogEntry(message=message, level=level)
        self._entries.append(entry)
        logger.log(_LOGGING_LEVELS[level], message)
        if self.listener is not None:
            self.listener(entry)
        return entry

    def info(self, message: str) -> ConsoleLogEntry:
        return self.log(message, LogLevel.INFO)

    def success(self, message: str) -> ConsoleLogEntry:
        return self.log(message, LogLevel.SUCCESS)

    def error(self, message: str) -> ConsoleLogEntry:
        return self.log(message, LogLevel.ERROR)

    def debug(self, message: str) -> ConsoleLogEntry:
        return self.log(message, LogLevel.DEBUG)

    def clear(self) -> None:
        self._entries.clear()

    def text(self) -> str:
        return "\n".join(entry.format() for entry in self._entries)
