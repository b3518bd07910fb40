from __future__ import annotations

import enum
import sys
from typing import TextIO


class LogLevel(enum.IntEnum):
    OFF = 0
    ERROR = 1
    WARN = 2
    INFO = 3
    DEBUG = 4


class Logger:
    """
    Prefixed diagnostics written to a text stream (stderr by default).

    A logger belongs to one Project and is handed to components through `project.logger`; there is
    no process-wide logging state.
    """

    def __init__(
        self,
        *,
        level: LogLevel = LogLevel.INFO,
        stream: TextIO | None = None,
        prefix: str = "projsynth",
    ) -> None:
        self.level = level
        self._stream = stream
        self._prefix = prefix

    @classmethod
    def off(cls) -> Logger:
        return cls(level=LogLevel.OFF)

    def _emit(self, level: LogLevel, message: str) -> None:
        if self.level < level or level == LogLevel.OFF:
            return
        stream = self._stream if self._stream is not None else sys.stderr
        label = "WARNING" if level == LogLevel.WARN else level.name
        print(f"[{self._prefix}] {label}: {message}", file=stream)

    def debug(self, message: str) -> None:
        self._emit(LogLevel.DEBUG, message)

    def info(self, message: str) -> None:
        self._emit(LogLevel.INFO, message)

    def warn(self, message: str) -> None:
        self._emit(LogLevel.WARN, message)

    def error(self, message: str) -> None:
        self._emit(LogLevel.ERROR, message)


__all__ = ["LogLevel", "Logger"]
