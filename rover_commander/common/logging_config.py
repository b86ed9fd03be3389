from __future__ import annotations

import logging
import os
import sys
import threading
import weakref
from typing import Protocol

# Below DEBUG: one line per HTTP request to the rover
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Also lets httpx's own request log through when set
TRACE_ENABLED = str(os.getenv("ROVER_TRACE", "0")).lower() in ("1", "true", "yes", "on")

_LEVEL_COLORS = {
    TRACE: "\033[32m",
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[37m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[41m",
}
_RESET = "\033[0m"
_DIM = "\033[2m"

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
EVENT_LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
TIME_FORMAT = "%H:%M:%S"


class AnsiColorFormatter(logging.Formatter):
    """Console formatter: dimmed clock, coloured level name."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(fmt=CONSOLE_FORMAT, datefmt=TIME_FORMAT)
        self.colored = colored and sys.stderr.isatty()

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        ts = super().formatTime(record, datefmt)
        return f"{_DIM}{ts}{_RESET}" if self.colored else ts

    def format(self, record: logging.LogRecord) -> str:
        if not self.colored or record.levelno not in _LEVEL_COLORS:
            return super().format(record)
        plain = record.levelname
        record.levelname = f"{_LEVEL_COLORS[record.levelno]}{plain:<7}{_RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


class LogSink(Protocol):
    def push(self, line: str) -> None: ...


class EventLogSinks:
    """Weak set of ui.log widgets currently showing the operator event log."""

    def __init__(self) -> None:
        self._refs: set[weakref.ref] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._refs)

    def add(self, sink: LogSink) -> None:
        with self._lock:
            self._refs.add(weakref.ref(sink))

    def discard(self, sink: LogSink) -> None:
        with self._lock:
            self._refs.discard(weakref.ref(sink))

    def push(self, line: str) -> None:
        with self._lock:
            for ref in list(self._refs):
                sink = ref()
                try:
                    if sink is None:
                        raise ReferenceError
                    sink.push(line)
                except Exception:
                    # Tab closed before detach ran
                    self._refs.discard(ref)


event_log_sinks = EventLogSinks()


class NiceGuiLogHandler(logging.Handler):
    """Mirror records into every attached event log widget."""

    def __init__(self, sinks: EventLogSinks = event_log_sinks, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.sinks = sinks
        self.setFormatter(logging.Formatter(EVENT_LOG_FORMAT, TIME_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        if not len(self.sinks):
            return
        try:
            self.sinks.push(self.format(record))
        except Exception:
            self.handleError(record)


def attach_ui_log(log_widget: LogSink) -> None:
    event_log_sinks.add(log_widget)


def detach_ui_log(log_widget: LogSink) -> None:
    event_log_sinks.discard(log_widget)


def configure_logging(
    level: int = logging.INFO, use_color: bool = True, add_ui_handler: bool = True
) -> logging.Logger:
    """
    Set up the root logger once:
      - console handler on stderr at ``level``
      - event log handler at INFO, so the page log stays useful under -q
    Calling it again only adjusts levels.
    """
    root = logging.getLogger()
    root.setLevel(min(level, logging.INFO) if add_ui_handler else level)

    console = next((h for h in root.handlers if type(h) is logging.StreamHandler), None)
    if console is None:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(AnsiColorFormatter(colored=use_color))
        root.addHandler(console)
    console.setLevel(level)

    if add_ui_handler and not any(isinstance(h, NiceGuiLogHandler) for h in root.handlers):
        root.addHandler(NiceGuiLogHandler())

    logging.getLogger("httpx").setLevel(TRACE if TRACE_ENABLED else logging.WARNING)
    return root
