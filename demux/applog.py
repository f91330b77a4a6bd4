"""Process-wide, level-filtered logging to a text stream."""

from __future__ import annotations

import enum
import io
import json
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, TextIO


class Level(enum.IntEnum):
    """Log severity; OFF sits above every real level and disables output."""

    DEBUG = -4
    INFO = 0
    WARN = 4
    ERROR = 8
    OFF = 100


_LEVEL_NAMES = {
    "off": Level.OFF,
    "error": Level.ERROR,
    "warn": Level.WARN,
    "info": Level.INFO,
    "debug": Level.DEBUG,
}


def parse_level(s: str) -> Level:
    """Convert a level name (case-insensitive) to a Level."""
    try:
        return _LEVEL_NAMES[s.lower()]
    except KeyError:
        raise ValueError(
            f"unknown log level {json.dumps(s, ensure_ascii=False)}: "
            "must be off|error|warn|info|debug"
        ) from None


class _Logger:
    def __init__(self) -> None:
        self.stream: TextIO | None = None
        self.level = Level.OFF
        self.lock = threading.Lock()

    def configure(self, stream: TextIO | None, level: Level) -> None:
        with self.lock:
            if level >= Level.OFF:
                self.stream, self.level = None, Level.OFF
            else:
                self.stream, self.level = stream, level

    def emit(self, level: Level, msg: str, attrs: dict[str, Any]) -> None:
        with self.lock:
            if self.stream is None or level < self.level:
                return
            stamp = datetime.now().astimezone().isoformat(timespec="milliseconds")
            parts = [f"time={stamp}", f"level={level.name}", f"msg={_format_value(msg)}"]
            parts.extend(f"{key}={_format_value(value)}" for key, value in attrs.items())
            self.stream.write(" ".join(parts) + "\n")
            self.stream.flush()


def _format_value(value: Any) -> str:
    text = str(value)
    if text == "" or any(c in ' ="' or not c.isprintable() for c in text):
        return json.dumps(text, ensure_ascii=False)
    return text


_logger = _Logger()


def set_output(stream: TextIO, level: Level) -> None:
    """Send log records at or above level to stream; Level.OFF discards all."""
    _logger.configure(stream, level)


def default_path() -> str:
    """Return ~/.local/share/demux/demux.log."""
    return str(Path.home() / ".local" / "share" / "demux" / "demux.log")


def open_log(path: str | os.PathLike[str], level: Level) -> TextIO:
    """Open the log file for appending and route logging to it.

    Returns the stream the caller should close. With Level.OFF nothing is
    opened and a stream whose close does nothing useful is returned.
    """
    if level >= Level.OFF:
        return io.StringIO()
    Path(path).parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o600)
    stream = os.fdopen(fd, "a", encoding="utf-8")
    set_output(stream, level)
    return stream


def debug(msg: str, **kwargs: Any) -> None:
    _logger.emit(Level.DEBUG, msg, kwargs)


def info(msg: str, **kwargs: Any) -> None:
    _logger.emit(Level.INFO, msg, kwargs)


def warn(msg: str, **kwargs: Any) -> None:
    _logger.emit(Level.WARN, msg, kwargs)


def error(msg: str, **kwargs: Any) -> None:
    _logger.emit(Level.ERROR, msg, kwargs)