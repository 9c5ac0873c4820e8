# protolator_shared/logging_setup.py
from __future__ import annotations

import logging
import logging.handlers
import os
import sys
import time
from pathlib import Path
from typing import Final, Tuple


if os.name == "nt":
    try:
        import colorama
        colorama.just_fix_windows_console()
    except ImportError:
        pass

_COLOURS: Final = {
    logging.DEBUG:    "\033[36m",
    logging.INFO:     "\033[32m",
    logging.WARNING:  "\033[33m",
    logging.ERROR:    "\033[31m",
    logging.CRITICAL: "\033[41m",
}
_RESET: Final = "\033[0m"
_FORMAT: Final = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
_DATEFMT: Final = "%Y-%m-%d %H:%M:%S"


class _ColourFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        colour = _COLOURS.get(record.levelno, "")
        if colour:
            original = record.levelname
            record.levelname = f"{colour}{original}{_RESET}"
            try:
                return super().format(record)
            finally:
                record.levelname = original
        return super().format(record)


class RecentDedupFilter(logging.Filter):
    """
    Drops duplicate (name, level, message) seen within a sliding window.
    Configure window via PROTOLATOR_LOG_DEDUP_MS (default: 250).
    """
    def __init__(self, window_ms: int = 250):
        super().__init__()
        self.window_ms = window_ms
        self._last: dict[Tuple[str, int, str], float] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        key = (record.name, record.levelno, record.getMessage())
        now = time.monotonic() * 1000.0
        last = self._last.get(key)
        self._last[key] = now
        if last is None:
            return True
        return (now - last) > self.window_ms


def _console_handler(level: int, dedup_ms: int, colour: bool) -> logging.Handler:
    # stderr: stdout may carry the converted document
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    formatter_cls = _ColourFormatter if colour else logging.Formatter
    handler.setFormatter(formatter_cls(_FORMAT, datefmt=_DATEFMT))
    if dedup_ms > 0:
        handler.addFilter(RecentDedupFilter(dedup_ms))
    return handler


def _file_handler(level: int, directory: Path, dedup_ms: int) -> logging.Handler:
    directory.mkdir(parents=True, exist_ok=True)
    file_path = directory / f"{logging.getLevelName(level).lower()}.log"
    handler = logging.handlers.RotatingFileHandler(
        file_path,
        backupCount=3,
        maxBytes=5_000_000,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
    if dedup_ms > 0:
        handler.addFilter(RecentDedupFilter(dedup_ms))
    return handler


def env_flag(name: str, default: str = "1") -> bool:
    return str(os.getenv(name, default)).lower() not in ("0", "false", "no", "off")


def setup_logging(
    env: str | None = None,
    log_dir: str | Path = "logs",
    *,
    enable_console: bool | None = None,
    enable_files: bool | None = None,
) -> None:
    """
    Configure the root logger for command-line use.

    *env* is ``"debug"`` (console at DEBUG) or anything else (console at
    WARNING).  Library code never calls this.

    Env overrides:
      LOGGING_LEVEL=debug|quiet
      PROTOLATOR_LOG_CONSOLE=0/1
      PROTOLATOR_LOG_FILES=0/1      (default 0)
      PROTOLATOR_LOG_DEDUP_MS=<int> (default 250; 0 disables)
    """
    env = (env or os.getenv("LOGGING_LEVEL") or "quiet").lower()
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove existing handlers to prevent duplication on reinit
    for h in list(root.handlers):
        root.removeHandler(h)

    use_console = env_flag("PROTOLATOR_LOG_CONSOLE") if enable_console is None else bool(enable_console)
    use_files   = env_flag("PROTOLATOR_LOG_FILES", "0") if enable_files is None else bool(enable_files)
    dedup_ms    = int(os.getenv("PROTOLATOR_LOG_DEDUP_MS", "250"))

    console_level = logging.DEBUG if env == "debug" else logging.WARNING
    if use_console:
        root.addHandler(_console_handler(console_level, dedup_ms, sys.stderr.isatty()))

    if use_files:
        log_dir_path = Path(log_dir)
        for lvl in (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR):
            root.addHandler(_file_handler(lvl, log_dir_path, dedup_ms))

    root.debug(
        "Logging initialised in %s mode - logs dir: %s (console=%s, files=%s, dedup=%sms)",
        env.upper(),
        Path(log_dir).resolve(),
        use_console,
        use_files,
        dedup_ms,
    )


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)
