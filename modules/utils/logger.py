"""
Structured logging with session event logging.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure structured logging for the application."""
    # Compact console format
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    # Verbose format for log file
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
    date_format = "%H:%M:%S"

    level_value = getattr(logging, str(level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level_value)

    # Remove existing handlers
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(level_value)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    # File handler (rotating)
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class SessionLogger:
    """Records session events for the end-of-run report.

    Subscribe the handlers to the event bus:
        bus.subscribe(Events.REP_COUNTED, session_logger.on_rep)
        bus.subscribe(Events.SESSION_COMPLETE, session_logger.on_complete)
    """

    def __init__(self):
        self.logger = logging.getLogger("session_events")
        self._history = []

    def on_rep(self, exercise=None, count=0, goal=0, **_):
        self._record("rep", exercise, count=count, goal=goal)
        self.logger.info("Rep: %-10s | %d/%d", exercise, count, goal)

    def on_complete(self, exercise=None, count=0, summary=None, **_):
        summary = summary or {}
        self._record("complete", exercise, count=count,
                     elapsed_s=summary.get("elapsed_s"))
        self.logger.info(
            "Complete: %-10s | Reps: %d | Time: %s",
            exercise, count,
            f"{summary['elapsed_s']:.1f}s" if summary.get("elapsed_s") is not None else "N/A",
        )

    def on_abandoned(self, exercise=None, count=0, **_):
        self._record("abandoned", exercise, count=count)
        self.logger.info("Abandoned: %-10s | Reps: %d", exercise, count)

    def _record(self, kind, exercise, **data):
        entry = {"timestamp": time.time(), "event": kind, "exercise": exercise}
        entry.update(data)
        self._history.append(entry)

    def get_history(self, last_n=None):
        """Get recent session events."""
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()

    @property
    def completed_sessions(self):
        return sum(1 for e in self._history if e["event"] == "complete")


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
