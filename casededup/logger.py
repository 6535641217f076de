"""
Structured logging for the deduplication engine.

Console and daily-file output plus in-process counters for searches,
recorded decisions and failures. Identity values (names, ids, phone
numbers) are never logged, only field names and counts.
"""

import json
import logging
import os
import sys
from datetime import datetime
from functools import partialmethod
from pathlib import Path
from typing import Dict, Optional

CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _level(name: str) -> int:
    return getattr(logging, name.upper())


def _console_handler(level: str) -> logging.Handler:
    # stderr keeps CLI stdout clean for JSON output
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(_level(level))
    handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(log_dir: Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"casededup_{datetime.now().strftime('%Y%m%d')}.log"
    handler = logging.FileHandler(log_file, encoding='utf-8')
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


class DeduplicationMetrics:
    """Counters for one process; read through ``as_dict``."""

    def __init__(self):
        self.searches_run = 0
        self.candidates_returned = 0
        self.decisions_recorded = 0
        self.decisions_by_type: Dict[str, int] = {}
        self.errors_by_type: Dict[str, int] = {}

    def as_dict(self) -> dict:
        return {
            "searches_run": self.searches_run,
            "candidates_returned": self.candidates_returned,
            "decisions_recorded": self.decisions_recorded,
            "decisions_by_type": self.decisions_by_type,
            "errors_by_type": self.errors_by_type,
        }


class StructuredLogger:
    """
    Logger with JSON context and deduplication counters.

    ``logger.info("Search done", fields=["phone"])`` writes
    ``Search done | Context: {"fields": ["phone"]}``.
    """

    def __init__(
        self,
        name: str = "casededup",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Args:
            name: Logger name
            level: Log level for the logger and console (the file always gets DEBUG)
            log_dir: Directory for daily log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Write logs to stderr
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(_level(level))
        self.logger.handlers.clear()
        self.logger.propagate = False
        self._counters = DeduplicationMetrics()

        if enable_console:
            self.logger.addHandler(_console_handler(level))
        if enable_file:
            self.logger.addHandler(_file_handler(log_dir or Path("logs")))

    @property
    def metrics(self) -> dict:
        return self._counters.as_dict()

    def _log(self, level: int, message: str, **context):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    debug = partialmethod(_log, logging.DEBUG)
    info = partialmethod(_log, logging.INFO)
    warning = partialmethod(_log, logging.WARNING)
    error = partialmethod(_log, logging.ERROR)
    critical = partialmethod(_log, logging.CRITICAL)

    def set_level(self, level: str):
        """Change the logger and console level; file handlers keep DEBUG."""
        self.logger.setLevel(_level(level))
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(_level(level))

    def record_search(self, candidates: int):
        self._counters.searches_run += 1
        self._counters.candidates_returned += candidates

    def record_decision(self, decision: str):
        by_type = self._counters.decisions_by_type
        self._counters.decisions_recorded += 1
        by_type[decision] = by_type.get(decision, 0) + 1

    def record_error(self, code: str):
        errors = self._counters.errors_by_type
        errors[code] = errors.get(code, 0) + 1

    def get_metrics(self) -> dict:
        """Counters plus the average number of candidates per search."""
        metrics = self.metrics
        searches = metrics["searches_run"]
        metrics["avg_candidates_per_search"] = (
            round(metrics["candidates_returned"] / searches, 2) if searches else 0
        )
        return metrics

    def log_metrics_summary(self):
        """Write the counters at DEBUG level (file only unless the console is at DEBUG)."""
        metrics = self.get_metrics()

        self.debug(
            f"Searches: {metrics['searches_run']} "
            f"({metrics['avg_candidates_per_search']} candidates avg)"
        )
        self.debug(f"Decisions recorded: {metrics['decisions_recorded']}")
        for decision, count in metrics["decisions_by_type"].items():
            self.debug(f"  {decision}: {count}")
        for code, count in metrics["errors_by_type"].items():
            self.debug(f"  error {code}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(name: str = "casededup", level: Optional[str] = None, **kwargs) -> StructuredLogger:
    """
    Return the process-wide logger, creating it on first use.

    Level and log directory default to DEDUP_LOG_LEVEL and DEDUP_LOG_DIR;
    later calls ignore their arguments.
    """
    global _global_logger

    if _global_logger is None:
        if "log_dir" not in kwargs and os.getenv("DEDUP_LOG_DIR"):
            kwargs["log_dir"] = Path(os.getenv("DEDUP_LOG_DIR"))
        _global_logger = StructuredLogger(
            name=name,
            level=level or os.getenv("DEDUP_LOG_LEVEL", "INFO"),
            **kwargs,
        )
    return _global_logger


def reset_logger():
    """Drop the process-wide logger so the next get_logger() builds a fresh one."""
    global _global_logger
    _global_logger = None
