"""Logging setup for importbench.

Everything the benchmark reports while it runs is a log line under the
``importbench`` namespace: endpoint banners from the store client, the
"Have imported N batches for id W." progress line every 100 batches, the
per-worker "Times for N batches" statistics and the coordinator's totals.

Workers share one handler. Its lock keeps lines from concurrent workers
whole, and the human format carries millisecond timestamps so progress
lines from different workers can be ordered. Records logged with
``extra={"worker_id": ...}`` are tagged ``[worker N]`` in human output and
carry a ``worker_id`` key in JSON output.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import IO

_HUMAN_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)-8s] %(name)s%(worker_tag)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _WorkerTagFilter(logging.Filter):
    """Set ``record.worker_tag`` for the human format.

    `` [worker N]`` for records logged with a ``worker_id`` extra, else empty.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        worker_id = getattr(record, "worker_id", None)
        record.worker_tag = f" [worker {worker_id}]" if worker_id is not None else ""
        return True


class _JsonFormatter(logging.Formatter):
    """One-line JSON log formatter.

    Emits objects with keys: timestamp, level, logger, message. Records
    logged with ``extra={"worker_id": ...}`` also carry ``worker_id``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            A single-line JSON string.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        worker_id = getattr(record, "worker_id", None)
        if worker_id is not None:
            log_entry["worker_id"] = worker_id
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Configure and return the root importbench logger.

    Each CLI command calls this once per invocation. A second call keeps
    the existing handler and its format, but applies the new level and
    points the handler at the new stream (``sys.stderr`` as it is now),
    so repeated in-process invocations never write to a stale stream.

    Args:
        level: Logging level; DEBUG adds one line per store request.
        json_format: Emit one-line JSON records instead of human-readable
            lines. Only honored when the handler is first created.
        stream: Output stream. Defaults to ``sys.stderr``.

    Returns:
        The configured ``importbench`` logger.
    """
    logger = logging.getLogger("importbench")
    logger.setLevel(level)
    target = stream or sys.stderr

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
            # The previous stream may already be closed, so no flush
            if isinstance(handler, logging.StreamHandler) and handler.stream is not target:
                with handler.lock:
                    handler.stream = target
        return logger

    handler = logging.StreamHandler(target)
    handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(_HUMAN_FORMAT, datefmt=_DATE_FORMAT)
        handler.addFilter(_WorkerTagFilter())

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``importbench`` namespace.

    Args:
        name: Logger name, e.g. ``"engine.worker"`` gives
            ``importbench.engine.worker``.

    Returns:
        The child logger.
    """
    return logging.getLogger(f"importbench.{name}")
