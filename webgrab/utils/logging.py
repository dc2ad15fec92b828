"""
Structured logging for webgrab.

Console output at the configured level, plus a rotating debug log file.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog

LOG_FILE_NAME = "webgrab.log"
LOG_FILE_MAX_BYTES = 1_000_000
LOG_FILE_BACKUPS = 3


def setup_logging(
    level: str = "INFO",
    format_type: str = "console",
    log_dir: str | Path | None = None,
) -> Path | None:
    """
    Configure structured logging for the crawl.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_type: Output format ('json' or 'console').
        log_dir: Optional directory for ``webgrab.log``, which always
            receives DEBUG output. Created if missing.

    Returns:
        Path of the log file, if one was configured.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if format_type == "json":
        console_renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(colors=True)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                console_renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )
    root.addHandler(console_handler)

    log_file: Path | None = None
    if log_dir is not None:
        log_path = Path(log_dir).expanduser()
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / LOG_FILE_NAME
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.format_exc_info,
                    structlog.processors.JSONRenderer(),
                ],
                foreign_pre_chain=shared_processors,
            )
        )
        root.addHandler(file_handler)

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return log_file


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__).

    Returns:
        A bound structured logger.
    """
    return structlog.get_logger(name)


class CrawlerLogger:
    """
    Logger for crawl operations with pre-defined event types.
    """

    def __init__(self, name: str = "webgrab"):
        self._logger = get_logger(name)
        self._context: dict[str, Any] = {}

    def bind(self, **kwargs: Any) -> "CrawlerLogger":
        """Bind context to all subsequent log calls."""
        new_logger = CrawlerLogger.__new__(CrawlerLogger)
        new_logger._logger = self._logger.bind(**kwargs)
        new_logger._context = {**self._context, **kwargs}
        return new_logger

    def entry_dequeued(self, uri: str, depth_remaining: int, **kwargs: Any) -> None:
        """Log a frontier entry handed to the scheduler."""
        self._logger.debug(
            "entry_dequeued",
            event_type="frontier",
            uri=uri,
            depth_remaining=depth_remaining,
            **kwargs,
        )

    def fetch_start(self, uri: str, **kwargs: Any) -> None:
        """Log the start of a fetch operation."""
        self._logger.debug(
            "fetch_start",
            event_type="fetch",
            uri=uri,
            **kwargs,
        )

    def fetch_success(
        self,
        uri: str,
        content_type: str | None,
        references: int,
        **kwargs: Any,
    ) -> None:
        """Log a successful fetch."""
        self._logger.info(
            "fetch_success",
            event_type="fetch",
            uri=uri,
            content_type=content_type,
            references=references,
            **kwargs,
        )

    def fetch_error(
        self,
        uri: str,
        error: str,
        error_type: str,
        **kwargs: Any,
    ) -> None:
        """Log a fetch error."""
        self._logger.error(
            "fetch_error",
            event_type="fetch",
            uri=uri,
            error=error,
            error_type=error_type,
            **kwargs,
        )

    def child_admitted(self, uri: str, parent: str, **kwargs: Any) -> None:
        """Log a child added to the frontier queue."""
        self._logger.debug("child_admitted", event_type="frontier", uri=uri, parent=parent, **kwargs)

    def child_referenced(self, uri: str, parent: str, **kwargs: Any) -> None:
        """Log a child that would be queued but is only reported."""
        self._logger.info("child_referenced", event_type="frontier", uri=uri, parent=parent, **kwargs)

    def child_rejected(self, uri: str, parent: str, **kwargs: Any) -> None:
        """Log a child not added to the frontier queue."""
        self._logger.debug("child_rejected", event_type="frontier", uri=uri, parent=parent, **kwargs)

    def children_summary(
        self,
        parent: str,
        admitted: int,
        duplicates: int,
        rejected: int,
        referenced: int,
        queue_size: int,
        **kwargs: Any,
    ) -> None:
        """Log the admission counts for one page."""
        self._logger.info(
            "children_summary",
            event_type="frontier",
            parent=parent,
            admitted=admitted,
            duplicates=duplicates,
            rejected=rejected,
            referenced=referenced,
            queue_size=queue_size,
            **kwargs,
        )

    def invalid_reference(self, href: str, base_uri: str, reason: str, **kwargs: Any) -> None:
        """Log a dropped reference."""
        self._logger.warning(
            "invalid_reference",
            event_type="frontier",
            href=href,
            base_uri=base_uri,
            reason=reason,
            **kwargs,
        )

    def drain_reached(self, batch: int, submitted: int, **kwargs: Any) -> None:
        """Log that every task of a batch has completed."""
        self._logger.debug(
            "drain_reached",
            event_type="scheduler",
            batch=batch,
            submitted=submitted,
            **kwargs,
        )

    def crawl_progress(
        self,
        pages_crawled: int,
        pages_failed: int,
        queue_size: int,
        seen: int,
        **kwargs: Any,
    ) -> None:
        """Log crawl progress."""
        self._logger.info(
            "crawl_progress",
            event_type="progress",
            pages_crawled=pages_crawled,
            pages_failed=pages_failed,
            queue_size=queue_size,
            seen=seen,
            **kwargs,
        )

    def crawl_summary(self, stats: dict[str, Any], **kwargs: Any) -> None:
        """Log the final crawl statistics."""
        self._logger.info("crawl_summary", event_type="progress", **stats, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message."""
        self._logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        self._logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self._logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log an error message."""
        self._logger.error(message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an error message with the active exception's traceback."""
        self._logger.exception(message, **kwargs)
