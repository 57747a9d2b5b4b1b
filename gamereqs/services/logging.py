"""Logging configuration for the requirements engine."""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

MB = 1024 * 1024

# file name, minimum level (None = configured level), max bytes, backups
LOG_FILES: tuple[tuple[str, int | None, int, int], ...] = (
    ("requirements.log", None, 10 * MB, 5),
    ("errors.log", logging.ERROR, 5 * MB, 3),
)

SHARED_PROCESSORS: list[Any] = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


class LoggingService:
    """Configures structlog on top of the standard library logging module.

    Console output is human-readable in development and JSON otherwise; log
    files are always JSON, one object per line.
    """

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Path | None = None,
        quiet: bool = False,
    ) -> None:
        """
        Args:
            log_level: The minimum log level to capture
            log_dir: Directory for log files (None for console only)
            quiet: Send console logs to stderr so stdout carries only command output
        """
        self.log_level = log_level.upper()
        self.log_dir = log_dir
        self.quiet = quiet
        self.is_development = os.getenv("ENVIRONMENT", "development") == "development"

    @property
    def numeric_level(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)

    def configure(self) -> None:
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(self.numeric_level)

        # httpx logs every request at INFO; the HTTP client service already does
        logging.getLogger("httpx").setLevel(max(self.numeric_level, logging.WARNING))

        for handler in self._handlers():
            handler.setFormatter(logging.Formatter("%(message)s"))
            root_logger.addHandler(handler)

        structlog.configure(
            processors=[*SHARED_PROCESSORS, self._renderer()],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _handlers(self) -> list[logging.Handler]:
        console = logging.StreamHandler(sys.stderr if self.quiet else sys.stdout)
        console.setLevel(self.numeric_level)
        handlers: list[logging.Handler] = [console]

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            for filename, level, max_bytes, backups in LOG_FILES:
                handler = logging.handlers.RotatingFileHandler(
                    filename=self.log_dir / filename,
                    maxBytes=max_bytes,
                    backupCount=backups,
                    encoding="utf-8",
                )
                handler.setLevel(level if level is not None else self.numeric_level)
                handlers.append(handler)

        return handlers

    def _renderer(self) -> Any:
        if self.is_development and self.log_dir is None:
            return structlog.dev.ConsoleRenderer(colors=not self.quiet)
        return structlog.processors.JSONRenderer()

    def get_logger(self, name: str | None = None) -> structlog.stdlib.BoundLogger:
        return structlog.stdlib.get_logger(name)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    environment: str | None = None,
    quiet: bool = False,
) -> LoggingService:
    """Configure application logging.

    Args:
        log_level: Minimum log level to capture
        log_dir: Directory for log files (None for console only)
        environment: Environment name (development/production)
        quiet: Keep stdout free of log lines

    Returns:
        Configured LoggingService instance
    """
    if environment:
        os.environ["ENVIRONMENT"] = environment

    service = LoggingService(log_level=log_level, log_dir=log_dir, quiet=quiet)
    service.configure()
    return service
