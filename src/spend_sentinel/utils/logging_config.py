"""Package logging setup.

All modules log through children of the ``spend_sentinel`` logger, which
writes to a log file and, when requested, to stderr. The CLI keeps stderr
quiet by default so rich output is not interleaved with log lines.
"""

import logging
import sys
import time
from pathlib import Path

PACKAGE_LOGGER = "spend_sentinel"

DEFAULT_LOG_FILE = "spend_sentinel.log"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Context keys whose values stay out of log files (notes and balances are personal)
MASKED_KEYS = frozenset({"note", "balance", "upi_id", "card_number", "account_number"})


def _masked(context: dict[str, object]) -> dict[str, object]:
    return {key: "***" if key.lower() in MASKED_KEYS else value for key, value in context.items()}


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    console_output: bool = True,
) -> logging.Logger:
    """Configure the package logger.

    Safe to call more than once: existing handlers are replaced, which the
    CLI relies on when switching to the level from settings.yaml.

    Args:
        level: Level name; unknown names fall back to INFO.
        log_file: Log file path (default: spend_sentinel.log in the cwd).
        console_output: Also log to stderr.

    Returns:
        The configured package logger.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(numeric_level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = []

    log_path = Path(log_file) if log_file is not None else Path(DEFAULT_LOG_FILE)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    if console_output:
        handlers.append(logging.StreamHandler(sys.stderr))

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Return the package child logger for a module name."""
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


class LogContext:
    """Log the start, duration and failure of a pipeline operation.

    Example:
        with LogContext(logger, "batch process", records=120):
            ...
    """

    def __init__(self, logger: logging.Logger, operation: str, **context: object):
        self.logger = logger
        self.operation = operation
        self.context = _masked(context)
        self._started = 0.0

    def __enter__(self) -> "LogContext":
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        self.logger.debug(f"Starting {self.operation}" + (f" ({details})" if details else ""))
        self._started = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> bool:
        elapsed_ms = (time.perf_counter() - self._started) * 1000
        if exc_type is not None:
            self.logger.error(
                f"{self.operation} failed after {elapsed_ms:.0f} ms: {exc_type.__name__}: {exc_val}",
                exc_info=True,
            )
        else:
            self.logger.debug(f"Finished {self.operation} in {elapsed_ms:.0f} ms")
        return False
