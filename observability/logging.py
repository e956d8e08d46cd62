from __future__ import annotations
import logging
import sys
import json
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, Optional
from datetime import datetime, timezone
from pathlib import Path

CONTEXT_PREFIX = "ctx_"

# Third-party loggers that are chatty at INFO during a crawl
NOISY_LOGGERS = ("uvicorn", "httpx", "openai", "aiohttp", "trafilatura", "charset_normalizer")

_STANDARD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key[len(CONTEXT_PREFIX):]: value
        for key, value in record.__dict__.items()
        if key.startswith(CONTEXT_PREFIX)
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line; bound run context is nested under `context`."""

    def __init__(self, service_name: str = "sitescribe"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        context = _record_context(record)
        if context:
            entry["context"] = context

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith(CONTEXT_PREFIX):
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable single line with `key=value` context appended."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        line = f"{timestamp} {record.levelname:<7} {record.name}: {record.getMessage()}"

        context = _record_context(record)
        if context:
            line += "  [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"

        if self.use_colors and record.levelname in self.COLORS:
            line = f"{self.COLORS[record.levelname]}{line}{self.RESET}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    service_name: str = "sitescribe",
    log_file: Optional[str] = None,
    use_json: bool = False,
    use_colors: bool = True,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Configure the root logger for the CLI or the API process.

    Args:
        level: Root log level name
        service_name: Value of the `service` field in JSON output
        log_file: Optional path; the file always receives JSON lines
        use_json: JSON lines on stdout instead of console lines
        use_colors: ANSI colours for console lines
        quiet: Logger names pinned to WARNING
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(numeric_level)
    console.setFormatter(JSONFormatter(service_name) if use_json else ConsoleFormatter(use_colors))
    root.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(JSONFormatter(service_name))
        root.addHandler(file_handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging_from_settings(settings, verbose: bool = False) -> None:
    """Apply `log_level` / `log_json` from Settings; verbose forces DEBUG."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        use_json=settings.log_json,
        use_colors=sys.stdout.isatty() and not settings.log_json,
    )


class StructuredLogger:
    """Logger that carries run context (url, user, stage) on every record."""

    def __init__(self, name: str, **context):
        self.logger = logging.getLogger(name)
        self.context = context

    def bind(self, **context) -> "StructuredLogger":
        """New logger with `context` layered over the current one."""
        return StructuredLogger(self.logger.name, **{**self.context, **context})

    def _extra(self, context: Dict[str, Any]) -> Dict[str, Any]:
        return {f"{CONTEXT_PREFIX}{k}": v for k, v in {**self.context, **context}.items()}

    def _log(self, level: int, message: str, **context) -> None:
        self.logger.log(level, message, extra=self._extra(context))

    def info(self, message: str, **context) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context) -> None:
        self._log(logging.WARNING, message, **context)

    def error(self, message: str, **context) -> None:
        self._log(logging.ERROR, message, **context)

    @contextmanager
    def timed(self, message: str, **context) -> Iterator[Dict[str, Any]]:
        """Log `message` with its duration when the block exits.

        The yielded dict is merged into the context of the closing record, so
        the block can attach counts it only knows at the end. A block that
        raises is logged at ERROR and the exception propagates.
        """
        result: Dict[str, Any] = {}
        start = time.perf_counter()
        try:
            yield result
        except Exception as e:
            self.error(f"{message} failed", duration=round(time.perf_counter() - start, 3),
                       error=str(e), **context)
            raise
        self.info(message, duration=round(time.perf_counter() - start, 3), **{**context, **result})


def get_structured_logger(name: str, **context) -> StructuredLogger:
    return StructuredLogger(name, **context)
