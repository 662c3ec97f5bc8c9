"""
Loguru setup for GenAI Studio.

Everything goes to the console and ``app.log``; errors are duplicated into
``errors.log``. Three channels get their own rotating file so they can be read
without the surrounding noise:

- ``request``: one START/END/ERROR line per HTTP request
- ``performance``: timings of ingestion, retrieval and chat turns
- ``workflow``: Inngest function and news-analysis stage progress

Channel loggers are ``app_logger.bind(channel=...)``; a record without a
channel only reaches the general sinks.
"""

import sys
from pathlib import Path
from typing import Dict

from fastapi import Request
from loguru import logger

from genai_studio.config.settings import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
CHANNEL_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"

# channel -> (file name, rotation, retention)
CHANNEL_SINKS: Dict[str, tuple] = {
    "request": ("requests.log", "20 MB", "14 days"),
    "performance": ("performance.log", "10 MB", "7 days"),
    "workflow": ("workflows.log", "10 MB", "14 days"),
}


def _channel_filter(channel: str):
    return lambda record: record["extra"].get("channel") == channel


class LoguruConfig:
    """Loguru configuration class for the application."""

    def __init__(self, logs_dir: str = "logs"):
        self.logs_dir = Path(logs_dir)
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    def setup_logger(self, log_level: str = "INFO") -> None:
        logger.remove()

        logger.add(
            sys.stdout,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )
        logger.add(
            self.logs_dir / "app.log",
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            encoding="utf-8",
        )
        logger.add(
            self.logs_dir / "errors.log",
            format=FILE_FORMAT,
            level="ERROR",
            rotation="5 MB",
            retention="30 days",
            compression="zip",
            encoding="utf-8",
            backtrace=True,
        )

        for channel, (filename, rotation, retention) in CHANNEL_SINKS.items():
            logger.add(
                self.logs_dir / filename,
                format=CHANNEL_FORMAT,
                level="INFO",
                rotation=rotation,
                retention=retention,
                compression="zip",
                encoding="utf-8",
                filter=_channel_filter(channel),
            )


loguru_config = LoguruConfig(settings.LOGS_DIR)
loguru_config.setup_logger(settings.LOG_LEVEL)

app_logger = logger
request_logger = logger.bind(channel="request")
performance_logger = logger.bind(channel="performance")
workflow_logger = logger.bind(channel="workflow")


def _client_ip(request: Request):
    return request.client.host if request.client else None


def log_request_start(request: Request) -> None:
    request_logger.info(
        f"START {request.method} {request.url.path} "
        f"client={_client_ip(request)} query={request.query_params}"
    )


def log_request_end(request: Request, status_code: int, process_time: float) -> None:
    request_logger.info(f"END {request.method} {request.url.path} - {status_code} ({process_time:.4f}s)")


def log_request_error(request: Request, error: Exception, process_time: float) -> None:
    request_logger.error(
        f"ERROR {request.method} {request.url.path} - {type(error).__name__}: {error} ({process_time:.4f}s)"
    )


def log_performance(operation: str, duration: float, **context) -> None:
    """Record how long ``operation`` took; ``context`` is appended as key=value pairs."""
    details = " ".join(f"{key}={value}" for key, value in context.items())
    performance_logger.info(f"{operation} completed in {duration:.4f}s {details}".rstrip())
