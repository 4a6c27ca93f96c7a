"""Loguru setup for the migrator: console, rotating file, Slack alerts on errors."""

import logging
import sys
from pathlib import Path
from typing import Any, Dict

import httpx
from loguru import logger

from migrator.core.config import Settings, settings

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[name]}:{function}:{line} | {message}"

KNOWN_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}

# Third-party loggers routed through loguru instead of their own handlers
INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine")

_configured = False


class InterceptHandler(logging.Handler):
    """Redirect stdlib logs to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_name == "emit":
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def normalize_level(raw: str | None) -> str:
    level = (raw or "INFO").strip().upper()
    level = LEVEL_ALIASES.get(level, level)
    return level if level in KNOWN_LEVELS else "INFO"


def format_alert(record: Dict[str, Any]) -> str:
    """Slack text for one log record; names the component that failed."""
    component = record["extra"].get("name") or "migrator"
    return f"[{record['level'].name}] migrator/{component}:{record['function']}:{record['line']}\n{record['message']}"


class SlackAlertSink:
    """Posts ERROR records to a Slack incoming webhook."""

    def __init__(self, webhook_url: str, timeout: float = 5.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    def __call__(self, message: Any) -> None:
        try:
            httpx.post(self.webhook_url, json={"text": format_alert(message.record)}, timeout=self.timeout)
        except httpx.HTTPError:
            # a failing webhook must not log again
            pass


def configure_logging(config: Settings = settings, force: bool = False) -> None:
    global _configured

    if _configured and not force:
        return
    _configured = True

    level = normalize_level(config.effective_log_level)

    logger.remove()
    logger.configure(extra={"name": "migrator"})
    logger.add(sys.stdout, level=level, format=LOG_FORMAT, backtrace=False, diagnose=False)

    log_dir = Path(config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_dir / config.LOG_FILE,
        level=level,
        format=LOG_FORMAT,
        rotation=config.LOG_ROTATION,
        retention=config.LOG_RETENTION,
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )

    if config.SLACK_WEBHOOK_URL:
        logger.add(SlackAlertSink(config.SLACK_WEBHOOK_URL), level="ERROR", enqueue=True)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [InterceptHandler()]
        stdlib_logger.propagate = False
    # statement echo stays off
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logger.__class__:
    return logger.bind(name=name)


configure_logging()
