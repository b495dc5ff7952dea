"""Loguru setup for duochat.

All output goes through Loguru: a colourised stdout sink, plus a rotating
file sink when ``LOG_FILE`` is set.  Records from the standard ``logging``
module (uvicorn, httpx, the LangChain/OpenAI clients) are forwarded into
the same sinks by :class:`LoguruHandler`.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from ..config.app_config import AppConfig, get_app_config

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

# Library loggers that install their own handlers; they are emptied so
# their records propagate to the root bridge instead of printing twice.
BRIDGED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx", "openai")


class LoguruHandler(logging.Handler):
    """Forward standard ``logging`` records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except (KeyError, ValueError):
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _sink_options(app_config: AppConfig) -> dict[str, Any]:
    return {
        "level": app_config.log_level,
        "format": LOG_FORMAT,
        "backtrace": True,
        # Variable values in tracebacks can include prompts and keys
        "diagnose": app_config.app_debug,
    }


def setup_logging(app_config: AppConfig | None = None) -> "loguru.Logger":
    """Install duochat's Loguru sinks and bridge stdlib logging.

    Safe to call more than once (every :func:`~duochat.main.create_app`
    does): existing sinks are replaced, not duplicated.

    Parameters
    ----------
    app_config: AppConfig, optional
        Source of ``LOG_LEVEL``, ``LOG_FILE`` and ``APP_DEBUG``.  Defaults
        to the cached environment configuration.
    """
    app_config = app_config or get_app_config()
    logger.remove()

    logger.add(sys.stdout, colorize=True, **_sink_options(app_config))
    if app_config.log_file:
        Path(app_config.log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            app_config.log_file,
            rotation="10 MB",
            retention="30 days",
            compression="zip",
            **_sink_options(app_config),
        )

    logging.basicConfig(handlers=[LoguruHandler()], level=logging.WARNING, force=True)
    for name in BRIDGED_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.handlers = []
        library_logger.propagate = True

    logger.debug(
        "Logging ready (env={}, level={}, file={})",
        app_config.app_env,
        app_config.log_level,
        app_config.log_file or "-",
    )
    return logger
