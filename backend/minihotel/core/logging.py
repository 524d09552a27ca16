from __future__ import annotations

import logging
import sys

from loguru import logger

from minihotel.core.config import get_settings


class InterceptHandler(logging.Handler):
    """Routes standard ``logging`` records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str | None = None, *, json: bool | None = None) -> None:
    settings = get_settings()
    level = (level or settings.log_level).upper()
    serialize = settings.log_json if json is None else json

    logger.remove()
    logger.add(sys.stdout, level=level, serialize=serialize, backtrace=False)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    # uvicorn/httpx ship their own handlers
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx"):
        named = logging.getLogger(name)
        named.handlers = [InterceptHandler()]
        named.propagate = False


__all__ = ["InterceptHandler", "setup_logging"]
