"""
Loguru setup for the application log.

Visit records carry an ``event_type`` extra and go to their own sinks
(see visit_logger); everything else lands in the application log file,
and on stderr when DEBUG is on.
"""

import logging
import os
import sys

from loguru import logger

from linkgate.core.config import settings

# Standard library loggers forwarded to loguru
ROUTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi", "sqlalchemy.engine", "botocore")

REQUEST_LEVEL = "REQUEST"


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _is_application_record(record) -> bool:
    return "event_type" not in record["extra"]


def _application_file_sink() -> dict:
    options = {
        "sink": os.path.join(settings.LOG_DIR, settings.LOG_FILENAME),
        "level": settings.LOG_LEVEL.upper(),
        "rotation": settings.LOG_ROTATION,
        "retention": settings.LOG_RETENTION,
        "compression": "gz",
        "filter": _is_application_record,
    }
    if settings.LOG_JSON:
        options["serialize"] = True
    else:
        options["format"] = settings.LOG_FORMAT
    return options


def setup_logging():
    """Install the loguru sinks, the REQUEST level and the stdlib intercept."""
    os.makedirs(settings.LOG_DIR, exist_ok=True)

    logger.remove()

    if settings.DEBUG:
        logger.add(
            sys.stderr,
            level=settings.LOG_LEVEL.upper(),
            format=settings.LOG_FORMAT,
            backtrace=True,
            diagnose=True,
        )

    logger.add(**_application_file_sink())

    try:
        logger.level(REQUEST_LEVEL)
    except ValueError:
        logger.level(REQUEST_LEVEL, no=25, color="<green>")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True
    for name in ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = [InterceptHandler()]
        routed.propagate = False

    return logger
