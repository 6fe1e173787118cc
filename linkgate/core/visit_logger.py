"""Visit access logging using Loguru's built-in async features."""

import os

from loguru import logger

from linkgate.core.config import settings

# Bound logger for visit records, configured lazily
visit_access_logger = None
_visit_sink_ids = []


def _is_visit_record(record) -> bool:
    return record["extra"].get("event_type") == "visit"


def setup_visit_logging():
    """Configure the visit access logger with enqueued (non-blocking) sinks."""
    global visit_access_logger

    visit_access_logger = logger.bind(event_type="visit")

    if not settings.VISIT_LOGGING_ENABLED or _visit_sink_ids:
        return visit_access_logger

    os.makedirs(settings.LOG_DIR, exist_ok=True)

    _visit_sink_ids.append(logger.add(
        f"{settings.LOG_DIR}/visits.log",
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | IP:{extra[ip]} | Domain:{extra[domain_id]} | "
            "Code:{extra[code]} | {extra[http_status]} {extra[block_reason]} | {message}"
        ),
        rotation=settings.LOG_ROTATION,
        retention=settings.LOG_RETENTION,
        enqueue=True,
        level="INFO",
        backtrace=False,
        diagnose=False,
        filter=_is_visit_record,
    ))

    _visit_sink_ids.append(logger.add(
        f"{settings.LOG_DIR}/visits.json",
        serialize=True,
        enqueue=True,
        level="INFO",
        filter=_is_visit_record,
    ))

    return visit_access_logger


def log_visit(
    code: str,
    domain_id: int = None,
    ip_address: str = None,
    http_status: int = 0,
    block_reason: str = None,
    user_agent: str = None,
):
    """
    Log a resolved visit using Loguru's non-blocking logging.

    Args:
        code: The short code that was requested
        domain_id: Domain the code was resolved on, if any
        ip_address: The client's IP address
        http_status: Status code of the response that was sent
        block_reason: Reason code when the visit was blocked
        user_agent: Optional user agent string
    """
    if visit_access_logger is None:
        setup_visit_logging()

    visit_access_logger.bind(
        ip=ip_address or "unknown",
        domain_id=domain_id if domain_id is not None else "-",
        code=code,
        http_status=http_status,
        block_reason=block_reason or "-",
        user_agent=user_agent or "",
    ).info(f"Visit resolved: {code}")
