"""
Structured logging for the slot discovery service.

JSON lines on stdout in every environment except local debugging, where
structlog's console renderer is easier to read. Request-scoped fields
(request_id) come from structlog contextvars bound by the middleware.
"""

import logging
import sys

import structlog
from structlog.stdlib import LoggerFactory

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def setup_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines; False switches to the console renderer
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # One line per scheduling API call is too much at INFO
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Structured logger for a module, usually get_logger(__name__)."""
    return structlog.get_logger(name)


def log_dependency_check(dependency: str, ok: bool, latency_ms: float, error: str = None):
    """Log a readiness check against a remote dependency."""
    logger = get_logger("readiness")

    fields = {"dependency": dependency, "ok": ok, "latency_ms": latency_ms}
    if error:
        fields["error"] = error

    if ok:
        logger.info("Dependency ready", **fields)
    else:
        logger.error("Dependency not ready", **fields)


def log_request(method: str, path: str, status_code: int, duration_ms: float):
    """Log a finished HTTP request; request_id is merged from contextvars."""
    logger = get_logger("http")

    fields = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms,
    }

    if status_code >= 500:
        logger.error("HTTP request errored", **fields)
    elif status_code >= 400:
        logger.warning("HTTP request failed", **fields)
    else:
        logger.info("HTTP request completed", **fields)
