"""Structured logging configuration for repo-sign.

Log events are dotted names (``resolver.key_excluded``) with keyword context.
Key material is never logged; only key IDs, source locators and counts.

Environment Variables:
    REPO_SIGN_LOG_FORMAT: "json" for JSON output, "console" for colored output
    REPO_SIGN_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR)
"""

import logging
import os
import sys
from typing import Optional

import structlog
from structlog.typing import Processor

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"

ENV_LOG_FORMAT = "REPO_SIGN_LOG_FORMAT"
ENV_LOG_LEVEL = "REPO_SIGN_LOG_LEVEL"

_logging_configured = False
_structlog_configured = False
_handler: Optional[logging.Handler] = None


def _get_shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _configure_structlog() -> None:
    global _structlog_configured

    structlog.configure(
        processors=[
            *_get_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _structlog_configured = True


def configure_logging(
    log_format: Optional[str] = None,
    log_level: Optional[str] = None,
    force: bool = False,
) -> None:
    """Configure structlog and install a repo-sign handler on the root logger.

    Handlers installed by the host application are left in place; only the
    handler from a previous call is replaced.

    Args:
        log_format: "json" or "console". Defaults to env var or "console"
        log_level: Minimum log level. Defaults to env var or "INFO"
        force: Reconfigure even if already configured
    """
    global _logging_configured, _handler

    if _logging_configured and not force:
        return

    log_format = (log_format or os.environ.get(ENV_LOG_FORMAT, DEFAULT_LOG_FORMAT)).lower()
    log_level = (log_level or os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL)).upper()

    _configure_structlog()

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_get_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    if _handler is not None:
        root_logger.removeHandler(_handler)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    _handler = handler
    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger.

    Only structlog itself is set up here; the standard library root logger is
    untouched until ``configure_logging`` is called.
    """
    if not _structlog_configured:
        _configure_structlog()

    return structlog.stdlib.get_logger(name)
