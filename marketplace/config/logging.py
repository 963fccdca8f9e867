"""
Logging Configuration for the User Activity Service

Structured logging through structlog, rendered by the stdlib root handler so
that uvicorn and SQLAlchemy records share the same output. Every event carries
the service name and environment; request handlers add a request_id through
structlog contextvars.
"""

import logging
import sys
from typing import Any, Dict, List, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter
from structlog.typing import Processor

from marketplace.config.settings import Settings, get_settings

# Third-party loggers routed through the service handler
_ROUTED_LOGGERS = ["uvicorn", "uvicorn.error", "uvicorn.access"]


def _service_context(settings: Settings) -> Processor:
    """Build a processor stamping the service identity on each event."""
    service = settings.app_name
    environment = settings.app_env

    def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service)
        event_dict.setdefault("env", environment)
        return event_dict

    return add_service_context


def configure_logging(settings: Optional[Settings] = None, log_level: Optional[str] = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        settings: Settings to read level and format from (defaults to cached settings)
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
    """
    settings = settings or get_settings()
    level = (log_level or settings.monitoring.log_level).upper()

    # Convert string level to logging constant
    numeric_level = getattr(logging, level, logging.INFO)

    # Processors shared by structlog events and foreign stdlib records
    shared_processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        _service_context(settings),
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # JSON for log shippers, colored key/value output while developing
    if settings.monitoring.log_format == "json":
        renderer = JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.is_development)

    formatter = ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    # Single stdout handler on the root logger
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(numeric_level)

    # Uvicorn installs its own handlers; replace them so output is not doubled
    for name in _ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = [handler]
        routed.propagate = False
        routed.setLevel(numeric_level)

    # SQL echo is controlled by POSTGRES_ECHO, not the service log level
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=level,
        format=settings.monitoring.log_format,
        sql_echo=settings.database.echo,
    )
