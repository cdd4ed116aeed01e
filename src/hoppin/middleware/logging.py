"""Structured logging configuration with structlog."""

import logging

import structlog

from hoppin.config import Settings

SERVICE_NAME = "hoppin-gamification"


def service_context(settings: Settings) -> structlog.types.Processor:
    """Processor stamping every event with the service, version and environment."""
    fields = {
        "service": SERVICE_NAME,
        "version": settings.app_version,
        "environment": settings.environment,
    }

    def add_service_context(
        _logger: object, _method_name: str, event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_context


def setup_logging(settings: Settings) -> None:
    """Configure structlog for JSON or console output.

    Request-scoped fields (``request_id``, ``user_id``) come from
    structlog contextvars bound by the HTTP layer.
    """
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            service_context(settings),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
