"""Middleware registration."""

from fastapi import FastAPI

from hoppin.config import Settings
from hoppin.middleware.error_handler import setup_error_handlers
from hoppin.middleware.logging import setup_logging
from hoppin.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and request-id propagation."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
