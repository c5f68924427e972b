# backend/smartcity/services/__init__.py

import logging

from .services import (
    initialize_services,
    shutdown_services,
    get_traffic_service,
    health_check,
)

logger = logging.getLogger(__name__)
logger.debug("smartcity.services package initialized.")

__all__ = [
    "initialize_services",
    "shutdown_services",
    "get_traffic_service",
    "health_check",
]
