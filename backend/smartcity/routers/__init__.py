# backend/smartcity/routers/__init__.py

import logging

# Routers are imported by module, e.g. `from smartcity.routers import traffic`

logger = logging.getLogger(__name__)
logger.debug("smartcity.routers package initialized.")
