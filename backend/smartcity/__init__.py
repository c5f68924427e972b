# backend/smartcity/__init__.py
# Smart City traffic congestion backend.
import logging

logger = logging.getLogger(__name__)
logger.debug("smartcity package initialized.")
