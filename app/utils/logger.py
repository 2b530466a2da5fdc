"""
Logging configuration.

Imported for its side effect by the application entrypoint.
"""

import logging
import sys

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=LOG_FORMAT,
    stream=sys.stdout,
)

# httpx logs every request at INFO; the network provider polls every second
logging.getLogger("httpx").setLevel(logging.WARNING)
