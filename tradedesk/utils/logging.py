"""Logging setup."""

import logging

from tradedesk.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def setup_logging():
    """Configure root logging from settings.log_level."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO, including signed query strings
    logging.getLogger("httpx").setLevel(logging.WARNING)
