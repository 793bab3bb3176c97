"""
Logging setup.

Modules log through ``logging.getLogger(__name__)``; this only wires the
root handler and level from settings.
"""

from __future__ import annotations

import logging

from warden.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging from settings (idempotent)."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level.upper(), logging.INFO
    )
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("warden").setLevel(level)
