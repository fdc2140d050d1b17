from __future__ import annotations

import logging
from typing import Optional

from .config import Settings, get_settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
HANDLER_NAME = "servicedesk"


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    root = logging.getLogger("servicedesk")
    root.setLevel(settings.log_level.upper())

    if not any(
        isinstance(h, logging.StreamHandler) and h.get_name() == HANDLER_NAME
        for h in root.handlers
    ):
        handler = logging.StreamHandler()
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
