from .clock import Clock, FrozenClock, utcnow
from .config import Settings, get_settings, SERVICE_DESK_GROUP_ID
from .logging import configure_logging

__all__ = [
    "Clock", "FrozenClock", "utcnow",
    "Settings", "get_settings", "SERVICE_DESK_GROUP_ID",
    "configure_logging",
]
