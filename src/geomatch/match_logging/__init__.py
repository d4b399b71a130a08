from .configure import setup_logging, setup_logging_from_settings
from .context import log_context, log_driver_context, log_trip_context

__all__ = [
    "log_context",
    "log_driver_context",
    "log_trip_context",
    "setup_logging",
    "setup_logging_from_settings",
]
