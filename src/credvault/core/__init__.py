# Credvault - Core Module
#
# Shared functionality for the vault and the terminal session:
# - Logging
# - Configuration

from .log import EventType, configure_logging, get_logger

__all__ = [
    # Logging
    "EventType",
    "configure_logging",
    "get_logger",
]
