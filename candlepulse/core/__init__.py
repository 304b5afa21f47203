"""Core: settings y logging compartidos."""
from candlepulse.core.logging import get_logger, setup_logging
from candlepulse.core.settings import Settings, settings

__all__ = ["Settings", "settings", "get_logger", "setup_logging"]
