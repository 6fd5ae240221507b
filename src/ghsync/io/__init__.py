"""Input/output helpers: configuration and structured logging."""

from .config import Config, load_config
from .logging import StructuredLogger

__all__ = ["Config", "StructuredLogger", "load_config"]
