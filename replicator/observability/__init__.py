from __future__ import annotations

from .logging import JsonFormatter, configure_logging, set_level

__all__ = ["JsonFormatter", "configure_logging", "set_level"]
