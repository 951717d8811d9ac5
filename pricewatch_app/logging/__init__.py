"""
Structured logging setup for the PriceWatch engine.
"""
from .config import configure_from_params, configure_logging, get_logger

__all__ = ["configure_logging", "configure_from_params", "get_logger"]
