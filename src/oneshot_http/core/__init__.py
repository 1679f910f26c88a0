"""
Infrastructure shared by the request pipeline.

This package intentionally stays dependency-free apart from the standard
library. It exposes the logging helpers used by every pipeline stage.
"""

from .logging import StructuredLogFormatter, configure_logging, get_logger, log_with_extra

__all__ = [
    "StructuredLogFormatter",
    "configure_logging",
    "get_logger",
    "log_with_extra",
]
