"""
Utility package for Wrapped-So-Far: logging setup and formatting helpers
"""

from .logger import setup_logging, get_logger, configure_from_settings, OperationLogger
from .helpers import (
    format_duration,
    format_duration_ms,
    format_hour_label,
    format_percentage,
    format_timestamp,
    truncate_string,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'configure_from_settings',
    'OperationLogger',
    'format_duration',
    'format_duration_ms',
    'format_hour_label',
    'format_percentage',
    'format_timestamp',
    'truncate_string',
]
