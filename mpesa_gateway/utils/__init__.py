"""
Utils Package
Utility functions and helpers
"""

from mpesa_gateway.utils.logger import get_logger, configure_app_logging, RequestLogger
from mpesa_gateway.utils.validators import normalize_phone

__all__ = [
    'get_logger',
    'configure_app_logging',
    'RequestLogger',
    'normalize_phone'
]
