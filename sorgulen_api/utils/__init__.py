"""Utility modules for the API."""

from .security_logger import security_logger
from .client_ip import get_client_ip

__all__ = [
    'security_logger',
    'get_client_ip',
]
