"""
Utility modules for the viewer.
"""

from proxy_viewer.utils.config import Config
from proxy_viewer.utils.url import normalize_url, resolve_reference, validate_url
from proxy_viewer.utils.logging import setup_logging, log_exception, PerformanceLogger

__all__ = [
    'Config',
    'normalize_url',
    'resolve_reference',
    'validate_url',
    'setup_logging',
    'log_exception',
    'PerformanceLogger',
]
