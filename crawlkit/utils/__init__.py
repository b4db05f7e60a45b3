"""
Shared utilities: error taxonomy and logging setup.
"""

from .errors import (
    CrawlKitError,
    ConfigurationError,
    ClosedError,
    SelectorSyntaxError,
    FetchError,
    ParseError,
    CallbackError,
    handle_error,
)
from .logging import setup_logging, get_logger

__all__ = [
    'CrawlKitError',
    'ConfigurationError',
    'ClosedError',
    'SelectorSyntaxError',
    'FetchError',
    'ParseError',
    'CallbackError',
    'handle_error',
    'setup_logging',
    'get_logger',
]
