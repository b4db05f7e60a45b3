"""
Custom exception classes and error handling utilities.
"""

from typing import Optional, Dict, Any
import traceback


class CrawlKitError(Exception):
    """Base exception for all crawlkit errors."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CrawlKitError):
    """Exception raised for invalid construction parameters or configuration."""
    pass


class ClosedError(CrawlKitError):
    """Exception raised when an operation is attempted after shutdown."""
    pass


class SelectorSyntaxError(CrawlKitError):
    """Exception raised for a malformed selector string."""
    
    def __init__(self, message: str, selector: str = "", position: int = -1):
        super().__init__(message, {"selector": selector, "position": position})
        self.selector = selector
        self.position = position


class FetchError(CrawlKitError):
    """Exception raised when the transport fails to fetch a document."""
    pass


class ParseError(CrawlKitError):
    """Exception raised when a response body cannot be parsed into a document."""
    pass


class CallbackError(CrawlKitError):
    """Exception raised when a registered collector callback fails."""
    pass


def handle_error(
    error: Exception,
    logger,
    context: Optional[Dict[str, Any]] = None,
    reraise: bool = True
) -> None:
    """
    Handle and log errors with context information.
    
    Args:
        error: The exception that occurred
        logger: Logger instance to use for logging
        context: Additional context information
        reraise: Whether to reraise the exception after logging
    """
    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **(context or {})
    }
    
    if isinstance(error, CrawlKitError):
        error_context.update(error.details)
    
    logger.error(f"Error occurred: {error_context}")
    logger.debug(f"Error traceback: {traceback.format_exc()}")
    
    if reraise:
        raise error
