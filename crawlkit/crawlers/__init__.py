"""
Document collection: HTTP transport and the rule-driven collector.
"""

from .http_client import HTTPClient
from .collector import Collector, NodeRule

__all__ = [
    'Collector',
    'HTTPClient',
    'NodeRule',
]
