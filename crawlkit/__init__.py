"""
crawlkit: bounded worker pool, batching queue and CSS-selector collector
for web-scraping pipelines.
"""

from .concurrent import BatchingQueue, WorkerPool
from .crawlers import Collector, HTTPClient
from .selector import Attribute, DocumentParser, Node, Selector, compile_selector, select
from .sinks import GroupingAggregator
from .utils.errors import (
    CrawlKitError,
    ConfigurationError,
    ClosedError,
    SelectorSyntaxError,
    FetchError,
    ParseError,
    CallbackError,
)

__version__ = "0.1.0"

__all__ = [
    'Attribute',
    'BatchingQueue',
    'CallbackError',
    'ClosedError',
    'Collector',
    'ConfigurationError',
    'CrawlKitError',
    'DocumentParser',
    'FetchError',
    'GroupingAggregator',
    'HTTPClient',
    'Node',
    'ParseError',
    'Selector',
    'SelectorSyntaxError',
    'WorkerPool',
    'compile_selector',
    'select',
]
