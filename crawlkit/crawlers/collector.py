"""
Collector: fetch one document and run every registered extraction rule on it.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from crawlkit.config import HTTPConfig
from crawlkit.selector import DocumentParser, Node, Selector, compile_selector
from crawlkit.utils.errors import CallbackError, CrawlKitError, ParseError
from crawlkit.utils.logging import get_logger
from .http_client import HTTPClient


logger = get_logger(__name__)

RequestCallback = Callable[[requests.Request], None]
NodeCallback = Callable[[requests.Request, requests.Response, Node], None]


@dataclass(frozen=True)
class NodeRule:
    """A compiled selector paired with the callback run for each of its matches."""
    selector: Selector
    callback: NodeCallback


class Collector:
    """
    Fetches documents and dispatches matched nodes to registered callbacks.

    A collector is configured once (``on_request``/``on_node``) and may then be
    used for any number of sequential ``visit`` calls. Registration is not
    thread-safe; give each worker its own collector or finish registering
    before sharing one.
    """

    def __init__(self,
                 http_client: Optional[HTTPClient] = None,
                 parser: Optional[DocumentParser] = None):
        """
        Initialize collector.

        Args:
            http_client: Transport; defaults to an ``HTTPClient`` with default settings
            parser: Markup parser; defaults to ``DocumentParser("html.parser")``
        """
        self.http_client = http_client or HTTPClient()
        self.parser = parser or DocumentParser()
        self._request_hooks: List[RequestCallback] = []
        self._rules: List[NodeRule] = []

    @classmethod
    def with_defaults(cls, config: Optional[HTTPConfig] = None) -> "Collector":
        """Create a collector whose transport and parser follow ``config``."""
        config = config or HTTPConfig()
        return cls(
            http_client=HTTPClient.from_config(config),
            parser=DocumentParser(config.parser_features)
        )

    def on_request(self, callback: RequestCallback) -> None:
        """Register a hook run, in registration order, before every request is sent."""
        self._request_hooks.append(callback)

    def on_node(self, selector: str, callback: NodeCallback) -> None:
        """
        Register a callback for every node matching ``selector``.

        Raises:
            SelectorSyntaxError: If ``selector`` does not compile
        """
        self._rules.append(NodeRule(compile_selector(selector), callback))

    @property
    def rules(self) -> List[NodeRule]:
        return list(self._rules)

    def visit(self, url: str) -> Node:
        """
        Fetch ``url``, parse it, and run every rule against the document.

        Rules run in registration order and, within a rule, in document order.
        The first callback failure stops the visit.

        Returns:
            The parsed document root

        Raises:
            FetchError: If the transport fails
            ParseError: If the body is not usable markup
            CallbackError: If a request hook or node callback raises
        """
        request = requests.Request("GET", url, headers={})

        for hook in self._request_hooks:
            try:
                hook(request)
            except Exception as e:
                raise CallbackError(
                    f"Request hook failed for {url}: {e}",
                    {"url": url, "stage": "request"}
                ) from e

        response = self.http_client.send(request)

        try:
            document = self.parser.parse(response.content)
        except CrawlKitError:
            raise
        except Exception as e:
            raise ParseError(f"Failed to parse {url}: {e}", {"url": url}) from e

        for rule in self._rules:
            for node in rule.selector.select(document):
                try:
                    rule.callback(request, response, node)
                except Exception as e:
                    logger.warning(f"Callback for '{rule.selector.source}' failed on {url}: {e}")
                    raise CallbackError(
                        f"Callback for '{rule.selector.source}' failed: {e}",
                        {"url": url, "stage": "node", "selector": rule.selector.source}
                    ) from e

        logger.debug(f"Visited {url} with {len(self._rules)} rules")
        return document
