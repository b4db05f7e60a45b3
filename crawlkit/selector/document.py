"""
Immutable document tree and the markup parser that builds it.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple, Union

from bs4 import BeautifulSoup, Tag
from bs4.element import NavigableString, PreformattedString
from bs4.exceptions import FeatureNotFound, ParserRejectedMarkup

from crawlkit.utils.errors import ConfigurationError, ParseError
from crawlkit.utils.logging import get_logger


logger = get_logger(__name__)


class NodeKind(Enum):
    """Kind of document node."""
    DOCUMENT = "document"
    ELEMENT = "element"
    TEXT = "text"


def _frozen_attrs(attrs: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return MappingProxyType(dict(attrs or {}))


@dataclass(frozen=True, eq=False)
class Node:
    """
    One node of a parsed document.

    Element nodes carry a lower-case ``tag`` and ``attrs``; text nodes carry
    ``text`` and an empty tag. Children are an ordered tuple, so the tree is
    read-only once built and can be shared between threads. Nodes compare by
    identity.
    """
    kind: NodeKind
    tag: str = ""
    attrs: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    children: Tuple["Node", ...] = ()
    text: str = ""

    @classmethod
    def element(
        cls,
        tag: str,
        attrs: Optional[Mapping[str, str]] = None,
        children: Tuple["Node", ...] = ()
    ) -> "Node":
        return cls(NodeKind.ELEMENT, tag.lower(), _frozen_attrs(attrs), tuple(children))

    @classmethod
    def text_node(cls, text: str) -> "Node":
        return cls(NodeKind.TEXT, text=text)

    @classmethod
    def document(cls, children: Tuple["Node", ...] = ()) -> "Node":
        return cls(NodeKind.DOCUMENT, children=tuple(children))

    @property
    def is_element(self) -> bool:
        return self.kind is NodeKind.ELEMENT

    @property
    def is_text(self) -> bool:
        return self.kind is NodeKind.TEXT

    def get(self, name: str, default: str = "") -> str:
        """Attribute value, or ``default`` when absent."""
        return self.attrs.get(name, default)

    @property
    def classes(self) -> Tuple[str, ...]:
        return tuple(self.attrs.get("class", "").split())

    @property
    def first_child(self) -> Optional["Node"]:
        return self.children[0] if self.children else None

    def iter_descendants(self) -> Iterator["Node"]:
        """Yield this node and every descendant in document (pre-order) order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def get_text(self, separator: str = "", strip: bool = False) -> str:
        """Concatenate the text of every descendant text node."""
        parts = [n.text for n in self.iter_descendants() if n.is_text]
        if strip:
            parts = [p.strip() for p in parts]
            parts = [p for p in parts if p]
        return separator.join(parts)

    def __repr__(self) -> str:
        if self.is_text:
            return f"Node(text={self.text[:30]!r})"
        if self.is_element:
            return f"Node(<{self.tag}> attrs={dict(self.attrs)!r}, children={len(self.children)})"
        return f"Node(document, children={len(self.children)})"


class DocumentParser:
    """Parses response bodies into ``Node`` trees using BeautifulSoup."""

    def __init__(self, features: str = "html.parser"):
        """
        Initialize parser.

        Args:
            features: BeautifulSoup tree builder name ("html.parser", "lxml", ...)
        """
        self.features = features

    def parse(self, markup: Union[bytes, str]) -> Node:
        """
        Parse markup into a document tree.

        Args:
            markup: Raw response body

        Returns:
            Document root node

        Raises:
            ParseError: If the body is rejected by the parser or holds no elements
            ConfigurationError: If the requested tree builder is not installed
        """
        try:
            soup = BeautifulSoup(markup, self.features)
        except FeatureNotFound as e:
            raise ConfigurationError(
                f"Markup parser '{self.features}' is not available",
                {"features": self.features}
            ) from e
        except ParserRejectedMarkup as e:
            raise ParseError(f"Markup rejected by parser: {e}") from e

        root = Node.document(self._convert_children(soup))

        if not any(n.is_element for n in root.iter_descendants()):
            raise ParseError(
                "Document contains no markup elements",
                {"length": len(markup)}
            )

        logger.debug(f"Parsed document with {len(root.children)} top-level nodes")
        return root

    def _convert_children(self, tag: Tag) -> Tuple[Node, ...]:
        children = []
        for child in tag.children:
            if isinstance(child, Tag):
                children.append(self._convert_element(child))
            elif isinstance(child, PreformattedString):
                # comments, doctypes, CDATA and processing instructions
                continue
            elif isinstance(child, NavigableString):
                children.append(Node.text_node(str(child)))
        return tuple(children)

    def _convert_element(self, tag: Tag) -> Node:
        attrs = {
            name: " ".join(value) if isinstance(value, list) else value
            for name, value in tag.attrs.items()
        }
        return Node.element(tag.name, attrs, self._convert_children(tag))
