"""
Attribute accessors for matched nodes.
"""

from dataclasses import dataclass

from .document import Node


@dataclass(frozen=True)
class Attribute:
    """Reads one named attribute from nodes, e.g. ``Attribute("value").value(node)``."""
    name: str

    def value(self, node: Node) -> str:
        """Attribute value, or an empty string when the node lacks it."""
        if node is None:
            return ""
        return node.attrs.get(self.name, "")

    def __call__(self, node: Node) -> str:
        return self.value(node)
