"""
Selector engine: document model, selector compiler and matcher.

Supports tag, ``#id`` and ``.class`` predicates combined into compounds, and
whitespace-separated descendant chains::

    selector = compile_selector("section#cota table.js-chart--pie tbody tr")
    rows = selector.select(document)
"""

from typing import List, Union

from .attribute import Attribute
from .document import DocumentParser, Node, NodeKind
from .matcher import Selector, matches_chain, matches_compound, matches_predicate
from .parser import compile_selector
from .syntax import ClassPredicate, Compound, IdPredicate, Predicate, TagPredicate


def select(selector: Union[str, Selector], root: Node) -> List[Node]:
    """Compile ``selector`` if needed and return its matches under ``root``."""
    if isinstance(selector, str):
        selector = compile_selector(selector)
    return selector.select(root)


__all__ = [
    'Attribute',
    'ClassPredicate',
    'Compound',
    'DocumentParser',
    'IdPredicate',
    'Node',
    'NodeKind',
    'Predicate',
    'Selector',
    'TagPredicate',
    'compile_selector',
    'matches_chain',
    'matches_compound',
    'matches_predicate',
    'select',
]
