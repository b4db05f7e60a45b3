"""
Pure matching functions and the compiled ``Selector`` type.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .document import Node
from .syntax import ClassPredicate, Compound, IdPredicate, Predicate, TagPredicate


def matches_predicate(predicate: Predicate, node: Node) -> bool:
    """Evaluate one atomic predicate against ``node``. Non-elements never match."""
    if not node.is_element:
        return False
    if isinstance(predicate, TagPredicate):
        return node.tag == predicate.name
    if isinstance(predicate, IdPredicate):
        return node.attrs.get("id") == predicate.value
    if isinstance(predicate, ClassPredicate):
        return predicate.name in node.classes
    raise TypeError(f"Unknown selector predicate: {predicate!r}")


def matches_compound(compound: Compound, node: Node) -> bool:
    return all(matches_predicate(p, node) for p in compound.predicates)


def matches_chain(compounds: Sequence[Compound], node: Node, ancestors: Sequence[Node]) -> bool:
    """
    Check whether ``node`` matches a descendant chain of compounds.

    ``ancestors`` runs from the outermost ancestor to the direct parent. The
    last compound must match ``node``; the earlier ones are matched greedily
    against ancestors from nearest to farthest, which is exact for a chain
    that only uses the descendant relation.
    """
    if not compounds or not matches_compound(compounds[-1], node):
        return False

    index = len(compounds) - 2
    for ancestor in reversed(ancestors):
        if index < 0:
            break
        if matches_compound(compounds[index], ancestor):
            index -= 1
    return index < 0


@dataclass(frozen=True)
class Selector:
    """Compiled selector; build one with ``compile_selector``."""
    source: str
    compounds: Tuple[Compound, ...]

    def matches(self, node: Node, ancestors: Sequence[Node] = ()) -> bool:
        return matches_chain(self.compounds, node, ancestors)

    def select(self, root: Node) -> List[Node]:
        """
        Return every node in ``root``'s subtree (``root`` included) that matches.

        Ancestors are only considered up to ``root``. Results are in document
        order; an empty list means nothing matched.
        """
        results: List[Node] = []
        path: List[Node] = []
        stack = [(root, 0)]

        while stack:
            node, depth = stack.pop()
            del path[depth:]

            if self.matches(node, path):
                results.append(node)

            path.append(node)
            for child in reversed(node.children):
                stack.append((child, depth + 1))

        return results

    def __str__(self) -> str:
        return " ".join(str(c) for c in self.compounds)
