"""
Selector syntax tree.

A selector is a chain of compounds joined by the descendant relation; each
compound is a conjunction of atomic predicates.
"""

from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class TagPredicate:
    """Element tag equals ``name``."""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class IdPredicate:
    """Element ``id`` attribute equals ``value``."""
    value: str

    def __str__(self) -> str:
        return f"#{self.value}"


@dataclass(frozen=True)
class ClassPredicate:
    """Element ``class`` attribute contains ``name``."""
    name: str

    def __str__(self) -> str:
        return f".{self.name}"


Predicate = Union[TagPredicate, IdPredicate, ClassPredicate]


@dataclass(frozen=True)
class Compound:
    """Conjunction of predicates that a single element must satisfy."""
    predicates: Tuple[Predicate, ...]

    def __str__(self) -> str:
        return "".join(str(p) for p in self.predicates)
