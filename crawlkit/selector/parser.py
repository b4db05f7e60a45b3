"""
Recursive-descent parser for the selector language.

Grammar::

    selector   := WS* compound (WS+ compound)* WS*
    compound   := tag? id? class*      (at least one part)
    tag        := IDENT
    id         := '#' NAME
    class      := '.' NAME

``IDENT`` may not start with a digit; ``NAME`` may. Both consist of ASCII letters,
digits, ``-`` and ``_``.
"""

import string
from functools import lru_cache
from typing import List, Optional

from crawlkit.utils.errors import SelectorSyntaxError
from .matcher import Selector
from .syntax import ClassPredicate, Compound, IdPredicate, Predicate, TagPredicate


_NAME_START_CHARS = frozenset(string.ascii_letters + "_")
_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "-_")


def _is_name_char(char: str) -> bool:
    return char in _NAME_CHARS


class _SelectorParser:
    """Single-use parser over one selector string."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def _peek(self) -> Optional[str]:
        return self.text[self.pos] if self.pos < len(self.text) else None

    def _error(self, message: str) -> SelectorSyntaxError:
        return SelectorSyntaxError(
            f"{message} at position {self.pos} in selector {self.text!r}",
            selector=self.text,
            position=self.pos
        )

    def _skip_whitespace(self) -> bool:
        start = self.pos
        while self._peek() is not None and self._peek().isspace():
            self.pos += 1
        return self.pos > start

    def parse_selector(self) -> Selector:
        self._skip_whitespace()
        if self._peek() is None:
            raise self._error("Empty selector")

        compounds = [self.parse_compound()]
        while self._peek() is not None:
            if not self._skip_whitespace():
                raise self._error(f"Unexpected character {self._peek()!r}")
            if self._peek() is None:
                break
            compounds.append(self.parse_compound())

        return Selector(source=self.text, compounds=tuple(compounds))

    def parse_compound(self) -> Compound:
        predicates: List[Predicate] = []

        char = self._peek()
        if char is not None and char in _NAME_START_CHARS:
            predicates.append(TagPredicate(self.parse_name().lower()))

        if self._peek() == "#":
            self.pos += 1
            predicates.append(IdPredicate(self.parse_name()))

        while self._peek() == ".":
            self.pos += 1
            predicates.append(ClassPredicate(self.parse_name()))

        if self._peek() == "#":
            raise self._error("Unexpected '#'; a compound holds at most one id, placed before its classes")
        if not predicates:
            char = self._peek()
            if char is None:
                raise self._error("Empty compound selector")
            raise self._error(f"Unexpected character {char!r}")

        return Compound(tuple(predicates))

    def parse_name(self) -> str:
        start = self.pos
        while self._peek() is not None and _is_name_char(self._peek()):
            self.pos += 1
        if self.pos == start:
            raise self._error("Expected a name")
        return self.text[start:self.pos]


@lru_cache(maxsize=256)
def _compile_cached(text: str) -> Selector:
    return _SelectorParser(text).parse_selector()


def compile_selector(text: str) -> Selector:
    """
    Compile a selector string such as ``"select#deputado option"``.

    Compiled selectors are immutable and cached by source text.

    Raises:
        SelectorSyntaxError: If the string is not a valid selector
    """
    if not isinstance(text, str):
        raise SelectorSyntaxError(f"Selector must be a string, got {type(text).__name__}")
    return _compile_cached(text)
