"""Wildcard patterns matched against page names.

Patterns use two wildcards: ``*`` matches any run of characters except
``/`` and ``**`` matches any run of characters including ``/``. Every other
character matches itself, ignoring case.

A pattern is compiled once into a token list and matched by advancing the
set of reachable token positions one character at a time. Matching costs
O(len(page_name) * len(pattern)) whatever the pattern looks like; there is
no backtracking and no regular expression is built from the pattern.
"""

from typing import FrozenSet, List, Tuple

_LITERAL = 0
_STAR = 1
_DOUBLE_STAR = 2

Token = Tuple[int, str]


def _tokenize(pattern: str) -> List[Token]:
    tokens: List[Token] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**", i):
            tokens.append((_DOUBLE_STAR, ""))
            i += 2
        elif pattern[i] == "*":
            tokens.append((_STAR, ""))
            i += 1
        else:
            tokens.append((_LITERAL, pattern[i].casefold()))
            i += 1
    return tokens


class GlobPattern:
    """A compiled wildcard pattern.

    Example:
        >>> GlobPattern("docs/*").matches("docs/a")
        True
        >>> GlobPattern("docs/*").matches("docs/a/b")
        False
        >>> GlobPattern("docs/**").matches("Docs/a/b")
        True
    """

    __slots__ = ("pattern", "_tokens")

    def __init__(self, pattern: str):
        self.pattern = pattern
        self._tokens = _tokenize(pattern)

    def __repr__(self) -> str:
        return f"GlobPattern({self.pattern!r})"

    def _closure(self, states: set) -> FrozenSet[int]:
        """Add the positions reachable by letting wildcards match nothing."""
        pending = list(states)
        while pending:
            position = pending.pop()
            if position < len(self._tokens) and self._tokens[position][0] != _LITERAL:
                following = position + 1
                if following not in states:
                    states.add(following)
                    pending.append(following)
        return frozenset(states)

    def matches(self, page_name: str) -> bool:
        """Return True if the whole page name matches the pattern."""
        tokens = self._tokens
        states = self._closure({0})

        for char in page_name:
            folded = char.casefold()
            following = set()
            for position in states:
                if position == len(tokens):
                    continue
                kind, literal = tokens[position]
                if kind == _LITERAL:
                    if literal == folded:
                        following.add(position + 1)
                elif kind == _DOUBLE_STAR or char != "/":
                    following.add(position)
            if not following:
                return False
            states = self._closure(following)

        return len(tokens) in states
