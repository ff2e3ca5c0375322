"""Shared regex primitives and first-match-wins rule tables.

Patterns default to case-insensitive, multi-line matching, so ``^`` and
``$`` anchor at every line of a block. Compiled objects are cached and
never mutated, so rule tables can be module-level constants.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Callable, Iterator, NamedTuple, Optional, Sequence, Tuple, Union

DEFAULT_FLAGS = re.IGNORECASE | re.MULTILINE

PatternLike = Union[str, "re.Pattern[str]"]


@lru_cache(maxsize=None)
def compile_re(pattern: str, flags: int = DEFAULT_FLAGS) -> "re.Pattern[str]":
    return re.compile(pattern, flags)


def _as_re(pattern: PatternLike) -> "re.Pattern[str]":
    if isinstance(pattern, str):
        return compile_re(pattern)
    return pattern


def partial_match(pattern: PatternLike, text: str) -> Optional["re.Match[str]"]:
    return _as_re(pattern).search(text)


def full_match(pattern: PatternLike, text: str) -> Optional["re.Match[str]"]:
    return _as_re(pattern).fullmatch(text)


def find_all_matches(pattern: PatternLike, text: str) -> Iterator["re.Match[str]"]:
    return _as_re(pattern).finditer(text)


def any_match(patterns: Sequence[PatternLike], text: str) -> bool:
    return any(partial_match(p, text) for p in patterns)


class Rule(NamedTuple):
    patterns: Tuple["re.Pattern[str]", ...]
    handler: Optional[Callable]


def rule(handler: Optional[Callable], *patterns: str) -> Rule:
    return Rule(tuple(compile_re(p) for p in patterns), handler)


def first_rule(rules: Sequence[Rule], text: str) -> Optional[Rule]:
    for r in rules:
        if any_match(r.patterns, text):
            return r
    return None
