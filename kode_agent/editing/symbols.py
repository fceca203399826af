"""
Symbol tokenizer shared by the fuzzy matcher and the line mapper.

A symbol is a maximal run of ``[A-Za-z0-9_]`` or any single other
character.  Whitespace is either dropped or kept one character per symbol,
so that ``"".join(tokenize(text, ignore_whitespace=False)) == text``.
"""

from __future__ import annotations

import re
from typing import Sequence

from .cache import SymbolCache
from .lcs import UNMATCHED, find_longest_common_subsequence

_SYMBOL_RE = re.compile(r"[A-Za-z0-9_]+|[^A-Za-z0-9_]")


def tokenize(
    text: str,
    ignore_whitespace: bool = True,
    cache: SymbolCache | None = None,
) -> list[str]:
    """Split *text* into symbols."""
    if cache is not None:
        cached = cache.get((text, ignore_whitespace))
        if cached is not None:
            return list(cached)

    symbols = _SYMBOL_RE.findall(text)
    if ignore_whitespace:
        symbols = [s for s in symbols if not s.isspace()]

    if cache is not None:
        cache.put((text, ignore_whitespace), tuple(symbols))
    return symbols


def fuzzy_match_lines(
    lines_a: Sequence[str],
    lines_b: Sequence[str],
    max_index_diff: int = 100,
) -> list[list[int]]:
    """Map every line of A to the lines of B that contain parts of it.

    Meant for texts that differ mostly in formatting and line breaks, so the
    mapping can be many-to-many.  Each inner list is sorted; an empty list
    means the line has no counterpart.
    """
    symbols_a: list[str] = []
    owners_a: list[int] = []
    for line_no, line in enumerate(lines_a):
        for sym in tokenize(line):
            symbols_a.append(sym)
            owners_a.append(line_no)

    symbols_b: list[str] = []
    owners_b: list[int] = []
    for line_no, line in enumerate(lines_b):
        for sym in tokenize(line):
            symbols_b.append(sym)
            owners_b.append(line_no)

    mapping = find_longest_common_subsequence(symbols_a, symbols_b, max_index_diff)

    line_mapping: list[list[int]] = [[] for _ in lines_a]
    for idx, target in enumerate(mapping):
        if target == UNMATCHED:
            continue
        targets = line_mapping[owners_a[idx]]
        line_b = owners_b[target]
        # Symbol matches are monotonic, so only the tail can repeat.
        if not targets or targets[-1] != line_b:
            targets.append(line_b)

    return line_mapping
