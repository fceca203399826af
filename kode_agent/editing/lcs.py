"""
Bounded longest-common-subsequence aligner.

The DP table only covers cells with ``|i - j| <= max_index_diff``, so the
cost is O(N * K) rather than O(N * M).  Both the score table and the move
table live in flat arrays addressed as ``row * width + (j - i + K)``.
"""

from __future__ import annotations

import math
from array import array
from typing import Hashable, Sequence

UNMATCHED = -1

# Backtracking moves
_NONE = 0
_DIAG = 1
_LEFT = 2
_UP = 3


def max_index_diff_for_budget(length: int, budget: int) -> int:
    """Return the band half-width affordable for *length* symbols."""
    if length <= 0:
        return budget
    return max(1, math.ceil(budget / length))


def find_longest_common_subsequence(
    symbols_a: Sequence[Hashable],
    symbols_b: Sequence[Hashable],
    max_index_diff: int = 100,
) -> list[int]:
    """Align *symbols_a* against *symbols_b*.

    Returns a list with one entry per element of *symbols_a*: the index of
    the matched element in *symbols_b*, or ``UNMATCHED``.  Matched indices
    are strictly increasing.

    Backtracking starts from the best cell in the last row (the end of
    sequence A), since callers need a partner for every position of A, not
    a complete alignment of B.
    """
    n = len(symbols_a)
    m = len(symbols_b)
    mapping = [UNMATCHED] * n

    if n == 0 or m == 0:
        return mapping

    # Band half-width is kept within [1, max(n, m)].
    k = max(1, min(max_index_diff, max(n, m)))
    width = 2 * k + 1

    scores = array("i", [0]) * ((n + 1) * width)
    moves = bytearray((n + 1) * width)

    for i in range(1, n + 1):
        a_sym = symbols_a[i - 1]
        row = i * width
        prev_row = (i - 1) * width
        min_j = max(1, i - k)
        max_j = min(m, i + k)
        prev_min_j = max(1, i - 1 - k)
        prev_max_j = min(m, i - 1 + k)

        for j in range(min_j, max_j + 1):
            cell = row + j - i + k

            if a_sym == symbols_b[j - 1]:
                prev_j = j - 1
                if prev_min_j <= prev_j <= prev_max_j:
                    scores[cell] = scores[prev_row + prev_j - (i - 1) + k] + 1
                else:
                    scores[cell] = 1
                moves[cell] = _DIAG
                continue

            left = scores[cell - 1] if j - 1 >= min_j else 0
            if prev_min_j <= j <= prev_max_j:
                up = scores[prev_row + j - (i - 1) + k]
            else:
                up = 0

            if left >= up:
                scores[cell] = left
                moves[cell] = _LEFT
            else:
                scores[cell] = up
                moves[cell] = _UP

    # Best end position in the last row; first maximum wins.
    best = 0
    j = m
    last_row = n * width
    for j_check in range(max(1, n - k), min(m, n + k) + 1):
        score = scores[last_row + j_check - n + k]
        if score > best:
            best = score
            j = j_check

    i = n
    while i > 0 and j > 0:
        shifted = j - i + k
        if shifted < 0 or shifted >= width:
            break

        move = moves[i * width + shifted]
        if move == _DIAG:
            mapping[i - 1] = j - 1
            i -= 1
            j -= 1
        elif move == _LEFT:
            j -= 1
        elif move == _UP:
            i -= 1
        else:
            break

    return mapping
