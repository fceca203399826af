"""
Fuzzy snippet locator — finds the region of a file that best matches a
snippet, without editing anything.

Lines are compared through 32-bit FNV-1a hashes.  Among all alignments of
maximal LCS length, the one spanning the fewest document lines wins, so a
tight contiguous region is preferred over a sparse one.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .cache import LineHashCache

logger = logging.getLogger(__name__)

_FNV_OFFSET_BASIS = 0x811C9DC5
_FNV_PRIME = 0x01000193
_MASK_32 = 0xFFFFFFFF


@dataclass(frozen=True)
class SnippetLocation:
    start: int  # 0-based, inclusive
    end: int    # 0-based, inclusive


@dataclass(frozen=True)
class QualifiedSnippetLocation(SnippetLocation):
    match_ratio: float = 0.0


@dataclass(frozen=True)
class _LcsResult:
    max_lcs_length: int
    min_substring_length: float
    end_index: int


def fast_hash(text: str, ignore_leading_whitespace: bool = False) -> int:
    """32-bit FNV-1a hash of *text*."""
    if ignore_leading_whitespace:
        text = text.lstrip()
    value = _FNV_OFFSET_BASIS
    for ch in text:
        value ^= ord(ch)
        value = (value * _FNV_PRIME) & _MASK_32
    return value


def _hash_lines(
    lines: list[str],
    ignore_leading_whitespace: bool,
    cache: LineHashCache | None,
) -> list[int]:
    if cache is None:
        return [fast_hash(line, ignore_leading_whitespace) for line in lines]

    hashes = []
    for line in lines:
        key = (line, ignore_leading_whitespace)
        value = cache.get(key)
        if value is None:
            value = fast_hash(line, ignore_leading_whitespace)
            cache.put(key, value)
        hashes.append(value)
    return hashes


def _compute_lcs(document: list[int], pattern: list[int]) -> _LcsResult:
    """Row-by-row LCS tracking the shortest document span per cell."""
    m = len(pattern)
    inf = math.inf

    prev_len = [0] * (m + 1)
    prev_span = [inf] * (m + 1)
    prev_span[0] = 0
    cur_len = [0] * (m + 1)
    cur_span = [inf] * (m + 1)

    max_lcs_length = 0
    min_substring_length = inf
    end_index = -1

    for i, doc_hash in enumerate(document, start=1):
        cur_len[0] = 0
        cur_span[0] = 0

        for j in range(1, m + 1):
            if doc_hash == pattern[j - 1]:
                cur_len[j] = prev_len[j - 1] + 1
                cur_span[j] = prev_span[j - 1] + 1
            else:
                top_len = prev_len[j]
                left_len = cur_len[j - 1]
                if top_len > left_len:
                    cur_len[j] = top_len
                    cur_span[j] = prev_span[j] + 1
                elif top_len < left_len:
                    cur_len[j] = left_len
                    cur_span[j] = cur_span[j - 1]
                else:
                    cur_len[j] = top_len
                    cur_span[j] = min(prev_span[j] + 1, cur_span[j - 1])

        if m and (
            cur_len[m] > max_lcs_length
            or (cur_len[m] == max_lcs_length and cur_span[m] < min_substring_length)
        ):
            max_lcs_length = cur_len[m]
            min_substring_length = cur_span[m]
            end_index = i

        prev_len, cur_len = cur_len, prev_len
        prev_span, cur_span = cur_span, prev_span

    return _LcsResult(max_lcs_length, min_substring_length, end_index)


def _both_results(
    content: str,
    pattern: str,
    cache: LineHashCache | None,
) -> tuple[_LcsResult, _LcsResult, int]:
    file_lines = content.split("\n")
    pattern_lines = pattern.strip().split("\n")

    results = []
    for ignore_indent in (False, True):
        results.append(_compute_lcs(
            _hash_lines(file_lines, ignore_indent, cache),
            _hash_lines(pattern_lines, ignore_indent, cache),
        ))
    return results[0], results[1], len(pattern_lines)


def _to_location(result: _LcsResult) -> tuple[int, int] | None:
    if result.max_lcs_length == 0:
        return None
    start = result.end_index - int(result.min_substring_length)
    return start, result.end_index - 1


def locate_snippet(
    content: str,
    pattern: str,
    cache: LineHashCache | None = None,
) -> SnippetLocation | None:
    """Locate the shortest line range of *content* best matching *pattern*.

    The match is computed with and without leading indentation; the exact
    indentation result wins unless ignoring indentation matches strictly
    more lines.
    """
    exact, ignore_indent, _ = _both_results(content, pattern, cache)
    best = exact if exact.max_lcs_length >= ignore_indent.max_lcs_length else ignore_indent

    location = _to_location(best)
    if location is None:
        logger.debug("[SnippetLocator] No line of the snippet occurs in the file")
        return None
    return SnippetLocation(*location)


def locate_snippet_with_quality(
    content: str,
    pattern: str,
    min_match_ratio: float = 0.5,
    prefer_exact_indentation: bool = True,
    cache: LineHashCache | None = None,
) -> QualifiedSnippetLocation | None:
    """Locate *pattern* and report the fraction of its lines that matched.

    Returns ``None`` when the ratio falls below *min_match_ratio*.
    """
    exact, ignore_indent, pattern_len = _both_results(content, pattern, cache)
    exact_ratio = exact.max_lcs_length / pattern_len if pattern_len else 0.0
    ignore_ratio = ignore_indent.max_lcs_length / pattern_len if pattern_len else 0.0

    # Exact indentation is kept while within 90% of the indent-blind score.
    if prefer_exact_indentation and exact_ratio >= ignore_ratio * 0.9:
        best, ratio = exact, exact_ratio
    elif ignore_ratio > exact_ratio:
        best, ratio = ignore_indent, ignore_ratio
    else:
        best, ratio = exact, exact_ratio

    if ratio < min_match_ratio:
        return None

    location = _to_location(best)
    if location is None:
        return None
    return QualifiedSnippetLocation(location[0], location[1], match_ratio=ratio)


def find_all_snippet_occurrences(
    content: str,
    pattern: str,
    max_occurrences: int = 10,
    cache: LineHashCache | None = None,
) -> list[SnippetLocation]:
    """Repeatedly locate *pattern*, resuming after each found region."""
    results: list[SnippetLocation] = []
    file_lines = content.split("\n")
    search_start = 0

    while len(results) < max_occurrences and search_start < len(file_lines):
        remaining = "\n".join(file_lines[search_start:])
        location = locate_snippet(remaining, pattern, cache)
        if location is None:
            break
        found = SnippetLocation(location.start + search_start, location.end + search_start)
        results.append(found)
        search_start = found.end + 1

    return results
