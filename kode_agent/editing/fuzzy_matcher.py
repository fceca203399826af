"""
Fuzzy diff resolver — reconciles a model-proposed ``old -> new`` edit with
the text that is actually in the file.

The three strings are split into symbols and ``old`` is aligned against
both ``original`` and ``new``.  Walking ``old`` left to right, every symbol
falls into one of these cases:

(a) ``original`` holds symbols that ``old`` lacks: the model's context
    drifted, so they are absorbed into both rebuilt strings;
(b) ``new`` holds symbols that ``old`` lacks: a pure insertion;
(c) the symbol is common to all three strings;
(d) ``old`` and ``original`` agree but ``new`` dropped it: a deletion;
(e) ``old`` and ``new`` agree but ``original`` lacks it: the symbol is noise
    from the model and is skipped;
(f) the symbol is anchored nowhere: refuse.

Every diff span has to be isolated by a streak of symbols matching in all
three strings, otherwise a deletion/insertion and a drift could overlap and
be satisfied in contradictory ways.  A refusal is always returned instead
of a guess.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from .cache import SymbolCache
from .lcs import UNMATCHED, find_longest_common_subsequence, max_index_diff_for_budget
from .symbols import tokenize

logger = logging.getLogger(__name__)

DEFAULT_COMPUTE_BUDGET = 100 * 1000


class MatchFailReason(enum.Enum):
    """Why a fuzzy replacement was refused."""

    EXCEEDS_MAX_DIFF = "ExceedsMaxDiff"
    EXCEEDS_MAX_DIFF_RATIO = "ExceedsMaxDiffRatio"
    FIRST_SYMBOL_OF_OLD_STR_NOT_IN_ORIGINAL = "FirstSymbolOfOldStrNotInOriginal"
    LAST_SYMBOL_OF_OLD_STR_NOT_IN_ORIGINAL = "LastSymbolOfOldStrNotInOriginal"
    SYMBOL_IN_OLD_NOT_IN_ORIGINAL_OR_NEW = "SymbolInOldNotInOriginalOrNew"
    AMBIGUOUS_REPLACEMENT = "AmbiguousReplacement"


@dataclass(frozen=True)
class FuzzyReplacement:
    """Adjusted strings that occur literally in the original excerpt."""
    old_str: str
    new_str: str


@dataclass(frozen=True)
class FuzzyThresholds:
    """Acceptance limits for one fuzzy-matching call site."""
    max_diff: int = 20
    max_diff_ratio: float = 0.2
    min_match_streak: int = 3
    compute_budget: int = DEFAULT_COMPUTE_BUDGET


DEFAULT_THRESHOLDS = FuzzyThresholds()
# The edit orchestrator tolerates far less drift than a raw resolve.
EDIT_THRESHOLDS = FuzzyThresholds(max_diff=5)


def fuzzy_match_replacement_strings(
    original_str: str,
    old_str: str,
    new_str: str,
    max_diff: int = DEFAULT_THRESHOLDS.max_diff,
    max_diff_ratio: float = DEFAULT_THRESHOLDS.max_diff_ratio,
    min_all_match_streak_between_diffs: int = DEFAULT_THRESHOLDS.min_match_streak,
    compute_budget_iterations: int = DEFAULT_COMPUTE_BUDGET,
    cache: SymbolCache | None = None,
) -> FuzzyReplacement | MatchFailReason:
    """Rebuild *old_str*/*new_str* so that *old_str* occurs in *original_str*.

    Parameters
    ----------
    original_str:
        Excerpt of the file that should contain ``old_str``.
    old_str, new_str:
        The proposed replacement.
    max_diff:
        Maximum number of symbols that may differ between ``old_str`` and
        ``original_str``.
    max_diff_ratio:
        Maximum ``differences / len(old symbols)``.
    min_all_match_streak_between_diffs:
        Symbols that must match in all three strings between two diffs.
    compute_budget_iterations:
        DP cell budget for each alignment.

    Returns
    -------
    FuzzyReplacement | MatchFailReason
        The rebuilt pair, or the reason the match was refused.
    """
    old_symbols = tokenize(old_str, ignore_whitespace=False, cache=cache)
    original_symbols = tokenize(original_str, ignore_whitespace=False, cache=cache)
    new_symbols = tokenize(new_str, ignore_whitespace=False, cache=cache)

    if not old_symbols:
        return MatchFailReason.FIRST_SYMBOL_OF_OLD_STR_NOT_IN_ORIGINAL

    max_index_diff = max_index_diff_for_budget(len(old_symbols), compute_budget_iterations)
    old_to_original = find_longest_common_subsequence(
        old_symbols, original_symbols, max_index_diff
    )
    old_to_new = find_longest_common_subsequence(old_symbols, new_symbols, max_index_diff)

    # An edit must be anchored to real content at both ends.
    if old_to_original[0] == UNMATCHED:
        return MatchFailReason.FIRST_SYMBOL_OF_OLD_STR_NOT_IN_ORIGINAL
    if old_to_original[-1] == UNMATCHED:
        return MatchFailReason.LAST_SYMBOL_OF_OLD_STR_NOT_IN_ORIGINAL

    modified_old: list[str] = []
    modified_new: list[str] = []
    original_index = 0
    old_index = 0
    new_index = 0
    num_diff = 0
    original_first_match = old_to_original[0]
    # Start both streaks high so a diff right at the beginning is allowed.
    original_streak = len(old_symbols)
    new_streak = len(old_symbols)
    min_streak = min_all_match_streak_between_diffs

    while old_index < len(old_symbols):
        in_original = old_to_original[old_index]
        in_new = old_to_new[old_index]

        if in_original != UNMATCHED and original_index < in_original:
            # (a) original has symbols old lacks; leading ones are not part
            # of the edit.
            if original_index > original_first_match:
                original_streak = 0
                if new_streak < min_streak:
                    return MatchFailReason.AMBIGUOUS_REPLACEMENT
                num_diff += 1
                modified_old.append(original_symbols[original_index])
                modified_new.append(original_symbols[original_index])
            original_index += 1
        elif in_new != UNMATCHED and new_index < in_new:
            # (b) pure insertion
            new_streak = 0
            if original_streak < min_streak:
                return MatchFailReason.AMBIGUOUS_REPLACEMENT
            modified_new.append(new_symbols[new_index])
            new_index += 1
        elif in_original == original_index and in_new == new_index:
            # (c) common to all three
            modified_old.append(old_symbols[old_index])
            modified_new.append(new_symbols[new_index])
            old_index += 1
            original_index += 1
            new_index += 1
            original_streak += 1
            new_streak += 1
        elif in_original == original_index:
            # (d) deleted by the edit
            if original_streak < min_streak:
                return MatchFailReason.AMBIGUOUS_REPLACEMENT
            modified_old.append(old_symbols[old_index])
            old_index += 1
            original_index += 1
            original_streak += 1
            new_streak = 0
        elif in_new == new_index:
            # (e) model noise present in old and new only
            if new_streak < min_streak:
                return MatchFailReason.AMBIGUOUS_REPLACEMENT
            old_index += 1
            new_index += 1
            num_diff += 1
            original_streak = 0
            new_streak += 1
        else:
            # (f)
            return MatchFailReason.SYMBOL_IN_OLD_NOT_IN_ORIGINAL_OR_NEW

    modified_new.extend(new_symbols[new_index:])

    if num_diff > max_diff:
        return MatchFailReason.EXCEEDS_MAX_DIFF
    if num_diff / len(old_symbols) > max_diff_ratio:
        return MatchFailReason.EXCEEDS_MAX_DIFF_RATIO

    logger.debug(
        "[FuzzyEdit] Reconciled old string with %d differing symbol(s)", num_diff
    )
    return FuzzyReplacement("".join(modified_old), "".join(modified_new))


def resolve(
    original_str: str,
    old_str: str,
    new_str: str,
    thresholds: FuzzyThresholds = DEFAULT_THRESHOLDS,
    cache: SymbolCache | None = None,
) -> FuzzyReplacement | MatchFailReason:
    """Run the resolver with a bundled set of thresholds."""
    return fuzzy_match_replacement_strings(
        original_str,
        old_str,
        new_str,
        max_diff=thresholds.max_diff,
        max_diff_ratio=thresholds.max_diff_ratio,
        min_all_match_streak_between_diffs=thresholds.min_match_streak,
        compute_budget_iterations=thresholds.compute_budget,
        cache=cache,
    )
