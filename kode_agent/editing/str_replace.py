"""
Edit orchestrator — applies one ``old -> new`` replacement to file content
with staged fallbacks, always preferring exactness over fuzziness:

1. literal lookup;
2. on no match, one-level tab indent repair;
3. on no match, fuzzy reconciliation inside a window around the caller's
   line-number hint;
4. on several matches at any stage, disambiguation by the line hint; fuzzy
   matching is never used to pick among literal matches.

Anything unresolved is reported as a failure with a specific reason.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from .cache import SymbolCache
from .fuzzy_matcher import (
    DEFAULT_COMPUTE_BUDGET,
    EDIT_THRESHOLDS,
    FuzzyReplacement,
    MatchFailReason,
    fuzzy_match_replacement_strings,
)
from .indentation import try_tab_indent_fix
from .matching import (
    create_snippet,
    create_snippet_str,
    find_closest_match,
    find_matches,
    join_line_endings,
    line_ending_at,
    prepare_text_for_editing,
    remove_trailing_whitespace,
    restore_line_endings,
    split_line_endings,
)

logger = logging.getLogger(__name__)


class EditFailure(enum.Enum):
    NO_CHANGES = "no_changes"
    EMPTY_OLD_STR = "empty_old_str"
    NOT_FOUND = "not_found"
    MULTIPLE_MATCHES = "multiple_matches"
    NO_MATCH_NEAR_LINES = "no_match_near_lines"
    INTERNAL = "internal"


@dataclass
class EditOptions:
    """Knobs for :func:`str_replace`."""
    enable_fuzzy_matching: bool = True
    line_number_error_tolerance: float = 0.2
    max_diff: int = EDIT_THRESHOLDS.max_diff
    max_diff_ratio: float = EDIT_THRESHOLDS.max_diff_ratio
    min_match_streak: int = EDIT_THRESHOLDS.min_match_streak
    compute_budget: int = DEFAULT_COMPUTE_BUDGET
    snippet_context_lines: int = 4
    fuzzy_window_lines: int = 10
    replace_all: bool = False


@dataclass
class EditResult:
    """Outcome of one replacement attempt."""
    success: bool = False
    new_content: str | None = None
    match_start_line: int | None = None
    match_end_line: int | None = None
    used_fuzzy_matching: bool = False
    snippet: str = ""
    error: str = ""
    failure: EditFailure | None = None
    fuzzy_fail_reason: MatchFailReason | None = None

    @classmethod
    def failed(
        cls,
        failure: EditFailure,
        error: str,
        fuzzy_fail_reason: MatchFailReason | None = None,
    ) -> EditResult:
        return cls(
            success=False,
            error=error,
            failure=failure,
            fuzzy_fail_reason=fuzzy_fail_reason,
        )


def str_replace(
    content: str,
    old_str: str,
    new_str: str,
    options: EditOptions | None = None,
    start_line: int | None = None,
    end_line: int | None = None,
    cache: SymbolCache | None = None,
) -> EditResult:
    """Replace one occurrence of *old_str* in *content* with *new_str*.

    Parameters
    ----------
    content:
        Current file content.
    old_str, new_str:
        The proposed replacement.
    options:
        Matching knobs; defaults to :class:`EditOptions`.
    start_line, end_line:
        Optional 0-based hint of where *old_str* sits.  A missing
        *end_line* is derived from the number of lines in *old_str*.
    cache:
        Optional symbol cache reused across fuzzy attempts.

    Returns
    -------
    EditResult
        New content on success, otherwise the failure and its reason.
    """
    opts = options or EditOptions()

    # Each line keeps its own terminator; matching runs on LF text.
    content_lines, endings = split_line_endings(content)
    content = "\n".join(content_lines)
    normalized_content = remove_trailing_whitespace(content)
    working_old, _ = prepare_text_for_editing(old_str)
    working_new, _ = prepare_text_for_editing(new_str)

    if start_line is not None and end_line is None:
        end_line = start_line + working_old.count("\n")

    if working_old == working_new:
        return EditResult.failed(
            EditFailure.NO_CHANGES,
            "No changes: old_string and new_string are identical.",
        )

    if not working_old.strip():
        if content.strip():
            return EditResult.failed(
                EditFailure.EMPTY_OLD_STR,
                "Cannot use empty old_string on non-empty file.",
            )
        return EditResult(
            success=True,
            new_content=restore_line_endings(
                working_new, line_ending_at(endings, len(endings) - 1)
            ),
            match_start_line=0,
            match_end_line=working_new.count("\n"),
        )

    if opts.replace_all:
        return _replace_all(content_lines, endings, working_old, working_new)

    matches = find_matches(normalized_content, working_old)

    if not matches:
        logger.debug("[FuzzyEdit] No verbatim match, trying tab indent fix")
        fix = try_tab_indent_fix(normalized_content, working_old, working_new)
        matches = fix.matches
        working_old = fix.old_str
        working_new = fix.new_str

    used_fuzzy = False
    fuzzy_fail_reason: MatchFailReason | None = None
    if not matches and opts.enable_fuzzy_matching and start_line is not None:
        logger.debug("[FuzzyEdit] No verbatim match, trying fuzzy matching near line %d", start_line)
        window, _ = create_snippet(
            normalized_content,
            start_line,
            end_line - start_line + 1,
            opts.fuzzy_window_lines,
        )
        resolved = fuzzy_match_replacement_strings(
            window,
            working_old,
            working_new,
            max_diff=opts.max_diff,
            max_diff_ratio=opts.max_diff_ratio,
            min_all_match_streak_between_diffs=opts.min_match_streak,
            compute_budget_iterations=opts.compute_budget,
            cache=cache,
        )
        if isinstance(resolved, FuzzyReplacement):
            matches = find_matches(normalized_content, resolved.old_str)
            working_old = resolved.old_str
            working_new = resolved.new_str
            used_fuzzy = bool(matches)
        else:
            fuzzy_fail_reason = resolved
            logger.debug("[FuzzyEdit] Fuzzy match refused: %s", resolved.value)

    if not matches:
        error = "String to replace not found in file."
        if fuzzy_fail_reason is not None:
            error += f" Fuzzy matching refused: {fuzzy_fail_reason.value}."
        return EditResult.failed(EditFailure.NOT_FOUND, error, fuzzy_fail_reason)

    match_index = 0
    if len(matches) > 1:
        if start_line is None:
            return EditResult.failed(
                EditFailure.MULTIPLE_MATCHES,
                f"Found {len(matches)} matches. Provide line numbers to "
                f"disambiguate or add more context.",
            )
        closest = find_closest_match(
            matches, start_line, end_line, opts.line_number_error_tolerance
        )
        if closest is None:
            return EditResult.failed(
                EditFailure.NO_MATCH_NEAR_LINES,
                f"No match found near the specified line numbers "
                f"({start_line + 1}, {end_line + 1}).",
            )
        match_index = closest

    match = matches[match_index]

    normalized_lines = normalized_content.split("\n")
    matched_text = "\n".join(normalized_lines[match.start_line:match.end_line + 1])

    position = matched_text.find(working_old)
    if position == -1:
        logger.warning("[FuzzyEdit] Match at line %d lost its exact position", match.start_line)
        return EditResult.failed(
            EditFailure.INTERNAL,
            "Internal error: Could not find exact position of match.",
        )

    replaced_lines = (
        matched_text[:position]
        + working_new
        + matched_text[position + len(working_old):]
    ).split("\n")
    inserted_ending = line_ending_at(endings, match.start_line)
    new_lines = (
        content_lines[:match.start_line]
        + replaced_lines
        + content_lines[match.end_line + 1:]
    )
    new_endings = (
        endings[:match.start_line]
        + [inserted_ending] * (len(replaced_lines) - 1)
        + endings[match.end_line:]
    )

    return EditResult(
        success=True,
        new_content=join_line_endings(new_lines, new_endings),
        match_start_line=match.start_line,
        match_end_line=match.start_line + working_new.count("\n"),
        used_fuzzy_matching=used_fuzzy,
        snippet=create_snippet_str(
            "\n".join(new_lines),
            match.start_line,
            working_new.count("\n") + 1,
            opts.snippet_context_lines,
        ),
    )


def _replace_all(
    content_lines: list[str],
    endings: list[str],
    old_str: str,
    new_str: str,
) -> EditResult:
    content = "\n".join(content_lines)
    count = content.count(old_str)
    if count == 0:
        return EditResult.failed(
            EditFailure.NOT_FOUND, "String to replace not found in file."
        )

    # Offsets in the LF text shift by one per CRLF line before them.
    crlf_before = [0]
    for ending in endings:
        crlf_before.append(crlf_before[-1] + (ending == "\r\n"))
    raw = join_line_endings(content_lines, endings)

    pieces = []
    raw_pos = 0
    pos = content.find(old_str)
    first_line = content.count("\n", 0, pos)
    while pos != -1:
        line = content.count("\n", 0, pos)
        end = pos + len(old_str)
        raw_start = pos + crlf_before[line]
        raw_end = end + crlf_before[content.count("\n", 0, end)]
        pieces.append(raw[raw_pos:raw_start])
        pieces.append(new_str.replace("\n", line_ending_at(endings, line)))
        raw_pos = raw_end
        pos = content.find(old_str, end)
    pieces.append(raw[raw_pos:])

    logger.debug("[FuzzyEdit] Replacing all %d occurrence(s)", count)
    return EditResult(
        success=True,
        new_content="".join(pieces),
        match_start_line=first_line,
        match_end_line=first_line + new_str.count("\n"),
    )
