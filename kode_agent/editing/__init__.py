"""Fuzzy edit reconciliation and context-diff patch application."""

from .cache import BoundedCache, SymbolCache, LineHashCache
from .symbols import tokenize, fuzzy_match_lines
from .lcs import UNMATCHED, find_longest_common_subsequence, max_index_diff_for_budget
from .fuzzy_matcher import (
    MatchFailReason, FuzzyReplacement, FuzzyThresholds,
    DEFAULT_THRESHOLDS, EDIT_THRESHOLDS,
    fuzzy_match_replacement_strings, resolve,
)
from .matching import (
    Match, find_matches, find_closest_match,
    prepare_text_for_editing, create_snippet, create_snippet_str,
)
from .indentation import IndentInfo, TabIndentFix, detect_indentation, try_tab_indent_fix
from .snippet_locator import (
    SnippetLocation, QualifiedSnippetLocation,
    locate_snippet, locate_snippet_with_quality, find_all_snippet_occurrences,
)
from .str_replace import EditOptions, EditResult, EditFailure, str_replace
from .apply_patch import (
    DiffError, Patch, PatchAction, AddFile, DeleteFile, UpdateFile, Chunk,
    text_to_patch, apply_patch, process_patch, get_updated_file,
    identify_files_needed, identify_files_affected, extract_file_paths,
)
from .patch_diff import compute_chunks, make_update_patch

__all__ = [
    "BoundedCache", "SymbolCache", "LineHashCache",
    "tokenize", "fuzzy_match_lines",
    "UNMATCHED", "find_longest_common_subsequence", "max_index_diff_for_budget",
    "MatchFailReason", "FuzzyReplacement", "FuzzyThresholds",
    "DEFAULT_THRESHOLDS", "EDIT_THRESHOLDS",
    "fuzzy_match_replacement_strings", "resolve",
    "Match", "find_matches", "find_closest_match",
    "prepare_text_for_editing", "create_snippet", "create_snippet_str",
    "IndentInfo", "TabIndentFix", "detect_indentation", "try_tab_indent_fix",
    "SnippetLocation", "QualifiedSnippetLocation",
    "locate_snippet", "locate_snippet_with_quality", "find_all_snippet_occurrences",
    "EditOptions", "EditResult", "EditFailure", "str_replace",
    "DiffError", "Patch", "PatchAction", "AddFile", "DeleteFile", "UpdateFile", "Chunk",
    "text_to_patch", "apply_patch", "process_patch", "get_updated_file",
    "identify_files_needed", "identify_files_affected", "extract_file_paths",
    "compute_chunks", "make_update_patch",
]
