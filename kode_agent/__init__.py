"""
kode_agent — fuzzy edit and patch engine of the Kode coding agent.

Public API for library usage::

    from kode_agent import str_replace, process_patch

    result = str_replace(content, old_str, new_str, start_line=41)
    if result.success:
        content = result.new_content
"""

from .config import EditConfig, setup_logging
from .editing import (
    DiffError,
    EditOptions,
    EditResult,
    MatchFailReason,
    locate_snippet,
    process_patch,
    str_replace,
)

__version__ = "0.1.0"

__all__ = [
    "EditConfig", "setup_logging",
    "DiffError", "EditOptions", "EditResult", "MatchFailReason",
    "locate_snippet", "process_patch", "str_replace",
]
