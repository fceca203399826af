"""
Configuration — loads edit-engine settings from .kode_agent.yaml, environment
variables, and built-in defaults (priority: env > YAML > defaults).

Example ``.kode_agent.yaml``::

    edit:
      fuzzy_matching: true
      line_number_tolerance: 0.2
      max_diff: 5
"""

from __future__ import annotations

import logging
import os

import yaml

from .editing.str_replace import EditOptions

logger = logging.getLogger(__name__)


_DEFAULTS = {
    "fuzzy_matching": True,
    "line_number_tolerance": 0.2,
    "max_diff": 5,
    "max_diff_ratio": 0.2,
    "min_match_streak": 3,
    "compute_budget": 100_000,
    "snippet_context_lines": 4,
    "fuzzy_window_lines": 10,
}

# Config file search locations
_CONFIG_FILENAMES = [".kode_agent.yaml", ".kode_agent.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("[Config] Ignoring unreadable config %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _parse_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class EditConfig:
    """Edit-engine configuration.

    Settings are resolved in priority order:
    1. Environment variables (``KODE_*``)
    2. ``edit:`` section of .kode_agent.yaml
    3. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}
        section = yd.get("edit", {})
        if not isinstance(section, dict):
            section = {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, cast):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = section.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return _DEFAULTS[yaml_key]

        self.FUZZY_MATCHING = _get("KODE_FUZZY_MATCHING", "fuzzy_matching", _parse_bool)
        self.LINE_NUMBER_TOLERANCE = _get("KODE_LINE_NUMBER_TOLERANCE",
                                          "line_number_tolerance", float)
        self.MAX_DIFF = _get("KODE_MAX_DIFF", "max_diff", int)
        self.MAX_DIFF_RATIO = _get("KODE_MAX_DIFF_RATIO", "max_diff_ratio", float)
        self.MIN_MATCH_STREAK = _get("KODE_MIN_MATCH_STREAK", "min_match_streak", int)
        self.COMPUTE_BUDGET = _get("KODE_COMPUTE_BUDGET", "compute_budget", int)
        self.SNIPPET_CONTEXT_LINES = _get("KODE_SNIPPET_CONTEXT_LINES",
                                          "snippet_context_lines", int)
        self.FUZZY_WINDOW_LINES = _get("KODE_FUZZY_WINDOW_LINES",
                                       "fuzzy_window_lines", int)

        if not 0 <= self.LINE_NUMBER_TOLERANCE <= 1:
            raise ValueError(
                f"line_number_tolerance must be within [0, 1], "
                f"got {self.LINE_NUMBER_TOLERANCE}"
            )
        if not 0 <= self.MAX_DIFF_RATIO <= 1:
            raise ValueError(
                f"max_diff_ratio must be within [0, 1], got {self.MAX_DIFF_RATIO}"
            )

    def to_options(self, replace_all: bool = False) -> EditOptions:
        """Build the orchestrator options for one edit."""
        return EditOptions(
            enable_fuzzy_matching=self.FUZZY_MATCHING,
            line_number_error_tolerance=self.LINE_NUMBER_TOLERANCE,
            max_diff=self.MAX_DIFF,
            max_diff_ratio=self.MAX_DIFF_RATIO,
            min_match_streak=self.MIN_MATCH_STREAK,
            compute_budget=self.COMPUTE_BUDGET,
            snippet_context_lines=self.SNIPPET_CONTEXT_LINES,
            fuzzy_window_lines=self.FUZZY_WINDOW_LINES,
            replace_all=replace_all,
        )

    @classmethod
    def load(cls, config_path: str | None = None) -> "EditConfig":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)


def setup_logging(level: int | str = logging.INFO,
                  log_file: str | None = None) -> logging.Logger:
    """Attach a handler to the ``kode_agent`` logger.

    Library code only emits records; embedding applications call this once.
    """
    logger_ = logging.getLogger("kode_agent")
    logger_.setLevel(level)

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
    ))
    logger_.addHandler(handler)
    return logger_
