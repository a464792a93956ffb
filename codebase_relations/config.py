"""
Configuration constants and loading utilities for codebase_relations.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from codebase_relations.models import Language

# Extension -> language. Lookups are done on the lowercased suffix.
EXTENSION_MAP: dict[str, Language] = {
    ".ts": Language.TYPESCRIPT,
    ".tsx": Language.TYPESCRIPT,
    ".js": Language.JAVASCRIPT,
    ".jsx": Language.JAVASCRIPT,
    ".mjs": Language.JAVASCRIPT,
    ".cjs": Language.JAVASCRIPT,
    ".py": Language.PYTHON,
    ".go": Language.GO,
    ".java": Language.JAVA,
    ".kt": Language.KOTLIN,
    ".kts": Language.KOTLIN,
}

# Extensions the dependency graph walks and tries when resolving imports
DEFAULT_EXTENSIONS = [".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".java", ".kt"]

DEFAULT_EXCLUDE_DIRS = [
    "node_modules",
    ".git",
    "dist",
    "build",
    "__pycache__",
    "vendor",
    ".venv",
    "venv",
    ".next",
    "coverage",
    ".pytest_cache",
    ".mypy_cache",
]

DEFAULT_MAX_DEPTH = 10
DEFAULT_TRACE_DEPTH = 3

# Sessions live under <project>/.claude/debug-sessions/
SESSIONS_SUBDIR = (".claude", "debug-sessions")

FLAKY_KEYWORDS = (
    "intermittent",
    "flaky",
    "sometimes",
    "occasionally",
    "randomly",
    "race condition",
    "timing",
)

DEFAULT_FLAKY_SUCCESS_COUNT = 3


DEFAULT_CONFIG: dict[str, Any] = {
    # Dependency graph traversal
    "graph": {
        "extensions": DEFAULT_EXTENSIONS,
        "exclude_dirs": DEFAULT_EXCLUDE_DIRS,
        "max_depth": DEFAULT_MAX_DEPTH,
        "trace_depth": DEFAULT_TRACE_DEPTH,
    },

    # Issue intake
    "intake": {
        "flaky_keywords": list(FLAKY_KEYWORDS),
        "flaky_success_count": DEFAULT_FLAKY_SUCCESS_COUNT,
    },
}


def load_config(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from YAML file, merged with defaults.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Configuration dictionary with user values merged over defaults.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    with open(config_path, "r", encoding="utf-8") as f:
        user_config = yaml.safe_load(f) or {}

    if not isinstance(user_config, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")

    # Merge one level deep so a section only overrides the keys it names
    config = {key: dict(value) for key, value in DEFAULT_CONFIG.items()}
    for key, value in user_config.items():
        if isinstance(value, dict) and key in config and isinstance(config[key], dict):
            config[key] = {**config[key], **value}
        else:
            config[key] = value

    return config


def get_config_template() -> str:
    """Generate a documented YAML config template."""
    return '''# =============================================================================
# codebase-relations configuration
# =============================================================================
# Usage:
#   codebase-relations --config this_file.yaml related src/app.ts
#
# Only the keys you set are overridden; everything else keeps its default.
# =============================================================================

# =============================================================================
# DEPENDENCY GRAPH
# =============================================================================
# extensions:   files the graph walks, and the suffixes tried when a relative
#               import like './utils' is resolved to a file
# exclude_dirs: directory names skipped anywhere below the project root
# max_depth:    recursion limit for related-file expansion and directory walks
# trace_depth:  default recursion limit for function call tracing
# =============================================================================
graph:
  extensions:
    - .ts
    - .tsx
    - .js
    - .jsx
    - .py
    - .go
    - .java
    - .kt
  exclude_dirs:
    - node_modules
    - .git
    - dist
    - build
    - __pycache__
    - vendor
    # - generated
  max_depth: 10
  trace_depth: 3

# =============================================================================
# ISSUE INTAKE
# =============================================================================
# An issue whose reproduction steps or error output mention any of these
# keywords is treated as flaky and needs several consecutive passing runs
# before a fix is accepted.
# =============================================================================
intake:
  flaky_keywords:
    - intermittent
    - flaky
    - sometimes
    - occasionally
    - randomly
    - race condition
    - timing
  flaky_success_count: 3
'''
