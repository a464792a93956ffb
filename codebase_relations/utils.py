"""
Utility functions for codebase_relations.
"""

from __future__ import annotations

import hashlib
import logging
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Iterable

logger = logging.getLogger(__name__)


def text_hash(text: str, length: int = 8) -> str:
    """
    Generate a short SHA256 digest of a string.

    Args:
        text: Text to hash.
        length: Number of hex characters to keep.

    Returns:
        Lowercase hex prefix of the digest.
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]


def read_source(filepath: Path) -> str | None:
    """
    Read a source file as UTF-8.

    Args:
        filepath: Path to the file.

    Returns:
        File contents, or None if the file can't be read or decoded.
    """
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not read %s: %s", filepath, e)
        return None


def should_exclude(path: Path, exclude_dirs: Iterable[str], root: Path | None = None) -> bool:
    """
    Check if a file lies inside an excluded directory.

    Only the components below ``root`` are checked when the file is inside
    it, so a project that itself lives under e.g. ``build/`` is still walked.

    Args:
        path: Absolute path of the file to check.
        exclude_dirs: Directory names to exclude.
        root: Project root.

    Returns:
        True if any parent directory component matches an excluded name.
    """
    parts = path.parts
    if root is not None:
        try:
            parts = path.relative_to(root).parts
        except ValueError:
            pass
    excluded = set(exclude_dirs)
    # parts[-1] is the file name itself
    return any(part in excluded for part in parts[:-1])


def get_git_info(root: Path) -> dict[str, Any] | None:
    """
    Get git metadata for a repository.

    Args:
        root: Directory inside the git repository.

    Returns:
        Dictionary with 'commit' (full SHA) and 'branch' keys,
        or None if not a git repository or git is unavailable.
    """
    try:
        commit = subprocess.check_output(
            ["git", "rev-parse", "HEAD"],
            cwd=root,
            stderr=subprocess.DEVNULL,
            timeout=5,
        ).decode().strip()

        branch = subprocess.check_output(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            cwd=root,
            stderr=subprocess.DEVNULL,
            timeout=5,
        ).decode().strip()

        return {
            "commit": commit,
            "branch": branch,
        }
    except subprocess.TimeoutExpired:
        logger.warning("Git command timed out in %s", root)
        return None
    except subprocess.CalledProcessError:
        logger.debug("Not a git repository: %s", root)
        return None
    except FileNotFoundError:
        logger.debug("Git not available")
        return None
