"""
Issue intake: start a debug session for an issue, or resume the one
already open for it.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from codebase_relations.config import DEFAULT_FLAKY_SUCCESS_COUNT, FLAKY_KEYWORDS
from codebase_relations.utils import get_git_info

if TYPE_CHECKING:
    from typing import Iterable

    from codebase_relations.session.manager import SessionManager
    from codebase_relations.session.models import SessionState

logger = logging.getLogger(__name__)


class IntakeError(Exception):
    """Raised when a new session can't be set up."""


@dataclass
class IssueIntake:
    """Issue report as given by the user; multi-line fields are one string."""

    reproduction_steps: str
    expected_behavior: str
    actual_behavior: str
    error_messages: str = ""
    flaky_success_count: int | None = None

    @property
    def issue_description(self) -> str:
        """Text the session hash is derived from."""
        return "\n".join([self.reproduction_steps, self.error_messages])


@dataclass
class IntakeResult:
    session: SessionState
    resumed: bool


def detect_flaky_issue(text: str, keywords: Iterable[str] = FLAKY_KEYWORDS) -> bool:
    """Check whether an issue description suggests intermittent failure."""
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def _split_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def create_debug_branch(session_id: str, root: Path) -> str:
    """
    Check out a new branch for the session.

    Returns:
        Name of the created branch.

    Raises:
        IntakeError: git refused to create the branch.
    """
    branch = f"debug-session-{session_id}"
    try:
        subprocess.run(
            ["git", "checkout", "-b", branch],
            cwd=root,
            check=True,
            capture_output=True,
            timeout=10,
        )
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode(errors="replace").strip() if e.stderr else str(e)
        raise IntakeError(f"Failed to create debug branch {branch}: {stderr}") from e
    except (subprocess.TimeoutExpired, OSError) as e:
        raise IntakeError(f"Failed to create debug branch {branch}: {e}") from e
    logger.info("Created branch %s", branch)
    return branch


def perform_intake(
    intake: IssueIntake,
    manager: SessionManager,
    *,
    force_new: bool = False,
    create_branch: bool = True,
    root: Path | None = None,
    flaky_keywords: Iterable[str] = FLAKY_KEYWORDS,
    default_flaky_success_count: int = DEFAULT_FLAKY_SUCCESS_COUNT,
) -> IntakeResult:
    """
    Resume the latest session for an issue or create a new one.

    Args:
        intake: Issue report.
        manager: Session store.
        force_new: Always create a new session.
        create_branch: Check out ``debug-session-<id>`` for a new session
            when inside a git repository.
        root: Repository directory (defaults to the manager's base directory).
        flaky_keywords: Keywords marking an issue as flaky.
        default_flaky_success_count: Passing runs required for a flaky issue
            when the intake doesn't say.

    Returns:
        The session and whether it was resumed.

    Raises:
        IntakeError: The debug branch couldn't be created.
    """
    issue_description = intake.issue_description

    if not force_new:
        existing = manager.find_sessions_by_issue(issue_description)
        if existing:
            session = manager.load_session(existing[-1])
            logger.info("Resuming debug session %s", session.session_id)
            return IntakeResult(session=session, resumed=True)

    is_flaky = detect_flaky_issue(issue_description, flaky_keywords)
    if is_flaky:
        success_count = intake.flaky_success_count or default_flaky_success_count
    else:
        success_count = 1

    root = root or manager.base_dir
    git_info = get_git_info(root)

    error_messages = _split_lines(intake.error_messages)
    session = manager.create_session(
        reproduction_steps=_split_lines(intake.reproduction_steps),
        expected_behavior=intake.expected_behavior,
        actual_behavior=intake.actual_behavior,
        initial_commit=git_info["commit"] if git_info else "",
        initial_branch=git_info["branch"] if git_info else "",
        is_flaky=is_flaky,
        success_count=success_count,
        error_messages=error_messages or None,
        issue_description=issue_description,
    )

    if git_info and create_branch:
        create_debug_branch(session.session_id, root)

    return IntakeResult(session=session, resumed=False)
