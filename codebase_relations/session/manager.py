"""
Persistent storage of debug sessions.

Each session is one pretty-printed JSON file under
``<base_dir>/.claude/debug-sessions/``. Session IDs reach the filesystem
only after passing three checks: no separators or null bytes, the
``debug-<14 digits>-<8 hex>`` format, and a resolved path that stays
inside the sessions directory.
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path

from codebase_relations.config import SESSIONS_SUBDIR
from codebase_relations.session.errors import (
    InvalidSessionIdError,
    SessionCorruptError,
    SessionError,
    SessionNotFoundError,
    SessionPathError,
    UnsafeSessionIdError,
)
from codebase_relations.session.models import SessionState, SessionStatus, utc_now_iso
from codebase_relations.utils import text_hash

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"debug-[0-9]{14}-[a-f0-9]{8}")

REQUIRED_KEYS = ("sessionId", "startTime", "status")


def issue_hash(issue_description: str) -> str:
    """8-hex-digit suffix identifying an issue description."""
    return text_hash(issue_description, 8)


def generate_session_id(issue_description: str, now: datetime | None = None) -> str:
    """
    Generate a session ID for an issue.

    Args:
        issue_description: Text describing the issue.
        now: Creation time (defaults to the current UTC time).

    Returns:
        ID of the form ``debug-YYYYMMDDHHMMSS-xxxxxxxx``.
    """
    now = now or datetime.now(timezone.utc)
    return f"debug-{now.astimezone(timezone.utc):%Y%m%d%H%M%S}-{issue_hash(issue_description)}"


def validate_session_id(session_id: str) -> None:
    """
    Check a session ID before it is used to build a path.

    Raises:
        UnsafeSessionIdError: The ID contains ``/``, ``\\`` or a null byte.
        InvalidSessionIdError: The ID doesn't match the session ID format.
    """
    if "\0" in session_id:
        raise UnsafeSessionIdError("Session ID must not contain null bytes")
    if "/" in session_id or "\\" in session_id:
        raise UnsafeSessionIdError(f"Session ID must not contain path separators: {session_id!r}")
    if not SESSION_ID_PATTERN.fullmatch(session_id):
        raise InvalidSessionIdError(f"Invalid session ID format: {session_id!r}")


class SessionManager:
    """Creates, loads, updates and deletes debug sessions on disk."""

    def __init__(self, base_dir: Path | str | None = None):
        """
        Initialize the manager and create the sessions directory.

        Args:
            base_dir: Project directory (defaults to the current directory).

        Raises:
            ValueError: base_dir contains a null byte.
            SessionError: The sessions directory can't be created.
        """
        base = os.fspath(base_dir) if base_dir is not None else os.getcwd()
        if "\0" in base:
            raise ValueError("base_dir must not contain null bytes")

        self.base_dir = Path(base).resolve()
        sessions_dir = self.base_dir.joinpath(*SESSIONS_SUBDIR)
        try:
            sessions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SessionError(f"Could not create sessions directory {sessions_dir}: {e}") from e
        self.sessions_dir = sessions_dir.resolve()

    # Module-level helpers exposed on the class for callers holding a manager
    generate_session_id = staticmethod(generate_session_id)
    issue_hash = staticmethod(issue_hash)

    def _session_path(self, session_id: str) -> Path:
        """Translate a validated session ID into its file path."""
        validate_session_id(session_id)
        path = (self.sessions_dir / f"{session_id}.json").resolve()
        if not str(path).startswith(str(self.sessions_dir) + os.sep):
            raise SessionPathError(f"Session path escapes the sessions directory: {session_id!r}")
        return path

    def _write(self, session: SessionState) -> None:
        path = self._session_path(session.session_id)
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(session.to_dict(), f, indent=2)
        except OSError as e:
            raise SessionError(f"Failed to save session {session.session_id}: {e}") from e

    def create_session(
        self,
        reproduction_steps: list[str],
        expected_behavior: str,
        actual_behavior: str,
        initial_commit: str,
        initial_branch: str,
        is_flaky: bool = False,
        success_count: int = 1,
        error_messages: list[str] | None = None,
        issue_description: str | None = None,
    ) -> SessionState:
        """
        Create a session and write it to disk.

        Args:
            reproduction_steps: Steps that reproduce the issue.
            expected_behavior: What should happen.
            actual_behavior: What happens instead.
            initial_commit: Commit SHA when the session started.
            initial_branch: Branch name when the session started.
            is_flaky: Whether the issue reproduces only intermittently.
            success_count: Consecutive passing runs required to accept a fix.
            error_messages: Error output or stack traces.
            issue_description: Text the session ID hash is derived from
                (defaults to the reproduction steps joined by spaces).

        Returns:
            The new session.
        """
        if issue_description is None:
            issue_description = " ".join(reproduction_steps)

        now = utc_now_iso()
        session = SessionState(
            session_id=generate_session_id(issue_description),
            start_time=now,
            initial_commit=initial_commit,
            initial_branch=initial_branch,
            reproduction_steps=list(reproduction_steps),
            expected_behavior=expected_behavior,
            actual_behavior=actual_behavior,
            error_messages=list(error_messages) if error_messages is not None else None,
            is_flaky=is_flaky,
            success_count=success_count,
            status=SessionStatus.IN_PROGRESS,
            last_updated=now,
        )
        self._write(session)
        logger.info("Created debug session %s", session.session_id)
        return session

    def load_session(self, session_id: str) -> SessionState:
        """
        Load a session from disk.

        Raises:
            SessionNotFoundError: No file exists for the ID.
            SessionCorruptError: The file doesn't hold a valid session.
            SessionError: The ID is rejected or the file can't be read.
        """
        path = self._session_path(session_id)
        if not path.is_file():
            raise SessionNotFoundError(f"Session not found: {session_id}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise SessionCorruptError(f"Session {session_id} is not valid JSON: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise SessionError(f"Failed to read session {session_id}: {e}") from e

        if not isinstance(data, dict):
            raise SessionCorruptError(f"Session {session_id} is not a JSON object")
        missing = [key for key in REQUIRED_KEYS if key not in data]
        if missing:
            raise SessionCorruptError(f"Session {session_id} is missing {', '.join(missing)}")
        if data["status"] not in {s.value for s in SessionStatus}:
            raise SessionCorruptError(f"Session {session_id} has unknown status {data['status']!r}")
        if data["sessionId"] != session_id:
            raise SessionCorruptError(
                f"Session file {session_id} holds session {data['sessionId']!r}"
            )

        try:
            return SessionState.from_dict(data)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            raise SessionCorruptError(f"Session {session_id} is malformed: {e}") from e

    def update_session(self, session: SessionState) -> None:
        """Stamp ``last_updated`` and rewrite the session file."""
        session.last_updated = utc_now_iso()
        self._write(session)

    def delete_session(self, session_id: str) -> bool:
        """
        Delete a session file.

        Returns:
            True if a file was removed, False if none existed.
        """
        path = self._session_path(session_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise SessionError(f"Failed to delete session {session_id}: {e}") from e
        logger.info("Deleted debug session %s", session_id)
        return True

    def list_sessions(self) -> list[str]:
        """IDs of all stored sessions, oldest first."""
        return sorted(
            path.stem
            for path in self.sessions_dir.glob("debug-*.json")
            if SESSION_ID_PATTERN.fullmatch(path.stem)
        )

    def find_sessions_by_issue(self, issue_description: str) -> list[str]:
        """IDs of stored sessions created for the same issue text, oldest first."""
        suffix = f"-{issue_hash(issue_description)}"
        return [session_id for session_id in self.list_sessions() if session_id.endswith(suffix)]
