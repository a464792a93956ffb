"""
Debug session persistence for codebase_relations.
"""

from codebase_relations.session.errors import (
    InvalidSessionIdError,
    SessionCorruptError,
    SessionError,
    SessionNotFoundError,
    SessionPathError,
    UnsafeSessionIdError,
)
from codebase_relations.session.intake import (
    IntakeError,
    IntakeResult,
    IssueIntake,
    create_debug_branch,
    detect_flaky_issue,
    perform_intake,
)
from codebase_relations.session.manager import (
    SESSION_ID_PATTERN,
    SessionManager,
    generate_session_id,
    issue_hash,
)
from codebase_relations.session.models import (
    AffectedFile,
    FixAttempt,
    Hypothesis,
    InstrumentationPoint,
    InstrumentedFile,
    LineRange,
    ResearchFinding,
    SessionState,
    SessionStatus,
)

__all__ = [
    "SessionManager",
    "SessionState",
    "SessionStatus",
    "Hypothesis",
    "AffectedFile",
    "LineRange",
    "InstrumentedFile",
    "InstrumentationPoint",
    "ResearchFinding",
    "FixAttempt",
    "SESSION_ID_PATTERN",
    "generate_session_id",
    "issue_hash",
    "SessionError",
    "InvalidSessionIdError",
    "UnsafeSessionIdError",
    "SessionPathError",
    "SessionNotFoundError",
    "SessionCorruptError",
    "IssueIntake",
    "IntakeResult",
    "IntakeError",
    "create_debug_branch",
    "detect_flaky_issue",
    "perform_intake",
]
