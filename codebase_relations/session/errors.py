"""
Exceptions raised by the debug session store.
"""

from __future__ import annotations


class SessionError(Exception):
    """Base class for session store failures."""


class InvalidSessionIdError(SessionError, ValueError):
    """Session ID does not match the ``debug-<timestamp>-<hash>`` format."""


class UnsafeSessionIdError(InvalidSessionIdError):
    """Session ID contains a path separator or a null byte."""


class SessionPathError(SessionError, ValueError):
    """Session file path resolves outside the sessions directory."""


class SessionNotFoundError(SessionError):
    """No session file exists for the ID."""


class SessionCorruptError(SessionError):
    """Session file exists but does not hold a valid session."""
