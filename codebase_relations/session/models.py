"""
Debug session records.

Sessions are stored as JSON with camelCase keys so other tools in the
debugging workflow can read them; the dataclasses use snake_case fields
and convert at the boundary.
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class CamelCaseRecord:
    """
    Mixin converting a dataclass to and from a camelCase JSON object.

    ``_nested`` maps a field name to ``(record class, is_list)`` for fields
    holding other records; ``_enums`` maps a field name to its Enum class.
    None-valued optional fields are omitted on output.
    """

    _nested: ClassVar[dict[str, tuple[type[CamelCaseRecord], bool]]] = {}
    _enums: ClassVar[dict[str, type[Enum]]] = {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, CamelCaseRecord):
                value = value.to_dict()
            elif isinstance(value, list):
                value = [v.to_dict() if isinstance(v, CamelCaseRecord) else v for v in value]
            data[to_camel(f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Any:
        """
        Build a record from a camelCase mapping.

        Raises:
            TypeError: A required field is missing or a nested value is malformed.
            ValueError: An enum field holds an unknown value.
        """
        if not isinstance(data, dict):
            raise TypeError(f"{cls.__name__} must be a JSON object")
        kwargs: dict[str, Any] = {}
        for f in fields(cls):  # type: ignore[arg-type]
            key = to_camel(f.name)
            if key not in data:
                if f.default is MISSING and f.default_factory is MISSING:
                    raise TypeError(f"{cls.__name__} is missing '{key}'")
                continue
            value = data[key]
            if value is not None and f.name in cls._nested:
                record_cls, is_list = cls._nested[f.name]
                if is_list:
                    value = [record_cls.from_dict(item) for item in value]
                else:
                    value = record_cls.from_dict(value)
            elif value is not None and f.name in cls._enums:
                value = cls._enums[f.name](value)
            kwargs[f.name] = value
        return cls(**kwargs)


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class LineRange(CamelCaseRecord):
    start: int
    end: int


@dataclass
class AffectedFile(CamelCaseRecord):
    path: str
    line_ranges: list[LineRange] = field(default_factory=list)

    _nested = {"line_ranges": (LineRange, True)}


@dataclass
class Hypothesis(CamelCaseRecord):
    """A candidate root cause and the evidence gathered for it."""

    id: str
    description: str
    confidence: float
    # null_reference | race_condition | incorrect_logic | type_error
    # | cross_service_communication | other
    failure_mode: str
    status: str = "pending"  # pending | confirmed | rejected | inconclusive
    affected_files: list[AffectedFile] = field(default_factory=list)
    evidence: list[str] | None = None

    _nested = {"affected_files": (AffectedFile, True)}


@dataclass
class InstrumentationPoint(CamelCaseRecord):
    line_number: int
    marker_start: str
    marker_end: str


@dataclass
class InstrumentedFile(CamelCaseRecord):
    path: str
    hypothesis_ids: list[str] = field(default_factory=list)
    instrumentation_points: list[InstrumentationPoint] = field(default_factory=list)

    _nested = {"instrumentation_points": (InstrumentationPoint, True)}


@dataclass
class ResearchFinding(CamelCaseRecord):
    query: str
    url: str
    source_type: str  # official_docs | github_issue | stackoverflow | blog | other
    summary: str
    timestamp: str
    recommended_approach: str | None = None
    security_implications: list[str] | None = None
    deprecated_approaches: list[str] | None = None


@dataclass
class FixAttempt(CamelCaseRecord):
    id: str
    hypothesis_id: str
    description: str
    rationale: str
    commit_sha: str
    timestamp: str
    files_modified: list[str] = field(default_factory=list)
    verification_result: str = "pending"  # passed | failed | pending
    verification_logs: str | None = None
    rolled_back: bool = False
    rollback_reason: str | None = None


@dataclass
class SessionState(CamelCaseRecord):
    """
    Complete state of one debugging investigation.

    ``session_id`` is fixed at creation; assigning a different value
    afterwards raises AttributeError.
    """

    session_id: str
    start_time: str
    initial_commit: str
    initial_branch: str
    reproduction_steps: list[str]
    expected_behavior: str
    actual_behavior: str
    is_flaky: bool
    success_count: int
    instrumentation_commit: str | None = None
    error_messages: list[str] | None = None
    hypotheses: list[Hypothesis] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)
    confirmed_hypothesis: Hypothesis | None = None
    research_findings: list[ResearchFinding] = field(default_factory=list)
    applied_fixes: list[FixAttempt] = field(default_factory=list)
    instrumented_files: list[InstrumentedFile] = field(default_factory=list)
    cycle_count: int = 0
    status: SessionStatus = SessionStatus.IN_PROGRESS
    last_updated: str = ""

    _nested = {
        "hypotheses": (Hypothesis, True),
        "confirmed_hypothesis": (Hypothesis, False),
        "research_findings": (ResearchFinding, True),
        "applied_fixes": (FixAttempt, True),
        "instrumented_files": (InstrumentedFile, True),
    }
    _enums = {"status": SessionStatus}

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "session_id" and "session_id" in self.__dict__ and value != self.session_id:
            raise AttributeError("session_id cannot be changed once set")
        super().__setattr__(name, value)
