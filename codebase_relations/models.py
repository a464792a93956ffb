"""
Core data models shared by the analyzer, the dependency graph and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

ANONYMOUS = "<anonymous>"


class Language(str, Enum):
    """Languages understood by the structural analyzer."""

    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    GO = "go"
    JAVA = "java"
    KOTLIN = "kotlin"
    UNKNOWN = "unknown"


class DependencyType(str, Enum):
    IMPORT = "import"
    FUNCTION_CALL = "function_call"
    API_ENDPOINT = "api_endpoint"


@dataclass
class FunctionDefinition:
    name: str
    start_line: int
    end_line: int
    params: list[str] = field(default_factory=list)
    is_async: bool = False
    is_method: bool = False
    # True when end_line is a copy of start_line because the real extent is unknown
    extent_approximate: bool = False

    @property
    def is_named(self) -> bool:
        return self.name != ANONYMOUS

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "params": list(self.params),
            "async": self.is_async,
            "method": self.is_method,
            "extent_approximate": self.extent_approximate,
        }


@dataclass
class ClassDefinition:
    name: str
    start_line: int
    end_line: int
    methods: list[str] = field(default_factory=list)
    extent_approximate: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "methods": list(self.methods),
            "extent_approximate": self.extent_approximate,
        }


@dataclass
class ImportStatement:
    module: str
    imports: list[str]
    line_number: int
    is_default: bool = False
    # Names as written in the source module when they differ from the
    # local bindings (`from . import b as c` -> ["b"])
    source_names: list[str] = field(default_factory=list)

    @property
    def imported_names(self) -> list[str]:
        """Names as exported by the imported module."""
        return self.source_names or self.imports

    def to_dict(self) -> dict[str, Any]:
        return {
            "module": self.module,
            "imports": list(self.imports),
            "line": self.line_number,
            "default": self.is_default,
        }


@dataclass
class ErrorHandlingBlock:
    type: str  # try-catch | promise-catch | if-error | defer-panic
    start_line: int
    end_line: int
    handles_error: str = "error"
    extent_approximate: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "handles_error": self.handles_error,
            "extent_approximate": self.extent_approximate,
        }


@dataclass
class CodeAnalysisResult:
    """Structural analysis of one source file."""

    language: Language
    parse_method: str  # "ast" or "regex"
    functions: list[FunctionDefinition] = field(default_factory=list)
    classes: list[ClassDefinition] = field(default_factory=list)
    imports: list[ImportStatement] = field(default_factory=list)
    error_handling: list[ErrorHandlingBlock] = field(default_factory=list)
    error: str | None = None

    def named_functions(self, include_methods: bool = False) -> list[str]:
        """Names of non-anonymous functions, deduplicated in definition order."""
        names: list[str] = []
        for func in self.functions:
            if not func.is_named or (func.is_method and not include_methods):
                continue
            if func.name not in names:
                names.append(func.name)
        return names

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "language": self.language.value,
            "parse_method": self.parse_method,
            "functions": [f.to_dict() for f in self.functions],
            "classes": [c.to_dict() for c in self.classes],
            "imports": [i.to_dict() for i in self.imports],
            "error_handling": [e.to_dict() for e in self.error_handling],
        }
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class FileDependency:
    """Directed edge between two files."""

    from_file: str
    to_file: str
    type: DependencyType
    entity: str | None = None
    line_number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_file,
            "to": self.to_file,
            "type": self.type.value,
            "entity": self.entity,
            "line": self.line_number,
        }


@dataclass
class APIEndpoint:
    method: str
    path: str
    handler_file: str
    handler_function: str
    line_number: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "path": self.path,
            "file": self.handler_file,
            "handler": self.handler_function,
            "line": self.line_number,
        }
