"""
Codebase Relations - find what a source file is connected to.

Structural analysis of single files (tree-sitter and ast, with a regex
fallback), a dependency graph over imports, function calls and HTTP
endpoints, and persistent debug sessions.
"""

__version__ = "1.0.0"

from codebase_relations.analyzer import CodeAnalyzer, detect_language
from codebase_relations.graph import DependencyGraph
from codebase_relations.models import (
    APIEndpoint,
    CodeAnalysisResult,
    DependencyType,
    FileDependency,
    Language,
)
from codebase_relations.session import SessionManager

__all__ = [
    "CodeAnalyzer",
    "detect_language",
    "DependencyGraph",
    "SessionManager",
    "APIEndpoint",
    "CodeAnalysisResult",
    "DependencyType",
    "FileDependency",
    "Language",
    "__version__",
]
