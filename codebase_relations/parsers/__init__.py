"""
Language parsers for codebase_relations.

Precise parsers register themselves with ParserRegistry on import.
RegexParser covers every language and is the fallback when a precise
parse fails.
"""

from codebase_relations.parsers.base import BaseParser, ParseFailure, ParserRegistry
from codebase_relations.parsers.javascript import JavaScriptParser
from codebase_relations.parsers.python import PythonParser
from codebase_relations.parsers.regex import RegexParser

__all__ = [
    "BaseParser",
    "ParseFailure",
    "ParserRegistry",
    "JavaScriptParser",
    "PythonParser",
    "RegexParser",
]
