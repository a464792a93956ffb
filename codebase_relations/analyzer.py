"""
Structural analysis of single source files.

Chooses a parsing strategy per file: the precise parser registered for the
language when one exists, otherwise (or when it fails) the regex parser.
"""

from __future__ import annotations

import logging
from pathlib import Path

from codebase_relations.config import EXTENSION_MAP
from codebase_relations.models import CodeAnalysisResult, Language
from codebase_relations.parsers import ParseFailure, ParserRegistry, RegexParser
from codebase_relations.utils import read_source

logger = logging.getLogger(__name__)


def detect_language(path: Path | str) -> Language:
    """
    Detect a file's language from its extension.

    Args:
        path: File path; only the suffix is inspected, case-insensitively.

    Returns:
        The detected language, or Language.UNKNOWN.
    """
    return EXTENSION_MAP.get(Path(path).suffix.lower(), Language.UNKNOWN)


class CodeAnalyzer:
    """Extracts functions, classes, imports and error handling from source files."""

    def __init__(self, use_ast: bool = True):
        """
        Initialize the analyzer.

        Args:
            use_ast: Consult precise parsers. When False every file is
                analyzed with the regex parser.
        """
        self.use_ast = use_ast
        self.regex_parser = RegexParser()

    detect_language = staticmethod(detect_language)

    def analyze_file(self, path: Path | str) -> CodeAnalysisResult:
        """
        Analyze a file on disk.

        Never raises: unreadable files produce an empty regex result with
        ``error`` set.

        Args:
            path: Path to the source file.

        Returns:
            Analysis result.
        """
        path = Path(path)
        language = detect_language(path)

        source = read_source(path)
        if source is None:
            logger.warning("Could not read %s", path)
            result = self.regex_parser.empty_result(language)
            result.error = f"could not read {path}"
            return result

        return self.analyze_source(source, language, jsx=path.suffix.lower() in (".tsx", ".jsx"))

    def analyze_source(
        self,
        source: str,
        language: Language,
        jsx: bool = False,
    ) -> CodeAnalysisResult:
        """
        Analyze in-memory source text.

        Args:
            source: Source text.
            language: Language of the source.
            jsx: Whether the source uses a JSX dialect.

        Returns:
            Analysis result from the precise parser, or from the regex
            parser when the precise one is unavailable or fails.
        """
        if self.use_ast:
            parser = ParserRegistry.get_parser(language)
            if parser is not None:
                outcome = parser.parse(source, language, jsx=jsx)
                if not isinstance(outcome, ParseFailure):
                    return outcome
                logger.debug("%s parse failed (%s), falling back to regex", language.value, outcome.reason)

        try:
            return self.regex_parser.parse(source, language, jsx=jsx)
        except Exception as e:
            logger.warning("Regex analysis failed for %s source: %s", language.value, e)
            result = self.regex_parser.empty_result(language)
            result.error = str(e)
            return result
