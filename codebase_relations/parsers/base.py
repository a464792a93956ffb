"""
Base parser class and registry for precise language parsers.

A precise parser turns source text into a CodeAnalysisResult with exact
line ranges. Parsers never raise on bad input: they return a ParseFailure
and the analyzer falls back to the line-based RegexParser.

To add a precise parser for a language:
1. Create a class inheriting from BaseParser
2. Implement the `parse` method
3. Register it with the @ParserRegistry.register decorator

Example:
    @ParserRegistry.register(Language.GO)
    class GoParser(BaseParser):
        def parse(self, source, language, jsx=False):
            ...
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from codebase_relations.models import CodeAnalysisResult, Language

if TYPE_CHECKING:
    from typing import Callable, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseFailure:
    """Outcome of a precise parse that could not produce a result."""

    reason: str


class ParserRegistry:
    """
    Registry of precise parsers, keyed by language.

    Languages without an entry are analyzed with the regex parser only.
    """

    _parser_classes: ClassVar[dict[Language, Type["BaseParser"]]] = {}
    _cached_parsers: ClassVar[dict[Language, "BaseParser"]] = {}

    @classmethod
    def register(
        cls,
        *languages: Language,
    ) -> Callable[[Type["BaseParser"]], Type["BaseParser"]]:
        """
        Decorator to register a parser class for one or more languages.

        Example:
            @ParserRegistry.register(Language.JAVASCRIPT, Language.TYPESCRIPT)
            class JavaScriptParser(BaseParser):
                ...
        """
        def decorator(parser_class: Type["BaseParser"]) -> Type["BaseParser"]:
            for language in languages:
                cls.register_parser(language, parser_class)
            return parser_class
        return decorator

    @classmethod
    def register_parser(cls, language: Language, parser_class: Type["BaseParser"]) -> None:
        """Register a parser class for a language, replacing any previous one."""
        cls._parser_classes[language] = parser_class
        cls._cached_parsers.pop(language, None)
        logger.debug("Registered %s parser: %s", language.value, parser_class.__name__)

    @classmethod
    def get_parser(cls, language: Language) -> "BaseParser" | None:
        """
        Get the precise parser for a language.

        Instances are created on first use and shared afterwards.

        Returns:
            Parser instance, or None if the language has no precise parser.
        """
        parser_class = cls._parser_classes.get(language)
        if parser_class is None:
            return None

        if language not in cls._cached_parsers:
            # Languages sharing a class share one instance
            for other, instance in cls._cached_parsers.items():
                if cls._parser_classes.get(other) is parser_class:
                    cls._cached_parsers[language] = instance
                    break
            else:
                cls._cached_parsers[language] = parser_class()

        return cls._cached_parsers[language]

    @classmethod
    def list_languages(cls) -> list[Language]:
        """Languages that have a precise parser."""
        return list(cls._parser_classes.keys())


class BaseParser(ABC):
    """Abstract base class for precise parsers."""

    parse_method: ClassVar[str] = "ast"

    @abstractmethod
    def parse(
        self,
        source: str,
        language: Language,
        jsx: bool = False,
    ) -> CodeAnalysisResult | ParseFailure:
        """
        Parse source text.

        Args:
            source: Full text of the file.
            language: Language of the source.
            jsx: Whether the source is a JSX dialect (e.g. a .tsx file).

        Returns:
            The analysis result, or a ParseFailure describing why parsing failed.
        """
        ...

    def empty_result(self, language: Language) -> CodeAnalysisResult:
        """Get an empty result tagged with this parser's method."""
        return CodeAnalysisResult(language=language, parse_method=self.parse_method)
