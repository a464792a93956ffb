"""
Line-based regex parser for codebase_relations.

Used for languages without a precise parser, and as the fallback when a
precise parse fails. Matching is per line, so block extents are unknown:
every entity gets end_line == start_line and extent_approximate = True.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, NamedTuple

from codebase_relations.models import (
    ANONYMOUS,
    ClassDefinition,
    CodeAnalysisResult,
    ErrorHandlingBlock,
    FunctionDefinition,
    ImportStatement,
    Language,
)
from codebase_relations.parsers.base import BaseParser

if TYPE_CHECKING:
    from typing import Pattern

logger = logging.getLogger(__name__)


class LanguagePatterns(NamedTuple):
    """Ordered alternatives per entity kind; the first matching pattern wins."""

    function: tuple[Pattern[str], ...]
    class_: tuple[Pattern[str], ...]
    import_: tuple[Pattern[str], ...]
    error_handling: tuple[Pattern[str], ...]


def _compile(*patterns: str) -> tuple[Pattern[str], ...]:
    return tuple(re.compile(p) for p in patterns)


_JS_ID = r"[A-Za-z_$][\w$]*"
_JS_DECL = r"^\s*(?:export\s+)?(?:const|let|var)\s+(?P<name>" + _JS_ID + r")\s*(?::[^=]+)?=\s*(?P<async>async\s+)?"

_JS_PATTERNS = LanguagePatterns(
    function=_compile(
        r"^\s*(?:export\s+(?:default\s+)?)?(?P<async>async\s+)?function\b\s*\*?\s*(?P<name>" + _JS_ID
        + r")\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)",
        # const fn = (a, b) => ...
        _JS_DECL + r"(?:<[^>]*>)?\((?P<params>[^)]*)\)\s*(?::\s*[^=]+?)?\s*=>",
        # const fn = a => ...
        _JS_DECL + r"(?P<params>" + _JS_ID + r")\s*=>",
        # const fn = function (a) { ... }
        _JS_DECL + r"function\b\s*\*?\s*(?:" + _JS_ID + r")?\s*\((?P<params>[^)]*)",
    ),
    class_=_compile(
        r"^\s*(?:export\s+(?:default\s+)?)?(?:declare\s+)?(?:abstract\s+)?(?:class|interface)\s+(?P<name>"
        + _JS_ID + r")",
    ),
    import_=_compile(
        r"^\s*import\s+(?:type\s+)?(?P<names>[^'\"`]+?)\s+from\s+['\"](?P<module>[^'\"]+)['\"]",
        r"^\s*import\s+['\"](?P<module>[^'\"]+)['\"]",
        r"^\s*export\s+(?:type\s+)?(?P<names>\*(?:\s+as\s+" + _JS_ID + r")?|\{[^}]*\})\s+from\s+['\"](?P<module>[^'\"]+)['\"]",
        r"(?:(?:const|let|var)\s+(?P<names>[^=]+?)\s*=\s*)?\brequire\(\s*['\"](?P<module>[^'\"]+)['\"]\s*\)",
    ),
    error_handling=_compile(
        r"\.catch\s*\(\s*(?:async\s+)?(?:function\s*[\w$]*\s*\(\s*(?P<name>" + _JS_ID + r")|\(\s*(?P<name2>"
        + _JS_ID + r")|(?P<name3>" + _JS_ID + r")\s*=>)?",
        r"\bcatch\s*(?:\(\s*(?P<name>" + _JS_ID + r")[^)]*\))?\s*\{",
    ),
)

_PYTHON_PATTERNS = LanguagePatterns(
    function=_compile(
        r"^\s*(?P<async>async\s+)?def\s+(?P<name>\w+)\s*(?:\[[^\]]*\])?\s*\((?P<params>[^)]*)",
    ),
    class_=_compile(r"^\s*class\s+(?P<name>\w+)"),
    import_=_compile(
        r"^\s*from\s+(?P<module>\.+[\w.]*|[\w.]+)\s+import\s+(?P<names>.+)",
        r"^\s*import\s+(?P<module>[\w.]+)(?:\s+as\s+(?P<names>\w+))?",
    ),
    error_handling=_compile(r"^\s*except\b(?:[^:#]*?\bas\s+(?P<name>\w+))?\s*:"),
)

_GO_PATTERNS = LanguagePatterns(
    function=_compile(
        r"^\s*func\s+(?:\([^)]*\)\s*)?(?P<name>\w+)\s*(?:\[[^\]]*\])?\s*\((?P<params>[^)]*)",
    ),
    class_=_compile(r"^\s*type\s+(?P<name>\w+)\s+(?:struct|interface)\b"),
    import_=_compile(r'^\s*import\s+(?:(?P<names>[\w.]+)\s+)?"(?P<module>[^"]+)"'),
    error_handling=_compile(
        r"^\s*defer\b.*\b(?:panic|recover)\s*\(",
        r"^\s*if\s+(?:[^;{]*;\s*)?(?P<name>\w*[eE]rr\w*)\s*!=\s*nil",
    ),
)

_GO_IMPORT_BLOCK_START = re.compile(r"^\s*import\s*\(\s*(?://.*)?$")
_GO_IMPORT_BLOCK_ENTRY = re.compile(r'^\s*(?:(?P<names>[\w.]+)\s+)?"(?P<module>[^"]+)"')
_GO_IMPORT_BLOCK_END = re.compile(r"^\s*\)")

_JAVA_PATTERNS = LanguagePatterns(
    function=_compile(
        r"^\s*(?=\S)(?!(?:return|new|else|throw|if|for|while|switch|catch|case|do|try)\b)"
        r"(?:@\w+(?:\([^)]*\))?\s+)*"
        r"(?:(?:public|private|protected|static|final|abstract|synchronized|native|default|strictfp)\s+)*"
        r"(?:<[^>]+>\s+)?[\w.$<>\[\],?\s]*?[\w$>\]]\s+(?P<name>\w+)\s*\((?P<params>[^)]*)",
    ),
    class_=_compile(
        r"^\s*(?:@\w+(?:\([^)]*\))?\s+)*(?:(?:public|private|protected|abstract|final|static|sealed|non-sealed)\s+)*"
        r"(?:class|interface|enum|record|@interface)\s+(?P<name>\w+)",
    ),
    import_=_compile(r"^\s*import\s+(?:static\s+)?(?P<module>[\w.]+(?:\.\*)?)\s*;"),
    error_handling=_compile(
        r"\bcatch\s*\(\s*(?:final\s+)?[\w.]+(?:\s*\|\s*[\w.]+)*\s+(?P<name>\w+)\s*\)",
    ),
)

_KOTLIN_MODIFIERS = r"(?:(?:public|private|protected|internal|override|open|abstract|final|inline|operator|infix|tailrec|external)\s+)*"

_KOTLIN_PATTERNS = LanguagePatterns(
    function=_compile(
        r"^\s*(?:@\w+(?:\([^)]*\))?\s+)*" + _KOTLIN_MODIFIERS + r"(?P<async>suspend\s+)?" + _KOTLIN_MODIFIERS
        + r"fun\s+(?:<[^>]+>\s*)?(?:[\w.]+\.)?(?P<name>\w+)\s*\((?P<params>[^)]*)",
    ),
    class_=_compile(
        r"^\s*(?:@\w+(?:\([^)]*\))?\s+)*"
        r"(?:(?:public|private|protected|internal|abstract|final|open|sealed|data|enum|annotation|inner|value)\s+)*"
        r"(?:class|interface|object)\s+(?P<name>\w+)",
    ),
    import_=_compile(r"^\s*import\s+(?P<module>[\w.]+(?:\.\*)?)(?:\s+as\s+(?P<names>\w+))?"),
    error_handling=_compile(r"\bcatch\s*\(\s*(?P<name>\w+)\s*:"),
)

REGEX_PATTERNS: dict[Language, LanguagePatterns] = {
    Language.TYPESCRIPT: _JS_PATTERNS,
    Language.JAVASCRIPT: _JS_PATTERNS,
    Language.PYTHON: _PYTHON_PATTERNS,
    Language.GO: _GO_PATTERNS,
    Language.JAVA: _JAVA_PATTERNS,
    Language.KOTLIN: _KOTLIN_PATTERNS,
}

_PROMISE_CATCH = re.compile(r"\.catch\s*\(")
_JAVA_PARAM_NOISE = re.compile(r"@\w+(?:\([^)]*\))?|\bfinal\b")
_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")


def _first_match(patterns: tuple[Pattern[str], ...], line: str) -> re.Match[str] | None:
    for pattern in patterns:
        match = pattern.search(line)
        if match:
            return match
    return None


def _group(match: re.Match[str], *names: str) -> str | None:
    """First non-empty named group among names that exist in the pattern."""
    groups = match.groupdict()
    for name in names:
        if groups.get(name):
            return groups[name]
    return None


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split on sep, ignoring separators nested in brackets or generics."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char in "([{<":
            depth += 1
        elif char in ")]}>" and depth > 0:
            depth -= 1
        if char == sep and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def extract_params(params: str, language: Language) -> list[str]:
    """
    Extract parameter names from a raw parameter list.

    Java declares the type first (``String name``), so the last identifier
    is the name; every other supported language puts the name first.
    """
    names: list[str] = []
    for param in split_top_level(params):
        param = param.split("=", 1)[0]
        if language == Language.JAVA:
            param = _JAVA_PARAM_NOISE.sub(" ", param).replace("...", " ")
            identifiers = _IDENTIFIER.findall(param)
            names.append(identifiers[-1] if identifiers else "<param>")
        else:
            param = param.lstrip(".*& ")
            if language in (Language.TYPESCRIPT, Language.JAVASCRIPT):
                param = re.sub(r"^(?:(?:public|private|protected|readonly|override)\s+)+", "", param)
            match = _IDENTIFIER.match(param)
            names.append(match.group(0) if match else "<param>")
    return names


def split_js_import_names(clause: str) -> tuple[list[str], bool]:
    """
    Split an ES import clause or require() binding into local names.

    Returns:
        Tuple of (local names, whether a default binding is present).
    """
    names: list[str] = []
    has_default = False

    braces = re.search(r"\{([^}]*)\}", clause)
    if braces:
        for spec in braces.group(1).split(","):
            spec = re.sub(r"^type\s+", "", spec.strip())
            if not spec:
                continue
            # `a as b` (ES) and `a: b` (destructured require) bind b
            local = re.split(r"\s+as\s+|\s*:\s*", spec)[-1].strip()
            if local:
                names.append(local)
        clause = clause[:braces.start()] + clause[braces.end():]

    star = re.search(r"\*\s*as\s+(" + _JS_ID + r")", clause)
    if star:
        names.append(star.group(1))
        clause = clause[:star.start()] + clause[star.end():]

    default = clause.replace(",", " ").strip()
    if default.startswith("type "):
        default = default[5:].strip()
    if default and _IDENTIFIER.fullmatch(default):
        names.insert(0, default)
        has_default = True

    return names, has_default


def split_python_import_names(names: str, source: bool = False) -> list[str]:
    """
    Names in the name list of a ``from x import ...`` line.

    Returns the local bindings, or the names as written in the imported
    module when ``source`` is set.
    """
    names = names.split("#", 1)[0].strip().strip("()\\").strip()
    result: list[str] = []
    for item in names.split(","):
        item = item.strip().strip("()")
        if not item:
            continue
        parts = re.split(r"\s+as\s+", item)
        result.append((parts[0] if source else parts[-1]).strip())
    return result


def infer_error_type(line: str, language: Language) -> str:
    """Infer the kind of an error-handling line from its content."""
    if _PROMISE_CATCH.search(line):
        return "promise-catch"
    if language == Language.GO:
        if "defer" in line and ("panic" in line or "recover" in line):
            return "defer-panic"
        if re.search(r"\bif\b", line):
            return "if-error"
    return "try-catch"


class RegexParser(BaseParser):
    """
    Regex-based parser covering every supported language.

    Uses a per-language table of function, class, import and error-handling
    patterns. Unknown languages produce an empty result.
    """

    parse_method = "regex"

    def parse(
        self,
        source: str,
        language: Language,
        jsx: bool = False,
    ) -> CodeAnalysisResult:
        """
        Scan source text line by line.

        Args:
            source: Full text of the file.
            language: Language of the source.
            jsx: Unused; the line patterns are dialect independent.

        Returns:
            Analysis result with approximate extents.
        """
        result = self.empty_result(language)
        patterns = REGEX_PATTERNS.get(language)
        if patterns is None:
            return result

        in_go_import_block = False
        for line_num, line in enumerate(source.splitlines(), 1):
            if language == Language.GO:
                if in_go_import_block:
                    if _GO_IMPORT_BLOCK_END.match(line):
                        in_go_import_block = False
                    else:
                        match = _GO_IMPORT_BLOCK_ENTRY.match(line)
                        if match:
                            result.imports.append(self._build_import(match, line, line_num, language))
                    continue
                if _GO_IMPORT_BLOCK_START.match(line):
                    in_go_import_block = True
                    continue

            self._process_line(line, line_num, language, patterns, result)

        return result

    def _process_line(
        self,
        line: str,
        line_num: int,
        language: Language,
        patterns: LanguagePatterns,
        result: CodeAnalysisResult,
    ) -> None:
        """Process a single line of code."""
        match = _first_match(patterns.function, line)
        if match:
            result.functions.append(FunctionDefinition(
                name=_group(match, "name") or ANONYMOUS,
                start_line=line_num,
                end_line=line_num,
                params=extract_params(_group(match, "params") or "", language),
                is_async=bool(_group(match, "async")),
                extent_approximate=True,
            ))

        match = _first_match(patterns.class_, line)
        if match:
            result.classes.append(ClassDefinition(
                name=match.group("name"),
                start_line=line_num,
                end_line=line_num,
                extent_approximate=True,
            ))

        match = _first_match(patterns.import_, line)
        if match:
            result.imports.append(self._build_import(match, line, line_num, language))

        match = _first_match(patterns.error_handling, line)
        if match:
            result.error_handling.append(ErrorHandlingBlock(
                type=infer_error_type(line, language),
                start_line=line_num,
                end_line=line_num,
                handles_error=_group(match, "name", "name2", "name3") or "error",
                extent_approximate=True,
            ))

    def _build_import(
        self,
        match: re.Match[str],
        line: str,
        line_num: int,
        language: Language,
    ) -> ImportStatement:
        """Build an import record from a matched import line."""
        module = match.group("module")
        raw_names = _group(match, "names") or ""
        source_names: list[str] = []

        if language in (Language.TYPESCRIPT, Language.JAVASCRIPT):
            names, is_default = split_js_import_names(raw_names)
        elif language == Language.PYTHON:
            if line.lstrip().startswith("from "):
                names, is_default = split_python_import_names(raw_names), False
                source_names = split_python_import_names(raw_names, source=True)
            else:
                names, is_default = [raw_names or module.split(".")[0]], True
        else:
            # Go, Java, Kotlin: an alias or the last path segment
            last = re.split(r"[./]", module.rstrip(".*"))[-1]
            names, is_default = [raw_names or last], False

        return ImportStatement(
            module=module,
            imports=names,
            line_number=line_num,
            is_default=is_default,
            source_names=source_names,
        )
