"""
Multi-file dependency graph for codebase_relations.

Relates files through relative imports (both directions), cross-file
function calls and HTTP endpoints. Nothing is indexed ahead of time:
each query walks the project tree, and per-file analysis is memoized
for the lifetime of the graph instance.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

from codebase_relations.analyzer import CodeAnalyzer
from codebase_relations.config import (
    DEFAULT_CONFIG,
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_EXTENSIONS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_TRACE_DEPTH,
)
from codebase_relations.models import DependencyType, FileDependency
from codebase_relations.scanners import ApiCallerScanner, EndpointScanner
from codebase_relations.utils import read_source, should_exclude

if TYPE_CHECKING:
    from typing import Any, Iterable

    from codebase_relations.models import APIEndpoint, CodeAnalysisResult, ImportStatement

logger = logging.getLogger(__name__)

# A call site preceded by one of these keywords is a definition, not a call
_DEFINITION_PREFIX = re.compile(r"\b(?:function|def|func|fun)\s*\*?\s*$")


def call_site_pattern(names: Iterable[str]) -> re.Pattern[str]:
    """
    Build a regex matching a call to any of the given function names.

    Matches ``name(``, ``obj.name(`` and ``[name](`` but not calls to a
    longer identifier that merely ends with the name.
    """
    alternatives = "|".join(re.escape(name) for name in sorted(names, key=len, reverse=True))
    return re.compile(r"(?<![\w$])(" + alternatives + r")\s*\(")


def find_call_sites(source: str, pattern: re.Pattern[str]) -> list[tuple[int, str]]:
    """
    Find call sites in source text.

    Returns:
        List of (line number, called name), at most one per line.
    """
    sites: list[tuple[int, str]] = []
    for line_num, line in enumerate(source.splitlines(), 1):
        for match in pattern.finditer(line):
            if _DEFINITION_PREFIX.search(line[:match.start()]):
                continue
            sites.append((line_num, match.group(1)))
            break
    return sites


class DependencyGraph:
    """Answers relationship queries about the files of one project."""

    def __init__(
        self,
        root: Path | str | None = None,
        extensions: list[str] | None = None,
        exclude_dirs: list[str] | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        analyzer: CodeAnalyzer | None = None,
        trace_depth: int = DEFAULT_TRACE_DEPTH,
    ):
        """
        Initialize the dependency graph.

        Args:
            root: Project root directory (defaults to the current directory).
            extensions: File extensions to walk and to try when resolving imports.
            exclude_dirs: Directory names to skip.
            max_depth: Recursion limit for related-file expansion and directory walks.
            analyzer: Analyzer used for per-file structure.
            trace_depth: Default recursion limit for function call tracing.
        """
        self.root = Path(root or os.getcwd()).resolve()
        self.extensions = list(extensions or DEFAULT_EXTENSIONS)
        self.exclude_dirs = list(exclude_dirs or DEFAULT_EXCLUDE_DIRS)
        self.max_depth = max_depth
        self.trace_depth = trace_depth
        self.analyzer = analyzer or CodeAnalyzer()

        self.endpoint_scanner = EndpointScanner()
        self.caller_scanner = ApiCallerScanner()

        # Not synchronized; one graph per worker
        self._analysis_cache: dict[Path, CodeAnalysisResult] = {}

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        root: Path | str | None = None,
        analyzer: CodeAnalyzer | None = None,
    ) -> DependencyGraph:
        """
        Build a graph from a configuration dictionary.

        Args:
            config: Configuration as returned by load_config().
            root: Project root directory.
            analyzer: Analyzer used for per-file structure.
        """
        graph_config = {**DEFAULT_CONFIG["graph"], **config.get("graph", {})}
        return cls(
            root=root,
            extensions=graph_config["extensions"],
            exclude_dirs=graph_config["exclude_dirs"],
            max_depth=graph_config["max_depth"],
            trace_depth=graph_config["trace_depth"],
            analyzer=analyzer,
        )

    def clear_cache(self) -> None:
        """Forget memoized per-file analysis."""
        self._analysis_cache.clear()

    # ------------------------------------------------------------------
    # Related files
    # ------------------------------------------------------------------

    def get_related_files(self, path: Path | str) -> list[Path]:
        """
        Get all files related to a file through imports and function calls.

        Args:
            path: File to start from; relative paths resolve against the
                current directory.

        Returns:
            Related files, most relevant first. The file itself is excluded.
        """
        origin = Path(path).resolve()
        files = self._project_files()
        related: set[Path] = set()
        visited: set[Path] = set()

        self._expand(origin, files, related, visited, 0)

        related.discard(origin)
        return self._sort_by_relevance(origin, related)

    def _expand(
        self,
        current: Path,
        files: list[Path],
        related: set[Path],
        visited: set[Path],
        depth: int,
    ) -> None:
        """Add the neighbours of a file to ``related`` and recurse into them."""
        if depth >= self.max_depth or current in visited:
            return
        visited.add(current)

        if not current.is_file() or self._is_excluded(current):
            return

        analysis = self._analyze(current)

        neighbours: list[Path] = []
        for imp in analysis.imports:
            neighbours.extend(self._resolve_import(current, imp))
        neighbours.extend(self._find_reverse_imports(current, files))
        neighbours.extend(self._find_function_call_dependencies(current, analysis, files))

        for neighbour in neighbours:
            if neighbour in visited or self._is_excluded(neighbour):
                continue
            related.add(neighbour)
            self._expand(neighbour, files, related, visited, depth + 1)

    def _resolve_import(self, from_file: Path, imp: ImportStatement) -> list[Path]:
        """
        Resolve a relative import to the project files it refers to.

        Bare specifiers (packages) never resolve. A Python ``from`` import
        whose module is only dots (``from . import a, b``) names modules
        inside the package, so each imported name is resolved on its own
        and the package ``__init__.py`` is the fallback.

        Args:
            from_file: File containing the import.
            imp: Import as parsed from ``from_file``.

        Returns:
            Absolute paths of the imported files, possibly empty.
        """
        module = imp.module
        if not module.startswith("."):
            return []

        if from_file.suffix == ".py" and not module.strip("."):
            resolved: list[Path] = []
            for name in imp.imported_names:
                if not name.isidentifier():
                    continue
                candidate = self._resolve_module(from_file, module + name)
                if candidate is not None and candidate not in resolved:
                    resolved.append(candidate)
            if not resolved:
                package_init = self._python_module_path(from_file.parent, module) / "__init__.py"
                if package_init.is_file():
                    resolved.append(package_init)
            return resolved

        candidate = self._resolve_module(from_file, module)
        return [candidate] if candidate is not None else []

    def _resolve_module(self, from_file: Path, module: str) -> Path | None:
        """
        Resolve one relative module specifier to an existing project file.

        Args:
            from_file: File containing the import.
            module: Import specifier as written, e.g. ``./utils`` or ``..pkg.mod``.

        Returns:
            Absolute path of the imported file, or None.
        """
        if from_file.suffix == ".py" and "/" not in module:
            base = self._python_module_path(from_file.parent, module)
        else:
            base = Path(os.path.normpath(from_file.parent / module))

        if base.is_file() and base.suffix in self.extensions:
            return base

        # `.`, `..` and `../..` name a directory, never `<dir>.ext`
        if module.rstrip("/").split("/")[-1].strip("."):
            for ext in self.extensions:
                candidate = Path(str(base) + ext)
                if candidate.is_file():
                    return candidate

        for ext in self.extensions:
            candidate = base / f"index{ext}"
            if candidate.is_file():
                return candidate

        if from_file.suffix == ".py":
            candidate = base / "__init__.py"
            if candidate.is_file():
                return candidate

        return None

    def _python_module_path(self, directory: Path, module: str) -> Path:
        """Translate a relative Python module (``.a.b``, ``..pkg``) to a path stem."""
        level = len(module) - len(module.lstrip("."))
        base = directory
        for _ in range(level - 1):
            base = base.parent
        remainder = module[level:]
        if remainder:
            base = base.joinpath(*remainder.split("."))
        return base

    def _find_reverse_imports(self, target: Path, files: list[Path]) -> list[Path]:
        """Find project files whose relative imports resolve to ``target``."""
        importers: list[Path] = []
        for filepath in files:
            if filepath == target:
                continue
            analysis = self._analyze(filepath)
            for imp in analysis.imports:
                if target in self._resolve_import(filepath, imp):
                    importers.append(filepath)
                    break
        return importers

    def _find_function_call_dependencies(
        self,
        target: Path,
        analysis: CodeAnalysisResult,
        files: list[Path],
    ) -> list[Path]:
        """Find project files that call a named function defined in ``target``."""
        names = analysis.named_functions()
        if not names:
            return []

        pattern = call_site_pattern(names)
        callers: list[Path] = []
        for filepath in files:
            if filepath == target:
                continue
            source = read_source(filepath)
            if source is not None and find_call_sites(source, pattern):
                callers.append(filepath)
        return callers

    def _sort_by_relevance(self, origin: Path, related: Iterable[Path]) -> list[Path]:
        """
        Order related files by directory proximity to the origin.

        Same directory first, then files whose parent directory is a sibling
        of the origin's, then everything else; alphabetical within each group.
        """
        origin_dir = origin.parent

        def key(path: Path) -> tuple[int, str]:
            if path.parent == origin_dir:
                bucket = 0
            elif path.parent.parent == origin_dir.parent:
                bucket = 1
            else:
                bucket = 2
            return bucket, str(path)

        return sorted(related, key=key)

    # ------------------------------------------------------------------
    # Function call tracing
    # ------------------------------------------------------------------

    def trace_function_calls(
        self,
        function_name: str,
        start_file: Path | str,
        max_depth: int | None = None,
    ) -> list[FileDependency]:
        """
        Trace call chains to a function across file boundaries.

        Every file calling the function yields one edge per calling line.
        Tracing then continues with all named functions of each caller file,
        so transitive callers are found too.

        Args:
            function_name: Function to trace.
            start_file: File defining the function.
            max_depth: Recursion limit (defaults to the configured trace depth).

        Returns:
            function_call edges from caller files to the files they call into.
        """
        if max_depth is None:
            max_depth = self.trace_depth

        files = self._project_files()
        edges: list[FileDependency] = []
        visited: set[Path] = set()
        self._trace(
            [function_name], Path(start_file).resolve(), files, edges, visited, 0, max_depth,
        )
        return edges

    def _trace(
        self,
        names: list[str],
        current: Path,
        files: list[Path],
        edges: list[FileDependency],
        visited: set[Path],
        depth: int,
        max_depth: int,
    ) -> None:
        if depth >= max_depth or current in visited or not names:
            return
        visited.add(current)

        pattern = call_site_pattern(names)
        for filepath in files:
            if filepath == current:
                continue
            source = read_source(filepath)
            if source is None:
                continue
            sites = find_call_sites(source, pattern)
            if not sites:
                continue

            for line_num, name in sites:
                edges.append(FileDependency(
                    from_file=str(filepath),
                    to_file=str(current),
                    type=DependencyType.FUNCTION_CALL,
                    entity=name,
                    line_number=line_num,
                ))

            caller_names = self._analyze(filepath).named_functions()
            self._trace(caller_names, filepath, files, edges, visited, depth + 1, max_depth)

    # ------------------------------------------------------------------
    # API endpoints
    # ------------------------------------------------------------------

    def identify_api_endpoints(self) -> list[APIEndpoint]:
        """Find HTTP endpoint declarations across the project."""
        return self.endpoint_scanner.scan(self._project_files())

    def find_api_callers(self, api_path: str) -> list[FileDependency]:
        """
        Find client-side calls to an API path.

        Args:
            api_path: Endpoint path, with or without a leading slash.

        Returns:
            api_endpoint edges from each calling line to the handler file,
            or to ``<api>`` when no handler is declared in the project.
        """
        files = self._project_files()
        endpoints = self.endpoint_scanner.scan(files)
        return self.caller_scanner.scan(files, api_path, endpoints)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _analyze(self, filepath: Path) -> CodeAnalysisResult:
        """Get cached analysis of a file, analyzing it on first use."""
        if filepath not in self._analysis_cache:
            self._analysis_cache[filepath] = self.analyzer.analyze_file(filepath)
        return self._analysis_cache[filepath]

    def _is_excluded(self, filepath: Path) -> bool:
        return should_exclude(filepath, self.exclude_dirs, self.root)

    def _project_files(self) -> list[Path]:
        """
        Walk the project for files with a configured extension.

        Directories deeper than max_depth below the root are not entered.

        Returns:
            Sorted absolute paths.
        """
        files: list[Path] = []
        excluded = set(self.exclude_dirs)
        for dirpath, dirs, filenames in os.walk(self.root):
            current = Path(dirpath)
            depth = len(current.relative_to(self.root).parts)
            if depth >= self.max_depth:
                dirs[:] = []
                continue

            dirs[:] = [d for d in dirs if d not in excluded]
            for filename in filenames:
                filepath = current / filename
                if filepath.suffix in self.extensions:
                    files.append(filepath)

        return sorted(files)
