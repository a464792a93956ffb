"""
Python AST-based parser for codebase_relations.
"""

from __future__ import annotations

import ast
import logging

from codebase_relations.models import (
    ANONYMOUS,
    ClassDefinition,
    CodeAnalysisResult,
    ErrorHandlingBlock,
    FunctionDefinition,
    ImportStatement,
    Language,
)
from codebase_relations.parsers.base import BaseParser, ParserRegistry, ParseFailure

logger = logging.getLogger(__name__)

# except* blocks only exist on 3.11+
_TRY_NODES = tuple(t for t in (ast.Try, getattr(ast, "TryStar", None)) if t is not None)


@ParserRegistry.register(Language.PYTHON)
class PythonParser(BaseParser):
    """
    Python parser using the ast module for accurate extraction.

    Files with syntax errors produce a ParseFailure and are analyzed
    with the regex parser instead.
    """

    parse_method = "ast"

    def parse(
        self,
        source: str,
        language: Language,
        jsx: bool = False,
    ) -> CodeAnalysisResult | ParseFailure:
        """
        Parse Python source.

        Args:
            source: Full text of the file.
            language: Always PYTHON.
            jsx: Unused.

        Returns:
            Analysis result, or ParseFailure if the source doesn't compile.
        """
        try:
            tree = ast.parse(source)
        except SyntaxError as e:
            logger.debug("Syntax error: %s, falling back to regex", e)
            return ParseFailure(f"syntax error at line {e.lineno}: {e.msg}")
        except (ValueError, RecursionError) as e:
            return ParseFailure(str(e) or e.__class__.__name__)

        result = self.empty_result(language)
        methods = self._method_nodes(tree)
        lambda_names = self._lambda_names(tree)

        for node in ast.walk(tree):
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                result.functions.append(FunctionDefinition(
                    name=node.name,
                    start_line=node.lineno,
                    end_line=getattr(node, "end_lineno", None) or node.lineno,
                    params=self._params(node.args),
                    is_async=isinstance(node, ast.AsyncFunctionDef),
                    is_method=id(node) in methods,
                ))
            elif isinstance(node, ast.Lambda):
                result.functions.append(FunctionDefinition(
                    name=lambda_names.get(id(node), ANONYMOUS),
                    start_line=node.lineno,
                    end_line=getattr(node, "end_lineno", None) or node.lineno,
                    params=self._params(node.args),
                ))
            elif isinstance(node, ast.ClassDef):
                result.classes.append(ClassDefinition(
                    name=node.name,
                    start_line=node.lineno,
                    end_line=getattr(node, "end_lineno", None) or node.lineno,
                    methods=[
                        item.name for item in node.body
                        if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef))
                    ],
                ))
            elif isinstance(node, ast.Import):
                for alias in node.names:
                    result.imports.append(ImportStatement(
                        module=alias.name,
                        imports=[alias.asname or alias.name.split(".")[0]],
                        line_number=node.lineno,
                        is_default=True,
                    ))
            elif isinstance(node, ast.ImportFrom):
                result.imports.append(ImportStatement(
                    module="." * node.level + (node.module or ""),
                    imports=[alias.asname or alias.name for alias in node.names],
                    line_number=node.lineno,
                    source_names=[alias.name for alias in node.names],
                ))
            elif isinstance(node, _TRY_NODES) and node.handlers:
                result.error_handling.append(ErrorHandlingBlock(
                    type="try-catch",
                    start_line=node.lineno,
                    end_line=getattr(node, "end_lineno", None) or node.lineno,
                    handles_error=node.handlers[0].name or "error",
                ))

        # ast.walk is breadth-first; report in source order
        result.functions.sort(key=lambda f: (f.start_line, f.end_line))
        result.classes.sort(key=lambda c: c.start_line)
        result.imports.sort(key=lambda i: i.line_number)
        result.error_handling.sort(key=lambda e: e.start_line)
        return result

    def _method_nodes(self, tree: ast.Module) -> set[int]:
        """Ids of functions defined directly in a class body."""
        methods: set[int] = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.ClassDef):
                for item in node.body:
                    if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)):
                        methods.add(id(item))
        return methods

    def _lambda_names(self, tree: ast.Module) -> dict[int, str]:
        """Names for lambdas bound with `name = lambda ...`."""
        names: dict[int, str] = {}
        for node in ast.walk(tree):
            if (
                isinstance(node, ast.Assign)
                and isinstance(node.value, ast.Lambda)
                and len(node.targets) == 1
                and isinstance(node.targets[0], ast.Name)
            ):
                names[id(node.value)] = node.targets[0].id
        return names

    def _params(self, args: ast.arguments) -> list[str]:
        params = [a.arg for a in args.posonlyargs + args.args]
        if args.vararg:
            params.append(args.vararg.arg)
        params.extend(a.arg for a in args.kwonlyargs)
        if args.kwarg:
            params.append(args.kwarg.arg)
        return params
