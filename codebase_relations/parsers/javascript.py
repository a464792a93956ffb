"""
JavaScript and TypeScript parser for codebase_relations.

Uses tree-sitter grammars for exact line ranges. Any syntax error in the
tree is reported as a ParseFailure so the analyzer can fall back to the
regex parser.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language as TSLanguage
from tree_sitter import Parser as TSParser

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
from codebase_relations.parsers.regex import split_js_import_names

if TYPE_CHECKING:
    from tree_sitter import Node

logger = logging.getLogger(__name__)

FUNCTION_NODES = {
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
}

CLASS_NODES = {
    "class_declaration",
    "class",
    "abstract_class_declaration",
    "interface_declaration",
}

# Grammar name -> callable returning the language capsule
_GRAMMARS = {
    "javascript": tree_sitter_javascript.language,
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}


def _text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _start(node: Node) -> int:
    return node.start_point[0] + 1


def _end(node: Node) -> int:
    return node.end_point[0] + 1


def _string_value(node: Node | None) -> str | None:
    """Unquote a string literal node."""
    if node is None or node.type not in ("string", "template_string"):
        return None
    raw = _text(node)
    if len(raw) >= 2:
        return raw[1:-1]
    return None


def _first_syntax_error(node: Node) -> int | None:
    """Line of the first ERROR or missing node, if any."""
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return _start(current)
        if current.has_error:
            stack.extend(reversed(current.children))
    return None


@ParserRegistry.register(Language.JAVASCRIPT, Language.TYPESCRIPT)
class JavaScriptParser(BaseParser):
    """
    Tree-sitter based parser for JavaScript, TypeScript and their JSX dialects.

    Extracts:
    - Function declarations, function expressions, arrow functions and methods
    - Classes and interfaces with their member names
    - ES imports, re-exports and require() calls
    - try/catch statements and promise .catch() handlers
    """

    parse_method = "ast"

    def __init__(self) -> None:
        self._parsers: dict[str, TSParser] = {}

    def _get_parser(self, grammar: str) -> TSParser:
        if grammar not in self._parsers:
            self._parsers[grammar] = TSParser(TSLanguage(_GRAMMARS[grammar]()))
            logger.debug("Loaded tree-sitter grammar: %s", grammar)
        return self._parsers[grammar]

    @staticmethod
    def _grammar_for(language: Language, jsx: bool) -> str:
        if language == Language.TYPESCRIPT:
            return "tsx" if jsx else "typescript"
        # The JavaScript grammar accepts JSX as-is
        return "javascript"

    def parse(
        self,
        source: str,
        language: Language,
        jsx: bool = False,
    ) -> CodeAnalysisResult | ParseFailure:
        """
        Parse JavaScript or TypeScript source.

        Args:
            source: Full text of the file.
            language: JAVASCRIPT or TYPESCRIPT.
            jsx: Use the TSX grammar for TypeScript sources.

        Returns:
            Analysis result, or ParseFailure if the tree contains syntax errors.
        """
        try:
            parser = self._get_parser(self._grammar_for(language, jsx))
            tree = parser.parse(source.encode("utf-8"))
            root = tree.root_node
            if root.has_error:
                line = _first_syntax_error(root)
                return ParseFailure(f"syntax error near line {line}" if line else "syntax error")

            result = self.empty_result(language)
            self._walk(root, result)
            return result
        except Exception as e:
            logger.debug("tree-sitter parse failed: %s", e)
            return ParseFailure(str(e) or e.__class__.__name__)

    def _walk(self, root: Node, result: CodeAnalysisResult) -> None:
        """Visit every node in document order."""
        stack = [root]
        while stack:
            node = stack.pop()
            if not node.is_named:
                # Keyword tokens share type names like "function" and "class"
                continue
            node_type = node.type

            if node_type in FUNCTION_NODES:
                result.functions.append(self._build_function(node))
            elif node_type in CLASS_NODES:
                result.classes.append(self._build_class(node))
            elif node_type == "import_statement":
                self._add_import(node, result)
            elif node_type == "export_statement":
                self._add_reexport(node, result)
            elif node_type == "try_statement":
                self._add_try(node, result)
            elif node_type == "call_expression":
                self._add_call(node, result)

            stack.extend(reversed(node.children))

    # ------------------------------------------------------------------
    # Functions and classes
    # ------------------------------------------------------------------

    def _build_function(self, node: Node) -> FunctionDefinition:
        name, is_method = self._function_name(node)
        return FunctionDefinition(
            name=name,
            start_line=_start(node),
            end_line=_end(node),
            params=self._params(node),
            is_async=any(child.type == "async" for child in node.children),
            is_method=is_method,
        )

    def _function_name(self, node: Node) -> tuple[str, bool]:
        """
        Resolve a function's name.

        Expressions take the name of the binding they are assigned to;
        object and class members are flagged as methods.
        """
        if node.type == "method_definition":
            return _text(node.child_by_field_name("name")) or ANONYMOUS, True

        name_node = node.child_by_field_name("name")
        if name_node is not None:
            return _text(name_node), False

        parent = node.parent
        if parent is None:
            return ANONYMOUS, False
        if parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
            if target is not None and target.type == "identifier":
                return _text(target), False
        elif parent.type == "pair":
            key = parent.child_by_field_name("key")
            if key is not None:
                return _text(key).strip("'\"`"), True
        elif parent.type in ("public_field_definition", "field_definition"):
            prop = parent.child_by_field_name("name") or parent.child_by_field_name("property")
            if prop is not None:
                return _text(prop), True
        elif parent.type == "assignment_expression":
            left = parent.child_by_field_name("left")
            if left is not None and left.type == "identifier":
                return _text(left), False
            if left is not None and left.type == "member_expression":
                return _text(left.child_by_field_name("property")) or ANONYMOUS, False
        return ANONYMOUS, False

    def _params(self, node: Node) -> list[str]:
        single = node.child_by_field_name("parameter")
        if single is not None:
            return [_text(single)]

        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            return []
        return [self._param_name(param) for param in params_node.named_children
                if param.type != "comment"]

    def _param_name(self, param: Node) -> str:
        if param.type in ("required_parameter", "optional_parameter"):
            pattern = param.child_by_field_name("pattern")
            return self._param_name(pattern) if pattern is not None else "<param>"
        if param.type == "identifier":
            return _text(param)
        if param.type == "assignment_pattern":
            left = param.child_by_field_name("left")
            return self._param_name(left) if left is not None else "<param>"
        if param.type == "rest_pattern":
            for child in param.named_children:
                if child.type == "identifier":
                    return _text(child)
        return "<param>"

    def _build_class(self, node: Node) -> ClassDefinition:
        name = _text(node.child_by_field_name("name"))
        if not name and node.parent is not None and node.parent.type == "variable_declarator":
            name = _text(node.parent.child_by_field_name("name"))

        members: list[str] = []
        body = node.child_by_field_name("body")
        if body is not None:
            for member in body.named_children:
                member_name = member.child_by_field_name("name") or member.child_by_field_name("property")
                if member_name is not None:
                    members.append(_text(member_name))

        return ClassDefinition(
            name=name or ANONYMOUS,
            start_line=_start(node),
            end_line=_end(node),
            methods=members,
        )

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _add_import(self, node: Node, result: CodeAnalysisResult) -> None:
        module = _string_value(node.child_by_field_name("source"))
        if module is None:
            return
        clause = next((c for c in node.named_children if c.type == "import_clause"), None)
        names, is_default = split_js_import_names(_text(clause)) if clause is not None else ([], False)
        result.imports.append(ImportStatement(
            module=module,
            imports=names,
            line_number=_start(node),
            is_default=is_default,
        ))

    def _add_reexport(self, node: Node, result: CodeAnalysisResult) -> None:
        module = _string_value(node.child_by_field_name("source"))
        if module is None:
            return
        names: list[str] = []
        for child in node.named_children:
            if child.type == "export_clause":
                names, _ = split_js_import_names(_text(child))
            elif child.type == "namespace_export":
                names, _ = split_js_import_names(_text(child))
        result.imports.append(ImportStatement(
            module=module,
            imports=names,
            line_number=_start(node),
        ))

    def _add_require(self, node: Node, result: CodeAnalysisResult) -> None:
        args = node.child_by_field_name("arguments")
        first = args.named_children[0] if args is not None and args.named_children else None
        module = _string_value(first)
        if module is None:
            return

        names: list[str] = []
        is_default = False
        parent = node.parent
        if parent is not None and parent.type == "variable_declarator":
            names, is_default = split_js_import_names(_text(parent.child_by_field_name("name")))
        result.imports.append(ImportStatement(
            module=module,
            imports=names,
            line_number=_start(node),
            is_default=is_default,
        ))

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------

    def _add_try(self, node: Node, result: CodeAnalysisResult) -> None:
        handler = node.child_by_field_name("handler")
        if handler is None:
            return
        param = handler.child_by_field_name("parameter")
        result.error_handling.append(ErrorHandlingBlock(
            type="try-catch",
            start_line=_start(node),
            end_line=_end(node),
            handles_error=_text(param) if param is not None and param.type == "identifier" else "error",
        ))

    def _add_call(self, node: Node, result: CodeAnalysisResult) -> None:
        func = node.child_by_field_name("function")
        if func is None:
            return
        if func.type == "identifier" and _text(func) == "require":
            self._add_require(node, result)
            return
        if func.type != "member_expression" or _text(func.child_by_field_name("property")) != "catch":
            return

        handles = "error"
        args = node.child_by_field_name("arguments")
        callback = args.named_children[0] if args is not None and args.named_children else None
        if callback is not None and callback.type in FUNCTION_NODES:
            params = self._params(callback)
            if params and params[0] != "<param>":
                handles = params[0]
        result.error_handling.append(ErrorHandlingBlock(
            type="promise-catch",
            start_line=_start(node),
            end_line=_end(node),
            handles_error=handles,
        ))
