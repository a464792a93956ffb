"""Tests for language detection and the precise (AST) parsing path."""

from pathlib import Path

import pytest

from codebase_relations.analyzer import CodeAnalyzer, detect_language
from codebase_relations.models import ANONYMOUS, Language
from codebase_relations.parsers import ParseFailure, ParserRegistry, PythonParser


@pytest.mark.parametrize("filename,expected", [
    ("app.ts", Language.TYPESCRIPT),
    ("App.TSX", Language.TYPESCRIPT),
    ("index.js", Language.JAVASCRIPT),
    ("view.jsx", Language.JAVASCRIPT),
    ("server.mjs", Language.JAVASCRIPT),
    ("main.py", Language.PYTHON),
    ("main.go", Language.GO),
    ("Main.java", Language.JAVA),
    ("Main.kt", Language.KOTLIN),
    ("build.gradle.kts", Language.KOTLIN),
    ("README.md", Language.UNKNOWN),
    ("Makefile", Language.UNKNOWN),
])
def test_detect_language(filename: str, expected: Language):
    """Test extension-based language detection is case-insensitive."""
    assert detect_language(filename) == expected
    assert CodeAnalyzer.detect_language(Path(filename)) == expected


def test_registry_has_precise_parsers():
    """Test JavaScript, TypeScript and Python have precise parsers."""
    languages = ParserRegistry.list_languages()
    assert Language.JAVASCRIPT in languages
    assert Language.TYPESCRIPT in languages
    assert Language.PYTHON in languages
    assert ParserRegistry.get_parser(Language.GO) is None
    assert ParserRegistry.get_parser(Language.JAVASCRIPT) is ParserRegistry.get_parser(Language.TYPESCRIPT)


def test_typescript_functions(sample_typescript_code: str):
    """Test functions, arrows and methods are extracted with exact extents."""
    result = CodeAnalyzer().analyze_source(sample_typescript_code, Language.TYPESCRIPT)

    assert result.parse_method == "ast"
    by_name = {f.name: f for f in result.functions}

    load_user = by_name["loadUser"]
    assert load_user.is_async
    assert load_user.params == ["id", "opts"]
    assert load_user.start_line == 6
    assert load_user.end_line == 12
    assert not load_user.extent_approximate

    format_name = by_name["formatName"]
    assert format_name.params == ["first", "last"]
    assert not format_name.is_method

    get = by_name["get"]
    assert get.is_method
    assert get.is_async

    assert ANONYMOUS in by_name
    assert result.named_functions() == ["loadUser", "formatName"]


def test_typescript_classes(sample_typescript_code: str):
    """Test classes are extracted with their members."""
    result = CodeAnalyzer().analyze_source(sample_typescript_code, Language.TYPESCRIPT)

    assert [c.name for c in result.classes] == ["UserService"]
    service = result.classes[0]
    assert "get" in service.methods
    assert service.start_line == 16
    assert service.end_line == 22


def test_typescript_imports(sample_typescript_code: str):
    """Test ES imports and require() calls are extracted."""
    result = CodeAnalyzer().analyze_source(sample_typescript_code, Language.TYPESCRIPT)

    assert [i.module for i in result.imports] == ["react", "path", "./utils", "fs"]

    react, ns, utils, fs = result.imports
    assert react.imports == ["React", "useState"]
    assert react.is_default
    assert ns.imports == ["path"]
    assert not ns.is_default
    assert utils.imports == ["helper"]
    assert fs.imports == ["fs"]
    assert fs.line_number == 4


def test_typescript_error_handling(sample_typescript_code: str):
    """Test try/catch and promise .catch() are extracted."""
    result = CodeAnalyzer().analyze_source(sample_typescript_code, Language.TYPESCRIPT)

    kinds = {(e.type, e.handles_error) for e in result.error_handling}
    assert ("try-catch", "err") in kinds
    assert ("promise-catch", "e") in kinds

    try_block = next(e for e in result.error_handling if e.type == "try-catch")
    assert try_block.start_line == 7
    assert try_block.end_line == 11


def test_tsx_file_uses_ast(temp_dir: Path):
    """Test .tsx files with JSX parse through the AST path."""
    component = temp_dir / "Greeting.tsx"
    component.write_text(
        "import React from 'react';\n"
        "\n"
        "export function Greeting({ name }: Props) {\n"
        "  return <div className=\"greeting\">Hello {name}</div>;\n"
        "}\n"
    )

    result = CodeAnalyzer().analyze_file(component)

    assert result.parse_method == "ast"
    assert result.language == Language.TYPESCRIPT
    assert [f.name for f in result.functions] == ["Greeting"]
    assert result.functions[0].end_line == 5


def test_typescript_decorators_use_ast():
    """Test decorated classes and methods parse through the AST path."""
    source = (
        "@Injectable()\n"
        "class Store {}\n"
        "\n"
        "export class Api {\n"
        "  @Get('/items')\n"
        "  list(): string[] {\n"
        "    return [];\n"
        "  }\n"
        "}\n"
    )

    result = CodeAnalyzer().analyze_source(source, Language.TYPESCRIPT)

    assert result.parse_method == "ast"
    assert [c.name for c in result.classes] == ["Store", "Api"]
    assert result.classes[1].methods == ["list"]


def test_javascript_object_and_assignment_names():
    """Test anonymous functions take the name they are bound to."""
    source = (
        "const handlers = {\n"
        "  onClick: function () {},\n"
        "};\n"
        "module.exports.start = () => {};\n"
        "setTimeout(() => {}, 10);\n"
    )

    result = CodeAnalyzer().analyze_source(source, Language.JAVASCRIPT)
    names = [(f.name, f.is_method) for f in result.functions]

    assert ("onClick", True) in names
    assert ("start", False) in names
    assert (ANONYMOUS, False) in names


def test_typescript_syntax_error_falls_back_to_regex():
    """Test a source the grammar rejects is analyzed with the regex parser."""
    source = (
        "function broken( {\n"
        "  return 1;\n"
        "}\n"
        "function ok(a) {}\n"
    )

    result = CodeAnalyzer().analyze_source(source, Language.TYPESCRIPT)

    assert result.parse_method == "regex"
    ok = next(f for f in result.functions if f.name == "ok")
    assert ok.start_line == 4
    assert ok.end_line == 4
    assert ok.extent_approximate


def test_use_ast_disabled():
    """Test the capability flag routes everything to the regex parser."""
    result = CodeAnalyzer(use_ast=False).analyze_source("function f() {}\n", Language.JAVASCRIPT)
    assert result.parse_method == "regex"
    assert result.functions[0].name == "f"


def test_python_ast(sample_python_code: str):
    """Test Python functions, classes, imports and handlers via ast."""
    result = CodeAnalyzer().analyze_source(sample_python_code, Language.PYTHON)

    assert result.parse_method == "ast"
    by_name = {f.name: f for f in result.functions}

    assert by_name["add"].params == ["a", "b", "args", "key", "kwargs"]
    assert by_name["add"].start_line == 6
    assert by_name["add"].end_line == 7
    assert by_name["fetch"].is_async
    assert by_name["square"].params == ["x"]
    assert by_name["multiply"].is_method
    assert result.named_functions() == ["add", "fetch", "square"]

    assert [c.name for c in result.classes] == ["Calculator"]
    assert result.classes[0].methods == ["multiply"]

    assert [i.module for i in result.imports] == ["os", ".utils", "."]
    assert result.imports[0].is_default
    assert result.imports[1].imports == ["h"]
    assert result.imports[1].imported_names == ["helper"]
    assert result.imports[2].imports == ["pkg"]

    assert len(result.error_handling) == 1
    handler = result.error_handling[0]
    assert handler.handles_error == "exc"
    assert (handler.start_line, handler.end_line) == (11, 14)


def test_python_syntax_error_is_parse_failure():
    """Test the Python parser reports failure instead of raising."""
    outcome = PythonParser().parse("def broken(:\n", Language.PYTHON)
    assert isinstance(outcome, ParseFailure)
    assert "syntax error" in outcome.reason


def test_python_syntax_error_falls_back_to_regex():
    """Test a Python file that doesn't compile is analyzed with regex."""
    source = "def ok(a, b):\n    return a\n\ndef broken(:\n"

    result = CodeAnalyzer().analyze_source(source, Language.PYTHON)

    assert result.parse_method == "regex"
    assert result.functions[0].name == "ok"
    assert result.functions[0].params == ["a", "b"]


def test_analyze_missing_file(temp_dir: Path):
    """Test an unreadable file yields an empty result with an error."""
    result = CodeAnalyzer().analyze_file(temp_dir / "missing.ts")

    assert result.language == Language.TYPESCRIPT
    assert result.parse_method == "regex"
    assert result.error
    assert result.functions == []
    assert result.imports == []


def test_analyze_unknown_language(temp_dir: Path):
    """Test files in unknown languages give an empty regex result."""
    notes = temp_dir / "notes.txt"
    notes.write_text("function looksLikeCode() {}\n")

    result = CodeAnalyzer().analyze_file(notes)

    assert result.language == Language.UNKNOWN
    assert result.parse_method == "regex"
    assert result.functions == []


def test_result_to_dict(sample_python_code: str):
    """Test analysis results serialize to plain JSON types."""
    data = CodeAnalyzer().analyze_source(sample_python_code, Language.PYTHON).to_dict()

    assert data["language"] == "python"
    assert data["parse_method"] == "ast"
    assert data["functions"][0]["name"] == "add"
    assert "error" not in data
