"""Tests for the dependency graph: related files, call tracing and endpoints."""

from pathlib import Path

from codebase_relations.analyzer import CodeAnalyzer
from codebase_relations.graph import DependencyGraph, call_site_pattern, find_call_sites
from codebase_relations.models import DependencyType


class CountingAnalyzer(CodeAnalyzer):
    """Analyzer that records how often each file is analyzed."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def analyze_file(self, path):
        self.calls += 1
        return super().analyze_file(path)


def test_related_files_follow_imports_and_calls(make_project):
    """Test forward imports, reverse imports and callers are all related."""
    root = make_project({
        "src/app.js": "import { helper } from './utils';\nhelper();\n",
        "src/utils.js": "export function helper() {\n  return 1;\n}\n",
        "src/main.js": "import app from './app';\n",
        "src/other.js": "const x = helper();\n",
        "src/unrelated.js": "export const y = 2;\n",
    })
    graph = DependencyGraph(root)

    related = graph.get_related_files(root / "src" / "app.js")

    assert related == [
        root / "src" / "main.js",
        root / "src" / "other.js",
        root / "src" / "utils.js",
    ]


def test_related_files_handle_cycles(make_project):
    """Test import cycles terminate and never include the origin."""
    root = make_project({
        "a.js": "import './b';\n",
        "b.js": "import './a';\n",
    })

    assert DependencyGraph(root).get_related_files(root / "a.js") == [root / "b.js"]


def test_related_files_depth_limit(make_project):
    """Test expansion stops at the configured depth."""
    files = {f"f{i}.js": f"import './f{i + 1}';\n" for i in range(4)}
    files["f4.js"] = "export const last = true;\n"
    root = make_project(files)

    shallow = DependencyGraph(root, max_depth=2).get_related_files(root / "f0.js")
    deep = DependencyGraph(root, max_depth=4).get_related_files(root / "f0.js")

    assert shallow == [root / "f1.js", root / "f2.js"]
    assert deep == [root / f"f{i}.js" for i in range(1, 5)]


def test_related_files_skip_excluded_dirs(make_project):
    """Test files under excluded directories are never related."""
    root = make_project({
        "src/app.js": "import lib from '../node_modules/lib/index';\n",
        "node_modules/lib/index.js": "import app from '../../src/app';\n",
    })

    assert DependencyGraph(root).get_related_files(root / "src" / "app.js") == []


def test_related_files_relevance_order(make_project):
    """Test same-directory files come first, then sibling directories.

    A subdirectory of the origin is neither, so it sorts with the rest.
    """
    root = make_project({
        "src/feature/origin.js": (
            "import '../../top';\n"
            "import '../../lib/deep/far';\n"
            "import '../api/client';\n"
            "import './same';\n"
            "import './sub/x';\n"
        ),
        "src/feature/same.js": "",
        "src/feature/sub/x.js": "",
        "src/api/client.js": "",
        "lib/deep/far.js": "",
        "top.js": "",
    })

    related = DependencyGraph(root).get_related_files(root / "src" / "feature" / "origin.js")

    assert related == [
        root / "src" / "feature" / "same.js",
        root / "src" / "api" / "client.js",
        root / "lib" / "deep" / "far.js",
        root / "src" / "feature" / "sub" / "x.js",
        root / "top.js",
    ]


def test_related_files_index_resolution(make_project):
    """Test directory imports resolve to their index file."""
    root = make_project({
        "app.ts": "import { Button } from './components';\n",
        "components/index.ts": "export const Button = 1;\n",
    })

    related = DependencyGraph(root).get_related_files(root / "app.ts")

    assert related == [root / "components" / "index.ts"]


def test_related_files_python_relative_imports(make_project):
    """Test Python relative modules resolve to modules and packages."""
    root = make_project({
        "pkg/main.py": "from .utils import helper\nfrom .sub import thing\n",
        "pkg/utils.py": "def helper():\n    return 1\n",
        "pkg/sub/__init__.py": "from ..utils import helper\n\nthing = 1\n",
    })

    related = DependencyGraph(root).get_related_files(root / "pkg" / "main.py")

    assert related == [
        root / "pkg" / "utils.py",
        root / "pkg" / "sub" / "__init__.py",
    ]


def test_related_files_from_dot_import(make_project):
    """Test `from . import b` resolves to the sibling module, not `pkg.py`."""
    root = make_project({
        "pkg/__init__.py": "",
        "pkg/a.py": "from . import b\n",
        "pkg/b.py": "value = 1\n",
        "pkg.py": "",
    })
    graph = DependencyGraph(root)

    assert graph.get_related_files(root / "pkg" / "a.py") == [root / "pkg" / "b.py"]
    assert graph.get_related_files(root / "pkg" / "b.py") == [root / "pkg" / "a.py"]


def test_related_files_from_dot_import_several_names(make_project):
    """Test each name of a dots-only import resolves on its own, aliases included."""
    root = make_project({
        "pkg/a.py": "from . import b as c, d\n",
        "pkg/b.py": "",
        "pkg/d/__init__.py": "",
    })

    related = DependencyGraph(root).get_related_files(root / "pkg" / "a.py")

    assert related == [root / "pkg" / "b.py", root / "pkg" / "d" / "__init__.py"]


def test_related_files_from_dot_import_package_attribute(make_project):
    """Test names that aren't modules fall back to the package __init__."""
    root = make_project({
        "pkg/__init__.py": "def helper():\n    return 1\n",
        "pkg/a.py": "from . import helper\n",
        "pkg.py": "",
    })

    related = DependencyGraph(root).get_related_files(root / "pkg" / "a.py")

    assert related == [root / "pkg" / "__init__.py"]


def test_related_files_parent_directory_import(make_project):
    """Test `..` resolves to the parent's index file, never a sibling `<dir>.js`."""
    root = make_project({
        "src/app.js": "import config from '..';\n",
        "src.js": "",
        "index.js": "export default {};\n",
    })

    related = DependencyGraph(root).get_related_files(root / "src" / "app.js")

    assert related == [root / "index.js"]


def test_bare_imports_do_not_resolve(make_project):
    """Test package imports never relate files."""
    root = make_project({
        "app.js": "import React from 'react';\n",
        "react.js": "export default 1;\n",
    })

    assert DependencyGraph(root).get_related_files(root / "app.js") == []


def test_trace_function_calls_transitive(make_project):
    """Test tracing follows callers of callers."""
    root = make_project({
        "db.py": "def query(sql):\n    return sql\n",
        "service.py": "from .db import query\n\ndef get_user(uid):\n    return query(uid)\n",
        "controller.py": "from .service import get_user\n\ndef show(uid):\n    return get_user(uid)\n",
    })
    graph = DependencyGraph(root)

    edges = graph.trace_function_calls("query", root / "db.py")

    assert [(Path(e.from_file).name, Path(e.to_file).name, e.entity, e.line_number) for e in edges] == [
        ("service.py", "db.py", "query", 4),
        ("controller.py", "service.py", "get_user", 4),
    ]
    assert all(e.type == DependencyType.FUNCTION_CALL for e in edges)

    shallow = graph.trace_function_calls("query", root / "db.py", max_depth=1)
    assert len(shallow) == 1


def test_trace_function_calls_cycle(make_project):
    """Test mutually recursive files are traced once each."""
    root = make_project({
        "a.py": "def ping():\n    return pong()\n",
        "b.py": "def pong():\n    return ping()\n",
    })

    edges = DependencyGraph(root).trace_function_calls("ping", root / "a.py")

    assert [(Path(e.from_file).name, Path(e.to_file).name) for e in edges] == [
        ("b.py", "a.py"),
        ("a.py", "b.py"),
    ]


def test_call_site_pattern():
    """Test call sites match whole names and skip definitions."""
    pattern = call_site_pattern(["load"])
    source = (
        "function load() {}\n"
        "reload();\n"
        "store.load(1); load(2);\n"
        "const x = load (3);\n"
    )

    assert find_call_sites(source, pattern) == [(3, "load"), (4, "load")]


def test_identify_api_endpoints(make_project):
    """Test endpoints are collected across the project."""
    root = make_project({
        "server.js": "const app = express();\napp.get('/api/users', getUsers);\n",
        "api.py": "@app.post('/items')\ndef create_item():\n    pass\n",
        "node_modules/x/index.js": "app.get('/hidden', h);\n",
    })

    endpoints = DependencyGraph(root).identify_api_endpoints()

    assert [(e.method, e.path, e.handler_function) for e in endpoints] == [
        ("POST", "/items", "create_item"),
        ("GET", "/api/users", "getUsers"),
    ]


def test_find_api_callers(make_project):
    """Test callers point at the handler file, declarations excluded."""
    root = make_project({
        "server.js": "app.get('/api/users', getUsers);\n",
        "client.js": "export const load = () => fetch('/api/users');\n",
    })

    callers = DependencyGraph(root).find_api_callers("api/users")

    assert len(callers) == 1
    edge = callers[0]
    assert edge.from_file == str(root / "client.js")
    assert edge.to_file == str(root / "server.js")
    assert edge.type == DependencyType.API_ENDPOINT
    assert edge.entity == "/api/users"
    assert edge.line_number == 1


def test_find_api_callers_without_handler(make_project):
    """Test callers of an undeclared endpoint point at a placeholder."""
    root = make_project({
        "client.js": "axios.post(\"/api/orders\", body);\n",
    })

    callers = DependencyGraph(root).find_api_callers("/api/orders")

    assert [c.to_file for c in callers] == ["<api>"]


def test_from_config(temp_dir: Path):
    """Test graph settings come from the graph section."""
    graph = DependencyGraph.from_config(
        {"graph": {"max_depth": 2, "exclude_dirs": ["generated"]}},
        root=temp_dir,
    )

    assert graph.root == temp_dir
    assert graph.max_depth == 2
    assert graph.exclude_dirs == ["generated"]
    assert ".ts" in graph.extensions
    assert graph.trace_depth == 3


def test_analysis_is_memoized(make_project):
    """Test files are analyzed once per graph until the cache is cleared."""
    root = make_project({
        "a.js": "import './b';\n",
        "b.js": "export const b = 1;\n",
    })
    analyzer = CountingAnalyzer()
    graph = DependencyGraph(root, analyzer=analyzer)

    graph.get_related_files(root / "a.js")
    first = analyzer.calls
    graph.get_related_files(root / "a.js")

    assert first > 0
    assert analyzer.calls == first

    graph.clear_cache()
    graph.get_related_files(root / "a.js")
    assert analyzer.calls > first


def test_walk_depth_is_bounded(make_project):
    """Test directories below max_depth are not walked."""
    root = make_project({
        "a/b/c/deep.js": "app.get('/deep', handler);\n",
    })

    assert DependencyGraph(root, max_depth=3).identify_api_endpoints() == []
    assert len(DependencyGraph(root).identify_api_endpoints()) == 1
