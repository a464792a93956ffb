"""Tests for the command line interface."""

import json
from pathlib import Path

import pytest

from codebase_relations.cli import create_parser, main


@pytest.fixture
def project(make_project) -> Path:
    return make_project({
        "src/server.js": (
            "import { findUser } from './db';\n"
            "\n"
            "app.get('/api/users', getUsers);\n"
            "\n"
            "function getUsers(req, res) {\n"
            "  return findUser(req.params.id);\n"
            "}\n"
        ),
        "src/db.js": "export function findUser(id) {\n  return null;\n}\n",
        "src/client.js": "export const load = () => fetch('/api/users');\n",
    })


@pytest.fixture
def no_git(monkeypatch):
    monkeypatch.setattr("codebase_relations.session.intake.get_git_info", lambda root: None)


def _run(capsys, *argv):
    main(list(argv))
    return json.loads(capsys.readouterr().out)


def test_parser_defaults():
    args = create_parser().parse_args(["related", "a.ts"])
    assert args.root == "."
    assert args.max_depth is None
    assert not args.verbose


def test_analyze(project: Path, capsys):
    data = _run(capsys, "analyze", str(project / "src" / "db.js"))

    assert data["file"] == str(project / "src" / "db.js")
    assert data["language"] == "javascript"
    assert data["parse_method"] == "ast"
    assert data["functions"][0]["name"] == "findUser"
    assert data["functions"][0]["end_line"] == 3


def test_analyze_no_ast(project: Path, capsys):
    data = _run(capsys, "analyze", "--no-ast", str(project / "src" / "db.js"))

    assert data["parse_method"] == "regex"
    assert data["functions"][0]["extent_approximate"] is True


def test_analyze_missing_file(temp_dir: Path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["analyze", str(temp_dir / "missing.ts")])

    assert exc_info.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_related(project: Path, capsys):
    data = _run(capsys, "--root", str(project), "related", str(project / "src" / "db.js"))

    assert data["related"] == [str(project / "src" / "server.js")]


def test_trace(project: Path, capsys):
    data = _run(capsys, "--root", str(project), "trace", "findUser", str(project / "src" / "db.js"))

    assert data == [{
        "from": str(project / "src" / "server.js"),
        "to": str(project / "src" / "db.js"),
        "type": "function_call",
        "entity": "findUser",
        "line": 6,
    }]


def test_endpoints(project: Path, capsys):
    data = _run(capsys, "--root", str(project), "endpoints")

    assert data == [{
        "method": "GET",
        "path": "/api/users",
        "file": str(project / "src" / "server.js"),
        "handler": "getUsers",
        "line": 3,
    }]


def test_callers(project: Path, capsys):
    data = _run(capsys, "--root", str(project), "callers", "api/users")

    assert [(edge["from"], edge["to"]) for edge in data] == [
        (str(project / "src" / "client.js"), str(project / "src" / "server.js")),
    ]
    assert data[0]["type"] == "api_endpoint"


def test_config_file_is_applied(project: Path, capsys):
    config = project / "relations.yaml"
    config.write_text("graph:\n  exclude_dirs:\n    - src\n")

    data = _run(capsys, "--root", str(project), "--config", str(config), "endpoints")

    assert data == []


def test_missing_config_file(project: Path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--root", str(project), "--config", str(project / "nope.yaml"), "endpoints"])

    assert exc_info.value.code == 1
    assert "does not exist" in capsys.readouterr().err


def test_session_intake_and_list(project: Path, capsys, no_git):
    """Test intake creates a session that list and show can find."""
    created = _run(
        capsys,
        "--root", str(project),
        "session", "intake",
        "--steps", "open /users\nclick load",
        "--expected", "users listed",
        "--actual", "blank page",
        "--errors", "500 Internal Server Error",
    )
    session_id = created["session"]["sessionId"]

    assert created["resumed"] is False
    assert created["session"]["reproductionSteps"] == ["open /users", "click load"]

    assert _run(capsys, "--root", str(project), "session", "list") == {"sessions": [session_id]}
    assert _run(capsys, "--root", str(project), "session", "show", session_id)["sessionId"] == session_id

    resumed = _run(
        capsys,
        "--root", str(project),
        "session", "intake",
        "--steps", "open /users\nclick load",
        "--expected", "users listed",
        "--actual", "blank page",
        "--errors", "500 Internal Server Error",
    )
    assert resumed["resumed"] is True

    deleted = _run(capsys, "--root", str(project), "session", "delete", session_id)
    assert deleted == {"session_id": session_id, "deleted": True}


def test_session_show_invalid_id(project: Path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--root", str(project), "session", "show", "../../etc/passwd"])

    assert exc_info.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_init_config(capsys):
    main(["--init-config"])
    assert "graph:" in capsys.readouterr().out


def test_no_command(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1
