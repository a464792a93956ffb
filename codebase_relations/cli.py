"""
CLI interface for codebase_relations.

Every command prints JSON to stdout. Errors go to stderr with exit status 1.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from codebase_relations import __version__
from codebase_relations.analyzer import CodeAnalyzer
from codebase_relations.config import DEFAULT_CONFIG, get_config_template, load_config
from codebase_relations.graph import DependencyGraph
from codebase_relations.session import (
    IntakeError,
    IssueIntake,
    SessionError,
    SessionManager,
    perform_intake,
)

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="codebase-relations",
        description="Find the files, call chains and endpoints related to a piece of code",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  codebase-relations analyze src/api/users.ts          # Functions, imports, error handling
  codebase-relations related src/api/users.ts          # Files connected to users.ts
  codebase-relations trace getUser src/db/users.ts     # Who calls getUser, transitively
  codebase-relations endpoints                         # HTTP routes in the project
  codebase-relations callers /api/users                # Client code hitting /api/users
  codebase-relations session intake --steps "..." --expected "..." --actual "..."
""",
    )

    parser.add_argument(
        "--root",
        default=".",
        help="Project root directory (default: current directory)",
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="YAML config file (see --init-config)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logging on stderr",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Print a documented config template and exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"codebase_relations {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    analyze = subparsers.add_parser("analyze", help="Show the structure of one file")
    analyze.add_argument("file", help="Source file to analyze")
    analyze.add_argument(
        "--no-ast",
        action="store_true",
        help="Use the line-based regex parser only",
    )

    related = subparsers.add_parser("related", help="List files related to a file")
    related.add_argument("file", help="File to start from")
    related.add_argument("--max-depth", type=int, help="Override the traversal depth limit")

    trace = subparsers.add_parser("trace", help="Trace call chains into a function")
    trace.add_argument("function", help="Function name")
    trace.add_argument("file", help="File defining the function")
    trace.add_argument("--depth", type=int, help="Override the trace depth limit")

    subparsers.add_parser("endpoints", help="List HTTP endpoint declarations")

    callers = subparsers.add_parser("callers", help="Find client calls to an API path")
    callers.add_argument("path", help="API path, e.g. /api/users")

    session = subparsers.add_parser("session", help="Manage debug sessions")
    session_commands = session.add_subparsers(dest="session_command", metavar="ACTION")
    session_commands.add_parser("list", help="List stored sessions")
    show = session_commands.add_parser("show", help="Print a session")
    show.add_argument("session_id")
    delete = session_commands.add_parser("delete", help="Delete a session")
    delete.add_argument("session_id")
    find = session_commands.add_parser("find", help="Find sessions for an issue description")
    find.add_argument("text", help="Issue description")
    intake = session_commands.add_parser("intake", help="Start or resume a session for an issue")
    intake.add_argument("--steps", required=True, help="Reproduction steps, one per line")
    intake.add_argument("--expected", required=True, help="Expected behavior")
    intake.add_argument("--actual", required=True, help="Actual behavior")
    intake.add_argument("--errors", default="", help="Error messages or stack traces")
    intake.add_argument("--force-new", action="store_true", help="Never resume an existing session")
    intake.add_argument("--no-branch", action="store_true", help="Don't create a debug git branch")

    return parser


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def run_analyze(args: argparse.Namespace) -> None:
    path = Path(args.file)
    if not path.is_file():
        fail(f"File '{path}' does not exist")
    analyzer = CodeAnalyzer(use_ast=not args.no_ast)
    result = analyzer.analyze_file(path)
    print_json({"file": str(path.resolve()), **result.to_dict()})


def run_related(args: argparse.Namespace, graph: DependencyGraph) -> None:
    path = Path(args.file)
    if not path.is_file():
        fail(f"File '{path}' does not exist")
    if args.max_depth is not None:
        graph.max_depth = args.max_depth
    related = graph.get_related_files(path)
    print_json({
        "file": str(path.resolve()),
        "related": [str(p) for p in related],
    })


def run_trace(args: argparse.Namespace, graph: DependencyGraph) -> None:
    edges = graph.trace_function_calls(args.function, args.file, max_depth=args.depth)
    print_json([edge.to_dict() for edge in edges])


def run_session(args: argparse.Namespace, root: Path, config: dict[str, Any]) -> None:
    manager = SessionManager(root)
    action = args.session_command

    if action == "list":
        print_json({"sessions": manager.list_sessions()})
    elif action == "show":
        print_json(manager.load_session(args.session_id).to_dict())
    elif action == "delete":
        print_json({
            "session_id": args.session_id,
            "deleted": manager.delete_session(args.session_id),
        })
    elif action == "find":
        print_json({"sessions": manager.find_sessions_by_issue(args.text)})
    elif action == "intake":
        intake_config = {**DEFAULT_CONFIG["intake"], **config.get("intake", {})}
        result = perform_intake(
            IssueIntake(
                reproduction_steps=args.steps,
                expected_behavior=args.expected,
                actual_behavior=args.actual,
                error_messages=args.errors,
            ),
            manager,
            force_new=args.force_new,
            create_branch=not args.no_branch,
            root=root,
            flaky_keywords=intake_config["flaky_keywords"],
            default_flaky_success_count=intake_config["flaky_success_count"],
        )
        print_json({"resumed": result.resumed, "session": result.session.to_dict()})
    else:
        fail("session requires an action: list, show, delete, find or intake")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.init_config:
        print(get_config_template())
        return

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config: dict[str, Any] = DEFAULT_CONFIG
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            fail(f"Config file '{config_path}' does not exist")
        try:
            config = load_config(config_path)
        except (yaml.YAMLError, ValueError) as e:
            fail(f"Invalid config file '{config_path}': {e}")
        logger.debug("Loaded config: %s", config_path)

    root = Path(args.root).resolve()
    if not root.is_dir():
        fail(f"Path '{root}' does not exist")

    try:
        if args.command == "analyze":
            run_analyze(args)
        elif args.command == "session":
            run_session(args, root, config)
        else:
            graph = DependencyGraph.from_config(config, root=root)
            if args.command == "related":
                run_related(args, graph)
            elif args.command == "trace":
                run_trace(args, graph)
            elif args.command == "endpoints":
                print_json([e.to_dict() for e in graph.identify_api_endpoints()])
            elif args.command == "callers":
                print_json([edge.to_dict() for edge in graph.find_api_callers(args.path)])
    except (SessionError, IntakeError) as e:
        fail(str(e))
