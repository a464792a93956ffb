"""
API endpoint scanner for codebase_relations.

Finds route declarations in Express-style routers, decorator frameworks
(FastAPI, Flask), Go net/http handler registration and Spring annotations.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from codebase_relations.models import ANONYMOUS, APIEndpoint
from codebase_relations.parsers.regex import split_top_level

if TYPE_CHECKING:
    from typing import Iterable

logger = logging.getLogger(__name__)

# app.get('/users', getUsers)  /  router.all('/x', auth, handler)
REST_CALL = re.compile(
    r"(?<!@)\b(?:app|router)\.(get|post|put|delete|patch|options|head|all)\s*\(\s*"
    r"(['\"`])([^'\"`]*)\2\s*,(.*)"
)

# @app.get("/items")  /  @router.post('/items', status_code=201)
DECORATOR_VERB = re.compile(
    r"^\s*@\w+\.(get|post|put|delete|patch|options|head)\s*\(\s*(['\"])([^'\"]*)\2"
)

# @app.route("/items", methods=["POST"])
DECORATOR_ROUTE = re.compile(r"^\s*@\w+\.route\s*\(\s*(['\"])([^'\"]*)\1(.*)")
ROUTE_METHODS = re.compile(r"methods\s*=\s*[\[(]\s*['\"](\w+)['\"]")

# http.HandleFunc("/health", healthCheck)
GO_HANDLE_FUNC = re.compile(r"\b\w+\.HandleFunc\s*\(\s*\"([^\"]*)\"\s*,\s*(?:func\b|([\w.]+))")

# @GetMapping("/users")  /  @PostMapping(value = "/users")
SPRING_MAPPING = re.compile(
    r"^\s*@(Get|Post|Put|Delete|Patch)Mapping\s*\(\s*(?:(?:value|path)\s*=\s*)?\"([^\"]*)\""
)
SPRING_REQUEST_MAPPING = re.compile(
    r"^\s*@RequestMapping\s*\(\s*(?:(?:value|path)\s*=\s*)?\"([^\"]*)\"(.*)"
)
SPRING_REQUEST_METHOD = re.compile(r"RequestMethod\.(\w+)")

PYTHON_HANDLER = re.compile(r"^\s*(?:async\s+)?def\s+(\w+)")
JVM_HANDLER = re.compile(r"^\s*(?:(?:public|private|protected)\b.*?(\w+)\s*\(|.*?\bfun\s+(\w+)\s*\()")

_IDENT_ARG = re.compile(r"^[\w$.]+$")


class EndpointScanner:
    """Scan source files for HTTP endpoint declarations."""

    def scan(self, files: Iterable[Path]) -> list[APIEndpoint]:
        """
        Scan files for endpoint declarations.

        Args:
            files: Absolute paths of the files to scan.

        Returns:
            Endpoints in file order, then line order.
        """
        endpoints: list[APIEndpoint] = []
        for filepath in files:
            endpoints.extend(self._scan_file(filepath))
        return endpoints

    def _scan_file(self, filepath: Path) -> list[APIEndpoint]:
        endpoints: list[APIEndpoint] = []
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Could not scan %s: %s", filepath, e)
            return endpoints

        for i, line in enumerate(lines):
            endpoint = self._match_line(lines, i)
            if endpoint is not None:
                method, path, handler = endpoint
                endpoints.append(APIEndpoint(
                    method=method,
                    path=path,
                    handler_file=str(filepath),
                    handler_function=handler,
                    line_number=i + 1,
                ))
        return endpoints

    def _match_line(self, lines: list[str], i: int) -> tuple[str, str, str] | None:
        """
        Try each declaration style against one line; the first match wins.

        Returns:
            Tuple of (method, path, handler name), or None.
        """
        line = lines[i]

        match = REST_CALL.search(line)
        if match:
            verb = match.group(1).upper()
            return ("ANY" if verb == "ALL" else verb), match.group(3), self._last_handler_arg(match.group(4))

        match = DECORATOR_VERB.search(line)
        if match:
            return match.group(1).upper(), match.group(3), self._next_handler(lines, i, PYTHON_HANDLER)

        match = DECORATOR_ROUTE.search(line)
        if match:
            methods = ROUTE_METHODS.search(match.group(3))
            method = methods.group(1).upper() if methods else "GET"
            return method, match.group(2), self._next_handler(lines, i, PYTHON_HANDLER)

        match = GO_HANDLE_FUNC.search(line)
        if match:
            # net/http dispatches every method to the handler
            return "ANY", match.group(1), match.group(2) or ANONYMOUS

        match = SPRING_MAPPING.search(line)
        if match:
            return match.group(1).upper(), match.group(2), self._next_handler(lines, i, JVM_HANDLER)

        match = SPRING_REQUEST_MAPPING.search(line)
        if match:
            request_method = SPRING_REQUEST_METHOD.search(match.group(2))
            method = request_method.group(1).upper() if request_method else "ANY"
            return method, match.group(1), self._next_handler(lines, i, JVM_HANDLER)

        return None

    def _last_handler_arg(self, rest: str) -> str:
        """Handler of a router call: the last plain identifier argument."""
        rest = rest.strip().rstrip(";").rstrip()
        if rest.endswith(")"):
            rest = rest[:-1]
        args = [arg for arg in split_top_level(rest) if _IDENT_ARG.match(arg)]
        return args[-1] if args else ANONYMOUS

    def _next_handler(self, lines: list[str], start: int, pattern: re.Pattern[str]) -> str:
        """Name of the first function declared after a decorator or annotation."""
        for line in lines[start + 1:]:
            match = pattern.search(line)
            if match:
                return next(group for group in match.groups() if group)
        return ANONYMOUS
