"""
API caller scanner for codebase_relations.

Finds lines that call an HTTP endpoint of the project through a client
library (fetch, axios, requests-style clients, Go net/http).
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from codebase_relations.models import APIEndpoint, DependencyType, FileDependency

if TYPE_CHECKING:
    from typing import Iterable

logger = logging.getLogger(__name__)

# Placeholder target when no endpoint for the path is declared in the project
UNKNOWN_HANDLER = "<api>"

HTTP_CLIENT_CALL = re.compile(
    r"\bfetch\s*\("
    r"|\baxios\s*\("
    r"|\.(?:get|post|put|delete|patch|request|fetch)\s*\("
    r"|\bhttp\.(?:Get|Post|Put|Delete|Patch|Head|PostForm|NewRequest)\s*\("
)


def normalize_api_path(path: str) -> str:
    """Ensure an API path has exactly one leading slash."""
    return "/" + path.lstrip("/")


class ApiCallerScanner:
    """Scan for client-side calls to a given API path."""

    def scan(
        self,
        files: Iterable[Path],
        api_path: str,
        endpoints: list[APIEndpoint] | None = None,
    ) -> list[FileDependency]:
        """
        Scan files for calls to an API path.

        Args:
            files: Absolute paths of the files to scan.
            api_path: Path to look for, with or without a leading slash.
            endpoints: Known endpoint declarations. Their lines are never
                reported as callers, and an endpoint with the same path
                becomes the target of each edge.

        Returns:
            One api_endpoint edge per calling line.
        """
        endpoints = endpoints or []
        normalized = normalize_api_path(api_path)
        literal = re.compile(r"(['\"`])/?" + re.escape(normalized.lstrip("/")) + r"\1")

        handler_file = next(
            (e.handler_file for e in endpoints if normalize_api_path(e.path) == normalized),
            UNKNOWN_HANDLER,
        )
        declarations = {(e.handler_file, e.line_number) for e in endpoints}

        callers: list[FileDependency] = []
        for filepath in files:
            callers.extend(self._scan_file(filepath, literal, normalized, handler_file, declarations))
        return callers

    def _scan_file(
        self,
        filepath: Path,
        literal: re.Pattern[str],
        normalized: str,
        handler_file: str,
        declarations: set[tuple[str, int]],
    ) -> list[FileDependency]:
        callers: list[FileDependency] = []
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Could not scan %s: %s", filepath, e)
            return callers

        from_file = str(filepath)
        for i, line in enumerate(lines, 1):
            if (from_file, i) in declarations:
                continue
            if literal.search(line) and HTTP_CLIENT_CALL.search(line):
                callers.append(FileDependency(
                    from_file=from_file,
                    to_file=handler_file,
                    type=DependencyType.API_ENDPOINT,
                    entity=normalized,
                    line_number=i,
                ))
        return callers
