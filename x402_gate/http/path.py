"""Path pattern helpers shared by route matching and the proxy matcher."""

from __future__ import annotations

import fnmatch
import re
from typing import Any

# ":name*" (zero or more trailing segments), ":name+" (one or more), ":name"
_NAMED_SEGMENT = re.compile(r"/:([A-Za-z_][A-Za-z0-9_]*)([*+]?)")


def literal_prefix_length(path_pattern: str) -> int:
    """Length of the pattern before its first wildcard or parameter."""
    match = re.search(r"[*?\[]|/:", path_pattern)
    return match.start() if match else len(path_pattern)


def pattern_to_regex(path_pattern: str) -> str:
    """Convert a route path pattern into an anchored regex.

    Supports ``*`` wildcards, ``[param]`` segments and ``:param`` /
    ``:param*`` / ``:param+`` segments.
    """
    parts: list[str] = []
    pos = 0
    for m in _NAMED_SEGMENT.finditer(path_pattern):
        parts.append(_glob_to_regex(path_pattern[pos : m.start()]))
        modifier = m.group(2)
        if modifier == "*":
            parts.append(r"(?:/.*)?")
        elif modifier == "+":
            parts.append(r"/.+")
        else:
            parts.append(r"/[^/]+")
        pos = m.end()
    parts.append(_glob_to_regex(path_pattern[pos:]))
    return "^" + "".join(parts) + "$"


def _glob_to_regex(text: str) -> str:
    escaped = re.escape(text)
    escaped = escaped.replace(r"\*", ".*?")
    return re.sub(r"\\\[([^\]]+)\\\]", r"[^/]+", escaped)


def path_is_match(path: str | list[str], request_path: str) -> bool:
    """Check if a request path matches a pattern or list of patterns.

    Args:
        path: Pattern(s) to match against. Each can be:
            - an exact path ("/api/users")
            - a glob ("/api/*", "/api/user?")
            - a parameter pattern ("/protected/:path*")
            - a regex prefixed with "regex:" ("regex:^/api/\\d+$")
        request_path: Path of the incoming request.

    Returns:
        True if any pattern matches. Invalid pattern types never match.
    """
    if isinstance(path, list):
        return any(path_is_match(p, request_path) for p in path)

    if not isinstance(path, str):
        return False

    return _single_match(path, request_path)


def _single_match(pattern: str, request_path: str) -> bool:
    if pattern.startswith("regex:"):
        return re.match(pattern[len("regex:") :], request_path) is not None

    if _NAMED_SEGMENT.search(pattern):
        return re.match(pattern_to_regex(pattern), request_path) is not None

    return fnmatch.fnmatchcase(request_path, pattern)


def normalize_matcher(matcher: Any) -> list[str] | None:
    """Coerce a matcher setting into a list of patterns (None means all paths)."""
    if matcher is None:
        return None
    if isinstance(matcher, str):
        return [matcher]
    return list(matcher)
