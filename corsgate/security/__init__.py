"""
Origin allow-list compilation and matching.

Usage:
    from corsgate.security import AllowList, resolve

    result = resolve("https://app.example.com", AllowList.parse(".example.com"))
    result.header_value  # "https://app.example.com"
"""

from .cors import (
    WILDCARD,
    AllowList,
    MatchKind,
    MatchResult,
    OriginPattern,
    build_pattern,
    compile_pattern,
    get_allowed_origin,
    resolve,
)

__all__ = [
    "WILDCARD",
    "AllowList",
    "MatchKind",
    "MatchResult",
    "OriginPattern",
    "build_pattern",
    "compile_pattern",
    "get_allowed_origin",
    "resolve",
]
