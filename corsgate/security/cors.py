"""
Cross-Origin Resource Sharing (CORS) origin matching

Allow-list entries are compiled into suffix-anchored regular expressions:
- ``*``                      every origin, answered with a literal ``*``
- ``http://localhost:8080``  that scheme, host and port
- ``localhost``              any scheme, that host, no explicit port
- ``//localhost``            same as above, written explicitly
- ``.example.com``           any subdomain of example.com, not example.com itself
- ``.example.com:8443``      any subdomain on that port
- ``localhost:*``            that host on any explicit port

Patterns carry an end anchor but no start anchor, so a pattern matches when the
origin *ends* with it. ``.com`` therefore allows every origin under ``.com``;
operators have to write qualified entries. Ports are compared as written:
``http://example.com`` does not match ``http://example.com:80``.
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Iterator, List, Optional, Pattern, Sequence, Tuple, Union

from corsgate.core.logging_config import get_logger

logger = get_logger(__name__)

WILDCARD = "*"
GENERIC_SCHEME = "//"
ANY_PORT_MARKER = ":*"
ANY_PORT_PATTERN = r":\d+"

_WHITESPACE_RE = re.compile(r"\s+")
_SCHEME_RE = re.compile(r"^[A-Za-z]+://")


def trim(value: str) -> str:
    """Remove every whitespace character, including embedded ones."""
    return _WHITESPACE_RE.sub("", value)


def specifies_scheme(entry: str) -> bool:
    """True for entries such as ``https://host``."""
    return _SCHEME_RE.match(entry) is not None


def specifies_generic_scheme(entry: str) -> bool:
    """True for entries such as ``//host``."""
    return entry.startswith(GENERIC_SCHEME)


def begins_with_dot(entry: str) -> bool:
    return entry.startswith(".")


def wildcard_origin_allowed(allowed_origins: Sequence[str]) -> Optional[str]:
    """Return ``*`` when the allow-list contains the wildcard token."""
    if any(trim(origin) == WILDCARD for origin in allowed_origins):
        return WILDCARD
    return None


def build_pattern(raw: str) -> Optional[str]:
    """
    Translate one allow-list entry into regular expression text.

    Args:
        raw: Allow-list entry as configured

    Returns:
        Pattern text, or None for an empty entry
    """
    entry = trim(raw)
    if not entry:
        return None

    if not (specifies_scheme(entry) or specifies_generic_scheme(entry) or begins_with_dot(entry)):
        entry = GENERIC_SCHEME + entry

    entry = entry.replace(".", r"\.").replace("-", r"\-")

    if entry.endswith(ANY_PORT_MARKER):
        entry = entry[:-len(ANY_PORT_MARKER)] + ANY_PORT_PATTERN

    return entry + "$"


@dataclass(frozen=True)
class OriginPattern:
    """A compiled allow-list entry."""
    raw: str
    is_wildcard: bool = False
    matcher: Optional[Pattern] = None

    @property
    def pattern(self) -> Optional[str]:
        return self.matcher.pattern if self.matcher is not None else None

    def matches(self, origin: str) -> bool:
        """Check whether the origin ends with this pattern."""
        if self.is_wildcard:
            return True
        return self.matcher.search(origin) is not None


@lru_cache(maxsize=1024)
def compile_pattern(raw: str) -> Optional[OriginPattern]:
    """
    Compile one allow-list entry.

    Empty entries and entries that do not form a valid regular expression are
    dropped (None). The wildcard entry is returned without a matcher.
    """
    entry = trim(raw)
    if not entry:
        return None

    if entry == WILDCARD:
        return OriginPattern(raw=entry, is_wildcard=True)

    text = build_pattern(entry)
    try:
        matcher = re.compile(text)
    except re.error as e:
        logger.warning(f"CORS: dropping origin pattern {entry!r}: {e}")
        return None

    return OriginPattern(raw=entry, matcher=matcher)


@dataclass(frozen=True)
class AllowList:
    """Ordered allow-list of origin entries. The first matching entry wins."""
    entries: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, allowed_origins: Union[str, Sequence[str], "AllowList", None]) -> "AllowList":
        """
        Build an allow-list from a comma-delimited string or a sequence of entries.

        Args:
            allowed_origins: e.g. ``"localhost, .example.com, //api.test:*"``

        Returns:
            AllowList with trimmed, non-empty entries in configured order
        """
        if isinstance(allowed_origins, AllowList):
            return allowed_origins
        if allowed_origins is None:
            tokens: Sequence[str] = ()
        elif isinstance(allowed_origins, str):
            tokens = allowed_origins.split(",")
        else:
            tokens = allowed_origins

        trimmed = (trim(token) for token in tokens)
        return cls(entries=tuple(token for token in trimmed if token))

    @property
    def is_wildcard(self) -> bool:
        return wildcard_origin_allowed(self.entries) is not None

    @property
    def patterns(self) -> List[OriginPattern]:
        """Compiled suffix patterns, excluding the wildcard and dropped entries."""
        compiled = (compile_pattern(entry) for entry in self.entries)
        return [p for p in compiled if p is not None and not p.is_wildcard]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __str__(self) -> str:
        return ",".join(self.entries)


class MatchKind(str, Enum):
    """Outcome of origin evaluation."""
    WILDCARD = "wildcard"
    MATCHED = "matched"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class MatchResult:
    kind: MatchKind
    origin: Optional[str] = None

    @classmethod
    def wildcard(cls) -> "MatchResult":
        return cls(kind=MatchKind.WILDCARD)

    @classmethod
    def matched(cls, origin: str) -> "MatchResult":
        return cls(kind=MatchKind.MATCHED, origin=origin)

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(kind=MatchKind.NO_MATCH)

    @property
    def allowed(self) -> bool:
        return self.kind != MatchKind.NO_MATCH

    @property
    def is_wildcard(self) -> bool:
        return self.kind == MatchKind.WILDCARD

    @property
    def header_value(self) -> Optional[str]:
        """Value for ``Access-Control-Allow-Origin``, or None when not allowed."""
        if self.kind == MatchKind.WILDCARD:
            return WILDCARD
        return self.origin


def resolve(
    origin: Optional[str],
    allowed_origins: Union[str, Sequence[str], AllowList, None]
) -> MatchResult:
    """
    Evaluate a request origin against the allow-list.

    Args:
        origin: The value of the ``Origin`` request header
        allowed_origins: Allow-list as string, sequence or AllowList

    Returns:
        MatchResult; a match echoes the unmodified origin
    """
    if not origin:
        return MatchResult.no_match()

    allow_list = AllowList.parse(allowed_origins)

    # The wildcard wins regardless of its position
    if allow_list.is_wildcard:
        return MatchResult.wildcard()

    for pattern in allow_list.patterns:
        if pattern.matches(origin):
            return MatchResult.matched(origin)

    return MatchResult.no_match()


def get_allowed_origin(
    origin: Optional[str],
    allowed_origins: Union[str, Sequence[str], AllowList, None]
) -> Optional[str]:
    """Return the ``Access-Control-Allow-Origin`` value for an origin, or None."""
    return resolve(origin, allowed_origins).header_value


__all__ = [
    "WILDCARD",
    "AllowList",
    "MatchKind",
    "MatchResult",
    "OriginPattern",
    "begins_with_dot",
    "build_pattern",
    "compile_pattern",
    "get_allowed_origin",
    "resolve",
    "specifies_generic_scheme",
    "specifies_scheme",
    "trim",
    "wildcard_origin_allowed",
]
