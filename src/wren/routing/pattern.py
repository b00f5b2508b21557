"""Path patterns: compile once at registration, match per request.

Supported syntax::

    /users              literal segments
    /users/:id          named parameter (one non-empty segment)
    /users/:id?         optional parameter (the whole segment may be absent)
    /files/*            trailing wildcard, bound to "*"
    /files/*rest        named trailing wildcard, bound to "rest"
    re.compile(r"...")  regular expression; named groups bind by name,
                        unnamed groups bind to "0", "1", ...

Compilation errors raise ``MalformedRegistration`` so a bad route table
fails at startup.
"""

import re
from dataclasses import dataclass
from urllib.parse import unquote

from wren.errors import MalformedRegistration

_PARAM_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_WILDCARD_KEY = "*"


@dataclass(frozen=True, slots=True)
class PathMatch:
    """A successful match.

    ``path`` is the matched portion of the request path. It equals the
    whole path for end-anchored patterns and the mount prefix otherwise.
    """

    params: dict[str, str]
    path: str


@dataclass(frozen=True, slots=True)
class PathPattern:
    """A compiled path pattern."""

    source: str
    regex: re.Pattern[str]
    keys: tuple[str, ...]
    end: bool = True

    def match(self, path: str) -> PathMatch | None:
        """Match *path*, returning extracted params or ``None``."""
        m = self.regex.match(path)
        if m is None:
            return None
        params: dict[str, str] = {}
        for index, key in enumerate(self.keys, start=1):
            value = m.group(index)
            if value is not None:
                params[key] = unquote(value)
        return PathMatch(params=params, path=m.group(0))


def compile_pattern(
    pattern: str | re.Pattern[str],
    *,
    end: bool = True,
    case_sensitive: bool = False,
    strict: bool = False,
) -> PathPattern:
    """Compile a route pattern.

    Args:
        pattern: A path template or a compiled regular expression.
        end: Anchor at the end of the path. ``False`` matches a prefix on
            a segment boundary, as used by ``use()``.
        case_sensitive: Literal segments must match case exactly.
        strict: A trailing slash on the request path is significant.
    """
    if isinstance(pattern, re.Pattern):
        return _compile_regex(pattern, end=end)
    if not isinstance(pattern, str):
        msg = f"Route pattern must be a string or re.Pattern, got {type(pattern).__name__}"
        raise MalformedRegistration(msg)
    if not pattern.startswith("/"):
        msg = f"Route pattern {pattern!r} must start with '/'."
        raise MalformedRegistration(msg)

    segments = pattern.strip("/").split("/") if pattern.strip("/") else []
    keys: list[str] = []
    parts: list[str] = []

    for position, segment in enumerate(segments):
        is_last = position == len(segments) - 1
        if not segment:
            msg = f"Route pattern {pattern!r} contains an empty segment."
            raise MalformedRegistration(msg)

        if segment.startswith("*"):
            if not is_last:
                msg = f"Wildcard in {pattern!r} must be the last segment."
                raise MalformedRegistration(msg)
            name = segment[1:] or _WILDCARD_KEY
            if name != _WILDCARD_KEY:
                _check_name(name, pattern)
            _add_key(keys, name, pattern)
            parts.append(r"(?:/|\Z)(.*)")
            continue

        if segment.startswith(":"):
            optional = segment.endswith("?")
            name = segment[1:-1] if optional else segment[1:]
            _check_name(name, pattern)
            _add_key(keys, name, pattern)
            parts.append(r"(?:/([^/]+?))?" if optional else r"/([^/]+?)")
            continue

        if "*" in segment or ":" in segment:
            msg = (
                f"Segment {segment!r} in {pattern!r} mixes literal text with a "
                "parameter or wildcard."
            )
            raise MalformedRegistration(msg)
        parts.append("/" + re.escape(segment))

    body = "".join(parts)
    if not end:
        tail = r"(?=/|\Z)"
    elif strict:
        tail = r"/\Z" if pattern.endswith("/") else r"\Z"
    else:
        tail = r"/?\Z"

    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    regex = re.compile("^" + body + tail, flags)
    return PathPattern(source=pattern, regex=regex, keys=tuple(keys), end=end)


def _compile_regex(pattern: re.Pattern[str], *, end: bool) -> PathPattern:
    names = {index: name for name, index in pattern.groupindex.items()}
    keys: list[str] = []
    unnamed = 0
    for index in range(1, pattern.groups + 1):
        if index in names:
            keys.append(names[index])
        else:
            keys.append(str(unnamed))
            unnamed += 1
    source = pattern.pattern
    anchored = rf"(?:{source})\Z" if end else f"(?:{source})"
    try:
        regex = re.compile(anchored, pattern.flags)
    except re.error as exc:
        msg = f"Regular expression route {source!r} cannot be anchored: {exc}"
        raise MalformedRegistration(msg) from exc
    return PathPattern(source=source, regex=regex, keys=tuple(keys), end=end)


def _check_name(name: str, pattern: str) -> None:
    if not _PARAM_NAME.fullmatch(name):
        msg = f"Invalid parameter name {name!r} in route pattern {pattern!r}."
        raise MalformedRegistration(msg)


def _add_key(keys: list[str], name: str, pattern: str) -> None:
    if name in keys:
        msg = f"Duplicate parameter {name!r} in route pattern {pattern!r}."
        raise MalformedRegistration(msg)
    keys.append(name)
