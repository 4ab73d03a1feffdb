"""Lower-level parsing of twtxt.txt text.

These functions work on plain strings and have no I/O. ``feed.parse_feed``
builds on them to produce ``Feed`` objects.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

import structlog

from .models import Post

logger = structlog.get_logger()

METADATA_HEADER = "== Metadata =="
COMMENT_MARKER = "#"
SEPARATOR = "\t"

# Greedy: with several mentions on one line the match spans to the last ">".
MENTION_PATTERN = re.compile(r"@<.*>")
LAZY_MENTION_PATTERN = re.compile(r"@<.*?>")
TAG_PATTERN = re.compile(r"(?:^|\s)(#\S+)")
TIMESTAMP_PATTERN = re.compile(
    r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})[Tt ]"
    r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-](?P<offset_hour>\d{2}):(?P<offset_minute>\d{2}))",
    re.ASCII,
)


class MetadataNotFound(LookupError):
    """The metadata header or the requested keyword is missing."""

    def __init__(self, keyword: str) -> None:
        super().__init__(f"No metadata value for {keyword!r}")
        self.keyword = keyword


class PostParseError(ValueError):
    """A non-comment line could not be turned into a post."""

    MISSING_SEPARATOR = "missing_separator"
    INVALID_TIMESTAMP = "invalid_timestamp"

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"Cannot parse line ({reason}): {line!r}")
        self.line = line
        self.reason = reason


class MentionError(ValueError):
    """The text contains no ``@<...>`` mention marker."""


def find_metadata(twtxt: str, keyword: str) -> str | None:
    """Return the value declared as ``keyword = value`` after the metadata header.

    Returns ``None`` when the header or the keyword is missing. A keyword
    declared with nothing after the ``=`` yields an empty string.
    """
    _, marker, header = twtxt.partition(METADATA_HEADER)
    if not marker:
        return None

    pattern = re.compile(rf"(?<![\w.-]){re.escape(keyword)}[ \t]*=[ \t]*(\S*)")
    if match := pattern.search(header):
        return match.group(1).strip()
    return None


def metadata(twtxt: str, keyword: str) -> str:
    """Like ``find_metadata`` but raises ``MetadataNotFound`` on a miss."""
    value = find_metadata(twtxt, keyword)
    if value is None:
        raise MetadataNotFound(keyword)
    return value


def parse_timestamp(value: str) -> datetime | None:
    """Parse an RFC 3339 date-time with offset.

    The field must match exactly, with no surrounding whitespace. A leap
    second (:60) is accepted and read as :59.
    """
    match = TIMESTAMP_PATTERN.fullmatch(value)
    if match is None:
        return None

    second = min(int(match["second"]), 59)
    fraction = (match["fraction"] or "")[:6].ljust(6, "0")
    if match["offset"] in ("Z", "z"):
        tz = timezone.utc
    else:
        hours, minutes = int(match["offset_hour"]), int(match["offset_minute"])
        if hours > 23 or minutes > 59:
            return None
        delta = timedelta(hours=hours, minutes=minutes)
        tz = timezone(-delta if match["offset"][0] == "-" else delta)

    try:
        return datetime(
            int(match["year"]),
            int(match["month"]),
            int(match["day"]),
            int(match["hour"]),
            int(match["minute"]),
            second,
            int(fraction),
            tzinfo=tz,
        )
    except ValueError:
        return None


def is_valid_timestamp(value: str) -> bool:
    return parse_timestamp(value) is not None


def timestamp_sort_key(value: str) -> tuple[datetime, str]:
    """Sort by the instant a timestamp denotes, then by its text."""
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {value!r}")
    return parsed, value


def extract_mentions(body: str, greedy: bool = True) -> tuple[str, ...]:
    pattern = MENTION_PATTERN if greedy else LAZY_MENTION_PATTERN
    return tuple(match.group(0) for match in pattern.finditer(body))


def extract_tags(body: str) -> tuple[str, ...]:
    """Return the ``#tags`` in ``body`` in order of appearance."""
    return tuple(match.group(1) for match in TAG_PATTERN.finditer(body))


def mention_to_nickname(text: str) -> str:
    """Reduce ``@<nick https://example.com/twtxt.txt>`` to ``nick``.

    ``text`` may be a bare mention or a whole line containing one.
    """
    match = MENTION_PATTERN.search(text)
    if match is None:
        raise MentionError(f"No mention found in {text!r}")

    inner = match.group(0)[2:-1].strip()
    return inner.split(maxsplit=1)[0] if inner else ""


def is_skippable(line: str) -> bool:
    """Empty and comment lines are never posts."""
    return not line.strip() or line.startswith(COMMENT_MARKER)


def parse_post(line: str, greedy_mentions: bool = True) -> Post | None:
    """Parse one ``timestamp<TAB>body`` line.

    Returns ``None`` for empty and comment lines and raises
    ``PostParseError`` for any other line that is not a valid post.
    """
    line = line.rstrip("\r\n")
    if is_skippable(line):
        return None

    timestamp, separator, body = line.partition(SEPARATOR)
    if not separator:
        raise PostParseError(line, PostParseError.MISSING_SEPARATOR)

    if not is_valid_timestamp(timestamp):
        raise PostParseError(line, PostParseError.INVALID_TIMESTAMP)

    return Post(
        timestamp=timestamp,
        body=body,
        mentions=extract_mentions(body, greedy=greedy_mentions),
        tags=extract_tags(body),
    )


def statuses(twtxt: str, greedy_mentions: bool = True) -> dict[str, Post]:
    """Parse every valid post line of ``twtxt``, keyed by timestamp.

    Later lines overwrite earlier ones sharing a timestamp. Bad lines are
    dropped. The result is ordered by timestamp.
    """
    posts: dict[str, Post] = {}
    for lineno, line in enumerate(twtxt.split("\n"), start=1):
        try:
            post = parse_post(line, greedy_mentions=greedy_mentions)
        except PostParseError as e:
            logger.debug("line_skipped", lineno=lineno, reason=e.reason)
            continue
        if post is not None:
            posts[post.timestamp] = post

    return {key: posts[key] for key in sorted(posts, key=timestamp_sort_key)}
