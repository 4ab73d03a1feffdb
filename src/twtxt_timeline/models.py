from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import NamedTuple


class SourceKind(StrEnum):
    """Where a timeline entry came from."""

    LOCAL = "local"
    REMOTE = "remote"


class CollisionPolicy(StrEnum):
    """How the merger treats posts from different feeds with the same timestamp."""

    OVERWRITE = "overwrite"
    KEEP_ALL = "keep_all"


class Follow(NamedTuple):
    """A followed feed as stored in the configuration."""

    nick: str
    url: str


@dataclass(frozen=True)
class Post:
    """A single status line from a twtxt feed."""

    timestamp: str
    body: str
    mentions: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class Feed:
    """Metadata and posts parsed from one twtxt.txt blob.

    ``posts`` is keyed by timestamp, iterates in ascending time order and is
    read-only.
    """

    nickname: str
    url: str
    posts: Mapping[str, Post] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "posts", MappingProxyType(dict(self.posts)))


@dataclass(frozen=True)
class TimelineEntry:
    """One attributed post in the merged timeline."""

    nick: str
    url: str
    post: Post
    source: SourceKind

    @property
    def timestamp(self) -> str:
        return self.post.timestamp
