"""
twtxt timeline - Parse twtxt.txt feeds and merge them into one timeline.
"""

from .config import TwtxtConfig
from .feed import parse_feed
from .models import CollisionPolicy, Feed, Follow, Post, SourceKind, TimelineEntry
from .parse import (
    MetadataNotFound,
    PostParseError,
    mention_to_nickname,
    metadata,
    parse_post,
)
from .timeline import build_timeline, merge_timeline, render_timeline

__version__ = "0.1.0"
__all__ = [
    "CollisionPolicy",
    "Feed",
    "Follow",
    "MetadataNotFound",
    "Post",
    "PostParseError",
    "SourceKind",
    "TimelineEntry",
    "TwtxtConfig",
    "build_timeline",
    "mention_to_nickname",
    "merge_timeline",
    "metadata",
    "parse_feed",
    "parse_post",
    "render_timeline",
]
