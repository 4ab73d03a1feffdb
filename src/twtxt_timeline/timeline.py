"""Merging the local feed and followed feeds into one timeline."""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Sequence
from typing import Protocol

import click
import structlog

from .config import TwtxtConfig
from .feed import parse_feed
from .fetcher import FeedFetchError
from .models import CollisionPolicy, Feed, Follow, SourceKind, TimelineEntry
from .parse import timestamp_sort_key
from .storage import FeedStorageError, read_local_feed_text

logger = structlog.get_logger()


class Fetcher(Protocol):
    async def fetch_feed_text(self, url: str) -> str: ...


def _entry_key(entry: TimelineEntry, policy: CollisionPolicy) -> Hashable:
    if policy is CollisionPolicy.KEEP_ALL:
        return entry.url, entry.timestamp
    return entry.timestamp


def merge_timeline(
    local: Feed | None,
    remotes: Sequence[tuple[Follow, Feed]],
    policy: CollisionPolicy = CollisionPolicy.OVERWRITE,
) -> list[TimelineEntry]:
    """Merge posts from every feed into a list ordered by timestamp.

    Remote feeds are inserted in the given order and the local feed last.
    With ``CollisionPolicy.OVERWRITE`` a later insertion replaces an earlier
    entry with the identical timestamp, so the local feed wins collisions.
    """
    merged: dict[Hashable, TimelineEntry] = {}

    def insert(entries: Iterable[TimelineEntry]) -> None:
        for entry in entries:
            merged[_entry_key(entry, policy)] = entry

    for follow, feed in remotes:
        insert(
            TimelineEntry(follow.nick, follow.url, post, SourceKind.REMOTE)
            for post in feed.posts.values()
        )

    if local is not None:
        insert(
            TimelineEntry(local.nickname, local.url, post, SourceKind.LOCAL)
            for post in local.posts.values()
        )

    return sorted(merged.values(), key=lambda e: timestamp_sort_key(e.timestamp))


def load_local_feed(config: TwtxtConfig) -> Feed | None:
    """Parse the local feed, or return None if it cannot be read."""
    try:
        text = read_local_feed_text(config.path)
    except FeedStorageError as e:
        logger.warning("local_feed_omitted", error=str(e))
        return None
    return parse_feed(
        text,
        nick=config.nick,
        url=config.url,
        greedy_mentions=config.greedy_mentions,
    )


async def pull_followed_feeds(
    config: TwtxtConfig, fetcher: Fetcher
) -> list[tuple[Follow, Feed]]:
    """Fetch and parse each followed feed in turn, skipping any that fail."""
    feeds: list[tuple[Follow, Feed]] = []
    for follow in config.follow:
        try:
            text = await fetcher.fetch_feed_text(follow.url)
        except FeedFetchError as e:
            logger.warning(
                "feed_fetch_failed", nick=follow.nick, url=follow.url, error=str(e)
            )
            continue

        feed = parse_feed(text, greedy_mentions=config.greedy_mentions)
        if feed is None:
            logger.warning("feed_unparsable", nick=follow.nick, url=follow.url)
            continue

        logger.debug("feed_parsed", nick=follow.nick, posts=len(feed.posts))
        feeds.append((follow, feed))

    return feeds


async def build_timeline(config: TwtxtConfig, fetcher: Fetcher) -> list[TimelineEntry]:
    remotes = await pull_followed_feeds(config, fetcher)
    return merge_timeline(load_local_feed(config), remotes, config.collision_policy)


def render_entry(entry: TimelineEntry) -> str:
    color = "green" if entry.source is SourceKind.LOCAL else "blue"
    header = (
        click.style(entry.nick, fg=color)
        + click.style("@", bold=True)
        + click.style(entry.url, fg="white")
    )
    status = click.style(f"{entry.timestamp}\t{entry.post.body}", fg="white", bold=True)
    return f"{header}\n\t{status}\n"


def render_timeline(entries: Iterable[TimelineEntry]) -> list[tuple[str, str]]:
    """Pair each entry's timestamp with its rendered text."""
    return [(entry.timestamp, render_entry(entry)) for entry in entries]
