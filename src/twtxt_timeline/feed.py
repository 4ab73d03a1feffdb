from __future__ import annotations

import structlog

from .models import Feed
from .parse import find_metadata, statuses

logger = structlog.get_logger()


def parse_feed(
    twtxt: str,
    *,
    nick: str | None = None,
    url: str | None = None,
    greedy_mentions: bool = True,
) -> Feed | None:
    """Build a Feed from raw twtxt.txt text.

    ``nick`` and ``url`` are fallbacks used only when the metadata header
    does not declare them. Returns ``None`` if either is still unknown.
    """
    nickname = find_metadata(twtxt, "nick") or nick
    feed_url = find_metadata(twtxt, "url") or url
    if not nickname or not feed_url:
        logger.debug("feed_metadata_missing", nick=nickname, url=feed_url)
        return None

    return Feed(
        nickname=nickname,
        url=feed_url,
        posts=statuses(twtxt, greedy_mentions=greedy_mentions),
    )
