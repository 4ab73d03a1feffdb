from __future__ import annotations

import asyncio

import aiohttp
import backoff
import structlog
from aiohttp import ClientTimeout

from .config import TwtxtConfig

logger = structlog.get_logger()

RETRYABLE = (aiohttp.ClientError, asyncio.TimeoutError)


class FeedFetchError(Exception):
    """A remote twtxt.txt could not be retrieved."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code:
            return f"{super().__str__()} (Status: {self.status_code})"
        return super().__str__()


class FeedFetcher:
    """Retrieves remote feeds over HTTP with retries."""

    def __init__(self, config: TwtxtConfig) -> None:
        self.config = config
        self.timeout = ClientTimeout(total=config.request_timeout)
        self._retrying_get = backoff.on_exception(
            backoff.expo,
            RETRYABLE,
            max_tries=config.max_retries,
            logger=logger,
        )(self._get)
        self._retrying_head = backoff.on_exception(
            backoff.expo,
            RETRYABLE,
            max_tries=config.max_retries,
            logger=logger,
        )(self._head)

    async def _get(self, session: aiohttp.ClientSession, url: str) -> str:
        async with session.get(url, timeout=self.timeout) as response:
            match response.status:
                case 200:
                    body = await response.read()
                case 404:
                    raise FeedFetchError("Feed not found", 404)
                case _:
                    raise FeedFetchError(
                        f"Feed request failed with status {response.status}",
                        response.status,
                    )
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FeedFetchError(f"Feed is not valid UTF-8: {e}") from e

    async def _head(self, session: aiohttp.ClientSession, url: str) -> str | None:
        async with session.head(url, timeout=self.timeout) as response:
            if response.status >= 400:
                raise FeedFetchError(
                    f"HEAD request failed with status {response.status}",
                    response.status,
                )
            return response.headers.get("Last-Modified")

    async def fetch_feed_text(self, url: str) -> str:
        """Return the body of the twtxt.txt at ``url``."""
        async with aiohttp.ClientSession() as session:
            try:
                text = await self._retrying_get(session, url)
            except RETRYABLE as e:
                raise FeedFetchError(f"Failed to fetch {url}: {e!r}") from e

        logger.debug("feed_fetched", url=url, size=len(text))
        return text

    async def fetch_last_modified(self, url: str) -> str | None:
        """Return the ``Last-Modified`` header of ``url``, if the server sends one."""
        async with aiohttp.ClientSession() as session:
            try:
                return await self._retrying_head(session, url)
            except RETRYABLE as e:
                raise FeedFetchError(f"Failed to reach {url}: {e!r}") from e
