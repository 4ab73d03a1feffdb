import asyncio

import pytest
from aiohttp import test_utils, web

from twtxt_timeline.fetcher import FeedFetcher, FeedFetchError

FEED_TEXT = "# == Metadata ==\n# nick = remote\n2019-09-09T10:00:00Z\tné\n"


async def feed_handler(request: web.Request) -> web.Response:
    return web.Response(
        text=FEED_TEXT,
        headers={"Last-Modified": "Mon, 09 Sep 2019 10:00:00 GMT"},
    )


async def missing_handler(request: web.Request) -> web.Response:
    return web.Response(status=404)


async def broken_handler(request: web.Request) -> web.Response:
    return web.Response(status=500)


async def binary_handler(request: web.Request) -> web.Response:
    return web.Response(body=b"\xff\xfe\xfa")


def run_against_server(config, coro_factory):
    async def _run():
        app = web.Application()
        app.router.add_get("/twtxt.txt", feed_handler)
        app.router.add_get("/missing.txt", missing_handler)
        app.router.add_get("/broken.txt", broken_handler)
        app.router.add_get("/binary.txt", binary_handler)
        async with test_utils.TestServer(app) as server:
            return await coro_factory(FeedFetcher(config), server)

    return asyncio.run(_run())


def test_fetch_feed_text(config):
    text = run_against_server(
        config,
        lambda fetcher, server: fetcher.fetch_feed_text(str(server.make_url("/twtxt.txt"))),
    )
    assert text == FEED_TEXT


@pytest.mark.parametrize(
    ("path", "status"),
    [("/missing.txt", 404), ("/broken.txt", 500), ("/binary.txt", None)],
)
def test_fetch_feed_text_errors(config, path, status):
    with pytest.raises(FeedFetchError) as excinfo:
        run_against_server(
            config,
            lambda fetcher, server: fetcher.fetch_feed_text(str(server.make_url(path))),
        )
    assert excinfo.value.status_code == status


def test_fetch_last_modified(config):
    modified = run_against_server(
        config,
        lambda fetcher, server: fetcher.fetch_last_modified(
            str(server.make_url("/twtxt.txt"))
        ),
    )
    assert modified == "Mon, 09 Sep 2019 10:00:00 GMT"


def test_unreachable_host_is_a_fetch_error(config):
    fetcher = FeedFetcher(config)
    with pytest.raises(FeedFetchError):
        asyncio.run(fetcher.fetch_feed_text("not a url"))


def test_error_str_includes_status():
    assert str(FeedFetchError("Feed not found", 404)) == "Feed not found (Status: 404)"
    assert str(FeedFetchError("boom")) == "boom"
