import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click
import structlog

from .config import DEFAULT_CONFIG_PATH, ConfigError, TwtxtConfig
from .editor import compose
from .fetcher import FeedFetcher, FeedFetchError
from .parse import find_metadata
from .storage import FeedStorageError, append_local_feed_line, compose_post_line
from .timeline import build_timeline, render_timeline

logger = structlog.get_logger()


@dataclass
class CliState:
    config: TwtxtConfig
    config_path: Path


def configure_logging(verbose: bool) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to YAML config file",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx: click.Context, config_path: Path, verbose: bool) -> None:
    """Command-line twtxt client."""
    configure_logging(verbose)
    try:
        config = TwtxtConfig.from_yaml(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    ctx.obj = CliState(config=config, config_path=config_path)
    if ctx.invoked_subcommand is None:
        ctx.invoke(timeline)


@cli.command()
@click.pass_obj
def timeline(state: CliState) -> None:
    """Display your posts and the posts of followed feeds in time order."""
    fetcher = FeedFetcher(state.config)
    entries = asyncio.run(build_timeline(state.config, fetcher))

    if not entries:
        click.echo("No posts to show.")
        return

    for _, rendered in render_timeline(entries):
        click.echo(rendered)


@cli.command()
@click.pass_obj
def tweet(state: CliState) -> None:
    """Compose a new post in your editor and add it to your feed."""
    body = compose(state.config.editor)
    if not body:
        click.echo("Nothing to post.")
        return

    try:
        append_local_feed_line(state.config.path, compose_post_line(body))
    except FeedStorageError as e:
        raise click.ClickException(str(e)) from e
    click.echo("Post added!")


@cli.command()
@click.argument("url")
@click.option("--nick", help="Nickname to use if the feed declares none")
@click.pass_obj
def follow(state: CliState, url: str, nick: Optional[str]) -> None:
    """Follow the twtxt.txt at URL."""
    if any(f.url == url for f in state.config.follow):
        click.echo(f"Already following {url}")
        return

    fetcher = FeedFetcher(state.config)
    try:
        text = asyncio.run(fetcher.fetch_feed_text(url))
    except FeedFetchError as e:
        logger.warning("follow_fetch_failed", url=url, error=str(e))
        text = ""

    nick = nick or find_metadata(text, "nick")
    if not nick:
        raise click.ClickException(
            "Can't parse nick out of the feed metadata. Pass it with --nick."
        )

    try:
        state.config.with_follow(nick, url).save(state.config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Now following {nick} ({url})")


@cli.command()
@click.argument("nick")
@click.pass_obj
def unfollow(state: CliState, nick: str) -> None:
    """Stop following every feed followed as NICK."""
    updated = state.config.without_follow(nick)
    if updated.follow == state.config.follow:
        raise click.ClickException(f"Not following anyone as {nick}")

    try:
        updated.save(state.config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Unfollowed {nick}")


@cli.command()
@click.pass_obj
def following(state: CliState) -> None:
    """List followed feeds and when they last changed."""
    fetcher = FeedFetcher(state.config)

    async def _list() -> None:
        for entry in state.config.follow:
            try:
                modified = await fetcher.fetch_last_modified(entry.url) or "unknown"
            except FeedFetchError as e:
                logger.debug("last_modified_failed", url=entry.url, error=str(e))
                modified = "unavailable"
            click.echo(f"{entry.nick}\t{entry.url}\t{modified}")

    asyncio.run(_list())


if __name__ == "__main__":
    cli()
