from pathlib import Path

import pytest
import structlog

from twtxt_timeline.config import TwtxtConfig
from twtxt_timeline.models import Follow


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()


def make_feed(nick: str, url: str, *posts: tuple[str, str]) -> str:
    lines = ["# == Metadata ==", f"# nick = {nick}", f"# url = {url}", "#"]
    lines.extend(f"{timestamp}\t{body}" for timestamp, body in posts)
    return "\n".join(lines) + "\n"


@pytest.fixture
def local_path(tmp_path: Path) -> Path:
    return tmp_path / "twtxt.txt"


@pytest.fixture
def config(local_path: Path) -> TwtxtConfig:
    return TwtxtConfig(
        nick="me",
        url="https://me.example/twtxt.txt",
        path=local_path,
        follow=(
            Follow("alice", "https://alice.example/twtxt.txt"),
            Follow("bob", "https://bob.example/twtxt.txt"),
        ),
        editor="true",
        max_retries=1,
    )
