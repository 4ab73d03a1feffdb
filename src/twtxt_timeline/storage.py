from datetime import datetime, timezone
from pathlib import Path

import structlog

logger = structlog.get_logger()


class FeedStorageError(OSError):
    """The local twtxt.txt could not be read or rewritten."""


def read_local_feed_text(path: Path) -> str:
    """Read the local feed. A missing file is an empty feed."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("local_feed_missing", path=str(path))
        return ""
    except (OSError, UnicodeDecodeError) as e:
        logger.error("local_feed_read_error", error=str(e), path=str(path))
        raise FeedStorageError(f"Can't read {path}: {e}") from e


def compose_post_line(body: str, now: datetime | None = None) -> str:
    """Build a ``timestamp<TAB>body`` line stamped with the current UTC time."""
    now = now or datetime.now(timezone.utc)
    timestamp = now.astimezone(timezone.utc).isoformat(timespec="seconds")
    return f"{timestamp}\t{' '.join(body.split())}"


def append_local_feed_line(path: Path, line: str) -> Path:
    """Append ``line`` to the local feed by rewriting the whole file.

    Blank lines in the existing file are dropped.
    """
    lines = [
        existing
        for existing in read_local_feed_text(path).split("\n")
        if existing.strip()
    ]
    lines.append(line)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as e:
        logger.error("local_feed_write_error", error=str(e), path=str(path))
        raise FeedStorageError(f"Couldn't append new post to {path}: {e}") from e

    logger.info("post_appended", path=str(path))
    return path
