import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Self

import structlog
import yaml

from .models import CollisionPolicy, Follow

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "twtxt-timeline" / "config.yaml"
DEFAULT_EDITOR = "nano"


class ConfigError(Exception):
    """The configuration file is missing, unreadable or malformed."""


def default_editor() -> str:
    return os.environ.get("EDITOR") or DEFAULT_EDITOR


def parse_follow(entry: str) -> Follow | None:
    """Split a ``"nick url"`` entry. Returns None if there is no url part."""
    nick, _, url = entry.strip().partition(" ")
    url = url.strip()
    if not url:
        return None
    return Follow(nick=nick, url=url)


@dataclass(frozen=True)
class TwtxtConfig:
    """Settings for the local feed and the feeds it follows."""

    nick: str
    url: str
    path: Path
    follow: tuple[Follow, ...] = ()
    editor: str = field(default_factory=default_editor)
    request_timeout: int = 30
    max_retries: int = 3
    collision_policy: CollisionPolicy = CollisionPolicy.OVERWRITE
    greedy_mentions: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create configuration from a mapping loaded from YAML."""
        try:
            nick = data["nick"]
            url = data["url"]
            path = data["path"]
        except KeyError as e:
            raise ConfigError(f"Missing required setting: {e.args[0]}") from e

        for key, value in (("nick", nick), ("url", url), ("path", path)):
            if value is None or not str(value).strip():
                raise ConfigError(f"Empty required setting: {key}")

        follows = []
        for entry in data.get("follow") or []:
            if parsed := parse_follow(str(entry)):
                follows.append(parsed)
            else:
                logger.warning("follow_entry_skipped", entry=entry)

        try:
            return cls(
                nick=str(nick),
                url=str(url),
                path=Path(str(path)).expanduser(),
                follow=tuple(follows),
                editor=data.get("editor") or default_editor(),
                request_timeout=int(data.get("request_timeout", 30)),
                max_retries=int(data.get("max_retries", 3)),
                collision_policy=CollisionPolicy(
                    data.get("collision_policy", CollisionPolicy.OVERWRITE)
                ),
                greedy_mentions=bool(data.get("greedy_mentions", True)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid setting: {e}") from e

    @classmethod
    def from_yaml(cls, path: Path) -> Self:
        """Create configuration from a YAML file."""
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Configuration file missing: {path}") from e
        except OSError as e:
            raise ConfigError(f"Can't read configuration file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Improperly formatted configuration file {path}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise ConfigError(f"Improperly formatted configuration file {path}")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nick": self.nick,
            "url": self.url,
            "path": str(self.path),
            "follow": [f"{f.nick} {f.url}" for f in self.follow],
            "editor": self.editor,
            "request_timeout": self.request_timeout,
            "max_retries": self.max_retries,
            "collision_policy": str(self.collision_policy),
            "greedy_mentions": self.greedy_mentions,
        }

    def save(self, path: Path) -> None:
        """Rewrite the YAML file at ``path`` with this configuration."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                yaml.safe_dump(self.to_dict(), sort_keys=False), encoding="utf-8"
            )
        except OSError as e:
            logger.error("config_save_error", error=str(e), path=str(path))
            raise ConfigError(f"Couldn't rewrite config file {path}: {e}") from e
        logger.info("config_saved", path=str(path))

    def with_follow(self, nick: str, url: str) -> Self:
        return replace(self, follow=(*self.follow, Follow(nick=nick, url=url)))

    def without_follow(self, nick: str) -> Self:
        return replace(self, follow=tuple(f for f in self.follow if f.nick != nick))
