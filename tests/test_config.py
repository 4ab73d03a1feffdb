from pathlib import Path

import pytest
import yaml

from twtxt_timeline.config import ConfigError, TwtxtConfig, parse_follow
from twtxt_timeline.models import CollisionPolicy, Follow


def write_yaml(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_from_yaml(tmp_path):
    path = write_yaml(
        tmp_path / "config.yaml",
        {
            "nick": "me",
            "url": "https://me.example/twtxt.txt",
            "path": str(tmp_path / "twtxt.txt"),
            "follow": ["alice https://alice.example/twtxt.txt", "broken"],
            "collision_policy": "keep_all",
        },
    )

    config = TwtxtConfig.from_yaml(path)

    assert config.nick == "me"
    assert config.path == tmp_path / "twtxt.txt"
    assert config.follow == (Follow("alice", "https://alice.example/twtxt.txt"),)
    assert config.collision_policy is CollisionPolicy.KEEP_ALL
    assert config.request_timeout == 30


def test_editor_defaults_to_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("EDITOR", "vi")
    path = write_yaml(tmp_path / "c.yaml", {"nick": "a", "url": "b", "path": "c"})
    assert TwtxtConfig.from_yaml(path).editor == "vi"

    monkeypatch.delenv("EDITOR")
    assert TwtxtConfig.from_yaml(path).editor == "nano"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="missing"):
        TwtxtConfig.from_yaml(tmp_path / "nope.yaml")


@pytest.mark.parametrize(
    "content",
    ["nick: [unterminated", "- just\n- a list\n", "nick: me\nurl: x\n"],
)
def test_malformed_file(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        TwtxtConfig.from_yaml(path)


def test_bad_collision_policy(tmp_path):
    path = write_yaml(
        tmp_path / "c.yaml",
        {"nick": "a", "url": "b", "path": "c", "collision_policy": "random"},
    )
    with pytest.raises(ConfigError):
        TwtxtConfig.from_yaml(path)


def test_follow_unfollow_roundtrip(config, tmp_path):
    path = tmp_path / "config.yaml"
    updated = config.with_follow("carol", "https://carol.example/twtxt.txt")
    updated = updated.without_follow("alice")
    updated.save(path)

    reloaded = TwtxtConfig.from_yaml(path)

    assert [f.nick for f in reloaded.follow] == ["bob", "carol"]
    assert reloaded == updated


def test_parse_follow():
    assert parse_follow("alice https://a.example/twtxt.txt") == Follow(
        "alice", "https://a.example/twtxt.txt"
    )
    assert parse_follow("https://a.example/twtxt.txt") is None


@pytest.mark.parametrize("key", ["nick", "url", "path"])
@pytest.mark.parametrize("value", [None, "", "   "])
def test_empty_required_setting(tmp_path, key, value):
    data = {"nick": "me", "url": "https://me.example/twtxt.txt", "path": "twtxt.txt"}
    data[key] = value
    path = write_yaml(tmp_path / "config.yaml", data)

    with pytest.raises(ConfigError, match=key):
        TwtxtConfig.from_yaml(path)
