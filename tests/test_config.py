from pathlib import Path

import pytest

from bot.config import load_config
from tailfollow.config import FollowConfig, load_follow_config


def test_follow_config_defaults() -> None:
    config = FollowConfig()
    assert config.timeout == 0
    assert config.retry_interval == 0.05
    assert config.encoding == "utf-8"


def test_follow_config_rejects_negative_timeout() -> None:
    with pytest.raises(ValueError):
        FollowConfig(timeout=-1)


def test_load_follow_config_reads_follow_section(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("follow:\n  timeout: 10\n  encoding: latin-1\n")
    config = load_follow_config(path)
    assert config.timeout == 10
    assert config.encoding == "latin-1"
    assert config.retry_interval == 0.05


def test_load_follow_config_handles_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_follow_config(path) == FollowConfig()


def test_bot_config_caps_message_size(tmp_path: Path) -> None:
    path = tmp_path / "config.telegram.yaml"
    path.write_text(
        "telegram:\n  token: abc\n  chat_id: 42\n"
        "source:\n  path: /var/log/app.log\n"
        "follow:\n  timeout: 5\n"
        "notify:\n  max_message_chars: 10000\n"
    )
    config = load_config(path)
    assert config.telegram.chat_id == "42"
    assert config.source.path == Path("/var/log/app.log")
    assert config.follow.timeout == 5
    assert config.notify.max_message_chars == 4096
    assert config.notify.max_lines_per_message == 20


def test_follow_config_rejects_unknown_encoding() -> None:
    with pytest.raises(ValueError):
        FollowConfig(encoding="no-such-codec")
