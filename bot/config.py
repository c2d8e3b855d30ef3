from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from tailfollow.config import FollowConfig, load_yaml


@dataclass
class TelegramConfig:
    token: str
    chat_id: str


@dataclass
class SourceConfig:
    path: Path


@dataclass
class NotifyConfig:
    max_lines_per_message: int = 20
    max_message_chars: int = 4096
    min_interval_sec: float = 2.0


@dataclass
class BotConfig:
    telegram: TelegramConfig
    source: SourceConfig
    follow: FollowConfig
    notify: NotifyConfig


def load_config(path: Path) -> BotConfig:
    data: Dict[str, Any] = load_yaml(path)

    telegram_raw = data.get("telegram", {})
    source_raw = data.get("source", {})
    notify_raw = data.get("notify", {})

    telegram = TelegramConfig(token=str(telegram_raw.get("token", "")), chat_id=str(telegram_raw.get("chat_id", "")))
    source = SourceConfig(path=Path(source_raw.get("path", "./app.log")))
    notify = NotifyConfig(
        max_lines_per_message=int(notify_raw.get("max_lines_per_message", 20)),
        max_message_chars=min(int(notify_raw.get("max_message_chars", 4096)), 4096),
        min_interval_sec=float(notify_raw.get("min_interval_sec", 2.0)),
    )
    follow = FollowConfig.from_dict(data.get("follow"))

    return BotConfig(telegram=telegram, source=source, follow=follow, notify=notify)
