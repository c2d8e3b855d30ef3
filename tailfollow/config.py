import codecs
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


@dataclass
class FollowConfig:
    # Seconds to keep retrying open+watch; 0 fails on the first error.
    timeout: float = 0
    retry_interval: float = 0.05
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if self.timeout < 0:
            raise ValueError("timeout must not be negative")
        if self.retry_interval <= 0:
            raise ValueError("retry_interval must be positive")
        try:
            codecs.lookup(self.encoding)
        except LookupError as exc:
            raise ValueError(f"unknown encoding: {self.encoding}") from exc

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "FollowConfig":
        raw = raw or {}
        return cls(
            timeout=float(raw.get("timeout", 0)),
            retry_interval=float(raw.get("retry_interval", 0.05)),
            encoding=str(raw.get("encoding", "utf-8")),
        )


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_follow_config(path: Path) -> FollowConfig:
    return FollowConfig.from_dict(load_yaml(path).get("follow"))
