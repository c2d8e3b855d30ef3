import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from bot.config import NotifyConfig

logger = logging.getLogger(__name__)


@dataclass
class Notifier:
    """Groups followed lines into chat messages and paces their delivery."""

    notify_config: NotifyConfig
    clock: Callable[[], float] = time.monotonic
    paused: bool = False
    shipped: int = 0
    dropped: int = 0
    pending: List[str] = field(default_factory=list)
    last_sent_ts: Optional[float] = None
    failure: Optional[str] = None

    def add_line(self, line: str) -> None:
        if self.paused:
            self.dropped += 1
            return
        limit = self.notify_config.max_message_chars
        if len(line) > limit:
            line = line[: limit - 1] + "…"
        self.pending.append(line)

    def should_send(self) -> bool:
        if not self.pending:
            return False
        if self.last_sent_ts is None:
            return True
        return self.clock() - self.last_sent_ts >= self.notify_config.min_interval_sec

    def next_batch(self) -> List[str]:
        """Pop the lines that fit in the next message; empty if none queued."""
        batch: List[str] = []
        size = 0
        for line in self.pending:
            extra = len(line) + (1 if batch else 0)
            if batch and (len(batch) >= self.notify_config.max_lines_per_message or size + extra > self.notify_config.max_message_chars):
                break
            batch.append(line)
            size += extra
        del self.pending[: len(batch)]
        if batch:
            self.last_sent_ts = self.clock()
        return batch

    def mark_shipped(self, count: int) -> None:
        self.shipped += count

    def mark_dropped(self, count: int) -> None:
        self.dropped += count

    def fail(self, reason: str) -> None:
        self.failure = reason

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def status(self, path: str) -> str:
        if self.failure is not None:
            state = f"failed ({self.failure})"
        elif self.paused:
            state = "paused"
        else:
            state = "shipping"
        return (
            f"file: {path}\n"
            f"state: {state}\n"
            f"shipped: {self.shipped}\n"
            f"dropped: {self.dropped}\n"
            f"queued: {len(self.pending)}"
        )
