import asyncio
from typing import List

import pytest

from bot.config import NotifyConfig
from bot.notifier import Notifier
from bot.telegram_bot import _flush_worker, _follow_worker
from tailfollow.errors import ReopenError


class _FakeBot:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: List[str] = []

    async def send_message(self, chat_id: str, text: str) -> None:
        if self.fail:
            raise ConnectionError("telegram unreachable")
        self.sent.append(text)


class _FakeApp:
    def __init__(self, bot: _FakeBot) -> None:
        self.bot = bot


class _DyingFollower:
    path = "/var/log/app.log"

    def __init__(self, lines: List[str]) -> None:
        self._lines = list(lines)

    def __aiter__(self) -> "_DyingFollower":
        return self

    async def __anext__(self) -> str:
        if self._lines:
            return self._lines.pop(0)
        raise ReopenError("re-opening /var/log/app.log failed")


async def _run_flush_once(app: _FakeApp, notifier: Notifier) -> None:
    worker = asyncio.create_task(_flush_worker(app, "42", notifier))
    await asyncio.sleep(0.05)
    worker.cancel()
    with pytest.raises(asyncio.CancelledError):
        await worker


@pytest.mark.asyncio
async def test_failed_send_counts_lines_as_dropped_only() -> None:
    notifier = Notifier(NotifyConfig())
    notifier.add_line("one")
    notifier.add_line("two")
    await _run_flush_once(_FakeApp(_FakeBot(fail=True)), notifier)
    assert notifier.shipped == 0
    assert notifier.dropped == 2


@pytest.mark.asyncio
async def test_successful_send_counts_lines_as_shipped() -> None:
    bot = _FakeBot()
    notifier = Notifier(NotifyConfig())
    notifier.add_line("one")
    notifier.add_line("two")
    await _run_flush_once(_FakeApp(bot), notifier)
    assert bot.sent == ["one\ntwo"]
    assert notifier.shipped == 2
    assert notifier.dropped == 0


@pytest.mark.asyncio
async def test_follower_failure_is_reported_to_chat_and_status() -> None:
    bot = _FakeBot()
    notifier = Notifier(NotifyConfig())
    await asyncio.wait_for(_follow_worker(_FakeApp(bot), "42", _DyingFollower(["last"]), notifier), 1)
    assert notifier.pending == ["last"]
    assert notifier.failure == "re-opening /var/log/app.log failed"
    assert "failed" in notifier.status("/var/log/app.log")
    assert bot.sent == ["Stopped shipping /var/log/app.log: re-opening /var/log/app.log failed"]
