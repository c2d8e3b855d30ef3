from bot.config import NotifyConfig
from bot.notifier import Notifier


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def advance(self, value: float) -> None:
        self.now += value

    def __call__(self) -> float:
        return self.now


def test_lines_are_batched_by_count() -> None:
    notifier = Notifier(NotifyConfig(max_lines_per_message=2), clock=_Clock())
    for line in ("a", "b", "c"):
        notifier.add_line(line)
    assert notifier.next_batch() == ["a", "b"]
    assert notifier.next_batch() == ["c"]
    assert notifier.next_batch() == []


def test_lines_are_batched_by_size() -> None:
    notifier = Notifier(NotifyConfig(max_message_chars=7), clock=_Clock())
    notifier.add_line("abc")
    notifier.add_line("def")
    notifier.add_line("g")
    assert notifier.next_batch() == ["abc", "def"]
    assert notifier.next_batch() == ["g"]


def test_long_line_is_cut_to_message_size() -> None:
    notifier = Notifier(NotifyConfig(max_message_chars=5), clock=_Clock())
    notifier.add_line("abcdefgh")
    assert notifier.next_batch() == ["abcd…"]


def test_sends_are_rate_limited() -> None:
    clock = _Clock()
    notifier = Notifier(NotifyConfig(min_interval_sec=2.0), clock=clock)
    assert not notifier.should_send()
    notifier.add_line("one")
    assert notifier.should_send()
    notifier.next_batch()
    notifier.add_line("two")
    assert not notifier.should_send()
    clock.advance(2.0)
    assert notifier.should_send()


def test_taking_a_batch_does_not_count_it_as_shipped() -> None:
    notifier = Notifier(NotifyConfig(), clock=_Clock())
    notifier.add_line("one")
    batch = notifier.next_batch()
    assert notifier.shipped == 0
    notifier.mark_shipped(len(batch))
    assert notifier.shipped == 1


def test_paused_notifier_drops_lines() -> None:
    notifier = Notifier(NotifyConfig(), clock=_Clock())
    notifier.pause()
    notifier.add_line("ignored")
    assert notifier.dropped == 1
    assert notifier.next_batch() == []
    notifier.resume()
    notifier.add_line("kept")
    notifier.mark_shipped(len(notifier.next_batch()))
    assert "shipped: 1" in notifier.status("/var/log/app.log")
    assert "state: shipping" in notifier.status("/var/log/app.log")


def test_failure_shows_in_status() -> None:
    notifier = Notifier(NotifyConfig(), clock=_Clock())
    notifier.fail("re-opening app.log failed")
    assert "state: failed (re-opening app.log failed)" in notifier.status("app.log")
