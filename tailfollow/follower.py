"""Follow a growing file the way ``tail -F`` does.

A :class:`Follower` opens the path, subscribes to change notifications for
it and hands every newly appended line to the consumer through ``lines``.
Rename, remove and create notifications make it re-open the path, so a
rotated file is picked up from its first byte.
"""
import asyncio
import logging
import os
from typing import BinaryIO, Optional, Tuple, Union

from tailfollow.config import FollowConfig
from tailfollow.errors import FollowerClosed, NotFoundError, ReopenError, SubscriptionError, TailError
from tailfollow.opener import PathOpener, open_path
from tailfollow.reader import LineReader
from tailfollow.watch import CLOSED, EventSource, Subscription, WatchdogSource, WatchEvent

logger = logging.getLogger(__name__)

LineItem = Union[str, BaseException]


class Follower:
    def __init__(
        self,
        path: str,
        config: Optional[FollowConfig] = None,
        *,
        opener: Optional[PathOpener] = None,
        source: Optional[EventSource] = None,
    ) -> None:
        self.path = path
        self.config = config or FollowConfig()
        self.opener = opener or open_path
        self.source = source or WatchdogSource()
        self.lines: "asyncio.Queue[LineItem]" = asyncio.Queue(maxsize=1)
        self.error: Optional[BaseException] = None
        self.closed = False
        self._handle: Optional[BinaryIO] = None
        self._reader: Optional[LineReader] = None
        self._subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        await self._open_and_watch(fresh=False)
        self._task = asyncio.create_task(self._run(), name=f"follow:{self.path}")

    def close(self) -> None:
        """Stop following and release the file handle and the subscription."""
        self.closed = True
        if self._task is not None:
            self._task.cancel()
        self._release()
        if self.lines.empty():
            # Wakes a consumer blocked in get()
            self.lines.put_nowait(FollowerClosed(self.path))

    async def get(self) -> str:
        """Return the next line, raising the failure that stopped the follower."""
        if self.lines.empty():
            if self.error is not None:
                raise self.error
            if self.closed:
                raise FollowerClosed(self.path)
        item = await self.lines.get()
        if isinstance(item, BaseException):
            raise item
        return item

    def __aiter__(self) -> "Follower":
        return self

    async def __anext__(self) -> str:
        try:
            return await self.get()
        except FollowerClosed:
            raise StopAsyncIteration from None

    async def __aenter__(self) -> "Follower":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # open / watch

    async def _open_and_watch(self, fresh: bool) -> None:
        """Open the path and subscribe to it, retrying until the timeout.

        A missing file marks the next successful open as fresh, so it is read
        from offset 0 instead of its end. With a zero timeout the first
        failure is raised as is; otherwise the last one once time runs out.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.timeout
        attempts = 0
        while True:
            attempts += 1
            try:
                self._open(fresh)
                self._watch()
                return
            except FileNotFoundError as exc:
                fresh = True
                error: Exception = exc
            except (OSError, SubscriptionError) as exc:
                error = exc
            remaining = deadline - loop.time()
            if self.config.timeout == 0 or remaining <= 0:
                if self.config.timeout:
                    logger.warning("Giving up on %s after %d attempts: %s", self.path, attempts, error)
                self._release()
                raise error
            logger.debug("Cannot follow %s yet (%s), retrying", self.path, error)
            await asyncio.sleep(min(self.config.retry_interval, remaining))

    def _open(self, fresh: bool) -> None:
        self._close_handle()
        handle = self.opener(self.path)
        try:
            if not fresh:
                handle.seek(0, os.SEEK_END)
        except OSError:
            handle.close()
            raise
        self._handle = handle
        self._reader = LineReader(handle, encoding=self.config.encoding)
        logger.info("Opened %s at offset %d", self.path, self._reader.position)

    def _watch(self) -> None:
        self._cancel_subscription()
        self._subscription = self.source.subscribe(self.path)

    def _close_handle(self) -> None:
        if self._handle is not None:
            self._handle.close()
        self._handle = None
        self._reader = None

    def _cancel_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
        self._subscription = None

    def _release(self) -> None:
        self._close_handle()
        self._cancel_subscription()

    # ------------------------------------------------------------------
    # watching

    async def _run(self) -> None:
        try:
            # A fresh file is read from offset 0; for any file this also picks
            # up lines appended between open and subscribe.
            await self._drain()
            await self._watch_loop()
        except Exception as exc:  # noqa: BLE001
            logger.error("Stopped following %s: %s", self.path, exc)
            self.error = exc
            self._release()
            await self.lines.put(exc)

    async def _watch_loop(self) -> None:
        while True:
            subscription = self._subscription
            if subscription is None:
                return
            events = asyncio.ensure_future(subscription.events.get())
            errors = asyncio.ensure_future(subscription.errors.get())
            try:
                done, _ = await asyncio.wait({events, errors}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for waiter in (events, errors):
                    if not waiter.done():
                        waiter.cancel()
            if errors in done:
                error = errors.result()
                if error is CLOSED:
                    return
                logger.warning("Watcher error for %s: %s", self.path, error)
            if events in done:
                event = events.result()
                if event is CLOSED:
                    return
                await self._dispatch(event)

    async def _dispatch(self, event: WatchEvent) -> None:
        logger.debug("%s event for %s", event.op.value, self.path)
        if event.disruptive:
            await self._reopen(event)
            return
        if self._reader is not None:
            self._reader.rewind_if_truncated()
        await self._drain()

    async def _reopen(self, event: WatchEvent) -> None:
        # Complete lines written before the rotation still belong to us
        await self._drain()
        if self._follows_path():
            return
        logger.info("%s on %s, re-opening", event.op.value, self.path)
        if self._reader is not None and self._reader.pending:
            logger.warning("Discarding %d bytes of an unterminated line in %s", self._reader.pending, self.path)
        self._release()
        try:
            await self._open_and_watch(fresh=True)
        except (OSError, TailError) as exc:
            raise ReopenError(f"re-opening {self.path} failed: {exc}") from exc
        await self._drain()

    async def _drain(self) -> None:
        if self._reader is None:
            return
        for line in self._reader.drain():
            await self.lines.put(line)

    def _follows_path(self) -> bool:
        """Whether ``path`` still names the file behind the open handle."""
        held = _identity(self._handle)
        if held is None:
            return False
        try:
            current = os.stat(self.path)
        except OSError:
            return False
        return (current.st_dev, current.st_ino) == held


def _identity(handle: Optional[BinaryIO]) -> Optional[Tuple[int, int]]:
    if handle is None:
        return None
    try:
        stat = os.fstat(handle.fileno())
    except (OSError, ValueError, AttributeError):
        return None
    return stat.st_dev, stat.st_ino


async def follow(
    path: str,
    config: Optional[FollowConfig] = None,
    *,
    opener: Optional[PathOpener] = None,
    source: Optional[EventSource] = None,
) -> Follower:
    """Start following ``path``.

    Raises :class:`NotFoundError` (or the last open/subscribe error) when the
    file cannot be followed within ``config.timeout`` seconds; a zero timeout
    fails on the first attempt.
    """
    follower = Follower(path, config, opener=opener, source=source)
    await follower.start()
    return follower


create_follower = follow

__all__ = ["Follower", "NotFoundError", "create_follower", "follow"]
