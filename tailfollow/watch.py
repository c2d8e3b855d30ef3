"""Change notifications for a single path, delivered on the asyncio loop.

watchdog reports events for directories, so each subscription watches the
parent directory of the path and keeps only events naming the path itself.
"""
import asyncio
import enum
import logging
import os
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from tailfollow.errors import SubscriptionError

logger = logging.getLogger(__name__)


class Op(enum.Enum):
    CREATE = "create"
    WRITE = "write"
    RENAME = "rename"
    REMOVE = "remove"


@dataclass(frozen=True)
class WatchEvent:
    path: str
    op: Op

    @property
    def disruptive(self) -> bool:
        return self.op is not Op.WRITE


# Marks the end of both queues once a subscription is cancelled.
CLOSED = None


class Subscription:
    """Two queues fed by a change source: ``events`` and ``errors``.

    Both yield :data:`CLOSED` once the subscription is cancelled.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self.events: "asyncio.Queue[Optional[WatchEvent]]" = asyncio.Queue()
        self.errors: "asyncio.Queue[Optional[Exception]]" = asyncio.Queue()
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self.events.put_nowait(CLOSED)
        self.errors.put_nowait(CLOSED)


class EventSource(Protocol):
    def subscribe(self, path: str) -> Subscription:
        ...


class _PathEventHandler(FileSystemEventHandler):
    def __init__(self, subscription: Subscription, loop: asyncio.AbstractEventLoop) -> None:
        self.subscription = subscription
        self.loop = loop
        self.path = subscription.path
        self.directory = os.path.dirname(subscription.path)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            if event.event_type == "deleted" and _same(event.src_path, self.directory):
                self._post(self.subscription.errors, SubscriptionError(f"watched directory {self.directory} was removed"))
            return
        op = self._translate(event)
        if op is not None:
            self._post(self.subscription.events, WatchEvent(self.path, op))

    def _translate(self, event: FileSystemEvent) -> Optional[Op]:
        kind = event.event_type
        if kind == "moved":
            if _same(event.src_path, self.path):
                return Op.RENAME
            if _same(getattr(event, "dest_path", ""), self.path):
                return Op.CREATE
            return None
        if not _same(event.src_path, self.path):
            return None
        if kind == "created":
            return Op.CREATE
        if kind == "modified":
            return Op.WRITE
        if kind == "deleted":
            return Op.REMOVE
        return None

    def _post(self, queue: asyncio.Queue, item: Union[WatchEvent, Exception]) -> None:
        if self.subscription.cancelled:
            return
        try:
            self.loop.call_soon_threadsafe(queue.put_nowait, item)
        except RuntimeError:
            logger.debug("Event loop closed, dropping %r", item)


class WatchdogSubscription(Subscription):
    def __init__(self, path: str, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(path)
        self._observer = Observer()
        self._observer.daemon = True
        handler = _PathEventHandler(self, loop)
        try:
            self._observer.schedule(handler, os.path.dirname(path), recursive=False)
            self._observer.start()
        except OSError as exc:
            self._shutdown()
            raise SubscriptionError(f"cannot watch {path}: {exc}") from exc

    def cancel(self) -> None:
        if self.cancelled:
            return
        super().cancel()
        self._shutdown()

    def _shutdown(self) -> None:
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join()


class WatchdogSource:
    """Default event source backed by watchdog observers."""

    def subscribe(self, path: str) -> Subscription:
        path = os.path.abspath(path)
        return WatchdogSubscription(path, asyncio.get_running_loop())


def _same(candidate, path: str) -> bool:
    if not candidate:
        return False
    return os.path.abspath(os.fsdecode(candidate)) == path
