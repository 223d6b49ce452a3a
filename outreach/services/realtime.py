"""
Realtime change feed for the messages relation.

The messaging service publishes a ChangeEvent after every committed insert,
edit or delete. ``ChangeFeed`` fans events out to registered subscriptions,
dropping events for other channels before they reach a channel-scoped
subscriber. ``Subscription`` owns a bounded queue and a dispatch task that
hands each event to the matching caller-supplied callback.

Usage::

    async with Subscription(change_feed, channel_id=42, on_insert=handle_new) as sub:
        ...  # callbacks fire while the block runs

The subscription is released when the block exits, whatever the exit path.
"""
import asyncio
import inspect
import logging
import threading
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from outreach.core.config import settings
from outreach.schemas.realtime import ChangeEvent, DELETE, INSERT, UPDATE

logger = logging.getLogger(__name__)

Callback = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class ChangeFeed:
    def __init__(self):
        self._subscriptions: Set["Subscription"] = set()
        self._lock = threading.Lock()

    def register(self, subscription: "Subscription") -> None:
        with self._lock:
            self._subscriptions.add(subscription)
        logger.debug(f"[ChangeFeed] Registered {subscription!r}. Active: {len(self._subscriptions)}")

    def unregister(self, subscription: "Subscription") -> None:
        with self._lock:
            self._subscriptions.discard(subscription)
        logger.debug(f"[ChangeFeed] Unregistered {subscription!r}. Active: {len(self._subscriptions)}")

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to every interested subscription. Returns the number of recipients."""
        with self._lock:
            targets = list(self._subscriptions)

        channel_id = event.row.get("channel_id")
        delivered = 0
        for subscription in targets:
            # Server-side filter: channel subscriptions only see their own channel
            if subscription.channel_id is not None and subscription.channel_id != channel_id:
                continue
            subscription.deliver(event)
            delivered += 1
        return delivered


class Subscription:
    """
    A listener bound to one conversation: a channel, or a direct conversation
    between ``user_id`` and ``peer_id``.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        channel_id: Optional[int] = None,
        user_id: Optional[int] = None,
        peer_id: Optional[int] = None,
        on_insert: Optional[Callback] = None,
        on_update: Optional[Callback] = None,
        on_delete: Optional[Callback] = None,
        max_queue: Optional[int] = None,
    ):
        if (channel_id is None) == (user_id is None or peer_id is None):
            raise ValueError("Subscribe to either a channel or a direct conversation (user_id and peer_id)")
        self.feed = feed
        self.channel_id = channel_id
        self.user_id = user_id
        self.peer_id = peer_id
        self._callbacks: Dict[str, Optional[Callback]] = {
            INSERT: on_insert,
            UPDATE: on_update,
            DELETE: on_delete,
        }
        self._max_queue = max_queue or settings.REALTIME_QUEUE_SIZE
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task] = None
        self._active = False
        self.dropped = 0

    def __repr__(self) -> str:
        if self.channel_id is not None:
            return f"<Subscription channel={self.channel_id}>"
        return f"<Subscription direct={self.user_id}:{self.peer_id}>"

    @property
    def active(self) -> bool:
        return self._active

    async def start(self) -> "Subscription":
        if self._active:
            return self
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self._max_queue)
        self._active = True
        self._task = asyncio.create_task(self._dispatch())
        self.feed.register(self)
        return self

    async def stop(self) -> None:
        if not self._active:
            return
        # Unregister first so nothing new arrives while the task winds down
        self._active = False
        self.feed.unregister(self)
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._queue = None

    async def __aenter__(self) -> "Subscription":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def drain(self) -> None:
        """Wait until every queued event has been dispatched."""
        if self._queue is not None:
            await self._queue.join()

    def matches(self, event: ChangeEvent) -> bool:
        row = event.row
        if self.channel_id is not None:
            return row.get("channel_id") == self.channel_id
        # Direct conversations: the (sender, recipient) pair must be ours, in either order
        if row.get("channel_id") is not None:
            return False
        pair = (row.get("sender_id"), row.get("recipient_id"))
        return pair in ((self.user_id, self.peer_id), (self.peer_id, self.user_id))

    def deliver(self, event: ChangeEvent) -> None:
        """Hand an event to this subscription from any thread."""
        loop = self._loop
        if not self._active or loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._enqueue(event)
        else:
            loop.call_soon_threadsafe(self._enqueue, event)

    def _enqueue(self, event: ChangeEvent) -> None:
        if not self._active or self._queue is None:
            return
        if not self.matches(event):
            return
        if self._queue.full():
            self._queue.get_nowait()
            self._queue.task_done()
            self.dropped += 1
            logger.warning(f"[Realtime] Queue full for {self!r}; dropped oldest event")
        self._queue.put_nowait(event)

    async def _dispatch(self) -> None:
        queue = self._queue
        while True:
            event = await queue.get()
            try:
                callback = self._callbacks.get(event.type)
                if callback is not None:
                    result = callback(event.row)
                    if inspect.isawaitable(result):
                        await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"[Realtime] {event.type} callback failed for {self!r}")
            finally:
                queue.task_done()


def message_row(message) -> Dict[str, Any]:
    """Serialise a Message row the way change events carry it."""
    return {
        "id": message.id,
        "sender_id": message.sender_id,
        "recipient_id": message.recipient_id,
        "channel_id": message.channel_id,
        "reply_to_id": message.reply_to_id,
        "content": message.content,
        "attachments": message.attachments,
        "created_at": message.created_at.isoformat() if message.created_at else None,
        "edited_at": message.edited_at.isoformat() if message.edited_at else None,
        "deleted": bool(message.deleted),
    }


change_feed = ChangeFeed()
