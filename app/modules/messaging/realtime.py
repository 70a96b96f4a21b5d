"""
Supabase realtime subscriptions for conversations and unread counts.

Each subscription owns one channel on the async Supabase client. When the
channel reports CHANNEL_ERROR or TIMED_OUT it is removed and subscribed again
after an exponential backoff; after `realtime_max_retries` failed attempts the
subscription gives up and sets `error`. Realtime callbacks are synchronous, so
change handlers are scheduled as tasks on the running loop.
"""
import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from realtime.types import RealtimeSubscribeStates
from supabase import AsyncClient, Client

from app.config import settings
from app.modules.messaging.service import MessageService

logger = logging.getLogger(__name__)

SUBSCRIBE_ERROR = "Failed to subscribe to messages"

# realtime keys channels by topic, so every open subscription gets its own
_channel_ids = itertools.count(1)

_RETRY_STATES = (
    RealtimeSubscribeStates.CHANNEL_ERROR.value,
    RealtimeSubscribeStates.TIMED_OUT.value,
)


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number `attempt` (1-based): base * 2^(attempt-1), capped."""
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


def extract_record(payload: Any) -> Optional[Dict[str, Any]]:
    """Pull the changed row out of a postgres_changes payload."""
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if isinstance(data, dict):
        payload = data
    for key in ("record", "new"):
        record = payload.get(key)
        if isinstance(record, dict) and record:
            return record
    return None


class RealtimeSubscription:
    """One realtime channel with reconnect-on-failure."""

    error_message = SUBSCRIBE_ERROR

    def __init__(
        self,
        client: AsyncClient,
        on_error: Optional[Callable[[str], Awaitable[None]]] = None,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.on_error = on_error
        self.max_retries = settings.realtime_max_retries if max_retries is None else max_retries
        self.base_delay = settings.realtime_base_delay_seconds if base_delay is None else base_delay
        self.max_delay = settings.realtime_max_delay_seconds if max_delay is None else max_delay
        self._sleep = sleep

        self.error: Optional[str] = None
        self.attempts = 0
        self.subscribed = False
        self._channel = None
        self._closed = False
        self._retry_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._channel_id = next(_channel_ids)

    @property
    def channel_name(self) -> str:
        raise NotImplementedError

    def configure(self, channel):
        """Register the postgres_changes listeners on a fresh channel."""
        raise NotImplementedError

    async def handle_change(self, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        await self._subscribe()

    async def close(self) -> None:
        self._closed = True
        if self._retry_task and not self._retry_task.done():
            self._retry_task.cancel()
        for task in list(self._tasks):
            task.cancel()
        await self._remove_channel()

    def _spawn(self, coro) -> asyncio.Task:
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Handler task on {self.channel_name} failed: {error!r}")

    async def _subscribe(self) -> None:
        channel = self.client.channel(self.channel_name)
        self.configure(channel)
        self._channel = channel
        try:
            await channel.subscribe(self._on_status)
        except Exception as e:
            logger.warning(f"Subscribing to {self.channel_name} failed: {e}")
            self._schedule_retry()

    async def _remove_channel(self) -> None:
        channel, self._channel = self._channel, None
        self.subscribed = False
        if channel is None:
            return
        try:
            await self.client.remove_channel(channel)
        except Exception as e:
            logger.warning(f"Removing channel {self.channel_name} failed: {e}")

    def _on_change(self, payload: Dict[str, Any]) -> None:
        if not self._closed:
            self._spawn(self.handle_change(payload))

    def _on_status(self, status: Any, err: Optional[Exception] = None) -> None:
        state = getattr(status, "value", status)
        if state == RealtimeSubscribeStates.SUBSCRIBED.value:
            if self.attempts:
                logger.info(f"Resubscribed to {self.channel_name} after {self.attempts} attempt(s)")
            self.subscribed = True
            self.error = None
            self.attempts = 0
        elif state in _RETRY_STATES:
            logger.warning(f"Channel {self.channel_name} reported {state}: {err}")
            self.subscribed = False
            self._schedule_retry()
        elif state == RealtimeSubscribeStates.CLOSED.value:
            self.subscribed = False

    def _retry_pending(self) -> bool:
        task = self._retry_task
        if task is None or task.done():
            return False
        try:
            # a retry that failed to subscribe schedules the next one itself
            return task is not asyncio.current_task()
        except RuntimeError:
            return True

    def _schedule_retry(self) -> None:
        if self._closed or self._retry_pending():
            return
        self._retry_task = self._spawn(self._retry())

    async def _retry(self) -> None:
        if self.attempts >= self.max_retries:
            self.error = self.error_message
            logger.error(f"Giving up on {self.channel_name} after {self.attempts} attempts")
            await self._remove_channel()
            if self.on_error:
                await self.on_error(self.error)
            return
        self.attempts += 1
        delay = backoff_delay(self.attempts, self.base_delay, self.max_delay)
        logger.info(f"Retrying {self.channel_name} in {delay:.1f}s (attempt {self.attempts}/{self.max_retries})")
        await self._remove_channel()
        await self._sleep(delay)
        if self._closed:
            return
        await self._subscribe()


class ConversationSubscription(RealtimeSubscription):
    """
    Live view of one client's conversation.

    Keeps the loaded messages in `messages`, appends INSERTs (once per id),
    forwards them to `on_message` and marks messages from the other party as
    read while the conversation is open.
    """

    def __init__(
        self,
        client: AsyncClient,
        supabase: Client,
        client_id: str,
        viewer_type: str,
        on_message: Optional[Callable[[Dict[str, Any]], Awaitable[None]]] = None,
        **kwargs
    ):
        super().__init__(client, **kwargs)
        self.service = MessageService(supabase)
        self.client_id = client_id
        self.viewer_type = viewer_type
        self.on_message = on_message
        self.messages: List[Dict[str, Any]] = []
        self._seen_ids: Set[str] = set()

    @property
    def channel_name(self) -> str:
        return f"messages-{self.client_id}-{self._channel_id}"

    def configure(self, channel):
        return channel.on_postgres_changes(
            "INSERT",
            schema="public",
            table="messages",
            filter=f"client_id=eq.{self.client_id}",
            callback=self._on_change,
        )

    async def start(self) -> None:
        self.load()
        await super().start()

    def load(self) -> None:
        self.messages = [m.model_dump(mode="json") for m in self.service.get_messages(self.client_id)]
        self._seen_ids = {m["id"] for m in self.messages}
        self.service.mark_messages_as_read(self.client_id, self.viewer_type)

    def remember(self, message: Dict[str, Any]) -> bool:
        """Add a message to local state. False if it was already known."""
        message_id = message.get("id")
        if message_id in self._seen_ids:
            return False
        if message_id:
            self._seen_ids.add(message_id)
        self.messages.append(message)
        return True

    async def handle_change(self, payload: Dict[str, Any]) -> None:
        record = extract_record(payload)
        if not record or record.get("client_id") != self.client_id:
            return
        if not self.remember(record):
            return
        if self.on_message:
            await self.on_message(record)
        if record.get("sender_type") != self.viewer_type:
            try:
                self.service.mark_messages_as_read(self.client_id, self.viewer_type)
            except Exception as e:
                logger.warning(f"Marking messages read for client {self.client_id} failed: {e}")
                self.error = "Failed to mark as read"


class UnreadCountSubscription(RealtimeSubscription):
    """Recomputes a user's unread count on every change to the messages table."""

    error_message = "Failed to subscribe to message updates"

    def __init__(
        self,
        client: AsyncClient,
        supabase: Client,
        user_id: str,
        role: str,
        on_count: Optional[Callable[[int], Awaitable[None]]] = None,
        **kwargs
    ):
        super().__init__(client, **kwargs)
        self.service = MessageService(supabase)
        self.user_id = user_id
        self.role = role
        self.on_count = on_count
        self.count = 0

    @property
    def channel_name(self) -> str:
        return f"messages-unread-{self.user_id}-{self._channel_id}"

    def configure(self, channel):
        return channel.on_postgres_changes(
            "*",
            schema="public",
            table="messages",
            callback=self._on_change,
        )

    async def start(self) -> None:
        await self.refresh()
        await super().start()

    async def refresh(self) -> None:
        try:
            self.count = self.service.get_unread_count(self.user_id, self.role)
        except Exception as e:
            logger.warning(f"Unread count refresh for user {self.user_id} failed: {e}")
            self.error = "Failed to update unread count"
            return
        if self.on_count:
            await self.on_count(self.count)

    async def handle_change(self, payload: Dict[str, Any]) -> None:
        await self.refresh()
