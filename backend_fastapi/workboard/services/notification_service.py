"""Outbound notifications (invitation emails, assignment notices).

Callers hand a :class:`Notification` to the dispatcher after their own writes
have committed. ``submit`` never blocks: it returns False when the message
could not be queued, so the caller can report delivery as pending. A single
worker task drains the queue and passes each message to a sender; sender
failures are logged and dropped.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import asyncio
import logging

from workboard.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

WORKSPACE_INVITE = "workspace_invite"
TASK_ASSIGNED = "task_assigned"


@dataclass
class Notification:
    kind: str
    payload: Dict[str, Any]
    created_at: Any = field(default_factory=utcnow)


class NotificationSender:
    """Delivers one notification. Email delivery lives outside this service, so the default just logs."""

    async def send(self, notification: Notification) -> None:
        logger.info(f"Notification {notification.kind} -> {notification.payload.get('to')}")


class NotificationDispatcher:
    def __init__(self, sender: Optional[NotificationSender] = None, max_queue_size: int = 1000):
        self.sender = sender or NotificationSender()
        self.max_queue_size = max_queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._worker = asyncio.create_task(self._run(), name="notification-worker")
        logger.info("Notification worker started.")

    async def stop(self, drain: bool = True) -> None:
        if not self.running:
            return
        if drain:
            await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Notification worker stopped.")

    def submit(self, notification: Notification) -> bool:
        """Queue ``notification`` for delivery; False when it could not be queued."""
        if not self.running:
            logger.warning(f"Notification dispatcher not running; {notification.kind} not queued")
            return False
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            logger.warning(f"Notification queue full ({self.max_queue_size}); {notification.kind} not queued")
            return False
        return True

    async def _run(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self.sender.send(notification)
            except Exception as e:
                logger.error(f"Failed to deliver {notification.kind} notification: {e}")
            finally:
                self._queue.task_done()
