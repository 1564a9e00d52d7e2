"""
In-memory email retry queue

Failed transactional emails are kept in process memory and re-sent on a fixed
interval until they succeed or reach the attempt cap. The queue is not
persisted: a restart drops every pending entry.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from ..config import EMAIL_RETRY_INTERVAL_SECONDS, EMAIL_RETRY_MAX_ATTEMPTS
from .periodic import PeriodicJob

logger = logging.getLogger(__name__)

EmailHandler = Callable[..., Awaitable[Any]]


@dataclass
class PendingEmail:
    id: str
    type: str
    to: str
    data: dict[str, Any]
    # The failed send that created the entry counts as the first attempt
    attempts: int = 1
    created_at: datetime = field(default_factory=datetime.utcnow)
    last_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "to": self.to,
            "attempts": self.attempts,
            "created_at": self.created_at.isoformat(),
            "last_error": self.last_error,
        }


class EmailRetryQueue:
    """
    Bounded retry list with type-keyed dispatch.

    Handlers are registered per email type and awaited as
    ``handler(to, **data)``; a handler signals failure by raising.
    """

    def __init__(
        self,
        max_attempts: int = EMAIL_RETRY_MAX_ATTEMPTS,
        interval_seconds: float = EMAIL_RETRY_INTERVAL_SECONDS,
        is_available: Optional[Callable[[], bool]] = None,
    ):
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.is_available = is_available
        self._handlers: dict[str, EmailHandler] = {}
        self._pending: list[PendingEmail] = []
        self._job = PeriodicJob(
            "Email retry queue", self.process_pending, interval_seconds, run_immediately=False
        )

    def register(self, email_type: str, handler: EmailHandler) -> None:
        self._handlers[email_type] = handler

    def enqueue(
        self, email_type: str, to: str, data: dict[str, Any], error: Optional[str] = None
    ) -> PendingEmail:
        entry = PendingEmail(
            id=f"{email_type}_{to}_{int(time.time() * 1000)}",
            type=email_type,
            to=to,
            data=dict(data),
            last_error=error,
        )
        self._pending.append(entry)
        logger.warning(
            f"📥 Email queued for retry: {email_type} -> {to} (pending: {len(self._pending)})"
        )
        return entry

    def pending_count(self) -> int:
        return len(self._pending)

    def snapshot(self) -> list[PendingEmail]:
        return list(self._pending)

    def clear(self) -> None:
        self._pending.clear()

    def _remove(self, entry: PendingEmail) -> None:
        try:
            self._pending.remove(entry)
        except ValueError:
            pass

    async def process_pending(self) -> dict:
        """
        Re-attempt every queued email once.

        Entries that already used their attempts are evicted without sending.
        Emails queued while this runs wait for the next cycle.
        """
        summary = {"processed": 0, "sent": 0, "failed": 0, "evicted": 0, "skipped": False}

        if not self._pending:
            return summary

        if self.is_available and not self.is_available():
            logger.warning(
                f"⚠️ Email service unavailable, skipping retry of {len(self._pending)} emails"
            )
            summary["skipped"] = True
            return summary

        logger.info(f"🔄 Retrying {len(self._pending)} pending emails...")

        for entry in list(self._pending):
            if entry.attempts >= self.max_attempts:
                logger.error(
                    f"❌ Email permanently failed after {entry.attempts} attempts: "
                    f"{entry.type} -> {entry.to} ({entry.last_error})"
                )
                self._remove(entry)
                summary["evicted"] += 1
                continue

            summary["processed"] += 1
            handler = self._handlers.get(entry.type)
            try:
                if handler is None:
                    raise LookupError(f"No retry handler registered for email type '{entry.type}'")
                await handler(entry.to, **entry.data)
            except Exception as e:
                entry.attempts += 1
                entry.last_error = str(e)
                summary["failed"] += 1
                logger.warning(
                    f"⚠️ Retry {entry.attempts}/{self.max_attempts} failed for "
                    f"{entry.type} -> {entry.to}: {e}"
                )
                continue

            self._remove(entry)
            summary["sent"] += 1
            logger.info(f"✅ Email retry succeeded: {entry.type} -> {entry.to}")

        return summary

    @property
    def is_running(self) -> bool:
        return self._job.is_running

    def start(self) -> bool:
        return self._job.start()

    async def stop(self) -> None:
        await self._job.stop()


email_retry_queue = EmailRetryQueue()
