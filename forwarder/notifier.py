"""
Exhaustion notifier.

When every forwarding number has been tried without a connection, an
external workflow (n8n, Zapier, a CRM hook) is told about it with a single
JSON POST. Delivery is best effort: one attempt, no retry, and a failure is
only ever logged. The call flow never waits on it.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set, Tuple

import httpx

from .config import (
    NOTIFY_WEBHOOK_URL,
    NOTIFY_WEBHOOK_SECRET,
    NOTIFY_SECRET_HEADER,
    NOTIFY_TIMEOUT,
)
from .logging_config import get_logger, log_error, log_external_service

logger = get_logger("notifier")

EVENT_ALL_NUMBERS_UNAVAILABLE = "all_numbers_unavailable"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NotificationPayload:
    """Snapshot of an exhausted cascade, built once per call."""

    call_sid: str
    from_number: str
    to_number: str
    attempted_numbers: Tuple[str, ...]
    final_status: str
    timestamp: datetime = field(default_factory=_utcnow)
    event: str = EVENT_ALL_NUMBERS_UNAVAILABLE

    def __post_init__(self):
        object.__setattr__(self, "attempted_numbers", tuple(self.attempted_numbers))

    @property
    def total_attempts(self) -> int:
        return len(self.attempted_numbers)

    def to_json(self) -> Dict[str, Any]:
        return {
            "event": self.event,
            "timestamp": self.timestamp.isoformat(),
            "callSid": self.call_sid,
            "from": self.from_number,
            "to": self.to_number,
            "attemptedNumbers": list(self.attempted_numbers),
            "totalAttempts": self.total_attempts,
            "finalStatus": self.final_status,
        }


class ExhaustionNotifier:
    """Async webhook client for "all numbers unavailable" events."""

    def __init__(
        self,
        url: Optional[str] = None,
        secret: Optional[str] = None,
        secret_header: str = "X-Webhook-Secret",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url or ""
        self.secret = secret or ""
        self.secret_header = secret_header
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_env(cls) -> "ExhaustionNotifier":
        return cls(
            url=NOTIFY_WEBHOOK_URL,
            secret=NOTIFY_WEBHOOK_SECRET,
            secret_header=NOTIFY_SECRET_HEADER,
            timeout=NOTIFY_TIMEOUT,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    @property
    def pending(self) -> Set[asyncio.Task]:
        """Notifications still in flight."""
        return set(self._tasks)

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.secret:
            headers[self.secret_header] = self.secret
        return headers

    async def notify_exhausted(self, payload: NotificationPayload) -> bool:
        """
        Send one notification.

        Returns True on a 2xx response. Non-2xx statuses and transport errors
        are logged and reported as False; nothing is raised and nothing is
        retried.
        """
        if not self.enabled:
            return False

        client = await self.get_client()
        try:
            response = await client.post(self.url, json=payload.to_json(), headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log_external_service(
                "notify-webhook", "all numbers unavailable", success=False,
                call_sid=payload.call_sid, status_code=e.response.status_code,
            )
            return False
        except httpx.HTTPError as e:
            log_external_service(
                "notify-webhook", "all numbers unavailable", success=False,
                call_sid=payload.call_sid, error=f"{type(e).__name__}: {e}",
            )
            return False

        log_external_service(
            "notify-webhook", "all numbers unavailable",
            call_sid=payload.call_sid, status_code=response.status_code,
            total_attempts=payload.total_attempts,
        )
        return True

    def dispatch(self, payload: NotificationPayload) -> Optional[asyncio.Task]:
        """
        Fire-and-forget: schedule the notification on the running loop.

        Must be called from inside the event loop (i.e. from a request
        handler). Returns the task, or None when notifications are disabled.
        """
        if not self.enabled:
            logger.debug(
                "Notification webhook not configured, skipping",
                extra={"call_sid": payload.call_sid},
            )
            return None

        task = asyncio.get_running_loop().create_task(self.notify_exhausted(payload))
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_done(t, payload.call_sid))
        logger.info(
            f"📤 Notification queued ({payload.total_attempts} attempts)",
            extra={"call_sid": payload.call_sid, "step": "exhausted"},
        )
        return task

    def _on_done(self, task: asyncio.Task, call_sid: str):
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Notification cancelled before delivery", extra={"call_sid": call_sid})
            return
        error = task.exception()
        if error is not None:
            log_error(call_sid, error, step="exhausted", context="Notification task failed")

    async def aclose(self):
        """Wait for in-flight notifications, then close the HTTP client."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
