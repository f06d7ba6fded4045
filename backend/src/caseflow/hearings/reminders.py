"""Hearing reminders.

A HearingReminderScheduler polls hearings on an interval and hands
reminders to an injected ``notify`` callback: one a day ahead and one an
hour ahead. A ReminderLedger remembers which reminders went out so each is
sent at most once, also across restarts when the ledger is Redis-backed.

Usage:
    scheduler = HearingReminderScheduler(source=hearings.list_hearings, notify=send)
    scheduler.start()
    ...
    await scheduler.stop()
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from redis.exceptions import RedisError

from ..config import get_settings
from ..errors import CaseflowError, StoreUnavailable
from ..cases.models import Hearing, HearingStatus, utc_now

logger = logging.getLogger(__name__)

KEY_PREFIX = "caseflow:reminder:"
LEDGER_TTL_SECONDS = 2 * 24 * 3600

DAY = "day"
HOUR = "hour"


@dataclass(frozen=True)
class Reminder:
    """One reminder due for one hearing."""

    hearing_id: str
    case_id: str
    kind: str
    hearing_date: datetime
    local_time: str
    participants: list[str] = field(default_factory=list)
    location: str = ""

    @property
    def key(self) -> str:
        return f"{self.hearing_id}_{self.kind}"

    @property
    def message(self) -> str:
        when = "tomorrow" if self.kind == DAY else "in one hour"
        where = f" at {self.location}" if self.location else ""
        return f"Hearing {when}{where} ({self.local_time})"


# =========================
# Ledgers
# =========================


class ReminderLedger:
    """Remembers which reminder keys have been sent."""

    async def claim(self, key: str) -> bool:
        """Mark key as sent. Returns False when it was already marked."""
        raise NotImplementedError

    async def release(self, key: str) -> None:
        """Forget key so the reminder may be sent again."""
        raise NotImplementedError

    async def close(self) -> None:
        pass


class InMemoryReminderLedger(ReminderLedger):
    """Process-local ledger for development and tests."""

    def __init__(self, ttl_seconds: int = LEDGER_TTL_SECONDS):
        self._sent: dict[str, float] = {}
        self._ttl = ttl_seconds
        self._lock = asyncio.Lock()

    async def claim(self, key: str) -> bool:
        now = time.monotonic()
        async with self._lock:
            self._sent = {k: t for k, t in self._sent.items() if now - t < self._ttl}
            if key in self._sent:
                return False
            self._sent[key] = now
            return True

    async def release(self, key: str) -> None:
        async with self._lock:
            self._sent.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._sent


class RedisReminderLedger(ReminderLedger):
    """Ledger shared by every process through Redis ``SET NX``."""

    def __init__(self, redis_client, ttl_seconds: int = LEDGER_TTL_SECONDS):
        self._redis = redis_client
        self._ttl = ttl_seconds

    async def claim(self, key: str) -> bool:
        try:
            return bool(await self._redis.set(f"{KEY_PREFIX}{key}", "1", nx=True, ex=self._ttl))
        except RedisError as e:
            raise StoreUnavailable(f"Reminder ledger claim failed: {e}", key=key) from e

    async def release(self, key: str) -> None:
        try:
            await self._redis.delete(f"{KEY_PREFIX}{key}")
        except RedisError as e:
            raise StoreUnavailable(f"Reminder ledger release failed: {e}", key=key) from e


async def get_reminder_ledger() -> ReminderLedger:
    """Build the ledger selected by settings."""
    settings = get_settings()
    if settings.reminder_ledger_backend == "redis":
        from ..db import get_redis

        logger.info("Using Redis reminder ledger")
        return RedisReminderLedger(await get_redis())
    logger.info("Using in-memory reminder ledger")
    return InMemoryReminderLedger()


# =========================
# Scheduler
# =========================


HearingSource = Callable[[], Awaitable[Iterable[Hearing]]]
Notify = Callable[[Reminder], Awaitable[None]]


class HearingReminderScheduler:
    """Polls hearings and emits day-ahead and hour-ahead reminders."""

    def __init__(
        self,
        source: HearingSource,
        notify: Notify,
        ledger: ReminderLedger | None = None,
        clock: Callable[[], datetime] | None = None,
        interval_seconds: float | None = None,
        timezone_name: str | None = None,
    ):
        settings = get_settings()
        self._source = source
        self._notify = notify
        self._ledger = ledger or InMemoryReminderLedger()
        self._clock = clock or utc_now
        self._interval = interval_seconds or settings.reminder_check_interval_seconds
        self._tz = ZoneInfo(timezone_name or settings.court_timezone)
        self._day_window = timedelta(hours=settings.reminder_day_window_hours)
        self._hour_window = timedelta(minutes=settings.reminder_hour_window_minutes)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling in a background task. Calling it twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="hearing-reminders")
        logger.info(f"Hearing reminders started (every {self._interval}s)")

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Hearing reminder task had failed before stop")
        self._task = None
        logger.info("Hearing reminders stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.check_once()
            except CaseflowError as e:
                logger.warning(f"Reminder check failed: {e.kind}: {e.message}")
            except Exception:
                logger.exception("Reminder check failed")
            await asyncio.sleep(self._interval)

    def due(self, hearing: Hearing, now: datetime) -> str | None:
        """Which reminder, if any, is due for a hearing at ``now``."""
        if hearing.status != HearingStatus.SCHEDULED.value:
            return None
        delta = hearing.current_date - now
        if self._day_window - timedelta(hours=1) < delta <= self._day_window:
            return DAY
        if timedelta(0) < delta <= self._hour_window:
            return HOUR
        return None

    async def check_once(self) -> list[Reminder]:
        """Send every reminder due now that has not been sent yet."""
        now = self._clock()
        sent: list[Reminder] = []
        for hearing in await self._source():
            kind = self.due(hearing, now)
            if kind is None:
                continue
            reminder = Reminder(
                hearing_id=hearing.id,
                case_id=hearing.case_id,
                kind=kind,
                hearing_date=hearing.current_date,
                local_time=hearing.current_date.astimezone(self._tz).strftime("%d %b %Y %H:%M"),
                participants=list(hearing.participants),
                location=hearing.location,
            )
            if not await self._ledger.claim(reminder.key):
                continue
            try:
                await self._notify(reminder)
            except Exception:
                await self._ledger.release(reminder.key)
                raise
            sent.append(reminder)
            logger.info(f"Sent {kind} reminder for hearing {hearing.id}")
        return sent
