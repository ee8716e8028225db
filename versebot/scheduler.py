"""Per-minute, timezone-aware delivery dispatcher."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from .models import Subscriber
from .notifier import BaseTransport
from .selector import DeliverySelector
from .storage import SubscriberDirectory

logger = logging.getLogger(__name__)

TICK_SECONDS = 60
# Wake slightly after the boundary so an early wakeup never lands in the previous minute
TICK_OFFSET_SECONDS = 0.5

OVERLAP_ALLOW = "allow"
OVERLAP_SKIP = "skip"


def format_hhmm(hour, minute) -> str:
    """HH:MM with zero padding; some platforms report midnight as hour 24."""
    h = str(hour).zfill(2)
    if h == "24":
        h = "00"
    return f"{h}:{str(minute).zfill(2)}"


def current_hhmm(timezone_name: str, now: Optional[datetime] = None) -> str:
    """Current local time in the given IANA timezone as HH:MM."""
    local = _localize(now, ZoneInfo(timezone_name))
    return format_hhmm(local.hour, local.minute)


def _localize(now: Optional[datetime], tz: ZoneInfo) -> datetime:
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


@dataclass
class TickResult:
    """Outcome of one scheduler tick."""

    hhmm: str
    matched: List[str] = field(default_factory=list)
    delivered: List[str] = field(default_factory=list)
    empty: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class Scheduler:
    """
    Matches subscribers to delivery slots once per minute.

    Each tick selects passages for every subscriber whose slot equals the
    current local HH:MM and hands them to the transport. A failure for one
    subscriber is logged and never stops the others.
    """

    def __init__(
        self,
        directory: SubscriberDirectory,
        selector: DeliverySelector,
        transport: BaseTransport,
        timezone: str = "America/Los_Angeles",
        count: int = 2,
        max_workers: int = 4,
        overlap: str = OVERLAP_ALLOW,
    ):
        if overlap not in (OVERLAP_ALLOW, OVERLAP_SKIP):
            raise ValueError(f"Unknown overlap policy: {overlap}")

        self.directory = directory
        self.selector = selector
        self.transport = transport
        self.timezone = timezone
        self.tz = ZoneInfo(timezone)
        self.count = count
        self.max_workers = max(1, int(max_workers))
        self.overlap = overlap

        self._running_ticks = 0
        self._running_lock = threading.Lock()

    def _deliver(self, subscriber: Subscriber, local_now: datetime) -> Optional[bool]:
        """Select and send for one subscriber. None when there was nothing to send."""
        passages = self.selector.select(subscriber, count=self.count, today=local_now.date())
        if not passages:
            return None
        self.transport.send_passages(subscriber.user_id, passages)
        return True

    def tick(self, now: Optional[datetime] = None) -> TickResult:
        """Run one dispatch for the minute containing ``now`` (default: current time)."""
        local_now = _localize(now, self.tz)
        hhmm = format_hhmm(local_now.hour, local_now.minute)
        result = TickResult(hhmm=hhmm)

        try:
            subscribers = self.directory.by_slot(hhmm)
        except Exception as e:
            logger.error(f"[scheduler] Could not read subscribers for {hhmm}: {e}", exc_info=True)
            return result

        result.matched = [s.user_id for s in subscribers]
        if not subscribers:
            return result

        workers = min(self.max_workers, len(subscribers))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(self._deliver, subscriber, local_now): subscriber.user_id
                for subscriber in subscribers
            }
            for future in as_completed(futures):
                user_id = futures[future]
                try:
                    sent = future.result()
                except Exception as e:
                    logger.error(f"[scheduler] Failed to send to {user_id}: {e}")
                    result.failed.append(user_id)
                    continue
                if sent:
                    result.delivered.append(user_id)
                else:
                    result.empty.append(user_id)

        logger.info(
            f"[scheduler] Tick {hhmm}: matched={len(result.matched)} "
            f"delivered={len(result.delivered)} empty={len(result.empty)} "
            f"failed={len(result.failed)}"
        )
        return result

    def _run_tick(self) -> None:
        try:
            self.tick()
        except Exception as e:
            logger.error(f"[scheduler] Tick crashed: {e}", exc_info=True)
        finally:
            with self._running_lock:
                self._running_ticks -= 1

    def _fire(self) -> Optional[threading.Thread]:
        with self._running_lock:
            if self.overlap == OVERLAP_SKIP and self._running_ticks:
                logger.warning("[scheduler] Previous tick still running, skipping this minute")
                return None
            self._running_ticks += 1

        thread = threading.Thread(target=self._run_tick, name="scheduler-tick", daemon=True)
        thread.start()
        return thread

    @staticmethod
    def seconds_until_next_minute(now: Optional[float] = None) -> float:
        now = time.time() if now is None else now
        return TICK_SECONDS - (now % TICK_SECONDS)

    def run_forever(self, stop_event: Optional[threading.Event] = None) -> None:
        """
        Fire a tick at every wall-clock minute boundary until stopped.

        Ticks run on their own threads, so a slow tick never delays the next
        boundary. The delay is recomputed from the clock each time.
        """
        stop_event = stop_event or threading.Event()
        logger.info(f"[scheduler] Started (timezone: {self.timezone}, overlap: {self.overlap})")

        while not stop_event.wait(self.seconds_until_next_minute() + TICK_OFFSET_SECONDS):
            self._fire()

        logger.info("[scheduler] Stopped")
