"""Cron scheduler — fires registered triggers on their cron schedule.

Each trigger gets a daemon thread that sleeps until the next cron tick (in the
trigger's timezone) and hands the firing to a shared worker pool. A trigger
waits for its own firing before computing the next tick, so one job never
overlaps itself while different jobs fire independently. Ticks missed during
a long firing are skipped.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from croniter import CroniterBadDateError, croniter  # type: ignore[import-untyped]

from cronprobe.errors import SchedulerError

logger = logging.getLogger(__name__)


@dataclass
class CronTrigger:
    """A recurring trigger bound to a callable."""

    trigger_id: str
    expression: str  # seconds-first, as produced by jobs.models.normalize_cron
    tz: ZoneInfo
    func: Callable[..., Any]
    args: tuple[Any, ...] = ()
    fire_count: int = 0
    next_run: datetime | None = None
    _thread: threading.Thread | None = field(default=None, repr=False)

    def next_fire_time(self, after: datetime | None = None) -> datetime:
        """First tick strictly after ``after`` (default: now), in the trigger's zone."""
        base = (after or datetime.now(self.tz)).astimezone(self.tz)
        return croniter(self.expression, base, second_at_beginning=True).get_next(datetime)


class CronScheduler:
    """Runs cron triggers on daemon threads backed by a worker pool."""

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="cronprobe-fire",
        )
        self._triggers: dict[str, CronTrigger] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._running = False
        self._shut_down = False

    # ── Registration ──────────────────────────────────────────────────────

    def add_trigger(
        self,
        trigger_id: str,
        expression: str,
        tz: ZoneInfo,
        func: Callable[..., Any],
        args: tuple[Any, ...] = (),
    ) -> CronTrigger:
        """Register a trigger; starts firing immediately if the scheduler runs.

        Raises:
            SchedulerError: If trigger_id is already registered or the
                expression has no future fire time.
        """
        trigger = CronTrigger(trigger_id, expression, tz, func, args)
        try:
            trigger.next_run = trigger.next_fire_time()
        except CroniterBadDateError as e:
            raise SchedulerError(f"Trigger '{trigger_id}' never fires: {e}") from e
        with self._lock:
            if trigger_id in self._triggers:
                raise SchedulerError(f"Trigger with id '{trigger_id}' already registered")
            self._triggers[trigger_id] = trigger
            if self._running:
                self._start_trigger(trigger)
        logger.info(
            "Registered trigger '%s' (%s %s), next run %s",
            trigger_id, expression, tz.key, trigger.next_run.isoformat(),
        )
        return trigger

    def exists(self, trigger_id: str) -> bool:
        return trigger_id in self._triggers

    def count(self) -> int:
        return len(self._triggers)

    def get(self, trigger_id: str) -> CronTrigger | None:
        return self._triggers.get(trigger_id)

    def trigger_ids(self) -> list[str]:
        with self._lock:
            return list(self._triggers)

    def is_running(self) -> bool:
        return self._running

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start firing every registered trigger."""
        with self._lock:
            if self._shut_down:
                raise SchedulerError("Scheduler has been shut down")
            if self._running:
                logger.warning("Scheduler is already running")
                return
            self._running = True
            self._stop.clear()
            for trigger in self._triggers.values():
                self._start_trigger(trigger)
        logger.info("Scheduler started with %d triggers", len(self._triggers))

    def shutdown(self, wait: bool = True) -> None:
        """Stop all triggers. In-flight firings finish when ``wait`` is set."""
        with self._lock:
            if self._shut_down:
                return
            self._shut_down = True
            self._running = False
            self._stop.set()
            threads = [t._thread for t in self._triggers.values() if t._thread]
        if wait:
            for thread in threads:
                thread.join()
        self._executor.shutdown(wait=wait)
        logger.info("Scheduler stopped")

    # ── Internals ─────────────────────────────────────────────────────────

    def _start_trigger(self, trigger: CronTrigger) -> None:
        trigger._thread = threading.Thread(
            target=self._run_trigger,
            args=(trigger,),
            name=f"cronprobe-trigger-{trigger.trigger_id}",
            daemon=True,
        )
        trigger._thread.start()

    def _run_trigger(self, trigger: CronTrigger) -> None:
        """Sleep until each tick, fire, wait for the firing, repeat."""
        while not self._stop.is_set():
            try:
                next_run = trigger.next_fire_time()
            except CroniterBadDateError:
                logger.info("Trigger '%s' has no further fire times", trigger.trigger_id)
                return
            trigger.next_run = next_run

            # Event.wait can return a little early; never fire before the tick
            while True:
                remaining = (next_run - datetime.now(trigger.tz)).total_seconds()
                if remaining <= 0:
                    break
                if self._stop.wait(remaining):
                    return

            try:
                future = self._executor.submit(trigger.func, *trigger.args)
            except RuntimeError:
                return  # pool shut down

            try:
                future.result()
            except Exception:
                logger.exception("Trigger '%s' firing failed", trigger.trigger_id)
            trigger.fire_count += 1
            logger.debug("Trigger '%s' fired (count: %d)", trigger.trigger_id, trigger.fire_count)
