# teachtune/services/upcoming_monitor.py
from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from teachtune.core.clock import Clock
from teachtune.schemas.alert import AlertSeverity, LessonAlert
from teachtune.schemas.lesson import Attendance
from teachtune.services.alert_channels import AlertDispatcher
from teachtune.services.lesson_repository import WatchedLesson, load_watch_window

logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD_MINUTES = 15


class NotifiedSet:
    """
    Ids of lessons that already produced an alert.

    Owned by one monitor for its whole lifetime; it is not persisted, so a
    process restart starts from an empty set.
    """

    def __init__(self, lesson_ids: Iterable[str] = ()) -> None:
        self._ids = set(lesson_ids)

    def __contains__(self, lesson_id: object) -> bool:
        return lesson_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, lesson_id: str) -> None:
        self._ids.add(lesson_id)

    def clear(self) -> None:
        self._ids.clear()


def format_alert_message(student_name: str, minutes: int) -> str:
    unit = "minute" if minutes == 1 else "minutes"
    return f"Your lesson with {student_name} starts in {minutes} {unit}!"


class UpcomingLessonMonitor:
    """
    Watches one teacher's lessons and raises an alert when a pending lesson
    is about to start.

    Rules
    -----
    - Only lessons whose attendance is PENDING are considered.
    - A lesson alerts when 0 < minutes until start <= lookahead_minutes.
    - Each lesson id alerts at most once for the monitor's lifetime, even
      if later scans observe it inside the window again.
    - Past-due lessons never alert.

    The monitor only reads its in-memory snapshot. Loading that snapshot is
    somebody else's job (see MonitorService), so a scan never touches the
    database.
    """

    def __init__(
        self,
        teacher_id: str,
        dispatcher: AlertDispatcher,
        clock: Clock,
        notified: Optional[NotifiedSet] = None,
        lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
    ) -> None:
        self.teacher_id = teacher_id
        self.dispatcher = dispatcher
        self.clock = clock
        self.notified = notified if notified is not None else NotifiedSet()
        self.lookahead_minutes = lookahead_minutes
        self._snapshot: List[WatchedLesson] = []
        # Background loop and /internal/scan-upcoming may scan concurrently
        self._scan_lock = asyncio.Lock()

    @property
    def snapshot(self) -> List[WatchedLesson]:
        return list(self._snapshot)

    def refresh(self, lessons: Iterable[WatchedLesson]) -> None:
        """Replace the snapshot with a freshly loaded set of lessons."""
        self._snapshot = list(lessons)

    async def scan(self, now: Optional[datetime] = None) -> List[LessonAlert]:
        """
        Check the snapshot once and emit alerts for lessons entering the window.

        A lesson is marked notified only when the dispatcher reports that the
        primary in-app channel accepted the alert; otherwise the next scan
        tries again. Scans are serialized, so a lesson can never be seen as
        un-notified by two scans at once.
        """
        async with self._scan_lock:
            return await self._scan(now)

    async def _scan(self, now: Optional[datetime]) -> List[LessonAlert]:
        if now is None:
            now = self.clock.now()

        raised: List[LessonAlert] = []

        for lesson in self._snapshot:
            if lesson.attendance != Attendance.PENDING:
                continue
            if lesson.lesson_id in self.notified:
                continue

            minutes_until = (lesson.scheduled_at - now).total_seconds() / 60.0
            if not (0 < minutes_until <= self.lookahead_minutes):
                continue

            minutes = math.ceil(minutes_until)
            alert = LessonAlert(
                message=format_alert_message(lesson.student_name, minutes),
                severity=AlertSeverity.WARNING,
                dedupe_key=lesson.lesson_id,
                teacher_id=self.teacher_id,
                lesson_id=lesson.lesson_id,
                student_name=lesson.student_name,
                scheduled_at=lesson.scheduled_at,
                minutes_until=minutes,
                raised_at=now,
            )

            if not await self.dispatcher.emit(alert):
                continue

            self.notified.add(lesson.lesson_id)
            raised.append(alert)
            logger.info(
                "Alerted teacher %s: lesson %s starts in %d min",
                self.teacher_id,
                lesson.lesson_id,
                minutes,
            )

        return raised


class MonitorService:
    """
    Runs one UpcomingLessonMonitor per teacher in the background.

    Two independent periodic tasks:
    - refresh: loads pending lessons starting within the lookahead window
      (plus one refresh interval of margin) and hands each teacher's share
      to that teacher's monitor;
    - scan: asks every monitor to scan its snapshot.

    Both run once immediately on `start()`. `stop()` cancels the tasks and
    waits for them, so nothing outlives the application.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: AlertDispatcher,
        clock: Clock,
        lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
        scan_interval_seconds: float = 30.0,
        refresh_interval_seconds: float = 60.0,
    ) -> None:
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.clock = clock
        self.lookahead_minutes = lookahead_minutes
        self.scan_interval_seconds = scan_interval_seconds
        self.refresh_interval_seconds = refresh_interval_seconds

        self._monitors: Dict[str, UpcomingLessonMonitor] = {}
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def monitor_for(self, teacher_id: str) -> UpcomingLessonMonitor:
        monitor = self._monitors.get(teacher_id)
        if monitor is None:
            monitor = UpcomingLessonMonitor(
                teacher_id=teacher_id,
                dispatcher=self.dispatcher,
                clock=self.clock,
                lookahead_minutes=self.lookahead_minutes,
            )
            self._monitors[teacher_id] = monitor
        return monitor

    async def refresh(self, now: Optional[datetime] = None) -> int:
        """
        Reload every teacher's snapshot. Returns the number of lessons loaded.
        """
        if now is None:
            now = self.clock.now()
        window_end = now + timedelta(
            minutes=self.lookahead_minutes,
            seconds=self.refresh_interval_seconds,
        )

        async with self.session_factory() as session:
            lessons = await load_watch_window(session, now, window_end)

        by_teacher: Dict[str, List[WatchedLesson]] = defaultdict(list)
        for lesson in lessons:
            by_teacher[lesson.teacher_id].append(lesson)

        for teacher_id in by_teacher:
            self.monitor_for(teacher_id)

        for teacher_id, monitor in self._monitors.items():
            monitor.refresh(by_teacher.get(teacher_id, []))

        return len(lessons)

    async def scan(self, now: Optional[datetime] = None) -> List[LessonAlert]:
        alerts: List[LessonAlert] = []
        for monitor in list(self._monitors.values()):
            alerts.extend(await monitor.scan(now))
        return alerts

    async def run_once(self, now: Optional[datetime] = None) -> tuple[int, List[LessonAlert]]:
        """Refresh all snapshots, then scan them once."""
        loaded = await self.refresh(now)
        alerts = await self.scan(now)
        return loaded, alerts

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval_seconds)
            try:
                await self.refresh()
            except Exception:
                logger.exception("Refreshing the upcoming-lesson snapshot failed")

    async def _scan_loop(self) -> None:
        while True:
            await asyncio.sleep(self.scan_interval_seconds)
            try:
                await self.scan()
            except Exception:
                logger.exception("Upcoming-lesson scan failed")

    async def start(self) -> None:
        if self.running:
            return

        try:
            await self.run_once()
        except Exception:
            logger.exception("Initial upcoming-lesson scan failed")

        self._tasks = [
            asyncio.create_task(self._refresh_loop(), name="teachtune-monitor-refresh"),
            asyncio.create_task(self._scan_loop(), name="teachtune-monitor-scan"),
        ]
        logger.info(
            "Upcoming-lesson monitor started (scan every %ss, refresh every %ss)",
            self.scan_interval_seconds,
            self.refresh_interval_seconds,
        )

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.dispatcher.drain()
        if tasks:
            logger.info("Upcoming-lesson monitor stopped")
