import datetime
import logging
import threading
from typing import Callable, List, Optional, Set

from bellringer.constants import SCHOOL_TZ, TOLERANCE_SECONDS
from bellringer.models.model import CallEvent, NoSchoolDay, NotFound, Timeline
from bellringer.projector.timeline_service import TimelineService
from bellringer.utils.logging_config import get_bell_logger, log_call_fired
from bellringer.utils.time_utils.time_utils import (
    diff_time_in_sec,
    format_time,
    now_in_school_tz,
    truncate_to_minute,
)

CallSink = Callable[[CallEvent], None]


class FiredCallRegistry:
    """
    Remembers which calls already rang.

    Keys are (date, call_time, call_type, lesson_id, break_id); the same
    time of day recurs every day, so entries of past dates are purged.
    """

    def __init__(self):
        self._fired: Set[tuple] = set()
        self._lock = threading.Lock()

    def mark_if_new(self, call: CallEvent) -> bool:
        key = call.dedup_key()
        with self._lock:
            if key in self._fired:
                return False
            self._fired.add(key)
            return True

    def unmark(self, call: CallEvent) -> None:
        with self._lock:
            self._fired.discard(call.dedup_key())

    def has_fired(self, call: CallEvent) -> bool:
        with self._lock:
            return call.dedup_key() in self._fired

    def purge_before(self, day: datetime.date) -> int:
        with self._lock:
            stale = {key for key in self._fired if key[0] < day}
            self._fired -= stale
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._fired)


class BellTriggerLoop:
    """
    One tick of the bell loop: find today's calls due around "now" and ring each once.

    A call is due when its time lies within [now - tolerance, now + tolerance],
    or when it falls on the same wall-clock minute as now (seconds dropped).
    Nothing raised while resolving, projecting or notifying escapes tick().
    """

    def __init__(
        self,
        timeline_service: TimelineService,
        on_call_fired: CallSink,
        tolerance_seconds: int = TOLERANCE_SECONDS,
        clock: Callable[[], datetime.datetime] = now_in_school_tz,
        registry: Optional[FiredCallRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if tolerance_seconds < 0:
            raise ValueError("Tolerance cannot be negative")
        self._timeline_service = timeline_service
        self._on_call_fired = on_call_fired
        self._tolerance = datetime.timedelta(seconds=tolerance_seconds)
        self._clock = clock
        self._registry = registry or FiredCallRegistry()
        self._logger = logger or get_bell_logger()
        self._tick_lock = threading.Lock()

    @property
    def registry(self) -> FiredCallRegistry:
        return self._registry

    def tick(self, now: Optional[datetime.datetime] = None) -> List[CallEvent]:
        if not self._tick_lock.acquire(blocking=False):
            self._logger.warning("Previous bell tick still running, skipping this one")
            return []
        try:
            return self._run_tick(now or self._clock())
        except Exception as e:
            self._logger.exception(f"Bell tick failed: {e}")
            return []
        finally:
            self._tick_lock.release()

    def daily_reset(self, today: Optional[datetime.date] = None) -> None:
        today = today or self._clock().date()
        purged = self._registry.purge_before(today)
        self._logger.info(f"Daily reset for {today}: purged {purged} fired call entries")

    def _run_tick(self, now: datetime.datetime) -> List[CallEvent]:
        if now.tzinfo is None:
            now = now.replace(tzinfo=SCHOOL_TZ)
        minute = truncate_to_minute(now)
        self._logger.debug(f"Checking for bell calls at time: {minute.time()}")
        self._registry.purge_before(minute.date())

        outcome = self._timeline_service.resolve_and_project(minute.date())
        if isinstance(outcome, NoSchoolDay):
            self._logger.debug(f"No school on {minute.date()}: {outcome.holiday.description}")
            return []
        if isinstance(outcome, NotFound):
            self._logger.debug(f"No timeline for {minute.date()}: {outcome.reason}")
            return []

        fired = []
        for call in self._due_calls(outcome, now, minute):
            try:
                if self._ring(outcome, call):
                    fired.append(call)
            except Exception as e:
                self._logger.exception(f"Failed to process call {call.call_type.value} at {call.call_time}: {e}")
        return fired

    def _due_calls(self, timeline: Timeline, now: datetime.datetime, minute: datetime.datetime) -> List[CallEvent]:
        tolerance = self._tolerance.total_seconds()
        return [
            call for call in timeline.calls
            if abs(diff_time_in_sec(call.call_time, now)) <= tolerance
            or truncate_to_minute(call.call_time) == minute
        ]

    def _ring(self, timeline: Timeline, call: CallEvent) -> bool:
        if not self._reference_exists(timeline, call):
            log_call_fired(
                self._logger,
                call.call_type.value,
                format_time(call.call_time.time()),
                call.reference,
                success=False,
                details="Referenced lesson/break is missing, skipping",
            )
            return False

        if not self._registry.mark_if_new(call):
            self._logger.debug(f"Call {call.reference} at {call.call_time} already fired")
            return False

        try:
            self._on_call_fired(call)
        except Exception:
            self._registry.unmark(call)
            raise

        log_call_fired(
            self._logger,
            call.call_type.value,
            format_time(call.call_time.time()),
            call.reference,
            details=call.label,
        )
        return True

    @staticmethod
    def _reference_exists(timeline: Timeline, call: CallEvent) -> bool:
        if call.lesson_id is not None:
            return timeline.find_lesson(call.lesson_id) is not None
        return timeline.find_break(call.break_id) is not None
