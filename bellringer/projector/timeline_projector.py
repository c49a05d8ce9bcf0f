import datetime
import logging
from collections import deque
from typing import List, Optional
from zoneinfo import ZoneInfo

from bellringer.constants import PRELIMINARY_CALL_LEAD_MINUTES, SCHOOL_TZ
from bellringer.models.model import (
    CALL_TYPE_ORDER,
    Break,
    BreakSlot,
    CallEvent,
    CallType,
    LessonSlot,
    ProjectionWarning,
    ResolvedSchedule,
    Timeline,
    TimelineEvent,
)
from bellringer.utils.logging_config import get_projector_logger
from bellringer.utils.time_utils.time_utils import end_of_interval, minutes, normalize_time_to_datetime


def call_sort_key(call: CallEvent) -> tuple:
    return (
        call.call_time,
        CALL_TYPE_ORDER[call.call_type],
        call.lesson_id if call.lesson_id is not None else -1,
        call.break_id if call.break_id is not None else -1,
    )


class TimelineProjector:
    """
    Turns a resolved schedule into absolute lesson/break slots and bell calls.

    Lesson i starts at first_lesson_start plus the durations of every lesson
    and break placed before it. A break goes in front of the first lesson it
    would otherwise overlap, and that lesson waits until the break is over.
    Breaks keep their explicit start time; one that does not begin where the
    previous lesson ended is reported as a warning on the timeline.

    The projection is a pure function of its input, so projecting the same
    resolved schedule twice yields identical call lists.
    """

    def __init__(
        self,
        preliminary_lead_minutes: int = PRELIMINARY_CALL_LEAD_MINUTES,
        tz: ZoneInfo = SCHOOL_TZ,
        logger: Optional[logging.Logger] = None,
    ):
        if preliminary_lead_minutes < 0:
            raise ValueError("Preliminary call lead time cannot be negative")
        self._lead = preliminary_lead_minutes
        self._tz = tz
        self._logger = logger or get_projector_logger()

    def project(self, resolved: ResolvedSchedule) -> Timeline:
        schedule = resolved.schedule
        target_date = resolved.target_date
        warnings: List[ProjectionWarning] = []

        lessons = sorted(resolved.lessons, key=lambda lesson: (lesson.order_number, lesson.id))
        breaks = sorted(resolved.breaks, key=lambda brk: (brk.start_time, brk.id))

        order_numbers = [lesson.order_number for lesson in lessons]
        if order_numbers != list(range(1, len(lessons) + 1)):
            warnings.append(ProjectionWarning(
                message=f"Lesson order numbers are not contiguous from 1: {order_numbers}"
            ))

        first_start = normalize_time_to_datetime(schedule.first_lesson_start, self._tz, target_date)
        events: List[TimelineEvent] = []
        pending = deque(breaks)

        while pending and lessons and pending[0].start_time < schedule.first_lesson_start:
            brk = pending.popleft()
            slot = self._break_slot(brk, target_date)
            events.append(slot)
            warnings.append(ProjectionWarning(
                message=f"Break '{brk.name}' at {brk.start_time} starts before the first lesson",
                break_id=brk.id,
            ))

        cursor = first_start
        for index, lesson in enumerate(lessons):
            duration = lesson.effective_duration(schedule.lesson_duration)
            if index > 0:
                while pending and self._break_start(pending[0], target_date) < end_of_interval(cursor, duration):
                    cursor = self._place_break(pending.popleft(), target_date, cursor, events, warnings)

            start = cursor
            end = end_of_interval(start, duration)
            events.append(LessonSlot(lesson=lesson, start=start, end=end))
            cursor = end

        while pending:
            cursor = self._place_break(pending.popleft(), target_date, cursor, events, warnings)

        calls = self._derive_calls(events, schedule.id, target_date, warnings)

        for warning in warnings:
            self._logger.warning(
                f"PROJECTION | Date: {target_date.isoformat()} | Schedule: {schedule.id} | {warning.message}"
            )

        return Timeline(
            target_date=target_date,
            resolved=resolved,
            events=tuple(events),
            calls=tuple(calls),
            warnings=tuple(warnings),
        )

    def _break_start(self, brk: Break, target_date: datetime.date) -> datetime.datetime:
        return normalize_time_to_datetime(brk.start_time, self._tz, target_date)

    def _break_slot(self, brk: Break, target_date: datetime.date) -> BreakSlot:
        start = self._break_start(brk, target_date)
        return BreakSlot(break_period=brk, start=start, end=end_of_interval(start, brk.duration))

    def _place_break(
        self,
        brk: Break,
        target_date: datetime.date,
        cursor: datetime.datetime,
        events: List[TimelineEvent],
        warnings: List[ProjectionWarning],
    ) -> datetime.datetime:
        slot = self._break_slot(brk, target_date)
        if slot.start != cursor:
            warnings.append(ProjectionWarning(
                message=(
                    f"Break '{brk.name}' starts at {slot.start.time()} but the preceding lesson "
                    f"ends at {cursor.time()}"
                ),
                break_id=brk.id,
            ))
        events.append(slot)
        return max(cursor, slot.start) + minutes(brk.duration)

    def _derive_calls(
        self,
        events: List[TimelineEvent],
        schedule_id: int,
        target_date: datetime.date,
        warnings: List[ProjectionWarning],
    ) -> List[CallEvent]:
        calls = []
        for event in events:
            if isinstance(event, LessonSlot):
                lesson = event.lesson
                if self._lead > 0:
                    preliminary_time = event.start - minutes(self._lead)
                    if preliminary_time.date() == target_date:
                        calls.append(CallEvent(
                            call_time=preliminary_time,
                            call_type=CallType.PRELIMINARY_CALL,
                            schedule_id=schedule_id,
                            lesson_id=lesson.id,
                            label=lesson.subject,
                        ))
                    else:
                        warnings.append(ProjectionWarning(
                            message=f"Preliminary call for lesson {lesson.order_number} falls on the previous day",
                            lesson_id=lesson.id,
                        ))
                calls.append(CallEvent(
                    call_time=event.start,
                    call_type=CallType.LESSON_START,
                    schedule_id=schedule_id,
                    lesson_id=lesson.id,
                    label=lesson.subject,
                ))
            else:
                calls.append(CallEvent(
                    call_time=event.start,
                    call_type=CallType.BREAK_START,
                    schedule_id=schedule_id,
                    break_id=event.break_period.id,
                    label=event.break_period.name,
                ))
        return sorted(calls, key=call_sort_key)
