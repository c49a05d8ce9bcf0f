# model.py
import datetime
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from bellringer.constants import (
    BREAK_DURATION_MAX,
    BREAK_DURATION_MIN,
    DEFAULT_BREAK_DURATION,
    DEFAULT_LESSON_DURATION,
    LESSON_DURATION_MAX,
    LESSON_DURATION_MIN,
)
from bellringer.errors import CallReferenceError, ScheduleConfigurationError
from bellringer.utils.time_utils.time_utils import minutes


class DayOfWeek(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def from_date(cls, value: datetime.date) -> "DayOfWeek":
        return list(cls)[value.weekday()]


class ScheduleType(str, Enum):
    REGULAR = "REGULAR"
    SPECIAL = "SPECIAL"


class CallType(str, Enum):
    LESSON_START = "LESSON_START"
    BREAK_START = "BREAK_START"
    PRELIMINARY_CALL = "PRELIMINARY_CALL"


# Order of call types ringing at the same minute
CALL_TYPE_ORDER = {
    CallType.BREAK_START: 0,
    CallType.PRELIMINARY_CALL: 1,
    CallType.LESSON_START: 2,
}


@dataclass(frozen=True)
class Lesson:
    id: int
    order_number: int
    subject: str
    duration: Optional[int] = None  # Per-lesson override in minutes
    schedule_id: Optional[int] = None
    special_schedule_id: Optional[int] = None

    def effective_duration(self, schedule_lesson_duration: int) -> int:
        if self.duration is not None and self.duration > 0:
            return self.duration
        return schedule_lesson_duration


@dataclass(frozen=True)
class Break:
    id: int
    name: str
    start_time: datetime.time
    duration: int
    schedule_id: Optional[int] = None

    def end_time(self) -> datetime.time:
        anchor = datetime.datetime.combine(datetime.date(2000, 1, 1), self.start_time)
        return (anchor + minutes(self.duration)).time()


@dataclass(frozen=True)
class Schedule:
    id: int
    day_of_week: DayOfWeek
    schedule_type: ScheduleType = ScheduleType.REGULAR
    lesson_duration: int = DEFAULT_LESSON_DURATION
    break_duration: int = DEFAULT_BREAK_DURATION
    first_lesson_start: Optional[datetime.time] = datetime.time(8, 0)
    active: bool = True
    effective_date: Optional[datetime.date] = None
    last_updated: Optional[datetime.datetime] = None
    lessons: Tuple[Lesson, ...] = ()
    breaks: Tuple[Break, ...] = ()

    def lesson_start_time(self, lesson: Lesson) -> datetime.time:
        """Start of a lesson in the single-duration model, ignoring breaks."""
        anchor = datetime.datetime.combine(datetime.date(2000, 1, 1), self.first_lesson_start)
        return (anchor + minutes((lesson.order_number - 1) * self.lesson_duration)).time()


@dataclass(frozen=True)
class SpecialSchedule:
    id: int
    special_date: datetime.date
    schedule: Optional[Schedule]
    lessons: Tuple[Lesson, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class HolidaySchedule:
    id: int
    holiday_date: datetime.date
    description: str = ""
    working_day: bool = False


def validate_schedule(schedule: Schedule) -> List[str]:
    """Return every bound the schedule violates. Empty means usable."""
    issues = []
    if schedule.day_of_week is None:
        issues.append("Day of week must be specified")
    if schedule.first_lesson_start is None:
        issues.append("First lesson start time must be specified")
    if not LESSON_DURATION_MIN <= schedule.lesson_duration <= LESSON_DURATION_MAX:
        issues.append(
            f"Lesson duration must be between {LESSON_DURATION_MIN} and {LESSON_DURATION_MAX} minutes"
            f" (got {schedule.lesson_duration})"
        )
    if not BREAK_DURATION_MIN <= schedule.break_duration <= BREAK_DURATION_MAX:
        issues.append(
            f"Break duration must be between {BREAK_DURATION_MIN} and {BREAK_DURATION_MAX} minutes"
            f" (got {schedule.break_duration})"
        )
    for brk in schedule.breaks:
        if brk.duration <= 0:
            issues.append(f"Break {brk.id} has non-positive duration {brk.duration}")
    return issues


def check_schedule(schedule: Schedule) -> None:
    issues = validate_schedule(schedule)
    if issues:
        raise ScheduleConfigurationError("; ".join(issues))


def validate_lessons(lessons: Tuple[Lesson, ...]) -> List[str]:
    issues = []
    seen = set()
    for lesson in lessons:
        if lesson.order_number < 1:
            issues.append(f"Lesson {lesson.id} has order number {lesson.order_number} (must be > 0)")
        if lesson.order_number in seen:
            issues.append(f"Lesson order number {lesson.order_number} is used more than once")
        seen.add(lesson.order_number)
        if not lesson.subject or not lesson.subject.strip():
            issues.append(f"Lesson {lesson.id} has a blank subject")
        if lesson.duration is not None and lesson.duration < 1:
            issues.append(f"Lesson {lesson.id} has non-positive duration {lesson.duration}")
    return issues


# ======================================
# RESOLUTION OUTCOMES
# ======================================

class ResolutionSource(str, Enum):
    SPECIAL = "SPECIAL"
    DATED = "DATED"
    WEEKDAY = "WEEKDAY"


@dataclass(frozen=True)
class DataIntegrityWarning:
    target_date: datetime.date
    message: str
    schedule_id: Optional[int] = None


@dataclass(frozen=True)
class ResolvedSchedule:
    target_date: datetime.date
    source: ResolutionSource
    schedule: Schedule
    lessons: Tuple[Lesson, ...]
    breaks: Tuple[Break, ...]
    special_schedule: Optional[SpecialSchedule] = None
    holiday: Optional[HolidaySchedule] = None
    warnings: Tuple[DataIntegrityWarning, ...] = ()


@dataclass(frozen=True)
class NoSchoolDay:
    target_date: datetime.date
    holiday: HolidaySchedule


@dataclass(frozen=True)
class NotFound:
    target_date: datetime.date
    reason: str = "No schedule configured"
    warnings: Tuple[DataIntegrityWarning, ...] = ()


Resolution = Union[ResolvedSchedule, NoSchoolDay, NotFound]


# ======================================
# TIMELINE
# ======================================

@dataclass(frozen=True)
class LessonSlot:
    lesson: Lesson
    start: datetime.datetime
    end: datetime.datetime


@dataclass(frozen=True)
class BreakSlot:
    break_period: Break
    start: datetime.datetime
    end: datetime.datetime


TimelineEvent = Union[LessonSlot, BreakSlot]


@dataclass(frozen=True)
class CallEvent:
    call_time: datetime.datetime
    call_type: CallType
    schedule_id: int
    lesson_id: Optional[int] = None
    break_id: Optional[int] = None
    label: str = ""

    def __post_init__(self):
        if self.lesson_id is not None and self.break_id is not None:
            raise CallReferenceError(
                f"Call at {self.call_time} cannot reference both lesson {self.lesson_id} and break {self.break_id}"
            )
        if self.lesson_id is None and self.break_id is None:
            raise CallReferenceError(f"Call at {self.call_time} must reference a lesson or a break")

    @property
    def reference(self) -> str:
        if self.lesson_id is not None:
            return f"lesson:{self.lesson_id}"
        return f"break:{self.break_id}"

    def dedup_key(self) -> tuple:
        return (
            self.call_time.date(),
            self.call_time.time(),
            self.call_type,
            self.lesson_id,
            self.break_id,
        )


@dataclass(frozen=True)
class ProjectionWarning:
    message: str
    lesson_id: Optional[int] = None
    break_id: Optional[int] = None


@dataclass(frozen=True)
class Timeline:
    target_date: datetime.date
    resolved: ResolvedSchedule
    events: Tuple[TimelineEvent, ...] = ()
    calls: Tuple[CallEvent, ...] = ()
    warnings: Tuple[ProjectionWarning, ...] = ()

    def calls_between(self, start: datetime.datetime, end: datetime.datetime) -> List[CallEvent]:
        return [call for call in self.calls if start <= call.call_time <= end]

    def find_lesson(self, lesson_id: int) -> Optional[Lesson]:
        for lesson in self.resolved.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None

    def find_break(self, break_id: int) -> Optional[Break]:
        for brk in self.resolved.breaks:
            if brk.id == break_id:
                return brk
        return None


@dataclass(frozen=True)
class CalendarEvent:
    id: int
    title: str
    start: datetime.datetime
    end: datetime.datetime
    color: str
    all_day: bool = False

