import datetime
import json
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from bellringer.catalog.schedule_catalog import InMemoryScheduleCatalog
from bellringer.constants import (
    BREAK_DURATION_MAX,
    BREAK_DURATION_MIN,
    DEFAULT_BREAK_DURATION,
    DEFAULT_LESSON_DURATION,
    LESSON_DURATION_MAX,
    LESSON_DURATION_MIN,
)
from bellringer.models.model import (
    Break,
    DayOfWeek,
    HolidaySchedule,
    Lesson,
    Schedule,
    ScheduleType,
    SpecialSchedule,
)
from bellringer.utils.time_utils.time_utils import parse_time


def _coerce_time(value):
    # "08:00" and "8:00AM" are both accepted
    if isinstance(value, str):
        return parse_time(value.strip())
    return value


class LessonJson(BaseModel):
    """Pydantic model for lesson JSON structure"""
    id: int = Field(alias="id")
    order_number: int = Field(alias="orderNumber", ge=1)
    subject: str = Field(alias="subject")
    duration: Optional[int] = Field(default=None, alias="duration", ge=1)

    @field_validator("subject")
    @classmethod
    def subject_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Subject name cannot be empty")
        return value.strip()

    class Config:
        populate_by_name = True


class BreakJson(BaseModel):
    """Pydantic model for break JSON structure"""
    id: int = Field(alias="id")
    name: str = Field(default="Break", alias="name")
    start_time: datetime.time = Field(alias="startTime")
    duration: int = Field(alias="duration", ge=1)

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_start_time(cls, value):
        return _coerce_time(value)

    class Config:
        populate_by_name = True


class ScheduleJson(BaseModel):
    """Pydantic model for weekly or dated schedule JSON structure"""
    id: int = Field(alias="id")
    day_of_week: DayOfWeek = Field(alias="dayOfWeek")
    schedule_type: ScheduleType = Field(default=ScheduleType.REGULAR, alias="scheduleType")
    lesson_duration: int = Field(
        default=DEFAULT_LESSON_DURATION, alias="lessonDuration", ge=LESSON_DURATION_MIN, le=LESSON_DURATION_MAX
    )
    break_duration: int = Field(
        default=DEFAULT_BREAK_DURATION, alias="breakDuration", ge=BREAK_DURATION_MIN, le=BREAK_DURATION_MAX
    )
    first_lesson_start: datetime.time = Field(default=datetime.time(8, 0), alias="firstLessonStart")
    active: bool = Field(default=True, alias="active")
    effective_date: Optional[datetime.date] = Field(default=None, alias="effectiveDate")
    last_updated: Optional[datetime.datetime] = Field(default=None, alias="lastUpdated")
    lessons: List[LessonJson] = Field(default_factory=list)
    breaks: List[BreakJson] = Field(default_factory=list)

    @field_validator("first_lesson_start", mode="before")
    @classmethod
    def parse_first_lesson_start(cls, value):
        return _coerce_time(value)

    @model_validator(mode="after")
    def order_numbers_unique(self) -> "ScheduleJson":
        numbers = [lesson.order_number for lesson in self.lessons]
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"Schedule {self.id} repeats lesson order numbers: {sorted(numbers)}")
        return self

    class Config:
        populate_by_name = True


class SpecialScheduleJson(BaseModel):
    """Pydantic model for date-specific override JSON structure"""
    id: int = Field(alias="id")
    special_date: datetime.date = Field(alias="specialDate")
    schedule_id: int = Field(alias="scheduleId")
    description: str = Field(default="", alias="description")
    lessons: List[LessonJson] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class HolidayJson(BaseModel):
    """Pydantic model for holiday JSON structure"""
    id: int = Field(alias="id")
    holiday_date: datetime.date = Field(alias="holidayDate")
    description: str = Field(default="", alias="description")
    working_day: bool = Field(default=False, alias="workingDay")

    class Config:
        populate_by_name = True


class TimetableJson(BaseModel):
    """Pydantic model for a complete timetable document"""
    schedules: List[ScheduleJson] = Field(default_factory=list)
    special_schedules: List[SpecialScheduleJson] = Field(default_factory=list, alias="specialSchedules")
    holidays: List[HolidayJson] = Field(default_factory=list)

    @model_validator(mode="after")
    def references_are_consistent(self) -> "TimetableJson":
        schedule_ids = [schedule.id for schedule in self.schedules]
        if len(schedule_ids) != len(set(schedule_ids)):
            raise ValueError("Schedule ids must be unique")

        lesson_ids = [lesson.id for schedule in self.schedules for lesson in schedule.lessons]
        lesson_ids += [lesson.id for special in self.special_schedules for lesson in special.lessons]
        if len(lesson_ids) != len(set(lesson_ids)):
            raise ValueError("Lesson ids must be unique across the timetable")

        break_ids = [brk.id for schedule in self.schedules for brk in schedule.breaks]
        if len(break_ids) != len(set(break_ids)):
            raise ValueError("Break ids must be unique across the timetable")

        special_dates = [special.special_date for special in self.special_schedules]
        if len(special_dates) != len(set(special_dates)):
            raise ValueError("Only one special schedule is allowed per date")

        holiday_dates = [holiday.holiday_date for holiday in self.holidays]
        if len(holiday_dates) != len(set(holiday_dates)):
            raise ValueError("Only one holiday is allowed per date")

        for special in self.special_schedules:
            if special.schedule_id not in schedule_ids:
                raise ValueError(
                    f"Special schedule {special.id} references unknown schedule {special.schedule_id}"
                )
        return self

    class Config:
        populate_by_name = True


def parse_timetable_json(raw_data: dict) -> TimetableJson:
    """
    Parse raw JSON data into TimetableJson using Pydantic validation.

    Args:
        raw_data: Raw JSON dictionary

    Returns:
        TimetableJson: Validated timetable
    """
    return TimetableJson.model_validate(raw_data)


def _lesson(lesson: LessonJson, schedule_id: Optional[int] = None, special_id: Optional[int] = None) -> Lesson:
    return Lesson(
        id=lesson.id,
        order_number=lesson.order_number,
        subject=lesson.subject,
        duration=lesson.duration,
        schedule_id=schedule_id,
        special_schedule_id=special_id,
    )


def _schedule(schedule: ScheduleJson) -> Schedule:
    return Schedule(
        id=schedule.id,
        day_of_week=schedule.day_of_week,
        schedule_type=schedule.schedule_type,
        lesson_duration=schedule.lesson_duration,
        break_duration=schedule.break_duration,
        first_lesson_start=schedule.first_lesson_start,
        active=schedule.active,
        effective_date=schedule.effective_date,
        last_updated=schedule.last_updated,
        lessons=tuple(_lesson(lesson, schedule_id=schedule.id) for lesson in schedule.lessons),
        breaks=tuple(
            Break(id=brk.id, name=brk.name, start_time=brk.start_time, duration=brk.duration, schedule_id=schedule.id)
            for brk in schedule.breaks
        ),
    )


def timetable_to_catalog(timetable: TimetableJson) -> InMemoryScheduleCatalog:
    schedules = {schedule.id: _schedule(schedule) for schedule in timetable.schedules}
    specials = [
        SpecialSchedule(
            id=special.id,
            special_date=special.special_date,
            schedule=schedules[special.schedule_id],
            lessons=tuple(_lesson(lesson, special_id=special.id) for lesson in special.lessons),
            description=special.description,
        )
        for special in timetable.special_schedules
    ]
    holidays = [
        HolidaySchedule(
            id=holiday.id,
            holiday_date=holiday.holiday_date,
            description=holiday.description,
            working_day=holiday.working_day,
        )
        for holiday in timetable.holidays
    ]
    return InMemoryScheduleCatalog(schedules=schedules.values(), special_schedules=specials, holidays=holidays)


def load_timetable_file(path: Union[str, Path]) -> InMemoryScheduleCatalog:
    with open(path, encoding="utf-8") as handle:
        raw_data = json.load(handle)
    return timetable_to_catalog(parse_timetable_json(raw_data))
