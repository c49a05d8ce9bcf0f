from typing import List, Optional
import datetime
import sqlalchemy as sa
from sqlalchemy import ForeignKey
from sqlalchemy.orm import relationship, Mapped, mapped_column, validates

from bellringer.constants import (
    BREAK_DURATION_MAX,
    BREAK_DURATION_MIN,
    DEFAULT_BREAK_DURATION,
    DEFAULT_LESSON_DURATION,
    LESSON_DURATION_MAX,
    LESSON_DURATION_MIN,
)
from bellringer.errors import ScheduleConfigurationError
from bellringer.models.model import Break, DayOfWeek, Lesson, Schedule, ScheduleType
from bellringer.sql_orm.connection.base import Base
from bellringer.sql_orm.connection.sqlalchemy_pg import get_session


class ScheduleOrm(Base):
    __tablename__ = 'schedules'

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    day_of_week: Mapped[DayOfWeek] = mapped_column(sa.Enum(DayOfWeek, native_enum=False, length=10))
    schedule_type: Mapped[ScheduleType] = mapped_column(
        sa.Enum(ScheduleType, native_enum=False, length=10), default=ScheduleType.REGULAR
    )
    lesson_duration: Mapped[int] = mapped_column(sa.Integer, default=DEFAULT_LESSON_DURATION)
    break_duration: Mapped[int] = mapped_column(sa.Integer, default=DEFAULT_BREAK_DURATION)
    first_lesson_start: Mapped[datetime.time] = mapped_column(sa.Time, default=datetime.time(8, 0))
    active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    effective_date: Mapped[Optional[datetime.date]] = mapped_column(sa.Date, nullable=True, index=True)
    last_updated: Mapped[Optional[datetime.datetime]] = mapped_column(
        sa.DateTime, default=datetime.datetime.now, onupdate=datetime.datetime.now
    )
    updated_by: Mapped[Optional[str]] = mapped_column(sa.String(100), nullable=True)

    # Schedule exclusively owns its lessons and breaks
    lessons: Mapped[List["LessonOrm"]] = relationship(
        back_populates="schedule", cascade="all, delete-orphan", order_by="LessonOrm.order_number"
    )
    breaks: Mapped[List["BreakOrm"]] = relationship(
        back_populates="schedule", cascade="all, delete-orphan", order_by="BreakOrm.start_time"
    )
    special_schedules = relationship(
        "SpecialScheduleOrm", back_populates="schedule", cascade="all"
    )

    __table_args__ = (
        sa.CheckConstraint(
            f'lesson_duration BETWEEN {LESSON_DURATION_MIN} AND {LESSON_DURATION_MAX}',
            name='ck_schedules_lesson_duration'
        ),
        sa.CheckConstraint(
            f'break_duration BETWEEN {BREAK_DURATION_MIN} AND {BREAK_DURATION_MAX}',
            name='ck_schedules_break_duration'
        ),
        sa.Index('idx_schedules_day_active', 'day_of_week', 'active'),
    )

    @validates('lesson_duration')
    def validate_lesson_duration(self, key, value):
        if value is None or not LESSON_DURATION_MIN <= value <= LESSON_DURATION_MAX:
            raise ScheduleConfigurationError(
                f"Lesson duration must be between {LESSON_DURATION_MIN} and {LESSON_DURATION_MAX} minutes"
            )
        return value

    @validates('break_duration')
    def validate_break_duration(self, key, value):
        if value is None or not BREAK_DURATION_MIN <= value <= BREAK_DURATION_MAX:
            raise ScheduleConfigurationError(
                f"Break duration must be between {BREAK_DURATION_MIN} and {BREAK_DURATION_MAX} minutes"
            )
        return value

    @validates('first_lesson_start')
    def validate_first_lesson_start(self, key, value):
        if value is None:
            raise ScheduleConfigurationError("First lesson start time cannot be null")
        return value


class LessonOrm(Base):
    __tablename__ = 'lessons'

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    order_number: Mapped[int] = mapped_column(sa.Integer)
    subject: Mapped[str] = mapped_column(sa.String(100))
    duration: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)
    schedule_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, ForeignKey('schedules.id', ondelete='CASCADE'), nullable=True
    )
    special_schedule_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, ForeignKey('special_schedules.id', ondelete='CASCADE'), nullable=True
    )

    schedule: Mapped[Optional["ScheduleOrm"]] = relationship(back_populates="lessons")
    special_schedule = relationship("SpecialScheduleOrm", back_populates="lessons")

    # A lesson has exactly one owner, so it is an orphan only once detached from both
    __mapper_args__ = {"legacy_is_orphan": True}

    __table_args__ = (
        sa.UniqueConstraint('schedule_id', 'order_number', name='uq_lessons_schedule_order'),
        sa.UniqueConstraint('special_schedule_id', 'order_number', name='uq_lessons_special_order'),
        sa.CheckConstraint('order_number > 0', name='ck_lessons_order_positive'),
        sa.CheckConstraint(
            '(schedule_id IS NULL) <> (special_schedule_id IS NULL)', name='ck_lessons_single_owner'
        ),
    )

    @validates('order_number')
    def validate_order_number(self, key, value):
        if value is None or value < 1:
            raise ScheduleConfigurationError("The lesson number must be greater than 0")
        return value

    @validates('subject')
    def validate_subject(self, key, value):
        if value is None or not value.strip():
            raise ScheduleConfigurationError("Subject name cannot be empty")
        return value.strip()


class BreakOrm(Base):
    __tablename__ = 'breaks'

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(100))
    start_time: Mapped[datetime.time] = mapped_column(sa.Time)
    duration: Mapped[int] = mapped_column(sa.Integer)
    schedule_id: Mapped[int] = mapped_column(sa.Integer, ForeignKey('schedules.id', ondelete='CASCADE'))

    schedule: Mapped["ScheduleOrm"] = relationship(back_populates="breaks")

    __table_args__ = (
        sa.CheckConstraint('duration > 0', name='ck_breaks_duration_positive'),
        sa.Index('idx_breaks_schedule', 'schedule_id'),
    )

    @validates('duration')
    def validate_duration(self, key, value):
        if value is None or value <= 0:
            raise ScheduleConfigurationError("Break duration must be positive")
        return value


def lesson_to_domain(lesson: LessonOrm) -> Lesson:
    return Lesson(
        id=lesson.id,
        order_number=lesson.order_number,
        subject=lesson.subject,
        duration=lesson.duration,
        schedule_id=lesson.schedule_id,
        special_schedule_id=lesson.special_schedule_id,
    )


def break_to_domain(brk: BreakOrm) -> Break:
    return Break(
        id=brk.id,
        name=brk.name,
        start_time=brk.start_time,
        duration=brk.duration,
        schedule_id=brk.schedule_id,
    )


def schedule_to_domain(schedule: ScheduleOrm) -> Schedule:
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
        lessons=tuple(lesson_to_domain(lesson) for lesson in schedule.lessons),
        breaks=tuple(break_to_domain(brk) for brk in schedule.breaks),
    )


def insert_schedule(schedule: ScheduleOrm) -> ScheduleOrm:
    session = get_session()
    try:
        session.add(schedule)
        session.commit()
        return schedule
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def delete_schedule_by_id(schedule_id: int) -> bool:
    """Delete a schedule; its lessons, breaks and special schedules go with it."""
    session = get_session()
    try:
        schedule = session.get(ScheduleOrm, schedule_id)
        if schedule is None:
            return False
        session.delete(schedule)
        session.commit()
        return True
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()
