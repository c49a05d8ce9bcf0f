from typing import Iterable, List, Optional
import datetime
import sqlalchemy as sa
from sqlalchemy import ForeignKey
from sqlalchemy.orm import backref, relationship, Mapped, mapped_column, validates
import sqlalchemy.exc as sa_exception

from bellringer.errors import CallReferenceError
from bellringer.models.model import CallEvent, CallType
from bellringer.sql_orm.connection.base import Base
from bellringer.sql_orm.connection.sqlalchemy_pg import get_session
from bellringer.utils.logging_config import get_catalog_logger, log_database_operation

logger = get_catalog_logger()


class CallScheduleOrm(Base):
    __tablename__ = 'call_schedules'

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    call_time: Mapped[datetime.time] = mapped_column(sa.Time)
    call_type: Mapped[CallType] = mapped_column(sa.Enum(CallType, native_enum=False, length=20))
    lesson_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, ForeignKey('lessons.id', ondelete='CASCADE'), nullable=True
    )
    break_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, ForeignKey('breaks.id', ondelete='CASCADE'), nullable=True
    )
    schedule_id: Mapped[int] = mapped_column(sa.Integer, ForeignKey('schedules.id', ondelete='CASCADE'))

    schedule = relationship(
        "ScheduleOrm", backref=backref("call_schedules", cascade="all")
    )
    lesson = relationship(
        "LessonOrm", backref=backref("call_schedules", cascade="all")
    )
    break_period = relationship(
        "BreakOrm", backref=backref("call_schedules", cascade="all")
    )

    __table_args__ = (
        sa.CheckConstraint(
            '(lesson_id IS NULL) <> (break_id IS NULL)', name='ck_call_schedules_single_reference'
        ),
        sa.UniqueConstraint('lesson_id', 'call_type', 'call_time', name='uq_call_schedules_lesson_time'),
        sa.UniqueConstraint('break_id', 'call_type', 'call_time', name='uq_call_schedules_break_time'),
        sa.Index('idx_call_time', 'call_time'),
        sa.Index('idx_call_lesson', 'lesson_id'),
        sa.Index('idx_call_break', 'break_id'),
    )

    @validates('lesson_id', 'lesson')
    def validate_lesson(self, key, value):
        if value is not None and (self.break_id is not None or self.break_period is not None):
            raise CallReferenceError("Cannot set lesson when break period is already set")
        return value

    @validates('break_id', 'break_period')
    def validate_break(self, key, value):
        if value is not None and (self.lesson_id is not None or self.lesson is not None):
            raise CallReferenceError("Cannot set break period when lesson is already set")
        return value

    def __repr__(self) -> str:
        ref = f"lessonId={self.lesson_id}" if self.lesson_id is not None else f"breakPeriodId={self.break_id}"
        return f"CallSchedule(id={self.id}, callTime={self.call_time}, callType={self.call_type}, {ref})"


def call_schedule_from_event(call: CallEvent) -> CallScheduleOrm:
    return CallScheduleOrm(
        call_time=call.call_time.time(),
        call_type=call.call_type,
        lesson_id=call.lesson_id,
        break_id=call.break_id,
        schedule_id=call.schedule_id,
    )


def replace_call_schedules(schedule_id: int, calls: Iterable[CallEvent]) -> int:
    """
    Swap the materialized calls of one schedule for a fresh projection.

    Delete and insert share one transaction, so a crash never leaves two
    rows claiming the same lesson/break and time.
    """
    session = get_session()
    try:
        deleted = session.query(CallScheduleOrm).filter(
            CallScheduleOrm.schedule_id == schedule_id
        ).delete(synchronize_session=False)
        rows = [call_schedule_from_event(call) for call in calls]
        session.add_all(rows)
        session.commit()
        log_database_operation(
            logger, "REPLACE", CallScheduleOrm.__tablename__, True,
            details=f"Schedule {schedule_id}: removed {deleted}, inserted {len(rows)}"
        )
        return len(rows)
    except (sa_exception.SQLAlchemyError, CallReferenceError) as e:
        session.rollback()
        log_database_operation(logger, "REPLACE", CallScheduleOrm.__tablename__, False, error=e)
        raise
    finally:
        session.close()


def find_call_schedules_by_schedule(schedule_id: int) -> List[CallScheduleOrm]:
    session = get_session()
    try:
        return session.query(CallScheduleOrm).filter(
            CallScheduleOrm.schedule_id == schedule_id
        ).order_by(CallScheduleOrm.call_time, CallScheduleOrm.id).all()
    finally:
        session.close()


def find_call_schedules_by_type(call_type: CallType) -> List[CallScheduleOrm]:
    session = get_session()
    try:
        return session.query(CallScheduleOrm).filter(
            CallScheduleOrm.call_type == call_type
        ).order_by(CallScheduleOrm.call_time).all()
    finally:
        session.close()


def find_call_schedules_between(start_time: datetime.time, end_time: datetime.time) -> List[CallScheduleOrm]:
    session = get_session()
    try:
        return session.query(CallScheduleOrm).filter(
            CallScheduleOrm.call_time.between(start_time, end_time)
        ).order_by(CallScheduleOrm.call_time).all()
    finally:
        session.close()


def find_call_schedules_by_lesson(lesson_id: int) -> List[CallScheduleOrm]:
    session = get_session()
    try:
        return session.query(CallScheduleOrm).filter(
            CallScheduleOrm.lesson_id == lesson_id
        ).order_by(CallScheduleOrm.call_time).all()
    finally:
        session.close()


def find_call_schedules_by_break(break_id: int) -> List[CallScheduleOrm]:
    session = get_session()
    try:
        return session.query(CallScheduleOrm).filter(
            CallScheduleOrm.break_id == break_id
        ).order_by(CallScheduleOrm.call_time).all()
    finally:
        session.close()


def call_schedule_exists_at(call_time: datetime.time) -> bool:
    session = get_session()
    try:
        return session.query(CallScheduleOrm).filter(
            CallScheduleOrm.call_time == call_time
        ).first() is not None
    finally:
        session.close()
