from typing import List, Optional
import datetime
import sqlalchemy as sa
from sqlalchemy import ForeignKey
from sqlalchemy.orm import relationship, Mapped, mapped_column, validates

from bellringer.models.model import SpecialSchedule
from bellringer.sql_orm.connection.base import Base
from bellringer.sql_orm.connection.sqlalchemy_pg import get_session
from bellringer.sql_orm.schedule.schedule_orm import LessonOrm, lesson_to_domain, schedule_to_domain


class SpecialScheduleOrm(Base):
    __tablename__ = 'special_schedules'

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    special_date: Mapped[datetime.date] = mapped_column(sa.Date, unique=True)
    schedule_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, ForeignKey('schedules.id', ondelete='CASCADE'), nullable=True
    )
    description: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    schedule = relationship("ScheduleOrm", back_populates="special_schedules")
    lessons: Mapped[List[LessonOrm]] = relationship(
        back_populates="special_schedule", cascade="all, delete-orphan", order_by=LessonOrm.order_number
    )

    @validates('special_date')
    def validate_special_date(self, key, value):
        if value is None:
            raise ValueError("Special date cannot be null")
        return value


def special_schedule_to_domain(special: SpecialScheduleOrm) -> SpecialSchedule:
    return SpecialSchedule(
        id=special.id,
        special_date=special.special_date,
        schedule=schedule_to_domain(special.schedule) if special.schedule is not None else None,
        lessons=tuple(lesson_to_domain(lesson) for lesson in special.lessons),
        description=special.description or "",
    )


def insert_special_schedule(special: SpecialScheduleOrm) -> SpecialScheduleOrm:
    session = get_session()
    try:
        session.add(special)
        session.commit()
        return special
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def get_special_schedules_between(start_date: datetime.date, end_date: datetime.date) -> List[SpecialScheduleOrm]:
    session = get_session()
    try:
        return session.query(SpecialScheduleOrm).filter(
            SpecialScheduleOrm.special_date.between(start_date, end_date)
        ).order_by(SpecialScheduleOrm.special_date).all()
    finally:
        session.close()
