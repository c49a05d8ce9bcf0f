from typing import List, Optional
import datetime
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, validates

from bellringer.models.model import HolidaySchedule
from bellringer.sql_orm.connection.base import Base
from bellringer.sql_orm.connection.sqlalchemy_pg import get_session


class HolidayScheduleOrm(Base):
    __tablename__ = 'holiday_schedules'

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    holiday_date: Mapped[datetime.date] = mapped_column(sa.Date, unique=True)
    description: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True)
    working_day: Mapped[bool] = mapped_column(sa.Boolean, default=False)

    @validates('holiday_date')
    def validate_holiday_date(self, key, value):
        if value is None:
            raise ValueError("Holiday date cannot be null")
        return value


def holiday_to_domain(holiday: HolidayScheduleOrm) -> HolidaySchedule:
    return HolidaySchedule(
        id=holiday.id,
        holiday_date=holiday.holiday_date,
        description=holiday.description or "",
        working_day=bool(holiday.working_day),
    )


def insert_holiday(holiday: HolidayScheduleOrm) -> HolidayScheduleOrm:
    session = get_session()
    try:
        session.add(holiday)
        session.commit()
        return holiday
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def get_holidays_between(start_date: datetime.date, end_date: datetime.date) -> List[HolidayScheduleOrm]:
    session = get_session()
    try:
        return session.query(HolidayScheduleOrm).filter(
            HolidayScheduleOrm.holiday_date.between(start_date, end_date)
        ).order_by(HolidayScheduleOrm.holiday_date).all()
    finally:
        session.close()
