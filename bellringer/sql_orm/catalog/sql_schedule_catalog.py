"""
Schedule catalog backed by the relational store.

Rows are converted to frozen domain records before leaving the session,
and snapshot() pins one session for a whole resolution.
"""

import datetime
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

import sqlalchemy.exc as sa_exception
from sqlalchemy.orm import Session, selectinload

from bellringer.catalog.schedule_catalog import ScheduleCatalog, most_recently_updated
from bellringer.errors import CatalogUnavailableError
from bellringer.models.model import (
    DayOfWeek,
    HolidaySchedule,
    ResolutionSource,
    ResolvedSchedule,
    Schedule,
    SpecialSchedule,
)
from bellringer.projector.timeline_projector import TimelineProjector
from bellringer.sql_orm.call.call_schedule_orm import replace_call_schedules
from bellringer.sql_orm.connection.sqlalchemy_pg import get_session
from bellringer.sql_orm.override.holiday_schedule_orm import HolidayScheduleOrm, holiday_to_domain
from bellringer.sql_orm.override.special_schedule_orm import SpecialScheduleOrm, special_schedule_to_domain
from bellringer.sql_orm.schedule.schedule_orm import ScheduleOrm, schedule_to_domain
from bellringer.utils.logging_config import get_catalog_logger

logger = get_catalog_logger()

_SCHEDULE_LOAD = (selectinload(ScheduleOrm.lessons), selectinload(ScheduleOrm.breaks))


class _SessionCatalogView(ScheduleCatalog):
    """Catalog reads bound to one open session."""

    def __init__(self, session: Session):
        self._session = session

    def find_schedules_by_day_of_week(self, day: DayOfWeek) -> List[Schedule]:
        rows = self._session.query(ScheduleOrm).options(*_SCHEDULE_LOAD).filter(
            ScheduleOrm.day_of_week == day,
            ScheduleOrm.active.is_(True),
            ScheduleOrm.effective_date.is_(None),
        ).order_by(ScheduleOrm.id).all()
        return [schedule_to_domain(row) for row in rows]

    def find_schedule_by_effective_date(self, target_date: datetime.date) -> Optional[Schedule]:
        rows = self._session.query(ScheduleOrm).options(*_SCHEDULE_LOAD).filter(
            ScheduleOrm.effective_date == target_date
        ).all()
        return most_recently_updated(schedule_to_domain(row) for row in rows)

    def find_special_schedule_by_date(self, target_date: datetime.date) -> Optional[SpecialSchedule]:
        row = self._session.query(SpecialScheduleOrm).options(
            selectinload(SpecialScheduleOrm.lessons),
            selectinload(SpecialScheduleOrm.schedule).selectinload(ScheduleOrm.lessons),
            selectinload(SpecialScheduleOrm.schedule).selectinload(ScheduleOrm.breaks),
        ).filter(SpecialScheduleOrm.special_date == target_date).first()
        return special_schedule_to_domain(row) if row is not None else None

    def find_holiday_by_date(self, target_date: datetime.date) -> Optional[HolidaySchedule]:
        row = self._session.query(HolidayScheduleOrm).filter(
            HolidayScheduleOrm.holiday_date == target_date
        ).first()
        return holiday_to_domain(row) if row is not None else None

    def find_schedule_by_id(self, schedule_id: int) -> Optional[Schedule]:
        row = self._session.query(ScheduleOrm).options(*_SCHEDULE_LOAD).filter(
            ScheduleOrm.id == schedule_id
        ).first()
        return schedule_to_domain(row) if row is not None else None


class SqlScheduleCatalog(ScheduleCatalog):

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    @contextmanager
    def snapshot(self) -> Iterator[_SessionCatalogView]:
        session = self._session_factory()
        try:
            yield _SessionCatalogView(session)
        except sa_exception.SQLAlchemyError as e:
            logger.error(f"Catalog read failed: {e}")
            raise CatalogUnavailableError(str(e)) from e
        finally:
            session.close()

    def find_schedules_by_day_of_week(self, day: DayOfWeek) -> List[Schedule]:
        with self.snapshot() as view:
            return view.find_schedules_by_day_of_week(day)

    def find_schedule_by_effective_date(self, target_date: datetime.date) -> Optional[Schedule]:
        with self.snapshot() as view:
            return view.find_schedule_by_effective_date(target_date)

    def find_special_schedule_by_date(self, target_date: datetime.date) -> Optional[SpecialSchedule]:
        with self.snapshot() as view:
            return view.find_special_schedule_by_date(target_date)

    def find_holiday_by_date(self, target_date: datetime.date) -> Optional[HolidaySchedule]:
        with self.snapshot() as view:
            return view.find_holiday_by_date(target_date)

    def find_schedule_by_id(self, schedule_id: int) -> Optional[Schedule]:
        with self.snapshot() as view:
            return view.find_schedule_by_id(schedule_id)


def materialize_call_schedules(
    catalog: SqlScheduleCatalog,
    projector: TimelineProjector,
    schedule_id: int,
    on_date: Optional[datetime.date] = None,
) -> int:
    """
    Re-derive the call_schedules rows of one schedule.

    Call this after any write to the schedule, its lessons or its breaks.
    Rows keep only the time of day, so any date with the same wall clock
    works; defaults to the schedule's effective date, else today.
    """
    schedule = catalog.find_schedule_by_id(schedule_id)
    if schedule is None:
        raise LookupError(f"Schedule not found with ID: {schedule_id}")

    target_date = on_date or schedule.effective_date or datetime.date.today()
    resolved = ResolvedSchedule(
        target_date=target_date,
        source=ResolutionSource.DATED if schedule.effective_date else ResolutionSource.WEEKDAY,
        schedule=schedule,
        lessons=schedule.lessons,
        breaks=schedule.breaks,
    )
    timeline = projector.project(resolved)
    return replace_call_schedules(schedule_id, timeline.calls)
