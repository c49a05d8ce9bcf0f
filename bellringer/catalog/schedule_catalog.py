"""
Read-only schedule catalog.

The resolver only ever talks to this interface. Implementations return
frozen domain records, so nothing handed out can reach back into storage.
"""

import datetime
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from bellringer.models.model import DayOfWeek, HolidaySchedule, Schedule, SpecialSchedule


def _updated_key(schedule: Schedule) -> tuple:
    # Aware stamps compare as naive UTC; a missing stamp sorts before any stamp
    stamp = schedule.last_updated
    if stamp is None:
        return (False, datetime.datetime.min, schedule.id)
    if stamp.tzinfo is not None:
        stamp = stamp.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return (True, stamp, schedule.id)


def most_recently_updated(schedules: Iterable[Schedule]) -> Optional[Schedule]:
    """Deterministic pick: latest last_updated, then highest id."""
    ordered = sorted(schedules, key=_updated_key, reverse=True)
    return ordered[0] if ordered else None


class ScheduleCatalog(ABC):

    @abstractmethod
    def find_schedules_by_day_of_week(self, day: DayOfWeek) -> List[Schedule]:
        """Every active, undated schedule for the weekday."""

    @abstractmethod
    def find_schedule_by_effective_date(self, target_date: datetime.date) -> Optional[Schedule]:
        ...

    @abstractmethod
    def find_special_schedule_by_date(self, target_date: datetime.date) -> Optional[SpecialSchedule]:
        ...

    @abstractmethod
    def find_holiday_by_date(self, target_date: datetime.date) -> Optional[HolidaySchedule]:
        ...

    def find_schedule_by_day_of_week(self, day: DayOfWeek) -> Optional[Schedule]:
        return most_recently_updated(self.find_schedules_by_day_of_week(day))

    def has_active_schedule(self, day: DayOfWeek) -> bool:
        return bool(self.find_schedules_by_day_of_week(day))

    def has_special_schedule(self, target_date: datetime.date) -> bool:
        return self.find_special_schedule_by_date(target_date) is not None

    @contextmanager
    def snapshot(self) -> Iterator["ScheduleCatalog"]:
        """Consistent read view for one resolution."""
        yield self


class InMemoryScheduleCatalog(ScheduleCatalog):
    """Catalog over plain records, used for JSON timetables and tests."""

    def __init__(
        self,
        schedules: Iterable[Schedule] = (),
        special_schedules: Iterable[SpecialSchedule] = (),
        holidays: Iterable[HolidaySchedule] = (),
    ):
        self._schedules: List[Schedule] = list(schedules)
        self._special_schedules: Dict[datetime.date, SpecialSchedule] = {}
        self._holidays: Dict[datetime.date, HolidaySchedule] = {}
        for special in special_schedules:
            if special.special_date in self._special_schedules:
                raise ValueError(f"Duplicate special schedule for {special.special_date}")
            self._special_schedules[special.special_date] = special
        for holiday in holidays:
            if holiday.holiday_date in self._holidays:
                raise ValueError(f"Duplicate holiday for {holiday.holiday_date}")
            self._holidays[holiday.holiday_date] = holiday

    @property
    def schedules(self) -> List[Schedule]:
        return list(self._schedules)

    def find_schedules_by_day_of_week(self, day: DayOfWeek) -> List[Schedule]:
        return [
            s for s in self._schedules
            if s.day_of_week == day and s.active and s.effective_date is None
        ]

    def find_schedule_by_effective_date(self, target_date: datetime.date) -> Optional[Schedule]:
        dated = [s for s in self._schedules if s.effective_date == target_date]
        return most_recently_updated(dated)

    def find_special_schedule_by_date(self, target_date: datetime.date) -> Optional[SpecialSchedule]:
        return self._special_schedules.get(target_date)

    def find_holiday_by_date(self, target_date: datetime.date) -> Optional[HolidaySchedule]:
        return self._holidays.get(target_date)
