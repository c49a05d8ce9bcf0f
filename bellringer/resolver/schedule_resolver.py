import datetime
import logging
from typing import List, Optional

from bellringer.catalog.schedule_catalog import ScheduleCatalog, most_recently_updated
from bellringer.models.model import (
    DataIntegrityWarning,
    DayOfWeek,
    HolidaySchedule,
    NoSchoolDay,
    NotFound,
    Resolution,
    ResolutionSource,
    ResolvedSchedule,
    Schedule,
    SpecialSchedule,
    validate_lessons,
    validate_schedule,
)
from bellringer.utils.logging_config import get_resolver_logger, log_resolution


class ScheduleResolver:
    """
    Picks the one schedule that governs a calendar date.

    Precedence, first match wins:
      1. non-working holiday -> NoSchoolDay
      2. working-day holiday -> keep going
      3. special schedule for the date (own lessons, base schedule timing)
      4. schedule pinned to the date through effective_date
      5. active schedule for the weekday, else NotFound

    A candidate that fails its bounds is reported as a DataIntegrityWarning
    and the next lower rule is tried instead.
    """

    def __init__(self, catalog: ScheduleCatalog, logger: Optional[logging.Logger] = None):
        self._catalog = catalog
        self._logger = logger or get_resolver_logger()

    def resolve(self, target_date: datetime.date) -> Resolution:
        warnings: List[DataIntegrityWarning] = []

        with self._catalog.snapshot() as catalog:
            holiday = catalog.find_holiday_by_date(target_date)
            if holiday is not None and not holiday.working_day:
                log_resolution(self._logger, "no_school_day", target_date, details=holiday.description)
                return NoSchoolDay(target_date=target_date, holiday=holiday)
            if holiday is not None:
                self._logger.info(
                    f"Holiday '{holiday.description}' on {target_date} is a working day, resolving normally"
                )

            special = catalog.find_special_schedule_by_date(target_date)
            if special is not None:
                resolved = self._from_special(target_date, special, holiday, warnings)
                if resolved is not None:
                    return resolved

            dated = catalog.find_schedule_by_effective_date(target_date)
            if dated is not None:
                resolved = self._from_schedule(target_date, dated, ResolutionSource.DATED, holiday, warnings)
                if resolved is not None:
                    return resolved

            day = DayOfWeek.from_date(target_date)
            candidates = catalog.find_schedules_by_day_of_week(day)

        return self._from_weekday(target_date, day, candidates, holiday, warnings)

    def _from_special(
        self,
        target_date: datetime.date,
        special: SpecialSchedule,
        holiday: Optional[HolidaySchedule],
        warnings: List[DataIntegrityWarning],
    ) -> Optional[ResolvedSchedule]:
        base = special.schedule
        if base is None:
            self._warn(warnings, target_date, f"Special schedule {special.id} has no base schedule, skipping")
            return None

        issues = validate_schedule(base) + validate_lessons(special.lessons)
        if issues:
            self._warn(
                warnings, target_date,
                f"Special schedule {special.id} is unusable: {'; '.join(issues)}",
                base.id,
            )
            return None

        log_resolution(self._logger, "special", target_date, base.id, details=special.description)
        return ResolvedSchedule(
            target_date=target_date,
            source=ResolutionSource.SPECIAL,
            schedule=base,
            lessons=special.lessons,
            breaks=base.breaks,
            special_schedule=special,
            holiday=holiday,
            warnings=tuple(warnings),
        )

    def _from_schedule(
        self,
        target_date: datetime.date,
        schedule: Schedule,
        source: ResolutionSource,
        holiday: Optional[HolidaySchedule],
        warnings: List[DataIntegrityWarning],
    ) -> Optional[ResolvedSchedule]:
        if not schedule.active:
            self._logger.info(f"Schedule {schedule.id} pinned to {target_date} is inactive, skipping")
            return None

        issues = validate_schedule(schedule) + validate_lessons(schedule.lessons)
        if issues:
            self._warn(
                warnings, target_date,
                f"Schedule {schedule.id} is unusable: {'; '.join(issues)}",
                schedule.id,
            )
            return None

        log_resolution(self._logger, source.value, target_date, schedule.id)
        return ResolvedSchedule(
            target_date=target_date,
            source=source,
            schedule=schedule,
            lessons=schedule.lessons,
            breaks=schedule.breaks,
            holiday=holiday,
            warnings=tuple(warnings),
        )

    def _from_weekday(
        self,
        target_date: datetime.date,
        day: DayOfWeek,
        candidates: List[Schedule],
        holiday: Optional[HolidaySchedule],
        warnings: List[DataIntegrityWarning],
    ) -> Resolution:
        remaining = [s for s in candidates if s.active]
        if len(remaining) > 1:
            chosen = most_recently_updated(remaining)
            self._warn(
                warnings, target_date,
                f"{len(remaining)} active schedules for {day.value} "
                f"(ids {sorted(s.id for s in remaining)}), using most recently updated {chosen.id}",
            )

        while remaining:
            chosen = most_recently_updated(remaining)
            resolved = self._from_schedule(target_date, chosen, ResolutionSource.WEEKDAY, holiday, warnings)
            if resolved is not None:
                return resolved
            remaining = [s for s in remaining if s.id != chosen.id]

        log_resolution(self._logger, "not_found", target_date, details=f"No active schedule for {day.value}")
        return NotFound(
            target_date=target_date,
            reason=f"No active schedule configured for {day.value}",
            warnings=tuple(warnings),
        )

    def _warn(
        self,
        warnings: List[DataIntegrityWarning],
        target_date: datetime.date,
        message: str,
        schedule_id: Optional[int] = None,
    ) -> None:
        self._logger.warning(f"DATA_INTEGRITY | Date: {target_date.isoformat()} | {message}")
        warnings.append(DataIntegrityWarning(target_date=target_date, message=message, schedule_id=schedule_id))
