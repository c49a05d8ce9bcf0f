import datetime
import logging
from typing import Dict, List, Optional, Union

from bellringer.constants import BREAK_COLOR, LESSON_COLOR
from bellringer.models.model import (
    CalendarEvent,
    LessonSlot,
    NoSchoolDay,
    NotFound,
    ResolvedSchedule,
    Timeline,
)
from bellringer.projector.timeline_projector import TimelineProjector
from bellringer.resolver.schedule_resolver import ScheduleResolver
from bellringer.utils.logging_config import get_projector_logger

DayResult = Union[NoSchoolDay, NotFound, Timeline]


class TimelineService:
    """Facade used by the bell loop and by calendar/reporting consumers."""

    def __init__(
        self,
        resolver: ScheduleResolver,
        projector: TimelineProjector,
        logger: Optional[logging.Logger] = None,
    ):
        self._resolver = resolver
        self._projector = projector
        self._logger = logger or get_projector_logger()

    def resolve_and_project(self, target_date: datetime.date) -> DayResult:
        resolution = self._resolver.resolve(target_date)
        if not isinstance(resolution, ResolvedSchedule):
            return resolution
        return self._projector.project(resolution)

    def events_for_range(self, start_date: datetime.date, end_date: datetime.date) -> Dict[datetime.date, DayResult]:
        """Outcome for every date between start_date and end_date, both inclusive."""
        if end_date < start_date:
            raise ValueError(f"Range end {end_date} is before start {start_date}")

        self._logger.info(f"Fetching schedule events between {start_date} and {end_date}")
        results = {}
        current = start_date
        while current <= end_date:
            results[current] = self.resolve_and_project(current)
            current += datetime.timedelta(days=1)
        return results

    def calendar_events(self, start_date: datetime.date, end_date: datetime.date) -> List[CalendarEvent]:
        events = []
        for outcome in self.events_for_range(start_date, end_date).values():
            if not isinstance(outcome, Timeline):
                continue
            for slot in outcome.events:
                if isinstance(slot, LessonSlot):
                    events.append(CalendarEvent(
                        id=slot.lesson.id,
                        title=slot.lesson.subject,
                        start=slot.start,
                        end=slot.end,
                        color=LESSON_COLOR,
                    ))
                else:
                    events.append(CalendarEvent(
                        id=slot.break_period.id,
                        title=slot.break_period.name,
                        start=slot.start,
                        end=slot.end,
                        color=BREAK_COLOR,
                    ))
        return events
