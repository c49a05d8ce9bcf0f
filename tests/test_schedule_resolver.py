import datetime
from unittest.mock import Mock

import pytest

from bellringer.catalog.schedule_catalog import InMemoryScheduleCatalog
from bellringer.models.model import (
    DayOfWeek,
    HolidaySchedule,
    Lesson,
    NoSchoolDay,
    NotFound,
    ResolutionSource,
    ResolvedSchedule,
    SpecialSchedule,
)
from bellringer.projector.timeline_service import TimelineService
from bellringer.resolver.schedule_resolver import ScheduleResolver
from tests.factories import MONDAY, TUESDAY, make_schedule

ASSEMBLY = (Lesson(id=900, order_number=1, subject="Assembly", special_schedule_id=5),)


def resolve(target_date, **catalog_kwargs):
    return ScheduleResolver(InMemoryScheduleCatalog(**catalog_kwargs)).resolve(target_date)


class TestPrecedence:

    def test_weekday_schedule_resolves(self, monday_schedule):
        result = resolve(MONDAY, schedules=[monday_schedule])

        assert isinstance(result, ResolvedSchedule)
        assert result.source == ResolutionSource.WEEKDAY
        assert result.schedule.id == monday_schedule.id
        assert result.lessons == monday_schedule.lessons
        assert result.warnings == ()

    def test_non_working_holiday_wins_over_everything(self, monday_schedule):
        holiday = HolidaySchedule(id=1, holiday_date=MONDAY, description="Independence Day")
        special = SpecialSchedule(id=5, special_date=MONDAY, schedule=monday_schedule, lessons=ASSEMBLY)

        result = resolve(MONDAY, schedules=[monday_schedule], special_schedules=[special], holidays=[holiday])

        assert result == NoSchoolDay(target_date=MONDAY, holiday=holiday)

    def test_working_day_holiday_falls_through_to_special(self, monday_schedule):
        holiday = HolidaySchedule(id=1, holiday_date=MONDAY, description="Open day", working_day=True)
        special = SpecialSchedule(id=5, special_date=MONDAY, schedule=monday_schedule, lessons=ASSEMBLY)

        result = resolve(MONDAY, schedules=[monday_schedule], special_schedules=[special], holidays=[holiday])

        assert isinstance(result, ResolvedSchedule)
        assert result.source == ResolutionSource.SPECIAL
        assert result.holiday == holiday
        assert result.special_schedule == special

    def test_working_day_holiday_without_override_uses_weekday(self, monday_schedule):
        holiday = HolidaySchedule(id=1, holiday_date=MONDAY, working_day=True)

        result = resolve(MONDAY, schedules=[monday_schedule], holidays=[holiday])

        assert result.source == ResolutionSource.WEEKDAY
        assert result.holiday == holiday

    def test_special_uses_own_lessons_and_base_timing(self, schedule_with_break):
        special = SpecialSchedule(id=5, special_date=MONDAY, schedule=schedule_with_break, lessons=ASSEMBLY)

        result = resolve(MONDAY, schedules=[schedule_with_break], special_schedules=[special])

        assert result.source == ResolutionSource.SPECIAL
        assert result.lessons == ASSEMBLY
        assert result.breaks == schedule_with_break.breaks
        assert result.schedule.first_lesson_start == schedule_with_break.first_lesson_start

    def test_special_beats_dated_schedule(self, monday_schedule):
        dated = make_schedule(schedule_id=2, effective_date=MONDAY)
        special = SpecialSchedule(id=5, special_date=MONDAY, schedule=monday_schedule, lessons=ASSEMBLY)

        result = resolve(MONDAY, schedules=[monday_schedule, dated], special_schedules=[special])

        assert result.source == ResolutionSource.SPECIAL

    def test_dated_schedule_beats_weekday(self, monday_schedule):
        dated = make_schedule(schedule_id=2, day=DayOfWeek.MONDAY, effective_date=MONDAY)

        result = resolve(MONDAY, schedules=[monday_schedule, dated])

        assert result.source == ResolutionSource.DATED
        assert result.schedule.id == 2

    def test_dated_schedule_only_applies_on_its_date(self, monday_schedule):
        dated = make_schedule(schedule_id=2, effective_date=MONDAY)
        next_monday = MONDAY + datetime.timedelta(days=7)

        result = resolve(next_monday, schedules=[monday_schedule, dated])

        assert result.source == ResolutionSource.WEEKDAY
        assert result.schedule.id == monday_schedule.id

    def test_inactive_dated_schedule_is_skipped(self, monday_schedule):
        dated = make_schedule(schedule_id=2, effective_date=MONDAY, active=False)

        result = resolve(MONDAY, schedules=[monday_schedule, dated])

        assert result.source == ResolutionSource.WEEKDAY
        assert result.schedule.id == monday_schedule.id


class TestNotFound:

    def test_no_schedule_for_weekday(self, monday_schedule):
        result = resolve(TUESDAY, schedules=[monday_schedule])

        assert isinstance(result, NotFound)
        assert "TUESDAY" in result.reason

    def test_inactive_weekday_schedule_is_ignored(self):
        result = resolve(MONDAY, schedules=[make_schedule(active=False)])

        assert isinstance(result, NotFound)

    def test_not_found_never_reaches_projector(self, catalog):
        projector = Mock()
        service = TimelineService(ScheduleResolver(catalog), projector)

        result = service.resolve_and_project(TUESDAY)

        assert isinstance(result, NotFound)
        projector.project.assert_not_called()

    def test_no_school_day_never_reaches_projector(self, catalog):
        holiday = HolidaySchedule(id=1, holiday_date=MONDAY)
        projector = Mock()
        resolver = ScheduleResolver(InMemoryScheduleCatalog(schedules=catalog.schedules, holidays=[holiday]))

        result = TimelineService(resolver, projector).resolve_and_project(MONDAY)

        assert isinstance(result, NoSchoolDay)
        projector.project.assert_not_called()


class TestTieBreak:

    def test_most_recently_updated_schedule_wins(self):
        older = make_schedule(schedule_id=1, last_updated=datetime.datetime(2024, 8, 1, 12, 0))
        newer = make_schedule(schedule_id=2, last_updated=datetime.datetime(2024, 8, 20, 9, 0))

        result = resolve(MONDAY, schedules=[newer, older])

        assert result.schedule.id == 2
        assert len(result.warnings) == 1
        assert "2 active schedules for MONDAY" in result.warnings[0].message

    def test_equal_timestamps_fall_back_to_highest_id(self):
        stamp = datetime.datetime(2024, 8, 1, 12, 0)
        schedules = [make_schedule(schedule_id=i, last_updated=stamp) for i in (3, 7, 5)]

        result = resolve(MONDAY, schedules=schedules)

        assert result.schedule.id == 7

    def test_choice_is_stable_across_catalog_order(self):
        a = make_schedule(schedule_id=1, last_updated=datetime.datetime(2024, 8, 1))
        b = make_schedule(schedule_id=2, last_updated=datetime.datetime(2024, 8, 2))

        assert resolve(MONDAY, schedules=[a, b]).schedule.id == resolve(MONDAY, schedules=[b, a]).schedule.id

    def test_tie_break_logs_warning(self, caplog):
        schedules = [make_schedule(schedule_id=1), make_schedule(schedule_id=2)]

        with caplog.at_level("WARNING", logger="schedule_resolver"):
            resolve(MONDAY, schedules=schedules)

        assert any("DATA_INTEGRITY" in record.message for record in caplog.records)

    def test_aware_and_missing_timestamps_are_comparable(self):
        eest = datetime.timezone(datetime.timedelta(hours=3))
        stamped = make_schedule(schedule_id=1, last_updated=datetime.datetime(2024, 8, 20, 9, 0, tzinfo=eest))
        unstamped = make_schedule(schedule_id=2)

        result = resolve(MONDAY, schedules=[stamped, unstamped])

        assert result.schedule.id == 1

    def test_aware_and_naive_timestamps_compare_in_utc(self):
        eest = datetime.timezone(datetime.timedelta(hours=3))
        aware = make_schedule(schedule_id=1, last_updated=datetime.datetime(2024, 8, 20, 9, 0, tzinfo=eest))
        naive = make_schedule(schedule_id=2, last_updated=datetime.datetime(2024, 8, 20, 7, 0))

        result = resolve(MONDAY, schedules=[aware, naive])

        assert result.schedule.id == 2


class TestInvalidData:

    def test_out_of_bounds_schedule_yields_not_found_with_warning(self):
        result = resolve(MONDAY, schedules=[make_schedule(lesson_duration=10)])

        assert isinstance(result, NotFound)
        assert len(result.warnings) == 1
        assert "Lesson duration must be between 15 and 90" in result.warnings[0].message

    def test_invalid_candidate_falls_back_to_next_weekday_schedule(self):
        broken = make_schedule(schedule_id=2, break_duration=45, last_updated=datetime.datetime(2024, 8, 20))
        valid = make_schedule(schedule_id=1, last_updated=datetime.datetime(2024, 8, 1))

        result = resolve(MONDAY, schedules=[broken, valid])

        assert result.schedule.id == 1
        assert any(warning.schedule_id == 2 for warning in result.warnings)

    def test_invalid_special_falls_back_to_weekday(self, monday_schedule):
        blank = (Lesson(id=900, order_number=1, subject="  ", special_schedule_id=5),)
        special = SpecialSchedule(id=5, special_date=MONDAY, schedule=monday_schedule, lessons=blank)

        result = resolve(MONDAY, schedules=[monday_schedule], special_schedules=[special])

        assert result.source == ResolutionSource.WEEKDAY
        assert "blank subject" in result.warnings[0].message

    def test_special_without_base_schedule_falls_back(self, monday_schedule):
        special = SpecialSchedule(id=5, special_date=MONDAY, schedule=None, lessons=ASSEMBLY)

        result = resolve(MONDAY, schedules=[monday_schedule], special_schedules=[special])

        assert result.source == ResolutionSource.WEEKDAY
        assert "no base schedule" in result.warnings[0].message

    def test_invalid_dated_schedule_falls_back_to_weekday(self, monday_schedule):
        dated = make_schedule(schedule_id=2, effective_date=MONDAY, first_lesson_start=None)

        result = resolve(MONDAY, schedules=[monday_schedule, dated])

        assert result.source == ResolutionSource.WEEKDAY
        assert result.warnings[0].schedule_id == 2


class TestCatalogSnapshot:

    def test_resolution_reads_through_one_snapshot(self, catalog):
        entered = []
        real_snapshot = catalog.snapshot

        def counting_snapshot():
            entered.append(True)
            return real_snapshot()

        catalog.snapshot = counting_snapshot
        ScheduleResolver(catalog).resolve(MONDAY)

        assert entered == [True]

    def test_duplicate_special_dates_are_rejected(self, monday_schedule):
        specials = [
            SpecialSchedule(id=5, special_date=MONDAY, schedule=monday_schedule),
            SpecialSchedule(id=6, special_date=MONDAY, schedule=monday_schedule),
        ]

        with pytest.raises(ValueError):
            InMemoryScheduleCatalog(schedules=[monday_schedule], special_schedules=specials)

    def test_single_weekday_lookup_uses_tie_break(self):
        older = make_schedule(schedule_id=1, last_updated=datetime.datetime(2024, 8, 1))
        newer = make_schedule(schedule_id=2, last_updated=datetime.datetime(2024, 8, 2))
        catalog = InMemoryScheduleCatalog(schedules=[newer, older])

        assert catalog.find_schedule_by_day_of_week(DayOfWeek.MONDAY).id == 2
        assert catalog.find_schedule_by_day_of_week(DayOfWeek.FRIDAY) is None
