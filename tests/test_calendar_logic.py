# tests/test_calendar_logic.py

from datetime import date, datetime, time
import pytest

from schoolyard.models import ClassEntry, RecurringPattern, ScheduleSpec, Session
from schoolyard.calendar_logic import (
    normalize_time, weekday_index, week_start, week_dates,
    resolve, resolve_all, recurring_match, session_match, default_time_slots,
)

# Woche vom So 12.01.2025 bis Sa 18.01.2025
MON = date(2025, 1, 13)
WED = date(2025, 1, 15)


def make_class(cid="A", days=None, at=None, sessions=None):
    return ClassEntry(cid, f"Class {cid}", 500, ScheduleSpec.from_fields(days, at, sessions))


@pytest.mark.parametrize("raw,expected", [
    ("14:00", "14:00"),
    ("14:00:00", "14:00"),
    ("14:00:59.123", "14:00"),
    ("9:30", "09:30"),
    (" 08:15 ", "08:15"),
    (time(14, 0, 30), "14:00"),
    ("24:00", None),
    ("12:60", None),
    ("14", None),
    ("ab:cd", None),
    ("14:00:garbage", None),
    ("14:00:5", None),
    ("14:00:61", None),
    ("14:00:00.abc", None),
    ("14:00:00:00", None),
    ("", None),
    (None, None),
    (1400, None),
])
def test_normalize_time(raw, expected):
    assert normalize_time(raw) == expected


def test_weekday_index_starts_on_sunday():
    assert weekday_index(date(2025, 1, 12)) == 0   # Sonntag
    assert weekday_index(MON) == 1
    assert weekday_index(date(2025, 1, 18)) == 6   # Samstag


def test_week_start_and_dates():
    assert week_start(WED) == date(2025, 1, 12)
    assert week_start(date(2025, 1, 12)) == date(2025, 1, 12)
    days = week_dates(date(2025, 1, 18))
    assert days[0] == date(2025, 1, 12)
    assert days[-1] == date(2025, 1, 18)
    assert len(days) == 7


def test_default_time_slots_hourly_8_to_20():
    slots = default_time_slots()
    assert slots[0] == "08:00"
    assert slots[-1] == "20:00"
    assert len(slots) == 13


def test_recurring_match_weekday_and_time():
    cls = make_class(days=[1, 3, 5], at="14:00:00")
    assert recurring_match(cls, MON, "14:00")
    assert not recurring_match(cls, MON, "15:00")
    assert not recurring_match(cls, date(2025, 1, 14), "14:00")   # Dienstag


def test_session_match_ignores_time_of_day_in_stored_date():
    cls = make_class(sessions=[{"date": "2025-01-15T00:00:00.000Z", "time": "14:00"}])
    assert session_match(cls, WED, "14:00:00")
    assert not session_match(cls, date(2025, 1, 22), "14:00")


def test_session_match_with_datetime_date():
    cls = make_class(sessions=[Session(datetime(2025, 1, 15, 9, 45), "10:00")])
    assert resolve(cls, WED, "10:00")


def test_resolve_all_reports_both_paths():
    cls = make_class(days=[3], at="14:00", sessions=[{"date": "2025-01-15", "time": "14:00"}])
    match = resolve_all(cls, WED, "14:00")
    assert match.recurring and match.session
    assert bool(match)


def test_no_schedule_is_never_occupied():
    cls = make_class()
    assert cls.schedule.recurring is None
    assert not resolve(cls, WED, "14:00")


@pytest.mark.parametrize("bad_time", ["14h", "25:00", "", None])
def test_malformed_times_do_not_match(bad_time):
    cls = make_class(days=list(range(7)), at="14:00")
    assert resolve(cls, WED, bad_time) is False


def test_malformed_pattern_time_never_matches():
    cls = make_class(days=[3], at="two pm")
    assert resolve(cls, WED, "14:00") is False


def test_malformed_session_date_is_ignored():
    cls = make_class(sessions=[{"date": "not-a-date", "time": "14:00"}])
    assert resolve(cls, WED, "14:00") is False


def test_resolve_is_deterministic():
    cls = make_class(days=[1, 3], at="14:00", sessions=[{"date": "2025-01-16", "time": "09:00"}])
    first = [resolve(cls, d, t) for d in week_dates(WED) for t in default_time_slots()]
    second = [resolve(cls, d, t) for d in week_dates(WED) for t in default_time_slots()]
    assert first == second
    assert sum(first) == 3


def test_recurring_pattern_validation():
    with pytest.raises(ValueError):
        RecurringPattern([], "14:00")
    with pytest.raises(ValueError):
        RecurringPattern([7], "14:00")
    assert RecurringPattern([5, 1, 1], "14:00").weekdays == [1, 5]


def test_from_fields_without_time_has_no_pattern():
    spec = ScheduleSpec.from_fields([1, 2], None, [])
    assert spec.recurring is None
    assert spec.is_empty
