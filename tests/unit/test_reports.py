"""Tests for the per-day report aggregation and break checks."""

from datetime import date, datetime, timedelta

import pytest

from conftest import CET
from togglcli.models import ReportDetail, ReportTimeEntry
from togglcli.ranges import Range
from togglcli.reports import (
    check_policy,
    format_day,
    format_detailed_report,
    format_duration,
    format_summary_report,
    summarize_day,
    summarize_projects,
    summarize_users,
)

DAY = date(2024, 1, 8)


def at(hour, minute=0, day=8):
    return datetime(2024, 1, day, hour, minute, tzinfo=CET)


def entry(entry_id, start, stop):
    return ReportTimeEntry(
        id=entry_id, seconds=int((stop - start).total_seconds()), start=start, stop=stop
    )


def row(username, entries, project_id=7):
    return ReportDetail(user_id=1, username=username, project_id=project_id, time_entries=entries)


@pytest.mark.parametrize(
    "value, expected",
    [
        (timedelta(0), "0s"),
        (timedelta(hours=7, minutes=20), "7h 20m"),
        (timedelta(hours=1, minutes=1, seconds=1), "1h 1m 1s"),
        (timedelta(minutes=45), "45m"),
        (timedelta(hours=8), "8h"),
    ],
)
def test_format_duration(value, expected):
    assert format_duration(value) == expected


class TestCheckPolicy:
    def test_more_than_ten_hours(self):
        summary = summarize_day(DAY, [entry(1, at(8), at(13)), entry(2, at(13, 30), at(19, 30))])

        assert summary.worked == timedelta(hours=11)
        assert "more than 10 hours" in summary.warnings
        assert any("at least 45 minutes" in w for w in summary.warnings)

    def test_short_break_after_six_hours(self):
        summary = summarize_day(DAY, [entry(1, at(8), at(12)), entry(2, at(12, 20), at(15, 20))])

        assert summary.break_time == timedelta(minutes=20)
        assert summary.warnings == ["Worked for 7h => break should be at least 30 minutes!"]

    def test_six_hours_need_no_break(self):
        summary = summarize_day(DAY, [entry(1, at(8), at(14))])

        assert summary.warnings == []

    def test_enough_break(self):
        summary = summarize_day(DAY, [entry(1, at(8), at(12)), entry(2, at(12, 45), at(17, 45))])

        assert summary.worked == timedelta(hours=9)
        assert summary.warnings == []

    def test_early_start(self):
        warnings = check_policy(DAY, timedelta(hours=2), timedelta(0), at(5, 30), at(7, 30))

        assert warnings == ["Start time is before 6am"]

    def test_late_end(self):
        warnings = check_policy(DAY, timedelta(hours=2), timedelta(0), at(20, 30), at(22, 30))

        assert warnings == ["End time is after 10pm"]

    def test_end_after_midnight(self):
        summary = summarize_day(DAY, [entry(1, at(20), at(0, 30, day=9))])

        assert summary.end.date() == date(2024, 1, 9)
        assert summary.warnings == ["End time is after 10pm"]

    def test_end_exactly_at_ten(self):
        summary = summarize_day(DAY, [entry(1, at(20), at(22))])

        assert summary.warnings == []

    def test_running_entry_ends_after_tracked_seconds(self):
        running = ReportTimeEntry(id=9, seconds=3600, start=at(16), stop=None)

        summary = summarize_day(DAY, [entry(1, at(9), at(12)), running])

        assert summary.end == at(17)
        assert summary.worked == timedelta(hours=4)
        assert summary.break_time == timedelta(hours=4)


def test_format_day_includes_warnings():
    summary = summarize_day(DAY, [entry(1, at(8), at(12)), entry(2, at(12, 20), at(15, 20))])

    assert format_day(summary) == (
        "2024-01-08 - 08:00 - 15:20 | Work: 7h, Break: 20m"
        " | Worked for 7h => break should be at least 30 minutes!"
    )


def test_summarize_users_groups_by_user_and_day():
    rows = [
        row("zoe", [entry(1, at(9), at(10))]),
        row("adam", [entry(2, at(9), at(11)), entry(3, at(9, day=9), at(12, day=9))]),
        row("adam", [entry(4, at(13), at(14))]),
    ]

    users = summarize_users(rows)

    assert [u.username for u in users] == ["adam", "zoe"]
    adam = users[0]
    assert [d.day for d in adam.days] == [date(2024, 1, 8), date(2024, 1, 9)]
    assert adam.days[0].worked == timedelta(hours=3)
    assert adam.days[0].break_time == timedelta(hours=2)
    assert adam.total == timedelta(hours=6)


def test_detailed_report_without_rows():
    assert format_detailed_report(Range.parse("today"), []) == [
        "Range: today",
        "",
        "No time entries found.",
    ]


def test_detailed_report_lines():
    users = summarize_users([row("jane", [entry(1, at(9), at(10))])])

    lines = format_detailed_report(Range.parse("2024-01-08"), users)

    assert lines == [
        "Range: 2024-01-08",
        "",
        "jane - 1h",
        "",
        "2024-01-08 - 09:00 - 10:00 | Work: 1h, Break: 0s",
    ]


def test_summary_report_orders_projects_by_time():
    rows = [
        row("jane", [entry(1, at(9), at(10))], project_id=7),
        row("jane", [entry(2, at(10), at(13))], project_id=8),
        row("jane", [entry(3, at(13), at(13, 30))], project_id=None),
    ]

    totals = summarize_projects(rows)
    lines = format_summary_report(Range.parse("today"), totals, {7: "Alpha", 8: "Beta"})

    assert totals["jane"][8] == timedelta(hours=3)
    assert lines == [
        "Range: today",
        "",
        "jane - 4h 30m",
        "",
        "Beta: 3h",
        "Alpha: 1h",
        "-: 30m",
    ]
