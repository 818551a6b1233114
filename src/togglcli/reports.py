"""Per-user, per-day aggregation of detailed report rows.

Days are checked against the German working time act (ArbZG section 4):
more than six hours of work need a 30 minute break, more than nine hours
need 45 minutes. Working more than ten hours, starting before 06:00 or
stopping after 22:00 are flagged as well. The thresholds are fixed.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from .models import ReportDetail, ReportTimeEntry
from .ranges import Range

SHORT_BREAK_AFTER = timedelta(hours=6)
LONG_BREAK_AFTER = timedelta(hours=9)
MAX_WORK = timedelta(hours=10)
SHORT_BREAK = timedelta(minutes=30)
LONG_BREAK = timedelta(minutes=45)
EARLIEST_START = time(6, 0)
LATEST_END = time(22, 0)


def format_duration(value: timedelta) -> str:
    """Render a duration as ``7h 5m 3s``, leaving out zero parts."""
    total = int(value.total_seconds())
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds or not parts:
        parts.append(f"{seconds}s")
    return sign + " ".join(parts)


@dataclass
class DaySummary:
    """Work done by one user on one calendar day."""

    day: date
    start: datetime
    end: datetime
    worked: timedelta
    warnings: List[str] = field(default_factory=list)

    @property
    def break_time(self) -> timedelta:
        return (self.end - self.start) - self.worked


@dataclass
class UserSummary:
    username: str
    days: List[DaySummary] = field(default_factory=list)

    @property
    def total(self) -> timedelta:
        return sum((d.worked for d in self.days), timedelta())


def check_policy(
    day: date, worked: timedelta, break_time: timedelta, start: datetime, end: datetime
) -> List[str]:
    """Return the rule violations for a single day.

    ``day`` is the local date the work started on; an end on a later date is
    past 22:00 by definition.
    """
    warnings = []
    hours = format_duration(worked)

    if worked > MAX_WORK:
        warnings.append("more than 10 hours")

    if start.time() < EARLIEST_START:
        warnings.append("Start time is before 6am")

    if end.date() > day or end.time() > LATEST_END:
        warnings.append("End time is after 10pm")

    if SHORT_BREAK_AFTER < worked <= LONG_BREAK_AFTER and break_time < SHORT_BREAK:
        warnings.append(f"Worked for {hours} => break should be at least 30 minutes!")
    elif worked > LONG_BREAK_AFTER and break_time < LONG_BREAK:
        warnings.append(f"Worked for {hours} => break should be at least 45 minutes!")

    return warnings


def summarize_day(day: date, entries: List[ReportTimeEntry]) -> DaySummary:
    start = min(e.start for e in entries).astimezone()
    end = max(e.end for e in entries).astimezone()
    worked = timedelta(seconds=sum(e.seconds for e in entries))
    summary = DaySummary(day=day, start=start, end=end, worked=worked)
    summary.warnings = check_policy(day, worked, summary.break_time, start, end)
    return summary


def group_by_user(rows: Iterable[ReportDetail]) -> Dict[str, List[ReportTimeEntry]]:
    by_user: Dict[str, List[ReportTimeEntry]] = defaultdict(list)
    for row in rows:
        by_user[row.username].extend(row.time_entries)
    return by_user


def summarize_users(rows: Iterable[ReportDetail]) -> List[UserSummary]:
    """Group report rows by user and local start date."""
    users = []
    for username, entries in sorted(group_by_user(rows).items()):
        by_day: Dict[date, List[ReportTimeEntry]] = defaultdict(list)
        for entry in entries:
            by_day[entry.start.astimezone().date()].append(entry)

        user = UserSummary(username=username)
        for day in sorted(by_day):
            user.days.append(summarize_day(day, by_day[day]))
        users.append(user)
    return users


def format_day(summary: DaySummary) -> str:
    line = (
        f"{summary.day.isoformat()} - {summary.start:%H:%M} - {summary.end:%H:%M}"
        f" | Work: {format_duration(summary.worked)}, Break: {format_duration(summary.break_time)}"
    )
    if summary.warnings:
        line += " | " + ", ".join(summary.warnings)
    return line


def format_detailed_report(time_range: Range, users: List[UserSummary]) -> List[str]:
    """Render the detailed report as lines of text."""
    lines = [f"Range: {time_range}"]
    if not users:
        lines += ["", "No time entries found."]
        return lines

    for user in users:
        lines += ["", f"{user.username} - {format_duration(user.total)}", ""]
        lines += [format_day(day) for day in user.days]
    return lines


def summarize_projects(
    rows: Iterable[ReportDetail],
) -> Dict[str, Dict[Optional[int], timedelta]]:
    """Total worked time per user and project id (``None`` for no project)."""
    totals: Dict[str, Dict[Optional[int], timedelta]] = defaultdict(lambda: defaultdict(timedelta))
    for row in rows:
        seconds = sum(e.seconds for e in row.time_entries)
        totals[row.username][row.project_id] += timedelta(seconds=seconds)
    return totals


def format_summary_report(
    time_range: Range,
    totals: Dict[str, Dict[Optional[int], timedelta]],
    project_names: Dict[int, str],
) -> List[str]:
    lines = [f"Range: {time_range}"]
    if not totals:
        lines += ["", "No time entries found."]
        return lines

    for username in sorted(totals):
        projects = totals[username]
        total = sum(projects.values(), timedelta())
        lines += ["", f"{username} - {format_duration(total)}", ""]
        ordered: List[Tuple[str, timedelta]] = sorted(
            (
                (project_names.get(pid, "-") if pid is not None else "-", spent)
                for pid, spent in projects.items()
            ),
            key=lambda item: item[1],
            reverse=True,
        )
        for name, spent in ordered:
            lines.append(f"{name}: {format_duration(spent)}")
    return lines
