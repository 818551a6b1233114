"""Main CLI entry point for togglcli."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import List, NoReturn, Optional, Sequence, Tuple

import typer
from click.shell_completion import get_completion_class

from .config import config as config_manager
from .config import mask_sensitive_value
from .models import parse_timestamp
from .output import (
    NO_ENTRIES,
    Format,
    collect_output_entries,
    output_missing_days,
    output_named_entities,
    output_time_entries,
    output_time_entry,
    output_values_json,
)
from .ranges import Range, RangeKind
from .report_api import TogglReportAPI
from .reports import (
    format_detailed_report,
    format_summary_report,
    summarize_projects,
    summarize_users,
)
from .toggl_api import TogglAPI

LUNCH_BREAK = timedelta(hours=1)
RANGE_HELP = (
    "'today', 'yesterday', 'this-week', 'last-week', 'this-month', 'last-month', "
    "ISO 8601 date '2021-11-01' or date range '2021-11-01|2021-11-02'"
)
START_HELP = "Start ('now' or ISO 8601 date time '2021-11-01T09:00:00+01:00')"

# Main app
app = typer.Typer(
    name="togglcli",
    help="togglcli - terminal client for the Toggl Track API",
    add_completion=False,
)

# Command groups
config_app = typer.Typer(help="Configuration commands")
workspace_app = typer.Typer(help="Workspaces")
project_app = typer.Typer(help="Projects (default workspace)")
client_app = typer.Typer(help="Clients (default workspace)")
time_entry_app = typer.Typer(help="Time entries")
report_app = typer.Typer(help="Reports")

app.add_typer(config_app, name="config")
app.add_typer(workspace_app, name="workspaces")
app.add_typer(project_app, name="projects")
app.add_typer(client_app, name="clients")
app.add_typer(time_entry_app, name="time-entries")
app.add_typer(report_app, name="reports")


@dataclass
class Options:
    """Global options shared by every command."""

    format: Format = Format.raw
    debug: bool = False
    ignore_case: bool = False


class Shell(str, Enum):
    bash = "bash"
    zsh = "zsh"
    fish = "fish"


@app.callback()
def main(
    ctx: typer.Context,
    output_format: Format = typer.Option(Format.raw, "--format", help="Output format"),
    debug: bool = typer.Option(
        False, "--debug", help="Print requests (including the Authorization header) and responses"
    ),
    ignore_case: bool = typer.Option(
        False, "--ignore-case", help="Match project and client names case-insensitively"
    ),
):
    """Terminal client for track.toggl.com."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING)
    ctx.obj = Options(format=output_format, debug=debug, ignore_case=ignore_case)


# ============================================================================
# HELPERS
# ============================================================================


def fail(error: Exception) -> NoReturn:
    """Print an error with its cause chain to stderr and exit non-zero."""
    typer.echo(f"❌ Error: {error}", err=True)
    cause = error.__cause__
    while cause is not None:
        typer.echo(f"   Caused by: {cause}", err=True)
        cause = cause.__cause__
    raise typer.Exit(1) from None


def get_api(options: Options) -> TogglAPI:
    return TogglAPI(debug=options.debug)


def parse_range(value: str) -> Range:
    return Range.parse(value)


def find_by_name(entities: Sequence, name: str, kind: str = "project", ignore_case: bool = False):
    """Find a project or client by name in an already fetched list."""
    if ignore_case:
        by_name = {entity.name.lower(): entity for entity in entities}
        key = name.lower()
    else:
        by_name = {entity.name: entity for entity in entities}
        key = name

    try:
        return by_name[key]
    except KeyError:
        raise LookupError(f"Cannot find {kind}='{name}'") from None


_DURATION_UNITS = {
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
}
_DURATION_PART = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]+)\s*")


def parse_duration(text: str) -> timedelta:
    """Parse durations like ``2 hours``, ``1h 30m`` or ``90min``.

    A bare number is read as minutes.
    """
    value = text.strip()
    if re.fullmatch(r"\d+", value):
        return timedelta(minutes=int(value))

    seconds = 0.0
    position = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != position:
            break
        unit = match.group(2).lower()
        if unit not in _DURATION_UNITS:
            raise ValueError(f"Invalid duration '{text}': unknown unit '{match.group(2)}'")
        seconds += float(match.group(1)) * _DURATION_UNITS[unit]
        position = match.end()

    if position == 0 or position != len(value):
        raise ValueError(f"Invalid duration '{text}', expected something like '2 hours' or '1h 30m'")
    return timedelta(seconds=seconds)


def parse_datetime(text: str) -> datetime:
    """Parse ``now`` or an ISO 8601 date time; naive values are local time."""
    if text.strip().lower() == "now":
        return datetime.now().astimezone()
    try:
        value = parse_timestamp(text.strip())
    except ValueError:
        raise ValueError(
            f"Invalid date time '{text}', expected 'now' or ISO 8601 like 2021-11-01T09:00:00+01:00"
        ) from None
    return value if value.tzinfo else value.astimezone()


def calculate_duration(
    start: datetime,
    end: Optional[datetime] = None,
    duration: Optional[timedelta] = None,
    lunch_break: bool = False,
) -> timedelta:
    """Duration to log: from ``end`` if given, else ``duration``, minus the lunch break."""
    if end is not None:
        if start >= end:
            raise ValueError(f"start='{start}' is greater or equal than end='{end}'")
        duration = end - start
    elif duration is None:
        raise ValueError("Please use either --duration or --end")
    elif duration <= timedelta(0):
        raise ValueError(f"Duration must be greater than 0, got '{duration}'")

    if lunch_break:
        duration = duration - LUNCH_BREAK
        if duration <= timedelta(0):
            raise ValueError("Duration minus lunch break is <= 0")

    return duration


def lunch_break_entries(start: datetime, duration: timedelta) -> List[Tuple[datetime, timedelta]]:
    """Split a workday into two halves around a one hour lunch break."""
    half = duration / 2
    return [(start, half), (start + half + LUNCH_BREAK, half)]


def split_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if not tags:
        return None
    return [tag.strip() for value in tags for tag in value.split(",") if tag.strip()]


def list_time_entries(
    api: TogglAPI, options: Options, time_range: Range, missing: bool = False
) -> None:
    """Print the time entries of a range, or the business days without any."""
    entries = api.get_time_entries(time_range)

    if missing:
        logged_days = {entry.start.astimezone().date() for entry in entries}
        missing_days = [
            day for day in time_range.get_datetimes() if day.date() not in logged_days
        ]
        output_missing_days(options.format, missing_days)
        return

    if not entries:
        typer.echo(NO_ENTRIES)
        return

    me = api.get_me()
    workspace_id = me.default_workspace_id
    workspaces = api.get_workspaces()
    projects = api.get_workspace_projects(workspace_id)
    clients = api.get_workspace_clients(workspace_id)

    output_entries = collect_output_entries(entries, workspaces, projects, clients)
    output_time_entries(options.format, entries, output_entries)


# ============================================================================
# CONFIG COMMANDS
# ============================================================================


@app.command("init")
def init():
    """Init settings (write the API token)."""
    try:
        config_manager.setup_interactive()
    except (OSError, ValueError) as e:
        fail(e)


@config_app.command("init")
def config_init():
    """Init settings (write the API token)."""
    init()


@config_app.command("show")
def config_show():
    """Show the configuration with the API token masked."""
    if not config_manager.exists():
        typer.echo("No configuration file found. Run 'togglcli config init' to create one.")
        return

    typer.echo(f"Configuration file: {config_manager.config_file}")
    for key, value in config_manager.items():
        typer.echo(f'{key} = "{mask_sensitive_value(key, str(value))}"')


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Configuration key (api_token)"),
    value: str = typer.Argument(..., help="New value"),
):
    """Update a configuration value."""
    try:
        if not config_manager.exists():
            raise FileNotFoundError("Configuration file not found. Run 'togglcli config init' first.")
        config_manager.set(key, value)
    except (OSError, KeyError, ValueError) as e:
        fail(e)

    typer.echo("Updated configuration:")
    typer.echo(f"  {key} = {mask_sensitive_value(key, value)}")


# ============================================================================
# WORKSPACE, PROJECT AND CLIENT COMMANDS
# ============================================================================


@workspace_app.command("list")
def workspace_list(ctx: typer.Context):
    """List all workspaces."""
    options: Options = ctx.obj
    try:
        api = get_api(options)
        output_named_entities(options.format, api.get_workspaces(), "Name")
    except Exception as e:
        fail(e)


@project_app.command("list")
def project_list(
    ctx: typer.Context,
    include_archived: bool = typer.Option(False, "--include-archived", help="Include archived projects"),
):
    """List projects of the default workspace."""
    options: Options = ctx.obj
    try:
        api = get_api(options)
        me = api.get_me()
        projects = api.get_workspace_projects(me.default_workspace_id, include_archived)
        output_named_entities(options.format, projects, "Name")
    except Exception as e:
        fail(e)


@project_app.command("create")
def project_create(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", "-n", help="Name of the project"),
    client: Optional[str] = typer.Option(None, "--client", "-c", help="Name of the client"),
    non_billable: bool = typer.Option(False, "--non-billable", help="Project is not billable"),
    color: Optional[str] = typer.Option(None, "--color", help="Hex color, e.g. #06aaf5"),
):
    """Create a project in the default workspace."""
    options: Options = ctx.obj
    try:
        api = get_api(options)
        me = api.get_me()
        workspace_id = me.default_workspace_id

        client_id = None
        if client:
            clients = api.get_workspace_clients(workspace_id, include_archived=True)
            client_id = find_by_name(clients, client, "client", options.ignore_case).id

        project = api.create_project(
            workspace_id, name, client_id=client_id, billable=not non_billable, color=color
        )
        output_named_entities(options.format, [project], "Name")
    except Exception as e:
        fail(e)


@client_app.command("list")
def client_list(
    ctx: typer.Context,
    include_archived: bool = typer.Option(False, "--include-archived", help="Include archived clients"),
):
    """List clients of the default workspace."""
    options: Options = ctx.obj
    try:
        api = get_api(options)
        me = api.get_me()
        clients = api.get_workspace_clients(me.default_workspace_id, include_archived)
        output_named_entities(options.format, clients, "Name")
    except Exception as e:
        fail(e)


@client_app.command("create")
def client_create(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", "-n", help="Name of the client"),
):
    """Create a client in the default workspace."""
    options: Options = ctx.obj
    try:
        api = get_api(options)
        me = api.get_me()
        created = api.create_client(me.default_workspace_id, name)
        output_named_entities(options.format, [created], "Name")
    except Exception as e:
        fail(e)


# ============================================================================
# TIME ENTRY COMMANDS
# ============================================================================


@time_entry_app.command("list")
def time_entry_list(
    ctx: typer.Context,
    range_spec: str = typer.Option("today", "--range", help=RANGE_HELP),
    missing: bool = typer.Option(False, "--missing", help="Show business days without time entries"),
):
    """List time entries."""
    options: Options = ctx.obj
    try:
        time_range = parse_range(range_spec)
        list_time_entries(get_api(options), options, time_range, missing)
    except Exception as e:
        fail(e)


@time_entry_app.command("create")
def time_entry_create(
    ctx: typer.Context,
    project: str = typer.Option(..., "--project", "-p", help="Name of the project"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description of the timer"),
    tags: Optional[List[str]] = typer.Option(None, "--tags", help="Tags (repeat or comma separate)"),
    duration: Optional[str] = typer.Option(None, "--duration", help="Duration ('2 hours', '1h 30m')"),
    end: Optional[str] = typer.Option(None, "--end", help="End (ISO 8601 date time)"),
    start: str = typer.Option("now", "--start", help=START_HELP),
    lunch_break: bool = typer.Option(False, "--lunch-break", help="Split into two entries around a one hour lunch break"),
    non_billable: bool = typer.Option(False, "--non-billable", help="Time entry is not billable"),
):
    """Create a time entry, optionally split around a lunch break."""
    options: Options = ctx.obj
    try:
        start_at = parse_datetime(start)
        total = calculate_duration(
            start_at,
            end=parse_datetime(end) if end else None,
            duration=parse_duration(duration) if duration else None,
            lunch_break=lunch_break,
        )
        parts = lunch_break_entries(start_at, total) if lunch_break else [(start_at, total)]

        api = get_api(options)
        me = api.get_me()
        workspace_id = me.default_workspace_id
        projects = api.get_workspace_projects(workspace_id)
        found = find_by_name(projects, project, "project", options.ignore_case)

        # A failure on the second half leaves the first one in place
        for part_start, part_duration in parts:
            api.create_time_entry(
                workspace_id,
                found.id,
                part_start,
                part_duration,
                description=description,
                tags=split_tags(tags),
                billable=not non_billable,
            )

        list_time_entries(api, options, Range(RangeKind.TODAY))
    except Exception as e:
        fail(e)


@time_entry_app.command("start")
def time_entry_start(
    ctx: typer.Context,
    project: str = typer.Option(..., "--project", "-p", help="Name of the project"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description of the timer"),
    tags: Optional[List[str]] = typer.Option(None, "--tags", help="Tags (repeat or comma separate)"),
    non_billable: bool = typer.Option(False, "--non-billable", help="Time entry is not billable"),
):
    """Start a running time entry now."""
    options: Options = ctx.obj
    try:
        api = get_api(options)
        me = api.get_me()
        workspace_id = me.default_workspace_id
        projects = api.get_workspace_projects(workspace_id)
        found = find_by_name(projects, project, "project", options.ignore_case)

        started = api.start_time_entry(
            workspace_id,
            found.id,
            datetime.now().astimezone(),
            description=description,
            tags=split_tags(tags),
            billable=not non_billable,
        )
        output_time_entry(options.format, started)
    except Exception as e:
        fail(e)


@time_entry_app.command("stop")
def time_entry_stop(
    ctx: typer.Context,
    time_entry_id: Optional[int] = typer.Option(None, "--id", help="Time entry id, defaults to the running one"),
):
    """Stop a time entry (the running one unless --id is given)."""
    options: Options = ctx.obj
    try:
        api = get_api(options)
        me = api.get_me()

        if time_entry_id is not None:
            api.stop_time_entry(me.default_workspace_id, time_entry_id)
        else:
            current = api.get_current_time_entry()
            if current is None:
                typer.echo("No timer is currently running")
            else:
                api.stop_time_entry(me.default_workspace_id, current.id)
                typer.echo(f"Stopped timer: {current.description or ''}")

        list_time_entries(api, options, Range(RangeKind.TODAY))
    except Exception as e:
        fail(e)


@time_entry_app.command("delete")
def time_entry_delete(
    ctx: typer.Context,
    time_entry_id: int = typer.Option(..., "--id", help="Time entry id"),
):
    """Delete a time entry."""
    options: Options = ctx.obj
    try:
        api = get_api(options)
        me = api.get_me()
        api.delete_time_entry(me.default_workspace_id, time_entry_id)
        list_time_entries(api, options, Range(RangeKind.TODAY))
    except Exception as e:
        fail(e)


@time_entry_app.command("show")
def time_entry_show(
    ctx: typer.Context,
    time_entry_id: int = typer.Option(..., "--id", help="Time entry id"),
):
    """Show details of a time entry."""
    options: Options = ctx.obj
    try:
        api = get_api(options)
        entry = api.get_time_entry(time_entry_id)

        me = api.get_me()
        workspace_id = me.default_workspace_id
        output_entries = collect_output_entries(
            [entry],
            api.get_workspaces(),
            api.get_workspace_projects(workspace_id),
            api.get_workspace_clients(workspace_id),
        )
        output_time_entries(options.format, [entry], output_entries)
    except Exception as e:
        fail(e)


@time_entry_app.command("current")
def time_entry_current(ctx: typer.Context):
    """Show the running time entry."""
    options: Options = ctx.obj
    try:
        current = get_api(options).get_current_time_entry()
        if current is None:
            typer.echo("No timer is currently running")
        else:
            output_time_entry(options.format, current)
    except Exception as e:
        fail(e)


@time_entry_app.command("continue")
def time_entry_continue(
    ctx: typer.Context,
    time_entry_id: Optional[int] = typer.Option(None, "--id", help="Time entry id, defaults to the last one stopped today"),
):
    """Start a new time entry with the details of an earlier one."""
    options: Options = ctx.obj
    try:
        api = get_api(options)
        me = api.get_me()

        if time_entry_id is not None:
            entry = api.get_time_entry(time_entry_id)
        else:
            stopped = [e for e in api.get_time_entries(Range(RangeKind.TODAY)) if e.stop is not None]
            if not stopped:
                raise LookupError("No completed time entries found today")
            entry = max(stopped, key=lambda e: e.stop)

        if entry.project_id is None:
            raise LookupError("Entry has no project")

        started = api.start_time_entry(
            me.default_workspace_id,
            entry.project_id,
            datetime.now().astimezone(),
            description=entry.description,
            tags=entry.tags,
            billable=bool(entry.billable),
        )
        output_time_entry(options.format, started)
    except Exception as e:
        fail(e)


@time_entry_app.command("edit")
def time_entry_edit(
    ctx: typer.Context,
    time_entry_id: int = typer.Option(..., "--id", help="Time entry id"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="New project name"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="New description"),
    tags: Optional[List[str]] = typer.Option(None, "--tags", help="New tags (repeat or comma separate)"),
    start: Optional[str] = typer.Option(None, "--start", help="New start (ISO 8601 date time)"),
    end: Optional[str] = typer.Option(None, "--end", help="New end (ISO 8601 date time)"),
    toggle_billable: bool = typer.Option(False, "--toggle-billable", help="Flip the billable flag"),
):
    """Edit fields of an existing time entry."""
    options: Options = ctx.obj
    try:
        new_start = parse_datetime(start) if start else None
        new_end = parse_datetime(end) if end else None

        api = get_api(options)
        entry = api.get_time_entry(time_entry_id)
        me = api.get_me()
        workspace_id = me.default_workspace_id

        if project is not None:
            projects = api.get_workspace_projects(workspace_id)
            entry.project_id = find_by_name(projects, project, "project", options.ignore_case).id
        if description is not None:
            entry.description = description
        if tags:
            entry.tags = split_tags(tags)
        if new_start is not None:
            entry.start = new_start
        if new_end is not None:
            entry.stop = new_end
        if toggle_billable:
            entry.billable = not bool(entry.billable)

        if new_start is not None or new_end is not None:
            if entry.stop is not None:
                entry.duration = int(calculate_duration(entry.start, end=entry.stop).total_seconds())
            else:
                entry.duration = -int(entry.start.timestamp())

        updated = api.update_time_entry(workspace_id, entry)
        output_time_entry(options.format, updated)
    except Exception as e:
        fail(e)


# ============================================================================
# REPORT COMMANDS
# ============================================================================


def fetch_report_rows(options: Options, time_range: Range):
    api = get_api(options)
    me = api.get_me()
    report_api = TogglReportAPI(debug=options.debug)
    return api, me, report_api.search_time_entries(me.default_workspace_id, time_range)


@report_app.command("detailed")
def report_detailed(
    ctx: typer.Context,
    range_spec: str = typer.Option("this-month", "--range", help=RANGE_HELP),
):
    """Per user and day work time with break warnings."""
    options: Options = ctx.obj
    try:
        time_range = parse_range(range_spec)
        _, _, rows = fetch_report_rows(options, time_range)

        if options.format == Format.json:
            if rows:
                output_values_json(rows)
            else:
                typer.echo(NO_ENTRIES)
            return

        for line in format_detailed_report(time_range, summarize_users(rows)):
            typer.echo(line)
    except Exception as e:
        fail(e)


@report_app.command("summary")
def report_summary(
    ctx: typer.Context,
    range_spec: str = typer.Option("this-month", "--range", help=RANGE_HELP),
):
    """Per user work time split by project."""
    options: Options = ctx.obj
    try:
        time_range = parse_range(range_spec)
        api, me, rows = fetch_report_rows(options, time_range)
        totals = summarize_projects(rows)

        if options.format == Format.json:
            if not totals:
                typer.echo(NO_ENTRIES)
                return
            output_values_json([
                {
                    "username": username,
                    "projects": [
                        {"project_id": pid, "seconds": int(spent.total_seconds())}
                        for pid, spent in projects.items()
                    ],
                }
                for username, projects in sorted(totals.items())
            ])
            return

        projects = api.get_workspace_projects(me.default_workspace_id, include_archived=True)
        project_names = {p.id: p.name for p in projects}
        for line in format_summary_report(time_range, totals, project_names):
            typer.echo(line)
    except Exception as e:
        fail(e)


# ============================================================================
# SHELL COMPLETION
# ============================================================================


@app.command("completions")
def completions(shell: Shell = typer.Argument(..., help="Shell to generate the script for")):
    """Print a shell completion script."""
    command = typer.main.get_command(app)
    completion_class = get_completion_class(shell.value)
    completion = completion_class(command, {}, "togglcli", "_TOGGLCLI_COMPLETE")
    typer.echo(completion.source())


if __name__ == "__main__":
    app()
