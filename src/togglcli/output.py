"""Raw, JSON and table rendering of Toggl entities."""

import json
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from itertools import groupby
from typing import Dict, List, Optional, Sequence

import typer
from rich.console import Console
from rich.table import Table

from .models import Client, Project, TimeEntry, Workspace

NO_ENTRIES = "No entries found!"


class Format(str, Enum):
    raw = "raw"
    json = "json"
    table = "table"


def format_hhmmss(value: timedelta) -> str:
    total = int(value.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def output_values_json(values: Sequence) -> None:
    """Print entities (anything with ``to_dict``) or plain values as a JSON array."""
    data = [v.to_dict() if hasattr(v, "to_dict") else v for v in values]
    typer.echo(json.dumps(data, indent=2, default=_json_default))


def _print_table(table: Table) -> None:
    Console().print(table)


def output_named_entities(fmt: Format, values: Sequence, title: str = "Name") -> None:
    """Output workspaces, projects or clients."""
    if not values:
        typer.echo(NO_ENTRIES)
        return

    if fmt == Format.json:
        output_values_json(values)
    elif fmt == Format.table:
        table = Table("ID", title, header_style="bold")
        for entity in values:
            table.add_row(str(entity.id), entity.name)
        _print_table(table)
    else:
        for entity in values:
            typer.echo(f'"{entity.name}"')


@dataclass
class OutputEntry:
    """A time entry with workspace, project and client names resolved."""

    id: int
    date: date
    duration: Optional[timedelta]  # None while running
    workspace: str
    project: str
    client: str
    description: str
    billable: bool

    @property
    def duration_text(self) -> str:
        return "running" if self.duration is None else format_hhmmss(self.duration)


def collect_output_entries(
    entries: List[TimeEntry],
    workspaces: List[Workspace],
    projects: List[Project],
    clients: List[Client],
) -> List[OutputEntry]:
    """Resolve names for time entries, oldest first."""
    workspace_lookup: Dict[int, Workspace] = {w.id: w for w in workspaces}
    project_lookup: Dict[int, Project] = {p.id: p for p in projects}
    client_lookup: Dict[int, Client] = {c.id: c for c in clients}

    output_entries = []
    for entry in sorted(entries, key=lambda e: e.start):
        workspace = workspace_lookup.get(entry.workspace_id)
        project = project_lookup.get(entry.project_id) if entry.project_id else None
        client = client_lookup.get(project.client_id) if project and project.client_id else None

        output_entries.append(OutputEntry(
            id=entry.id,
            date=entry.start.astimezone().date(),
            duration=None if entry.is_running else timedelta(seconds=entry.duration),
            workspace=workspace.name if workspace else "-",
            project=project.name if project else "-",
            client=client.name if client else "-",
            description=entry.description or "",
            billable=bool(entry.billable),
        ))
    return output_entries


def output_time_entries(
    fmt: Format, entries: List[TimeEntry], output_entries: List[OutputEntry]
) -> None:
    """Output a time entry listing, grouped per day in table format."""
    if not entries:
        typer.echo(NO_ENTRIES)
        return

    if fmt == Format.json:
        output_values_json(entries)
    elif fmt == Format.table:
        _output_time_entries_table(output_entries)
    else:
        for entry in output_entries:
            typer.echo("\t".join([
                entry.date.isoformat(),
                entry.duration_text,
                str(entry.id),
                entry.workspace,
                entry.project,
                entry.client,
                entry.description,
                "BILLABLE" if entry.billable else "NON_BILLABLE",
            ]))


def _output_time_entries_table(output_entries: List[OutputEntry]) -> None:
    table = Table(
        "Date", "Time", "Id", "Workspace", "Project", "Customer", "Description", "Billable",
        header_style="bold underline",
    )
    total = timedelta()

    for day, group in groupby(output_entries, key=lambda e: e.date):
        day_entries = list(group)
        day_sum = sum((e.duration for e in day_entries if e.duration is not None), timedelta())
        total += day_sum

        table.add_row(f"[bold]{day.isoformat()}[/bold]", f"[bold]{format_hhmmss(day_sum)}[/bold]")
        for entry in day_entries:
            billable = "[bold green]$[/bold green]" if entry.billable else "[bold red]$[/bold red]"
            table.add_row(
                "",
                f"[italic]{entry.duration_text}[/italic]",
                str(entry.id),
                entry.workspace,
                entry.project,
                entry.client,
                entry.description,
                billable,
            )

    table.add_section()
    table.add_row("[bold]Total[/bold]", f"[bold underline]{format_hhmmss(total)}[/bold underline]")
    _print_table(table)


def output_time_entry(fmt: Format, entry: TimeEntry) -> None:
    """Output a single (started, continued, edited or current) time entry."""
    tags = ", ".join(entry.tags or [])
    if fmt == Format.json:
        output_values_json([entry])
    elif fmt == Format.table:
        table = Table("Id", "Start", "Description", "Tags", header_style="bold underline")
        table.add_row(str(entry.id), entry.start.isoformat(), entry.description or "", tags)
        _print_table(table)
    else:
        typer.echo(f"{entry.id}\t{entry.start.isoformat()}\t{entry.description or ''}\t{tags}")


def output_missing_days(fmt: Format, days: List[datetime]) -> None:
    if not days:
        typer.echo(NO_ENTRIES)
        return

    if fmt == Format.json:
        output_values_json(days)
    elif fmt == Format.table:
        table = Table("Date", header_style="bold underline")
        for day in days:
            table.add_row(day.date().isoformat())
        _print_table(table)
    else:
        for day in days:
            typer.echo(f"{day.date().isoformat()}\tmissing")
