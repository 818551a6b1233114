"""Toggl data structures shared by the API clients and the CLI."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .errors import JsonError


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp as returned by Toggl."""
    if value is None:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    # Toggl mixes v8 (wid/pid/cid) and v9 (workspace_id/...) field names
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _required(data: Dict[str, Any], *keys: str) -> Any:
    value = _first(data, *keys)
    if value is None:
        raise KeyError(keys[0])
    return value


def _decode(kind: str, build, data: Any):
    if not isinstance(data, dict):
        raise JsonError(f"JSON error: expected {kind} object, got {type(data).__name__}")
    try:
        return build(data)
    except (KeyError, TypeError, ValueError) as e:
        raise JsonError(f"JSON error: invalid {kind} ({e!r})") from e


@dataclass
class Workspace:
    """Toggl workspace."""
    id: int
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workspace":
        return _decode("workspace", lambda d: cls(id=d["id"], name=d["name"]), data)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class Me:
    """The authenticated user."""
    id: int
    default_workspace_id: int
    email: str = ""
    fullname: str = ""
    timezone: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Me":
        return _decode("user", lambda d: cls(
            id=d["id"],
            default_workspace_id=_required(d, "default_workspace_id", "default_wid"),
            email=d.get("email") or "",
            fullname=d.get("fullname") or "",
            timezone=d.get("timezone") or "",
        ), data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "default_workspace_id": self.default_workspace_id,
            "email": self.email,
            "fullname": self.fullname,
            "timezone": self.timezone,
        }


@dataclass
class Project:
    """Toggl project."""
    id: int
    name: str
    workspace_id: int
    client_id: Optional[int] = None  # client id
    active: bool = True
    status: Optional[str] = None
    billable: Optional[bool] = None
    color: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return _decode("project", lambda d: cls(
            id=d["id"],
            name=d["name"],
            workspace_id=_required(d, "workspace_id", "wid"),
            client_id=_first(d, "client_id", "cid"),
            active=d.get("active", True),
            status=d.get("status"),
            billable=d.get("billable"),
            color=d.get("color"),
        ), data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "workspace_id": self.workspace_id,
            "client_id": self.client_id,
            "active": self.active,
            "status": self.status,
            "billable": self.billable,
            "color": self.color,
        }


@dataclass
class Client:
    """Toggl client (customer)."""
    id: int
    name: str
    workspace_id: int
    archived: bool = False
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Client":
        return _decode("client", lambda d: cls(
            id=d["id"],
            name=d["name"],
            workspace_id=_required(d, "workspace_id", "wid"),
            archived=d.get("archived", False),
            notes=d.get("notes"),
        ), data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "workspace_id": self.workspace_id,
            "archived": self.archived,
            "notes": self.notes,
        }


@dataclass
class TimeEntry:
    """Toggl time entry.

    A running entry has no stop time and a negative duration.
    """
    id: int
    workspace_id: int
    start: datetime
    duration: int
    project_id: Optional[int] = None
    billable: Optional[bool] = None
    stop: Optional[datetime] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self.duration < 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeEntry":
        return _decode("time entry", lambda d: cls(
            id=d["id"],
            workspace_id=_required(d, "workspace_id", "wid"),
            start=parse_timestamp(d["start"]),
            duration=d["duration"],
            project_id=_first(d, "project_id", "pid"),
            billable=d.get("billable"),
            stop=parse_timestamp(d.get("stop")),
            description=d.get("description"),
            tags=d.get("tags"),
            at=parse_timestamp(d.get("at")),
        ), data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "project_id": self.project_id,
            "billable": self.billable,
            "start": format_timestamp(self.start),
            "stop": format_timestamp(self.stop),
            "duration": self.duration,
            "description": self.description,
            "tags": self.tags,
            "at": format_timestamp(self.at),
        }


@dataclass
class ReportTimeEntry:
    """Single time entry inside a detailed report row."""
    id: int
    seconds: int
    start: datetime
    stop: Optional[datetime]
    at: Optional[datetime] = None

    @property
    def end(self) -> datetime:
        """Stop time, or start plus the tracked seconds while still running."""
        return self.stop or self.start + timedelta(seconds=self.seconds)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportTimeEntry":
        return _decode("report time entry", lambda d: cls(
            id=d["id"],
            seconds=d["seconds"],
            start=parse_timestamp(d["start"]),
            stop=parse_timestamp(d.get("stop")),
            at=parse_timestamp(d.get("at")),
        ), data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "seconds": self.seconds,
            "start": format_timestamp(self.start),
            "stop": format_timestamp(self.stop),
            "at": format_timestamp(self.at),
        }


@dataclass
class ReportDetail:
    """One row of the Reports API detailed search, grouped per user."""
    user_id: int
    username: str
    project_id: Optional[int] = None
    description: Optional[str] = None
    billable: bool = False
    time_entries: List[ReportTimeEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportDetail":
        return _decode("report row", lambda d: cls(
            user_id=d["user_id"],
            username=d["username"],
            project_id=d.get("project_id"),
            description=d.get("description"),
            billable=d.get("billable", False),
            time_entries=[ReportTimeEntry.from_dict(e) for e in d.get("time_entries") or []],
        ), data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "project_id": self.project_id,
            "description": self.description,
            "billable": self.billable,
            "time_entries": [e.to_dict() for e in self.time_entries],
        }
