"""Toggl Track API client for togglcli."""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import requests
import typer

from .config import config as config_manager
from .errors import JsonError, NetworkError, UrlError, from_status_code
from .models import Client, Me, Project, TimeEntry, Workspace
from .ranges import DATE_FORMAT, Range

CREATED_WITH = "togglcli"


class TogglHTTP:
    """Shared request handling for the Toggl API and Reports API."""

    BASE_URL = "https://api.track.toggl.com/api/v9/"
    SERVICE_NAME = "Toggl"

    def __init__(self, token: Optional[str] = None, debug: bool = False):
        self.token = token or config_manager.get_api_token()
        if not self.token:
            raise ValueError("API token not configured. Run 'togglcli init' first.")

        self.debug = debug
        self.session = requests.Session()
        # Toggl uses HTTP Basic Auth with <token>:api_token
        self.session.auth = (self.token, "api_token")
        self.session.headers.update({"Content-Type": "application/json"})

        self.logger = logging.getLogger(__name__)

    def _print_request(self, prepared: requests.PreparedRequest, body: Any) -> None:
        typer.secho("Request:", bold=True, underline=True)
        typer.echo(f"{prepared.method} {prepared.url}")
        # Includes the Authorization header, never share debug output
        for name, value in prepared.headers.items():
            typer.echo(f"{name}: {value}")
        if body is not None:
            typer.echo(f"Body: {json.dumps(body, indent=2, default=str)}")
        typer.echo()

    def _print_response(self, response: requests.Response) -> None:
        typer.secho("Response:", bold=True, underline=True)
        typer.echo(f"Status: {response.status_code}")
        for name, value in response.headers.items():
            typer.echo(f"{name}: {value}")
        typer.echo(response.text)
        typer.echo()

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Send a request and turn any non 200/201 status into a TogglError."""
        url = f"{self.BASE_URL}{endpoint.lstrip('/')}"
        timeout = kwargs.pop("timeout", (10, 30))

        try:
            self.logger.debug(f"Making {method} request to {url}")
            prepared = self.session.prepare_request(requests.Request(method, url, **kwargs))
            if self.debug:
                self._print_request(prepared, kwargs.get("json"))
            response = self.session.send(prepared, timeout=timeout)
        except (
            requests.exceptions.InvalidURL,
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
        ) as e:
            raise UrlError(f"URL error: {e}") from e
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Request error: {e}")
            raise NetworkError(f"Network error: {e}") from e

        if self.debug:
            self._print_response(response)

        if response.status_code not in (200, 201):
            self.logger.error(f"HTTP error {response.status_code}: {response.text}")
            raise from_status_code(
                response.status_code,
                response.text,
                self.SERVICE_NAME,
                retry_after=response.headers.get("Retry-After"),
            )

        return response

    def _decode_json(self, response: requests.Response) -> Any:
        try:
            data = response.json()
        except ValueError as e:
            self.logger.error(f"Failed to parse JSON response: {e}")
            raise JsonError(f"JSON error: {e}") from e

        if self.debug:
            typer.secho("Received JSON response:", bold=True, underline=True)
            typer.echo(json.dumps(data, indent=2))
            typer.echo()
        return data

    def _request_json(self, method: str, endpoint: str, **kwargs) -> Any:
        return self._decode_json(self._make_request(method, endpoint, **kwargs))

    def _request_list(self, method: str, endpoint: str, **kwargs) -> List[Dict[str, Any]]:
        data = self._request_json(method, endpoint, **kwargs)
        if data is None:
            return []
        if not isinstance(data, list):
            raise JsonError(f"JSON error: expected a list from {endpoint}")
        return data


class TogglAPI(TogglHTTP):
    """Toggl Track API v9 client."""

    def get_me(self) -> Me:
        return Me.from_dict(self._request_json("GET", "me"))

    def get_workspaces(self) -> List[Workspace]:
        return [Workspace.from_dict(w) for w in self._request_list("GET", "workspaces")]

    def get_workspace_projects(
        self, workspace_id: int, include_archived: bool = False
    ) -> List[Project]:
        """Get projects of a workspace, only active ones unless archived are included."""
        params = None if include_archived else {"active": "true"}
        data = self._request_list("GET", f"workspaces/{workspace_id}/projects", params=params)
        return [Project.from_dict(p) for p in data]

    def create_project(
        self,
        workspace_id: int,
        name: str,
        client_id: Optional[int] = None,
        billable: bool = True,
        color: Optional[str] = None,
    ) -> Project:
        data: Dict[str, Any] = {
            "name": name,
            "workspace_id": workspace_id,
            "active": True,
            "billable": billable,
        }
        if client_id is not None:
            data["client_id"] = client_id
        if color:
            data["color"] = color

        response_data = self._request_json("POST", f"workspaces/{workspace_id}/projects", json=data)
        return Project.from_dict(response_data)

    def get_workspace_clients(
        self, workspace_id: int, include_archived: bool = False
    ) -> List[Client]:
        """Get clients of a workspace. Toggl answers ``null`` when there are none."""
        status = "both" if include_archived else "active"
        data = self._request_list(
            "GET", f"workspaces/{workspace_id}/clients", params={"status": status}
        )
        return [Client.from_dict(c) for c in data]

    def create_client(self, workspace_id: int, name: str) -> Client:
        data = {"active": True, "name": name, "wid": workspace_id}
        response_data = self._request_json("POST", f"workspaces/{workspace_id}/clients", json=data)
        return Client.from_dict(response_data)

    def get_time_entries(
        self, time_range: Range, now: Optional[datetime] = None
    ) -> List[TimeEntry]:
        """Get the user's time entries for a range.

        ``end_date`` is exclusive on the Toggl side, which matches the
        half-open ranges produced by ``Range.as_range``.
        """
        start, end = time_range.as_range(now)
        params = {
            "start_date": start.strftime(DATE_FORMAT),
            "end_date": end.strftime(DATE_FORMAT),
        }
        data = self._request_list("GET", "me/time_entries", params=params)
        return [TimeEntry.from_dict(e) for e in data]

    def get_time_entry(self, time_entry_id: int) -> TimeEntry:
        return TimeEntry.from_dict(self._request_json("GET", f"me/time_entries/{time_entry_id}"))

    def get_current_time_entry(self) -> Optional[TimeEntry]:
        data = self._request_json("GET", "me/time_entries/current")
        if not data:
            return None
        return TimeEntry.from_dict(data)

    def create_time_entry(
        self,
        workspace_id: int,
        project_id: int,
        start: datetime,
        duration: timedelta,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        billable: bool = True,
    ) -> TimeEntry:
        """Create a finished time entry of ``duration`` starting at ``start``."""
        data = {
            "description": description,
            "workspace_id": workspace_id,
            "tags": tags,
            "duration": int(duration.total_seconds()),
            "start": start.isoformat(),
            "project_id": project_id,
            "created_with": CREATED_WITH,
            "billable": billable,
        }
        self.logger.debug(f"Time entry data: {data}")
        response_data = self._request_json(
            "POST", f"workspaces/{workspace_id}/time_entries", json=data
        )
        return TimeEntry.from_dict(response_data)

    def start_time_entry(
        self,
        workspace_id: int,
        project_id: int,
        start: datetime,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        billable: bool = True,
    ) -> TimeEntry:
        """Start a running time entry."""
        data = {
            "billable": billable,
            "created_with": CREATED_WITH,
            "description": description,
            "duration": -int(start.timestamp()),  # Negative duration for running timer
            "project_id": project_id,
            "start": start.isoformat(),
            "tags": tags,
            "workspace_id": workspace_id,
        }
        response_data = self._request_json(
            "POST", f"workspaces/{workspace_id}/time_entries", json=data
        )
        return TimeEntry.from_dict(response_data)

    def stop_time_entry(self, workspace_id: int, time_entry_id: int) -> TimeEntry:
        response_data = self._request_json(
            "PATCH", f"workspaces/{workspace_id}/time_entries/{time_entry_id}/stop"
        )
        return TimeEntry.from_dict(response_data)

    def delete_time_entry(self, workspace_id: int, time_entry_id: int) -> None:
        self._make_request("DELETE", f"workspaces/{workspace_id}/time_entries/{time_entry_id}")

    def update_time_entry(self, workspace_id: int, entry: TimeEntry) -> TimeEntry:
        """Overwrite the mutable fields of an existing time entry."""
        data = {
            "billable": entry.billable,
            "description": entry.description,
            "duration": entry.duration,
            "project_id": entry.project_id,
            "start": entry.start.isoformat(),
            "stop": entry.stop.isoformat() if entry.stop else None,
            "tags": entry.tags,
            "workspace_id": workspace_id,
        }
        response_data = self._request_json(
            "PUT", f"workspaces/{workspace_id}/time_entries/{entry.id}", json=data
        )
        return TimeEntry.from_dict(response_data)
