"""Global pytest fixtures for togglcli tests."""

import json
import os
import tempfile
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest

# Dates in the tests are written for Europe/Berlin; keep the real config dir untouched
os.environ["TZ"] = "Europe/Berlin"
if hasattr(time, "tzset"):
    time.tzset()
os.environ.setdefault("TOGGLCLI_CONFIG_DIR", tempfile.mkdtemp(prefix="togglcli-test-"))

from togglcli.models import Client, Me, Project, TimeEntry, Workspace  # noqa: E402

CET = timezone(timedelta(hours=1))


def make_response(status=200, data=None, headers=None, text=None):
    """Build a fake requests.Response."""
    response = Mock()
    response.status_code = status
    response.json.return_value = data
    response.headers = headers or {}
    response.text = text if text is not None else json.dumps(data)
    return response


@pytest.fixture
def mock_session():
    """Patch requests.Session used by the API clients."""
    with patch("togglcli.toggl_api.requests.Session") as session_cls:
        session = session_cls.return_value
        session.headers = {}
        session.send.return_value = make_response(data={})
        yield session


@pytest.fixture
def sample_me():
    return Me(id=1, default_workspace_id=1234567, email="jane@example.com", fullname="Jane Doe")


@pytest.fixture
def sample_workspace():
    return Workspace(id=1234567, name="Acme")


@pytest.fixture
def sample_client():
    return Client(id=42, name="Initech", workspace_id=1234567)


@pytest.fixture
def sample_project():
    return Project(
        id=987, name="Alpha", workspace_id=1234567, client_id=42, billable=True, color="#06aaf5"
    )


@pytest.fixture
def sample_time_entry():
    return TimeEntry(
        id=555,
        workspace_id=1234567,
        project_id=987,
        billable=True,
        start=datetime(2024, 1, 8, 9, 0, tzinfo=CET),
        stop=datetime(2024, 1, 8, 11, 0, tzinfo=CET),
        duration=7200,
        description="Code review",
        tags=["review"],
    )


@pytest.fixture
def mock_toggl_api(sample_me, sample_workspace, sample_project, sample_client):
    """Mock Toggl API client."""
    mock = Mock()
    mock.get_me.return_value = sample_me
    mock.get_workspaces.return_value = [sample_workspace]
    mock.get_workspace_projects.return_value = [sample_project]
    mock.get_workspace_clients.return_value = [sample_client]
    mock.get_time_entries.return_value = []
    mock.get_current_time_entry.return_value = None
    return mock
