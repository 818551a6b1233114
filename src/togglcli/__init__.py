"""togglcli - terminal client for the Toggl Track API."""

__version__ = "0.1.0"
