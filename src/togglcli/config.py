"""Configuration management for togglcli."""

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

import requests
import tomli_w
import typer

APP_NAME = "togglcli"
SETTINGS_FILE = "settings.toml"
VALID_KEYS = ("api_token",)


def mask_sensitive_value(key: str, value: str) -> str:
    """Hide all but the first and last four characters of secrets."""
    if key != "api_token":
        return value
    if len(value) > 8:
        return f"{value[:4]}...{value[-4:]}"
    return "*****"


class Config:
    """Settings file holding the Toggl API token."""

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            override = os.environ.get("TOGGLCLI_CONFIG_DIR")
            config_dir = Path(override) if override else Path(typer.get_app_dir(APP_NAME))
        self.config_dir = config_dir
        self.config_file = self.config_dir / SETTINGS_FILE
        self._config_data: dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "rb") as f:
                    self._config_data = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                typer.echo(f"Error loading config: {e}", err=True)
                self._config_data = {}
        else:
            self._config_data = {}

    def _save_config(self) -> None:
        """Save configuration to file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, "wb") as f:
            tomli_w.dump(self._config_data, f)

    def exists(self) -> bool:
        return self.config_file.exists()

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config_data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        if key not in VALID_KEYS:
            raise KeyError(
                f"Unknown configuration key: {key}. Valid keys: {', '.join(VALID_KEYS)}"
            )
        self._config_data[key] = value
        self._save_config()

    def items(self):
        return self._config_data.items()

    def get_api_token(self) -> Optional[str]:
        """Get Toggl API token."""
        return self.get("api_token")

    def set_api_token(self, token: str) -> None:
        if not token:
            raise ValueError("API token cannot be empty")
        self.set("api_token", token)

    def validate_token(self, token: str) -> bool:
        """Check a token against the Toggl ``me`` endpoint."""
        try:
            response = requests.get(
                "https://api.track.toggl.com/api/v9/me",
                auth=(token, "api_token"),
                timeout=10,
            )
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def setup_interactive(self) -> None:
        """Interactive configuration setup."""
        typer.echo("togglcli Configuration Setup")
        typer.echo("=" * 30)

        if self.exists():
            if not typer.confirm(f"Override {self.config_file}?"):
                typer.echo("Do nothing!")
                return
            typer.echo(f"Override settings file {self.config_file}")

        token = typer.prompt("New API token", hide_input=True)

        typer.echo("Validating Toggl token...")
        if not self.validate_token(token):
            typer.echo("⚠️  Token could not be validated against Toggl, saving anyway")

        self.set_api_token(token)
        typer.echo(f"✅ Wrote settings file to {self.config_file}")


# Global config instance
config = Config()
