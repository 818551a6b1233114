"""Tests for the settings file."""

from unittest.mock import patch

import pytest
import requests

from togglcli.config import Config, mask_sensitive_value


@pytest.fixture
def config(tmp_path):
    return Config(tmp_path)


def test_missing_file(config):
    assert not config.exists()
    assert config.get_api_token() is None


def test_token_persists(config, tmp_path):
    config.set_api_token("abc123")

    assert config.exists()
    assert Config(tmp_path).get_api_token() == "abc123"
    assert (tmp_path / "settings.toml").read_text() == 'api_token = "abc123"\n'


def test_reads_existing_settings_toml(tmp_path):
    (tmp_path / "settings.toml").write_text('api_token = "1971800d4d82861d8f2c1651fea4d212"\n')

    config = Config(tmp_path)

    assert config.exists()
    assert config.get_api_token() == "1971800d4d82861d8f2c1651fea4d212"


def test_empty_token_rejected(config):
    with pytest.raises(ValueError, match="cannot be empty"):
        config.set_api_token("")


def test_unknown_key_rejected(config):
    with pytest.raises(KeyError):
        config.set("workspace", "1")


def test_broken_toml_is_reported(tmp_path, capsys):
    (tmp_path / "settings.toml").write_text("api_token = [unclosed")

    config = Config(tmp_path)

    assert config.get_api_token() is None
    assert "Error loading config" in capsys.readouterr().err


@pytest.mark.parametrize(
    "key, value, expected",
    [
        ("api_token", "abcdefghijklmnop", "abcd...mnop"),
        ("api_token", "short", "*****"),
        ("api_token", "12345678", "*****"),
        ("other", "visible", "visible"),
    ],
)
def test_mask_sensitive_value(key, value, expected):
    assert mask_sensitive_value(key, value) == expected


def test_validate_token(config):
    with patch("togglcli.config.requests.get") as get:
        get.return_value.status_code = 200
        assert config.validate_token("t") is True
        get.assert_called_once_with(
            "https://api.track.toggl.com/api/v9/me", auth=("t", "api_token"), timeout=10
        )

        get.return_value.status_code = 403
        assert config.validate_token("t") is False


def test_validate_token_network_failure(config):
    with patch("togglcli.config.requests.get", side_effect=requests.exceptions.ConnectionError()):
        assert config.validate_token("t") is False


def test_setup_interactive_keeps_existing_file(config):
    config.set_api_token("keep-me")

    with patch("togglcli.config.typer.confirm", return_value=False), \
            patch("togglcli.config.typer.prompt") as prompt:
        config.setup_interactive()

    prompt.assert_not_called()
    assert config.get_api_token() == "keep-me"


def test_setup_interactive_saves_unvalidated_token(config, capsys):
    with patch("togglcli.config.typer.prompt", return_value="new-token"), \
            patch.object(config, "validate_token", return_value=False):
        config.setup_interactive()

    assert config.get_api_token() == "new-token"
    assert "could not be validated" in capsys.readouterr().out
