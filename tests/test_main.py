"""Tests for the main entry point."""

from unittest.mock import patch

import pytest

from review_triage_bot.config import Config
from review_triage_bot.main import _parse_args, main


def make_config(**overrides) -> Config:
    """Create a Config with every server field filled, overriding specific fields."""
    defaults = dict(
        queue_url="https://sqs.ap-northeast-1.amazonaws.com/123/NegativeReviews",
        asana_workspace_id="111",
        asana_project_id="222",
        bot_token="xoxb-fake",
        signing_secret="secret",
        verification_token="verify",
        asana_access_token="asana",
    )
    defaults.update(overrides)
    return Config(**defaults)


# ── Argument parsing ──────────────────────────────────────────────


class TestParseArgs:
    def test_defaults(self):
        args = _parse_args([])
        assert args.config is None
        assert args.log_level == "INFO"
        assert args.host == "0.0.0.0"
        assert args.port is None

    def test_config_flag(self):
        args = _parse_args(["--config", "/tmp/my.yaml"])
        assert args.config == "/tmp/my.yaml"

    def test_port_flag(self):
        assert _parse_args(["--port", "8080"]).port == 8080

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            _parse_args(["--log-level", "TRACE"])


# ── main() startup ────────────────────────────────────────────────


class TestMainStartup:
    @patch("review_triage_bot.main.uvicorn.run")
    @patch("review_triage_bot.main.create_app")
    @patch("review_triage_bot.main.load_config")
    def test_main_loads_config_and_serves(self, mock_load_config, mock_create_app, mock_run):
        config = make_config()
        mock_load_config.return_value = config

        main(["--config", "/dev/null"])

        mock_load_config.assert_called_once_with("/dev/null")
        mock_create_app.assert_called_once_with(config)
        mock_run.assert_called_once()
        assert mock_run.call_args.kwargs["port"] == 3000

    @patch("review_triage_bot.main.uvicorn.run")
    @patch("review_triage_bot.main.create_app")
    @patch("review_triage_bot.main.load_config")
    def test_port_flag_overrides_config(self, mock_load_config, mock_create_app, mock_run):
        mock_load_config.return_value = make_config()

        main(["--config", "/dev/null", "--port", "8123"])

        assert mock_create_app.call_args.args[0].port == 8123
        assert mock_run.call_args.kwargs["port"] == 8123

    @patch("review_triage_bot.main.load_config")
    def test_main_exits_on_missing_config(self, mock_load_config):
        mock_load_config.side_effect = FileNotFoundError("/no/such/file")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", "/no/such/file"])
        assert exc_info.value.code == 1

    @patch("review_triage_bot.main.load_config")
    def test_main_exits_on_invalid_config(self, mock_load_config):
        mock_load_config.side_effect = ValueError("bad port")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", "/dev/null"])
        assert exc_info.value.code == 1

    @patch("review_triage_bot.main.uvicorn.run")
    @patch("review_triage_bot.main.load_config")
    def test_main_exits_when_secrets_missing(self, mock_load_config, mock_run):
        mock_load_config.return_value = make_config(signing_secret="")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", "/dev/null"])
        assert exc_info.value.code == 1
        mock_run.assert_not_called()
