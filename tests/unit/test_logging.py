"""Tests for Logfire setup and log redaction helpers."""

from unittest.mock import patch

from fastapi import FastAPI

from src.logging_config import mask_pii, redact_tokens, setup_logfire
from tests.helpers import build_settings


class TestSetupLogfire:
    @patch("src.logging_config.logging.basicConfig")
    def test_configures_and_instruments(self, mock_basic_config, mock_logfire):
        app = FastAPI()

        setup_logfire(app, build_settings(env="prod", logfire_token="lf-token"))

        kwargs = mock_logfire.configure.call_args.kwargs
        assert kwargs["environment"] == "prod"
        assert kwargs["send_to_logfire"] == "if-token-present"
        assert kwargs["token"] == "lf-token"
        mock_logfire.instrument_fastapi.assert_called_once_with(app)
        mock_logfire.instrument_pydantic.assert_called_once()
        assert mock_basic_config.call_args.kwargs["format"] == "%(message)s"

    @patch("src.logging_config.logging.basicConfig")
    def test_local_without_token(self, mock_basic_config, mock_logfire):
        setup_logfire(FastAPI(), build_settings(log_level="debug"))

        assert "token" not in mock_logfire.configure.call_args.kwargs
        assert "%(levelname)s" in mock_basic_config.call_args.kwargs["format"]
        assert mock_basic_config.call_args.kwargs["level"] == 10


class TestMaskPii:
    def test_masks_middle(self):
        assert mask_pii("EAAGtoken1234") == "EA*********34"

    def test_short_values_fully_masked(self):
        assert mask_pii("abcd") == "****"

    def test_empty(self):
        assert mask_pii(None) == ""
        assert mask_pii("") == ""


class TestRedactTokens:
    def test_redacts_sensitive_keys(self):
        redacted = redact_tokens({"access_token": "EAAGtoken1234", "recipient_id": "user-1"})

        assert redacted["access_token"] == "EA*********34"
        assert redacted["recipient_id"] == "user-1"

    def test_redacts_nested_dicts(self):
        data = {"params": {"access_token": "EAAGtoken1234"}, "secret": "geheim123"}

        redacted = redact_tokens(data)

        assert redacted["params"]["access_token"] != "EAAGtoken1234"
        assert redacted["secret"] == "ge*****23"
        assert data["params"]["access_token"] == "EAAGtoken1234"
