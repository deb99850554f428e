"""Payload builders shared by unit and end-to-end tests."""

import hashlib
import hmac
import json

from src.config import Settings
from src.models.messenger import MessagingEvent

TEST_APP_SECRET = "test-app-secret"
TEST_VERIFY_TOKEN = "test-verify-token"


def build_settings(**overrides) -> Settings:
    """Settings with test credentials; keyword arguments override fields."""
    values = dict(
        facebook_app_secret=TEST_APP_SECRET,
        facebook_page_access_token="test-page-token",
        facebook_verify_token=TEST_VERIFY_TOKEN,
        server_url="https://bot.example.com",
        env="local",
        logfire_token=None,
        sentry_dsn=None,
        messenger_mock_mode=False,
        static_dir="does-not-exist",
    )
    values.update(overrides)
    return Settings(**values)


def make_event_dict(sender_id: str = "user-1", **fields) -> dict:
    event = {
        "sender": {"id": sender_id},
        "recipient": {"id": "page-1"},
        "timestamp": 1458692752478,
    }
    event.update(fields)
    return event


def make_event(sender_id: str = "user-1", **fields) -> MessagingEvent:
    return MessagingEvent.model_validate(make_event_dict(sender_id, **fields))


def make_envelope_dict(*events: dict, object_type: str = "page") -> dict:
    return {
        "object": object_type,
        "entry": [{"id": "page-1", "time": 1458692752478, "messaging": list(events)}],
    }


def sign_body(body: bytes, secret: str = TEST_APP_SECRET) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()
    return f"sha1={digest}"


def encode(payload: dict) -> bytes:
    return json.dumps(payload).encode("utf-8")
