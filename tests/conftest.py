"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Settings: mock_settings, mock_settings_mock_mode
2. Mock collaborators: mock_messaging_service, mock_search_backend
3. Scheduling: fake_sleep, scheduler, composer
4. Infrastructure: mock_logfire (autouse), test_client
"""

import os
import random
from contextlib import contextmanager
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from src.models.search_models import (
    ButtonOption,
    ButtonsSearchResult,
    ButtonSet,
    ImageResult,
    ImagesSearchResult,
    TextSearchResult,
)
from src.services.reply_composer import ReplyComposer
from src.services.scheduler import TaskScheduler
from tests.helpers import build_settings

# Modules that log through logfire at module level
LOGFIRE_MODULES = [
    "src.logging_config",
    "src.main",
    "src.services.dispatcher",
    "src.services.facebook_service",
    "src.services.reply_composer",
    "src.services.scheduler",
    "src.services.search_service",
    "src.services.signature",
]


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def mock_settings():
    """Settings with test credentials; sends go to the (mocked) Graph API."""
    return build_settings()


@pytest.fixture
def mock_settings_mock_mode():
    """Settings with outbound mock mode switched on."""
    return build_settings(messenger_mock_mode=True)


# =============================================================================
# Mock collaborators
# =============================================================================


@pytest.fixture
def mock_messaging_service():
    """Mock messaging service; every send method is an AsyncMock.

    Calls are recorded on the parent mock, so ``method_calls`` preserves the
    order in which sends were issued.
    """
    service = MagicMock()
    service.send_text = AsyncMock(return_value=None)
    service.send_image = AsyncMock(return_value=None)
    service.send_buttons = AsyncMock(return_value=None)
    service.send_url = AsyncMock(return_value=None)
    service.send_typing_on = AsyncMock(return_value=None)
    service.send_typing_off = AsyncMock(return_value=None)
    return service


@pytest.fixture
def sample_image_result():
    return ImageResult(
        id="Q42",
        image="http://x/y.png",
        label="L",
        description="D",
    )


@pytest.fixture
def sample_collection_image_result():
    return ImageResult(
        id="Q219831",
        image="http://x/nachtwacht.jpg",
        label="De Nachtwacht",
        description="schilderij van Rembrandt",
        collection="Rijksmuseum",
        url="https://www.rijksmuseum.nl/nl/collectie/SK-C-5",
        author="Q5598",
    )


@pytest.fixture
def mock_search_backend(sample_image_result):
    """Mock search backend; results can be overridden per test."""
    backend = MagicMock()
    backend.search_painters = AsyncMock(
        return_value=ButtonsSearchResult(
            buttons=ButtonSet(
                text="Welke schilder bedoel je?",
                data=[ButtonOption(title="Rembrandt", payload="Q5598")],
            )
        )
    )
    backend.painter_by_date = AsyncMock(
        return_value=TextSearchResult(text="Geen schilders gevonden.")
    )
    backend.get_monuments = AsyncMock(
        return_value=ImagesSearchResult(images=sample_image_result)
    )
    backend.random_artist = AsyncMock(
        return_value=TextSearchResult(text="Wat dacht je van Vermeer?")
    )
    backend.paintings_by_artist = AsyncMock(
        return_value=ImagesSearchResult(images=sample_image_result)
    )
    return backend


# =============================================================================
# Scheduling
# =============================================================================


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays and returns at once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def scheduler(fake_sleep):
    return TaskScheduler(sleep=fake_sleep)


@pytest.fixture
def composer(mock_messaging_service, mock_search_backend, scheduler):
    return ReplyComposer(
        messaging=mock_messaging_service,
        search=mock_search_backend,
        scheduler=scheduler,
        rng=random.Random(1234),
    )


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture(autouse=True)
def mock_logfire(monkeypatch):
    """
    Mock Logfire for testing without actual logging.

    Auto-applied to all tests; tests that assert on logging inspect the
    returned mock (e.g. ``mock_logfire.error.assert_called()``).
    """

    @contextmanager
    def mock_span(*args, **kwargs):
        yield {}

    mock_logfire_module = MagicMock()
    mock_logfire_module.info = Mock()
    mock_logfire_module.warn = Mock()
    mock_logfire_module.error = Mock()
    mock_logfire_module.span = mock_span
    mock_logfire_module.configure = Mock()
    mock_logfire_module.instrument_fastapi = Mock()
    mock_logfire_module.instrument_pydantic = Mock()

    for module in LOGFIRE_MODULES:
        monkeypatch.setattr(f"{module}.logfire", mock_logfire_module)

    return mock_logfire_module


@pytest.fixture
def test_client(mock_settings, mock_messaging_service, mock_search_backend, scheduler):
    """FastAPI TestClient for E2E tests.

    Used as a context manager so the lifespan runs and background tasks
    share the client's event loop; shutdown drains them.
    """
    from fastapi.testclient import TestClient

    from src.main import create_app

    app = create_app(
        mock_settings,
        messaging=mock_messaging_service,
        search=mock_search_backend,
        scheduler=scheduler,
    )
    with TestClient(app) as client:
        yield client
