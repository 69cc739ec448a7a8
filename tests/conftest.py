"""Shared pytest fixtures and configuration."""

import os
import random
import pytest
from unittest.mock import Mock
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("WINERY_STORE", "memory")
os.environ.setdefault("WINERY_GAME_ID", "test-game")
os.environ.setdefault("LOG_FORMAT", "text")

from winery.models.game_state import GameDate, GameState
from winery.services.activity_manager import ActivityManager
from winery.services.activity_registry import ActivityRegistry
from winery.services.allocation import StaffAllocationResolver
from winery.services.outcome_handlers import OUTCOME_HANDLERS, DomainContext
from winery.services.repositories import (
    InMemoryActivityStore,
    InMemoryGameStateRepository,
    InMemoryNotificationSink,
    in_memory_loan_offers,
    in_memory_staff,
    in_memory_vineyards,
    in_memory_wine_batches,
)
from winery.services.tick_processor import TickProcessor
from tests.utils.factories import create_vineyard, create_wine_batch


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for testing."""
    client = Mock()
    client.table = Mock(return_value=Mock())
    return client


@pytest.fixture
def activity_store():
    return InMemoryActivityStore()


@pytest.fixture
def registry(activity_store):
    return ActivityRegistry(activity_store)


@pytest.fixture
def vineyard():
    """Five hectare vineyard with expected yield ready for harvest."""
    return create_vineyard(vineyard_id="vy_test", name="Test Vineyard", hectares=5.0, grape="Barbera")


@pytest.fixture
def wine_batch():
    return create_wine_batch(batch_id="wb_test", quantity=2000)


@pytest.fixture
def game_state_repo():
    return InMemoryGameStateRepository(GameState(game_id="test-game", money=100000))


@pytest.fixture
def domain_context(vineyard, wine_batch, game_state_repo):
    """In-memory collaborators for outcome handlers, seeded with one vineyard and batch."""
    return DomainContext(
        vineyards=in_memory_vineyards([vineyard]),
        wine_batches=in_memory_wine_batches([wine_batch]),
        staff=in_memory_staff(),
        staff_candidates=in_memory_staff(),
        loan_offers=in_memory_loan_offers(),
        game_state=game_state_repo,
        notifications=InMemoryNotificationSink(),
        date=GameDate(week=1, season="Spring", year=2025),
        rng=random.Random(42),
    )


@pytest.fixture
def tick_processor(registry, domain_context):
    return TickProcessor(registry, StaffAllocationResolver(), OUTCOME_HANDLERS, domain_context)


@pytest.fixture
def activity_manager(activity_store, domain_context):
    return ActivityManager(activity_store, domain_context)


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2025-03-01 12:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture
def mock_vercel_request():
    """Mock Vercel serverless function request."""
    return {
        "method": "POST",
        "path": "/api/game/advance_week",
        "headers": {"content-type": "application/json"},
        "body": "{}",
        "query": {}
    }


@pytest.fixture(scope="function")
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
