"""Shared fixtures: in-memory gateway, seeded users/posts, services, API client."""

import os

# Never reach real infrastructure from tests
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("KAFKA_ENABLED", "false")
os.environ.setdefault("DB_CREATE_SCHEMA", "false")

import httpx
import pytest

from engagement_service.application.activity_feed import ActivityFeedAggregator
from engagement_service.application.analytics import AnalyticsRecorder
from engagement_service.application.connections import ConnectionManager
from engagement_service.application.engagement import EngagementCounters
from engagement_service.application.metrics import BusinessMetricsService
from engagement_service.application.notifications import NotificationDispatcher
from engagement_service.application.suggestions import SuggestionEngine
from engagement_service.application.trending import TrendingTopicsRanker
from engagement_service.cache import RedisCache
from engagement_service.infrastructure.database.connection import get_db
from engagement_service.kafka_producer import KafkaProducerManager
from engagement_service.main import app

from tests.fakes import InMemoryGateway, MemoryCache


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def alice(gateway):
    return gateway.add_user("alice", business_score=80)


@pytest.fixture
def bob(gateway):
    return gateway.add_user("bob", business_score=60)


@pytest.fixture
def carol(gateway):
    return gateway.add_user("carol", business_score=70)


@pytest.fixture
def alice_post(gateway, alice):
    return gateway.add_post(alice.id, "Looking for a local bakery supplier")


@pytest.fixture
def cache():
    # Never connected: every call degrades to a cache miss
    return RedisCache()


@pytest.fixture
def memory_cache():
    return MemoryCache()


@pytest.fixture
def kafka():
    return KafkaProducerManager()


@pytest.fixture
def notifier(gateway, cache):
    return NotificationDispatcher(gateway, cache)


@pytest.fixture
def connections(gateway, notifier, cache, kafka):
    return ConnectionManager(gateway, notifier, cache, kafka)


@pytest.fixture
def engagement(gateway, notifier, kafka):
    return EngagementCounters(gateway, notifier, kafka)


@pytest.fixture
def trending(gateway, cache):
    return TrendingTopicsRanker(gateway, cache)


@pytest.fixture
def suggestions(gateway, cache):
    return SuggestionEngine(gateway, cache)


@pytest.fixture
def feed(gateway):
    return ActivityFeedAggregator(gateway)


@pytest.fixture
def analytics(gateway):
    return AnalyticsRecorder(gateway)


@pytest.fixture
def metrics(gateway):
    return BusinessMetricsService(gateway)


@pytest.fixture
async def client(gateway):
    async def override_get_db():
        return gateway

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
