"""
FastAPI dependencies for authentication and service wiring
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from .config import settings
from .cache import RedisCache, get_cache
from .kafka_producer import KafkaProducerManager, get_kafka_producer
from .infrastructure.database.connection import get_db
from .domain.repositories import IPersistenceGateway
from .application.activity_feed import ActivityFeedAggregator
from .application.analytics import AnalyticsRecorder
from .application.connections import ConnectionManager
from .application.engagement import EngagementCounters
from .application.metrics import BusinessMetricsService
from .application.notifications import NotificationDispatcher
from .application.suggestions import SuggestionEngine
from .application.trending import TrendingTopicsRanker

security = HTTPBearer()


@dataclass
class RequestContext:
    """Acting user of one request, taken from the bearer token"""
    user_id: str
    username: Optional[str] = None


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_request_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> RequestContext:
    """
    Validate JWT token and return the acting user
    """
    token = credentials.credentials

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise _credentials_exception()

    user_id = payload.get("sub")
    if user_id is None:
        raise _credentials_exception()

    return RequestContext(user_id=str(user_id), username=payload.get("username"))


def get_notification_dispatcher(
    db: IPersistenceGateway = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
) -> NotificationDispatcher:
    return NotificationDispatcher(db, cache)


def get_connection_manager(
    db: IPersistenceGateway = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
    cache: RedisCache = Depends(get_cache),
    kafka: KafkaProducerManager = Depends(get_kafka_producer),
) -> ConnectionManager:
    """Get ConnectionManager instance with dependencies"""
    return ConnectionManager(db, notifier, cache, kafka)


def get_engagement_counters(
    db: IPersistenceGateway = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
    kafka: KafkaProducerManager = Depends(get_kafka_producer),
) -> EngagementCounters:
    return EngagementCounters(db, notifier, kafka)


def get_trending_ranker(
    db: IPersistenceGateway = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
) -> TrendingTopicsRanker:
    return TrendingTopicsRanker(db, cache)


def get_suggestion_engine(
    db: IPersistenceGateway = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
) -> SuggestionEngine:
    return SuggestionEngine(db, cache)


def get_activity_feed(db: IPersistenceGateway = Depends(get_db)) -> ActivityFeedAggregator:
    return ActivityFeedAggregator(db)


def get_analytics_recorder(db: IPersistenceGateway = Depends(get_db)) -> AnalyticsRecorder:
    return AnalyticsRecorder(db)


def get_metrics_service(db: IPersistenceGateway = Depends(get_db)) -> BusinessMetricsService:
    return BusinessMetricsService(db)
